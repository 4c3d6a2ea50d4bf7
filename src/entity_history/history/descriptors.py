"""Per-entity-type property lookup for snapshot trails.

A trail starts from the entity's current live value of each changed
property. Instead of reflecting over the entity at reconstruction time, each
entity type is described once by an EntityDescriptor: a table mapping logged
property names to getters. Properties the type no longer defines have no
getter and are reported as absent.
"""

from __future__ import annotations

import dataclasses
import json
from collections.abc import Callable, Iterable, Mapping
from operator import attrgetter
from types import MappingProxyType
from typing import Any

from pydantic import BaseModel
from pydantic_core import to_jsonable_python
from sqlalchemy import inspect as sa_inspect
from sqlalchemy.exc import NoInspectionAvailable

from entity_history.errors import ConfigurationError

PROPERTY_NOT_EXIST = "PropertyNotExist"

PropertyGetter = Callable[[Any], Any]


def stringify_value(value: Any) -> str:
    """Render a live property value the way change logs store values.

    Strings are kept verbatim and None becomes "null". Everything else is
    rendered as canonical JSON: sorted keys, compact separators.

    Args:
        value: The live value read from an entity.

    Returns:
        The string form of value.
    """
    if value is None:
        return "null"
    if isinstance(value, str):
        return value
    return json.dumps(
        to_jsonable_python(value, fallback=str),
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=False,
    )


class EntityDescriptor:
    """Property lookup table for one entity type.

    Args:
        entity_type: The entity type discriminator this table describes.
        getters: Logged property name to a getter taking the entity.
    """

    def __init__(self, entity_type: str, getters: Mapping[str, PropertyGetter]) -> None:
        if not entity_type:
            raise ConfigurationError("EntityDescriptor requires a non-empty entity_type")
        self.entity_type = entity_type
        self._getters: Mapping[str, PropertyGetter] = MappingProxyType(dict(getters))

    def __repr__(self) -> str:
        return f"EntityDescriptor({self.entity_type!r}, properties={sorted(self._getters)!r})"

    @property
    def property_names(self) -> frozenset[str]:
        """Names of all properties the entity type currently defines."""
        return frozenset(self._getters)

    def has_property(self, property_name: str) -> bool:
        return property_name in self._getters

    def read(self, entity: Any, property_name: str) -> str | None:
        """Return the stringified live value of a property.

        Args:
            entity: An instance of the described entity type.
            property_name: The logged property name.

        Returns:
            The live value via stringify_value, or None when the entity type
            does not define the property.
        """
        getter = self._getters.get(property_name)
        if getter is None:
            return None
        return stringify_value(getter(entity))

    # ------------------------------------------------------------------
    # Builders
    # ------------------------------------------------------------------

    @classmethod
    def for_attributes(
        cls,
        entity_type: str,
        attribute_names: Iterable[str],
        renames: Mapping[str, str] | None = None,
    ) -> EntityDescriptor:
        """Describe an entity type whose properties are plain attributes.

        Args:
            entity_type: The entity type discriminator.
            attribute_names: Attribute names the type defines.
            renames: Logged property name to attribute name, for logged
                names that differ from the attribute they map to.

        Returns:
            A descriptor reading values with ``getattr``.
        """
        return cls(entity_type, _build_getters(attribute_names, renames, attrgetter))

    @classmethod
    def for_mapping(
        cls,
        entity_type: str,
        keys: Iterable[str],
        renames: Mapping[str, str] | None = None,
    ) -> EntityDescriptor:
        """Describe dict-shaped entities whose properties are mapping keys.

        A declared key missing from a particular entity reads as None and
        renders as "null"; only undeclared keys count as absent properties.
        """
        return cls(entity_type, _build_getters(keys, renames, _key_getter))

    @classmethod
    def for_pydantic_model(
        cls,
        model: type[BaseModel],
        entity_type: str | None = None,
        renames: Mapping[str, str] | None = None,
    ) -> EntityDescriptor:
        """Describe a pydantic model class from its declared fields."""
        if not (isinstance(model, type) and issubclass(model, BaseModel)):
            raise ConfigurationError(f"{model!r} is not a pydantic model class")
        return cls.for_attributes(entity_type or model.__name__, model.model_fields, renames)

    @classmethod
    def for_dataclass(
        cls,
        model: type,
        entity_type: str | None = None,
        renames: Mapping[str, str] | None = None,
    ) -> EntityDescriptor:
        """Describe a dataclass from its fields."""
        if not (isinstance(model, type) and dataclasses.is_dataclass(model)):
            raise ConfigurationError(f"{model!r} is not a dataclass type")
        names = [f.name for f in dataclasses.fields(model)]
        return cls.for_attributes(entity_type or model.__name__, names, renames)

    @classmethod
    def for_orm_model(
        cls,
        model: type,
        entity_type: str | None = None,
        renames: Mapping[str, str] | None = None,
    ) -> EntityDescriptor:
        """Describe a SQLAlchemy mapped class from its column attributes."""
        try:
            mapper = sa_inspect(model)
        except NoInspectionAvailable as exc:
            raise ConfigurationError(f"{model!r} is not a SQLAlchemy mapped class") from exc
        names = [attr.key for attr in mapper.column_attrs]
        return cls.for_attributes(entity_type or model.__name__, names, renames)


def _key_getter(key: str) -> PropertyGetter:
    return lambda entity: entity.get(key)


def _build_getters(
    names: Iterable[str],
    renames: Mapping[str, str] | None,
    make_getter: Callable[[str], PropertyGetter],
) -> dict[str, PropertyGetter]:
    known = list(names)
    getters = {name: make_getter(name) for name in known}
    for logged_name, attribute in (renames or {}).items():
        if attribute not in getters:
            raise ConfigurationError(
                f"Rename target '{attribute}' for '{logged_name}' is not a known property"
            )
        getters[logged_name] = getters[attribute]
    return getters

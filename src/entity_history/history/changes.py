"""Change log value types for entity history snapshots.

Every mutation of a tracked entity is captured (elsewhere) as one immutable
ChangeRecord carrying the per-property diffs of that mutation. Snapshots are
rebuilt from these records by undoing them newest-first, and the result is
returned as an immutable EntityHistorySnapshot.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import StrEnum
from types import MappingProxyType
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class ChangeType(StrEnum):
    """The nature of a recorded entity mutation."""

    CREATED = "created"
    UPDATED = "updated"
    DELETED = "deleted"


class PropertyChange(BaseModel):
    """A single property's diff within one recorded mutation.

    Attributes:
        property_name: Name of the changed property as it was logged.
        original_value: Serialized value the property held immediately
            before the change. None is rendered as "null" in snapshots.
        new_value: Serialized value after the change. Not used when
            rebuilding snapshots.
        property_type_full_name: Optional type name of the property.
    """

    model_config = ConfigDict(frozen=True)

    property_name: str = Field(..., min_length=1, description="Logged property name")
    original_value: str | None = Field(
        default=None, description="Serialized value before the change"
    )
    new_value: str | None = Field(default=None, description="Serialized value after the change")
    property_type_full_name: str | None = Field(
        default=None, description="Type name of the property, informational only"
    )


class ChangeRecord(BaseModel):
    """One logged mutation of a specific entity.

    Attributes:
        change_time: When the mutation happened. Naive datetimes are
            treated as UTC.
        change_type: Created, updated or deleted.
        entity_type: Discriminator of the mutated entity's type.
        entity_id: Primary key of the mutated entity rendered with
            serialize_key(), i.e. str(primary_key).
        property_changes: Ordered per-property diffs.
    """

    model_config = ConfigDict(frozen=True)

    change_time: datetime = Field(..., description="When the mutation happened")
    change_type: ChangeType = Field(default=ChangeType.UPDATED)
    entity_type: str = Field(..., description="Discriminator of the entity type")
    entity_id: str = Field(..., description="str() of the entity's primary key")
    property_changes: tuple[PropertyChange, ...] = Field(default=())

    @field_validator("change_time")
    @classmethod
    def _assume_utc(cls, value: datetime) -> datetime:
        return as_utc(value)


@dataclass(frozen=True)
class EntityHistorySnapshot:
    """Reconstructed property values of an entity at a past timestamp.

    Attributes:
        final_values: Property name to the value it held at the snapshot
            time.
        change_trail: Property name to the " -> " joined chain of values,
            from the current live value down to the snapshot-time value.

    Both mappings are read-only and iterate in first-touched order.
    """

    final_values: Mapping[str, str] = field(default_factory=dict)
    change_trail: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "final_values", MappingProxyType(dict(self.final_values)))
        object.__setattr__(self, "change_trail", MappingProxyType(dict(self.change_trail)))

    def __hash__(self) -> int:
        return hash((tuple(self.final_values.items()), tuple(self.change_trail.items())))

    @property
    def is_empty(self) -> bool:
        """True when no property was touched by any change."""
        return not self.final_values and not self.change_trail


def as_utc(value: datetime) -> datetime:
    """Return value as an aware datetime, treating naive values as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def serialize_key(primary_key: Any) -> str:
    """Render a primary key as the entity_id stored on change records.

    Keys are stored as plain ``str(primary_key)``: ``42`` -> ``"42"``,
    ``UUID(...)`` -> its canonical hyphenated form, strings unchanged. This
    rule is independent of how live property values are rendered.
    """
    return str(primary_key)

"""Exception types raised by entity-history.

Missing entities and missing properties are not errors. They degrade to an
empty snapshot and the "PropertyNotExist" trail sentinel respectively.
Failures raised by entity loaders and change log providers are never wrapped
and reach the caller unchanged.
"""


class EntityHistoryError(Exception):
    """Base class for all entity-history errors."""


class ConfigurationError(EntityHistoryError):
    """Raised when an entity type is registered or described incorrectly."""


class UnknownEntityTypeError(EntityHistoryError, LookupError):
    """Raised when a snapshot is requested for an unregistered entity type.

    Args:
        entity_type: The entity type discriminator that has no registration.
    """

    def __init__(self, entity_type: str) -> None:
        super().__init__(f"No snapshot registration for entity type '{entity_type}'")
        self.entity_type = entity_type

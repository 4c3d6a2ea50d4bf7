"""Service settings for entity-history.

All settings use the ENTITY_HISTORY_ environment prefix and cover:
- The change log database connection pool
- Logging level and output format
- How the entity and change log reads are scheduled
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Settings for entity-history.

    Environment variable prefix: ENTITY_HISTORY_
    """

    service_name: str = "entity-history"

    # -------------------------------------------------------------------------
    # Change log database
    # -------------------------------------------------------------------------

    database_url: str = Field(
        default="postgresql+asyncpg://localhost:5432/entity_history",
        description="SQLAlchemy async URL of the database holding the entity change tables.",
    )
    db_pool_size: int = Field(
        default=5,
        description="Connection pool size for the change log database.",
    )
    db_max_overflow: int = Field(
        default=2,
        description="Max overflow connections above db_pool_size.",
    )
    db_pool_timeout: int = Field(
        default=30,
        description="Seconds to wait for a connection before raising an error.",
    )
    db_echo: bool = Field(
        default=False,
        description="Echo SQL statements. Leave off outside local debugging; "
        "change rows carry raw property values.",
    )

    # -------------------------------------------------------------------------
    # Logging
    # -------------------------------------------------------------------------

    log_level: str = Field(default="INFO", description="Minimum log level.")
    json_logs: bool = Field(
        default=False,
        description="Emit serialized JSON log records instead of text.",
    )

    # -------------------------------------------------------------------------
    # Snapshot reads
    # -------------------------------------------------------------------------

    concurrent_reads: bool = Field(
        default=False,
        description="Load the current entity and its change log concurrently. "
        "Only safe when the two collaborators do not share one AsyncSession.",
    )

    model_config = SettingsConfigDict(env_prefix="ENTITY_HISTORY_")

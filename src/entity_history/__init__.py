"""entity-history: historical entity snapshots from a per-property change log."""

from loguru import logger

__version__ = "0.1.0"

# Silent until the host application opts in via configure_logging().
logger.disable("entity_history")

"""Change log database engine and session lifecycle.

Key exports:
- init_history_db(settings)   — Call at startup to create the engine
- close_history_db()          — Call at shutdown to dispose the engine
- get_history_db_session()    — Async generator yielding a transactional session

Both SQL adapters in repositories.py take an AsyncSession. Handing them the
same session makes the entity read and the change log read part of one
transaction.
"""

from collections.abc import AsyncGenerator

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from entity_history.observability import get_logger
from entity_history.settings import Settings

logger = get_logger(__name__)

# Module-level engine and session factory — initialized by init_history_db()
_engine: AsyncEngine | None = None
_session_factory: async_sessionmaker[AsyncSession] | None = None


async def init_history_db(settings: Settings) -> None:
    """Initialize the change log database engine and session factory.

    Must be called once at application startup before any session is
    requested.

    Args:
        settings: Provides database_url and the pool configuration.
    """
    global _engine, _session_factory  # noqa: PLW0603

    logger.info(
        "Initializing change log database engine",
        pool_size=settings.db_pool_size,
        max_overflow=settings.db_max_overflow,
    )

    _engine = create_async_engine(
        settings.database_url,
        pool_size=settings.db_pool_size,
        max_overflow=settings.db_max_overflow,
        pool_timeout=settings.db_pool_timeout,
        echo=settings.db_echo,
        pool_pre_ping=True,
    )

    _session_factory = async_sessionmaker(
        bind=_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )

    logger.info("Change log database engine initialized")


async def close_history_db() -> None:
    """Dispose the change log database engine.

    After this call no session can be obtained until init_history_db() is
    called again.
    """
    global _engine, _session_factory  # noqa: PLW0603

    if _engine is not None:
        logger.info("Disposing change log database engine")
        await _engine.dispose()
        _engine = None
        _session_factory = None


async def get_history_db_session() -> AsyncGenerator[AsyncSession, None]:
    """Yield a change log database session inside one transaction.

    Commits when the consumer finishes normally and rolls back when it
    raises.

    Yields:
        AsyncSession: A session bound to the change log database.

    Raises:
        RuntimeError: If init_history_db() has not been called yet.
    """
    if _session_factory is None:
        raise RuntimeError(
            "Change log database has not been initialized. "
            "Call init_history_db() at application startup."
        )

    async with _session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise

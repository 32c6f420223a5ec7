"""Database engine and session management."""

from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from sqlalchemy import inspect, text, update
from sqlalchemy.ext.asyncio import (
    AsyncConnection,
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from mediadisplay.models.schema import Account, Base, renewal_date
from mediadisplay.utils.config import ACCOUNT_TABLE, DB_URL, MIGRATION_RENEWAL_DAYS
from mediadisplay.utils.logging import get_logger

logger = get_logger(__name__)

SessionFactory = async_sessionmaker[AsyncSession]

_engine: Optional[AsyncEngine] = None
_session_factory: Optional[SessionFactory] = None


def configure(db_url: str = DB_URL) -> SessionFactory:
    """
    Create the engine and session factory for a database URL.

    Args:
        db_url: Async SQLAlchemy URL (default: from config)

    Returns:
        The session factory now used by default
    """
    global _engine, _session_factory

    _engine = create_async_engine(db_url, echo=False)
    _session_factory = async_sessionmaker(
        bind=_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )
    return _session_factory


def get_engine() -> AsyncEngine:
    if _engine is None:
        configure()
    return _engine


def get_session_factory() -> SessionFactory:
    if _session_factory is None:
        configure()
    return _session_factory


async def init_db(db_url: Optional[str] = None) -> SessionFactory:
    """
    Initialize the database by creating all tables and applying migrations.
    This should be called once at application startup.

    Args:
        db_url: Optional URL to (re)configure the engine with first

    Returns:
        The session factory bound to the initialized database
    """
    factory = configure(db_url) if db_url else get_session_factory()
    engine = get_engine()
    logger.info(f"Initializing database at: {engine.url.render_as_string(hide_password=True)}")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
        await migrate_schema(conn)

    logger.info("Database initialized successfully")
    return factory


async def migrate_schema(conn: AsyncConnection) -> bool:
    """
    Add the ``token_renews`` column to account tables created before it existed.

    Existing accounts are due for renewal a day from now so their tokens
    get refreshed soon after upgrading.

    Returns:
        True if the table was migrated
    """
    columns = await conn.run_sync(
        lambda sync_conn: [column["name"] for column in inspect(sync_conn).get_columns(ACCOUNT_TABLE)]
    )
    if "token_renews" in columns:
        return False

    logger.info(f"Adding token_renews to {ACCOUNT_TABLE}")
    await conn.execute(text(f"ALTER TABLE {ACCOUNT_TABLE} ADD COLUMN token_renews DATETIME"))
    await conn.execute(
        update(Account.__table__).values(token_renews=renewal_date(MIGRATION_RENEWAL_DAYS))
    )
    return True


@asynccontextmanager
async def session_scope(factory: Optional[SessionFactory] = None) -> AsyncGenerator[AsyncSession, None]:
    """
    Get an async database session as a context manager.

    Usage:
        async with session_scope() as session:
            await session.execute(...)

    Args:
        factory: Session factory (default: the configured one)

    Yields:
        SQLAlchemy AsyncSession instance
    """
    session = (factory or get_session_factory())()
    try:
        yield session
        await session.commit()
    except Exception:
        await session.rollback()
        raise
    finally:
        await session.close()


async def close_db() -> None:
    """Clean up database connections."""
    global _engine, _session_factory
    if _engine is not None:
        await _engine.dispose()
        logger.info("Database connections closed")
    _engine = None
    _session_factory = None

"""
Directory database engine and session factory
"""

import os
import threading

from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from ..config import settings
from ..logging import get_logger

logger = get_logger(__name__)

# Process-wide pool shared by every SqlDirectoryStore, created lazily
_engine: AsyncEngine | None = None
_session_factory: async_sessionmaker[AsyncSession] | None = None
_init_lock = threading.Lock()


def get_database_url() -> str:
    """Directory database URL; the environment wins so CLI runs and tests can redirect it."""
    return os.getenv("BOARDBRIDGE_DATABASE_URL") or settings.database_url


def to_async_url(db_url: str) -> str:
    """Select the async driver for a plain database URL."""
    if db_url.startswith("postgresql://"):
        return db_url.replace("postgresql://", "postgresql+asyncpg://", 1)
    if db_url.startswith("sqlite://"):
        return db_url.replace("sqlite://", "sqlite+aiosqlite://", 1)
    return db_url


def reset_database() -> None:
    """Forget the shared engine so the next caller builds one from the current URL."""
    global _engine, _session_factory
    _engine = None
    _session_factory = None


def init_database(database_url: str | None = None) -> None:
    """Create the shared engine and session factory once per process.

    Passing ``database_url`` always rebuilds them against that URL.
    """
    global _engine, _session_factory

    if _session_factory is not None and database_url is None:
        return

    with _init_lock:
        if _session_factory is not None and database_url is None:
            return

        db_url = to_async_url(database_url or get_database_url())

        if db_url.startswith("sqlite"):
            # SQLite pools do not accept sizing arguments
            _engine = create_async_engine(db_url, echo=settings.sql_echo)
        else:
            _engine = create_async_engine(
                db_url,
                pool_size=settings.database_pool_size,
                max_overflow=settings.database_max_overflow,
                echo=settings.sql_echo,
            )
        _session_factory = async_sessionmaker(
            _engine,
            class_=AsyncSession,
            autoflush=False,
            expire_on_commit=False,
        )

        logger.info("Directory database initialized", driver=db_url.split("://", 1)[0])


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Session factory handed to SqlDirectoryStore."""
    if _session_factory is None:
        init_database()
    if _session_factory is None:
        raise RuntimeError("Database not initialized")
    return _session_factory


async def check_directory_database() -> tuple[bool, str | None]:
    """
    Check that the directory database answers and has the users table.

    Returns:
        tuple: (success: bool, error_message: str | None)
    """
    if _engine is None:
        return False, "Database engine not initialized"

    try:
        async with _engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except Exception as e:
        error_str = str(e)

        if "Connection refused" in error_str or "could not connect" in error_str:
            return False, (
                f"Cannot connect to database server: {error_str}\n"
                f"The database server appears to be down or unreachable."
            )
        elif "password authentication failed" in error_str:
            return False, (
                f"Database authentication failed: {error_str}\n"
                f"Please check your database credentials."
            )
        return False, f"Database connection error ({type(e).__name__}): {error_str}"

    try:
        async with _engine.connect() as conn:
            await conn.execute(text("SELECT id FROM users LIMIT 1"))
    except Exception as e:
        logger.error("Directory users table is not readable", error=str(e))
        return False, "Directory users table is missing - run `alembic upgrade head`"

    return True, None

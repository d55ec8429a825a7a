from typing import Optional

from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker, create_async_engine

from core.settings import settings

_async_engine: Optional[AsyncEngine] = None
_session_factory: Optional[async_sessionmaker] = None


def get_async_engine() -> AsyncEngine:
    """Build the shared connection pool on first use."""
    global _async_engine
    if _async_engine is None:
        if not settings.SQLALCHEMY_DATABASE_URI:
            raise RuntimeError("Database URL is not configured. Set DATABASE_URL or the POSTGRES_* variables.")
        _async_engine = create_async_engine(
            settings.SQLALCHEMY_DATABASE_URI,
            pool_pre_ping=True,
            pool_size=settings.POSTGRES_POOL_SIZE,
            max_overflow=settings.POSTGRES_MAX_OVERFLOW,
            pool_recycle=600,
            pool_use_lifo=True,
        )
    return _async_engine


def AsyncSessionLocal():
    global _session_factory
    if _session_factory is None:
        _session_factory = async_sessionmaker(get_async_engine(), expire_on_commit=False)
    return _session_factory()


async def dispose_engine() -> None:
    global _async_engine, _session_factory
    if _async_engine is not None:
        await _async_engine.dispose()
    _async_engine = None
    _session_factory = None

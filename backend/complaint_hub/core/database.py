"""
Database configuration and session management.
"""

from typing import AsyncGenerator
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.orm import declarative_base
from sqlalchemy.pool import NullPool

from complaint_hub.core.config import settings

# Convert postgresql:// to postgresql+asyncpg:// only if not already async
raw_dsn = str(settings.DATABASE_URL)
DATABASE_URL = (
    raw_dsn
    if raw_dsn.startswith("postgresql+asyncpg://")
    else raw_dsn.replace("postgresql://", "postgresql+asyncpg://")
)

_engine_options = {
    "echo": settings.ENVIRONMENT == "development",
    "pool_pre_ping": True,
}
if settings.ENVIRONMENT == "test":
    _engine_options["poolclass"] = NullPool

engine = create_async_engine(DATABASE_URL, **_engine_options)

AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autocommit=False,
    autoflush=False,
)

Base = declarative_base()


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Dependency for getting async database sessions."""
    async with AsyncSessionLocal() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


async def init_db():
    """Create tables that are not yet managed by migrations."""
    # Import models so their tables are registered on the metadata.
    import complaint_hub.models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def close_db():
    """Dispose of pooled connections on shutdown."""
    await engine.dispose()

"""Database engine, session factory, and declarative base.

One DeclarativeBase for every table.  Each request gets its own
AsyncSession through the get_db() dependency; the session commits when
the request finishes and rolls back on any exception, so a multi-row
write (a transaction plus its rice batches) either lands completely or
not at all.
"""

from sqlalchemy.ext.asyncio import (
    AsyncSession,
    create_async_engine,
    async_sessionmaker,
)
from sqlalchemy.orm import DeclarativeBase

from app.config import settings

engine = create_async_engine(
    settings.database_url,
    echo=settings.debug,
    pool_pre_ping=True,
)

async_session = async_sessionmaker(
    engine, class_=AsyncSession, expire_on_commit=False
)


class Base(DeclarativeBase):
    pass


async def get_db() -> AsyncSession:
    """Yield a session that commits on success and rolls back on error."""
    async with async_session() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def create_all_tables() -> None:
    """Create any missing tables (development bootstrap; use Alembic elsewhere)."""
    import app.models  # noqa: F401  register every model on Base.metadata

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

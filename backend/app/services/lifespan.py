"""Application lifespan — startup bootstrap and shutdown cleanup.

Startup (only with AUTO_CREATE_TABLES=true, i.e. local development):
  - create any missing tables
  - seed default prices for the suggested rice types

Shutdown:
  - close the shared Redis pool

Usage:
    from app.services.lifespan import lifespan
    app = FastAPI(lifespan=lifespan, ...)
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from sqlalchemy import select

from app.config import settings
from app.database import async_session, create_all_tables
from app.models.rice_price import RicePrice, build_default_prices
from app.utils.cache import close_redis

logger = logging.getLogger("riceweigh.lifespan")


async def seed_default_prices() -> int:
    """Insert a default price for each suggested rice type that has none."""
    async with async_session() as db:
        try:
            result = await db.execute(select(RicePrice.rice_type))
            rows = build_default_prices(
                settings.rice_type_suggestions,
                set(result.scalars().all()),
                settings.default_rice_price,
            )
            db.add_all(rows)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
    return len(rows)


@asynccontextmanager
async def lifespan(app: FastAPI):
    if settings.auto_create_tables:
        await create_all_tables()
        seeded = await seed_default_prices()
        logger.info("Tables ensured; %d default prices seeded", seeded)
    try:
        yield
    finally:
        await close_redis()
        logger.info("Redis pool closed")

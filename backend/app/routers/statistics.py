"""Revenue and volume statistics over completed transactions.

Endpoints:
    GET /api/statistics/overview   Totals and per-rice-type breakdown
    GET /api/statistics/daily      Totals per calendar day
"""

from datetime import date

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db
from app.middleware.exceptions import ValidationError
from app.schemas.statistics import DailyStatistics, StatisticsOverview
from app.services import statistics
from app.utils.cache import cached

router = APIRouter()


def _check_range(date_from: date | None, date_to: date | None) -> None:
    if date_from and date_to and date_from > date_to:
        raise ValidationError("date_from must not be after date_to", field="date_from")


@router.get("/overview", response_model=StatisticsOverview)
@cached(prefix="statistics")
async def overview(
    date_from: date | None = Query(None),
    date_to: date | None = Query(None),
    db: AsyncSession = Depends(get_db),
):
    _check_range(date_from, date_to)
    return await statistics.overview(db, date_from, date_to)


@router.get("/daily", response_model=DailyStatistics)
@cached(prefix="statistics")
async def daily(
    date_from: date | None = Query(None),
    date_to: date | None = Query(None),
    db: AsyncSession = Depends(get_db),
):
    _check_range(date_from, date_to)
    return await statistics.daily(db, date_from, date_to)

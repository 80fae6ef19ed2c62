"""Pydantic schemas for the statistics dashboard."""

from datetime import date

from pydantic import BaseModel


class RiceTypeStat(BaseModel):
    rice_type: str
    bags: int
    weight: float
    amount: float


class TotalsOut(BaseModel):
    transaction_count: int = 0
    total_bags: int = 0
    total_weight: float = 0.0
    total_revenue: float = 0.0
    paid_amount: float = 0.0
    unpaid_amount: float = 0.0


class StatisticsOverview(TotalsOut):
    date_from: date | None = None
    date_to: date | None = None
    by_rice_type: list[RiceTypeStat] = []


class DailyStat(TotalsOut):
    day: date


class DailyStatistics(BaseModel):
    date_from: date | None = None
    date_to: date | None = None
    days: list[DailyStat] = []

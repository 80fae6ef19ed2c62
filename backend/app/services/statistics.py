"""Statistics over completed transactions.

Amounts are derived from weights and batch prices on every read, so the
aggregation runs in Python over the loaded transactions rather than in
SQL.  Pending transactions never count.
"""

from datetime import date, timedelta

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.models.transaction import PAYMENT_PAID, STATUS_COMPLETED, Transaction
from app.schemas.statistics import (
    DailyStat,
    DailyStatistics,
    RiceTypeStat,
    StatisticsOverview,
    TotalsOut,
)
from app.services.summary import combine_by_rice_type, compute_summary
from app.utils.formatting import local_date, local_day_start


async def _completed_between(
    db: AsyncSession,
    date_from: date | None,
    date_to: date | None,
) -> list[Transaction]:
    stmt = (
        select(Transaction)
        .options(
            selectinload(Transaction.rice_batches),
            selectinload(Transaction.weights),
        )
        .where(Transaction.status == STATUS_COMPLETED)
    )
    if date_from:
        stmt = stmt.where(Transaction.created_at >= local_day_start(date_from))
    if date_to:
        stmt = stmt.where(
            Transaction.created_at < local_day_start(date_to + timedelta(days=1))
        )
    result = await db.execute(stmt.order_by(Transaction.created_at))
    return list(result.scalars().all())


def _accumulate(totals: TotalsOut, tx: Transaction) -> None:
    summary = compute_summary(tx)
    totals.transaction_count += 1
    totals.total_bags += summary.total_bags
    totals.total_weight += summary.total_weight
    totals.total_revenue += summary.total_amount
    if tx.payment_status == PAYMENT_PAID:
        totals.paid_amount += summary.total_amount
    else:
        totals.unpaid_amount += summary.total_amount


async def overview(
    db: AsyncSession,
    date_from: date | None = None,
    date_to: date | None = None,
) -> StatisticsOverview:
    transactions = await _completed_between(db, date_from, date_to)

    result = StatisticsOverview(date_from=date_from, date_to=date_to)
    for tx in transactions:
        _accumulate(result, tx)

    combined = combine_by_rice_type(transactions)
    result.by_rice_type = [
        RiceTypeStat(rice_type=g.rice_type, bags=g.bags, weight=g.weight, amount=g.amount)
        for g in sorted(combined.by_rice_type, key=lambda g: g.amount, reverse=True)
    ]
    return result


async def daily(
    db: AsyncSession,
    date_from: date | None = None,
    date_to: date | None = None,
) -> DailyStatistics:
    """Totals per station-local calendar day (by creation time), oldest first.

    Days without completed transactions are omitted.
    """
    transactions = await _completed_between(db, date_from, date_to)

    buckets: dict[date, DailyStat] = {}
    for tx in transactions:
        day = local_date(tx.created_at)
        bucket = buckets.get(day)
        if bucket is None:
            bucket = buckets[day] = DailyStat(day=day)
        _accumulate(bucket, tx)

    return DailyStatistics(
        date_from=date_from,
        date_to=date_to,
        days=[buckets[d] for d in sorted(buckets)],
    )

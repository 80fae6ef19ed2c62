"""Weighing service — the lifecycle of a truck transaction.

Handles:
  - Creating a pending transaction together with its rice batches
  - Adding, correcting and removing bag weights while it is pending
  - Completing, cancelling (pending) and deleting (completed) it
  - Tracking each client session's single "current" transaction

Lifecycle:

    pending ──add/update/delete weight──▶ pending
    pending ──complete (≥ 1 weight)─────▶ completed
    pending ──cancel────────────────────▶ [deleted]
    completed ──delete──────────────────▶ [deleted]

Weight mutations on a transaction that is not pending, and weights
≤ 0, are ignored rather than rejected: the weighing screen treats them
as stray key presses.
"""

import logging
import math
from dataclasses import dataclass
from datetime import date, datetime, timedelta

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.middleware.exceptions import (
    InvalidStateError,
    PersistenceError,
    ResourceNotFoundError,
    ValidationError,
)
from app.models.customer import Customer
from app.models.transaction import (
    PAYMENT_UNPAID,
    STATUS_COMPLETED,
    STATUS_PENDING,
    RiceBatch,
    Transaction,
    WeighingDetail,
)
from app.schemas.transaction import TransactionCreate
from app.services.summary import compute_summary
from app.utils.activity import log_activity
from app.utils.formatting import local_day_start
from app.utils.session_store import SessionStore

logger = logging.getLogger(__name__)

# Advisory vibration patterns (ms) for the weighing screen
FEEDBACK_ADDED = [50]
FEEDBACK_DELETED = [30, 20, 30]


@dataclass
class WeighingResult:
    transaction: Transaction
    changed: bool


# ── Helpers ──────────────────────────────────────────────────

async def _flush(db: AsyncSession, action: str) -> None:
    try:
        await db.flush()
    except SQLAlchemyError as exc:
        logger.error(f"Database write failed while trying to {action}: {exc}")
        raise PersistenceError(f"Could not {action}. Please try again.") from exc


def _with_children(stmt):
    return stmt.options(
        selectinload(Transaction.rice_batches),
        selectinload(Transaction.weights),
    )


def renumber_weights(weights: list[WeighingDetail]) -> None:
    """Rewrite order_index as 0..n-1, keeping the current order."""
    for index, detail in enumerate(weights):
        if detail.order_index != index:
            detail.order_index = index


def _validate_create(body: TransactionCreate) -> tuple[str, str]:
    customer_name = body.customer_name.strip()
    license_plate = body.license_plate.strip().upper()

    if not license_plate:
        raise ValidationError("License plate is required", field="license_plate")
    if not customer_name:
        raise ValidationError("Customer name is required", field="customer_name")
    if not body.batches:
        raise ValidationError("At least one rice batch is required", field="batches")
    for i, batch in enumerate(body.batches):
        if not batch.rice_type.strip():
            raise ValidationError("Rice type is required", field=f"batches.{i}.rice_type")
        if not math.isfinite(batch.unit_price) or batch.unit_price <= 0:
            raise ValidationError(
                "Unit price must be greater than zero", field=f"batches.{i}.unit_price"
            )
    return customer_name, license_plate


async def _find_customer_id(db: AsyncSession, name: str) -> str | None:
    result = await db.execute(
        select(Customer.id)
        .where(Customer.name == name, Customer.is_active == True)  # noqa: E712
        .order_by(Customer.created_at)
        .limit(1)
    )
    return result.scalar_one_or_none()


def _find_weight(tx: Transaction, weight_id: str) -> WeighingDetail:
    for detail in tx.weights:
        if detail.id == weight_id:
            return detail
    raise ResourceNotFoundError("Weight", weight_id)


def _resolve_batch_id(tx: Transaction, rice_batch_id: str | None) -> str | None:
    """Pick the batch a new weight belongs to.

    An explicit id must belong to this transaction.  Without one, weights
    go to the first batch; legacy transactions have none.
    """
    if rice_batch_id is not None:
        if rice_batch_id not in {b.id for b in tx.rice_batches}:
            raise ValidationError(
                f"Rice batch {rice_batch_id} does not belong to this transaction",
                field="rice_batch_id",
            )
        return rice_batch_id
    if tx.rice_batches:
        return tx.rice_batches[0].id
    return None


# ── Reads ────────────────────────────────────────────────────

async def find_transaction(db: AsyncSession, transaction_id: str) -> Transaction | None:
    result = await db.execute(
        _with_children(select(Transaction)).where(Transaction.id == transaction_id)
    )
    return result.scalar_one_or_none()


async def get_transaction(db: AsyncSession, transaction_id: str) -> Transaction:
    """Load a transaction with batches and weights, or raise 404."""
    tx = await find_transaction(db, transaction_id)
    if tx is None:
        raise ResourceNotFoundError("Transaction", transaction_id)
    return tx


async def get_current_transaction(
    db: AsyncSession,
    store: SessionStore,
    session_id: str,
) -> Transaction | None:
    """Return the session's pending transaction, dropping a stale pointer."""
    transaction_id = await store.get_current(session_id)
    if not transaction_id:
        return None

    tx = await find_transaction(db, transaction_id)
    if tx is None or not tx.is_pending:
        logger.info(f"Dropping stale current transaction {transaction_id} for session {session_id}")
        await store.clear_current(session_id)
        return None
    return tx


async def list_transactions(
    db: AsyncSession,
    *,
    status: str | None = None,
    payment_status: str | None = None,
    customer_name: str | None = None,
    date_from: date | None = None,
    date_to: date | None = None,
    limit: int = 50,
    offset: int = 0,
) -> tuple[list[Transaction], int]:
    """Filtered history, newest first.  Returns (page, total)."""
    base_stmt = select(Transaction)

    if status:
        base_stmt = base_stmt.where(Transaction.status == status)
    if payment_status:
        base_stmt = base_stmt.where(Transaction.payment_status == payment_status)
    if customer_name:
        base_stmt = base_stmt.where(Transaction.customer_name == customer_name)
    if date_from:
        base_stmt = base_stmt.where(
            Transaction.created_at >= local_day_start(date_from)
        )
    if date_to:
        base_stmt = base_stmt.where(
            Transaction.created_at < local_day_start(date_to + timedelta(days=1))
        )

    count_stmt = select(func.count()).select_from(base_stmt.subquery())
    total = (await db.execute(count_stmt)).scalar() or 0

    result = await db.execute(
        _with_children(base_stmt)
        .order_by(Transaction.created_at.desc())
        .limit(limit)
        .offset(offset)
    )
    return list(result.scalars().all()), total


async def recent_transactions(db: AsyncSession, limit: int) -> list[Transaction]:
    result = await db.execute(
        _with_children(select(Transaction))
        .order_by(Transaction.created_at.desc())
        .limit(limit)
    )
    return list(result.scalars().all())


# ── Create ───────────────────────────────────────────────────

async def create_transaction(
    db: AsyncSession,
    body: TransactionCreate,
    *,
    store: SessionStore | None = None,
    session_id: str | None = None,
) -> Transaction:
    """Create a pending transaction and one RiceBatch per submitted batch.

    The transaction row and its batch rows are flushed together inside
    the request's database transaction, so a failure leaves neither.
    The session's current pointer is set only after that succeeded.

    Raises:
        ValidationError     blank name/plate, no batches, price not finite or ≤ 0
        InvalidStateError   the session is still weighing another truck
        PersistenceError    the write failed
    """
    customer_name, license_plate = _validate_create(body)

    if store is not None and session_id:
        active = await get_current_transaction(db, store, session_id)
        if active is not None:
            raise InvalidStateError(
                f"Truck {active.license_plate} is still being weighed; "
                "complete or cancel it first",
                error_code="ACTIVE_TRANSACTION_EXISTS",
            )

    tx = Transaction(
        customer_name=customer_name,
        license_plate=license_plate,
        customer_id=await _find_customer_id(db, customer_name),
        status=STATUS_PENDING,
        payment_status=PAYMENT_UNPAID,
        rice_batches=[
            RiceBatch(
                rice_type=batch.rice_type.strip(),
                unit_price=batch.unit_price,
                batch_order=i,
            )
            for i, batch in enumerate(body.batches)
        ],
        weights=[],
    )
    db.add(tx)
    await _flush(db, "create the transaction")

    if store is not None and session_id:
        await store.set_current(session_id, tx.id)

    await log_activity(
        db,
        action="created",
        entity_type="transaction",
        entity_id=tx.id,
        entity_code=tx.license_plate,
        summary=f"Started weighing {tx.license_plate} for {tx.customer_name}",
        details={
            "batches": [
                {"rice_type": b.rice_type, "unit_price": b.unit_price}
                for b in tx.rice_batches
            ]
        },
    )
    logger.info(f"Created transaction {tx.id} ({tx.license_plate}, {len(tx.rice_batches)} batches)")
    return tx


# ── Weights ──────────────────────────────────────────────────

async def add_weight(
    db: AsyncSession,
    transaction_id: str,
    weight: float,
    rice_batch_id: str | None = None,
) -> WeighingResult:
    """Append one bag weight with order_index = current count."""
    tx = await get_transaction(db, transaction_id)

    if not math.isfinite(weight) or weight <= 0:
        logger.info(f"Ignoring invalid weight {weight} for {transaction_id}")
        return WeighingResult(tx, changed=False)
    if not tx.is_pending:
        logger.info(f"Ignoring weight for {transaction_id}: status is {tx.status}")
        return WeighingResult(tx, changed=False)

    detail = WeighingDetail(
        weight=weight,
        order_index=len(tx.weights),
        rice_batch_id=_resolve_batch_id(tx, rice_batch_id),
    )
    tx.weights.append(detail)
    await _flush(db, "save the weight")
    return WeighingResult(tx, changed=True)


async def update_weight(
    db: AsyncSession,
    transaction_id: str,
    weight_id: str,
    new_value: float,
) -> WeighingResult:
    """Overwrite a weight in place; order_index is unchanged."""
    tx = await get_transaction(db, transaction_id)
    detail = _find_weight(tx, weight_id)

    if not math.isfinite(new_value) or new_value <= 0:
        logger.info(f"Ignoring invalid correction {new_value} for weight {weight_id}")
        return WeighingResult(tx, changed=False)
    if not tx.is_pending:
        logger.info(f"Ignoring correction for {transaction_id}: status is {tx.status}")
        return WeighingResult(tx, changed=False)

    detail.weight = new_value
    await _flush(db, "update the weight")
    return WeighingResult(tx, changed=True)


async def delete_weight(
    db: AsyncSession,
    transaction_id: str,
    weight_id: str,
) -> WeighingResult:
    """Remove a weight and renumber the rest to 0..n-1."""
    tx = await get_transaction(db, transaction_id)
    detail = _find_weight(tx, weight_id)

    if not tx.is_pending:
        logger.info(f"Ignoring weight removal for {transaction_id}: status is {tx.status}")
        return WeighingResult(tx, changed=False)

    tx.weights.remove(detail)
    renumber_weights(tx.weights)
    await _flush(db, "remove the weight")
    return WeighingResult(tx, changed=True)


# ── Lifecycle ────────────────────────────────────────────────

async def _release_pointer(
    store: SessionStore | None,
    session_id: str | None,
    transaction_id: str,
) -> None:
    if store is None or not session_id:
        return
    if await store.get_current(session_id) == transaction_id:
        await store.clear_current(session_id)


async def complete_transaction(
    db: AsyncSession,
    transaction_id: str,
    *,
    store: SessionStore | None = None,
    session_id: str | None = None,
) -> Transaction:
    """pending → completed.  An empty truck cannot be completed."""
    tx = await get_transaction(db, transaction_id)

    if not tx.is_pending:
        raise InvalidStateError(f"Transaction {tx.id} is already {tx.status}")
    if not tx.weights:
        raise InvalidStateError(
            "Cannot complete a transaction with no weights",
            error_code="EMPTY_TRANSACTION",
        )

    tx.status = STATUS_COMPLETED
    tx.completed_at = datetime.utcnow()
    await _flush(db, "complete the transaction")
    await _release_pointer(store, session_id, tx.id)

    summary = compute_summary(tx)
    await log_activity(
        db,
        action="completed",
        entity_type="transaction",
        entity_id=tx.id,
        entity_code=tx.license_plate,
        summary=(
            f"Completed {tx.license_plate} — {summary.total_bags} bags, "
            f"{summary.total_weight:.1f} kg"
        ),
        details={"total_amount": summary.total_amount},
    )
    logger.info(f"Completed transaction {tx.id}: {summary.total_bags} bags, {summary.total_weight:.1f} kg")
    return tx


async def cancel_transaction(
    db: AsyncSession,
    transaction_id: str,
    *,
    store: SessionStore | None = None,
    session_id: str | None = None,
) -> None:
    """Hard-delete a pending transaction with its batches and weights.

    Confirming a non-empty cancel is the caller's job; this function
    deletes unconditionally.
    """
    tx = await get_transaction(db, transaction_id)
    if not tx.is_pending:
        raise InvalidStateError(
            f"Transaction {tx.id} is {tx.status}; delete it instead of cancelling"
        )

    bags = len(tx.weights)
    await db.delete(tx)
    await _flush(db, "cancel the transaction")
    await _release_pointer(store, session_id, transaction_id)

    await log_activity(
        db,
        action="cancelled",
        entity_type="transaction",
        entity_id=transaction_id,
        entity_code=tx.license_plate,
        summary=f"Cancelled weighing of {tx.license_plate} ({bags} bags discarded)",
    )
    logger.info(f"Cancelled transaction {transaction_id} ({bags} weights discarded)")


async def delete_transaction(
    db: AsyncSession,
    transaction_id: str,
    *,
    store: SessionStore | None = None,
    session_id: str | None = None,
) -> None:
    """Hard-delete a completed transaction with its batches and weights."""
    tx = await get_transaction(db, transaction_id)
    if tx.is_pending:
        raise InvalidStateError(
            f"Transaction {tx.id} is still pending; cancel it instead"
        )

    summary = compute_summary(tx)
    await db.delete(tx)
    await _flush(db, "delete the transaction")
    await _release_pointer(store, session_id, transaction_id)

    await log_activity(
        db,
        action="deleted",
        entity_type="transaction",
        entity_id=transaction_id,
        entity_code=tx.license_plate,
        summary=f"Deleted {tx.license_plate} for {tx.customer_name}",
        details={
            "total_bags": summary.total_bags,
            "total_weight": summary.total_weight,
            "total_amount": summary.total_amount,
            "payment_status": tx.payment_status,
        },
    )
    logger.warning(f"Deleted completed transaction {transaction_id} ({tx.license_plate})")

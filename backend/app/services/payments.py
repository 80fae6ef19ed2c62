"""Payment collection — unpaid trucks per customer, invoices, settlement.

Payment status is a sub-state of completed transactions only:

    unpaid ──mark paid──▶ paid        (no way back)
"""

import logging
from datetime import datetime

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.middleware.exceptions import (
    InvalidStateError,
    PersistenceError,
    ResourceNotFoundError,
    ValidationError,
)
from app.models.transaction import (
    PAYMENT_PAID,
    PAYMENT_UNPAID,
    STATUS_COMPLETED,
    Transaction,
)
from app.schemas.invoice import CollectionInvoiceOut
from app.services.invoice import build_collection_invoice
from app.services.summary import compute_summary
from app.utils.activity import log_activity

logger = logging.getLogger(__name__)


async def _load_many(db: AsyncSession, transaction_ids: list[str]) -> list[Transaction]:
    """Load the given transactions (order preserved) or raise 404 for unknown ids."""
    result = await db.execute(
        select(Transaction)
        .options(
            selectinload(Transaction.rice_batches),
            selectinload(Transaction.weights),
        )
        .where(Transaction.id.in_(transaction_ids))
    )
    by_id = {tx.id: tx for tx in result.scalars().all()}

    missing = [tid for tid in transaction_ids if tid not in by_id]
    if missing:
        raise ResourceNotFoundError("Transaction", ", ".join(missing))
    return [by_id[tid] for tid in transaction_ids]


async def list_unpaid(db: AsyncSession, customer_name: str) -> list[Transaction]:
    """Completed, unpaid transactions of one customer, newest first."""
    result = await db.execute(
        select(Transaction)
        .options(
            selectinload(Transaction.rice_batches),
            selectinload(Transaction.weights),
        )
        .where(
            Transaction.customer_name == customer_name,
            Transaction.status == STATUS_COMPLETED,
            Transaction.payment_status == PAYMENT_UNPAID,
        )
        .order_by(Transaction.created_at.desc())
    )
    return list(result.scalars().all())


async def collection_invoice(
    db: AsyncSession,
    customer_name: str,
    transaction_ids: list[str],
) -> CollectionInvoiceOut:
    """Build the collection invoice for a customer's selected trucks."""
    if not transaction_ids:
        raise ValidationError(
            "Select at least one transaction", field="transaction_ids"
        )

    ids = list(dict.fromkeys(transaction_ids))
    transactions = await _load_many(db, ids)

    for tx in transactions:
        if tx.customer_name != customer_name:
            raise ValidationError(
                f"Transaction {tx.id} belongs to {tx.customer_name}, not {customer_name}",
                field="transaction_ids",
            )
        if tx.status != STATUS_COMPLETED:
            raise InvalidStateError(f"Transaction {tx.id} is not completed yet")

    return build_collection_invoice(customer_name, transactions)


async def mark_as_paid(db: AsyncSession, transaction_ids: list[str]) -> int:
    """Mark completed transactions as paid.  Returns how many changed.

    Already-paid rows keep their original payment date.  A pending
    transaction anywhere in the list rejects the whole request.
    """
    ids = list(dict.fromkeys(transaction_ids))
    if not ids:
        raise ValidationError("Select at least one transaction", field="transaction_ids")

    transactions = await _load_many(db, ids)

    pending = [tx.id for tx in transactions if tx.status != STATUS_COMPLETED]
    if pending:
        raise InvalidStateError(
            f"Only completed transactions can be paid: {', '.join(pending)}"
        )

    now = datetime.utcnow()
    changed = []
    for tx in transactions:
        if tx.payment_status == PAYMENT_PAID:
            continue
        tx.payment_status = PAYMENT_PAID
        tx.payment_date = now
        changed.append(tx)

    try:
        await db.flush()
    except SQLAlchemyError as exc:
        logger.error(f"Marking {len(ids)} transactions as paid failed: {exc}")
        raise PersistenceError("Could not record the payment. Please try again.") from exc

    for tx in changed:
        await log_activity(
            db,
            action="paid",
            entity_type="transaction",
            entity_id=tx.id,
            entity_code=tx.license_plate,
            summary=f"Payment received from {tx.customer_name} for {tx.license_plate}",
            details={"amount": compute_summary(tx).total_amount},
        )

    logger.info(f"Marked {len(changed)} of {len(ids)} transactions as paid")
    return len(changed)

"""Transaction router — weighing trucks bag by bag.

Endpoints:
    POST   /api/transactions/                          Start weighing a truck
    GET    /api/transactions/                          History (with filters)
    GET    /api/transactions/recent                    Dashboard list
    GET    /api/transactions/current                   This session's pending truck
    GET    /api/transactions/{id}                      Detail with summary
    POST   /api/transactions/{id}/weights              Add a bag weight
    PATCH  /api/transactions/{id}/weights/{weight_id}  Correct a bag weight
    DELETE /api/transactions/{id}/weights/{weight_id}  Remove a bag weight
    POST   /api/transactions/{id}/complete             Finish weighing
    POST   /api/transactions/{id}/cancel               Discard a pending truck
    DELETE /api/transactions/{id}                      Delete a completed truck
    GET    /api/transactions/{id}/invoice              Weighing slip data
"""

from datetime import date

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.database import get_db
from app.middleware.exceptions import ConfirmationRequiredError
from app.schemas.common import PaginatedResponse
from app.schemas.invoice import TransactionInvoiceOut
from app.schemas.transaction import (
    TransactionCreate,
    TransactionDetailOut,
    TransactionListItem,
    WeightAdd,
    WeightUpdate,
)
from app.services import weighing
from app.services.confirmation import (
    ConfirmationPolicy,
    DeleteGuard,
    get_confirmation_policy,
)
from app.services.invoice import build_transaction_invoice
from app.sessions import optional_session, required_session
from app.utils.cache import cached, invalidate_transaction_views
from app.utils.session_store import SessionStore, get_session_store

router = APIRouter()


# ── Create ───────────────────────────────────────────────────

@router.post("/", response_model=TransactionDetailOut, status_code=status.HTTP_201_CREATED)
async def create_transaction(
    body: TransactionCreate,
    db: AsyncSession = Depends(get_db),
    store: SessionStore = Depends(get_session_store),
    session_id: str | None = Depends(optional_session),
):
    """Start weighing a truck with one or more rice batches.

    With an ``X-Session-ID`` header the new transaction becomes that
    session's current one; a session already weighing another truck
    gets 409 ACTIVE_TRANSACTION_EXISTS.
    """
    tx = await weighing.create_transaction(db, body, store=store, session_id=session_id)
    await invalidate_transaction_views()
    return TransactionDetailOut.build(tx)


# ── Reads ────────────────────────────────────────────────────

@router.get("/", response_model=PaginatedResponse[TransactionListItem])
@cached(prefix="riceweigh_transactions")
async def list_transactions(
    transaction_status: str | None = Query(None, alias="status"),
    payment_status: str | None = Query(None),
    customer_name: str | None = Query(None),
    date_from: date | None = Query(None),
    date_to: date | None = Query(None),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    db: AsyncSession = Depends(get_db),
):
    items, total = await weighing.list_transactions(
        db,
        status=transaction_status,
        payment_status=payment_status,
        customer_name=customer_name,
        date_from=date_from,
        date_to=date_to,
        limit=limit,
        offset=offset,
    )
    return PaginatedResponse(
        items=[TransactionListItem.build(tx) for tx in items],
        total=total,
        limit=limit,
        offset=offset,
    )


@router.get("/recent", response_model=list[TransactionListItem])
@cached(prefix="riceweigh_transactions")
async def recent_transactions(
    limit: int | None = Query(None, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
):
    """Most recent transactions for the dashboard."""
    transactions = await weighing.recent_transactions(
        db, limit or settings.recent_transactions_limit
    )
    return [TransactionListItem.build(tx) for tx in transactions]


@router.get("/current", response_model=TransactionDetailOut | None)
async def current_transaction(
    db: AsyncSession = Depends(get_db),
    store: SessionStore = Depends(get_session_store),
    session_id: str = Depends(required_session),
):
    """The truck this session is weighing, or null."""
    tx = await weighing.get_current_transaction(db, store, session_id)
    if tx is None:
        return None
    return TransactionDetailOut.build(tx)


@router.get("/{transaction_id}", response_model=TransactionDetailOut)
async def get_transaction(
    transaction_id: str,
    db: AsyncSession = Depends(get_db),
):
    tx = await weighing.get_transaction(db, transaction_id)
    return TransactionDetailOut.build(tx)


@router.get("/{transaction_id}/invoice", response_model=TransactionInvoiceOut)
async def transaction_invoice(
    transaction_id: str,
    db: AsyncSession = Depends(get_db),
):
    tx = await weighing.get_transaction(db, transaction_id)
    return build_transaction_invoice(tx)


# ── Weights ──────────────────────────────────────────────────

@router.post("/{transaction_id}/weights", response_model=TransactionDetailOut)
async def add_weight(
    transaction_id: str,
    body: WeightAdd,
    db: AsyncSession = Depends(get_db),
):
    """Record one bag.  Ignored (no feedback) for weight ≤ 0 or a non-pending truck."""
    result = await weighing.add_weight(db, transaction_id, body.weight, body.rice_batch_id)
    if result.changed:
        await invalidate_transaction_views()
    return TransactionDetailOut.build(
        result.transaction,
        feedback=weighing.FEEDBACK_ADDED if result.changed else None,
    )


@router.patch("/{transaction_id}/weights/{weight_id}", response_model=TransactionDetailOut)
async def update_weight(
    transaction_id: str,
    weight_id: str,
    body: WeightUpdate,
    db: AsyncSession = Depends(get_db),
):
    result = await weighing.update_weight(db, transaction_id, weight_id, body.weight)
    if result.changed:
        await invalidate_transaction_views()
    return TransactionDetailOut.build(result.transaction)


@router.delete("/{transaction_id}/weights/{weight_id}", response_model=TransactionDetailOut)
async def delete_weight(
    transaction_id: str,
    weight_id: str,
    db: AsyncSession = Depends(get_db),
):
    result = await weighing.delete_weight(db, transaction_id, weight_id)
    if result.changed:
        await invalidate_transaction_views()
    return TransactionDetailOut.build(
        result.transaction,
        feedback=weighing.FEEDBACK_DELETED if result.changed else None,
    )


# ── Lifecycle ────────────────────────────────────────────────

@router.post("/{transaction_id}/complete", response_model=TransactionDetailOut)
async def complete_transaction(
    transaction_id: str,
    db: AsyncSession = Depends(get_db),
    store: SessionStore = Depends(get_session_store),
    session_id: str | None = Depends(optional_session),
):
    tx = await weighing.complete_transaction(
        db, transaction_id, store=store, session_id=session_id
    )
    await invalidate_transaction_views()
    return TransactionDetailOut.build(tx)


@router.post("/{transaction_id}/cancel", status_code=status.HTTP_204_NO_CONTENT)
async def cancel_transaction(
    transaction_id: str,
    confirm: bool = Query(False),
    db: AsyncSession = Depends(get_db),
    store: SessionStore = Depends(get_session_store),
    session_id: str | None = Depends(optional_session),
):
    """Discard a pending truck.  Needs confirm=true once bags were weighed."""
    tx = await weighing.get_transaction(db, transaction_id)
    if tx.is_pending and tx.weights and not confirm:
        raise ConfirmationRequiredError(
            f"{len(tx.weights)} weighed bags will be discarded; "
            "repeat with confirm=true to cancel"
        )

    await weighing.cancel_transaction(db, transaction_id, store=store, session_id=session_id)
    await invalidate_transaction_views()


@router.delete("/{transaction_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_transaction(
    transaction_id: str,
    guard: DeleteGuard = Depends(),
    policy: ConfirmationPolicy = Depends(get_confirmation_policy),
    db: AsyncSession = Depends(get_db),
    store: SessionStore = Depends(get_session_store),
    session_id: str | None = Depends(optional_session),
):
    """Permanently delete a completed truck (two-step delete dialog)."""
    guard.check(policy)
    await weighing.delete_transaction(db, transaction_id, store=store, session_id=session_id)
    await invalidate_transaction_views()

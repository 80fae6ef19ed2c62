"""Payment collection from customers.

Endpoints:
    GET  /api/payments/unpaid      Completed, unpaid trucks of one customer
    POST /api/payments/invoice     Collection invoice for selected trucks
    POST /api/payments/mark-paid   Record payment for selected trucks
"""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db
from app.schemas.invoice import CollectionInvoiceOut
from app.schemas.payment import (
    CollectionInvoiceRequest,
    MarkPaidRequest,
    MarkPaidResponse,
)
from app.schemas.transaction import TransactionListItem
from app.services import payments
from app.utils.cache import invalidate_transaction_views

router = APIRouter()


@router.get("/unpaid", response_model=list[TransactionListItem])
async def list_unpaid(
    customer_name: str = Query(..., min_length=1),
    db: AsyncSession = Depends(get_db),
):
    transactions = await payments.list_unpaid(db, customer_name.strip())
    return [TransactionListItem.build(tx) for tx in transactions]


@router.post("/invoice", response_model=CollectionInvoiceOut)
async def collection_invoice(
    body: CollectionInvoiceRequest,
    db: AsyncSession = Depends(get_db),
):
    return await payments.collection_invoice(
        db, body.customer_name.strip(), body.transaction_ids
    )


@router.post("/mark-paid", response_model=MarkPaidResponse)
async def mark_paid(
    body: MarkPaidRequest,
    db: AsyncSession = Depends(get_db),
):
    """Mark the selected completed trucks as paid.

    All-or-nothing: a pending or unknown id rejects the whole request.
    """
    updated = await payments.mark_as_paid(db, body.transaction_ids)
    if updated:
        await invalidate_transaction_views()
    return MarkPaidResponse(
        requested=len(set(body.transaction_ids)),
        updated=updated,
    )

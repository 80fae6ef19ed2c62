"""Pydantic schemas for the weighing slip and the collection invoice."""

from datetime import datetime

from pydantic import BaseModel


class ShareInfo(BaseModel):
    title: str
    text: str
    file_name: str


# ── Weighing slip (one truck) ────────────────────────────────

class InvoiceBatchLine(BaseModel):
    rice_type: str
    unit_price: float
    unit_price_text: str
    bags: int
    weight: float
    amount: float
    amount_text: str


class InvoiceWeightCell(BaseModel):
    order_index: int
    weight: float
    # Only set when the truck carries more than one batch
    rice_type: str | None = None


class TransactionInvoiceOut(BaseModel):
    business_name: str
    currency: str
    transaction_id: str
    created_at: datetime
    created_at_text: str
    customer_name: str
    license_plate: str
    lines: list[InvoiceBatchLine]
    weights: list[InvoiceWeightCell]
    total_bags: int
    total_weight: float
    total_weight_text: str
    total_amount: float
    total_amount_text: str
    share: ShareInfo


# ── Collection invoice (one customer, many trucks) ───────────

class RiceTypeLine(BaseModel):
    rice_type: str
    bags: int
    weight: float
    amount: float
    amount_text: str


class CollectionInvoiceOut(BaseModel):
    business_name: str
    currency: str
    customer_name: str
    transaction_ids: list[str]
    trip_count: int
    date_from: datetime
    date_to: datetime
    period_text: str
    rice_types: list[RiceTypeLine]
    total_bags: int
    total_weight: float
    total_weight_text: str
    total_amount: float
    total_amount_text: str
    printed_at: datetime
    printed_at_text: str
    share: ShareInfo

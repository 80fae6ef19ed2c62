"""Pydantic schemas for transactions, rice batches and weighing details."""

from datetime import datetime

from pydantic import BaseModel, Field

from app.services.summary import TransactionSummary, compute_summary, rice_type_label


# ── Create ───────────────────────────────────────────────────

class RiceBatchIn(BaseModel):
    rice_type: str = Field(..., max_length=100)
    unit_price: float


class TransactionCreate(BaseModel):
    """Payload for POST /api/transactions — the new-truck form.

    Blank names and non-positive prices are rejected by the service with
    a field-level ValidationError so the form can flag the exact input.
    """
    customer_name: str = Field(..., max_length=255)
    license_plate: str = Field(..., max_length=30)
    batches: list[RiceBatchIn] = []


# ── Weighing ─────────────────────────────────────────────────

class WeightAdd(BaseModel):
    weight: float = Field(..., allow_inf_nan=False)
    rice_batch_id: str | None = None


class WeightUpdate(BaseModel):
    weight: float = Field(..., allow_inf_nan=False)


# ── Response ─────────────────────────────────────────────────

class RiceBatchOut(BaseModel):
    id: str
    rice_type: str
    unit_price: float
    batch_order: int

    model_config = {"from_attributes": True}


class WeighingDetailOut(BaseModel):
    id: str
    weight: float
    order_index: int
    rice_batch_id: str | None

    model_config = {"from_attributes": True}


class BatchSummaryOut(BaseModel):
    batch_id: str
    rice_type: str
    unit_price: float
    bags: int
    weight: float
    amount: float

    model_config = {"from_attributes": True}


class SummaryOut(BaseModel):
    total_bags: int
    total_weight: float
    total_amount: float
    batch_summaries: list[BatchSummaryOut] | None = None

    model_config = {"from_attributes": True}

    @classmethod
    def from_summary(cls, summary: TransactionSummary) -> "SummaryOut":
        return cls.model_validate(summary)


class TransactionOut(BaseModel):
    id: str
    created_at: datetime
    customer_name: str
    license_plate: str
    customer_id: str | None
    rice_type: str | None
    unit_price: float | None
    status: str
    completed_at: datetime | None
    payment_status: str
    payment_date: datetime | None
    rice_batches: list[RiceBatchOut] = []
    weights: list[WeighingDetailOut] = []

    model_config = {"from_attributes": True}


class TransactionDetailOut(BaseModel):
    """Transaction plus its derived summary.

    ``feedback`` is an advisory vibration pattern (milliseconds) for the
    weighing screen; empty when the request changed nothing.
    """
    transaction: TransactionOut
    summary: SummaryOut
    feedback: list[int] = []

    @classmethod
    def build(cls, transaction, feedback: list[int] | None = None) -> "TransactionDetailOut":
        return cls(
            transaction=TransactionOut.model_validate(transaction),
            summary=SummaryOut.from_summary(compute_summary(transaction)),
            feedback=feedback or [],
        )


# ── List (lightweight) ───────────────────────────────────────

class TransactionListItem(BaseModel):
    id: str
    created_at: datetime
    customer_name: str
    license_plate: str
    rice_type_label: str
    status: str
    payment_status: str
    payment_date: datetime | None
    total_bags: int
    total_weight: float
    total_amount: float

    @classmethod
    def build(cls, transaction) -> "TransactionListItem":
        summary = compute_summary(transaction)
        return cls(
            id=transaction.id,
            created_at=transaction.created_at,
            customer_name=transaction.customer_name,
            license_plate=transaction.license_plate,
            rice_type_label=rice_type_label(transaction),
            status=transaction.status,
            payment_status=transaction.payment_status,
            payment_date=transaction.payment_date,
            total_bags=summary.total_bags,
            total_weight=summary.total_weight,
            total_amount=summary.total_amount,
        )


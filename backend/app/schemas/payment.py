"""Pydantic schemas for payment collection."""

from pydantic import BaseModel, Field


class MarkPaidRequest(BaseModel):
    transaction_ids: list[str] = Field(..., min_length=1)


class MarkPaidResponse(BaseModel):
    requested: int
    updated: int


class CollectionInvoiceRequest(BaseModel):
    customer_name: str
    transaction_ids: list[str] = []

"""Pydantic schemas for default rice prices."""

from datetime import datetime

from pydantic import BaseModel, Field


class RicePriceUpsert(BaseModel):
    default_price: float = Field(..., gt=0, allow_inf_nan=False)


class RicePriceOut(BaseModel):
    id: str
    rice_type: str
    default_price: float
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class RicePriceLookup(BaseModel):
    rice_type: str
    default_price: float
    # False when the configured fallback price was used
    is_stored: bool

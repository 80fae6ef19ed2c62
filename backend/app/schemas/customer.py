"""Pydantic schemas for Customer CRUD operations."""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field, field_validator

from app.schemas.validators import (
    optional_text,
    required_text,
    validate_email,
    validate_phone,
)

CustomerType = Literal["customer", "partner"]


class _CustomerFields(BaseModel):
    @field_validator("name", check_fields=False)
    @classmethod
    def _name(cls, v):
        return None if v is None else required_text(v)

    @field_validator("phone", check_fields=False)
    @classmethod
    def _phone(cls, v):
        return validate_phone(v)

    @field_validator("email", check_fields=False)
    @classmethod
    def _email(cls, v):
        return validate_email(v)

    @field_validator("address", "notes", check_fields=False)
    @classmethod
    def _text(cls, v):
        return optional_text(v)


class CustomerCreate(_CustomerFields):
    name: str = Field(..., max_length=255)
    phone: str | None = None
    email: str | None = None
    address: str | None = None
    type: CustomerType = "customer"
    notes: str | None = None


class CustomerUpdate(_CustomerFields):
    name: str | None = None
    phone: str | None = None
    email: str | None = None
    address: str | None = None
    type: CustomerType | None = None
    notes: str | None = None


class CustomerOut(BaseModel):
    id: str
    name: str
    phone: str | None
    email: str | None
    address: str | None
    type: str
    notes: str | None
    is_active: bool
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}

"""Pydantic schemas for the delete-guard check."""

from pydantic import BaseModel


class VerifyRequest(BaseModel):
    code: str = ""


class VerifyResponse(BaseModel):
    valid: bool

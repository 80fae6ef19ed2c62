"""Delete guard: first step of the two-step delete dialog.

Endpoints:
    POST /api/guard/verify   Check a typed delete code
"""

from fastapi import APIRouter, Depends

from app.schemas.guard import VerifyRequest, VerifyResponse
from app.services.confirmation import ConfirmationPolicy, get_confirmation_policy

router = APIRouter()


@router.post("/verify", response_model=VerifyResponse)
async def verify_code(
    body: VerifyRequest,
    policy: ConfirmationPolicy = Depends(get_confirmation_policy),
):
    return VerifyResponse(valid=policy.verify(body.code))

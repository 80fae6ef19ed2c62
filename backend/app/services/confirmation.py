"""Delete guard — the two-step confirmation in front of destructive deletes.

Step 1: the dialog posts the typed code to /api/guard/verify.
Step 2: the delete request repeats the code in ``X-Delete-Code`` and
        sets ``confirm=true``.

This is friction against accidental taps on a shared device, not access
control: the code is one shared value from configuration.
"""

import hmac
import logging
from typing import Protocol

from fastapi import Header, Query

from app.config import settings
from app.middleware.exceptions import ConfirmationRequiredError

logger = logging.getLogger(__name__)


class ConfirmationPolicy(Protocol):
    def verify(self, code: str | None) -> bool: ...


class PasscodePolicy:
    """Accepts one shared passcode."""

    def __init__(self, passcode: str):
        self._passcode = passcode

    def verify(self, code: str | None) -> bool:
        if not code:
            return False
        return hmac.compare_digest(code.strip().encode(), self._passcode.encode())


class NoConfirmationPolicy:
    """Accepts everything (kiosks where the guard is unwanted)."""

    def verify(self, code: str | None) -> bool:
        return True


def get_confirmation_policy() -> ConfirmationPolicy:
    """FastAPI dependency; override it to plug in another policy."""
    if settings.delete_guard == "none":
        return NoConfirmationPolicy()
    if settings.delete_guard == "passcode":
        return PasscodePolicy(settings.delete_passcode)
    raise ValueError(f"Unknown delete_guard setting: {settings.delete_guard!r}")


def ensure_confirmed(policy: ConfirmationPolicy, code: str | None, confirm: bool) -> None:
    """Raise unless both steps of the dialog were completed."""
    if not policy.verify(code):
        logger.warning("Destructive action rejected: wrong or missing delete code")
        raise ConfirmationRequiredError("Wrong or missing delete code", status_code=403)
    if not confirm:
        raise ConfirmationRequiredError("Deletion must be confirmed (confirm=true)")


class DeleteGuard:
    """Router dependency bundling the header, the query flag and the policy."""

    def __init__(
        self,
        x_delete_code: str | None = Header(None),
        confirm: bool = Query(False),
    ):
        self.code = x_delete_code
        self.confirm = confirm

    def check(self, policy: ConfirmationPolicy) -> None:
        ensure_confirmed(policy, self.code, self.confirm)

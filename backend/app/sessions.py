"""Client sessions: one weighing station tab / device per session.

Key components:
  - _session_ctx         ContextVar holding the session id for the current request
  - set / get / clear helpers for the ContextVar
  - validate_session_id()  rejects ids that are unsafe to embed in cache keys

A session owns at most one "current" (pending) transaction.  The pointer
itself lives in the SessionStore (app/utils/session_store.py); this
module only tracks which session the current request belongs to.
"""

import re
from contextvars import ContextVar

from app.middleware.exceptions import SessionContextError

# ── Request-scoped session context ──────────────────────────

_session_ctx: ContextVar[str | None] = ContextVar("_session_ctx", default=None)


def set_current_session_id(session_id: str) -> None:
    _session_ctx.set(session_id)


def get_current_session_id() -> str | None:
    """Return the current session id, or None when the request has none."""
    return _session_ctx.get()


def require_session_id() -> str:
    """Return the current session id or raise if unset."""
    session_id = _session_ctx.get()
    if session_id is None:
        raise SessionContextError()
    return session_id


def clear_session_context() -> None:
    _session_ctx.set(None)


# ── FastAPI dependencies ────────────────────────────────────
# async so they run on the request task, where the ContextVar is set

async def optional_session() -> str | None:
    return get_current_session_id()


async def required_session() -> str:
    return require_session_id()


# ── Validation ──────────────────────────────────────────────

_SESSION_RE = re.compile(r"^[A-Za-z0-9_-]{8,64}$")


def validate_session_id(session_id: str) -> str:
    """Ensure session ids are safe to use inside Redis keys."""
    if not _SESSION_RE.match(session_id):
        raise ValueError(f"Invalid session id: {session_id!r}")
    return session_id

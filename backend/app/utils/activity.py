"""Lightweight helper for recording activity log entries.

Usage:
    await log_activity(
        db, action="completed", entity_type="transaction",
        entity_id=tx.id, entity_code=tx.license_plate,
        summary="Completed 51F-12345 — 42 bags, 2100.0 kg",
    )

The row is added to the current session and committed with the
enclosing transaction; no extra flush is performed.  The client
session id is taken from the request context when present.
"""

from __future__ import annotations

from sqlalchemy.ext.asyncio import AsyncSession

from app.models.activity_log import ActivityLog
from app.sessions import get_current_session_id


async def log_activity(
    db: AsyncSession,
    *,
    action: str,
    entity_type: str,
    entity_id: str | None = None,
    entity_code: str | None = None,
    summary: str | None = None,
    details: dict | None = None,
) -> None:
    """Append an activity log entry to the current DB session."""
    entry = ActivityLog(
        session_id=get_current_session_id(),
        action=action,
        entity_type=entity_type,
        entity_id=entity_id,
        entity_code=entity_code,
        summary=summary,
        details=details,
    )
    db.add(entry)

"""Per-session "current transaction" pointer, kept in Redis.

Key layout (fixed prefixes, one key per session):

    riceweigh_current:<session_id>  →  transaction id

The pointer is a convenience cache; the database is authoritative.
Callers must re-validate the transaction it names (see
app.services.weighing.get_current_transaction).
"""

import logging

import redis.asyncio as redis

from app.config import settings
from app.middleware.exceptions import PersistenceError
from app.utils.cache import get_redis

logger = logging.getLogger(__name__)

CURRENT_KEY_PREFIX = "riceweigh_current"


def current_key(session_id: str) -> str:
    return f"{CURRENT_KEY_PREFIX}:{session_id}"


class SessionStore:
    """Redis-backed session state."""

    def __init__(self, client: redis.Redis, ttl_seconds: int | None = None):
        self._client = client
        self._ttl = ttl_seconds or settings.session_ttl_seconds

    async def get_current(self, session_id: str) -> str | None:
        try:
            return await self._client.get(current_key(session_id))
        except redis.RedisError as e:
            logger.warning(f"Could not read current transaction for {session_id}: {e}")
            return None

    async def set_current(self, session_id: str, transaction_id: str) -> None:
        try:
            await self._client.set(current_key(session_id), transaction_id, ex=self._ttl)
        except redis.RedisError as e:
            logger.error(f"Could not store current transaction for {session_id}: {e}")
            raise PersistenceError("Could not remember the active truck for this session") from e

    async def clear_current(self, session_id: str) -> None:
        try:
            await self._client.delete(current_key(session_id))
        except redis.RedisError as e:
            logger.warning(f"Could not clear current transaction for {session_id}: {e}")


async def get_session_store() -> SessionStore:
    """FastAPI dependency."""
    return SessionStore(await get_redis())

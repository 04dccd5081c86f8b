"""Time-boxed payment sessions keyed by random ids."""

from __future__ import annotations

import json
import logging
import re
import secrets
from datetime import datetime, timedelta
from typing import Any, Callable, Mapping

from paygate.domain.common import KeyValueStore
from paygate.domain.orders.models import utcnow

from .exceptions import SessionExpiredError, SessionNotFoundError
from .models import PaymentSession

logger = logging.getLogger(__name__)

SESSIONS_NAMESPACE = "sessions"
SESSION_KEY_PREFIX = "cryoner_payment_session_"
SESSION_TTL = timedelta(minutes=30)

_SESSION_ID = re.compile(r"^[0-9a-f]{64}$")


def session_key(session_id: str) -> str:
    return f"{SESSION_KEY_PREFIX}{session_id}"


class SessionStore:
    """Stores order payloads under unguessable ids for a limited time.

    Expired sessions are never returned. They are removed lazily on read and
    in bulk by :meth:`sweep_expired`.
    """

    def __init__(
        self,
        store: KeyValueStore,
        ttl: timedelta = SESSION_TTL,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._store = store
        self._ttl = ttl
        self._clock = clock

    async def create(self, payload: Mapping[str, Any]) -> PaymentSession:
        now = self._clock()
        session = PaymentSession(
            id=secrets.token_hex(32),
            data=dict(payload),
            created_at=now,
            expires_at=now + self._ttl,
        )
        await self._store.put(SESSIONS_NAMESPACE, session_key(session.id), json.dumps(session.to_dict()))
        logger.info("Payment session %s stored, expires at %s", session.id[:8], session.expires_at.isoformat())
        return session

    async def read(self, session_id: str) -> dict[str, Any]:
        if not session_id or not _SESSION_ID.match(session_id):
            raise SessionNotFoundError("invalid session id")

        raw = await self._store.get(SESSIONS_NAMESPACE, session_key(session_id))
        if raw is None:
            raise SessionNotFoundError(f"session not found: {session_id[:8]}")
        try:
            session = PaymentSession.from_dict(json.loads(raw))
        except (ValueError, KeyError, TypeError) as exc:
            await self.delete(session_id)
            raise SessionNotFoundError(f"corrupted session: {session_id[:8]}") from exc

        if session.is_expired(self._clock()):
            await self.delete(session_id)
            logger.info("Payment session %s expired", session_id[:8])
            raise SessionExpiredError(f"session expired: {session_id[:8]}")
        return session.data

    async def delete(self, session_id: str) -> None:
        if session_id:
            await self._store.delete(SESSIONS_NAMESPACE, session_key(session_id))

    async def sweep_expired(self) -> int:
        now = self._clock()
        removed = 0
        for key, raw in await self._store.scan(SESSIONS_NAMESPACE, SESSION_KEY_PREFIX):
            try:
                expired = PaymentSession.from_dict(json.loads(raw)).is_expired(now)
            except (ValueError, KeyError, TypeError):
                expired = True
            if expired:
                await self._store.delete(SESSIONS_NAMESPACE, key)
                removed += 1
        if removed:
            logger.info("Removed %d expired payment sessions", removed)
        return removed

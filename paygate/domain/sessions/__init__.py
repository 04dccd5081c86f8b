"""Payment session store."""

from .exceptions import SessionError, SessionExpiredError, SessionNotFoundError
from .models import PaymentSession
from .store import SESSION_KEY_PREFIX, SessionStore, session_key

__all__ = [
    "PaymentSession",
    "SESSION_KEY_PREFIX",
    "SessionError",
    "SessionExpiredError",
    "SessionNotFoundError",
    "SessionStore",
    "session_key",
]

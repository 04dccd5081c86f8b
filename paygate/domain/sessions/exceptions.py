"""Session store exceptions."""


class SessionError(Exception):
    """Base class for payment session errors."""


class SessionNotFoundError(SessionError):
    """Raised when a session id is unknown."""


class SessionExpiredError(SessionNotFoundError):
    """Raised when a session exists but its lifetime has passed."""

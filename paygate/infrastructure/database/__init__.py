"""Database infrastructure helpers (engine, sessions, migrations)."""

from .base import Base
from .repositories import SqlKeyValueStore
from .session import get_engine, get_session, get_session_factory, init_db

__all__ = ["Base", "SqlKeyValueStore", "get_engine", "get_session", "get_session_factory", "init_db"]

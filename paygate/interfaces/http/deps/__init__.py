"""Reusable FastAPI dependencies."""

from .container import get_container, get_ledger
from .admin import get_current_admin

__all__ = [
    "get_container",
    "get_current_admin",
    "get_ledger",
]

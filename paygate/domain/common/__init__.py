"""Shared abstractions used across domain modules."""

from .repository import KeyValueStore, StorageError

__all__ = ["KeyValueStore", "StorageError"]

"""Store errors. Each of these aborts the running command."""

from __future__ import annotations

from pathlib import Path


class StoreError(Exception):
    """Base exception for store repository operations."""


class MissingStoreError(StoreError):
    """Raised when no store is found above the working directory."""


class StoreExistsError(StoreError):
    """Raised when initializing a directory that already holds a store."""


class _PathStoreError(StoreError):
    def __init__(self, message: str, path: Path) -> None:
        super().__init__(f"{message}: {path}")
        self.path = path


class StoreIOError(_PathStoreError):
    """Raised when the store file or marker directory cannot be accessed."""


class StoreDecodeError(_PathStoreError):
    """Raised when a store body cannot be deserialized."""


class StoreEncodeError(_PathStoreError):
    """Raised when a store body cannot be serialized."""

"""Error types raised by the cache layer and its callers."""

from __future__ import annotations


class DisasterAPIError(Exception):
    """Base class for all package errors."""


class StorageError(DisasterAPIError):
    """The backing cache store was unreachable or rejected an operation."""

    def __init__(self, operation: str, key: str | None = None, message: str = "") -> None:
        self.operation = operation
        self.key = key
        detail = f"cache store {operation} failed"
        if key is not None:
            detail += f" for key {key!r}"
        if message:
            detail += f": {message}"
        super().__init__(detail)


class ProducerError(DisasterAPIError):
    """An expensive external computation (AI, geocoding, feed fetch) failed."""

    def __init__(self, source: str, message: str = "") -> None:
        self.source = source
        super().__init__(f"{source} failed: {message}" if message else f"{source} failed")

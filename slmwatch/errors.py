"""Exceptions raised at the I/O seams of slmwatch."""

from __future__ import annotations


class SlmWatchError(Exception):
    """Base class for slmwatch errors."""


class StateProviderError(SlmWatchError):
    """Raised when the lifecycle state cannot be obtained."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        self.status_code = status_code
        super().__init__(message)


class UnknownIndicatorError(SlmWatchError):
    """Raised when a health report is requested for an unregistered indicator."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Unknown health indicator: {name}")

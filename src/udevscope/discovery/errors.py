"""
Discovery error types.

These exceptions are raised inside the discovery package and absorbed at
the enumerator/monitor boundary, where they become an empty scan result
or a failed start.
"""

from __future__ import annotations


class DiscoveryError(Exception):
    """Base class for device discovery failures."""


class ContextUnavailable(DiscoveryError):
    """The udev connection could not be opened."""


class BackendQueryFailure(DiscoveryError):
    """A push-down call, scan or channel operation failed in libudev."""

    def __init__(self, operation: str, cause: BaseException | None = None) -> None:
        self.operation = operation
        self.cause = cause
        message = f"udev operation failed: {operation}"
        if cause is not None:
            message = f"{message} ({cause})"
        super().__init__(message)

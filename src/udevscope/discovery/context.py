"""
udev connection handle.

Wraps a single pyudev context. Cursors and event channels borrow the
handle; whoever created the DeviceContext owns it and releases it.
"""

from __future__ import annotations

import logging

import pyudev

from udevscope.discovery.errors import ContextUnavailable


logger = logging.getLogger(__name__)


class DeviceContext:
    """
    Owned connection to the udev subsystem.

    Create instances through create(). A released context stays released;
    make a new one instead of reusing it.
    """

    def __init__(self, handle: pyudev.Context) -> None:
        self._handle: pyudev.Context | None = handle

    @classmethod
    def create(cls) -> DeviceContext:
        """
        Open a new udev connection.

        Returns:
            DeviceContext owning a fresh pyudev.Context.

        Raises:
            ContextUnavailable: If libudev is missing or refuses a context.
        """
        try:
            handle = pyudev.Context()
        except (ImportError, OSError) as e:
            logger.warning("Could not open udev context: %s", e)
            raise ContextUnavailable(str(e)) from e
        logger.debug("Opened udev context")
        return cls(handle)

    @property
    def handle(self) -> pyudev.Context:
        """Borrow the underlying pyudev context."""
        if self._handle is None:
            raise ContextUnavailable("udev context has been released")
        return self._handle

    @property
    def valid(self) -> bool:
        """Check whether a handle is still held."""
        return self._handle is not None

    def release(self) -> None:
        """Drop the udev handle. Safe to call more than once."""
        if self._handle is not None:
            self._handle = None
            logger.debug("Released udev context")

    def __enter__(self) -> DeviceContext:
        return self

    def __exit__(self, *exc_info) -> None:
        self.release()

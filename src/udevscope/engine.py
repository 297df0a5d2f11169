"""
Device engine facade.

Owns the filter set, a scan context shared across scans and one monitor
at a time. Single-threaded: use DeviceService to drive it from other
threads.
"""

from __future__ import annotations

import asyncio
import logging

from udevscope.discovery import (
    Channel,
    ContextUnavailable,
    Device,
    DeviceContext,
    DeviceEnumerator,
    DeviceFilters,
    DeviceHandler,
    DeviceMonitor,
)


logger = logging.getLogger(__name__)


class DeviceEngine:
    """
    High-level interface for device discovery.

    Combines snapshot enumeration and live monitoring behind one filter
    configuration.
    """

    def __init__(
        self,
        channel: Channel = Channel.UDEV,
        loop: asyncio.AbstractEventLoop | None = None,
    ) -> None:
        """
        Initialize the engine.

        Args:
            channel: netlink group used for monitoring
            loop: Event loop for monitor delivery (default: running loop)
        """
        self.channel = channel
        self._loop = loop
        self._filters = DeviceFilters()
        self._context: DeviceContext | None = None
        self._monitor: DeviceMonitor | None = None
        self._handlers: list[DeviceHandler] = []

    @property
    def filters(self) -> DeviceFilters:
        """Filters applied when no explicit filters are passed."""
        return self._filters

    def set_filters(self, filters: DeviceFilters) -> None:
        """Replace the configured filters with a copy of `filters`."""
        if not isinstance(filters, DeviceFilters):
            raise TypeError(f"expected DeviceFilters, got {type(filters).__name__}")
        self._filters = filters.copy()

    def clear_filters(self) -> None:
        """Match every device from now on."""
        self._filters = DeviceFilters()

    @property
    def monitoring(self) -> bool:
        return self._monitor is not None and self._monitor.active

    def add_handler(self, handler: DeviceHandler) -> None:
        """Add a handler for devices reported by the monitor."""
        self._handlers.append(handler)

    def remove_handler(self, handler: DeviceHandler) -> None:
        """Remove a device handler."""
        self._handlers.remove(handler)

    def _ensure_context(self) -> bool:
        """Open the shared scan context if needed."""
        if self._context is not None and self._context.valid:
            return True
        try:
            self._context = DeviceContext.create()
        except ContextUnavailable:
            logger.warning("Failed to create udev context")
            self._context = None
            return False
        return True

    def reset_context(self) -> None:
        """Release the shared scan context; the next scan opens a new one."""
        if self._context is not None:
            self._context.release()
            self._context = None

    def scan(self, filters: DeviceFilters | None = None) -> list[Device]:
        """
        Enumerate devices.

        Args:
            filters: Criteria for this scan (default: configured filters)

        Returns:
            Matching devices; empty if nothing matched or udev failed.
        """
        if not self._ensure_context():
            return []
        enumerator = DeviceEnumerator(self._context)
        return enumerator.scan(self._filters if filters is None else filters)

    def start_monitoring(self, filters: DeviceFilters | None = None) -> bool:
        """
        Start (or restart) monitoring.

        Args:
            filters: Criteria for this session (default: configured filters)

        Returns:
            True if monitoring started.
        """
        self.stop_monitoring()

        monitor = DeviceMonitor(self.channel, loop=self._loop)
        if not monitor.start(self._filters if filters is None else filters):
            logger.warning("Failed to start monitor")
            return False

        monitor.add_handler(self._forward)
        self._monitor = monitor
        return True

    def stop_monitoring(self) -> None:
        """Stop monitoring. Safe to call when not monitoring."""
        if self._monitor is not None:
            self._monitor.stop()
            self._monitor = None

    def _forward(self, device: Device) -> None:
        for handler in list(self._handlers):
            try:
                handler(device)
            except Exception as e:
                logger.error("Device handler error: %s", e)

    def close(self) -> None:
        """Stop monitoring and release every udev handle."""
        self.stop_monitoring()
        self.reset_context()

    def __enter__(self) -> DeviceEngine:
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

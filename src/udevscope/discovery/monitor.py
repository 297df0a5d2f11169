"""
Live udev event monitor.

Opens a netlink channel, pushes down the filters the channel supports and
registers the channel socket with an asyncio event loop. Every wakeup
drains all pending records, builds a Device for each and reports those
passing the full post-filter.
"""

from __future__ import annotations

import asyncio
import logging
from enum import Enum
from typing import Callable

import pyudev

from udevscope.discovery.context import DeviceContext
from udevscope.discovery.device import Device, build_device
from udevscope.discovery.errors import BackendQueryFailure, ContextUnavailable
from udevscope.discovery.filters import DeviceFilters
from udevscope.discovery.policy import matches, monitor_pushdown


logger = logging.getLogger(__name__)

DeviceHandler = Callable[[Device], None]


class Channel(Enum):
    """netlink event group to listen on."""

    KERNEL = "kernel"  # raw kernel uevents, before udev rules ran
    UDEV = "udev"  # events after udev processing


class MonitorState(Enum):
    """Monitor lifecycle states."""

    IDLE = "idle"
    STARTING = "starting"
    ACTIVE = "active"


class DeviceMonitor:
    """
    udev event monitor bound to an asyncio event loop.

    Not thread-safe: start(), stop() and the readiness handler must all run
    on the thread owning the loop.
    """

    def __init__(
        self,
        channel: Channel = Channel.UDEV,
        loop: asyncio.AbstractEventLoop | None = None,
    ) -> None:
        """
        Initialize the monitor.

        Args:
            channel: netlink group to subscribe to
            loop: Event loop to register with; defaults to the running
                loop at start() time
        """
        self.channel = channel
        self._loop = loop
        self._state = MonitorState.IDLE
        self._context: DeviceContext | None = None
        self._monitor: pyudev.Monitor | None = None
        self._reader_loop: asyncio.AbstractEventLoop | None = None
        self._fd: int | None = None
        self._filters = DeviceFilters()
        self._handlers: list[DeviceHandler] = []

    @property
    def state(self) -> MonitorState:
        return self._state

    @property
    def active(self) -> bool:
        return self._state == MonitorState.ACTIVE

    @property
    def filters(self) -> DeviceFilters:
        """Filters of the current session (empty when idle)."""
        return self._filters

    def add_handler(self, handler: DeviceHandler) -> None:
        """Add a handler called with each matching Device."""
        self._handlers.append(handler)

    def remove_handler(self, handler: DeviceHandler) -> None:
        """Remove a device handler."""
        self._handlers.remove(handler)

    def start(self, filters: DeviceFilters | None = None) -> bool:
        """
        Start monitoring with the given filters.

        An active session is stopped first; channels never overlap.

        Args:
            filters: Match criteria (None or empty reports every event)

        Returns:
            True if events are now being delivered, False otherwise.
        """
        if filters is None:
            filters = DeviceFilters()
        elif not isinstance(filters, DeviceFilters):
            raise TypeError(f"expected DeviceFilters, got {type(filters).__name__}")

        self.stop()
        self._state = MonitorState.STARTING

        try:
            loop = self._resolve_loop()
            self._context = DeviceContext.create()
            self._filters = filters.copy()
            self._monitor = self._open_channel(self._context)
            self._arm(loop)
        except (ContextUnavailable, BackendQueryFailure) as e:
            logger.error("Failed to start device monitor: %s", e)
            self.stop()
            return False

        self._state = MonitorState.ACTIVE
        logger.info(
            "Device monitor started on %s channel (%s)",
            self.channel.value,
            self._filters.describe(),
        )
        return True

    def stop(self) -> None:
        """
        Stop monitoring and release the channel and context.

        Safe to call in any state. No event is delivered once this returns.
        """
        was_active = self._state == MonitorState.ACTIVE

        if self._reader_loop is not None and self._fd is not None:
            if not self._reader_loop.is_closed():
                self._reader_loop.remove_reader(self._fd)
        self._reader_loop = None
        self._fd = None

        self._monitor = None

        if self._context is not None:
            self._context.release()
            self._context = None

        self._filters = DeviceFilters()
        self._state = MonitorState.IDLE

        if was_active:
            logger.info("Device monitor stopped")

    def _resolve_loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is not None:
            return self._loop
        try:
            return asyncio.get_running_loop()
        except RuntimeError as e:
            raise BackendQueryFailure("no event loop to register with", e) from e

    def _open_channel(self, context: DeviceContext) -> pyudev.Monitor:
        try:
            monitor = pyudev.Monitor.from_netlink(context.handle, source=self.channel.value)
        except (OSError, ValueError) as e:
            raise BackendQueryFailure("monitor_new_from_netlink", e) from e

        for step in monitor_pushdown(self._filters):
            try:
                step.apply(monitor)
            except (OSError, ValueError) as e:
                raise BackendQueryFailure(f"{step.method}{step.args}", e) from e

        return monitor

    def _arm(self, loop: asyncio.AbstractEventLoop) -> None:
        assert self._monitor is not None
        try:
            self._monitor.start()
            fd = self._monitor.fileno()
            loop.add_reader(fd, self._on_ready)
        except (OSError, ValueError, RuntimeError) as e:
            raise BackendQueryFailure("enable_receiving", e) from e
        self._reader_loop = loop
        self._fd = fd

    def _on_ready(self) -> None:
        """Drain every pending record from the channel."""
        monitor = self._monitor
        filters = self._filters

        # a handler may stop or restart the monitor mid-drain
        while monitor is not None and self._monitor is monitor:
            try:
                raw = monitor.poll(timeout=0)
            except (OSError, ValueError) as e:
                logger.error("Error receiving udev event: %s", e)
                return
            if raw is None:
                return

            try:
                device = build_device(raw)
            except Exception as e:
                logger.error("Dropping unreadable udev event: %s", e)
                continue
            if not matches(device, filters):
                continue

            logger.debug(
                "udev event: %s %s (seqnum=%d)",
                device.action,
                device.syspath,
                device.seqnum,
            )
            self._dispatch(monitor, device)

    def _dispatch(self, monitor: pyudev.Monitor, device: Device) -> None:
        for handler in list(self._handlers):
            if self._monitor is not monitor:
                break
            try:
                handler(device)
            except Exception as e:
                logger.error("Device handler error: %s", e)

"""
Snapshot enumeration of udev devices.

One scan opens a libudev enumerator, pushes down what it can, builds a
Device per result and applies the shared post-filter.
"""

from __future__ import annotations

import logging

import pyudev

from udevscope.discovery.context import DeviceContext
from udevscope.discovery.device import Device, build_device
from udevscope.discovery.errors import BackendQueryFailure, ContextUnavailable
from udevscope.discovery.filters import DeviceFilters
from udevscope.discovery.policy import enumerator_pushdown, matches


logger = logging.getLogger(__name__)


class DeviceEnumerator:
    """
    Synchronous device enumerator.

    Borrows the given context, or opens a private one per scan when
    constructed without one.
    """

    def __init__(self, context: DeviceContext | None = None) -> None:
        self._context = context

    def scan(self, filters: DeviceFilters | None = None) -> list[Device]:
        """
        Enumerate devices matching the filters.

        Blocks until the scan completes. Backend failures are logged and
        produce an empty list rather than a partially filtered one.

        Args:
            filters: Match criteria (None or empty matches everything)

        Returns:
            Matching devices in the order libudev listed them.
        """
        if filters is None:
            filters = DeviceFilters()
        elif not isinstance(filters, DeviceFilters):
            raise TypeError(f"expected DeviceFilters, got {type(filters).__name__}")

        owned = self._context is None
        try:
            context = DeviceContext.create() if owned else self._context
        except ContextUnavailable as e:
            logger.error("Device scan skipped, udev unavailable: %s", e)
            return []

        try:
            return self._scan(context, filters)
        except ContextUnavailable as e:
            logger.error("Device scan skipped, udev unavailable: %s", e)
            return []
        except BackendQueryFailure as e:
            logger.error("Device scan aborted: %s", e)
            return []
        finally:
            if owned:
                context.release()

    def _scan(self, context: DeviceContext, filters: DeviceFilters) -> list[Device]:
        cursor = self._open_cursor(context)

        # fail fast: a partially applied filter would over-report
        for step in enumerator_pushdown(filters):
            try:
                step.apply(cursor)
            except (OSError, ValueError) as e:
                raise BackendQueryFailure(f"{step.method}{step.args}", e) from e

        devices: list[Device] = []
        try:
            for raw in cursor:
                device = self._build(raw)
                if device is not None and matches(device, filters, check_actions=False):
                    devices.append(device)
        except (OSError, ValueError) as e:
            raise BackendQueryFailure("scan_devices", e) from e

        logger.debug("Scan matched %d device(s) for %s", len(devices), filters.describe())
        return devices

    @staticmethod
    def _build(raw: pyudev.Device) -> Device | None:
        try:
            return build_device(raw)
        except Exception as e:
            logger.error("Skipping unreadable udev record: %s", e)
            return None

    @staticmethod
    def _open_cursor(context: DeviceContext) -> pyudev.Enumerator:
        try:
            return context.handle.list_devices()
        except (OSError, ValueError) as e:
            raise BackendQueryFailure("enumerate_new", e) from e

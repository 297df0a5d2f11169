"""
Threaded device service.

Runs a DeviceEngine on a dedicated worker thread with its own asyncio
loop so that callers on other threads (GUIs, servers) can scan and
monitor without blocking. Filters are copied in; devices are immutable
values handed out.
"""

from __future__ import annotations

import asyncio
import concurrent.futures
import logging
import threading
from typing import Any

from udevscope.discovery import Channel, Device, DeviceFilters, DeviceHandler
from udevscope.engine import DeviceEngine


logger = logging.getLogger(__name__)


class DeviceService:
    """
    Worker-thread host for a DeviceEngine.

    Device handlers run on the worker thread; marshal to your own thread
    if needed.
    """

    def __init__(self, channel: Channel = Channel.UDEV) -> None:
        self.channel = channel
        self._loop: asyncio.AbstractEventLoop | None = None
        self._thread: threading.Thread | None = None
        self._engine: DeviceEngine | None = None
        self._handlers: list[DeviceHandler] = []
        self._lock = threading.Lock()
        self._pending: set[concurrent.futures.Future] = set()
        self._scanning = False
        self._monitoring = False

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    @property
    def scanning(self) -> bool:
        return self._scanning

    @property
    def monitoring(self) -> bool:
        return self._monitoring

    def add_handler(self, handler: DeviceHandler) -> None:
        """Add a handler for monitored devices (called on the worker)."""
        with self._lock:
            self._handlers.append(handler)

    def remove_handler(self, handler: DeviceHandler) -> None:
        """Remove a device handler."""
        with self._lock:
            self._handlers.remove(handler)

    def start(self) -> None:
        """Start the worker thread. No-op if already running."""
        if self.running:
            return

        self._loop = asyncio.new_event_loop()
        self._engine = DeviceEngine(self.channel, loop=self._loop)
        self._engine.add_handler(self._dispatch)
        self._thread = threading.Thread(
            target=self._run,
            name="udevscope-worker",
            daemon=True,
        )
        self._thread.start()
        logger.debug("Device service worker started")

    def shutdown(self, timeout: float | None = 5.0) -> None:
        """Stop monitoring, stop the worker thread and release udev."""
        if self._thread is None or self._loop is None:
            return

        if self._thread.is_alive():
            self._loop.call_soon_threadsafe(self._loop.stop)
            self._thread.join(timeout)
            if self._thread.is_alive():
                logger.warning("Device service worker did not stop in time")
                return

        # calls queued behind the stop never ran
        with self._lock:
            pending = list(self._pending)
            self._pending.clear()
        for future in pending:
            future.cancel()

        self._thread = None
        self._loop = None
        self._engine = None
        self._scanning = False
        self._monitoring = False
        logger.debug("Device service worker stopped")

    def _run(self) -> None:
        assert self._loop is not None and self._engine is not None
        asyncio.set_event_loop(self._loop)
        try:
            self._loop.run_forever()
        finally:
            # engine handles belong to this thread
            self._engine.close()
            self._loop.close()

    def _submit(self, method: str, *args: Any) -> concurrent.futures.Future:
        """Run an engine method on the worker thread."""
        if not self.running or self._loop is None or self._engine is None:
            raise RuntimeError("Device service is not running")

        func = getattr(self._engine, method)

        future: concurrent.futures.Future = concurrent.futures.Future()

        def runner() -> None:
            if not future.set_running_or_notify_cancel():
                return
            try:
                future.set_result(func(*args))
            except Exception as e:
                future.set_exception(e)

        with self._lock:
            self._pending.add(future)
        future.add_done_callback(self._forget)

        try:
            self._loop.call_soon_threadsafe(runner)
        except RuntimeError as e:
            future.cancel()
            raise RuntimeError("Device service is not running") from e
        return future

    def _forget(self, future: concurrent.futures.Future) -> None:
        with self._lock:
            self._pending.discard(future)

    def scan_async(
        self, filters: DeviceFilters | None = None
    ) -> concurrent.futures.Future:
        """
        Queue a scan on the worker.

        Returns:
            Future resolving to the list of matching devices.
        """
        payload = filters.copy() if filters is not None else None
        future = self._submit("scan", payload)
        self._scanning = True
        future.add_done_callback(self._scan_finished)
        return future

    def _scan_finished(self, future: concurrent.futures.Future) -> None:
        self._scanning = False

    def scan(
        self,
        filters: DeviceFilters | None = None,
        timeout: float | None = None,
    ) -> list[Device]:
        """
        Scan on the worker and wait for the result.

        Raises:
            concurrent.futures.TimeoutError: If no result arrived within
                `timeout`; the scan may still finish later.
            concurrent.futures.CancelledError: If the service shut down
                before the scan ran.
        """
        return self.scan_async(filters).result(timeout)

    def start_monitoring(
        self,
        filters: DeviceFilters | None = None,
        timeout: float | None = None,
    ) -> bool:
        """
        Start (or restart) monitoring on the worker.

        Returns:
            True if monitoring started.

        Raises:
            concurrent.futures.TimeoutError: If the worker did not answer
                within `timeout`; the start may still complete later.
            concurrent.futures.CancelledError: If the service shut down
                before the call ran.
        """
        payload = filters.copy() if filters is not None else None
        ok = self._submit("start_monitoring", payload).result(timeout)
        self._monitoring = ok
        return ok

    def stop_monitoring(self, timeout: float | None = None) -> None:
        """
        Stop monitoring on the worker. Safe when not monitoring.

        Raises the same exceptions as start_monitoring() when the worker
        does not answer.
        """
        if not self.running:
            self._monitoring = False
            return
        self._submit("stop_monitoring").result(timeout)
        self._monitoring = False

    def set_filters(self, filters: DeviceFilters) -> None:
        """Replace the filters used when none are passed explicitly."""
        self._submit("set_filters", filters.copy()).result()

    def _dispatch(self, device: Device) -> None:
        with self._lock:
            handlers = list(self._handlers)
        for handler in handlers:
            try:
                handler(device)
            except Exception as e:
                logger.error("Device handler error: %s", e)

    def __enter__(self) -> DeviceService:
        self.start()
        return self

    def __exit__(self, *exc_info) -> None:
        self.shutdown()

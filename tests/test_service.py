"""
Tests for the threaded DeviceService.
"""

from __future__ import annotations

import concurrent.futures
import threading

import pytest

from tests.fakes import FakeDevice, FakeUdev
from udevscope.discovery.device import Device
from udevscope.discovery.filters import DeviceFilters
from udevscope.service import DeviceService


@pytest.fixture
def service(udev: FakeUdev) -> DeviceService:
    svc = DeviceService()
    svc.start()
    yield svc
    svc.shutdown()


class TestLifecycle:
    """Tests for worker start and shutdown."""

    def test_start_and_shutdown(self, udev: FakeUdev) -> None:
        svc = DeviceService()
        svc.start()
        assert svc.running is True

        svc.shutdown()
        assert svc.running is False

    def test_start_twice(self, service: DeviceService) -> None:
        thread = service._thread
        service.start()
        assert service._thread is thread

    def test_shutdown_when_not_started(self) -> None:
        DeviceService().shutdown()

    def test_calls_require_running_worker(self) -> None:
        with pytest.raises(RuntimeError):
            DeviceService().scan()

    def test_shutdown_cancels_unrun_calls(
        self, udev: FakeUdev, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """Test a call the worker never ran does not block forever."""
        svc = DeviceService()
        svc.start()
        loop = svc._loop
        schedule = loop.call_soon_threadsafe

        def only_stop(callback, *args):
            # lose every engine call; let the shutdown request through
            if callback == loop.stop:
                return schedule(callback, *args)
            return None

        monkeypatch.setattr(loop, "call_soon_threadsafe", only_stop)
        future = svc.scan_async()
        svc.shutdown()

        assert future.cancelled() is True
        assert svc.scanning is False
        with pytest.raises(concurrent.futures.CancelledError):
            future.result(timeout=1)

    def test_submit_after_loop_closed(self, udev: FakeUdev, monkeypatch: pytest.MonkeyPatch) -> None:
        svc = DeviceService()
        svc.start()
        schedule = svc._loop.call_soon_threadsafe

        def closed(callback, *args):
            raise RuntimeError("Event loop is closed")

        monkeypatch.setattr(svc._loop, "call_soon_threadsafe", closed)
        with pytest.raises(RuntimeError, match="not running"):
            svc.scan_async()

        monkeypatch.setattr(svc._loop, "call_soon_threadsafe", schedule)
        svc.shutdown()
        assert svc._pending == set()

    def test_context_manager(self, udev: FakeUdev) -> None:
        with DeviceService() as svc:
            assert svc.running is True
        assert svc.running is False


class TestScan:
    """Tests for scanning through the worker."""

    def test_scan(self, usb_tree: FakeUdev, service: DeviceService) -> None:
        devices = service.scan(DeviceFilters(subsystem="block"), timeout=5)
        assert [d.sysname for d in devices] == ["sda", "sda1"]

    def test_scan_async(self, usb_tree: FakeUdev, service: DeviceService) -> None:
        future = service.scan_async(DeviceFilters(subsystem="net"))
        assert [d.sysname for d in future.result(timeout=5)] == ["eth0"]

    def test_set_filters(self, usb_tree: FakeUdev, service: DeviceService) -> None:
        service.set_filters(DeviceFilters(subsystem="tty"))
        assert [d.subsystem for d in service.scan(timeout=5)] == ["tty"]


class TestMonitoring:
    """Tests for monitoring through the worker."""

    def test_events_reach_handlers(self, udev: FakeUdev, service: DeviceService) -> None:
        got: list[Device] = []
        arrived = threading.Event()

        def on_device(device: Device) -> None:
            got.append(device)
            arrived.set()

        service.add_handler(on_device)
        assert service.start_monitoring(DeviceFilters(subsystem="net"), timeout=5) is True
        assert service.monitoring is True

        udev.monitor.push(FakeDevice(
            "/sys/devices/virtual/net/veth1",
            subsystem="net",
            action="add",
            sequence_number=9,
        ))

        assert arrived.wait(timeout=5)
        assert got[0].sysname == "veth1"
        assert got[0].action == "add"

    def test_stop_monitoring(self, udev: FakeUdev, service: DeviceService) -> None:
        service.start_monitoring(timeout=5)
        service.stop_monitoring(timeout=5)
        assert service.monitoring is False

    def test_start_failure(self, udev: FakeUdev, service: DeviceService) -> None:
        udev.fail_on = "from_netlink"
        assert service.start_monitoring(timeout=5) is False
        assert service.monitoring is False

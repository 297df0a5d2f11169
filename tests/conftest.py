"""
Pytest configuration and shared fixtures for udevscope tests.
"""

from __future__ import annotations

import os
import tempfile
from pathlib import Path
from typing import Generator
from unittest.mock import MagicMock

import pytest
import pyudev
import yaml

from tests.fakes import FakeDevice, FakeUdev


@pytest.fixture
def udev(monkeypatch: pytest.MonkeyPatch) -> Generator[FakeUdev, None, None]:
    """Replace pyudev's context and netlink monitor with fakes."""
    world = FakeUdev()
    monkeypatch.setattr(pyudev, "Context", world.new_context)
    monkeypatch.setattr(pyudev.Monitor, "from_netlink", world.new_monitor)
    yield world
    for monitor in world.monitors:
        monitor.close()


@pytest.fixture
def loop() -> MagicMock:
    """Mock event loop recording reader registration."""
    mock_loop = MagicMock()
    mock_loop.is_closed.return_value = False
    return mock_loop


@pytest.fixture
def usb_tree(udev: FakeUdev) -> FakeUdev:
    """A small device tree: USB hub, serial adapter, disk, partition, NIC."""
    pci = FakeDevice("/sys/devices/pci0000:00/0000:00:14.0", subsystem="pci")
    hub = udev.add(FakeDevice(
        "/sys/devices/pci0000:00/0000:00:14.0/usb1/1-2",
        subsystem="usb",
        device_type="usb_device",
        device_node="/dev/bus/usb/001/003",
        driver="usb",
        device_number=os.makedev(189, 2),
        properties={"DEVTYPE": "usb_device", "ID_VENDOR_ID": "0403", "ID_MODEL_ID": "6001"},
        attributes={"idVendor": b"0403", "idProduct": b"6001", "authorized": b"1"},
        tags=["seat", "uaccess"],
        parent=pci,
    ))
    udev.add(FakeDevice(
        "/sys/devices/pci0000:00/0000:00:14.0/usb1/1-2/1-2:1.0/ttyUSB0/tty/ttyUSB0",
        subsystem="tty",
        device_node="/dev/ttyUSB0",
        device_number=os.makedev(188, 0),
        properties={"ID_VENDOR_ID": "0403", "DEVNAME": "/dev/ttyUSB0"},
        attributes={"dev": b"188:0"},
        device_links=["/dev/serial/by-id/usb-FTDI_FT232R-if00-port0"],
        tags=["systemd"],
        parent=hub,
    ))
    disk = udev.add(FakeDevice(
        "/sys/devices/pci0000:00/0000:00:17.0/ata1/host0/target0:0:0/0:0:0:0/block/sda",
        subsystem="block",
        device_type="disk",
        device_node="/dev/sda",
        device_number=os.makedev(8, 0),
        properties={"DEVTYPE": "disk", "ID_BUS": "ata"},
        attributes={"removable": b"0", "size": b"1000215216"},
        device_links=["/dev/disk/by-id/ata-Samsung_SSD", "/dev/disk/by-path/pci-0000:00:17.0-ata-1"],
        tags=["systemd"],
    ))
    udev.add(FakeDevice(
        "/sys/devices/pci0000:00/0000:00:17.0/ata1/host0/target0:0:0/0:0:0:0/block/sda/sda1",
        subsystem="block",
        device_type="partition",
        device_node="/dev/sda1",
        device_number=os.makedev(8, 1),
        properties={"DEVTYPE": "partition", "ID_BUS": "ata", "ID_FS_TYPE": "ext4"},
        attributes={"partition": b"1", "removable": b"0"},
        tags=["systemd"],
        parent=disk,
    ))
    udev.add(FakeDevice(
        "/sys/devices/pci0000:00/0000:00:1f.6/net/eth0",
        subsystem="net",
        properties={"INTERFACE": "eth0", "ID_NET_DRIVER": "e1000e"},
        attributes={"address": b"aa:bb:cc:dd:ee:ff", "operstate": b"up"},
        tags=["systemd"],
    ))
    return udev


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for tests."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def sample_config(temp_dir: Path) -> Path:
    """Create a sample configuration file."""
    config_path = temp_dir / "udevscope.yaml"
    config_data = {
        "logging": {
            "log_level": "debug",
        },
        "monitor": {
            "channel": "kernel",
        },
        "output": {
            "format": "json",
        },
    }
    with open(config_path, "w") as f:
        yaml.dump(config_data, f)
    return config_path

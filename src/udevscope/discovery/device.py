"""
Device entity and the pyudev-to-entity builder.

A Device is an immutable copy of everything udev reported about one
device at one instant. It holds no OS resources.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Callable, Mapping, TypeVar

import pyudev


logger = logging.getLogger(__name__)

_T = TypeVar("_T")


class DeviceAction(Enum):
    """udev event actions."""

    ADD = "add"
    REMOVE = "remove"
    CHANGE = "change"
    MOVE = "move"
    ONLINE = "online"
    OFFLINE = "offline"
    BIND = "bind"
    UNBIND = "unbind"
    UNKNOWN = "unknown"

    @classmethod
    def from_string(cls, value: str | None) -> DeviceAction | None:
        """Map a raw action string to a member; empty means no event."""
        if not value:
            return None
        try:
            return cls(value.lower())
        except ValueError:
            return cls.UNKNOWN


@dataclass(frozen=True)
class Device:
    """
    Snapshot of a single udev device.

    properties and sysattrs are read-only views over private copies, so a
    Device shared between handlers cannot be changed by any of them.
    """

    syspath: str
    devnode: str = ""
    subsystem: str = ""
    devtype: str = ""
    sysname: str = ""
    driver: str = ""
    major: int = 0
    minor: int = 0
    properties: Mapping[str, str] = field(default_factory=dict)
    sysattrs: Mapping[str, str] = field(default_factory=dict)
    devlinks: tuple[str, ...] = ()
    tags: tuple[str, ...] = ()
    parent_syspath: str = ""
    parent_subsystem: str = ""
    action: str = ""  # empty for enumerated devices
    seqnum: int = 0
    is_block: bool = False
    is_char: bool = False

    def __post_init__(self) -> None:
        object.__setattr__(self, "properties", MappingProxyType(dict(self.properties)))
        object.__setattr__(self, "sysattrs", MappingProxyType(dict(self.sysattrs)))
        object.__setattr__(self, "devlinks", tuple(self.devlinks))
        object.__setattr__(self, "tags", tuple(self.tags))

    def __hash__(self) -> int:
        # equal devices share syspath and event identity
        return hash((self.syspath, self.action, self.seqnum))

    @property
    def device_id(self) -> str:
        """Primary identity of the device (its /sys path)."""
        return self.syspath

    @property
    def has_device_number(self) -> bool:
        return self.major != 0 or self.minor != 0

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "syspath": self.syspath,
            "devnode": self.devnode,
            "subsystem": self.subsystem,
            "devtype": self.devtype,
            "sysname": self.sysname,
            "driver": self.driver,
            "major": self.major,
            "minor": self.minor,
            "properties": dict(self.properties),
            "sysattrs": dict(self.sysattrs),
            "devlinks": list(self.devlinks),
            "tags": list(self.tags),
            "parent_syspath": self.parent_syspath,
            "parent_subsystem": self.parent_subsystem,
            "action": self.action,
            "seqnum": self.seqnum,
            "is_block": self.is_block,
            "is_char": self.is_char,
        }


def _text(value: Any) -> str:
    """Collapse an optional native string to str, never None."""
    if value is None:
        return ""
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    return str(value)


def _read_sysattrs(device: pyudev.Device, syspath: str) -> dict[str, str]:
    sysattrs: dict[str, str] = {}
    attributes = device.attributes
    try:
        names = sorted(attributes.available_attributes)
    except OSError as e:
        logger.debug("Cannot list attributes of %s: %s", syspath, e)
        return sysattrs

    for name in names:
        try:
            value = attributes.get(name)
        except (OSError, ValueError):
            # unreadable attributes (write-only, vanished) read as empty
            value = None
        sysattrs[_text(name)] = _text(value)
    return sysattrs


def _read(syspath: str, what: str, read: Callable[[], _T], default: _T) -> _T:
    """Run one field read; undecodable or vanished data yields `default`."""
    try:
        return read()
    except (ValueError, KeyError, OSError) as e:
        # pyudev decodes strictly, so non-UTF-8 udev data raises here
        logger.warning("Unreadable %s of %s: %s", what, syspath or "<unknown>", e)
        return default


def _read_properties(device: pyudev.Device) -> dict[str, str]:
    return {_text(key): _text(value) for key, value in device.properties.items()}


def _read_parent(device: pyudev.Device) -> tuple[str, str]:
    parent = device.parent
    if parent is None:
        return "", ""
    return _text(parent.sys_path), _text(parent.subsystem)


def build_device(device: pyudev.Device) -> Device:
    """
    Translate a pyudev device into a Device.

    Never fails: missing or undecodable strings become "", a missing device
    number becomes 0:0 and unreadable collections stay empty.

    Args:
        device: pyudev.Device (borrowed, not retained)

    Returns:
        A freshly built Device.
    """
    syspath = _read("", "sys_path", lambda: _text(device.sys_path), "")

    def text(what: str) -> str:
        return _read(syspath, what, lambda: _text(getattr(device, what)), "")

    devnode = text("device_node")
    devtype = text("device_type")

    major = minor = 0
    devnum = _read(syspath, "device_number", lambda: device.device_number or 0, 0)
    if devnum:
        major = os.major(devnum)
        minor = os.minor(devnum)

    parent_syspath, parent_subsystem = _read(
        syspath, "parent", lambda: _read_parent(device), ("", "")
    )

    return Device(
        syspath=syspath,
        devnode=devnode,
        subsystem=text("subsystem"),
        devtype=devtype,
        sysname=text("sys_name"),
        driver=text("driver"),
        major=major,
        minor=minor,
        properties=_read(syspath, "properties", lambda: _read_properties(device), {}),
        sysattrs=_read(syspath, "attributes", lambda: _read_sysattrs(device, syspath), {}),
        devlinks=_read(
            syspath,
            "device_links",
            lambda: tuple(_text(link) for link in device.device_links),
            (),
        ),
        tags=_read(syspath, "tags", lambda: tuple(_text(tag) for tag in device.tags), ()),
        parent_syspath=parent_syspath,
        parent_subsystem=parent_subsystem,
        action=text("action").lower(),
        seqnum=_read(syspath, "sequence_number", lambda: device.sequence_number or 0, 0),
        is_block=bool(devnode and devnum and devtype),
        is_char=bool(devnode and devnum),
    )


def create_test_device(**overrides: Any) -> Device:
    """
    Create a Device for testing and examples.

    Args:
        **overrides: Field values replacing the defaults

    Returns:
        Device describing a USB serial adapter unless overridden.
    """
    defaults: dict[str, Any] = {
        "syspath": "/sys/devices/pci0000:00/0000:00:14.0/usb1/1-2/1-2:1.0/ttyUSB0/tty/ttyUSB0",
        "devnode": "/dev/ttyUSB0",
        "subsystem": "tty",
        "sysname": "ttyUSB0",
        "major": 188,
        "minor": 0,
        "properties": {"SUBSYSTEM": "tty", "DEVNAME": "/dev/ttyUSB0"},
        "sysattrs": {"dev": "188:0"},
        "devlinks": ("/dev/serial/by-id/usb-FTDI_FT232R-if00-port0",),
        "tags": ("systemd",),
        "parent_syspath": "/sys/devices/pci0000:00/0000:00:14.0/usb1/1-2/1-2:1.0/ttyUSB0",
        "parent_subsystem": "usb-serial",
        "is_char": True,
    }
    defaults.update(overrides)
    return Device(**defaults)

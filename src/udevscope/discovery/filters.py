"""
Device filter criteria.

Describes which devices a scan or monitor should report. Some criteria
are handed to libudev (pre-filters), the rest are evaluated against built
devices (post-filters); see udevscope.discovery.policy.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass, field, fields


@dataclass(eq=False)
class DeviceFilters:
    """
    Match criteria for devices.

    All non-empty criteria must match (AND logic). `tags` must all be
    present on the device, while `actions` is satisfied by any one entry
    and only applies to monitor events. Empty fields match anything.
    """

    # Exact match
    subsystem: str = ""  # e.g. "usb", "block", "net"
    devtype: str = ""  # e.g. "usb_device", "disk", "partition"
    sysname: str = ""  # e.g. "1-2", "sda"

    # Post-filter only, libudev has no pre-filter for these
    devnode: str = ""  # e.g. "/dev/sda"
    syspath_prefix: str = ""

    tags: list[str] = field(default_factory=list)
    actions: list[str] = field(default_factory=list)

    properties: dict[str, str] = field(default_factory=dict)
    sysattrs: dict[str, str] = field(default_factory=dict)
    nomatch_sysattrs: dict[str, str] = field(default_factory=dict)

    def is_empty(self) -> bool:
        """Check whether no criteria are set (matches every device)."""
        return not any(getattr(self, f.name) for f in fields(self))

    def copy(self) -> DeviceFilters:
        """Return an independent copy."""
        return copy.deepcopy(self)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, DeviceFilters):
            return NotImplemented
        return (
            self.subsystem == other.subsystem
            and self.devtype == other.devtype
            and self.sysname == other.sysname
            and self.devnode == other.devnode
            and self.syspath_prefix == other.syspath_prefix
            and set(self.tags) == set(other.tags)
            and set(self.actions) == set(other.actions)
            and self.properties == other.properties
            and self.sysattrs == other.sysattrs
            and self.nomatch_sysattrs == other.nomatch_sysattrs
        )

    __hash__ = None  # type: ignore[assignment]

    def describe(self) -> str:
        """Short human-readable summary for log messages."""
        if self.is_empty():
            return "<all devices>"
        parts = []
        for f in fields(self):
            value = getattr(self, f.name)
            if value:
                parts.append(f"{f.name}={value}")
        return " ".join(parts)

"""
Filter decomposition policy.

Splits a DeviceFilters into calls libudev can evaluate itself (push-down)
and a user-space predicate evaluated on built devices. The enumerator and
the monitor use different libudev primitives, so each gets its own
push-down plan, but both run the same matches() on every device they
build. Push-down only narrows what reaches user space; matches() has the
final word.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from udevscope.discovery.device import Device
from udevscope.discovery.filters import DeviceFilters


# libudev exposes devtype to enumerators only through this property
DEVTYPE_PROPERTY = "DEVTYPE"


@dataclass(frozen=True)
class PushDown:
    """One libudev filter call: cursor/channel method plus arguments."""

    criterion: str
    method: str
    args: tuple[Any, ...]
    kwargs: dict[str, Any] = field(default_factory=dict)

    def apply(self, target: Any) -> None:
        getattr(target, self.method)(*self.args, **self.kwargs)


def _unique(items: list[str]) -> list[str]:
    return [item for item in dict.fromkeys(items) if item]


def _pairs(mapping: dict[str, str]) -> list[tuple[str, str]]:
    return [(key, value) for key, value in mapping.items() if key and value]


def enumerator_pushdown(filters: DeviceFilters) -> list[PushDown]:
    """
    Build the enumerator push-down plan.

    Order: subsystem, sysname, properties, tags, sysattrs, negative
    sysattrs, devtype (as the DEVTYPE property). Empty keys, values and
    tags are left to the post-filter.
    """
    plan: list[PushDown] = []

    if filters.subsystem:
        plan.append(PushDown("subsystem", "match_subsystem", (filters.subsystem,)))

    if filters.sysname:
        plan.append(PushDown("sysname", "match_sys_name", (filters.sysname,)))

    for key, value in _pairs(filters.properties):
        plan.append(PushDown("properties", "match_property", (key, value)))

    # repeated tag matches combine as AND
    for tag in _unique(filters.tags):
        plan.append(PushDown("tags", "match_tag", (tag,)))

    for key, value in _pairs(filters.sysattrs):
        plan.append(PushDown("sysattrs", "match_attribute", (key, value)))

    for key, value in _pairs(filters.nomatch_sysattrs):
        plan.append(
            PushDown("nomatch_sysattrs", "match_attribute", (key, value), {"nomatch": True})
        )

    if filters.devtype:
        plan.append(
            PushDown("devtype", "match_property", (DEVTYPE_PROPERTY, filters.devtype))
        )

    return plan


def monitor_pushdown(filters: DeviceFilters) -> list[PushDown]:
    """
    Build the monitor push-down plan.

    libudev scopes a devtype match to a subsystem, so devtype is pushed
    down only together with a subsystem. Without one, devtype is left to
    the post-filter.
    """
    plan: list[PushDown] = []

    if filters.subsystem:
        plan.append(
            PushDown(
                "subsystem",
                "filter_by",
                (filters.subsystem,),
                {"device_type": filters.devtype or None},
            )
        )

    for tag in _unique(filters.tags):
        plan.append(PushDown("tags", "filter_by_tag", (tag,)))

    return plan


def matches(
    device: Device,
    filters: DeviceFilters,
    *,
    check_actions: bool = True,
) -> bool:
    """
    Evaluate every criterion of `filters` against a built device.

    Args:
        device: Device to check
        filters: Criteria to apply
        check_actions: Whether to require the event action to be listed;
            enumerated devices carry no action, so scans pass False

    Returns:
        True if the device satisfies all criteria.
    """
    if filters.subsystem and device.subsystem != filters.subsystem:
        return False

    if filters.devtype and (
        device.devtype != filters.devtype
        and device.properties.get(DEVTYPE_PROPERTY, "") != filters.devtype
    ):
        return False

    if filters.sysname and device.sysname != filters.sysname:
        return False

    if filters.devnode and device.devnode != filters.devnode:
        return False

    if filters.syspath_prefix and not device.syspath.startswith(filters.syspath_prefix):
        return False

    if check_actions and filters.actions and device.action not in filters.actions:
        return False

    device_tags = set(device.tags)
    for tag in filters.tags:
        if tag and tag not in device_tags:
            return False

    for key, value in filters.properties.items():
        if key and device.properties.get(key, "") != value:
            return False

    for key, value in filters.sysattrs.items():
        if key and device.sysattrs.get(key, "") != value:
            return False

    for key, value in filters.nomatch_sysattrs.items():
        if key and device.sysattrs.get(key, "") == value:
            return False

    return True

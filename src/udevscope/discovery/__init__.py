"""
Device Filter & Discovery Engine.

Translates udev device records into Device values and delivers them as
one-shot snapshots (DeviceEnumerator) or as a live event stream
(DeviceMonitor), both narrowed by a DeviceFilters value.
"""

from udevscope.discovery.context import DeviceContext
from udevscope.discovery.device import (
    Device,
    DeviceAction,
    build_device,
    create_test_device,
)
from udevscope.discovery.enumerator import DeviceEnumerator
from udevscope.discovery.errors import (
    BackendQueryFailure,
    ContextUnavailable,
    DiscoveryError,
)
from udevscope.discovery.filters import DeviceFilters
from udevscope.discovery.monitor import (
    Channel,
    DeviceHandler,
    DeviceMonitor,
    MonitorState,
)
from udevscope.discovery.policy import (
    DEVTYPE_PROPERTY,
    PushDown,
    enumerator_pushdown,
    matches,
    monitor_pushdown,
)

__all__ = [
    # Context
    "DeviceContext",
    # Devices
    "Device",
    "DeviceAction",
    "build_device",
    "create_test_device",
    # Filters
    "DeviceFilters",
    "DEVTYPE_PROPERTY",
    "PushDown",
    "enumerator_pushdown",
    "monitor_pushdown",
    "matches",
    # Enumeration and monitoring
    "DeviceEnumerator",
    "Channel",
    "DeviceHandler",
    "DeviceMonitor",
    "MonitorState",
    # Errors
    "DiscoveryError",
    "ContextUnavailable",
    "BackendQueryFailure",
]

"""
udevscope - udev device discovery and monitoring.

Enumerates the devices known to the Linux device manager and streams
hotplug events, both narrowed by a single set of filter criteria.
"""

__version__ = "0.1.0"
__author__ = "udevscope Contributors"

from udevscope.config import ScopeConfig, load_config
from udevscope.discovery import Device, DeviceFilters
from udevscope.engine import DeviceEngine

__all__ = [
    "Device",
    "DeviceEngine",
    "DeviceFilters",
    "ScopeConfig",
    "load_config",
    "__version__",
]

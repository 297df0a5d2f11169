"""
udevscope Command Line Interface.

Provides commands for inspecting udev devices:
- scan: List devices currently present
- monitor: Print device events as they happen
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import signal
import sys
from typing import Any

from udevscope import __version__
from udevscope.config import ScopeConfig, load_config, validate_config
from udevscope.discovery import Channel, Device, DeviceAction, DeviceFilters
from udevscope.engine import DeviceEngine


logger = logging.getLogger("udevscope")


def key_value(text: str) -> tuple[str, str]:
    """Parse a KEY=VALUE command line argument."""
    key, sep, value = text.partition("=")
    if not sep or not key:
        raise argparse.ArgumentTypeError(f"expected KEY=VALUE, got {text!r}")
    return key, value


def add_filter_arguments(parser: argparse.ArgumentParser) -> None:
    """Add the device filter options shared by scan and monitor."""
    group = parser.add_argument_group("filters")
    group.add_argument("-s", "--subsystem", default="", help="Subsystem, e.g. usb, block, tty")
    group.add_argument("--devtype", default="", help="Device type, e.g. disk, usb_device")
    group.add_argument("--sysname", default="", help="Kernel name, e.g. sda, 1-2")
    group.add_argument("--devnode", default="", help="Device node, e.g. /dev/sda")
    group.add_argument(
        "--syspath-prefix",
        default="",
        metavar="PATH",
        help="Only devices whose /sys path starts with PATH",
    )
    group.add_argument(
        "-t", "--tag",
        dest="tags",
        action="append",
        default=[],
        help="Required tag (repeatable, all must match)",
    )
    group.add_argument(
        "-p", "--property",
        dest="properties",
        action="append",
        type=key_value,
        default=[],
        metavar="KEY=VALUE",
        help="Required udev property (repeatable)",
    )
    group.add_argument(
        "-a", "--attr",
        dest="sysattrs",
        action="append",
        type=key_value,
        default=[],
        metavar="KEY=VALUE",
        help="Required sysfs attribute (repeatable)",
    )
    group.add_argument(
        "--no-attr",
        dest="nomatch_sysattrs",
        action="append",
        type=key_value,
        default=[],
        metavar="KEY=VALUE",
        help="Exclude devices with this sysfs attribute value (repeatable)",
    )


def build_filters(args: argparse.Namespace) -> DeviceFilters:
    """Create DeviceFilters from parsed command line options."""
    return DeviceFilters(
        subsystem=args.subsystem,
        devtype=args.devtype,
        sysname=args.sysname,
        devnode=args.devnode,
        syspath_prefix=args.syspath_prefix,
        tags=list(args.tags),
        actions=list(getattr(args, "actions", None) or []),
        properties=dict(args.properties),
        sysattrs=dict(args.sysattrs),
        nomatch_sysattrs=dict(args.nomatch_sysattrs),
    )


def main(argv: list[str] | None = None) -> int:
    """Main entry point for the CLI."""
    parser = argparse.ArgumentParser(
        prog="udevscope",
        description="Discover and monitor udev devices",
    )
    parser.add_argument(
        "-V", "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "-c", "--config",
        metavar="FILE",
        help="Path to configuration file",
    )
    parser.add_argument(
        "--json",
        action="store_true",
        help="Output in JSON format",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose logging",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # scan command
    scan_parser = subparsers.add_parser("scan", help="List present devices")
    add_filter_arguments(scan_parser)
    scan_parser.add_argument(
        "--properties",
        dest="show_properties",
        action="store_true",
        help="Show udev properties of each device",
    )
    scan_parser.set_defaults(func=cmd_scan)

    # monitor command
    monitor_parser = subparsers.add_parser("monitor", help="Watch device events")
    add_filter_arguments(monitor_parser)
    monitor_parser.add_argument(
        "--action",
        dest="actions",
        action="append",
        default=[],
        choices=[a.value for a in DeviceAction],
        help="Only report these event actions (repeatable)",
    )
    monitor_parser.add_argument(
        "--kernel",
        action="store_true",
        help="Listen to raw kernel events instead of udev events",
    )
    monitor_parser.add_argument(
        "--properties",
        dest="show_properties",
        action="store_true",
        help="Show udev properties of each device",
    )
    monitor_parser.set_defaults(func=cmd_monitor)

    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 0

    try:
        config = load_config(args.config)
    except FileNotFoundError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    if args.verbose:
        config.logging.log_level = "debug"
    if args.json:
        config.output.format = "json"
    if args.show_properties:
        config.output.show_properties = True

    errors = validate_config(config)
    if errors:
        print("Configuration errors:", file=sys.stderr)
        for error in errors:
            print(f"  - {error}", file=sys.stderr)
        return 1

    setup_logging(config)
    return args.func(args, config)


def setup_logging(config: ScopeConfig) -> None:
    """Configure logging based on config."""
    level = getattr(logging, config.logging.log_level.upper(), logging.INFO)
    kwargs: dict[str, Any] = {}
    if config.logging.log_file:
        kwargs["filename"] = config.logging.log_file
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        **kwargs,
    )


def format_device(device: Device, show_properties: bool = False) -> str:
    """Render a device as human-readable text."""
    head = device.syspath
    if device.action:
        head = f"[{device.seqnum}] {device.action.upper():<7} {head}"

    lines = [head]
    details = [
        ("subsystem", device.subsystem),
        ("devtype", device.devtype),
        ("devnode", device.devnode),
        ("driver", device.driver),
        ("parent", device.parent_syspath),
    ]
    for label, value in details:
        if value:
            lines.append(f"  {label + ':':<11}{value}")
    if device.has_device_number:
        lines.append(f"  {'devnum:':<11}{device.major}:{device.minor}")
    if device.tags:
        lines.append(f"  {'tags:':<11}{', '.join(device.tags)}")
    if show_properties:
        for key in sorted(device.properties):
            lines.append(f"    {key}={device.properties[key]}")
    return "\n".join(lines)


def output_device(device: Device, config: ScopeConfig) -> None:
    """Print one device in the configured format."""
    if config.output.format == "json":
        print(json.dumps(device.to_dict()), flush=True)
    else:
        print(format_device(device, config.output.show_properties), flush=True)


def cmd_scan(args: argparse.Namespace, config: ScopeConfig) -> int:
    """List present devices."""
    filters = build_filters(args)
    with DeviceEngine() as engine:
        devices = engine.scan(filters)

    if config.output.format == "json":
        print(json.dumps([d.to_dict() for d in devices], indent=2))
        return 0

    for device in devices:
        print(format_device(device, config.output.show_properties))
        print()
    print(f"{len(devices)} device(s)")
    return 0


async def run_monitor(filters: DeviceFilters, channel: Channel, config: ScopeConfig) -> int:
    """Monitor devices until SIGINT/SIGTERM."""
    shutdown = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGTERM, signal.SIGINT):
        loop.add_signal_handler(sig, shutdown.set)

    engine = DeviceEngine(channel)
    engine.add_handler(lambda device: output_device(device, config))
    try:
        if not engine.start_monitoring(filters):
            print("Error: could not start device monitor", file=sys.stderr)
            return 1

        logger.info("Monitoring %s events, press Ctrl-C to stop", channel.value)
        await shutdown.wait()
    finally:
        engine.close()
        for sig in (signal.SIGTERM, signal.SIGINT):
            loop.remove_signal_handler(sig)
    return 0


def cmd_monitor(args: argparse.Namespace, config: ScopeConfig) -> int:
    """Print device events as they happen."""
    channel = Channel.KERNEL if args.kernel else Channel(config.monitor.channel)
    return asyncio.run(run_monitor(build_filters(args), channel, config))


if __name__ == "__main__":
    sys.exit(main())

"""
rpi-usb command line interface.

Lists USB and USB-serial devices, or prints attach/detach events until
interrupted.
"""

from __future__ import annotations
import argparse
import json
import logging
import signal
from pathlib import Path
from typing import Optional

from . import __version__
from .config_manager import ConfigManager
from .exceptions import RPiUSBError
from .lsusb_parser import list_usb_devices
from .models import DeviceChangeEvent, MonitorConfig
from .platform_check import ensure_linux
from .udevadm_parser import list_serial_devices
from .usb_monitor import DeviceMonitor, SerialDeviceMonitor, USBDeviceMonitor

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def configure_logging(level: str) -> None:
    numeric_level = getattr(logging, level.upper(), None)
    if not isinstance(numeric_level, int):
        numeric_level = logging.INFO
    logging.basicConfig(level=numeric_level, format=LOG_FORMAT)


def print_event(event: DeviceChangeEvent) -> None:
    print(json.dumps(event.to_message()), flush=True)


def cmd_list(args: argparse.Namespace, config: MonitorConfig) -> int:
    ensure_linux()
    devices = list_usb_devices(verbose=not args.brief, timeout=config.command_timeout)

    if args.json:
        print(json.dumps([d.model_dump_for_output() for d in devices], indent=2))
        return 0

    for device in devices:
        print(
            f"Bus {device.bus:03d} Device {device.device_address:03d}: "
            f"ID {device.vendor_id_hex}:{device.product_id_hex} {device.display_name}"
        )
    return 0


def cmd_serial(args: argparse.Namespace, config: MonitorConfig) -> int:
    ensure_linux()
    devices = list_serial_devices(config.serial_globs, timeout=config.command_timeout)

    if args.json:
        print(json.dumps([d.model_dump_for_output() for d in devices], indent=2))
        return 0

    for device in devices:
        print(f"{device.devname}\t{device.display_name}\t{device.devpath}")
    return 0


def cmd_monitor(args: argparse.Namespace, config: MonitorConfig) -> int:
    monitor: DeviceMonitor
    if args.usb:
        monitor = USBDeviceMonitor(config)
    else:
        monitor = SerialDeviceMonitor(config)

    monitor.register_callback(print_event)

    def handle_signal(signum, frame):
        name = signal.Signals(signum).name
        logger.info(f"Received {name}, shutting down")
        monitor.stop()

    signal.signal(signal.SIGINT, handle_signal)
    signal.signal(signal.SIGTERM, handle_signal)

    monitor.run()
    logger.info("Graceful shutdown completed")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="rpi-usb",
        description="List USB devices and watch for attach/detach events",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--config", type=Path, help="Path to YAML configuration file")
    parser.add_argument("--log-level", help="Override the configured log level")

    sub = parser.add_subparsers(dest="command", required=True)

    p_list = sub.add_parser("list", help="List USB devices via lsusb")
    p_list.add_argument("--json", action="store_true", help="Print JSON")
    p_list.add_argument("--brief", action="store_true", help="Use plain lsusb instead of lsusb -v")
    p_list.set_defaults(func=cmd_list)

    p_serial = sub.add_parser("serial", help="List USB-serial devices via udevadm")
    p_serial.add_argument("--json", action="store_true", help="Print JSON")
    p_serial.set_defaults(func=cmd_serial)

    p_monitor = sub.add_parser("monitor", help="Print attach/detach events as JSON lines")
    p_monitor.add_argument("--usb", action="store_true", help="Watch all USB devices instead of serial ports")
    p_monitor.set_defaults(func=cmd_monitor)

    return parser


def main(argv: Optional[list[str]] = None) -> int:
    """Main entry point for the rpi-usb CLI."""
    parser = build_parser()
    args = parser.parse_args(argv)

    config = ConfigManager(args.config).load()
    if args.log_level:
        config.log_level = args.log_level.upper()
    configure_logging(config.log_level)

    try:
        return args.func(args, config)
    except RPiUSBError as e:
        logger.error(str(e))
        return 1

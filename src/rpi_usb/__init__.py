"""
rpi_usb - USB and USB-serial device listing and hotplug monitoring for Linux.

Shells out to lsusb and udevadm, and reports attach/detach events for
devices seen between udev events.
"""

__version__ = "0.2.0"
__all__ = [
    "ChangeType",
    "DeviceChangeEvent",
    "DeviceTracker",
    "SerialDevice",
    "SerialDeviceMonitor",
    "USBDevice",
    "USBDeviceMonitor",
    "is_linux",
    "list_serial_devices",
    "list_usb_devices",
]

from .device_tracker import DeviceTracker
from .lsusb_parser import list_usb_devices
from .models import ChangeType, DeviceChangeEvent, SerialDevice, USBDevice
from .platform_check import is_linux
from .udevadm_parser import list_serial_devices
from .usb_monitor import SerialDeviceMonitor, USBDeviceMonitor

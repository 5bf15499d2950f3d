"""
Exceptions raised by rpi_usb.
"""


class RPiUSBError(Exception):
    """Base class for all rpi_usb errors."""


class UnsupportedPlatformError(RPiUSBError):
    """Raised when running on anything other than Linux."""


class DeviceListError(RPiUSBError):
    """Raised when lsusb or udevadm cannot produce a device list."""


class MonitorError(RPiUSBError):
    """Raised when the udev monitor process cannot be started."""

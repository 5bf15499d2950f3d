"""
Parse lsusb output into USB device records.

Handles both the one-line-per-device summary and the verbose `lsusb -v`
descriptor dump.
"""

from __future__ import annotations
import logging
import re
import subprocess
from typing import Optional

from .exceptions import DeviceListError
from .models import USBDevice

logger = logging.getLogger(__name__)

# "Bus 001 Device 004: ID 0bda:8179 Realtek Semiconductor Corp. RTL8188EUS"
BUS_LINE_PATTERN = re.compile(
    r"^Bus (\d+) Device (\d+): ID ([0-9a-fA-F]+):([0-9a-fA-F]+)\s*(.*)$"
)

# "  iManufacturer           1 Linux 6.1.21-v8+ ehci_hcd"
STRING_DESCRIPTOR_PATTERN = re.compile(r"^\s*(iManufacturer|iProduct|iSerial)\s+(\d+)?\s*(.*)$")

STRING_DESCRIPTOR_FIELDS = {
    "iManufacturer": "manufacturer",
    "iProduct": "product",
    "iSerial": "serial_number",
}

DEFAULT_TIMEOUT = 10.0


def parse_lsusb_output(output: str) -> list[USBDevice]:
    """Parse lsusb (or lsusb -v) output into a list of devices."""
    devices: list[USBDevice] = []
    current: Optional[dict] = None

    for line in output.splitlines():
        match = BUS_LINE_PATTERN.match(line.strip())
        if match:
            if current is not None:
                devices.append(USBDevice(**current))
            bus, address, vendor, product, description = match.groups()
            current = {
                "bus": int(bus, 10),
                "device_address": int(address, 10),
                "vendor_id": int(vendor, 16),
                "product_id": int(product, 16),
                "description": description.strip() or None,
            }
            continue

        # Descriptor lines before the first device have nowhere to go
        if current is None:
            continue

        match = STRING_DESCRIPTOR_PATTERN.match(line)
        if match:
            name, _index, value = match.groups()
            value = value.strip()
            if value:
                current[STRING_DESCRIPTOR_FIELDS[name]] = value

    if current is not None:
        devices.append(USBDevice(**current))

    return devices


def list_usb_devices(verbose: bool = True, timeout: float = DEFAULT_TIMEOUT) -> list[USBDevice]:
    """List all connected USB devices using lsusb.

    Raises:
        DeviceListError: lsusb is missing, timed out or exited non-zero
    """
    cmd = ["lsusb", "-v"] if verbose else ["lsusb"]

    try:
        result = subprocess.run(
            cmd,
            capture_output=True,
            text=True,
            timeout=timeout,
        )
    except FileNotFoundError as e:
        raise DeviceListError(f"Failed to list USB devices: {e}") from e
    except subprocess.TimeoutExpired as e:
        raise DeviceListError(f"Failed to list USB devices: lsusb timed out after {timeout}s") from e
    except subprocess.SubprocessError as e:
        raise DeviceListError(f"Failed to list USB devices: {e}") from e

    if result.returncode != 0:
        detail = (result.stderr or "").strip() or f"exit code {result.returncode}"
        raise DeviceListError(f"Failed to list USB devices: {detail}")

    if result.stderr and result.stderr.strip():
        # Usually "Couldn't open device, some information will be missing"
        logger.warning(f"lsusb reported: {result.stderr.strip()}")

    devices = parse_lsusb_output(result.stdout or "")
    logger.debug(f"lsusb found {len(devices)} devices")
    return devices

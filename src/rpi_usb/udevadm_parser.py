"""
Query udevadm for USB-serial device nodes.

Each /dev/ttyUSB* and /dev/ttyACM* node is looked up with
`udevadm info -q all -n <node>` and its E: property lines are parsed.
"""

from __future__ import annotations
import glob
import logging
import re
import subprocess
from typing import Iterable, Optional

from .models import SERIAL_PROPERTIES, SerialDevice

logger = logging.getLogger(__name__)

DEFAULT_GLOBS = ("/dev/ttyUSB*", "/dev/ttyACM*")
DEFAULT_TIMEOUT = 10.0

PROPERTY_PATTERN = re.compile(r"^E: (\w+)=([^\n\r]+)")

_TRACKED = frozenset(SERIAL_PROPERTIES)


def process_devlinks(devlinks: str) -> str:
    """Drop the /dev/serial/by-* links, keeping the others in order."""
    if not devlinks:
        return ""
    return " ".join(
        link for link in devlinks.split(" ")
        if link and not link.startswith("/dev/serial")
    )


def parse_udevadm_output(output: str) -> Optional[SerialDevice]:
    """Parse `udevadm info -q all` output.

    Returns None when the output has no DEVNAME property.
    """
    properties: dict[str, str] = {}

    for line in output.splitlines():
        match = PROPERTY_PATTERN.match(line)
        if not match:
            continue
        key, value = match.groups()
        if key in _TRACKED:
            properties[key] = value

    if not properties.get("DEVNAME"):
        return None

    if properties.get("DEVLINKS"):
        properties["DEVLINKS"] = process_devlinks(properties["DEVLINKS"])

    return SerialDevice.from_properties(properties)


def query_device(node: str, timeout: float = DEFAULT_TIMEOUT) -> str:
    """Return raw udevadm info output for a device node."""
    result = subprocess.run(
        ["udevadm", "info", "-q", "all", "-n", node],
        capture_output=True,
        text=True,
        timeout=timeout,
        check=True,
    )
    return result.stdout


def find_serial_nodes(globs: Iterable[str] = DEFAULT_GLOBS) -> list[str]:
    """Expand device node globs, sorted within each pattern."""
    nodes: list[str] = []
    for pattern in globs:
        for node in sorted(glob.glob(pattern)):
            if node not in nodes:
                nodes.append(node)
    return nodes


def list_serial_devices(
    globs: Iterable[str] = DEFAULT_GLOBS,
    timeout: float = DEFAULT_TIMEOUT,
) -> list[SerialDevice]:
    """List USB-serial devices. Nodes udevadm cannot describe are skipped."""
    devices: list[SerialDevice] = []

    for node in find_serial_nodes(globs):
        try:
            output = query_device(node, timeout=timeout)
        except (OSError, subprocess.SubprocessError) as e:
            logger.debug(f"Skipping {node}: {e}")
            continue

        device = parse_udevadm_output(output)
        if device:
            devices.append(device)

    return devices

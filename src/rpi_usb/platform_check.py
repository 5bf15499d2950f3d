"""
Platform guard. The package shells out to Linux-only utilities.
"""

from __future__ import annotations
import logging
import sys

from .exceptions import UnsupportedPlatformError

logger = logging.getLogger(__name__)

UNSUPPORTED_MESSAGE = "This package is designed to run on Linux/Raspberry Pi only"


def is_linux() -> bool:
    """Check if the current platform is Linux."""
    return sys.platform.startswith("linux")


def ensure_linux() -> None:
    """Raise UnsupportedPlatformError unless running on Linux."""
    if not is_linux():
        logger.error(f"Unsupported platform: {sys.platform}")
        raise UnsupportedPlatformError(UNSUPPORTED_MESSAGE)

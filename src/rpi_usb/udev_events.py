"""
Read kernel device events from `udevadm monitor`.

The monitor is run line-buffered through stdbuf so each event arrives as
soon as udev has processed it.
"""

from __future__ import annotations
import logging
import re
import subprocess
import threading
from dataclasses import dataclass
from typing import Iterable, Iterator, Optional

from .exceptions import MonitorError

logger = logging.getLogger(__name__)

# "UDEV  [12345.678901] add      /devices/pci0000:00/.../usb1/1-1 (usb)"
EVENT_PATTERN = re.compile(
    r"^(UDEV|KERNEL)\s*\[\d+\.\d+\]\s+(add|remove)\s+(\S+)(?:\s+\((\w+)\))?"
)


@dataclass
class UdevEvent:
    """An add or remove event from udevadm monitor."""
    source: str
    action: str
    devpath: str
    subsystem: Optional[str] = None


def parse_udev_event(line: str) -> Optional[UdevEvent]:
    """Parse a single monitor line. Returns None for anything but add/remove."""
    match = EVENT_PATTERN.match(line.strip())
    if not match:
        return None

    source, action, devpath, subsystem = match.groups()
    return UdevEvent(
        source=source.lower(),
        action=action,
        devpath=devpath,
        subsystem=subsystem,
    )


def build_monitor_command(subsystems: Iterable[str]) -> list[str]:
    """Build the line-buffered udevadm monitor command."""
    cmd = ["stdbuf", "-oL", "udevadm", "monitor", "--udev"]
    cmd.extend(f"--subsystem-match={s}" for s in subsystems)
    return cmd


class UdevMonitorProcess:
    """Wraps a running `udevadm monitor` child process."""

    def __init__(self, subsystems: Iterable[str]):
        self.command = build_monitor_command(subsystems)
        self._process: Optional[subprocess.Popen] = None
        self._stderr_thread: Optional[threading.Thread] = None

    @property
    def running(self) -> bool:
        return self._process is not None and self._process.poll() is None

    @property
    def returncode(self) -> Optional[int]:
        if self._process is None:
            return None
        return self._process.poll()

    def start(self) -> None:
        """Spawn the monitor process."""
        if self.running:
            return

        try:
            self._process = subprocess.Popen(
                self.command,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                text=True,
                bufsize=1,
            )
        except OSError as e:
            raise MonitorError(f"Failed to start USB monitoring: {e}") from e

        logger.debug(f"Started {' '.join(self.command)} (pid {self._process.pid})")

        self._stderr_thread = threading.Thread(
            target=self._drain_stderr,
            args=(self._process,),
            name="udevadm-stderr",
            daemon=True,
        )
        self._stderr_thread.start()

    def _drain_stderr(self, process: subprocess.Popen) -> None:
        """Log stderr lines (runs in thread)."""
        if process.stderr is None:
            return
        for line in process.stderr:
            line = line.strip()
            if line:
                logger.error(f"Udev monitor error: {line}")

    def lines(self) -> Iterator[str]:
        """Yield stdout lines until the process exits or is terminated."""
        process = self._process
        if process is None or process.stdout is None:
            return
        for line in process.stdout:
            yield line.rstrip("\n")

    def wait(self, timeout: Optional[float] = None) -> Optional[int]:
        if self._process is None:
            return None
        try:
            return self._process.wait(timeout=timeout)
        except subprocess.TimeoutExpired:
            return None

    def terminate(self) -> None:
        """Stop the monitor process."""
        process = self._process
        if process is None:
            return

        if process.poll() is None:
            process.terminate()
            try:
                process.wait(timeout=2)
            except subprocess.TimeoutExpired:
                logger.warning("udevadm monitor did not exit, killing it")
                process.kill()
                process.wait()

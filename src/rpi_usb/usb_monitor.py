"""
USB device monitoring driven by udevadm events.

Listens to `udevadm monitor`, re-lists devices after every add/remove event
and reports attach/detach transitions to registered callbacks.
"""

from __future__ import annotations
import asyncio
import logging
import threading
import time
from typing import Callable, Optional

from .device_tracker import DeviceTracker
from .exceptions import RPiUSBError
from .lsusb_parser import list_usb_devices
from .models import DeviceChangeEvent, MonitorConfig, SerialDevice, USBDevice
from .platform_check import ensure_linux
from .udev_events import UdevMonitorProcess, parse_udev_event
from .udevadm_parser import list_serial_devices

logger = logging.getLogger(__name__)

DeviceChangeCallback = Callable[[DeviceChangeEvent], None]


class DeviceMonitor:
    """Base monitor: udev event loop plus snapshot reconciliation.

    Subclasses provide list_devices(), device_key() and the udev subsystems
    to listen on.
    """

    name = "device"

    def __init__(self, config: Optional[MonitorConfig] = None, auto_start: bool = False):
        ensure_linux()
        self.config = config or MonitorConfig()
        self.auto_start = auto_start
        self.tracker: DeviceTracker = DeviceTracker(self.device_key)
        self._callbacks: list[DeviceChangeCallback] = []
        self._process: Optional[UdevMonitorProcess] = None
        self._thread: Optional[threading.Thread] = None
        self._running = False
        self._stop_event = threading.Event()

    @property
    def subsystems(self) -> list[str]:
        raise NotImplementedError

    def list_devices(self) -> list:
        raise NotImplementedError

    def device_key(self, device) -> str:
        raise NotImplementedError

    @property
    def is_monitoring(self) -> bool:
        return self._running

    @property
    def devices(self) -> list:
        """Devices currently known to the monitor."""
        return self.tracker.devices

    def register_callback(self, callback: DeviceChangeCallback) -> None:
        """Register a callback for device change events."""
        self._callbacks.append(callback)

        if self.auto_start and len(self._callbacks) == 1:
            self.start()

    def unregister_callback(self, callback: DeviceChangeCallback) -> None:
        """Unregister a callback."""
        if callback in self._callbacks:
            self._callbacks.remove(callback)

        if self.auto_start and not self._callbacks:
            self.stop()

    def _emit_event(self, event: DeviceChangeEvent) -> None:
        """Emit event to all registered callbacks."""
        event.timestamp = time.time()
        for callback in list(self._callbacks):
            try:
                callback(event)
            except Exception as e:
                logger.exception(f"Error in device change callback: {e}")

    def _take_snapshot(self) -> None:
        devices = self.list_devices()
        self.tracker.reset(devices)
        logger.info(f"Found {len(self.tracker)} {self.name} devices")

    def _open(self) -> None:
        """Snapshot current devices and spawn udevadm."""
        logger.info(f"Monitoring {self.name} devices...")
        self._take_snapshot()
        self._process = UdevMonitorProcess(self.subsystems)
        self._process.start()

    def start(self) -> None:
        """Start monitoring in a background thread."""
        if self._running:
            return

        self._stop_event.clear()
        self._open()
        self._running = True

        self._thread = threading.Thread(
            target=self._monitor_loop,
            name=f"{self.name}-monitor",
            daemon=True,
        )
        self._thread.start()

    def run(self) -> None:
        """Monitor in the calling thread until stop() is called."""
        if self._running:
            return

        self._stop_event.clear()
        self._open()
        self._running = True
        self._monitor_loop()

    async def start_monitoring(self) -> None:
        """Start monitoring asynchronously."""
        loop = asyncio.get_running_loop()
        await loop.run_in_executor(None, self.run)

    def _monitor_loop(self) -> None:
        """Blocking monitor loop (runs in thread)."""
        while self._running:
            process = self._process
            if process is None:
                break

            for line in process.lines():
                if not self._running:
                    break
                self.handle_event_line(line)

            if not self._running:
                break

            returncode = process.wait(timeout=2)
            if returncode == 0:
                logger.info("Udev monitor exited")
                self._running = False
                break

            logger.error(f"Udev monitor closed unexpectedly (exit code {returncode})")
            if not self._restart():
                break

    def _restart(self) -> bool:
        """Restart udevadm after restart_delay. Returns False when stopped."""
        if self._process:
            self._process.terminate()

        if self._stop_event.wait(self.config.restart_delay):
            return False

        try:
            self._open()
        except RPiUSBError as e:
            logger.error(f"Failed to restart monitoring: {e}")
            self._running = False
            return False

        # stop() may have run while the snapshot was being taken
        if not self._running or self._stop_event.is_set():
            if self._process:
                self._process.terminate()
                self._process = None
            self.tracker.clear()
            return False

        logger.info("Udev monitor restarted")
        return True

    def handle_event_line(self, line: str) -> list[DeviceChangeEvent]:
        """Process one udevadm monitor line and emit resulting changes."""
        udev_event = parse_udev_event(line)
        if udev_event is None:
            return []

        logger.debug(f"udev {udev_event.action} {udev_event.devpath}")

        # Let the system settle after the udev event
        if self.config.settle_delay and self._stop_event.wait(self.config.settle_delay):
            return []

        try:
            observed = self.list_devices()
        except RPiUSBError as e:
            logger.error(f"Error handling device change: {e}")
            return []

        events = self.tracker.reconcile(observed, action=udev_event.action)
        for event in events:
            logger.info(f"Device {event.type.value}: {event.device.display_name}")
            self._emit_event(event)

        return events

    def stop(self) -> None:
        """Stop monitoring."""
        if not self._running:
            return

        self._running = False
        self._stop_event.set()

        if self._process:
            self._process.terminate()
            self._process = None

        if self._thread and self._thread is not threading.current_thread():
            self._thread.join(timeout=5)
        self._thread = None

        self.tracker.clear()
        logger.info(f"{self.name} device monitoring stopped")


class SerialDeviceMonitor(DeviceMonitor):
    """Monitors /dev/ttyUSB* and /dev/ttyACM* devices."""

    name = "serial"

    @property
    def subsystems(self) -> list[str]:
        return self.config.serial_subsystems

    def list_devices(self) -> list[SerialDevice]:
        return list_serial_devices(self.config.serial_globs, timeout=self.config.command_timeout)

    def device_key(self, device: SerialDevice) -> str:
        # Full sysfs path of the tty node
        return device.devpath


class USBDeviceMonitor(DeviceMonitor):
    """Monitors every USB device lsusb can see."""

    name = "USB"

    @property
    def subsystems(self) -> list[str]:
        return self.config.usb_subsystems

    def list_devices(self) -> list[USBDevice]:
        """List all connected USB devices."""
        return list_usb_devices(verbose=True, timeout=self.config.command_timeout)

    def device_key(self, device: USBDevice) -> str:
        return device.unique_id

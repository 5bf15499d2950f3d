"""
Pydantic models for USB devices and change events.

Defines the data structures used throughout the package for representing
devices reported by lsusb and udevadm, and the attach/detach events built
from them.
"""

from __future__ import annotations
from typing import Optional, Union
from pydantic import BaseModel, Field
from enum import Enum


# udev properties kept for USB-serial devices, in output order
SERIAL_PROPERTIES = (
    "DEVNAME",
    "DEVPATH",
    "DEVLINKS",
    "SUBSYSTEM",
    "ID_BUS",
    "ID_VENDOR",
    "ID_VENDOR_ID",
    "ID_MODEL",
    "ID_MODEL_ID",
    "ID_SERIAL",
    "ID_SERIAL_SHORT",
    "ID_REVISION",
    "ID_USB_DRIVER",
    "ID_USB_INTERFACE_NUM",
    "ID_PATH",
    "MAJOR",
    "MINOR",
)


class USBDevice(BaseModel):
    """A USB device as reported by lsusb."""

    # Identification
    bus: int = Field(description="USB bus number")
    device_address: int = Field(description="Device number on the bus")

    # USB IDs
    vendor_id: int = Field(description="Vendor ID")
    product_id: int = Field(description="Product ID")

    # String descriptors (lsusb -v only)
    manufacturer: Optional[str] = Field(default=None, description="iManufacturer string")
    product: Optional[str] = Field(default=None, description="iProduct string")
    serial_number: Optional[str] = Field(default=None, description="iSerial string")

    # Trailing text of the summary line, from the usb.ids database
    description: Optional[str] = Field(default=None, description="lsusb description")

    @property
    def vendor_id_hex(self) -> str:
        return f"{self.vendor_id:04x}"

    @property
    def product_id_hex(self) -> str:
        return f"{self.product_id:04x}"

    @property
    def unique_id(self) -> str:
        """Unique identifier for this device instance."""
        return f"{self.bus:03d}:{self.device_address:03d}"

    @property
    def display_name(self) -> str:
        """Get the best available name for display."""
        if self.product:
            return self.product
        if self.description:
            return self.description
        if self.manufacturer:
            return self.manufacturer
        return f"{self.vendor_id_hex}:{self.product_id_hex}"

    def model_dump_for_output(self) -> dict:
        """Serialize with computed properties included."""
        data = self.model_dump()
        data["vendor_id_hex"] = self.vendor_id_hex
        data["product_id_hex"] = self.product_id_hex
        data["unique_id"] = self.unique_id
        data["display_name"] = self.display_name
        return data


class SerialDevice(BaseModel):
    """A USB-serial device node as reported by `udevadm info`.

    Every tracked property is present; missing ones are empty strings.
    """

    devname: str = ""
    devpath: str = ""
    devlinks: str = ""
    subsystem: str = ""
    id_bus: str = ""
    id_vendor: str = ""
    id_vendor_id: str = ""
    id_model: str = ""
    id_model_id: str = ""
    id_serial: str = ""
    id_serial_short: str = ""
    id_revision: str = ""
    id_usb_driver: str = ""
    id_usb_interface_num: str = ""
    id_path: str = ""
    major: str = ""
    minor: str = ""

    @classmethod
    def from_properties(cls, properties: dict[str, str]) -> SerialDevice:
        """Build from upper-case udev property names."""
        return cls(**{key.lower(): properties.get(key, "") for key in SERIAL_PROPERTIES})

    def to_properties(self) -> dict[str, str]:
        """Return the udev property mapping."""
        return {key: getattr(self, key.lower()) for key in SERIAL_PROPERTIES}

    @property
    def display_name(self) -> str:
        if self.id_vendor and self.id_model:
            return f"{self.id_vendor} {self.id_model}"
        if self.id_model:
            return self.id_model
        return self.devname

    def model_dump_for_output(self) -> dict:
        data = self.to_properties()
        data["display_name"] = self.display_name
        return data


class ChangeType(str, Enum):
    """Types of device transitions."""
    ATTACH = "attach"
    DETACH = "detach"


class DeviceChangeEvent(BaseModel):
    """A single attach or detach of one device."""

    type: ChangeType
    device: Union[USBDevice, SerialDevice]
    timestamp: float = Field(default=0.0)

    def to_message(self) -> dict:
        """Convert to a JSON-friendly message."""
        return {
            "type": self.type.value,
            "timestamp": self.timestamp,
            "data": self.device.model_dump_for_output(),
        }


class MonitorConfig(BaseModel):
    """Monitor configuration."""

    settle_delay: float = Field(default=0.1, ge=0, description="Seconds to wait after a udev event")
    restart_delay: float = Field(default=1.0, ge=0, description="Seconds before restarting udevadm")
    command_timeout: float = Field(default=10.0, gt=0, description="Timeout for lsusb/udevadm queries")
    serial_globs: list[str] = Field(default_factory=lambda: ["/dev/ttyUSB*", "/dev/ttyACM*"])
    serial_subsystems: list[str] = Field(default_factory=lambda: ["tty", "usb"])
    usb_subsystems: list[str] = Field(default_factory=lambda: ["usb"])
    log_level: str = Field(default="INFO")

#!/usr/bin/env python3
"""
Unit tests for src/rpi_usb/lsusb_parser.py

Tests lsusb output parsing and subprocess error handling.
"""

import subprocess
import unittest
from pathlib import Path
from unittest.mock import patch, MagicMock

import sys
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from rpi_usb.exceptions import DeviceListError
from rpi_usb.lsusb_parser import list_usb_devices, parse_lsusb_output


PLAIN_OUTPUT = """
Bus 001 Device 001: ID 1d6b:0002 Linux Foundation 2.0 root hub
Bus 002 Device 001: ID 1d6b:0002 Linux Foundation 2.0 root hub
Bus 001 Device 002: ID 0424:9514 Standard Microsystems Corp. 
Bus 001 Device 003: ID 0424:ec00 Standard Microsystems Corp. 
Bus 001 Device 004: ID 0bda:8179 Realtek Semiconductor Corp. RTL8188EUS 802.11n Wireless Network Adapter
"""

VERBOSE_OUTPUT = """
Bus 001 Device 001: ID 1d6b:0002 Linux Foundation 2.0 root hub
Device Descriptor:
  bLength                18
  idVendor           0x1d6b Linux Foundation
  idProduct          0x0002 2.0 root hub
  iManufacturer           3 Linux 6.1.21-v8+ dwc_otg_hcd
  iProduct                2 DWC OTG Controller
  iSerial                 1 3f980000.usb
  Configuration Descriptor:
    bmAttributes         0xe0
      Self Powered
      Remote Wakeup
    iConfiguration          0 

Bus 001 Device 005: ID 2341:0043 Arduino SA Uno R3 (CDC ACM)
Device Descriptor:
  iManufacturer           1 Arduino (www.arduino.cc)
  iProduct                2 
  iSerial               220 85736323838351F0E1C1
  Configuration Descriptor:
    bmAttributes         0x80
      (Bus Powered)
    MaxPower              100mA
"""


class TestParseLsusbOutput(unittest.TestCase):
    """Test parse_lsusb_output."""

    def test_plain_output(self):
        """Test one device per summary line."""
        devices = parse_lsusb_output(PLAIN_OUTPUT)

        self.assertEqual(len(devices), 5)
        self.assertEqual(devices[0].vendor_id, 0x1d6b)
        self.assertEqual(devices[0].product_id, 0x0002)
        self.assertEqual(devices[0].device_address, 1)
        self.assertEqual(devices[0].bus, 1)
        self.assertEqual(devices[1].bus, 2)
        self.assertIsNone(devices[0].manufacturer)
        self.assertEqual(devices[4].description,
                         "Realtek Semiconductor Corp. RTL8188EUS 802.11n Wireless Network Adapter")

    def test_verbose_string_descriptors(self):
        """Test iManufacturer/iProduct/iSerial drop the descriptor index."""
        devices = parse_lsusb_output(VERBOSE_OUTPUT)

        self.assertEqual(len(devices), 2)
        hub = devices[0]
        self.assertEqual(hub.manufacturer, "Linux 6.1.21-v8+ dwc_otg_hcd")
        self.assertEqual(hub.product, "DWC OTG Controller")
        self.assertEqual(hub.serial_number, "3f980000.usb")

    def test_empty_descriptor_left_unset(self):
        """Test an iProduct with no string stays None."""
        arduino = parse_lsusb_output(VERBOSE_OUTPUT)[1]

        self.assertEqual(arduino.manufacturer, "Arduino (www.arduino.cc)")
        self.assertIsNone(arduino.product)
        self.assertEqual(arduino.serial_number, "85736323838351F0E1C1")
        self.assertEqual(arduino.display_name, "Arduino SA Uno R3 (CDC ACM)")

    def test_bus_powered_line_not_a_device(self):
        """Test "(Bus Powered)" does not start a new device."""
        devices = parse_lsusb_output(VERBOSE_OUTPUT)
        self.assertEqual([d.device_address for d in devices], [1, 5])

    def test_descriptors_before_first_device_ignored(self):
        """Test stray descriptor lines before any Bus line."""
        output = "  iProduct    2 Orphan\n" + PLAIN_OUTPUT
        devices = parse_lsusb_output(output)
        self.assertEqual(len(devices), 5)
        self.assertIsNone(devices[0].product)

    def test_empty_output(self):
        """Test empty output yields no devices."""
        self.assertEqual(parse_lsusb_output(""), [])

    def test_unique_id_and_hex(self):
        """Test computed identifiers."""
        device = parse_lsusb_output(PLAIN_OUTPUT)[4]
        self.assertEqual(device.unique_id, "001:004")
        self.assertEqual(device.vendor_id_hex, "0bda")
        self.assertEqual(device.product_id_hex, "8179")


class TestListUsbDevices(unittest.TestCase):
    """Test list_usb_devices subprocess handling."""

    @patch('rpi_usb.lsusb_parser.subprocess.run')
    def test_runs_lsusb_verbose(self, mock_run):
        """Test lsusb -v is invoked and parsed."""
        mock_run.return_value = MagicMock(returncode=0, stdout=PLAIN_OUTPUT, stderr="")

        devices = list_usb_devices()

        self.assertEqual(len(devices), 5)
        self.assertEqual(mock_run.call_args[0][0], ["lsusb", "-v"])

    @patch('rpi_usb.lsusb_parser.subprocess.run')
    def test_runs_plain_lsusb(self, mock_run):
        """Test verbose=False uses plain lsusb."""
        mock_run.return_value = MagicMock(returncode=0, stdout=PLAIN_OUTPUT, stderr="")

        list_usb_devices(verbose=False)

        self.assertEqual(mock_run.call_args[0][0], ["lsusb"])

    @patch('rpi_usb.lsusb_parser.subprocess.run')
    def test_command_failure(self, mock_run):
        """Test non-zero exit raises DeviceListError."""
        mock_run.return_value = MagicMock(returncode=1, stdout="", stderr="lsusb command failed")

        with self.assertRaises(DeviceListError) as ctx:
            list_usb_devices()

        self.assertEqual(str(ctx.exception), "Failed to list USB devices: lsusb command failed")

    @patch('rpi_usb.lsusb_parser.subprocess.run')
    def test_missing_binary(self, mock_run):
        """Test missing lsusb raises DeviceListError."""
        mock_run.side_effect = FileNotFoundError("No such file or directory: 'lsusb'")

        with self.assertRaises(DeviceListError):
            list_usb_devices()

    @patch('rpi_usb.lsusb_parser.subprocess.run')
    def test_timeout(self, mock_run):
        """Test timeout raises DeviceListError."""
        mock_run.side_effect = subprocess.TimeoutExpired(cmd="lsusb", timeout=1)

        with self.assertRaises(DeviceListError):
            list_usb_devices(timeout=1)

    @patch('rpi_usb.lsusb_parser.subprocess.run')
    def test_stderr_warning_still_parses(self, mock_run):
        """Test stderr with exit 0 is logged, not fatal."""
        mock_run.return_value = MagicMock(
            returncode=0,
            stdout=PLAIN_OUTPUT,
            stderr="Couldn't open device, some information will be missing\n",
        )

        with self.assertLogs('rpi_usb.lsusb_parser', level='WARNING'):
            devices = list_usb_devices()

        self.assertEqual(len(devices), 5)


if __name__ == '__main__':
    unittest.main()

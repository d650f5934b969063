"""Tests for sercon/ports.py — port ordering and discovery."""

from types import SimpleNamespace

import pytest

from sercon import ports
from sercon.mocks import MockChannelDriver


class TestPortOrdering:
    @pytest.mark.parametrize("name, number", [
        ("COM3", 3),
        ("COM12", 12),
        ("/dev/ttyUSB10", 10),
        ("/dev/ttyS0", 0),
        ("/dev/cu.usbmodem1421", 1421),
        ("/dev/tty.Bluetooth-Incoming-Port", -1),
    ])
    def test_extract_port_number(self, name, number):
        assert ports.extract_port_number(name) == number

    def test_natural_sort(self):
        names = ["COM10", "COM2", "COM1"]
        assert sorted(names, key=ports.port_sort_key) == ["COM1", "COM2", "COM10"]

    def test_groups_by_prefix(self):
        names = ["/dev/ttyUSB10", "/dev/ttyS1", "/dev/ttyUSB2", "/dev/ttyACM0"]
        assert sorted(names, key=ports.port_sort_key) == [
            "/dev/ttyACM0", "/dev/ttyS1", "/dev/ttyUSB2", "/dev/ttyUSB10",
        ]


class TestDiscovery:
    def test_list_ports_from_driver(self):
        driver = MockChannelDriver(ports=["COM11", "COM3"])
        assert ports.list_ports(driver) == ["COM3", "COM11"]

    def test_is_port_available(self):
        driver = MockChannelDriver()
        driver.set_available_ports(["/dev/ttyUSB0"])
        assert ports.is_port_available("/dev/ttyUSB0", driver)
        assert not ports.is_port_available("/dev/ttyUSB1", driver)

    def test_list_port_details(self, monkeypatch):
        fake = [
            SimpleNamespace(device="/dev/ttyUSB1", description="CP2102", hwid="USB VID:PID=10C4:EA60",
                            vid=0x10C4, pid=0xEA60, serial_number="0001", product="CP2102 USB to UART"),
            SimpleNamespace(device="/dev/ttyS0", description=None, hwid=None,
                            vid=None, pid=None, serial_number=None, product=None),
        ]
        monkeypatch.setattr(ports.serial.tools.list_ports, "comports", lambda: fake)

        details = ports.list_port_details()

        assert [d.device for d in details] == ["/dev/ttyS0", "/dev/ttyUSB1"]
        usb = details[1]
        assert usb.is_usb
        assert (usb.vid, usb.pid) == ("10C4", "EA60")
        assert usb.serial_number == "0001"
        assert details[0].description == ""
        assert not details[0].is_usb

    def test_list_ports_uses_pyserial_by_default(self, monkeypatch):
        fake = [SimpleNamespace(device="COM4"), SimpleNamespace(device="COM1")]
        monkeypatch.setattr(ports.serial.tools.list_ports, "comports", lambda: fake)
        assert ports.list_ports() == ["COM1", "COM4"]

"""Serial port discovery helpers.

Contains:
- port_sort_key: natural ordering for COMn and /dev/ttyXXn names
- list_ports: sorted endpoint ids from a driver
- list_port_details: sorted PortInfo records from pyserial
- is_port_available: whether an endpoint is currently present
"""

from __future__ import annotations

import logging
import re
from typing import List, Optional, Tuple

import serial.tools.list_ports

from .interfaces import ChannelDriverInterface, PortInfo

logger = logging.getLogger(__name__)

_TRAILING_NUMBER = re.compile(r"(\d+)$")


def extract_port_number(name: str) -> int:
    """Number at the end of a port name (COM3 -> 3, /dev/ttyUSB10 -> 10), else -1."""
    if name.upper().startswith("COM") and name[3:].isdigit():
        return int(name[3:])
    last_part = name.rsplit("/", 1)[-1]
    match = _TRAILING_NUMBER.search(last_part)
    return int(match.group(1)) if match else -1


def port_sort_key(name: str) -> Tuple[str, int, str]:
    """Sort key grouping by prefix, then by trailing number, then by name."""
    match = _TRAILING_NUMBER.search(name)
    if match is None:
        return (name, -1, name)
    return (name[: match.start()], int(match.group(1)), name)


def list_ports(driver: Optional[ChannelDriverInterface] = None) -> List[str]:
    """Available endpoint ids in natural order."""
    if driver is None:
        names = [p.device for p in serial.tools.list_ports.comports()]
    else:
        names = driver.list_ports()
    return sorted(names, key=port_sort_key)


def list_port_details() -> List[PortInfo]:
    """Available ports with USB metadata where pyserial provides it."""
    ports = []
    for p in serial.tools.list_ports.comports():
        is_usb = p.vid is not None
        ports.append(PortInfo(
            device=p.device,
            description=p.description or "",
            hwid=p.hwid or "",
            is_usb=is_usb,
            vid=f"{p.vid:04X}" if is_usb else None,
            pid=f"{p.pid:04X}" if p.pid is not None else None,
            serial_number=p.serial_number,
            product=p.product,
        ))
    ports.sort(key=lambda info: port_sort_key(info.device))
    logger.debug("Found %d serial ports", len(ports))
    return ports


def is_port_available(name: str, driver: Optional[ChannelDriverInterface] = None) -> bool:
    return name in list_ports(driver)

"""
Real implementations of interfaces for production use.

These classes wrap actual system resources (serial ports, wall clock)
and implement the abstract interfaces.
"""

from __future__ import annotations

import time
from typing import List

import serial
import serial.tools.list_ports

from .classifier import error_kind_of
from .errors import DriverError, ErrorKind
from .interfaces import ChannelDriverInterface, ClockInterface, ConnectionConfig

_PARITIES = {
    "none": serial.PARITY_NONE,
    "odd": serial.PARITY_ODD,
    "even": serial.PARITY_EVEN,
    "mark": serial.PARITY_MARK,
    "space": serial.PARITY_SPACE,
}

_STOP_BITS = {
    1: serial.STOPBITS_ONE,
    2: serial.STOPBITS_TWO,
}


def _pyserial_timeout(timeout: float):
    # pyserial: None blocks, 0 is non-blocking. A zero timeout here means "not set".
    return timeout if timeout and timeout > 0 else None


def _driver_error(operation: str, endpoint: str, error: Exception) -> DriverError:
    if isinstance(error, serial.SerialTimeoutException):
        kind = ErrorKind.TIMEOUT
    else:
        kind = error_kind_of(error)
    return DriverError(
        f"serial {operation} failed on {endpoint}: {error}",
        kind=kind,
        endpoint=endpoint,
        cause=error,
    )


class PySerialDriver(ChannelDriverInterface):
    """
    Channel driver backed by pyserial.

    Endpoints go through serial.serial_for_url(), so plain device paths and
    pyserial URLs (loop://, socket://, rfc2217://) are both accepted. The
    handle is the serial.Serial instance.
    """

    def open(self, config: ConnectionConfig) -> serial.Serial:
        try:
            port = serial.serial_for_url(
                config.endpoint,
                do_not_open=True,
                baudrate=config.baud_rate,
                bytesize=config.data_bits,
                parity=_PARITIES.get(config.parity, serial.PARITY_NONE),
                stopbits=_STOP_BITS.get(config.stop_bits, serial.STOPBITS_ONE),
                timeout=_pyserial_timeout(config.timeout),
            )
            port.open()
        except (serial.SerialException, OSError, ValueError) as e:
            raise _driver_error("open", config.endpoint, e) from e
        return port

    def close(self, handle: serial.Serial) -> None:
        try:
            handle.close()
        except (serial.SerialException, OSError) as e:
            raise _driver_error("close", handle.port or "", e) from e

    def read(self, handle: serial.Serial, size: int) -> bytes:
        try:
            return handle.read(size)
        except (serial.SerialException, OSError) as e:
            raise _driver_error("read", handle.port or "", e) from e

    def write(self, handle: serial.Serial, data: bytes) -> int:
        try:
            return handle.write(data)
        except (serial.SerialException, OSError) as e:
            raise _driver_error("write", handle.port or "", e) from e

    def set_read_timeout(self, handle: serial.Serial, timeout: float) -> None:
        try:
            handle.timeout = _pyserial_timeout(timeout)
        except (serial.SerialException, OSError, ValueError) as e:
            raise _driver_error("set timeout", handle.port or "", e) from e

    def list_ports(self) -> List[str]:
        return [p.device for p in serial.tools.list_ports.comports()]


class RealClock(ClockInterface):
    """
    Real clock implementation using system time.
    """

    def monotonic(self) -> float:
        return time.monotonic()

    def sleep(self, seconds: float) -> None:
        time.sleep(seconds)

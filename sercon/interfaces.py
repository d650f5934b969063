"""
Interfaces for the sercon connection core.

Abstract base classes and value types that define the contracts between the
resilience layer and its collaborators (channel driver, clock). This enables
dependency injection and mock-based testing without hardware.
"""

from __future__ import annotations

import dataclasses
import sys
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Any, List, Optional


class ConnectionState(Enum):
    """Serial connection states."""
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    ERROR = "error"

    def __str__(self) -> str:
        return self.value


class Parity(str, Enum):
    """Parity modes accepted by a ConnectionConfig."""
    NONE = "none"
    ODD = "odd"
    EVEN = "even"
    MARK = "mark"
    SPACE = "space"


VALID_PARITIES = tuple(p.value for p in Parity)


@dataclass(frozen=True)
class ConnectionConfig:
    """
    Parameters identifying and configuring one serial channel.

    ``endpoint`` is a device path (``/dev/ttyUSB0``, ``COM3``) or any URL
    understood by pyserial (``loop://``, ``socket://host:port``).
    ``timeout`` is the read timeout in seconds; 0 means no timeout (blocking).
    """
    endpoint: str
    baud_rate: int = 115200
    data_bits: int = 8
    stop_bits: int = 1
    parity: str = Parity.NONE.value
    timeout: float = 5.0

    @classmethod
    def default(cls) -> "ConnectionConfig":
        """Platform default: 115200 8N1 with a 5 second read timeout."""
        endpoint = "COM1" if sys.platform.startswith("win") else "/dev/ttyUSB0"
        return cls(endpoint=endpoint)

    def with_timeout(self, timeout: float) -> "ConnectionConfig":
        return dataclasses.replace(self, timeout=timeout)

    def to_dict(self) -> dict:
        return dataclasses.asdict(self)


@dataclass
class PortInfo:
    """Information about an available serial port."""
    device: str
    description: str = ""
    hwid: str = ""
    is_usb: bool = False
    vid: Optional[str] = None
    pid: Optional[str] = None
    serial_number: Optional[str] = None
    product: Optional[str] = None


@dataclass
class ConnectionStats:
    """Counters kept by a ResilientConnection."""
    open_attempts: int = 0
    connects: int = 0
    reconnects: int = 0
    failed_opens: int = 0


class ChannelDriverInterface(ABC):
    """
    Abstract interface for the raw channel driver.

    The driver is stateless with respect to connections: ``open`` returns an
    opaque handle which the caller passes back for every other operation.
    Failures are raised as ``sercon.errors.DriverError`` carrying an
    ``ErrorKind``.

    Implementations:
    - PySerialDriver: Wraps pyserial for actual hardware
    - MockChannelDriver: For unit testing without hardware
    """

    @abstractmethod
    def open(self, config: ConnectionConfig) -> Any:
        """Open the endpoint described by config. Returns a handle."""
        pass

    @abstractmethod
    def close(self, handle: Any) -> None:
        """Release a handle returned by open()."""
        pass

    @abstractmethod
    def read(self, handle: Any, size: int) -> bytes:
        """Read up to size bytes, blocking until size bytes or the read timeout."""
        pass

    @abstractmethod
    def write(self, handle: Any, data: bytes) -> int:
        """Write data. Returns bytes written."""
        pass

    @abstractmethod
    def set_read_timeout(self, handle: Any, timeout: float) -> None:
        """Change the read timeout of an open handle (seconds, 0 = blocking)."""
        pass

    @abstractmethod
    def list_ports(self) -> List[str]:
        """List available endpoint ids."""
        pass


class ClockInterface(ABC):
    """
    Abstract interface for time operations.

    Enables deterministic testing of backoff waits.
    """

    @abstractmethod
    def monotonic(self) -> float:
        """Get a monotonic timestamp in seconds."""
        pass

    @abstractmethod
    def sleep(self, seconds: float) -> None:
        """Sleep for specified duration."""
        pass

    def wait(self, seconds: float, cancel: Optional[threading.Event] = None) -> bool:
        """
        Wait for seconds, returning early if cancel is set.

        Returns True if the wait was cancelled.
        """
        if cancel is None:
            self.sleep(seconds)
            return False
        return cancel.wait(seconds)

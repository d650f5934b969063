"""
Mock implementations for testing.

These classes implement the abstract interfaces with in-memory behavior
suitable for unit testing without hardware.
"""

from __future__ import annotations

import threading
from collections import deque
from dataclasses import dataclass, field
from typing import Deque, Iterable, List, Optional, Union

from .errors import DriverError, ErrorKind
from .interfaces import ChannelDriverInterface, ClockInterface, ConnectionConfig


@dataclass
class MockHandle:
    """Handle returned by MockChannelDriver.open()."""
    config: ConnectionConfig
    timeout: float
    closed: bool = False
    timeout_history: List[float] = field(default_factory=list)


class MockChannelDriver(ChannelDriverInterface):
    """
    Scripted in-memory channel driver.

    Open failures are queued with queue_open_failures(); each open() call
    consumes one entry and raises it, and open() succeeds once the queue is
    empty (unless set_fail_on_open() is active). Received data is queued with
    inject_bytes(); in echo mode every write is looped back.
    """

    def __init__(self, ports: Optional[Iterable[str]] = None):
        self._open_failures: Deque[Exception] = deque()
        self._fail_on_open: Optional[Exception] = None
        self._fail_on_close: Optional[Exception] = None
        self._fail_on_read: Optional[Exception] = None
        self._fail_on_write: Optional[Exception] = None
        self._fail_on_set_timeout: Optional[Exception] = None
        self._short_write = False
        self._echo = False
        self._rx_buffer = bytearray()
        self._tx_buffer: List[bytes] = []
        self._ports = list(ports or [])
        self.open_calls: List[ConnectionConfig] = []
        self.close_calls = 0
        self.handles: List[MockHandle] = []

    def open(self, config: ConnectionConfig) -> MockHandle:
        self.open_calls.append(config)
        if self._open_failures:
            raise self._open_failures.popleft()
        if self._fail_on_open is not None:
            raise self._fail_on_open
        handle = MockHandle(config=config, timeout=config.timeout)
        self.handles.append(handle)
        return handle

    def close(self, handle: MockHandle) -> None:
        self.close_calls += 1
        if self._fail_on_close is not None:
            raise self._fail_on_close
        handle.closed = True

    def read(self, handle: MockHandle, size: int) -> bytes:
        self._check(handle)
        if self._fail_on_read is not None:
            raise self._fail_on_read
        data = bytes(self._rx_buffer[:size])
        del self._rx_buffer[:size]
        return data

    def write(self, handle: MockHandle, data: bytes) -> int:
        self._check(handle)
        if self._fail_on_write is not None:
            raise self._fail_on_write
        sent = data[:-1] if self._short_write and data else data
        self._tx_buffer.append(bytes(sent))
        if self._echo:
            self._rx_buffer.extend(sent)
        return len(sent)

    def set_read_timeout(self, handle: MockHandle, timeout: float) -> None:
        self._check(handle)
        if self._fail_on_set_timeout is not None:
            raise self._fail_on_set_timeout
        handle.timeout = timeout
        handle.timeout_history.append(timeout)

    def list_ports(self) -> List[str]:
        return list(self._ports)

    @staticmethod
    def _check(handle: MockHandle) -> None:
        if handle.closed:
            raise DriverError("handle is closed", kind=ErrorKind.UNKNOWN)

    # Test helper methods

    def queue_open_failures(self, *errors: Union[Exception, str]) -> None:
        """Queue failures for the next open() calls. Strings become DriverErrors."""
        for error in errors:
            if isinstance(error, str):
                error = DriverError(error)
            self._open_failures.append(error)

    def set_fail_on_open(self, error: Optional[Union[Exception, str]]) -> None:
        """Make every open() fail once the queue is drained (None to stop)."""
        if isinstance(error, str):
            error = DriverError(error)
        self._fail_on_open = error

    def set_fail_on_close(self, error: Optional[Exception]) -> None:
        self._fail_on_close = error

    def set_fail_on_read(self, error: Optional[Exception]) -> None:
        self._fail_on_read = error

    def set_fail_on_write(self, error: Optional[Exception]) -> None:
        self._fail_on_write = error

    def set_fail_on_set_timeout(self, error: Optional[Exception]) -> None:
        self._fail_on_set_timeout = error

    def set_short_write(self, short: bool) -> None:
        """Drop the last byte of every write."""
        self._short_write = short

    def set_echo(self, echo: bool) -> None:
        self._echo = echo

    def set_available_ports(self, ports: Iterable[str]) -> None:
        self._ports = list(ports)

    def inject_bytes(self, data: bytes) -> None:
        """Inject raw bytes into the receive buffer."""
        self._rx_buffer.extend(data)

    def get_sent(self) -> List[bytes]:
        """Get all data sent via write() (for testing)."""
        return self._tx_buffer.copy()

    @property
    def open_handles(self) -> List[MockHandle]:
        return [h for h in self.handles if not h.closed]


class MockClock(ClockInterface):
    """
    Controllable clock for testing.

    Sleeps are recorded and advance the clock instantly. cancel_after makes
    the Nth wait() report a cancellation, for testing cancellable backoff.
    """

    def __init__(self, start: float = 0.0, cancel_after: Optional[int] = None):
        self._now = start
        self._sleep_calls: List[float] = []
        self._cancel_after = cancel_after

    def monotonic(self) -> float:
        return self._now

    def sleep(self, seconds: float) -> None:
        self._sleep_calls.append(seconds)
        self._now += seconds

    def wait(self, seconds: float, cancel: Optional[threading.Event] = None) -> bool:
        if self._cancel_after is not None and len(self._sleep_calls) + 1 >= self._cancel_after:
            if cancel is not None:
                cancel.set()
        if cancel is not None and cancel.is_set():
            return True
        self.sleep(seconds)
        return False

    # Test helper methods

    def get_sleep_calls(self) -> List[float]:
        """Get list of all sleep() calls made."""
        return self._sleep_calls.copy()

    def clear_sleep_calls(self) -> None:
        """Clear recorded sleep calls."""
        self._sleep_calls.clear()

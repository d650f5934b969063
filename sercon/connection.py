"""
Connection: exclusive owner of one channel handle.

Tracks the connection state and the last error, and guarantees the handle is
dropped on every close path so it can never leak.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from .classifier import error_kind_of
from .endpoint_lock import EndpointLock
from .errors import (
    AlreadyOpenError,
    CloseError,
    DriverError,
    ErrorKind,
    NotOpenError,
    OpenError,
)
from .interfaces import ChannelDriverInterface, ConnectionConfig, ConnectionState
from .validation import validate_config

logger = logging.getLogger(__name__)


class Connection:
    """
    One serial channel and its state.

    Usage:
        with Connection(PySerialDriver()) as conn:
            conn.open(config)
            conn.write(b"AT\\r\\n")
            reply = conn.read(16)

    State only changes through open() and close(). At most one handle is held
    at any time; open() on an open connection raises AlreadyOpenError and
    leaves the existing handle untouched.
    """

    def __init__(self, driver: ChannelDriverInterface, use_lock: bool = False):
        self._driver = driver
        self._use_lock = use_lock
        self._handle: Any = None
        self._lock: Optional[EndpointLock] = None
        self._config: Optional[ConnectionConfig] = None
        self._state = ConnectionState.DISCONNECTED
        self._last_error: Optional[BaseException] = None

    @property
    def driver(self) -> ChannelDriverInterface:
        return self._driver

    @property
    def state(self) -> ConnectionState:
        """Current connection state."""
        return self._state

    @property
    def config(self) -> Optional[ConnectionConfig]:
        """Configuration of the last successful open, None if never opened."""
        return self._config

    @property
    def last_error(self) -> Optional[BaseException]:
        """Error that moved the connection to ERROR, else None."""
        return self._last_error

    @property
    def is_open(self) -> bool:
        return self._handle is not None

    @property
    def read_timeout(self) -> float:
        """Read timeout currently applied to the handle (seconds)."""
        if self._config is None:
            raise NotOpenError("connection has never been opened")
        return self._config.timeout

    def open(self, config: ConnectionConfig) -> None:
        """
        Open the channel described by config.

        Raises:
            AlreadyOpenError: A handle is already held.
            ValidationError: config breaks a static rule (state unchanged).
            OpenError: The driver could not open the endpoint (state ERROR).
        """
        if self.is_open:
            raise AlreadyOpenError(f"connection to {self._config.endpoint} is already open")
        validate_config(config)

        self._state = ConnectionState.CONNECTING
        logger.debug("Opening %s at %d baud", config.endpoint, config.baud_rate)

        try:
            self._acquire_lock(config.endpoint)
            handle = self._driver.open(config)
        except Exception as e:
            self._release_lock()
            error = self._as_open_error(config.endpoint, e)
            self._state = ConnectionState.ERROR
            self._last_error = error
            if error is e:
                raise
            raise error from e

        self._handle = handle
        self._config = config
        self._last_error = None
        self._state = ConnectionState.CONNECTED
        logger.info("Connected to %s", config.endpoint)

    def close(self) -> None:
        """
        Release the handle and return to DISCONNECTED.

        If the driver fails to release, the handle reference is still dropped,
        the state becomes ERROR and CloseError is raised.
        """
        if not self.is_open:
            raise NotOpenError("connection is not open")

        handle, self._handle = self._handle, None
        endpoint = self._config.endpoint
        try:
            self._driver.close(handle)
        except Exception as e:
            error = CloseError(
                f"failed to close {endpoint}: {e}",
                kind=getattr(e, "kind", ErrorKind.UNKNOWN),
                endpoint=endpoint,
                cause=e,
            )
            self._state = ConnectionState.ERROR
            self._last_error = error
            raise error from e
        finally:
            self._release_lock()

        self._state = ConnectionState.DISCONNECTED
        self._last_error = None
        logger.info("Disconnected from %s", endpoint)

    def read(self, size: int) -> bytes:
        """Read up to size bytes, bounded by the read timeout."""
        self._require_open()
        return self._driver.read(self._handle, size)

    def write(self, data: bytes) -> int:
        """Write data. Returns bytes written."""
        self._require_open()
        return self._driver.write(self._handle, data)

    def set_read_timeout(self, timeout: float) -> None:
        self._require_open()
        self._driver.set_read_timeout(self._handle, timeout)
        self._config = self._config.with_timeout(timeout)

    def _require_open(self) -> None:
        if not self.is_open:
            raise NotOpenError("connection is not open")

    def _acquire_lock(self, endpoint: str) -> None:
        if not self._use_lock:
            return
        lock = EndpointLock(endpoint)
        if not lock.acquire():
            raise OpenError(f"{endpoint}: device busy (locked by another process)",
                            kind=ErrorKind.BUSY, endpoint=endpoint)
        self._lock = lock

    def _release_lock(self) -> None:
        if self._lock is not None:
            self._lock.release()
            self._lock = None

    @staticmethod
    def _as_open_error(endpoint: str, error: Exception) -> OpenError:
        if isinstance(error, OpenError):
            return error
        if isinstance(error, DriverError):
            return OpenError(str(error), kind=error.kind, endpoint=endpoint, cause=error)
        return OpenError(f"failed to open {endpoint}: {error}",
                         kind=error_kind_of(error), endpoint=endpoint, cause=error)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if self.is_open:
            self.close()
        return False

    def __repr__(self) -> str:
        endpoint = self._config.endpoint if self._config else None
        return f"Connection(endpoint={endpoint!r}, state={self._state.value})"

"""
Resilient connection for sercon.

Opens a Connection with bounded exponential backoff, stopping early on
errors the classifier marks as fatal, and reconnects with the last
configuration that worked.
"""

from __future__ import annotations

import logging
import threading
from typing import Callable, Optional

from .classifier import ErrorClassifier
from .connection import Connection
from .errors import (
    AlreadyOpenError,
    NoPriorConfigError,
    NonRecoverableError,
    OpenCancelledError,
    RetryExhaustedError,
)
from .implementations import RealClock
from .interfaces import (
    ChannelDriverInterface,
    ClockInterface,
    ConnectionConfig,
    ConnectionState,
    ConnectionStats,
)
from .retry import DEFAULT_RETRY_POLICY, RetryPolicy
from .validation import validate_config

logger = logging.getLogger(__name__)


class ResilientConnection:
    """
    Manages a Connection with retrying opens and explicit reconnects.

    Features:
    - Exponential backoff between failed open attempts
    - Early stop on non-recoverable errors
    - Reconnect with the last successful configuration
    - Callbacks for connection events

    The retry behaviour is composed around a Connection rather than built
    into it, so either can be substituted in tests.
    """

    def __init__(
        self,
        driver: Optional[ChannelDriverInterface] = None,
        policy: Optional[RetryPolicy] = None,
        classifier: Optional[ErrorClassifier] = None,
        clock: Optional[ClockInterface] = None,
        connection: Optional[Connection] = None,
        on_connect: Optional[Callable[[], None]] = None,
        on_disconnect: Optional[Callable[[], None]] = None,
        on_reconnect: Optional[Callable[[], None]] = None,
    ):
        if connection is None:
            if driver is None:
                raise ValueError("either driver or connection is required")
            connection = Connection(driver)
        if clock is None:
            clock = RealClock()

        self._connection = connection
        self._policy = policy or DEFAULT_RETRY_POLICY
        self._classifier = classifier or ErrorClassifier()
        self._clock = clock
        self._on_connect = on_connect
        self._on_disconnect = on_disconnect
        self._on_reconnect = on_reconnect

        self._last_good_config: Optional[ConnectionConfig] = None
        self._stats = ConnectionStats()

    @property
    def connection(self) -> Connection:
        return self._connection

    @property
    def policy(self) -> RetryPolicy:
        return self._policy

    @property
    def state(self) -> ConnectionState:
        """Current connection state."""
        return self._connection.state

    @property
    def last_error(self) -> Optional[BaseException]:
        return self._connection.last_error

    @property
    def is_open(self) -> bool:
        return self._connection.is_open

    @property
    def last_config(self) -> Optional[ConnectionConfig]:
        """Configuration of the last successful open."""
        return self._last_good_config

    @property
    def stats(self) -> ConnectionStats:
        return self._stats

    @property
    def reconnect_count(self) -> int:
        """Number of successful reconnections."""
        return self._stats.reconnects

    def open_with_retry(
        self,
        config: ConnectionConfig,
        policy: Optional[RetryPolicy] = None,
        cancel: Optional[threading.Event] = None,
    ) -> int:
        """
        Open config, retrying recoverable failures with backoff.

        Args:
            config: Connection parameters.
            policy: Overrides the instance policy for this call.
            cancel: If set during a backoff wait, the loop stops.

        Returns:
            Number of open attempts made (1 means the first attempt worked).

        Raises:
            ValidationError / PolicyError: Before any attempt; state unchanged.
            AlreadyOpenError: The connection already holds a handle.
            NonRecoverableError: An attempt failed with a fatal error.
            RetryExhaustedError: Every permitted attempt failed.
            OpenCancelledError: cancel was set during a backoff wait.
        """
        policy = policy or self._policy
        validate_config(config)
        policy.validate()
        if self._connection.is_open:
            raise AlreadyOpenError(
                f"connection to {self._connection.config.endpoint} is already open"
            )

        logger.info(
            "Connecting to %s at %d baud (up to %d attempts)",
            config.endpoint, config.baud_rate, policy.max_attempts,
        )

        last_error: Optional[BaseException] = None
        interval = policy.base_interval
        attempts = 0

        for attempt in range(policy.max_attempts):
            if attempt > 0:
                logger.debug("Waiting %.3fs before attempt %d", interval, attempt + 1)
                if self._clock.wait(interval, cancel):
                    logger.warning("Connection to %s cancelled after %d attempts",
                                   config.endpoint, attempts)
                    raise OpenCancelledError(
                        f"open of {config.endpoint} cancelled after {attempts} attempts",
                        attempts, last_error,
                    )
                interval = policy.next_interval(attempt, interval)

            attempts += 1
            self._stats.open_attempts += 1
            try:
                self._connection.open(config)
            except Exception as e:
                last_error = e
                self._stats.failed_opens += 1
                logger.warning("Connection attempt %d to %s failed: %s", attempts, config.endpoint, e)
                if not self._classifier.is_recoverable(e):
                    raise NonRecoverableError(
                        f"failed to open {config.endpoint} after {attempts} attempts "
                        f"(not recoverable): {e}",
                        attempts, e,
                    ) from e
                continue

            self._last_good_config = config
            self._stats.connects += 1
            if self._on_connect:
                self._on_connect()
            return attempts

        logger.error("Failed to connect to %s after %d attempts", config.endpoint, attempts)
        raise RetryExhaustedError(
            f"failed to open {config.endpoint} after {attempts} attempts: {last_error}",
            attempts, last_error,
        ) from last_error

    def close(self) -> None:
        """Close the connection. Raises NotOpenError if it is not open."""
        self._connection.close()
        if self._on_disconnect:
            self._on_disconnect()

    def reconnect(self, cancel: Optional[threading.Event] = None) -> int:
        """
        Close if needed, then reopen with the last successful configuration.

        Returns:
            Number of open attempts made.

        Raises:
            NoPriorConfigError: No open has ever succeeded.
        """
        if self._last_good_config is None:
            raise NoPriorConfigError("no previous configuration available for reconnection")

        if self._connection.is_open:
            self.close()

        logger.info("Reconnecting to %s", self._last_good_config.endpoint)
        attempts = self.open_with_retry(self._last_good_config, self._policy, cancel=cancel)
        self._stats.reconnects += 1
        logger.info("Reconnected to %s (reconnect #%d)",
                    self._last_good_config.endpoint, self._stats.reconnects)
        if self._on_reconnect:
            self._on_reconnect()
        return attempts

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if self._connection.is_open:
            self.close()
        return False

"""Exception hierarchy for sercon.

Contains:
- ErrorKind / ValidationCode: structured classification enums
- ValidationError, PolicyError: static rule failures (never retried)
- DriverError, OpenError, CloseError: failures reported by the channel driver
- ConnectionFailedError and subclasses: outcome of a retry loop
- NotOpenError, AlreadyOpenError, NoPriorConfigError: state mismatches
- HealthCheckError and subclasses: liveness probe failures
"""

from __future__ import annotations

from enum import Enum
from typing import Optional


class ErrorKind(Enum):
    """Closed set of driver failure kinds."""

    BUSY = "busy"
    TIMEOUT = "timeout"
    NOT_FOUND = "not_found"
    REFUSED = "refused"
    PERMISSION = "permission"
    UNKNOWN = "unknown"


class ValidationCode(Enum):
    """Which static rule a config or policy broke."""

    EMPTY_ENDPOINT = "empty_endpoint"
    INVALID_BAUD_RATE = "invalid_baud_rate"
    INVALID_DATA_BITS = "invalid_data_bits"
    INVALID_STOP_BITS = "invalid_stop_bits"
    INVALID_PARITY = "invalid_parity"
    NEGATIVE_TIMEOUT = "negative_timeout"
    ENDPOINT_NOT_ALLOWED = "endpoint_not_allowed"
    BAUD_RATE_NOT_ALLOWED = "baud_rate_not_allowed"
    TIMEOUT_REQUIRED = "timeout_required"
    TIMEOUT_TOO_LARGE = "timeout_too_large"
    NEGATIVE_MAX_RETRIES = "negative_max_retries"
    INVALID_MAX_RETRIES = "invalid_max_retries"
    NEGATIVE_INTERVAL = "negative_interval"
    INVALID_BACKOFF_FACTOR = "invalid_backoff_factor"
    MAX_INTERVAL_TOO_SMALL = "max_interval_too_small"


class SerconError(Exception):
    """Base class for all sercon errors."""

    pass


class ValidationError(SerconError, ValueError):
    """Raised when a ConnectionConfig breaks a static rule."""

    def __init__(self, code: ValidationCode, message: str):
        super().__init__(message)
        self.code = code


class PolicyError(ValidationError):
    """Raised when a RetryPolicy breaks a static rule."""

    pass


class DriverError(SerconError):
    """Raised by a channel driver; kind drives retry classification."""

    def __init__(
        self,
        message: str,
        kind: ErrorKind = ErrorKind.UNKNOWN,
        endpoint: str = "",
        cause: Optional[BaseException] = None,
    ):
        super().__init__(message)
        self.kind = kind
        self.endpoint = endpoint
        self.cause = cause


class OpenError(DriverError):
    """A single attempt to open the channel failed."""

    pass


class CloseError(DriverError):
    """Releasing the channel handle failed."""

    pass


class ConnectionFailedError(SerconError):
    """open_with_retry gave up. Carries the attempt count and last error."""

    def __init__(self, message: str, attempts: int, last_error: Optional[BaseException]):
        super().__init__(message)
        self.attempts = attempts
        self.last_error = last_error


class RetryExhaustedError(ConnectionFailedError):
    """Every permitted attempt failed with a recoverable error."""

    pass


class NonRecoverableError(ConnectionFailedError):
    """An attempt failed with an error not worth retrying."""

    pass


class OpenCancelledError(ConnectionFailedError):
    """The caller cancelled the retry loop during a backoff wait."""

    pass


class NotOpenError(SerconError):
    """Operation requires an open connection."""

    pass


class AlreadyOpenError(SerconError):
    """open() called on a connection that already holds a handle."""

    pass


class NoPriorConfigError(SerconError):
    """reconnect() called before any successful open."""

    pass


class HealthCheckError(SerconError):
    """Base class for liveness probe failures."""

    pass


class ProbeWriteFailedError(HealthCheckError):
    pass


class ProbeReadFailedError(HealthCheckError):
    pass


class ProbeTimeoutError(HealthCheckError):
    """The probe timeout could not be applied to the connection."""

    pass


class ResponseLengthMismatchError(HealthCheckError):
    def __init__(self, expected: int, actual: int):
        super().__init__(
            f"health check response length mismatch: expected {expected}, got {actual}"
        )
        self.expected = expected
        self.actual = actual


class ResponseContentMismatchError(HealthCheckError):
    def __init__(self, index: int, expected: int, actual: int):
        super().__init__(
            f"health check response mismatch at byte {index}: "
            f"expected {expected:02x}, got {actual:02x}"
        )
        self.index = index
        self.expected = expected
        self.actual = actual

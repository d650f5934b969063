"""
sercon - Resilient Serial Connections

Connection parameter validation, open-with-retry under bounded exponential
backoff, recoverable/fatal error classification, connection state tracking
and probe/response health checks for serial endpoints.
"""

from .interfaces import (
    ChannelDriverInterface,
    ClockInterface,
    ConnectionConfig,
    ConnectionState,
    ConnectionStats,
    Parity,
    PortInfo,
)
from .errors import (
    AlreadyOpenError,
    CloseError,
    ConnectionFailedError,
    DriverError,
    ErrorKind,
    HealthCheckError,
    NoPriorConfigError,
    NonRecoverableError,
    NotOpenError,
    OpenCancelledError,
    OpenError,
    PolicyError,
    ProbeReadFailedError,
    ProbeTimeoutError,
    ProbeWriteFailedError,
    ResponseContentMismatchError,
    ResponseLengthMismatchError,
    RetryExhaustedError,
    SerconError,
    ValidationCode,
    ValidationError,
)
from .validation import ConfigValidator, is_standard_baud_rate, validate_config
from .retry import DEFAULT_RETRY_POLICY, RetryPolicy
from .classifier import ErrorClassifier
from .connection import Connection
from .resilient import ResilientConnection
from .health import HealthChecker, HealthCheckSpec, override_read_timeout
from .implementations import PySerialDriver, RealClock

__all__ = [
    "ChannelDriverInterface",
    "ClockInterface",
    "ConnectionConfig",
    "ConnectionState",
    "ConnectionStats",
    "Parity",
    "PortInfo",
    "AlreadyOpenError",
    "CloseError",
    "ConnectionFailedError",
    "DriverError",
    "ErrorKind",
    "HealthCheckError",
    "NoPriorConfigError",
    "NonRecoverableError",
    "NotOpenError",
    "OpenCancelledError",
    "OpenError",
    "PolicyError",
    "ProbeReadFailedError",
    "ProbeTimeoutError",
    "ProbeWriteFailedError",
    "ResponseContentMismatchError",
    "ResponseLengthMismatchError",
    "RetryExhaustedError",
    "SerconError",
    "ValidationCode",
    "ValidationError",
    "ConfigValidator",
    "is_standard_baud_rate",
    "validate_config",
    "DEFAULT_RETRY_POLICY",
    "RetryPolicy",
    "ErrorClassifier",
    "Connection",
    "ResilientConnection",
    "HealthChecker",
    "HealthCheckSpec",
    "override_read_timeout",
    "PySerialDriver",
    "RealClock",
]

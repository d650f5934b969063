"""
Error classification for the retry loop.

Decides whether a failed open is worth retrying. Structured ErrorKind values
from the driver are authoritative; text signatures are only consulted for
errors whose kind is unknown (foreign exceptions, drivers that cannot map
their failures).
"""

from __future__ import annotations

import errno
from typing import Iterable, Optional

from .errors import (
    AlreadyOpenError,
    DriverError,
    ErrorKind,
    NotOpenError,
    ValidationError,
)

RECOVERABLE_KINDS = frozenset({
    ErrorKind.BUSY,
    ErrorKind.TIMEOUT,
    ErrorKind.NOT_FOUND,   # device may be reattached
    ErrorKind.REFUSED,
})

RECOVERABLE_SIGNATURES = (
    "device busy",
    "device or resource busy",
    "resource temporarily unavailable",
    "timeout",
    "timed out",
    "connection refused",
    "no such device",
)

_ERRNO_KINDS = {
    errno.EBUSY: ErrorKind.BUSY,
    errno.EAGAIN: ErrorKind.BUSY,
    errno.ETIMEDOUT: ErrorKind.TIMEOUT,
    errno.ENOENT: ErrorKind.NOT_FOUND,
    errno.ENODEV: ErrorKind.NOT_FOUND,
    errno.ENXIO: ErrorKind.NOT_FOUND,
    errno.ECONNREFUSED: ErrorKind.REFUSED,
    errno.EACCES: ErrorKind.PERMISSION,
    errno.EPERM: ErrorKind.PERMISSION,
}


def error_kind_from_errno(code: Optional[int]) -> ErrorKind:
    """Map an OS errno value onto an ErrorKind."""
    if code is None:
        return ErrorKind.UNKNOWN
    return _ERRNO_KINDS.get(code, ErrorKind.UNKNOWN)


def error_kind_of(error: BaseException) -> ErrorKind:
    """Best structured kind for any exception."""
    if isinstance(error, DriverError):
        return error.kind
    if isinstance(error, PermissionError):
        return ErrorKind.PERMISSION
    if isinstance(error, TimeoutError):
        return ErrorKind.TIMEOUT
    if isinstance(error, FileNotFoundError):
        return ErrorKind.NOT_FOUND
    if isinstance(error, ConnectionRefusedError):
        return ErrorKind.REFUSED
    if isinstance(error, OSError):
        return error_kind_from_errno(error.errno)
    return ErrorKind.UNKNOWN


class ErrorClassifier:
    """
    Recoverable/fatal boundary for open failures.

    Both the recoverable kinds and the text signatures are constructor
    parameters so deployments can tighten or widen the policy.
    """

    def __init__(
        self,
        recoverable_kinds: Iterable[ErrorKind] = RECOVERABLE_KINDS,
        signatures: Iterable[str] = RECOVERABLE_SIGNATURES,
    ):
        self._recoverable_kinds = frozenset(recoverable_kinds)
        self._signatures = tuple(s.lower() for s in signatures)

    def is_recoverable(self, error: Optional[BaseException]) -> bool:
        if error is None:
            return False
        if isinstance(error, (ValidationError, NotOpenError, AlreadyOpenError)):
            return False

        kind = error_kind_of(error)
        if kind is not ErrorKind.UNKNOWN:
            return kind in self._recoverable_kinds

        return self.matches_signature(error)

    def matches_signature(self, error: BaseException) -> bool:
        """Case-insensitive match of the error text, including its causes."""
        texts = [str(error)]
        cause = getattr(error, "cause", None) or error.__cause__
        if cause is not None:
            texts.append(str(cause))
        description = " ".join(texts).lower()
        return any(sig in description for sig in self._signatures)

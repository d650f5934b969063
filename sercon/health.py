"""Liveness probe for an open connection.

Contains:
- HealthCheckSpec: probe payload, expected reply and probe timeout
- override_read_timeout: scoped read-timeout override, always restored
- HealthChecker: write-then-read probe exchange
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Iterator

from .connection import Connection
from .errors import (
    HealthCheckError,
    NotOpenError,
    ProbeReadFailedError,
    ProbeTimeoutError,
    ProbeWriteFailedError,
    ResponseContentMismatchError,
    ResponseLengthMismatchError,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class HealthCheckSpec:
    """Opaque probe bytes, the reply they should produce, and how long to wait."""
    probe_payload: bytes
    expected_response: bytes
    probe_timeout: float = 1.0


@contextmanager
def override_read_timeout(connection: Connection, timeout: float) -> Iterator[float]:
    """
    Apply timeout to connection for the duration of the block.

    Yields the timeout that was in effect before; it is put back on every
    exit path, including exceptions raised inside the block.
    """
    original = connection.read_timeout
    try:
        connection.set_read_timeout(timeout)
    except Exception as e:
        raise ProbeTimeoutError(f"failed to set health check timeout: {e}") from e
    try:
        yield original
    finally:
        connection.set_read_timeout(original)


class HealthChecker:
    """
    Confirms an open channel still answers a known probe.

    A failed check is reported to the caller and never triggers a reconnect;
    deciding what to do about it is the caller's job.
    """

    def __init__(self, connection: Connection, spec: HealthCheckSpec):
        self._connection = connection
        self._spec = spec

    @property
    def spec(self) -> HealthCheckSpec:
        return self._spec

    def check_health(self) -> None:
        """
        Run one probe exchange.

        Raises:
            NotOpenError: The connection is not open.
            ProbeWriteFailedError: Writing the probe failed or was short.
            ProbeTimeoutError: The probe timeout could not be applied.
            ProbeReadFailedError: Reading the reply failed.
            ResponseLengthMismatchError: Fewer or more bytes than expected.
            ResponseContentMismatchError: First differing byte of the reply.
        """
        if not self._connection.is_open:
            raise NotOpenError("connection is not open")

        payload = self._spec.probe_payload
        expected = self._spec.expected_response

        try:
            written = self._connection.write(payload)
        except Exception as e:
            raise ProbeWriteFailedError(f"failed to send health check data: {e}") from e
        if written is not None and written != len(payload):
            raise ProbeWriteFailedError(
                f"short health check write: sent {written} of {len(payload)} bytes"
            )

        with override_read_timeout(self._connection, self._spec.probe_timeout):
            try:
                response = self._connection.read(len(expected))
            except Exception as e:
                raise ProbeReadFailedError(f"failed to read health check response: {e}") from e

        if len(response) != len(expected):
            raise ResponseLengthMismatchError(len(expected), len(response))

        for index, (want, got) in enumerate(zip(expected, response)):
            if want != got:
                raise ResponseContentMismatchError(index, want, got)

    def is_healthy(self) -> bool:
        """check_health() as a bool; failures are logged."""
        try:
            self.check_health()
        except (HealthCheckError, NotOpenError) as e:
            logger.warning("Health check failed: %s", e)
            return False
        return True

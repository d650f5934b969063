"""Tests for sercon/health.py — probe/response liveness checks."""

from __future__ import annotations

import pytest

from sercon.connection import Connection
from sercon.errors import (
    DriverError,
    NotOpenError,
    ProbeReadFailedError,
    ProbeTimeoutError,
    ProbeWriteFailedError,
    ResponseContentMismatchError,
    ResponseLengthMismatchError,
)
from sercon.health import HealthChecker, HealthCheckSpec, override_read_timeout
from sercon.interfaces import ConnectionState

PROBE = HealthCheckSpec(probe_payload=b"\x01", expected_response=b"\xaa", probe_timeout=0.2)


@pytest.fixture
def conn(driver, config):
    connection = Connection(driver)
    connection.open(config)
    return connection


class TestCheckHealth:
    def test_matching_response(self, conn, driver):
        driver.inject_bytes(b"\xaa")
        before = conn.read_timeout

        HealthChecker(conn, PROBE).check_health()

        assert driver.get_sent() == [b"\x01"]
        assert conn.read_timeout == before
        assert driver.open_handles[0].timeout_history == [0.2, before]

    def test_content_mismatch(self, conn, driver):
        driver.inject_bytes(b"\xbb")
        with pytest.raises(ResponseContentMismatchError) as exc:
            HealthChecker(conn, PROBE).check_health()
        assert exc.value.index == 0
        assert exc.value.expected == 0xAA
        assert exc.value.actual == 0xBB
        assert "expected aa, got bb" in str(exc.value)

    def test_first_mismatch_reported(self, conn, driver):
        spec = HealthCheckSpec(b"PING", b"PONG", 0.5)
        driver.inject_bytes(b"PANE")
        with pytest.raises(ResponseContentMismatchError) as exc:
            HealthChecker(conn, spec).check_health()
        assert exc.value.index == 1

    def test_short_response(self, conn, driver):
        spec = HealthCheckSpec(b"?", b"OK\r\n", 0.5)
        driver.inject_bytes(b"OK")
        with pytest.raises(ResponseLengthMismatchError) as exc:
            HealthChecker(conn, spec).check_health()
        assert (exc.value.expected, exc.value.actual) == (4, 2)

    def test_no_response(self, conn):
        with pytest.raises(ResponseLengthMismatchError) as exc:
            HealthChecker(conn, PROBE).check_health()
        assert exc.value.actual == 0

    def test_echo_device(self, conn, driver):
        driver.set_echo(True)
        HealthChecker(conn, HealthCheckSpec(b"AT\r", b"AT\r", 0.1)).check_health()

    def test_not_open(self, driver):
        with pytest.raises(NotOpenError):
            HealthChecker(Connection(driver), PROBE).check_health()

    def test_write_failure(self, conn, driver):
        driver.set_fail_on_write(DriverError("write failed"))
        with pytest.raises(ProbeWriteFailedError):
            HealthChecker(conn, PROBE).check_health()

    def test_short_write(self, conn, driver):
        driver.set_short_write(True)
        with pytest.raises(ProbeWriteFailedError):
            HealthChecker(conn, HealthCheckSpec(b"PING", b"PONG", 0.1)).check_health()

    def test_read_failure_restores_timeout(self, conn, driver):
        before = conn.read_timeout
        driver.set_fail_on_read(DriverError("read failed"))
        with pytest.raises(ProbeReadFailedError):
            HealthChecker(conn, PROBE).check_health()
        assert conn.read_timeout == before
        assert driver.open_handles[0].timeout == before

    def test_mismatch_restores_timeout(self, conn, driver):
        before = conn.read_timeout
        driver.inject_bytes(b"\x00")
        with pytest.raises(ResponseContentMismatchError):
            HealthChecker(conn, PROBE).check_health()
        assert driver.open_handles[0].timeout == before

    def test_timeout_override_failure(self, conn, driver):
        driver.set_fail_on_set_timeout(DriverError("ioctl failed"))
        with pytest.raises(ProbeTimeoutError):
            HealthChecker(conn, PROBE).check_health()

    def test_failed_check_does_not_reconnect(self, conn, driver):
        driver.inject_bytes(b"\xbb")
        with pytest.raises(ResponseContentMismatchError):
            HealthChecker(conn, PROBE).check_health()
        assert conn.state == ConnectionState.CONNECTED
        assert len(driver.open_calls) == 1

    def test_reusable_across_checks(self, conn, driver):
        checker = HealthChecker(conn, PROBE)
        driver.inject_bytes(b"\xaa\xaa")
        checker.check_health()
        checker.check_health()
        assert driver.get_sent() == [b"\x01", b"\x01"]


class TestIsHealthy:
    def test_true_on_success(self, conn, driver):
        driver.inject_bytes(b"\xaa")
        assert HealthChecker(conn, PROBE).is_healthy()

    def test_false_and_logged_on_failure(self, conn, caplog):
        assert not HealthChecker(conn, PROBE).is_healthy()
        assert "Health check failed" in caplog.text

    def test_false_when_closed(self, driver):
        assert not HealthChecker(Connection(driver), PROBE).is_healthy()


class TestOverrideReadTimeout:
    def test_restored_after_block(self, conn):
        with override_read_timeout(conn, 3.0) as original:
            assert conn.read_timeout == 3.0
        assert conn.read_timeout == original == 1.0

    def test_restored_after_exception(self, conn):
        with pytest.raises(KeyError):
            with override_read_timeout(conn, 3.0):
                raise KeyError("boom")
        assert conn.read_timeout == 1.0

"""Shared pytest configuration for sercon tests."""

import pytest

from sercon.endpoint_lock import EndpointLock
from sercon.interfaces import ConnectionConfig
from sercon.mocks import MockChannelDriver, MockClock
from sercon.retry import RetryPolicy


def pytest_addoption(parser):
    parser.addoption(
        "--hw",
        action="store_true",
        default=False,
        help="Run hardware-in-the-loop tests (requires SERCON_TEST_PORT to point at a loopback port)",
    )


def pytest_configure(config):
    config.addinivalue_line("markers", "hw: test needs a real serial port")


def pytest_collection_modifyitems(config, items):
    if config.getoption("--hw"):
        return
    skip_hw = pytest.mark.skip(reason="needs --hw to run")
    for item in items:
        if "hw" in item.keywords:
            item.add_marker(skip_hw)


@pytest.fixture(autouse=True)
def isolate_lock_dir(tmp_path, monkeypatch):
    """Redirect lock dir to tmp_path for every test."""
    lock_dir = str(tmp_path / "sercon-locks")
    monkeypatch.setattr(EndpointLock, "LOCK_DIR", lock_dir)
    return lock_dir


@pytest.fixture
def driver():
    return MockChannelDriver()


@pytest.fixture
def clock():
    return MockClock()


@pytest.fixture
def config():
    return ConnectionConfig(
        endpoint="X1", baud_rate=9600, data_bits=8, stop_bits=1, parity="none", timeout=1.0
    )


@pytest.fixture
def policy():
    return RetryPolicy(max_retries=2, base_interval=0.1, backoff_factor=2.0, max_interval=1.0)

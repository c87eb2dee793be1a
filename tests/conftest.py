"""Shared pytest configuration for capharness tests."""

from __future__ import annotations

import pytest

from capharness.config import RunConfiguration
from capharness.mocks import MockAccounting


def pytest_addoption(parser):
    parser.addoption(
        "--capture-ip",
        default=None,
        help="Run the bundled live-interface suites against the interface owning this IP",
    )


@pytest.fixture
def make_config():
    """Factory for RunConfiguration with test-friendly defaults."""
    def _make(**kwargs) -> RunConfiguration:
        kwargs.setdefault("target_ip", "10.0.0.1")
        kwargs.setdefault("leak_warmup", False)
        return RunConfiguration(**kwargs)
    return _make


@pytest.fixture
def accounting() -> MockAccounting:
    return MockAccounting()


@pytest.fixture
def capture_ip(request) -> str:
    ip = request.config.getoption("--capture-ip")
    if not ip:
        pytest.skip("live suite skipped: --capture-ip not set")
    return ip

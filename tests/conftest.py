"""Shared fixtures: a fake clock for the poll loops and a mocked Trove client."""

from unittest.mock import MagicMock

import pytest

from openstack_trove_provider.config import TroveConfig


class FakeClock:
    """Monotonic clock that only moves when the poll loop sleeps."""

    def __init__(self):
        self.now = 0.0
        self.sleeps = []

    def __call__(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


@pytest.fixture
def fake_clock():
    return FakeClock()


@pytest.fixture
def config():
    """Configuration with the default cadence (10s delay, 3s interval, 600s windows)."""
    return TroveConfig(
        auth_url="https://keystone.example.com:5000/v3",
        username="admin",
        password="secret",
        region_name="RegionOne",
        flavor_id=None,
    )


@pytest.fixture
def mock_client():
    """A MagicMock standing in for TroveClient."""
    return MagicMock()

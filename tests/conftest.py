"""Shared test fixtures for jenkins_sdk and jenkins_tui tests."""

import pytest

from jenkins_sdk import JenkinsClient
from jenkins_tui.config import Profile
from tests.fixtures.mock_jenkins import BASE_URL, FakeClock, MockJenkins


@pytest.fixture
def clock():
    """Fake monotonic clock; its sleep() advances time instantly."""
    return FakeClock()


@pytest.fixture
def server():
    """Empty mock Jenkins; tests register the routes they need."""
    return MockJenkins()


@pytest.fixture
def client(server, clock):
    """JenkinsClient talking to the mock server."""
    c = JenkinsClient(
        base_url=BASE_URL,
        username="alice",
        token="secret-token",
        timeout=15.0,
        rate_limit_rps=5,
        session=server,
        clock=clock,
        sleep=clock.sleep,
    )
    yield c
    c.close()


@pytest.fixture
def profile():
    """A complete profile pointing at the mock server."""
    return Profile(base_url=BASE_URL, username="alice", api_token="secret-token")

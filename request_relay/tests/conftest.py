"""
Shared fixtures built on ``support``: a TestClient over the test
database with a recording fake upstream, and a settings override.
"""

import pytest

from request_relay.tests.support import RecordingUpstream, app, make_client
from request_relay.config import RelaySettings, get_settings
from request_relay.services.mock_store import service_store, todo_store


@pytest.fixture(autouse=True)
def reset_mock_stores():
    """The mock todos and services are process-wide; start every test from the seed rows."""
    todo_store.reset()
    service_store.reset()


@pytest.fixture
def upstream():
    return RecordingUpstream()


@pytest.fixture
def client(upstream):
    with make_client(upstream=upstream) as c:
        yield c


@pytest.fixture
def use_settings():
    """Swap the relay policy for the rest of the test."""
    def apply(settings: RelaySettings) -> RelaySettings:
        app.dependency_overrides[get_settings] = lambda: settings
        return settings
    return apply

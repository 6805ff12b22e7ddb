"""
Shared test setup: a throwaway SQLite database, a TestClient wired to
it, and a recording ``httpx.MockTransport`` standing in for the network.

The app's own engine is pointed at the same file before
``request_relay.database`` is imported, so the lifespan's ``init_db()``
never touches the real database.
"""

import os
from contextlib import contextmanager

TEST_DATABASE_URL = "sqlite:///./test_request_relay.db"
os.environ["RELAY_DATABASE_URL"] = TEST_DATABASE_URL

import httpx  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402

from request_relay import models  # noqa: E402,F401
from request_relay.database import Base, get_db  # noqa: E402
from request_relay.main import app  # noqa: E402
from request_relay.services.relay import get_upstream_transport  # noqa: E402


test_engine = create_engine(TEST_DATABASE_URL, connect_args={"check_same_thread": False})
TestSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=test_engine)


def override_get_db():
    """Override database dependency for testing."""
    db = TestSessionLocal()
    try:
        yield db
    finally:
        db.close()


class RecordingUpstream:
    """
    Fake upstream network.

    Every request that reaches it is recorded; ``handler`` decides the
    response and may raise httpx errors to simulate transport failures.
    """

    def __init__(self):
        self.requests: list[httpx.Request] = []
        self.handler = lambda request: httpx.Response(
            200, json={"ok": True}, headers={"content-type": "application/json"}
        )

    def _dispatch(self, request: httpx.Request) -> httpx.Response:
        request.read()
        self.requests.append(request)
        return self.handler(request)

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self._dispatch)


@contextmanager
def make_client(upstream: RecordingUpstream | None = None):
    """TestClient against a fresh database, optionally with a fake upstream."""
    Base.metadata.create_all(bind=test_engine)
    app.dependency_overrides[get_db] = override_get_db
    if upstream is not None:
        app.dependency_overrides[get_upstream_transport] = upstream.transport

    try:
        with TestClient(app) as test_client:
            yield test_client
    finally:
        Base.metadata.drop_all(bind=test_engine)
        app.dependency_overrides.clear()


@contextmanager
def get_test_db():
    """Fresh database session for direct service calls."""
    Base.metadata.create_all(bind=test_engine)
    db = TestSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=test_engine)

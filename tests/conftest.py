"""
Pytest configuration and shared fixtures.
"""

from typing import Any, Dict, List
from urllib.parse import parse_qs

import httpx
import pytest
from fastapi.testclient import TestClient

from hhgate.config import Settings
from hhgate.context import AppContext
from hhgate.hh_client import HHClient
from hhgate.main import create_app
from hhgate.store import InMemoryDocumentStore
from hhgate.user_repository import UserRepository


NOW = 1_700_000_000.0


class FakeClock:
    """Callable clock returning seconds since epoch; advance it by hand."""

    def __init__(self, now: float = NOW):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeHHProvider:
    """Scripted hh.ru API served through httpx.MockTransport.

    Token responses are served in order from ``token_responses``; every
    request is recorded in ``requests``.
    """

    def __init__(self):
        self.token_responses: List[Dict[str, Any]] = []
        self.profile: Dict[str, Any] = {
            "id": "hh42",
            "email": "a@b.com",
            "first_name": "A",
            "last_name": "B",
        }
        self.token_status = 200
        self.profile_status = 200
        self.requests: List[httpx.Request] = []
        self.transport = httpx.MockTransport(self.handler)

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.url.path == "/token":
            if self.token_status != 200:
                return httpx.Response(self.token_status, json={"error": "invalid_grant"})
            return httpx.Response(200, json=self.token_responses.pop(0))
        if request.url.path == "/me":
            if self.profile_status != 200:
                return httpx.Response(self.profile_status, json={"errors": [{"type": "oauth"}]})
            return httpx.Response(200, json=self.profile)
        return httpx.Response(404, json={"error": "not found"})

    def form(self, index: int) -> Dict[str, str]:
        """Decoded form body of the request at ``index``."""
        body = parse_qs(self.requests[index].content.decode())
        return {key: values[0] for key, values in body.items()}

    def calls(self, path: str) -> List[httpx.Request]:
        return [r for r in self.requests if r.url.path == path]


@pytest.fixture
def settings():
    return Settings(
        app_env="test",
        hh_client_id="client-id",
        hh_client_secret="client-secret",
        hh_redirect_uri="http://localhost:3000/api/auth/callback",
        storage_backend="memory",
    )


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def provider():
    return FakeHHProvider()


@pytest.fixture
def store():
    return InMemoryDocumentStore()


@pytest.fixture
def context(settings, store, provider, clock):
    return AppContext(
        settings=settings,
        users=UserRepository(store),
        hh=HHClient(settings, transport=provider.transport),
        clock=clock,
    )


@pytest.fixture
def test_client(context):
    """Create a test client for the FastAPI app."""
    return TestClient(create_app(context))


# ---------------------------------------------------------------------------
# Test selection: skip integration tests by default unless --run-integration
# ---------------------------------------------------------------------------

def pytest_addoption(parser):
    parser.addoption(
        "--run-integration",
        action="store_true",
        default=False,
        help="Run tests marked as integration",
    )


def pytest_collection_modifyitems(config, items):
    # If user explicitly enabled integration via flag or there is just one test, allow them
    if config.getoption("--run-integration") or len(items) == 1:
        return

    # If user filtered by marker and included 'integration' in expression, allow them
    marker_expr = config.getoption("-m") or ""
    if "integration" in marker_expr:
        return

    skip_integration = pytest.mark.skip(reason="integration tests are skipped by default; use --run-integration or -m integration")
    for item in items:
        if "integration" in item.keywords:
            item.add_marker(skip_integration)

import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
root_str = str(ROOT)
if root_str not in sys.path:
    sys.path.insert(0, root_str)

from fastapi.testclient import TestClient  # noqa: E402

from src.gdp_insights.api.main import create_app  # noqa: E402
from src.gdp_insights.config import Settings  # noqa: E402
from src.gdp_insights.infrastructure.record_store import InMemoryRecordStore  # noqa: E402
from src.gdp_insights.security import auth, rate_limit  # noqa: E402
from .utils import FakeCompletionClient, fixed_clock, login  # noqa: E402


@pytest.fixture(autouse=True)
def _clean_auth_state(monkeypatch):
    monkeypatch.delenv("GDP_PUBLIC_MODE", raising=False)
    monkeypatch.delenv("GDP_RATE_LIMIT_DISABLED", raising=False)
    auth.OTP_STORE.clear()
    rate_limit.reset_rate_limits()
    yield
    auth.OTP_STORE.clear()
    rate_limit.reset_rate_limits()


@pytest.fixture
def clock():
    return fixed_clock


@pytest.fixture
def store():
    return InMemoryRecordStore()


@pytest.fixture
def llm():
    return FakeCompletionClient()


@pytest.fixture
def app(store, llm):
    return create_app(Settings(), store=store, completion_client=llm, clock=fixed_clock)


@pytest.fixture
def client(app):
    return TestClient(app)


@pytest.fixture
def editor_headers(client):
    return login(client, "analyst@gdp-insights.dev")


@pytest.fixture
def viewer_headers(client):
    return login(client, "viewer@gdp-insights.dev")

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any, Dict, List, Optional, Tuple

from fastapi.testclient import TestClient


class FakeCompletionClient:
    """Records every prompt and answers with a canned reply (or raises)."""

    def __init__(self, reply: str = '{"summary": "GDP grew steadily."}', error: Optional[Exception] = None) -> None:
        self.reply = reply
        self.error = error
        self.calls: List[Tuple[str, str]] = []

    def complete(self, system: str, prompt: str) -> str:
        self.calls.append((system, prompt))
        if self.error is not None:
            raise self.error
        return self.reply


def otp_login(client: TestClient, email: str, *, name: Optional[str] = None) -> Tuple[Dict[str, str], Dict[str, Any]]:
    """Request and verify an OTP, returning auth headers and token payload."""
    res = client.post("/auth/request-otp", json={"email": email})
    assert res.status_code == 200, res.text
    code = _fetch_otp_from_store(email)
    assert code, "OTP code missing from auth store"

    body: Dict[str, Any] = {"email": email, "code": code}
    if name:
        body["name"] = name
    res = client.post("/auth/verify-otp", json=body)
    assert res.status_code == 200, res.text
    data = res.json()
    return {"Authorization": f"Bearer {data['access_token']}"}, data


def login(client: TestClient, email: str, *, name: Optional[str] = None) -> Dict[str, str]:
    headers, _ = otp_login(client, email, name=name)
    return headers


def _fetch_otp_from_store(email: str) -> Optional[str]:
    from src.gdp_insights.security import auth

    entry = auth.OTP_STORE.get(email.lower())
    return entry.code if entry else None


def fixed_clock() -> datetime:
    """Mid-2025: the latest accepted year is 2026."""
    return datetime(2025, 6, 1, tzinfo=UTC)

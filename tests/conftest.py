from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, List, Tuple

import pytest
from fastapi.testclient import TestClient

from bulkbuy.core.app_factory import create_application
from bulkbuy.core.config import Settings


class RecordingMailer:
    """Mail capability that keeps sent codes in memory."""

    def __init__(self) -> None:
        self.sent: List[Tuple[str, str, str]] = []
        self.fail = False

    def send_email_verification_otp(self, to_email: str, otp: str, name: str) -> bool:
        self.sent.append(("verify", to_email, otp))
        return not self.fail

    def send_password_reset_otp(self, to_email: str, otp: str, name: str) -> bool:
        self.sent.append(("reset", to_email, otp))
        return not self.fail

    def last_code(self, email: str, kind: str = "verify") -> str:
        for sent_kind, to_email, code in reversed(self.sent):
            if sent_kind == kind and to_email == email:
                return code
        raise AssertionError(f"No {kind} code sent to {email}")


@pytest.fixture
def settings(tmp_path, monkeypatch) -> Settings:
    monkeypatch.setenv("DATABASE_PATH", str(tmp_path / "bulkbuy.db"))
    monkeypatch.setenv("JWT_SECRET", "test-secret")
    monkeypatch.setenv("BCRYPT_ROUNDS", "4")
    monkeypatch.setenv("ENVIRONMENT", "test")
    monkeypatch.setenv("CORS_ALLOW_ORIGINS", "*")
    monkeypatch.delenv("SMTP_HOST", raising=False)
    return Settings()


@pytest.fixture
def mailer() -> RecordingMailer:
    return RecordingMailer()


@pytest.fixture
def client(settings, mailer):
    app = create_application(settings, mailer=mailer)
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def container(client):
    return client.app.state.container


@pytest.fixture
def make_user(client, mailer) -> Callable[..., Dict[str, Any]]:
    """Register and verify an account, returning its id, token and auth headers."""

    def _make(name: str = "Alice", email: str = "alice@example.com", password: str = "secret123") -> Dict[str, Any]:
        response = client.post("/api/auth/register", json={"name": name, "email": email, "password": password})
        assert response.status_code == 201, response.text
        response = client.post(
            "/api/auth/verify-email",
            json={"email": email, "otp": mailer.last_code(email)},
        )
        assert response.status_code == 200, response.text
        body = response.json()
        return {
            "id": body["user"]["id"],
            "email": email,
            "password": password,
            "token": body["token"],
            "headers": {"Authorization": f"Bearer {body['token']}"},
        }

    return _make


def future_iso(days: int = 1) -> str:
    return (datetime.now(timezone.utc) + timedelta(days=days)).isoformat()


@pytest.fixture
def product_payload() -> Callable[..., Dict[str, Any]]:
    def _payload(**overrides: Any) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "title": "Bulk Rice 50kg",
            "description": "Premium basmati rice bought in bulk for the neighbourhood.",
            "price": 45.5,
            "category": "Other",
            "estimatedPurchaseDate": future_iso(),
            "tags": ["rice", "grocery"],
        }
        payload.update(overrides)
        return payload

    return _payload


@pytest.fixture
def create_product(client, product_payload) -> Callable[..., Dict[str, Any]]:
    def _create(owner: Dict[str, Any], **overrides: Any) -> Dict[str, Any]:
        response = client.post("/api/products", json=product_payload(**overrides), headers=owner["headers"])
        assert response.status_code == 201, response.text
        return response.json()["product"]

    return _create

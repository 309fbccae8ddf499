"""Tests for the document and reminder HTTP API."""

from datetime import datetime, timedelta
from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient
from jose import jwt
from sqlmodel import Session, select

from idmonitor.api.deps import get_db_session
from idmonitor.config import get_settings
from idmonitor.main import app
from idmonitor.models.audit_log import AuditLog
from idmonitor.models.reminder import ScheduledReminder
from idmonitor.services.errors import StorageFailure

AUTH_SECRET = "test-auth-secret"
CRON_SECRET = "test-cron-secret"


@pytest.fixture
def client(db_session: Session, monkeypatch):
    """Test client bound to the in-memory database."""
    settings = get_settings()
    monkeypatch.setattr(settings, "AUTH_SECRET", AUTH_SECRET)
    monkeypatch.setattr(settings, "CRON_SECRET", CRON_SECRET)

    def override_session():
        yield db_session

    app.dependency_overrides[get_db_session] = override_session
    yield TestClient(app)
    app.dependency_overrides.clear()


def auth_headers(subject: str = "auth|api-user", email: str = "api@example.com") -> dict:
    token = jwt.encode({"sub": subject, "email": email}, AUTH_SECRET, algorithm="HS256")
    return {"Authorization": f"Bearer {token}"}


def document_payload(expires_at: datetime, kind: str = "passport") -> dict:
    return {
        "kind": kind,
        "country": "NL",
        "expires_at": expires_at.isoformat(),
        "encrypted_number": "ciphertext-number",
        "encrypted_holder_name": "ciphertext-name",
        "encryption_iv": "iv",
        "encryption_salt": "salt",
    }


def create_document(client: TestClient, days_ahead: int) -> dict:
    response = client.post(
        "/api/documents",
        json=document_payload(datetime.utcnow() + timedelta(days=days_ahead)),
        headers=auth_headers(),
    )
    assert response.status_code == 201
    return response.json()


def test_healthcheck(client: TestClient) -> None:
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


def test_requires_authentication(client: TestClient) -> None:
    assert client.get("/api/documents").status_code in (401, 403)

    bad = client.get("/api/documents", headers={"Authorization": "Bearer not-a-jwt"})
    assert bad.status_code == 401


def test_create_document_schedules_reminders(client: TestClient, db_session: Session) -> None:
    document = create_document(client, days_ahead=800)

    response = client.get(f"/api/documents/{document['id']}/reminders", headers=auth_headers())
    assert response.status_code == 200
    body = response.json()
    assert body["total"] == 3
    assert {r["reminder_type"] for r in body["reminders"]} == {"early_warning"}
    assert body["reminders"][0]["message"].startswith("Your passport expires in 365 days")

    actions = db_session.exec(select(AuditLog.action)).all()
    assert "document.created" in actions


def test_create_document_rejects_bad_country(client: TestClient) -> None:
    payload = document_payload(datetime.utcnow() + timedelta(days=100))
    payload["country"] = "nl"

    response = client.post("/api/documents", json=payload, headers=auth_headers())
    assert response.status_code == 422


def test_list_and_get_documents(client: TestClient) -> None:
    later = create_document(client, days_ahead=800)
    sooner = create_document(client, days_ahead=100)

    listing = client.get("/api/documents", headers=auth_headers()).json()
    assert listing["total"] == 2
    assert [d["id"] for d in listing["documents"]] == [sooner["id"], later["id"]]

    detail = client.get(f"/api/documents/{later['id']}", headers=auth_headers())
    assert detail.status_code == 200
    assert detail.json()["encrypted_number"] == "ciphertext-number"

    other_user = client.get(
        f"/api/documents/{later['id']}", headers=auth_headers(subject="auth|someone-else")
    )
    assert other_user.status_code == 404


def test_invalid_config_rejected_and_unchanged(client: TestClient) -> None:
    response = client.post(
        "/api/reminders/config",
        json={"urgent_period_days": 5},
        headers=auth_headers(),
    )
    assert response.status_code == 400

    config = client.get("/api/reminders/config", headers=auth_headers()).json()
    assert config["urgent_period_days"] == 30
    assert config["critical_period_days"] == 7


def test_config_validation_errors(client: TestClient) -> None:
    duplicate = client.post(
        "/api/reminders/config",
        json={"early_reminder_days": [30, 30]},
        headers=auth_headers(),
    )
    assert duplicate.status_code == 422

    bad_frequency = client.post(
        "/api/reminders/config",
        json={"urgent_frequency": "hourly"},
        headers=auth_headers(),
    )
    assert bad_frequency.status_code == 422


def test_config_change_reschedules(client: TestClient, db_session: Session) -> None:
    document = create_document(client, days_ahead=800)

    response = client.post(
        "/api/reminders/config",
        json={"early_reminder_days": [30], "sms_enabled": True},
        headers=auth_headers(),
    )
    assert response.status_code == 200
    assert response.json()["early_reminder_days"] == [30]
    assert response.json()["sms_enabled"] is True

    reminders = client.get(
        f"/api/documents/{document['id']}/reminders", headers=auth_headers()
    ).json()
    assert reminders["total"] == 1

    actions = db_session.exec(select(AuditLog.action)).all()
    assert "reminder.configured" in actions


def test_expiry_update_reschedules(client: TestClient) -> None:
    document = create_document(client, days_ahead=800)

    response = client.patch(
        f"/api/documents/{document['id']}",
        json={"expires_at": (datetime.utcnow() - timedelta(days=3)).isoformat()},
        headers=auth_headers(),
    )
    assert response.status_code == 200

    reminders = client.get(
        f"/api/documents/{document['id']}/reminders", headers=auth_headers()
    ).json()
    assert [r["reminder_type"] for r in reminders["reminders"]] == ["expired_notice"]

    upcoming = client.get("/api/reminders/upcoming", headers=auth_headers()).json()
    assert upcoming["total"] == 1


def test_delete_document_cancels_reminders(client: TestClient, db_session: Session) -> None:
    document = create_document(client, days_ahead=800)

    response = client.delete(f"/api/documents/{document['id']}", headers=auth_headers())
    assert response.status_code == 204

    assert client.get(
        f"/api/documents/{document['id']}", headers=auth_headers()
    ).status_code == 404
    remaining = db_session.exec(select(ScheduledReminder)).all()
    assert remaining == []


def test_process_requires_cron_secret(client: TestClient) -> None:
    response = client.post("/api/reminders/process", headers={"X-Cron-Secret": "wrong"})
    assert response.status_code == 401

    missing = client.post("/api/reminders/process")
    assert missing.status_code == 401


def test_process_dispatches_due_reminders(client: TestClient, db_session: Session) -> None:
    create_document(client, days_ahead=-1)

    response = client.post("/api/reminders/process", headers={"X-Cron-Secret": CRON_SECRET})
    assert response.status_code == 200
    assert response.json() == {"processed": 1}

    again = client.post("/api/reminders/process", headers={"X-Cron-Secret": CRON_SECRET})
    assert again.json() == {"processed": 0}

    reminder = db_session.exec(select(ScheduledReminder)).one()
    assert reminder.sent_at is not None


def test_user_provisioned_and_contact_refreshed(client: TestClient, db_session: Session) -> None:
    from idmonitor.models.user import User

    client.get("/api/documents", headers=auth_headers(email="first@example.com"))
    client.get("/api/documents", headers=auth_headers(email="second@example.com"))

    users = db_session.exec(select(User).where(User.auth_subject == "auth|api-user")).all()
    assert len(users) == 1
    db_session.refresh(users[0])
    assert users[0].email == "second@example.com"


def test_config_saved_when_reschedule_fails(client: TestClient) -> None:
    with patch(
        "idmonitor.api.reminders.reschedule_user_documents",
        side_effect=StorageFailure("reminder store down"),
    ):
        response = client.post(
            "/api/reminders/config",
            json={"urgent_period_days": 45},
            headers=auth_headers(),
        )

    assert response.status_code == 503
    assert "settings saved" in response.json()["detail"]

    config = client.get("/api/reminders/config", headers=auth_headers()).json()
    assert config["urgent_period_days"] == 45

"""Endpoint tests for login, registration and password reset without a database."""

from __future__ import annotations

from datetime import datetime, timedelta
from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient

from penwwws.config.settings import settings
from penwwws.database import get_session
from penwwws.main import app
from penwwws.utils import hash_password, verify_password

client = TestClient(app)

NEW_PASSWORD = "N3w!passw0rd"


def _user(password: str = "Corr3ct!horse") -> SimpleNamespace:
    return SimpleNamespace(
        id=7,
        email="user7@example.com",
        full_name="User 7",
        password_hash=hash_password(password),
    )


def _reset_row(created_at: datetime, reset_at: datetime | None = None) -> tuple:
    token = SimpleNamespace(
        token="reset-token", user_id=7, created_at=created_at, reset_at=reset_at
    )
    return token, _user()


@pytest.fixture(autouse=True)
def override_session(scripted_session):
    async def fake_session_dep():
        yield scripted_session

    app.dependency_overrides[get_session] = fake_session_dep
    yield
    app.dependency_overrides.clear()


def test_login_with_wrong_password(scripted_session) -> None:
    scripted_session.queue([_user()])

    response = client.post(
        "/auth/login", json={"email": "user7@example.com", "password": "Wrong!pass1"}
    )

    assert response.status_code == 401


def test_login_with_unknown_email(scripted_session) -> None:
    response = client.post(
        "/auth/login", json={"email": "nobody@example.com", "password": "Wrong!pass1"}
    )

    assert response.status_code == 401


def test_register_with_taken_email(scripted_session) -> None:
    scripted_session.queue([7])

    response = client.post(
        "/auth/register",
        json={
            "fullName": "User 7",
            "email": "User7@Example.com",
            "password": "Corr3ct!horse",
        },
    )

    assert response.status_code == 409
    assert scripted_session.added == []


def test_register_with_weak_password(scripted_session) -> None:
    response = client.post(
        "/auth/register",
        json={"fullName": "User 7", "email": "user7@example.com", "password": "short"},
    )

    assert response.status_code == 400
    assert scripted_session.statements == []


def test_reset_request_for_unknown_email(scripted_session) -> None:
    response = client.post("/auth/reset-password", json={"email": "nobody@example.com"})

    assert response.status_code == 404
    assert scripted_session.added == []


def test_reset_with_unknown_token(scripted_session) -> None:
    response = client.post(
        "/auth/reset-password/missing", json={"password": NEW_PASSWORD}
    )

    assert response.status_code == 400


def test_reset_with_used_token(scripted_session) -> None:
    token, user = _reset_row(datetime.utcnow(), reset_at=datetime.utcnow())
    scripted_session.queue([(token, user)])

    response = client.post(
        "/auth/reset-password/reset-token", json={"password": NEW_PASSWORD}
    )

    assert response.status_code == 400
    assert not verify_password(NEW_PASSWORD, user.password_hash)
    assert scripted_session.commits == 0


def test_reset_with_expired_token(scripted_session) -> None:
    hours = settings.security.reset_token_hours + 1
    issued = datetime.utcnow() - timedelta(hours=hours)
    token, user = _reset_row(issued)
    scripted_session.queue([(token, user)])

    response = client.post(
        "/auth/reset-password/reset-token", json={"password": NEW_PASSWORD}
    )

    assert response.status_code == 400
    assert token.reset_at is None
    assert scripted_session.commits == 0


def test_reset_updates_the_password_once(scripted_session) -> None:
    token, user = _reset_row(datetime.utcnow() - timedelta(minutes=5))
    scripted_session.queue([(token, user)])

    response = client.post(
        "/auth/reset-password/reset-token", json={"password": NEW_PASSWORD}
    )

    assert response.status_code == 200
    assert verify_password(NEW_PASSWORD, user.password_hash)
    assert token.reset_at is not None
    assert scripted_session.commits == 1

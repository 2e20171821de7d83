"""Endpoint tests for invitations and admission review without a database."""

from __future__ import annotations

from datetime import datetime, timedelta
from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient

from penwwws.controllers.dependencies import get_current_user, require_school_admin
from penwwws.database import get_session
from penwwws.main import app
from penwwws.models.invitation import AdmissionStatus, InvitationToken
from penwwws.models.school import SchoolMembership, SchoolRole

client = TestClient(app)


def _invitation(**overrides) -> InvitationToken:
    values = {
        "id": 11,
        "token": "invite-token",
        "school_id": 1,
        "role": SchoolRole.TEACHER,
        "expires_at": None,
    }
    values.update(overrides)
    return InvitationToken(**values)


def _admission(status: AdmissionStatus) -> SimpleNamespace:
    return SimpleNamespace(
        id=21,
        user_id=7,
        school_id=1,
        role=SchoolRole.TEACHER,
        status=status,
        reviewed_by_id=None,
        created_at=datetime(2024, 9, 1, 8, 30),
        user=SimpleNamespace(
            id=7,
            email="user7@example.com",
            full_name="User 7",
            avatar_url=None,
        ),
    )


@pytest.fixture(autouse=True)
def override_dependencies(scripted_session):
    async def fake_admin():
        return SimpleNamespace(user_id=100, school_id=1, role=SchoolRole.ADMIN)

    async def fake_user():
        return SimpleNamespace(id=7, email="user7@example.com")

    async def fake_session_dep():
        yield scripted_session

    app.dependency_overrides[require_school_admin] = fake_admin
    app.dependency_overrides[get_current_user] = fake_user
    app.dependency_overrides[get_session] = fake_session_dep

    yield

    app.dependency_overrides.clear()


def test_invitation_cannot_grant_super_admin(scripted_session) -> None:
    response = client.post("/schools/1/invitations", json={"role": "SUPER_ADMIN"})

    assert response.status_code == 400
    assert scripted_session.added == []


def test_accepting_an_unknown_invitation(scripted_session) -> None:
    response = client.post("/invitations/missing/accept")

    assert response.status_code == 400


def test_accepting_an_expired_invitation(scripted_session) -> None:
    expired = _invitation(expires_at=datetime.utcnow() - timedelta(hours=1))
    scripted_session.queue([expired])

    response = client.post("/invitations/invite-token/accept")

    assert response.status_code == 400
    assert scripted_session.added == []


def test_members_cannot_accept_again(scripted_session) -> None:
    scripted_session.queue([_invitation()], [3])

    response = client.post("/invitations/invite-token/accept")

    assert response.status_code == 409
    assert response.json()["detail"] == "You are already a member of this school"
    assert scripted_session.added == []


def test_second_pending_admission_is_a_conflict(scripted_session) -> None:
    scripted_session.queue([_invitation()], [], [21])

    response = client.post("/invitations/invite-token/accept")

    assert response.status_code == 409
    assert response.json()["detail"] == "An admission request is already pending"
    assert scripted_session.added == []
    assert scripted_session.commits == 0


def test_review_unknown_admission(scripted_session) -> None:
    response = client.post("/schools/1/admissions/21/review", json={"accept": True})

    assert response.status_code == 404


def test_reviewed_admission_cannot_be_reviewed_again(scripted_session) -> None:
    scripted_session.queue([_admission(AdmissionStatus.ACCEPTED)])

    response = client.post("/schools/1/admissions/21/review", json={"accept": False})

    assert response.status_code == 409
    assert scripted_session.added == []
    assert scripted_session.commits == 0


def test_accepting_an_admission_creates_the_membership(scripted_session) -> None:
    pending = _admission(AdmissionStatus.PENDING)
    scripted_session.queue([pending], [pending])

    response = client.post("/schools/1/admissions/21/review", json={"accept": True})

    assert response.status_code == 200
    assert response.json()["status"] == "ACCEPTED"
    (membership,) = scripted_session.added
    assert isinstance(membership, SchoolMembership)
    assert (membership.user_id, membership.school_id) == (7, 1)
    assert membership.role == SchoolRole.TEACHER
    assert pending.reviewed_by_id == 100


def test_rejecting_an_admission_adds_no_membership(scripted_session) -> None:
    pending = _admission(AdmissionStatus.PENDING)
    scripted_session.queue([pending], [pending])

    response = client.post("/schools/1/admissions/21/review", json={"accept": False})

    assert response.status_code == 200
    assert response.json()["status"] == "REJECTED"
    assert scripted_session.added == []
    assert scripted_session.commits == 1

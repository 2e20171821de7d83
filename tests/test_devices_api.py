"""Endpoint tests for kiosk login and the kiosk read routes without a database."""

from __future__ import annotations

from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient

from penwwws.controllers.dependencies import DeviceContext, get_current_device
from penwwws.database import get_session
from penwwws.main import app
from penwwws.models.group import Group
from penwwws.models.school import SchoolRole
from penwwws.models.subject import Subject
from penwwws.utils import hash_password

client = TestClient(app)


def _user(user_id: int, name: str) -> SimpleNamespace:
    return SimpleNamespace(
        id=user_id,
        email=f"user{user_id}@example.com",
        full_name=name,
        avatar_url=None,
    )


@pytest.fixture(autouse=True)
def override_dependencies(scripted_session):
    async def fake_device():
        return DeviceContext(
            credential=SimpleNamespace(id=1, school_id=1),
            school=SimpleNamespace(id=1, name="North High"),
        )

    async def fake_session_dep():
        yield scripted_session

    app.dependency_overrides[get_current_device] = fake_device
    app.dependency_overrides[get_session] = fake_session_dep

    yield

    app.dependency_overrides.clear()


def test_login_with_unknown_credential(scripted_session) -> None:
    response = client.post("/device/login", json={"id": "kiosk-1", "password": "x"})

    assert response.status_code == 401
    assert scripted_session.commits == 0


def test_login_with_wrong_password(scripted_session) -> None:
    device = SimpleNamespace(
        id=1,
        school_id=1,
        credential_id="kiosk-1",
        password_hash=hash_password("right-password"),
        last_login_at=None,
    )
    scripted_session.queue([device])

    response = client.post(
        "/device/login", json={"id": "kiosk-1", "password": "wrong-password"}
    )

    assert response.status_code == 401
    assert device.last_login_at is None
    assert scripted_session.commits == 0


def test_group_of_another_school_is_not_found(scripted_session) -> None:
    scripted_session.objects[(Group, 9)] = SimpleNamespace(id=9, school_id=2)

    response = client.get("/device/school/students/group/9")

    assert response.status_code == 404
    assert scripted_session.statements == []


def test_subject_of_another_school_is_not_found(scripted_session) -> None:
    scripted_session.objects[(Subject, 4)] = SimpleNamespace(id=4, school_id=2)

    response = client.get("/device/school/students/subject/4")

    assert response.status_code == 404


def test_group_listing_reports_every_direct_member(scripted_session) -> None:
    scripted_session.objects[(Group, 9)] = SimpleNamespace(id=9, school_id=1)
    scripted_session.queue(
        [
            (_user(5, "Ada"), SchoolRole.TEACHER),
            (_user(6, "Ben"), SchoolRole.STUDENT),
        ]
    )

    response = client.get("/device/school/students/group/9")

    assert response.status_code == 200
    assert [(item["id"], item["role"]) for item in response.json()] == [
        (5, "TEACHER"),
        (6, "STUDENT"),
    ]
    (query,) = scripted_session.executed_sql()
    assert "school_memberships.role =" not in query
    assert "group_memberships.group_id" in query


def test_subject_listing_reports_every_direct_member(scripted_session) -> None:
    scripted_session.objects[(Subject, 4)] = SimpleNamespace(id=4, school_id=1)
    scripted_session.queue([(_user(5, "Ada"), SchoolRole.ADMIN)])

    response = client.get("/device/school/students/subject/4")

    assert response.status_code == 200
    assert response.json()[0]["role"] == "ADMIN"
    (query,) = scripted_session.executed_sql()
    assert "school_memberships.role =" not in query
    assert "subject_memberships.subject_id" in query


def test_school_students_are_filtered_by_role(scripted_session) -> None:
    scripted_session.queue([(_user(6, "Ben"), SchoolRole.STUDENT)])

    response = client.get("/device/school/students")

    assert response.status_code == 200
    assert response.json()[0]["role"] == "STUDENT"
    (query,) = scripted_session.executed_sql()
    assert "school_memberships.role =" in query

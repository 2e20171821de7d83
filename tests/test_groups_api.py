"""Endpoint tests for /schools/{school_id}/groups without a database."""

from __future__ import annotations

from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient

from penwwws.config.settings import CyclePolicy
from penwwws.controllers.dependencies import get_group_manager, require_school_admin
from penwwws.database import get_session
from penwwws.main import app
from penwwws.models.school import SchoolRole
from penwwws.services.group_hierarchy import GroupHierarchyManager

client = TestClient(app)

BASE = "/schools/1/groups"


@pytest.fixture
def policy() -> dict:
    return {"cycle_policy": CyclePolicy.DETACH}


@pytest.fixture(autouse=True)
def override_dependencies(chain_repository, fake_session, policy):
    """Run the real manager against the in-memory repository as a school admin."""

    async def fake_admin():
        return SimpleNamespace(user_id=100, school_id=1, role=SchoolRole.ADMIN)

    async def fake_session_dep():
        yield fake_session

    def fake_manager():
        return GroupHierarchyManager(
            chain_repository, cycle_policy=policy["cycle_policy"]
        )

    app.dependency_overrides[require_school_admin] = fake_admin
    app.dependency_overrides[get_session] = fake_session_dep
    app.dependency_overrides[get_group_manager] = fake_manager

    yield

    app.dependency_overrides.clear()


def test_assign_members_returns_created_rows(chain_repository) -> None:
    response = client.post(f"{BASE}/3/members", json={"userIds": [7]})

    assert response.status_code == 201
    rows = {(row["userId"], row["groupId"]) for row in response.json()}
    assert rows == {(7, 1), (7, 2), (7, 3)}

    again = client.post(f"{BASE}/3/members", json={"userIds": [7]})
    assert again.status_code == 201
    assert again.json() == []
    assert len(chain_repository.memberships) == 3


@pytest.mark.parametrize(
    "body",
    [
        {"userIds": "7"},
        {"userIds": ["seven"]},
        {"userIds": []},
        {"userIds": [0]},
        {},
    ],
)
def test_malformed_user_ids_are_a_bad_request(body, chain_repository) -> None:
    response = client.post(f"{BASE}/3/members", json=body)

    assert response.status_code == 400
    assert chain_repository.memberships == []


def test_assign_unknown_users_is_not_found(chain_repository) -> None:
    response = client.post(f"{BASE}/3/members", json={"userIds": [7, 42]})

    assert response.status_code == 404
    assert "42" in response.json()["detail"]
    assert chain_repository.memberships == []


def test_group_of_another_school_is_forbidden(chain_repository) -> None:
    chain_repository.add_group(50, school_id=2)

    response = client.get(f"{BASE}/50/members")

    assert response.status_code == 403


def test_unknown_group_is_not_found() -> None:
    response = client.delete(f"{BASE}/999")

    assert response.status_code == 404
    assert response.json() == {"detail": "Group not found"}


def test_subtree_members_are_listed_once(chain_repository) -> None:
    chain_repository.add_user(8, role=SchoolRole.TEACHER)
    chain_repository.link(8, 1)
    chain_repository.link(7, 2)
    chain_repository.link(7, 3)

    response = client.get(f"{BASE}/1/members")

    assert response.status_code == 200
    body = response.json()
    assert [member["id"] for member in body] == [8, 7]
    assert body[0]["role"] == "TEACHER"
    assert body[1]["fullName"] == "User 7"


def test_unassign_removes_only_the_group_row(chain_repository) -> None:
    client.post(f"{BASE}/3/members", json={"userIds": [7]})

    response = client.request("DELETE", f"{BASE}/3/members", json={"userIds": [7]})

    assert response.status_code == 204
    assert chain_repository.pairs() == {(7, 1), (7, 2)}


def test_reparent_under_descendant_detaches_children(chain_repository) -> None:
    response = client.put(f"{BASE}/1", json={"parentId": 3})

    assert response.status_code == 200
    body = response.json()
    assert body["parentId"] == 3
    assert body["detachedGroupIds"] == [2]
    assert chain_repository.groups[2].parent_id is None
    assert chain_repository.groups[3].parent_id == 2


def test_reparent_under_descendant_rejected_by_policy(policy, chain_repository) -> None:
    policy["cycle_policy"] = CyclePolicy.REJECT

    response = client.put(f"{BASE}/1", json={"parentId": 3})

    assert response.status_code == 409
    assert chain_repository.groups[1].parent_id is None
    assert chain_repository.groups[2].parent_id == 1


def test_explicit_null_parent_moves_group_to_top_level(chain_repository) -> None:
    response = client.put(f"{BASE}/3", json={"parentId": None})

    assert response.status_code == 200
    assert response.json()["parentId"] is None
    assert chain_repository.groups[3].parent_id is None


def test_group_cannot_be_its_own_parent() -> None:
    response = client.put(f"{BASE}/2", json={"parentId": 2})

    assert response.status_code == 400


def test_empty_update_is_a_bad_request() -> None:
    response = client.put(f"{BASE}/2", json={})

    assert response.status_code == 400


def test_cyclic_data_is_reported_as_conflict(chain_repository) -> None:
    chain_repository.groups[1].parent_id = 3

    response = client.post(f"{BASE}/3/members", json={"userIds": [7]})

    assert response.status_code == 409
    assert response.json() == {"detail": "Group hierarchy contains a cycle"}
    assert chain_repository.memberships == []


def test_delete_group_orphans_children(chain_repository) -> None:
    response = client.delete(f"{BASE}/2")

    assert response.status_code == 204
    assert 2 not in chain_repository.groups
    assert chain_repository.groups[3].parent_id is None


def test_requests_without_token_are_unauthorized() -> None:
    app.dependency_overrides.pop(require_school_admin)

    response = client.get(f"{BASE}/1/members")

    assert response.status_code == 401

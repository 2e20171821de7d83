"""Shared fixtures: an in-memory group repository and fake database sessions."""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
import sys
from typing import Deque, Dict, List, Optional, Sequence, Set, Tuple

import pytest

ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT))

from penwwws.application.interfaces import GroupRepositoryInterface  # noqa: E402
from penwwws.models.school import SchoolRole  # noqa: E402

SCHOOL_ID = 1
OTHER_SCHOOL_ID = 2


@dataclass
class FakeGroup:
    id: int
    name: str
    school_id: int
    parent_id: Optional[int] = None
    created_at: datetime = field(default_factory=datetime.utcnow)
    updated_at: datetime = field(default_factory=datetime.utcnow)


@dataclass
class FakeUser:
    id: int
    email: str
    full_name: str
    avatar_url: Optional[str] = None


@dataclass
class FakeMembership:
    id: int
    group_id: int
    user_id: int


class InMemoryGroupRepository(GroupRepositoryInterface):
    """Dict-backed stand-in for the SQLAlchemy repository.

    Deleting a group mimics the foreign keys: children get ``parent_id=None``
    and the group's memberships are dropped.
    """

    def __init__(self) -> None:
        self.groups: Dict[int, FakeGroup] = {}
        self.users: Dict[int, FakeUser] = {}
        self.roles: Dict[Tuple[int, int], SchoolRole] = {}
        self.memberships: List[FakeMembership] = []
        self.commits = 0
        self._next_membership_id = 1

    # Seeding helpers

    def add_group(
        self,
        group_id: int,
        parent_id: Optional[int] = None,
        school_id: int = SCHOOL_ID,
        name: Optional[str] = None,
    ) -> FakeGroup:
        group = FakeGroup(
            id=group_id,
            name=name or f"group-{group_id}",
            school_id=school_id,
            parent_id=parent_id,
        )
        self.groups[group_id] = group
        return group

    def add_user(
        self,
        user_id: int,
        role: Optional[SchoolRole] = SchoolRole.STUDENT,
        school_id: int = SCHOOL_ID,
    ) -> FakeUser:
        user = FakeUser(
            id=user_id,
            email=f"user{user_id}@example.com",
            full_name=f"User {user_id}",
        )
        self.users[user_id] = user
        if role is not None:
            self.roles[(school_id, user_id)] = role
        return user

    def link(self, user_id: int, group_id: int) -> FakeMembership:
        """Store a direct membership without ancestor propagation."""

        membership = FakeMembership(
            id=self._next_membership_id, group_id=group_id, user_id=user_id
        )
        self._next_membership_id += 1
        self.memberships.append(membership)
        return membership

    def pairs(self) -> Set[Tuple[int, int]]:
        return {(item.user_id, item.group_id) for item in self.memberships}

    # GroupRepositoryInterface

    async def get_group(self, group_id: int) -> Optional[FakeGroup]:
        return self.groups.get(group_id)

    async def school_parent_map(self, school_id: int) -> Dict[int, Optional[int]]:
        return {
            group.id: group.parent_id
            for group in self.groups.values()
            if group.school_id == school_id
        }

    async def school_member_ids(
        self, school_id: int, user_ids: Sequence[int]
    ) -> Set[int]:
        return {user_id for user_id in user_ids if (school_id, user_id) in self.roles}

    async def school_roles(
        self, school_id: int, user_ids: Sequence[int]
    ) -> Dict[int, SchoolRole]:
        return {
            user_id: self.roles[(school_id, user_id)]
            for user_id in user_ids
            if (school_id, user_id) in self.roles
        }

    async def existing_memberships(
        self, user_ids: Sequence[int], group_ids: Sequence[int]
    ) -> Set[Tuple[int, int]]:
        return {
            (user_id, group_id)
            for user_id, group_id in self.pairs()
            if user_id in user_ids and group_id in group_ids
        }

    async def add_memberships(
        self, pairs: Sequence[Tuple[int, int]]
    ) -> List[FakeMembership]:
        return [self.link(user_id, group_id) for user_id, group_id in pairs]

    async def remove_memberships(self, group_id: int, user_ids: Sequence[int]) -> int:
        kept = [
            item
            for item in self.memberships
            if not (item.group_id == group_id and item.user_id in user_ids)
        ]
        removed = len(self.memberships) - len(kept)
        self.memberships = kept
        return removed

    async def members_by_group(
        self, group_ids: Sequence[int]
    ) -> Dict[int, List[FakeUser]]:
        members: Dict[int, List[FakeUser]] = {group_id: [] for group_id in group_ids}
        for item in sorted(self.memberships, key=lambda m: m.id):
            if item.group_id in members:
                members[item.group_id].append(self.users[item.user_id])
        return members

    async def detach_groups(self, group_ids: Sequence[int]) -> None:
        for group_id in group_ids:
            self.groups[group_id].parent_id = None

    async def set_parent(self, group: FakeGroup, parent_id: Optional[int]) -> FakeGroup:
        group.parent_id = parent_id
        return group

    async def delete_group(self, group: FakeGroup) -> None:
        del self.groups[group.id]
        for other in self.groups.values():
            if other.parent_id == group.id:
                other.parent_id = None
        self.memberships = [m for m in self.memberships if m.group_id != group.id]

    async def commit(self) -> None:
        self.commits += 1


class FakeSession:
    """Covers the session calls the group endpoints make outside the manager."""

    def __init__(self) -> None:
        self.commits = 0
        self.rollbacks = 0

    async def commit(self) -> None:
        self.commits += 1

    async def rollback(self) -> None:
        self.rollbacks += 1

    async def refresh(self, instance, attribute_names=None) -> None:
        return None


class FakeResult:
    """Enough of ``sqlalchemy.engine.Result`` for the controllers under test."""

    def __init__(self, rows: Sequence = ()) -> None:
        self._rows = list(rows)

    def scalars(self) -> "FakeResult":
        return self

    def all(self) -> list:
        return list(self._rows)

    def first(self):
        return self._rows[0] if self._rows else None

    def one_or_none(self):
        return self.first()

    def scalar_one_or_none(self):
        return self.first()

    def scalar_one(self):
        return self._rows[0]


class ScriptedSession(FakeSession):
    """Fake ``AsyncSession`` replaying queued query results in order.

    ``execute`` records each statement and returns the next queued result
    (an empty one once the queue runs out); ``get`` looks objects up by
    ``(model, id)``.
    """

    def __init__(self) -> None:
        super().__init__()
        self.results: Deque[FakeResult] = deque()
        self.objects: Dict[Tuple[type, int], object] = {}
        self.statements: list = []
        self.added: list = []
        self.deleted: list = []

    def queue(self, *rows: Sequence) -> None:
        for item in rows:
            self.results.append(FakeResult(item))

    def executed_sql(self) -> List[str]:
        return [str(statement) for statement in self.statements]

    async def execute(self, statement, *args, **kwargs) -> FakeResult:
        self.statements.append(statement)
        if self.results:
            return self.results.popleft()
        return FakeResult()

    async def get(self, model, ident):
        return self.objects.get((model, ident))

    def add(self, instance) -> None:
        self.added.append(instance)

    async def delete(self, instance) -> None:
        self.deleted.append(instance)

    async def flush(self) -> None:
        return None


@pytest.fixture
def repository() -> InMemoryGroupRepository:
    return InMemoryGroupRepository()


@pytest.fixture
def chain_repository(repository: InMemoryGroupRepository) -> InMemoryGroupRepository:
    """``A(1) <- B(2) <- C(3)`` with student 7 in the school."""

    repository.add_group(1, name="A")
    repository.add_group(2, parent_id=1, name="B")
    repository.add_group(3, parent_id=2, name="C")
    repository.add_user(7)
    return repository


@pytest.fixture
def fake_session() -> FakeSession:
    return FakeSession()


@pytest.fixture
def scripted_session() -> ScriptedSession:
    return ScriptedSession()

"""Group hierarchy traversal and the operations built on top of it.

Groups of a school form a forest through ``parent_id``. Every operation loads
the school's ``(id, parent_id)`` pairs once, then walks them in memory with the
pure helpers below. The helpers keep an explicit visited set so that a cycle
left behind by bad data is reported as :class:`GroupCycleError` instead of
looping forever.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping, Optional, Sequence

from penwwws.application.interfaces import GroupRepositoryInterface
from penwwws.config.settings import CyclePolicy
from penwwws.telemetry import increment_detached_groups

logger = logging.getLogger(__name__)

ParentMap = Mapping[int, Optional[int]]
ChildMap = Mapping[int, Sequence[int]]


class GroupHierarchyError(Exception):
    """Base class for hierarchy failures."""


class GroupNotFoundError(GroupHierarchyError):
    def __init__(self, group_id: int) -> None:
        super().__init__(f"Group {group_id} not found")
        self.group_id = group_id


class GroupSchoolMismatchError(GroupHierarchyError):
    """The group exists but belongs to another school."""

    def __init__(self, group_id: int, school_id: int) -> None:
        super().__init__(f"Group {group_id} does not belong to school {school_id}")
        self.group_id = group_id
        self.school_id = school_id


class MembersNotInSchoolError(GroupHierarchyError):
    def __init__(self, user_ids: Iterable[int]) -> None:
        self.user_ids = sorted(set(user_ids))
        super().__init__(
            "Users are not members of this school: "
            + ", ".join(str(user_id) for user_id in self.user_ids)
        )


class InvalidParentError(GroupHierarchyError):
    """A group cannot be its own parent."""


class GroupCycleError(GroupHierarchyError):
    """The stored parent graph already contains a cycle."""

    def __init__(self, group_id: int) -> None:
        super().__init__(f"Group hierarchy contains a cycle through group {group_id}")
        self.group_id = group_id


class CycleRejectedError(GroupHierarchyError):
    """A re-parent would create a cycle and the policy forbids detaching."""

    def __init__(self, group_id: int, parent_id: int) -> None:
        super().__init__(
            f"Group {parent_id} is a descendant of group {group_id}"
        )
        self.group_id = group_id
        self.parent_id = parent_id


def build_child_map(parents: ParentMap) -> dict[int, list[int]]:
    """Invert a parent map into ``{group_id: [child ids sorted by id]}``."""

    children: dict[int, list[int]] = {group_id: [] for group_id in parents}
    for group_id in sorted(parents):
        parent_id = parents[group_id]
        if parent_id is not None:
            children.setdefault(parent_id, []).append(group_id)
    return children


def ancestor_chain(group_id: int, parents: ParentMap) -> list[int]:
    """Return ``group_id`` followed by each transitive parent up to the root.

    The walk stops at a parent that is not part of ``parents``, so a link to a
    group of another school never leaks into the chain.
    """

    chain: list[int] = []
    visited: set[int] = set()
    current: int | None = group_id
    while current is not None:
        if current in visited:
            raise GroupCycleError(current)
        visited.add(current)
        chain.append(current)
        current = parents.get(current)
        if current is not None and current not in parents:
            logger.warning(
                "Group %s points at parent %s outside its school; stopping there",
                chain[-1],
                current,
            )
            break
    return chain


def subtree(group_id: int, children: ChildMap) -> list[int]:
    """Return ``group_id`` and all its descendants in depth-first pre-order."""

    order: list[int] = []
    visited: set[int] = set()
    stack = [group_id]
    while stack:
        current = stack.pop()
        if current in visited:
            raise GroupCycleError(current)
        visited.add(current)
        order.append(current)
        # Reversed so the lowest id is popped, and therefore visited, first.
        stack.extend(reversed(children.get(current, ())))
    return order


def descendants(group_id: int, children: ChildMap) -> set[int]:
    """Return every transitive child of ``group_id`` (excluding itself)."""

    found = set(subtree(group_id, children))
    found.discard(group_id)
    return found


def collect_members(
    group_order: Sequence[int],
    members_by_group: Mapping[int, Sequence[Any]],
) -> list[Any]:
    """Flatten members in group order, keeping the first occurrence of each user."""

    seen: set[int] = set()
    collected: list[Any] = []
    for group_id in group_order:
        for user in members_by_group.get(group_id, ()):
            if user.id in seen:
                continue
            seen.add(user.id)
            collected.append(user)
    return collected


@dataclass(slots=True)
class SubtreeMember:
    """A user found in a group subtree together with their school role."""

    user: Any
    role: Any | None


@dataclass(slots=True)
class ReparentResult:
    group: Any
    detached_ids: list[int] = field(default_factory=list)


class GroupHierarchyManager:
    """School-scoped group operations that respect the parent hierarchy."""

    def __init__(
        self,
        repository: GroupRepositoryInterface,
        *,
        cycle_policy: CyclePolicy = CyclePolicy.DETACH,
    ) -> None:
        self.repository = repository
        self.cycle_policy = cycle_policy

    async def get_group(self, school_id: int, group_id: int) -> Any:
        """Return the group, enforcing that it lives in ``school_id``."""

        group = await self.repository.get_group(group_id)
        if group is None:
            raise GroupNotFoundError(group_id)
        if group.school_id != school_id:
            raise GroupSchoolMismatchError(group_id, school_id)
        return group

    async def get_parent(self, school_id: int, parent_id: int) -> Any:
        """Return a prospective parent; groups of other schools do not resolve."""

        group = await self.repository.get_group(parent_id)
        if group is None or group.school_id != school_id:
            raise GroupNotFoundError(parent_id)
        return group

    async def assign_members(
        self,
        school_id: int,
        group_id: int,
        user_ids: Sequence[int],
    ) -> list[Any]:
        """Add users to the group and all of its ancestors.

        Rows that already exist are skipped, so repeating a call creates
        nothing. Returns only the rows created by this call.
        """

        await self.get_group(school_id, group_id)
        requested = list(dict.fromkeys(user_ids))
        known = await self.repository.school_member_ids(school_id, requested)
        missing = [user_id for user_id in requested if user_id not in known]
        if missing:
            raise MembersNotInSchoolError(missing)

        parents = await self.repository.school_parent_map(school_id)
        chain = ancestor_chain(group_id, parents)
        existing = await self.repository.existing_memberships(requested, chain)

        pairs = [
            (user_id, ancestor_id)
            for user_id in requested
            for ancestor_id in chain
            if (user_id, ancestor_id) not in existing
        ]
        if not pairs:
            return []

        created = await self.repository.add_memberships(pairs)
        await self.repository.commit()
        logger.info(
            "Assigned %d user(s) to group %s and %d ancestor(s); %d new row(s)",
            len(requested),
            group_id,
            len(chain) - 1,
            len(created),
        )
        return created

    async def remove_members(
        self,
        school_id: int,
        group_id: int,
        user_ids: Sequence[int],
    ) -> int:
        """Remove direct memberships of ``group_id`` only; ancestors are untouched."""

        await self.get_group(school_id, group_id)
        removed = await self.repository.remove_memberships(group_id, list(user_ids))
        await self.repository.commit()
        return removed

    async def subtree_members(
        self,
        school_id: int,
        group_id: int,
    ) -> list[SubtreeMember]:
        """Return the distinct members of ``group_id`` and every descendant."""

        await self.get_group(school_id, group_id)
        parents = await self.repository.school_parent_map(school_id)
        order = subtree(group_id, build_child_map(parents))
        members_by_group = await self.repository.members_by_group(order)
        users = collect_members(order, members_by_group)
        roles = await self.repository.school_roles(
            school_id, [user.id for user in users]
        )
        return [SubtreeMember(user=user, role=roles.get(user.id)) for user in users]

    async def reparent(
        self,
        school_id: int,
        group_id: int,
        new_parent_id: int | None,
    ) -> ReparentResult:
        """Move ``group_id`` under ``new_parent_id`` (or to the top level).

        When the new parent is one of the group's own descendants the
        configured policy applies: ``detach`` clears ``parent_id`` on the
        group's direct children before moving it, ``reject`` refuses.
        """

        group = await self.get_group(school_id, group_id)
        if new_parent_id is None:
            group = await self.repository.set_parent(group, None)
            await self.repository.commit()
            return ReparentResult(group=group)

        if new_parent_id == group_id:
            raise InvalidParentError("A group cannot be its own parent")
        await self.get_parent(school_id, new_parent_id)

        parents = await self.repository.school_parent_map(school_id)
        children = build_child_map(parents)
        detached: list[int] = []
        if new_parent_id in descendants(group_id, children):
            if self.cycle_policy is CyclePolicy.REJECT:
                raise CycleRejectedError(group_id, new_parent_id)
            detached = list(children.get(group_id, ()))
            await self.repository.detach_groups(detached)
            increment_detached_groups(len(detached))
            logger.info(
                "Detached children %s of group %s before moving it under descendant %s",
                detached,
                group_id,
                new_parent_id,
            )

        group = await self.repository.set_parent(group, new_parent_id)
        await self.repository.commit()
        return ReparentResult(group=group, detached_ids=detached)

    async def delete_group(self, school_id: int, group_id: int) -> None:
        """Delete the group; its children are orphaned by the foreign key."""

        group = await self.get_group(school_id, group_id)
        await self.repository.delete_group(group)
        await self.repository.commit()


__all__ = [
    "GroupHierarchyError",
    "GroupNotFoundError",
    "GroupSchoolMismatchError",
    "MembersNotInSchoolError",
    "InvalidParentError",
    "GroupCycleError",
    "CycleRejectedError",
    "build_child_map",
    "ancestor_chain",
    "subtree",
    "descendants",
    "collect_members",
    "SubtreeMember",
    "ReparentResult",
    "GroupHierarchyManager",
]

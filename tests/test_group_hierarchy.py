"""Tests for group hierarchy traversal and the manager built on it."""

from __future__ import annotations

from types import SimpleNamespace

import pytest

from penwwws.config.settings import CyclePolicy
from penwwws.models.school import SchoolRole
from penwwws.services.group_hierarchy import (
    CycleRejectedError,
    GroupCycleError,
    GroupHierarchyManager,
    GroupNotFoundError,
    GroupSchoolMismatchError,
    InvalidParentError,
    MembersNotInSchoolError,
    ancestor_chain,
    build_child_map,
    collect_members,
    descendants,
    subtree,
)

SCHOOL_ID = 1
OTHER_SCHOOL_ID = 2


# Pure traversal -------------------------------------------------------------


def test_build_child_map_orders_children_by_id() -> None:
    parents = {5: 1, 1: None, 3: 1, 4: 3}

    children = build_child_map(parents)

    assert children[1] == [3, 5]
    assert children[3] == [4]
    assert children[4] == []
    assert children[5] == []


def test_ancestor_chain_walks_up_to_the_root() -> None:
    parents = {1: None, 2: 1, 3: 2}

    assert ancestor_chain(3, parents) == [3, 2, 1]
    assert ancestor_chain(1, parents) == [1]


def test_ancestor_chain_detects_cycles() -> None:
    parents = {1: 3, 2: 1, 3: 2}

    with pytest.raises(GroupCycleError):
        ancestor_chain(1, parents)


def test_ancestor_chain_stops_at_a_parent_outside_the_map() -> None:
    assert ancestor_chain(2, {2: 99}) == [2]
    assert ancestor_chain(3, {1: None, 2: 99, 3: 2}) == [3, 2]


def test_subtree_is_depth_first_pre_order() -> None:
    parents = {1: None, 2: 1, 3: 1, 4: 2, 5: 4, 6: 3}

    assert subtree(1, build_child_map(parents)) == [1, 2, 4, 5, 3, 6]
    assert subtree(3, build_child_map(parents)) == [3, 6]


def test_subtree_detects_cycles() -> None:
    with pytest.raises(GroupCycleError):
        subtree(1, {1: [2], 2: [3], 3: [1]})


def test_descendants_exclude_the_group_itself() -> None:
    parents = {1: None, 2: 1, 3: 2, 4: None}

    assert descendants(1, build_child_map(parents)) == {2, 3}
    assert descendants(4, build_child_map(parents)) == set()


def test_collect_members_keeps_first_occurrence() -> None:
    ana, ben, cleo = (SimpleNamespace(id=i) for i in (1, 2, 3))

    members = collect_members(
        [10, 11, 12],
        {10: [ben], 11: [ana, ben], 12: [cleo, ana]},
    )

    assert [user.id for user in members] == [2, 1, 3]


# Manager --------------------------------------------------------------------


@pytest.mark.asyncio
async def test_assign_propagates_to_every_ancestor(chain_repository) -> None:
    manager = GroupHierarchyManager(chain_repository)

    created = await manager.assign_members(SCHOOL_ID, 3, [7])

    assert {(row.user_id, row.group_id) for row in created} == {(7, 1), (7, 2), (7, 3)}
    assert chain_repository.pairs() == {(7, 1), (7, 2), (7, 3)}
    assert chain_repository.commits == 1


@pytest.mark.asyncio
async def test_assign_twice_creates_nothing_new(chain_repository) -> None:
    manager = GroupHierarchyManager(chain_repository)
    await manager.assign_members(SCHOOL_ID, 3, [7])

    created = await manager.assign_members(SCHOOL_ID, 3, [7, 7])

    assert created == []
    assert len(chain_repository.memberships) == 3
    assert chain_repository.commits == 1


@pytest.mark.asyncio
async def test_assign_only_fills_missing_rows(chain_repository) -> None:
    chain_repository.link(7, 2)
    manager = GroupHierarchyManager(chain_repository)

    created = await manager.assign_members(SCHOOL_ID, 3, [7])

    assert {(row.user_id, row.group_id) for row in created} == {(7, 1), (7, 3)}
    assert len(chain_repository.memberships) == 3


@pytest.mark.asyncio
async def test_assign_rejects_users_outside_the_school(chain_repository) -> None:
    chain_repository.add_user(8, school_id=OTHER_SCHOOL_ID)
    manager = GroupHierarchyManager(chain_repository)

    with pytest.raises(MembersNotInSchoolError) as excinfo:
        await manager.assign_members(SCHOOL_ID, 3, [9, 7, 8])

    assert excinfo.value.user_ids == [8, 9]
    assert chain_repository.memberships == []


@pytest.mark.asyncio
async def test_unknown_or_foreign_group(chain_repository) -> None:
    chain_repository.add_group(40, school_id=OTHER_SCHOOL_ID)
    manager = GroupHierarchyManager(chain_repository)

    with pytest.raises(GroupNotFoundError):
        await manager.assign_members(SCHOOL_ID, 99, [7])
    with pytest.raises(GroupSchoolMismatchError):
        await manager.assign_members(SCHOOL_ID, 40, [7])


@pytest.mark.asyncio
async def test_assign_reports_cyclic_data(repository) -> None:
    repository.add_group(1, parent_id=2)
    repository.add_group(2, parent_id=1)
    repository.add_user(7)
    manager = GroupHierarchyManager(repository)

    with pytest.raises(GroupCycleError):
        await manager.assign_members(SCHOOL_ID, 1, [7])
    assert repository.memberships == []


@pytest.mark.asyncio
async def test_assign_never_reaches_another_schools_group(repository) -> None:
    repository.add_group(99, school_id=OTHER_SCHOOL_ID)
    repository.add_group(2, parent_id=99)
    repository.add_user(7)
    manager = GroupHierarchyManager(repository)

    created = await manager.assign_members(SCHOOL_ID, 2, [7])

    assert [(row.user_id, row.group_id) for row in created] == [(7, 2)]
    assert repository.pairs() == {(7, 2)}


@pytest.mark.asyncio
async def test_remove_members_touches_only_the_given_group(chain_repository) -> None:
    manager = GroupHierarchyManager(chain_repository)
    await manager.assign_members(SCHOOL_ID, 3, [7])

    removed = await manager.remove_members(SCHOOL_ID, 3, [7])

    assert removed == 1
    assert chain_repository.pairs() == {(7, 1), (7, 2)}


@pytest.mark.asyncio
async def test_subtree_members_are_distinct_and_ordered(repository) -> None:
    #   1
    #  / \
    # 2   3
    # |
    # 4
    repository.add_group(1)
    repository.add_group(3, parent_id=1)
    repository.add_group(2, parent_id=1)
    repository.add_group(4, parent_id=2)
    repository.add_user(10, role=SchoolRole.TEACHER)
    repository.add_user(11)
    repository.add_user(12)
    repository.add_user(13, role=None)
    repository.link(12, 3)
    repository.link(11, 4)
    repository.link(10, 1)
    repository.link(12, 2)
    repository.link(13, 3)
    repository.link(11, 3)
    manager = GroupHierarchyManager(repository)

    members = await manager.subtree_members(SCHOOL_ID, 1)

    assert [member.user.id for member in members] == [10, 12, 11, 13]
    roles = {member.user.id: member.role for member in members}
    assert roles == {
        10: SchoolRole.TEACHER,
        11: SchoolRole.STUDENT,
        12: SchoolRole.STUDENT,
        13: None,
    }


@pytest.mark.asyncio
async def test_subtree_members_of_a_leaf(chain_repository) -> None:
    chain_repository.link(7, 1)
    manager = GroupHierarchyManager(chain_repository)

    assert await manager.subtree_members(SCHOOL_ID, 3) == []


@pytest.mark.asyncio
async def test_reparent_under_descendant_detaches_direct_children(repository) -> None:
    # 1 -> {2 -> 3, 4}
    repository.add_group(1)
    repository.add_group(2, parent_id=1)
    repository.add_group(3, parent_id=2)
    repository.add_group(4, parent_id=1)
    manager = GroupHierarchyManager(repository)

    result = await manager.reparent(SCHOOL_ID, 1, 3)

    assert result.detached_ids == [2, 4]
    assert repository.groups[1].parent_id == 3
    assert repository.groups[2].parent_id is None
    assert repository.groups[4].parent_id is None
    assert repository.groups[3].parent_id == 2
    assert repository.commits == 1


@pytest.mark.asyncio
async def test_reparent_under_descendant_with_reject_policy(repository) -> None:
    repository.add_group(1)
    repository.add_group(2, parent_id=1)
    manager = GroupHierarchyManager(repository, cycle_policy=CyclePolicy.REJECT)

    with pytest.raises(CycleRejectedError):
        await manager.reparent(SCHOOL_ID, 1, 2)

    assert repository.groups[1].parent_id is None
    assert repository.groups[2].parent_id == 1
    assert repository.commits == 0


@pytest.mark.asyncio
async def test_reparent_under_non_descendant_keeps_children(repository) -> None:
    repository.add_group(1)
    repository.add_group(2, parent_id=1)
    repository.add_group(3, parent_id=2)
    repository.add_group(5)
    manager = GroupHierarchyManager(repository)

    result = await manager.reparent(SCHOOL_ID, 2, 5)

    assert result.detached_ids == []
    assert repository.groups[2].parent_id == 5
    assert repository.groups[3].parent_id == 2


@pytest.mark.asyncio
async def test_reparent_to_top_level(chain_repository) -> None:
    manager = GroupHierarchyManager(chain_repository)

    result = await manager.reparent(SCHOOL_ID, 3, None)

    assert result.group.parent_id is None
    assert chain_repository.commits == 1


@pytest.mark.asyncio
async def test_reparent_validation(chain_repository) -> None:
    chain_repository.add_group(40, school_id=OTHER_SCHOOL_ID)
    manager = GroupHierarchyManager(chain_repository)

    with pytest.raises(InvalidParentError):
        await manager.reparent(SCHOOL_ID, 2, 2)
    with pytest.raises(GroupNotFoundError):
        await manager.reparent(SCHOOL_ID, 2, 40)
    with pytest.raises(GroupNotFoundError):
        await manager.reparent(SCHOOL_ID, 2, 99)
    assert chain_repository.groups[2].parent_id == 1


@pytest.mark.asyncio
async def test_delete_group_orphans_children(chain_repository) -> None:
    manager = GroupHierarchyManager(chain_repository)
    await manager.assign_members(SCHOOL_ID, 3, [7])

    await manager.delete_group(SCHOOL_ID, 2)

    assert 2 not in chain_repository.groups
    assert chain_repository.groups[3].parent_id is None
    assert chain_repository.groups[1].parent_id is None
    assert chain_repository.pairs() == {(7, 1), (7, 3)}


@pytest.mark.asyncio
async def test_delete_leaf_has_no_side_effects(chain_repository) -> None:
    manager = GroupHierarchyManager(chain_repository)

    await manager.delete_group(SCHOOL_ID, 3)

    assert chain_repository.groups[2].parent_id == 1
    assert chain_repository.groups[1].parent_id is None

from typing import Dict, List, Optional, Sequence, Set, Tuple

from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from penwwws.application.interfaces import GroupRepositoryInterface
from penwwws.models.group import Group
from penwwws.models.group_membership import GroupMembership
from penwwws.models.school import SchoolMembership, SchoolRole
from penwwws.models.user import User


class SQLAlchemyGroupRepository(GroupRepositoryInterface):
    """SQLAlchemy implementation of the group hierarchy repository"""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_group(self, group_id: int) -> Optional[Group]:
        result = await self.session.execute(select(Group).where(Group.id == group_id))
        return result.scalar_one_or_none()

    async def school_parent_map(self, school_id: int) -> Dict[int, Optional[int]]:
        result = await self.session.execute(
            select(Group.id, Group.parent_id).where(Group.school_id == school_id)
        )
        return {group_id: parent_id for group_id, parent_id in result.all()}

    async def school_member_ids(
        self, school_id: int, user_ids: Sequence[int]
    ) -> Set[int]:
        if not user_ids:
            return set()
        result = await self.session.execute(
            select(SchoolMembership.user_id).where(
                SchoolMembership.school_id == school_id,
                SchoolMembership.user_id.in_(user_ids),
            )
        )
        return set(result.scalars().all())

    async def school_roles(
        self, school_id: int, user_ids: Sequence[int]
    ) -> Dict[int, SchoolRole]:
        if not user_ids:
            return {}
        result = await self.session.execute(
            select(SchoolMembership.user_id, SchoolMembership.role).where(
                SchoolMembership.school_id == school_id,
                SchoolMembership.user_id.in_(user_ids),
            )
        )
        return {user_id: role for user_id, role in result.all()}

    async def existing_memberships(
        self, user_ids: Sequence[int], group_ids: Sequence[int]
    ) -> Set[Tuple[int, int]]:
        if not user_ids or not group_ids:
            return set()
        result = await self.session.execute(
            select(GroupMembership.user_id, GroupMembership.group_id).where(
                GroupMembership.user_id.in_(user_ids),
                GroupMembership.group_id.in_(group_ids),
            )
        )
        return {(user_id, group_id) for user_id, group_id in result.all()}

    async def add_memberships(
        self, pairs: Sequence[Tuple[int, int]]
    ) -> List[GroupMembership]:
        memberships = [
            GroupMembership(user_id=user_id, group_id=group_id)
            for user_id, group_id in pairs
        ]
        self.session.add_all(memberships)
        await self.session.flush()
        return memberships

    async def remove_memberships(self, group_id: int, user_ids: Sequence[int]) -> int:
        if not user_ids:
            return 0
        result = await self.session.execute(
            delete(GroupMembership).where(
                GroupMembership.group_id == group_id,
                GroupMembership.user_id.in_(user_ids),
            )
        )
        return result.rowcount or 0

    async def members_by_group(self, group_ids: Sequence[int]) -> Dict[int, List[User]]:
        members: Dict[int, List[User]] = {group_id: [] for group_id in group_ids}
        if not group_ids:
            return members
        result = await self.session.execute(
            select(GroupMembership.group_id, User)
            .join(User, User.id == GroupMembership.user_id)
            .where(GroupMembership.group_id.in_(group_ids))
            .order_by(GroupMembership.id)
        )
        for group_id, user in result.all():
            members[group_id].append(user)
        return members

    async def detach_groups(self, group_ids: Sequence[int]) -> None:
        if not group_ids:
            return
        await self.session.execute(
            update(Group)
            .where(Group.id.in_(group_ids))
            .values(parent_id=None)
            .execution_options(synchronize_session="fetch")
        )

    async def set_parent(self, group: Group, parent_id: Optional[int]) -> Group:
        group.parent_id = parent_id
        await self.session.flush()
        return group

    async def delete_group(self, group: Group) -> None:
        await self.session.delete(group)
        await self.session.flush()

    async def commit(self) -> None:
        await self.session.commit()

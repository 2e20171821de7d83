from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Sequence, Set, Tuple


class GroupRepositoryInterface(ABC):
    """Persistence contract for the group hierarchy manager.

    Mutating methods only stage changes; callers finish with ``commit``.
    """

    @abstractmethod
    async def get_group(self, group_id: int) -> Optional[Any]:
        ...

    @abstractmethod
    async def school_parent_map(self, school_id: int) -> Dict[int, Optional[int]]:
        """Return ``{group_id: parent_id}`` for every group of the school."""

    @abstractmethod
    async def school_member_ids(
        self, school_id: int, user_ids: Sequence[int]
    ) -> Set[int]:
        """Return the subset of ``user_ids`` that belong to the school."""

    @abstractmethod
    async def school_roles(
        self, school_id: int, user_ids: Sequence[int]
    ) -> Dict[int, Any]:
        ...

    @abstractmethod
    async def existing_memberships(
        self, user_ids: Sequence[int], group_ids: Sequence[int]
    ) -> Set[Tuple[int, int]]:
        """Return the ``(user_id, group_id)`` pairs that are already stored."""

    @abstractmethod
    async def add_memberships(self, pairs: Sequence[Tuple[int, int]]) -> List[Any]:
        ...

    @abstractmethod
    async def remove_memberships(self, group_id: int, user_ids: Sequence[int]) -> int:
        ...

    @abstractmethod
    async def members_by_group(self, group_ids: Sequence[int]) -> Dict[int, List[Any]]:
        """Return direct members per group, each list ordered by membership id."""

    @abstractmethod
    async def detach_groups(self, group_ids: Sequence[int]) -> None:
        ...

    @abstractmethod
    async def set_parent(self, group: Any, parent_id: Optional[int]) -> Any:
        ...

    @abstractmethod
    async def delete_group(self, group: Any) -> None:
        ...

    @abstractmethod
    async def commit(self) -> None:
        ...

from abc import ABC, abstractmethod
from typing import Dict, List, Optional, Tuple

from moviegroups.domain.models import Group, Membership, MemberRole, Genre, GroupTheme


class GroupRepository(ABC):
    @abstractmethod
    def get_by_id(self, group_id: int) -> Optional["Group"]:
        pass

    @abstractmethod
    def get_details(self, group_id: int) -> Optional["Group"]:
        pass

    @abstractmethod
    def get_by_name(self, name: str) -> Optional["Group"]:
        pass

    @abstractmethod
    def create_with_owner(self, group: "Group", tag_ids: List[int]) -> "Group":
        pass

    @abstractmethod
    def update_details(self, group_id: int, changes: Dict, tag_ids: Optional[List[int]]) -> "Group":
        pass

    @abstractmethod
    def delete_cascade(self, group_id: int) -> Dict[str, int]:
        pass

    @abstractmethod
    def get_membership(self, group_id: int, user_id: int) -> Optional["Membership"]:
        pass

    @abstractmethod
    def add_membership(self, membership: "Membership") -> "Membership":
        pass

    @abstractmethod
    def update_member_role(self, group_id: int, user_id: int, role: "MemberRole") -> "Membership":
        pass

    @abstractmethod
    def remove_membership(self, group_id: int, user_id: int) -> bool:
        pass

    @abstractmethod
    def get_members(self, group_id: int, include_pending: bool = True) -> List["Membership"]:
        pass

    @abstractmethod
    def get_pending(self, group_id: int) -> List["Membership"]:
        pass

    @abstractmethod
    def get_public_groups(self) -> List["Group"]:
        pass

    @abstractmethod
    def get_by_genres(self, genre_ids: List[int], match_type: str, limit: int) -> List["Group"]:
        pass

    @abstractmethod
    def get_popular(self, limit: int) -> List["Group"]:
        pass

    @abstractmethod
    def get_user_groups(self, user_id: int) -> List[Tuple["Group", "MemberRole"]]:
        pass

    @abstractmethod
    def get_existing_genre_ids(self, genre_ids: List[int]) -> List[int]:
        pass

    @abstractmethod
    def theme_exists(self, theme_id: int) -> bool:
        pass

    @abstractmethod
    def get_all_genres(self) -> List["Genre"]:
        pass

    @abstractmethod
    def get_all_themes(self) -> List["GroupTheme"]:
        pass

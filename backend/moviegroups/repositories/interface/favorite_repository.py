from abc import ABC, abstractmethod
from typing import Dict, List, Optional, Set

from moviegroups.domain.models import Favorite, FavoriteType


class FavoriteRepository(ABC):
    @abstractmethod
    def upsert(self, favorite: "Favorite") -> "Favorite":
        pass

    @abstractmethod
    def get(self, movie_id: str, favorite_type: "FavoriteType",
            user_id: Optional[int] = None, group_id: Optional[int] = None) -> Optional["Favorite"]:
        pass

    @abstractmethod
    def delete(self, movie_id: str, favorite_type: "FavoriteType",
               user_id: Optional[int] = None, group_id: Optional[int] = None) -> bool:
        pass

    @abstractmethod
    def list_for_user(self, user_id: int, favorite_type: "FavoriteType") -> List["Favorite"]:
        pass

    @abstractmethod
    def list_for_group(self, group_id: int) -> List["Favorite"]:
        pass

    @abstractmethod
    def personal_types(self, user_id: int, movie_ids: List[str]) -> Dict[str, Set[int]]:
        pass

    @abstractmethod
    def visible_groups_for_movies(self, user_id: int, movie_ids: List[str]) -> Dict[str, List[dict]]:
        pass

from abc import ABC, abstractmethod
from typing import List, Optional

from moviegroups.domain.models import Review


class ReviewRepository(ABC):
    @abstractmethod
    def create(self, review: "Review") -> "Review":
        pass

    @abstractmethod
    def get_by_id(self, review_id: int) -> Optional["Review"]:
        pass

    @abstractmethod
    def get_by_user_and_movie(self, user_id: int, movie_id: str) -> Optional["Review"]:
        pass

    @abstractmethod
    def list_by_movie(self, movie_id: str) -> List["Review"]:
        pass

    @abstractmethod
    def list_by_user(self, user_id: int) -> List["Review"]:
        pass

    @abstractmethod
    def list_recent(self, limit: int) -> List["Review"]:
        pass

    @abstractmethod
    def list_for_group_favorites(self, group_id: int) -> List["Review"]:
        pass

    @abstractmethod
    def update(self, review_id: int, content: Optional[str], rating: Optional[int]) -> "Review":
        pass

    @abstractmethod
    def delete(self, review_id: int) -> bool:
        pass

    @abstractmethod
    def set_interaction(self, review_id: int, user_id: int, interaction_type: Optional[str]) -> None:
        pass

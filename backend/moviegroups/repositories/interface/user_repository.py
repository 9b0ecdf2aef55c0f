from abc import ABC, abstractmethod
from typing import List, Optional

from moviegroups.domain.models import User


class UserRepository(ABC):
    """Account storage. Username and email lookups ignore case."""

    @abstractmethod
    def get_by_id(self, user_id: int) -> Optional["User"]:
        pass

    @abstractmethod
    def get_by_username(self, username: str) -> Optional["User"]:
        pass

    @abstractmethod
    def get_by_email(self, email: str) -> Optional["User"]:
        pass

    @abstractmethod
    def create(self, user: "User") -> "User":
        """Insert an account. Raises DuplicateEntityException when the username or email is taken."""

    @abstractmethod
    def update(self, user: "User") -> "User":
        """Persist profile and flag changes (is_active, is_admin) for an existing account."""

    @abstractmethod
    def delete(self, user_id: int) -> bool:
        """Remove an account together with its memberships, personal lists and reviews.

        Returns False when no such user exists. Owners of a group cannot be
        deleted until ownership moves or the group is gone.
        """

    @abstractmethod
    def get_all(self, limit: Optional[int] = None) -> List["User"]:
        """Accounts ordered by id, at most `limit` of them when given."""

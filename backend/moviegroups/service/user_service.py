import logging
from typing import List, Optional

from moviegroups.domain.dto import ProfileUpdate, AdminUserUpdate
from moviegroups.domain.models import User, MemberRole
from moviegroups.repositories import UserRepository, GroupRepository
from moviegroups.service.auth_service import pwd_context
from moviegroups.exceptions.repository import RepositoryException, DuplicateEntityException
from moviegroups.exceptions.service import (
    ServiceException,
    InvalidArgumentException,
    ForbiddenException,
    NotFoundException,
    ConflictException,
    InternalServiceException,
)

logger = logging.getLogger(__name__)

DEFAULT_LIST_LIMIT = 50
MAX_LIST_LIMIT = 100


class UserService:
    """Account management: a user's own profile, and the admin view over all accounts."""

    def __init__(self, user_repo: UserRepository, group_repo: GroupRepository):
        self.user_repo = user_repo
        self.group_repo = group_repo

    def _require_admin(self, actor: User) -> None:
        if not actor.is_admin:
            raise ForbiddenException("Admin privileges required")

    def _get_user(self, user_id: int) -> User:
        user = self.user_repo.get_by_id(user_id)
        if user is None:
            raise NotFoundException("User not found")
        return user

    def _check_credentials_free(self, user: User, username: Optional[str], email: Optional[str]) -> None:
        if username is not None and username.lower() != user.username.lower():
            existing = self.user_repo.get_by_username(username)
            if existing is not None and existing.id != user.id:
                raise ConflictException("Username is already in use")
        if email is not None and email.lower() != user.email.lower():
            existing = self.user_repo.get_by_email(email)
            if existing is not None and existing.id != user.id:
                raise ConflictException("Email is already in use")

    def _save(self, user: User) -> User:
        try:
            return self.user_repo.update(user)
        except DuplicateEntityException as e:
            raise ConflictException(e.message)

    def _delete(self, user: User) -> None:
        owned = [group.name for group, role in self.group_repo.get_user_groups(user.id) if role == MemberRole.OWNER]
        if owned:
            raise ConflictException(
                f"Transfer or delete owned groups before deleting the account: {', '.join(owned)}"
            )
        if not self.user_repo.delete(user.id):
            raise NotFoundException("User not found")

    def update_profile(self, actor: User, data: ProfileUpdate) -> User:
        try:
            user = self._get_user(actor.id)
            self._check_credentials_free(user, data.username, data.email)

            if data.new_password is not None:
                if not pwd_context.verify(data.current_password, user.hashed_password):
                    raise InvalidArgumentException("Current password is incorrect")
                user.hashed_password = pwd_context.hash(data.new_password)
            if data.username is not None:
                user.username = data.username
            if data.email is not None:
                user.email = data.email

            updated = self._save(user)
            logger.info(f"User {actor.id} updated their profile")
            return updated
        except (ServiceException, RepositoryException):
            raise
        except Exception as e:
            raise InternalServiceException(f"Unexpected error while updating profile: {str(e)}")

    def delete_account(self, actor: User) -> None:
        try:
            self._delete(self._get_user(actor.id))
            logger.info(f"User {actor.id} deleted their account")
        except (ServiceException, RepositoryException):
            raise
        except Exception as e:
            raise InternalServiceException(f"Unexpected error while deleting account: {str(e)}")

    def list_users(self, actor: User, limit: Optional[int] = None) -> List[User]:
        self._require_admin(actor)
        limit = DEFAULT_LIST_LIMIT if limit is None else limit
        if limit < 1 or limit > MAX_LIST_LIMIT:
            raise InvalidArgumentException(f"limit must be between 1 and {MAX_LIST_LIMIT}")
        try:
            return self.user_repo.get_all(limit=limit)
        except (ServiceException, RepositoryException):
            raise
        except Exception as e:
            raise InternalServiceException(f"Unexpected error while listing users: {str(e)}")

    def get_user(self, actor: User, user_id: int) -> User:
        self._require_admin(actor)
        return self._get_user(user_id)

    def update_user(self, actor: User, user_id: int, data: AdminUserUpdate) -> User:
        self._require_admin(actor)
        if user_id == actor.id and (data.is_admin is False or data.is_active is False):
            raise InvalidArgumentException("Admins cannot deactivate or demote their own account")

        try:
            user = self._get_user(user_id)
            self._check_credentials_free(user, data.username, data.email)
            for field in ("username", "email", "is_active", "is_admin"):
                value = getattr(data, field)
                if value is not None:
                    setattr(user, field, value)

            updated = self._save(user)
            logger.info(f"Admin {actor.id} updated user {user_id}")
            return updated
        except (ServiceException, RepositoryException):
            raise
        except Exception as e:
            raise InternalServiceException(f"Unexpected error while updating user: {str(e)}")

    def delete_user(self, actor: User, user_id: int) -> None:
        self._require_admin(actor)
        if user_id == actor.id:
            raise InvalidArgumentException("Use DELETE /users/me to delete your own account")

        try:
            self._delete(self._get_user(user_id))
            logger.info(f"Admin {actor.id} deleted user {user_id}")
        except (ServiceException, RepositoryException):
            raise
        except Exception as e:
            raise InternalServiceException(f"Unexpected error while deleting user: {str(e)}")

import logging
import re
from typing import Dict, List, Optional, Set, Tuple

from fastapi import status

from moviegroups.auth import group_policy
from moviegroups.config import SEARCH_SIMILARITY_THRESHOLD, SEARCH_DEFAULT_LIMIT, DISCOVERY_DEFAULT_LIMIT
from moviegroups.domain.dto import GroupCreate, GroupUpdate
from moviegroups.domain.models import Group, Membership, MemberRole, User, Genre, GroupTheme
from moviegroups.repositories import GroupRepository, UserRepository
from moviegroups.exceptions.repository import RepositoryException, DuplicateEntityException
from moviegroups.exceptions.service import (
    ServiceException,
    InvalidArgumentException,
    NotFoundException,
    ConflictException,
    InternalServiceException,
)

logger = logging.getLogger(__name__)

MAX_LIST_LIMIT = 100
DUPLICATE_NAME = "A group with this name already exists"

_WORD = re.compile(r"[0-9a-z]+")


def _trigrams(value: str) -> Set[str]:
    grams = set()
    for word in _WORD.findall(value.lower()):
        padded = f"  {word} "
        grams.update(padded[i:i + 3] for i in range(len(padded) - 2))
    return grams


def trigram_similarity(left: str, right: str) -> float:
    """Share of distinct word trigrams the two strings have in common, as pg_trgm counts them."""
    a, b = _trigrams(left), _trigrams(right)
    if not a or not b:
        return 0.0
    return len(a & b) / len(a | b)


def _clamp_limit(limit: Optional[int], default: int) -> int:
    if limit is None:
        return default
    if limit < 1:
        raise InvalidArgumentException("limit must be a positive integer")
    return min(limit, MAX_LIST_LIMIT)


class GroupService:
    def __init__(self, group_repo: GroupRepository, user_repo: UserRepository):
        self.group_repo = group_repo
        self.user_repo = user_repo

    def _get_group(self, group_id: int) -> Group:
        group = self.group_repo.get_by_id(group_id)
        if group is None:
            raise NotFoundException("Group not found")
        return group

    def _membership(self, group_id: int, user: Optional[User]) -> Optional[Membership]:
        if user is None:
            return None
        return self.group_repo.get_membership(group_id, user.id)

    def _validate_references(self, tag_ids: Optional[List[int]], theme_id: Optional[int]) -> None:
        if tag_ids:
            existing = set(self.group_repo.get_existing_genre_ids(tag_ids))
            unknown = [tag for tag in tag_ids if tag not in existing]
            if unknown:
                raise InvalidArgumentException(f"Unknown genre ids: {', '.join(str(t) for t in unknown)}")
        if theme_id is not None and not self.group_repo.theme_exists(theme_id):
            raise InvalidArgumentException(f"Theme {theme_id} does not exist")

    def _check_name_free(self, name: str, group_id: Optional[int] = None) -> None:
        existing = self.group_repo.get_by_name(name)
        if existing is not None and existing.id != group_id:
            raise ConflictException(DUPLICATE_NAME, status.HTTP_400_BAD_REQUEST)

    def create_group(self, actor: User, data: GroupCreate) -> Group:
        try:
            self._validate_references(data.tags, data.theme_id)
            self._check_name_free(data.name)

            group = Group(
                name=data.name,
                owner_id=actor.id,
                visibility=data.visibility,
                description=data.description,
                theme_id=data.theme_id,
                poster_url=data.poster_url
            )
            created = self.group_repo.create_with_owner(group, data.tags)
            logger.info(f"User {actor.id} created group {created.id} '{created.name}'")
            return created
        except DuplicateEntityException:
            raise ConflictException(DUPLICATE_NAME, status.HTTP_400_BAD_REQUEST)
        except (ServiceException, RepositoryException):
            raise
        except Exception as e:
            raise InternalServiceException(f"Unexpected error while creating group: {str(e)}")

    def get_group(self, group_id: int, actor: Optional[User]) -> Group:
        try:
            group = self.group_repo.get_details(group_id)
            if group is None:
                raise NotFoundException("Group not found")

            membership = None
            if actor is not None:
                membership = next((m for m in group.members if m.user_id == actor.id), None)
            group_policy.check_view_group(group, actor, membership)
            return group
        except (ServiceException, RepositoryException):
            raise
        except Exception as e:
            raise InternalServiceException(f"Unexpected error while getting group: {str(e)}")

    def update_group(self, group_id: int, actor: User, update: GroupUpdate) -> Group:
        try:
            group = self._get_group(group_id)
            group_policy.check_manage_group(group, actor, "update")

            changes = update.changes()
            self._validate_references(update.tags, changes.get("theme_id"))
            if "name" in changes:
                self._check_name_free(changes["name"], group_id)

            updated = self.group_repo.update_details(group_id, changes, update.tags)
            logger.info(f"User {actor.id} updated group {group_id}: {sorted(update.model_fields_set)}")
            return updated
        except DuplicateEntityException:
            raise ConflictException(DUPLICATE_NAME, status.HTTP_400_BAD_REQUEST)
        except (ServiceException, RepositoryException):
            raise
        except Exception as e:
            raise InternalServiceException(f"Unexpected error while updating group: {str(e)}")

    def delete_group(self, group_id: int, actor: User) -> Dict[str, int]:
        try:
            group = self._get_group(group_id)
            group_policy.check_manage_group(group, actor, "delete")

            deleted = self.group_repo.delete_cascade(group_id)
            logger.info(f"User {actor.id} deleted group {group_id} ({deleted})")
            return deleted
        except (ServiceException, RepositoryException):
            raise
        except Exception as e:
            raise InternalServiceException(f"Unexpected error while deleting group: {str(e)}")

    def search_groups(self, query: str, limit: Optional[int] = None) -> List[Tuple[Group, float]]:
        """Public groups whose name contains the query or is similar to it, best matches first."""
        query = (query or "").strip()
        if not query:
            raise InvalidArgumentException("Search query is required")
        limit = _clamp_limit(limit, SEARCH_DEFAULT_LIMIT)

        try:
            needle = query.lower()
            matches = []
            for group in self.group_repo.get_public_groups():
                name = group.name.lower()
                similarity = trigram_similarity(needle, name)
                if needle in name or similarity > SEARCH_SIMILARITY_THRESHOLD:
                    matches.append((group, similarity))

            matches.sort(key=lambda m: (not m[0].name.lower().startswith(needle), -m[1], m[0].name.lower()))
            return matches[:limit]
        except (ServiceException, RepositoryException):
            raise
        except Exception as e:
            raise InternalServiceException(f"Unexpected error while searching groups: {str(e)}")

    def get_groups_by_genres(self, genre_ids: List[int], match_type: str = "any",
                             limit: Optional[int] = None) -> List[Group]:
        if not genre_ids:
            raise InvalidArgumentException("At least one valid genre ID is required")
        if any(genre_id <= 0 for genre_id in genre_ids):
            raise InvalidArgumentException("Genre ids must be positive integers")
        if match_type not in ("any", "all"):
            match_type = "any"
        limit = _clamp_limit(limit, DISCOVERY_DEFAULT_LIMIT)

        try:
            return self.group_repo.get_by_genres(list(dict.fromkeys(genre_ids)), match_type, limit)
        except (ServiceException, RepositoryException):
            raise
        except Exception as e:
            raise InternalServiceException(f"Unexpected error while filtering groups by genre: {str(e)}")

    def get_popular_groups(self, limit: Optional[int] = None) -> List[Group]:
        limit = _clamp_limit(limit, DISCOVERY_DEFAULT_LIMIT)
        try:
            return self.group_repo.get_popular(limit)
        except (ServiceException, RepositoryException):
            raise
        except Exception as e:
            raise InternalServiceException(f"Unexpected error while getting popular groups: {str(e)}")

    def join_group(self, group_id: int, actor: User) -> Membership:
        try:
            group = self._get_group(group_id)
            group_policy.check_join_directly(group, actor, self._membership(group_id, actor))

            membership = self.group_repo.add_membership(
                Membership(group_id=group_id, user_id=actor.id, role=MemberRole.MEMBER)
            )
            logger.info(f"User {actor.id} joined group {group_id}")
            return membership
        except DuplicateEntityException:
            raise ConflictException("You are already a member of this group", status.HTTP_400_BAD_REQUEST)
        except (ServiceException, RepositoryException):
            raise
        except Exception as e:
            raise InternalServiceException(f"Unexpected error while joining group: {str(e)}")

    def request_to_join(self, group_id: int, actor: User) -> Tuple[Group, Membership]:
        try:
            group = self._get_group(group_id)
            group_policy.check_request_to_join(group, actor, self._membership(group_id, actor))

            membership = self.group_repo.add_membership(
                Membership(group_id=group_id, user_id=actor.id, role=MemberRole.PENDING)
            )
            logger.info(f"User {actor.id} requested to join group {group_id}")
            return group, membership
        except DuplicateEntityException:
            # lost a race with a concurrent request from the same user
            raise ConflictException(
                "You already have a pending join request for this group", status.HTTP_400_BAD_REQUEST
            )
        except (ServiceException, RepositoryException):
            raise
        except Exception as e:
            raise InternalServiceException(f"Unexpected error while requesting to join group: {str(e)}")

    def approve_pending(self, group_id: int, actor: User, user_id: int) -> Membership:
        try:
            group = self._get_group(group_id)
            group_policy.check_approve_pending(
                group, actor,
                self._membership(group_id, actor),
                self.group_repo.get_membership(group_id, user_id)
            )

            membership = self.group_repo.update_member_role(group_id, user_id, MemberRole.MEMBER)
            logger.info(f"User {actor.id} approved join request of user {user_id} for group {group_id}")
            return membership
        except (ServiceException, RepositoryException):
            raise
        except Exception as e:
            raise InternalServiceException(f"Unexpected error while approving join request: {str(e)}")

    def list_pending_requests(self, group_id: int, actor: User) -> List[Membership]:
        try:
            group = self._get_group(group_id)
            group_policy.check_view_pending_requests(group, actor, self._membership(group_id, actor))
            return self.group_repo.get_pending(group_id)
        except (ServiceException, RepositoryException):
            raise
        except Exception as e:
            raise InternalServiceException(f"Unexpected error while listing join requests: {str(e)}")

    def add_member(self, group_id: int, actor: User, user_id: int, role: str = "member") -> Membership:
        try:
            group = self._get_group(group_id)
            if self.user_repo.get_by_id(user_id) is None:
                raise NotFoundException("User not found")

            role = group_policy.check_add_member(
                group, actor, user_id, self.group_repo.get_membership(group_id, user_id), role
            )
            membership = self.group_repo.add_membership(
                Membership(group_id=group_id, user_id=user_id, role=role)
            )
            logger.info(f"User {actor.id} added user {user_id} to group {group_id} as {role.value}")
            return membership
        except DuplicateEntityException:
            raise ConflictException("User is already a member of this group", status.HTTP_400_BAD_REQUEST)
        except (ServiceException, RepositoryException):
            raise
        except Exception as e:
            raise InternalServiceException(f"Unexpected error while adding member: {str(e)}")

    def remove_member(self, group_id: int, actor: User, user_id: int) -> str:
        try:
            group = self._get_group(group_id)
            kind = group_policy.check_remove_member(
                group, actor,
                self._membership(group_id, actor),
                self.group_repo.get_membership(group_id, user_id)
            )

            if not self.group_repo.remove_membership(group_id, user_id):
                raise NotFoundException("User is not a member of this group")
            logger.info(f"User {actor.id} removed user {user_id} from group {group_id} ({kind})")
            return kind
        except (ServiceException, RepositoryException):
            raise
        except Exception as e:
            raise InternalServiceException(f"Unexpected error while removing member: {str(e)}")

    def leave_group(self, group_id: int, actor: User) -> None:
        try:
            group = self._get_group(group_id)
            group_policy.check_leave_group(group, actor, self._membership(group_id, actor))

            if not self.group_repo.remove_membership(group_id, actor.id):
                raise NotFoundException("You are not a member of this group")
            logger.info(f"User {actor.id} left group {group_id}")
        except (ServiceException, RepositoryException):
            raise
        except Exception as e:
            raise InternalServiceException(f"Unexpected error while leaving group: {str(e)}")

    def update_member_role(self, group_id: int, actor: User, user_id: int, role: str) -> Membership:
        try:
            group = self._get_group(group_id)
            role = group_policy.check_update_member_role(
                group, actor, self.group_repo.get_membership(group_id, user_id), role
            )

            membership = self.group_repo.update_member_role(group_id, user_id, role)
            logger.info(f"User {actor.id} changed role of user {user_id} in group {group_id} to {role.value}")
            return membership
        except (ServiceException, RepositoryException):
            raise
        except Exception as e:
            raise InternalServiceException(f"Unexpected error while updating member role: {str(e)}")

    def list_members(self, group_id: int, actor: Optional[User]) -> List[Membership]:
        try:
            group = self._get_group(group_id)
            group_policy.check_list_members(group, actor)
            return self.group_repo.get_members(group_id, include_pending=False)
        except (ServiceException, RepositoryException):
            raise
        except Exception as e:
            raise InternalServiceException(f"Unexpected error while listing members: {str(e)}")

    def get_user_groups(self, user_id: int) -> List[Tuple[Group, MemberRole]]:
        try:
            return self.group_repo.get_user_groups(user_id)
        except (ServiceException, RepositoryException):
            raise
        except Exception as e:
            raise InternalServiceException(f"Unexpected error while getting user groups: {str(e)}")

    def list_themes(self) -> List[GroupTheme]:
        try:
            return self.group_repo.get_all_themes()
        except (ServiceException, RepositoryException):
            raise
        except Exception as e:
            raise InternalServiceException(f"Unexpected error while listing themes: {str(e)}")

    def list_genres(self) -> List[Genre]:
        try:
            return self.group_repo.get_all_genres()
        except (ServiceException, RepositoryException):
            raise
        except Exception as e:
            raise InternalServiceException(f"Unexpected error while listing genres: {str(e)}")

import logging
from typing import Dict, List, Optional, Tuple

from moviegroups.auth import group_policy
from moviegroups.config import STATUS_BATCH_LIMIT
from moviegroups.domain.dto import FavoriteCreate
from moviegroups.domain.models import Favorite, FavoriteType, Group, User
from moviegroups.repositories import FavoriteRepository, GroupRepository, UserRepository
from moviegroups.service.movie_service import MovieResolver
from moviegroups.exceptions.repository import RepositoryException, EntityNotFoundException
from moviegroups.exceptions.service import (
    ServiceException,
    InvalidArgumentException,
    ForbiddenException,
    NotFoundException,
    InternalServiceException,
)

logger = logging.getLogger(__name__)

PERSONAL_TYPES = (FavoriteType.WATCHLIST, FavoriteType.FAVORITES)


def parse_favorite_type(value) -> FavoriteType:
    try:
        return FavoriteType(int(value))
    except (TypeError, ValueError):
        raise InvalidArgumentException("type must be 1 (watchlist), 2 (favorites), or 3 (group_favorites)")


def parse_movie_ids(raw: str) -> List[str]:
    """Split a comma-separated id list, dropping blanks and repeats but keeping order."""
    movie_ids = list(dict.fromkeys(part.strip() for part in (raw or "").split(",") if part.strip()))
    if not movie_ids:
        raise InvalidArgumentException("movie_id is required")
    if len(movie_ids) > STATUS_BATCH_LIMIT:
        raise InvalidArgumentException(f"At most {STATUS_BATCH_LIMIT} movie ids can be checked per request")
    return movie_ids


class FavoritesService:
    def __init__(
        self,
        favorite_repo: FavoriteRepository,
        group_repo: GroupRepository,
        user_repo: UserRepository,
        movie_resolver: MovieResolver
    ):
        self.favorite_repo = favorite_repo
        self.group_repo = group_repo
        self.user_repo = user_repo
        self.movie_resolver = movie_resolver

    def _get_group(self, group_id: int) -> Group:
        group = self.group_repo.get_by_id(group_id)
        if group is None:
            raise NotFoundException("Group not found")
        return group

    def _membership(self, group_id: int, actor: Optional[User]):
        if actor is None:
            return None
        return self.group_repo.get_membership(group_id, actor.id)

    def add_favorite(self, actor: Optional[User], data: FavoriteCreate) -> Favorite:
        try:
            favorite_type = parse_favorite_type(data.type)

            if favorite_type == FavoriteType.GROUP_FAVORITES:
                if data.group_id is None:
                    raise InvalidArgumentException("group_id is required for group favorites")
                group = self._get_group(data.group_id)
                group_policy.check_write_group_list(group, actor, self._membership(group.id, actor))
                favorite = Favorite(
                    movie_id=data.movie_id, type=favorite_type, group_id=group.id, added_by=actor.id
                )
            else:
                actor = group_policy.check_write_personal_list(actor)
                if data.group_id is not None:
                    raise InvalidArgumentException("group_id is only allowed for group favorites")
                favorite = Favorite(movie_id=data.movie_id, type=favorite_type, user_id=actor.id)

            # the movie row must exist before the list row references it
            self.movie_resolver.ensure_movie(data.movie_id)

            stored = self.favorite_repo.upsert(favorite)
            logger.info(
                f"User {actor.id} added movie {data.movie_id} to list type {favorite_type.value}"
                + (f" of group {data.group_id}" if data.group_id else "")
            )
            return stored
        except (ServiceException, RepositoryException):
            raise
        except Exception as e:
            raise InternalServiceException(f"Unexpected error while adding favorite: {str(e)}")

    def remove_favorite(self, actor: Optional[User], movie_id: str, favorite_type,
                        group_id: Optional[int] = None) -> None:
        try:
            favorite_type = parse_favorite_type(favorite_type)

            if favorite_type == FavoriteType.GROUP_FAVORITES:
                if group_id is None:
                    raise InvalidArgumentException("group_id is required for group favorites")
                group = self._get_group(group_id)
                group_policy.check_write_group_list(group, actor, self._membership(group_id, actor), removing=True)
                self.favorite_repo.delete(movie_id, favorite_type, group_id=group_id)
            else:
                actor = group_policy.check_write_personal_list(actor)
                if group_id is not None:
                    raise InvalidArgumentException("Personal lists are not scoped to a group")
                self.favorite_repo.delete(movie_id, favorite_type, user_id=actor.id)

            logger.info(f"User {actor.id} removed movie {movie_id} from list type {favorite_type.value}")
        except EntityNotFoundException:
            raise NotFoundException("Movie not found in this list")
        except (ServiceException, RepositoryException):
            raise
        except Exception as e:
            raise InternalServiceException(f"Unexpected error while removing favorite: {str(e)}")

    def remove_user_favorite(self, actor: Optional[User], movie_id: str, favorite_type, user_id: int) -> None:
        """Administrative removal from another user's personal list."""
        try:
            actor = group_policy.check_write_personal_list(actor)
            favorite_type = parse_favorite_type(favorite_type)
            if favorite_type not in PERSONAL_TYPES:
                raise InvalidArgumentException("Only watchlist and favorites belong to a user")
            if actor.id != user_id and not actor.is_admin:
                raise ForbiddenException("Only administrators can change another user's lists")

            self.favorite_repo.delete(movie_id, favorite_type, user_id=user_id)
            logger.info(f"User {actor.id} removed movie {movie_id} from list type {favorite_type.value} of user {user_id}")
        except EntityNotFoundException:
            raise NotFoundException("Movie not found in this list")
        except (ServiceException, RepositoryException):
            raise
        except Exception as e:
            raise InternalServiceException(f"Unexpected error while removing favorite: {str(e)}")

    def list_user_favorites(self, user_id: int, favorite_type, actor: Optional[User]) -> List[Favorite]:
        try:
            favorite_type = parse_favorite_type(favorite_type)
            if favorite_type not in PERSONAL_TYPES:
                raise InvalidArgumentException("type must be 1 (watchlist) or 2 (favorites)")
            if self.user_repo.get_by_id(user_id) is None:
                raise NotFoundException("User not found")

            group_policy.check_read_personal_list(favorite_type, user_id, actor)
            return self.favorite_repo.list_for_user(user_id, favorite_type)
        except (ServiceException, RepositoryException):
            raise
        except Exception as e:
            raise InternalServiceException(f"Unexpected error while listing favorites: {str(e)}")

    def list_group_favorites(self, group_id: int, actor: Optional[User]) -> Tuple[Group, List[Favorite]]:
        try:
            group = self._get_group(group_id)
            group_policy.check_view_group_favorites(group, actor, self._membership(group_id, actor))
            return group, self.favorite_repo.list_for_group(group_id)
        except (ServiceException, RepositoryException):
            raise
        except Exception as e:
            raise InternalServiceException(f"Unexpected error while listing group favorites: {str(e)}")

    def favorite_status(self, movie_ids: List[str], actor: Optional[User]) -> Dict[str, dict]:
        """Per movie: is it on the caller's watchlist, favorites, and which visible group lists."""
        if not movie_ids:
            raise InvalidArgumentException("movie_id is required")
        if len(movie_ids) > STATUS_BATCH_LIMIT:
            raise InvalidArgumentException(f"At most {STATUS_BATCH_LIMIT} movie ids can be checked per request")

        if actor is None:
            return {movie_id: {"watchlist": False, "favorites": False, "groups": []} for movie_id in movie_ids}

        try:
            personal = self.favorite_repo.personal_types(actor.id, movie_ids)
            groups = self.favorite_repo.visible_groups_for_movies(actor.id, movie_ids)
            return {
                movie_id: {
                    "watchlist": FavoriteType.WATCHLIST.value in personal.get(movie_id, set()),
                    "favorites": FavoriteType.FAVORITES.value in personal.get(movie_id, set()),
                    "groups": groups.get(movie_id, [])
                }
                for movie_id in movie_ids
            }
        except (ServiceException, RepositoryException):
            raise
        except Exception as e:
            raise InternalServiceException(f"Unexpected error while checking favorite status: {str(e)}")

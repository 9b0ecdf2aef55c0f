import logging
from typing import List, Optional

from moviegroups.auth import group_policy
from moviegroups.config import RECENT_REVIEWS_LIMIT
from moviegroups.domain.dto import ReviewCreate, ReviewUpdate
from moviegroups.domain.models import Review, User
from moviegroups.repositories import ReviewRepository, GroupRepository
from moviegroups.service.movie_service import MovieResolver
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


class ReviewService:
    def __init__(self, review_repo: ReviewRepository, group_repo: GroupRepository, movie_resolver: MovieResolver):
        self.review_repo = review_repo
        self.group_repo = group_repo
        self.movie_resolver = movie_resolver

    def _get_review(self, review_id: int) -> Review:
        review = self.review_repo.get_by_id(review_id)
        if review is None:
            raise NotFoundException("Review not found")
        return review

    def _get_own_review(self, review_id: int, actor: User) -> Review:
        review = self._get_review(review_id)
        if review.user_id != actor.id:
            raise ForbiddenException("You can only change your own reviews")
        return review

    def create_review(self, actor: User, data: ReviewCreate) -> Review:
        try:
            if self.review_repo.get_by_user_and_movie(actor.id, data.movie_id):
                raise ConflictException("User has already reviewed this movie")

            self.movie_resolver.ensure_movie(data.movie_id)
            review = self.review_repo.create(
                Review(movie_id=data.movie_id, user_id=actor.id, rating=data.rating, content=data.content)
            )
            logger.info(f"User {actor.id} reviewed movie {data.movie_id}")
            return review
        except DuplicateEntityException:
            raise ConflictException("User has already reviewed this movie")
        except (ServiceException, RepositoryException):
            raise
        except Exception as e:
            raise InternalServiceException(f"Unexpected error while creating review: {str(e)}")

    def get_review(self, review_id: int) -> Review:
        return self._get_review(review_id)

    def list_movie_reviews(self, movie_id: str) -> List[Review]:
        return self.review_repo.list_by_movie(str(movie_id))

    def list_user_reviews(self, user_id: int) -> List[Review]:
        return self.review_repo.list_by_user(user_id)

    def list_recent_reviews(self, limit: Optional[int] = None) -> List[Review]:
        limit = RECENT_REVIEWS_LIMIT if limit is None else limit
        if limit < 1:
            raise InvalidArgumentException("limit must be a positive integer")
        return self.review_repo.list_recent(min(limit, 100))

    def list_group_reviews(self, group_id: int, actor: Optional[User]) -> List[Review]:
        try:
            group = self.group_repo.get_by_id(group_id)
            if group is None:
                raise NotFoundException("Group not found")
            membership = self.group_repo.get_membership(group_id, actor.id) if actor else None
            group_policy.check_view_group(group, actor, membership)
            return self.review_repo.list_for_group_favorites(group_id)
        except (ServiceException, RepositoryException):
            raise
        except Exception as e:
            raise InternalServiceException(f"Unexpected error while listing group reviews: {str(e)}")

    def update_review(self, review_id: int, actor: User, data: ReviewUpdate) -> Review:
        try:
            if data.content is None and data.rating is None:
                raise InvalidArgumentException("Nothing to update")
            self._get_own_review(review_id, actor)
            return self.review_repo.update(review_id, data.content, data.rating)
        except (ServiceException, RepositoryException):
            raise
        except Exception as e:
            raise InternalServiceException(f"Unexpected error while updating review: {str(e)}")

    def delete_review(self, review_id: int, actor: User) -> None:
        try:
            self._get_own_review(review_id, actor)
            self.review_repo.delete(review_id)
            logger.info(f"User {actor.id} deleted review {review_id}")
        except (ServiceException, RepositoryException):
            raise
        except Exception as e:
            raise InternalServiceException(f"Unexpected error while deleting review: {str(e)}")

    def set_interaction(self, review_id: int, actor: User, interaction_type: Optional[str]) -> Review:
        try:
            self._get_review(review_id)
            self.review_repo.set_interaction(review_id, actor.id, interaction_type)
            return self.review_repo.get_by_id(review_id)
        except DuplicateEntityException:
            raise ConflictException("Interaction was changed concurrently, please retry")
        except (ServiceException, RepositoryException):
            raise
        except Exception as e:
            raise InternalServiceException(f"Unexpected error while recording interaction: {str(e)}")

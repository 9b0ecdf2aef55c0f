from datetime import datetime
from typing import List, Optional

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from moviegroups.db.models import ReviewORM, InteractionORM, UserORM, FavoriteORM, GroupMemberORM
from moviegroups.domain.models import Review, FavoriteType, MemberRole
from moviegroups.repositories.interface.review_repository import ReviewRepository
from moviegroups.exceptions.repository import (
    EntityNotFoundException,
    DuplicateEntityException,
    RepositoryOperationException,
)

REVIEW_TARGET = "review"


class SQLAlchemyReviewRepo(ReviewRepository):
    def __init__(self, db: Session):
        self.db = db

    def _count(self, interaction_type: str):
        return (
            select(func.count(InteractionORM.id))
            .where(
                InteractionORM.target_id == ReviewORM.id,
                InteractionORM.target_type == REVIEW_TARGET,
                InteractionORM.type == interaction_type
            )
            .correlate(ReviewORM)
            .scalar_subquery()
        )

    def _query(self):
        return self.db.query(
            ReviewORM,
            UserORM.username,
            self._count("like").label("likes"),
            self._count("dislike").label("dislikes")
        ).join(UserORM, ReviewORM.user_id == UserORM.id)

    def _to_domain(self, review_orm: ReviewORM, username: str = None, likes: int = 0, dislikes: int = 0) -> Review:
        return Review(
            id=review_orm.id,
            movie_id=review_orm.movie_id,
            user_id=review_orm.user_id,
            rating=review_orm.rating,
            content=review_orm.content,
            username=username,
            likes=likes or 0,
            dislikes=dislikes or 0,
            created_at=review_orm.created_at,
            updated_at=review_orm.updated_at
        )

    def _newest_first(self, query):
        return query.order_by(ReviewORM.created_at.desc(), ReviewORM.id.desc())

    def create(self, review: Review) -> Review:
        try:
            review_orm = ReviewORM(
                movie_id=review.movie_id,
                user_id=review.user_id,
                content=review.content,
                rating=review.rating,
                created_at=datetime.now()
            )
            self.db.add(review_orm)
            self.db.commit()
            review_id = review_orm.id
        except IntegrityError:
            self.db.rollback()
            raise DuplicateEntityException(
                f"User {review.user_id} has already reviewed movie {review.movie_id}"
            )
        except Exception as e:
            self.db.rollback()
            raise RepositoryOperationException(f"Failed to create review: {str(e)}")
        return self.get_by_id(review_id)

    def get_by_id(self, review_id: int) -> Optional[Review]:
        try:
            row = self._query().filter(ReviewORM.id == review_id).first()
            return self._to_domain(*row) if row else None
        except Exception as e:
            raise RepositoryOperationException(f"Failed to get review: {str(e)}")

    def get_by_user_and_movie(self, user_id: int, movie_id: str) -> Optional[Review]:
        try:
            row = self._query().filter(
                ReviewORM.user_id == user_id,
                ReviewORM.movie_id == movie_id
            ).first()
            return self._to_domain(*row) if row else None
        except Exception as e:
            raise RepositoryOperationException(f"Failed to get review: {str(e)}")

    def list_by_movie(self, movie_id: str) -> List[Review]:
        try:
            rows = self._newest_first(self._query().filter(ReviewORM.movie_id == movie_id)).all()
            return [self._to_domain(*row) for row in rows]
        except Exception as e:
            raise RepositoryOperationException(f"Failed to list reviews for movie: {str(e)}")

    def list_by_user(self, user_id: int) -> List[Review]:
        try:
            rows = self._newest_first(self._query().filter(ReviewORM.user_id == user_id)).all()
            return [self._to_domain(*row) for row in rows]
        except Exception as e:
            raise RepositoryOperationException(f"Failed to list reviews for user: {str(e)}")

    def list_recent(self, limit: int) -> List[Review]:
        try:
            rows = self._newest_first(self._query()).limit(limit).all()
            return [self._to_domain(*row) for row in rows]
        except Exception as e:
            raise RepositoryOperationException(f"Failed to list recent reviews: {str(e)}")

    def list_for_group_favorites(self, group_id: int) -> List[Review]:
        """Reviews written by counted members about movies on the group's list."""
        try:
            members = select(GroupMemberORM.user_id).where(
                GroupMemberORM.group_id == group_id,
                GroupMemberORM.role != MemberRole.PENDING.value
            )
            listed_movies = select(FavoriteORM.movie_id).where(
                FavoriteORM.group_id == group_id,
                FavoriteORM.type == int(FavoriteType.GROUP_FAVORITES)
            )
            rows = self._newest_first(self._query().filter(
                ReviewORM.user_id.in_(members),
                ReviewORM.movie_id.in_(listed_movies)
            )).all()
            return [self._to_domain(*row) for row in rows]
        except Exception as e:
            raise RepositoryOperationException(f"Failed to list group reviews: {str(e)}")

    def update(self, review_id: int, content: Optional[str], rating: Optional[int]) -> Review:
        try:
            review_orm = self.db.get(ReviewORM, review_id)
            if not review_orm:
                raise EntityNotFoundException(f"Review {review_id} not found")

            if content is not None:
                review_orm.content = content
            if rating is not None:
                review_orm.rating = rating
            review_orm.updated_at = datetime.now()
            self.db.commit()
        except EntityNotFoundException:
            raise
        except Exception as e:
            self.db.rollback()
            raise RepositoryOperationException(f"Failed to update review: {str(e)}")
        return self.get_by_id(review_id)

    def delete(self, review_id: int) -> bool:
        try:
            self.db.query(InteractionORM).filter(
                InteractionORM.target_id == review_id,
                InteractionORM.target_type == REVIEW_TARGET
            ).delete()
            deleted = self.db.query(ReviewORM).filter(ReviewORM.id == review_id).delete()
            self.db.commit()
            self.db.expire_all()
            return deleted > 0
        except Exception as e:
            self.db.rollback()
            raise RepositoryOperationException(f"Failed to delete review: {str(e)}")

    def set_interaction(self, review_id: int, user_id: int, interaction_type: Optional[str]) -> None:
        """Record a like or dislike, replacing any earlier one. None clears it."""
        try:
            existing = self.db.query(InteractionORM).filter(
                InteractionORM.target_id == review_id,
                InteractionORM.target_type == REVIEW_TARGET,
                InteractionORM.user_id == user_id
            ).first()

            if interaction_type is None:
                if existing:
                    self.db.delete(existing)
            elif existing:
                existing.type = interaction_type
            else:
                self.db.add(InteractionORM(
                    target_id=review_id,
                    target_type=REVIEW_TARGET,
                    user_id=user_id,
                    type=interaction_type
                ))
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            raise DuplicateEntityException("Interaction was recorded concurrently")
        except Exception as e:
            self.db.rollback()
            raise RepositoryOperationException(f"Failed to record interaction: {str(e)}")

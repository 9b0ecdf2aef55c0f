from fastapi import Depends, Request
from sqlalchemy.orm import Session

from moviegroups.db.database import get_db
from moviegroups.repositories import (
    SQLAlchemyUserRepo,
    SQLAlchemyMovieRepo,
    SQLAlchemyGroupRepo,
    SQLAlchemyFavoriteRepo,
    SQLAlchemyReviewRepo,
)
from moviegroups.service.auth_service import AuthService
from moviegroups.service.movie_service import MovieResolver
from moviegroups.service.group_service import GroupService
from moviegroups.service.favorites_service import FavoritesService
from moviegroups.service.review_service import ReviewService
from moviegroups.service.user_service import UserService


def get_auth_service(request: Request, db: Session = Depends(get_db)) -> AuthService:
    return AuthService(SQLAlchemyUserRepo(db), request.app.state.config)


def get_user_service(db: Session = Depends(get_db)) -> UserService:
    return UserService(user_repo=SQLAlchemyUserRepo(db), group_repo=SQLAlchemyGroupRepo(db))


def get_movie_resolver(request: Request, db: Session = Depends(get_db)) -> MovieResolver:
    return MovieResolver(SQLAlchemyMovieRepo(db), request.app.state.tmdb_client)


def get_group_service(db: Session = Depends(get_db)) -> GroupService:
    return GroupService(
        group_repo=SQLAlchemyGroupRepo(db),
        user_repo=SQLAlchemyUserRepo(db)
    )


def get_favorites_service(
    db: Session = Depends(get_db),
    movie_resolver: MovieResolver = Depends(get_movie_resolver)
) -> FavoritesService:
    return FavoritesService(
        favorite_repo=SQLAlchemyFavoriteRepo(db),
        group_repo=SQLAlchemyGroupRepo(db),
        user_repo=SQLAlchemyUserRepo(db),
        movie_resolver=movie_resolver
    )


def get_review_service(
    db: Session = Depends(get_db),
    movie_resolver: MovieResolver = Depends(get_movie_resolver)
) -> ReviewService:
    return ReviewService(
        review_repo=SQLAlchemyReviewRepo(db),
        group_repo=SQLAlchemyGroupRepo(db),
        movie_resolver=movie_resolver
    )

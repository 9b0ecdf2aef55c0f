from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError
from typing import Optional

from moviegroups.db.models import MovieORM
from moviegroups.domain.models import Movie
from moviegroups.repositories.interface.movie_repository import MovieRepository
from moviegroups.exceptions.repository import (
    RepositoryOperationException,
    InvalidEntityDataException
)


class SQLAlchemyMovieRepo(MovieRepository):
    def __init__(self, session: Session):
        self.session = session

    def _to_domain(self, movie_orm: MovieORM) -> Movie:
        try:
            return Movie(
                id=movie_orm.id,
                title=movie_orm.title,
                original_title=movie_orm.original_title,
                release_year=movie_orm.release_year,
                poster_path=movie_orm.poster_path
            )
        except Exception as e:
            raise InvalidEntityDataException(f"Failed to convert movie data: {str(e)}")

    def _to_orm(self, movie: Movie) -> MovieORM:
        return MovieORM(
            id=str(movie.id),
            title=movie.title,
            original_title=movie.original_title,
            release_year=movie.release_year,
            poster_path=movie.poster_path
        )

    def get_by_id(self, movie_id: str) -> Optional[Movie]:
        try:
            movie_orm = self.session.get(MovieORM, str(movie_id))
            if not movie_orm:
                return None
            return self._to_domain(movie_orm)
        except InvalidEntityDataException:
            raise
        except Exception as e:
            raise RepositoryOperationException(f"Failed to get movie by ID: {str(e)}")

    def create(self, movie: Movie) -> Movie:
        """Store a movie record. A concurrent insert of the same id is not an error."""
        try:
            existing = self.session.get(MovieORM, str(movie.id))
            if existing is not None:
                return self._to_domain(existing)

            movie_orm = self._to_orm(movie)
            self.session.add(movie_orm)
            self.session.commit()
            return self._to_domain(movie_orm)
        except IntegrityError:
            self.session.rollback()
            existing = self.session.get(MovieORM, str(movie.id))
            if existing is None:
                raise RepositoryOperationException(f"Failed to store movie {movie.id}")
            return self._to_domain(existing)
        except Exception as e:
            self.session.rollback()
            raise RepositoryOperationException(f"Failed to store movie: {str(e)}")

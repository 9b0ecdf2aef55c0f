import logging
from typing import Optional

from moviegroups.clients.tmdb_client import TMDBClient
from moviegroups.domain.models import Movie, parse_movie_id
from moviegroups.repositories.interface.movie_repository import MovieRepository
from moviegroups.exceptions.repository import RepositoryOperationException
from moviegroups.exceptions.service import (
    ServiceException,
    InvalidArgumentException,
    InternalServiceException,
)

logger = logging.getLogger(__name__)


def _release_year(release_date: Optional[str]) -> Optional[int]:
    if not release_date or len(release_date) < 4 or not release_date[:4].isdigit():
        return None
    return int(release_date[:4])


class MovieResolver:
    """Makes sure a provider movie id has a local record, fetching it on first reference."""

    def __init__(self, movie_repository: MovieRepository, tmdb_client: TMDBClient):
        self.movie_repository = movie_repository
        self.tmdb_client = tmdb_client

    def ensure_movie(self, movie_id: str) -> Movie:
        try:
            movie_id = parse_movie_id(movie_id)
        except ValueError as e:
            raise InvalidArgumentException(str(e))

        try:
            movie = self.movie_repository.get_by_id(movie_id)
            if movie is not None:
                return movie

            details = self.tmdb_client.get_movie(movie_id)
            movie = Movie(
                id=movie_id,
                title=details.get("title") or details.get("original_title") or f"Movie {movie_id}",
                original_title=details.get("original_title"),
                release_year=_release_year(details.get("release_date")),
                poster_path=details.get("poster_path")
            )
            stored = self.movie_repository.create(movie)
            logger.info(f"Stored movie {movie_id} ({stored.title}) from metadata provider")
            return stored
        except ServiceException:
            raise
        except RepositoryOperationException:
            raise
        except Exception as e:
            logger.error(f"Unexpected error while resolving movie {movie_id}", exc_info=True)
            raise InternalServiceException(f"Unexpected error while resolving movie: {str(e)}")

from abc import ABC, abstractmethod
from typing import Optional

from moviegroups.domain.models import Movie


class MovieRepository(ABC):
    """Local cache of movie metadata keyed by the TMDB id (stored as text)."""

    @abstractmethod
    def get_by_id(self, movie_id: str) -> Optional["Movie"]:
        pass

    @abstractmethod
    def create(self, movie: "Movie") -> "Movie":
        """Cache a movie fetched upstream. Returns the stored row if the id is already cached."""

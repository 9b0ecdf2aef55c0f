"""Movie metadata provider client.

Only the single lookup the movie resolver needs: ``GET /movie/{id}``.
Each attempt is bounded by a timeout, and transport errors or 5xx answers are retried once.
"""

import logging
from typing import Optional

import httpx

from moviegroups.exceptions.service import UpstreamNotFoundException, UpstreamUnavailableException

logger = logging.getLogger(__name__)


class TMDBClient:
    """Synchronous TMDB client sharing one connection pool per application."""

    def __init__(
        self,
        api_key: Optional[str],
        base_url: str = "https://api.themoviedb.org/3",
        timeout: float = 5.0,
        retries: int = 1,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.api_key = api_key
        self.retries = max(0, retries)

        headers = {"accept": "application/json"}
        if api_key:
            headers["Authorization"] = f"Bearer {api_key}"

        self._client = httpx.Client(
            base_url=base_url,
            headers=headers,
            timeout=timeout,
            transport=transport,
        )

    def get_movie(self, movie_id: str) -> dict:
        """Fetch movie details.

        Args:
            movie_id: provider movie id

        Returns:
            Decoded JSON body

        Raises:
            UpstreamNotFoundException: the provider does not know the movie
            UpstreamUnavailableException: the provider could not be reached or failed
        """
        if not self.api_key:
            raise UpstreamUnavailableException("Movie metadata provider is not configured")

        path = f"/movie/{movie_id}"
        last_error = None

        for attempt in range(self.retries + 1):
            try:
                response = self._client.get(path, params={"language": "en-US"})
            except httpx.TransportError as e:
                last_error = str(e)
                logger.warning(f"TMDB request for movie {movie_id} failed (attempt {attempt + 1}): {e}")
                continue

            if response.status_code == 404:
                raise UpstreamNotFoundException(f"Movie {movie_id} not found upstream")
            if response.status_code >= 500:
                last_error = f"HTTP {response.status_code}"
                logger.warning(
                    f"TMDB answered {response.status_code} for movie {movie_id} (attempt {attempt + 1})"
                )
                continue
            if response.is_error:
                raise UpstreamUnavailableException(
                    f"Movie metadata provider rejected the request: HTTP {response.status_code}"
                )

            return response.json()

        logger.error(f"TMDB unavailable for movie {movie_id}: {last_error}")
        raise UpstreamUnavailableException("Movie metadata provider is unavailable")

    def close(self):
        self._client.close()

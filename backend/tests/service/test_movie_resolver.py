import httpx
import pytest
from unittest.mock import Mock

from moviegroups.clients.tmdb_client import TMDBClient
from moviegroups.domain.models import Movie
from moviegroups.service.movie_service import MovieResolver
from moviegroups.exceptions.service import (
    InvalidArgumentException,
    UpstreamNotFoundException,
    UpstreamUnavailableException,
)

FIGHT_CLUB = {
    "id": 550,
    "title": "Fight Club",
    "original_title": "Fight Club",
    "release_date": "1999-10-15",
    "poster_path": "/pB8BM7pdSp6B6Ih7QZ4DrQ3PmJK.jpg",
}


def _client(handler, retries=1, api_key="token"):
    return TMDBClient(api_key, base_url="https://tmdb.test/3", retries=retries,
                      transport=httpx.MockTransport(handler))


@pytest.fixture
def movie_repo():
    repo = Mock()
    repo.get_by_id.return_value = None
    repo.create.side_effect = lambda movie: movie
    return repo


def test_existing_movie_skips_provider(movie_repo):
    movie_repo.get_by_id.return_value = Movie(id="550", title="Fight Club")
    handler = Mock()

    movie = MovieResolver(movie_repo, _client(handler)).ensure_movie("550")

    assert movie.title == "Fight Club"
    handler.assert_not_called()
    movie_repo.create.assert_not_called()


def test_missing_movie_is_fetched_and_stored(movie_repo):
    seen = []

    def handler(request):
        seen.append(request)
        return httpx.Response(200, json=FIGHT_CLUB)

    movie = MovieResolver(movie_repo, _client(handler)).ensure_movie(" 550 ")

    assert movie.id == "550"
    assert movie.release_year == 1999
    assert movie.poster_path == FIGHT_CLUB["poster_path"]
    assert seen[0].url.path == "/3/movie/550"
    assert seen[0].headers["Authorization"] == "Bearer token"
    movie_repo.create.assert_called_once()


def test_blank_release_date(movie_repo):
    details = dict(FIGHT_CLUB, release_date="")
    movie = MovieResolver(movie_repo, _client(lambda r: httpx.Response(200, json=details))).ensure_movie("550")
    assert movie.release_year is None


def test_blank_id_is_rejected(movie_repo):
    with pytest.raises(InvalidArgumentException):
        MovieResolver(movie_repo, _client(Mock())).ensure_movie("  ")


def test_unknown_movie(movie_repo):
    resolver = MovieResolver(movie_repo, _client(lambda r: httpx.Response(404, json={"status_code": 34})))

    with pytest.raises(UpstreamNotFoundException):
        resolver.ensure_movie("999999999")
    movie_repo.create.assert_not_called()


def test_server_error_is_retried_once():
    calls = []

    def handler(request):
        calls.append(request)
        if len(calls) == 1:
            return httpx.Response(503)
        return httpx.Response(200, json=FIGHT_CLUB)

    assert _client(handler).get_movie("550")["title"] == "Fight Club"
    assert len(calls) == 2


def test_unreachable_provider_gives_up():
    calls = []

    def handler(request):
        calls.append(request)
        raise httpx.ConnectTimeout("timed out", request=request)

    with pytest.raises(UpstreamUnavailableException):
        _client(handler, retries=1).get_movie("550")
    assert len(calls) == 2


def test_client_error_is_not_retried():
    calls = []

    def handler(request):
        calls.append(request)
        return httpx.Response(401)

    with pytest.raises(UpstreamUnavailableException):
        _client(handler).get_movie("550")
    assert len(calls) == 1


def test_missing_api_key():
    with pytest.raises(UpstreamUnavailableException):
        _client(Mock(), api_key=None).get_movie("550")


@pytest.mark.parametrize("movie_id", ["550/videos", "abc", "0", "-1", "5.5"])
def test_non_numeric_id_never_reaches_provider(movie_repo, movie_id):
    handler = Mock()

    with pytest.raises(InvalidArgumentException, match="positive integer"):
        MovieResolver(movie_repo, _client(handler)).ensure_movie(movie_id)
    handler.assert_not_called()
    movie_repo.get_by_id.assert_not_called()


def test_leading_zeros_are_normalised(movie_repo):
    movie_repo.get_by_id.return_value = Movie(id="550", title="Fight Club")

    assert MovieResolver(movie_repo, _client(Mock())).ensure_movie("0550").id == "550"
    movie_repo.get_by_id.assert_called_once_with("550")

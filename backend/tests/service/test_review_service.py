import pytest
from datetime import datetime
from unittest.mock import Mock

from moviegroups.domain.dto import ReviewCreate, ReviewUpdate
from moviegroups.domain.models import User, Group, Review, Visibility
from moviegroups.service.review_service import ReviewService
from moviegroups.exceptions.repository import DuplicateEntityException
from moviegroups.exceptions.service import (
    InvalidArgumentException,
    ForbiddenException,
    NotFoundException,
    ConflictException,
    UnauthenticatedException,
)


@pytest.fixture
def mock_repos():
    review_repo = Mock()
    group_repo = Mock()
    movie_resolver = Mock()
    return review_repo, group_repo, movie_resolver


@pytest.fixture
def review_service(mock_repos):
    return ReviewService(*mock_repos)


@pytest.fixture
def test_data():
    now = datetime.now()
    return {
        "author": User(id=1, username="author", email="author@test.com", hashed_password="x", created_at=now),
        "other": User(id=2, username="other", email="other@test.com", hashed_password="x", created_at=now),
        "review": Review(id=5, movie_id="550", user_id=1, rating=4, content="Great", created_at=now),
    }


def test_create_review(review_service, mock_repos, test_data):
    review_repo, _, movie_resolver = mock_repos
    review_repo.get_by_user_and_movie.return_value = None
    review_repo.create.side_effect = lambda review: review

    review = review_service.create_review(test_data["author"], ReviewCreate(movie_id=550, rating=5, content="Wow"))

    movie_resolver.ensure_movie.assert_called_once_with("550")
    assert review.user_id == 1
    assert review.rating == 5


def test_create_review_twice_is_conflict(review_service, mock_repos, test_data):
    review_repo, _, movie_resolver = mock_repos
    review_repo.get_by_user_and_movie.return_value = test_data["review"]

    with pytest.raises(ConflictException, match="already reviewed") as error:
        review_service.create_review(test_data["author"], ReviewCreate(movie_id="550", rating=3))
    assert error.value.status_code == 409
    movie_resolver.ensure_movie.assert_not_called()


def test_create_review_race_is_conflict(review_service, mock_repos, test_data):
    review_repo, _, _ = mock_repos
    review_repo.get_by_user_and_movie.return_value = None
    review_repo.create.side_effect = DuplicateEntityException("unique violation")

    with pytest.raises(ConflictException):
        review_service.create_review(test_data["author"], ReviewCreate(movie_id="550", rating=3))


def test_get_review_missing(review_service, mock_repos):
    review_repo, _, _ = mock_repos
    review_repo.get_by_id.return_value = None

    with pytest.raises(NotFoundException):
        review_service.get_review(99)


def test_update_review_author_only(review_service, mock_repos, test_data):
    review_repo, _, _ = mock_repos
    review_repo.get_by_id.return_value = test_data["review"]
    review_repo.update.return_value = test_data["review"]

    with pytest.raises(ForbiddenException):
        review_service.update_review(5, test_data["other"], ReviewUpdate(rating=1))

    review_service.update_review(5, test_data["author"], ReviewUpdate(rating=2))
    review_repo.update.assert_called_once_with(5, None, 2)


def test_update_review_nothing_to_update(review_service, test_data):
    with pytest.raises(InvalidArgumentException):
        review_service.update_review(5, test_data["author"], ReviewUpdate())


def test_delete_review(review_service, mock_repos, test_data):
    review_repo, _, _ = mock_repos
    review_repo.get_by_id.return_value = test_data["review"]

    with pytest.raises(ForbiddenException):
        review_service.delete_review(5, test_data["other"])

    review_service.delete_review(5, test_data["author"])
    review_repo.delete.assert_called_once_with(5)


def test_set_interaction_returns_fresh_counts(review_service, mock_repos, test_data):
    review_repo, _, _ = mock_repos
    liked = Review(id=5, movie_id="550", user_id=1, rating=4, likes=1)
    review_repo.get_by_id.side_effect = [test_data["review"], liked]

    result = review_service.set_interaction(5, test_data["other"], "like")

    review_repo.set_interaction.assert_called_once_with(5, 2, "like")
    assert result.likes == 1


def test_recent_reviews_limit(review_service, mock_repos):
    review_repo, _, _ = mock_repos
    review_repo.list_recent.return_value = []

    review_service.list_recent_reviews()
    review_repo.list_recent.assert_called_with(20)
    review_service.list_recent_reviews(1000)
    review_repo.list_recent.assert_called_with(100)
    with pytest.raises(InvalidArgumentException):
        review_service.list_recent_reviews(0)


def test_group_reviews_follow_group_visibility(review_service, mock_repos, test_data):
    review_repo, group_repo, _ = mock_repos
    group_repo.get_by_id.return_value = Group(id=10, name="Hidden", owner_id=1, visibility=Visibility.CLOSED)
    group_repo.get_membership.return_value = None
    review_repo.list_for_group_favorites.return_value = [test_data["review"]]

    with pytest.raises(UnauthenticatedException):
        review_service.list_group_reviews(10, None)
    with pytest.raises(ForbiddenException):
        review_service.list_group_reviews(10, test_data["other"])
    assert review_service.list_group_reviews(10, test_data["author"]) == [test_data["review"]]

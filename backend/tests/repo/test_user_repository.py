import pytest
from datetime import datetime
from sqlalchemy.pool import StaticPool

from moviegroups.db.database import Database
from moviegroups.db.models import UserORM, GroupORM, GroupMemberORM, FavoriteORM, MovieORM, ReviewORM
from moviegroups.domain.models import User
from moviegroups.repositories.implementation.sql_alchemy_user_repo import SQLAlchemyUserRepo
from moviegroups.exceptions.repository import (
    EntityNotFoundException,
    DuplicateEntityException,
    RepositoryOperationException
)


@pytest.fixture
def session():
    database = Database("sqlite:///:memory:", poolclass=StaticPool)
    database.create_all()
    db = database.session()
    yield db
    db.close()
    database.dispose()


@pytest.fixture
def user_repo(session):
    return SQLAlchemyUserRepo(session)


@pytest.fixture
def accounts(session):
    """alice is a regular member, bob an admin who owns group 10."""
    now = datetime.now()
    session.add_all([
        UserORM(id=1, username="alice", email="alice@test.com", hashed_password="hashed_pw1",
                is_active=True, is_admin=False, created_at=now),
        UserORM(id=2, username="bob", email="bob@test.com", hashed_password="hashed_pw2",
                is_active=True, is_admin=True, created_at=now),
    ])
    session.flush()
    session.add(GroupORM(id=10, name="Noir", visibility="public", owner_id=2, created_at=now))
    session.flush()
    session.add_all([
        GroupMemberORM(group_id=10, user_id=2, role="owner", joined_at=now),
        GroupMemberORM(group_id=10, user_id=1, role="member", joined_at=now),
    ])
    session.commit()


def _new_user(username="carol", email="carol@test.com", **kwargs):
    return User(username=username, email=email, hashed_password="hashed_pw3", created_at=datetime.now(), **kwargs)


def test_get_by_id(user_repo, accounts):
    user = user_repo.get_by_id(1)

    assert (user.id, user.username, user.email) == (1, "alice", "alice@test.com")
    assert user.is_active is True
    assert user.is_admin is False
    assert user_repo.get_by_id(999) is None


@pytest.mark.parametrize("username", ["alice", "ALICE", "Alice"])
def test_get_by_username_ignores_case(user_repo, accounts, username):
    assert user_repo.get_by_username(username).id == 1


def test_lookups_for_unknown_credentials(user_repo, accounts):
    assert user_repo.get_by_username("nobody") is None
    assert user_repo.get_by_email("nobody@test.com") is None


def test_get_by_email_ignores_case(user_repo, accounts):
    assert user_repo.get_by_email("Bob@Test.COM").username == "bob"


def test_create_assigns_id(user_repo, accounts):
    created = user_repo.create(_new_user())

    assert created.id not in (None, 1, 2)
    assert user_repo.get_by_username("carol").email == "carol@test.com"


@pytest.mark.parametrize("username, email, field", [
    ("alice", "fresh@test.com", "username"),
    ("fresh", "bob@test.com", "email"),
])
def test_create_duplicate_names_the_clashing_field(user_repo, accounts, username, email, field):
    with pytest.raises(DuplicateEntityException, match=f"this {field} already exists"):
        user_repo.create(_new_user(username=username, email=email))

    # session is usable after the rollback
    assert len(user_repo.get_all()) == 2


def test_update_flags(user_repo, accounts):
    user = user_repo.get_by_id(1)
    user.is_active = False
    user.is_admin = True

    updated = user_repo.update(user)

    assert (updated.is_active, updated.is_admin) == (False, True)
    assert user_repo.get_by_id(1).is_active is False


def test_update_to_taken_email(user_repo, accounts):
    user = user_repo.get_by_id(1)
    user.email = "bob@test.com"

    with pytest.raises(DuplicateEntityException, match="already uses this email"):
        user_repo.update(user)
    assert user_repo.get_by_id(1).email == "alice@test.com"


def test_update_unknown_user(user_repo):
    with pytest.raises(EntityNotFoundException):
        user_repo.update(_new_user(id=999))


def test_delete_cascades_memberships_lists_and_reviews(user_repo, accounts, session):
    session.add(MovieORM(id="550", title="Fight Club", original_title="Fight Club", release_year=1999))
    session.flush()
    session.add_all([
        FavoriteORM(user_id=1, movie_id="550", type=1, created_at=datetime.now()),
        ReviewORM(user_id=1, movie_id="550", rating=4, content="Solid", created_at=datetime.now()),
    ])
    session.commit()

    assert user_repo.delete(1) is True

    session.expire_all()
    assert user_repo.get_by_id(1) is None
    assert session.query(GroupMemberORM).filter_by(user_id=1).count() == 0
    assert session.query(FavoriteORM).filter_by(user_id=1).count() == 0
    assert session.query(ReviewORM).filter_by(user_id=1).count() == 0


def test_delete_group_owner_is_rejected(user_repo, accounts):
    with pytest.raises(RepositoryOperationException, match="still owns groups"):
        user_repo.delete(2)
    assert user_repo.get_by_id(2) is not None


def test_delete_unknown_user(user_repo):
    assert user_repo.delete(999) is False


def test_get_all_is_ordered_by_id(user_repo, accounts):
    assert [u.username for u in user_repo.get_all()] == ["alice", "bob"]


def test_get_all_with_limit(user_repo, accounts):
    user_repo.create(_new_user())

    assert [u.username for u in user_repo.get_all(limit=2)] == ["alice", "bob"]
    assert len(user_repo.get_all()) == 3

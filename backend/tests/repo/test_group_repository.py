import pytest
from datetime import datetime, timedelta
from sqlalchemy.pool import StaticPool

from moviegroups.db.database import Database
from moviegroups.db.models import (
    UserORM, GenreORM, GroupThemeORM, GroupMemberORM, GroupTagORM, MovieORM, FavoriteORM
)
from moviegroups.domain.models import Group, Membership, MemberRole, Visibility
from moviegroups.repositories.implementation.sql_alchemy_group_repo import SQLAlchemyGroupRepo
from moviegroups.exceptions.repository import (
    EntityNotFoundException,
    DuplicateEntityException,
)


@pytest.fixture
def session():
    """Create a fresh in-memory SQLite database for each test."""
    database = Database("sqlite:///:memory:", poolclass=StaticPool)
    database.create_all()
    db = database.session()
    yield db
    db.close()
    database.dispose()


@pytest.fixture
def group_repo(session):
    return SQLAlchemyGroupRepo(session)


@pytest.fixture
def seed(session):
    now = datetime.now()
    session.add_all([
        UserORM(id=1, username="owner", email="owner@test.com", hashed_password="x", created_at=now),
        UserORM(id=2, username="mod", email="mod@test.com", hashed_password="x", created_at=now),
        UserORM(id=3, username="member", email="member@test.com", hashed_password="x", created_at=now),
        UserORM(id=4, username="outsider", email="outsider@test.com", hashed_password="x", created_at=now),
        GenreORM(id=28, name="Action"),
        GenreORM(id=35, name="Comedy"),
        GenreORM(id=18, name="Drama"),
        GroupThemeORM(id=1, name="Dark", theme="dark"),
    ])
    session.commit()


def _create(group_repo, name, owner_id=1, visibility=Visibility.PUBLIC, tags=()):
    return group_repo.create_with_owner(
        Group(name=name, owner_id=owner_id, visibility=visibility, description=f"{name} fans"),
        list(tags)
    )


def test_create_with_owner_writes_owner_row_and_tags(group_repo, seed, session):
    group = _create(group_repo, "Action Fans", tags=[28, 35])

    assert group.id is not None
    assert group.owner_name == "owner"
    assert group.member_count == 1
    assert sorted(group.genre_ids) == [28, 35]

    owners = session.query(GroupMemberORM).filter_by(group_id=group.id, role="owner").all()
    assert len(owners) == 1
    assert owners[0].user_id == 1


def test_create_duplicate_name_is_case_insensitive(group_repo, seed, session):
    _create(group_repo, "Action Fans")

    with pytest.raises(DuplicateEntityException):
        _create(group_repo, "action fans", owner_id=2)

    # nothing from the failed attempt survives
    assert session.query(GroupMemberORM).filter_by(user_id=2).count() == 0


def test_get_by_name_ignores_case(group_repo, seed):
    created = _create(group_repo, "Noir Club")
    found = group_repo.get_by_name("NOIR club")
    assert found is not None
    assert found.id == created.id


def test_get_details_includes_members_and_genres(group_repo, seed):
    group = _create(group_repo, "Dramatic", tags=[18])
    group_repo.add_membership(Membership(group_id=group.id, user_id=3, role=MemberRole.MEMBER))

    details = group_repo.get_details(group.id)
    assert {m.user_id for m in details.members} == {1, 3}
    assert [g.name for g in details.genres] == ["Drama"]
    assert details.member_count == 2


def test_update_details_replaces_tags(group_repo, seed):
    group = _create(group_repo, "Mixed", tags=[28, 35])

    updated = group_repo.update_details(group.id, {"description": "new", "visibility": Visibility.PRIVATE}, [18])
    assert updated.description == "new"
    assert updated.visibility == Visibility.PRIVATE
    assert updated.genre_ids == [18]

    cleared = group_repo.update_details(group.id, {}, [])
    assert cleared.genre_ids == []


def test_update_details_keeps_tags_when_not_given(group_repo, seed):
    group = _create(group_repo, "Stable", tags=[28])
    updated = group_repo.update_details(group.id, {"name": "Stable Crew"}, None)
    assert updated.name == "Stable Crew"
    assert updated.genre_ids == [28]


def test_update_details_rolls_back_on_bad_tag(group_repo, seed):
    group = _create(group_repo, "Atomic", tags=[28])

    with pytest.raises(Exception):
        group_repo.update_details(group.id, {"description": "changed"}, [999])

    reloaded = group_repo.get_by_id(group.id)
    assert reloaded.description == "Atomic fans"
    assert reloaded.genre_ids == [28]


def test_update_details_missing_group(group_repo, seed):
    with pytest.raises(EntityNotFoundException):
        group_repo.update_details(999, {"description": "x"}, None)


def test_delete_cascade_removes_everything(group_repo, seed, session):
    group = _create(group_repo, "Doomed", tags=[28, 35])
    group_repo.add_membership(Membership(group_id=group.id, user_id=3, role=MemberRole.MEMBER))
    session.add(MovieORM(id="550", title="Fight Club"))
    session.add(FavoriteORM(group_id=group.id, added_by=1, movie_id="550", type=3, created_at=datetime.now()))
    session.commit()

    counts = group_repo.delete_cascade(group.id)

    assert counts == {"deleted_tags": 2, "deleted_members": 2, "deleted_favorites": 1}
    assert group_repo.get_by_id(group.id) is None
    assert session.query(GroupTagORM).count() == 0
    assert session.query(GroupMemberORM).count() == 0
    assert session.query(FavoriteORM).count() == 0


def test_delete_cascade_missing_group(group_repo, seed):
    with pytest.raises(EntityNotFoundException):
        group_repo.delete_cascade(999)


def test_add_membership_twice_is_duplicate(group_repo, seed):
    group = _create(group_repo, "Once")
    group_repo.add_membership(Membership(group_id=group.id, user_id=3, role=MemberRole.PENDING))

    with pytest.raises(DuplicateEntityException):
        group_repo.add_membership(Membership(group_id=group.id, user_id=3, role=MemberRole.PENDING))


def test_pending_rows_are_not_counted(group_repo, seed):
    group = _create(group_repo, "Counting")
    group_repo.add_membership(Membership(group_id=group.id, user_id=3, role=MemberRole.PENDING))

    assert group_repo.get_by_id(group.id).member_count == 1
    assert [m.user_id for m in group_repo.get_pending(group.id)] == [3]
    assert {m.user_id for m in group_repo.get_members(group.id, include_pending=False)} == {1}


def test_update_member_role_and_remove(group_repo, seed):
    group = _create(group_repo, "Roles")
    group_repo.add_membership(Membership(group_id=group.id, user_id=3, role=MemberRole.PENDING))

    approved = group_repo.update_member_role(group.id, 3, MemberRole.MEMBER)
    assert approved.role == MemberRole.MEMBER
    assert approved.username == "member"

    assert group_repo.remove_membership(group.id, 3) is True
    assert group_repo.get_membership(group.id, 3) is None
    assert group_repo.remove_membership(group.id, 3) is False

    # a removed member can come back
    group_repo.add_membership(Membership(group_id=group.id, user_id=3, role=MemberRole.MEMBER))
    assert group_repo.get_membership(group.id, 3).role == MemberRole.MEMBER


def test_get_by_genres_all_requires_every_tag(group_repo, seed):
    both = _create(group_repo, "Both", tags=[28, 35])
    action = _create(group_repo, "Only Action", tags=[28])
    comedy = _create(group_repo, "Only Comedy", tags=[35])
    more = _create(group_repo, "Superset", tags=[28, 35, 18])

    all_ids = {g.id for g in group_repo.get_by_genres([28, 35], "all", 20)}
    any_ids = {g.id for g in group_repo.get_by_genres([28, 35], "any", 20)}

    assert all_ids == {both.id, more.id}
    assert any_ids == {both.id, action.id, comedy.id, more.id}


def test_get_by_genres_skips_closed_groups(group_repo, seed):
    _create(group_repo, "Hidden", visibility=Visibility.CLOSED, tags=[28])
    private = _create(group_repo, "Private", visibility=Visibility.PRIVATE, tags=[28])

    assert [g.id for g in group_repo.get_by_genres([28], "any", 20)] == [private.id]


def test_get_popular_orders_by_counted_members(group_repo, seed, session):
    quiet = _create(group_repo, "Quiet")
    busy = _create(group_repo, "Busy", owner_id=2)
    group_repo.add_membership(Membership(group_id=busy.id, user_id=3, role=MemberRole.MEMBER))
    group_repo.add_membership(Membership(group_id=quiet.id, user_id=3, role=MemberRole.PENDING))
    group_repo.add_membership(Membership(group_id=quiet.id, user_id=4, role=MemberRole.PENDING))

    popular = group_repo.get_popular(10)
    assert [g.id for g in popular] == [busy.id, quiet.id]
    assert popular[0].member_count == 2


def test_get_user_groups_orders_by_role(group_repo, seed):
    joined = _create(group_repo, "Joined", owner_id=2)
    moderated = _create(group_repo, "Moderated", owner_id=2)
    owned = _create(group_repo, "Owned", owner_id=3)
    pending = _create(group_repo, "Pending", owner_id=2)
    group_repo.add_membership(Membership(group_id=joined.id, user_id=3, role=MemberRole.MEMBER))
    group_repo.add_membership(Membership(group_id=moderated.id, user_id=3, role=MemberRole.MODERATOR))
    group_repo.add_membership(Membership(group_id=pending.id, user_id=3, role=MemberRole.PENDING))

    result = group_repo.get_user_groups(3)
    assert [(g.id, role) for g, role in result] == [
        (owned.id, MemberRole.OWNER),
        (moderated.id, MemberRole.MODERATOR),
        (joined.id, MemberRole.MEMBER),
    ]


def test_reference_lookups(group_repo, seed):
    assert sorted(group_repo.get_existing_genre_ids([28, 999, 18])) == [18, 28]
    assert group_repo.theme_exists(1) is True
    assert group_repo.theme_exists(2) is False
    assert [g.id for g in group_repo.get_all_genres()] == [18, 28, 35]
    assert [t.name for t in group_repo.get_all_themes()] == ["Dark"]

import pytest

from moviegroups.auth import group_policy
from moviegroups.domain.models import Group, User, Membership, MemberRole, Visibility, FavoriteType
from moviegroups.exceptions.service import (
    UnauthenticatedException,
    ForbiddenException,
    NotFoundException,
    ConflictException,
    InvalidArgumentException,
)

OWNER, MOD, MOD2, MEMBER, PENDING, OUTSIDER, ADMIN = 1, 2, 3, 4, 5, 6, 7


def _user(user_id, is_admin=False):
    return User(username=f"user{user_id}", email=f"user{user_id}@test.com", hashed_password="x",
                id=user_id, is_admin=is_admin)


def _group(visibility):
    return Group(id=100, name="Cinephiles", owner_id=OWNER, visibility=visibility)


ROLES = {
    OWNER: MemberRole.OWNER,
    MOD: MemberRole.MODERATOR,
    MOD2: MemberRole.MODERATOR,
    MEMBER: MemberRole.MEMBER,
    PENDING: MemberRole.PENDING,
}


def _membership(user_id):
    role = ROLES.get(user_id)
    return Membership(group_id=100, user_id=user_id, role=role) if role else None


@pytest.mark.parametrize("visibility", list(Visibility))
def test_view_group_anonymous(visibility):
    group = _group(visibility)
    if visibility == Visibility.PUBLIC:
        group_policy.check_view_group(group, None, None)
    else:
        with pytest.raises(UnauthenticatedException):
            group_policy.check_view_group(group, None, None)


@pytest.mark.parametrize("visibility", [Visibility.PRIVATE, Visibility.CLOSED])
def test_view_group_non_public(visibility):
    group = _group(visibility)
    for user_id in (OWNER, MOD, MEMBER):
        group_policy.check_view_group(group, _user(user_id), _membership(user_id))
    group_policy.check_view_group(group, _user(ADMIN, is_admin=True), None)

    for user_id in (PENDING, OUTSIDER):
        with pytest.raises(ForbiddenException):
            group_policy.check_view_group(group, _user(user_id), _membership(user_id))


def test_list_members_public_is_open():
    group_policy.check_list_members(_group(Visibility.PUBLIC), None)


def test_list_members_private_owner_only():
    group = _group(Visibility.PRIVATE)
    group_policy.check_list_members(group, _user(OWNER))
    group_policy.check_list_members(group, _user(ADMIN, is_admin=True))
    with pytest.raises(ForbiddenException):
        group_policy.check_list_members(group, _user(MEMBER))
    with pytest.raises(UnauthenticatedException):
        group_policy.check_list_members(group, None)


def test_list_members_closed_excludes_owner_and_members():
    group = _group(Visibility.CLOSED)
    group_policy.check_list_members(group, _user(ADMIN, is_admin=True))
    for user_id in (OWNER, MEMBER):
        with pytest.raises(ForbiddenException):
            group_policy.check_list_members(group, _user(user_id))


def test_join_directly_rules():
    public = _group(Visibility.PUBLIC)
    group_policy.check_join_directly(public, _user(OUTSIDER), None)

    with pytest.raises(ForbiddenException, match="private group"):
        group_policy.check_join_directly(_group(Visibility.PRIVATE), _user(OUTSIDER), None)
    with pytest.raises(ForbiddenException, match="closed group"):
        group_policy.check_join_directly(_group(Visibility.CLOSED), _user(OUTSIDER), None)
    with pytest.raises(ConflictException, match="already the owner") as owner_error:
        group_policy.check_join_directly(public, _user(OWNER), _membership(OWNER))
    assert owner_error.value.status_code == 400
    with pytest.raises(ConflictException, match="already a member"):
        group_policy.check_join_directly(public, _user(MEMBER), _membership(MEMBER))
    with pytest.raises(ConflictException, match="pending join request"):
        group_policy.check_join_directly(public, _user(PENDING), _membership(PENDING))


@pytest.mark.parametrize("visibility", list(Visibility))
def test_request_to_join_any_visibility(visibility):
    group = _group(visibility)
    group_policy.check_request_to_join(group, _user(OUTSIDER), None)
    with pytest.raises(ConflictException):
        group_policy.check_request_to_join(group, _user(PENDING), _membership(PENDING))
    with pytest.raises(ConflictException):
        group_policy.check_request_to_join(group, _user(MEMBER), _membership(MEMBER))


def test_approve_pending():
    group = _group(Visibility.PRIVATE)
    for user_id in (OWNER, MOD):
        group_policy.check_approve_pending(group, _user(user_id), _membership(user_id), _membership(PENDING))

    with pytest.raises(ForbiddenException):
        group_policy.check_approve_pending(group, _user(MEMBER), _membership(MEMBER), _membership(PENDING))
    with pytest.raises(NotFoundException):
        group_policy.check_approve_pending(group, _user(OWNER), _membership(OWNER), _membership(MEMBER))
    with pytest.raises(NotFoundException):
        group_policy.check_approve_pending(group, _user(OWNER), _membership(OWNER), None)


def test_add_member():
    group = _group(Visibility.PRIVATE)
    role = group_policy.check_add_member(group, _user(OWNER), OUTSIDER, None, "moderator")
    assert role == MemberRole.MODERATOR

    with pytest.raises(ForbiddenException):
        group_policy.check_add_member(group, _user(MOD), OUTSIDER, None, "member")
    with pytest.raises(ConflictException):
        group_policy.check_add_member(group, _user(OWNER), MEMBER, _membership(MEMBER), "member")
    with pytest.raises(ConflictException):
        group_policy.check_add_member(group, _user(OWNER), OWNER, _membership(OWNER), "member")
    with pytest.raises(InvalidArgumentException):
        group_policy.check_add_member(group, _user(OWNER), OUTSIDER, None, "owner")


def test_remove_member_kinds():
    group = _group(Visibility.PUBLIC)
    remove = group_policy.check_remove_member

    assert remove(group, _user(MEMBER), _membership(MEMBER), _membership(MEMBER)) == group_policy.SELF_REMOVAL
    assert remove(group, _user(MOD), _membership(MOD), _membership(MOD)) == group_policy.SELF_REMOVAL
    assert remove(group, _user(OWNER), _membership(OWNER), _membership(MOD)) == group_policy.OWNER_REMOVAL
    assert remove(group, _user(MOD), _membership(MOD), _membership(MEMBER)) == group_policy.MODERATOR_REMOVAL
    assert remove(group, _user(MOD), _membership(MOD), _membership(PENDING)) == group_policy.MODERATOR_REMOVAL


def test_remove_member_denials():
    group = _group(Visibility.PUBLIC)
    remove = group_policy.check_remove_member

    with pytest.raises(ForbiddenException, match="delete the group"):
        remove(group, _user(OWNER), _membership(OWNER), _membership(OWNER))
    with pytest.raises(ForbiddenException, match="Cannot remove the group owner"):
        remove(group, _user(MOD), _membership(MOD), _membership(OWNER))
    with pytest.raises(ForbiddenException, match="Moderators cannot remove other moderators"):
        remove(group, _user(MOD), _membership(MOD), _membership(MOD2))
    with pytest.raises(ForbiddenException):
        remove(group, _user(MEMBER), _membership(MEMBER), _membership(PENDING))
    with pytest.raises(NotFoundException):
        remove(group, _user(OWNER), _membership(OWNER), None)


def test_leave_group():
    group = _group(Visibility.PUBLIC)
    group_policy.check_leave_group(group, _user(MEMBER), _membership(MEMBER))
    group_policy.check_leave_group(group, _user(PENDING), _membership(PENDING))
    with pytest.raises(ForbiddenException):
        group_policy.check_leave_group(group, _user(OWNER), _membership(OWNER))
    with pytest.raises(NotFoundException):
        group_policy.check_leave_group(group, _user(OUTSIDER), None)


def test_update_member_role():
    group = _group(Visibility.PUBLIC)
    update = group_policy.check_update_member_role

    assert update(group, _user(OWNER), _membership(MEMBER), "moderator") == MemberRole.MODERATOR
    assert update(group, _user(OWNER), _membership(MOD), "member") == MemberRole.MEMBER

    with pytest.raises(ForbiddenException):
        update(group, _user(MOD), _membership(MEMBER), "moderator")
    with pytest.raises(ForbiddenException):
        update(group, _user(OWNER), _membership(OWNER), "member")
    with pytest.raises(ConflictException, match="User is already a moderator"):
        update(group, _user(OWNER), _membership(MOD), "moderator")
    with pytest.raises(NotFoundException):
        update(group, _user(OWNER), _membership(PENDING), "member")
    with pytest.raises(InvalidArgumentException):
        update(group, _user(OWNER), _membership(MEMBER), "pending")


def test_manage_group_owner_only():
    group = _group(Visibility.PUBLIC)
    group_policy.check_manage_group(group, _user(OWNER), "update")
    group_policy.check_manage_group(group, _user(OWNER), "delete")
    for user_id in (MOD, MEMBER, OUTSIDER):
        with pytest.raises(ForbiddenException):
            group_policy.check_manage_group(group, _user(user_id), "delete")
    with pytest.raises(ForbiddenException):
        group_policy.check_manage_group(group, _user(ADMIN, is_admin=True), "update")


def test_view_pending_requests():
    group = _group(Visibility.PUBLIC)
    group_policy.check_view_pending_requests(group, _user(OWNER), _membership(OWNER))
    group_policy.check_view_pending_requests(group, _user(MOD), _membership(MOD))
    with pytest.raises(ForbiddenException):
        group_policy.check_view_pending_requests(group, _user(MEMBER), _membership(MEMBER))


def test_personal_list_rules():
    with pytest.raises(UnauthenticatedException):
        group_policy.check_write_personal_list(None)
    assert group_policy.check_write_personal_list(_user(MEMBER)).id == MEMBER

    group_policy.check_read_personal_list(FavoriteType.FAVORITES, MEMBER, None)
    group_policy.check_read_personal_list(FavoriteType.WATCHLIST, MEMBER, _user(MEMBER))
    group_policy.check_read_personal_list(FavoriteType.WATCHLIST, MEMBER, _user(ADMIN, is_admin=True))
    with pytest.raises(UnauthenticatedException):
        group_policy.check_read_personal_list(FavoriteType.WATCHLIST, MEMBER, None)
    with pytest.raises(ForbiddenException):
        group_policy.check_read_personal_list(FavoriteType.WATCHLIST, MEMBER, _user(OUTSIDER))


def test_group_list_writers():
    group = _group(Visibility.PUBLIC)
    group_policy.check_write_group_list(group, _user(OWNER), _membership(OWNER))
    group_policy.check_write_group_list(group, _user(MOD), _membership(MOD))

    for user_id in (MEMBER, PENDING, OUTSIDER):
        with pytest.raises(ForbiddenException):
            group_policy.check_write_group_list(group, _user(user_id), _membership(user_id))

    admin = _user(ADMIN, is_admin=True)
    with pytest.raises(ForbiddenException):
        group_policy.check_write_group_list(group, admin, None)
    group_policy.check_write_group_list(group, admin, None, removing=True)

"""Who may do what to a group, its roster and its lists.

Every check takes already-loaded rows (the group, the acting user or ``None`` for
anonymous callers, and the relevant membership rows) and either returns or raises
one of the service exceptions. Nothing here touches storage.
"""
from typing import Optional

from fastapi import status

from moviegroups.domain.models import (
    Group, User, Membership, MemberRole, Visibility, FavoriteType
)
from moviegroups.exceptions.service import (
    UnauthenticatedException,
    ForbiddenException,
    NotFoundException,
    ConflictException,
    InvalidArgumentException,
)

SELF_REMOVAL = "self_removal"
OWNER_REMOVAL = "owner_removal"
MODERATOR_REMOVAL = "moderator_removal"

ASSIGNABLE_ROLES = (MemberRole.MEMBER, MemberRole.MODERATOR)


def _require_actor(actor: Optional[User], message: str = "Authentication required") -> User:
    if actor is None:
        raise UnauthenticatedException(message)
    return actor


def _is_owner(group: Group, actor: Optional[User]) -> bool:
    return actor is not None and actor.id == group.owner_id


def _is_admin(actor: Optional[User]) -> bool:
    return actor is not None and bool(actor.is_admin)


def _is_counted_member(membership: Optional[Membership]) -> bool:
    return membership is not None and not membership.is_pending


def _is_moderator(membership: Optional[Membership]) -> bool:
    return membership is not None and membership.role == MemberRole.MODERATOR


def _assignable_role(role) -> MemberRole:
    try:
        role = MemberRole(role)
    except ValueError:
        role = None
    if role not in ASSIGNABLE_ROLES:
        raise InvalidArgumentException('Invalid role. Must be "member" or "moderator"')
    return role


def check_view_group(group: Group, actor: Optional[User], membership: Optional[Membership]) -> None:
    if group.visibility == Visibility.PUBLIC:
        return
    _require_actor(actor, f"Authentication required to view this {group.visibility.value} group")
    if _is_admin(actor) or _is_owner(group, actor) or _is_counted_member(membership):
        return
    raise ForbiddenException("You must be a member to view this group")


def check_list_members(group: Group, actor: Optional[User]) -> None:
    """Roster listing. Closed groups are admin-only, even for their owner and members."""
    if group.visibility == Visibility.PUBLIC:
        return
    _require_actor(actor, "Authentication required to list members of this group")
    if _is_admin(actor):
        return
    if group.visibility == Visibility.PRIVATE and _is_owner(group, actor):
        return
    if group.visibility == Visibility.CLOSED:
        raise ForbiddenException("Members of a closed group can only be listed by administrators")
    raise ForbiddenException("Only the group owner can list members of a private group")


def _check_not_already_in(group: Group, actor: User, membership: Optional[Membership]) -> None:
    if _is_owner(group, actor):
        raise ConflictException("You are already the owner of this group", status.HTTP_400_BAD_REQUEST)
    if membership is not None:
        if membership.is_pending:
            raise ConflictException(
                "You already have a pending join request for this group", status.HTTP_400_BAD_REQUEST
            )
        raise ConflictException("You are already a member of this group", status.HTTP_400_BAD_REQUEST)


def check_join_directly(group: Group, actor: Optional[User], membership: Optional[Membership]) -> None:
    actor = _require_actor(actor)
    if group.visibility == Visibility.PRIVATE:
        raise ForbiddenException("This is a private group. You cannot join directly.")
    if group.visibility == Visibility.CLOSED:
        raise ForbiddenException("This is a closed group. Contact support for access.")
    _check_not_already_in(group, actor, membership)


def check_request_to_join(group: Group, actor: Optional[User], membership: Optional[Membership]) -> None:
    actor = _require_actor(actor)
    _check_not_already_in(group, actor, membership)


def check_approve_pending(group: Group, actor: Optional[User], actor_membership: Optional[Membership],
                          target_membership: Optional[Membership]) -> None:
    actor = _require_actor(actor)
    if not (_is_owner(group, actor) or _is_moderator(actor_membership)):
        raise ForbiddenException("Only group owners or moderators can approve join requests")
    if target_membership is None or not target_membership.is_pending:
        raise NotFoundException("No pending join request found for this user")


def check_view_pending_requests(group: Group, actor: Optional[User],
                                actor_membership: Optional[Membership]) -> None:
    actor = _require_actor(actor)
    if not (_is_owner(group, actor) or _is_moderator(actor_membership)):
        raise ForbiddenException("Only group owners and moderators can view pending requests")


def check_add_member(group: Group, actor: Optional[User], target_user_id: int,
                     target_membership: Optional[Membership], role) -> MemberRole:
    actor = _require_actor(actor)
    if not _is_owner(group, actor):
        raise ForbiddenException("Only the group owner can add members")
    if target_user_id == group.owner_id:
        raise ConflictException("User is already the owner of this group", status.HTTP_400_BAD_REQUEST)
    if target_membership is not None:
        raise ConflictException("User is already a member of this group", status.HTTP_400_BAD_REQUEST)
    return _assignable_role(role)


def check_remove_member(group: Group, actor: Optional[User], actor_membership: Optional[Membership],
                        target_membership: Optional[Membership]) -> str:
    """Decide a roster removal and report which kind of removal it is."""
    actor = _require_actor(actor)
    if target_membership is None:
        raise NotFoundException("User is not a member of this group")

    target_id = target_membership.user_id
    if target_id == group.owner_id or target_membership.role == MemberRole.OWNER:
        if target_id == actor.id:
            raise ForbiddenException(
                "Group owners cannot leave their own group. Please delete the group"
            )
        raise ForbiddenException("Cannot remove the group owner")

    if target_id == actor.id:
        return SELF_REMOVAL
    if _is_owner(group, actor):
        return OWNER_REMOVAL
    if _is_moderator(actor_membership):
        if target_membership.role == MemberRole.MODERATOR:
            raise ForbiddenException("Moderators cannot remove other moderators")
        return MODERATOR_REMOVAL
    raise ForbiddenException("Only group owners and moderators can remove members")


def check_leave_group(group: Group, actor: Optional[User], membership: Optional[Membership]) -> None:
    actor = _require_actor(actor)
    if _is_owner(group, actor):
        raise ForbiddenException("Group owners cannot leave their own group. Please delete the group")
    if membership is None:
        raise NotFoundException("You are not a member of this group")


def check_update_member_role(group: Group, actor: Optional[User], target_membership: Optional[Membership],
                             role) -> MemberRole:
    actor = _require_actor(actor)
    if not _is_owner(group, actor):
        raise ForbiddenException("Only the group owner can update member roles")
    role = _assignable_role(role)
    if target_membership is None or target_membership.is_pending:
        raise NotFoundException("User is not a member of this group")
    if target_membership.user_id == group.owner_id or target_membership.role == MemberRole.OWNER:
        raise ForbiddenException("Cannot change the role of the group owner")
    if target_membership.role == role:
        raise ConflictException(f"User is already a {role.value}")
    return role


def check_manage_group(group: Group, actor: Optional[User], action: str = "update") -> None:
    actor = _require_actor(actor)
    if not _is_owner(group, actor):
        if action == "delete":
            raise ForbiddenException("Only the group owner can delete this group")
        raise ForbiddenException("Only the group owner can update group details")


def check_write_personal_list(actor: Optional[User]) -> User:
    return _require_actor(actor, "Authentication required to change your lists")


def check_read_personal_list(favorite_type: FavoriteType, list_owner_id: int, actor: Optional[User]) -> None:
    favorite_type = FavoriteType(favorite_type)
    if favorite_type == FavoriteType.FAVORITES:
        return
    if favorite_type == FavoriteType.GROUP_FAVORITES:
        raise InvalidArgumentException("Group favorites are listed per group")
    actor = _require_actor(actor, "Authentication required to view a watchlist")
    if actor.id != list_owner_id and not _is_admin(actor):
        raise ForbiddenException("You can only view your own watchlist")


def check_write_group_list(group: Group, actor: Optional[User], membership: Optional[Membership],
                           removing: bool = False) -> None:
    actor = _require_actor(actor, "Authentication required to change group favorites")
    if _is_owner(group, actor) or _is_moderator(membership):
        return
    if removing and _is_admin(actor):
        return
    raise ForbiddenException("Only group owners and moderators can change group favorites")


def check_view_group_favorites(group: Group, actor: Optional[User], membership: Optional[Membership]) -> None:
    check_view_group(group, actor, membership)

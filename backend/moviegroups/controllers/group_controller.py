from typing import Optional

from fastapi import APIRouter, Depends, Query, status

from moviegroups.auth.dependencies import get_current_user, get_optional_user
from moviegroups.domain.dto import (
    GroupCreate, GroupUpdate, GroupResponse, GroupDetailResponse, MemberResponse,
    ThemeResponse, AddMemberRequest, RoleUpdateRequest
)
from moviegroups.domain.models import User
from moviegroups.exceptions.service import InvalidArgumentException
from moviegroups.service.dependencies import get_group_service
from moviegroups.service.group_service import GroupService

router = APIRouter(
    prefix="/groups",
    tags=["Groups"],
    responses={404: {"description": "Not found"}}
)


def _parse_genre_ids(raw: Optional[str]):
    if not raw or not raw.strip():
        raise InvalidArgumentException("genres parameter is required")
    try:
        return [int(part) for part in raw.split(",") if part.strip()]
    except ValueError:
        raise InvalidArgumentException("genres must be a comma-separated list of genre ids")


@router.post("", status_code=status.HTTP_201_CREATED)
def create_group(
    group_data: GroupCreate,
    current_user: User = Depends(get_current_user),
    group_service: GroupService = Depends(get_group_service)
):
    group = group_service.create_group(current_user, group_data)
    return {"success": True, "data": GroupResponse.from_domain(group)}


@router.get("/search")
def search_groups(
    query: str = Query(""),
    limit: Optional[int] = None,
    group_service: GroupService = Depends(get_group_service)
):
    matches = group_service.search_groups(query, limit)
    return {
        "success": True,
        "data": [
            {**GroupResponse.from_domain(group).model_dump(mode="json"), "similarity": round(similarity, 3)}
            for group, similarity in matches
        ]
    }


@router.get("/by-genres")
def get_groups_by_genres(
    genres: Optional[str] = None,
    match_type: str = Query("any", alias="matchType"),
    limit: Optional[int] = None,
    group_service: GroupService = Depends(get_group_service)
):
    groups = group_service.get_groups_by_genres(_parse_genre_ids(genres), match_type, limit)
    return {"success": True, "data": [GroupResponse.from_domain(g) for g in groups]}


@router.get("/popular")
def get_popular_groups(
    limit: Optional[int] = None,
    group_service: GroupService = Depends(get_group_service)
):
    groups = group_service.get_popular_groups(limit)
    return {"success": True, "data": [GroupResponse.from_domain(g) for g in groups]}


@router.get("/themes")
def get_group_themes(group_service: GroupService = Depends(get_group_service)):
    return {"success": True, "data": [ThemeResponse.from_domain(t) for t in group_service.list_themes()]}


@router.get("/{group_id}")
def get_group(
    group_id: int,
    current_user: Optional[User] = Depends(get_optional_user),
    group_service: GroupService = Depends(get_group_service)
):
    group = group_service.get_group(group_id, current_user)
    return {"success": True, "data": GroupDetailResponse.from_domain(group)}


@router.put("/{group_id}")
def update_group(
    group_id: int,
    update: GroupUpdate,
    current_user: User = Depends(get_current_user),
    group_service: GroupService = Depends(get_group_service)
):
    group = group_service.update_group(group_id, current_user, update)
    return {"success": True, "message": "Group updated successfully", "data": GroupResponse.from_domain(group)}


@router.delete("/{group_id}")
def delete_group(
    group_id: int,
    current_user: User = Depends(get_current_user),
    group_service: GroupService = Depends(get_group_service)
):
    deleted = group_service.delete_group(group_id, current_user)
    return {"success": True, "message": "Group deleted successfully", "data": deleted}


@router.post("/{group_id}/join", status_code=status.HTTP_201_CREATED)
def join_group(
    group_id: int,
    current_user: User = Depends(get_current_user),
    group_service: GroupService = Depends(get_group_service)
):
    membership = group_service.join_group(group_id, current_user)
    return {"success": True, "message": "Successfully joined the group", "data": MemberResponse.from_domain(membership)}


@router.post("/{group_id}/join-request", status_code=status.HTTP_201_CREATED)
def request_to_join(
    group_id: int,
    current_user: User = Depends(get_current_user),
    group_service: GroupService = Depends(get_group_service)
):
    group, membership = group_service.request_to_join(group_id, current_user)
    return {
        "success": True,
        "message": "Join request sent successfully",
        "data": {
            "group": {"id": group.id, "name": group.name},
            "member": MemberResponse.from_domain(membership)
        }
    }


@router.get("/{group_id}/pending")
def list_pending_requests(
    group_id: int,
    current_user: User = Depends(get_current_user),
    group_service: GroupService = Depends(get_group_service)
):
    pending = group_service.list_pending_requests(group_id, current_user)
    return {"success": True, "data": [MemberResponse.from_domain(m) for m in pending]}


@router.post("/{group_id}/members/{user_id}/approve")
def approve_join_request(
    group_id: int,
    user_id: int,
    current_user: User = Depends(get_current_user),
    group_service: GroupService = Depends(get_group_service)
):
    membership = group_service.approve_pending(group_id, current_user, user_id)
    return {"success": True, "message": "Join request approved", "data": MemberResponse.from_domain(membership)}


@router.post("/{group_id}/leave")
def leave_group(
    group_id: int,
    current_user: User = Depends(get_current_user),
    group_service: GroupService = Depends(get_group_service)
):
    group_service.leave_group(group_id, current_user)
    return {"success": True, "message": "Successfully left the group"}


@router.get("/{group_id}/members")
def list_members(
    group_id: int,
    current_user: Optional[User] = Depends(get_optional_user),
    group_service: GroupService = Depends(get_group_service)
):
    members = group_service.list_members(group_id, current_user)
    return {"success": True, "data": [MemberResponse.from_domain(m) for m in members]}


@router.post("/{group_id}/members", status_code=status.HTTP_201_CREATED)
def add_member(
    group_id: int,
    request: AddMemberRequest,
    current_user: User = Depends(get_current_user),
    group_service: GroupService = Depends(get_group_service)
):
    membership = group_service.add_member(group_id, current_user, request.user_id, request.role)
    return {"success": True, "message": "Member added successfully", "data": MemberResponse.from_domain(membership)}


@router.delete("/{group_id}/members/{user_id}")
def remove_member(
    group_id: int,
    user_id: int,
    current_user: User = Depends(get_current_user),
    group_service: GroupService = Depends(get_group_service)
):
    kind = group_service.remove_member(group_id, current_user, user_id)
    return {"success": True, "message": "Member removed successfully", "data": {"removal": kind}}


@router.put("/{group_id}/members/{user_id}/role")
def update_member_role(
    group_id: int,
    user_id: int,
    request: RoleUpdateRequest,
    current_user: User = Depends(get_current_user),
    group_service: GroupService = Depends(get_group_service)
):
    membership = group_service.update_member_role(group_id, current_user, user_id, request.role)
    return {"success": True, "message": "Member role updated successfully", "data": MemberResponse.from_domain(membership)}

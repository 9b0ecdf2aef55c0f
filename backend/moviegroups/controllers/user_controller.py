from typing import Optional

from fastapi import APIRouter, Depends, Query

from moviegroups.domain.models import User
from moviegroups.domain.dto import UserProfile, UserAccountResponse, GroupResponse, ProfileUpdate, AdminUserUpdate
from moviegroups.auth.dependencies import get_current_user
from moviegroups.service.dependencies import get_group_service, get_user_service
from moviegroups.service.group_service import GroupService
from moviegroups.service.user_service import UserService

router = APIRouter(
    prefix="/users",
    tags=["Users"],
    responses={404: {"description": "Not found"}}
)


@router.get("/me")
def read_user_me(current_user: User = Depends(get_current_user)):
    return {"success": True, "data": UserProfile.from_domain(current_user)}


@router.put("/me")
def update_user_me(
    profile: ProfileUpdate,
    current_user: User = Depends(get_current_user),
    user_service: UserService = Depends(get_user_service)
):
    user = user_service.update_profile(current_user, profile)
    return {"success": True, "message": "Profile updated successfully", "data": UserProfile.from_domain(user)}


@router.delete("/me")
def delete_user_me(
    current_user: User = Depends(get_current_user),
    user_service: UserService = Depends(get_user_service)
):
    user_service.delete_account(current_user)
    return {"success": True, "message": "User account deleted successfully"}


@router.get("/me/groups")
def read_user_groups(
    current_user: User = Depends(get_current_user),
    group_service: GroupService = Depends(get_group_service)
):
    groups = group_service.get_user_groups(current_user.id)
    return {
        "success": True,
        "data": [
            {**GroupResponse.from_domain(group).model_dump(mode="json"), "role": role.value}
            for group, role in groups
        ]
    }


@router.get("")
def list_users(
    limit: Optional[int] = Query(None),
    current_user: User = Depends(get_current_user),
    user_service: UserService = Depends(get_user_service)
):
    users = user_service.list_users(current_user, limit)
    return {
        "success": True,
        "count": len(users),
        "data": [UserAccountResponse.from_domain(u) for u in users]
    }


@router.get("/{user_id}")
def read_user(
    user_id: int,
    current_user: User = Depends(get_current_user),
    user_service: UserService = Depends(get_user_service)
):
    return {"success": True, "data": UserAccountResponse.from_domain(user_service.get_user(current_user, user_id))}


@router.put("/{user_id}")
def update_user(
    user_id: int,
    changes: AdminUserUpdate,
    current_user: User = Depends(get_current_user),
    user_service: UserService = Depends(get_user_service)
):
    user = user_service.update_user(current_user, user_id, changes)
    return {"success": True, "message": "User updated successfully", "data": UserAccountResponse.from_domain(user)}


@router.delete("/{user_id}")
def delete_user(
    user_id: int,
    current_user: User = Depends(get_current_user),
    user_service: UserService = Depends(get_user_service)
):
    user_service.delete_user(current_user, user_id)
    return {"success": True, "message": "User deleted successfully"}

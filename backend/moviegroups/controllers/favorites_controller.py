from typing import Optional

from fastapi import APIRouter, Depends, status

from moviegroups.auth.dependencies import get_current_user, get_optional_user
from moviegroups.domain.dto import FavoriteCreate, FavoriteResponse, FavoriteStatus, GroupResponse
from moviegroups.domain.models import User
from moviegroups.service.dependencies import get_favorites_service
from moviegroups.service.favorites_service import FavoritesService, parse_movie_ids

router = APIRouter(
    prefix="/favorites",
    tags=["Favorites"],
    responses={404: {"description": "Not found"}}
)


@router.post("", status_code=status.HTTP_201_CREATED)
def add_to_favorites(
    favorite_data: FavoriteCreate,
    current_user: User = Depends(get_current_user),
    favorites_service: FavoritesService = Depends(get_favorites_service)
):
    favorite = favorites_service.add_favorite(current_user, favorite_data)
    return {
        "success": True,
        "message": "Movie added to favorites successfully",
        "data": FavoriteResponse.from_domain(favorite)
    }


@router.delete("/{movie_id}/{favorite_type}")
def remove_from_favorites(
    movie_id: str,
    favorite_type: str,
    current_user: User = Depends(get_current_user),
    favorites_service: FavoritesService = Depends(get_favorites_service)
):
    favorites_service.remove_favorite(current_user, movie_id, favorite_type)
    return {"success": True, "message": "Movie removed from favorites successfully"}


@router.delete("/{movie_id}/{favorite_type}/group/{group_id}")
def remove_from_group_favorites(
    movie_id: str,
    favorite_type: str,
    group_id: int,
    current_user: User = Depends(get_current_user),
    favorites_service: FavoritesService = Depends(get_favorites_service)
):
    favorites_service.remove_favorite(current_user, movie_id, favorite_type, group_id)
    return {"success": True, "message": "Movie removed from group favorites successfully"}


@router.delete("/{movie_id}/{favorite_type}/user/{user_id}")
def remove_from_user_favorites(
    movie_id: str,
    favorite_type: str,
    user_id: int,
    current_user: User = Depends(get_current_user),
    favorites_service: FavoritesService = Depends(get_favorites_service)
):
    favorites_service.remove_user_favorite(current_user, movie_id, favorite_type, user_id)
    return {"success": True, "message": "Movie removed from user's favorites successfully"}


@router.get("/user/{user_id}/{favorite_type}")
def get_user_favorites(
    user_id: int,
    favorite_type: str,
    current_user: Optional[User] = Depends(get_optional_user),
    favorites_service: FavoritesService = Depends(get_favorites_service)
):
    favorites = favorites_service.list_user_favorites(user_id, favorite_type, current_user)
    return {
        "success": True,
        "data": [FavoriteResponse.from_domain(f) for f in favorites],
        "count": len(favorites)
    }


@router.get("/group/{group_id}")
def get_group_favorites(
    group_id: int,
    current_user: Optional[User] = Depends(get_optional_user),
    favorites_service: FavoritesService = Depends(get_favorites_service)
):
    group, favorites = favorites_service.list_group_favorites(group_id, current_user)
    return {
        "success": True,
        "data": {
            "group": GroupResponse.from_domain(group),
            "favorites": [FavoriteResponse.from_domain(f) for f in favorites]
        },
        "count": len(favorites)
    }


@router.get("/status/{movie_ids}")
def check_favorite_status(
    movie_ids: str,
    current_user: Optional[User] = Depends(get_optional_user),
    favorites_service: FavoritesService = Depends(get_favorites_service)
):
    """One id answers with its status; several comma-separated ids answer with a map keyed by id."""
    ids = parse_movie_ids(movie_ids)
    statuses = {
        movie_id: FavoriteStatus(**value)
        for movie_id, value in favorites_service.favorite_status(ids, current_user).items()
    }
    if len(ids) == 1:
        return {"success": True, "data": statuses[ids[0]]}
    return {"success": True, "data": statuses}

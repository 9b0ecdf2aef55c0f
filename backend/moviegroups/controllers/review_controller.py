from typing import Optional

from fastapi import APIRouter, Depends, status

from moviegroups.auth.dependencies import get_current_user, get_optional_user
from moviegroups.domain.dto import ReviewCreate, ReviewUpdate, ReviewResponse, InteractionRequest
from moviegroups.domain.models import User
from moviegroups.service.dependencies import get_review_service
from moviegroups.service.review_service import ReviewService

router = APIRouter(
    prefix="/reviews",
    tags=["Reviews"],
    responses={404: {"description": "Not found"}}
)


@router.post("", status_code=status.HTTP_201_CREATED)
def create_review(
    review_data: ReviewCreate,
    current_user: User = Depends(get_current_user),
    review_service: ReviewService = Depends(get_review_service)
):
    review = review_service.create_review(current_user, review_data)
    return {"success": True, "data": ReviewResponse.from_domain(review)}


@router.get("/recent")
def get_recent_reviews(
    limit: Optional[int] = None,
    review_service: ReviewService = Depends(get_review_service)
):
    reviews = review_service.list_recent_reviews(limit)
    return {"success": True, "data": [ReviewResponse.from_domain(r) for r in reviews]}


@router.get("/movie/{movie_id}")
def get_movie_reviews(movie_id: str, review_service: ReviewService = Depends(get_review_service)):
    reviews = review_service.list_movie_reviews(movie_id)
    return {"success": True, "data": [ReviewResponse.from_domain(r) for r in reviews]}


@router.get("/user/{user_id}")
def get_user_reviews(user_id: int, review_service: ReviewService = Depends(get_review_service)):
    reviews = review_service.list_user_reviews(user_id)
    return {"success": True, "data": [ReviewResponse.from_domain(r) for r in reviews]}


@router.get("/group/{group_id}")
def get_group_reviews(
    group_id: int,
    current_user: Optional[User] = Depends(get_optional_user),
    review_service: ReviewService = Depends(get_review_service)
):
    reviews = review_service.list_group_reviews(group_id, current_user)
    return {"success": True, "data": [ReviewResponse.from_domain(r) for r in reviews]}


@router.get("/{review_id}")
def get_review(review_id: int, review_service: ReviewService = Depends(get_review_service)):
    return {"success": True, "data": ReviewResponse.from_domain(review_service.get_review(review_id))}


@router.put("/{review_id}")
def update_review(
    review_id: int,
    review_data: ReviewUpdate,
    current_user: User = Depends(get_current_user),
    review_service: ReviewService = Depends(get_review_service)
):
    review = review_service.update_review(review_id, current_user, review_data)
    return {"success": True, "data": ReviewResponse.from_domain(review)}


@router.delete("/{review_id}")
def delete_review(
    review_id: int,
    current_user: User = Depends(get_current_user),
    review_service: ReviewService = Depends(get_review_service)
):
    review_service.delete_review(review_id, current_user)
    return {"success": True, "message": "Review deleted successfully"}


@router.post("/{review_id}/interaction")
def interact_with_review(
    review_id: int,
    interaction: InteractionRequest,
    current_user: User = Depends(get_current_user),
    review_service: ReviewService = Depends(get_review_service)
):
    review = review_service.set_interaction(review_id, current_user, interaction.type)
    return {"success": True, "data": ReviewResponse.from_domain(review)}

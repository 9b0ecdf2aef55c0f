from fastapi import APIRouter, Depends

from moviegroups.domain.dto import GenreResponse
from moviegroups.service.dependencies import get_group_service
from moviegroups.service.group_service import GroupService

router = APIRouter(
    prefix="/genres",
    tags=["Genres"]
)


@router.get("")
def list_genres(group_service: GroupService = Depends(get_group_service)):
    return {"success": True, "data": [GenreResponse.from_domain(g) for g in group_service.list_genres()]}

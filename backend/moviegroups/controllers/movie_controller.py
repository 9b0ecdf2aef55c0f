from fastapi import APIRouter, Depends

from moviegroups.domain.dto import MovieResponse
from moviegroups.service.dependencies import get_movie_resolver
from moviegroups.service.movie_service import MovieResolver

router = APIRouter(
    prefix="/movies",
    tags=["Movies"],
    responses={404: {"description": "Not found"}}
)


@router.get("/{movie_id}")
def get_movie(movie_id: str, movie_resolver: MovieResolver = Depends(get_movie_resolver)):
    movie = movie_resolver.ensure_movie(movie_id)
    return {"success": True, "data": MovieResponse.from_domain(movie)}

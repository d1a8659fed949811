"""Image search endpoints for choosing a post's featured image."""
from fastapi import APIRouter, Depends, Query

from api.dependencies import enforce_rate_limit, get_current_user, get_unsplash_client
from models.user import User
from schemas.errors import ErrorResponse
from schemas.image import ImageSearchResponse
from services.unsplash_client import UnsplashClient

router = APIRouter(
    prefix="/images",
    tags=["images"],
    dependencies=[Depends(enforce_rate_limit)],
)


@router.get(
    "/search",
    response_model=ImageSearchResponse,
    responses={502: {"model": ErrorResponse}},
)
async def search_images(
    query: str = Query(..., min_length=5),
    current_user: User = Depends(get_current_user),  # noqa: ARG001
    client: UnsplashClient = Depends(get_unsplash_client),
) -> ImageSearchResponse:
    """Search Unsplash for landscape photos."""
    return await client.search_photos(query)

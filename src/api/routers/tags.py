"""Tag endpoints."""
from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import enforce_rate_limit, get_async_session, get_current_user
from models.user import User
from schemas.tag import TagCreate, TagResponse
from services import tag_service

router = APIRouter(
    prefix="/tags",
    tags=["tags"],
    dependencies=[Depends(enforce_rate_limit)],
)


@router.get("/", response_model=list[TagResponse])
async def list_tags(
    db: AsyncSession = Depends(get_async_session),
) -> list[TagResponse]:
    """Get every tag, sorted by name."""
    tags = await tag_service.get_tags(db)
    return [TagResponse.model_validate(tag) for tag in tags]


@router.post("/", response_model=TagResponse, status_code=status.HTTP_201_CREATED)
async def create_tag(
    data: TagCreate,
    current_user: User = Depends(get_current_user),  # noqa: ARG001
    db: AsyncSession = Depends(get_async_session),
) -> TagResponse:
    """
    Create a tag.

    Returns 409 if a tag with this name already exists.
    """
    tag = await tag_service.create_tag(db, data)
    return TagResponse.model_validate(tag)

"""Social post API endpoints."""

from datetime import datetime
from uuid import UUID

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from agencyhub.api.v1.auth import CurrentUser
from agencyhub.db.session import get_db_session
from agencyhub.exceptions import NotFoundError
from agencyhub.models.social import SocialPost
from agencyhub.services.archive import get_archive_service

router = APIRouter()


class SocialPostResponse(BaseModel):
    id: UUID
    source_task_id: UUID | None
    project_id: UUID | None
    client_id: UUID | None
    title: str
    platforms: list[str]
    caption: str
    notes_from_task: str | None
    status: str
    social_manager_id: UUID | None
    publish_at: datetime | None
    timezone: str
    is_archived: bool
    archived_at: datetime | None
    created_at: datetime

    class Config:
        from_attributes = True


@router.get("/{post_id}", response_model=SocialPostResponse)
async def get_social_post(
    post_id: UUID,
    current_user: CurrentUser,
    db: AsyncSession = Depends(get_db_session),
) -> SocialPost:
    result = await db.execute(select(SocialPost).where(SocialPost.id == post_id))
    post = result.scalar_one_or_none()
    if post is None:
        raise NotFoundError("Social post", post_id)
    return post


@router.post("/{post_id}/archive", response_model=SocialPostResponse)
async def archive_social_post(
    post_id: UUID,
    current_user: CurrentUser,
    db: AsyncSession = Depends(get_db_session),
) -> SocialPost:
    """Archive a post under the client's Posted Posts folder."""
    service = get_archive_service(db)
    return await service.archive_social_post(post_id, current_user.id)


@router.post("/{post_id}/restore", response_model=SocialPostResponse)
async def restore_social_post(
    post_id: UUID,
    current_user: CurrentUser,
    db: AsyncSession = Depends(get_db_session),
) -> SocialPost:
    service = get_archive_service(db)
    return await service.restore_social_post(post_id, current_user.id)

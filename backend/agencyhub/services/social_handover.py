"""Social post handover for approved tasks."""

from uuid import UUID, uuid4

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from agencyhub.models.enums import SocialPostStatus
from agencyhub.models.project import Project
from agencyhub.models.social import SocialPost
from agencyhub.models.task import Task

logger = structlog.get_logger()


def needs_social_handover(task: Task) -> bool:
    return bool(task.requires_social_post) and task.social_post_id is None


class SocialHandoverService:
    """Creates the downstream social post for a task, at most once.

    The guard is ``task.social_post_id``: the post is staged in the session
    and the id stamped on the task, so both land in the same commit as the
    status change that triggered the handover. Callers must re-read the
    task right before calling; two concurrent submits that both read a
    NULL ``social_post_id`` can still create two posts.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def ensure_post(self, task: Task, created_by_id: UUID) -> SocialPost | None:
        """Stage a SocialPost for ``task`` if it requires one and has none yet."""
        if not needs_social_handover(task):
            return None

        client_id = None
        if task.project_id is not None:
            result = await self.db.execute(
                select(Project.client_id).where(Project.id == task.project_id)
            )
            client_id = result.scalar_one_or_none()

        post = SocialPost(
            id=uuid4(),
            source_task_id=task.id,
            project_id=task.project_id,
            client_id=client_id,
            title=task.title,
            platforms=list(task.social_platforms or []),
            caption="",
            notes_from_task=task.publishing_notes,
            status=SocialPostStatus.PENDING.value,
            social_manager_id=task.social_manager_id,
            created_by_id=created_by_id,
            publish_at=None,
            timezone="UTC",
        )
        self.db.add(post)
        task.social_post_id = post.id

        logger.info(
            "social_post_handover_created",
            task_id=str(task.id),
            social_post_id=str(post.id),
            platforms=post.platforms,
        )
        return post

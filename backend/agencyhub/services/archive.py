"""Archive and restore for tasks and social posts.

Archiving stamps the entity, makes sure the archive folder tree exists
(looked up first, created once) and moves every associated file into a
per-entity folder. The stamp, the folders and all file moves are one
atomic batch. Restore reverses the stamps and moves files back to the
folders they came from, within the retention window.
"""

from datetime import timedelta
from uuid import UUID

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from agencyhub.config import get_settings
from agencyhub.db.batch import atomic_batch
from agencyhub.exceptions import (
    DomainValidationError,
    InvalidStateError,
    NotFoundError,
    RestoreWindowExpiredError,
)
from agencyhub.models.activity import Activity
from agencyhub.models.enums import FolderType, TaskStatus
from agencyhub.models.files import AgencyFile, FileFolder
from agencyhub.models.project import Client
from agencyhub.models.social import SocialPost
from agencyhub.models.task import Task
from agencyhub.utils.clock import Clock, ensure_utc, utcnow

logger = structlog.get_logger()

PLAN_ARCHIVE_REASON = "plan_deleted"
USER_ARCHIVE_REASON = "user_archived"


class ArchiveService:
    """Service for archiving and restoring tasks and social posts."""

    def __init__(
        self,
        db: AsyncSession,
        clock: Clock = utcnow,
        restore_window_days: int | None = None,
    ):
        self.db = db
        self.clock = clock
        self.restore_window_days = (
            restore_window_days
            if restore_window_days is not None
            else get_settings().archive_restore_window_days
        )

    # =========================================================================
    # Tasks
    # =========================================================================

    async def archive_task(self, task_id: UUID, actor_id: UUID) -> Task:
        """
        Archive a task and move its files into the project's Archive folder.

        The task folder lives under the project-level Archive root and is
        named ``Task-<short id>-<title>``. Re-archiving after a restore
        reuses both folders.

        Raises:
            NotFoundError: if the task does not exist
            InvalidStateError: if the task is already archived
        """
        task = await self._get_task(task_id)
        if task.is_archived:
            raise InvalidStateError("Task is already archived", current_state=task.status)

        now = self.clock()
        async with atomic_batch(self.db, "task.archive"):
            root = await self._project_archive_root(task.project_id, actor_id)
            folder = await self._lookup_or_create(
                select(FileFolder).where(
                    FileFolder.folder_type == FolderType.TASK_ARCHIVE.value,
                    FileFolder.task_id == task.id,
                ),
                FileFolder(
                    name=f"Task-{str(task.id)[:8]}-{task.title}"[:500],
                    folder_type=FolderType.TASK_ARCHIVE.value,
                    parent_id=root.id,
                    project_id=task.project_id,
                    task_id=task.id,
                    created_by_id=actor_id,
                ),
            )
            moved = await self._move_files(
                select(AgencyFile).where(
                    AgencyFile.task_id == task.id, AgencyFile.is_archived.is_(False)
                ),
                folder,
                actor_id,
            )

            task.archived_from_status = task.status
            task.status = TaskStatus.ARCHIVED.value
            task.is_archived = True
            task.archived_at = now
            task.archived_by_id = actor_id
            task.archive_reason = USER_ARCHIVE_REASON
            self._record("task", task.id, task.title, "archived", actor_id, task.project_id,
                         {"files_moved": moved, "folder_id": str(folder.id)})

        logger.info(
            "task_archived",
            task_id=str(task.id),
            folder_id=str(folder.id),
            files_moved=moved,
        )
        return task

    async def restore_task(self, task_id: UUID, actor_id: UUID) -> Task:
        """
        Restore an archived task to the status it had before archiving.

        Files go back to their original folders; the archive folders stay.

        Raises:
            InvalidStateError: if the task is not archived, or was archived
                with its production plan (restore the plan instead)
            RestoreWindowExpiredError: if the retention window has passed
        """
        task = await self._get_task(task_id)
        if not task.is_archived:
            raise InvalidStateError("Task is not archived", current_state=task.status)
        if task.archive_reason == PLAN_ARCHIVE_REASON:
            raise InvalidStateError(
                "This task was archived with its production plan; restore the plan instead"
            )
        self._check_window("task", task.id, task.archived_at)

        async with atomic_batch(self.db, "task.restore"):
            restored = await self._return_files(
                select(AgencyFile).where(
                    AgencyFile.task_id == task.id, AgencyFile.is_archived.is_(True)
                )
            )
            task.status = task.archived_from_status or TaskStatus.COMPLETED.value
            task.archived_from_status = None
            task.clear_archive()
            self._record("task", task.id, task.title, "restored", actor_id, task.project_id,
                         {"files_restored": restored})

        logger.info("task_restored", task_id=str(task.id), status=task.status)
        return task

    # =========================================================================
    # Social posts
    # =========================================================================

    async def archive_social_post(self, post_id: UUID, actor_id: UUID) -> SocialPost:
        """
        Archive a posted social post under the client's
        ``Archive / Posted Posts / <title> - <date>`` folder, moving the
        source task's files into it.

        Raises:
            NotFoundError: if the post does not exist
            InvalidStateError: if the post is already archived
            DomainValidationError: if the post has no client
        """
        post = await self._get_post(post_id)
        if post.is_archived:
            raise InvalidStateError("Social post is already archived", current_state=post.status)
        if post.client_id is None:
            raise DomainValidationError("Social post has no client to archive under")

        now = self.clock()
        async with atomic_batch(self.db, "social_post.archive"):
            client_root = await self._client_root(post.client_id, actor_id)
            archive = await self._lookup_or_create(
                select(FileFolder).where(
                    FileFolder.folder_type == FolderType.ARCHIVE.value,
                    FileFolder.client_id == post.client_id,
                ),
                FileFolder(
                    name="Archive",
                    folder_type=FolderType.ARCHIVE.value,
                    parent_id=client_root.id,
                    client_id=post.client_id,
                    is_archive_root=True,
                    created_by_id=actor_id,
                ),
            )
            posted = await self._lookup_or_create(
                select(FileFolder).where(
                    FileFolder.folder_type == FolderType.POSTED_POSTS.value,
                    FileFolder.client_id == post.client_id,
                ),
                FileFolder(
                    name="Posted Posts",
                    folder_type=FolderType.POSTED_POSTS.value,
                    parent_id=archive.id,
                    client_id=post.client_id,
                    created_by_id=actor_id,
                ),
            )
            posted_on = ensure_utc(post.publish_at) or now
            folder = await self._lookup_or_create(
                select(FileFolder).where(
                    FileFolder.folder_type == FolderType.POST_ARCHIVE.value,
                    FileFolder.social_post_id == post.id,
                ),
                FileFolder(
                    name=f"{post.title or 'Untitled Post'} - {posted_on:%Y-%m-%d}"[:500],
                    folder_type=FolderType.POST_ARCHIVE.value,
                    parent_id=posted.id,
                    client_id=post.client_id,
                    social_post_id=post.id,
                    created_by_id=actor_id,
                ),
            )

            moved = 0
            if post.source_task_id is not None:
                moved = await self._move_files(
                    select(AgencyFile).where(
                        AgencyFile.task_id == post.source_task_id,
                        AgencyFile.is_archived.is_(False),
                    ),
                    folder,
                    actor_id,
                )

            post.is_archived = True
            post.archived_at = now
            post.archived_by_id = actor_id
            post.archive_reason = USER_ARCHIVE_REASON
            self._record("social_post", post.id, post.title, "archived", actor_id,
                         post.project_id, {"files_moved": moved, "folder_id": str(folder.id)})

        logger.info(
            "social_post_archived",
            social_post_id=str(post.id),
            folder_id=str(folder.id),
            files_moved=moved,
        )
        return post

    async def restore_social_post(self, post_id: UUID, actor_id: UUID) -> SocialPost:
        """Restore an archived social post and move its files back."""
        post = await self._get_post(post_id)
        if not post.is_archived:
            raise InvalidStateError("Social post is not archived", current_state=post.status)
        self._check_window("social_post", post.id, post.archived_at)

        async with atomic_batch(self.db, "social_post.restore"):
            restored = 0
            if post.source_task_id is not None:
                folder_ids = select(FileFolder.id).where(FileFolder.social_post_id == post.id)
                restored = await self._return_files(
                    select(AgencyFile).where(
                        AgencyFile.task_id == post.source_task_id,
                        AgencyFile.is_archived.is_(True),
                        AgencyFile.folder_id.in_(folder_ids),
                    )
                )
            post.clear_archive()
            self._record("social_post", post.id, post.title, "restored", actor_id,
                         post.project_id, {"files_restored": restored})

        logger.info("social_post_restored", social_post_id=str(post.id))
        return post

    # =========================================================================
    # Helpers
    # =========================================================================

    async def _get_task(self, task_id: UUID) -> Task:
        result = await self.db.execute(
            select(Task).where(Task.id == task_id).execution_options(populate_existing=True)
        )
        task = result.scalar_one_or_none()
        if task is None:
            raise NotFoundError("Task", task_id)
        return task

    async def _get_post(self, post_id: UUID) -> SocialPost:
        result = await self.db.execute(
            select(SocialPost)
            .where(SocialPost.id == post_id)
            .execution_options(populate_existing=True)
        )
        post = result.scalar_one_or_none()
        if post is None:
            raise NotFoundError("Social post", post_id)
        return post

    def _check_window(self, resource: str, resource_id: UUID, archived_at) -> None:
        archived_at = ensure_utc(archived_at)
        if archived_at is None:
            return
        deadline = archived_at + timedelta(days=self.restore_window_days)
        if self.clock() > deadline:
            raise RestoreWindowExpiredError(
                resource, resource_id, deadline, window_days=self.restore_window_days
            )

    async def _lookup_or_create(self, query, candidate: FileFolder) -> FileFolder:
        result = await self.db.execute(query.limit(1))
        folder = result.scalar_one_or_none()
        if folder is not None:
            return folder
        self.db.add(candidate)
        await self.db.flush()
        logger.debug("archive_folder_created", folder_id=str(candidate.id), name=candidate.name)
        return candidate

    async def _project_archive_root(self, project_id: UUID | None, actor_id: UUID) -> FileFolder:
        project_filter = (
            FileFolder.project_id == project_id
            if project_id is not None
            else FileFolder.project_id.is_(None)
        )
        return await self._lookup_or_create(
            select(FileFolder).where(
                project_filter,
                FileFolder.is_archive_root.is_(True),
                FileFolder.client_id.is_(None),
            ),
            FileFolder(
                name="Archive",
                folder_type=FolderType.ARCHIVE.value,
                project_id=project_id,
                is_archive_root=True,
                created_by_id=actor_id,
            ),
        )

    async def _client_root(self, client_id: UUID, actor_id: UUID) -> FileFolder:
        client_name = await self.db.scalar(select(Client.name).where(Client.id == client_id))
        return await self._lookup_or_create(
            select(FileFolder).where(
                FileFolder.folder_type == FolderType.CLIENT_ROOT.value,
                FileFolder.client_id == client_id,
            ),
            FileFolder(
                name=client_name or "Client Files",
                folder_type=FolderType.CLIENT_ROOT.value,
                client_id=client_id,
                created_by_id=actor_id,
            ),
        )

    async def _move_files(self, query, folder: FileFolder, actor_id: UUID) -> int:
        result = await self.db.execute(query)
        files = list(result.scalars().all())
        now = self.clock()
        for file in files:
            file.archived_from_folder_id = file.folder_id
            file.folder_id = folder.id
            file.is_archived = True
            file.archived_at = now
            file.archived_by_id = actor_id
        return len(files)

    async def _return_files(self, query) -> int:
        result = await self.db.execute(query)
        files = list(result.scalars().all())
        for file in files:
            file.folder_id = file.archived_from_folder_id
            file.archived_from_folder_id = None
            file.clear_archive()
        return len(files)

    def _record(
        self,
        target_type: str,
        target_id: UUID,
        title: str | None,
        action: str,
        actor_id: UUID,
        project_id: UUID | None,
        extra: dict | None = None,
    ) -> None:
        self.db.add(
            Activity(
                activity_type=f"{target_type}.{action}",
                action=action,
                target_type=target_type,
                target_id=target_id,
                target_title=title,
                project_id=project_id,
                actor_id=actor_id,
                extra_data=extra,
            )
        )


def get_archive_service(db: AsyncSession) -> ArchiveService:
    """Factory function to create an ArchiveService instance."""
    return ArchiveService(db)

"""Tests for task and social post archiving."""

from datetime import datetime, timezone
from uuid import uuid4

import pytest
from sqlalchemy import func, select

from agencyhub.exceptions import (
    DomainValidationError,
    InvalidStateError,
    NotFoundError,
    RestoreWindowExpiredError,
)
from agencyhub.models import AgencyFile, FileFolder, SocialPost
from agencyhub.models.enums import FolderType, TaskStatus
from agencyhub.services.archive import ArchiveService


@pytest.fixture
def archive(db, clock):
    return ArchiveService(db, clock=clock, restore_window_days=30)


@pytest.fixture
async def actor(factory):
    return await factory.user("Alex Account")


async def _reload(db, model, obj_id):
    result = await db.execute(
        select(model).where(model.id == obj_id).execution_options(populate_existing=True)
    )
    return result.scalar_one()


async def _folders(db, folder_type):
    result = await db.execute(select(FileFolder).where(FileFolder.folder_type == folder_type))
    return list(result.scalars().all())


async def test_archive_task_moves_files_into_task_folder(archive, factory, actor, db):
    project = await factory.project()
    task = await factory.plain_task("Spring poster", project_id=project.id, status="in_progress")
    deliverables = await factory.folder("Deliverables", project)
    first = await factory.file(task, deliverables, "poster-a.png")
    second = await factory.file(task, deliverables, "poster-b.png")

    archived = await archive.archive_task(task.id, actor.id)

    assert archived.status == TaskStatus.ARCHIVED
    assert archived.archived_from_status == "in_progress"
    assert archived.archive_reason == "user_archived"

    [root] = await _folders(db, FolderType.ARCHIVE.value)
    [task_folder] = await _folders(db, FolderType.TASK_ARCHIVE.value)
    assert root.project_id == project.id
    assert root.is_archive_root is True
    assert task_folder.parent_id == root.id
    assert task_folder.name == f"Task-{str(task.id)[:8]}-Spring poster"

    for file_id in (first.id, second.id):
        moved = await _reload(db, AgencyFile, file_id)
        assert moved.folder_id == task_folder.id
        assert moved.archived_from_folder_id == deliverables.id
        assert moved.is_archived is True

    [activity] = await factory.activities("task.archived")
    assert activity.extra_data["files_moved"] == 2


async def test_restore_task_returns_files_and_status(archive, factory, actor, db):
    project = await factory.project()
    task = await factory.plain_task("Spring poster", project_id=project.id, status="approved")
    deliverables = await factory.folder("Deliverables", project)
    file = await factory.file(task, deliverables)
    await archive.archive_task(task.id, actor.id)

    restored = await archive.restore_task(task.id, actor.id)

    assert restored.status == TaskStatus.APPROVED
    assert restored.is_archived is False
    assert restored.archived_at is None
    assert restored.archived_from_status is None
    back = await _reload(db, AgencyFile, file.id)
    assert back.folder_id == deliverables.id
    assert back.is_archived is False
    assert back.archived_from_folder_id is None


async def test_rearchive_reuses_folders(archive, factory, actor, db):
    project = await factory.project()
    task = await factory.plain_task("Spring poster", project_id=project.id)

    await archive.archive_task(task.id, actor.id)
    await archive.restore_task(task.id, actor.id)
    await archive.archive_task(task.id, actor.id)

    count = await db.scalar(select(func.count()).select_from(FileFolder))
    assert count == 2


async def test_archive_task_twice_is_invalid(archive, factory, actor):
    task = await factory.plain_task("Spring poster")
    await archive.archive_task(task.id, actor.id)

    with pytest.raises(InvalidStateError):
        await archive.archive_task(task.id, actor.id)


async def test_restore_requires_archived_task(archive, factory, actor):
    task = await factory.plain_task("Spring poster")

    with pytest.raises(InvalidStateError):
        await archive.restore_task(task.id, actor.id)
    with pytest.raises(NotFoundError):
        await archive.restore_task(uuid4(), actor.id)


async def test_task_restore_window(archive, factory, actor, clock, db):
    task = await factory.plain_task("Spring poster", status="completed")
    await archive.archive_task(task.id, actor.id)

    clock.advance(days=30, seconds=1)
    with pytest.raises(RestoreWindowExpiredError):
        await archive.restore_task(task.id, actor.id)

    assert (await _reload(db, type(task), task.id)).is_archived is True


async def test_archive_social_post_builds_client_tree(archive, factory, actor, db):
    client = await factory.client("Acme Foods")
    task = await factory.plain_task("Chef interview")
    file = await factory.file(task, name="interview.mp4")
    post = SocialPost(
        source_task_id=task.id,
        client_id=client.id,
        title="Chef interview",
        publish_at=datetime(2026, 2, 20, 18, 0, tzinfo=timezone.utc),
    )
    db.add(post)
    await db.commit()

    archived = await archive.archive_social_post(post.id, actor.id)

    assert archived.is_archived is True
    [client_root] = await _folders(db, FolderType.CLIENT_ROOT.value)
    [archive_root] = await _folders(db, FolderType.ARCHIVE.value)
    [posted] = await _folders(db, FolderType.POSTED_POSTS.value)
    [post_folder] = await _folders(db, FolderType.POST_ARCHIVE.value)
    assert client_root.name == "Acme Foods"
    assert archive_root.parent_id == client_root.id
    assert posted.parent_id == archive_root.id
    assert post_folder.parent_id == posted.id
    assert post_folder.name == "Chef interview - 2026-02-20"

    moved = await _reload(db, AgencyFile, file.id)
    assert moved.folder_id == post_folder.id

    restored = await archive.restore_social_post(post.id, actor.id)
    assert restored.is_archived is False
    back = await _reload(db, AgencyFile, file.id)
    assert back.folder_id is None
    assert back.is_archived is False


async def test_second_post_reuses_client_folders(archive, factory, actor, db):
    client = await factory.client("Acme Foods")
    posts = [SocialPost(client_id=client.id, title=f"Post {n}") for n in range(2)]
    db.add_all(posts)
    await db.commit()

    for post in posts:
        await archive.archive_social_post(post.id, actor.id)

    assert len(await _folders(db, FolderType.CLIENT_ROOT.value)) == 1
    assert len(await _folders(db, FolderType.POSTED_POSTS.value)) == 1
    assert len(await _folders(db, FolderType.POST_ARCHIVE.value)) == 2


async def test_post_without_client_cannot_be_archived(archive, actor, db):
    post = SocialPost(title="Orphan")
    db.add(post)
    await db.commit()

    with pytest.raises(DomainValidationError):
        await archive.archive_social_post(post.id, actor.id)

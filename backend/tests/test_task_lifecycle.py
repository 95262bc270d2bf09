"""Tests for the task approval state machine."""

from types import SimpleNamespace

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from agencyhub.exceptions import BatchWriteError, NotFoundError, UnresolvedApproverError
from agencyhub.models import ApprovalStep, Notification, SocialPost
from agencyhub.models.enums import TaskStatus
from agencyhub.services.approval_queries import ApprovalQueryService
from agencyhub.services.approval_steps import chain_is_consistent
from agencyhub.services.archive import ArchiveService
from agencyhub.services.task_lifecycle import Rejection
from agencyhub.services.workflow_templates import StepDefinition


@pytest.fixture
async def agency(factory):
    """Designer, creative director and client contact on one client project."""
    director_role = await factory.role("Creative Director")
    designer = await factory.user("Sam Designer", department="design")
    director = await factory.user("Dana Director", role="Creative Director", department="design")
    client_contact = await factory.user("Chris Client")
    client = await factory.client()
    project = await factory.project(client)
    await factory.member(project, designer, "designer")
    await factory.member(project, client_contact, "client")

    template = await factory.template(
        [
            StepDefinition(order=0, label="Creative Director", role_id=director_role.id),
            StepDefinition(order=1, label="Client", project_role_key="client"),
        ]
    )
    return SimpleNamespace(
        designer=designer,
        director=director,
        client_contact=client_contact,
        client=client,
        project=project,
        template=template,
        director_role=director_role,
    )


async def _create(lifecycle, agency, template=None, **kwargs):
    return await lifecycle.create_task(
        created_by_id=agency.director.id,
        title=kwargs.pop("title", "Spring poster"),
        project_id=agency.project.id,
        assignee_ids=[agency.designer.id],
        department="design",
        workflow_template_id=(template or agency.template).id,
        **kwargs,
    )


async def _count(db, model, *conditions):
    return await db.scalar(select(func.count()).select_from(model).where(*conditions))


# =============================================================================
# Create / start
# =============================================================================


async def test_create_with_workflow_starts_in_progress(lifecycle, agency, factory):
    task = await _create(lifecycle, agency)

    assert task.status == TaskStatus.IN_PROGRESS
    assert task.workflow_template_id == agency.template.id
    assert task.assignee_ids == [str(agency.designer.id)]
    assert task.is_client_approval_required is False
    assert len(await factory.activities("task.created")) == 1


async def test_create_picks_active_workflow_for_department(lifecycle, agency, factory):
    scoped = await factory.template(
        [StepDefinition(order=0, user_id=agency.director.id)], department="design"
    )

    task = await lifecycle.create_task(
        created_by_id=agency.director.id,
        title="Banner",
        assignee_ids=[agency.designer.id],
        department="design",
    )

    assert task.workflow_template_id == scoped.id


async def test_create_without_workflow_is_assigned(lifecycle, agency):
    task = await lifecycle.create_task(
        created_by_id=agency.director.id,
        title="Quick fix",
        assignee_ids=[agency.designer.id],
        auto_workflow=False,
    )

    assert task.status == TaskStatus.ASSIGNED
    assert task.workflow_template_id is None


async def test_create_notifies_assignees(db, lifecycle, agency):
    task = await _create(lifecycle, agency)

    notifications = (
        await db.execute(select(Notification).where(Notification.target_id == task.id))
    ).scalars().all()
    assert [(n.user_id, n.notification_type) for n in notifications] == [
        (agency.designer.id, "task_assigned")
    ]


async def test_start_requires_assignee(lifecycle, agency):
    task = await lifecycle.create_task(
        created_by_id=agency.director.id,
        title="Quick fix",
        assignee_ids=[agency.designer.id],
        auto_workflow=False,
    )

    refused = await lifecycle.start(task.id, agency.director.id)
    assert refused.rejection == Rejection.NOT_AUTHORIZED

    started = await lifecycle.start(task.id, agency.designer.id)
    assert started.applied
    assert started.from_status == TaskStatus.ASSIGNED
    assert started.to_status == TaskStatus.IN_PROGRESS

    again = await lifecycle.start(task.id, agency.designer.id)
    assert again.rejection == Rejection.INVALID_TRANSITION


async def test_unknown_task_raises(lifecycle, agency):
    with pytest.raises(NotFoundError):
        await lifecycle.submit(agency.template.id, agency.designer.id)


# =============================================================================
# Submit
# =============================================================================


async def test_first_submit_builds_chain(lifecycle, agency, db):
    task = await _create(lifecycle, agency)

    result = await lifecycle.submit(task.id, agency.designer.id)

    assert result.applied
    assert result.to_status == TaskStatus.AWAITING_REVIEW
    steps = await lifecycle.get_steps(task.id)
    assert [(s.level, s.status) for s in steps] == [(0, "pending"), (1, "waiting")]
    assert steps[0].approver_id == str(agency.director.id)
    assert steps[1].approver_id == str(agency.client_contact.id)
    assert result.task.current_approval_level == 0
    assert chain_is_consistent(steps)

    notified = await db.scalar(
        select(Notification.user_id).where(Notification.notification_type == "approval_request")
    )
    assert notified == agency.director.id


async def test_submit_by_non_assignee_is_refused(lifecycle, agency):
    task = await _create(lifecycle, agency)

    result = await lifecycle.submit(task.id, agency.client_contact.id)

    assert result.rejection == Rejection.NOT_AUTHORIZED
    assert result.message == "You are not authorized to advance this task."
    assert (await lifecycle.get_task(task.id)).status == TaskStatus.IN_PROGRESS
    assert await lifecycle.get_steps(task.id) == []


async def test_second_submit_does_not_regenerate_steps(lifecycle, agency, db):
    task = await _create(lifecycle, agency)
    await lifecycle.submit(task.id, agency.designer.id)

    result = await lifecycle.submit(task.id, agency.designer.id)

    assert result.rejection == Rejection.INVALID_TRANSITION
    assert await _count(db, ApprovalStep, ApprovalStep.task_id == task.id) == 2


async def test_unresolved_approver_blocks_submit(lifecycle, agency, factory, db):
    template = await factory.template(
        [
            StepDefinition(order=0, role_id=agency.director_role.id),
            StepDefinition(order=1, project_role_key="strategist"),
        ],
        name="Strategy review",
    )
    task = await _create(lifecycle, agency, template=template)

    with pytest.raises(UnresolvedApproverError) as excinfo:
        await lifecycle.submit(task.id, agency.designer.id)

    assert excinfo.value.level == 1
    assert excinfo.value.code == "UNRESOLVED_APPROVER"
    assert (await lifecycle.get_task(task.id)).status == TaskStatus.IN_PROGRESS
    assert await _count(db, ApprovalStep, ApprovalStep.task_id == task.id) == 0


async def test_failed_batch_leaves_task_without_steps(lifecycle, agency, factory, db, monkeypatch):
    task = await _create(lifecycle, agency)
    task_id, designer_id = task.id, agency.designer.id

    async def store_unavailable(self):
        raise SQLAlchemyError("store unavailable")

    monkeypatch.setattr(AsyncSession, "commit", store_unavailable)
    with pytest.raises(BatchWriteError):
        await lifecycle.submit(task_id, designer_id)
    monkeypatch.undo()

    assert (await lifecycle.get_task(task_id)).status == TaskStatus.IN_PROGRESS
    assert await _count(db, ApprovalStep, ApprovalStep.task_id == task_id) == 0
    assert await factory.activities("task.submitted") == []

    retried = await lifecycle.submit(task_id, designer_id)
    assert retried.to_status == TaskStatus.AWAITING_REVIEW
    assert await _count(db, ApprovalStep, ApprovalStep.task_id == task_id) == 2


async def test_notification_failure_does_not_block_submit(lifecycle, agency, db, monkeypatch):
    task = await _create(lifecycle, agency)
    before = await _count(db, Notification)

    async def relay_down(*args, **kwargs):
        raise RuntimeError("notification relay down")

    monkeypatch.setattr(lifecycle.notifier, "notify_many", relay_down)
    result = await lifecycle.submit(task.id, agency.designer.id)

    assert result.applied
    assert (await lifecycle.get_task(task.id)).status == TaskStatus.AWAITING_REVIEW
    assert len(await lifecycle.get_steps(task.id)) == 2
    assert await _count(db, Notification) == before


async def test_submit_without_workflow_completes_with_handover(lifecycle, agency, db):
    task = await lifecycle.create_task(
        created_by_id=agency.director.id,
        title="Story post",
        project_id=agency.project.id,
        assignee_ids=[agency.designer.id],
        auto_workflow=False,
        requires_social_post=True,
        social_platforms=["instagram"],
    )

    result = await lifecycle.submit(task.id, agency.designer.id)

    assert result.to_status == TaskStatus.COMPLETED
    assert result.task.completed_at is not None
    assert result.social_post is not None
    assert result.social_post.platforms == ["instagram"]
    assert result.social_post.client_id == agency.client.id
    assert await _count(db, SocialPost, SocialPost.source_task_id == task.id) == 1


async def test_archived_task_rejects_transitions(lifecycle, agency, db, clock):
    task = await _create(lifecycle, agency)
    await ArchiveService(db, clock=clock).archive_task(task.id, agency.director.id)

    result = await lifecycle.submit(task.id, agency.designer.id)

    assert result.rejection == Rejection.INVALID_TRANSITION
    assert "restore" in result.message


# =============================================================================
# Approve
# =============================================================================


async def test_approve_advances_to_next_level(lifecycle, agency, db):
    task = await _create(lifecycle, agency)
    await lifecycle.submit(task.id, agency.designer.id)

    result = await lifecycle.approve(task.id, agency.director.id, comment="Looks great")

    assert result.applied
    assert result.to_status == TaskStatus.AWAITING_REVIEW
    assert result.task.current_approval_level == 1
    steps = await lifecycle.get_steps(task.id)
    assert [s.status for s in steps] == ["approved", "pending"]
    assert steps[0].comment == "Looks great"
    assert steps[0].reviewed_at is not None
    assert chain_is_consistent(steps)


async def test_approve_by_wrong_user_is_refused(lifecycle, agency):
    task = await _create(lifecycle, agency)
    await lifecycle.submit(task.id, agency.designer.id)

    result = await lifecycle.approve(task.id, agency.client_contact.id)

    assert result.rejection == Rejection.NOT_AUTHORIZED
    steps = await lifecycle.get_steps(task.id)
    assert [s.status for s in steps] == ["pending", "waiting"]


async def test_approve_when_not_in_review_is_invalid(lifecycle, agency):
    task = await _create(lifecycle, agency)

    result = await lifecycle.approve(task.id, agency.director.id)

    assert result.rejection == Rejection.INVALID_TRANSITION
    assert result.message == "This task is not awaiting review."


async def test_final_approval_hands_over_to_social(lifecycle, agency, db):
    task = await _create(lifecycle, agency, requires_social_post=True)
    await lifecycle.submit(task.id, agency.designer.id)
    await lifecycle.approve(task.id, agency.director.id)

    result = await lifecycle.approve(task.id, agency.client_contact.id)

    assert result.to_status == TaskStatus.APPROVED
    assert result.social_post is not None
    assert result.task.social_post_id == result.social_post.id
    post = await db.get(SocialPost, result.social_post.id)
    assert post.source_task_id == task.id
    assert post.status == "pending"


async def test_final_approval_without_social_post_completes(lifecycle, agency):
    task = await _create(lifecycle, agency)
    await lifecycle.submit(task.id, agency.designer.id)
    await lifecycle.approve(task.id, agency.director.id)

    result = await lifecycle.approve(task.id, agency.client_contact.id)

    assert result.to_status == TaskStatus.COMPLETED
    assert result.social_post is None
    assert result.task.completed_at is not None


async def test_social_post_is_created_at_most_once(lifecycle, agency, db):
    task = await _create(lifecycle, agency, requires_social_post=True)
    await lifecycle.submit(task.id, agency.designer.id)
    await lifecycle.approve(task.id, agency.director.id)
    await lifecycle.approve(task.id, agency.client_contact.id)

    result = await lifecycle.complete(task.id, agency.designer.id)

    assert result.to_status == TaskStatus.COMPLETED
    assert result.social_post is None
    assert await _count(db, SocialPost, SocialPost.source_task_id == task.id) == 1


async def test_complete_requires_assignee_or_approver(lifecycle, agency, factory):
    outsider = await factory.user("Outsider")
    task = await _create(lifecycle, agency, requires_social_post=True)
    await lifecycle.submit(task.id, agency.designer.id)
    await lifecycle.approve(task.id, agency.director.id)
    await lifecycle.approve(task.id, agency.client_contact.id)

    refused = await lifecycle.complete(task.id, outsider.id)
    assert refused.rejection == Rejection.NOT_AUTHORIZED

    done = await lifecycle.complete(task.id, agency.director.id)
    assert done.applied


# =============================================================================
# Client review
# =============================================================================


@pytest.fixture
async def client_template(factory, agency):
    return await factory.template(
        [StepDefinition(order=0, label="Creative Director", user_id=agency.director.id)],
        name="Director then client",
        requires_client_approval=True,
    )


async def test_internal_approval_moves_to_client_review(lifecycle, agency, client_template):
    task = await _create(lifecycle, agency, template=client_template)
    assert task.is_client_approval_required is True
    await lifecycle.submit(task.id, agency.designer.id)

    result = await lifecycle.approve(task.id, agency.director.id)

    assert result.to_status == TaskStatus.CLIENT_REVIEW
    approval = await lifecycle.get_client_approval(task.id)
    assert approval.status == "pending"
    assert approval.client_id == agency.client.id


async def test_client_rejection_and_resubmission(lifecycle, agency, client_template, db):
    task = await _create(lifecycle, agency, template=client_template, requires_social_post=True)
    await lifecycle.submit(task.id, agency.designer.id)
    await lifecycle.approve(task.id, agency.director.id)

    rejected = await lifecycle.client_decision(
        task.id, agency.client_contact.id, approved=False, comment="Wrong logo"
    )
    assert rejected.to_status == TaskStatus.REVISIONS_REQUIRED
    assert (await lifecycle.get_client_approval(task.id)).status == "rejected"

    resubmitted = await lifecycle.submit(task.id, agency.designer.id)
    assert resubmitted.to_status == TaskStatus.CLIENT_REVIEW
    assert (await lifecycle.get_client_approval(task.id)).status == "pending"
    assert await _count(db, ApprovalStep, ApprovalStep.task_id == task.id) == 1

    approved = await lifecycle.client_decision(task.id, agency.client_contact.id, approved=True)
    assert approved.to_status == TaskStatus.CLIENT_APPROVED
    assert approved.social_post is not None

    done = await lifecycle.complete(task.id, agency.designer.id)
    assert done.to_status == TaskStatus.COMPLETED
    assert await _count(db, SocialPost, SocialPost.source_task_id == task.id) == 1


async def test_client_decision_outside_client_review_is_invalid(lifecycle, agency):
    task = await _create(lifecycle, agency)

    result = await lifecycle.client_decision(task.id, agency.client_contact.id, approved=True)

    assert result.rejection == Rejection.INVALID_TRANSITION


# =============================================================================
# Queries
# =============================================================================


async def test_awaiting_approval_inbox_follows_the_gate(lifecycle, agency, db):
    task = await _create(lifecycle, agency)
    await lifecycle.submit(task.id, agency.designer.id)
    queries = ApprovalQueryService(db)

    assert [t.id for t in await queries.tasks_awaiting_approval(agency.director.id)] == [task.id]
    assert await queries.count_awaiting_approval(agency.client_contact.id) == 0

    await lifecycle.approve(task.id, agency.director.id)

    assert await queries.tasks_awaiting_approval(agency.director.id) == []
    assert await queries.count_awaiting_approval(agency.client_contact.id) == 1
    info = await queries.current_step(task.id)
    assert info.step_name == "Step 2"
    assert info.approver_name == "Chris Client"

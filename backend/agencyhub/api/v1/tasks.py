"""Tasks API endpoints.

Transitions return the task after the move. Refused transitions come back
as 403 (``NOT_AUTHORIZED``: you're not the assignee/approver) or 409
(``INVALID_TRANSITION``: not possible in the task's current state), with
the task left untouched.
"""

from datetime import datetime
from typing import Any
from uuid import UUID

import structlog
from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from agencyhub.api.v1.auth import CurrentUser
from agencyhub.db.session import get_db_session
from agencyhub.models.enums import TaskPriority
from agencyhub.models.task import ApprovalStep, Task
from agencyhub.services.approval_queries import ApprovalQueryService
from agencyhub.services.archive import get_archive_service
from agencyhub.services.task_lifecycle import (
    Rejection,
    TransitionResult,
    get_task_lifecycle_service,
)

router = APIRouter()
logger = structlog.get_logger()


# =============================================================================
# Pydantic Schemas
# =============================================================================


class TaskCreate(BaseModel):
    """Create a new task."""

    title: str = Field(..., min_length=1, max_length=500)
    project_id: UUID | None = None
    assignee_ids: list[UUID] = Field(default_factory=list)
    description: str | None = None
    voice_over: str | None = None
    text_direction: str = Field(default="auto", pattern="^(auto|ltr|rtl)$")
    department: str | None = None
    task_type: str | None = None
    priority: TaskPriority = TaskPriority.MEDIUM
    start_date: datetime | None = None
    due_date: datetime | None = None
    workflow_template_id: UUID | None = None
    auto_workflow: bool = True
    requires_social_post: bool = False
    social_platforms: list[str] = Field(default_factory=list)
    social_manager_id: UUID | None = None
    publishing_notes: str | None = None


class ApproveRequest(BaseModel):
    comment: str | None = None


class RevisionRequest(BaseModel):
    message: str = Field(..., min_length=1)
    assignee_id: UUID


class ClientDecisionRequest(BaseModel):
    approved: bool
    comment: str | None = None


class TaskResponse(BaseModel):
    """Task response."""

    id: UUID
    title: str
    description: str | None
    voice_over: str | None
    text_direction: str
    department: str | None
    task_type: str | None
    priority: str
    status: str
    project_id: UUID | None
    created_by_id: UUID | None
    assignee_ids: list[str]
    start_date: datetime | None
    due_date: datetime | None
    completed_at: datetime | None
    workflow_template_id: UUID | None
    current_approval_level: int
    is_client_approval_required: bool
    revision_context: dict[str, Any] | None
    revision_history: list[dict[str, Any]]
    requires_social_post: bool
    social_platforms: list[str]
    social_manager_id: UUID | None
    publishing_notes: str | None
    social_post_id: UUID | None
    production_plan_id: UUID | None
    source_type: str | None
    is_production_copy: bool
    is_archived: bool
    archived_at: datetime | None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class ApprovalStepResponse(BaseModel):
    id: UUID
    level: int
    label: str | None
    approver_id: str
    status: str
    reviewed_at: datetime | None
    comment: str | None

    class Config:
        from_attributes = True


class CurrentStepResponse(BaseModel):
    step_name: str
    level: int
    approver_id: str
    approver_name: str | None
    label: str | None

    class Config:
        from_attributes = True


class TransitionResponse(BaseModel):
    """Result of an applied transition."""

    action: str
    from_status: str
    to_status: str
    social_post_id: UUID | None = None
    task: TaskResponse


# =============================================================================
# Helpers
# =============================================================================


def _transition_response(result: TransitionResult) -> TransitionResponse:
    """Turn a refused transition into 403/409, otherwise describe the move."""
    if result.rejection is not None:
        status_code = (
            status.HTTP_403_FORBIDDEN
            if result.rejection == Rejection.NOT_AUTHORIZED
            else status.HTTP_409_CONFLICT
        )
        raise HTTPException(
            status_code=status_code,
            detail={
                "code": result.rejection.value.upper(),
                "message": result.message,
                "status": result.from_status,
            },
        )
    return TransitionResponse(
        action=result.action,
        from_status=result.from_status,
        to_status=result.to_status,
        social_post_id=result.social_post.id if result.social_post else result.task.social_post_id,
        task=TaskResponse.model_validate(result.task),
    )


# =============================================================================
# Endpoints
# =============================================================================


@router.post("/", response_model=TaskResponse, status_code=status.HTTP_201_CREATED)
async def create_task(
    task_data: TaskCreate,
    current_user: CurrentUser,
    db: AsyncSession = Depends(get_db_session),
) -> Task:
    """Create a new task and attach its workflow."""
    service = get_task_lifecycle_service(db)
    data = task_data.model_dump()
    data["priority"] = task_data.priority.value
    return await service.create_task(created_by_id=current_user.id, **data)


@router.get("/awaiting-my-approval", response_model=list[TaskResponse])
async def get_tasks_awaiting_my_approval(
    current_user: CurrentUser,
    db: AsyncSession = Depends(get_db_session),
) -> list[Task]:
    """Open tasks whose active approval gate belongs to the current user."""
    service = ApprovalQueryService(db)
    return await service.tasks_awaiting_approval(current_user.id)


@router.get("/{task_id}", response_model=TaskResponse)
async def get_task(
    task_id: UUID,
    current_user: CurrentUser,
    db: AsyncSession = Depends(get_db_session),
) -> Task:
    service = get_task_lifecycle_service(db)
    return await service.get_task(task_id)


@router.get("/{task_id}/steps", response_model=list[ApprovalStepResponse])
async def get_task_steps(
    task_id: UUID,
    current_user: CurrentUser,
    db: AsyncSession = Depends(get_db_session),
) -> list[ApprovalStep]:
    """Approval chain of a task, ordered by level."""
    service = get_task_lifecycle_service(db)
    await service.get_task(task_id)
    return await service.get_steps(task_id)


@router.get("/{task_id}/current-step", response_model=CurrentStepResponse | None)
async def get_current_step(
    task_id: UUID,
    current_user: CurrentUser,
    db: AsyncSession = Depends(get_db_session),
):
    service = ApprovalQueryService(db)
    return await service.current_step(task_id)


@router.get("/{task_id}/revision-candidates", response_model=list[str])
async def get_revision_candidates(
    task_id: UUID,
    current_user: CurrentUser,
    db: AsyncSession = Depends(get_db_session),
) -> list[str]:
    """Users a revision can be assigned to from the active gate."""
    service = get_task_lifecycle_service(db)
    return await service.revision_candidates(task_id)


@router.post("/{task_id}/start", response_model=TransitionResponse)
async def start_task(
    task_id: UUID,
    current_user: CurrentUser,
    db: AsyncSession = Depends(get_db_session),
) -> TransitionResponse:
    service = get_task_lifecycle_service(db)
    return _transition_response(await service.start(task_id, current_user.id))


@router.post("/{task_id}/submit", response_model=TransitionResponse)
async def submit_task(
    task_id: UUID,
    current_user: CurrentUser,
    db: AsyncSession = Depends(get_db_session),
) -> TransitionResponse:
    """Submit for review, submit a revision, or finish a task without workflow."""
    service = get_task_lifecycle_service(db)
    return _transition_response(await service.submit(task_id, current_user.id))


@router.post("/{task_id}/approve", response_model=TransitionResponse)
async def approve_task(
    task_id: UUID,
    data: ApproveRequest,
    current_user: CurrentUser,
    db: AsyncSession = Depends(get_db_session),
) -> TransitionResponse:
    service = get_task_lifecycle_service(db)
    return _transition_response(
        await service.approve(task_id, current_user.id, comment=data.comment)
    )


@router.post("/{task_id}/request-revision", response_model=TransitionResponse)
async def request_task_revision(
    task_id: UUID,
    data: RevisionRequest,
    current_user: CurrentUser,
    db: AsyncSession = Depends(get_db_session),
) -> TransitionResponse:
    """Send the task back with a message, assigned to one revision candidate."""
    service = get_task_lifecycle_service(db)
    return _transition_response(
        await service.request_revision(
            task_id,
            current_user.id,
            message=data.message,
            assignee_id=data.assignee_id,
        )
    )


@router.post("/{task_id}/client-decision", response_model=TransitionResponse)
async def record_client_decision(
    task_id: UUID,
    data: ClientDecisionRequest,
    current_user: CurrentUser,
    db: AsyncSession = Depends(get_db_session),
) -> TransitionResponse:
    service = get_task_lifecycle_service(db)
    return _transition_response(
        await service.client_decision(
            task_id, current_user.id, approved=data.approved, comment=data.comment
        )
    )


@router.post("/{task_id}/complete", response_model=TransitionResponse)
async def complete_task(
    task_id: UUID,
    current_user: CurrentUser,
    db: AsyncSession = Depends(get_db_session),
) -> TransitionResponse:
    service = get_task_lifecycle_service(db)
    return _transition_response(await service.complete(task_id, current_user.id))


@router.post("/{task_id}/archive", response_model=TaskResponse)
async def archive_task(
    task_id: UUID,
    current_user: CurrentUser,
    db: AsyncSession = Depends(get_db_session),
) -> Task:
    """Archive a task and move its files into the project Archive folder."""
    service = get_archive_service(db)
    return await service.archive_task(task_id, current_user.id)


@router.post("/{task_id}/restore", response_model=TaskResponse)
async def restore_task(
    task_id: UUID,
    current_user: CurrentUser,
    db: AsyncSession = Depends(get_db_session),
) -> Task:
    service = get_archive_service(db)
    return await service.restore_task(task_id, current_user.id)

"""Production planning API endpoints."""

from datetime import date, datetime
from typing import Any
from uuid import UUID

import structlog
from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from agencyhub.api.v1.auth import CurrentUser
from agencyhub.db.session import get_db_session
from agencyhub.models.enums import PlanArchiveReason, PlanEditMode, PlanStatus
from agencyhub.models.production import ProductionAssignment, ProductionPlan
from agencyhub.services.production import DuplicateInfo, get_production_service

router = APIRouter()
logger = structlog.get_logger()


# =============================================================================
# Pydantic Schemas
# =============================================================================


class PlanCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    production_date: date
    team_member_ids: list[UUID] = Field(..., min_length=1)
    calendar_item_ids: list[UUID] = Field(default_factory=list)
    manual_task_ids: list[UUID] = Field(default_factory=list)
    client_id: UUID | None = None
    notes: str | None = None
    conflict_overrides: dict[UUID, str] = Field(
        default_factory=dict,
        description="Override reason per team member on approved leave",
    )


class PlanUpdate(BaseModel):
    mode: PlanEditMode = PlanEditMode.SAFE
    force_reason: str | None = None
    name: str | None = Field(None, min_length=1, max_length=255)
    production_date: date | None = None
    team_member_ids: list[UUID] | None = None
    calendar_item_ids: list[UUID] | None = None
    manual_task_ids: list[UUID] | None = None
    conflict_overrides: dict[UUID, str] = Field(default_factory=dict)
    notes: str | None = None


class DuplicateCheckRequest(BaseModel):
    calendar_item_ids: list[UUID] = Field(default_factory=list)
    manual_task_ids: list[UUID] = Field(default_factory=list)
    exclude_plan_id: UUID | None = None


class AvailabilityRequest(BaseModel):
    production_date: date
    user_ids: list[UUID] = Field(..., min_length=1)
    exclude_plan_id: UUID | None = None


class ArchiveRequest(BaseModel):
    reason: PlanArchiveReason = PlanArchiveReason.USER_DELETED


class StatusRequest(BaseModel):
    status: PlanStatus


class DuplicateResponse(BaseModel):
    plan_id: UUID
    plan_name: str
    production_date: date

    class Config:
        from_attributes = True


class AvailabilityResponse(BaseModel):
    user_id: UUID
    on_leave: bool
    workload: int


class PlanResponse(BaseModel):
    id: UUID
    name: str
    client_id: UUID | None
    client_name: str | None
    production_date: date
    status: str
    notes: str | None
    calendar_item_ids: list[str]
    manual_task_ids: list[str]
    team_member_ids: list[str]
    conflict_overrides: dict[str, Any]
    generated_task_ids: list[str]
    created_by_id: UUID | None
    is_archived: bool
    archived_at: datetime | None
    archive_reason: str | None
    can_restore_until: datetime | None
    force_update_reason: str | None
    last_edit_mode: str | None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class AssignmentResponse(BaseModel):
    id: UUID
    production_plan_id: UUID
    user_id: UUID
    production_date: date
    plan_name: str
    client_name: str | None
    item_count: int
    status: str

    class Config:
        from_attributes = True


class PlanCreateResponse(BaseModel):
    plan: PlanResponse
    task_ids: list[UUID]
    assignment_count: int
    duplicates: dict[str, list[DuplicateResponse]]


class PlanUpdateResponse(BaseModel):
    plan: PlanResponse
    updated_task_ids: list[UUID]
    skipped_task_ids: list[UUID]
    assignment_count: int
    duplicates: dict[str, list[DuplicateResponse]]


def _duplicates(duplicates: dict[str, list[DuplicateInfo]]) -> dict[str, list[DuplicateResponse]]:
    return {
        key: [DuplicateResponse.model_validate(info) for info in infos]
        for key, infos in duplicates.items()
    }


# =============================================================================
# Plans
# =============================================================================


@router.get("/plans", response_model=list[PlanResponse])
async def list_plans(
    current_user: CurrentUser,
    include_archived: bool = Query(False),
    db: AsyncSession = Depends(get_db_session),
) -> list[ProductionPlan]:
    service = get_production_service(db)
    return await service.list_plans(include_archived=include_archived)


@router.post("/plans", response_model=PlanCreateResponse, status_code=status.HTTP_201_CREATED)
async def create_plan(
    data: PlanCreate,
    current_user: CurrentUser,
    db: AsyncSession = Depends(get_db_session),
) -> PlanCreateResponse:
    """Create a plan and generate its tasks and team assignments."""
    service = get_production_service(db)
    result = await service.create_plan(
        created_by_id=current_user.id,
        name=data.name,
        production_date=data.production_date,
        team_member_ids=data.team_member_ids,
        calendar_item_ids=data.calendar_item_ids,
        manual_task_ids=data.manual_task_ids,
        client_id=data.client_id,
        notes=data.notes,
        conflict_overrides=data.conflict_overrides,
    )
    return PlanCreateResponse(
        plan=PlanResponse.model_validate(result.plan),
        task_ids=[task.id for task in result.tasks],
        assignment_count=len(result.assignments),
        duplicates=_duplicates(result.duplicates),
    )


@router.post("/plans/duplicates", response_model=dict[str, list[DuplicateResponse]])
async def check_duplicates(
    data: DuplicateCheckRequest,
    current_user: CurrentUser,
    db: AsyncSession = Depends(get_db_session),
) -> dict[str, list[DuplicateResponse]]:
    """Live plans that already include any of the selected items (advisory)."""
    service = get_production_service(db)
    duplicates = await service.find_duplicates(
        data.calendar_item_ids, data.manual_task_ids, exclude_plan_id=data.exclude_plan_id
    )
    return _duplicates(duplicates)


@router.post("/availability", response_model=list[AvailabilityResponse])
async def check_availability(
    data: AvailabilityRequest,
    current_user: CurrentUser,
    db: AsyncSession = Depends(get_db_session),
) -> list[AvailabilityResponse]:
    """Leave status and existing bookings for candidate team members."""
    service = get_production_service(db)
    conflicts = await service.find_leave_conflicts(data.user_ids, data.production_date)
    on_leave = {leave.user_id for leave in conflicts}
    return [
        AvailabilityResponse(
            user_id=user_id,
            on_leave=user_id in on_leave,
            workload=await service.member_workload(
                user_id, data.production_date, exclude_plan_id=data.exclude_plan_id
            ),
        )
        for user_id in data.user_ids
    ]


@router.get("/plans/{plan_id}", response_model=PlanResponse)
async def get_plan(
    plan_id: UUID,
    current_user: CurrentUser,
    db: AsyncSession = Depends(get_db_session),
) -> ProductionPlan:
    service = get_production_service(db)
    return await service.get_plan(plan_id)


@router.get("/plans/{plan_id}/assignments", response_model=list[AssignmentResponse])
async def get_plan_assignments(
    plan_id: UUID,
    current_user: CurrentUser,
    db: AsyncSession = Depends(get_db_session),
) -> list[ProductionAssignment]:
    service = get_production_service(db)
    await service.get_plan(plan_id)
    return await service.get_assignments(plan_id)


@router.get("/plans/{plan_id}/active-task-count")
async def get_active_task_count(
    plan_id: UUID,
    current_user: CurrentUser,
    db: AsyncSession = Depends(get_db_session),
) -> dict[str, int]:
    """How many generated tasks a SAFE edit would leave untouched."""
    service = get_production_service(db)
    return {"active_tasks": await service.count_active_tasks(plan_id)}


@router.patch("/plans/{plan_id}", response_model=PlanUpdateResponse)
async def update_plan(
    plan_id: UUID,
    data: PlanUpdate,
    current_user: CurrentUser,
    db: AsyncSession = Depends(get_db_session),
) -> PlanUpdateResponse:
    """Edit a plan in SAFE or FORCE mode."""
    service = get_production_service(db)
    result = await service.update_plan(
        plan_id,
        current_user.id,
        mode=data.mode,
        name=data.name,
        production_date=data.production_date,
        team_member_ids=data.team_member_ids,
        calendar_item_ids=data.calendar_item_ids,
        manual_task_ids=data.manual_task_ids,
        conflict_overrides=data.conflict_overrides,
        notes=data.notes,
        force_reason=data.force_reason,
    )
    return PlanUpdateResponse(
        plan=PlanResponse.model_validate(result.plan),
        updated_task_ids=result.updated_task_ids,
        skipped_task_ids=result.skipped_task_ids,
        assignment_count=len(result.assignments),
        duplicates=_duplicates(result.duplicates),
    )


@router.post("/plans/{plan_id}/status", response_model=PlanResponse)
async def advance_plan_status(
    plan_id: UUID,
    data: StatusRequest,
    current_user: CurrentUser,
    db: AsyncSession = Depends(get_db_session),
) -> ProductionPlan:
    service = get_production_service(db)
    return await service.advance_plan_status(plan_id, data.status, current_user.id)


@router.post("/plans/{plan_id}/archive", response_model=PlanResponse)
async def archive_plan(
    plan_id: UUID,
    data: ArchiveRequest,
    current_user: CurrentUser,
    db: AsyncSession = Depends(get_db_session),
) -> ProductionPlan:
    """Archive a plan with its tasks and assignments; restorable for 30 days."""
    service = get_production_service(db)
    plan = await service.archive_plan(plan_id, current_user.id, reason=data.reason)
    logger.info("production_plan_archived_via_api", plan_id=str(plan_id), user_id=str(current_user.id))
    return plan


@router.post("/plans/{plan_id}/restore", response_model=PlanResponse)
async def restore_plan(
    plan_id: UUID,
    current_user: CurrentUser,
    db: AsyncSession = Depends(get_db_session),
) -> ProductionPlan:
    service = get_production_service(db)
    return await service.restore_plan(plan_id, current_user.id)

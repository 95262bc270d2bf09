"""Workflow template API endpoints."""

from datetime import datetime
from uuid import UUID

import structlog
from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from agencyhub.api.v1.auth import CurrentUser
from agencyhub.db.session import get_db_session
from agencyhub.models.enums import WorkflowStatus
from agencyhub.models.workflow import WorkflowTemplate
from agencyhub.services.workflow_templates import StepDefinition, WorkflowTemplateService

router = APIRouter()
logger = structlog.get_logger()


# =============================================================================
# Pydantic Schemas
# =============================================================================


class StepCreate(BaseModel):
    """One approval step; set exactly one of user_id, project_role_key, role_id."""

    order: int = Field(..., ge=0)
    label: str | None = Field(None, max_length=255)
    user_id: UUID | None = None
    project_role_key: str | None = Field(None, max_length=100)
    role_id: UUID | None = None


class WorkflowTemplateCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    description: str | None = None
    department: str | None = None
    task_type: str | None = None
    requires_client_approval: bool = False
    status: WorkflowStatus = WorkflowStatus.AVAILABLE
    is_default: bool = False
    steps: list[StepCreate] = Field(..., min_length=1)


class WorkflowStatusUpdate(BaseModel):
    status: WorkflowStatus


class StepResponse(BaseModel):
    id: UUID
    order: int
    label: str | None
    user_id: UUID | None
    project_role_key: str | None
    role_id: UUID | None

    class Config:
        from_attributes = True


class WorkflowTemplateResponse(BaseModel):
    id: UUID
    name: str
    description: str | None
    department: str | None
    task_type: str | None
    status: str
    is_default: bool
    requires_client_approval: bool
    steps: list[StepResponse]
    created_at: datetime

    class Config:
        from_attributes = True


# =============================================================================
# Endpoints
# =============================================================================


@router.get("/", response_model=list[WorkflowTemplateResponse])
async def list_workflow_templates(
    current_user: CurrentUser,
    department: str | None = Query(None),
    db: AsyncSession = Depends(get_db_session),
) -> list[WorkflowTemplate]:
    """List workflow templates, optionally for one department."""
    service = WorkflowTemplateService(db)
    return await service.list_templates(department=department)


@router.post("/", response_model=WorkflowTemplateResponse, status_code=status.HTTP_201_CREATED)
async def create_workflow_template(
    data: WorkflowTemplateCreate,
    current_user: CurrentUser,
    db: AsyncSession = Depends(get_db_session),
) -> WorkflowTemplate:
    """Create a workflow template with its approval steps."""
    service = WorkflowTemplateService(db)
    template = await service.create_template(
        name=data.name,
        description=data.description,
        department=data.department,
        task_type=data.task_type,
        requires_client_approval=data.requires_client_approval,
        status=data.status.value,
        is_default=data.is_default,
        steps=[StepDefinition(**step.model_dump()) for step in data.steps],
    )
    logger.info(
        "workflow_template_created_via_api",
        template_id=str(template.id),
        user_id=str(current_user.id),
    )
    return template


@router.get("/active", response_model=WorkflowTemplateResponse)
async def get_active_workflow(
    current_user: CurrentUser,
    department: str | None = Query(None),
    task_type: str | None = Query(None),
    db: AsyncSession = Depends(get_db_session),
) -> WorkflowTemplate:
    """The workflow a new task in this department and type would get."""
    service = WorkflowTemplateService(db)
    template = await service.get_active_workflow(department, task_type)
    if template is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail={"code": "NOT_FOUND", "message": "No active workflow applies"},
        )
    return template


@router.get("/{template_id}", response_model=WorkflowTemplateResponse)
async def get_workflow_template(
    template_id: UUID,
    current_user: CurrentUser,
    db: AsyncSession = Depends(get_db_session),
) -> WorkflowTemplate:
    service = WorkflowTemplateService(db)
    return await service.get_template(template_id)


@router.patch("/{template_id}/status", response_model=WorkflowTemplateResponse)
async def update_workflow_status(
    template_id: UUID,
    data: WorkflowStatusUpdate,
    current_user: CurrentUser,
    db: AsyncSession = Depends(get_db_session),
) -> WorkflowTemplate:
    """Activate or park a workflow template."""
    service = WorkflowTemplateService(db)
    return await service.set_status(template_id, data.status.value)

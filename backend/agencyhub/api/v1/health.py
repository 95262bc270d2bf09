"""Liveness and readiness probes."""

from fastapi import APIRouter, Depends
from fastapi.responses import ORJSONResponse
from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from agencyhub.config import get_settings
from agencyhub.db.session import get_db_session
from agencyhub.models.enums import WorkflowStatus
from agencyhub.models.workflow import WorkflowTemplate

router = APIRouter()
settings = get_settings()


@router.get("/health")
async def health_check() -> dict[str, str]:
    return {
        "status": "healthy",
        "service": settings.app_name,
        "version": settings.app_version,
    }


@router.get("/health/ready")
async def readiness_check(db: AsyncSession = Depends(get_db_session)) -> ORJSONResponse:
    """Store connectivity plus whether any workflow can be auto-attached to new tasks.

    No active workflow is reported but does not fail readiness: tasks are
    still created, they just start ``assigned`` without an approval chain.
    """
    checks: dict[str, str] = {}
    active_workflows = 0

    try:
        active_workflows = await db.scalar(
            select(func.count())
            .select_from(WorkflowTemplate)
            .where(WorkflowTemplate.status == WorkflowStatus.ACTIVE.value)
        )
        checks["database"] = "healthy"
    except SQLAlchemyError as e:
        checks["database"] = f"unhealthy: {e.__class__.__name__}"

    ready = checks["database"] == "healthy"
    return ORJSONResponse(
        status_code=200 if ready else 503,
        content={
            "status": "ready" if ready else "unavailable",
            "version": settings.app_version,
            "checks": checks,
            "active_workflows": active_workflows or 0,
        },
    )

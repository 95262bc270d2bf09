"""Workflow template management and selection."""

from collections.abc import Sequence
from dataclasses import dataclass
from uuid import UUID

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from agencyhub.exceptions import DomainValidationError, NotFoundError
from agencyhub.models.enums import WorkflowStatus
from agencyhub.models.workflow import WorkflowStepTemplate, WorkflowTemplate
from agencyhub.services.approver_resolver import step_kind

logger = structlog.get_logger()


@dataclass
class StepDefinition:
    """One step of a template being created; exactly one approver mode is set."""

    order: int
    label: str | None = None
    user_id: UUID | None = None
    project_role_key: str | None = None
    role_id: UUID | None = None


def validate_steps(steps: Sequence[StepDefinition]) -> None:
    """Reject empty chains, gaps or duplicates in ``order``, and ambiguous steps."""
    if not steps:
        raise DomainValidationError("A workflow needs at least one approval step")

    orders = sorted(step.order for step in steps)
    if orders != list(range(len(steps))):
        raise DomainValidationError(
            "Step order must be 0-based, contiguous and unique",
            details={"orders": orders},
        )

    for step in steps:
        modes = [
            mode
            for mode, value in (
                ("user_id", step.user_id),
                ("project_role_key", step.project_role_key),
                ("role_id", step.role_id),
            )
            if value
        ]
        if len(modes) != 1:
            raise DomainValidationError(
                f"Step {step.order} must name exactly one approver "
                "(specific user, project role or system role)",
                details={"order": step.order, "modes": modes},
            )


class WorkflowTemplateService:
    """Service for creating workflow templates and picking one for a task."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def create_template(
        self,
        name: str,
        steps: Sequence[StepDefinition],
        department: str | None = None,
        task_type: str | None = None,
        requires_client_approval: bool = False,
        status: str = WorkflowStatus.AVAILABLE.value,
        is_default: bool = False,
        description: str | None = None,
    ) -> WorkflowTemplate:
        """Validate and persist a workflow template with its steps."""
        validate_steps(steps)

        template = WorkflowTemplate(
            name=name,
            description=description,
            department=department,
            task_type=task_type,
            requires_client_approval=requires_client_approval,
            status=status,
            is_default=is_default,
            steps=[
                WorkflowStepTemplate(
                    order=step.order,
                    label=step.label,
                    user_id=step.user_id,
                    project_role_key=step.project_role_key,
                    role_id=step.role_id,
                )
                for step in sorted(steps, key=lambda s: s.order)
            ],
        )
        self.db.add(template)
        await self.db.commit()
        await self.db.refresh(template)

        logger.info(
            "workflow_template_created",
            template_id=str(template.id),
            steps=len(template.steps),
            kinds=[type(step_kind(s)).__name__ for s in template.steps],
        )
        return template

    async def get_template(self, template_id: UUID) -> WorkflowTemplate:
        result = await self.db.execute(
            select(WorkflowTemplate).where(WorkflowTemplate.id == template_id)
        )
        template = result.scalar_one_or_none()
        if template is None:
            raise NotFoundError("Workflow template", template_id)
        return template

    async def list_templates(self, department: str | None = None) -> list[WorkflowTemplate]:
        query = select(WorkflowTemplate).order_by(WorkflowTemplate.name)
        if department is not None:
            query = query.where(WorkflowTemplate.department == department)
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def get_active_workflow(
        self,
        department: str | None,
        task_type: str | None,
    ) -> WorkflowTemplate | None:
        """
        Pick the workflow that applies to a new task.

        Tried in order, first hit wins:
        1. Active template for this department and task type
        2. Active template for this department with no task type
        3. Active global template (no department)
        4. Legacy default template for this department and task type
        """
        active = WorkflowTemplate.status == WorkflowStatus.ACTIVE.value
        candidates = []
        if department:
            if task_type:
                candidates.append(
                    (
                        active,
                        WorkflowTemplate.department == department,
                        WorkflowTemplate.task_type == task_type,
                    )
                )
            candidates.append(
                (
                    active,
                    WorkflowTemplate.department == department,
                    WorkflowTemplate.task_type.is_(None),
                )
            )
        candidates.append((active, WorkflowTemplate.department.is_(None)))
        if department and task_type:
            candidates.append(
                (
                    WorkflowTemplate.is_default.is_(True),
                    WorkflowTemplate.department == department,
                    WorkflowTemplate.task_type == task_type,
                )
            )

        for conditions in candidates:
            result = await self.db.execute(
                select(WorkflowTemplate)
                .where(*conditions)
                .order_by(WorkflowTemplate.created_at)
                .limit(1)
            )
            template = result.scalar_one_or_none()
            if template is not None:
                return template
        return None

    async def set_status(self, template_id: UUID, status: str) -> WorkflowTemplate:
        """Change a template's availability; system-protected templates stay as they are."""
        template = await self.get_template(template_id)
        if template.status == WorkflowStatus.SYSTEM_PROTECTED:
            raise DomainValidationError("System-protected workflows cannot be changed")
        template.status = WorkflowStatus(status).value
        await self.db.commit()
        await self.db.refresh(template)
        return template

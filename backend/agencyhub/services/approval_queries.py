"""Read-side queries for approval inboxes."""

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from agencyhub.models.enums import ApprovalStepStatus, TaskStatus
from agencyhub.models.task import ApprovalStep, Task
from agencyhub.models.user import User

CLOSED_STATUSES = (TaskStatus.COMPLETED.value, TaskStatus.ARCHIVED.value)


@dataclass(frozen=True)
class StepInfo:
    step_name: str
    level: int
    approver_id: str
    approver_name: str | None
    label: str | None


def needs_approval_from(task: Task, steps: Sequence[ApprovalStep], user_id: UUID) -> bool:
    """True when the first undecided step of an open task is pending on ``user_id``."""
    if task.is_archived or task.status in CLOSED_STATUSES:
        return False
    current = next(
        (
            s
            for s in sorted(steps, key=lambda s: s.level)
            if s.status in (ApprovalStepStatus.PENDING, ApprovalStepStatus.WAITING)
        ),
        None,
    )
    return (
        current is not None
        and current.status == ApprovalStepStatus.PENDING
        and current.approver_id == str(user_id)
    )


def current_step_info(
    steps: Sequence[ApprovalStep],
    user_names: Mapping[str, str] | None = None,
) -> StepInfo | None:
    """Describe the pending step for display ("Step 2", approver name)."""
    pending = sorted(
        (s for s in steps if s.status == ApprovalStepStatus.PENDING), key=lambda s: s.level
    )
    if not pending:
        return None
    step = pending[0]
    return StepInfo(
        step_name=f"Step {step.level + 1}",
        level=step.level,
        approver_id=step.approver_id,
        approver_name=(user_names or {}).get(step.approver_id),
        label=step.label,
    )


class ApprovalQueryService:
    """Service for approval inbox queries."""

    def __init__(self, db: AsyncSession):
        self.db = db

    def _awaiting_query(self, user_id: UUID):
        return (
            select(Task)
            .join(ApprovalStep, ApprovalStep.task_id == Task.id)
            .where(
                ApprovalStep.approver_id == str(user_id),
                ApprovalStep.status == ApprovalStepStatus.PENDING.value,
                Task.is_archived.is_(False),
                Task.status.not_in(CLOSED_STATUSES),
            )
        )

    async def tasks_awaiting_approval(self, user_id: UUID) -> list[Task]:
        """Open tasks whose active gate belongs to ``user_id``."""
        result = await self.db.execute(
            self._awaiting_query(user_id).order_by(Task.due_date, Task.created_at)
        )
        return list(result.scalars().unique().all())

    async def count_awaiting_approval(self, user_id: UUID) -> int:
        subquery = self._awaiting_query(user_id).with_only_columns(Task.id).distinct().subquery()
        result = await self.db.execute(select(func.count()).select_from(subquery))
        return result.scalar_one()

    async def current_step(self, task_id: UUID) -> StepInfo | None:
        result = await self.db.execute(
            select(ApprovalStep).where(ApprovalStep.task_id == task_id)
        )
        steps = list(result.scalars().all())
        pending_ids = [
            UUID(s.approver_id) for s in steps if s.status == ApprovalStepStatus.PENDING
        ]
        names: dict[str, str] = {}
        if pending_ids:
            users = await self.db.execute(
                select(User.id, User.display_name).where(User.id.in_(pending_ids))
            )
            names = {str(uid): name for uid, name in users.all()}
        return current_step_info(steps, names)

"""Approval step generation and chain inspection helpers."""

from collections.abc import Sequence
from uuid import uuid4

from agencyhub.models.enums import ApprovalStepStatus
from agencyhub.models.task import ApprovalStep, Task
from agencyhub.models.workflow import WorkflowTemplate
from agencyhub.services.approver_resolver import ApproverDirectory, resolve_approver

UNASSIGNED_APPROVER = "unassigned"

# Statuses that count as a passed gate below the active one
PASSED_STATUSES = frozenset(
    {ApprovalStepStatus.APPROVED.value, ApprovalStepStatus.REVISION_SUBMITTED.value}
)
NOT_YET_REACHED = frozenset(
    {ApprovalStepStatus.WAITING.value, ApprovalStepStatus.REVISION_SUBMITTED.value}
)


def generate_approval_steps(
    template: WorkflowTemplate,
    task: Task,
    directory: ApproverDirectory,
) -> list[ApprovalStep]:
    """
    Instantiate one approval step per template step, in template order.

    The first step is ``pending`` and the rest ``waiting``. Steps whose
    approver cannot be resolved carry ``UNASSIGNED_APPROVER``; callers must
    check ``unresolved_steps`` and refuse to persist such a chain.

    The returned steps are transient; nothing is added to a session.
    """
    steps: list[ApprovalStep] = []
    for index, template_step in enumerate(sorted(template.steps, key=lambda s: s.order)):
        approver_id = resolve_approver(template_step, task, directory)
        steps.append(
            ApprovalStep(
                id=uuid4(),
                task_id=task.id,
                level=template_step.order,
                label=template_step.label,
                approver_id=str(approver_id) if approver_id else UNASSIGNED_APPROVER,
                status=(
                    ApprovalStepStatus.PENDING.value
                    if index == 0
                    else ApprovalStepStatus.WAITING.value
                ),
            )
        )
    return steps


def unresolved_steps(steps: Sequence[ApprovalStep]) -> list[ApprovalStep]:
    return [s for s in steps if s.approver_id == UNASSIGNED_APPROVER]


def pending_steps(steps: Sequence[ApprovalStep]) -> list[ApprovalStep]:
    return sorted(
        (s for s in steps if s.status == ApprovalStepStatus.PENDING),
        key=lambda s: s.level,
    )


def active_gate(steps: Sequence[ApprovalStep]) -> ApprovalStep | None:
    """The single pending step, or None when there is none or more than one."""
    pending = pending_steps(steps)
    return pending[0] if len(pending) == 1 else None


def step_at_level(steps: Sequence[ApprovalStep], level: int) -> ApprovalStep | None:
    for step in steps:
        if step.level == level:
            return step
    return None


def chain_is_complete(steps: Sequence[ApprovalStep]) -> bool:
    """True when every step has been passed."""
    return bool(steps) and all(s.status in PASSED_STATUSES for s in steps)


def chain_is_consistent(steps: Sequence[ApprovalStep]) -> bool:
    """Check the single-active-gate ordering of a chain.

    At most one step is pending; every step below it has been passed and
    no step above it has been decided yet.
    """
    pending = pending_steps(steps)
    if len(pending) > 1:
        return False
    if not pending:
        return True
    gate_level = pending[0].level
    for step in steps:
        if step.level < gate_level and step.status not in PASSED_STATUSES:
            return False
        if step.level > gate_level and step.status not in NOT_YET_REACHED:
            return False
    return True


def approver_ids(steps: Sequence[ApprovalStep], below_level: int | None = None) -> list[str]:
    """Distinct approver ids in level order, optionally limited to lower levels."""
    seen: list[str] = []
    for step in sorted(steps, key=lambda s: s.level):
        if below_level is not None and step.level >= below_level:
            continue
        if step.approver_id != UNASSIGNED_APPROVER and step.approver_id not in seen:
            seen.append(step.approver_id)
    return seen

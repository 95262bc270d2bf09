"""Revision cycle handling for tasks in the approval chain.

A revision cycle starts when the active approver asks for changes and ends
when the assigned revisor resubmits. ``Task.revision_context`` holds the
current cycle (or NULL) and ``Task.revision_history`` is an append-only
log with one entry per cycle. History entries are only ever annotated
with ``resolved_at``/``resolved_by``, never rewritten.

The manager mutates already-loaded rows; committing is the caller's job.
"""

from collections.abc import Sequence
from dataclasses import asdict, dataclass, replace
from datetime import datetime
from typing import Any
from uuid import UUID

import structlog

from agencyhub.exceptions import MissingReferenceError
from agencyhub.models.enums import ApprovalStepStatus, TaskStatus
from agencyhub.models.task import ApprovalStep, Task
from agencyhub.services.approval_steps import approver_ids
from agencyhub.utils.clock import Clock, isoformat, utcnow

logger = structlog.get_logger()


@dataclass(frozen=True)
class RevisionContext:
    """The revision cycle a task is currently in."""

    cycle: int
    requested_by_user_id: str
    requested_by_step_id: str
    assigned_to_user_id: str
    requested_at: str
    message: str
    active: bool = True

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> "RevisionContext | None":
        if not data:
            return None
        return cls(
            cycle=int(data["cycle"]),
            requested_by_user_id=str(data["requested_by_user_id"]),
            requested_by_step_id=str(data["requested_by_step_id"]),
            assigned_to_user_id=str(data["assigned_to_user_id"]),
            requested_at=str(data["requested_at"]),
            message=data.get("message", ""),
            active=bool(data.get("active", False)),
        )


def revision_context_of(task: Task) -> RevisionContext | None:
    return RevisionContext.from_dict(task.revision_context)


def active_revision(task: Task) -> RevisionContext | None:
    """The task's revision context if it is still active."""
    context = revision_context_of(task)
    return context if context and context.active else None


def revision_candidates(task: Task, steps: Sequence[ApprovalStep], gate_level: int) -> list[str]:
    """Users a revision may be assigned to: current assignees plus earlier approvers."""
    candidates = list(task.assignee_ids or [])
    for approver_id in approver_ids(steps, below_level=gate_level):
        if approver_id not in candidates:
            candidates.append(approver_id)
    return candidates


class RevisionCycleManager:
    """Request-revision / submit-revision loop."""

    def __init__(self, clock: Clock = utcnow):
        self.clock = clock

    # =========================================================================
    # Request Revision
    # =========================================================================

    def request_revision(
        self,
        task: Task,
        gate: ApprovalStep,
        requested_by_id: UUID,
        assignee_id: UUID,
        message: str,
    ) -> RevisionContext:
        """
        Open a new revision cycle from the active gate.

        Marks the gate ``revision_requested`` with the message as its
        comment, records the context and a matching history entry, moves
        the task to ``REVISIONS_REQUIRED`` and hands it to the revisor alone.

        Args:
            task: Task whose active gate is ``gate``
            gate: The pending step owned by ``requested_by_id``
            requested_by_id: Approver asking for changes
            assignee_id: Revisor; must already be a valid candidate
            message: What needs to change

        Returns:
            The new, active RevisionContext
        """
        now = self.clock()
        history = list(task.revision_history or [])
        cycle = len(history) + 1

        gate.status = ApprovalStepStatus.REVISION_REQUESTED.value
        gate.comment = message
        gate.reviewed_at = now

        context = RevisionContext(
            cycle=cycle,
            requested_by_user_id=str(requested_by_id),
            requested_by_step_id=str(gate.id),
            assigned_to_user_id=str(assignee_id),
            requested_at=isoformat(now),
            message=message,
        )
        history.append(
            {
                "cycle": cycle,
                "step_id": str(gate.id),
                "step_level": gate.level,
                "requested_by": str(requested_by_id),
                "assigned_to": str(assignee_id),
                "message": message,
                "requested_at": isoformat(now),
                "resolved_at": None,
                "resolved_by": None,
            }
        )

        task.revision_context = context.to_dict()
        task.revision_history = history
        task.status = TaskStatus.REVISIONS_REQUIRED.value
        task.assignee_ids = [str(assignee_id)]

        logger.info(
            "revision_requested",
            task_id=str(task.id),
            cycle=cycle,
            step_level=gate.level,
            assigned_to=str(assignee_id),
        )
        return context

    # =========================================================================
    # Submit Revision
    # =========================================================================

    def submit_revision(
        self,
        task: Task,
        steps: Sequence[ApprovalStep],
        submitted_by_id: UUID,
    ) -> ApprovalStep:
        """
        Close out the revisor's work and put the requesting gate back in the queue.

        The requesting step goes back to ``pending`` at its own level. If the
        revisor also owns an earlier step, that step gets the soft
        ``revision_submitted`` marker. The context stays active until the
        next approval.

        Returns:
            The reopened step

        Raises:
            ValueError: if the task has no active revision context
            MissingReferenceError: if the requesting step no longer exists
        """
        context = active_revision(task)
        if context is None:
            raise ValueError(f"Task {task.id} has no active revision")

        now = self.clock()
        reopened = next((s for s in steps if str(s.id) == context.requested_by_step_id), None)
        if reopened is None:
            reopened = next(
                (s for s in steps if s.status == ApprovalStepStatus.REVISION_REQUESTED), None
            )
        if reopened is None:
            raise MissingReferenceError.for_entity("approval_step", context.requested_by_step_id)

        reopened.status = ApprovalStepStatus.PENDING.value
        reopened.reviewed_at = None
        reopened.comment = None

        for step in steps:
            if step.level < reopened.level and step.approver_id == str(submitted_by_id):
                step.status = ApprovalStepStatus.REVISION_SUBMITTED.value
                break

        task.revision_history = self._annotate_resolved(
            task.revision_history, context.cycle, now, submitted_by_id
        )

        assignees = list(task.assignee_ids or [])
        for user_id in (context.requested_by_user_id, str(submitted_by_id)):
            if user_id not in assignees:
                assignees.append(user_id)

        task.assignee_ids = assignees
        task.status = TaskStatus.AWAITING_REVIEW.value
        task.current_approval_level = reopened.level
        task.completed_at = None
        task.clear_archive()

        logger.info(
            "revision_submitted",
            task_id=str(task.id),
            cycle=context.cycle,
            step_level=reopened.level,
        )
        return reopened

    # =========================================================================
    # Resolution on approval
    # =========================================================================

    def resolve_on_approval(self, task: Task, approved_by_id: UUID) -> bool:
        """Deactivate the task's revision context after an approval.

        Returns True when a context was deactivated.
        """
        context = active_revision(task)
        if context is None:
            return False

        task.revision_context = replace(context, active=False).to_dict()
        task.revision_history = self._annotate_resolved(
            task.revision_history, context.cycle, self.clock(), approved_by_id
        )
        return True

    @staticmethod
    def _annotate_resolved(
        history: list[dict[str, Any]] | None,
        cycle: int,
        resolved_at: datetime,
        resolved_by: UUID,
    ) -> list[dict[str, Any]]:
        entries = []
        for entry in history or []:
            entry = dict(entry)
            if entry.get("cycle") == cycle and not entry.get("resolved_at"):
                entry["resolved_at"] = isoformat(resolved_at)
                entry["resolved_by"] = str(resolved_by)
            entries.append(entry)
        return entries

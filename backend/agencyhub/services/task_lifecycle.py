"""Task lifecycle state machine.

Owns every status transition of a task: creation, start, submission into
the approval chain, approval, revision requests, client decisions and
completion. Each transition re-reads the task and its approval steps,
re-checks that the actor is structurally allowed to act (assignee or the
active gate's approver) and then applies all of its writes in one atomic
batch. Permission codes are checked by callers before they get here.

Authorization and state problems are reported, not raised: the returned
``TransitionResult`` carries a ``Rejection`` and a message, and the task
is left untouched. Missing references (a vanished workflow template, an
approver that cannot be resolved) raise before anything is written.
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any
from uuid import UUID, uuid4

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from agencyhub.db.batch import atomic_batch
from agencyhub.exceptions import (
    EmptyWorkflowError,
    MissingReferenceError,
    NotFoundError,
    UnresolvedApproverError,
)
from agencyhub.models.activity import Activity
from agencyhub.models.enums import ApprovalStepStatus, ClientApprovalStatus, TaskStatus
from agencyhub.models.project import Project
from agencyhub.models.social import SocialPost
from agencyhub.models.task import ApprovalStep, ClientApproval, Task
from agencyhub.models.workflow import WorkflowTemplate
from agencyhub.services.approval_steps import (
    active_gate,
    approver_ids,
    chain_is_complete,
    generate_approval_steps,
    pending_steps,
    step_at_level,
    unresolved_steps,
)
from agencyhub.services.approver_resolver import load_directory
from agencyhub.services.notification import NotificationService
from agencyhub.services.revision import (
    RevisionCycleManager,
    active_revision,
    revision_candidates,
)
from agencyhub.services.social_handover import SocialHandoverService
from agencyhub.services.workflow_templates import WorkflowTemplateService
from agencyhub.utils.clock import Clock, utcnow

logger = structlog.get_logger()

SUBMITTABLE_STATUSES = frozenset(
    {
        TaskStatus.ASSIGNED.value,
        TaskStatus.IN_PROGRESS.value,
        TaskStatus.REVISIONS_REQUIRED.value,
    }
)
STARTABLE_STATUSES = frozenset({TaskStatus.NEW.value, TaskStatus.ASSIGNED.value})
COMPLETABLE_STATUSES = frozenset({TaskStatus.APPROVED.value, TaskStatus.CLIENT_APPROVED.value})


class Rejection(str, Enum):
    """Why a transition was refused."""

    NOT_AUTHORIZED = "not_authorized"  # you're not allowed
    INVALID_TRANSITION = "invalid_transition"  # not possible right now


@dataclass
class TransitionResult:
    """Outcome of a task transition."""

    task: Task
    action: str
    from_status: str
    rejection: Rejection | None = None
    message: str = ""
    social_post: SocialPost | None = None

    @property
    def applied(self) -> bool:
        return self.rejection is None

    @property
    def to_status(self) -> str:
        return self.task.status


@dataclass
class _Notice:
    user_ids: list[str]
    notification_type: str
    title: str
    message: str


class TaskLifecycleService:
    """Service driving tasks through the approval workflow."""

    def __init__(
        self,
        db: AsyncSession,
        notifier: NotificationService | None = None,
        clock: Clock = utcnow,
    ):
        self.db = db
        self.clock = clock
        self.notifier = notifier or NotificationService(db)
        self.revisions = RevisionCycleManager(clock)
        self.social = SocialHandoverService(db)
        self.workflows = WorkflowTemplateService(db)

    # =========================================================================
    # Loading
    # =========================================================================

    async def get_task(self, task_id: UUID) -> Task:
        """Read the task fresh from the store."""
        result = await self.db.execute(
            select(Task)
            .where(Task.id == task_id)
            .execution_options(populate_existing=True)
        )
        task = result.scalar_one_or_none()
        if task is None:
            raise NotFoundError("Task", task_id)
        return task

    async def get_steps(self, task_id: UUID) -> list[ApprovalStep]:
        """Approval steps of a task, ordered by level."""
        result = await self.db.execute(
            select(ApprovalStep)
            .where(ApprovalStep.task_id == task_id)
            .order_by(ApprovalStep.level)
            .execution_options(populate_existing=True)
        )
        return list(result.scalars().all())

    async def get_client_approval(self, task_id: UUID) -> ClientApproval | None:
        result = await self.db.execute(
            select(ClientApproval)
            .where(ClientApproval.task_id == task_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def revision_candidates(self, task_id: UUID) -> list[str]:
        """Users the active approver may hand a revision to."""
        task = await self.get_task(task_id)
        steps = await self.get_steps(task_id)
        gate = active_gate(steps)
        if gate is None:
            return list(task.assignee_ids or [])
        return revision_candidates(task, steps, gate.level)

    # =========================================================================
    # Create
    # =========================================================================

    async def create_task(
        self,
        created_by_id: UUID,
        title: str,
        project_id: UUID | None = None,
        assignee_ids: list[UUID] | None = None,
        description: str | None = None,
        voice_over: str | None = None,
        text_direction: str = "auto",
        department: str | None = None,
        task_type: str | None = None,
        priority: str = "medium",
        start_date: datetime | None = None,
        due_date: datetime | None = None,
        workflow_template_id: UUID | None = None,
        auto_workflow: bool = True,
        requires_social_post: bool = False,
        social_platforms: list[str] | None = None,
        social_manager_id: UUID | None = None,
        publishing_notes: str | None = None,
    ) -> Task:
        """
        Create a task and attach its workflow.

        The workflow is the explicit ``workflow_template_id`` if given,
        otherwise (with ``auto_workflow``) the active workflow for the
        task's department and type. Tasks with a workflow start
        ``in_progress``; tasks without one start ``assigned``.
        ``is_client_approval_required`` is copied from the template and
        never changes afterwards.

        Raises:
            NotFoundError: if ``workflow_template_id`` does not exist
        """
        template: WorkflowTemplate | None = None
        if workflow_template_id is not None:
            template = await self.workflows.get_template(workflow_template_id)
        elif auto_workflow:
            template = await self.workflows.get_active_workflow(department, task_type)

        task = Task(
            id=uuid4(),
            title=title,
            description=description,
            voice_over=voice_over,
            text_direction=text_direction,
            project_id=project_id,
            created_by_id=created_by_id,
            assignee_ids=[str(uid) for uid in (assignee_ids or [])],
            department=department,
            task_type=task_type,
            priority=priority,
            start_date=start_date,
            due_date=due_date,
            status=(TaskStatus.IN_PROGRESS if template else TaskStatus.ASSIGNED).value,
            workflow_template_id=template.id if template else None,
            current_approval_level=0,
            is_client_approval_required=bool(template and template.requires_client_approval),
            revision_context=None,
            revision_history=[],
            requires_social_post=requires_social_post,
            social_platforms=list(social_platforms or []),
            social_manager_id=social_manager_id,
            publishing_notes=publishing_notes,
            is_archived=False,
        )

        async with atomic_batch(self.db, "task.create"):
            self.db.add(task)
            self._record(task, "created", created_by_id, from_status=None)

        logger.info(
            "task_created",
            task_id=str(task.id),
            workflow_template_id=str(task.workflow_template_id) if template else None,
            status=task.status,
        )
        await self._dispatch(
            task,
            created_by_id,
            [
                _Notice(
                    task.assignee_ids,
                    "task_assigned",
                    f"New task: {task.title}",
                    f"You have been assigned '{task.title}'",
                )
            ],
        )
        return task

    # =========================================================================
    # Start
    # =========================================================================

    async def start(self, task_id: UUID, actor_id: UUID) -> TransitionResult:
        """Pick up a ``new``/``assigned`` task and move it to ``in_progress``."""
        task = await self.get_task(task_id)
        from_status = task.status

        rejected = self._check_editable(task, "start")
        if rejected:
            return rejected
        if task.status not in STARTABLE_STATUSES:
            return self._reject(
                task,
                "start",
                Rejection.INVALID_TRANSITION,
                f"A task that is {task.status} cannot be started.",
            )
        if not task.is_assignee(actor_id):
            return self._reject(
                task, "start", Rejection.NOT_AUTHORIZED, "Only an assignee can start this task."
            )

        async with atomic_batch(self.db, "task.start"):
            task.status = TaskStatus.IN_PROGRESS.value
            self._record(task, "started", actor_id, from_status)

        return TransitionResult(task=task, action="start", from_status=from_status)

    # =========================================================================
    # Submit
    # =========================================================================

    async def submit(self, task_id: UUID, actor_id: UUID) -> TransitionResult:
        """
        Submit a task for review (or finish it when it has no workflow).

        - ``revisions_required`` with an active revision: hand over to the
          revision cycle; the requesting gate reopens at its own level.
        - First submission with a workflow: instantiate the approval chain
          and move to ``awaiting_review`` in the same batch.
        - No workflow: run the social handover and complete the task.
        - An existing chain is never regenerated; the task re-enters the
          gate its chain currently stands at.

        Args:
            task_id: Task to submit
            actor_id: Submitting user; must be an assignee

        Returns:
            TransitionResult; rejected if the task is not submittable or the
            actor is not an assignee

        Raises:
            MissingReferenceError: the workflow template is gone or an
                approver cannot be resolved; nothing is written
        """
        task = await self.get_task(task_id)
        from_status = task.status

        rejected = self._check_editable(task, "submit")
        if rejected:
            return rejected
        if task.status not in SUBMITTABLE_STATUSES:
            return self._reject(
                task,
                "submit",
                Rejection.INVALID_TRANSITION,
                f"A task that is {task.status} cannot be submitted.",
            )
        if not task.is_assignee(actor_id):
            return self._reject(
                task,
                "submit",
                Rejection.NOT_AUTHORIZED,
                "You are not authorized to advance this task.",
            )

        steps = await self.get_steps(task.id)

        if task.status == TaskStatus.REVISIONS_REQUIRED and active_revision(task):
            return await self._submit_revision(task, steps, actor_id, from_status)

        if steps:
            return await self._reenter_chain(task, steps, actor_id, from_status)

        if task.workflow_template_id is None:
            async with atomic_batch(self.db, "task.complete"):
                social_post = await self._complete(task, actor_id)
                self._record(task, "completed", actor_id, from_status)
            logger.info("task_completed_without_workflow", task_id=str(task.id))
            await self._dispatch(task, actor_id, [self._completed_notice(task)])
            return TransitionResult(
                task=task, action="submit", from_status=from_status, social_post=social_post
            )

        new_steps = await self._build_chain(task)
        async with atomic_batch(self.db, "task.submit"):
            self.db.add_all(new_steps)
            task.status = TaskStatus.AWAITING_REVIEW.value
            task.current_approval_level = new_steps[0].level
            self._record(
                task, "submitted", actor_id, from_status, extra={"steps": len(new_steps)}
            )

        logger.info(
            "task_submitted",
            task_id=str(task.id),
            steps_created=len(new_steps),
            first_approver=new_steps[0].approver_id,
        )
        await self._dispatch(task, actor_id, [self._approval_notice(task, new_steps[0])])
        return TransitionResult(task=task, action="submit", from_status=from_status)

    async def _build_chain(self, task: Task) -> list[ApprovalStep]:
        """Resolve every approver for the task's workflow; raise if any is missing."""
        result = await self.db.execute(
            select(WorkflowTemplate).where(WorkflowTemplate.id == task.workflow_template_id)
        )
        template = result.scalar_one_or_none()
        if template is None:
            raise MissingReferenceError.for_entity("workflow_template", task.workflow_template_id)
        if not template.steps:
            raise EmptyWorkflowError(template.id)

        directory = await load_directory(self.db, task.project_id, template.steps)
        steps = generate_approval_steps(template, task, directory)

        missing = unresolved_steps(steps)
        if missing:
            logger.warning(
                "approver_unresolved",
                task_id=str(task.id),
                template_id=str(template.id),
                levels=[s.level for s in missing],
            )
            raise UnresolvedApproverError(task.id, missing[0].level, missing[0].label)
        return steps

    async def _submit_revision(
        self,
        task: Task,
        steps: list[ApprovalStep],
        actor_id: UUID,
        from_status: str,
    ) -> TransitionResult:
        async with atomic_batch(self.db, "task.submit_revision"):
            reopened = self.revisions.submit_revision(task, steps, actor_id)
            self._record(
                task,
                "revision_submitted",
                actor_id,
                from_status,
                extra={"cycle": (task.revision_context or {}).get("cycle")},
            )

        await self._dispatch(
            task,
            actor_id,
            [
                _Notice(
                    [reopened.approver_id],
                    "revision_submitted",
                    f"Revision submitted: {task.title}",
                    f"'{task.title}' has been revised and is back in your approval queue",
                )
            ],
        )
        return TransitionResult(task=task, action="submit", from_status=from_status)

    async def _reenter_chain(
        self,
        task: Task,
        steps: list[ApprovalStep],
        actor_id: UUID,
        from_status: str,
    ) -> TransitionResult:
        """Resubmit a task whose chain exists but has no active revision."""
        gate = active_gate(steps) or next(
            (s for s in steps if s.status == ApprovalStepStatus.REVISION_REQUESTED), None
        )
        if gate is None and not chain_is_complete(steps):
            return self._reject(
                task,
                "submit",
                Rejection.INVALID_TRANSITION,
                "The approval chain has no open step to return to.",
            )

        notices: list[_Notice] = []
        social_post = None
        async with atomic_batch(self.db, "task.resubmit"):
            if gate is not None:
                gate.status = ApprovalStepStatus.PENDING.value
                gate.reviewed_at = None
                task.status = TaskStatus.AWAITING_REVIEW.value
                task.current_approval_level = gate.level
                notices.append(self._approval_notice(task, gate))
            elif task.is_client_approval_required:
                approval = await self._ensure_client_approval(task)
                approval.status = ClientApprovalStatus.PENDING.value
                approval.reviewed_at = None
                approval.reviewed_by_id = None
                task.status = TaskStatus.CLIENT_REVIEW.value
            else:
                social_post = await self._finish_approved(task, actor_id, TaskStatus.APPROVED)
            self._record(task, "resubmitted", actor_id, from_status)

        logger.info("task_resubmitted", task_id=str(task.id), status=task.status)
        await self._dispatch(task, actor_id, notices)
        return TransitionResult(
            task=task, action="submit", from_status=from_status, social_post=social_post
        )

    # =========================================================================
    # Approve
    # =========================================================================

    async def approve(
        self,
        task_id: UUID,
        actor_id: UUID,
        comment: str | None = None,
    ) -> TransitionResult:
        """
        Approve the active gate and advance the chain.

        The next level's step becomes pending; after the last step the task
        goes to client review (if required) or through the social handover
        to ``approved``/``completed``. An outstanding revision is resolved
        by the approval.

        Returns:
            TransitionResult; rejected unless the task is awaiting review
            and the actor owns its single pending step
        """
        task = await self.get_task(task_id)
        from_status = task.status

        rejected = self._check_editable(task, "approve")
        if rejected:
            return rejected
        if task.status != TaskStatus.AWAITING_REVIEW:
            return self._reject(
                task, "approve", Rejection.INVALID_TRANSITION, "This task is not awaiting review."
            )

        steps = await self.get_steps(task.id)
        gate, rejected = self._locate_gate(task, steps, actor_id, "approve")
        if rejected:
            return rejected

        notices: list[_Notice] = []
        social_post = None
        async with atomic_batch(self.db, "task.approve"):
            gate.status = ApprovalStepStatus.APPROVED.value
            gate.reviewed_at = self.clock()
            gate.comment = comment or "Approved"
            self.revisions.resolve_on_approval(task, actor_id)

            next_step = step_at_level(steps, gate.level + 1)
            if next_step is not None:
                next_step.status = ApprovalStepStatus.PENDING.value
                task.current_approval_level = next_step.level
                notices.append(self._approval_notice(task, next_step))
            elif task.is_client_approval_required:
                await self._ensure_client_approval(task)
                task.status = TaskStatus.CLIENT_REVIEW.value
                notices.append(
                    _Notice(
                        task.assignee_ids,
                        "client_review_requested",
                        f"Client review: {task.title}",
                        f"'{task.title}' passed internal approval and is with the client",
                    )
                )
            else:
                social_post = await self._finish_approved(task, actor_id, TaskStatus.APPROVED)
                notices.append(
                    _Notice(
                        task.assignee_ids,
                        "task_approved",
                        f"Approved: {task.title}",
                        f"'{task.title}' has been fully approved",
                    )
                )

            self._record(task, "approved", actor_id, from_status, extra={"level": gate.level})

        logger.info(
            "approval_step_approved",
            task_id=str(task.id),
            level=gate.level,
            status=task.status,
            current_level=task.current_approval_level,
        )
        await self._dispatch(task, actor_id, notices)
        return TransitionResult(
            task=task, action="approve", from_status=from_status, social_post=social_post
        )

    # =========================================================================
    # Request Revision
    # =========================================================================

    async def request_revision(
        self,
        task_id: UUID,
        actor_id: UUID,
        message: str,
        assignee_id: UUID,
    ) -> TransitionResult:
        """
        Send the task back for changes from the active gate.

        Args:
            task_id: Task under review
            actor_id: Approver of the active gate
            message: Required description of what must change
            assignee_id: Revisor; a current assignee or an earlier approver

        Returns:
            TransitionResult; the task ends ``revisions_required`` and is
            assigned to the revisor alone
        """
        task = await self.get_task(task_id)
        from_status = task.status

        rejected = self._check_editable(task, "request_revision")
        if rejected:
            return rejected
        if task.status != TaskStatus.AWAITING_REVIEW:
            return self._reject(
                task,
                "request_revision",
                Rejection.INVALID_TRANSITION,
                "This task is not awaiting review.",
            )

        steps = await self.get_steps(task.id)
        gate, rejected = self._locate_gate(task, steps, actor_id, "request_revision")
        if rejected:
            return rejected

        message = (message or "").strip()
        if not message:
            return self._reject(
                task,
                "request_revision",
                Rejection.INVALID_TRANSITION,
                "A revision message is required.",
            )
        if str(assignee_id) not in revision_candidates(task, steps, gate.level):
            return self._reject(
                task,
                "request_revision",
                Rejection.INVALID_TRANSITION,
                "Revisions can only be assigned to a current assignee or an earlier approver.",
            )

        async with atomic_batch(self.db, "task.request_revision"):
            context = self.revisions.request_revision(task, gate, actor_id, assignee_id, message)
            self._record(
                task,
                "revision_requested",
                actor_id,
                from_status,
                extra={"cycle": context.cycle, "message": message},
            )

        await self._dispatch(
            task,
            actor_id,
            [
                _Notice(
                    [str(assignee_id)],
                    "revision_requested",
                    f"Revision requested: {task.title}",
                    message,
                )
            ],
        )
        return TransitionResult(task=task, action="request_revision", from_status=from_status)

    # =========================================================================
    # Client decision
    # =========================================================================

    async def client_decision(
        self,
        task_id: UUID,
        actor_id: UUID,
        approved: bool,
        comment: str | None = None,
    ) -> TransitionResult:
        """
        Record the client's verdict on a task in ``client_review``.

        Approval runs the social handover and moves the task on; rejection
        sends it back to ``revisions_required`` with its assignees intact.
        The actor is whoever relays the client's decision; permission to do
        so is checked by the caller.
        """
        task = await self.get_task(task_id)
        from_status = task.status

        rejected = self._check_editable(task, "client_decision")
        if rejected:
            return rejected
        if task.status != TaskStatus.CLIENT_REVIEW:
            return self._reject(
                task,
                "client_decision",
                Rejection.INVALID_TRANSITION,
                "This task is not waiting for the client.",
            )

        approval = await self.get_client_approval(task.id)
        if approval is not None and approval.status != ClientApprovalStatus.PENDING:
            return self._reject(
                task,
                "client_decision",
                Rejection.INVALID_TRANSITION,
                "The client has already decided on this task.",
            )

        notices: list[_Notice] = []
        social_post = None
        async with atomic_batch(self.db, "task.client_decision"):
            if approval is None:
                approval = await self._ensure_client_approval(task)
            approval.reviewed_by_id = actor_id
            approval.reviewed_at = self.clock()
            approval.comment = comment

            if approved:
                approval.status = ClientApprovalStatus.APPROVED.value
                social_post = await self._finish_approved(
                    task, actor_id, TaskStatus.CLIENT_APPROVED
                )
                notices.append(
                    _Notice(
                        task.assignee_ids,
                        "task_approved",
                        f"Client approved: {task.title}",
                        comment or f"The client approved '{task.title}'",
                    )
                )
            else:
                approval.status = ClientApprovalStatus.REJECTED.value
                task.status = TaskStatus.REVISIONS_REQUIRED.value
                notices.append(
                    _Notice(
                        task.assignee_ids,
                        "revision_requested",
                        f"Client requested changes: {task.title}",
                        comment or f"The client rejected '{task.title}'",
                    )
                )
            self._record(
                task,
                "client_approved" if approved else "client_rejected",
                actor_id,
                from_status,
                extra={"comment": comment} if comment else None,
            )

        await self._dispatch(task, actor_id, notices)
        return TransitionResult(
            task=task, action="client_decision", from_status=from_status, social_post=social_post
        )

    # =========================================================================
    # Complete
    # =========================================================================

    async def complete(self, task_id: UUID, actor_id: UUID) -> TransitionResult:
        """Close an ``approved``/``client_approved`` task."""
        task = await self.get_task(task_id)
        from_status = task.status

        rejected = self._check_editable(task, "complete")
        if rejected:
            return rejected
        if task.status not in COMPLETABLE_STATUSES:
            return self._reject(
                task,
                "complete",
                Rejection.INVALID_TRANSITION,
                f"A task that is {task.status} cannot be completed.",
            )

        steps = await self.get_steps(task.id)
        if not task.is_assignee(actor_id) and str(actor_id) not in approver_ids(steps):
            return self._reject(
                task,
                "complete",
                Rejection.NOT_AUTHORIZED,
                "Only an assignee or an approver can complete this task.",
            )

        async with atomic_batch(self.db, "task.complete"):
            social_post = await self._complete(task, actor_id)
            self._record(task, "completed", actor_id, from_status)

        await self._dispatch(task, actor_id, [self._completed_notice(task)])
        return TransitionResult(
            task=task, action="complete", from_status=from_status, social_post=social_post
        )

    # =========================================================================
    # Helpers
    # =========================================================================

    async def _complete(self, task: Task, actor_id: UUID) -> SocialPost | None:
        social_post = await self.social.ensure_post(task, actor_id)
        task.status = TaskStatus.COMPLETED.value
        task.completed_at = self.clock()
        return social_post

    async def _finish_approved(
        self,
        task: Task,
        actor_id: UUID,
        approved_status: TaskStatus,
    ) -> SocialPost | None:
        """Final approval: hand over to social, then stop at ``approved_status``.

        Without a social post requirement there is no further gate and the
        task completes directly.
        """
        social_post = await self.social.ensure_post(task, actor_id)
        if task.requires_social_post:
            task.status = approved_status.value
        else:
            task.status = TaskStatus.COMPLETED.value
            task.completed_at = self.clock()
        return social_post

    async def _ensure_client_approval(self, task: Task) -> ClientApproval:
        approval = await self.get_client_approval(task.id)
        if approval is not None:
            return approval

        client_id = None
        if task.project_id is not None:
            result = await self.db.execute(
                select(Project.client_id).where(Project.id == task.project_id)
            )
            client_id = result.scalar_one_or_none()

        approval = ClientApproval(
            id=uuid4(),
            task_id=task.id,
            client_id=client_id,
            status=ClientApprovalStatus.PENDING.value,
        )
        self.db.add(approval)
        return approval

    def _locate_gate(
        self,
        task: Task,
        steps: list[ApprovalStep],
        actor_id: UUID,
        action: str,
    ) -> tuple[ApprovalStep | None, TransitionResult | None]:
        """Find the single pending step and check the actor owns it."""
        pending = pending_steps(steps)
        if not pending:
            return None, self._reject(
                task, action, Rejection.INVALID_TRANSITION, "No approval step is currently open."
            )
        if len(pending) > 1:
            logger.warning(
                "approval_chain_inconsistent",
                task_id=str(task.id),
                pending_levels=[s.level for s in pending],
            )
            return None, self._reject(
                task,
                action,
                Rejection.INVALID_TRANSITION,
                "The approval chain is in an inconsistent state; please reload and try again.",
            )

        gate = pending[0]
        if gate.approver_id != str(actor_id):
            return None, self._reject(
                task,
                action,
                Rejection.NOT_AUTHORIZED,
                "Only the current approver can act on this step.",
            )
        return gate, None

    def _check_editable(self, task: Task, action: str) -> TransitionResult | None:
        if task.is_archived:
            return self._reject(
                task,
                action,
                Rejection.INVALID_TRANSITION,
                "Archived tasks cannot be changed; restore the task first.",
            )
        return None

    def _reject(
        self,
        task: Task,
        action: str,
        rejection: Rejection,
        message: str,
    ) -> TransitionResult:
        logger.info(
            "transition_rejected",
            task_id=str(task.id),
            action=action,
            status=task.status,
            rejection=rejection.value,
        )
        return TransitionResult(
            task=task,
            action=action,
            from_status=task.status,
            rejection=rejection,
            message=message,
        )

    def _record(
        self,
        task: Task,
        action: str,
        actor_id: UUID | None,
        from_status: str | None,
        extra: dict[str, Any] | None = None,
    ) -> None:
        """Stage an activity row in the current batch."""
        self.db.add(
            Activity(
                activity_type=f"task.{action}",
                action=action,
                target_type="task",
                target_id=task.id,
                target_title=task.title,
                from_status=from_status,
                to_status=task.status,
                project_id=task.project_id,
                actor_id=actor_id,
                extra_data=extra,
            )
        )

    @staticmethod
    def _approval_notice(task: Task, step: ApprovalStep) -> _Notice:
        return _Notice(
            [step.approver_id],
            "approval_request",
            f"Approval needed: {task.title}",
            f"'{task.title}' is waiting for your approval (step {step.level + 1})",
        )

    @staticmethod
    def _completed_notice(task: Task) -> _Notice:
        recipients = list(task.assignee_ids or [])
        if task.created_by_id and str(task.created_by_id) not in recipients:
            recipients.append(str(task.created_by_id))
        return _Notice(
            recipients,
            "task_completed",
            f"Completed: {task.title}",
            f"'{task.title}' has been completed",
        )

    async def _dispatch(self, task: Task, actor_id: UUID, notices: list[_Notice]) -> None:
        """Send notifications after the batch committed; failures never propagate."""
        for notice in notices:
            if not notice.user_ids:
                continue
            try:
                await self.notifier.notify_many(
                    notice.user_ids,
                    notification_type=notice.notification_type,
                    title=notice.title,
                    message=notice.message,
                    target_type="task",
                    target_id=task.id,
                    sender_id=actor_id,
                )
            except Exception as exc:
                logger.warning(
                    "notification_dispatch_failed",
                    task_id=str(task.id),
                    notification_type=notice.notification_type,
                    error=str(exc),
                )


def get_task_lifecycle_service(db: AsyncSession) -> TaskLifecycleService:
    """Factory function to create a TaskLifecycleService instance."""
    return TaskLifecycleService(db)

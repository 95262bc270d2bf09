"""Production planning: plan generation, editing, archiving and roster checks.

A production plan groups content calendar items and existing tasks with a
team roster for one shoot date. Creating a plan fans out into concrete
tasks (one per calendar item, one copy per manual task) and one
assignment row per roster member, all in a single atomic batch.
"""

from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta, timezone
from typing import Any
from uuid import UUID, uuid4

import structlog
from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from agencyhub.config import get_settings
from agencyhub.db.batch import atomic_batch
from agencyhub.exceptions import (
    DomainValidationError,
    InvalidStateError,
    LeaveConflictError,
    MissingReferenceError,
    NotFoundError,
    RestoreWindowExpiredError,
)
from agencyhub.models.activity import Activity
from agencyhub.models.enums import (
    LeaveStatus,
    PlanArchiveReason,
    PlanEditMode,
    PlanStatus,
    SourceType,
    TaskPriority,
    TaskStatus,
)
from agencyhub.models.production import (
    CalendarItem,
    LeaveRequest,
    ProductionAssignment,
    ProductionPlan,
)
from agencyhub.models.project import Client
from agencyhub.models.task import Task
from agencyhub.models.user import User
from agencyhub.utils.clock import Clock, ensure_utc, isoformat, utcnow

logger = structlog.get_logger()

TASK_ARCHIVE_REASON = "plan_deleted"

# Forward-only order for advance_plan_status; ARCHIVED is reached through archive_plan
PLAN_STATUS_ORDER = [
    PlanStatus.DRAFT.value,
    PlanStatus.SCHEDULED.value,
    PlanStatus.IN_PROGRESS.value,
    PlanStatus.COMPLETED.value,
]
CLOSED_PLAN_STATUSES = (PlanStatus.COMPLETED.value, PlanStatus.ARCHIVED.value)


# =============================================================================
# Results
# =============================================================================


@dataclass(frozen=True)
class DuplicateInfo:
    """A live plan that already contains a selected item."""

    plan_id: UUID
    plan_name: str
    production_date: date


@dataclass
class PlanResult:
    plan: ProductionPlan
    tasks: list[Task] = field(default_factory=list)
    assignments: list[ProductionAssignment] = field(default_factory=list)
    duplicates: dict[str, list[DuplicateInfo]] = field(default_factory=dict)


@dataclass
class PlanUpdateResult:
    plan: ProductionPlan
    updated_task_ids: list[UUID] = field(default_factory=list)
    skipped_task_ids: list[UUID] = field(default_factory=list)
    assignments: list[ProductionAssignment] = field(default_factory=list)
    duplicates: dict[str, list[DuplicateInfo]] = field(default_factory=dict)


def production_datetime(day: date) -> datetime:
    """Production dates become midnight UTC on task date fields."""
    return datetime.combine(day, time.min, tzinfo=timezone.utc)


def _as_uuid(value: UUID | str) -> UUID:
    return value if isinstance(value, UUID) else UUID(str(value))


def _unique(ids) -> list[UUID]:
    seen: list[UUID] = []
    for raw in ids or []:
        value = _as_uuid(raw)
        if value not in seen:
            seen.append(value)
    return seen


class ProductionService:
    """Service for production plans and their generated tasks."""

    def __init__(
        self,
        db: AsyncSession,
        clock: Clock = utcnow,
        restore_window_days: int | None = None,
    ):
        self.db = db
        self.clock = clock
        self.settings = get_settings()
        self.restore_window_days = (
            restore_window_days
            if restore_window_days is not None
            else self.settings.archive_restore_window_days
        )

    # =========================================================================
    # Reads
    # =========================================================================

    async def get_plan(self, plan_id: UUID) -> ProductionPlan:
        """Read the plan fresh from the store."""
        result = await self.db.execute(
            select(ProductionPlan)
            .where(ProductionPlan.id == plan_id)
            .execution_options(populate_existing=True)
        )
        plan = result.scalar_one_or_none()
        if plan is None:
            raise NotFoundError("Production plan", plan_id)
        return plan

    async def list_plans(self, include_archived: bool = False) -> list[ProductionPlan]:
        query = select(ProductionPlan).order_by(ProductionPlan.production_date)
        if not include_archived:
            query = query.where(ProductionPlan.is_archived.is_(False))
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def get_assignments(self, plan_id: UUID) -> list[ProductionAssignment]:
        result = await self.db.execute(
            select(ProductionAssignment)
            .where(ProductionAssignment.production_plan_id == plan_id)
            .order_by(ProductionAssignment.created_at)
            .execution_options(populate_existing=True)
        )
        return list(result.scalars().all())

    async def get_plan_tasks(self, plan: ProductionPlan) -> list[Task]:
        """Tasks listed in ``generated_task_ids``, in that order; vanished ids are skipped."""
        ids = _unique(plan.generated_task_ids)
        if not ids:
            return []
        result = await self.db.execute(
            select(Task).where(Task.id.in_(ids)).execution_options(populate_existing=True)
        )
        by_id = {task.id: task for task in result.scalars().all()}
        missing = [str(task_id) for task_id in ids if task_id not in by_id]
        if missing:
            logger.warning(
                "production_plan_tasks_missing",
                plan_id=str(plan.id),
                task_ids=missing,
            )
        return [by_id[task_id] for task_id in ids if task_id in by_id]

    # =========================================================================
    # Roster checks
    # =========================================================================

    async def find_duplicates(
        self,
        calendar_item_ids: list[UUID] | None = None,
        manual_task_ids: list[UUID] | None = None,
        exclude_plan_id: UUID | None = None,
    ) -> dict[str, list[DuplicateInfo]]:
        """
        Find live plans that already include any of the selected items.

        Keys are ``cal_<id>`` for calendar items and ``task_<id>`` for
        manual tasks. Completed and archived plans are ignored, and so is
        ``exclude_plan_id`` (the plan being edited). The result is advisory.
        """
        result = await self.db.execute(
            select(ProductionPlan).where(
                ProductionPlan.status.not_in(CLOSED_PLAN_STATUSES),
                ProductionPlan.is_archived.is_(False),
            )
        )
        plans = [plan for plan in result.scalars().all() if plan.id != exclude_plan_id]

        duplicates: dict[str, list[DuplicateInfo]] = {}
        for prefix, selected, attr in (
            ("cal", calendar_item_ids, "calendar_item_ids"),
            ("task", manual_task_ids, "manual_task_ids"),
        ):
            for item_id in _unique(selected):
                in_plans = [
                    DuplicateInfo(plan.id, plan.name, plan.production_date)
                    for plan in plans
                    if str(item_id) in (getattr(plan, attr) or [])
                ]
                if in_plans:
                    duplicates[f"{prefix}_{item_id}"] = in_plans
        return duplicates

    async def find_leave_conflicts(
        self, user_ids: list[UUID], production_date: date
    ) -> list[LeaveRequest]:
        """Approved leave requests of ``user_ids`` that cover ``production_date``."""
        if not user_ids:
            return []
        result = await self.db.execute(
            select(LeaveRequest)
            .where(
                LeaveRequest.user_id.in_(_unique(user_ids)),
                LeaveRequest.status == LeaveStatus.APPROVED.value,
                LeaveRequest.start_date <= production_date,
                LeaveRequest.end_date >= production_date,
            )
            .order_by(LeaveRequest.start_date)
        )
        return list(result.scalars().all())

    async def member_workload(
        self,
        user_id: UUID,
        production_date: date,
        exclude_plan_id: UUID | None = None,
    ) -> int:
        """Number of other live plans ``user_id`` is booked on for that date."""
        result = await self.db.execute(
            select(ProductionAssignment).where(
                ProductionAssignment.user_id == user_id,
                ProductionAssignment.production_date == production_date,
                ProductionAssignment.status.not_in(CLOSED_PLAN_STATUSES),
            )
        )
        return sum(
            1
            for assignment in result.scalars().all()
            if assignment.production_plan_id != exclude_plan_id
        )

    async def count_active_tasks(self, plan_id: UUID) -> int:
        """Generated tasks already past ``new``; a SAFE edit leaves these alone."""
        plan = await self.get_plan(plan_id)
        return sum(
            1
            for task in await self.get_plan_tasks(plan)
            if task.status != TaskStatus.NEW and not task.is_archived
        )

    # =========================================================================
    # Create / generate
    # =========================================================================

    async def create_plan(
        self,
        created_by_id: UUID,
        name: str,
        production_date: date,
        team_member_ids: list[UUID],
        calendar_item_ids: list[UUID] | None = None,
        manual_task_ids: list[UUID] | None = None,
        client_id: UUID | None = None,
        notes: str | None = None,
        conflict_overrides: dict[UUID, str] | None = None,
    ) -> PlanResult:
        """
        Create a plan and generate its tasks and assignments.

        Args:
            created_by_id: Actor creating the plan
            name: Plan name
            production_date: The single shoot date
            team_member_ids: Roster; every member is assigned to every task
            calendar_item_ids: Calendar items to produce
            manual_task_ids: Existing tasks to copy into production
            client_id: Client the shoot is for
            notes: Free-text notes
            conflict_overrides: Reasons keyed by user id for roster members
                on approved leave

        Returns:
            The plan, generated tasks, assignments and advisory duplicates

        Raises:
            DomainValidationError: if nothing is selected or the roster is empty
            LeaveConflictError: if a roster member is on leave without override
            MissingReferenceError: if a selected item or task no longer exists
        """
        calendar_ids = _unique(calendar_item_ids)
        manual_ids = _unique(manual_task_ids)
        roster = _unique(team_member_ids)
        if not name or not name.strip():
            raise DomainValidationError("Production plan needs a name")
        if not calendar_ids and not manual_ids:
            raise DomainValidationError("Select at least one calendar item or task to produce")
        if not roster:
            raise DomainValidationError("Select at least one team member")

        items = await self._load_calendar_items(calendar_ids)
        sources = await self._load_manual_tasks(manual_ids)
        overrides = await self._resolve_overrides(
            roster, production_date, conflict_overrides or {}, {}, created_by_id
        )
        duplicates = await self.find_duplicates(calendar_ids, manual_ids)
        client_name = await self._client_name(client_id)

        plan = ProductionPlan(
            id=uuid4(),
            name=name.strip(),
            client_id=client_id,
            client_name=client_name,
            production_date=production_date,
            status=PlanStatus.DRAFT.value,
            notes=notes,
            calendar_item_ids=[str(i) for i in calendar_ids],
            manual_task_ids=[str(i) for i in manual_ids],
            team_member_ids=[str(i) for i in roster],
            conflict_overrides=overrides,
            generated_task_ids=[],
            created_by_id=created_by_id,
            is_archived=False,
        )

        async with atomic_batch(self.db, "production_plan.create"):
            self.db.add(plan)
            await self.db.flush()
            tasks, assignments = self._stage_generation(plan, items, sources, created_by_id)
            self._record(plan, "created", created_by_id, {"tasks": len(tasks)})

        logger.info(
            "production_plan_created",
            plan_id=str(plan.id),
            production_date=plan.production_date.isoformat(),
            tasks=len(tasks),
            assignments=len(assignments),
            duplicates=len(duplicates),
        )
        return PlanResult(plan, tasks, assignments, duplicates)

    def _stage_generation(
        self,
        plan: ProductionPlan,
        items: list[CalendarItem],
        sources: list[Task],
        actor_id: UUID,
    ) -> tuple[list[Task], list[ProductionAssignment]]:
        """Add generated tasks and assignments to the open batch."""
        shoot_at = production_datetime(plan.production_date)
        roster = list(plan.team_member_ids or [])
        tasks: list[Task] = []

        for item in items:
            task = Task(
                id=uuid4(),
                title=f"{self.settings.production_calendar_title_prefix}{item.auto_name}",
                description=item.primary_brief,
                department=self.settings.production_department,
                task_type=(item.item_type or "").lower() or None,
                priority=TaskPriority.MEDIUM.value,
                status=TaskStatus.NEW.value,
                start_date=shoot_at,
                due_date=shoot_at,
                assignee_ids=list(roster),
                created_by_id=actor_id,
                current_approval_level=0,
                is_client_approval_required=False,
                revision_context=None,
                revision_history=[],
                social_platforms=[],
                production_plan_id=plan.id,
                source_type=SourceType.CALENDAR.value,
                source_calendar_item_id=item.id,
                is_production_copy=True,
                is_archived=False,
            )
            tasks.append(task)
            item.task_id = task.id

        for source in sources:
            tasks.append(
                Task(
                    id=uuid4(),
                    title=f"{self.settings.production_manual_title_prefix}{source.title}"[:500],
                    description=source.description,
                    voice_over=source.voice_over,
                    text_direction=source.text_direction,
                    department=source.department,
                    task_type=source.task_type,
                    priority=source.priority,
                    project_id=source.project_id,
                    status=TaskStatus.NEW.value,
                    start_date=shoot_at,
                    due_date=shoot_at,
                    assignee_ids=list(roster),
                    created_by_id=actor_id,
                    workflow_template_id=source.workflow_template_id,
                    current_approval_level=0,
                    is_client_approval_required=source.is_client_approval_required,
                    revision_context=None,
                    revision_history=[],
                    requires_social_post=source.requires_social_post,
                    social_platforms=list(source.social_platforms or []),
                    social_manager_id=source.social_manager_id,
                    publishing_notes=source.publishing_notes,
                    production_plan_id=plan.id,
                    source_type=SourceType.MANUAL.value,
                    source_task_id=source.id,
                    is_production_copy=True,
                    is_archived=False,
                )
            )

        self.db.add_all(tasks)
        assignments = self._stage_assignments(plan, [_as_uuid(uid) for uid in roster])
        plan.generated_task_ids = [str(task.id) for task in tasks]
        return tasks, assignments

    def _stage_assignments(
        self, plan: ProductionPlan, roster: list[UUID]
    ) -> list[ProductionAssignment]:
        assignments = [
            ProductionAssignment(
                id=uuid4(),
                production_plan_id=plan.id,
                user_id=user_id,
                production_date=plan.production_date,
                plan_name=plan.name,
                client_name=plan.client_name,
                item_count=plan.item_count,
                status=plan.status,
            )
            for user_id in roster
        ]
        self.db.add_all(assignments)
        return assignments

    # =========================================================================
    # Edit
    # =========================================================================

    async def update_plan(
        self,
        plan_id: UUID,
        actor_id: UUID,
        mode: PlanEditMode | str = PlanEditMode.SAFE,
        name: str | None = None,
        production_date: date | None = None,
        team_member_ids: list[UUID] | None = None,
        calendar_item_ids: list[UUID] | None = None,
        manual_task_ids: list[UUID] | None = None,
        conflict_overrides: dict[UUID, str] | None = None,
        notes: str | None = None,
        force_reason: str | None = None,
    ) -> PlanUpdateResult:
        """
        Edit a plan and push roster/date changes onto its generated tasks.

        SAFE touches only tasks still ``new``; FORCE updates every live task
        and stamps the justification on it. Tasks archived on their own are
        skipped in both modes. Assignment rows are rebuilt from
        the new roster. Changing the item selection is stored on the plan
        but does not add or remove generated tasks.

        Raises:
            InvalidStateError: if the plan is archived
            DomainValidationError: for FORCE without a reason
            LeaveConflictError: if the new roster/date hits unapproved leave
        """
        mode = PlanEditMode(mode)
        plan = await self.get_plan(plan_id)
        if plan.is_archived:
            raise InvalidStateError("Archived plans cannot be edited", plan.status)
        reason = (force_reason or "").strip()
        if mode == PlanEditMode.FORCE and not reason:
            raise DomainValidationError(
                "A FORCE update needs a reason",
                details={"mode": mode.value},
                code="FORCE_REASON_REQUIRED",
            )

        new_date = production_date or plan.production_date
        roster = (
            _unique(team_member_ids)
            if team_member_ids is not None
            else _unique(plan.team_member_ids)
        )
        if not roster:
            raise DomainValidationError("Select at least one team member")
        calendar_ids = (
            _unique(calendar_item_ids)
            if calendar_item_ids is not None
            else _unique(plan.calendar_item_ids)
        )
        manual_ids = (
            _unique(manual_task_ids)
            if manual_task_ids is not None
            else _unique(plan.manual_task_ids)
        )
        if not calendar_ids and not manual_ids:
            raise DomainValidationError("Select at least one calendar item or task to produce")

        overrides = await self._resolve_overrides(
            roster, new_date, conflict_overrides or {}, plan.conflict_overrides or {}, actor_id
        )
        duplicates = await self.find_duplicates(calendar_ids, manual_ids, exclude_plan_id=plan.id)
        tasks = await self.get_plan_tasks(plan)

        now = self.clock()
        shoot_at = production_datetime(new_date)
        updated: list[UUID] = []
        skipped: list[UUID] = []

        async with atomic_batch(self.db, "production_plan.update"):
            if name is not None and name.strip():
                plan.name = name.strip()
            if notes is not None:
                plan.notes = notes
            plan.production_date = new_date
            plan.team_member_ids = [str(uid) for uid in roster]
            plan.calendar_item_ids = [str(i) for i in calendar_ids]
            plan.manual_task_ids = [str(i) for i in manual_ids]
            plan.conflict_overrides = overrides
            plan.last_edit_mode = mode.value
            plan.force_update_reason = reason if mode == PlanEditMode.FORCE else None

            for task in tasks:
                # Individually archived tasks only change through restore
                if task.is_archived:
                    skipped.append(task.id)
                    continue
                if mode == PlanEditMode.SAFE and task.status != TaskStatus.NEW:
                    skipped.append(task.id)
                    continue
                task.assignee_ids = [str(uid) for uid in roster]
                task.start_date = shoot_at
                task.due_date = shoot_at
                if mode == PlanEditMode.FORCE:
                    task.force_update_reason = reason
                    task.force_updated_at = now
                updated.append(task.id)

            await self.db.execute(
                delete(ProductionAssignment).where(
                    ProductionAssignment.production_plan_id == plan.id
                )
            )
            assignments = self._stage_assignments(plan, roster)
            self._record(
                plan,
                "updated",
                actor_id,
                {
                    "mode": mode.value,
                    "updated": len(updated),
                    "skipped": len(skipped),
                    "reason": reason or None,
                },
            )

        logger.info(
            "production_plan_updated",
            plan_id=str(plan.id),
            mode=mode.value,
            updated=len(updated),
            skipped=len(skipped),
        )
        return PlanUpdateResult(plan, updated, skipped, assignments, duplicates)

    async def advance_plan_status(
        self, plan_id: UUID, status: PlanStatus | str, actor_id: UUID
    ) -> ProductionPlan:
        """Move a plan forward (DRAFT → SCHEDULED → IN_PROGRESS → COMPLETED)."""
        target = PlanStatus(status).value
        plan = await self.get_plan(plan_id)
        if plan.is_archived:
            raise InvalidStateError("Archived plans cannot change status", plan.status)
        if target not in PLAN_STATUS_ORDER:
            raise InvalidStateError(f"Use archive to move a plan to {target}", plan.status)
        if target == plan.status:
            return plan
        if PLAN_STATUS_ORDER.index(target) < PLAN_STATUS_ORDER.index(plan.status):
            raise InvalidStateError(
                f"Cannot move plan from {plan.status} back to {target}", plan.status
            )

        from_status = plan.status
        assignments = await self.get_assignments(plan.id)
        async with atomic_batch(self.db, "production_plan.status"):
            plan.status = target
            for assignment in assignments:
                assignment.status = target
            self._record(plan, "status_changed", actor_id, {"from": from_status, "to": target})

        logger.info(
            "production_plan_status_changed",
            plan_id=str(plan.id),
            from_status=from_status,
            to_status=target,
        )
        return plan

    # =========================================================================
    # Archive / restore
    # =========================================================================

    async def archive_plan(
        self,
        plan_id: UUID,
        actor_id: UUID,
        reason: PlanArchiveReason | str = PlanArchiveReason.USER_DELETED,
    ) -> ProductionPlan:
        """
        Archive a plan with its generated tasks and assignments.

        ``generated_task_ids`` is re-read here, never taken from a caller's
        copy. Tasks already archived on their own keep their own archive
        stamps. Task statuses are left unchanged.

        Raises:
            InvalidStateError: if the plan is already archived
        """
        reason = PlanArchiveReason(reason).value
        plan = await self.get_plan(plan_id)
        if plan.is_archived:
            raise InvalidStateError("Production plan is already archived", plan.status)

        tasks = await self.get_plan_tasks(plan)
        assignments = await self.get_assignments(plan.id)
        now = self.clock()

        async with atomic_batch(self.db, "production_plan.archive"):
            plan.status = PlanStatus.ARCHIVED.value
            plan.is_archived = True
            plan.archived_at = now
            plan.archived_by_id = actor_id
            plan.archive_reason = reason
            plan.can_restore_until = now + timedelta(days=self.restore_window_days)

            archived = 0
            for task in tasks:
                if task.is_archived:
                    continue
                task.is_archived = True
                task.archived_at = now
                task.archived_by_id = actor_id
                task.archive_reason = TASK_ARCHIVE_REASON
                archived += 1
            for assignment in assignments:
                assignment.status = PlanStatus.ARCHIVED.value
            self._record(plan, "archived", actor_id, {"reason": reason, "tasks": archived})

        logger.info(
            "production_plan_archived",
            plan_id=str(plan.id),
            tasks=archived,
            assignments=len(assignments),
            can_restore_until=isoformat(plan.can_restore_until),
        )
        return plan

    async def restore_plan(self, plan_id: UUID, actor_id: UUID) -> ProductionPlan:
        """
        Restore an archived plan to DRAFT with its tasks and assignments.

        Raises:
            InvalidStateError: if the plan is not archived
            RestoreWindowExpiredError: if ``can_restore_until`` has passed
        """
        plan = await self.get_plan(plan_id)
        if not plan.is_archived:
            raise InvalidStateError("Production plan is not archived", plan.status)

        deadline = ensure_utc(plan.can_restore_until)
        if deadline is not None and self.clock() > deadline:
            logger.info(
                "production_plan_restore_expired",
                plan_id=str(plan.id),
                deadline=isoformat(deadline),
            )
            raise RestoreWindowExpiredError(
                "Production plan", plan.id, deadline, window_days=self.restore_window_days
            )

        tasks = await self.get_plan_tasks(plan)
        assignments = await self.get_assignments(plan.id)

        async with atomic_batch(self.db, "production_plan.restore"):
            plan.clear_archive()
            plan.can_restore_until = None
            plan.status = PlanStatus.DRAFT.value

            restored = 0
            for task in tasks:
                if task.archive_reason != TASK_ARCHIVE_REASON:
                    continue
                task.clear_archive()
                restored += 1
            for assignment in assignments:
                assignment.status = PlanStatus.DRAFT.value
            self._record(plan, "restored", actor_id, {"tasks": restored})

        logger.info(
            "production_plan_restored",
            plan_id=str(plan.id),
            tasks=restored,
            assignments=len(assignments),
        )
        return plan

    # =========================================================================
    # Helpers
    # =========================================================================

    async def _load_calendar_items(self, ids: list[UUID]) -> list[CalendarItem]:
        if not ids:
            return []
        result = await self.db.execute(select(CalendarItem).where(CalendarItem.id.in_(ids)))
        by_id = {item.id: item for item in result.scalars().all()}
        for item_id in ids:
            if item_id not in by_id:
                raise MissingReferenceError.for_entity("Calendar item", item_id)
        return [by_id[item_id] for item_id in ids]

    async def _load_manual_tasks(self, ids: list[UUID]) -> list[Task]:
        if not ids:
            return []
        result = await self.db.execute(select(Task).where(Task.id.in_(ids)))
        by_id = {task.id: task for task in result.scalars().all()}
        for task_id in ids:
            if task_id not in by_id:
                raise MissingReferenceError.for_entity("Task", task_id)
        return [by_id[task_id] for task_id in ids]

    async def _client_name(self, client_id: UUID | None) -> str | None:
        if client_id is None:
            return None
        name = await self.db.scalar(select(Client.name).where(Client.id == client_id))
        if name is None:
            raise MissingReferenceError.for_entity("Client", client_id)
        return name

    async def _resolve_overrides(
        self,
        roster: list[UUID],
        production_date: date,
        requested: dict[UUID, str],
        existing: dict[str, Any],
        actor_id: UUID,
    ) -> dict[str, Any]:
        """
        Build the override records for roster members on approved leave.

        Members still covered by an existing override keep it; members with
        a newly supplied reason get a fresh audit record. Anyone left over
        blocks the plan.
        """
        conflicts = await self.find_leave_conflicts(roster, production_date)
        conflicted = _unique(leave.user_id for leave in conflicts)
        if not conflicted:
            return {}

        requested_by_id = {_as_uuid(uid): reason for uid, reason in requested.items()}
        names = await self._user_names(conflicted)
        now = isoformat(self.clock())

        overrides: dict[str, Any] = {}
        blocked: list[UUID] = []
        for user_id in conflicted:
            key = str(user_id)
            reason = (requested_by_id.get(user_id) or "").strip()
            if reason:
                overrides[key] = {
                    "user_id": key,
                    "user_name": names.get(user_id),
                    "reason": reason,
                    "overridden_by": str(actor_id),
                    "overridden_at": now,
                }
            elif key in existing:
                overrides[key] = dict(existing[key])
            else:
                blocked.append(user_id)

        if blocked:
            logger.warning(
                "production_leave_conflict",
                production_date=production_date.isoformat(),
                user_ids=[str(uid) for uid in blocked],
            )
            raise LeaveConflictError(blocked)
        return overrides

    async def _user_names(self, user_ids: list[UUID]) -> dict[UUID, str]:
        result = await self.db.execute(
            select(User.id, User.display_name).where(User.id.in_(user_ids))
        )
        return {uid: name for uid, name in result.all()}

    def _record(
        self,
        plan: ProductionPlan,
        action: str,
        actor_id: UUID,
        extra: dict[str, Any] | None = None,
    ) -> None:
        self.db.add(
            Activity(
                activity_type=f"production_plan.{action}",
                action=action,
                target_type="production_plan",
                target_id=plan.id,
                target_title=plan.name,
                to_status=plan.status,
                actor_id=actor_id,
                extra_data=extra,
            )
        )


def get_production_service(db: AsyncSession) -> ProductionService:
    """Factory function to create a ProductionService instance."""
    return ProductionService(db)

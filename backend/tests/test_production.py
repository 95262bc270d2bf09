"""Tests for production plans: generation, edits, archive and restore."""

from datetime import date, datetime, timezone
from types import SimpleNamespace

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from agencyhub.exceptions import (
    BatchWriteError,
    DomainValidationError,
    InvalidStateError,
    LeaveConflictError,
    MissingReferenceError,
    RestoreWindowExpiredError,
)
from agencyhub.models import CalendarItem, ProductionAssignment, ProductionPlan, Task
from agencyhub.models.enums import PlanEditMode, PlanStatus, SourceType, TaskStatus
from agencyhub.services.archive import ArchiveService
from agencyhub.services.production import ProductionService, production_datetime

SHOOT_DAY = date(2026, 3, 10)


@pytest.fixture
def production(db, clock):
    return ProductionService(db, clock=clock, restore_window_days=30)


@pytest.fixture
async def shoot(factory):
    """Three calendar items, two manual tasks and a crew of four."""
    client = await factory.client("Acme Foods")
    producer = await factory.user("Pat Producer")
    crew = [await factory.user(f"Crew {n}") for n in range(4)]
    items = [
        await factory.calendar_item("ACM-001 Hero reel", client, primary_brief="Open on the bakery"),
        await factory.calendar_item("ACM-002 Product shots", client, item_type="PHOTO"),
        await factory.calendar_item("ACM-003 Loop", client, item_type="MOTION"),
    ]
    manual = [
        await factory.plain_task(
            "Chef interview",
            description="Two cameras",
            requires_social_post=True,
            social_platforms=["instagram"],
        ),
        await factory.plain_task("Behind the scenes", priority="high"),
    ]
    return SimpleNamespace(client=client, producer=producer, crew=crew, items=items, manual=manual)


async def _create(production, shoot, **kwargs):
    kwargs.setdefault("calendar_item_ids", [item.id for item in shoot.items])
    kwargs.setdefault("manual_task_ids", [task.id for task in shoot.manual])
    kwargs.setdefault("team_member_ids", [user.id for user in shoot.crew])
    return await production.create_plan(
        created_by_id=shoot.producer.id,
        name=kwargs.pop("name", "Acme March shoot"),
        production_date=kwargs.pop("production_date", SHOOT_DAY),
        client_id=shoot.client.id,
        **kwargs,
    )


async def _plan_tasks(db, plan_id):
    result = await db.execute(
        select(Task)
        .where(Task.production_plan_id == plan_id)
        .execution_options(populate_existing=True)
    )
    return list(result.scalars().all())


# =============================================================================
# Create / generate
# =============================================================================


async def test_create_plan_generates_tasks_and_assignments(production, shoot, db):
    result = await _create(production, shoot)

    plan = result.plan
    assert plan.status == PlanStatus.DRAFT
    assert plan.client_name == "Acme Foods"
    assert len(result.tasks) == 5
    assert len(result.assignments) == 4
    assert plan.generated_task_ids == [str(t.id) for t in result.tasks]

    tasks = await _plan_tasks(db, plan.id)
    assert len(tasks) == 5
    crew_ids = [str(u.id) for u in shoot.crew]
    for task in tasks:
        assert task.status == TaskStatus.NEW
        assert task.assignee_ids == crew_ids
        assert task.is_production_copy is True

    assignments = await production.get_assignments(plan.id)
    assert {a.user_id for a in assignments} == {u.id for u in shoot.crew}
    assert all(a.item_count == 5 and a.plan_name == "Acme March shoot" for a in assignments)


async def test_calendar_tasks_carry_provenance(production, shoot, db):
    result = await _create(production, shoot, manual_task_ids=[])

    hero = next(t for t in result.tasks if t.source_calendar_item_id == shoot.items[0].id)
    assert hero.title == "🎬 ACM-001 Hero reel"
    assert hero.description == "Open on the bakery"
    assert hero.source_type == SourceType.CALENDAR
    assert hero.task_type == "video"
    assert hero.department == "production"
    assert hero.due_date == production_datetime(SHOOT_DAY)

    item = await db.get(CalendarItem, shoot.items[0].id)
    assert item.task_id == hero.id


async def test_manual_copies_keep_source_fields(production, shoot):
    result = await _create(production, shoot, calendar_item_ids=[])

    copy = next(t for t in result.tasks if t.source_task_id == shoot.manual[0].id)
    assert copy.title == "🎬 PROD: Chef interview"
    assert copy.description == "Two cameras"
    assert copy.requires_social_post is True
    assert copy.social_platforms == ["instagram"]
    assert copy.source_type == SourceType.MANUAL
    assert copy.status == TaskStatus.NEW

    other = next(t for t in result.tasks if t.source_task_id == shoot.manual[1].id)
    assert other.priority == "high"


async def test_create_requires_items_and_crew(production, shoot):
    with pytest.raises(DomainValidationError):
        await _create(production, shoot, calendar_item_ids=[], manual_task_ids=[])
    with pytest.raises(DomainValidationError):
        await _create(production, shoot, team_member_ids=[])


async def test_missing_calendar_item_aborts_create(production, shoot, db):
    await db.delete(shoot.items[2])
    await db.commit()

    with pytest.raises(MissingReferenceError):
        await _create(production, shoot)

    assert await production.list_plans(include_archived=True) == []


async def test_failed_batch_leaves_no_partial_plan(production, shoot, db, monkeypatch):
    selection = {
        "calendar_item_ids": [item.id for item in shoot.items],
        "manual_task_ids": [task.id for task in shoot.manual],
        "team_member_ids": [user.id for user in shoot.crew],
    }
    client_id, producer_id = shoot.client.id, shoot.producer.id

    async def store_unavailable(self):
        raise SQLAlchemyError("store unavailable")

    monkeypatch.setattr(AsyncSession, "commit", store_unavailable)
    with pytest.raises(BatchWriteError):
        await production.create_plan(
            created_by_id=producer_id,
            name="Acme March shoot",
            production_date=SHOOT_DAY,
            client_id=client_id,
            **selection,
        )
    monkeypatch.undo()

    assert await db.scalar(select(func.count()).select_from(ProductionPlan)) == 0
    assert await db.scalar(select(func.count()).select_from(ProductionAssignment)) == 0
    generated = await db.scalar(
        select(func.count()).select_from(Task).where(Task.production_plan_id.is_not(None))
    )
    assert generated == 0
    items = (
        await db.execute(select(CalendarItem).execution_options(populate_existing=True))
    ).scalars().all()
    assert [item.task_id for item in items] == [None, None, None]

    retried = await production.create_plan(
        created_by_id=producer_id,
        name="Acme March shoot",
        production_date=SHOOT_DAY,
        client_id=client_id,
        **selection,
    )
    assert len(retried.tasks) == 5
    assert len(retried.assignments) == 4


async def test_duplicates_are_reported_not_blocking(production, shoot):
    first = await _create(production, shoot, manual_task_ids=[])

    second = await _create(
        production,
        shoot,
        name="Reshoot",
        calendar_item_ids=[shoot.items[0].id],
        manual_task_ids=[],
    )

    key = f"cal_{shoot.items[0].id}"
    assert list(second.duplicates) == [key]
    assert second.duplicates[key][0].plan_id == first.plan.id
    assert second.duplicates[key][0].plan_name == "Acme March shoot"
    assert len(second.tasks) == 1


async def test_completed_plans_are_not_duplicates(production, shoot):
    first = await _create(production, shoot, manual_task_ids=[])
    await production.advance_plan_status(first.plan.id, PlanStatus.COMPLETED, shoot.producer.id)

    found = await production.find_duplicates([shoot.items[0].id])

    assert found == {}


# =============================================================================
# Leave conflicts
# =============================================================================


async def test_leave_conflict_blocks_without_override(production, shoot, factory):
    on_leave = shoot.crew[1]
    await factory.leave(on_leave, date(2026, 3, 9), date(2026, 3, 11))

    with pytest.raises(LeaveConflictError) as excinfo:
        await _create(production, shoot)

    assert excinfo.value.details == {"user_ids": [str(on_leave.id)]}
    assert await production.list_plans() == []


async def test_pending_leave_does_not_conflict(production, shoot, factory):
    await factory.leave(shoot.crew[1], SHOOT_DAY, SHOOT_DAY, status="pending")

    result = await _create(production, shoot)

    assert result.plan.conflict_overrides == {}


async def test_override_records_reason_and_actor(production, shoot, factory, clock):
    on_leave = shoot.crew[1]
    await factory.leave(on_leave, SHOOT_DAY, SHOOT_DAY)

    result = await _create(
        production, shoot, conflict_overrides={on_leave.id: "Only drone pilot available"}
    )

    record = result.plan.conflict_overrides[str(on_leave.id)]
    assert record["reason"] == "Only drone pilot available"
    assert record["overridden_by"] == str(shoot.producer.id)
    assert record["user_name"] == "Crew 1"
    assert record["overridden_at"] == clock().isoformat()
    assert list(result.plan.conflict_overrides) == [str(on_leave.id)]


async def test_member_workload_counts_live_plans(production, shoot):
    first = await _create(production, shoot)
    await _create(production, shoot, name="Afternoon block")

    member = shoot.crew[0].id
    assert await production.member_workload(member, SHOOT_DAY) == 2
    assert await production.member_workload(member, SHOOT_DAY, exclude_plan_id=first.plan.id) == 1
    assert await production.member_workload(member, date(2026, 3, 11)) == 0


# =============================================================================
# Edits
# =============================================================================


async def test_safe_update_skips_started_tasks(production, shoot, db, factory):
    result = await _create(production, shoot)
    started = result.tasks[0]
    started.status = TaskStatus.IN_PROGRESS.value
    await db.commit()
    newcomer = await factory.user("Crew 5")
    new_crew = [shoot.crew[0].id, newcomer.id]

    assert await production.count_active_tasks(result.plan.id) == 1
    update = await production.update_plan(
        result.plan.id, shoot.producer.id, mode=PlanEditMode.SAFE, team_member_ids=new_crew
    )

    assert update.skipped_task_ids == [started.id]
    assert len(update.updated_task_ids) == 4
    tasks = {t.id: t for t in await _plan_tasks(db, result.plan.id)}
    assert tasks[started.id].assignee_ids == [str(u.id) for u in shoot.crew]
    for task_id in update.updated_task_ids:
        assert tasks[task_id].assignee_ids == [str(uid) for uid in new_crew]

    assignments = await production.get_assignments(result.plan.id)
    assert {a.user_id for a in assignments} == set(new_crew)
    assert update.plan.last_edit_mode == "SAFE"


async def test_force_update_requires_reason(production, shoot):
    result = await _create(production, shoot)

    with pytest.raises(DomainValidationError) as excinfo:
        await production.update_plan(result.plan.id, shoot.producer.id, mode="FORCE")

    assert excinfo.value.code == "FORCE_REASON_REQUIRED"


async def test_force_update_touches_every_task(production, shoot, db, clock):
    result = await _create(production, shoot)
    result.tasks[0].status = TaskStatus.IN_PROGRESS.value
    await db.commit()
    new_day = date(2026, 3, 12)

    update = await production.update_plan(
        result.plan.id,
        shoot.producer.id,
        mode=PlanEditMode.FORCE,
        production_date=new_day,
        force_reason="Client moved the shoot",
    )

    assert update.skipped_task_ids == []
    assert update.plan.force_update_reason == "Client moved the shoot"
    for task in await _plan_tasks(db, result.plan.id):
        assert task.due_date is not None
        assert task.force_update_reason == "Client moved the shoot"
    assert all(a.production_date == new_day for a in update.assignments)


@pytest.mark.parametrize("mode", ["SAFE", "FORCE"])
async def test_update_skips_individually_archived_task(production, shoot, db, clock, mode):
    result = await _create(production, shoot)
    own = result.tasks[0]
    await ArchiveService(db, clock=clock).archive_task(own.id, shoot.producer.id)

    update = await production.update_plan(
        result.plan.id,
        shoot.producer.id,
        mode=mode,
        team_member_ids=[shoot.crew[0].id],
        force_reason="reshuffle",
    )

    assert update.skipped_task_ids == [own.id]
    assert len(update.updated_task_ids) == 4
    tasks = {t.id: t for t in await _plan_tasks(db, result.plan.id)}
    assert tasks[own.id].is_archived is True
    assert tasks[own.id].assignee_ids == [str(u.id) for u in shoot.crew]
    assert tasks[own.id].force_update_reason is None
    assert tasks[own.id].force_updated_at is None


async def test_existing_override_survives_edit(production, shoot, factory):
    on_leave = shoot.crew[1]
    await factory.leave(on_leave, SHOOT_DAY, SHOOT_DAY)
    result = await _create(production, shoot, conflict_overrides={on_leave.id: "Needed"})

    update = await production.update_plan(result.plan.id, shoot.producer.id, notes="Bring lights")

    assert update.plan.conflict_overrides[str(on_leave.id)]["reason"] == "Needed"
    assert update.plan.notes == "Bring lights"


# =============================================================================
# Status
# =============================================================================


async def test_status_moves_forward_and_syncs_assignments(production, shoot):
    result = await _create(production, shoot)

    plan = await production.advance_plan_status(
        result.plan.id, PlanStatus.SCHEDULED, shoot.producer.id
    )

    assert plan.status == PlanStatus.SCHEDULED
    assert {a.status for a in await production.get_assignments(plan.id)} == {"SCHEDULED"}
    with pytest.raises(InvalidStateError):
        await production.advance_plan_status(plan.id, PlanStatus.DRAFT, shoot.producer.id)
    with pytest.raises(InvalidStateError):
        await production.advance_plan_status(plan.id, PlanStatus.ARCHIVED, shoot.producer.id)


# =============================================================================
# Archive / restore
# =============================================================================


async def test_archive_then_restore_round_trip(production, shoot, db):
    result = await _create(production, shoot)
    plan_id = result.plan.id

    archived = await production.archive_plan(plan_id, shoot.producer.id)

    assert archived.status == PlanStatus.ARCHIVED
    assert archived.is_archived is True
    assert archived.can_restore_until is not None
    tasks = await _plan_tasks(db, plan_id)
    assert all(t.is_archived and t.archive_reason == "plan_deleted" for t in tasks)
    assert all(t.status == TaskStatus.NEW for t in tasks)
    assert {a.status for a in await production.get_assignments(plan_id)} == {"ARCHIVED"}

    restored = await production.restore_plan(plan_id, shoot.producer.id)

    assert restored.status == PlanStatus.DRAFT
    assert restored.is_archived is False
    assert restored.archived_at is None
    assert restored.can_restore_until is None
    for task in await _plan_tasks(db, plan_id):
        assert task.is_archived is False
        assert task.archived_at is None
        assert task.archive_reason is None
        assert task.status == TaskStatus.NEW
    assert {a.status for a in await production.get_assignments(plan_id)} == {"DRAFT"}


async def test_restore_after_window_fails(production, shoot, clock):
    result = await _create(production, shoot)
    await production.archive_plan(result.plan.id, shoot.producer.id)

    clock.advance(days=31)
    with pytest.raises(RestoreWindowExpiredError) as excinfo:
        await production.restore_plan(result.plan.id, shoot.producer.id)

    assert excinfo.value.restore_deadline == datetime(2026, 4, 1, 9, 0, tzinfo=timezone.utc)
    plan = await production.get_plan(result.plan.id)
    assert plan.is_archived is True
    assert plan.status == PlanStatus.ARCHIVED


async def test_archive_leaves_individually_archived_tasks_alone(production, shoot, db, clock):
    result = await _create(production, shoot)
    own = result.tasks[0]
    await ArchiveService(db, clock=clock).archive_task(own.id, shoot.producer.id)

    await production.archive_plan(result.plan.id, shoot.producer.id)
    await production.restore_plan(result.plan.id, shoot.producer.id)

    tasks = {t.id: t for t in await _plan_tasks(db, result.plan.id)}
    assert tasks[own.id].is_archived is True
    assert tasks[own.id].archive_reason == "user_archived"
    assert sum(1 for t in tasks.values() if not t.is_archived) == 4


async def test_plan_archived_task_cannot_be_restored_alone(production, shoot, db, clock):
    result = await _create(production, shoot)
    await production.archive_plan(result.plan.id, shoot.producer.id)

    with pytest.raises(InvalidStateError):
        await ArchiveService(db, clock=clock).restore_task(result.tasks[0].id, shoot.producer.id)


async def test_archived_plan_cannot_be_edited(production, shoot):
    result = await _create(production, shoot)
    await production.archive_plan(result.plan.id, shoot.producer.id)

    with pytest.raises(InvalidStateError):
        await production.update_plan(result.plan.id, shoot.producer.id, notes="late")
    with pytest.raises(InvalidStateError):
        await production.archive_plan(result.plan.id, shoot.producer.id)


async def test_assignment_rows_follow_roster(production, shoot, db):
    result = await _create(production, shoot)

    await production.update_plan(
        result.plan.id, shoot.producer.id, team_member_ids=[shoot.crew[2].id]
    )

    rows = (
        await db.execute(
            select(ProductionAssignment).where(
                ProductionAssignment.production_plan_id == result.plan.id
            )
        )
    ).scalars().all()
    assert [r.user_id for r in rows] == [shoot.crew[2].id]

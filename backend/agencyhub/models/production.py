"""Content calendar, leave and production planning models."""

from datetime import date, datetime
from typing import Any
from uuid import UUID

from sqlalchemy import Date, DateTime, ForeignKey, Integer, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from agencyhub.db.base import ArchiveMixin, BaseModel, JSONType
from agencyhub.models.enums import LeaveStatus, PlanStatus


class CalendarItem(BaseModel):
    """Planned piece of client content on the content calendar."""

    __tablename__ = "calendar_items"

    client_id: Mapped[UUID | None] = mapped_column(
        Uuid,
        ForeignKey("clients.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    auto_name: Mapped[str] = mapped_column(String(255), nullable=False)
    item_type: Mapped[str] = mapped_column(
        String(20), nullable=False, default="VIDEO"
    )  # VIDEO, PHOTO, MOTION
    primary_brief: Mapped[str | None] = mapped_column(Text, nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    publish_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    # Back-link to the production task generated for this item
    task_id: Mapped[UUID | None] = mapped_column(Uuid, nullable=True)

    def __repr__(self) -> str:
        return f"<CalendarItem {self.auto_name}>"


class LeaveRequest(BaseModel):
    """Staff absence; approved requests block production assignment."""

    __tablename__ = "leave_requests"

    user_id: Mapped[UUID] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[date] = mapped_column(Date, nullable=False)
    leave_type: Mapped[str] = mapped_column(
        String(30), nullable=False, default="annual"
    )  # annual, sick, unpaid, other
    reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=LeaveStatus.PENDING.value
    )  # pending, approved, rejected

    def __repr__(self) -> str:
        return f"<LeaveRequest {self.user_id} {self.start_date}..{self.end_date}>"


class ProductionPlan(BaseModel, ArchiveMixin):
    """One shoot day: content items plus a team roster.

    ``generated_task_ids`` is the authoritative set of tasks owned by the
    plan. ``conflict_overrides`` maps user id strings to audit records.
    """

    __tablename__ = "production_plans"

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    client_id: Mapped[UUID | None] = mapped_column(
        Uuid,
        ForeignKey("clients.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    client_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    production_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=PlanStatus.DRAFT.value, index=True
    )  # DRAFT, SCHEDULED, IN_PROGRESS, COMPLETED, ARCHIVED
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    calendar_item_ids: Mapped[list[str]] = mapped_column(JSONType, nullable=False, default=list)
    manual_task_ids: Mapped[list[str]] = mapped_column(JSONType, nullable=False, default=list)
    team_member_ids: Mapped[list[str]] = mapped_column(JSONType, nullable=False, default=list)
    conflict_overrides: Mapped[dict[str, Any]] = mapped_column(
        JSONType, nullable=False, default=dict
    )
    generated_task_ids: Mapped[list[str]] = mapped_column(JSONType, nullable=False, default=list)

    created_by_id: Mapped[UUID | None] = mapped_column(Uuid, nullable=True)
    can_restore_until: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    force_update_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    last_edit_mode: Mapped[str | None] = mapped_column(String(10), nullable=True)  # SAFE, FORCE

    @property
    def item_count(self) -> int:
        return len(self.calendar_item_ids or []) + len(self.manual_task_ids or [])

    def __repr__(self) -> str:
        return f"<ProductionPlan {self.name} {self.production_date} ({self.status})>"


class ProductionAssignment(BaseModel):
    """Per-member summary of a plan; replaced wholesale on every plan edit."""

    __tablename__ = "production_assignments"

    production_plan_id: Mapped[UUID] = mapped_column(
        Uuid,
        ForeignKey("production_plans.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    user_id: Mapped[UUID] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    production_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    plan_name: Mapped[str] = mapped_column(String(255), nullable=False)
    client_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    item_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=PlanStatus.DRAFT.value
    )  # mirrors the plan status

    def __repr__(self) -> str:
        return f"<ProductionAssignment plan={self.production_plan_id} user={self.user_id}>"

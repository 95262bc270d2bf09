"""Task, approval step and client approval models."""

from datetime import datetime
from typing import Any
from uuid import UUID

from sqlalchemy import (
    Boolean,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column

from agencyhub.db.base import ArchiveMixin, BaseModel, JSONType
from agencyhub.models.enums import ApprovalStepStatus, ClientApprovalStatus, TaskPriority, TaskStatus


class Task(BaseModel, ArchiveMixin):
    """Unit of agency work driven through the approval workflow.

    User ids embedded in JSON columns (``assignee_ids``, revision data) are
    stored as strings.
    """

    __tablename__ = "tasks"

    # Basic info
    title: Mapped[str] = mapped_column(String(500), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    voice_over: Mapped[str | None] = mapped_column(Text, nullable=True)
    text_direction: Mapped[str] = mapped_column(
        String(10), nullable=False, default="auto"
    )  # auto, ltr, rtl

    # Classification
    department: Mapped[str | None] = mapped_column(String(100), nullable=True, index=True)
    task_type: Mapped[str | None] = mapped_column(String(100), nullable=True)
    priority: Mapped[str] = mapped_column(
        String(20), nullable=False, default=TaskPriority.MEDIUM.value
    )  # low, medium, high, urgent
    status: Mapped[str] = mapped_column(
        String(50), nullable=False, default=TaskStatus.NEW.value, index=True
    )  # see TaskStatus

    # Ownership and assignment
    project_id: Mapped[UUID | None] = mapped_column(
        Uuid,
        ForeignKey("projects.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    created_by_id: Mapped[UUID | None] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    assignee_ids: Mapped[list[str]] = mapped_column(JSONType, nullable=False, default=list)

    # Timeline
    start_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    due_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    archived_from_status: Mapped[str | None] = mapped_column(String(50), nullable=True)

    # Approval workflow
    workflow_template_id: Mapped[UUID | None] = mapped_column(
        Uuid,
        ForeignKey("workflow_templates.id", ondelete="SET NULL"),
        nullable=True,
    )
    current_approval_level: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    is_client_approval_required: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False
    )

    # Revision cycles
    revision_context: Mapped[dict[str, Any] | None] = mapped_column(JSONType, nullable=True)
    revision_history: Mapped[list[dict[str, Any]]] = mapped_column(
        JSONType, nullable=False, default=list
    )

    # Social handover
    requires_social_post: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    social_platforms: Mapped[list[str]] = mapped_column(JSONType, nullable=False, default=list)
    social_manager_id: Mapped[UUID | None] = mapped_column(Uuid, nullable=True)
    publishing_notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    social_post_id: Mapped[UUID | None] = mapped_column(Uuid, nullable=True)

    # Production provenance (only on production-generated tasks)
    production_plan_id: Mapped[UUID | None] = mapped_column(
        Uuid,
        ForeignKey("production_plans.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    source_type: Mapped[str | None] = mapped_column(String(20), nullable=True)  # CALENDAR, MANUAL
    source_calendar_item_id: Mapped[UUID | None] = mapped_column(Uuid, nullable=True)
    source_task_id: Mapped[UUID | None] = mapped_column(Uuid, nullable=True)
    is_production_copy: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    force_update_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    force_updated_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    def is_assignee(self, user_id: UUID) -> bool:
        return str(user_id) in (self.assignee_ids or [])

    def __repr__(self) -> str:
        return f"<Task {self.title[:30]} ({self.status})>"


class ApprovalStep(BaseModel):
    """One instantiated approval gate of a task.

    ``approver_id`` is a user id string; transient steps produced for an
    unresolvable template step carry the ``"unassigned"`` sentinel and are
    never persisted.
    """

    __tablename__ = "approval_steps"
    __table_args__ = (
        UniqueConstraint("task_id", "level", name="uq_approval_step_level"),
    )

    task_id: Mapped[UUID] = mapped_column(
        Uuid,
        ForeignKey("tasks.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    level: Mapped[int] = mapped_column(Integer, nullable=False)
    label: Mapped[str | None] = mapped_column(String(255), nullable=True)
    approver_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    status: Mapped[str] = mapped_column(
        String(30), nullable=False, default=ApprovalStepStatus.WAITING.value
    )  # waiting, pending, approved, rejected, revision_requested, revision_submitted
    reviewed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    comment: Mapped[str | None] = mapped_column(Text, nullable=True)

    def __repr__(self) -> str:
        return f"<ApprovalStep task={self.task_id} level={self.level} ({self.status})>"


class ClientApproval(BaseModel):
    """Client sign-off record, created lazily when the internal chain completes."""

    __tablename__ = "client_approvals"

    task_id: Mapped[UUID] = mapped_column(
        Uuid,
        ForeignKey("tasks.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    )
    client_id: Mapped[UUID | None] = mapped_column(
        Uuid, ForeignKey("clients.id", ondelete="SET NULL"), nullable=True
    )
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=ClientApprovalStatus.PENDING.value
    )  # pending, approved, rejected
    reviewed_by_id: Mapped[UUID | None] = mapped_column(Uuid, nullable=True)
    reviewed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    comment: Mapped[str | None] = mapped_column(Text, nullable=True)

    def __repr__(self) -> str:
        return f"<ClientApproval task={self.task_id} ({self.status})>"

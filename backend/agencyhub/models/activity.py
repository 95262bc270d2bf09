"""Activity and notification models for tracking user actions and alerts."""

from datetime import datetime
from uuid import UUID

from sqlalchemy import Boolean, DateTime, ForeignKey, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from agencyhub.db.base import BaseModel, JSONType


class Activity(BaseModel):
    """
    Activity log for workflow transitions and archive actions.

    Written in the same batch as the change it describes, so the trail
    never shows a transition that did not happen.
    """

    __tablename__ = "activities"

    # Activity type and details
    activity_type: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
        index=True,
        comment="Type of activity (e.g., 'task.submitted', 'production_plan.archived')",
    )
    action: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        comment="Action verb (submitted, approved, archived, restored, etc.)",
    )
    description: Mapped[str | None] = mapped_column(
        Text,
        nullable=True,
        comment="Human-readable description of the activity",
    )

    # Target entity (polymorphic reference)
    target_type: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        index=True,
        comment="Type of entity affected (task, production_plan, social_post)",
    )
    target_id: Mapped[UUID] = mapped_column(
        Uuid,
        nullable=False,
        index=True,
        comment="ID of the affected entity",
    )
    target_title: Mapped[str | None] = mapped_column(
        String(500),
        nullable=True,
        comment="Cached title/name of the target for display",
    )

    # Status change, when the activity is a transition
    from_status: Mapped[str | None] = mapped_column(String(50), nullable=True)
    to_status: Mapped[str | None] = mapped_column(String(50), nullable=True)

    # Context
    project_id: Mapped[UUID | None] = mapped_column(
        Uuid,
        ForeignKey("projects.id", ondelete="CASCADE"),
        nullable=True,
        index=True,
    )

    # Actor
    actor_id: Mapped[UUID | None] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    # Additional context data
    extra_data: Mapped[dict | None] = mapped_column(
        JSONType,
        nullable=True,
        comment="Additional context data (comment, cycle, reason, etc.)",
    )

    def __repr__(self) -> str:
        return f"<Activity {self.activity_type} {self.target_id}>"


class Notification(BaseModel):
    """In-app notification for a single recipient."""

    __tablename__ = "notifications"

    # Notification content
    notification_type: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
        index=True,
        comment="Type of notification (approval_request, revision_requested, etc.)",
    )
    title: Mapped[str] = mapped_column(String(500), nullable=False)
    message: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Target entity (for navigation)
    target_type: Mapped[str | None] = mapped_column(String(50), nullable=True)
    target_id: Mapped[UUID | None] = mapped_column(Uuid, nullable=True)

    # Recipient
    user_id: Mapped[UUID] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    # Sender (if applicable)
    sender_id: Mapped[UUID | None] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )

    # Status
    is_read: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, index=True)
    read_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    def __repr__(self) -> str:
        return f"<Notification {self.notification_type} -> {self.user_id}>"

"""Social media post model."""

from datetime import datetime
from uuid import UUID

from sqlalchemy import DateTime, ForeignKey, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from agencyhub.db.base import ArchiveMixin, BaseModel, JSONType
from agencyhub.models.enums import SocialPostStatus


class SocialPost(BaseModel, ArchiveMixin):
    """Publishing artifact handed over from an approved task.

    Created at most once per task; its lifecycle is independent of the
    source task afterwards.
    """

    __tablename__ = "social_posts"

    source_task_id: Mapped[UUID | None] = mapped_column(
        Uuid,
        ForeignKey("tasks.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    project_id: Mapped[UUID | None] = mapped_column(Uuid, nullable=True)
    client_id: Mapped[UUID | None] = mapped_column(
        Uuid,
        ForeignKey("clients.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    title: Mapped[str] = mapped_column(String(500), nullable=False)
    platforms: Mapped[list[str]] = mapped_column(JSONType, nullable=False, default=list)
    caption: Mapped[str] = mapped_column(Text, nullable=False, default="")
    notes_from_task: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=SocialPostStatus.PENDING.value
    )  # pending, scheduled, published

    social_manager_id: Mapped[UUID | None] = mapped_column(Uuid, nullable=True)
    created_by_id: Mapped[UUID | None] = mapped_column(Uuid, nullable=True)

    publish_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    timezone: Mapped[str] = mapped_column(String(64), nullable=False, default="UTC")

    def __repr__(self) -> str:
        return f"<SocialPost {self.title[:30]} ({self.status})>"

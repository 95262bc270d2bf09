"""Workflow template models."""

from uuid import UUID

from sqlalchemy import Boolean, ForeignKey, Integer, String, Text, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from agencyhub.db.base import BaseModel
from agencyhub.models.enums import WorkflowStatus


class WorkflowTemplate(BaseModel):
    """Ordered approval chain applied to tasks of a department/type."""

    __tablename__ = "workflow_templates"

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Scope; NULL department means the template applies globally
    department: Mapped[str | None] = mapped_column(String(100), nullable=True, index=True)
    task_type: Mapped[str | None] = mapped_column(String(100), nullable=True)

    status: Mapped[str] = mapped_column(
        String(50), nullable=False, default=WorkflowStatus.AVAILABLE.value
    )  # active, available, system_protected
    is_default: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    requires_client_approval: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False
    )

    steps: Mapped[list["WorkflowStepTemplate"]] = relationship(
        "WorkflowStepTemplate",
        back_populates="template",
        cascade="all, delete-orphan",
        order_by="WorkflowStepTemplate.order",
        lazy="selectin",
    )

    def __repr__(self) -> str:
        return f"<WorkflowTemplate {self.name} ({len(self.steps)} steps)>"


class WorkflowStepTemplate(BaseModel):
    """One step of a workflow template.

    Exactly one of ``user_id``, ``project_role_key`` and ``role_id`` is set;
    it decides how the step's approver is resolved for a concrete task.
    """

    __tablename__ = "workflow_step_templates"
    __table_args__ = (
        UniqueConstraint("workflow_template_id", "step_order", name="uq_workflow_step_order"),
    )

    workflow_template_id: Mapped[UUID] = mapped_column(
        Uuid,
        ForeignKey("workflow_templates.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    order: Mapped[int] = mapped_column("step_order", Integer, nullable=False)
    label: Mapped[str | None] = mapped_column(String(255), nullable=True)

    # Resolution mode
    user_id: Mapped[UUID | None] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    project_role_key: Mapped[str | None] = mapped_column(String(100), nullable=True)
    role_id: Mapped[UUID | None] = mapped_column(
        Uuid, ForeignKey("roles.id", ondelete="SET NULL"), nullable=True
    )

    template: Mapped["WorkflowTemplate"] = relationship(
        "WorkflowTemplate", back_populates="steps"
    )

    def __repr__(self) -> str:
        return f"<WorkflowStepTemplate {self.order} {self.label!r}>"

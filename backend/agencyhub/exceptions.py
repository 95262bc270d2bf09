"""Domain exceptions.

Structured errors raised by the workflow and production services. Every
error carries a human-readable ``message`` and a stable ``code`` that the
HTTP layer passes through to clients.

Authorization and invalid-transition problems on tasks are NOT raised;
they are reported through ``TransitionResult`` (see
``agencyhub.services.task_lifecycle``).
"""

from datetime import datetime
from typing import Any, Optional
from uuid import UUID


class AgencyHubError(Exception):
    """Base exception for domain errors."""

    def __init__(self, message: str, code: str = "AGENCYHUB_ERROR"):
        self.message = message
        self.code = code
        super().__init__(message)


class NotFoundError(AgencyHubError):
    """An entity addressed directly by the caller does not exist."""

    def __init__(self, resource: str, resource_id: UUID | str):
        self.resource = resource
        self.resource_id = str(resource_id)
        super().__init__(
            message=f"{resource} {resource_id} not found",
            code="NOT_FOUND",
        )


class MissingReferenceError(AgencyHubError):
    """A reference needed mid-flow is gone or cannot be resolved.

    Raised before any write is attempted. The triggering operation must
    not continue with a placeholder value.
    """

    def __init__(
        self,
        message: str,
        resource: Optional[str] = None,
        resource_id: UUID | str | None = None,
        code: str = "MISSING_REFERENCE",
    ):
        self.resource = resource
        self.resource_id = str(resource_id) if resource_id is not None else None
        super().__init__(message=message, code=code)

    @classmethod
    def for_entity(cls, resource: str, resource_id: UUID | str) -> "MissingReferenceError":
        return cls(
            message=f"Referenced {resource} {resource_id} no longer exists",
            resource=resource,
            resource_id=resource_id,
        )


class UnresolvedApproverError(MissingReferenceError):
    """No user could be resolved for an approval step."""

    def __init__(self, task_id: UUID, level: int, label: Optional[str] = None):
        self.task_id = task_id
        self.level = level
        self.label = label
        step_name = f"'{label}'" if label else f"at level {level}"
        super().__init__(
            message=(
                f"No approver could be resolved for step {step_name}; "
                "check the workflow template and project roles"
            ),
            resource="approval_step",
            code="UNRESOLVED_APPROVER",
        )


class EmptyWorkflowError(MissingReferenceError):
    """A workflow template has no steps to instantiate."""

    def __init__(self, template_id: UUID):
        self.template_id = template_id
        super().__init__(
            message=f"Workflow template {template_id} has no approval steps",
            resource="workflow_template",
            resource_id=template_id,
            code="EMPTY_WORKFLOW",
        )


class DomainValidationError(AgencyHubError):
    """Input that is well-formed but breaks a business rule."""

    def __init__(
        self,
        message: str,
        details: Optional[dict[str, Any]] = None,
        code: str = "VALIDATION_ERROR",
    ):
        self.details = details or {}
        super().__init__(message=message, code=code)


class LeaveConflictError(DomainValidationError):
    """Roster members are on approved leave and have no override record."""

    def __init__(self, user_ids: list[UUID]):
        self.user_ids = user_ids
        super().__init__(
            message=(
                f"{len(user_ids)} team member(s) are on approved leave on the "
                "production date; add an override with a reason to include them"
            ),
            details={"user_ids": [str(uid) for uid in user_ids]},
            code="LEAVE_CONFLICT",
        )


class InvalidStateError(AgencyHubError):
    """Operation is not legal for the entity's current state."""

    def __init__(self, message: str, current_state: Optional[str] = None):
        self.current_state = current_state
        super().__init__(message=message, code="INVALID_STATE")


class RestoreWindowExpiredError(AgencyHubError):
    """The soft-delete retention window has elapsed."""

    def __init__(
        self,
        resource: str,
        resource_id: UUID,
        restore_deadline: datetime | None,
        window_days: int = 30,
    ):
        self.resource = resource
        self.resource_id = resource_id
        self.restore_deadline = restore_deadline
        super().__init__(
            message=f"Restore window has expired ({window_days} days limit)",
            code="RESTORE_WINDOW_EXPIRED",
        )


class BatchWriteError(AgencyHubError):
    """An atomic batch failed as a whole; retry the whole operation."""

    def __init__(self, operation: str):
        self.operation = operation
        super().__init__(
            message=f"Could not save changes ({operation}); nothing was applied, please try again",
            code="BATCH_WRITE_FAILED",
        )

"""Services package."""

from agencyhub.services.approval_queries import ApprovalQueryService
from agencyhub.services.archive import ArchiveService
from agencyhub.services.notification import NotificationService
from agencyhub.services.production import ProductionService
from agencyhub.services.social_handover import SocialHandoverService
from agencyhub.services.task_lifecycle import (
    Rejection,
    TaskLifecycleService,
    TransitionResult,
)
from agencyhub.services.workflow_templates import StepDefinition, WorkflowTemplateService

__all__ = [
    "ApprovalQueryService",
    "ArchiveService",
    "NotificationService",
    "ProductionService",
    "Rejection",
    "SocialHandoverService",
    "StepDefinition",
    "TaskLifecycleService",
    "TransitionResult",
    "WorkflowTemplateService",
]

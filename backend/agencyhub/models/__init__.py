"""SQLAlchemy models package."""

from agencyhub.models.user import Role, User
from agencyhub.models.project import Client, Project, ProjectMember
from agencyhub.models.workflow import WorkflowStepTemplate, WorkflowTemplate
from agencyhub.models.task import ApprovalStep, ClientApproval, Task
from agencyhub.models.social import SocialPost
from agencyhub.models.production import (
    CalendarItem,
    LeaveRequest,
    ProductionAssignment,
    ProductionPlan,
)
from agencyhub.models.files import AgencyFile, FileFolder
from agencyhub.models.activity import Activity, Notification

__all__ = [
    # User
    "User",
    "Role",
    # Project
    "Client",
    "Project",
    "ProjectMember",
    # Workflow
    "WorkflowTemplate",
    "WorkflowStepTemplate",
    # Task
    "Task",
    "ApprovalStep",
    "ClientApproval",
    # Social
    "SocialPost",
    # Production
    "CalendarItem",
    "LeaveRequest",
    "ProductionPlan",
    "ProductionAssignment",
    # Files
    "FileFolder",
    "AgencyFile",
    # Activity
    "Activity",
    "Notification",
]

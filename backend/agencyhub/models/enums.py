"""Status and classification values shared by models and services.

Columns store the plain string values; members compare equal to them.
"""

from enum import Enum


class TaskStatus(str, Enum):
    NEW = "new"
    ASSIGNED = "assigned"
    IN_PROGRESS = "in_progress"
    AWAITING_REVIEW = "awaiting_review"
    REVISIONS_REQUIRED = "revisions_required"
    APPROVED = "approved"
    CLIENT_REVIEW = "client_review"
    CLIENT_APPROVED = "client_approved"
    COMPLETED = "completed"
    ARCHIVED = "archived"


class TaskPriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


class ApprovalStepStatus(str, Enum):
    WAITING = "waiting"
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    REVISION_REQUESTED = "revision_requested"
    REVISION_SUBMITTED = "revision_submitted"


class ClientApprovalStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class WorkflowStatus(str, Enum):
    ACTIVE = "active"
    AVAILABLE = "available"
    SYSTEM_PROTECTED = "system_protected"


class SocialPostStatus(str, Enum):
    PENDING = "pending"
    SCHEDULED = "scheduled"
    PUBLISHED = "published"


class PlanStatus(str, Enum):
    DRAFT = "DRAFT"
    SCHEDULED = "SCHEDULED"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    ARCHIVED = "ARCHIVED"


class PlanEditMode(str, Enum):
    SAFE = "SAFE"
    FORCE = "FORCE"


class PlanArchiveReason(str, Enum):
    USER_DELETED = "user_deleted"
    PLAN_SUPERSEDED = "plan_superseded"


class SourceType(str, Enum):
    CALENDAR = "CALENDAR"
    MANUAL = "MANUAL"


class LeaveStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class FolderType(str, Enum):
    GENERAL = "general"
    CLIENT_ROOT = "client_root"
    ARCHIVE = "archive"
    POSTED_POSTS = "posted_posts"
    TASK_ARCHIVE = "task_archive"
    POST_ARCHIVE = "post_archive"

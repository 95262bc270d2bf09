"""Approver resolution for workflow steps.

A workflow step names its approver in one of three ways. ``step_kind``
turns a step template into a tagged value and ``resolve_approver`` maps
that value to a concrete user, using only the data handed to it in an
``ApproverDirectory``. Nothing here touches the database; the directory
is loaded separately by ``load_directory``.

Resolution order (first match wins):

1. ``SpecificUser``: the named user, unconditionally.
2. ``ProjectRole``: the member of the task's project holding that
   project role key, else nothing.
3. ``SystemRole``: a user holding the role's display name, searched in
   widening scopes: project members, then the task's department, then
   anyone.
"""

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any
from uuid import UUID

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from agencyhub.models.project import ProjectMember
from agencyhub.models.user import Role, User
from agencyhub.models.workflow import WorkflowStepTemplate

logger = structlog.get_logger()


# =============================================================================
# Step kinds
# =============================================================================


@dataclass(frozen=True)
class SpecificUser:
    user_id: UUID


@dataclass(frozen=True)
class ProjectRole:
    key: str


@dataclass(frozen=True)
class SystemRole:
    role_id: UUID


ApproverKind = SpecificUser | ProjectRole | SystemRole


def step_kind(step: WorkflowStepTemplate) -> ApproverKind | None:
    """Classify a step template by the resolution mode it names."""
    if step.user_id:
        return SpecificUser(step.user_id)
    if step.project_role_key:
        return ProjectRole(step.project_role_key)
    if step.role_id:
        return SystemRole(step.role_id)
    return None


# =============================================================================
# Directory
# =============================================================================


@dataclass
class ApproverDirectory:
    """Snapshot of the people data a task's approvers are chosen from.

    ``users`` are searched in the order given, so loaders should supply a
    stable ordering.
    """

    project_members: Sequence[Any] = field(default_factory=list)
    role_names: Mapping[UUID, str] = field(default_factory=dict)
    users: Sequence[Any] = field(default_factory=list)

    def members_of(self, project_id: UUID | None) -> list[Any]:
        if project_id is None:
            return []
        return [m for m in self.project_members if m.project_id == project_id]


async def load_directory(
    db: AsyncSession,
    project_id: UUID | None,
    steps: Sequence[WorkflowStepTemplate],
) -> ApproverDirectory:
    """Load everything needed to resolve ``steps`` for a task in ``project_id``."""
    members: list[ProjectMember] = []
    if project_id is not None:
        result = await db.execute(
            select(ProjectMember).where(ProjectMember.project_id == project_id)
        )
        members = list(result.scalars().all())

    role_ids = {
        kind.role_id for kind in map(step_kind, steps) if isinstance(kind, SystemRole)
    }
    role_names: dict[UUID, str] = {}
    users: list[User] = []
    if role_ids:
        result = await db.execute(select(Role).where(Role.id.in_(role_ids)))
        role_names = {role.id: role.name for role in result.scalars().all()}

    if role_names:
        result = await db.execute(
            select(User)
            .where(User.role.in_(set(role_names.values())), User.is_active.is_(True))
            .order_by(User.email)
        )
        users = list(result.scalars().all())

    return ApproverDirectory(project_members=members, role_names=role_names, users=users)


# =============================================================================
# Resolution
# =============================================================================


def resolve_approver(
    step: WorkflowStepTemplate,
    task: Any,
    directory: ApproverDirectory,
) -> UUID | None:
    """
    Determine the user who must act on ``step`` for ``task``.

    Args:
        step: Workflow step template
        task: The task being routed; only project_id and department are read
        directory: People data to search

    Returns:
        The approver's user id, or None when no mode matches or no
        qualifying user exists. Callers must treat None as blocking.
    """
    kind = step_kind(step)

    if isinstance(kind, SpecificUser):
        return kind.user_id

    if isinstance(kind, ProjectRole):
        for member in directory.members_of(task.project_id):
            if member.role_in_project == kind.key:
                return member.user_id
        return None

    if isinstance(kind, SystemRole):
        role_name = directory.role_names.get(kind.role_id)
        if not role_name:
            logger.warning("approver_role_not_found", role_id=str(kind.role_id))
            return None
        return _search_role_holders(role_name, task, directory)

    return None


def _search_role_holders(role_name: str, task: Any, directory: ApproverDirectory) -> UUID | None:
    holders = [u for u in directory.users if u.role == role_name]
    if not holders:
        return None

    # (a) project members
    member_ids = {m.user_id for m in directory.members_of(task.project_id)}
    for user in holders:
        if user.id in member_ids:
            return user.id

    # (b) same department
    if task.department:
        for user in holders:
            if user.department == task.department:
                return user.id

    # (c) anyone
    return holders[0].id

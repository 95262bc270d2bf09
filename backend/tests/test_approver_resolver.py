"""Tests for approver resolution."""

from types import SimpleNamespace
from uuid import uuid4

from agencyhub.models.workflow import WorkflowStepTemplate
from agencyhub.services.approver_resolver import (
    ApproverDirectory,
    ProjectRole,
    SpecificUser,
    SystemRole,
    load_directory,
    resolve_approver,
    step_kind,
)

ROLE_ID = uuid4()
PROJECT_ID = uuid4()


def _user(role="Creative Director", department=None):
    return SimpleNamespace(id=uuid4(), role=role, department=department)


def _member(user, role_in_project=None, project_id=PROJECT_ID):
    return SimpleNamespace(project_id=project_id, user_id=user.id, role_in_project=role_in_project)


def _task(project_id=PROJECT_ID, department="design"):
    return SimpleNamespace(project_id=project_id, department=department)


def test_step_kind_classifies_each_mode():
    user_id = uuid4()
    assert step_kind(WorkflowStepTemplate(order=0, user_id=user_id)) == SpecificUser(user_id)
    assert step_kind(WorkflowStepTemplate(order=0, project_role_key="client")) == ProjectRole(
        "client"
    )
    assert step_kind(WorkflowStepTemplate(order=0, role_id=ROLE_ID)) == SystemRole(ROLE_ID)
    assert step_kind(WorkflowStepTemplate(order=0)) is None


def test_specific_user_wins_unconditionally():
    user_id = uuid4()
    step = WorkflowStepTemplate(order=0, user_id=user_id)
    assert resolve_approver(step, _task(project_id=None), ApproverDirectory()) == user_id


def test_project_role_picks_matching_member():
    lead, client_contact = _user(role=None), _user(role=None)
    directory = ApproverDirectory(
        project_members=[_member(lead, "creative_lead"), _member(client_contact, "client")]
    )
    step = WorkflowStepTemplate(order=0, project_role_key="client")

    assert resolve_approver(step, _task(), directory) == client_contact.id


def test_project_role_ignores_other_projects():
    outsider = _user(role=None)
    directory = ApproverDirectory(
        project_members=[_member(outsider, "client", project_id=uuid4())]
    )
    step = WorkflowStepTemplate(order=0, project_role_key="client")

    assert resolve_approver(step, _task(), directory) is None


def test_project_role_without_project_is_unresolved():
    step = WorkflowStepTemplate(order=0, project_role_key="client")
    assert resolve_approver(step, _task(project_id=None), ApproverDirectory()) is None


def test_system_role_prefers_project_member():
    outside = _user(department="design")
    inside = _user()
    directory = ApproverDirectory(
        project_members=[_member(inside)],
        role_names={ROLE_ID: "Creative Director"},
        users=[outside, inside],
    )
    step = WorkflowStepTemplate(order=0, role_id=ROLE_ID)

    assert resolve_approver(step, _task(), directory) == inside.id


def test_system_role_falls_back_to_department_then_anyone():
    first = _user(department="video")
    same_department = _user(department="design")
    directory = ApproverDirectory(
        role_names={ROLE_ID: "Creative Director"},
        users=[first, same_department],
    )
    step = WorkflowStepTemplate(order=0, role_id=ROLE_ID)

    assert resolve_approver(step, _task(), directory) == same_department.id
    assert resolve_approver(step, _task(department="copy"), directory) == first.id


def test_system_role_ignores_holders_of_other_roles():
    directory = ApproverDirectory(
        role_names={ROLE_ID: "Creative Director"},
        users=[_user(role="Copywriter")],
    )
    step = WorkflowStepTemplate(order=0, role_id=ROLE_ID)

    assert resolve_approver(step, _task(), directory) is None


def test_unknown_system_role_is_unresolved():
    step = WorkflowStepTemplate(order=0, role_id=uuid4())
    assert resolve_approver(step, _task(), ApproverDirectory(users=[_user()])) is None


async def test_load_directory_skips_inactive_users(db, factory):
    role = await factory.role("Creative Director")
    await factory.user("Gone", role="Creative Director", is_active=False)
    active = await factory.user("Dana", role="Creative Director")
    project = await factory.project()
    await factory.member(project, active, "creative_lead")

    steps = [WorkflowStepTemplate(order=0, role_id=role.id)]
    directory = await load_directory(db, project.id, steps)

    assert directory.role_names == {role.id: "Creative Director"}
    assert [u.id for u in directory.users] == [active.id]
    assert [m.user_id for m in directory.members_of(project.id)] == [active.id]
    assert resolve_approver(steps[0], _task(project_id=project.id), directory) == active.id

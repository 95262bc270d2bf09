"""HTTP tests for the task, workflow and production endpoints."""

from datetime import date, timedelta
from uuid import uuid4

import pytest
from httpx import ASGITransport, AsyncClient

from agencyhub.api.v1.auth import create_access_token
from agencyhub.db.session import get_db_session
from agencyhub.main import app


@pytest.fixture
async def client(db):
    async def override_db():
        yield db

    app.dependency_overrides[get_db_session] = override_db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as http:
        yield http
    app.dependency_overrides.clear()


def auth(user) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(user.id)}"}


@pytest.fixture
async def people(factory):
    designer = await factory.user("Sam Designer")
    director = await factory.user("Dana Director")
    return designer, director


async def _workflow(client, approver):
    response = await client.post(
        "/api/v1/workflows/",
        json={
            "name": "Director review",
            "status": "active",
            "steps": [{"order": 0, "label": "Director", "user_id": str(approver.id)}],
        },
        headers=auth(approver),
    )
    assert response.status_code == 201
    return response.json()


async def test_requests_without_token_are_rejected(client):
    response = await client.get(f"/api/v1/tasks/{uuid4()}")
    assert response.status_code == 401


async def test_expired_token_is_rejected(client, people):
    designer, _ = people
    token = create_access_token(designer.id, expires_delta=timedelta(minutes=-5))

    response = await client.get(
        f"/api/v1/tasks/{uuid4()}", headers={"Authorization": f"Bearer {token}"}
    )

    assert response.status_code == 401


async def test_inactive_user_is_forbidden(client, factory):
    retired = await factory.user("Retired", is_active=False)

    response = await client.get(f"/api/v1/tasks/{uuid4()}", headers=auth(retired))

    assert response.status_code == 403


async def test_missing_task_is_404_with_code(client, people):
    designer, _ = people

    response = await client.get(f"/api/v1/tasks/{uuid4()}", headers=auth(designer))

    assert response.status_code == 404
    assert response.json()["detail"]["code"] == "NOT_FOUND"


async def test_review_flow_over_http(client, people):
    designer, director = people
    workflow = await _workflow(client, director)

    created = await client.post(
        "/api/v1/tasks/",
        json={
            "title": "Spring poster",
            "assignee_ids": [str(designer.id)],
            "workflow_template_id": workflow["id"],
        },
        headers=auth(director),
    )
    assert created.status_code == 201
    task_id = created.json()["id"]
    assert created.json()["status"] == "in_progress"

    submitted = await client.post(f"/api/v1/tasks/{task_id}/submit", headers=auth(designer))
    assert submitted.status_code == 200
    assert submitted.json()["from_status"] == "in_progress"
    assert submitted.json()["to_status"] == "awaiting_review"

    inbox = await client.get("/api/v1/tasks/awaiting-my-approval", headers=auth(director))
    assert [t["id"] for t in inbox.json()] == [task_id]

    current = await client.get(f"/api/v1/tasks/{task_id}/current-step", headers=auth(designer))
    assert current.json()["step_name"] == "Step 1"
    assert current.json()["approver_name"] == "Dana Director"

    refused = await client.post(
        f"/api/v1/tasks/{task_id}/approve", json={}, headers=auth(designer)
    )
    assert refused.status_code == 403
    assert refused.json()["detail"]["code"] == "NOT_AUTHORIZED"

    approved = await client.post(
        f"/api/v1/tasks/{task_id}/approve", json={"comment": "Ship it"}, headers=auth(director)
    )
    assert approved.status_code == 200
    assert approved.json()["to_status"] == "completed"

    steps = await client.get(f"/api/v1/tasks/{task_id}/steps", headers=auth(designer))
    assert [(s["level"], s["status"], s["comment"]) for s in steps.json()] == [
        (0, "approved", "Ship it")
    ]


async def test_invalid_transition_is_409(client, people):
    designer, director = people
    workflow = await _workflow(client, director)
    created = await client.post(
        "/api/v1/tasks/",
        json={
            "title": "Spring poster",
            "assignee_ids": [str(designer.id)],
            "workflow_template_id": workflow["id"],
        },
        headers=auth(director),
    )
    task_id = created.json()["id"]

    response = await client.post(
        f"/api/v1/tasks/{task_id}/approve", json={}, headers=auth(director)
    )

    assert response.status_code == 409
    assert response.json()["detail"] == {
        "code": "INVALID_TRANSITION",
        "message": "This task is not awaiting review.",
        "status": "in_progress",
    }


async def test_unresolved_approver_is_422(client, people):
    designer, director = people
    workflow = await client.post(
        "/api/v1/workflows/",
        json={
            "name": "Client sign-off",
            "steps": [{"order": 0, "project_role_key": "client"}],
        },
        headers=auth(director),
    )
    created = await client.post(
        "/api/v1/tasks/",
        json={
            "title": "Spring poster",
            "assignee_ids": [str(designer.id)],
            "workflow_template_id": workflow.json()["id"],
        },
        headers=auth(director),
    )

    response = await client.post(
        f"/api/v1/tasks/{created.json()['id']}/submit", headers=auth(designer)
    )

    assert response.status_code == 422
    assert response.json()["detail"]["code"] == "UNRESOLVED_APPROVER"


async def test_invalid_workflow_definition_is_422(client, people):
    _, director = people

    response = await client.post(
        "/api/v1/workflows/",
        json={"name": "Broken", "steps": [{"order": 1, "user_id": str(director.id)}]},
        headers=auth(director),
    )

    assert response.status_code == 422
    assert response.json()["detail"]["code"] == "VALIDATION_ERROR"


async def test_production_plan_endpoints(client, people, factory):
    designer, director = people
    item = await factory.calendar_item("ACM-001 Hero reel")

    created = await client.post(
        "/api/v1/production/plans",
        json={
            "name": "March shoot",
            "production_date": "2026-03-10",
            "team_member_ids": [str(designer.id)],
            "calendar_item_ids": [str(item.id)],
        },
        headers=auth(director),
    )
    assert created.status_code == 201
    body = created.json()
    plan_id = body["plan"]["id"]
    assert len(body["task_ids"]) == 1
    assert body["assignment_count"] == 1
    assert body["duplicates"] == {}

    duplicates = await client.post(
        "/api/v1/production/plans/duplicates",
        json={"calendar_item_ids": [str(item.id)]},
        headers=auth(director),
    )
    assert list(duplicates.json()) == [f"cal_{item.id}"]

    forced = await client.patch(
        f"/api/v1/production/plans/{plan_id}",
        json={"mode": "FORCE"},
        headers=auth(director),
    )
    assert forced.status_code == 422
    assert forced.json()["detail"]["code"] == "FORCE_REASON_REQUIRED"

    archived = await client.post(
        f"/api/v1/production/plans/{plan_id}/archive", json={}, headers=auth(director)
    )
    assert archived.status_code == 200
    assert archived.json()["status"] == "ARCHIVED"

    again = await client.post(
        f"/api/v1/production/plans/{plan_id}/archive", json={}, headers=auth(director)
    )
    assert again.status_code == 409

    restored = await client.post(
        f"/api/v1/production/plans/{plan_id}/restore", headers=auth(director)
    )
    assert restored.status_code == 200
    assert restored.json()["status"] == "DRAFT"


async def test_leave_conflict_is_422_with_user_ids(client, people, factory):
    designer, director = people
    item = await factory.calendar_item("ACM-002 Product shots")
    await factory.leave(designer, date(2026, 3, 10), date(2026, 3, 10))

    response = await client.post(
        "/api/v1/production/plans",
        json={
            "name": "March shoot",
            "production_date": "2026-03-10",
            "team_member_ids": [str(designer.id)],
            "calendar_item_ids": [str(item.id)],
        },
        headers=auth(director),
    )

    assert response.status_code == 422
    detail = response.json()["detail"]
    assert detail["code"] == "LEAVE_CONFLICT"
    assert detail["details"] == {"user_ids": [str(designer.id)]}


async def test_health(client):
    response = await client.get("/api/v1/health")
    assert response.status_code == 200

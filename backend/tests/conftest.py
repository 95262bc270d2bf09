"""Shared fixtures: in-memory SQLite database, pinned clock and model factories."""

import os

# Must be set before agencyhub.config is first imported
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")

from datetime import date, datetime, timedelta, timezone
from uuid import uuid4

import pytest
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

import agencyhub.models  # noqa: F401
from agencyhub.db.base import Base
from agencyhub.models import (
    Activity,
    AgencyFile,
    CalendarItem,
    Client,
    FileFolder,
    LeaveRequest,
    Project,
    ProjectMember,
    Role,
    Task,
    User,
)
from agencyhub.models.enums import LeaveStatus, WorkflowStatus
from agencyhub.services.task_lifecycle import TaskLifecycleService
from agencyhub.services.workflow_templates import StepDefinition, WorkflowTemplateService

T0 = datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc)


class FrozenClock:
    """Clock callable that only moves when told to."""

    def __init__(self, now: datetime = T0):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


class Factory:
    """Builds committed rows for tests."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def _save(self, obj):
        self.db.add(obj)
        await self.db.commit()
        return obj

    async def user(
        self,
        name: str = "Staff",
        role: str | None = None,
        department: str | None = None,
        email: str | None = None,
        is_active: bool = True,
    ) -> User:
        return await self._save(
            User(
                email=email or f"{name.lower().replace(' ', '.')}.{uuid4().hex[:6]}@agency.test",
                display_name=name,
                role=role,
                department=department,
                is_active=is_active,
            )
        )

    async def role(self, name: str) -> Role:
        return await self._save(Role(name=name, is_system=True))

    async def client(self, name: str = "Acme Foods") -> Client:
        return await self._save(Client(name=name))

    async def project(self, client: Client | None = None, name: str = "Spring Launch") -> Project:
        return await self._save(Project(name=name, client_id=client.id if client else None))

    async def member(
        self, project: Project, user: User, role_in_project: str | None = None
    ) -> ProjectMember:
        return await self._save(
            ProjectMember(project_id=project.id, user_id=user.id, role_in_project=role_in_project)
        )

    async def template(
        self,
        steps: list[StepDefinition],
        name: str = "Standard review",
        requires_client_approval: bool = False,
        department: str | None = None,
        task_type: str | None = None,
        status: str = WorkflowStatus.ACTIVE.value,
        is_default: bool = False,
    ):
        return await WorkflowTemplateService(self.db).create_template(
            name=name,
            steps=steps,
            department=department,
            task_type=task_type,
            requires_client_approval=requires_client_approval,
            status=status,
            is_default=is_default,
        )

    async def plain_task(self, title: str = "Brand video", **fields) -> Task:
        fields.setdefault("assignee_ids", [])
        return await self._save(Task(title=title, **fields))

    async def calendar_item(
        self,
        auto_name: str,
        client: Client | None = None,
        item_type: str = "VIDEO",
        primary_brief: str | None = None,
    ) -> CalendarItem:
        return await self._save(
            CalendarItem(
                auto_name=auto_name,
                client_id=client.id if client else None,
                item_type=item_type,
                primary_brief=primary_brief,
            )
        )

    async def leave(
        self,
        user: User,
        start: date,
        end: date,
        status: str = LeaveStatus.APPROVED.value,
    ) -> LeaveRequest:
        return await self._save(
            LeaveRequest(user_id=user.id, start_date=start, end_date=end, status=status)
        )

    async def folder(self, name: str = "Deliverables", project: Project | None = None) -> FileFolder:
        return await self._save(
            FileFolder(name=name, project_id=project.id if project else None)
        )

    async def file(
        self, task: Task, folder: FileFolder | None = None, name: str = "cut-v1.mp4"
    ) -> AgencyFile:
        return await self._save(
            AgencyFile(
                name=name,
                storage_path=f"files/{uuid4().hex}/{name}",
                project_id=task.project_id,
                task_id=task.id,
                folder_id=folder.id if folder else None,
            )
        )

    async def activities(self, activity_type: str) -> list[Activity]:
        result = await self.db.execute(
            select(Activity).where(Activity.activity_type == activity_type)
        )
        return list(result.scalars().all())


@pytest.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
async def db(engine):
    session_factory = async_sessionmaker(
        engine, class_=AsyncSession, expire_on_commit=False, autoflush=False
    )
    async with session_factory() as session:
        yield session


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock()


@pytest.fixture
def factory(db) -> Factory:
    return Factory(db)


@pytest.fixture
def lifecycle(db, clock) -> TaskLifecycleService:
    return TaskLifecycleService(db, clock=clock)

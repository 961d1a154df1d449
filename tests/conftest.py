"""Pytest configuration and shared fixtures."""

import pytest

from src.agents.completion import set_completion_service
from src.domain.task import RecentActivity, Task, TaskPriority, TaskStatus, TaskUpdate, TaskUpdateType


@pytest.fixture(autouse=True)
def reset_completion_service():
    """Never let a test fall through to the real OpenRouter-backed service."""
    set_completion_service(None)
    yield
    set_completion_service(None)


@pytest.fixture
def login_task() -> Task:
    """An open task with a due date and description."""
    return Task(
        id="t1",
        title="Fix login bug",
        description="Users get a 500 on the /auth page",
        due_date="2026-10-20",
        priority=TaskPriority.MEDIUM,
        status=TaskStatus.TODO,
    )


@pytest.fixture
def sample_tasks(login_task: Task) -> list[Task]:
    """A small space with one task in every status."""
    return [
        login_task,
        Task(id="t2", title="Write API docs", priority=TaskPriority.LOW, status=TaskStatus.IN_PROGRESS),
        Task(
            id="t3",
            title="Build RAG pipeline",
            due_date="2026-11-01",
            priority=TaskPriority.HIGH,
            status=TaskStatus.TODO,
            updates=[
                TaskUpdate(id="u1", type=TaskUpdateType.CREATION, content="Task created", timestamp=1760000000000),
            ],
        ),
        Task(id="t4", title="Prepare demo", priority=TaskPriority.MEDIUM, status=TaskStatus.DONE),
    ]


@pytest.fixture
def recent_activity(sample_tasks: list[Task]) -> RecentActivity:
    """Recent activity pointing at tasks from sample_tasks."""
    return RecentActivity(
        last_created_task=sample_tasks[2],
        last_updated_task=sample_tasks[0],
        last_completed_task=sample_tasks[3],
    )

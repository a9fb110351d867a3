"""Shared fixtures for Task Me tests."""
from datetime import datetime
from itertools import count
from pathlib import Path
from typing import Any, Dict, List, Optional, Set, Tuple

import pytest
import pytest_asyncio

from config import Importance, TaskCategory
from core import ServiceContainer, bootstrap, shutdown
from events import EventBus
from models.entities import Task
from services.notification_service import NotificationError


class FakeNotificationBackend:
    """In-memory notification backend recording every call."""

    def __init__(self) -> None:
        self.granted = True
        self.scheduled: Dict[str, Tuple[datetime, Dict[str, Any]]] = {}
        self.canceled: List[str] = []
        self.failing_schedule_tasks: Set[str] = set()
        self.failing_cancel_handles: Set[str] = set()
        self.crashing_schedule_tasks: Set[str] = set()
        self.prune_cutoffs: List[datetime] = []
        self.permission_checks = 0
        self._ids = count(1)

    async def ensure_permission(self) -> bool:
        self.permission_checks += 1
        return self.granted

    async def schedule(self, instant: datetime, payload: Dict[str, Any]) -> str:
        if payload["data"]["task_id"] in self.failing_schedule_tasks:
            raise NotificationError("platform refused")
        if payload["data"]["task_id"] in self.crashing_schedule_tasks:
            raise RuntimeError("platform channel timed out")
        handle = f"n{next(self._ids)}"
        self.scheduled[handle] = (instant, payload)
        return handle

    async def cancel(self, handle: str) -> bool:
        if handle in self.failing_cancel_handles:
            raise NotificationError(f"unknown handle {handle}")
        self.canceled.append(handle)
        return True

    async def prune_expired(self, before: datetime) -> int:
        self.prune_cutoffs.append(before)
        return 0

    def triggers_for(self, task_id: str) -> List[datetime]:
        return sorted(
            instant for instant, payload in self.scheduled.values()
            if payload["data"]["task_id"] == task_id
        )


@pytest.fixture
def now() -> datetime:
    """A fixed Tuesday morning."""
    return datetime(2026, 3, 10, 9, 0, 0)


@pytest.fixture
def make_task():
    """Factory for Task records with sensible defaults."""
    ids = count(1)

    def _make(
        category: TaskCategory = TaskCategory.ROUTINE,
        start_time: str = "7:00 AM",
        duration: str = "2h",
        reminder_every_mins: Optional[int] = None,
        created_at: Optional[datetime] = None,
        title: Optional[str] = None,
        task_id: Optional[str] = None,
    ) -> Task:
        n = next(ids)
        return Task(
            id=task_id or f"task-{n}",
            title=title or f"Task {n}",
            duration=duration,
            category=category,
            start_time=start_time,
            importance=Importance.MID,
            reminder_every_mins=reminder_every_mins,
            created_at=created_at or datetime(2026, 3, 1, 8, 0),
        )

    return _make


@pytest.fixture
def backend() -> FakeNotificationBackend:
    return FakeNotificationBackend()


@pytest_asyncio.fixture
async def services(backend: FakeNotificationBackend) -> ServiceContainer:
    """Provide a fresh ServiceContainer backed by an in-memory database."""
    svc = await bootstrap(
        db_path=Path(":memory:"),
        notifications=backend,
        events=EventBus(),
    )
    yield svc
    await shutdown(svc)

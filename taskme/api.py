"""Programmatic API facade for Task Me.

Composes the task store, the alarm ledger and the refresh service so that
every user-facing operation runs the full cycle: persist, resync alarms,
recompute display state.

Usage:
    from core import bootstrap
    from api import TaskMeAPI

    svc = await bootstrap(db_path=Path(":memory:"))
    api = TaskMeAPI(svc)

    task = await api.add_task("Morning run", "45m", "6:30 AM", category="Routine")
    await api.delete_task(task.id)
"""
import asyncio
import logging
from datetime import datetime
from typing import List, Optional, Sequence, Union

from config import DEFAULT_CATEGORY, DEFAULT_IMPORTANCE, Importance, TaskCategory
from core import ServiceContainer
from events import AppEvent
from models.entities import Task, TaskViewState
from services.alarm_ledger import ReconcileResult
from services.refresh import HomeSnapshot

logger = logging.getLogger(__name__)


class TaskMeAPI:
    """High-level facade over Task Me services.

    Alarm reconciliation and cancellation are serialized through one lock,
    since the ledger itself does no concurrency control.
    """

    def __init__(self, services: ServiceContainer) -> None:
        self._svc = services
        self._sync_lock = asyncio.Lock()

    @property
    def services(self) -> ServiceContainer:
        return self._svc

    async def refresh(self, now: Optional[datetime] = None) -> ReconcileResult:
        """Reload tasks, resync alarms, and publish fresh display state."""
        tasks = await self._svc.task.list_tasks()
        self._svc.refresh.set_tasks(tasks)
        async with self._sync_lock:
            result = await self._svc.ledger.reconcile(tasks, now)
        self._svc.refresh.tick(now)
        return result

    async def add_task(
        self,
        title: str,
        duration: str,
        start_time: str,
        category: Union[TaskCategory, str] = DEFAULT_CATEGORY,
        importance: Union[Importance, str] = DEFAULT_IMPORTANCE,
        reminder_every_mins: Optional[int] = None,
        now: Optional[datetime] = None,
    ) -> Task:
        """Create a task and schedule its alarms.

        Returns the persisted Task with its id and created_at set.
        """
        task = await self._svc.task.add_task(
            title=title,
            duration=duration,
            start_time=start_time,
            category=category,
            importance=importance,
            reminder_every_mins=reminder_every_mins,
        )
        self._svc.events.emit(AppEvent.TASK_CREATED, task)
        await self.refresh(now)
        return task

    async def delete_task(self, task_id: str, now: Optional[datetime] = None) -> int:
        """Cancel a task's alarms, then delete it.

        Returns:
            Number of scheduled alarms that were canceled
        """
        async with self._sync_lock:
            canceled = await self._svc.ledger.cancel_all(task_id)
        await self._svc.task.remove_task(task_id)
        self._svc.events.emit(AppEvent.TASK_DELETED, task_id)
        await self.refresh(now)
        return canceled

    async def replace_all_tasks(self, tasks: Sequence[Task], now: Optional[datetime] = None) -> None:
        """Replace the stored tasks, canceling alarms of tasks that disappear."""
        kept_ids = {task.id for task in tasks}
        current = await self._svc.task.list_tasks()
        async with self._sync_lock:
            for task in current:
                if task.id not in kept_ids:
                    await self._svc.ledger.cancel_all(task.id)
        await self._svc.task.replace_all_tasks(tasks)
        self._svc.events.emit(AppEvent.TASKS_REPLACED, len(tasks))
        await self.refresh(now)

    def snapshot(self, now: Optional[datetime] = None) -> HomeSnapshot:
        return self._svc.refresh.snapshot(now)

    def open_tasks(self, now: Optional[datetime] = None) -> List[TaskViewState]:
        return self.snapshot(now).open_tasks

    def completed_one_time(self, now: Optional[datetime] = None) -> List[Task]:
        return self.snapshot(now).completed_one_time

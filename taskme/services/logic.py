import logging
from datetime import datetime
from typing import List, Optional, Sequence, Union

from config import DEFAULT_CATEGORY, DEFAULT_IMPORTANCE, Importance, TaskCategory
from database import Database
from database.helpers import new_task_id
from models.entities import Task

logger = logging.getLogger(__name__)


class TaskService:
    """Service for task operations.

    This is the task store: plain CRUD over the tasks table. Scheduling and
    display state live in AlarmSyncLedger and TaskStateEngine.

    All data operations are async.
    """

    def __init__(self, db: Database) -> None:
        self._db = db

    async def list_tasks(self) -> List[Task]:
        """All tasks, most recently created first."""
        return [Task.from_dict(d) for d in await self._db.load_tasks()]

    async def add_task(
        self,
        title: str,
        duration: str,
        start_time: str,
        category: Union[TaskCategory, str] = DEFAULT_CATEGORY,
        importance: Union[Importance, str] = DEFAULT_IMPORTANCE,
        reminder_every_mins: Optional[int] = None,
    ) -> Task:
        """Create and persist a task.

        The category is classified once here; the reminder interval is only
        kept for reminder tasks.

        Raises:
            ValueError: If the title is empty.
        """
        title = (title or "").strip()
        if not title:
            raise ValueError("Task title must not be empty")

        category = TaskCategory.from_text(category)
        if category != TaskCategory.REMINDER:
            reminder_every_mins = None

        task = Task(
            id=new_task_id(),
            title=title,
            duration=duration,
            importance=Importance.from_text(importance),
            category=category,
            start_time=start_time,
            reminder_every_mins=reminder_every_mins,
            created_at=datetime.now(),
        )
        await self._db.save_task(task.to_dict())
        logger.info(f"Created task {task.id} ({category.value})")
        return task

    async def remove_task(self, task_id: str) -> None:
        await self._db.delete_task(task_id)

    async def replace_all_tasks(self, tasks: Sequence[Task]) -> None:
        """Replace the stored tasks, e.g. with the result of a backend sync."""
        await self._db.replace_all_tasks([task.to_dict() for task in tasks])

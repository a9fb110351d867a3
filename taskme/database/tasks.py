import sqlite3
import logging
from typing import Any, Dict, List, Sequence

from database.helpers import DatabaseError, _deserialize_task_row

logger = logging.getLogger(__name__)

_INSERT_TASK = (
    "INSERT INTO tasks "
    "(id,title,duration,importance,category,start_time,reminder_every_mins,created_at)"
    " VALUES (?,?,?,?,?,?,?,?)"
)


def _task_params(t: Dict[str, Any]) -> tuple:
    return (
        t["id"],
        t["title"],
        t["duration"],
        t["importance"],
        t["category"],
        t["start_time"],
        t.get("reminder_every_mins"),
        t["created_at"],
    )


class TasksMixin:
    """Task CRUD operations mixin for the Database class."""

    async def save_task(self, t: Dict[str, Any]) -> str:
        """Insert a task row. The dict must already carry id and created_at."""
        try:
            async with self._get_connection() as conn:
                await conn.execute(_INSERT_TASK, _task_params(t))
                await conn.commit()
                return t["id"]
        except (sqlite3.Error, ValueError, KeyError, TypeError) as e:
            logger.error(f"Error saving task: {e}")
            raise DatabaseError(f"Failed to save task: {e}") from e

    async def delete_task(self, task_id: str) -> None:
        try:
            async with self._get_connection() as conn:
                await conn.execute("DELETE FROM tasks WHERE id=?", (task_id,))
                await conn.commit()
        except (sqlite3.Error, ValueError, KeyError, TypeError) as e:
            logger.error(f"Error deleting task {task_id}: {e}")
            raise DatabaseError(f"Failed to delete task: {e}") from e

    async def replace_all_tasks(self, tasks: Sequence[Dict[str, Any]]) -> None:
        """Replace the whole task table in a single transaction."""
        try:
            async with self._get_connection() as conn:
                await conn.execute("DELETE FROM tasks")
                await conn.executemany(_INSERT_TASK, [_task_params(t) for t in tasks])
                await conn.commit()
        except (sqlite3.Error, ValueError, KeyError, TypeError) as e:
            logger.error(f"Error replacing tasks: {e}")
            raise DatabaseError(f"Failed to replace tasks: {e}") from e

    async def load_tasks(self) -> List[Dict[str, Any]]:
        """Load all tasks, newest first."""
        try:
            async with self._get_connection() as conn:
                async with conn.execute("SELECT * FROM tasks ORDER BY created_at DESC") as cursor:
                    return [_deserialize_task_row(r) async for r in cursor]
        except (sqlite3.Error, ValueError, KeyError, TypeError) as e:
            logger.error(f"Error loading tasks: {e}")
            raise DatabaseError(f"Failed to load tasks: {e}") from e

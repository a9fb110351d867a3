import json
import sqlite3
import logging
from typing import Any, Dict, List, Optional

from database.helpers import DatabaseError

logger = logging.getLogger(__name__)

PENDING = "pending"
DELIVERED = "delivered"
CANCELED = "canceled"


def _deserialize_alarm_row(row) -> Dict[str, Any]:
    alarm = dict(row)
    try:
        alarm["data"] = json.loads(alarm.get("data") or "{}")
    except ValueError:
        logger.warning(f"Alarm {alarm.get('id')} has unreadable data, ignoring it")
        alarm["data"] = {}
    return alarm


class AlarmsMixin:
    """Alarm rows for the notification backends.

    The row id is the handle given out by NotificationService.schedule().
    The desktop backend also delivers from this table; mobile backends only
    use it to hand out stable ids.
    """

    async def _write_alarms(self, sql: str, params: tuple, action: str) -> int:
        """Run one write statement and return the affected row count."""
        try:
            async with self._get_connection() as conn:
                cursor = await conn.execute(sql, params)
                await conn.commit()
                return cursor.rowcount
        except (sqlite3.Error, ValueError, TypeError) as e:
            logger.error(f"Error trying to {action}: {e}")
            raise DatabaseError(f"Failed to {action}: {e}") from e

    async def add_alarm(
        self,
        task_id: str,
        ntype: str,
        trigger_at: int,
        title: str,
        body: str,
        data: Optional[Dict[str, Any]] = None,
    ) -> int:
        """Insert a pending alarm and return its id."""
        try:
            async with self._get_connection() as conn:
                cursor = await conn.execute(
                    "INSERT INTO alarms (task_id, ntype, trigger_at, title, body, data) "
                    "VALUES (?, ?, ?, ?, ?, ?)",
                    (task_id, ntype, trigger_at, title, body, json.dumps(data or {})),
                )
                await conn.commit()
                return cursor.lastrowid
        except (sqlite3.Error, ValueError, TypeError) as e:
            logger.error(f"Error adding alarm for task {task_id}: {e}")
            raise DatabaseError(f"Failed to add alarm: {e}") from e

    async def load_due_alarms(self, until_ms: int) -> List[Dict[str, Any]]:
        """Pending alarms with trigger_at <= until_ms, oldest first."""
        try:
            async with self._get_connection() as conn:
                async with conn.execute(
                    "SELECT * FROM alarms WHERE state = ? AND trigger_at <= ? "
                    "ORDER BY trigger_at, id",
                    (PENDING, until_ms),
                ) as cursor:
                    return [_deserialize_alarm_row(r) async for r in cursor]
        except sqlite3.Error as e:
            logger.error(f"Error loading due alarms: {e}")
            raise DatabaseError(f"Failed to load due alarms: {e}") from e

    async def mark_alarm_delivered(self, alarm_id: int) -> None:
        await self._write_alarms(
            "UPDATE alarms SET state = ? WHERE id = ?",
            (DELIVERED, alarm_id),
            f"mark alarm {alarm_id} delivered",
        )

    async def cancel_alarm(self, alarm_id: int) -> bool:
        """Cancel a pending alarm.

        Returns:
            False if the alarm does not exist, already fired or was canceled
        """
        changed = await self._write_alarms(
            "UPDATE alarms SET state = ? WHERE id = ? AND state = ?",
            (CANCELED, alarm_id, PENDING),
            f"cancel alarm {alarm_id}",
        )
        return changed > 0

    async def prune_alarms(self, before_ms: int) -> int:
        """Delete finished alarms and pending ones that triggered before before_ms.

        Mobile rows are never marked delivered, so the time cutoff is what
        clears them.

        Returns:
            Number of rows removed
        """
        return await self._write_alarms(
            "DELETE FROM alarms WHERE state != ? OR trigger_at < ?",
            (PENDING, before_ms),
            "prune alarms",
        )

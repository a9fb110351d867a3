"""Keeps device notifications in sync with the tasks' planned triggers.

The ledger maps "<task id>:<trigger minute>" to the handle returned by the
notification backend. Reconciliation only schedules what is missing, so it
is safe to call on every refresh.

Callers must not run reconcile() or cancel_all() concurrently: the ledger is
read, modified and written back without any concurrency control.
"""
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Dict, Iterable, Optional, Protocol

from config import (
    APP_TITLE,
    CLOCK_SKEW_GUARD_MS,
    LEDGER_RETENTION_DAYS,
    NotificationType,
    TaskCategory,
)
from database import DatabaseError
from events import AppEvent, EventBus
from i18n import t
from models.entities import ScheduledTrigger, Task
from services.notification_service import BRIDGE_ERRORS, NotificationError
from services.time_math import to_epoch_ms
from services.trigger_planner import plan_triggers

logger = logging.getLogger(__name__)

_BACKEND_ERRORS = (NotificationError, DatabaseError, OSError) + BRIDGE_ERRORS


class NotificationBackendPort(Protocol):
    async def ensure_permission(self) -> bool: ...

    async def schedule(self, instant: datetime, payload: Dict[str, Any]) -> str: ...

    async def cancel(self, handle: str) -> bool: ...

    async def prune_expired(self, before: datetime) -> int: ...


class LedgerStore(Protocol):
    async def load_ledger(self) -> Dict[str, ScheduledTrigger]: ...

    async def save_ledger(self, ledger: Dict[str, ScheduledTrigger]) -> None: ...


@dataclass
class ReconcileResult:
    scheduled: int = 0
    skipped: int = 0
    pruned: int = 0
    failed: int = 0
    permitted: bool = True


def ledger_key(task_id: str, trigger: datetime) -> str:
    """One key per task and trigger minute."""
    return (
        f"{task_id}:{trigger.year}-{trigger.month}-{trigger.day} "
        f"{trigger.hour}:{trigger.minute}"
    )


def build_payload(task: Task) -> Dict[str, Any]:
    """Notification content for a task trigger."""
    if task.category == TaskCategory.REMINDER:
        ntype, body_key = NotificationType.REMINDER, "reminder_body"
    else:
        ntype, body_key = NotificationType.FOCUS, "focus_body"
    return {
        "ntype": ntype.value,
        "title": APP_TITLE,
        "body": t(body_key).replace("{task}", task.title),
        "data": {"task_id": task.id, "title": task.title},
    }


class AlarmSyncLedger:
    """Idempotent reconciliation between planned triggers and scheduled notifications."""

    def __init__(
        self,
        store: LedgerStore,
        backend: NotificationBackendPort,
        events: Optional[EventBus] = None,
    ) -> None:
        self._store = store
        self._backend = backend
        self._events = events

    async def _load(self) -> Dict[str, ScheduledTrigger]:
        try:
            return await self._store.load_ledger()
        except DatabaseError as e:
            logger.error(f"Alarm ledger unreadable, starting empty: {e}")
            return {}

    async def _save(self, ledger: Dict[str, ScheduledTrigger]) -> None:
        try:
            await self._store.save_ledger(ledger)
        except DatabaseError as e:
            logger.error(f"Failed to persist alarm ledger: {e}")

    @staticmethod
    def _prune(ledger: Dict[str, ScheduledTrigger], before: datetime) -> int:
        """Drop entries older than the retention window. No cancel calls."""
        cutoff = to_epoch_ms(before)
        expired = [key for key, entry in ledger.items() if entry.trigger_at < cutoff]
        for key in expired:
            del ledger[key]
        return len(expired)

    async def reconcile(self, tasks: Iterable[Task], now: Optional[datetime] = None) -> ReconcileResult:
        """Schedule every planned trigger that the ledger does not know yet.

        Without notification permission nothing is loaded, scheduled or saved.
        A failed schedule call is logged and the remaining triggers continue.
        """
        if not await self._backend.ensure_permission():
            logger.info("Notification permission not granted, skipping alarm sync")
            return ReconcileResult(permitted=False)

        now = now or datetime.now()
        result = ReconcileResult()
        ledger = await self._load()
        retention_cutoff = now - timedelta(days=LEDGER_RETENTION_DAYS)
        result.pruned = self._prune(ledger, retention_cutoff)
        try:
            await self._backend.prune_expired(retention_cutoff)
        except _BACKEND_ERRORS as e:
            logger.warning(f"Could not prune expired notifications: {e}")

        earliest = now + timedelta(milliseconds=CLOCK_SKEW_GUARD_MS)
        for task in tasks:
            payload = None
            for trigger in plan_triggers(task, now):
                if trigger <= earliest:
                    continue
                key = ledger_key(task.id, trigger)
                if key in ledger:
                    result.skipped += 1
                    continue

                payload = payload or build_payload(task)
                try:
                    handle = await self._backend.schedule(trigger, payload)
                except _BACKEND_ERRORS as e:
                    logger.warning(f"Could not schedule {key}: {e}")
                    result.failed += 1
                    continue
                ledger[key] = ScheduledTrigger(notification_id=handle, trigger_at=to_epoch_ms(trigger))
                result.scheduled += 1

        await self._save(ledger)
        logger.info(
            f"Alarm sync: {result.scheduled} scheduled, {result.skipped} already present, "
            f"{result.pruned} pruned, {result.failed} failed"
        )
        if self._events is not None:
            self._events.emit(AppEvent.ALARMS_RECONCILED, result)
        return result

    async def cancel_all(self, task_id: str) -> int:
        """Cancel and forget every ledger entry of a task.

        Cancellation is best-effort: a handle the platform refuses to cancel
        is logged and the entry is removed anyway.

        Returns:
            Number of ledger entries removed
        """
        ledger = await self._load()
        prefix = f"{task_id}:"
        keys = [key for key in ledger if key.startswith(prefix)]
        if not keys:
            return 0

        for key in keys:
            handle = ledger[key].notification_id
            if handle:
                try:
                    await self._backend.cancel(handle)
                except _BACKEND_ERRORS as e:
                    logger.warning(f"Could not cancel notification {handle} for {key}: {e}")
            del ledger[key]

        await self._save(ledger)
        return len(keys)

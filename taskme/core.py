"""Headless bootstrap for Task Me services.

Initializes the service layer without any Flet dependency, suitable for
scripts, background sync, and testing.

Usage:
    from core import bootstrap, shutdown

    svc = await bootstrap(db_path=Path("my.db"))
    task = await svc.task.add_task("Stretch", "15m", "7:00 AM", category="Routine")
    await svc.ledger.reconcile(await svc.task.list_tasks())
    await shutdown(svc)
"""
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from database import Database
from events import EventBus, event_bus
from services.alarm_ledger import AlarmSyncLedger, NotificationBackendPort
from services.logic import TaskService
from services.notification_service import NotificationBackend, NotificationService
from services.refresh import RefreshService
from services.task_state import TaskStateEngine

logger = logging.getLogger(__name__)


@dataclass
class ServiceContainer:
    """Container holding all initialized services."""
    db: Database
    events: EventBus
    task: TaskService
    notifications: NotificationBackendPort
    ledger: AlarmSyncLedger
    engine: TaskStateEngine
    refresh: RefreshService


async def bootstrap(
    db_path: Optional[Path] = None,
    platform: Optional[str] = None,
    backend: Optional[NotificationBackend] = None,
    notifications: Optional[NotificationBackendPort] = None,
    events: Optional[EventBus] = None,
) -> ServiceContainer:
    """Initialize the service layer.

    Args:
        db_path: Custom database path. Uses config.DB_PATH if None.
        platform: Flet page platform name, used to pick the notification backend.
        backend: Force a notification backend instead of detecting one.
        notifications: Use this object as the notification backend instead
            of a NotificationService (tests, alternative platforms).
        events: Event bus to publish on. Defaults to the module-level bus.

    Returns:
        ServiceContainer with all services ready to use.
    """
    events = events or event_bus
    db = Database(db_path)
    await db.init_db()

    if notifications is None:
        notifications = NotificationService(db, events, backend=backend, platform=platform)

    engine = TaskStateEngine()
    container = ServiceContainer(
        db=db,
        events=events,
        task=TaskService(db),
        notifications=notifications,
        ledger=AlarmSyncLedger(db, notifications, events),
        engine=engine,
        refresh=RefreshService(events, engine),
    )
    logger.info(f"Task Me services ready (db={db.db_path})")
    return container


async def shutdown(services: ServiceContainer) -> None:
    """Stop background loops and close the database connection."""
    services.refresh.stop()
    if isinstance(services.notifications, NotificationService):
        await services.notifications.cleanup()
    await services.db.close()

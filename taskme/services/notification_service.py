"""
Notification service for Task Me.

Backends:
- Flet local notifications extension (Android/iOS): alarms are registered
  with the OS at schedule() time and fire even if the app is killed.
- plyer (desktop): alarms stay in the alarms table and a polling loop shows
  the due ones every 60 seconds.

Either way the alarms row id is the handle returned by schedule(), so the
alarm ledger cancels the same way on every platform.
"""
import asyncio
import json
import logging
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Dict, Optional

from config import (
    ANDROID_CHANNEL_ID,
    ANDROID_CHANNEL_NAME,
    APP_TITLE,
    SCHEDULER_INTERVAL_SECONDS,
    PermissionResult,
)
from database import Database, DatabaseError
from events import AppEvent, EventBus
from services.time_math import to_epoch_ms

logger = logging.getLogger(__name__)

MOBILE_PLATFORMS = ("android", "ios")


class NotificationError(Exception):
    """Raised when the platform refuses to schedule or cancel a notification."""
    pass


class NotificationBackend(Enum):
    """Available notification backends."""
    FLET_EXTENSION = "flet_extension"
    PLYER = "plyer"
    NONE = "none"


# Backend availability detection
PLYER_AVAILABLE = False
FLET_EXTENSION_AVAILABLE = False

try:
    from flet_local_notifications import FletLocalNotifications
    FLET_EXTENSION_AVAILABLE = True
except ImportError:
    logger.info("flet_local_notifications not available")

try:
    from plyer import notification as plyer_notification
    PLYER_AVAILABLE = True
except ImportError:
    logger.info("plyer not available")


def _detect_notification_backend(platform: Optional[str]) -> NotificationBackend:
    """Detect the best available notification backend.

    Priority:
    1. Flet extension on mobile platforms
    2. plyer for desktop (Windows/Linux/Mac)
    3. None if nothing available
    """
    if FLET_EXTENSION_AVAILABLE and (platform or "").lower() in MOBILE_PLATFORMS:
        return NotificationBackend.FLET_EXTENSION

    if PLYER_AVAILABLE:
        return NotificationBackend.PLYER

    return NotificationBackend.NONE


# Errors the Flet platform channel raises when the Dart side fails or times out
BRIDGE_ERRORS = (RuntimeError, TimeoutError, asyncio.TimeoutError)


def _is_ok(result: Any) -> bool:
    return str(result).lower() in ("ok", "true")


class NotificationService:
    """Schedules, cancels and (on desktop) delivers task notifications.

    Implements the backend contract used by AlarmSyncLedger:
    ensure_permission(), schedule(instant, payload), cancel(handle) and
    prune_expired(before).
    """

    def __init__(
        self,
        db: Database,
        events: EventBus,
        backend: Optional[NotificationBackend] = None,
        platform: Optional[str] = None,
    ) -> None:
        self._db = db
        self._events = events
        self._backend = backend or _detect_notification_backend(platform)
        logger.info(f"Notification backend: {self._backend.value}")

        # Dependencies (injected via inject_dependencies)
        self._page = None
        self._schedule_async: Optional[Callable[..., Any]] = None

        # Flet extension instance (mobile only)
        self._flet_notifications = None

        # Async control
        self._running = False
        self._stop_event: asyncio.Event = asyncio.Event()

    def inject_dependencies(self, page: Any, async_scheduler: Callable[..., Any]) -> None:
        """Inject dependencies after construction.

        Args:
            page: Flet page owning the extension service
            async_scheduler: Function to schedule async work (page.run_task)
        """
        self._page = page
        self._schedule_async = async_scheduler
        if self._backend == NotificationBackend.FLET_EXTENSION and FLET_EXTENSION_AVAILABLE:
            self._flet_notifications = FletLocalNotifications()

    # ── Permission ─────────────────────────────────────────────────────

    async def request_permission(self) -> PermissionResult:
        """Check, then if needed request, notification permission.

        Desktop needs no runtime permission. With no backend at all the
        result is DENIED since nothing could be delivered.
        """
        if self._backend == NotificationBackend.PLYER:
            return PermissionResult.NOT_REQUIRED

        if self._backend == NotificationBackend.FLET_EXTENSION and self._flet_notifications is not None:
            try:
                if _is_ok(await self._flet_notifications.check_permissions()):
                    return PermissionResult.GRANTED
                granted = _is_ok(await self._flet_notifications.request_permissions())
                return PermissionResult.GRANTED if granted else PermissionResult.DENIED
            except BRIDGE_ERRORS as e:
                logger.error(f"Error requesting notification permission: {e}")
                return PermissionResult.DENIED

        return PermissionResult.DENIED

    async def ensure_permission(self) -> bool:
        result = await self.request_permission()
        return result != PermissionResult.DENIED

    # ── Backend contract ───────────────────────────────────────────────

    async def schedule(self, instant: datetime, payload: Dict[str, Any]) -> str:
        """Register a notification to fire at instant and return its handle.

        Raises:
            NotificationError: If no backend is available or the platform refused.
        """
        if self._backend == NotificationBackend.NONE:
            raise NotificationError("No notification backend available")

        data = payload.get("data", {})
        task_id = str(data.get("task_id", ""))
        try:
            alarm_id = await self._db.add_alarm(
                task_id=task_id,
                ntype=payload.get("ntype", ""),
                trigger_at=to_epoch_ms(instant),
                title=payload.get("title", APP_TITLE),
                body=payload.get("body", ""),
                data=data,
            )
        except DatabaseError as e:
            raise NotificationError(f"Failed to store alarm for task {task_id}: {e}") from e

        if self._backend == NotificationBackend.FLET_EXTENSION:
            await self._register_os_alarm(alarm_id, instant, payload)

        handle = str(alarm_id)
        self._events.emit(AppEvent.NOTIFICATION_SCHEDULED, {
            "handle": handle,
            "task_id": task_id,
            "trigger_at": instant,
        })
        return handle

    async def cancel(self, handle: str) -> bool:
        """Cancel a scheduled notification.

        Returns:
            False if it had already fired or been canceled.

        Raises:
            NotificationError: If the handle is invalid or the platform refused.
        """
        try:
            alarm_id = int(handle)
        except (TypeError, ValueError) as e:
            raise NotificationError(f"Invalid notification handle {handle!r}") from e

        if self._flet_notifications is not None:
            try:
                result = await self._flet_notifications.cancel(alarm_id)
            except BRIDGE_ERRORS as e:
                raise NotificationError(f"Could not cancel OS alarm {alarm_id}: {e}") from e
            if not _is_ok(result):
                raise NotificationError(f"OS refused to cancel alarm {alarm_id}: {result}")

        try:
            return await self._db.cancel_alarm(alarm_id)
        except DatabaseError as e:
            raise NotificationError(f"Failed to cancel alarm {alarm_id}: {e}") from e

    async def prune_expired(self, before: datetime) -> int:
        """Forget finished alarm rows and those that triggered before before."""
        try:
            removed = await self._db.prune_alarms(to_epoch_ms(before))
        except DatabaseError as e:
            raise NotificationError(f"Failed to prune alarms: {e}") from e
        if removed:
            logger.debug(f"Pruned {removed} expired alarm rows")
        return removed

    async def _register_os_alarm(self, alarm_id: int, instant: datetime, payload: Dict[str, Any]) -> None:
        """Hand the alarm to the OS so it fires with the app closed (mobile only)."""
        if self._flet_notifications is None:
            await self._discard_alarm(alarm_id)
            raise NotificationError("Flet notifications extension not initialized")

        try:
            result = await self._flet_notifications.schedule_notification(
                notification_id=alarm_id,
                title=payload.get("title", APP_TITLE),
                body=payload.get("body", ""),
                scheduled_time=instant,
                payload=json.dumps(payload.get("data", {})),
                channel_id=ANDROID_CHANNEL_ID,
                channel_name=ANDROID_CHANNEL_NAME,
            )
        except BRIDGE_ERRORS as e:
            await self._discard_alarm(alarm_id)
            raise NotificationError(f"Could not register OS alarm {alarm_id}: {e}") from e
        if not _is_ok(result):
            await self._discard_alarm(alarm_id)
            raise NotificationError(f"OS refused alarm {alarm_id}: {result}")
        logger.debug(f"Registered OS alarm {alarm_id} for {instant}")

    async def _discard_alarm(self, alarm_id: int) -> None:
        try:
            await self._db.cancel_alarm(alarm_id)
        except DatabaseError as e:
            logger.error(f"Could not discard alarm {alarm_id}: {e}")

    # ── Desktop-only polling loop ──────────────────────────────────────

    def start_scheduler(self) -> None:
        """Start the desktop delivery loop. Mobile relies on OS alarms."""
        if self._running or self._backend != NotificationBackend.PLYER:
            return

        if self._schedule_async is None:
            raise RuntimeError("NotificationService dependencies not injected")

        self._running = True
        self._stop_event.clear()
        self._schedule_async(self._delivery_loop)
        logger.info(f"Desktop alarm delivery every {SCHEDULER_INTERVAL_SECONDS}s")

    def stop_scheduler(self) -> None:
        self._running = False
        self._stop_event.set()

    async def _delivery_loop(self) -> None:
        try:
            while self._running:
                try:
                    await asyncio.wait_for(self._stop_event.wait(), SCHEDULER_INTERVAL_SECONDS)
                    break
                except asyncio.TimeoutError:
                    pass
                await self.deliver_due()
        except asyncio.CancelledError:
            logger.info("Desktop alarm delivery cancelled")
        except (DatabaseError, OSError, RuntimeError) as e:
            logger.error(f"Desktop alarm delivery stopped: {e}")
        finally:
            self._running = False

    async def deliver_due(self, now: Optional[datetime] = None) -> int:
        """Show every pending alarm that is due and mark it delivered.

        An alarm is marked delivered even if the desktop refused to show it,
        so it is not retried on every pass.

        Returns:
            Number of notifications actually shown
        """
        now = now or datetime.now()
        shown = 0
        try:
            due = await self._db.load_due_alarms(to_epoch_ms(now))
            for alarm in due:
                if await self._show_desktop_notification(alarm["title"], alarm["body"]):
                    shown += 1
                await self._db.mark_alarm_delivered(alarm["id"])
                self._events.emit(AppEvent.NOTIFICATION_FIRED, {
                    "handle": str(alarm["id"]),
                    "task_id": alarm["task_id"],
                })
        except DatabaseError as e:
            logger.error(f"Error delivering due alarms: {e}")
        return shown

    async def _show_desktop_notification(self, title: str, body: str) -> bool:
        """Show a notification through plyer.

        Returns:
            False if plyer is missing or the desktop refused.
        """
        if not PLYER_AVAILABLE:
            return False

        try:
            loop = asyncio.get_running_loop()
            await loop.run_in_executor(
                None,
                lambda: plyer_notification.notify(
                    title=title,
                    message=body,
                    app_name=APP_TITLE,
                    timeout=10,
                )
            )
            return True
        except (OSError, RuntimeError, NotImplementedError) as e:
            logger.error(f"plyer could not show notification: {e}")
            return False

    async def cleanup(self) -> None:
        """Stop the desktop loop. Pending alarms are kept for the next start."""
        self.stop_scheduler()
        self._flet_notifications = None

    @property
    def backend(self) -> NotificationBackend:
        return self._backend

    @property
    def is_running(self) -> bool:
        return self._running

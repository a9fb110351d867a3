import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, List, Optional, Sequence

from config import REFRESH_INTERVAL_SECONDS
from events import AppEvent, EventBus
from models.entities import Task, TaskViewState
from services.task_state import TaskStateEngine

logger = logging.getLogger(__name__)


@dataclass
class HomeSnapshot:
    """Both task projections computed for one instant."""
    now: datetime
    open_tasks: List[TaskViewState] = field(default_factory=list)
    completed_one_time: List[Task] = field(default_factory=list)


class RefreshService:
    """Periodic recomputation of task view states.

    Framework-agnostic: uses an injected scheduler for the tick loop. Each
    tick is a pure projection of the last loaded tasks; nothing is written.
    """

    def __init__(self, events: EventBus, engine: Optional[TaskStateEngine] = None) -> None:
        self._events = events
        self._engine = engine or TaskStateEngine()
        self._tasks: List[Task] = []
        self._schedule_async: Optional[Callable[..., object]] = None

        self.running: bool = False
        self.ticks: int = 0
        self._stop_event: asyncio.Event = asyncio.Event()

    def inject_dependencies(self, async_scheduler: Callable[..., object]) -> None:
        """Inject the function used to schedule async work (e.g., page.run_task)."""
        self._schedule_async = async_scheduler

    def set_tasks(self, tasks: Sequence[Task]) -> None:
        self._tasks = list(tasks)

    def snapshot(self, now: Optional[datetime] = None) -> HomeSnapshot:
        now = now or datetime.now()
        return HomeSnapshot(
            now=now,
            open_tasks=self._engine.open_tasks(self._tasks, now),
            completed_one_time=self._engine.completed_one_time(self._tasks, now),
        )

    def tick(self, now: Optional[datetime] = None) -> HomeSnapshot:
        """Recompute and publish the current snapshot."""
        snapshot = self.snapshot(now)
        self.ticks += 1
        self._events.emit(AppEvent.REFRESH_UI, snapshot)
        return snapshot

    def start(self) -> None:
        if self.running:
            return

        if self._schedule_async is None:
            raise RuntimeError("RefreshService dependencies not injected")

        self.running = True
        self._stop_event.clear()
        self._schedule_async(self._tick_loop)

    async def _tick_loop(self) -> None:
        """Main tick loop - runs independently of UI."""
        logger.info("Refresh loop started")
        try:
            while self.running and not self._stop_event.is_set():
                self.tick()
                try:
                    await asyncio.wait_for(self._stop_event.wait(), REFRESH_INTERVAL_SECONDS)
                except asyncio.TimeoutError:
                    pass
        except asyncio.CancelledError:
            logger.info("Refresh loop cancelled")

    def stop(self) -> None:
        self.running = False
        self._stop_event.set()

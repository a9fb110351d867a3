"""Lifecycle phase and progress of tasks for the home screen.

TaskStateEngine is a pure projection of (task, now): it is recomputed on
every refresh tick and never writes anything back to the store.
"""
import math
from datetime import datetime, timedelta
from typing import Iterable, List, Optional

from config import TaskCategory, TaskPhase
from formatters import TimeFormatter
from models.entities import Task, TaskViewState
from services.time_math import (
    add_calendar_days,
    next_grid_occurrence,
    parse_clock_time,
    parse_duration_ms,
)


def clamp01(value: float) -> float:
    return max(0.0, min(1.0, value))


def _sort_key(next_relevant: Optional[datetime], now: datetime) -> float:
    if next_relevant is None:
        return math.inf
    return abs((next_relevant - now) / timedelta(milliseconds=1))


class TaskStateEngine:
    """Computes TaskViewState values without rendering."""

    def compute(self, task: Task, now: datetime) -> TaskViewState:
        """Project a task onto its phase, progress and next relevant instant."""
        start = parse_clock_time(task.start_time, now)
        duration_ms = parse_duration_ms(task.duration)
        every_label = self._every_label(task)

        if start is None or duration_ms <= 0:
            # Keep visible with zero progress when the data is incomplete
            return TaskViewState(
                task=task,
                phase=TaskPhase.NOT_STARTED,
                progress=0.0,
                next_relevant=None,
                sort_key=math.inf,
                started_label=task.start_time or "-",
                every_label=every_label,
                incomplete=True,
            )

        end = start + timedelta(milliseconds=duration_ms)
        category = task.category

        if category == TaskCategory.REMINDER:
            upcoming = next_grid_occurrence(start, task.reminder_interval_ms, now)
            return self._view(task, TaskPhase.RUNNING, 0.0, upcoming, now,
                              TimeFormatter.started_label(upcoming, now),
                              every_label, periodic=True)

        if now < start:
            return self._view(task, TaskPhase.NOT_STARTED, 0.0, start, now,
                              TimeFormatter.started_label(start, now), every_label)

        if now <= end:
            progress = clamp01((now - start) / timedelta(milliseconds=duration_ms))
            return self._view(task, TaskPhase.RUNNING, progress, start, now,
                              TimeFormatter.started_label(start, now), every_label)

        if category == TaskCategory.ONE_TIME:
            return self._view(task, TaskPhase.COMPLETED, 1.0, end, now,
                              TimeFormatter.started_label(start, now), every_label)

        # Routine (and untyped) tasks reset for the same time tomorrow
        tomorrow = add_calendar_days(start, 1)
        return self._view(task, TaskPhase.AWAITING_RESET, 0.0, tomorrow, now,
                          TimeFormatter.tomorrow_label(tomorrow), every_label)

    def open_tasks(self, tasks: Iterable[Task], now: datetime) -> List[TaskViewState]:
        """View states for the open list, soonest-relevant first.

        Completed one-time tasks are left out; tasks with incomplete data
        sort last.
        """
        views = [self.compute(task, now) for task in tasks]
        views = [v for v in views if v.phase != TaskPhase.COMPLETED]
        views.sort(key=lambda v: v.sort_key)
        return views

    def completed_one_time(self, tasks: Iterable[Task], now: datetime) -> List[Task]:
        """One-time tasks whose end has passed, most recently created first."""
        done = [
            task for task in tasks
            if task.category == TaskCategory.ONE_TIME
            and self.compute(task, now).phase == TaskPhase.COMPLETED
        ]
        done.sort(key=lambda t: t.created_at, reverse=True)
        return done

    @staticmethod
    def _every_label(task: Task) -> Optional[str]:
        if task.category == TaskCategory.REMINDER and task.reminder_every_mins:
            return TimeFormatter.every_label(task.reminder_every_mins)
        return None

    @staticmethod
    def _view(
        task: Task,
        phase: TaskPhase,
        progress: float,
        next_relevant: datetime,
        now: datetime,
        started_label: str,
        every_label: Optional[str],
        periodic: bool = False,
    ) -> TaskViewState:
        return TaskViewState(
            task=task,
            phase=phase,
            progress=progress,
            next_relevant=next_relevant,
            sort_key=_sort_key(next_relevant, now),
            started_label=started_label,
            every_label=every_label,
            periodic=periodic,
        )

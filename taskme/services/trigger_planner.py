from datetime import datetime, timedelta
from typing import Iterator, List

from config import MAX_REMINDER_OCCURRENCES, SCHEDULING_HORIZON_DAYS, TaskCategory
from models.entities import Task
from services.time_math import add_calendar_days, next_grid_occurrence, parse_clock_time


def _next_daily_trigger(task: Task, now: datetime) -> Iterator[datetime]:
    start = parse_clock_time(task.start_time, now)
    if start is None:
        return
    if now < start:
        yield start
    elif task.category == TaskCategory.ROUTINE:
        yield add_calendar_days(start, 1)
    # one-time already passed: nothing to schedule


def _reminder_occurrences(task: Task, now: datetime) -> Iterator[datetime]:
    """Occurrences on the reminder grid, bounded by the horizon and the cap."""
    anchor = parse_clock_time(task.start_time, now)
    step_ms = task.reminder_interval_ms
    if anchor is None or step_ms <= 0:
        return

    step = timedelta(milliseconds=step_ms)
    until = now + timedelta(days=SCHEDULING_HORIZON_DAYS)
    occurrence = next_grid_occurrence(anchor, step_ms, now)
    for _ in range(MAX_REMINDER_OCCURRENCES):
        if occurrence > until:
            break
        yield occurrence
        occurrence += step


class TriggerPlan:
    """Future trigger instants for one task, as seen from a fixed now.

    Iterating is lazy and side-effect free; every iteration starts over.
    """

    def __init__(self, task: Task, now: datetime) -> None:
        self.task = task
        self.now = now

    def __iter__(self) -> Iterator[datetime]:
        category = self.task.category
        if category == TaskCategory.REMINDER:
            return _reminder_occurrences(self.task, self.now)
        if category in (TaskCategory.ROUTINE, TaskCategory.ONE_TIME):
            return _next_daily_trigger(self.task, self.now)
        # Untyped tasks are never scheduled
        return iter(())

    def to_list(self) -> List[datetime]:
        return list(self)


def plan_triggers(task: Task, now: datetime) -> TriggerPlan:
    return TriggerPlan(task, now)

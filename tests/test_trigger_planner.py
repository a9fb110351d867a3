"""Tests for planned notification triggers."""
from datetime import datetime, timedelta

from config import MAX_REMINDER_OCCURRENCES, TaskCategory
from services.trigger_planner import plan_triggers


class TestDailyTriggers:
    def test_future_start_today(self, make_task, now):
        task = make_task(start_time="10:00 AM")
        assert plan_triggers(task, now).to_list() == [datetime(2026, 3, 10, 10, 0)]

    def test_routine_past_start_moves_to_tomorrow(self, make_task, now):
        task = make_task(start_time="7:00 AM")
        assert plan_triggers(task, now).to_list() == [datetime(2026, 3, 11, 7, 0)]

    def test_one_time_past_start_yields_nothing(self, make_task, now):
        task = make_task(category=TaskCategory.ONE_TIME, start_time="7:00 AM")
        assert plan_triggers(task, now).to_list() == []

    def test_one_time_future_start(self, make_task, now):
        task = make_task(category=TaskCategory.ONE_TIME, start_time="9:01 AM")
        assert plan_triggers(task, now).to_list() == [datetime(2026, 3, 10, 9, 1)]

    def test_unparseable_start_yields_nothing(self, make_task, now):
        assert plan_triggers(make_task(start_time="whenever"), now).to_list() == []

    def test_unknown_category_never_scheduled(self, make_task, now):
        task = make_task(category=TaskCategory.UNKNOWN, start_time="10:00 AM")
        assert plan_triggers(task, now).to_list() == []


class TestReminderTriggers:
    def test_grid_from_next_occurrence(self, make_task):
        task = make_task(category=TaskCategory.REMINDER, start_time="7:00 AM",
                         reminder_every_mins=60 * 24)
        at = datetime(2026, 3, 10, 9, 0)
        triggers = plan_triggers(task, at).to_list()
        assert triggers[0] == datetime(2026, 3, 11, 7, 0)
        assert all(b - a == timedelta(days=1) for a, b in zip(triggers, triggers[1:]))

    def test_bounded_by_horizon(self, make_task, now):
        task = make_task(category=TaskCategory.REMINDER, start_time="7:00 AM",
                         reminder_every_mins=60 * 12)
        triggers = plan_triggers(task, now).to_list()
        assert triggers
        assert triggers[-1] <= now + timedelta(days=7)
        # 19:00 today through 07:00 on day 7
        assert len(triggers) == 14

    def test_capped(self, make_task, now):
        task = make_task(category=TaskCategory.REMINDER, start_time="7:00 AM",
                         reminder_every_mins=1)
        triggers = plan_triggers(task, now).to_list()
        assert len(triggers) == MAX_REMINDER_OCCURRENCES
        assert triggers[0] == now
        assert triggers[-1] == now + timedelta(minutes=MAX_REMINDER_OCCURRENCES - 1)

    def test_missing_interval_yields_nothing(self, make_task, now):
        task = make_task(category=TaskCategory.REMINDER, start_time="7:00 AM")
        assert plan_triggers(task, now).to_list() == []

    def test_future_anchor_starts_the_grid(self, make_task, now):
        task = make_task(category=TaskCategory.REMINDER, start_time="11:00 AM",
                         reminder_every_mins=30)
        assert plan_triggers(task, now).to_list()[:2] == [
            datetime(2026, 3, 10, 11, 0),
            datetime(2026, 3, 10, 11, 30),
        ]


def test_plan_is_restartable(make_task, now):
    task = make_task(category=TaskCategory.REMINDER, start_time="7:00 AM",
                     reminder_every_mins=90)
    plan = plan_triggers(task, now)
    assert list(plan) == list(plan)

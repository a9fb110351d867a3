"""Tests for AlarmSyncLedger reconciliation and cancellation."""
from datetime import datetime, timedelta

from config import TaskCategory
from events import AppEvent
from models.entities import ScheduledTrigger
from services.alarm_ledger import build_payload, ledger_key
from services.time_math import to_epoch_ms


def test_ledger_key_is_not_zero_padded():
    assert ledger_key("abc", datetime(2026, 3, 5, 7, 5)) == "abc:2026-3-5 7:5"


class TestBuildPayload:
    def test_focus_for_routine(self, make_task):
        payload = build_payload(make_task(title="Stretch", task_id="t1"))
        assert payload["title"] == "Task Me"
        assert payload["body"] == "Focus: Stretch"
        assert payload["ntype"] == "focus"
        assert payload["data"] == {"task_id": "t1", "title": "Stretch"}

    def test_reminder_body(self, make_task):
        task = make_task(category=TaskCategory.REMINDER, title="Drink water", reminder_every_mins=30)
        payload = build_payload(task)
        assert payload["body"] == "Reminder: Drink water"
        assert payload["ntype"] == "reminder"


# ===========================================================================
# reconcile()
# ===========================================================================

class TestReconcile:
    async def test_schedules_planned_triggers(self, services, backend, make_task, now):
        task = make_task(start_time="10:00 AM")
        result = await services.ledger.reconcile([task], now)

        assert result.scheduled == 1
        assert backend.triggers_for(task.id) == [datetime(2026, 3, 10, 10, 0)]
        ledger = await services.db.load_ledger()
        assert ledger_key(task.id, datetime(2026, 3, 10, 10, 0)) in ledger

    async def test_idempotent(self, services, backend, make_task, now):
        task = make_task(category=TaskCategory.REMINDER, start_time="7:00 AM",
                         reminder_every_mins=240)
        first = await services.ledger.reconcile([task], now)
        second = await services.ledger.reconcile([task], now)

        assert first.scheduled > 0
        assert second.scheduled == 0
        assert second.skipped == first.scheduled
        assert len(backend.scheduled) == first.scheduled

    async def test_later_now_only_adds_new_occurrences(self, services, backend, make_task, now):
        task = make_task(category=TaskCategory.REMINDER, start_time="7:00 AM",
                         reminder_every_mins=60 * 24)
        await services.ledger.reconcile([task], now)
        result = await services.ledger.reconcile([task], now + timedelta(days=1))
        assert result.scheduled == 1
        assert len(backend.triggers_for(task.id)) == 8

    async def test_permission_denied_touches_nothing(self, services, backend, make_task, now):
        backend.granted = False
        result = await services.ledger.reconcile([make_task(start_time="10:00 AM")], now)

        assert result.permitted is False
        assert backend.scheduled == {}
        assert await services.db.load_ledger() == {}

    async def test_skew_guard_skips_imminent_trigger(self, services, backend, make_task):
        task = make_task(start_time="9:00 AM")
        at = datetime(2026, 3, 10, 8, 59, 59, 500000)
        result = await services.ledger.reconcile([task], at)
        assert result.scheduled == 0
        assert backend.scheduled == {}

    async def test_prunes_old_entries_without_canceling(self, services, backend, now):
        await services.db.save_ledger({
            "old:2026-2-27 9:0": ScheduledTrigger("h-old", to_epoch_ms(now - timedelta(days=11))),
            "recent:2026-3-1 9:0": ScheduledTrigger("h-recent", to_epoch_ms(now - timedelta(days=9))),
        })
        result = await services.ledger.reconcile([], now)

        assert result.pruned == 1
        assert backend.canceled == []
        assert set(await services.db.load_ledger()) == {"recent:2026-3-1 9:0"}

    async def test_failed_schedule_does_not_stop_other_tasks(self, services, backend, make_task, now):
        bad = make_task(start_time="10:00 AM")
        good = make_task(start_time="11:00 AM")
        backend.failing_schedule_tasks.add(bad.id)

        result = await services.ledger.reconcile([bad, good], now)

        assert result.failed == 1
        assert result.scheduled == 1
        ledger = await services.db.load_ledger()
        assert all(key.startswith(f"{good.id}:") for key in ledger)

        # the failed trigger is retried on the next pass
        backend.failing_schedule_tasks.clear()
        retry = await services.ledger.reconcile([bad, good], now)
        assert retry.scheduled == 1

    async def test_crashing_platform_channel_does_not_abort_pass(self, services, backend, make_task, now):
        bad = make_task(start_time="10:00 AM")
        good = make_task(start_time="11:00 AM")
        backend.crashing_schedule_tasks.add(bad.id)

        result = await services.ledger.reconcile([bad, good], now)

        assert result.failed == 1
        assert result.scheduled == 1
        assert list(await services.db.load_ledger()) == [ledger_key(good.id, datetime(2026, 3, 10, 11, 0))]

    async def test_garbled_start_time_is_skipped(self, services, backend, make_task, now):
        garbled = make_task(start_time="\N{SUPERSCRIPT TWO}:00")
        good = make_task(start_time="11:00 AM")

        result = await services.ledger.reconcile([garbled, good], now)

        assert result.scheduled == 1
        assert backend.triggers_for(garbled.id) == []

    async def test_expired_alarm_rows_pruned_with_ledger(self, services, backend, now):
        await services.ledger.reconcile([], now)
        assert backend.prune_cutoffs == [now - timedelta(days=10)]

    async def test_emits_reconciled_event(self, services, make_task, now):
        seen = []
        sub = services.events.subscribe(AppEvent.ALARMS_RECONCILED, seen.append)
        await services.ledger.reconcile([make_task(start_time="10:00 AM")], now)
        sub.unsubscribe()
        assert len(seen) == 1
        assert seen[0].scheduled == 1

    async def test_unknown_category_is_not_scheduled(self, services, backend, make_task, now):
        task = make_task(category=TaskCategory.UNKNOWN, start_time="10:00 AM")
        result = await services.ledger.reconcile([task], now)
        assert result.scheduled == 0
        assert backend.scheduled == {}


# ===========================================================================
# cancel_all()
# ===========================================================================

class TestCancelAll:
    async def test_cancels_and_forgets_task_entries(self, services, backend, make_task, now):
        task = make_task(category=TaskCategory.REMINDER, start_time="7:00 AM",
                         reminder_every_mins=60 * 24)
        other = make_task(start_time="10:00 AM")
        await services.ledger.reconcile([task, other], now)
        task_handles = {h for h, (_, p) in backend.scheduled.items() if p["data"]["task_id"] == task.id}

        removed = await services.ledger.cancel_all(task.id)

        assert removed == len(task_handles)
        assert set(backend.canceled) == task_handles
        ledger = await services.db.load_ledger()
        assert not any(key.startswith(f"{task.id}:") for key in ledger)
        assert any(key.startswith(f"{other.id}:") for key in ledger)

    async def test_prefix_does_not_match_longer_ids(self, services, backend, make_task, now):
        short = make_task(task_id="task-1", start_time="10:00 AM")
        longer = make_task(task_id="task-10", start_time="10:00 AM")
        await services.ledger.reconcile([short, longer], now)

        assert await services.ledger.cancel_all("task-1") == 1
        ledger = await services.db.load_ledger()
        assert [key.split(":")[0] for key in ledger] == ["task-10"]

    async def test_failed_cancel_still_removes_entry(self, services, backend, make_task, now):
        task = make_task(category=TaskCategory.REMINDER, start_time="7:00 AM",
                         reminder_every_mins=60 * 24)
        await services.ledger.reconcile([task], now)
        backend.failing_cancel_handles.add("n1")

        removed = await services.ledger.cancel_all(task.id)

        assert removed == 7
        assert "n1" not in backend.canceled
        assert len(backend.canceled) == 6
        assert await services.db.load_ledger() == {}

    async def test_unknown_task_is_noop(self, services, backend):
        assert await services.ledger.cancel_all("missing") == 0
        assert backend.canceled == []

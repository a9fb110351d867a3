"""Tests for the refresh loop, the event bus and label formatting."""
import asyncio
import gc
from datetime import datetime, timedelta

import pytest

from events import AppEvent, EventBus
from formatters import TimeFormatter
from services.refresh import RefreshService


# ===========================================================================
# RefreshService
# ===========================================================================

class TestRefreshService:
    def test_tick_publishes_snapshot(self, make_task, now):
        bus = EventBus()
        seen = []
        sub = bus.subscribe(AppEvent.REFRESH_UI, seen.append)
        service = RefreshService(bus)
        service.set_tasks([make_task(start_time="10:00 AM")])

        snapshot = service.tick(now)

        assert seen == [snapshot]
        assert snapshot.now == now
        assert len(snapshot.open_tasks) == 1
        assert service.ticks == 1
        sub.unsubscribe()

    def test_start_requires_scheduler(self):
        with pytest.raises(RuntimeError):
            RefreshService(EventBus()).start()

    async def test_loop_ticks_until_stopped(self):
        service = RefreshService(EventBus())
        loops = []
        service.inject_dependencies(lambda fn: loops.append(asyncio.ensure_future(fn())))

        service.start()
        service.start()
        await asyncio.sleep(0)
        service.stop()
        await asyncio.wait_for(loops[0], 1)

        assert len(loops) == 1
        assert service.ticks == 1
        assert not service.running


# ===========================================================================
# EventBus
# ===========================================================================

class _Listener:
    def __init__(self):
        self.calls = []

    def on_event(self, data):
        self.calls.append(data)


class TestEventBus:
    def test_unsubscribe(self):
        bus = EventBus()
        calls = []
        sub = bus.subscribe(AppEvent.TASK_CREATED, calls.append)
        bus.emit(AppEvent.TASK_CREATED, 1)
        sub.unsubscribe()
        bus.emit(AppEvent.TASK_CREATED, 2)
        assert calls == [1]
        assert not sub.active

    def test_failing_handler_does_not_stop_others(self):
        bus = EventBus()
        calls = []

        def boom(_):
            raise RuntimeError("boom")

        subs = [
            bus.subscribe(AppEvent.TASK_DELETED, boom),
            bus.subscribe(AppEvent.TASK_DELETED, calls.append),
        ]
        bus.emit(AppEvent.TASK_DELETED, "x")
        assert calls == ["x"]
        assert len(subs) == 2

    def test_bound_methods_are_weak(self):
        bus = EventBus()
        listener = _Listener()
        bus.subscribe(AppEvent.REFRESH_UI, listener.on_event)
        bus.emit(AppEvent.REFRESH_UI, 1)
        assert listener.calls == [1]

        del listener
        gc.collect()
        bus.emit(AppEvent.REFRESH_UI, 2)
        assert bus._listeners[AppEvent.REFRESH_UI] == {}


# ===========================================================================
# TimeFormatter
# ===========================================================================

class TestTimeFormatter:
    now = datetime(2026, 3, 10, 9, 0)

    @pytest.mark.parametrize("instant, expected", [
        (datetime(2026, 3, 10, 0, 5), "12:05 AM"),
        (datetime(2026, 3, 10, 12, 0), "12:00 PM"),
        (datetime(2026, 3, 10, 19, 30), "7:30 PM"),
    ])
    def test_time_label(self, instant, expected):
        assert TimeFormatter.time_label(instant) == expected

    @pytest.mark.parametrize("offset, expected", [
        (timedelta(seconds=-20), "just now"),
        (timedelta(seconds=20), "in a moment"),
        (timedelta(minutes=-5), "5mins ago"),
        (timedelta(minutes=45), "in 45mins"),
        (timedelta(hours=-1, minutes=-10), "1hr 10mins ago"),
        (timedelta(hours=2), "in 2hr 0mins"),
        (timedelta(days=-3), "3d ago"),
    ])
    def test_relative(self, offset, expected):
        assert TimeFormatter.relative(self.now + offset, self.now) == expected

    def test_labels(self):
        instant = datetime(2026, 3, 11, 7, 0)
        assert TimeFormatter.tomorrow_label(instant) == "7:00 AM (tomorrow)"
        assert TimeFormatter.every_label(30) == "30mins"

"""
Tests for the keyed timer scheduler.
"""

from ..engine_core.action import Action
from ..session.scheduler import TimerScheduler


class TestTimerScheduler:

    def test_fires_in_due_order(self):
        scheduler = TimerScheduler()
        scheduler.schedule("b", 3.0, Action.advance())
        scheduler.schedule("a", 2.0, Action.wait_poll())

        assert scheduler.pop_due(1.0) is None
        assert scheduler.pop_due(5.0).key == "a"
        assert scheduler.pop_due(5.0).key == "b"
        assert scheduler.pop_due(5.0) is None

    def test_same_key_replaces(self):
        scheduler = TimerScheduler()
        scheduler.schedule("advance", 2.0, Action.advance())
        scheduler.schedule("advance", 4.0, Action.advance())
        assert len(scheduler) == 1
        assert scheduler.pending() == {"advance": 4.0}

    def test_ties_fire_in_schedule_order(self):
        scheduler = TimerScheduler()
        scheduler.schedule("first", 1.0, Action.advance())
        scheduler.schedule("second", 1.0, Action.advance())
        assert scheduler.pop_due(1.0).key == "first"

    def test_tolerates_float_drift(self):
        scheduler = TimerScheduler()
        scheduler.schedule("poll", 0.3, Action.wait_poll())
        assert scheduler.pop_due(0.1 + 0.1 + 0.1 - 1e-12) is not None

    def test_cancel(self):
        scheduler = TimerScheduler()
        scheduler.schedule("priming", 5.0, Action.priming_done())
        assert scheduler.cancel("priming")
        assert not scheduler.cancel("priming")
        assert "priming" not in scheduler

    def test_cancel_all(self):
        scheduler = TimerScheduler()
        scheduler.schedule("a", 1.0, Action.advance())
        scheduler.schedule("b", 1.0, Action.advance())
        scheduler.cancel_all()
        assert len(scheduler) == 0

import threading
import time

import pytest

from memory_challenge.services.timing import (
    ThreadingScheduler, TimerSlot, TimerSlots, guess_time_budget
)


@pytest.mark.parametrize("elapsed, expected", [
    (0, 5),
    (99.9, 5),
    (100, 4),
    (250, 3),
    (399, 2),
    (400, 1),
    (10_000, 1),
])
def test_guess_time_budget(elapsed, expected):
    assert guess_time_budget(elapsed) == expected


def test_guess_time_budget_never_grows():
    budgets = [guess_time_budget(seconds) for seconds in range(0, 1000, 7)]
    assert budgets == sorted(budgets, reverse=True)
    assert min(budgets) >= 1


class TestTimerSlots:

    def test_arming_a_slot_cancels_the_pending_callback(self, scheduler):
        slots = TimerSlots(scheduler)
        fired = []
        slots.arm(TimerSlot.PHASE, 1.0, lambda: fired.append("first"))
        slots.arm(TimerSlot.PHASE, 1.0, lambda: fired.append("second"))

        scheduler.advance(5)

        assert fired == ["second"]

    def test_slots_are_independent(self, scheduler):
        slots = TimerSlots(scheduler)
        fired = []
        slots.arm(TimerSlot.PHASE, 1.0, lambda: fired.append("phase"))
        slots.arm(TimerSlot.COUNTDOWN, 2.0, lambda: fired.append("countdown"))
        slots.cancel(TimerSlot.PHASE)

        scheduler.advance(5)

        assert fired == ["countdown"]

    def test_cancel_all(self, scheduler):
        slots = TimerSlots(scheduler)
        fired = []
        for slot in TimerSlot:
            slots.arm(slot, 1.0, lambda: fired.append(True))
        slots.cancel_all()

        scheduler.advance(5)

        assert fired == []
        assert not any(slots.is_armed(slot) for slot in TimerSlot)
        assert scheduler.pending() == 0

    def test_callback_may_rearm_its_own_slot(self, scheduler):
        slots = TimerSlots(scheduler)
        ticks = []

        def tick():
            ticks.append(scheduler.now())
            if len(ticks) < 3:
                slots.arm(TimerSlot.COUNTDOWN, 1.0, tick)

        slots.arm(TimerSlot.COUNTDOWN, 1.0, tick)
        scheduler.advance(10)

        assert len(ticks) == 3
        assert not slots.is_armed(TimerSlot.COUNTDOWN)

    def test_slot_is_freed_after_firing(self, scheduler):
        slots = TimerSlots(scheduler)
        slots.arm(TimerSlot.PHASE, 1.0, lambda: None)
        assert slots.is_armed(TimerSlot.PHASE)

        scheduler.advance(1.0)

        assert not slots.is_armed(TimerSlot.PHASE)


class TestThreadingScheduler:

    def test_callback_fires(self):
        scheduler = ThreadingScheduler()
        done = threading.Event()
        scheduler.call_later(0.01, done.set)
        assert done.wait(2.0)

    def test_cancelled_callback_never_fires(self):
        scheduler = ThreadingScheduler()
        fired = threading.Event()
        handle = scheduler.call_later(0.05, fired.set)
        handle.cancel()
        time.sleep(0.2)
        assert not fired.is_set()

    def test_callback_waits_for_the_session_lock(self):
        lock = threading.RLock()
        scheduler = ThreadingScheduler(lock)
        fired = threading.Event()

        with lock:
            scheduler.call_later(0.01, fired.set)
            time.sleep(0.1)
            assert not fired.is_set()

        assert fired.wait(2.0)

    def test_cancel_while_timer_waits_for_lock(self):
        lock = threading.RLock()
        scheduler = ThreadingScheduler(lock)
        fired = threading.Event()

        with lock:
            handle = scheduler.call_later(0.01, fired.set)
            time.sleep(0.1)
            handle.cancel()

        time.sleep(0.1)
        assert not fired.is_set()

    def test_failing_callback_does_not_break_the_scheduler(self):
        scheduler = ThreadingScheduler()
        done = threading.Event()

        def boom():
            raise RuntimeError("boom")

        scheduler.call_later(0.01, boom)
        scheduler.call_later(0.05, done.set)
        assert done.wait(2.0)

    def test_now_ms_tracks_wall_clock(self):
        scheduler = ThreadingScheduler()
        assert abs(scheduler.now_ms() - time.time() * 1000) < 1000

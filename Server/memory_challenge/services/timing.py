"""
Timing Controller

Cancellable delayed callbacks for the game state machine.

Each game session owns one scheduler and one set of timer slots. A slot
holds at most one pending callback; arming a slot always cancels whatever
was pending in it first, so a superseded "time's up" can never fire.
"""

import math
import threading
import time
from abc import ABC, abstractmethod
from enum import Enum
from typing import Callable, Dict, Optional

from ..config.game_settings import (
    CHALLENGE_MAX_GUESS_SECONDS, CHALLENGE_MIN_GUESS_SECONDS, SPEED_RUSH_STEP_SECONDS
)
from ..utils.game_logger import game_logger


class TimerSlot(Enum):
    """Timer classes; each may have exactly one outstanding handle."""
    PHASE = "phase"                    # reveal steps, pauses, challenge preview
    COUNTDOWN = "countdown"            # levels one-second countdown
    GUESS_DEADLINE = "guess_deadline"  # authoritative challenge timeout
    DISPLAY_TICK = "display_tick"      # cosmetic challenge countdown


class TimerHandle(ABC):
    @abstractmethod
    def cancel(self) -> None:
        """Cancel the callback. Must be synchronous: once this returns the
        callback will not run."""


class Scheduler(ABC):
    """Source of time and delayed callbacks."""

    @abstractmethod
    def now(self) -> float:
        """Current time in epoch seconds."""

    @abstractmethod
    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        """Run `callback` after `delay` seconds."""

    def now_ms(self) -> int:
        return int(round(self.now() * 1000))


class _ThreadingHandle(TimerHandle):

    def __init__(self):
        self.cancelled = False
        self.timer: Optional[threading.Timer] = None

    def cancel(self) -> None:
        self.cancelled = True
        if self.timer is not None:
            self.timer.cancel()


class ThreadingScheduler(Scheduler):
    """
    Scheduler backed by threading.Timer.

    Callbacks run while holding `lock`. Input handlers hold the same lock,
    so every mutation of a session is serialized. The cancelled flag is
    checked under the lock, which closes the window where a timer thread
    has already woken up but has not yet acquired the lock.
    """

    def __init__(self, lock=None):
        self.lock = lock or threading.RLock()

    def now(self) -> float:
        return time.time()

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        handle = _ThreadingHandle()

        def fire():
            with self.lock:
                if handle.cancelled:
                    return
                handle.cancelled = True
                try:
                    callback()
                except Exception as e:
                    game_logger.logger.exception(f"Timer callback failed: {e}")

        timer = threading.Timer(max(0.0, delay), fire)
        timer.daemon = True
        handle.timer = timer
        timer.start()
        return handle


class TimerSlots:
    """One pending callback per TimerSlot, with cancel-then-arm discipline."""

    def __init__(self, scheduler: Scheduler):
        self.scheduler = scheduler
        self._handles: Dict[TimerSlot, TimerHandle] = {}

    def arm(self, slot: TimerSlot, delay: float, callback: Callable[[], None]) -> None:
        self.cancel(slot)

        def run():
            # Free the slot before running so the callback may re-arm it.
            if self._handles.get(slot) is handle:
                del self._handles[slot]
            callback()

        handle = self.scheduler.call_later(delay, run)
        self._handles[slot] = handle

    def cancel(self, slot: TimerSlot) -> None:
        handle = self._handles.pop(slot, None)
        if handle is not None:
            handle.cancel()

    def cancel_all(self) -> None:
        for slot in list(self._handles):
            self.cancel(slot)

    def is_armed(self, slot: TimerSlot) -> bool:
        return slot in self._handles


def guess_time_budget(elapsed_seconds: float) -> int:
    """
    Seconds allowed for the next challenge guess.

    Shrinks by one second for every SPEED_RUSH_STEP_SECONDS of survival,
    never below CHALLENGE_MIN_GUESS_SECONDS.
    """
    reduction = math.floor(max(0.0, elapsed_seconds) / SPEED_RUSH_STEP_SECONDS)
    return max(CHALLENGE_MIN_GUESS_SECONDS, CHALLENGE_MAX_GUESS_SECONDS - reduction)

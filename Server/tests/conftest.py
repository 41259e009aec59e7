"""Shared fixtures: a virtual-clock scheduler and state machine factories."""
import heapq
import itertools
import os
import tempfile

# Keep test log files out of the working tree; must be set before the
# package (and its module-level logger) is imported.
os.environ.setdefault("LOG_DIR", tempfile.mkdtemp(prefix="memory-challenge-logs-"))

import pytest

from memory_challenge.models.game import Color
from memory_challenge.services.game_service import GameStateMachine
from memory_challenge.services.timing import Scheduler, TimerHandle


class ManualHandle(TimerHandle):
    def __init__(self):
        self.cancelled = False

    def cancel(self):
        self.cancelled = True


class ManualScheduler(Scheduler):
    """Scheduler whose clock only moves when the test calls advance()."""

    def __init__(self, lock=None, start=1000.0):
        self.lock = lock
        self._now = start
        self._queue = []
        self._seq = itertools.count()

    def now(self):
        return self._now

    def call_later(self, delay, callback):
        handle = ManualHandle()
        heapq.heappush(self._queue, (self._now + delay, next(self._seq), handle, callback))
        return handle

    def advance(self, seconds):
        """Move the clock forward, running every callback that falls due."""
        target = self._now + seconds
        while self._queue and self._queue[0][0] <= target + 1e-9:
            due, _, handle, callback = heapq.heappop(self._queue)
            self._now = max(self._now, due)
            if not handle.cancelled:
                handle.cancelled = True
                callback()
        self._now = target

    def pending(self):
        return sum(1 for entry in self._queue if not entry[2].cancelled)


class ScriptedRandom:
    """Random source returning scripted colors, then green forever."""

    def __init__(self, colors=()):
        self._colors = list(colors)

    def choice(self, seq):
        if self._colors:
            return self._colors.pop(0)
        return Color.GREEN


class EventRecorder:
    """Listener collecting (event, payload) pairs."""

    def __init__(self):
        self.events = []

    def __call__(self, event, payload):
        self.events.append((event, payload))

    def named(self, name):
        return [payload for event, payload in self.events if event == name]

    def phases(self):
        """Distinct consecutive phases seen in game_state events."""
        seen = []
        for payload in self.named("game_state"):
            if not seen or seen[-1] != payload["phase"]:
                seen.append(payload["phase"])
        return seen


def longest_run(sequence):
    best = current = 0
    last = None
    for color in sequence:
        current = current + 1 if color == last else 1
        last = color
        best = max(best, current)
    return best


@pytest.fixture
def scheduler():
    return ManualScheduler()


@pytest.fixture
def recorder():
    return EventRecorder()


@pytest.fixture
def make_machine(scheduler, recorder):
    def factory(**kwargs):
        kwargs.setdefault("listener", recorder)
        return GameStateMachine(scheduler, **kwargs)
    return factory


def play_until_input(scheduler, machine):
    """Let a levels round reveal its pattern and reach the playing phase."""
    steps = len(machine.round.pattern)
    scheduler.advance(0.8 * steps + 2.0 + 0.01)

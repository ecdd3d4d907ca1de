"""
Shared fixtures: deterministic timers and a loaded simulated player.
"""

import pytest

from maestro.control.player import SimulatedPlayer
from maestro.core.types import HandFrame, HandObservation, Handedness, Position


class FakeTimer:
    """Timer that only fires when the test says so."""

    def __init__(self, interval, callback, name):
        self.interval = interval
        self.name = name
        self._callback = callback
        self.started = False
        self.cancelled = False

    def start(self):
        self.started = True
        return self

    def cancel(self):
        self.cancelled = True

    def fire(self, times=1):
        for _ in range(times):
            self._callback()


class TimerRecorder:
    """Timer factory that keeps every FakeTimer it creates."""

    def __init__(self):
        self.timers = []

    def __call__(self, interval, callback, name):
        timer = FakeTimer(interval, callback, name)
        self.timers.append(timer)
        return timer

    def named(self, prefix):
        return [t for t in self.timers if t.name.startswith(prefix)]


@pytest.fixture
def timer_factory():
    return TimerRecorder()


@pytest.fixture
def player():
    """Simulated player with a track already loaded."""
    p = SimulatedPlayer()
    p.load("song.mp3")
    return p


def make_frame(left=None, right=None, left_pos=(100, 300), right_pos=(500, 300)):
    """Build a HandFrame from gesture labels and positions."""
    return HandFrame(
        left=HandObservation(Handedness.LEFT, left, Position(*left_pos)) if left else None,
        right=HandObservation(Handedness.RIGHT, right, Position(*right_pos)) if right else None,
    )


@pytest.fixture
def frame():
    return make_frame

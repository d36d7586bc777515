import itertools

import pytest

from vehicle_replay.frames import FrameScheduler
from vehicle_replay.interpolation import Waypoint


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start=0.0):
        self.now = start

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds

    def sleep(self, seconds):
        self.advance(seconds)


class ManualScheduler(FrameScheduler):
    """Frame scheduler whose frames only run when a test fires them."""

    def __init__(self):
        self.pending = {}
        self.requested = 0
        self._ids = itertools.count(1)

    def request_frame(self, callback):
        handle = next(self._ids)
        self.pending[handle] = callback
        self.requested += 1
        return handle

    def cancel_frame(self, handle):
        self.pending.pop(handle, None)

    def fire(self):
        assert len(self.pending) == 1, f"expected one pending frame, got {len(self.pending)}"
        _, callback = self.pending.popitem()
        callback()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def scheduler():
    return ManualScheduler()


@pytest.fixture
def two_point_route():
    return [
        Waypoint(0.0, 0.0, "2024-01-01T00:00:00Z"),
        Waypoint(0.0, 0.01, "2024-01-01T00:00:10Z"),
    ]


@pytest.fixture
def three_point_route():
    return [
        Waypoint(51.5000, -0.1200, "2024-01-01T08:00:00Z"),
        Waypoint(51.5010, -0.1190, "2024-01-01T08:00:10Z"),
        Waypoint(51.5020, -0.1170, "2024-01-01T08:00:30Z"),
    ]

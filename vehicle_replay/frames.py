"""
Frame schedulers for the animation driver.

A frame scheduler is the host's "call me back on the next frame" primitive.
Only one callback is expected to be outstanding at a time, and cancelling
a handle that already fired or was already cancelled is a no-op.

LoopFrameScheduler runs a cooperative single-threaded loop, used for the
headless console replay. The GUI drives frames from the Tk event loop
instead (see gui.TkFrameScheduler).
"""

from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, Optional
import itertools
import time


# ~60 frames per second
DEFAULT_FRAME_INTERVAL_MS = 16


class FrameScheduler(ABC):
    """Interface between the animation driver and the host event loop."""

    @abstractmethod
    def request_frame(self, callback: Callable[[], None]) -> Any:
        """
        Schedule ``callback`` to run on the next frame.

        Returns:
            An opaque handle that can be passed to cancel_frame()
        """
        pass

    @abstractmethod
    def cancel_frame(self, handle: Any):
        """Cancel a pending frame. Unknown or stale handles are ignored."""
        pass


class LoopFrameScheduler(FrameScheduler):
    """
    Cooperative frame loop for running the driver without a GUI.

    Frames fire at a fixed interval from run(), in the calling thread.
    The clock and sleep functions can be replaced, which lets tests run a
    whole replay against a simulated clock.
    """

    def __init__(self, interval_s: float = DEFAULT_FRAME_INTERVAL_MS / 1000.0,
                 clock: Callable[[], float] = time.monotonic,
                 sleep: Callable[[float], None] = time.sleep):
        self.interval_s = interval_s
        self.clock = clock
        self.sleep = sleep
        self._pending: Dict[int, tuple] = {}
        self._ids = itertools.count(1)
        self.frames_run = 0

    def request_frame(self, callback: Callable[[], None]) -> int:
        handle = next(self._ids)
        self._pending[handle] = (self.clock() + self.interval_s, callback)
        return handle

    def cancel_frame(self, handle: Optional[int]):
        self._pending.pop(handle, None)

    def has_pending(self) -> bool:
        return bool(self._pending)

    def run_once(self) -> bool:
        """
        Wait for the earliest pending frame and run it.

        Returns:
            False if there was nothing to run
        """
        if not self._pending:
            return False

        handle = min(self._pending, key=lambda h: self._pending[h][0])
        due, callback = self._pending.pop(handle)

        delay = due - self.clock()
        if delay > 0:
            self.sleep(delay)

        self.frames_run += 1
        callback()
        return True

    def run(self, max_frames: Optional[int] = None) -> int:
        """
        Run frames until nothing is scheduled or ``max_frames`` is reached.

        Returns:
            Number of frames run by this call
        """
        count = 0
        while max_frames is None or count < max_frames:
            if not self.run_once():
                break
            count += 1
        return count

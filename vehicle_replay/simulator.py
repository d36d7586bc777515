import logging
import time
from typing import Callable, List, Optional, Sequence, Tuple

from .constants import PlaybackState
from .frames import FrameScheduler
from .interpolation import (
    Waypoint, interpolate, segment_duration_ms, segment_progress, segment_speed
)
from .telemetry import Telemetry


logger = logging.getLogger(__name__)

TelemetryListener = Callable[[Telemetry], None]


class ReplaySimulator(object):
    '''
    Replays a recorded sequence of waypoints in real time.

    Each frame the simulator blends the two waypoints bounding the current
    segment by how much of the segment's recorded duration has passed on the
    wall clock, publishes the result to its listeners, and appends every
    waypoint it reaches to the traversed path.

    All methods are expected to be called from a single thread, the one
    that runs the frame scheduler.
    '''

    def __init__(self, scheduler: FrameScheduler, clock: Callable[[], float] = time.monotonic):
        '''
        Initialise the replay simulator.

        Args:
            scheduler: Frame scheduler providing per-frame callbacks
            clock: Monotonic clock in seconds
        '''
        self.scheduler = scheduler
        self.clock = clock

        self._listeners: List[TelemetryListener] = []
        self._frame_handle = None

        self.waypoints: List[Waypoint] = []
        self.state = PlaybackState.IDLE
        self.target_index = 0
        self.interpolated_position: Optional[Waypoint] = None
        self.segment_start_time: Optional[float] = None
        self.traversed_path: List[Tuple[float, float]] = []
        self.elapsed_time = 0.0
        self.current_speed = 0.0

        # Seconds of the current segment already animated when paused
        self._paused_segment_elapsed = 0.0

    @property
    def is_playing(self) -> bool:
        return self.state == PlaybackState.PLAYING

    @property
    def has_waypoints(self) -> bool:
        return len(self.waypoints) > 0

    @property
    def initial_center(self) -> Optional[Tuple[float, float]]:
        if not self.waypoints:
            return None
        return self.waypoints[0].coordinates

    def add_listener(self, listener: TelemetryListener):
        """Subscribe to telemetry published after every state change."""
        self._listeners.append(listener)

    def remove_listener(self, listener: TelemetryListener):
        if listener in self._listeners:
            self._listeners.remove(listener)

    def snapshot(self) -> Telemetry:
        """Current state as an immutable telemetry record."""
        return Telemetry(
            state=self.state,
            target_index=self.target_index,
            waypoint_count=len(self.waypoints),
            position=self.interpolated_position,
            traversed_path=list(self.traversed_path),
            initial_center=self.initial_center,
            elapsed_time=self.elapsed_time,
            current_speed=self.current_speed,
        )

    def load(self, waypoints: Sequence[Waypoint]):
        '''
        Load the waypoint sequence and move to the ready state.

        An empty sequence leaves the simulator idle.
        '''
        self._cancel_frame()
        self.waypoints = list(waypoints)

        if not self.waypoints:
            logger.warning("No waypoints loaded, simulator stays idle")
            self.state = PlaybackState.IDLE
            self._restore_initial()
            self._publish()
            return

        logger.info(f"Loaded route with {len(self.waypoints)} waypoints")
        self.state = PlaybackState.READY
        self._restore_initial()
        self._publish()

    def toggle_play_pause(self):
        """Start playback when paused, pause it when playing."""
        if self.is_playing:
            self.pause()
        else:
            self.play()

    def play(self):
        ''' Start or resume playback. Does nothing without waypoints.
        '''
        if not self.waypoints or self.is_playing:
            return

        self.state = PlaybackState.PLAYING
        if self.segment_start_time is None:
            self.segment_start_time = self.clock() - self._paused_segment_elapsed
        self._paused_segment_elapsed = 0.0

        logger.debug(f"Playing from target index {self.target_index}")
        self._request_frame()
        self._publish()

    def pause(self):
        ''' Pause playback, keeping the current position.
        '''
        if not self.is_playing:
            return

        self._cancel_frame()
        if self.segment_start_time is not None:
            self._paused_segment_elapsed = self.clock() - self.segment_start_time
        self.segment_start_time = None
        self.state = PlaybackState.READY

        logger.debug(f"Paused at target index {self.target_index}")
        self._publish()

    def reset(self):
        ''' Return to the first waypoint, paused.
        '''
        self._cancel_frame()
        self.state = PlaybackState.READY if self.waypoints else PlaybackState.IDLE
        self._restore_initial()

        logger.debug("Simulation reset")
        self._publish()

    def shutdown(self):
        ''' Stop ticking for good, e.g. when the window closes. Safe to call twice.
        '''
        self._cancel_frame()
        if self.is_playing:
            self.state = PlaybackState.READY
        self.segment_start_time = None

    def _restore_initial(self):
        self.target_index = 0
        self.segment_start_time = None
        self._paused_segment_elapsed = 0.0
        self.elapsed_time = 0.0
        self.current_speed = 0.0

        if self.waypoints:
            first = self.waypoints[0]
            self.interpolated_position = first
            self.traversed_path = [first.coordinates]
        else:
            self.interpolated_position = None
            self.traversed_path = []

    def _request_frame(self):
        self._cancel_frame()
        self._frame_handle = self.scheduler.request_frame(self._on_frame)

    def _cancel_frame(self):
        if self._frame_handle is not None:
            self.scheduler.cancel_frame(self._frame_handle)
            self._frame_handle = None

    def _publish(self):
        telemetry = self.snapshot()
        for listener in list(self._listeners):
            listener(telemetry)

    def _finish(self):
        self._cancel_frame()
        self.segment_start_time = None
        self.state = PlaybackState.FINISHED
        logger.info("Reached the final waypoint")

    def _on_frame(self):
        '''
        Frame callback: advance the vehicle along the current segment.
        '''
        self._frame_handle = None

        if not self.is_playing:
            return
        if self.target_index >= len(self.waypoints):
            self._finish()
            self._publish()
            return

        now = self.clock()
        if self.segment_start_time is None:
            self.segment_start_time = now

        # The first frame treats waypoint 0 as both ends of the segment
        prev = self.waypoints[self.target_index - 1 if self.target_index > 0 else 0]
        nxt = self.waypoints[self.target_index]

        duration_ms = segment_duration_ms(prev, nxt)
        elapsed_ms = (now - self.segment_start_time) * 1000.0
        progress = segment_progress(elapsed_ms, duration_ms)

        first_ms = self.waypoints[0].time_ms
        self.current_speed = segment_speed(prev, nxt)

        if progress < 1:
            position = interpolate(prev, nxt, progress)
            self.interpolated_position = position
            self.elapsed_time = (position.time_ms - first_ms) / 1000.0
            self._request_frame()
        else:
            # Snap to the reached waypoint
            self.interpolated_position = nxt
            self.elapsed_time = (nxt.time_ms - first_ms) / 1000.0

            last = self.traversed_path[-1] if self.traversed_path else None
            if last is None or last != nxt.coordinates:
                self.traversed_path.append(nxt.coordinates)

            self.target_index += 1
            if self.target_index < len(self.waypoints):
                self.segment_start_time = now
                self._request_frame()
            else:
                self._finish()

        self._publish()

"""
Telemetry snapshots published by the replay simulator and their display
formatting.
"""

from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from .constants import PlaybackState
from .interpolation import Waypoint, parse_timestamp


NOT_AVAILABLE = "N/A"


@dataclass(frozen=True)
class Telemetry:
    """Read-only view of the simulation state at one instant."""
    state: PlaybackState
    target_index: int
    waypoint_count: int
    position: Optional[Waypoint]
    traversed_path: List[Tuple[float, float]] = field(default_factory=list)
    initial_center: Optional[Tuple[float, float]] = None
    elapsed_time: float = 0.0  # seconds
    current_speed: float = 0.0  # m/s

    @property
    def is_playing(self) -> bool:
        return self.state == PlaybackState.PLAYING

    @property
    def controls_enabled(self) -> bool:
        """Play/pause and reset only make sense once waypoints are loaded."""
        return self.waypoint_count > 0

    @property
    def timestamp(self) -> Optional[str]:
        return self.position.timestamp if self.position else None


def format_coordinates(position: Optional[Waypoint]) -> str:
    if position is None:
        return NOT_AVAILABLE
    return f"{position.latitude:.6f}, {position.longitude:.6f}"


def format_time_of_day(timestamp: Optional[str]) -> str:
    """Local time-of-day for an ISO-8601 timestamp, e.g. ``14:03:27``."""
    if not timestamp:
        return NOT_AVAILABLE
    return parse_timestamp(timestamp).astimezone().strftime("%X")


def format_elapsed(seconds: float) -> str:
    return f"{seconds:.1f} s"


def format_speed(speed_mps: float) -> str:
    return f"{speed_mps:.2f} m/s"


def format_telemetry(telemetry: Telemetry) -> dict:
    """
    Display strings for every telemetry field.

    Returns:
        Dictionary with ``coordinates``, ``timestamp``, ``elapsed`` and
        ``speed`` keys
    """
    return {
        'coordinates': format_coordinates(telemetry.position),
        'timestamp': format_time_of_day(telemetry.timestamp),
        'elapsed': format_elapsed(telemetry.elapsed_time),
        'speed': format_speed(telemetry.current_speed),
    }


def format_status_line(telemetry: Telemetry) -> str:
    """One-line summary used by the headless replay and the status bar."""
    fields = format_telemetry(telemetry)
    return (f"[{telemetry.state.value:>8}] "
            f"{min(telemetry.target_index + 1, telemetry.waypoint_count)}/{telemetry.waypoint_count} "
            f"pos={fields['coordinates']} "
            f"time={fields['timestamp']} "
            f"elapsed={fields['elapsed']} "
            f"speed={fields['speed']}")

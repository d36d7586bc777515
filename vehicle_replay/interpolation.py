"""
Waypoint interpolation and segment kinematics.

This module holds the arithmetic behind the replay: parsing recorded
waypoints, blending two bounding waypoints by segment progress, and
estimating the vehicle speed over a segment with the Haversine formula.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Sequence, Tuple
import math


# Earth's mean radius in meters
EARTH_RADIUS_M = 6371000.0

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


__all__ = [
    'Waypoint',
    'parse_timestamp',
    'format_timestamp',
    'epoch_ms',
    'haversine_distance',
    'interpolate',
    'segment_duration_ms',
    'segment_progress',
    'segment_speed',
    'route_distance',
    'EARTH_RADIUS_M',
]


def parse_timestamp(value: str) -> datetime:
    """
    Parse an ISO-8601 timestamp into an aware datetime.

    A trailing ``Z`` is accepted as UTC, and timestamps without an offset
    are taken to be UTC.

    Raises:
        ValueError: if the value is not a valid ISO-8601 datetime string
    """
    if not isinstance(value, str):
        raise ValueError(f"Timestamp must be a string, got {type(value).__name__}")

    text = value.strip()
    if text.endswith('Z') or text.endswith('z'):
        text = text[:-1] + '+00:00'

    parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def format_timestamp(time_ms: float) -> str:
    """Encode milliseconds since the epoch as ``YYYY-MM-DDTHH:MM:SS.mmmZ``."""
    moment = EPOCH + timedelta(milliseconds=round(time_ms))
    return moment.isoformat(timespec='milliseconds').replace('+00:00', 'Z')


def epoch_ms(timestamp: str) -> int:
    """
    Whole milliseconds since the epoch for an ISO-8601 timestamp.

    Sub-millisecond digits are truncated, so blended times rounded to the
    millisecond never pass the waypoint they are heading for.
    """
    return (parse_timestamp(timestamp) - EPOCH) // timedelta(milliseconds=1)


@dataclass(frozen=True)
class Waypoint:
    """A single recorded position sample."""
    latitude: float  # degrees
    longitude: float  # degrees
    timestamp: str  # ISO-8601

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Waypoint':
        """Build a waypoint from a ``{latitude, longitude, timestamp}`` mapping.

        Raises:
            KeyError: if a field is missing
            ValueError: if a field cannot be converted
        """
        latitude = float(data['latitude'])
        longitude = float(data['longitude'])
        timestamp = data['timestamp']
        # Fail early on timestamps that could never be animated
        parse_timestamp(timestamp)
        return cls(latitude=latitude, longitude=longitude, timestamp=timestamp)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'latitude': self.latitude,
            'longitude': self.longitude,
            'timestamp': self.timestamp,
        }

    @property
    def coordinates(self) -> Tuple[float, float]:
        """(latitude, longitude) pair, the order the map widget expects."""
        return (self.latitude, self.longitude)

    @property
    def time_ms(self) -> int:
        return epoch_ms(self.timestamp)


def haversine_distance(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """
    Calculate the great circle distance between two points on Earth.

    Args:
        lat1, lon1: First point coordinates in decimal degrees
        lat2, lon2: Second point coordinates in decimal degrees

    Returns:
        Distance in meters
    """
    # Convert to radians
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lon2 - lon1)

    a = (math.sin(d_phi / 2) ** 2 +
         math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2)
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))

    return EARTH_RADIUS_M * c


def interpolate(prev: Waypoint, next: Waypoint, progress: float) -> Waypoint:
    """
    Blend two waypoints linearly by segment progress.

    Latitude, longitude and timestamp are each interpolated independently.
    The caller is responsible for keeping ``progress`` within [0, 1].

    Args:
        prev: Waypoint at the start of the segment
        next: Waypoint at the end of the segment
        progress: Fraction of the segment's duration elapsed

    Returns:
        A new Waypoint at the blended position and time
    """
    latitude = prev.latitude + (next.latitude - prev.latitude) * progress
    longitude = prev.longitude + (next.longitude - prev.longitude) * progress

    start_ms = prev.time_ms
    time_ms = start_ms + (next.time_ms - start_ms) * progress

    return Waypoint(latitude=latitude, longitude=longitude,
                    timestamp=format_timestamp(time_ms))


def segment_duration_ms(prev: Waypoint, next: Waypoint) -> float:
    """Recorded duration of the segment in milliseconds (may be <= 0)."""
    return next.time_ms - prev.time_ms


def segment_progress(elapsed_ms: float, duration_ms: float) -> float:
    """
    Fraction of a segment completed after ``elapsed_ms`` of animation.

    Segments with no positive duration are instantaneous and report 1.
    """
    if duration_ms <= 0:
        return 1.0
    return min(elapsed_ms / duration_ms, 1.0)


def segment_speed(prev: Waypoint, next: Waypoint) -> float:
    """
    Average speed over a segment in meters per second.

    Returns 0.0 for segments whose duration is zero or negative.
    """
    duration_ms = segment_duration_ms(prev, next)
    if duration_ms <= 0:
        return 0.0

    distance = haversine_distance(prev.latitude, prev.longitude,
                                  next.latitude, next.longitude)
    return distance / (duration_ms / 1000.0)


def route_distance(waypoints: Sequence[Waypoint]) -> float:
    """Total length of the route in meters, summed segment by segment."""
    total = 0.0
    for prev, nxt in zip(waypoints, waypoints[1:]):
        total += haversine_distance(prev.latitude, prev.longitude,
                                    nxt.latitude, nxt.longitude)
    return total

"""
Vehicle Replay

This package replays a recorded GPS route in real time on an interactive map
"""

__version__ = "1.0.0"

from .interpolation import Waypoint, interpolate, segment_speed, haversine_distance
from .route_loader import load_route
from .simulator import ReplaySimulator
from .constants import PlaybackState

__all__ = [
    'Waypoint',
    'interpolate',
    'segment_speed',
    'haversine_distance',
    'load_route',
    'ReplaySimulator',
    'PlaybackState',
]

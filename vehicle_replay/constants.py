"""
Shared constants for the vehicle replay package.
"""

from enum import Enum


class PlaybackState(Enum):
    """Lifecycle of the replay simulator."""
    IDLE = "idle"          # no waypoints loaded
    READY = "ready"        # waypoints loaded, paused
    PLAYING = "playing"
    FINISHED = "finished"  # paused at the last waypoint


# Map display defaults
DEFAULT_ZOOM = 15
OSM_TILE_SERVER = "https://a.tile.openstreetmap.org/{z}/{x}/{y}.png"
OSM_ATTRIBUTION = "© OpenStreetMap contributors"
PATH_COLOR = "#3b82f6"
PATH_WIDTH = 5

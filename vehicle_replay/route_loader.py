#!/usr/bin/env python3
"""
Route loader for recorded waypoint files.

This module handles loading the recorded route, a JSON array of
``{latitude, longitude, timestamp}`` objects, from a local file or an
http(s) URL, and converting it into Waypoint instances.
"""

import json
import logging
import os
from typing import Any, List, Optional

import requests

from .interpolation import Waypoint, route_distance


logger = logging.getLogger(__name__)

# Bundled demo route
DEFAULT_ROUTE_PATH = os.path.join(os.path.dirname(__file__), 'data', 'dummy-route.json')

REQUEST_TIMEOUT_S = 10.0


class RouteLoadError(ValueError):
    """Raised when route data cannot be turned into waypoints."""


def is_url(source: str) -> bool:
    return source.startswith('http://') or source.startswith('https://')


def parse_waypoints(data: Any) -> List[Waypoint]:
    """Convert decoded JSON into an ordered list of waypoints.

    Args:
        data: Decoded JSON payload, expected to be a list of objects

    Returns:
        Waypoints in array order.

    Raises:
        RouteLoadError: if the payload is not a list or an entry is invalid
    """
    if not isinstance(data, list):
        raise RouteLoadError(f"Expected a JSON array of waypoints, got {type(data).__name__}")

    waypoints = []
    for index, entry in enumerate(data):
        if not isinstance(entry, dict):
            raise RouteLoadError(f"Waypoint {index} is not an object")
        try:
            waypoints.append(Waypoint.from_dict(entry))
        except KeyError as e:
            raise RouteLoadError(f"Waypoint {index} is missing field {e}") from e
        except (TypeError, ValueError) as e:
            raise RouteLoadError(f"Waypoint {index} is invalid: {e}") from e

    return waypoints


def fetch_route_json(source: str) -> Any:
    """Read and decode the JSON payload at a file path or URL."""
    if is_url(source):
        response = requests.get(source, timeout=REQUEST_TIMEOUT_S)
        response.raise_for_status()
        return response.json()

    with open(source, 'r', encoding='utf-8') as f:
        return json.load(f)


def load_route(source: Optional[str] = None) -> List[Waypoint]:
    """Load the recorded route once.

    Failures are logged and produce an empty route; nothing is retried.

    Args:
        source: File path or http(s) URL. If None, uses the bundled demo route.

    Returns:
        List of waypoints, empty if the route could not be loaded.
    """
    if source is None:
        source = DEFAULT_ROUTE_PATH

    try:
        waypoints = parse_waypoints(fetch_route_json(source))
    except (OSError, ValueError, requests.RequestException) as e:
        logger.error(f"Failed to load route data from {source}: {e}")
        return []

    if waypoints:
        logger.info(f"Loaded {len(waypoints)} waypoints from {source} "
                    f"({route_distance(waypoints):.0f} m)")
    else:
        logger.warning(f"Route {source} contains no waypoints")
    return waypoints


def save_route(waypoints: List[Waypoint], path: str) -> None:
    """Write waypoints back out in the same JSON format they are read in."""
    with open(path, 'w', encoding='utf-8') as f:
        json.dump([wp.to_dict() for wp in waypoints], f, indent=2)


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    route = load_route()
    print(f"Found {len(route)} waypoints")
    if route:
        print(f"First waypoint: {route[0]}")
        print(f"Last waypoint: {route[-1]}")

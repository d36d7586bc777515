import json
import logging

import pytest
import requests

from vehicle_replay import route_loader
from vehicle_replay.interpolation import Waypoint
from vehicle_replay.route_loader import (
    DEFAULT_ROUTE_PATH,
    RouteLoadError,
    load_route,
    parse_waypoints,
    save_route,
)


ROUTE = [
    {"latitude": 51.5, "longitude": -0.12, "timestamp": "2024-01-01T08:00:00Z"},
    {"latitude": 51.501, "longitude": -0.119, "timestamp": "2024-01-01T08:00:10Z"},
]


def write_json(path, data):
    path.write_text(json.dumps(data), encoding="utf-8")
    return str(path)


class FakeResponse:

    def __init__(self, payload, status_code=200):
        self.payload = payload
        self.status_code = status_code

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error")

    def json(self):
        return self.payload


def test_parse_waypoints_keeps_order():
    waypoints = parse_waypoints(ROUTE)

    assert waypoints == [
        Waypoint(51.5, -0.12, "2024-01-01T08:00:00Z"),
        Waypoint(51.501, -0.119, "2024-01-01T08:00:10Z"),
    ]


@pytest.mark.parametrize("payload", [
    {"waypoints": ROUTE},
    [ROUTE[0], "not an object"],
    [{"latitude": 1.0, "longitude": 2.0}],
    [{"latitude": "north", "longitude": 2.0, "timestamp": "2024-01-01T00:00:00Z"}],
    [{"latitude": 1.0, "longitude": 2.0, "timestamp": "soon"}],
])
def test_parse_waypoints_rejects_malformed_payloads(payload):
    with pytest.raises(RouteLoadError):
        parse_waypoints(payload)


def test_load_route_from_file(tmp_path):
    waypoints = load_route(write_json(tmp_path / "route.json", ROUTE))
    assert len(waypoints) == 2
    assert waypoints[0].coordinates == (51.5, -0.12)


def test_load_route_default_is_bundled_demo():
    waypoints = load_route()

    assert load_route(DEFAULT_ROUTE_PATH) == waypoints
    assert len(waypoints) > 2
    times = [wp.time_ms for wp in waypoints]
    assert times == sorted(times)


def test_load_route_missing_file_logs_and_returns_empty(tmp_path, caplog):
    with caplog.at_level(logging.ERROR, logger="vehicle_replay.route_loader"):
        assert load_route(str(tmp_path / "missing.json")) == []
    assert "Failed to load route data" in caplog.text


def test_load_route_invalid_json_returns_empty(tmp_path):
    path = tmp_path / "broken.json"
    path.write_text("[{", encoding="utf-8")
    assert load_route(str(path)) == []


def test_load_route_malformed_entry_returns_empty(tmp_path, caplog):
    source = write_json(tmp_path / "route.json", [ROUTE[0], {"latitude": 1.0}])
    with caplog.at_level(logging.ERROR):
        assert load_route(source) == []
    assert "missing field" in caplog.text


def test_load_route_empty_array(tmp_path):
    assert load_route(write_json(tmp_path / "empty.json", [])) == []


def test_load_route_from_url(monkeypatch):
    calls = []

    def fake_get(url, timeout):
        calls.append((url, timeout))
        return FakeResponse(ROUTE)

    monkeypatch.setattr(route_loader.requests, "get", fake_get)

    waypoints = load_route("https://example.com/dummy-route.json")

    assert len(waypoints) == 2
    assert calls == [("https://example.com/dummy-route.json", route_loader.REQUEST_TIMEOUT_S)]


def test_load_route_http_error_returns_empty(monkeypatch):
    monkeypatch.setattr(route_loader.requests, "get", lambda url, timeout: FakeResponse(None, 404))
    assert load_route("http://example.com/route.json") == []


def test_load_route_connection_error_returns_empty(monkeypatch):
    def unreachable(url, timeout):
        raise requests.ConnectionError("connection refused")

    monkeypatch.setattr(route_loader.requests, "get", unreachable)
    assert load_route("http://example.com/route.json") == []


def test_save_route_writes_loadable_file(tmp_path):
    waypoints = parse_waypoints(ROUTE)
    path = tmp_path / "export.json"

    save_route(waypoints, str(path))

    assert json.loads(path.read_text(encoding="utf-8")) == ROUTE
    assert load_route(str(path)) == waypoints

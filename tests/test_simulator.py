import pytest

from vehicle_replay.constants import PlaybackState
from vehicle_replay.frames import LoopFrameScheduler
from vehicle_replay.interpolation import Waypoint, epoch_ms
from vehicle_replay.simulator import ReplaySimulator


@pytest.fixture
def simulator(scheduler, clock):
    return ReplaySimulator(scheduler, clock=clock)


def test_starts_idle(simulator):
    telemetry = simulator.snapshot()

    assert simulator.state == PlaybackState.IDLE
    assert telemetry.position is None
    assert telemetry.traversed_path == []
    assert telemetry.initial_center is None
    assert not telemetry.controls_enabled


def test_load_empty_route_stays_idle(simulator, scheduler):
    simulator.load([])
    simulator.toggle_play_pause()

    assert simulator.state == PlaybackState.IDLE
    assert not simulator.is_playing
    assert scheduler.requested == 0
    assert simulator.elapsed_time == 0.0
    assert simulator.current_speed == 0.0


def test_load_sets_first_waypoint(simulator, three_point_route):
    simulator.load(three_point_route)

    first = three_point_route[0]
    assert simulator.state == PlaybackState.READY
    assert simulator.target_index == 0
    assert simulator.interpolated_position == first
    assert simulator.traversed_path == [first.coordinates]
    assert simulator.initial_center == first.coordinates
    assert simulator.snapshot().controls_enabled


def test_first_frame_completes_degenerate_segment(simulator, scheduler, two_point_route):
    simulator.load(two_point_route)
    simulator.toggle_play_pause()
    assert simulator.is_playing
    assert len(scheduler.pending) == 1

    scheduler.fire()

    # Waypoint 0 is reached trivially and is not added twice
    assert simulator.target_index == 1
    assert simulator.traversed_path == [two_point_route[0].coordinates]
    assert simulator.current_speed == 0.0
    assert simulator.elapsed_time == 0.0
    assert len(scheduler.pending) == 1


def test_frame_interpolates_mid_segment(simulator, scheduler, clock, two_point_route):
    simulator.load(two_point_route)
    simulator.play()
    scheduler.fire()

    clock.advance(5.0)
    scheduler.fire()

    position = simulator.interpolated_position
    assert position.latitude == pytest.approx(0.0)
    assert position.longitude == pytest.approx(0.005)
    assert position.timestamp == "2024-01-01T00:00:05.000Z"
    assert simulator.elapsed_time == pytest.approx(5.0)
    assert simulator.current_speed == pytest.approx(111.3, rel=1e-2)
    assert simulator.is_playing


def test_reaching_last_waypoint_stops_playback(simulator, scheduler, clock, two_point_route):
    simulator.load(two_point_route)
    simulator.play()
    scheduler.fire()
    clock.advance(10.0)
    scheduler.fire()

    assert simulator.state == PlaybackState.FINISHED
    assert not simulator.is_playing
    assert scheduler.pending == {}
    assert simulator.target_index == len(two_point_route)
    assert simulator.interpolated_position == two_point_route[1]
    assert simulator.traversed_path == [wp.coordinates for wp in two_point_route]
    assert simulator.elapsed_time == pytest.approx(10.0)
    assert simulator.current_speed == pytest.approx(111.3, rel=1e-2)


def test_late_frame_skips_to_segment_end(simulator, scheduler, clock, three_point_route):
    simulator.load(three_point_route)
    simulator.play()
    scheduler.fire()

    # A frame arriving long after the segment should have ended snaps to it
    clock.advance(60.0)
    scheduler.fire()

    assert simulator.target_index == 2
    assert simulator.interpolated_position == three_point_route[1]
    assert simulator.is_playing


def test_traversed_path_skips_duplicate_coordinates(simulator, scheduler, clock):
    route = [
        Waypoint(1.0, 1.0, "2024-01-01T00:00:00Z"),
        Waypoint(1.0, 1.0, "2024-01-01T00:00:05Z"),
        Waypoint(1.0, 1.001, "2024-01-01T00:00:10Z"),
        Waypoint(1.0, 1.001, "2024-01-01T00:00:10Z"),
    ]
    simulator.load(route)
    simulator.play()
    while scheduler.pending:
        clock.advance(1.0)
        scheduler.fire()

    path = simulator.traversed_path
    assert path == [(1.0, 1.0), (1.0, 1.001)]
    assert all(a != b for a, b in zip(path, path[1:]))
    assert simulator.state == PlaybackState.FINISHED


def test_pause_cancels_frame_and_keeps_position(simulator, scheduler, clock, two_point_route):
    simulator.load(two_point_route)
    simulator.play()
    scheduler.fire()
    clock.advance(2.0)
    scheduler.fire()
    position = simulator.interpolated_position

    simulator.toggle_play_pause()

    assert simulator.state == PlaybackState.READY
    assert scheduler.pending == {}
    assert simulator.segment_start_time is None
    assert simulator.interpolated_position == position


def test_resume_continues_from_paused_fraction(simulator, scheduler, clock, two_point_route):
    simulator.load(two_point_route)
    simulator.play()
    scheduler.fire()
    clock.advance(3.0)
    simulator.pause()

    # Time spent paused does not move the vehicle
    clock.advance(100.0)
    simulator.play()
    scheduler.fire()

    assert simulator.interpolated_position.longitude == pytest.approx(0.003)
    assert simulator.elapsed_time == pytest.approx(3.0)


def test_only_one_frame_outstanding(simulator, scheduler, two_point_route):
    simulator.load(two_point_route)
    simulator.play()
    simulator.play()
    assert len(scheduler.pending) == 1

    simulator.toggle_play_pause()
    simulator.toggle_play_pause()
    assert len(scheduler.pending) == 1


def test_reset_restores_first_waypoint(simulator, scheduler, clock, three_point_route):
    simulator.load(three_point_route)
    simulator.play()
    scheduler.fire()
    clock.advance(10.0)
    scheduler.fire()
    clock.advance(5.0)
    scheduler.fire()
    assert len(simulator.traversed_path) == 2

    simulator.reset()

    first = three_point_route[0]
    assert simulator.traversed_path == [first.coordinates]
    assert simulator.target_index == 0
    assert not simulator.is_playing
    assert simulator.state == PlaybackState.READY
    assert simulator.interpolated_position == first
    assert simulator.segment_start_time is None
    assert simulator.elapsed_time == 0.0
    assert simulator.current_speed == 0.0
    assert scheduler.pending == {}


def test_reset_without_waypoints_clears_everything(simulator):
    simulator.reset()

    assert simulator.state == PlaybackState.IDLE
    assert simulator.interpolated_position is None
    assert simulator.traversed_path == []
    assert simulator.snapshot().timestamp is None


def test_play_after_finish_stays_at_last_waypoint(simulator, scheduler, clock, two_point_route):
    simulator.load(two_point_route)
    simulator.play()
    scheduler.fire()
    clock.advance(10.0)
    scheduler.fire()
    assert simulator.state == PlaybackState.FINISHED

    simulator.toggle_play_pause()
    assert simulator.is_playing
    scheduler.fire()

    assert simulator.state == PlaybackState.FINISHED
    assert simulator.interpolated_position == two_point_route[1]
    assert scheduler.pending == {}


def test_replay_after_reset(simulator, scheduler, clock, two_point_route):
    simulator.load(two_point_route)
    simulator.play()
    scheduler.fire()
    clock.advance(10.0)
    scheduler.fire()

    simulator.reset()
    simulator.play()
    scheduler.fire()
    clock.advance(10.0)
    scheduler.fire()

    assert simulator.state == PlaybackState.FINISHED
    assert len(simulator.traversed_path) == 2


def test_load_replaces_route_and_cancels_frame(simulator, scheduler, two_point_route, three_point_route):
    simulator.load(two_point_route)
    simulator.play()

    simulator.load(three_point_route)

    assert scheduler.pending == {}
    assert simulator.state == PlaybackState.READY
    assert simulator.interpolated_position == three_point_route[0]


def test_shutdown_is_idempotent(simulator, scheduler, two_point_route):
    simulator.load(two_point_route)
    simulator.play()

    simulator.shutdown()
    simulator.shutdown()

    assert scheduler.pending == {}
    assert not simulator.is_playing


def test_listeners_receive_snapshots(simulator, scheduler, two_point_route):
    received = []
    simulator.add_listener(received.append)

    simulator.load(two_point_route)
    simulator.play()
    scheduler.fire()

    assert [t.state for t in received] == [PlaybackState.READY, PlaybackState.PLAYING, PlaybackState.PLAYING]
    assert received[-1].target_index == 1

    # Snapshots are not affected by later mutation
    simulator.reset()
    assert received[-1].traversed_path == [two_point_route[0].coordinates]

    simulator.remove_listener(received.append)
    count = len(received)
    simulator.play()
    assert len(received) == count


def test_full_replay_timestamps_never_decrease(clock, three_point_route):
    loop = LoopFrameScheduler(interval_s=0.25, clock=clock, sleep=clock.sleep)
    simulator = ReplaySimulator(loop, clock=clock)
    timestamps = []
    simulator.add_listener(lambda t: timestamps.append(epoch_ms(t.timestamp)))

    simulator.load(three_point_route)
    simulator.play()
    loop.run()

    assert simulator.state == PlaybackState.FINISHED
    assert simulator.traversed_path == [wp.coordinates for wp in three_point_route]
    assert simulator.elapsed_time == pytest.approx(30.0)
    assert all(a <= b for a, b in zip(timestamps, timestamps[1:]))
    # Roughly one frame per quarter second of recorded time
    assert 100 <= loop.frames_run <= 130

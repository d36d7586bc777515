"""
Command-line entry point: launches the map GUI, or replays the route in the
terminal with --headless.
"""

import argparse
import logging
import sys
from typing import List, Optional

from .config import ConfigError, ReplayConfig, load_config
from .frames import LoopFrameScheduler
from .interpolation import route_distance
from .route_loader import load_route
from .simulator import ReplaySimulator
from .telemetry import Telemetry, format_status_line


logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="vehicle-replay",
        description="Replay a recorded GPS route on an interactive map.",
    )
    parser.add_argument("route", nargs="?", default=None,
                        help="route JSON file or http(s) URL (default: bundled demo route)")
    parser.add_argument("--config", help="JSON configuration file")
    parser.add_argument("--headless", action="store_true",
                        help="replay in the terminal instead of opening a window")
    parser.add_argument("--frame-interval", type=int, dest="frame_interval_ms",
                        help="milliseconds between animation frames")
    parser.add_argument("--zoom", type=int, dest="initial_zoom",
                        help="initial map zoom level")
    parser.add_argument("--no-follow", action="store_false", dest="follow_vehicle", default=None,
                        help="do not pan the map to follow the vehicle")
    parser.add_argument("--log-level", choices=["DEBUG", "INFO", "WARNING", "ERROR"],
                        help="logging verbosity")
    return parser


def resolve_config(args: argparse.Namespace) -> ReplayConfig:
    """Defaults, then the config file, then command-line options."""
    config = load_config(args.config) if args.config else ReplayConfig()
    return config.apply_overrides(
        route_source=args.route,
        frame_interval_ms=args.frame_interval_ms,
        initial_zoom=args.initial_zoom,
        follow_vehicle=args.follow_vehicle,
        log_level=args.log_level,
    )


class ConsoleReporter:
    """Prints a line whenever the vehicle reaches a waypoint or changes state."""

    def __init__(self, output=None):
        self.output = output if output is not None else sys.stdout
        self._last_key = None

    def __call__(self, telemetry: Telemetry):
        key = (telemetry.state, telemetry.target_index)
        if key == self._last_key:
            return
        self._last_key = key
        self.output.write(format_status_line(telemetry) + "\n")


def run_headless(config: ReplayConfig, scheduler: Optional[LoopFrameScheduler] = None,
                 output=None) -> int:
    '''
    Replay the route in real time without a window.

    Returns:
        Process exit code, 1 when no route could be loaded
    '''
    output = output if output is not None else sys.stdout
    waypoints = load_route(config.route_source)
    if not waypoints:
        output.write("No route data available\n")
        return 1

    if scheduler is None:
        scheduler = LoopFrameScheduler(interval_s=config.frame_interval_ms / 1000.0)

    simulator = ReplaySimulator(scheduler, clock=scheduler.clock)
    simulator.add_listener(ConsoleReporter(output))
    simulator.load(waypoints)
    simulator.play()

    try:
        scheduler.run()
    except KeyboardInterrupt:
        simulator.pause()
    finally:
        simulator.shutdown()

    output.write(
        f"Replayed {simulator.target_index} of {len(waypoints)} waypoints "
        f"({len(simulator.traversed_path)} trail points), "
        f"{route_distance(waypoints):.0f} m in {simulator.elapsed_time:.1f} s\n"
    )
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    args = build_parser().parse_args(argv)

    try:
        config = resolve_config(args)
    except ConfigError as e:
        logging.basicConfig(level=logging.ERROR)
        logger.error(str(e))
        return 2

    logging.basicConfig(
        level=getattr(logging, config.log_level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.headless:
        return run_headless(config)

    # Imported lazily so headless runs never need a display
    from .gui import main as gui_main
    gui_main(config)
    return 0

"""
Configuration for the vehicle replay application.

Settings come from built-in defaults, optionally a JSON configuration file,
and finally command-line overrides.
"""

from dataclasses import asdict, dataclass, fields
from typing import Any, Dict, Optional
import json
import logging
import os

from .constants import DEFAULT_ZOOM, OSM_TILE_SERVER, PATH_COLOR, PATH_WIDTH
from .frames import DEFAULT_FRAME_INTERVAL_MS
from .route_loader import is_url


logger = logging.getLogger(__name__)


class ConfigError(Exception):
    """Raised when a configuration file cannot be read or holds invalid values."""


# Accepted JSON types per option; bool is excluded from the int options
OPTION_TYPES = {
    'route_source': (str, type(None)),
    'frame_interval_ms': (int,),
    'initial_zoom': (int,),
    'tile_server': (str,),
    'follow_vehicle': (bool,),
    'path_color': (str,),
    'path_width': (int,),
    'window_geometry': (str,),
    'log_level': (str,),
}


def check_option(key: str, value: Any):
    """Raise ConfigError if ``value`` is not valid for option ``key``."""
    expected = OPTION_TYPES[key]
    if isinstance(value, bool) and bool not in expected:
        valid = False
    else:
        valid = isinstance(value, expected)

    if not valid:
        names = ' or '.join('null' if t is type(None) else t.__name__ for t in expected)
        raise ConfigError(f"Option '{key}' must be {names}, got {value!r}")
    if key in ('frame_interval_ms', 'path_width') and value < 1:
        raise ConfigError(f"Option '{key}' must be at least 1, got {value!r}")


@dataclass
class ReplayConfig:
    """Application settings."""
    route_source: Optional[str] = None  # file path or URL, None = bundled demo route
    frame_interval_ms: int = DEFAULT_FRAME_INTERVAL_MS
    initial_zoom: int = DEFAULT_ZOOM
    tile_server: str = OSM_TILE_SERVER
    follow_vehicle: bool = True
    path_color: str = PATH_COLOR
    path_width: int = PATH_WIDTH
    window_geometry: str = "1200x800"
    log_level: str = "INFO"

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ReplayConfig':
        """
        Build a config from a mapping, ignoring unknown keys.

        Raises:
            ConfigError: if a value does not have the option's type
        """
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            logger.warning(f"Ignoring unknown configuration keys: {', '.join(unknown)}")

        values = {key: value for key, value in data.items() if key in known}
        for key, value in values.items():
            check_option(key, value)
        return cls(**values)

    def apply_overrides(self, **overrides) -> 'ReplayConfig':
        """
        Return a copy with every non-None override applied.

        Command-line options default to None, so only the ones the user
        actually passed replace file or default values.
        """
        values = self.to_dict()
        for key, value in overrides.items():
            if value is None:
                continue
            if key not in values:
                raise TypeError(f"Unknown configuration option: {key}")
            values[key] = value
        return ReplayConfig(**values)


def load_config(path: str) -> ReplayConfig:
    """Load configuration from a JSON file.

    A relative ``route_source`` is taken relative to the directory holding
    the configuration file.

    Raises:
        ConfigError: if the file cannot be read, is not a JSON object or
            holds a value of the wrong type
    """
    try:
        with open(path, 'r', encoding='utf-8') as f:
            data = json.load(f)
    except (OSError, ValueError) as e:
        raise ConfigError(f"Failed to load configuration from {path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError(f"Configuration in {path} must be a JSON object")

    config = ReplayConfig.from_dict(data)
    source = config.route_source
    if source and not is_url(source) and not os.path.isabs(source):
        config.route_source = os.path.join(os.path.dirname(os.path.abspath(path)), source)
    return config


def save_config(config: ReplayConfig, path: str) -> None:
    """Save configuration to a JSON file."""
    with open(path, 'w', encoding='utf-8') as f:
        json.dump(config.to_dict(), f, indent=2)

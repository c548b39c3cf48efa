"""Overlay configuration and the TOML config file loader."""

from __future__ import annotations

import math
import tomllib
import warnings
from dataclasses import dataclass, fields, replace
from functools import lru_cache
from pathlib import Path
from typing import Any

from videounique.base.exceptions import InvalidConfigurationError

DEFAULT_SPEED_FACTOR = 1.01
DEFAULT_ROTATION_DEGREES = 45.0
# Seconds before the end of the video when the GIF animation shows up
DEFAULT_OVERLAY_WINDOW_SECONDS = 3.0
DEFAULT_HAIR_SIZE = (360, 360)
DEFAULT_GIF_OVERLAY = Path("overlay.gif")
DEFAULT_HAIR_OVERLAY = Path("hair.png")


@dataclass(frozen=True)
class OverlayConfig:
    """Everything that decides the shape of the filter graph for one request."""

    enable_hair_overlay: bool = True
    enable_subscribe_overlay: bool = True
    speed_factor: float = DEFAULT_SPEED_FACTOR
    rotation_degrees: float = DEFAULT_ROTATION_DEGREES
    gif_overlay: Path | None = DEFAULT_GIF_OVERLAY
    hair_overlay: Path | None = DEFAULT_HAIR_OVERLAY
    overlay_window_seconds: float = DEFAULT_OVERLAY_WINDOW_SECONDS
    hair_size: tuple[int, int] = DEFAULT_HAIR_SIZE

    def __str__(self) -> str:
        stages = []
        if self.enable_subscribe_overlay:
            stages.append("subscribe")
        if self.enable_hair_overlay:
            stages.append("hair")
        return f"x{self.speed_factor} speed, overlays: {', '.join(stages) or 'none'}"

    @property
    def rotation_radians(self) -> float:
        return self.rotation_degrees * math.pi / 180

    def validate(self) -> OverlayConfig:
        """Checks the configuration can be compiled.

        Returns:
            The same configuration, to allow chaining.

        Raises:
            InvalidConfigurationError: On non-positive speed or window, bad
                rotation or hair size, or an enabled overlay without an asset.
        """
        if not _is_finite_number(self.speed_factor) or self.speed_factor <= 0:
            raise InvalidConfigurationError(f"Speed factor must be a positive number, got {self.speed_factor!r}")
        if not _is_finite_number(self.rotation_degrees):
            raise InvalidConfigurationError(f"Rotation must be a finite number, got {self.rotation_degrees!r}")
        if not _is_finite_number(self.overlay_window_seconds) or self.overlay_window_seconds <= 0:
            raise InvalidConfigurationError(
                f"Overlay window must be a positive number of seconds, got {self.overlay_window_seconds!r}"
            )
        width, height = self.hair_size
        if width <= 0 or height <= 0:
            raise InvalidConfigurationError(f"Hair size must be positive, got {width}x{height}")
        if self.enable_subscribe_overlay and self.gif_overlay is None:
            raise InvalidConfigurationError("Subscribe overlay is enabled but no GIF asset is set")
        if self.enable_hair_overlay and self.hair_overlay is None:
            raise InvalidConfigurationError("Hair overlay is enabled but no PNG asset is set")
        return self

    def with_overrides(self, **overrides: Any) -> OverlayConfig:
        """Returns a copy with every non-None override applied."""
        return replace(self, **{key: value for key, value in overrides.items() if value is not None})

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> OverlayConfig:
        """Builds a configuration from a config file table, ignoring unknown keys."""
        known = {f.name for f in fields(cls)}
        kwargs: dict[str, Any] = {}
        for key, value in data.items():
            if key not in known:
                continue
            if key in ("gif_overlay", "hair_overlay") and value is not None:
                value = Path(value)
            elif key == "hair_size":
                value = _parse_size(value)
            kwargs[key] = value
        return cls(**kwargs)


@dataclass(frozen=True)
class EngineSettings:
    """Settings for the ffmpeg invocation read from the `[engine]` table."""

    binary: str = "ffmpeg"
    probe_binary: str = "ffprobe"
    hwaccel: bool = False
    video_codec: str | None = None
    timeout: float | None = None
    clear_metadata: bool = True
    extra_output_options: tuple[str, ...] = ()

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> EngineSettings:
        known = {f.name for f in fields(cls)}
        kwargs = {key: value for key, value in data.items() if key in known}
        if "extra_output_options" in kwargs:
            kwargs["extra_output_options"] = tuple(str(option) for option in kwargs["extra_output_options"])
        return cls(**kwargs)


def _is_finite_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value)


def _parse_size(value: Any) -> tuple[int, int]:
    try:
        if isinstance(value, int):
            return (value, value)
        if isinstance(value, str):
            width, _, height = value.partition(":")
            return (int(width), int(height or width))
        width, height = value
        return (int(width), int(height))
    except (TypeError, ValueError) as e:
        raise InvalidConfigurationError(f"Hair size must be N, \"W:H\" or [W, H], got {value!r}") from e


def _find_config_file() -> Path | None:
    """Find the configuration file in current directory.

    Looks for:
    1. videounique.toml in current directory
    2. pyproject.toml in current directory

    Returns:
        Path to config file if found, None otherwise.
    """
    cwd = Path.cwd()

    videounique_toml = cwd / "videounique.toml"
    if videounique_toml.exists():
        return videounique_toml

    pyproject_toml = cwd / "pyproject.toml"
    if pyproject_toml.exists():
        return pyproject_toml

    return None


def _load_toml(path: Path) -> dict[str, Any]:
    """Load and parse a TOML file."""
    with open(path, "rb") as f:
        return tomllib.load(f)


def _extract_config(data: dict[str, Any], filename: str) -> dict[str, Any]:
    """Extract videounique config from parsed TOML data.

    Args:
        data: Parsed TOML data
        filename: Name of the file (to determine extraction method)

    Returns:
        The videounique configuration section, or empty dict if not found.
    """
    if filename == "videounique.toml":
        return data
    elif filename == "pyproject.toml":
        return data.get("tool", {}).get("videounique", {})
    return {}


@lru_cache(maxsize=1)
def _get_cached_config() -> dict[str, Any]:
    config_path = _find_config_file()
    if config_path is None:
        return {}

    try:
        data = _load_toml(config_path)
        return _extract_config(data, config_path.name)
    except tomllib.TOMLDecodeError as e:
        warnings.warn(f"Invalid TOML in config file {config_path}: {e}", RuntimeWarning)
        return {}
    except OSError as e:
        warnings.warn(f"Cannot read config file {config_path}: {e}", RuntimeWarning)
        return {}


def get_config() -> dict[str, Any]:
    """Get the raw configuration table."""
    return _get_cached_config()


def load_overlay_config() -> OverlayConfig:
    """Overlay configuration from the config file, falling back to defaults."""
    return OverlayConfig.from_dict(get_config())


def load_engine_settings() -> EngineSettings:
    """Engine settings from the `[engine]` table of the config file."""
    return EngineSettings.from_dict(get_config().get("engine", {}))


def clear_config_cache() -> None:
    """Clear the configuration cache. Useful for testing."""
    _get_cached_config.cache_clear()

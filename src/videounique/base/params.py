"""Closed parameter schema for every filter operation the compiler emits.

Each parameter type validates its values on construction and renders the
argument string ffmpeg expects after `filter=`.
"""

from __future__ import annotations

import math
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum

from videounique.base.exceptions import InvalidParameterError

__all__ = [
    "FilterOperation",
    "FilterParams",
    "SpeedParams",
    "TempoParams",
    "DelayParams",
    "EnableWindow",
    "OverlayParams",
    "ScaleParams",
    "RotateParams",
    "PassthroughParams",
    "CENTER_X",
    "CENTER_Y",
    "format_number",
]

CENTER_X = "(main_w-overlay_w)/2"
CENTER_Y = "(main_h-overlay_h)/2"


def format_number(value: float) -> str:
    """Shortest text for a number, with integral values written without `.0`."""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return repr(value) if isinstance(value, float) else str(value)


def _require_finite(name: str, value: float) -> None:
    if isinstance(value, bool) or not isinstance(value, (int, float)) or not math.isfinite(value):
        raise InvalidParameterError(f"`{name}` must be a finite number, got {value!r}")


class FilterParams(ABC):
    """Parameters of one filter node."""

    @abstractmethod
    def to_args(self) -> str:
        """Argument string placed after `filter=`, empty when there is none."""


@dataclass(frozen=True)
class SpeedParams(FilterParams):
    """Presentation timestamp multiplier for the video stream (`setpts`)."""

    factor: float

    def __post_init__(self):
        _require_finite("factor", self.factor)
        if self.factor <= 0:
            raise InvalidParameterError(f"Timestamp factor must be positive, got {self.factor}")

    def to_args(self) -> str:
        return f"{format_number(self.factor)}*PTS"


@dataclass(frozen=True)
class TempoParams(FilterParams):
    """Forward tempo factor for the audio stream (`atempo`)."""

    factor: float

    def __post_init__(self):
        _require_finite("factor", self.factor)
        if self.factor <= 0:
            raise InvalidParameterError(f"Audio tempo must be positive, got {self.factor}")

    def to_args(self) -> str:
        return format_number(self.factor)


@dataclass(frozen=True)
class DelayParams(FilterParams):
    """Shift of a stream's timestamps forward by `offset_seconds` (`setpts`)."""

    offset_seconds: float

    def __post_init__(self):
        _require_finite("offset_seconds", self.offset_seconds)
        if self.offset_seconds < 0:
            raise InvalidParameterError(f"Delay can't be negative, got {self.offset_seconds}")

    def to_args(self) -> str:
        return f"PTS+{format_number(self.offset_seconds)}/TB"


@dataclass(frozen=True)
class EnableWindow:
    """Time window `[start, end]` in seconds during which a filter is active."""

    start: float
    end: float

    def __post_init__(self):
        _require_finite("start", self.start)
        _require_finite("end", self.end)
        if self.start < 0 or self.end < self.start:
            raise InvalidParameterError(f"Invalid enable window [{self.start}, {self.end}]")

    def to_expression(self) -> str:
        return f"between(t,{format_number(self.start)},{format_number(self.end)})"


@dataclass(frozen=True)
class OverlayParams(FilterParams):
    """Placement of the overlay stream on the main stream (`overlay`)."""

    x: str = CENTER_X
    y: str = CENTER_Y
    format: str | None = None
    enable: EnableWindow | None = None

    def __post_init__(self):
        if not self.x or not self.y:
            raise InvalidParameterError("Overlay position expressions can't be empty")
        if self.format is not None and self.format not in ("auto", "yuv420", "yuv422", "yuv444", "rgb", "gbrp"):
            raise InvalidParameterError(f"Unknown overlay format: {self.format}")

    def to_args(self) -> str:
        options = [f"x={self.x}", f"y={self.y}"]
        if self.format is not None:
            options.append(f"format={self.format}")
        if self.enable is not None:
            # Quoted so the commas of `between` don't split the filter chain
            options.append(f"enable='{self.enable.to_expression()}'")
        return ":".join(options)


@dataclass(frozen=True)
class ScaleParams(FilterParams):
    """Fixed output resolution (`scale`)."""

    width: int
    height: int

    def __post_init__(self):
        for name, value in (("width", self.width), ("height", self.height)):
            if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
                raise InvalidParameterError(f"Scale {name} must be a positive integer, got {value!r}")

    def to_args(self) -> str:
        return f"{self.width}:{self.height}"


@dataclass(frozen=True)
class RotateParams(FilterParams):
    """Rotation by `angle_radians` with the uncovered corners filled (`rotate`)."""

    angle_radians: float
    fill_color: str = "none"

    def __post_init__(self):
        _require_finite("angle_radians", self.angle_radians)
        if not self.fill_color:
            raise InvalidParameterError("Rotate fill color can't be empty")

    def to_args(self) -> str:
        return f"{format_number(self.angle_radians)}:fillcolor={self.fill_color}"


@dataclass(frozen=True)
class PassthroughParams(FilterParams):
    """No parameters; the stream is forwarded under a new label (`null`)."""

    def to_args(self) -> str:
        return ""


class FilterOperation(str, Enum):
    """Operations a filter node can perform."""

    SPEED_ADJUST_VIDEO = "speedAdjustVideo"
    SPEED_ADJUST_AUDIO = "speedAdjustAudio"
    DELAY = "delay"
    COMPOSITE_OVERLAY = "compositeOverlay"
    SCALE = "scale"
    ROTATE = "rotate"
    PASSTHROUGH = "passthrough"

    @property
    def filter_name(self) -> str:
        return _FILTER_NAMES[self]

    @property
    def params_type(self) -> type[FilterParams]:
        return _PARAMS_TYPES[self]

    @property
    def input_count(self) -> int:
        return 2 if self is FilterOperation.COMPOSITE_OVERLAY else 1


_FILTER_NAMES: dict[FilterOperation, str] = {
    FilterOperation.SPEED_ADJUST_VIDEO: "setpts",
    FilterOperation.SPEED_ADJUST_AUDIO: "atempo",
    FilterOperation.DELAY: "setpts",
    FilterOperation.COMPOSITE_OVERLAY: "overlay",
    FilterOperation.SCALE: "scale",
    FilterOperation.ROTATE: "rotate",
    FilterOperation.PASSTHROUGH: "null",
}

_PARAMS_TYPES: dict[FilterOperation, type[FilterParams]] = {
    FilterOperation.SPEED_ADJUST_VIDEO: SpeedParams,
    FilterOperation.SPEED_ADJUST_AUDIO: TempoParams,
    FilterOperation.DELAY: DelayParams,
    FilterOperation.COMPOSITE_OVERLAY: OverlayParams,
    FilterOperation.SCALE: ScaleParams,
    FilterOperation.ROTATE: RotateParams,
    FilterOperation.PASSTHROUGH: PassthroughParams,
}

from __future__ import annotations

import json
import math
import subprocess
from dataclasses import dataclass
from fractions import Fraction
from pathlib import Path

from videounique.base.exceptions import ProbeError


@dataclass
class MediaMetadata:
    """Class to store probed media metadata."""

    duration_seconds: float
    width: int | None = None
    height: int | None = None
    fps: float | None = None
    has_audio: bool = False

    def __str__(self) -> str:
        size = f"{self.width}x{self.height}" if self.width and self.height else "unknown size"
        return f"{size} @ {self.fps}fps, {self.duration_seconds} seconds"

    def __repr__(self) -> str:
        return self.__str__()

    @staticmethod
    def _run_ffprobe(media_path: str | Path, binary: str = "ffprobe") -> dict:
        """Run ffprobe and return parsed JSON output."""
        cmd = [
            binary,
            "-v",
            "error",
            "-show_entries",
            "stream=codec_type,width,height,r_frame_rate",
            "-show_entries",
            "format=duration",
            "-print_format",
            "json",
            str(media_path),
        ]

        try:
            result = subprocess.run(cmd, capture_output=True, text=True, check=True)
            return json.loads(result.stdout)
        except FileNotFoundError as e:
            raise ProbeError(f"ffprobe executable not found: {binary}") from e
        except subprocess.CalledProcessError as e:
            raise ProbeError(f"FFprobe error: {e.stderr}") from e
        except json.JSONDecodeError as e:
            raise ProbeError(f"Error parsing FFprobe output: {e}") from e

    @classmethod
    def from_probe_data(cls, probe_data: dict) -> MediaMetadata:
        try:
            duration = float(probe_data["format"]["duration"])
        except KeyError as e:
            raise ProbeError(f"Missing required metadata field: {e}") from e
        except (TypeError, ValueError) as e:
            raise ProbeError(f"Invalid duration: {probe_data['format'].get('duration')!r}") from e

        if not math.isfinite(duration) or duration <= 0:
            raise ProbeError(f"Probed duration must be finite and positive, got {duration}")

        streams = probe_data.get("streams", [])
        video_stream = next((stream for stream in streams if stream.get("codec_type") == "video"), None)
        has_audio = any(stream.get("codec_type") == "audio" for stream in streams)

        width = height = None
        fps = None
        if video_stream is not None:
            width = int(video_stream["width"]) if "width" in video_stream else None
            height = int(video_stream["height"]) if "height" in video_stream else None
            try:
                fps = float(Fraction(video_stream.get("r_frame_rate", "")))
            except (ValueError, ZeroDivisionError):
                fps = None

        return cls(duration_seconds=duration, width=width, height=height, fps=fps, has_audio=has_audio)

    @classmethod
    def from_path(cls, media_path: str | Path, binary: str = "ffprobe") -> MediaMetadata:
        """Creates MediaMetadata object from a media file using ffprobe."""
        if not Path(media_path).exists():
            raise ProbeError(f"Media file not found: {media_path}")

        return cls.from_probe_data(cls._run_ffprobe(media_path, binary=binary))


def probe_duration(media_path: str | Path, binary: str = "ffprobe") -> float:
    """Probes the duration of a media file in seconds.

    Raises:
        ProbeError: If the file is missing, ffprobe fails or the duration isn't usable.
    """
    return MediaMetadata.from_path(media_path, binary=binary).duration_seconds

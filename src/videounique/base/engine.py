from __future__ import annotations

import shlex
import subprocess
import tempfile
import threading
from pathlib import Path
from typing import Mapping

from videounique.base.config import EngineSettings
from videounique.base.exceptions import EngineFailureError, InvalidConfigurationError
from videounique.base.graph import FilterGraph
from videounique.base.paths import generate_random_name
from videounique.base.plan import InputPlan, InputRole
from videounique.base.progress import progress_bar
from videounique.utils.logger import get_logger

logger = get_logger(__name__)

HWACCEL_INPUT_OPTIONS = ["-hwaccel", "cuda", "-hwaccel_device", "0"]
GIF_INPUT_OPTIONS = ["-ignore_loop", "0"]
CLEAR_METADATA_OPTIONS = ["-map_metadata", "-1"]
STDERR_TAIL_LINES = 20


def _parse_progress_seconds(line: str) -> float | None:
    """Reads the output position from a `-progress` line, e.g. `out_time_us=1500000`."""
    key, _, value = line.strip().partition("=")
    if key not in ("out_time_us", "out_time_ms") or not value.lstrip("-").isdigit():
        return None
    # ffmpeg reports microseconds under both keys
    return max(0, int(value)) / 1_000_000


def _tail(text: str, lines: int = STDERR_TAIL_LINES) -> str:
    return "\n".join(text.strip().splitlines()[-lines:])


class FFmpegEngine:
    """Runs a compiled filter graph through the ffmpeg command line tool."""

    def __init__(self, settings: EngineSettings | None = None):
        self.settings = settings if settings is not None else EngineSettings()

    def build_command(
        self,
        plan: InputPlan,
        graph: FilterGraph,
        assets: Mapping[InputRole, str | Path],
        output_path: str | Path,
    ) -> list[str]:
        """Builds the ffmpeg command line.

        Inputs are attached in the slot order of the plan, so input indices in
        the graph line up with `-i` positions.

        Raises:
            InvalidConfigurationError: If a role of the plan has no asset.
        """
        command = [self.settings.binary, "-y"]

        for role in plan.roles:
            if role not in assets:
                raise InvalidConfigurationError(f"No media attached for input '{role.value}'")
            if role is InputRole.MAIN and self.settings.hwaccel:
                command.extend(HWACCEL_INPUT_OPTIONS)
            if role is InputRole.GIF_OVERLAY:
                command.extend(GIF_INPUT_OPTIONS)
            command.extend(["-i", str(assets[role])])

        command.extend(["-filter_complex", graph.to_filter_complex()])
        command.extend(graph.output_maps())
        if self.settings.clear_metadata:
            command.extend(CLEAR_METADATA_OPTIONS)
        # Looping overlays never end on their own
        if graph.has_overlay:
            command.append("-shortest")
        if self.settings.video_codec:
            command.extend(["-c:v", self.settings.video_codec])
        command.extend(self.settings.extra_output_options)
        command.extend(["-progress", "pipe:1", "-nostats", str(output_path)])
        return command

    def run(
        self,
        plan: InputPlan,
        graph: FilterGraph,
        assets: Mapping[InputRole, str | Path],
        output_path: str | Path,
        expected_duration: float | None = None,
    ) -> Path:
        """Runs ffmpeg and returns the output path once it completed.

        Output is written to a temporary file next to `output_path` and only
        moved into place on success, so a failed run leaves no partial file.

        Args:
            plan: Input plan of the request.
            graph: Compiled filter graph.
            assets: Media file for every role of the plan.
            output_path: Destination file.
            expected_duration: Output duration in seconds, used for the progress bar.

        Raises:
            EngineFailureError: If ffmpeg can't be started, fails or times out.
        """
        output_path = Path(output_path)
        temp_output = output_path.parent / f".{generate_random_name(suffix=output_path.suffix or '.mp4')}"
        command = self.build_command(plan, graph, assets, temp_output)
        logger.debug(f"Spawned FFmpeg with command: {shlex.join(command)}")

        timed_out = threading.Event()
        with tempfile.TemporaryFile(mode="w+") as stderr_file:
            try:
                process = subprocess.Popen(command, stdout=subprocess.PIPE, stderr=stderr_file, text=True)
            except OSError as e:
                raise EngineFailureError(f"Can't start {self.settings.binary}: {e}") from e

            timer = None
            if self.settings.timeout is not None:

                def _kill() -> None:
                    timed_out.set()
                    process.kill()

                timer = threading.Timer(self.settings.timeout, _kill)
                timer.start()

            try:
                with progress_bar(total=expected_duration, desc=output_path.name) as bar:
                    assert process.stdout is not None
                    for line in process.stdout:
                        seconds = _parse_progress_seconds(line)
                        if seconds is not None:
                            bar.update(max(0.0, seconds - bar.n))
                    returncode = process.wait()
            finally:
                if timer is not None:
                    timer.cancel()
                if process.poll() is None:
                    process.kill()
                    process.wait()
                    temp_output.unlink(missing_ok=True)

            stderr_file.seek(0)
            stderr = stderr_file.read()

        if timed_out.is_set() or returncode != 0:
            temp_output.unlink(missing_ok=True)
            if timed_out.is_set():
                message = f"FFmpeg timed out after {self.settings.timeout} seconds"
            else:
                message = f"FFmpeg exited with code {returncode}: {_tail(stderr, 1)}"
            logger.error(message)
            raise EngineFailureError(message, returncode=returncode, stderr=_tail(stderr))

        temp_output.replace(output_path)
        logger.info(f"Processing complete. File saved as: {output_path}")
        return output_path

import subprocess
import threading
from pathlib import Path

import pytest

from videounique.base.compiler import compile_graph
from videounique.base.config import EngineSettings, OverlayConfig
from videounique.base.engine import FFmpegEngine, _parse_progress_seconds
from videounique.base.exceptions import EngineFailureError, InvalidConfigurationError
from videounique.base.plan import InputRole, build_input_plan

ASSETS = {
    InputRole.MAIN: Path("in.mp4"),
    InputRole.GIF_OVERLAY: Path("overlay.gif"),
    InputRole.HAIR_OVERLAY: Path("hair.png"),
}


def _plan_and_graph(**config_kwargs):
    config = OverlayConfig(**config_kwargs)
    plan = build_input_plan(config)
    return plan, compile_graph(config, plan, 10.0)


class FakePopen:
    """Stands in for the ffmpeg process, writing the output file on success."""

    calls: list[list[str]] = []
    returncode = 0
    stderr_text = ""
    progress_lines = ["frame=10\n", "out_time_us=2500000\n", "out_time_us=9900000\n", "progress=end\n"]

    def __init__(self, command, stdout=None, stderr=None, text=None):
        FakePopen.calls.append(command)
        self.stdout = iter(self.progress_lines)
        if stderr is not None:
            stderr.write(self.stderr_text)
        if self.returncode == 0:
            Path(command[-1]).write_bytes(b"encoded")

    def wait(self):
        return self.returncode

    def poll(self):
        return self.returncode

    def kill(self):
        pass


@pytest.fixture
def fake_popen(monkeypatch):
    FakePopen.calls = []
    FakePopen.returncode = 0
    FakePopen.stderr_text = ""
    monkeypatch.setattr(subprocess, "Popen", FakePopen)
    return FakePopen


def test_command_with_both_overlays():
    plan, graph = _plan_and_graph()

    command = FFmpegEngine().build_command(plan, graph, ASSETS, "out.mp4")

    assert command == [
        "ffmpeg",
        "-y",
        "-i",
        "in.mp4",
        "-ignore_loop",
        "0",
        "-i",
        "overlay.gif",
        "-i",
        "hair.png",
        "-filter_complex",
        graph.to_filter_complex(),
        "-map",
        "[v]",
        "-map",
        "[a]",
        "-map_metadata",
        "-1",
        "-shortest",
        "-progress",
        "pipe:1",
        "-nostats",
        "out.mp4",
    ]


def test_command_without_overlays_has_no_shortest():
    plan, graph = _plan_and_graph(enable_hair_overlay=False, enable_subscribe_overlay=False)

    command = FFmpegEngine().build_command(plan, graph, {InputRole.MAIN: "in.mp4"}, "out.mp4")

    assert "-shortest" not in command
    assert "-ignore_loop" not in command
    assert command.count("-i") == 1


def test_hair_only_attaches_png_as_second_input():
    plan, graph = _plan_and_graph(enable_subscribe_overlay=False)

    command = FFmpegEngine().build_command(plan, graph, ASSETS, "out.mp4")
    inputs = [command[i + 1] for i, arg in enumerate(command) if arg == "-i"]

    assert inputs == ["in.mp4", "hair.png"]
    assert "[1:v]scale=360:360[scaledOverlay]" in graph.to_filter_complex()
    assert "-shortest" in command


def test_gpu_settings():
    plan, graph = _plan_and_graph()
    settings = EngineSettings(hwaccel=True, video_codec="h264_nvenc", extra_output_options=("-preset", "p4"))

    command = FFmpegEngine(settings).build_command(plan, graph, ASSETS, "out.mp4")

    assert command[2:8] == ["-hwaccel", "cuda", "-hwaccel_device", "0", "-i", "in.mp4"]
    codec_index = command.index("-c:v")
    assert command[codec_index : codec_index + 4] == ["-c:v", "h264_nvenc", "-preset", "p4"]


def test_missing_asset_for_role():
    plan, graph = _plan_and_graph()

    with pytest.raises(InvalidConfigurationError, match="hairOverlay"):
        FFmpegEngine().build_command(plan, graph, {InputRole.MAIN: "a", InputRole.GIF_OVERLAY: "b"}, "out.mp4")


@pytest.mark.parametrize(
    "line, expected",
    [
        ("out_time_us=1500000\n", 1.5),
        ("out_time_ms=2000000", 2.0),
        ("out_time_us=-9223372036854775807", 0.0),
        ("out_time_us=N/A", None),
        ("progress=continue", None),
    ],
)
def test_parse_progress_seconds(line, expected):
    assert _parse_progress_seconds(line) == expected


def test_run_moves_output_into_place(fake_popen, tmp_path):
    plan, graph = _plan_and_graph()
    output_path = tmp_path / "out_final.mp4"

    result = FFmpegEngine().run(plan, graph, ASSETS, output_path, expected_duration=9.9)

    assert result == output_path
    assert output_path.read_bytes() == b"encoded"
    assert [path.name for path in tmp_path.iterdir()] == ["out_final.mp4"]
    assert fake_popen.calls[0][-1] != str(output_path)


def test_run_failure_raises_and_leaves_nothing(fake_popen, tmp_path):
    fake_popen.returncode = 1
    fake_popen.stderr_text = "frame=1\n[AVFilterGraph] No such filter: 'rotat'\n"
    plan, graph = _plan_and_graph()
    output_path = tmp_path / "out_final.mp4"

    with pytest.raises(EngineFailureError) as excinfo:
        FFmpegEngine().run(plan, graph, ASSETS, output_path)

    assert excinfo.value.returncode == 1
    assert "No such filter" in excinfo.value.stderr
    assert "No such filter" in str(excinfo.value)
    assert list(tmp_path.iterdir()) == []


def test_run_without_ffmpeg_binary(tmp_path):
    plan, graph = _plan_and_graph()
    engine = FFmpegEngine(EngineSettings(binary=str(tmp_path / "no-such-ffmpeg")))

    with pytest.raises(EngineFailureError, match="Can't start"):
        engine.run(plan, graph, ASSETS, tmp_path / "out.mp4")


def test_metadata_is_cleared_by_default():
    plan, graph = _plan_and_graph()

    command = FFmpegEngine().build_command(plan, graph, ASSETS, "out.mp4")

    index = command.index("-map_metadata")
    assert command[index + 1] == "-1"
    assert index > command.index("-filter_complex")


def test_metadata_can_be_kept():
    plan, graph = _plan_and_graph()

    command = FFmpegEngine(EngineSettings(clear_metadata=False)).build_command(plan, graph, ASSETS, "out.mp4")

    assert "-map_metadata" not in command


class HangingPopen(FakePopen):
    """An ffmpeg process that writes partial output and only stops when killed."""

    def __init__(self, command, stdout=None, stderr=None, text=None):
        FakePopen.calls.append(command)
        Path(command[-1]).write_bytes(b"partial")
        self.killed = threading.Event()
        self.stdout = self._lines()

    def _lines(self):
        yield "out_time_us=100000\n"
        self.killed.wait(timeout=5)

    def wait(self):
        return -9

    def poll(self):
        return -9 if self.killed.is_set() else None

    def kill(self):
        self.killed.set()


def test_run_timeout_kills_ffmpeg(monkeypatch, tmp_path):
    FakePopen.calls = []
    monkeypatch.setattr(subprocess, "Popen", HangingPopen)
    plan, graph = _plan_and_graph()

    with pytest.raises(EngineFailureError, match="timed out") as excinfo:
        FFmpegEngine(EngineSettings(timeout=0.05)).run(plan, graph, ASSETS, tmp_path / "out_final.mp4")

    assert excinfo.value.returncode == -9
    assert list(tmp_path.iterdir()) == []


class InterruptedPopen(FakePopen):
    """An ffmpeg process whose progress reading is interrupted by the user."""

    last = None

    def __init__(self, command, stdout=None, stderr=None, text=None):
        InterruptedPopen.last = self
        Path(command[-1]).write_bytes(b"partial")
        self.killed = False
        self.stdout = self._lines()

    def _lines(self):
        yield "out_time_us=100000\n"
        raise KeyboardInterrupt

    def wait(self):
        return -9

    def poll(self):
        return -9 if self.killed else None

    def kill(self):
        self.killed = True


def test_interrupted_run_kills_ffmpeg_and_removes_partial_output(monkeypatch, tmp_path):
    monkeypatch.setattr(subprocess, "Popen", InterruptedPopen)
    plan, graph = _plan_and_graph()

    with pytest.raises(KeyboardInterrupt):
        FFmpegEngine().run(plan, graph, ASSETS, tmp_path / "out_final.mp4")

    assert InterruptedPopen.last.killed
    assert list(tmp_path.iterdir()) == []

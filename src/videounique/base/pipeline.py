from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Iterable

from videounique.base.assets import AssetResolver
from videounique.base.compiler import GraphCompiler
from videounique.base.config import OverlayConfig
from videounique.base.engine import FFmpegEngine
from videounique.base.exceptions import VideoUniqueError
from videounique.base.graph import FilterGraph
from videounique.base.paths import DEFAULT_OUTPUT_SUFFIX, generate_output_path
from videounique.base.plan import InputPlan, InputRole, build_input_plan
from videounique.base.probe import probe_duration
from videounique.base.progress import log
from videounique.utils.logger import get_logger

logger = get_logger(__name__)


@dataclass
class ProcessResult:
    source: Path
    output: Path | None = None
    error: VideoUniqueError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


class VideoUniquePipeline:
    """Probe -> plan -> compile -> run ffmpeg -> remove the source, for one file at a time."""

    def __init__(
        self,
        config: OverlayConfig,
        engine: FFmpegEngine | None = None,
        compiler: GraphCompiler | None = None,
        probe: Callable[[Path], float] | None = None,
        resolver: AssetResolver | None = None,
        output_suffix: str = DEFAULT_OUTPUT_SUFFIX,
        delete_source: bool = True,
    ):
        self.config = config.validate()
        self.engine = engine if engine is not None else FFmpegEngine()
        self.compiler = compiler if compiler is not None else GraphCompiler()
        self.probe = probe if probe is not None else self._default_probe
        self.resolver = resolver if resolver is not None else AssetResolver(config)
        self.output_suffix = output_suffix
        self.delete_source = delete_source

    def _default_probe(self, path: Path) -> float:
        return probe_duration(path, binary=self.engine.settings.probe_binary)

    def _compile(self, source: Path) -> tuple[float, InputPlan, FilterGraph, dict[InputRole, Path], Path]:
        duration = self.probe(source)
        plan = build_input_plan(self.config)
        graph = self.compiler.compile(self.config, plan, duration)
        assets = self.resolver.resolve(plan, main=source)
        output_path = generate_output_path(source, self.output_suffix)
        return duration, plan, graph, assets, output_path

    def prepare(self, source: str | Path) -> tuple[list[str], Path]:
        """Runs every step up to the ffmpeg invocation and returns its command and output path."""
        _, plan, graph, assets, output_path = self._compile(Path(source))
        return self.engine.build_command(plan, graph, assets, output_path), output_path

    def process(self, source: str | Path) -> Path:
        """Processes one video.

        The source file is removed only after ffmpeg completed successfully.

        Returns:
            Path of the processed video.

        Raises:
            VideoUniqueError: On any failed step; the source is kept.
        """
        source = Path(source)
        log(f"Processing {source} ({self.config})")
        try:
            duration, plan, graph, assets, output_path = self._compile(source)
            self.engine.run(plan, graph, assets, output_path, expected_duration=duration / self.config.speed_factor)
        except VideoUniqueError as e:
            logger.error(f"Failed to process {source}: {e}")
            raise

        if self.delete_source and source.resolve() != output_path.resolve():
            source.unlink()
            log(f"Removed source {source}")
        return output_path

    def process_many(self, sources: Iterable[str | Path]) -> list[ProcessResult]:
        """Processes videos one after another, carrying on after a failed one."""
        results = []
        for source in sources:
            try:
                results.append(ProcessResult(source=Path(source), output=self.process(source)))
            except VideoUniqueError as e:
                results.append(ProcessResult(source=Path(source), error=e))
        return results

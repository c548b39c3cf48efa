"""Filter graph compiler.

The graph is built by folding an ordered list of optional stages over a
"current base label". Each stage receives the label the previous stages left
as the video to draw on and returns its nodes together with the new label:

    speed -> subscribe (GIF) overlay -> hair (PNG) overlay -> terminal label

Stages that are switched off by the configuration contribute no nodes and
return the base label unchanged.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Callable, Sequence

from videounique.base.config import OverlayConfig
from videounique.base.exceptions import InvalidConfigurationError, InvalidDurationError
from videounique.base.graph import FINAL_AUDIO_LABEL, FINAL_VIDEO_LABEL, FilterGraph, FilterNode
from videounique.base.params import (
    DelayParams,
    EnableWindow,
    FilterOperation,
    OverlayParams,
    PassthroughParams,
    RotateParams,
    ScaleParams,
    SpeedParams,
    TempoParams,
)
from videounique.base.plan import InputPlan, InputRole
from videounique.utils.logger import get_logger

__all__ = [
    "StageContext",
    "Stage",
    "GraphCompiler",
    "compile_graph",
    "compute_overlay_start",
    "speed_stage",
    "subscribe_overlay_stage",
    "hair_overlay_stage",
    "terminal_stage",
    "DEFAULT_STAGES",
]

logger = get_logger(__name__)

SPED_UP_VIDEO_LABEL = "v1"
GIF_OVERLAID_LABEL = "v2"
DELAYED_GIF_LABEL = "delayedGif"
SCALED_HAIR_LABEL = "scaledOverlay"
ROTATED_HAIR_LABEL = "rotatedOverlay"


@dataclass(frozen=True)
class StageContext:
    config: OverlayConfig
    plan: InputPlan
    duration: float


StageResult = tuple[tuple[FilterNode, ...], str]
Stage = Callable[[StageContext, str], StageResult]


def compute_overlay_start(duration: float, window_seconds: float) -> float:
    """Moment the subscribe overlay appears: `window_seconds` before the end, never below 0."""
    return max(0.0, float(duration) - window_seconds)


def _require_role(context: StageContext, role: InputRole) -> str:
    if role not in context.plan:
        raise InvalidConfigurationError(f"Input plan has no slot for '{role.value}'")
    return context.plan.video_ref(role)


def speed_stage(context: StageContext, base_label: str) -> StageResult:
    # Video timestamps are scaled by the reciprocal, audio tempo takes the factor as is
    speed_factor = context.config.speed_factor
    nodes = (
        FilterNode(
            operation=FilterOperation.SPEED_ADJUST_VIDEO,
            params=SpeedParams(factor=1 / speed_factor),
            input_labels=(base_label,),
            output_label=SPED_UP_VIDEO_LABEL,
        ),
        FilterNode(
            operation=FilterOperation.SPEED_ADJUST_AUDIO,
            params=TempoParams(factor=speed_factor),
            input_labels=(context.plan.audio_ref(InputRole.MAIN),),
            output_label=FINAL_AUDIO_LABEL,
        ),
    )
    return nodes, SPED_UP_VIDEO_LABEL


def subscribe_overlay_stage(context: StageContext, base_label: str) -> StageResult:
    """Shows the looping GIF centered over the last seconds of the video."""
    if not context.config.enable_subscribe_overlay:
        return (), base_label

    gif_ref = _require_role(context, InputRole.GIF_OVERLAY)
    overlay_start = compute_overlay_start(context.duration, context.config.overlay_window_seconds)
    logger.debug(f"Subscribe overlay active from t={overlay_start} to t={context.duration}")

    nodes = (
        FilterNode(
            operation=FilterOperation.DELAY,
            params=DelayParams(offset_seconds=overlay_start),
            input_labels=(gif_ref,),
            output_label=DELAYED_GIF_LABEL,
        ),
        FilterNode(
            operation=FilterOperation.COMPOSITE_OVERLAY,
            params=OverlayParams(format="auto", enable=EnableWindow(start=overlay_start, end=context.duration)),
            input_labels=(base_label, DELAYED_GIF_LABEL),
            output_label=GIF_OVERLAID_LABEL,
        ),
    )
    return nodes, GIF_OVERLAID_LABEL


def hair_overlay_stage(context: StageContext, base_label: str) -> StageResult:
    """Scales and rotates the PNG, then puts it in the middle of the frame."""
    if not context.config.enable_hair_overlay:
        return (), base_label

    hair_ref = _require_role(context, InputRole.HAIR_OVERLAY)
    width, height = context.config.hair_size

    nodes = (
        FilterNode(
            operation=FilterOperation.SCALE,
            params=ScaleParams(width=width, height=height),
            input_labels=(hair_ref,),
            output_label=SCALED_HAIR_LABEL,
        ),
        FilterNode(
            operation=FilterOperation.ROTATE,
            params=RotateParams(angle_radians=context.config.rotation_radians),
            input_labels=(SCALED_HAIR_LABEL,),
            output_label=ROTATED_HAIR_LABEL,
        ),
        FilterNode(
            operation=FilterOperation.COMPOSITE_OVERLAY,
            params=OverlayParams(),
            input_labels=(base_label, ROTATED_HAIR_LABEL),
            output_label=FINAL_VIDEO_LABEL,
        ),
    )
    return nodes, FINAL_VIDEO_LABEL


def terminal_stage(context: StageContext, base_label: str) -> StageResult:
    """Renames the base label to the terminal video label when nothing produced it yet."""
    if base_label == FINAL_VIDEO_LABEL:
        return (), base_label

    node = FilterNode(
        operation=FilterOperation.PASSTHROUGH,
        params=PassthroughParams(),
        input_labels=(base_label,),
        output_label=FINAL_VIDEO_LABEL,
    )
    return (node,), FINAL_VIDEO_LABEL


# GIF goes before hair so the hair ends up on top
DEFAULT_STAGES: tuple[Stage, ...] = (
    speed_stage,
    subscribe_overlay_stage,
    hair_overlay_stage,
    terminal_stage,
)


def validate_duration(duration: object) -> float:
    """Returns the duration as float.

    Raises:
        InvalidDurationError: If the duration is missing, not a number, not finite or not positive.
    """
    if duration is None:
        raise InvalidDurationError("Source duration is missing")
    if isinstance(duration, bool) or not isinstance(duration, (int, float)):
        raise InvalidDurationError(f"Source duration must be a number, got {duration!r}")
    if not math.isfinite(duration) or duration <= 0:
        raise InvalidDurationError(f"Source duration must be a finite positive number, got {duration}")
    return float(duration)


class GraphCompiler:
    def __init__(self, stages: Sequence[Stage] | None = None):
        """Initializes compiler.

        Args:
            stages: Stages to fold, in emission order. Defaults to `DEFAULT_STAGES`.
        """
        self.stages = tuple(stages) if stages is not None else DEFAULT_STAGES

    def __repr__(self) -> str:
        return f"GraphCompiler(stages=[{', '.join(stage.__name__ for stage in self.stages)}])"

    def compile(self, config: OverlayConfig, plan: InputPlan, source_duration_seconds: float) -> FilterGraph:
        """Builds the filter graph for one request.

        Args:
            config: Overlay configuration.
            plan: Input plan built from the same configuration.
            source_duration_seconds: Probed duration of the main input.

        Returns:
            Validated filter graph ending in `[v]` and `[a]`.

        Raises:
            InvalidConfigurationError: If the configuration is invalid or doesn't match the plan.
            InvalidDurationError: If the duration is not a finite positive number.
        """
        config.validate()
        duration = validate_duration(source_duration_seconds)
        context = StageContext(config=config, plan=plan, duration=duration)

        nodes: list[FilterNode] = []
        base_label = plan.video_ref(InputRole.MAIN)
        for stage in self.stages:
            stage_nodes, base_label = stage(context, base_label)
            nodes.extend(stage_nodes)

        graph = FilterGraph(nodes=tuple(nodes)).validate()
        logger.debug(f"Compiled {len(graph)} filter nodes: {graph.to_filter_complex()}")
        return graph

    def __call__(self, config: OverlayConfig, plan: InputPlan, source_duration_seconds: float) -> FilterGraph:
        return self.compile(config, plan, source_duration_seconds)


_DEFAULT_COMPILER = GraphCompiler()


def compile_graph(config: OverlayConfig, plan: InputPlan, source_duration_seconds: float) -> FilterGraph:
    """Compiles the filter graph with the default stages. See `GraphCompiler.compile`."""
    return _DEFAULT_COMPILER.compile(config, plan, source_duration_seconds)

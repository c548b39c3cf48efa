from .assets import AssetResolver, has_alpha
from .compiler import GraphCompiler, compile_graph, compute_overlay_start
from .config import EngineSettings, OverlayConfig, clear_config_cache, load_engine_settings, load_overlay_config
from .engine import FFmpegEngine
from .exceptions import (
    AssetNotFoundError,
    EngineFailureError,
    GraphError,
    InvalidConfigurationError,
    InvalidDurationError,
    InvalidParameterError,
    ProbeError,
    VideoUniqueError,
)
from .graph import FilterGraph, FilterNode
from .params import (
    DelayParams,
    EnableWindow,
    FilterOperation,
    FilterParams,
    OverlayParams,
    PassthroughParams,
    RotateParams,
    ScaleParams,
    SpeedParams,
    TempoParams,
)
from .paths import generate_output_path
from .pipeline import ProcessResult, VideoUniquePipeline
from .plan import InputPlan, InputRole, build_input_plan
from .probe import MediaMetadata, probe_duration
from .progress import configure, set_progress, set_verbose

__all__ = [
    # Configuration
    "OverlayConfig",
    "EngineSettings",
    "load_overlay_config",
    "load_engine_settings",
    "clear_config_cache",
    # Input plan
    "InputRole",
    "InputPlan",
    "build_input_plan",
    # Graph
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
    "FilterNode",
    "FilterGraph",
    "GraphCompiler",
    "compile_graph",
    "compute_overlay_start",
    # Boundaries
    "MediaMetadata",
    "probe_duration",
    "AssetResolver",
    "has_alpha",
    "FFmpegEngine",
    "generate_output_path",
    "VideoUniquePipeline",
    "ProcessResult",
    # Progress
    "configure",
    "set_progress",
    "set_verbose",
    # Exceptions
    "VideoUniqueError",
    "InvalidConfigurationError",
    "AssetNotFoundError",
    "InvalidDurationError",
    "GraphError",
    "InvalidParameterError",
    "ProbeError",
    "EngineFailureError",
]

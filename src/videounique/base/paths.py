from __future__ import annotations

import uuid
from pathlib import Path

DEFAULT_OUTPUT_SUFFIX = "_final"


def generate_output_path(input_path: str | Path, suffix: str = DEFAULT_OUTPUT_SUFFIX) -> Path:
    """Output path next to the input: `clip.v2.mov` becomes `clip_final.mp4`."""
    input_path = Path(input_path)
    stem = input_path.name.split(".")[0]
    return input_path.parent / f"{stem}{suffix}.mp4"


def generate_random_name(suffix=".mp4"):
    """Generates random name."""
    return f"{uuid.uuid4()}{suffix}"

from __future__ import annotations

from dataclasses import dataclass

from tqdm import tqdm

from videounique.utils.logger import get_logger

__all__ = ["configure", "set_verbose", "set_progress", "get_config", "log", "progress_bar"]

_logger = get_logger(__name__)


@dataclass
class _BaseConfig:
    verbose: bool = False
    progress: bool = False


_CONFIG = _BaseConfig()


def configure(*, verbose: bool | None = None, progress: bool | None = None) -> None:
    """Configure base module logging and progress behavior."""
    if verbose is not None:
        _CONFIG.verbose = bool(verbose)
    if progress is not None:
        _CONFIG.progress = bool(progress)


def set_verbose(value: bool) -> None:
    """Enable or disable verbose logging in base operations."""
    _CONFIG.verbose = bool(value)


def set_progress(value: bool) -> None:
    """Enable or disable progress bars in base operations."""
    _CONFIG.progress = bool(value)


def get_config() -> _BaseConfig:
    """Return the current base configuration."""
    return _CONFIG


def log(message: str) -> None:
    """Log a message at info level if verbose mode is enabled, debug otherwise."""
    if _CONFIG.verbose:
        _logger.info(message)
    else:
        _logger.debug(message)


def progress_bar(*, total: float | None, desc: str | None = None, unit: str = "s") -> tqdm:
    """Return a tqdm bar, disabled unless progress bars are switched on."""
    bar_format = "{l_bar}{bar}| {n:.1f}/{total:.1f}{unit}" if total is not None else None
    return tqdm(
        total=total,
        desc=desc,
        unit=unit,
        disable=not _CONFIG.progress,
        bar_format=bar_format,
    )

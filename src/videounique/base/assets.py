from __future__ import annotations

from pathlib import Path

from PIL import Image, UnidentifiedImageError

from videounique.base.config import OverlayConfig
from videounique.base.exceptions import AssetNotFoundError, InvalidConfigurationError
from videounique.base.plan import InputPlan, InputRole
from videounique.utils.logger import get_logger

logger = get_logger(__name__)


def has_alpha(image_path: str | Path) -> bool:
    """Checks whether an image carries transparency (alpha channel or palette transparency)."""
    try:
        with Image.open(image_path) as image:
            return image.mode in ("RGBA", "LA", "PA") or "transparency" in image.info
    except (OSError, UnidentifiedImageError) as e:
        raise InvalidConfigurationError(f"Can't read overlay image {image_path}: {e}") from e


class AssetResolver:
    """Maps input roles to the files attached to the ffmpeg command."""

    def __init__(self, config: OverlayConfig, base_dir: str | Path | None = None):
        self.config = config
        self.base_dir = Path(base_dir) if base_dir is not None else None

    def _locate(self, path: Path) -> Path:
        if self.base_dir is not None and not path.is_absolute():
            return self.base_dir / path
        return path

    def overlay_path(self, role: InputRole) -> Path | None:
        if role is InputRole.GIF_OVERLAY:
            path = self.config.gif_overlay
        elif role is InputRole.HAIR_OVERLAY:
            path = self.config.hair_overlay
        else:
            raise ValueError(f"{role.value} is not an overlay role")
        return self._locate(path) if path is not None else None

    def resolve(self, plan: InputPlan, main: str | Path) -> dict[InputRole, Path]:
        """Resolves every role of the plan to an existing file.

        Args:
            plan: Input plan of the request.
            main: Source video for the `main` role.

        Returns:
            Files keyed by role, in input slot order.

        Raises:
            AssetNotFoundError: If an overlay in the plan has no file on disk.
        """
        assets: dict[InputRole, Path] = {InputRole.MAIN: Path(main)}
        for role in plan.roles:
            if role is InputRole.MAIN:
                continue
            path = self.overlay_path(role)
            if path is None or not path.is_file():
                raise AssetNotFoundError(role.value, path)
            assets[role] = path

        hair = assets.get(InputRole.HAIR_OVERLAY)
        if hair is not None and not has_alpha(hair):
            # rotate fills uncovered corners with `none`, which stays black without alpha
            logger.warning(f"Hair overlay {hair} has no alpha channel, rotated corners will be opaque")
        return assets

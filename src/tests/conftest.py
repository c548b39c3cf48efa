from pathlib import Path

import pytest
from PIL import Image

from videounique.base.config import OverlayConfig, clear_config_cache


@pytest.fixture(autouse=True)
def fresh_config_cache():
    clear_config_cache()
    yield
    clear_config_cache()


@pytest.fixture
def assets_dir(tmp_path: Path) -> Path:
    directory = tmp_path / "assets"
    directory.mkdir()

    frames = [Image.new("RGBA", (64, 64), (255, 0, 0, alpha)) for alpha in (0, 128, 255)]
    frames[0].save(directory / "overlay.gif", save_all=True, append_images=frames[1:], loop=0, duration=100)
    Image.new("RGBA", (500, 500), (0, 0, 0, 0)).save(directory / "hair.png")
    Image.new("RGB", (500, 500), (0, 0, 0)).save(directory / "opaque.png")
    return directory


@pytest.fixture
def overlay_config(assets_dir: Path) -> OverlayConfig:
    return OverlayConfig(gif_overlay=assets_dir / "overlay.gif", hair_overlay=assets_dir / "hair.png")


@pytest.fixture
def source_video(tmp_path: Path) -> Path:
    path = tmp_path / "videos" / "Y-2w8GnIqLc.mp4"
    path.parent.mkdir()
    path.write_bytes(b"not really a video")
    return path

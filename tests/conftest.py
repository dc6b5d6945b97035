"""
Pytest configuration and shared fixtures for the crop pipeline tests.
"""
import io

import pytest
from PIL import Image

from showcase_crop.models import Raster


def _pattern_image(width, height, mode="RGB"):
    """Image whose pixels encode their own coordinates, so moves are detectable."""
    data = bytes(
        v
        for y in range(height)
        for x in range(width)
        for v in (x % 256, y % 256, (x // 256 + y // 256 * 4 + 7 * x + 13 * y) % 256)
    )
    img = Image.frombytes("RGB", (width, height), data)
    return img if mode == "RGB" else img.convert(mode)


@pytest.fixture
def pattern_image():
    """Factory for coordinate-pattern Pillow images."""
    return _pattern_image


@pytest.fixture
def pattern_raster():
    """Factory for coordinate-pattern Rasters."""
    def make(width, height, mode="RGB"):
        return Raster(_pattern_image(width, height, mode))
    return make


@pytest.fixture
def png_bytes():
    """Factory returning PNG-encoded pattern images."""
    def make(width, height, mode="RGB"):
        buf = io.BytesIO()
        _pattern_image(width, height, mode).save(buf, "PNG")
        return buf.getvalue()
    return make


@pytest.fixture
def tmp_config(tmp_path, monkeypatch):
    """Point preset persistence at a throwaway directory."""
    config = tmp_path / "config"
    config.mkdir()
    monkeypatch.setattr("showcase_crop.presets.config_dir", lambda: config)
    return config

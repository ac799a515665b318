"""Test configuration and fixtures for cl_image_cache.

This module provides:
- Pytest configuration (markers, dependency checks)
- Function-scoped fixtures (source/cache dirs, synthetic images, resizer)
- A loguru sink for asserting on log output
"""

import json
from collections.abc import Callable, Iterator
from pathlib import Path

import pytest
from loguru import logger
from PIL import Image, ImageDraw

from cl_image_cache.backends.pillow_backend import PillowBackend
from cl_image_cache.common.config import ImageConfiguration
from cl_image_cache.resizer import ImageResizer

ImageFactory = Callable[..., Path]


def _vips_available() -> bool:
    try:
        import pyvips  # type: ignore

        _ = pyvips.version(0)
    except Exception:
        return False
    return True


VIPS_AVAILABLE = _vips_available()


# ============================================================================
# Pytest Configuration
# ============================================================================


def pytest_runtest_setup(item):
    """Skip tests needing libvips when it cannot be loaded."""
    if item.get_closest_marker("requires_vips") and not VIPS_AVAILABLE:
        pytest.skip("libvips not loadable. Install with: pip install 'pyvips[binary]'")


# ============================================================================
# Function-Scoped Fixtures (Run Per Test)
# ============================================================================


@pytest.fixture
def source_dir(tmp_path: Path) -> Path:
    """Provide an empty source root."""
    path = tmp_path / "data" / "images"
    path.mkdir(parents=True)
    return path


@pytest.fixture
def cache_dir(tmp_path: Path) -> Path:
    """Cache root path; not created up front."""
    return tmp_path / "cache" / "images"


@pytest.fixture
def make_image(source_dir: Path) -> ImageFactory:
    """Factory writing a synthetic image (and optional sidecar) under the source root.

    The image is split into four coloured quadrants so crops can be
    checked by sampling pixels:
    top-left red, top-right green, bottom-left blue, bottom-right yellow.
    """

    def factory(
        relative_path: str,
        size: tuple[int, int] = (800, 600),
        focal: dict[str, int] | None = None,
        mode: str = "RGB",
    ) -> Path:
        path = source_dir / relative_path
        path.parent.mkdir(parents=True, exist_ok=True)

        width, height = size
        img = Image.new(mode, size, color=(255, 255, 255))
        draw = ImageDraw.Draw(img)
        half_w, half_h = width // 2, height // 2
        draw.rectangle([0, 0, half_w - 1, half_h - 1], fill=(255, 0, 0))
        draw.rectangle([half_w, 0, width - 1, half_h - 1], fill=(0, 255, 0))
        draw.rectangle([0, half_h, half_w - 1, height - 1], fill=(0, 0, 255))
        draw.rectangle([half_w, half_h, width - 1, height - 1], fill=(255, 255, 0))
        img.save(path)

        if focal is not None:
            path.with_suffix(".json").write_text(json.dumps({"focal": focal}), encoding="utf-8")
        return path

    return factory


@pytest.fixture
def configuration(tmp_path: Path, source_dir: Path, cache_dir: Path) -> ImageConfiguration:
    """Configuration using the default path templates."""
    _ = source_dir
    _ = cache_dir
    return ImageConfiguration(
        path_variables={
            "data": str(tmp_path / "data"),
            "cache": str(tmp_path / "cache"),
        },
    )


@pytest.fixture
def resizer(configuration: ImageConfiguration) -> ImageResizer:
    """ImageResizer backed by Pillow."""
    return ImageResizer(configuration, backend=PillowBackend())


@pytest.fixture
def log_messages() -> Iterator[list[str]]:
    """Collect loguru records as ``"LEVEL message"`` strings."""
    messages: list[str] = []
    handler_id = logger.add(
        lambda message: messages.append(
            f"{message.record['level'].name} {message.record['message']}"
        ),
        level="DEBUG",
    )
    yield messages
    logger.remove(handler_id)

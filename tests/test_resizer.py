"""Integration tests for ImageResizer.resolve.

Covers the full request sequence: source lookup, pass-through rules,
cache hits, rendering, single-flight collapsing and fallbacks.
"""

import asyncio
import json
import time
from collections.abc import Callable
from pathlib import Path
from typing import Any

from typing_extensions import override

import aiofiles.os
import pytest
from PIL import Image

from cl_image_cache.backends.pillow_backend import PillowBackend
from cl_image_cache.common.config import ImageConfiguration
from cl_image_cache.common.errors import EncodeError, MalformedSidecarError
from cl_image_cache.common.schemas import ForcedMode
from cl_image_cache.resizer import ImageResizer, coerce_dimension

ImageFactory = Callable[..., Path]


class CountingBackend(PillowBackend):
    """Pillow backend that counts encodes and can be made slow or failing."""

    def __init__(self, delay: float = 0.0, fail_encode: bool = False):
        super().__init__()
        self.delay: float = delay
        self.fail_encode: bool = fail_encode
        self.encodes: int = 0

    @override
    def encode(self, handle: Any, destination: str | Path) -> None:
        self.encodes += 1
        if self.delay:
            # Leave a truncated file in place while the slow write is running
            Path(destination).write_bytes(b"partial")
            time.sleep(self.delay)
        if self.fail_encode:
            # Simulate a write that dies halfway
            Path(destination).write_bytes(b"partial")
            raise EncodeError(destination, "disk full")
        super().encode(handle, destination)


def cache_files(cache_dir: Path) -> list[Path]:
    if not cache_dir.exists():
        return []
    return sorted(p for p in cache_dir.rglob("*") if p.is_file())


# ============================================================================
# DIMENSION PARSING TESTS
# ============================================================================


@pytest.mark.parametrize(
    "value,expected",
    [
        (None, 0),
        (0, 0),
        (120, 120),
        ("120", 120),
        (" 64 ", 64),
        ("120px", 120),
        ("+80", 80),
        (12.7, 12),
        ("12.7", 12),
        ("abc", 0),
        ("", 0),
        ("-5", 0),
        (-5, 0),
        (True, 0),
    ],
)
def test_coerce_dimension(value: object, expected: int):
    """Leading digits count, like parseInt; invalid, negative or missing become 0."""
    assert coerce_dimension(value) == expected  # pyright: ignore[reportArgumentType]


# ============================================================================
# PASS-THROUGH TESTS
# ============================================================================


@pytest.mark.asyncio
async def test_missing_source_returns_none(resizer: ImageResizer, log_messages: list[str]):
    assert await resizer.resolve("nope.png", 100, 100, "1") is None
    assert "WARNING Image nope.png does not exist." in log_messages


@pytest.mark.asyncio
async def test_non_resizable_source_is_served_unchanged(
    resizer: ImageResizer, source_dir: Path, cache_dir: Path
):
    svg = source_dir / "logo.svg"
    svg.write_text("<svg xmlns='http://www.w3.org/2000/svg'/>", encoding="utf-8")

    assert await resizer.resolve("logo.svg", 100, 100, "1") == svg.resolve()
    assert cache_files(cache_dir) == []


@pytest.mark.asyncio
async def test_unsized_unforced_request_serves_source(
    resizer: ImageResizer, make_image: ImageFactory, cache_dir: Path
):
    path = make_image("a.png", size=(64, 48))

    assert await resizer.resolve("a.png") == path.resolve()
    assert await resizer.resolve("a.png", "abc", None, "0") == path.resolve()
    assert cache_files(cache_dir) == []


# ============================================================================
# RENDER TESTS
# ============================================================================


@pytest.mark.asyncio
async def test_fit_resize_renders_into_cache(
    resizer: ImageResizer, make_image: ImageFactory, cache_dir: Path
):
    _ = make_image("teasers/wide.png", size=(1280, 720))

    result = await resizer.resolve("teasers/wide.png", 100, 100)

    assert result is not None
    assert result.parent == cache_dir.resolve()
    assert result.name.startswith("100x100-0-")
    with Image.open(result) as img:
        assert img.size == (100, 56)


@pytest.mark.asyncio
async def test_width_only_request(resizer: ImageResizer, make_image: ImageFactory):
    _ = make_image("wide.jpg", size=(1280, 720))

    result = await resizer.resolve("wide.jpg", "640", "")

    assert result is not None
    with Image.open(result) as img:
        assert img.format == "JPEG"
        assert img.size == (640, 360)


@pytest.mark.asyncio
async def test_forced_crop_has_exact_size(resizer: ImageResizer, make_image: ImageFactory):
    _ = make_image("portrait.png", size=(900, 1000))

    result = await resizer.resolve("portrait.png", 100, 200, "1")

    assert result is not None
    with Image.open(result) as img:
        assert img.size == (100, 200)


@pytest.mark.asyncio
async def test_unsized_forced_request_renders_native_size(
    resizer: ImageResizer, make_image: ImageFactory
):
    path = make_image("a.png", size=(64, 48))

    result = await resizer.resolve("a.png", 0, 0, "tl")

    assert result is not None and result != path.resolve()
    assert result.name.startswith("0x0-tl-")
    with Image.open(result) as img:
        assert img.size == (64, 48)


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "forced,pixel,expected",
    [
        ("tl", (3, 3), (255, 0, 0)),
        ("tr", (16, 3), (0, 255, 0)),
        ("bl", (3, 16), (0, 0, 255)),
        ("br", (16, 16), (255, 255, 0)),
    ],
)
async def test_corner_crops_keep_their_corner(
    resizer: ImageResizer,
    make_image: ImageFactory,
    forced: str,
    pixel: tuple[int, int],
    expected: tuple[int, int, int],
):
    """Square crops of tall and wide quadrant images show the anchored corner."""
    _ = make_image("tall.png", size=(400, 1000))
    _ = make_image("wide.png", size=(1000, 400))

    for name in ("tall.png", "wide.png"):
        result = await resizer.resolve(name, 20, 20, forced)

        assert result is not None
        with Image.open(result) as img:
            assert img.convert("RGB").getpixel(pixel) == expected, name


@pytest.mark.asyncio
async def test_focal_point_steers_center_fit(resizer: ImageResizer, make_image: ImageFactory):
    """A focal region in the bottom-right quadrant pulls the crop there."""
    _ = make_image(
        "focal.png",
        size=(1000, 400),
        focal={"x": 900, "y": 300, "width": 50, "height": 50},
    )

    result = await resizer.resolve("focal.png", 20, 20, ForcedMode.CENTER_FIT)

    assert result is not None
    with Image.open(result) as img:
        assert img.convert("RGB").getpixel((15, 15)) == (255, 255, 0)


@pytest.mark.asyncio
async def test_wildcard_folder_is_part_of_the_cache_key(
    configuration: ImageConfiguration, make_image: ImageFactory
):
    """Equal basenames under different folders never share a cache file."""
    resizer = ImageResizer(configuration.model_copy(update={"cache_key_policy": "hash"}))
    _ = make_image("news/hero.png", size=(100, 100))
    _ = make_image("events/hero.png", size=(200, 100))

    news = await resizer.resolve("news/*.png", 10, 10, "1")
    events = await resizer.resolve("events/*.png", 10, 10, "1")

    assert news is not None and events is not None
    assert news != events


# ============================================================================
# CACHE TESTS
# ============================================================================


@pytest.mark.asyncio
async def test_second_request_is_a_cache_hit(
    configuration: ImageConfiguration, make_image: ImageFactory, log_messages: list[str]
):
    backend = CountingBackend()
    resizer = ImageResizer(configuration, backend=backend)
    _ = make_image("a.png", size=(200, 100))

    first = await resizer.resolve("a.png", 50, 50, "1")
    second = await resizer.resolve("a.png", 50, 50, "1")

    assert first == second
    assert backend.encodes == 1
    assert any("cache hit" in message for message in log_messages)


@pytest.mark.asyncio
async def test_disabled_cache_renders_every_time(
    configuration: ImageConfiguration, make_image: ImageFactory
):
    backend = CountingBackend()
    resizer = ImageResizer(configuration.model_copy(update={"use_cache": False}), backend=backend)
    _ = make_image("a.png", size=(200, 100))

    first = await resizer.resolve("a.png", 50, 50, "1")
    second = await resizer.resolve("a.png", 50, 50, "1")

    assert first == second
    assert backend.encodes == 2


@pytest.mark.asyncio
async def test_concurrent_identical_requests_render_once(
    configuration: ImageConfiguration, make_image: ImageFactory
):
    backend = CountingBackend(delay=0.2)
    resizer = ImageResizer(configuration, backend=backend)
    _ = make_image("a.png", size=(400, 300))

    results = await asyncio.gather(*(resizer.resolve("a.png", 40, 40, "1") for _ in range(8)))

    assert len(set(results)) == 1
    assert backend.encodes == 1


@pytest.mark.asyncio
async def test_concurrent_distinct_requests_render_separately(
    configuration: ImageConfiguration, make_image: ImageFactory
):
    backend = CountingBackend(delay=0.05)
    resizer = ImageResizer(configuration, backend=backend)
    _ = make_image("a.png", size=(400, 300))

    results = await asyncio.gather(
        resizer.resolve("a.png", 40, 40, "tl"),
        resizer.resolve("a.png", 40, 40, "br"),
    )

    assert results[0] != results[1]
    assert backend.encodes == 2


@pytest.mark.asyncio
async def test_half_written_render_is_never_a_cache_hit(
    configuration: ImageConfiguration,
    make_image: ImageFactory,
    cache_dir: Path,
    monkeypatch: pytest.MonkeyPatch,
):
    """A request that checks the cache while a render is writing waits for the real file."""
    backend = CountingBackend(delay=0.6)
    resizer = ImageResizer(configuration, backend=backend)
    _ = make_image("a.png", size=(200, 100))
    cache_root = str(cache_dir.resolve())
    real_exists = aiofiles.os.path.exists
    delayed = False

    async def slow_exists(path: str | Path, *args: Any, **kwargs: Any) -> bool:
        nonlocal delayed
        if str(path).startswith(cache_root) and not delayed:
            delayed = True
            await asyncio.sleep(0.3)
        return await real_exists(path, *args, **kwargs)

    monkeypatch.setattr(aiofiles.os.path, "exists", slow_exists)

    first = asyncio.create_task(resizer.resolve("a.png", 50, 50, "1"))
    await asyncio.sleep(0.1)
    second = asyncio.create_task(resizer.resolve("a.png", 50, 50, "1"))
    results = await asyncio.gather(first, second)

    assert results[0] == results[1]
    assert results[0] is not None
    assert results[0].read_bytes() != b"partial"
    with Image.open(results[0]) as img:
        assert img.size == (50, 50)
    assert backend.encodes == 1


@pytest.mark.asyncio
async def test_render_leaves_only_the_cache_file(
    resizer: ImageResizer, make_image: ImageFactory, cache_dir: Path
):
    """Staging files are renamed into place, nothing else stays behind."""
    _ = make_image("a.png", size=(200, 100))

    result = await resizer.resolve("a.png", 50, 50, "1")

    assert cache_files(cache_dir.resolve()) == [result]


# ============================================================================
# FAILURE TESTS
# ============================================================================


@pytest.mark.asyncio
async def test_corrupt_source_falls_back_to_original(
    resizer: ImageResizer, source_dir: Path, cache_dir: Path, log_messages: list[str]
):
    broken = source_dir / "broken.png"
    broken.write_bytes(b"not an image at all")

    assert await resizer.resolve("broken.png", 100, 100, "1") == broken.resolve()
    assert cache_files(cache_dir) == []
    assert any(m.startswith("WARNING Serving original of broken.png") for m in log_messages)


@pytest.mark.asyncio
async def test_encode_failure_leaves_no_partial_file(
    configuration: ImageConfiguration, make_image: ImageFactory, cache_dir: Path
):
    path = make_image("a.png", size=(200, 100))
    resizer = ImageResizer(configuration, backend=CountingBackend(fail_encode=True))

    assert await resizer.resolve("a.png", 50, 50) == path.resolve()
    assert cache_files(cache_dir) == []


@pytest.mark.asyncio
async def test_malformed_sidecar_propagates(
    resizer: ImageResizer, make_image: ImageFactory, source_dir: Path
):
    _ = make_image("a.png", size=(200, 100))
    (source_dir / "a.json").write_text(json.dumps({"focal": "middle"}), encoding="utf-8")

    with pytest.raises(MalformedSidecarError):
        _ = await resizer.resolve("a.png", 50, 50, "1")

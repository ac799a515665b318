"""ImageResizer - public entry point of the resize/crop/cache pipeline."""

import asyncio
import re
from pathlib import Path
from typing import Any
from uuid import uuid4

import aiofiles.os
from loguru import logger

from .algo.crop_area import calculate_crop_area
from .backends import get_backend
from .backends.base import RenderBackend
from .cache_key import CacheKeyResolver
from .common.config import ImageConfiguration
from .common.errors import RenderError
from .common.schemas import CropArea, ForcedMode
from .common.single_flight import SingleFlight
from .locator import ImageLocator
from .metadata import ImageMetadataReader
from .utils.profiling import timed


_LEADING_INT = re.compile(r"\s*\+?(\d+)")


def coerce_dimension(value: int | float | str | None) -> int:
    """Parse a requested dimension from its leading digits.

    ``"120px"`` -> 120, ``12.7`` -> 12; missing, invalid or negative -> 0.
    """
    if value is None or isinstance(value, bool):
        return 0
    if isinstance(value, int):
        return max(0, value)
    match = _LEADING_INT.match(str(value))
    return int(match.group(1)) if match else 0


class ImageResizer:
    """Resolve a resize request to a file that can be served.

    Sequence per request:
    1. resolve the (glob) name to a source file  -> None when nothing matches
    2. non-resizable extension or a 0x0 unforced request -> source file
    3. derive the cache file; an existing one is returned as is
    4. otherwise render once (concurrent identical requests share the render)
       and return the cache file, or the source file if rendering failed

    Example:
        resizer = ImageResizer(ImageConfiguration(source_path="/srv/images",
                                                  cache_path="/var/cache/images"))
        path = await resizer.resolve("teasers/*.jpg", 400, 300, "1")
    """

    def __init__(
        self,
        configuration: ImageConfiguration,
        backend: RenderBackend | None = None,
    ):
        """Initialize resizer.

        Args:
            configuration: Shared configuration value
            backend: Optional backend instance. If None, the backend named
                     by ``configuration.backend`` is created.

        Raises:
            ConfigurationError: If paths or the backend are misconfigured
        """
        self.configuration: ImageConfiguration = configuration
        self.backend: RenderBackend = backend if backend is not None else get_backend(configuration)
        self.locator: ImageLocator = ImageLocator(configuration)
        self.cache_keys: CacheKeyResolver = CacheKeyResolver(configuration)
        self.metadata: ImageMetadataReader = ImageMetadataReader(self.backend)
        self._flights: SingleFlight[Path, Path] = SingleFlight()

    @property
    def use_cache(self) -> bool:
        return self.configuration.use_cache

    async def resolve(
        self,
        name: str,
        width: int | float | str | None = 0,
        height: int | float | str | None = 0,
        forced: str | int | bool | ForcedMode | None = ForcedMode.NONE,
        *,
        deterministic: bool = False,
    ) -> Path | None:
        """
        Return the path to serve for a resize request.

        Args:
            name: Image name relative to the source root, glob allowed
            width: Requested width, 0 = unconstrained
            height: Requested height, 0 = unconstrained
            forced: Crop mode token (``0``, ``1``, ``tl``, ``tr``, ``bl``, ``br``)
            deterministic: Pin wildcard names to their first match

        Returns:
            The cache file, the unmodified source file, or None if no
            source matches ``name``

        Raises:
            MalformedSidecarError: If the image's focal-point sidecar is corrupt
        """
        w = coerce_dimension(width)
        h = coerce_dimension(height)
        f = ForcedMode.parse(forced)

        source = await self.locator.resolve_source(name, deterministic)
        if source is None:
            logger.warning(f"Image {name} does not exist.")
            return None

        if not self.configuration.is_resizable(source):
            return source
        if w == 0 and h == 0 and not f.is_forced:
            return source

        relative_name = self.locator.relative_path(name, source)
        cache_file = self.cache_keys.resolve_cache_file(relative_name, w, h, f)

        # Requests for a key that is rendering join that render
        if (
            self.use_cache
            and cache_file not in self._flights
            and await aiofiles.os.path.exists(cache_file)
        ):
            logger.debug(f"[ImageResizer] cache hit {cache_file}")
            return cache_file

        logger.debug(f"[ImageResizer] cache miss {cache_file}")
        return await self._flights.run(
            cache_file,
            lambda: self._render(name, source, cache_file, w, h, f),
        )

    @timed("ImageResizer.render")
    async def _render(
        self,
        name: str,
        source: Path,
        cache_file: Path,
        width: int,
        height: int,
        forced: ForcedMode,
    ) -> Path:
        request = f"{name} ({width}x{height}, forced={forced.value})"

        try:
            await aiofiles.os.makedirs(cache_file.parent, exist_ok=True)
        except OSError as exc:
            logger.warning(f"Serving original of {request}: cannot create {cache_file.parent}: {exc}")
            return source

        # The cache name only ever holds a complete file
        staging_file = cache_file.with_name(f".{cache_file.stem}.{uuid4().hex}{cache_file.suffix}")
        try:
            settings = await self.metadata.read_settings(source)
            area: CropArea | None = None
            if forced.is_forced and width > 0 and height > 0:
                area = calculate_crop_area(width, height, forced, settings)

            handle = await asyncio.to_thread(self.backend.decode, source)
            handle = await asyncio.to_thread(self._transform, handle, width, height, area)
            await asyncio.to_thread(self.backend.encode, handle, staging_file)
        except RenderError as exc:
            logger.warning(f"Serving original of {request}: {exc}")
            await self._discard(staging_file)
            return source

        try:
            await aiofiles.os.replace(staging_file, cache_file)
        except OSError as exc:
            logger.warning(f"Serving original of {request}: cannot move into {cache_file}: {exc}")
            await self._discard(staging_file)
            return source

        logger.info(f"[ImageResizer] rendered {request} -> {cache_file}")
        return cache_file

    def _transform(self, handle: Any, width: int, height: int, area: CropArea | None) -> Any:
        if area is not None:
            return self.backend.crop_resize(handle, area, width, height)
        return self.backend.fit_resize(
            handle,
            width,
            height,
            letterbox=self.configuration.letterbox,
            background=self.configuration.background,
        )

    async def _discard(self, path: Path) -> None:
        """Remove a partially written staging file."""
        try:
            await aiofiles.os.remove(path)
        except FileNotFoundError:
            pass
        except OSError as exc:
            logger.warning(f"Could not remove incomplete file {path}: {exc}")

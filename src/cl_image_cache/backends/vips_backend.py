"""libvips (pyvips) implementation of RenderBackend."""

from pathlib import Path
from typing import Any

from typing_extensions import override

from loguru import logger

from ..algo.fit import letterbox_offset
from ..common.errors import ConfigurationError, DecodeError, EncodeError
from ..common.schemas import CropArea
from .base import OPAQUE_EXTENSIONS, Background, RenderBackend, fit_box, require_file

_pyvips: Any | None = None


def _get_pyvips_module() -> Any:
    global _pyvips
    if _pyvips is None:
        import pyvips  # type: ignore

        _pyvips = pyvips
    return _pyvips


class VipsBackend(RenderBackend):
    """High-throughput backend built on libvips.

    ``pyvips`` is imported when the backend is constructed; a missing
    libvips is a configuration problem and fails immediately.
    """

    def __init__(self, disable_operation_cache: bool = True):
        try:
            self._vips: Any = _get_pyvips_module()
        except (ImportError, OSError) as exc:
            raise ConfigurationError(f"libvips backend unavailable: {exc}") from exc

        if disable_operation_cache:
            # Avoid memory growth across many distinct source files
            self._vips.cache_set_max(0)
            self._vips.cache_set_max_mem(0)
            self._vips.cache_set_max_files(0)
        logger.debug(f"[VipsBackend] libvips {self._vips.version(0)}.{self._vips.version(1)}")

    @property
    @override
    def name(self) -> str:
        return "vips"

    @property
    def _error(self) -> type[Exception]:
        return self._vips.Error

    def _open(self, path: str | Path) -> Any:
        file_path = require_file(path)
        try:
            return self._vips.Image.new_from_file(str(file_path))
        except self._error as exc:
            raise DecodeError(file_path, str(exc)) from exc

    @override
    def probe(self, path: str | Path) -> tuple[int, int]:
        image = self._open(path)
        return image.width, image.height

    @override
    def decode(self, path: str | Path) -> Any:
        return self._open(path)

    @override
    def crop_resize(self, handle: Any, area: CropArea, width: int, height: int) -> Any:
        if area.width <= 0 or area.height <= 0:
            raise EncodeError("<vips image>", f"empty crop area {area}")
        try:
            cropped = handle.crop(area.x, area.y, area.width, area.height)
            return cropped.thumbnail_image(width, height=height, size="force")
        except self._error as exc:
            raise EncodeError("<vips image>", str(exc)) from exc

    @override
    def fit_resize(
        self,
        handle: Any,
        width: int,
        height: int,
        *,
        letterbox: bool = False,
        background: Background = (0, 0, 0, 0),
    ) -> Any:
        out_width, out_height = fit_box("<vips image>", (handle.width, handle.height), width, height)
        try:
            resized = handle.thumbnail_image(out_width, height=out_height, size="force")
            if not letterbox or (width <= 0 or height <= 0):
                return resized
            if (resized.width, resized.height) == (width, height):
                return resized

            if resized.interpretation != "srgb":
                resized = resized.colourspace("srgb")
            if not resized.hasalpha():
                resized = resized.bandjoin(255)
            left, top = letterbox_offset((resized.width, resized.height), (width, height))
            return resized.embed(
                left, top, width, height, extend="background", background=list(background)
            )
        except self._error as exc:
            raise EncodeError("<vips image>", str(exc)) from exc

    @override
    def encode(self, handle: Any, destination: str | Path) -> None:
        output_path = Path(destination)
        image = handle
        try:
            if output_path.suffix.lower() in OPAQUE_EXTENSIONS and image.hasalpha():
                image = image.flatten()
            image.write_to_file(str(output_path))
        except self._error as exc:
            raise EncodeError(output_path, str(exc)) from exc

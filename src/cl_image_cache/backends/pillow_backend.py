"""Pillow implementation of RenderBackend."""

from pathlib import Path

from typing_extensions import override

from PIL import Image

from ..algo.fit import letterbox_offset
from ..common.errors import DecodeError, EncodeError
from ..common.schemas import CropArea
from .base import OPAQUE_EXTENSIONS, Background, RenderBackend, fit_box, require_file

_DECODE_ERRORS = (OSError, ValueError, Image.DecompressionBombError)


def _label(image: Image.Image) -> str:
    return getattr(image, "filename", "") or "<image>"


class PillowBackend(RenderBackend):
    """General raster backend built on Pillow."""

    def __init__(self, resample: Image.Resampling = Image.Resampling.LANCZOS):
        self.resample: Image.Resampling = resample

    @property
    @override
    def name(self) -> str:
        return "pillow"

    @override
    def probe(self, path: str | Path) -> tuple[int, int]:
        file_path = require_file(path)
        try:
            with Image.open(file_path) as img:
                return img.size
        except _DECODE_ERRORS as exc:
            raise DecodeError(file_path, str(exc)) from exc

    @override
    def decode(self, path: str | Path) -> Image.Image:
        file_path = require_file(path)
        try:
            img = Image.open(file_path)
            img.load()
        except _DECODE_ERRORS as exc:
            raise DecodeError(file_path, str(exc)) from exc

        # Palette images resample badly; work in RGB(A)
        if img.mode == "P":
            return img.convert("RGBA" if "transparency" in img.info else "RGB")
        return img

    @override
    def crop_resize(self, handle: Image.Image, area: CropArea, width: int, height: int) -> Image.Image:
        if area.width <= 0 or area.height <= 0:
            raise EncodeError(_label(handle), f"empty crop area {area}")
        if area.x < 0 or area.y < 0 or area.right > handle.width or area.bottom > handle.height:
            raise EncodeError(
                _label(handle),
                f"crop area {area} exceeds image bounds {handle.width}x{handle.height}",
            )
        try:
            return handle.crop(area.as_box()).resize((width, height), self.resample)
        except (OSError, ValueError) as exc:
            raise EncodeError(_label(handle), str(exc)) from exc

    @override
    def fit_resize(
        self,
        handle: Image.Image,
        width: int,
        height: int,
        *,
        letterbox: bool = False,
        background: Background = (0, 0, 0, 0),
    ) -> Image.Image:
        out_width, out_height = fit_box(_label(handle), handle.size, width, height)
        try:
            resized = handle.resize((out_width, out_height), self.resample)
            if not letterbox or (width <= 0 or height <= 0):
                return resized
            if (out_width, out_height) == (width, height):
                return resized

            canvas = Image.new("RGBA", (width, height), background)
            rgba = resized.convert("RGBA")
            canvas.paste(rgba, letterbox_offset(rgba.size, canvas.size), rgba)
            return canvas
        except (OSError, ValueError) as exc:
            raise EncodeError(_label(handle), str(exc)) from exc

    @override
    def encode(self, handle: Image.Image, destination: str | Path) -> None:
        output_path = Path(destination)
        img = handle

        # JPEG does not support alpha channel
        if output_path.suffix.lower() in OPAQUE_EXTENSIONS and img.mode in ("RGBA", "LA", "P"):
            img = img.convert("RGB")

        save_kwargs: dict[str, object] = {}
        if output_path.suffix.lower() == ".png":
            save_kwargs["optimize"] = True

        try:
            img.save(output_path, **save_kwargs)
        except (OSError, ValueError, KeyError) as exc:
            raise EncodeError(output_path, str(exc)) from exc

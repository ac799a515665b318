"""ImageMetadataReader - native dimensions plus optional focal-point sidecar."""

import asyncio
import json
from pathlib import Path

import aiofiles
import aiofiles.os
from loguru import logger
from pydantic import ValidationError

from .backends.base import RenderBackend
from .common.errors import MalformedSidecarError
from .common.schemas import FocalPoint, ImageSettings


def sidecar_path(image_path: str | Path) -> Path:
    """``teaser.jpg`` -> ``teaser.json`` next to the image."""
    return Path(image_path).with_suffix(".json")


class ImageMetadataReader:
    """Read ImageSettings for a source image.

    Dimensions come from the backend probe; a decode failure propagates as
    DecodeError. A sidecar ``<image>.json`` of the form
    ``{"focal": {"x": .., "y": .., "width": .., "height": ..}}`` supplies
    the focal point verbatim. Without one the focal point is the whole
    image. A sidecar that exists but cannot be parsed raises
    MalformedSidecarError.
    """

    def __init__(self, backend: RenderBackend):
        self.backend: RenderBackend = backend

    async def read_focal(self, image_path: str | Path) -> FocalPoint | None:
        sidecar = sidecar_path(image_path)
        if not await aiofiles.os.path.exists(sidecar):
            return None

        try:
            async with aiofiles.open(sidecar, "r", encoding="utf-8") as f:
                data = json.loads(await f.read())
        except UnicodeDecodeError as exc:
            raise MalformedSidecarError(sidecar, f"not valid UTF-8: {exc}") from exc
        except json.JSONDecodeError as exc:
            raise MalformedSidecarError(sidecar, f"invalid JSON: {exc}") from exc
        except OSError as exc:
            raise MalformedSidecarError(sidecar, f"cannot be read: {exc}") from exc
        if not isinstance(data, dict):
            raise MalformedSidecarError(sidecar, "top-level value must be an object")

        focal = data.get("focal")
        if focal is None:
            return None
        try:
            return FocalPoint.model_validate(focal)
        except ValidationError as exc:
            raise MalformedSidecarError(sidecar, f"invalid focal rectangle: {exc}") from exc

    async def read_settings(self, image_path: str | Path) -> ImageSettings:
        """
        Return dimensions and focal point of a source image.

        Raises:
            DecodeError: If the backend cannot probe the image
            MalformedSidecarError: If the sidecar cannot be parsed
        """
        width, height = await asyncio.to_thread(self.backend.probe, image_path)
        focal = await self.read_focal(image_path)
        if focal is not None:
            logger.debug(f"[ImageMetadata] focal {focal} for {image_path}")
        return ImageSettings(width=width, height=height, focal=focal)

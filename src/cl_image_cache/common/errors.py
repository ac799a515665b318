"""Error taxonomy for the resize/cache pipeline."""

from pathlib import Path


class ImageCacheError(Exception):
    """Base class for all cl_image_cache errors."""


class ConfigurationError(ImageCacheError):
    """Required configuration is missing or invalid."""


class MalformedSidecarError(ImageCacheError):
    """A focal-point sidecar exists but cannot be parsed."""

    def __init__(self, sidecar: str | Path, reason: str):
        self.sidecar: Path = Path(sidecar)
        self.reason: str = reason
        super().__init__(f"Malformed image sidecar '{self.sidecar}': {reason}")


class RenderError(ImageCacheError):
    """A backend stage failed; the caller falls back to the source image."""

    def __init__(self, path: str | Path, reason: str):
        self.path: Path = Path(path)
        self.reason: str = reason
        super().__init__(f"{self.__class__.__name__} for '{self.path}': {reason}")


class DecodeError(RenderError):
    """The backend cannot open, parse or probe an image."""


class EncodeError(RenderError):
    """The backend cannot crop, resize or write an image."""

"""cl_image_cache - on-demand image resizing with a content-addressed disk cache."""

from .algo import calculate_crop_area, fit_dimensions
from .backends import PillowBackend, RenderBackend, VipsBackend, get_backend
from .cache_key import CacheKeyResolver
from .common.config import ImageConfiguration
from .common.errors import (
    ConfigurationError,
    DecodeError,
    EncodeError,
    ImageCacheError,
    MalformedSidecarError,
    RenderError,
)
from .common.schemas import CropArea, FocalPoint, ForcedMode, ImageSettings
from .locator import ImageLocator
from .metadata import ImageMetadataReader
from .resizer import ImageResizer
from .routes import create_router
from .url_builder import ImageUrlBuilder

__version__ = "0.1.0"

__all__ = [
    "ImageResizer",
    "ImageConfiguration",
    "ImageLocator",
    "CacheKeyResolver",
    "ImageMetadataReader",
    "ImageUrlBuilder",
    "RenderBackend",
    "PillowBackend",
    "VipsBackend",
    "get_backend",
    "calculate_crop_area",
    "fit_dimensions",
    "ForcedMode",
    "FocalPoint",
    "ImageSettings",
    "CropArea",
    "ImageCacheError",
    "ConfigurationError",
    "MalformedSidecarError",
    "RenderError",
    "DecodeError",
    "EncodeError",
    "create_router",
    "__version__",
]

"""Common module - configuration, schemas, errors and concurrency helpers."""

from .config import ImageConfiguration
from .errors import (
    ConfigurationError,
    DecodeError,
    EncodeError,
    ImageCacheError,
    MalformedSidecarError,
    RenderError,
)
from .schemas import CropArea, FocalPoint, ForcedMode, ImageSettings
from .single_flight import SingleFlight

__all__ = [
    "ImageConfiguration",
    "ImageCacheError",
    "ConfigurationError",
    "MalformedSidecarError",
    "RenderError",
    "DecodeError",
    "EncodeError",
    "ForcedMode",
    "FocalPoint",
    "ImageSettings",
    "CropArea",
    "SingleFlight",
]

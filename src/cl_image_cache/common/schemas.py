"""Pydantic models for image geometry and request parameters."""

from enum import StrEnum
from typing import ClassVar

from pydantic import BaseModel, ConfigDict, Field, model_validator

# ─────────────────────────────────────────────────────────────
# Forced (crop anchoring) mode
# ─────────────────────────────────────────────────────────────


class ForcedMode(StrEnum):
    """Crop anchoring strategy. Values are the wire tokens."""

    NONE = "0"
    CENTER_FIT = "1"
    TOP_LEFT = "tl"
    TOP_RIGHT = "tr"
    BOTTOM_LEFT = "bl"
    BOTTOM_RIGHT = "br"

    @classmethod
    def parse(cls, token: "str | int | bool | ForcedMode | None") -> "ForcedMode":
        """Normalize a transport token; unknown values map to NONE."""
        if isinstance(token, ForcedMode):
            return token
        if token is None:
            return ForcedMode.NONE
        if isinstance(token, bool):
            return ForcedMode.CENTER_FIT if token else ForcedMode.NONE
        if isinstance(token, int):
            return ForcedMode.CENTER_FIT if token == 1 else ForcedMode.NONE

        value = str(token).strip().lower()
        if value in ("none", "false", ""):
            return ForcedMode.NONE
        if value in ("true", "centerfit", "center"):
            return ForcedMode.CENTER_FIT
        try:
            return cls(value)
        except ValueError:
            return ForcedMode.NONE

    @property
    def is_forced(self) -> bool:
        return self is not ForcedMode.NONE


# ─────────────────────────────────────────────────────────────
# Rectangles
# ─────────────────────────────────────────────────────────────


class Rectangle(BaseModel):
    x: int = 0
    y: int = 0
    width: int = 0
    height: int = 0

    model_config: ClassVar[ConfigDict] = ConfigDict(frozen=True)

    @property
    def right(self) -> int:
        return self.x + self.width

    @property
    def bottom(self) -> int:
        return self.y + self.height


class FocalPoint(Rectangle):
    """Region of a source image that must stay visible when cropping.

    Values come verbatim from operator-authored sidecars and are not
    bounds-checked; the crop calculation clamps.
    """

    model_config: ClassVar[ConfigDict] = ConfigDict(frozen=True, extra="ignore")


class CropArea(Rectangle):
    """Rectangle cut out of the source before the exact resize."""

    def as_box(self) -> tuple[int, int, int, int]:
        """Return (left, upper, right, lower) as Pillow expects."""
        return (self.x, self.y, self.right, self.bottom)


# ─────────────────────────────────────────────────────────────
# Per-image settings
# ─────────────────────────────────────────────────────────────


class ImageSettings(BaseModel):
    """Intrinsic size of one source image plus its focal point."""

    width: int = Field(ge=0)
    height: int = Field(ge=0)
    focal: FocalPoint

    model_config: ClassVar[ConfigDict] = ConfigDict(frozen=True)

    @model_validator(mode="before")
    @classmethod
    def default_focal_to_whole_image(cls, data: object) -> object:
        """Without a sidecar the whole image is the focal region."""
        if isinstance(data, dict) and data.get("focal") is None:
            data = {
                **data,
                "focal": {"x": 0, "y": 0, "width": data.get("width"), "height": data.get("height")},
            }
        return data

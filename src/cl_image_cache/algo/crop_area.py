"""Pure crop-area computation logic (focal-point aware)."""

import math

from ..common.schemas import CropArea, ForcedMode, ImageSettings


def round_half_away(value: float) -> int:
    """Round to the nearest integer, halves away from zero."""
    return int(math.copysign(math.floor(abs(value) + 0.5), value))


def _clamp(value: int, lower: int, upper: int) -> int:
    return max(lower, min(value, upper))


def _enclosing_size(
    target_width: int,
    target_height: int,
    source_width: int,
    source_height: int,
) -> tuple[int, int]:
    """Largest (width, height) with the target aspect that fits in the source."""
    if target_width >= target_height:
        aspect = target_height / target_width

        def width_from(height: int) -> int:
            return round_half_away(height / aspect)

        def height_from(width: int) -> int:
            return round_half_away(width * aspect)

    else:
        aspect = target_width / target_height

        def width_from(height: int) -> int:
            return round_half_away(height * aspect)

        def height_from(width: int) -> int:
            return round_half_away(width / aspect)

    if source_width >= source_height:
        crop_height = source_height
        crop_width = width_from(crop_height)
    else:
        crop_width = source_width
        crop_height = height_from(crop_width)

    if crop_height > source_height:
        crop_height = source_height
        crop_width = width_from(crop_height)
    elif crop_width > source_width:
        crop_width = source_width
        crop_height = height_from(crop_width)

    # Extreme aspect ratios can round an axis down to nothing
    crop_width = _clamp(crop_width, 1, source_width)
    crop_height = _clamp(crop_height, 1, source_height)
    return crop_width, crop_height


def calculate_crop_area(
    target_width: int,
    target_height: int,
    forced: ForcedMode,
    settings: ImageSettings,
) -> CropArea:
    """
    Compute the rectangle cut from the source before resizing.

    The rectangle has the aspect ratio of the requested size and is as
    large as the source allows. ``CENTER_FIT`` centres it on the focal
    region (clamped to the source); the corner modes anchor it to a
    corner and ignore the focal point.

    Args:
        target_width: Requested output width, > 0
        target_height: Requested output height, > 0
        forced: Anchoring mode; ``ForcedMode.NONE`` returns the whole image
        settings: Source dimensions and focal point

    Returns:
        CropArea lying fully inside the source bounds

    Raises:
        ValueError: If a target or source dimension is not positive
    """
    source_width = settings.width
    source_height = settings.height

    if not forced.is_forced:
        return CropArea(x=0, y=0, width=source_width, height=source_height)

    if target_width <= 0 or target_height <= 0:
        raise ValueError(
            f"Target size must be positive, got {target_width}x{target_height}"
        )
    if source_width <= 0 or source_height <= 0:
        raise ValueError(
            f"Source size must be positive, got {source_width}x{source_height}"
        )

    crop_width, crop_height = _enclosing_size(
        target_width, target_height, source_width, source_height
    )
    max_x = source_width - crop_width
    max_y = source_height - crop_height

    match forced:
        case ForcedMode.CENTER_FIT:
            focal = settings.focal
            x = _clamp(round_half_away(focal.x + (focal.width - crop_width) / 2), 0, max_x)
            y = _clamp(round_half_away(focal.y + (focal.height - crop_height) / 2), 0, max_y)
        case ForcedMode.TOP_LEFT:
            x, y = 0, 0
        case ForcedMode.TOP_RIGHT:
            x, y = max_x, 0
        case ForcedMode.BOTTOM_LEFT:
            x, y = 0, max_y
        case ForcedMode.BOTTOM_RIGHT:
            x, y = max_x, max_y
        case _:
            raise ValueError(f"Unsupported forced mode: {forced!r}")

    return CropArea(x=x, y=y, width=crop_width, height=crop_height)

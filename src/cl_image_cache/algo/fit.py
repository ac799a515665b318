"""Pure fit-resize geometry shared by all render backends."""

from .crop_area import round_half_away


def fit_dimensions(
    source_width: int,
    source_height: int,
    width: int,
    height: int,
) -> tuple[int, int]:
    """
    Output size for an aspect-preserving resize.

    Args:
        source_width: Native width of the image
        source_height: Native height of the image
        width: Requested width, 0 = unconstrained
        height: Requested height, 0 = unconstrained

    Returns:
        (width, height) that never exceeds the requested box; the native
        size when both constraints are 0

    Raises:
        ValueError: If the source is empty
    """
    if source_width <= 0 or source_height <= 0:
        raise ValueError(f"Source size must be positive, got {source_width}x{source_height}")

    if width > 0 and height > 0:
        scale = min(width / source_width, height / source_height)
    elif width > 0:
        scale = width / source_width
    elif height > 0:
        scale = height / source_height
    else:
        return source_width, source_height

    out_width = max(1, round_half_away(source_width * scale))
    out_height = max(1, round_half_away(source_height * scale))

    # Rounding must not push the result outside the requested box
    if width > 0:
        out_width = min(out_width, width)
    if height > 0:
        out_height = min(out_height, height)
    return out_width, out_height


def letterbox_offset(inner: tuple[int, int], outer: tuple[int, int]) -> tuple[int, int]:
    """Top-left position that centres ``inner`` on ``outer``."""
    return (outer[0] - inner[0]) // 2, (outer[1] - inner[1]) // 2

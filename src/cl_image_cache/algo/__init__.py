"""Pure geometry used by the resize pipeline."""

from .crop_area import calculate_crop_area, round_half_away
from .fit import fit_dimensions, letterbox_offset

__all__ = ["calculate_crop_area", "fit_dimensions", "letterbox_offset", "round_half_away"]

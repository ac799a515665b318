"""ImageUrlBuilder - build resize URLs for templates and view models."""

from collections.abc import Mapping
from string import Template

from .algo.crop_area import round_half_away
from .common.config import ImageConfiguration
from .common.schemas import ForcedMode
from .locator import ImageLocator

DEFAULT_IMAGE = "*.png"


def parse_aspect(value: str) -> float | None:
    """``"16x9"`` -> 9/16; None when ``value`` is not an aspect string."""
    parts = value.lower().split("x")
    if len(parts) != 2:
        return None
    try:
        width, height = int(parts[0]), int(parts[1])
    except ValueError:
        return None
    if width <= 0 or height < 0:
        return None
    return height / width


class ImageUrlBuilder:
    """Turn an image reference plus sizing hints into a served URL.

    ``value`` may be a name (glob allowed) or a mapping such as a view
    model, searched for the configured ``data_properties``. A string
    ``width`` like ``"16x9"`` is an aspect ratio: the output width is then
    taken from ``height`` and the output height follows the aspect.
    """

    def __init__(self, locator: ImageLocator, configuration: ImageConfiguration):
        self.locator: ImageLocator = locator
        self.configuration: ImageConfiguration = configuration
        self.template: Template = Template(configuration.url_template)

    def image_name(self, value: object) -> str:
        name = DEFAULT_IMAGE
        if isinstance(value, str):
            name = value
        elif isinstance(value, Mapping):
            for key in self.configuration.data_properties:
                candidate = value.get(key)
                if isinstance(candidate, str):
                    name = candidate
        return name

    async def build(
        self,
        value: object,
        width: int | str | None = None,
        height: int | None = None,
        force: bool | int | None = None,
        static: bool = False,
    ) -> str | None:
        """
        Build the URL for an image.

        Args:
            value: Image name or mapping holding one
            width: Width in pixels, or an aspect string like ``"4x3"``
            height: Height in pixels (the width when ``width`` is an aspect)
            force: True or 1 requests a focal-point crop
            static: Pin wildcard names to their first match

        Returns:
            The URL, or None if the image does not exist
        """
        image = await self.locator.resolve_name(self.image_name(value), deterministic=static)
        if not image:
            return None

        w: int = 0
        h: int = 0
        forced = ForcedMode.CENTER_FIT if force is True or force == 1 else ForcedMode.NONE
        aspect = parse_aspect(width) if isinstance(width, str) else None

        if (not width and not height) or (isinstance(width, str) and not height) or image.lower().endswith(".svg"):
            forced = ForcedMode.NONE
        elif isinstance(width, str):
            if aspect is not None and height:
                w = int(height)
                h = round_half_away(w * aspect)
                forced = ForcedMode.CENTER_FIT
            else:
                forced = ForcedMode.NONE
        else:
            w = int(width or 0)
            h = int(height or 0)

        return self.template.safe_substitute(
            image=image,
            width=w,
            height=h,
            forced=forced.value,
        )

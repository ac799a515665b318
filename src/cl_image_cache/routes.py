"""Image route factory."""

from typing import Annotated

from fastapi import APIRouter, HTTPException, Query
from fastapi.responses import FileResponse
from loguru import logger

from .resizer import ImageResizer


def create_router(resizer: ImageResizer, prefix: str = "/images") -> APIRouter:
    """Create router serving resized images.

    Args:
        resizer: ImageResizer handling the requests
        prefix: Route prefix, images are served at ``{prefix}/{image}``

    Returns:
        Configured APIRouter with the image endpoint
    """
    router = APIRouter(prefix=prefix)

    @router.get("/{image:path}")
    async def serve_image(
        image: str,
        width: Annotated[str | None, Query(description="Target width in pixels")] = None,
        height: Annotated[str | None, Query(description="Target height in pixels")] = None,
        forced: Annotated[str | None, Query(description="Crop mode: 0, 1, tl, tr, bl, br")] = None,
        static: Annotated[bool, Query(description="Pin wildcard names to the first match")] = False,
    ) -> FileResponse:
        """Serve ``image`` resized to width x height.

        Non-numeric sizes count as 0. Returns 404 when no source matches.
        """
        logger.debug(f"Serving image <{image}> as <{width}>x<{height}> forced=<{forced}>")
        path = await resizer.resolve(image, width, height, forced, deterministic=static)
        if path is None:
            raise HTTPException(status_code=404, detail=f"Image {image} does not exist")
        return FileResponse(path)

    # Mark function as used (accessed via FastAPI decorator)
    _ = serve_image

    return router

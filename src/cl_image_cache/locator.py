"""ImageLocator - resolve logical (possibly wildcarded) names to source files."""

import asyncio
import glob
import os
import random
from pathlib import Path, PurePosixPath

from loguru import logger

from .common.config import ImageConfiguration


class ImageLocator:
    """Resolve image names relative to the configured source root.

    Names may contain glob wildcards (``teasers/*.jpg``). Without
    deterministic mode every call picks a fresh random match; nothing
    is memoized between calls.
    """

    def __init__(self, configuration: ImageConfiguration):
        self.configuration: ImageConfiguration = configuration
        self.source_root: Path = configuration.resolve_source_root()

    def _expand(self, name: str) -> list[str]:
        pattern = os.path.join(glob.escape(str(self.source_root)), name.lstrip("/"))
        return [match for match in glob.glob(pattern) if os.path.isfile(match)]

    def _is_inside_root(self, path: Path) -> bool:
        resolved = path.resolve()
        return resolved == self.source_root or self.source_root in resolved.parents

    async def resolve_source(self, name: str, deterministic: bool = False) -> Path | None:
        """Return one concrete source file matching ``name``, or None.

        Args:
            name: Image name relative to the source root, glob allowed
            deterministic: Pick the first match in listing order instead
                           of a random one

        Returns:
            Absolute path of the chosen file, None if nothing matches
        """
        if not name:
            return None

        matches = await asyncio.to_thread(self._expand, name)
        candidates = [Path(m) for m in matches if self._is_inside_root(Path(m))]
        if not candidates:
            logger.debug(f"[ImageLocator] no match for {name!r} under {self.source_root}")
            return None

        chosen = candidates[0] if deterministic else random.choice(candidates)
        logger.debug(f"[ImageLocator] {name!r} -> {chosen} ({len(candidates)} candidates)")
        return chosen

    @staticmethod
    def relative_path(name: str, resolved: str | Path) -> str:
        """Combine the folder part of ``name`` with the resolved basename.

        ``relative_path("teasers/*.jpg", "/src/teasers/a.jpg") == "teasers/a.jpg"``
        """
        folder = PurePosixPath(name.replace("\\", "/").lstrip("/")).parent
        basename = Path(resolved).name
        if str(folder) in ("", "."):
            return basename
        return str(folder / basename)

    async def resolve_name(self, name: str, deterministic: bool = False) -> str | None:
        """Resolve ``name`` to its logical relative path, or None."""
        resolved = await self.resolve_source(name, deterministic)
        if resolved is None:
            return None
        return self.relative_path(name, resolved)

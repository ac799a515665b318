"""CacheKeyResolver - deterministic cache file paths for resize requests."""

import hashlib
from pathlib import Path, PurePosixPath

from .common.config import ImageConfiguration
from .common.schemas import ForcedMode


def name_digest(name: str) -> str:
    """MD5 hex digest of a canonical logical image name."""
    canonical = PurePosixPath(name.replace("\\", "/").lstrip("/")).as_posix()
    return hashlib.md5(canonical.encode("utf-8")).hexdigest()


class CacheKeyResolver:
    """Map ``(name, width, height, forced)`` to a file under the cache root.

    Filenames follow ``{width}x{height}-{forced}-{disambiguator}{ext}``.
    The default disambiguator is the MD5 of the logical relative name, so
    equal basenames in different source folders never collide. The
    ``basename`` policy keeps the legacy, collision-prone naming.

    The resolver holds no state besides the cache root; checking whether
    the file exists is up to the caller.
    """

    def __init__(self, configuration: ImageConfiguration):
        self.configuration: ImageConfiguration = configuration
        self.cache_root: Path = configuration.resolve_cache_root()

    def disambiguator(self, name: str) -> str:
        if self.configuration.cache_key_policy == "basename":
            return PurePosixPath(name.replace("\\", "/")).stem
        return name_digest(name)

    def cache_filename(self, name: str, width: int, height: int, forced: ForcedMode) -> str:
        ext = PurePosixPath(name.replace("\\", "/")).suffix
        return f"{width or 0}x{height or 0}-{forced.value}-{self.disambiguator(name)}{ext}"

    def resolve_cache_file(
        self,
        name: str,
        width: int,
        height: int,
        forced: ForcedMode,
    ) -> Path:
        """Return the cache path for a logical relative name.

        Args:
            name: Logical relative path as returned by ``ImageLocator.relative_path``
            width: Requested width (0 = unconstrained)
            height: Requested height (0 = unconstrained)
            forced: Crop anchoring mode

        Raises:
            ValueError: If ``name`` is empty
        """
        if not name:
            raise ValueError("Cannot derive a cache key for an empty image name")
        return self.cache_root / self.cache_filename(name, width, height, forced)

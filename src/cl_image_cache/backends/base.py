"""
RenderBackend Protocol - interface for image decode/crop/resize/encode.

Design goals:
- Backends are interchangeable and chosen by configuration
- Every library failure surfaces as DecodeError or EncodeError
- Methods are synchronous; the orchestrator runs them off the event loop
"""

from pathlib import Path
from typing import Any, Protocol, runtime_checkable

from ..algo.fit import fit_dimensions
from ..common.errors import DecodeError, EncodeError
from ..common.schemas import CropArea

Background = tuple[int, int, int, int]

# Extensions whose encoders cannot store an alpha channel
OPAQUE_EXTENSIONS = frozenset({".jpg", ".jpeg", ".jpe", ".jfif"})


@runtime_checkable
class RenderBackend(Protocol):
    """
    Protocol for image rendering backends.

    Implementations own:
    - the native image handle type
    - resampling choices
    - mapping library errors onto DecodeError / EncodeError
    """

    @property
    def name(self) -> str: ...

    def probe(self, path: str | Path) -> tuple[int, int]:
        """
        Return the native (width, height) of an image.

        Raises:
            DecodeError: If the file is missing or not a supported image
        """
        ...

    def decode(self, path: str | Path) -> Any:
        """
        Open an image and return the native handle.

        Raises:
            DecodeError: If the file is missing or not a supported image
        """
        ...

    def crop_resize(self, handle: Any, area: CropArea, width: int, height: int) -> Any:
        """
        Cut ``area`` out of the image, then resize to exactly width x height.

        Raises:
            EncodeError: If the backend rejects the operation
        """
        ...

    def fit_resize(
        self,
        handle: Any,
        width: int,
        height: int,
        *,
        letterbox: bool = False,
        background: Background = (0, 0, 0, 0),
    ) -> Any:
        """
        Resize preserving the aspect ratio within the requested box.

        Either dimension may be 0 (unconstrained). With ``letterbox`` the
        result is padded to exactly width x height.

        Raises:
            EncodeError: If the backend rejects the operation
        """
        ...

    def encode(self, handle: Any, destination: str | Path) -> None:
        """
        Write the image; the format follows the destination extension.

        Raises:
            EncodeError: If the file cannot be written
        """
        ...


def fit_box(path: str | Path, source_size: tuple[int, int], width: int, height: int) -> tuple[int, int]:
    """``fit_dimensions`` with ValueError mapped to EncodeError."""
    try:
        return fit_dimensions(source_size[0], source_size[1], width, height)
    except ValueError as exc:
        raise EncodeError(path, str(exc)) from exc


def require_file(path: str | Path) -> Path:
    """Return ``path`` as a Path, raising DecodeError when it is not a file."""
    file_path = Path(path)
    if not file_path.is_file():
        raise DecodeError(file_path, "file not found")
    return file_path

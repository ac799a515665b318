"""ImageConfiguration - explicit configuration value shared by all components."""

import os
from pathlib import Path
from string import Template
from typing import ClassVar, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .errors import ConfigurationError

DEFAULT_URL_TEMPLATE = "/images/${image}?width=${width}&height=${height}&forced=${forced}"


class ImageConfiguration(BaseModel):
    """Configuration consumed by the resize pipeline.

    Path templates use ``${name}`` placeholders which are filled from
    ``path_variables`` when a root is resolved, e.g.::

        ImageConfiguration(
            source_path="${data}/images",
            cache_path="${cache}/images",
            path_variables={"data": "/srv/data", "cache": "/var/cache/site"},
        )
    """

    source_path: str = Field(
        default="${data}/images",
        description="Template for the root directory holding source images",
    )
    cache_path: str = Field(
        default="${cache}/images",
        description="Template for the root directory holding rendered variants",
    )
    path_variables: dict[str, str] = Field(
        default_factory=dict,
        description="Values substituted into ${name} placeholders of the path templates",
    )
    resizable_extensions: list[str] = Field(
        default_factory=lambda: [".png", ".jpg"],
        description="Source extensions the backend may decode and re-encode",
    )
    use_cache: bool = Field(default=True, description="Serve existing cache files without rendering")
    backend: str = Field(default="pillow", description="Render backend name")
    letterbox: bool = Field(
        default=False,
        description="Pad fit-resized images to the exact requested box",
    )
    background: tuple[int, int, int, int] = Field(
        default=(0, 0, 0, 0),
        description="RGBA fill used when letterboxing",
    )
    cache_key_policy: Literal["hash", "basename"] = Field(
        default="hash",
        description="How the logical image name is encoded in cache filenames",
    )
    url_template: str = Field(default=DEFAULT_URL_TEMPLATE)
    data_properties: list[str] = Field(default_factory=lambda: ["src"])

    model_config: ClassVar[ConfigDict] = ConfigDict(frozen=True)

    @field_validator("resizable_extensions")
    @classmethod
    def normalize_extensions(cls, v: list[str]) -> list[str]:
        """Lower-case extensions and make sure they start with a dot."""
        normalized: list[str] = []
        for ext in v:
            ext = ext.strip().lower()
            if not ext:
                continue
            normalized.append(ext if ext.startswith(".") else f".{ext}")
        return normalized

    # ------------------------------------------------------------------
    # Path resolution
    # ------------------------------------------------------------------

    def _expand(self, field: str, template: str) -> Path:
        if not template or not template.strip():
            raise ConfigurationError(f"image.{field} is not configured")
        try:
            expanded = Template(template).substitute(self.path_variables)
        except KeyError as exc:
            raise ConfigurationError(
                f"image.{field} references unknown path variable {exc.args[0]!r}: {template}"
            ) from exc
        except ValueError as exc:
            raise ConfigurationError(f"image.{field} is not a valid template: {template}") from exc
        return Path(expanded).expanduser().resolve()

    def resolve_source_root(self) -> Path:
        """Return the source root; it must be an existing directory."""
        root = self._expand("source_path", self.source_path)
        if not root.is_dir():
            raise ConfigurationError(f"Image source directory does not exist: {root}")
        return root

    def resolve_cache_root(self) -> Path:
        """Return the cache root. It is created lazily by the renderer."""
        return self._expand("cache_path", self.cache_path)

    def is_resizable(self, path: str | Path) -> bool:
        return Path(path).suffix.lower() in self.resizable_extensions

    # ------------------------------------------------------------------
    # Environment
    # ------------------------------------------------------------------

    @classmethod
    def from_env(cls, prefix: str = "IMAGE_") -> "ImageConfiguration":
        """Build a configuration from ``{prefix}*`` environment variables."""

        def env(name: str) -> str | None:
            return os.getenv(f"{prefix}{name}")

        values: dict[str, object] = {}
        if (source := env("SOURCE_PATH")) is not None:
            values["source_path"] = source
        if (cache := env("CACHE_PATH")) is not None:
            values["cache_path"] = cache
        if (extensions := env("RESIZABLE_EXTENSIONS")) is not None:
            values["resizable_extensions"] = extensions.split(",")
        if (use_cache := env("USE_CACHE")) is not None:
            values["use_cache"] = use_cache.strip().lower() in ("1", "true", "yes", "on")
        if (backend := env("BACKEND")) is not None:
            values["backend"] = backend
        if (letterbox := env("LETTERBOX")) is not None:
            values["letterbox"] = letterbox.strip().lower() in ("1", "true", "yes", "on")
        if (policy := env("CACHE_KEY_POLICY")) is not None:
            values["cache_key_policy"] = policy
        if (url_template := env("URL_TEMPLATE")) is not None:
            values["url_template"] = url_template

        path_variables: dict[str, str] = {}
        if (data_dir := env("DATA_DIR")) is not None:
            path_variables["data"] = data_dir
        if (cache_dir := env("CACHE_DIR")) is not None:
            path_variables["cache"] = cache_dir
        values["path_variables"] = path_variables

        return cls.model_validate(values)

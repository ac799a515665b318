"""Render backends and configuration-driven backend selection."""

from collections.abc import Callable
from importlib.metadata import entry_points
from typing import cast

from ..common.config import ImageConfiguration
from ..common.errors import ConfigurationError
from .base import RenderBackend
from .pillow_backend import PillowBackend
from .vips_backend import VipsBackend

BackendFactory = Callable[[], RenderBackend]

BUILTIN_BACKENDS: dict[str, BackendFactory] = {
    "pillow": PillowBackend,
    "vips": VipsBackend,
}


def get_backend_registry() -> dict[str, BackendFactory]:
    """Built-in backends plus those registered as entry points.

    Third-party backends register under
    [project.entry-points."cl_image_cache.backends"] in pyproject.toml.

    Returns:
        Dict mapping backend name -> factory

    Raises:
        RuntimeError: If a plugin fails to load (missing dependency, etc.)
    """
    registry: dict[str, BackendFactory] = dict(BUILTIN_BACKENDS)
    for ep in entry_points(group="cl_image_cache.backends"):
        try:
            registry[ep.name] = cast(BackendFactory, ep.load())
        except Exception as e:
            # Plugin dependency missing = exception (fail fast)
            raise RuntimeError(f"Failed to load backend '{ep.name}': {e}") from e
    return registry


def get_backend(configuration: ImageConfiguration | str) -> RenderBackend:
    """Instantiate the backend named by the configuration.

    Raises:
        ConfigurationError: If the name is unknown or the backend cannot start
    """
    name = configuration if isinstance(configuration, str) else configuration.backend
    registry = get_backend_registry()
    factory = registry.get(name)
    if factory is None:
        raise ConfigurationError(
            f"Unknown image backend '{name}', available: {', '.join(sorted(registry))}"
        )
    backend = factory()
    if not isinstance(backend, RenderBackend):
        raise ConfigurationError(f"Backend '{name}' does not implement RenderBackend")
    return backend


__all__ = [
    "RenderBackend",
    "PillowBackend",
    "VipsBackend",
    "BUILTIN_BACKENDS",
    "get_backend",
    "get_backend_registry",
]

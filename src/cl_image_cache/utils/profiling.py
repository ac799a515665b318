"""Timing helpers for render steps."""

import inspect
import time
from collections.abc import Awaitable, Callable
from functools import wraps
from typing import ParamSpec, TypeVar, cast

from loguru import logger

P = ParamSpec("P")
R = TypeVar("R")


def timed(label: str | None = None, level: str = "DEBUG"):
    """Decorator logging how long a sync or async callable took.

    Usage:
        @timed("render")
        def render_variant(...): ...
    """

    def decorator(func: Callable[P, R]) -> Callable[P, R]:
        name = label or func.__qualname__

        def log_elapsed(start_time: float) -> None:
            logger.log(level, f"[timed] {name} took {time.perf_counter() - start_time:.3f}s")

        if inspect.iscoroutinefunction(func):

            @wraps(func)
            async def async_wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
                start_time = time.perf_counter()
                try:
                    return await cast(Callable[P, Awaitable[R]], func)(*args, **kwargs)
                finally:
                    log_elapsed(start_time)

            return cast(Callable[P, R], async_wrapper)

        @wraps(func)
        def wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
            start_time = time.perf_counter()
            try:
                return func(*args, **kwargs)
            finally:
                log_elapsed(start_time)

        return wrapper

    return decorator

"""SingleFlight - collapse concurrent identical async computations."""

import asyncio
from collections.abc import Awaitable, Callable, Hashable
from typing import Generic, TypeVar

from loguru import logger

K = TypeVar("K", bound=Hashable)
R = TypeVar("R")


class SingleFlight(Generic[K, R]):
    """Run at most one in-flight computation per key.

    Callers arriving while a computation for the same key is running
    await that computation's result (or exception) instead of starting
    a new one. Once it settles the key is released, so a later call
    starts fresh.

    Example:
        flights: SingleFlight[str, Path] = SingleFlight()
        path = await flights.run(cache_key, lambda: render(cache_key))
    """

    def __init__(self) -> None:
        self._flights: dict[K, asyncio.Future[R]] = {}

    def __contains__(self, key: object) -> bool:
        return key in self._flights

    def __len__(self) -> int:
        return len(self._flights)

    async def run(self, key: K, func: Callable[[], Awaitable[R]]) -> R:
        flight = self._flights.get(key)
        if flight is not None:
            logger.debug(f"[SingleFlight] joining in-flight work for {key}")
            # Shield so one cancelled waiter does not cancel the shared work
            return await asyncio.shield(flight)

        flight = asyncio.ensure_future(func())
        self._flights[key] = flight
        flight.add_done_callback(lambda done: self._release(key, done))
        return await asyncio.shield(flight)

    def _release(self, key: K, done: "asyncio.Future[R]") -> None:
        if self._flights.get(key) is done:
            del self._flights[key]
        # Retrieve the exception so an unobserved failure is not reported
        if not done.cancelled():
            _ = done.exception()

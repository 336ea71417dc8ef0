"""Per-host limit on concurrently in-flight network requests.

A ``HostThrottle`` belongs to the network fetcher that receives it. Callers
that want several pipelines to share one fairness budget pass the same
instance to each of them. A throttle serves one event loop at a time: it
moves to a new loop once the previous one holds no slots, and refuses a
second loop while requests of the first are still in flight.
"""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
import threading
from typing import AsyncIterator

from core.constants import DEFAULT_MAX_CONNECTIONS_PER_HOST
from core.errors import QuarryConfigError


class HostThrottle:
    """Lazily created semaphore per host plus in-flight counters."""

    def __init__(self, max_in_flight: int = DEFAULT_MAX_CONNECTIONS_PER_HOST) -> None:
        """Create a throttle.

        Args:
            max_in_flight: Maximum concurrent requests to one host.

        Raises:
            QuarryConfigError: If the cap is below 1.
        """
        if max_in_flight < 1:
            raise QuarryConfigError(
                f"Invalid per-host connection cap {max_in_flight}: must be at least 1."
            )
        self._max_in_flight = max_in_flight
        self._semaphores: dict[str, asyncio.Semaphore] = {}
        self._in_flight: dict[str, int] = {}
        self._peak_in_flight: dict[str, int] = {}
        self._loop: asyncio.AbstractEventLoop | None = None
        self._active = 0
        self._lock = threading.Lock()

    @property
    def max_in_flight(self) -> int:
        """Return the per-host cap."""
        return self._max_in_flight

    @asynccontextmanager
    async def slot(self, host: str) -> AsyncIterator[None]:
        """Hold one request slot for ``host`` for the duration of the block."""
        semaphore = self._semaphore_for(host)
        try:
            async with semaphore:
                with self._lock:
                    current = self._in_flight.get(host, 0) + 1
                    self._in_flight[host] = current
                    self._peak_in_flight[host] = max(
                        self._peak_in_flight.get(host, 0), current
                    )
                try:
                    yield
                finally:
                    with self._lock:
                        self._in_flight[host] -= 1
        finally:
            with self._lock:
                self._active -= 1

    def in_flight(self, host: str) -> int:
        """Return requests currently holding a slot for ``host``."""
        return self._in_flight.get(host, 0)

    def peak_in_flight(self, host: str) -> int:
        """Return the highest concurrent slot count seen for ``host``."""
        return self._peak_in_flight.get(host, 0)

    def _semaphore_for(self, host: str) -> asyncio.Semaphore:
        """Return the semaphore for ``host`` on the running event loop.

        Args:
            host: Throttling host name.

        Returns:
            Semaphore bound to the current loop.

        Raises:
            QuarryConfigError: If tasks of another event loop hold or await slots.
        """
        loop = asyncio.get_running_loop()
        with self._lock:
            if loop is not self._loop:
                if self._active:
                    raise QuarryConfigError(
                        "HostThrottle is already serving requests on another event loop. "
                        "Give each concurrently running loop its own throttle."
                    )
                # asyncio primitives bind to one loop; each sync load runs a new one.
                self._semaphores = {}
                self._in_flight = {}
                self._loop = loop
            self._active += 1
            semaphore = self._semaphores.get(host)
            if semaphore is None:
                semaphore = asyncio.Semaphore(self._max_in_flight)
                self._semaphores[host] = semaphore
            return semaphore

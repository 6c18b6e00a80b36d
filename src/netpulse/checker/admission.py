"""Fleet-wide admission control for outbound connection attempts."""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

from netpulse.metrics import PROBES_IN_FLIGHT

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

logger = logging.getLogger(__name__)

DEFAULT_MAX_CONCURRENT_CONNECTIONS = 100


class AdmissionController:
    """Counting permit pool shared by every probe in the process.

    At most ``capacity`` connection attempts are outstanding at any time,
    regardless of how many devices, checks or addresses are configured.
    Waiters are served by ``asyncio.Semaphore``, which is FIFO and therefore
    starvation-free.

    Example:
        ```python
        admission = AdmissionController(capacity=50)

        async with admission.permit():
            await open_connection(ip, port)
        ```
    """

    def __init__(self, capacity: int = DEFAULT_MAX_CONCURRENT_CONNECTIONS) -> None:
        """Initialize the controller.

        Args:
            capacity: Maximum number of simultaneous connection attempts.

        Raises:
            ValueError: If capacity is less than 1.
        """
        if capacity < 1:
            raise ValueError("capacity must be at least 1")
        self._capacity = capacity
        self._semaphore = asyncio.Semaphore(capacity)
        self._in_flight = 0

    @property
    def capacity(self) -> int:
        """Maximum number of permits."""
        return self._capacity

    @property
    def in_flight(self) -> int:
        """Number of permits currently held."""
        return self._in_flight

    @property
    def available(self) -> int:
        """Number of permits that can be acquired without waiting."""
        return self._capacity - self._in_flight

    async def acquire(self) -> None:
        """Wait until a permit is available and take it."""
        await self._semaphore.acquire()
        self._in_flight += 1
        PROBES_IN_FLIGHT.inc()

    def release(self) -> None:
        """Return a permit to the pool."""
        if self._in_flight == 0:
            raise RuntimeError("release() called without a held permit")
        self._in_flight -= 1
        PROBES_IN_FLIGHT.dec()
        self._semaphore.release()

    @asynccontextmanager
    async def permit(self) -> AsyncIterator[None]:
        """Hold a permit for the duration of the block.

        The permit is returned on normal exit, on error and on cancellation.
        """
        await self.acquire()
        try:
            yield
        finally:
            self.release()

"""Signal handling and cooperative shutdown for the monitoring loop.

Usage:
    ```python
    async def main():
        async with GracefulShutdown() as shutdown:
            await run_until_shutdown(scheduler.run(), shutdown)
    ```
"""

from __future__ import annotations

import asyncio
import logging
import signal
import sys
from collections.abc import Callable, Coroutine
from contextlib import suppress
from types import FrameType
from typing import Any, TypeVar

logger = logging.getLogger(__name__)

# Signals that request shutdown
SHUTDOWN_SIGNALS = (signal.SIGTERM, signal.SIGINT)

T = TypeVar("T")


class GracefulShutdown:
    """Traps SIGTERM and SIGINT and exposes them as an awaitable event.

    The first signal sets the shutdown event; a second one exits the
    process immediately. Cleanup callbacks, sync or async, run when the
    context manager exits.
    """

    def __init__(self) -> None:
        self._shutdown_event = asyncio.Event()
        self._shutdown_requested = False
        self._force_exit_requested = False
        self._original_handlers: dict[signal.Signals, Any] = {}
        self._cleanup_callbacks: list[Callable[[], Any]] = []
        self._loop: asyncio.AbstractEventLoop | None = None

    @property
    def is_shutdown_requested(self) -> bool:
        """Check if shutdown has been requested."""
        return self._shutdown_requested

    @property
    def is_force_exit_requested(self) -> bool:
        """Check if a second signal arrived."""
        return self._force_exit_requested

    def register_cleanup(self, callback: Callable[[], Any]) -> None:
        """Register a callback to run on exit."""
        self._cleanup_callbacks.append(callback)

    def request_shutdown(self) -> None:
        """Request shutdown from application code."""
        if not self._shutdown_requested:
            self._shutdown_requested = True
            logger.info("Shutdown requested programmatically")
            self._shutdown_event.set()

    async def wait(self) -> None:
        """Block until shutdown is requested."""
        await self._shutdown_event.wait()

    def install_signal_handlers(self) -> None:
        """Install handlers for SIGTERM and SIGINT.

        Unix uses the running loop's signal handlers; Windows falls back to
        ``signal.signal``.
        """
        self._loop = asyncio.get_running_loop()
        for sig in SHUTDOWN_SIGNALS:
            try:
                if sys.platform == "win32":
                    self._original_handlers[sig] = signal.signal(sig, self._handle_signal_sync)
                else:
                    self._loop.add_signal_handler(sig, self._handle_signal, sig)
                logger.debug("Installed handler for %s", sig.name)
            except (ValueError, OSError, RuntimeError) as e:
                logger.warning("Could not install handler for %s: %s", sig.name, e)

    def remove_signal_handlers(self) -> None:
        """Remove installed handlers and restore the originals."""
        if sys.platform == "win32":
            for sig, original in self._original_handlers.items():
                with suppress(ValueError, OSError):
                    signal.signal(sig, original)
            self._original_handlers.clear()
        elif self._loop is not None:
            for sig in SHUTDOWN_SIGNALS:
                with suppress(ValueError, OSError, RuntimeError):
                    self._loop.remove_signal_handler(sig)
        logger.debug("Signal handlers removed")

    def _handle_signal(self, sig: signal.Signals) -> None:
        if self._shutdown_requested:
            self._force_exit_requested = True
            logger.warning("Received %s again - forcing exit!", sig.name)
            sys.exit(128 + sig.value)
        self._shutdown_requested = True
        logger.warning("Received %s - shutting down...", sig.name)
        self._shutdown_event.set()

    def _handle_signal_sync(self, sig: int, _frame: FrameType | None) -> None:
        self._handle_signal(signal.Signals(sig))

    async def run_cleanup_callbacks(self) -> None:
        """Run registered cleanup callbacks; failures are logged."""
        for callback in self._cleanup_callbacks:
            try:
                result = callback()
                if asyncio.iscoroutine(result):
                    await result
            except Exception as e:
                logger.error("Cleanup callback failed: %s", e)

    async def __aenter__(self) -> GracefulShutdown:
        self.install_signal_handlers()
        return self

    async def __aexit__(self, *_args: Any) -> None:
        self.remove_signal_handlers()
        await self.run_cleanup_callbacks()


async def run_until_shutdown(
    coro: Coroutine[Any, Any, T],
    shutdown: GracefulShutdown,
) -> T | None:
    """Run a coroutine until it finishes or shutdown is requested.

    On shutdown the task is cancelled, abandoning any in-flight work.

    Returns:
        The coroutine's result, or None if it was cancelled by shutdown.
    """
    task = asyncio.create_task(coro)
    shutdown_wait = asyncio.create_task(shutdown.wait())

    done, pending = await asyncio.wait(
        [task, shutdown_wait],
        return_when=asyncio.FIRST_COMPLETED,
    )

    for pending_task in pending:
        pending_task.cancel()
        with suppress(asyncio.CancelledError):
            await pending_task

    if task in done:
        return task.result()
    return None

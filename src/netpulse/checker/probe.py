"""Single TCP reachability probe."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from contextlib import suppress
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from netpulse.checker.admission import AdmissionController

logger = logging.getLogger(__name__)

# Opens a connection to (ip, port) and closes it again. Raises on failure.
Connector = Callable[[str, int], Awaitable[object]]


async def open_tcp(ip: str, port: int) -> None:
    """Open a TCP connection and close it immediately."""
    _reader, writer = await asyncio.open_connection(ip, port)
    writer.close()
    with suppress(OSError):
        await writer.wait_closed()


async def probe(
    ip: str,
    port: int,
    timeout: float,
    admission: AdmissionController,
    *,
    connector: Connector = open_tcp,
) -> bool:
    """Check whether ``ip:port`` accepts a TCP connection within ``timeout``.

    Refused, unreachable, timed-out and unresolvable targets all report
    False; this function does not raise for them. Cancellation propagates
    after the admission permit has been returned.

    Args:
        ip: Host literal to connect to.
        port: TCP port.
        timeout: Deadline in seconds for establishing the connection.
        admission: Permit pool gating the attempt.
        connector: Coroutine function performing the connection.

    Returns:
        True if the connection was established before the deadline.
    """
    async with admission.permit():
        try:
            await asyncio.wait_for(connector(ip, port), timeout=timeout)
        except TimeoutError:
            logger.debug("Probe %s:%d timed out after %.1fs", ip, port, timeout)
            return False
        except OSError as e:
            logger.debug("Probe %s:%d failed: %s", ip, port, e)
            return False
        except Exception as e:
            logger.debug("Probe %s:%d errored: %s: %s", ip, port, type(e).__name__, e)
            return False
    return True

"""Per-device alert suppression state.

Each device moves between two states:

- HEALTHY: no record is held for the device.
- ALERTED: a record holds the time of the last dispatched alert.

A failing round on a HEALTHY device, or on an ALERTED device whose cooldown
has elapsed, fires an alert and refreshes the timestamp. A failing round
inside the cooldown is suppressed without touching the record. A healthy
round on an ALERTED device deletes the record silently.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AlertRecord:
    """Alert bookkeeping for a device that has failed since startup.

    Attributes:
        last_alert_timestamp: Epoch seconds of the last dispatched alert.
        is_failed: Whether the device is in an alerted-failure state.
    """

    last_alert_timestamp: float | None = None
    is_failed: bool = False


class AlertState:
    """Owns the alert records of every device.

    ``should_alert`` and ``mark_recovered`` are serialized by a single lock
    so each read-modify-write is atomic with respect to the other. The
    underlying mapping is never handed out; :meth:`get` returns immutable
    snapshots.
    """

    def __init__(self) -> None:
        self._records: dict[str, AlertRecord] = {}
        self._lock = asyncio.Lock()

    async def should_alert(self, device_id: str, now: float, cooldown: float) -> bool:
        """Decide whether a failing device should emit an alert this round.

        Args:
            device_id: Device identifier.
            now: Current time in epoch seconds.
            cooldown: Minimum seconds between alerts for the device.

        Returns:
            True if the alert should fire. The record is then stamped with
            ``now``. False means suppressed and nothing is modified.
        """
        async with self._lock:
            record = self._records.get(device_id, AlertRecord())
            last = record.last_alert_timestamp
            if last is not None and now - last < cooldown:
                logger.debug(
                    "Alert for %s suppressed (%.0fs of %.0fs cooldown elapsed)",
                    device_id,
                    now - last,
                    cooldown,
                )
                return False

            self._records[device_id] = AlertRecord(last_alert_timestamp=now, is_failed=True)
            return True

    async def mark_recovered(self, device_id: str) -> bool:
        """Clear the alert record of a device that is healthy this round.

        Args:
            device_id: Device identifier.

        Returns:
            True if a record existed and was removed, False otherwise.
        """
        async with self._lock:
            if self._records.pop(device_id, None) is None:
                return False
        logger.info("Device %s recovered", device_id)
        return True

    def get(self, device_id: str) -> AlertRecord | None:
        """Return the current record for a device, if any."""
        return self._records.get(device_id)

    def __contains__(self, device_id: object) -> bool:
        return device_id in self._records

    def __len__(self) -> int:
        return len(self._records)

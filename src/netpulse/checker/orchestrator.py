"""Fan-out/fan-in check orchestration.

A round is evaluated in three nested stages, each spawning one task per
child and waiting for all of them:

- IP level: one probe per address of a check item, combined with OR.
- Check level: one IP-level evaluation per check item, combined with AND.
- Fleet level: one check-level evaluation per device, collected by device id.

Only the probes themselves pass through the admission controller. A child
task that dies with an unexpected exception is logged and its contribution
dropped, so it counts neither as a success nor as a failure.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Iterable
from typing import TYPE_CHECKING, TypeVar

from netpulse.checker.models import CheckFailure, CheckResult, DeviceVerdict
from netpulse.checker.probe import Connector, open_tcp, probe

if TYPE_CHECKING:
    from netpulse.checker.admission import AdmissionController
    from netpulse.checker.models import CheckItem, Device

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def _gather_completed(units: Iterable[Awaitable[T]], level: str) -> list[T]:
    """Run units concurrently and return the results of those that completed.

    Units that raised are logged and left out of the result.
    """
    results = await asyncio.gather(*units, return_exceptions=True)
    completed: list[T] = []
    for result in results:
        if isinstance(result, BaseException):
            logger.warning(
                "Dropped %s evaluation that terminated abnormally: %s: %s",
                level,
                type(result).__name__,
                result,
            )
            continue
        completed.append(result)
    return completed


class CheckOrchestrator:
    """Evaluates device reachability with bounded concurrent probing.

    Example:
        ```python
        orchestrator = CheckOrchestrator(AdmissionController(100), timeout=3)
        verdicts = await orchestrator.check_fleet(devices)
        failing = [v for v in verdicts.values() if not v.healthy]
        ```
    """

    def __init__(
        self,
        admission: AdmissionController,
        timeout: float,
        *,
        connector: Connector = open_tcp,
    ) -> None:
        """Initialize the orchestrator.

        Args:
            admission: Permit pool shared by all probes.
            timeout: Per-probe connection deadline in seconds.
            connector: Coroutine function used to open connections.
        """
        self.admission = admission
        self.timeout = timeout
        self.connector = connector

    async def _probe_ip(self, ip: str, port: int) -> tuple[str, bool]:
        ok = await probe(ip, port, self.timeout, self.admission, connector=self.connector)
        return ip, ok

    async def check_item(self, check: CheckItem, ips: Iterable[str]) -> CheckResult:
        """Probe every address for one check item.

        The check is healthy if at least one address accepted the
        connection. All probes run to completion so that every failed
        address is reported.

        Args:
            check: Check item to evaluate.
            ips: Addresses of the device.

        Returns:
            CheckResult carrying the failed addresses in input order.
        """
        outcomes = await _gather_completed(
            (self._probe_ip(ip, check.port) for ip in ips), "probe"
        )
        healthy = any(ok for _, ok in outcomes)
        failed_ips = tuple(ip for ip, ok in outcomes if not ok)
        return CheckResult(check=check, healthy=healthy, failed_ips=failed_ips)

    async def check_device(self, device: Device) -> DeviceVerdict:
        """Evaluate all check items of a device concurrently.

        The device is healthy only if every evaluated check is healthy.

        Args:
            device: Device to evaluate.

        Returns:
            DeviceVerdict with one CheckFailure per failing check.
        """
        results = await _gather_completed(
            (self.check_item(check, device.ips) for check in device.checks), "check"
        )
        failures = tuple(CheckFailure.from_result(r) for r in results if not r.healthy)
        return DeviceVerdict(device=device, healthy=not failures, failures=failures)

    async def check_fleet(self, devices: Iterable[Device]) -> dict[str, DeviceVerdict]:
        """Evaluate every device concurrently.

        Args:
            devices: Devices to evaluate.

        Returns:
            Mapping of device id to verdict. Devices whose evaluation
            terminated abnormally are absent.
        """
        verdicts = await _gather_completed(
            (self.check_device(device) for device in devices), "device"
        )
        return {v.device.id: v for v in verdicts}

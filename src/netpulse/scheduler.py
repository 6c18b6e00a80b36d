"""Round scheduler driving the monitoring loop.

Each round evaluates the whole fleet, clears alert state for healthy
devices, dispatches alerts for failing devices whose cooldown allows it,
and then waits out the remainder of the polling interval.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from contextlib import suppress
from dataclasses import dataclass
from typing import TYPE_CHECKING

from netpulse.metrics import (
    ALERTS_TOTAL,
    FAILING_DEVICES,
    RECOVERIES_TOTAL,
    ROUND_DURATION,
    ROUNDS_TOTAL,
)

if TYPE_CHECKING:
    from netpulse.alerter.notifier import Notifier
    from netpulse.alerter.state import AlertState
    from netpulse.checker.models import Device, DeviceVerdict
    from netpulse.checker.orchestrator import CheckOrchestrator

logger = logging.getLogger(__name__)

# Cumulative totals are logged every this many rounds
SUMMARY_EVERY_ROUNDS = 10

Clock = Callable[[], float]
Sleeper = Callable[[float], Awaitable[None]]


@dataclass
class RoundResult:
    """Outcome of a single round."""

    round_number: int
    failing: int
    alerts_sent: int
    recovered: int
    elapsed: float


@dataclass
class SchedulerStats:
    """Cumulative counters since startup."""

    rounds: int = 0
    alerts: int = 0
    recoveries: int = 0


def compute_wait(interval: float, elapsed: float) -> float:
    """Time to wait before the next round, clamped at zero."""
    return max(0.0, interval - elapsed)


class RoundScheduler:
    """Runs polling rounds until stopped.

    Example:
        ```python
        scheduler = RoundScheduler(
            devices,
            orchestrator,
            AlertState(),
            WebhookNotifier(),
            webhook_url=settings.webhook,
            interval=settings.interval,
            cooldown=settings.alert_cooldown,
        )
        await scheduler.run()
        ```
    """

    def __init__(
        self,
        devices: list[Device],
        orchestrator: CheckOrchestrator,
        alert_state: AlertState,
        notifier: Notifier,
        *,
        webhook_url: str,
        interval: float,
        cooldown: float,
        clock: Clock = time.time,
        monotonic: Clock = time.monotonic,
        sleep: Sleeper | None = None,
    ) -> None:
        """Initialize the scheduler.

        Args:
            devices: Fleet to monitor.
            orchestrator: Evaluates the fleet each round.
            alert_state: Alert suppression state.
            notifier: Delivers alerts.
            webhook_url: Destination passed to the notifier.
            interval: Nominal seconds between round starts.
            cooldown: Minimum seconds between alerts per device.
            clock: Source of epoch timestamps for alert decisions.
            monotonic: Source of elapsed time for pacing.
            sleep: Coroutine used to wait between rounds. Defaults to a
                wait that returns early when :meth:`stop` is called.
        """
        self.devices = devices
        self.orchestrator = orchestrator
        self.alert_state = alert_state
        self.notifier = notifier
        self.webhook_url = webhook_url
        self.interval = interval
        self.cooldown = cooldown
        self._clock = clock
        self._monotonic = monotonic
        self._sleep = sleep or self._interruptible_sleep
        self._stop_event = asyncio.Event()
        self.stats = SchedulerStats()

    @property
    def is_stopped(self) -> bool:
        """Return True once a stop has been requested."""
        return self._stop_event.is_set()

    def stop(self) -> None:
        """Request the loop to exit at the next round boundary."""
        self._stop_event.set()

    async def _interruptible_sleep(self, seconds: float) -> None:
        with suppress(TimeoutError):
            await asyncio.wait_for(self._stop_event.wait(), timeout=seconds)

    async def run(self, max_rounds: int | None = None) -> SchedulerStats:
        """Run rounds until stopped.

        Args:
            max_rounds: Stop after this many rounds. None runs forever.

        Returns:
            Cumulative statistics.
        """
        logger.info(
            "Monitoring %d devices every %ss (cooldown %ss)",
            len(self.devices),
            self.interval,
            self.cooldown,
        )
        while not self.is_stopped:
            start = self._monotonic()
            try:
                await self.run_round()
            except Exception:
                logger.exception("Round %d failed", self.stats.rounds + 1)
            elapsed = self._monotonic() - start

            if max_rounds is not None and self.stats.rounds >= max_rounds:
                break
            if self.is_stopped:
                break

            wait = compute_wait(self.interval, elapsed)
            if wait > 0:
                await self._sleep(wait)

        logger.info(
            "Scheduler stopped after %d rounds (%d alerts, %d recoveries)",
            self.stats.rounds,
            self.stats.alerts,
            self.stats.recoveries,
        )
        return self.stats

    async def run_round(self) -> RoundResult:
        """Evaluate the fleet once and dispatch alerts."""
        round_number = self.stats.rounds + 1
        start = self._monotonic()

        verdicts = await self.orchestrator.check_fleet(self.devices)
        healthy = [v for v in verdicts.values() if v.healthy]
        failing = [v for v in verdicts.values() if not v.healthy]

        recovered = 0
        for verdict in healthy:
            if await self.alert_state.mark_recovered(verdict.device.id):
                recovered += 1

        now = self._clock()
        alerts_sent = 0
        for verdict in failing:
            if await self.alert_state.should_alert(verdict.device.id, now, self.cooldown):
                alerts_sent += 1
                await self._dispatch(verdict)

        elapsed = self._monotonic() - start
        self._record(round_number, len(failing), alerts_sent, recovered, elapsed)
        return RoundResult(
            round_number=round_number,
            failing=len(failing),
            alerts_sent=alerts_sent,
            recovered=recovered,
            elapsed=elapsed,
        )

    async def _dispatch(self, verdict: DeviceVerdict) -> None:
        """Hand an alert to the notifier; delivery problems never escape."""
        try:
            delivered = await self.notifier.notify(
                self.webhook_url, verdict.device, list(verdict.failures)
            )
        except Exception as e:
            logger.error("Notifier failed for %s: %s", verdict.device.id, e)
            return
        if not delivered:
            logger.warning("Alert for %s was not delivered", verdict.device.id)

    def _record(
        self,
        round_number: int,
        failing: int,
        alerts_sent: int,
        recovered: int,
        elapsed: float,
    ) -> None:
        self.stats.rounds = round_number
        self.stats.alerts += alerts_sent
        self.stats.recoveries += recovered

        ROUNDS_TOTAL.inc()
        ALERTS_TOTAL.inc(alerts_sent)
        RECOVERIES_TOTAL.inc(recovered)
        FAILING_DEVICES.set(failing)
        ROUND_DURATION.observe(elapsed)

        if failing == 0:
            logger.info("Round %3d | all healthy | %.1fs", round_number, elapsed)
        else:
            logger.warning(
                "Round %3d | %d device(s) failing | %d alert(s) sent | %.1fs",
                round_number,
                failing,
                alerts_sent,
                elapsed,
            )

        if round_number % SUMMARY_EVERY_ROUNDS == 0:
            logger.info(
                "Totals: %d rounds | %d alerts | %d recoveries",
                self.stats.rounds,
                self.stats.alerts,
                self.stats.recoveries,
            )

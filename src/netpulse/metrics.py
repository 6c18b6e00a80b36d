"""Prometheus metrics for the monitoring loop.

Metrics are registered on the default ``prometheus_client`` registry and
can be exposed with :func:`start_metrics_server`.
"""

from __future__ import annotations

import logging

from prometheus_client import Counter, Gauge, Histogram, start_http_server

logger = logging.getLogger(__name__)

ROUNDS_TOTAL = Counter(
    "netpulse_rounds_total",
    "Total number of completed polling rounds",
)

ALERTS_TOTAL = Counter(
    "netpulse_alerts_total",
    "Total number of alerts dispatched to the notifier",
)

RECOVERIES_TOTAL = Counter(
    "netpulse_recoveries_total",
    "Total number of devices that recovered from an alerted failure",
)

FAILING_DEVICES = Gauge(
    "netpulse_failing_devices",
    "Number of devices failing in the most recent round",
)

PROBES_IN_FLIGHT = Gauge(
    "netpulse_probes_in_flight",
    "Number of TCP connection attempts currently holding an admission permit",
)

ROUND_DURATION = Histogram(
    "netpulse_round_duration_seconds",
    "Wall-clock duration of the check and dispatch phase of a round",
    buckets=[0.1, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0, 120.0],
)


def start_metrics_server(port: int) -> None:
    """Expose the default registry over HTTP on ``port``."""
    start_http_server(port)
    logger.info("Metrics exporter listening on port %d", port)

"""Alerting layer - suppression state and best-effort notification."""

from netpulse.alerter.formatter import AlertFormatter
from netpulse.alerter.models import FormattedAlert
from netpulse.alerter.notifier import DryRunNotifier, Notifier, WebhookNotifier
from netpulse.alerter.state import AlertRecord, AlertState

__all__ = [
    "AlertFormatter",
    "AlertRecord",
    "AlertState",
    "DryRunNotifier",
    "FormattedAlert",
    "Notifier",
    "WebhookNotifier",
]

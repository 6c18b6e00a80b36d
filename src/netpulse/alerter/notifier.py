"""Alert delivery to group-chat webhooks."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Protocol

import httpx

from netpulse.alerter.formatter import AlertFormatter

if TYPE_CHECKING:
    from collections.abc import Sequence

    from netpulse.checker.models import CheckFailure, Device

logger = logging.getLogger(__name__)

DEFAULT_WEBHOOK_TIMEOUT = 10.0


class Notifier(Protocol):
    """Protocol for alert delivery."""

    async def notify(
        self, webhook_url: str, device: Device, failures: Sequence[CheckFailure]
    ) -> bool:
        """Deliver an alert for a failing device. Returns True on success."""
        ...


class WebhookNotifier:
    """Posts markdown alerts to a WeCom-style group robot webhook.

    Delivery is best effort: a single attempt is made, failures are
    logged and reported through the return value, never raised.
    """

    def __init__(
        self,
        formatter: AlertFormatter | None = None,
        *,
        timeout: float = DEFAULT_WEBHOOK_TIMEOUT,
    ) -> None:
        """Initialize the notifier.

        Args:
            formatter: Formatter used to render alerts.
            timeout: HTTP request timeout in seconds.
        """
        self.formatter = formatter or AlertFormatter()
        self.timeout = timeout
        self.name = "webhook"

    def build_payload(self, device: Device, failures: Sequence[CheckFailure]) -> dict[str, object]:
        """Build the webhook JSON payload."""
        alert = self.formatter.format(device, failures)
        return {
            "msgtype": "markdown",
            "markdown": {"content": alert.markdown},
        }

    async def notify(
        self, webhook_url: str, device: Device, failures: Sequence[CheckFailure]
    ) -> bool:
        """Send an alert to the webhook.

        Args:
            webhook_url: Target webhook URL.
            device: Failing device.
            failures: Failed checks for this round.

        Returns:
            True if the webhook accepted the message, False otherwise.
        """
        payload = self.build_payload(device, failures)

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(webhook_url, json=payload)
        except httpx.TimeoutException:
            logger.warning("Webhook timeout delivering alert for %s", device.id)
            return False
        except httpx.HTTPError as e:
            logger.warning("Webhook error delivering alert for %s: %s", device.id, e)
            return False

        if not response.is_success:
            logger.warning(
                "Webhook rejected alert for %s: %s %s",
                device.id,
                response.status_code,
                response.text,
            )
            return False

        try:
            body = response.json()
        except ValueError:
            body = {}
        errcode = body.get("errcode", 0) if isinstance(body, dict) else 0
        if errcode:
            logger.warning(
                "Webhook returned errcode %s for %s: %s",
                errcode,
                device.id,
                body.get("errmsg", ""),
            )
            return False

        logger.debug("Alert for %s delivered", device.id)
        return True


class DryRunNotifier:
    """Logs rendered alerts instead of sending them."""

    def __init__(self, formatter: AlertFormatter | None = None) -> None:
        """Initialize the notifier.

        Args:
            formatter: Formatter used to render alerts.
        """
        self.formatter = formatter or AlertFormatter()
        self.name = "dry-run"
        self.sent: list[str] = []

    async def notify(
        self, webhook_url: str, device: Device, failures: Sequence[CheckFailure]
    ) -> bool:
        """Log the rendered alert and record the device id. Always succeeds."""
        alert = self.formatter.format(device, failures)
        self.sent.append(device.id)
        logger.info("[dry-run] Would send alert:\n%s", alert.plain_text)
        return True

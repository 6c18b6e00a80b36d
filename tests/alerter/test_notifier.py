"""Tests for webhook alert delivery."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterator
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

from netpulse.alerter.notifier import DryRunNotifier, WebhookNotifier
from netpulse.checker.models import CheckFailure, Device

WEBHOOK = "https://qyapi.weixin.qq.com/cgi-bin/webhook/send?key=abc"

# ============================================================================
# Fixtures
# ============================================================================


@pytest.fixture
def device(make_device: Callable[..., Device]) -> Device:
    """Create a sample device."""
    return make_device("sw-1")


@pytest.fixture
def failures() -> list[CheckFailure]:
    """Create a single failure."""
    return [CheckFailure(check_name="ssh", port=22, attempted_ips=("10.0.0.1",))]


@pytest.fixture
def mock_client() -> Iterator[AsyncMock]:
    """Patch httpx.AsyncClient with an async context manager mock."""
    with patch("httpx.AsyncClient") as mock_client_class:
        client = AsyncMock()
        client.__aenter__.return_value = client
        client.__aexit__.return_value = None
        mock_client_class.return_value = client
        yield client


def make_response(status_code: int = 200, body: object = None) -> MagicMock:
    response = MagicMock()
    response.status_code = status_code
    response.is_success = 200 <= status_code < 300
    response.text = "" if body is None else str(body)
    response.json.return_value = {"errcode": 0, "errmsg": "ok"} if body is None else body
    return response


# ============================================================================
# WebhookNotifier Tests
# ============================================================================


class TestWebhookPayload:
    """Tests for payload construction."""

    def test_markdown_payload(self, device: Device, failures: list[CheckFailure]) -> None:
        """Payload should follow the markdown robot message shape."""
        payload = WebhookNotifier().build_payload(device, failures)

        assert payload["msgtype"] == "markdown"
        content = payload["markdown"]["content"]  # type: ignore[index]
        assert "Device sw-1" in content
        assert "10.0.0.1" in content


class TestWebhookNotifier:
    """Tests for delivery outcomes."""

    @pytest.mark.asyncio
    async def test_send_success(
        self, mock_client: AsyncMock, device: Device, failures: list[CheckFailure]
    ) -> None:
        """A 200 with errcode 0 is a successful delivery."""
        mock_client.post.return_value = make_response()

        result = await WebhookNotifier().notify(WEBHOOK, device, failures)

        assert result is True
        mock_client.post.assert_called_once()
        args, kwargs = mock_client.post.call_args
        assert args[0] == WEBHOOK
        assert kwargs["json"]["msgtype"] == "markdown"

    @pytest.mark.asyncio
    async def test_http_error_status(
        self, mock_client: AsyncMock, device: Device, failures: list[CheckFailure]
    ) -> None:
        """Non-2xx responses are reported as failures without retry."""
        mock_client.post.return_value = make_response(500, "Internal Server Error")

        result = await WebhookNotifier().notify(WEBHOOK, device, failures)

        assert result is False
        mock_client.post.assert_called_once()

    @pytest.mark.asyncio
    async def test_errcode_rejection(
        self, mock_client: AsyncMock, device: Device, failures: list[CheckFailure]
    ) -> None:
        """A non-zero errcode in a 200 body is a failure."""
        mock_client.post.return_value = make_response(
            200, {"errcode": 93000, "errmsg": "invalid webhook url"}
        )

        assert await WebhookNotifier().notify(WEBHOOK, device, failures) is False

    @pytest.mark.asyncio
    async def test_non_json_body_counts_as_success(
        self, mock_client: AsyncMock, device: Device, failures: list[CheckFailure]
    ) -> None:
        """Generic webhooks may answer 2xx without a JSON body."""
        response = make_response(204)
        response.json.side_effect = ValueError("no body")
        mock_client.post.return_value = response

        assert await WebhookNotifier().notify(WEBHOOK, device, failures) is True

    @pytest.mark.asyncio
    async def test_timeout_is_swallowed(
        self, mock_client: AsyncMock, device: Device, failures: list[CheckFailure]
    ) -> None:
        """Timeouts are reported, not raised."""
        mock_client.post.side_effect = httpx.ReadTimeout("timed out")

        assert await WebhookNotifier().notify(WEBHOOK, device, failures) is False
        mock_client.post.assert_called_once()

    @pytest.mark.asyncio
    async def test_transport_error_is_swallowed(
        self, mock_client: AsyncMock, device: Device, failures: list[CheckFailure]
    ) -> None:
        """Connection errors are reported, not raised."""
        mock_client.post.side_effect = httpx.ConnectError("refused")

        assert await WebhookNotifier().notify(WEBHOOK, device, failures) is False


# ============================================================================
# DryRunNotifier Tests
# ============================================================================


class TestDryRunNotifier:
    """Tests for the logging-only notifier."""

    @pytest.mark.asyncio
    async def test_records_without_sending(
        self, device: Device, failures: list[CheckFailure]
    ) -> None:
        """Dry runs should never touch the network."""
        notifier = DryRunNotifier()

        with patch("httpx.AsyncClient") as mock_client_class:
            result = await notifier.notify(WEBHOOK, device, failures)

        assert result is True
        assert notifier.sent == ["sw-1"]
        mock_client_class.assert_not_called()

    @pytest.mark.asyncio
    async def test_logs_rendered_alert(
        self,
        device: Device,
        failures: list[CheckFailure],
        caplog: pytest.LogCaptureFixture,
    ) -> None:
        """The plain-text rendering is written to the log."""
        with caplog.at_level(logging.INFO, logger="netpulse.alerter.notifier"):
            await DryRunNotifier().notify(WEBHOOK, device, failures)

        assert "[dry-run] Would send alert" in caplog.text
        assert "DEVICE FAILURE: Device sw-1 (sw-1)" in caplog.text

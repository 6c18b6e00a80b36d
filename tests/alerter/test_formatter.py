"""Tests for alert message formatting."""

from __future__ import annotations

from collections.abc import Callable

import pytest

from netpulse.alerter.formatter import (
    DEFAULT_PRIORITY_MARKER,
    MAX_DISPLAY_IPS,
    AlertFormatter,
    count_affected_ips,
    get_priority_marker,
    render_failure_tree,
)
from netpulse.alerter.models import FormattedAlert
from netpulse.checker.models import CheckFailure, Device

# ============================================================================
# Fixtures
# ============================================================================


@pytest.fixture
def device(make_device: Callable[..., Device]) -> Device:
    """Create a critical device."""
    return make_device("core-1", ips=("10.0.0.1", "10.0.0.2"), ports=(22, 443), priority="critical")


@pytest.fixture
def failures() -> list[CheckFailure]:
    """Create two failed checks."""
    return [
        CheckFailure(check_name="ssh", port=22, attempted_ips=("10.0.0.1",)),
        CheckFailure(check_name="port:443", port=443, attempted_ips=("10.0.0.1", "10.0.0.2")),
    ]


# ============================================================================
# Helper Tests
# ============================================================================


class TestPriorityMarker:
    """Tests for priority marker mapping."""

    @pytest.mark.parametrize(
        ("priority", "marker"),
        [("critical", "🔴"), ("high", "🟠"), ("medium", "🟡"), ("CRITICAL", "🔴")],
    )
    def test_known_priorities(self, priority: str, marker: str) -> None:
        """Known priorities map to their markers."""
        assert get_priority_marker(priority) == marker

    def test_unknown_priority(self) -> None:
        """Anything else falls back to the default marker."""
        assert get_priority_marker("low") == DEFAULT_PRIORITY_MARKER
        assert get_priority_marker("") == DEFAULT_PRIORITY_MARKER


class TestFailureTree:
    """Tests for the failure tree rendering."""

    def test_counts(self, failures: list[CheckFailure]) -> None:
        """Summary line reports checks and affected IPs."""
        assert count_affected_ips(failures) == 3
        tree = render_failure_tree(failures)
        assert tree.splitlines()[-1] == "└─ Summary: 2 check(s) failed | 3 IP(s) affected"

    def test_lists_every_ip_under_limit(self, failures: list[CheckFailure]) -> None:
        """All addresses should appear when under the display limit."""
        tree = render_failure_tree(failures)
        assert "ssh (port 22)" in tree
        assert "│  └─ 10.0.0.2" in tree
        assert "more IP" not in tree

    def test_truncates_long_ip_lists(self) -> None:
        """Only the first addresses are shown, the rest summarized."""
        ips = tuple(f"10.0.0.{i}" for i in range(MAX_DISPLAY_IPS + 5))
        tree = render_failure_tree([CheckFailure("web", 80, ips)])

        assert "10.0.0.9" in tree
        assert "10.0.0.10" not in tree
        assert "... 5 more IP(s)" in tree
        assert "15 IP(s) affected" in tree


# ============================================================================
# AlertFormatter Tests
# ============================================================================


class TestAlertFormatter:
    """Tests for the full alert rendering."""

    def test_format_returns_alert(self, device: Device, failures: list[CheckFailure]) -> None:
        """Formatting should produce every rendering."""
        alert = AlertFormatter().format(device, failures)

        assert isinstance(alert, FormattedAlert)
        assert alert.failed_checks == 2
        assert alert.affected_ips == 3
        assert alert.title == "🔴 Device core-1 is unreachable"

    def test_markdown_contents(self, device: Device, failures: list[CheckFailure]) -> None:
        """Markdown should carry device context and the failure block."""
        markdown = AlertFormatter().format(device, failures).markdown

        assert markdown.startswith("🔴 **Device core-1** failure alert")
        assert "> Location: Rack 1" in markdown
        assert "> OS: Linux | Group: lab" in markdown
        assert "> Priority: critical" in markdown
        assert markdown.count("```") == 2
        assert '<font color="warning">' in markdown

    def test_plain_text(self, device: Device, failures: list[CheckFailure]) -> None:
        """Plain text should identify the device by id."""
        text = AlertFormatter().format(device, failures).plain_text
        assert text.startswith("DEVICE FAILURE: Device core-1 (core-1)")

    def test_custom_display_limit(self, device: Device) -> None:
        """The formatter's display limit should be honoured."""
        failure = CheckFailure("ssh", 22, ("a", "b", "c"))
        markdown = AlertFormatter(max_display_ips=1).format(device, [failure]).markdown
        assert "... 2 more IP(s)" in markdown

"""Alert message formatter for webhook delivery.

This module turns a failing device and its check failures into a
markdown message for group-chat webhooks and a plain text fallback.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from netpulse.alerter.models import FormattedAlert

if TYPE_CHECKING:
    from collections.abc import Sequence

    from netpulse.checker.models import CheckFailure, Device

# Addresses listed per failed check before the remainder is summarized
MAX_DISPLAY_IPS = 10

PRIORITY_MARKERS = {
    "critical": "🔴",
    "high": "🟠",
    "medium": "🟡",
}
DEFAULT_PRIORITY_MARKER = "🔵"

REMEDIATION_HINT = "Check device power, network links and service status."


def get_priority_marker(priority: str) -> str:
    """Get the severity marker for a device priority."""
    return PRIORITY_MARKERS.get(priority.lower(), DEFAULT_PRIORITY_MARKER)


def count_affected_ips(failures: Sequence[CheckFailure]) -> int:
    """Count failed addresses across all failures."""
    return sum(len(f.attempted_ips) for f in failures)


def render_failure_tree(failures: Sequence[CheckFailure], max_ips: int = MAX_DISPLAY_IPS) -> str:
    """Render failures as a box-drawn tree.

    Each failed check lists at most ``max_ips`` addresses; the rest are
    collapsed into a single "more" line.
    """
    lines: list[str] = []
    for idx, failure in enumerate(failures):
        lines.append(f"┌─ ✖ {failure.check_name} (port {failure.port})")

        shown = failure.attempted_ips[:max_ips]
        hidden = len(failure.attempted_ips) - len(shown)
        for ip_idx, ip in enumerate(shown):
            last = ip_idx == len(shown) - 1 and hidden == 0
            connector = "│  └─" if last else "│  ├─"
            lines.append(f"{connector} {ip}")
        if hidden > 0:
            lines.append(f"│  └─ ... {hidden} more IP(s)")

        if idx < len(failures) - 1:
            lines.append("│")

    lines.append(
        f"└─ Summary: {len(failures)} check(s) failed | "
        f"{count_affected_ips(failures)} IP(s) affected"
    )
    return "\n".join(lines)


class AlertFormatter:
    """Formats device failures into webhook-ready alerts."""

    def __init__(self, max_display_ips: int = MAX_DISPLAY_IPS) -> None:
        """Initialize the formatter.

        Args:
            max_display_ips: Addresses listed per failed check.
        """
        self.max_display_ips = max_display_ips

    def format(self, device: Device, failures: Sequence[CheckFailure]) -> FormattedAlert:
        """Format a failing device into an alert.

        Args:
            device: The failing device.
            failures: Failed checks for this round.

        Returns:
            FormattedAlert with markdown and plain text renderings.
        """
        marker = get_priority_marker(device.priority)
        title = f"{marker} {device.name} is unreachable"
        tree = render_failure_tree(failures, self.max_display_ips)

        markdown = "\n".join(
            [
                f"{marker} **{device.name}** failure alert",
                "",
                f"> Location: {device.location}",
                f"> OS: {device.os} | Group: {device.group}",
                f"> Priority: {device.priority}",
                "",
                "**Failure details**:",
                "```",
                tree,
                "```",
                "---",
                f'<font color="warning">{REMEDIATION_HINT}</font>',
            ]
        )

        plain_text = "\n".join(
            [
                f"DEVICE FAILURE: {device.name} ({device.id})",
                f"Location: {device.location} | Group: {device.group} | Priority: {device.priority}",
                tree,
            ]
        )

        return FormattedAlert(
            title=title,
            markdown=markdown,
            plain_text=plain_text,
            failed_checks=len(failures),
            affected_ips=count_affected_ips(failures),
        )

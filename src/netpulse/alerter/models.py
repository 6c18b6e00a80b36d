"""Data models for the alerter module."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class FormattedAlert:
    """A device failure alert rendered for delivery.

    Attributes:
        title: Short alert headline.
        markdown: Webhook markdown body.
        plain_text: Plain text rendering for logs and dry runs.
        failed_checks: Number of failed checks in the alert.
        affected_ips: Number of failed addresses across all checks.
    """

    title: str
    markdown: str
    plain_text: str
    failed_checks: int
    affected_ips: int

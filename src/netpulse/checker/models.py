"""Data models for the check engine."""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class CheckItem:
    """A single TCP port to verify on every address of a device.

    Attributes:
        port: TCP port number (1-65535).
        name: Optional human label. Empty means use ``port:<port>``.
    """

    port: int
    name: str = ""

    @property
    def display_name(self) -> str:
        """Label used in failure details and alerts."""
        return self.name or f"port:{self.port}"


@dataclass(frozen=True)
class Device:
    """A monitored network device.

    Attributes:
        id: Unique, stable identifier used as the alert-state key.
        name: Human-readable device name.
        group: Logical group (site, rack, team).
        priority: Severity hint used only for alert styling.
        ips: Addresses to probe, in configured order.
        os: Operating system description.
        location: Physical location description.
        checks: Ports to verify on every address.
    """

    id: str
    name: str
    group: str
    priority: str
    ips: tuple[str, ...]
    os: str
    location: str
    checks: tuple[CheckItem, ...]


@dataclass(frozen=True)
class CheckResult:
    """Outcome of one check item across all of a device's addresses."""

    check: CheckItem
    healthy: bool
    failed_ips: tuple[str, ...] = ()


@dataclass(frozen=True)
class CheckFailure:
    """A check that failed on a device during one round.

    Attributes:
        check_name: Display name of the failed check.
        port: Port that was probed.
        attempted_ips: Every address on which the probe failed.
    """

    check_name: str
    port: int
    attempted_ips: tuple[str, ...]

    @classmethod
    def from_result(cls, result: CheckResult) -> CheckFailure:
        """Build failure detail from an unhealthy check result."""
        return cls(
            check_name=result.check.display_name,
            port=result.check.port,
            attempted_ips=result.failed_ips,
        )


@dataclass(frozen=True)
class DeviceVerdict:
    """Healthy/failing outcome for one device in one round."""

    device: Device
    healthy: bool
    failures: tuple[CheckFailure, ...] = field(default_factory=tuple)

    @property
    def failed_ip_count(self) -> int:
        """Total number of failed addresses across all failed checks."""
        return sum(len(f.attempted_ips) for f in self.failures)

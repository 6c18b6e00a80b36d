"""Shared fixtures for netpulse tests."""

from __future__ import annotations

from collections.abc import Callable

import pytest

from netpulse.checker.models import CheckItem, Device


def build_device(
    device_id: str = "dev-1",
    *,
    ips: tuple[str, ...] = ("10.0.0.1",),
    ports: tuple[int, ...] = (22,),
    priority: str = "high",
) -> Device:
    """Create a device with one check item per port."""
    return Device(
        id=device_id,
        name=f"Device {device_id}",
        group="lab",
        priority=priority,
        ips=ips,
        os="Linux",
        location="Rack 1",
        checks=tuple(CheckItem(port=p) for p in ports),
    )


@pytest.fixture
def make_device() -> Callable[..., Device]:
    """Factory for test devices."""
    return build_device

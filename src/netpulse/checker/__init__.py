"""Check engine - bounded concurrent TCP reachability probing."""

from netpulse.checker.admission import AdmissionController
from netpulse.checker.models import (
    CheckFailure,
    CheckItem,
    CheckResult,
    Device,
    DeviceVerdict,
)
from netpulse.checker.orchestrator import CheckOrchestrator
from netpulse.checker.probe import Connector, open_tcp, probe

__all__ = [
    "AdmissionController",
    "CheckFailure",
    "CheckItem",
    "CheckOrchestrator",
    "CheckResult",
    "Connector",
    "Device",
    "DeviceVerdict",
    "open_tcp",
    "probe",
]

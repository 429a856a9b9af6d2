# driverbench/__init__.py
# Öffentliche API: Transport, Probe, Harness, Report
from __future__ import annotations

from .errors import ConfigError
from .harness import ComparisonReport, Recommendation, run_comparison, run_search_probe
from .models import (
    CostRecord,
    Driver,
    DriverSummary,
    Envelope,
    ModelPair,
    ProbeResult,
    SearchModel,
    TokensRecord,
)
from .probe import DriverProbe
from .report import ReportSink
from .transport import DriversTransport

__all__ = [
    "ComparisonReport",
    "ConfigError",
    "CostRecord",
    "Driver",
    "DriverProbe",
    "DriverSummary",
    "DriversTransport",
    "Envelope",
    "ModelPair",
    "ProbeResult",
    "Recommendation",
    "ReportSink",
    "SearchModel",
    "TokensRecord",
    "run_comparison",
    "run_search_probe",
]

"""Speedbench library -- server directory, target selection and benchmarking."""

from .directory import ServerCatalog, ServerDescriptor, ServerDirectory, parse_catalog
from .errors import (
    DirectoryEmpty,
    DirectoryUnavailable,
    LocatorUnavailable,
    SpeedbenchError,
)
from .geo import Coordinate, distance
from .locator import ClientInfo, parse_client_info
from .orchestrator import (
    Aggregate,
    BenchmarkOrchestrator,
    BenchmarkReport,
    ProbeOutcome,
    ReportSink,
    TargetResult,
    aggregate,
)
from .probes import ProbeFailed, SpeedtestProbes, TransportProbes
from .selector import select_targets

__version__ = "1.1.1"

__all__ = [
    "Aggregate",
    "BenchmarkOrchestrator",
    "BenchmarkReport",
    "ClientInfo",
    "Coordinate",
    "DirectoryEmpty",
    "DirectoryUnavailable",
    "LocatorUnavailable",
    "ProbeFailed",
    "ProbeOutcome",
    "ReportSink",
    "ServerCatalog",
    "ServerDescriptor",
    "ServerDirectory",
    "SpeedbenchError",
    "SpeedtestProbes",
    "TargetResult",
    "TransportProbes",
    "aggregate",
    "distance",
    "parse_catalog",
    "parse_client_info",
    "select_targets",
]

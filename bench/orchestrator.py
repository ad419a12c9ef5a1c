"""
Benchmark orchestration.

Drives the transport probes against each selected target, keeps one
immutable :class:`TargetResult` per target, and renders the report lines
to an injected :class:`ReportSink`.

Within a target, probes always run latency -> download -> upload, each one
finishing before the next starts.  Targets run one at a time unless a
``concurrency`` above one is requested; report lines come out in target
order either way.
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Dict, List, Optional, Protocol, Sequence

from .constants import DEFAULT_CONCURRENCY, DEFAULT_PROBE_TIMEOUT
from .directory import ServerDescriptor
from .probes import TransportProbes
from .stats import is_valid_reading, mean

logger = logging.getLogger(__name__)


class ReportSink(Protocol):
    """Destination for formatted report lines."""

    def line(self, text: str) -> None:
        ...


# ---------------------------------------------------------------------------
# Result records
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ProbeOutcome:
    """One probe reading.  A failed probe reads ``0.0`` with ``ok=False``."""

    value: float = 0.0
    ok: bool = True
    error: Optional[str] = None

    @classmethod
    def failed(cls, error: str) -> ProbeOutcome:
        return cls(value=0.0, ok=False, error=error)

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {"value": round(self.value, 2), "ok": self.ok}
        if self.error:
            result["error"] = self.error
        return result


@dataclass(frozen=True)
class TargetResult:
    """Latency (ms) and throughput (Mbit/s) measured against one server."""

    server: ServerDescriptor
    latency: ProbeOutcome
    download: ProbeOutcome
    upload: ProbeOutcome

    @property
    def server_id(self) -> str:
        return self.server.id

    @property
    def failed_probes(self) -> List[str]:
        return [
            name
            for name, outcome in (
                ("latency", self.latency),
                ("download", self.download),
                ("upload", self.upload),
            )
            if not outcome.ok
        ]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "server": self.server.to_dict(),
            "latency_ms": self.latency.to_dict(),
            "download_mbps": self.download.to_dict(),
            "upload_mbps": self.upload.to_dict(),
        }


@dataclass(frozen=True)
class Aggregate:
    """Mean throughput across all targets of a multi-target run."""

    download_mbps: float
    upload_mbps: float

    def to_dict(self) -> Dict[str, float]:
        return {
            "download_mbps": round(self.download_mbps, 2),
            "upload_mbps": round(self.upload_mbps, 2),
        }


def aggregate(results: Sequence[TargetResult]) -> Optional[Aggregate]:
    """Mean download / upload, or ``None`` unless there are two or more results.

    Degraded readings count as zero.
    """
    if len(results) < 2:
        return None
    return Aggregate(
        download_mbps=mean([r.download.value for r in results]),
        upload_mbps=mean([r.upload.value for r in results]),
    )


@dataclass
class BenchmarkReport:
    """Everything one run produced, in target order."""

    results: List[TargetResult]
    average: Optional[Aggregate] = None
    lines: List[str] = field(default_factory=list)

    def by_id(self) -> Dict[str, TargetResult]:
        return {r.server_id: r for r in self.results}

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {"servers": [r.to_dict() for r in self.results]}
        if self.average is not None:
            result["average"] = self.average.to_dict()
        return result


# ---------------------------------------------------------------------------
# Line formatting
# ---------------------------------------------------------------------------

def _mark(*outcomes: ProbeOutcome) -> str:
    return " (failed)" if any(not o.ok for o in outcomes) else ""


def format_target(server: ServerDescriptor) -> str:
    return f"Target Server: {server}"


def format_single(result: TargetResult) -> List[str]:
    return [
        f"Download: {result.download.value:5.2f} Mbit/s{_mark(result.download)}",
        f"Upload: {result.upload.value:5.2f} Mbit/s{_mark(result.upload)}",
    ]


def format_row(result: TargetResult) -> str:
    return (
        f"[{result.server_id:>4}] Download: {result.download.value:5.2f} Mbit/s, "
        f"Upload: {result.upload.value:5.2f} Mbit/s"
        f"{_mark(result.download, result.upload)}"
    )


def format_average(avg: Aggregate) -> List[str]:
    return [
        f"Download Avg: {avg.download_mbps:5.2f} Mbit/s",
        f"Upload Avg: {avg.upload_mbps:5.2f} Mbit/s",
    ]


# ---------------------------------------------------------------------------
# Orchestrator
# ---------------------------------------------------------------------------

class BenchmarkOrchestrator:
    """Benchmark a list of targets and report per-target and mean results."""

    def __init__(
        self,
        probes: TransportProbes,
        sink: ReportSink,
        probe_timeout: float = DEFAULT_PROBE_TIMEOUT,
        concurrency: int = DEFAULT_CONCURRENCY,
    ) -> None:
        self.probes = probes
        self.sink = sink
        self.probe_timeout = probe_timeout
        self.concurrency = max(1, concurrency)

    async def run(self, targets: Sequence[ServerDescriptor]) -> BenchmarkReport:
        """Benchmark *targets* and emit the report lines.

        With ``concurrency`` above one, every ``Target Server`` line is
        emitted before any probing starts; result lines follow in target
        order.
        """
        if not targets:
            raise ValueError("at least one benchmark target is required")

        report = BenchmarkReport(results=[])

        if self.concurrency == 1:
            for server in targets:
                self._emit(report, format_target(server))
                report.results.append(await self._benchmark(server))
        else:
            for server in targets:
                self._emit(report, format_target(server))
            sem = asyncio.Semaphore(self.concurrency)

            async def _guarded(srv: ServerDescriptor) -> TargetResult:
                async with sem:
                    return await self._benchmark(srv)

            # gather keeps input order, whatever order targets finish in
            report.results.extend(await asyncio.gather(*[_guarded(s) for s in targets]))

        if len(report.results) == 1:
            for text in format_single(report.results[0]):
                self._emit(report, text)
        else:
            for result in report.results:
                self._emit(report, format_row(result))
            report.average = aggregate(report.results)
            for text in format_average(report.average):
                self._emit(report, text)

        return report

    # -- Internals ----------------------------------------------------------

    def _emit(self, report: BenchmarkReport, text: str) -> None:
        report.lines.append(text)
        self.sink.line(text)

    async def _benchmark(self, server: ServerDescriptor) -> TargetResult:
        latency = await self._probe("latency", server, self.probes.ping(server.url))
        hint = latency.value if latency.ok else 0.0
        download = await self._probe(
            "download", server, self.probes.download_throughput(server.url, hint)
        )
        upload = await self._probe(
            "upload", server, self.probes.upload_throughput(server.url, hint)
        )
        return TargetResult(server=server, latency=latency, download=download, upload=upload)

    async def _probe(
        self,
        name: str,
        server: ServerDescriptor,
        measurement: Awaitable[float],
    ) -> ProbeOutcome:
        """Await one probe, turning timeouts, errors and bad readings into
        a failed outcome so the rest of the schedule still runs."""
        try:
            value = await asyncio.wait_for(measurement, timeout=self.probe_timeout)
        except asyncio.TimeoutError:
            error = f"timed out after {self.probe_timeout:g}s"
        except Exception as exc:  # noqa: BLE001
            error = str(exc) or type(exc).__name__
        else:
            if is_valid_reading(value):
                return ProbeOutcome(value=float(value))
            error = f"invalid reading {value!r}"

        logger.warning("%s probe against server %s failed: %s", name.capitalize(), server.id, error)
        return ProbeOutcome.failed(error)

"""
Transport probes consumed by the benchmark orchestrator.

The orchestrator only needs three numbers per target, so it talks to any
object implementing :class:`TransportProbes`.  :class:`SpeedtestProbes` is
the real implementation backed by the latency, download and upload testers.
"""
from __future__ import annotations

from typing import Protocol

from .constants import (
    DEFAULT_CONNECTIONS,
    DEFAULT_DURATION,
    DEFAULT_PING_COUNT,
    SAVING_BUFFER_SIZE,
    SAVING_CHUNK_SIZE,
)
from .download import DownloadTester
from .errors import SpeedbenchError
from .latency import LatencyTester
from .transfer import TransferResult
from .upload import UploadTester


class ProbeFailed(SpeedbenchError):
    """A probe ran but produced no usable measurement."""


class TransportProbes(Protocol):
    """Measurement entry points, keyed by a server's endpoint URL."""

    async def ping(self, url: str) -> float:
        """Round-trip latency in milliseconds."""
        ...

    async def download_throughput(self, url: str, latency_ms: float) -> float:
        """Download rate in Mbit/s."""
        ...

    async def upload_throughput(self, url: str, latency_ms: float) -> float:
        """Upload rate in Mbit/s."""
        ...


class SpeedtestProbes:
    """WebSocket latency plus multi-connection HTTP transfer probes."""

    def __init__(
        self,
        ping_count: int = DEFAULT_PING_COUNT,
        download_duration: float = DEFAULT_DURATION,
        upload_duration: float = DEFAULT_DURATION,
        connections: int = DEFAULT_CONNECTIONS,
        saving_mode: bool = False,
    ) -> None:
        self.latency = LatencyTester(ping_count=ping_count)
        if saving_mode:
            # One connection and small buffers: far less memory, less accurate
            # on fast links.
            self.download = DownloadTester(
                duration_seconds=download_duration,
                connections=1,
                chunk_size=SAVING_CHUNK_SIZE,
            )
            self.upload = UploadTester(
                duration_seconds=upload_duration,
                connections=1,
                chunk_size=SAVING_CHUNK_SIZE,
                buffer_size=SAVING_BUFFER_SIZE,
            )
        else:
            self.download = DownloadTester(
                duration_seconds=download_duration,
                connections=connections,
            )
            self.upload = UploadTester(
                duration_seconds=upload_duration,
                connections=connections,
            )

    async def ping(self, url: str) -> float:
        result = await self.latency.test(url)
        if not result.success:
            raise ProbeFailed(result.error or "latency test failed")
        return result.latency_ms

    async def download_throughput(self, url: str, latency_ms: float) -> float:
        return _rate(await self.download.test(url, latency_ms), "download")

    async def upload_throughput(self, url: str, latency_ms: float) -> float:
        return _rate(await self.upload.test(url, latency_ms), "upload")


def _rate(result: TransferResult, label: str) -> float:
    if result.bytes_total == 0:
        raise ProbeFailed(f"no data transferred during {label}")
    return result.speed_mbps

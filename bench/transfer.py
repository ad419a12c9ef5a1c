"""
Shared machinery for timed, multi-connection transfer tests.

Download and upload differ only in what a worker does with its HTTP
connection.  Everything else lives here: the stop event and deadline, the
shared byte counter, the throughput sampler with warm-up discard, and the
IQM-based final speed.
"""
from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import Awaitable, Callable, List

from .constants import MAX_REASONABLE_SPEED, SAMPLE_INTERVAL, WARMUP_SECONDS
from .stats import ConnectionStats, calculate_iqm

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Result
# ---------------------------------------------------------------------------

@dataclass
class TransferResult:
    """Download or upload test result."""

    speed_mbps: float = 0.0
    bytes_total: int = 0
    duration_ms: float = 0.0
    samples: List[float] = field(default_factory=list)

    def calculate(self) -> None:
        """Derive speed from total bytes and wall-clock duration."""
        if self.duration_ms > 0:
            self.speed_mbps = (self.bytes_total * 8) / (self.duration_ms / 1000) / 1_000_000

    def calculate_from_samples(self) -> None:
        """Use interquartile mean of speed samples for a more stable result."""
        if not self.samples:
            self.calculate()
            return

        trimmed = calculate_iqm(self.samples)
        if trimmed > 0:
            self.speed_mbps = trimmed


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def endpoint_base(url: str) -> str:
    """Directory holding ``upload.php`` and the ``random*.jpg`` images."""
    if "/upload" in url:
        return url.split("/upload")[0]
    return url.rsplit("/", 1)[0] if url.count("/") > 2 else url.rstrip("/")


def warmup_speed(n_bytes: int, elapsed_s: float, latency_ms: float) -> float:
    """
    Mbps for a warm-up transfer, with one round-trip taken off the clock.

    If the latency hint is larger than the elapsed time the raw elapsed time
    is used instead.
    """
    effective = elapsed_s - latency_ms / 1000
    if effective <= 0:
        effective = elapsed_s
    if effective <= 0:
        return 0.0
    return n_bytes * 8 / effective / 1_000_000


class TransferState:
    """Stop signal, deadline and byte counter shared by one test's workers."""

    def __init__(self, duration_seconds: float) -> None:
        self.start_time = time.perf_counter()
        self.deadline = self.start_time + duration_seconds
        self.stop = asyncio.Event()
        self.total_bytes = 0

    @property
    def running(self) -> bool:
        return not self.stop.is_set() and time.perf_counter() < self.deadline

    def record(self, stats: ConnectionStats, n: int) -> None:
        stats.bytes_transferred += n
        self.total_bytes += n


Worker = Callable[[ConnectionStats, TransferState], Awaitable[None]]


# ---------------------------------------------------------------------------
# Runner
# ---------------------------------------------------------------------------

async def run_transfer(
    worker: Worker,
    connections: int,
    duration_seconds: float,
) -> TransferResult:
    """
    Run *connections* copies of *worker* for *duration_seconds*.

    A sampler coroutine records throughput every ``SAMPLE_INTERVAL``
    seconds, discarding the first ``WARMUP_SECONDS``.  The final speed is
    the IQM of the post-warm-up samples.
    """
    state = TransferState(duration_seconds)
    speed_samples: List[float] = []
    conn_stats = [ConnectionStats(id=i) for i in range(connections)]

    async def _sampler() -> None:
        prev_bytes = 0
        prev_time = state.start_time

        while state.running:
            try:
                await asyncio.wait_for(state.stop.wait(), timeout=SAMPLE_INTERVAL)
                break
            except asyncio.TimeoutError:
                pass

            now = time.perf_counter()
            cur = state.total_bytes
            dt = now - prev_time

            if dt < 0.05 or cur <= prev_bytes:
                continue

            mbps = ((cur - prev_bytes) * 8) / dt / 1_000_000
            prev_bytes = cur
            prev_time = now

            if mbps > MAX_REASONABLE_SPEED:
                continue
            if now - state.start_time >= WARMUP_SECONDS:
                speed_samples.append(mbps)

    workers = [asyncio.create_task(worker(s, state)) for s in conn_stats]
    sampler = asyncio.create_task(_sampler())

    try:
        remaining = state.deadline - time.perf_counter()
        if remaining > 0:
            await asyncio.sleep(remaining)
    finally:
        state.stop.set()
        for t in workers:
            t.cancel()
        sampler.cancel()
        await asyncio.gather(*workers, sampler, return_exceptions=True)

    result = TransferResult(
        bytes_total=state.total_bytes,
        duration_ms=(time.perf_counter() - state.start_time) * 1000,
        samples=speed_samples,
    )
    result.calculate_from_samples()
    logger.debug(
        "Transferred %d bytes over %d connection(s): %.2f Mbps",
        result.bytes_total, connections, result.speed_mbps,
    )
    logger.debug("Bytes per connection: %s", [s.bytes_transferred for s in conn_stats])
    return result

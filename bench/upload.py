"""
Upload speed test module.

Streams random data to the server's ``upload.php`` with parallel POSTs.
Like the download test, a warm-up POST corrected by the measured latency
sizes the per-request payload.
"""
from __future__ import annotations

import asyncio
import logging
import os
import time
from typing import AsyncIterator, Optional

import aiohttp

from .constants import (
    CHUNK_SIZE,
    COMMON_HEADERS,
    DEFAULT_CONNECTIONS,
    DEFAULT_DURATION,
    MAX_CONNECTIONS,
    MIN_CONNECTIONS,
    UPLOAD_BUFFER_SIZE,
    WARMUP_UPLOAD_BYTES,
)
from .stats import ConnectionStats
from .transfer import TransferResult, TransferState, run_transfer, warmup_speed

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Tunables
# ---------------------------------------------------------------------------

# (warm-up Mbps upper bound, bytes per POST)
_PAYLOAD_STEPS = (
    (10.0, 2 * 1024 * 1024),
    (50.0, 8 * 1024 * 1024),
    (100.0, 16 * 1024 * 1024),
)
_LARGEST_PAYLOAD = 32 * 1024 * 1024
_DEFAULT_PAYLOAD = 4 * 1024 * 1024


def pick_payload_size(warmup_mbps: float) -> int:
    """Bytes each worker streams per POST request."""
    for limit, size in _PAYLOAD_STEPS:
        if warmup_mbps < limit:
            return size
    return _LARGEST_PAYLOAD


# ---------------------------------------------------------------------------
# Tester
# ---------------------------------------------------------------------------

class UploadTester:
    """
    Parallel upload speed tester.

    Each worker POSTs ``payload`` bytes cycled out of a pre-generated random
    buffer, then starts the next request, until the test deadline.
    """

    def __init__(
        self,
        duration_seconds: float = DEFAULT_DURATION,
        connections: int = DEFAULT_CONNECTIONS,
        chunk_size: int = CHUNK_SIZE,
        buffer_size: int = UPLOAD_BUFFER_SIZE,
    ) -> None:
        self.duration_seconds = duration_seconds
        self.connections = max(MIN_CONNECTIONS, min(connections, MAX_CONNECTIONS))
        self.chunk_size = min(chunk_size, buffer_size)
        self._buffer = os.urandom(buffer_size)

    def _stream(
        self,
        n_bytes: int,
        state: Optional[TransferState] = None,
        stats: Optional[ConnectionStats] = None,
    ) -> AsyncIterator[bytes]:
        """Async generator yielding *n_bytes* of buffered random data.

        With a *state*, bytes are counted as they are handed to the socket
        and the stream ends early once the test deadline passes.
        """
        view = memoryview(self._buffer)
        size = len(self._buffer)

        async def _gen() -> AsyncIterator[bytes]:
            sent = 0
            pos = 0
            while sent < n_bytes:
                if state is not None and not state.running:
                    return
                n = min(self.chunk_size, n_bytes - sent, size - pos)
                chunk = bytes(view[pos : pos + n])
                pos = (pos + n) % size
                sent += n
                if state is not None and stats is not None:
                    state.record(stats, n)
                yield chunk
                await asyncio.sleep(0)

        return _gen()

    async def test(self, url: str, latency_ms: float = 0.0) -> TransferResult:
        timeout = aiohttp.ClientTimeout(total=None, connect=5, sock_read=5)
        headers = {**COMMON_HEADERS, "Content-Type": "application/octet-stream"}
        connector = aiohttp.TCPConnector(
            limit=self.connections,
            limit_per_host=self.connections,
            enable_cleanup_closed=True,
        )

        async with aiohttp.ClientSession(
            headers=headers,
            connector=connector,
            timeout=timeout,
        ) as session:
            payload = await self._warm_up(session, url, latency_ms)
            logger.debug(
                "Uploading %d-byte payloads to %s over %d connection(s)",
                payload, url, self.connections,
            )

            async def _worker(stats: ConnectionStats, state: TransferState) -> None:
                while state.running:
                    data = self._stream(payload, state=state, stats=stats)
                    try:
                        async with session.post(url, data=data) as resp:
                            await resp.read()
                    except (aiohttp.ClientError, OSError) as exc:
                        if not state.running:
                            break
                        logger.debug("Upload worker %d: %s", stats.id, exc)
                        await asyncio.sleep(0.1)

            return await run_transfer(_worker, self.connections, self.duration_seconds)

    async def _warm_up(
        self,
        session: aiohttp.ClientSession,
        url: str,
        latency_ms: float,
    ) -> int:
        """POST a fixed warm-up payload and map its speed to a payload size."""
        t0 = time.perf_counter()
        try:
            async with session.post(url, data=self._stream(WARMUP_UPLOAD_BYTES)) as resp:
                resp.raise_for_status()
                await resp.read()
        except (aiohttp.ClientError, asyncio.TimeoutError, OSError) as exc:
            logger.debug("Upload warm-up failed (%s); using default payload", exc)
            return _DEFAULT_PAYLOAD

        mbps = warmup_speed(WARMUP_UPLOAD_BYTES, time.perf_counter() - t0, latency_ms)
        payload = pick_payload_size(mbps)
        logger.debug("Upload warm-up %.2f Mbps -> %d-byte payloads", mbps, payload)
        return payload

"""
Download speed test module.

Uses parallel HTTP GET streams of the legacy ``random{N}x{N}.jpg`` images
that every speedtest.net server hosts next to ``upload.php``.  A short
warm-up fetch, corrected by the measured latency, picks the image size so
slow links are not stuck on a single huge request.
"""
from __future__ import annotations

import asyncio
import logging
import time

import aiohttp

from .constants import (
    CHUNK_SIZE,
    COMMON_HEADERS,
    DEFAULT_CONNECTIONS,
    DEFAULT_DURATION,
    MAX_CONNECTIONS,
    MIN_CONNECTIONS,
    WARMUP_IMAGE_SIZE,
)
from .stats import ConnectionStats
from .transfer import TransferResult, TransferState, endpoint_base, run_transfer, warmup_speed

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Tunables
# ---------------------------------------------------------------------------

# (warm-up Mbps upper bound, image edge length)
_SIZE_STEPS = (
    (10.0, 750),
    (30.0, 1500),
    (50.0, 2000),
    (100.0, 3000),
)
_LARGEST_SIZE = 4000
_DEFAULT_SIZE = 1500         # used when the warm-up itself fails


def image_url(url: str, size: int) -> str:
    return f"{endpoint_base(url)}/random{size}x{size}.jpg"


def pick_image_size(warmup_mbps: float) -> int:
    """Edge length of the image each worker requests repeatedly."""
    for limit, size in _SIZE_STEPS:
        if warmup_mbps < limit:
            return size
    return _LARGEST_SIZE


# ---------------------------------------------------------------------------
# Tester
# ---------------------------------------------------------------------------

class DownloadTester:
    """
    Parallel download speed tester.

    Each worker requests the chosen image in a loop and reads ``chunk_size``
    chunks until the test deadline.
    """

    def __init__(
        self,
        duration_seconds: float = DEFAULT_DURATION,
        connections: int = DEFAULT_CONNECTIONS,
        chunk_size: int = CHUNK_SIZE,
    ) -> None:
        self.duration_seconds = duration_seconds
        self.connections = max(MIN_CONNECTIONS, min(connections, MAX_CONNECTIONS))
        self.chunk_size = chunk_size

    async def test(self, url: str, latency_ms: float = 0.0) -> TransferResult:
        timeout = aiohttp.ClientTimeout(total=None, connect=5, sock_read=5)
        headers = {**COMMON_HEADERS, "Accept-Encoding": "identity"}
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
            size = await self._warm_up(session, url, latency_ms)
            target = image_url(url, size)
            logger.debug("Downloading %s over %d connection(s)", target, self.connections)

            async def _worker(stats: ConnectionStats, state: TransferState) -> None:
                while state.running:
                    try:
                        async with session.get(target) as resp:
                            resp.raise_for_status()
                            while state.running:
                                try:
                                    chunk = await asyncio.wait_for(
                                        resp.content.read(self.chunk_size),
                                        timeout=1.0,
                                    )
                                except asyncio.TimeoutError:
                                    continue
                                if not chunk:
                                    break
                                state.record(stats, len(chunk))
                    except (aiohttp.ClientError, OSError) as exc:
                        if not state.running:
                            break
                        logger.debug("Download worker %d: %s", stats.id, exc)
                        await asyncio.sleep(0.2)

            return await run_transfer(_worker, self.connections, self.duration_seconds)

    async def _warm_up(
        self,
        session: aiohttp.ClientSession,
        url: str,
        latency_ms: float,
    ) -> int:
        """Fetch one mid-size image and map its speed to an image size."""
        t0 = time.perf_counter()
        try:
            async with session.get(image_url(url, WARMUP_IMAGE_SIZE)) as resp:
                resp.raise_for_status()
                n_bytes = len(await resp.read())
        except (aiohttp.ClientError, asyncio.TimeoutError, OSError) as exc:
            logger.debug("Download warm-up failed (%s); using default size", exc)
            return _DEFAULT_SIZE

        mbps = warmup_speed(n_bytes, time.perf_counter() - t0, latency_ms)
        size = pick_image_size(mbps)
        logger.debug("Download warm-up %.2f Mbps -> random%dx%d.jpg", mbps, size, size)
        return size

"""
WebSocket-based latency measurement using the Ookla Speedtest protocol.

Catalog entries only carry an ``upload.php`` URL, but the same host:port
also speaks the WebSocket protocol::

    1. Connect to  ws://{host}:{port}/ws
    2. Receive  HELLO {version}
    3. Send     PING {timestamp_ms}
    4. Receive  PONG {server_timestamp}
    5. Repeat 3-4 for the desired number of samples.
"""
from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import List, Optional
from urllib.parse import urlsplit

import websockets
import websockets.exceptions

from .constants import COMMON_HEADERS, DEFAULT_PING_COUNT

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Tunables
# ---------------------------------------------------------------------------

_WS_CONNECT_TIMEOUT = 5.0   # seconds to establish the WS connection
_HELLO_TIMEOUT = 2.0         # max wait for the HELLO greeting
_PING_TIMEOUT = 5.0          # per-ping round-trip timeout


def ws_url(url: str) -> str:
    """WebSocket endpoint on the same host:port as *url*."""
    parts = urlsplit(url)
    scheme = "wss" if parts.scheme == "https" else "ws"
    return f"{scheme}://{parts.netloc}/ws"


# ---------------------------------------------------------------------------
# Result
# ---------------------------------------------------------------------------

@dataclass
class LatencyResult:
    """Latency data collected from one server."""

    url: str
    pings: List[float] = field(default_factory=list)
    ping_attempts: int = 0
    latency_ms: float = 0.0     # best (min) latency
    success: bool = True
    error: Optional[str] = None

    def calculate(self) -> None:
        if self.pings:
            self.latency_ms = min(self.pings)


# ---------------------------------------------------------------------------
# Tester
# ---------------------------------------------------------------------------

class LatencyTester:
    """Measure ping latency to one Ookla server over WebSocket."""

    def __init__(
        self,
        ping_count: int = DEFAULT_PING_COUNT,
        timeout: float = _PING_TIMEOUT,
    ) -> None:
        self.ping_count = ping_count
        self.timeout = timeout

    async def test(self, url: str) -> LatencyResult:
        result = LatencyResult(url=url)

        try:
            async with websockets.connect(
                ws_url(url),
                additional_headers=COMMON_HEADERS,
                ping_interval=None,
                close_timeout=2,
                open_timeout=_WS_CONNECT_TIMEOUT,
            ) as ws:
                await self._read_hello(ws)

                for _ in range(self.ping_count):
                    result.ping_attempts += 1
                    rtt = await self._ping_once(ws)
                    if rtt is not None:
                        result.pings.append(rtt)

        except asyncio.TimeoutError:
            result.success = False
            result.error = "Connection timeout"
        except (websockets.exceptions.WebSocketException, ConnectionError, OSError) as exc:
            result.success = False
            result.error = str(exc) or type(exc).__name__

        if result.success and not result.pings:
            result.success = False
            result.error = "No PONG received"

        result.calculate()
        logger.debug(
            "Latency to %s: %.1f ms over %d/%d pings",
            url, result.latency_ms, len(result.pings), result.ping_attempts,
        )
        return result

    # -- Internals ----------------------------------------------------------

    @staticmethod
    async def _read_hello(ws) -> None:  # noqa: ANN001
        """Consume the HELLO greeting so it is not mistaken for a PONG."""
        try:
            msg = await asyncio.wait_for(ws.recv(), timeout=_HELLO_TIMEOUT)
        except asyncio.TimeoutError:
            return
        logger.debug("Latency server greeting: %.50r", msg)

    async def _ping_once(self, ws) -> Optional[float]:  # noqa: ANN001
        """Send PING, wait for PONG, return the RTT in ms or ``None``."""
        send_time = time.perf_counter() * 1000
        await ws.send(f"PING {int(send_time)}")

        try:
            msg = await asyncio.wait_for(ws.recv(), timeout=self.timeout)
        except asyncio.TimeoutError:
            return None

        if isinstance(msg, str) and msg.startswith("PONG"):
            return time.perf_counter() * 1000 - send_time
        logger.debug("Unexpected latency response: %.50r", msg)
        return None

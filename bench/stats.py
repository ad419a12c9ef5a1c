"""
Network measurement statistics.

Pure functions and lightweight dataclasses -- no I/O, no side effects.
"""
from __future__ import annotations

import math
import statistics
from dataclasses import dataclass
from typing import List


# ---------------------------------------------------------------------------
# Dataclasses
# ---------------------------------------------------------------------------

@dataclass
class ConnectionStats:
    """Bytes moved by one download / upload worker."""

    id: int = 0
    bytes_transferred: int = 0


# ---------------------------------------------------------------------------
# Pure helper functions
# ---------------------------------------------------------------------------

def calculate_iqm(samples: List[float]) -> float:
    """Interquartile mean -- mean of values between Q1 and Q3."""
    if not samples:
        return 0.0
    if len(samples) < 4:
        return statistics.mean(samples)

    ordered = sorted(samples)
    n = len(ordered)
    middle = ordered[n // 4 : (3 * n) // 4]
    return statistics.mean(middle) if middle else statistics.mean(samples)


def mean(values: List[float]) -> float:
    """Arithmetic mean, ``0.0`` for an empty list."""
    return statistics.fmean(values) if values else 0.0


def is_valid_reading(value: float) -> bool:
    """A measurement is usable when it is a finite, non-negative number."""
    return isinstance(value, (int, float)) and math.isfinite(value) and value >= 0


# ---------------------------------------------------------------------------
# Formatting helpers
# ---------------------------------------------------------------------------

def format_speed(speed_mbps: float) -> str:
    """Human-readable speed string."""
    if speed_mbps >= 1000:
        return f"{speed_mbps / 1000:.2f} Gbps"
    return f"{speed_mbps:.2f} Mbps"


def format_latency(latency_ms: float) -> str:
    """Human-readable latency string."""
    if latency_ms >= 1000:
        return f"{latency_ms / 1000:.2f} s"
    return f"{latency_ms:.1f} ms"

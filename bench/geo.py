"""
Geographic helpers -- coordinates and great-circle distance.

Pure functions, no I/O.
"""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Any

from .constants import EARTH_RADIUS_KM

logger = logging.getLogger(__name__)


def parse_float(value: Any, field_name: str = "value") -> float:
    """Parse *value* as a float, degrading to ``0.0`` on malformed input.

    ``NaN`` and infinities count as malformed.
    """
    if value is None or value == "":
        return 0.0
    try:
        result = float(value)
    except (TypeError, ValueError):
        result = math.nan
    if not math.isfinite(result):
        logger.warning("Malformed %s %r, using 0.0", field_name, value)
        return 0.0
    return result


@dataclass(frozen=True)
class Coordinate:
    """A latitude / longitude pair in degrees."""

    latitude: float = 0.0
    longitude: float = 0.0

    @classmethod
    def parse(cls, latitude: Any, longitude: Any) -> Coordinate:
        return cls(
            latitude=parse_float(latitude, "latitude"),
            longitude=parse_float(longitude, "longitude"),
        )

    def to_dict(self) -> dict:
        return {"lat": self.latitude, "lon": self.longitude}


def distance(a: Coordinate, b: Coordinate) -> float:
    """
    Great-circle distance in kilometres (spherical law of cosines).

    Uses an Earth radius of 6378.137 km with no haversine correction, so
    results match the speedtest.net distances.  The cosine term is clamped
    to ``[-1, 1]`` because rounding can push it just past 1.0.
    """
    lat1 = a.latitude * math.pi / 180.0
    lon1 = a.longitude * math.pi / 180.0
    lat2 = b.latitude * math.pi / 180.0
    lon2 = b.longitude * math.pi / 180.0

    x = math.sin(lat1) * math.sin(lat2) + math.cos(lat1) * math.cos(lat2) * math.cos(lon2 - lon1)
    if math.isnan(x):
        return math.nan
    if a == b:
        return 0.0
    return EARTH_RADIUS_KM * math.acos(max(-1.0, min(1.0, x)))

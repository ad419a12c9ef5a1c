"""
Client location lookup.

speedtest.net answers ``speedtest-config.php`` with an XML document whose
``<client>`` element carries the caller's public IP, ISP and approximate
coordinates.  Only the coordinate is consumed by the server directory; the
rest is display metadata.
"""
from __future__ import annotations

import logging
import xml.etree.ElementTree as ET
from dataclasses import dataclass
from typing import Any, Dict

from .errors import LocatorUnavailable
from .geo import Coordinate

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ClientInfo:
    """Information about the client fetched from speedtest.net."""

    ip: str
    isp: str
    country: str
    coordinate: Coordinate

    @classmethod
    def from_attrs(cls, attrs: Dict[str, str]) -> ClientInfo:
        return cls(
            ip=attrs.get("ip", ""),
            isp=attrs.get("isp", ""),
            country=attrs.get("country", ""),
            coordinate=Coordinate.parse(attrs.get("lat"), attrs.get("lon")),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "ip": self.ip,
            "isp": self.isp,
            "country": self.country,
            "lat": self.coordinate.latitude,
            "lon": self.coordinate.longitude,
        }


def parse_client_info(document: str) -> ClientInfo:
    """Extract :class:`ClientInfo` from a ``speedtest-config.php`` document."""
    try:
        root = ET.fromstring(document)
    except ET.ParseError as exc:
        raise LocatorUnavailable(f"Malformed client config: {exc}") from exc

    client = root if root.tag == "client" else root.find(".//client")
    if client is None:
        raise LocatorUnavailable("Client config has no <client> element")

    info = ClientInfo.from_attrs(client.attrib)
    logger.debug("Located client %s at %s", info.ip, info.coordinate)
    return info

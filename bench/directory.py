"""
Speedtest.net server directory.

Fetches the static XML server catalog, annotates every entry with its
distance from the caller, and returns it nearest first.  All HTTP work goes
through a single ``aiohttp.ClientSession`` managed via async-context-manager
protocol (``async with ServerDirectory() as directory: ...``).
"""
from __future__ import annotations

import asyncio
import dataclasses
import logging
import xml.etree.ElementTree as ET
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any, Dict, Iterable, Iterator, List, Optional, Tuple

import aiohttp

from .constants import (
    CATALOG_MIRROR_URL,
    CATALOG_URL,
    COMMON_HEADERS,
    CONFIG_URL,
    REQUEST_TIMEOUT,
)
from .errors import DirectoryUnavailable, LocatorUnavailable
from .geo import Coordinate, distance
from .locator import ClientInfo, parse_client_info

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Data models
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ServerDescriptor:
    """A single speedtest.net server, as listed in the catalog."""

    id: str
    name: str
    country: str
    sponsor: str
    url: str
    url2: str
    host: str
    coordinate: Coordinate
    distance_km: float = 0.0

    # -- Constructors -------------------------------------------------------

    @classmethod
    def from_attrs(cls, attrs: Dict[str, str]) -> ServerDescriptor:
        return cls(
            id=attrs.get("id", ""),
            name=attrs.get("name", ""),
            country=attrs.get("country", ""),
            sponsor=attrs.get("sponsor", ""),
            url=attrs.get("url", ""),
            url2=attrs.get("url2", ""),
            host=attrs.get("host", ""),
            coordinate=Coordinate.parse(attrs.get("lat"), attrs.get("lon")),
        )

    def located_from(self, caller: Coordinate) -> ServerDescriptor:
        """Return a copy annotated with the distance from *caller*."""
        return dataclasses.replace(self, distance_km=distance(caller, self.coordinate))

    # -- Derived ------------------------------------------------------------

    @property
    def numeric_id(self) -> Optional[int]:
        try:
            return int(self.id)
        except ValueError:
            return None

    def __str__(self) -> str:
        return (
            f"[{self.id:>4}] {self.distance_km:8.2f}km "
            f"{self.name} ({self.country}) by {self.sponsor}"
        )

    # -- Serialisation ------------------------------------------------------

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "country": self.country,
            "sponsor": self.sponsor,
            "url": self.url,
            "url2": self.url2,
            "host": self.host,
            "lat": self.coordinate.latitude,
            "lon": self.coordinate.longitude,
            "distance": self.distance_km,
        }


class ServerCatalog(Sequence):
    """Servers ordered by ascending distance; membership is fixed."""

    def __init__(self, servers: Iterable[ServerDescriptor] = ()) -> None:
        self._servers: Tuple[ServerDescriptor, ...] = tuple(servers)

    @classmethod
    def build(cls, servers: Iterable[ServerDescriptor], caller: Coordinate) -> ServerCatalog:
        """Annotate *servers* with their distance from *caller* and sort.

        ``sorted`` is stable, so equidistant servers keep document order.
        """
        located = [s.located_from(caller) for s in servers]
        return cls(sorted(located, key=lambda s: s.distance_km))

    def __getitem__(self, index):  # noqa: ANN001
        return self._servers[index]

    def __len__(self) -> int:
        return len(self._servers)

    def __iter__(self) -> Iterator[ServerDescriptor]:
        return iter(self._servers)

    def __repr__(self) -> str:
        return f"ServerCatalog({len(self)} servers)"

    def __str__(self) -> str:
        return "\n".join(str(s) for s in self._servers)


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------

def parse_catalog(document: str) -> List[ServerDescriptor]:
    """Return every ``<server>`` entry of *document* in document order.

    A document that is not well-formed XML yields no servers rather than an
    exception, so the caller can move on to the mirror.
    """
    try:
        root = ET.fromstring(document)
    except ET.ParseError as exc:
        logger.warning("Malformed server catalog: %s", exc)
        return []
    return [ServerDescriptor.from_attrs(el.attrib) for el in root.iter("server")]


# ---------------------------------------------------------------------------
# Directory client
# ---------------------------------------------------------------------------

class ServerDirectory:
    """Async context-manager wrapping the speedtest.net catalog endpoints."""

    def __init__(
        self,
        catalog_url: str = CATALOG_URL,
        mirror_url: str = CATALOG_MIRROR_URL,
        config_url: str = CONFIG_URL,
        timeout: float = REQUEST_TIMEOUT,
    ) -> None:
        self.catalog_url = catalog_url
        self.mirror_url = mirror_url
        self.config_url = config_url
        self.timeout = timeout
        self._session: Optional[aiohttp.ClientSession] = None

    # -- Context manager ----------------------------------------------------

    async def __aenter__(self) -> ServerDirectory:
        self._session = aiohttp.ClientSession(
            headers=COMMON_HEADERS,
            timeout=aiohttp.ClientTimeout(total=self.timeout),
        )
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:  # noqa: ANN001
        if self._session:
            await self._session.close()
            self._session = None

    # -- Internal helpers ---------------------------------------------------

    def _ensure_session(self) -> aiohttp.ClientSession:
        if self._session is None:
            raise RuntimeError(
                "ServerDirectory must be used as an async context manager "
                "(async with ServerDirectory() as directory: ...)"
            )
        return self._session

    async def _fetch_document(self, url: str) -> str:
        session = self._ensure_session()
        async with session.get(url) as resp:
            resp.raise_for_status()
            return await resp.text()

    # -- Public methods -----------------------------------------------------

    async def locate(self) -> ClientInfo:
        """Fetch the caller's public IP, ISP and coordinates."""
        try:
            document = await self._fetch_document(self.config_url)
        except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
            raise LocatorUnavailable(
                f"Failed to retrieve client config: {str(exc) or type(exc).__name__}"
            ) from exc
        return parse_client_info(document)

    async def fetch_catalog(self, caller: Coordinate) -> ServerCatalog:
        """Return the server catalog sorted by distance from *caller*.

        The mirror is tried once when the primary request fails, returns an
        empty body, or lists no servers.  Both documents go through the same
        parse path.
        """
        attempts: List[Tuple[str, str]] = []

        for url in (self.catalog_url, self.mirror_url):
            try:
                document = await self._fetch_document(url)
            except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
                reason = str(exc) or type(exc).__name__
                logger.warning("Server catalog fetch from %s failed: %s", url, reason)
                attempts.append((url, reason))
                continue

            if not document.strip():
                logger.warning("Server catalog from %s was empty", url)
                attempts.append((url, "empty response body"))
                continue

            servers = parse_catalog(document)
            if not servers:
                logger.warning("Server catalog from %s listed no servers", url)
                attempts.append((url, "no servers listed"))
                continue

            catalog = ServerCatalog.build(servers, caller)
            logger.info("Fetched %d servers from %s", len(catalog), url)
            return catalog

        raise DirectoryUnavailable(attempts)

"""Benchmark target selection."""
from __future__ import annotations

import logging
from typing import Iterable, List

from .directory import ServerCatalog, ServerDescriptor
from .errors import DirectoryEmpty

logger = logging.getLogger(__name__)


def select_targets(
    catalog: ServerCatalog,
    requested_ids: Iterable[int] = (),
) -> List[ServerDescriptor]:
    """
    Resolve *requested_ids* to the servers to benchmark.

    With no ids the nearest server is used.  Otherwise every catalog entry
    whose id was requested is returned in catalog (distance) order, each at
    most once.  When nothing matches, the nearest server is used instead and
    a warning says so.
    """
    if len(catalog) == 0:
        raise DirectoryEmpty()

    wanted = set(requested_ids)
    if not wanted:
        return [catalog[0]]

    targets = [s for s in catalog if s.numeric_id in wanted]
    if not targets:
        logger.warning(
            "No server matches id(s) %s; falling back to nearest server %s (%s)",
            ", ".join(str(i) for i in sorted(wanted)),
            catalog[0].id,
            catalog[0].name,
        )
        return [catalog[0]]

    return targets

"""Exception hierarchy for fatal, run-stopping failures."""
from __future__ import annotations

from typing import List, Tuple


class SpeedbenchError(Exception):
    """Base class for all errors raised by the bench package."""


class LocatorUnavailable(SpeedbenchError):
    """The client configuration (IP / coordinates) could not be fetched."""


class DirectoryUnavailable(SpeedbenchError):
    """Neither the primary nor the mirror catalog produced any server.

    ``attempts`` holds one ``(url, reason)`` pair per fetch attempt, so the
    primary failure is not lost when the mirror fails as well.
    """

    def __init__(self, attempts: List[Tuple[str, str]]) -> None:
        self.attempts = list(attempts)
        detail = "; ".join(f"{url}: {reason}" for url, reason in self.attempts)
        super().__init__(f"Unable to retrieve server list ({detail})")


class DirectoryEmpty(SpeedbenchError):
    """Target selection was asked to choose from an empty catalog."""

    def __init__(self) -> None:
        super().__init__("No servers available")

"""
Report sinks -- where the orchestrator's report lines end up.

The destination is picked once, when the sink is constructed.
"""
from __future__ import annotations

import os
from datetime import datetime
from typing import List, Optional, TextIO

from rich.console import Console


class ConsoleSink:
    """Print report lines to a ``rich`` console (stdout by default)."""

    def __init__(self, console: Optional[Console] = None) -> None:
        self.console = console or Console()

    def line(self, text: str) -> None:
        self.console.print(text, markup=False, highlight=False)


class FileSink:
    """Append time-stamped report lines to a file."""

    def __init__(self, path: str) -> None:
        self.path = path
        dir_path = os.path.dirname(path)
        if dir_path:
            os.makedirs(dir_path, exist_ok=True)
        self._fh: Optional[TextIO] = open(path, "a", encoding="utf-8")

    def line(self, text: str) -> None:
        if self._fh is None:
            raise ValueError(f"FileSink for {self.path} is closed")
        self._fh.write(f"{datetime.now():%H:%M:%S} {text}\n")
        self._fh.flush()

    def close(self) -> None:
        if self._fh is not None:
            self._fh.close()
            self._fh = None

    def __enter__(self) -> FileSink:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:  # noqa: ANN001
        self.close()


class MemorySink:
    """Keep report lines in a list (used for ``--json`` runs and tests)."""

    def __init__(self) -> None:
        self.lines: List[str] = []

    def line(self, text: str) -> None:
        self.lines.append(text)

"""
Output formatting -- JSON export.
"""
from __future__ import annotations

import json
import os
from datetime import datetime, timezone
from typing import Any, Dict, Optional


def create_result_json(
    report: Dict[str, Any],
    client_info: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    """Build the JSON document for one run from ``BenchmarkReport.to_dict()``."""
    result: Dict[str, Any] = {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "servers": report.get("servers", []),
    }
    if client_info:
        result["client"] = client_info
    if "average" in report:
        result["average"] = report["average"]
    return result


def save_json(result: Dict[str, Any], filepath: str) -> None:
    """Write *result* to *filepath* atomically (write-tmp then rename)."""
    dir_path = os.path.dirname(filepath) or "."
    tmp = os.path.join(dir_path, f".tmp_{os.path.basename(filepath)}")

    try:
        with open(tmp, "w", encoding="utf-8") as fh:
            json.dump(result, fh, indent=2, ensure_ascii=False)
        os.replace(tmp, filepath)
    except OSError as exc:
        try:
            os.unlink(tmp)
        except OSError:
            pass
        raise OSError(f"Failed to save JSON to {filepath}: {exc}") from exc

"""Append page diagnostics from completed captures to an ops log."""

from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path

from viewshot.schemas import CaptureResult, DiagnosticLevel
from viewshot.settings import get_settings

__all__ = ["append_diagnostics_log"]


def append_diagnostics_log(
    *,
    url: str,
    result: CaptureResult,
    session_id: str | None = None,
    log_path: Path | None = None,
) -> bool:
    """Write one JSON line for a capture that saw errors or warnings.

    No-op (returns False) when logging is disabled or the page was clean
    apart from informational console output.
    """

    path = log_path or get_settings().logging.diagnostics_log_path
    if path is None:
        return False
    notable = [record for record in result.page_errors if record.level is not DiagnosticLevel.INFO]
    if not notable:
        return False

    record = {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "url": url,
        "session_id": session_id,
        "widths": [capture.metadata.viewport.width for capture in result.screenshots],
        "summary": result.error_summary.model_dump(),
        "diagnostics": [entry.model_dump(mode="json", exclude_none=True) for entry in notable],
    }
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("a", encoding="utf-8") as handle:
        handle.write(json.dumps(record))
        handle.write("\n")
    return True

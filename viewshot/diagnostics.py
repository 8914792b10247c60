"""Page diagnostics: script errors, console output, and failed requests."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Iterable, List, Sequence

from playwright.async_api import ConsoleMessage, Page, Request, Response

from viewshot import metrics
from viewshot.schemas import (
    DiagnosticLevel,
    DiagnosticRecord,
    DiagnosticSummary,
    DiagnosticType,
)

LOGGER = logging.getLogger(__name__)

_CONSOLE_LEVELS = {
    "error": DiagnosticLevel.ERROR,
    "assert": DiagnosticLevel.ERROR,
    "warning": DiagnosticLevel.WARNING,
}


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _as_int(value: Any) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value)
    return None


class DiagnosticsCollector:
    """Append-only log of diagnostics fed by page event listeners.

    Attach before the first navigation so early errors are not lost, then read
    ``snapshot()`` once the page is closed.
    """

    def __init__(self) -> None:
        self._records: List[DiagnosticRecord] = []

    def attach(self, page: Page) -> None:
        page.on("pageerror", self._on_page_error)
        page.on("console", self._on_console)
        page.on("response", self._on_response)
        page.on("requestfailed", self._on_request_failed)

    def snapshot(self) -> list[DiagnosticRecord]:
        return list(self._records)

    def __len__(self) -> int:
        return len(self._records)

    def _append(self, record: DiagnosticRecord) -> None:
        self._records.append(record)
        LOGGER.debug("page %s/%s: %s", record.type.value, record.level.value, record.message)
        metrics.record_diagnostic(record.type.value, record.level.value)

    def _on_page_error(self, error: Any) -> None:
        stack = getattr(error, "stack", None) or ""
        first_line = stack.splitlines()[0] if stack else ""
        self._append(
            DiagnosticRecord(
                type=DiagnosticType.JAVASCRIPT,
                level=DiagnosticLevel.ERROR,
                message=str(getattr(error, "message", error)),
                source=first_line,
                timestamp=_now(),
            )
        )

    def _on_console(self, message: ConsoleMessage) -> None:
        level = _CONSOLE_LEVELS.get(message.type, DiagnosticLevel.INFO)
        location = message.location if isinstance(message.location, dict) else {}
        self._append(
            DiagnosticRecord(
                type=DiagnosticType.CONSOLE,
                level=level,
                message=message.text,
                source=location.get("url") or None,
                line=_as_int(location.get("lineNumber")),
                column=_as_int(location.get("columnNumber")),
                timestamp=_now(),
            )
        )

    def _on_response(self, response: Response) -> None:
        if response.ok:
            return
        status = response.status
        level = DiagnosticLevel.ERROR if status >= 500 else DiagnosticLevel.WARNING
        self._append(
            DiagnosticRecord(
                type=DiagnosticType.NETWORK,
                level=level,
                message=f"Failed to load resource: {status} {response.status_text}".rstrip(),
                url=response.url,
                status_code=status,
                timestamp=_now(),
            )
        )

    def _on_request_failed(self, request: Request) -> None:
        failure = request.failure
        if not failure:
            return
        kind = DiagnosticType.SECURITY if "CORS" in failure else DiagnosticType.NETWORK
        self._append(
            DiagnosticRecord(
                type=kind,
                level=DiagnosticLevel.ERROR,
                message=f"Request failed: {failure}",
                url=request.url,
                timestamp=_now(),
            )
        )


def summarize_diagnostics(records: Sequence[DiagnosticRecord]) -> DiagnosticSummary:
    """Count records by level and flag the error classes present."""

    def _count(level: DiagnosticLevel) -> int:
        return sum(1 for record in records if record.level is level)

    return DiagnosticSummary(
        total_errors=_count(DiagnosticLevel.ERROR),
        total_warnings=_count(DiagnosticLevel.WARNING),
        total_logs=_count(DiagnosticLevel.INFO),
        has_javascript_errors=any(
            r.type is DiagnosticType.JAVASCRIPT and r.level is DiagnosticLevel.ERROR for r in records
        ),
        has_network_errors=any(
            r.type is DiagnosticType.NETWORK and r.level is not DiagnosticLevel.INFO for r in records
        ),
        has_console_logs=any(
            r.type is DiagnosticType.CONSOLE and r.level is DiagnosticLevel.INFO for r in records
        ),
    )


def group_by_type(records: Iterable[DiagnosticRecord]) -> dict[DiagnosticType, list[DiagnosticRecord]]:
    """Group records by type, preserving arrival order inside each group."""

    grouped: dict[DiagnosticType, list[DiagnosticRecord]] = {}
    for record in records:
        grouped.setdefault(record.type, []).append(record)
    return grouped

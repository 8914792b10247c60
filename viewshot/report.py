"""Render capture results as text and image blocks for the tool host."""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Sequence, Union

from viewshot.diagnostics import group_by_type
from viewshot.schemas import (
    CaptureRequest,
    CaptureResult,
    DiagnosticRecord,
    DiagnosticSummary,
    DiagnosticType,
    ViewportCapture,
)

__all__ = [
    "TextBlock",
    "ImageBlock",
    "ContentBlock",
    "build_content_blocks",
    "render_summary",
    "render_diagnostics_report",
    "caption_for",
]

# Cap per-type entries so a noisy page does not drown out the screenshots.
MAX_RECORDS_PER_TYPE = 20

_SECTION_TITLES = {
    DiagnosticType.JAVASCRIPT: "JavaScript errors",
    DiagnosticType.CONSOLE: "Console messages",
    DiagnosticType.NETWORK: "Network issues",
    DiagnosticType.SECURITY: "Security / CORS issues",
}


@dataclass(frozen=True, slots=True)
class TextBlock:
    text: str


@dataclass(frozen=True, slots=True)
class ImageBlock:
    data: bytes
    mime_type: str


ContentBlock = Union[TextBlock, ImageBlock]


def _summary_line(summary: DiagnosticSummary) -> str:
    if not (summary.total_errors or summary.total_warnings or summary.total_logs):
        return "Page diagnostics: no errors, warnings, or console output."
    flags = []
    if summary.has_javascript_errors:
        flags.append("JavaScript errors")
    if summary.has_network_errors:
        flags.append("network errors")
    line = (
        f"Page diagnostics: {summary.total_errors} error(s), "
        f"{summary.total_warnings} warning(s), {summary.total_logs} console log(s)"
    )
    if flags:
        line += f" [{', '.join(flags)}]"
    return line + "."


def render_summary(request: CaptureRequest, result: CaptureResult) -> str:
    """Capture count, executed actions, session note, and diagnostics line."""

    lines = [f"Successfully captured {len(result.screenshots)} screenshot(s) for {request.url}"]
    if request.actions:
        steps = ", ".join(action.describe() for action in request.actions)
        lines.append(f"Executed {len(request.actions)} action(s) before capture: {steps}")
    if result.session is not None:
        location = result.session.profile_dir or "default profile"
        lines.append(f"Session '{result.session.session_id}' is persistent (profile: {location})")
    lines.append(_summary_line(result.error_summary))
    return "\n".join(lines)


def _format_record(record: DiagnosticRecord) -> str:
    text = f"- [{record.level.value}] {record.message}"
    if record.url:
        text += f" ({record.url})"
    elif record.source:
        location = record.source
        if record.line is not None:
            location += f":{record.line}"
            if record.column is not None:
                location += f":{record.column}"
        text += f" at {location}"
    return text


def render_diagnostics_report(records: Sequence[DiagnosticRecord]) -> str | None:
    """Detailed report grouped by diagnostic type; None when nothing was seen."""

    if not records:
        return None
    sections: list[str] = ["Page diagnostics report"]
    for kind, entries in group_by_type(records).items():
        sections.append("")
        sections.append(f"{_SECTION_TITLES[kind]} ({len(entries)}):")
        sections.extend(_format_record(entry) for entry in entries[:MAX_RECORDS_PER_TYPE])
        hidden = len(entries) - MAX_RECORDS_PER_TYPE
        if hidden > 0:
            sections.append(f"- ... {hidden} more")
    return "\n".join(sections)


def caption_for(capture: ViewportCapture) -> str:
    caption = f"{capture.width}px viewport ({capture.format.value.upper()})"
    original = capture.metadata.original_size
    if capture.metadata.optimized and original is not None:
        caption += f", clipped from {original.width}px layout"
    return caption


def build_content_blocks(request: CaptureRequest, result: CaptureResult) -> List[ContentBlock]:
    """Ordered blocks for a successful capture: summary, report, then images."""

    if not result.success:
        raise ValueError("content blocks are only built for successful captures")
    blocks: list[ContentBlock] = [TextBlock(render_summary(request, result))]
    report = render_diagnostics_report(result.page_errors)
    if report:
        blocks.append(TextBlock(report))
    for capture in result.screenshots:
        blocks.append(TextBlock(caption_for(capture)))
        blocks.append(ImageBlock(data=capture.image, mime_type=capture.mime_type))
    return blocks

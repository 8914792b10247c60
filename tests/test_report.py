from __future__ import annotations

import pytest

from viewshot.report import (
    MAX_RECORDS_PER_TYPE,
    ImageBlock,
    TextBlock,
    build_content_blocks,
    caption_for,
    render_diagnostics_report,
    render_summary,
)
from viewshot.schemas import (
    CaptureMetadata,
    CaptureRequest,
    CaptureResult,
    DiagnosticLevel,
    DiagnosticRecord,
    DiagnosticSummary,
    DiagnosticType,
    ImageFormat,
    SessionInfo,
    Size,
    ViewportCapture,
)

_TS = "2026-01-01T00:00:00+00:00"


def _shot(width: int, *, layout: int | None = None, fmt: ImageFormat = ImageFormat.JPEG) -> ViewportCapture:
    layout = layout or width
    clipped = layout != width
    return ViewportCapture(
        width=width,
        height=900,
        image=f"img-{layout}".encode(),
        format=fmt,
        metadata=CaptureMetadata(
            viewport=Size(width=layout, height=800),
            actual_content_size=Size(width=layout, height=900),
            load_time_ms=120,
            timestamp=_TS,
            optimized=clipped,
            original_size=Size(width=layout, height=900) if clipped else None,
        ),
    )


def _record(kind: DiagnosticType, level: DiagnosticLevel, message: str, **extra) -> DiagnosticRecord:
    return DiagnosticRecord(type=kind, level=level, message=message, timestamp=_TS, **extra)


def test_summary_for_clean_page() -> None:
    request = CaptureRequest(url="https://example.com")
    result = CaptureResult(success=True, screenshots=[_shot(375), _shot(1280)])

    text = render_summary(request, result)

    assert text.splitlines() == [
        "Successfully captured 2 screenshot(s) for https://example.com",
        "Page diagnostics: no errors, warnings, or console output.",
    ]


def test_summary_mentions_actions_session_and_flags() -> None:
    request = CaptureRequest.model_validate(
        {
            "url": "https://example.com",
            "sessionId": "alice",
            "actions": [{"type": "click", "selector": "#go"}, {"type": "scroll"}],
        }
    )
    result = CaptureResult(
        success=True,
        screenshots=[_shot(1280)],
        error_summary=DiagnosticSummary(
            total_errors=2, total_warnings=1, total_logs=3, has_javascript_errors=True, has_network_errors=True
        ),
        session=SessionInfo(session_id="alice", profile_dir="/tmp/profiles/alice"),
    )

    lines = render_summary(request, result).splitlines()

    assert lines[1] == "Executed 2 action(s) before capture: click #go, scroll to bottom"
    assert lines[2] == "Session 'alice' is persistent (profile: /tmp/profiles/alice)"
    assert lines[3] == (
        "Page diagnostics: 2 error(s), 1 warning(s), 3 console log(s) [JavaScript errors, network errors]."
    )


def test_diagnostics_report_groups_by_type() -> None:
    records = [
        _record(DiagnosticType.CONSOLE, DiagnosticLevel.INFO, "ready", source="https://a.test/app.js", line=10, column=4),
        _record(DiagnosticType.JAVASCRIPT, DiagnosticLevel.ERROR, "boom"),
        _record(
            DiagnosticType.NETWORK,
            DiagnosticLevel.WARNING,
            "Failed to load resource: 404 Not Found",
            url="https://a.test/x.png",
            status_code=404,
        ),
    ]

    report = render_diagnostics_report(records)

    assert report is not None
    assert report.splitlines() == [
        "Page diagnostics report",
        "",
        "Console messages (1):",
        "- [info] ready at https://a.test/app.js:10:4",
        "",
        "JavaScript errors (1):",
        "- [error] boom",
        "",
        "Network issues (1):",
        "- [warning] Failed to load resource: 404 Not Found (https://a.test/x.png)",
    ]


def test_diagnostics_report_is_none_for_clean_page() -> None:
    assert render_diagnostics_report([]) is None


def test_diagnostics_report_truncates_noisy_sections() -> None:
    records = [
        _record(DiagnosticType.CONSOLE, DiagnosticLevel.INFO, f"log {index}")
        for index in range(MAX_RECORDS_PER_TYPE + 5)
    ]

    report = render_diagnostics_report(records)

    assert report is not None
    assert f"Console messages ({MAX_RECORDS_PER_TYPE + 5}):" in report
    assert report.endswith("- ... 5 more")


def test_caption_notes_clipping() -> None:
    assert caption_for(_shot(768)) == "768px viewport (JPEG)"
    assert caption_for(_shot(1280, layout=1920)) == "1280px viewport (JPEG), clipped from 1920px layout"
    assert caption_for(_shot(800, fmt=ImageFormat.PNG)) == "800px viewport (PNG)"


def test_content_blocks_order() -> None:
    request = CaptureRequest(url="https://example.com")
    result = CaptureResult(
        success=True,
        screenshots=[_shot(375), _shot(1280)],
        page_errors=[_record(DiagnosticType.JAVASCRIPT, DiagnosticLevel.ERROR, "boom")],
        error_summary=DiagnosticSummary(total_errors=1, has_javascript_errors=True),
    )

    blocks = build_content_blocks(request, result)

    kinds = [type(block).__name__ for block in blocks]
    assert kinds == ["TextBlock", "TextBlock", "TextBlock", "ImageBlock", "TextBlock", "ImageBlock"]
    assert isinstance(blocks[1], TextBlock) and blocks[1].text.startswith("Page diagnostics report")
    image = blocks[3]
    assert isinstance(image, ImageBlock)
    assert image.data == b"img-375"
    assert image.mime_type == "image/jpeg"


def test_content_blocks_require_success() -> None:
    with pytest.raises(ValueError):
        build_content_blocks(CaptureRequest(url="https://example.com"), CaptureResult.failed("nope"))

#!/usr/bin/env python3
"""viewshot CLI: run one capture locally or start the MCP server."""

from __future__ import annotations

import asyncio
import json
from pathlib import Path
from typing import Any, List, Optional

import typer
from rich.console import Console
from rich.table import Table

from viewshot.capture import ScreenshotCapturer
from viewshot.report import render_diagnostics_report
from viewshot.schemas import CaptureResult
from viewshot.server import build_capturer, configure_logging, main as serve_main
from viewshot.settings import get_settings

console = Console()
cli = typer.Typer(help="Capture multi-viewport screenshots with page diagnostics.")


def _load_json_list(path: Optional[Path], label: str) -> list[dict[str, Any]] | None:
    if path is None:
        return None
    try:
        data = json.loads(path.read_text("utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        raise typer.BadParameter(f"could not read {label} from {path}: {exc}") from exc
    if not isinstance(data, list):
        raise typer.BadParameter(f"{label} file must contain a JSON array")
    return data


async def _run_capture(capturer: ScreenshotCapturer, arguments: dict[str, Any]) -> CaptureResult:
    try:
        return await capturer.capture_from_arguments(arguments)
    finally:
        await capturer.shutdown()


def _write_images(result: CaptureResult, out_dir: Path, stem: str) -> list[Path]:
    out_dir.mkdir(parents=True, exist_ok=True)
    written: list[Path] = []
    for index, capture in enumerate(result.screenshots, start=1):
        requested = capture.metadata.viewport.width
        suffix = "jpg" if capture.format.value == "jpeg" else "png"
        path = out_dir / f"{stem}-{index:02d}-{requested}px.{suffix}"
        path.write_bytes(capture.image)
        written.append(path)
    return written


def _captures_table(result: CaptureResult, paths: list[Path]) -> Table:
    table = Table("Viewport", "Image", "Content", "Load (ms)", "Clipped", "File")
    for capture, path in zip(result.screenshots, paths):
        meta = capture.metadata
        table.add_row(
            f"{meta.viewport.width}px",
            f"{capture.width}x{capture.height}",
            f"{meta.actual_content_size.width}x{meta.actual_content_size.height}",
            str(meta.load_time_ms),
            "yes" if meta.optimized else "no",
            str(path),
        )
    return table


@cli.command()
def capture(
    url: str = typer.Argument(..., help="URL to capture"),
    width: Optional[List[int]] = typer.Option(None, "--width", "-w", help="Viewport width (repeatable)."),
    max_width: int = typer.Option(1280, "--max-width", help="Clip images wider than this."),
    image_format: str = typer.Option("jpeg", "--format", help="png or jpeg."),
    quality: int = typer.Option(80, "--quality", min=1, max=100, help="JPEG quality."),
    wait_for: str = typer.Option("networkidle0", "--wait-for", help="load|domcontentloaded|networkidle0|networkidle2"),
    timeout: int = typer.Option(30000, "--timeout", help="Navigation timeout in ms."),
    session: Optional[str] = typer.Option(None, "--session", help="Persistent session id."),
    user_data_dir: Optional[Path] = typer.Option(None, "--user-data-dir", help="Explicit profile directory."),
    actions_json: Optional[Path] = typer.Option(None, "--actions-json", help="JSON file with an array of actions."),
    cookies_json: Optional[Path] = typer.Option(None, "--cookies-json", help="JSON file with an array of cookies."),
    headed: bool = typer.Option(False, "--headed", help="Show the browser window."),
    out_dir: Path = typer.Option(Path("screenshots"), "--out", "-o", help="Directory for images."),
    show_report: bool = typer.Option(True, "--report/--no-report", help="Print the diagnostics report."),
) -> None:
    """Capture URL at each width and write the images to disk."""

    settings = get_settings()
    configure_logging(settings.logging.level)
    arguments: dict[str, Any] = {
        "url": url,
        "breakpoints": [{"width": value} for value in width or []],
        "headless": not headed,
        "waitFor": wait_for,
        "timeout": timeout,
        "maxWidth": max_width,
        "imageFormat": image_format,
        "quality": quality,
        "actions": _load_json_list(actions_json, "actions"),
        "cookies": _load_json_list(cookies_json, "cookies"),
        "sessionId": session,
        "userDataDir": str(user_data_dir) if user_data_dir else None,
    }
    arguments = {key: value for key, value in arguments.items() if value is not None}

    result = asyncio.run(_run_capture(build_capturer(settings), arguments))
    if not result.success:
        console.print(f"[red]Capture failed:[/] {result.error}")
        raise typer.Exit(1)

    stem = (session or "capture").replace("/", "-")
    paths = _write_images(result, out_dir, stem)
    console.print(_captures_table(result, paths))
    summary = result.error_summary
    console.print(
        f"errors={summary.total_errors} warnings={summary.total_warnings} logs={summary.total_logs}"
    )
    if show_report:
        report = render_diagnostics_report(result.page_errors)
        if report:
            console.print(report, markup=False, highlight=False)


@cli.command()
def serve() -> None:
    """Run the MCP server on stdio."""

    serve_main()


if __name__ == "__main__":
    cli()

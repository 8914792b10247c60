"""Playwright-based screenshot orchestration across viewport breakpoints."""

from __future__ import annotations

import logging
import time
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Mapping
from uuid import uuid4

from playwright.async_api import Error as PlaywrightError, Page
from pydantic import ValidationError

from viewshot import metrics
from viewshot.actions import execute_actions
from viewshot.diagnostics import DiagnosticsCollector, summarize_diagnostics
from viewshot.diagnostics_log import append_diagnostics_log
from viewshot.errors import CaptureError, CookieError, InputError, NavigationError
from viewshot.geometry import measure_content_size
from viewshot.schemas import (
    CaptureMetadata,
    CaptureRequest,
    CaptureResult,
    ImageFormat,
    SessionInfo,
    Size,
    ViewportCapture,
)
from viewshot.sessions import BrowserHandle, BrowserPool
from viewshot.settings import Settings, get_settings

LOGGER = logging.getLogger(__name__)


class CaptureState(str, Enum):
    """Lifecycle states of one capture request."""

    IDLE = "IDLE"
    BROWSER_ACQUIRED = "BROWSER_ACQUIRED"
    PAGE_OPEN = "PAGE_OPEN"
    VIEWPORT_SET = "VIEWPORT_SET"
    COOKIES_SET = "COOKIES_SET"
    NAVIGATED = "NAVIGATED"
    ACTIONS_RUN = "ACTIONS_RUN"
    GEOMETRY_PROBED = "GEOMETRY_PROBED"
    CAPTURED = "CAPTURED"
    PAGE_CLOSED = "PAGE_CLOSED"
    ASSEMBLED = "ASSEMBLED"
    FAILED = "FAILED"


class _Run:
    """Per-request bookkeeping: id for log correlation plus current state."""

    __slots__ = ("run_id", "url", "state")

    def __init__(self, url: str) -> None:
        self.run_id = uuid4().hex[:8]
        self.url = url
        self.state = CaptureState.IDLE

    def enter(self, state: CaptureState, **extra: Any) -> None:
        self.state = state
        LOGGER.debug("capture %s -> %s", self.run_id, state.value, extra={"url": self.url, **extra})


class ScreenshotCapturer:
    """Drives one page through navigate → act → measure → capture per viewport."""

    def __init__(
        self,
        pool: BrowserPool,
        *,
        settings: Settings | None = None,
        clock: Callable[[], float] = time.perf_counter,
    ) -> None:
        self._pool = pool
        self._settings = settings or get_settings()
        self._clock = clock

    @property
    def pool(self) -> BrowserPool:
        return self._pool

    async def shutdown(self) -> None:
        await self._pool.shutdown()

    async def capture_from_arguments(self, arguments: Mapping[str, Any] | None) -> CaptureResult:
        """Validate raw tool arguments, then capture.

        Invalid input yields a failure result without touching a browser.
        """

        try:
            request = parse_capture_request(arguments)
        except InputError as exc:
            return self._reject(str(exc))
        return await self.capture(request)

    async def capture(self, request: CaptureRequest) -> CaptureResult:
        if not request.url:
            return self._reject("URL is required")

        run = _Run(request.url)
        started = self._clock()
        page: Page | None = None
        try:
            handle = await self._pool.acquire(
                request.session_id,
                headless=request.headless,
                user_data_dir=request.user_data_dir,
            )
            run.enter(CaptureState.BROWSER_ACQUIRED, session=handle.session_key)

            page = await handle.new_page()
            collector = DiagnosticsCollector()
            collector.attach(page)
            run.enter(CaptureState.PAGE_OPEN)

            screenshots: list[ViewportCapture] = []
            for width in request.widths:
                screenshots.append(await self._capture_viewport(page, request, width, run))

            await page.close()
            page = None
            run.enter(CaptureState.PAGE_CLOSED)

            records = collector.snapshot()
            result = CaptureResult(
                success=True,
                screenshots=screenshots,
                page_errors=records,
                error_summary=summarize_diagnostics(records),
                session=_session_info(request, handle),
            )
            run.enter(CaptureState.ASSEMBLED, captures=len(screenshots))
        except Exception as exc:
            LOGGER.warning(
                "Capture %s of %s failed during %s: %s",
                run.run_id,
                request.url,
                run.state.value,
                exc,
            )
            run.enter(CaptureState.FAILED)
            await _discard_page(page)
            result = CaptureResult.failed(str(exc) or exc.__class__.__name__)

        metrics.record_capture_result(success=result.success, duration_seconds=self._clock() - started)
        if result.success:
            self._log_diagnostics(request, result)
        return result

    async def _capture_viewport(
        self,
        page: Page,
        request: CaptureRequest,
        width: int,
        run: _Run,
    ) -> ViewportCapture:
        # Layout uses the requested width so responsive breakpoints still
        # trigger; only the rendered image is clipped to max_width.
        clipped = width > request.max_width
        effective_width = request.max_width if clipped else width
        viewport_height = self._settings.browser.initial_viewport_height
        started = self._clock()

        await page.set_viewport_size({"width": width, "height": viewport_height})
        run.enter(CaptureState.VIEWPORT_SET, width=width)

        if request.cookies:
            await self._apply_cookies(page, request)
            run.enter(CaptureState.COOKIES_SET)

        try:
            await page.goto(
                request.url,
                wait_until=request.wait_for.playwright_state,
                timeout=request.timeout,
            )
        except PlaywrightError as exc:
            raise NavigationError(str(exc)) from exc
        run.enter(CaptureState.NAVIGATED)

        if request.actions:
            await execute_actions(
                page,
                request.actions,
                element_timeout_ms=self._settings.actions.element_timeout_ms,
                settle_ms=self._settings.actions.settle_ms,
            )
            run.enter(CaptureState.ACTIONS_RUN)

        try:
            content = await measure_content_size(page)
            run.enter(CaptureState.GEOMETRY_PROBED)
            options: dict[str, Any] = {"full_page": True, "type": request.image_format.value}
            if request.image_format is ImageFormat.JPEG:
                options["quality"] = request.quality
            if clipped:
                options["clip"] = {
                    "x": 0,
                    "y": 0,
                    "width": request.max_width,
                    "height": max(content.height, 1),
                }
            image = await page.screenshot(**options)
        except PlaywrightError as exc:
            raise CaptureError(str(exc)) from exc

        elapsed = self._clock() - started
        run.enter(CaptureState.CAPTURED, width=width, clipped=clipped)
        metrics.record_viewport(clipped=clipped, duration_seconds=elapsed)

        return ViewportCapture(
            width=effective_width,
            height=content.height,
            image=image,
            format=request.image_format,
            metadata=CaptureMetadata(
                viewport=Size(width=width, height=viewport_height),
                actual_content_size=Size(width=content.width, height=content.height),
                load_time_ms=int(elapsed * 1000),
                timestamp=datetime.now(timezone.utc).isoformat(),
                optimized=clipped,
                original_size=Size(width=width, height=content.height) if clipped else None,
            ),
        )

    async def _apply_cookies(self, page: Page, request: CaptureRequest) -> int:
        """Set cookies one at a time; a cookie that fails is logged and skipped."""

        default_domain = request.host
        applied = 0
        for cookie in request.cookies:
            try:
                await page.context.add_cookies([cookie.to_playwright(default_domain)])
            except PlaywrightError as exc:
                LOGGER.warning("%s", CookieError(cookie.name, str(exc)))
                metrics.record_cookie_failure()
                continue
            applied += 1
        return applied

    def _reject(self, message: str) -> CaptureResult:
        metrics.record_capture_result(success=False, duration_seconds=0.0)
        return CaptureResult.failed(message)

    def _log_diagnostics(self, request: CaptureRequest, result: CaptureResult) -> None:
        try:
            append_diagnostics_log(
                url=request.url,
                result=result,
                session_id=request.session_id,
                log_path=self._settings.logging.diagnostics_log_path,
            )
        except OSError as exc:
            LOGGER.warning("Failed to append diagnostics log for %s: %s", request.url, exc)


def _session_info(request: CaptureRequest, handle: BrowserHandle) -> SessionInfo | None:
    if not request.session_id:
        return None
    return SessionInfo(
        session_id=request.session_id,
        profile_dir=str(handle.profile_dir) if handle.profile_dir else None,
        persistent=True,
    )


async def _discard_page(page: Page | None) -> None:
    if page is None or page.is_closed():
        return
    try:
        await page.close()
    except PlaywrightError as exc:
        LOGGER.debug("Ignoring page close failure after aborted capture: %s", exc)


def parse_capture_request(arguments: Mapping[str, Any] | None) -> CaptureRequest:
    """Build a ``CaptureRequest`` from raw tool arguments or raise ``InputError``."""

    payload = dict(arguments or {})
    if not payload.get("url"):
        raise InputError("URL is required")
    try:
        return CaptureRequest.model_validate(payload)
    except ValidationError as exc:
        raise InputError(format_validation_error(exc)) from exc


def format_validation_error(exc: ValidationError) -> str:
    """Flatten pydantic errors into one human-readable line."""

    parts: list[str] = []
    for error in exc.errors():
        message = str(error.get("msg", "invalid value")).removeprefix("Value error, ")
        location = ".".join(str(part) for part in error.get("loc", ()))
        parts.append(f"{location}: {message}" if location else message)
    return "; ".join(parts) or "Invalid request"

"""MCP server exposing the ``screenshot`` tool over stdio."""

from __future__ import annotations

import base64
import logging
import sys
from contextlib import asynccontextmanager
from typing import Annotated, Any, AsyncIterator, Literal, Sequence

from mcp.server.fastmcp import FastMCP
from mcp.server.fastmcp.exceptions import ToolError
from mcp.types import ImageContent, TextContent
from pydantic import Field

from viewshot import metrics
from viewshot.capture import ScreenshotCapturer, parse_capture_request
from viewshot.errors import InputError
from viewshot.report import ContentBlock, ImageBlock, build_content_blocks
from viewshot.sessions import BrowserPool
from viewshot.settings import Settings, get_settings

LOGGER = logging.getLogger(__name__)

TOOL_DESCRIPTION = (
    "Capture screenshots of web pages at multiple viewport breakpoints. "
    "Optionally run page actions (click, type, scroll, ...) first, inject cookies, "
    "and reuse a persistent browser session. Reports JavaScript errors, console "
    "output, and failed network requests seen while loading the page."
)


def to_mcp_content(blocks: Sequence[ContentBlock]) -> list[TextContent | ImageContent]:
    """Convert report blocks into MCP content, base64-encoding images."""

    content: list[TextContent | ImageContent] = []
    for block in blocks:
        if isinstance(block, ImageBlock):
            content.append(
                ImageContent(
                    type="image",
                    data=base64.b64encode(block.data).decode("ascii"),
                    mimeType=block.mime_type,
                )
            )
        else:
            content.append(TextContent(type="text", text=block.text))
    return content


def create_server(capturer: ScreenshotCapturer, *, name: str = "viewshot") -> FastMCP:
    """Create the FastMCP server; its lifespan closes pooled browsers on exit."""

    @asynccontextmanager
    async def _lifespan(_: FastMCP) -> AsyncIterator[None]:
        try:
            yield
        finally:
            await capturer.shutdown()

    mcp = FastMCP(name, lifespan=_lifespan)

    @mcp.tool(name="screenshot", description=TOOL_DESCRIPTION, structured_output=False)
    async def screenshot(  # noqa: N803 - parameter names are the tool's wire contract
        url: Annotated[str, Field(description="URL to capture screenshots from")],
        breakpoints: Annotated[
            list[dict[str, Any]] | None,
            Field(
                description=(
                    "Viewport breakpoints as [{width: px}]; defaults to mobile 375, "
                    "tablet 768, desktop 1280"
                )
            ),
        ] = None,
        headless: Annotated[bool, Field(description="Run browser in headless mode")] = True,
        waitFor: Annotated[
            Literal["load", "domcontentloaded", "networkidle0", "networkidle2"],
            Field(
                description=(
                    "Wait condition before capturing screenshot; networkidle0 and networkidle2 "
                    "both wait for Playwright's networkidle state"
                )
            ),
        ] = "networkidle0",
        timeout: Annotated[int, Field(gt=0, description="Navigation timeout in milliseconds")] = 30000,
        maxWidth: Annotated[
            int,
            Field(gt=0, description="Maximum image width; wider viewports are clipped"),
        ] = 1280,
        imageFormat: Annotated[
            Literal["png", "jpeg"],
            Field(description="Image format (JPEG recommended for smaller file sizes)"),
        ] = "jpeg",
        quality: Annotated[
            int,
            Field(ge=1, le=100, description="JPEG quality (1-100, only applies to jpeg)"),
        ] = 80,
        actions: Annotated[
            list[dict[str, Any]] | None,
            Field(
                description=(
                    "Page actions run in order before each capture. Each has a type: click, type, "
                    "clear, scroll, hover, select, wait, waitForElement, navigate; plus selector, "
                    "text, value, x, y, duration, timeout, or url as required"
                )
            ),
        ] = None,
        sessionId: Annotated[
            str | None,
            Field(description="Reuse a persistent browser profile (cookies, storage) under this id"),
        ] = None,
        userDataDir: Annotated[
            str | None,
            Field(description="Explicit browser profile directory (overrides the session default)"),
        ] = None,
        cookies: Annotated[
            list[dict[str, Any]] | None,
            Field(
                description=(
                    "Cookies set before navigation: name, value, and optional domain (defaults "
                    "to the URL host), path, expires, httpOnly, secure, sameSite"
                )
            ),
        ] = None,
    ) -> list[TextContent | ImageContent]:
        arguments = {
            "url": url,
            "breakpoints": breakpoints,
            "headless": headless,
            "waitFor": waitFor,
            "timeout": timeout,
            "maxWidth": maxWidth,
            "imageFormat": imageFormat,
            "quality": quality,
            "actions": actions,
            "sessionId": sessionId,
            "userDataDir": userDataDir,
            "cookies": cookies,
        }
        try:
            request = parse_capture_request({k: v for k, v in arguments.items() if v is not None})
        except InputError as exc:
            raise ToolError(str(exc)) from exc

        result = await capturer.capture(request)
        if not result.success:
            raise ToolError(result.error or "Screenshot capture failed")
        LOGGER.info(
            "screenshot",
            extra={"url": request.url, "captures": len(result.screenshots), "session": request.session_id},
        )
        return to_mcp_content(build_content_blocks(request, result))

    return mcp


def configure_logging(level: str) -> None:
    """Log to stderr; stdout carries the MCP stdio stream."""

    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        stream=sys.stderr,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def build_capturer(settings: Settings | None = None) -> ScreenshotCapturer:
    active = settings or get_settings()
    return ScreenshotCapturer(BrowserPool(settings=active.browser), settings=active)


def main() -> None:
    settings = get_settings()
    configure_logging(settings.logging.level)
    metrics.start_exporter(settings.telemetry.prometheus_port)
    server = create_server(build_capturer(settings), name=settings.server.name)
    LOGGER.info("viewshot MCP server running on stdio")
    server.run()


if __name__ == "__main__":
    main()

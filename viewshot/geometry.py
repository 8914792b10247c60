"""Full-page geometry probe."""

from __future__ import annotations

from dataclasses import dataclass

from playwright.async_api import Page

_CONTENT_SIZE_JS = """
() => ({
    width: Math.max(document.documentElement.scrollWidth, document.body ? document.body.scrollWidth : 0),
    height: Math.max(document.documentElement.scrollHeight, document.body ? document.body.scrollHeight : 0)
})
"""


@dataclass(frozen=True, slots=True)
class ContentSize:
    """Rendered content extent in CSS pixels."""

    width: int
    height: int


async def measure_content_size(page: Page) -> ContentSize:
    """Return the true rendered content size, including overflowing elements.

    Layout can change after scripted interaction, so call this only once
    navigation and actions have settled.
    """

    result = await page.evaluate(_CONTENT_SIZE_JS)
    return ContentSize(
        width=int(result.get("width", 0)),
        height=int(result.get("height", 0)),
    )

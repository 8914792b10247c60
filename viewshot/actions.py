"""Replay scripted page interactions before a screenshot is taken."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, Sequence

from playwright.async_api import Page

from viewshot.errors import ActionError
from viewshot.schemas import (
    ClearAction,
    ClickAction,
    HoverAction,
    NavigateAction,
    ScrollAction,
    SelectAction,
    TypeAction,
    WaitAction,
    WaitForElementAction,
)

LOGGER = logging.getLogger(__name__)

DEFAULT_ELEMENT_TIMEOUT_MS = 5000
DEFAULT_SETTLE_MS = 100

_CLEAR_JS = """
(selector) => {
    const element = document.querySelector(selector);
    if (element) element.value = '';
}
"""
_SCROLL_TO_JS = "([x, y]) => window.scrollTo(x, y)"
_SCROLL_INTO_VIEW_JS = "(selector) => { const el = document.querySelector(selector); if (el) el.scrollIntoView(); }"
_SCROLL_BOTTOM_JS = "() => window.scrollTo(0, document.body.scrollHeight)"

Handler = Callable[[Page, Any, int], Awaitable[None]]


async def _wait_for(page: Page, selector: str, timeout_ms: int) -> None:
    await page.wait_for_selector(selector, state="attached", timeout=timeout_ms)


async def _click(page: Page, action: ClickAction, timeout_ms: int) -> None:
    await _wait_for(page, action.selector, timeout_ms)
    await page.click(action.selector, timeout=timeout_ms)


async def _type(page: Page, action: TypeAction, timeout_ms: int) -> None:
    await _wait_for(page, action.selector, timeout_ms)
    await page.type(action.selector, action.text, timeout=timeout_ms)


async def _clear(page: Page, action: ClearAction, timeout_ms: int) -> None:
    await _wait_for(page, action.selector, timeout_ms)
    await page.evaluate(_CLEAR_JS, action.selector)


async def _scroll(page: Page, action: ScrollAction, timeout_ms: int) -> None:
    if action.has_coordinates:
        await page.evaluate(_SCROLL_TO_JS, [action.x, action.y])
    elif action.selector:
        await _wait_for(page, action.selector, timeout_ms)
        await page.evaluate(_SCROLL_INTO_VIEW_JS, action.selector)
    else:
        await page.evaluate(_SCROLL_BOTTOM_JS)


async def _hover(page: Page, action: HoverAction, timeout_ms: int) -> None:
    await _wait_for(page, action.selector, timeout_ms)
    await page.hover(action.selector, timeout=timeout_ms)


async def _select(page: Page, action: SelectAction, timeout_ms: int) -> None:
    await _wait_for(page, action.selector, timeout_ms)
    await page.select_option(action.selector, action.value, timeout=timeout_ms)


async def _wait(page: Page, action: WaitAction, timeout_ms: int) -> None:  # noqa: ARG001
    await asyncio.sleep(action.duration / 1000)


async def _wait_for_element(page: Page, action: WaitForElementAction, timeout_ms: int) -> None:  # noqa: ARG001
    await _wait_for(page, action.selector, action.timeout)


async def _navigate(page: Page, action: NavigateAction, timeout_ms: int) -> None:  # noqa: ARG001
    await page.goto(action.url, wait_until="networkidle")


_HANDLERS: dict[type, Handler] = {
    ClickAction: _click,
    TypeAction: _type,
    ClearAction: _clear,
    ScrollAction: _scroll,
    HoverAction: _hover,
    SelectAction: _select,
    WaitAction: _wait,
    WaitForElementAction: _wait_for_element,
    NavigateAction: _navigate,
}


async def execute_actions(
    page: Page,
    actions: Sequence[Any],
    *,
    element_timeout_ms: int = DEFAULT_ELEMENT_TIMEOUT_MS,
    settle_ms: int = DEFAULT_SETTLE_MS,
) -> int:
    """Run ``actions`` against ``page`` strictly in order.

    The first failure aborts the remaining actions and raises ``ActionError``
    naming the action type; effects of earlier actions stay on the page.
    Returns the number of actions executed.
    """

    for index, action in enumerate(actions, start=1):
        action_type = str(getattr(action, "type", type(action).__name__))
        handler = _HANDLERS.get(type(action))
        if handler is None:
            raise ActionError(action_type, f"Unknown action type: {action_type}")
        LOGGER.debug("action %s/%s: %s", index, len(actions), action.describe())
        try:
            await handler(page, action, element_timeout_ms)
        except Exception as exc:
            raise ActionError(action_type, str(exc)) from exc
        if settle_ms > 0:
            await page.wait_for_timeout(settle_ms)
    return len(actions)

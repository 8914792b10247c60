"""Browser pool keyed by session identifier.

Each session key owns at most one live browser. A session identifier maps to a
persistent Chromium profile directory so cookies, local storage and cache
survive across requests; requests without one share the ephemeral
``default`` browser.

The pool is meant to be driven from a single asyncio event loop. It does not
serialize overlapping requests against the same session: callers must not
issue them concurrently.
"""

from __future__ import annotations

import hashlib
import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Awaitable, Callable, Mapping, Optional
from uuid import uuid4

from playwright.async_api import Browser, BrowserContext, Page, Playwright, async_playwright

from viewshot import metrics
from viewshot.errors import LaunchError
from viewshot.settings import BrowserSettings, get_settings

LOGGER = logging.getLogger(__name__)

DEFAULT_SESSION_KEY = "default"

_SLUG_PATTERN = re.compile(r"[^A-Za-z0-9._-]+")


def _profile_slug(session_id: str) -> str:
    """Filesystem-safe directory name, unique per session id.

    Ids that had to be rewritten get a digest suffix so distinct ids never
    share a profile.
    """

    slug = _SLUG_PATTERN.sub("-", session_id).strip(".-") or "session"
    if slug == session_id:
        return slug
    digest = hashlib.sha256(session_id.encode("utf-8")).hexdigest()[:8]
    return f"{slug}-{digest}"


@dataclass(slots=True, eq=False)
class BrowserHandle:
    """A launched browser process, optionally bound to a profile directory.

    Persistent profiles come back from Playwright as a ``BrowserContext``
    whose ``browser`` may be ``None``; plain launches give a ``Browser``.
    """

    session_key: str
    profile_dir: Path | None
    browser: Browser | None = None
    context: BrowserContext | None = None
    marker: str = field(default_factory=lambda: uuid4().hex)
    context_closed: bool = field(default=False, init=False)

    def __post_init__(self) -> None:
        if self.browser is None and self.context is None:
            raise ValueError("BrowserHandle needs a browser or a persistent context")
        if self.context is not None:
            self.context.on("close", self._on_context_close)

    def _on_context_close(self, *_: object) -> None:
        self.context_closed = True

    @property
    def persistent(self) -> bool:
        return self.profile_dir is not None

    def is_connected(self) -> bool:
        if self.context is not None:
            if self.context_closed:
                return False
            owner = self.context.browser
            return owner.is_connected() if owner is not None else True
        return self.browser is not None and self.browser.is_connected()

    async def new_page(self) -> Page:
        if self.context is not None:
            return await self.context.new_page()
        assert self.browser is not None
        return await self.browser.new_page()

    async def close(self) -> None:
        if self.context is not None:
            await self.context.close()
        elif self.browser is not None:
            await self.browser.close()


Launcher = Callable[[str, bool, Optional[Path]], Awaitable[BrowserHandle]]


class BrowserPool:
    """Owns one browser handle per session key for the process lifetime."""

    def __init__(
        self,
        *,
        settings: BrowserSettings | None = None,
        launcher: Launcher | None = None,
    ) -> None:
        self._settings = settings or get_settings().browser
        self._launcher = launcher or self._launch_chromium
        self._handles: dict[str, BrowserHandle] = {}
        self._playwright: Playwright | None = None

    @property
    def sessions(self) -> Mapping[str, BrowserHandle]:
        return MappingProxyType(self._handles)

    def __contains__(self, key: object) -> bool:
        return key in self._handles

    def __len__(self) -> int:
        return len(self._handles)

    def resolve_profile_dir(self, session_id: str | None, user_data_dir: str | None) -> Path | None:
        """Explicit directory wins; a session id maps under the profile root."""

        if user_data_dir:
            return Path(user_data_dir).expanduser()
        if session_id:
            return self._settings.profile_root / _profile_slug(session_id)
        return None

    async def acquire(
        self,
        session_id: str | None = None,
        *,
        headless: bool = True,
        user_data_dir: str | None = None,
    ) -> BrowserHandle:
        """Return the live browser for the session, launching one if needed."""

        key = session_id or DEFAULT_SESSION_KEY
        handle = self._handles.get(key)
        if handle is not None:
            if handle.is_connected():
                return handle
            LOGGER.info("Evicting disconnected browser for session %s", key)
            self._handles.pop(key, None)
            metrics.record_session_eviction()

        profile_dir = self.resolve_profile_dir(session_id, user_data_dir)
        try:
            handle = await self._launcher(key, headless, profile_dir)
        except LaunchError:
            raise
        except Exception as exc:
            raise LaunchError(str(exc)) from exc

        self._handles[key] = handle
        metrics.record_browser_launch(persistent=profile_dir is not None)
        LOGGER.info(
            "Launched browser for session %s",
            key,
            extra={"session": key, "profile_dir": str(profile_dir) if profile_dir else None},
        )
        return handle

    async def shutdown(self) -> None:
        """Close every owned browser and stop the Playwright driver."""

        handles = list(self._handles.values())
        self._handles.clear()
        for handle in handles:
            if not handle.is_connected():
                continue
            try:
                await handle.close()
            except Exception as exc:  # pragma: no cover - browser already gone
                LOGGER.warning("Failed to close browser for session %s: %s", handle.session_key, exc)
        if self._playwright is not None:
            await self._playwright.stop()
            self._playwright = None

    async def _launch_chromium(self, key: str, headless: bool, profile_dir: Path | None) -> BrowserHandle:
        if self._playwright is None:
            self._playwright = await async_playwright().start()
        options: dict[str, object] = {
            "headless": headless,
            "args": list(self._settings.launch_args),
        }
        if self._settings.executable_path:
            options["executable_path"] = self._settings.executable_path

        if profile_dir is None:
            browser = await self._playwright.chromium.launch(**options)
            return BrowserHandle(session_key=key, profile_dir=None, browser=browser)

        profile_dir.mkdir(parents=True, exist_ok=True)
        context = await self._playwright.chromium.launch_persistent_context(str(profile_dir), **options)
        return BrowserHandle(session_key=key, profile_dir=profile_dir, context=context)

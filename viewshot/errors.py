"""Error taxonomy for capture requests."""

from __future__ import annotations

__all__ = [
    "ViewshotError",
    "InputError",
    "LaunchError",
    "NavigationError",
    "ActionError",
    "CaptureError",
    "CookieError",
]


class ViewshotError(Exception):
    """Base class for failures surfaced by the capture pipeline."""


class InputError(ViewshotError, ValueError):
    """A required field is missing or invalid; never retried."""


class LaunchError(ViewshotError):
    """The browser process could not be started."""


class NavigationError(ViewshotError):
    """Navigation timed out or failed."""


class ActionError(ViewshotError):
    """A scripted page interaction failed."""

    def __init__(self, action_type: str, cause: str) -> None:
        super().__init__(f"Failed to execute action {action_type}: {cause}")
        self.action_type = action_type
        self.cause = cause


class CaptureError(ViewshotError):
    """Geometry probing or image rendering failed."""


class CookieError(ViewshotError):
    """A single cookie could not be set. Non-fatal: logged and skipped."""

    def __init__(self, name: str, cause: str) -> None:
        super().__init__(f"Failed to set cookie {name!r}: {cause}")
        self.name = name

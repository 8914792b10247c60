"""Pydantic DTOs for capture requests, page actions, and capture results."""

from __future__ import annotations

from enum import Enum
from typing import Annotated, Any, Literal, Mapping, Union
from urllib.parse import urlparse

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from viewshot.errors import InputError

DEFAULT_WIDTHS: tuple[int, ...] = (375, 768, 1280)


class _RequestModel(BaseModel):
    """Accepts the tool's camelCase keys as well as snake_case; ignores extras."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
        frozen=True,
    )


class WaitCondition(str, Enum):
    """Navigation wait conditions accepted by the tool."""

    LOAD = "load"
    DOM_CONTENT_LOADED = "domcontentloaded"
    NETWORK_IDLE_STRICT = "networkidle0"
    NETWORK_IDLE_LIGHT = "networkidle2"

    @property
    def playwright_state(self) -> str:
        """Map to the ``wait_until`` value Playwright understands."""

        if self in (WaitCondition.NETWORK_IDLE_STRICT, WaitCondition.NETWORK_IDLE_LIGHT):
            return "networkidle"
        return self.value


class ImageFormat(str, Enum):
    PNG = "png"
    JPEG = "jpeg"

    @property
    def mime_type(self) -> str:
        return f"image/{self.value}"


class SameSite(str, Enum):
    STRICT = "Strict"
    LAX = "Lax"
    NONE = "None"


class Breakpoint(_RequestModel):
    width: int = Field(gt=0, description="Viewport width in pixels")


# -- Page actions ---------------------------------------------------------------


class ClickAction(_RequestModel):
    type: Literal["click"] = "click"
    selector: str

    def describe(self) -> str:
        return f"click {self.selector}"


class TypeAction(_RequestModel):
    type: Literal["type"] = "type"
    selector: str
    text: str

    def describe(self) -> str:
        return f"type into {self.selector}"


class ClearAction(_RequestModel):
    type: Literal["clear"] = "clear"
    selector: str

    def describe(self) -> str:
        return f"clear {self.selector}"


class ScrollAction(_RequestModel):
    """Scroll to (x, y), to an element, or to the bottom of the page."""

    type: Literal["scroll"] = "scroll"
    x: int | None = None
    y: int | None = None
    selector: str | None = None

    @property
    def has_coordinates(self) -> bool:
        return self.x is not None and self.y is not None

    def describe(self) -> str:
        if self.has_coordinates:
            return f"scroll to ({self.x}, {self.y})"
        if self.selector:
            return f"scroll to {self.selector}"
        return "scroll to bottom"


class HoverAction(_RequestModel):
    type: Literal["hover"] = "hover"
    selector: str

    def describe(self) -> str:
        return f"hover {self.selector}"


class SelectAction(_RequestModel):
    type: Literal["select"] = "select"
    selector: str
    value: str

    def describe(self) -> str:
        return f"select {self.value!r} in {self.selector}"


class WaitAction(_RequestModel):
    type: Literal["wait"] = "wait"
    duration: int = Field(default=1000, ge=0, description="Milliseconds to wait")

    def describe(self) -> str:
        return f"wait {self.duration}ms"


class WaitForElementAction(_RequestModel):
    type: Literal["waitForElement"] = "waitForElement"
    selector: str
    timeout: int = Field(default=5000, gt=0)

    @field_validator("timeout", mode="before")
    @classmethod
    def _zero_means_default(cls, value: Any) -> Any:
        return 5000 if value in (None, 0) else value

    def describe(self) -> str:
        return f"wait for {self.selector}"


class NavigateAction(_RequestModel):
    type: Literal["navigate"] = "navigate"
    url: str

    def describe(self) -> str:
        return f"navigate to {self.url}"


PageAction = Annotated[
    Union[
        ClickAction,
        TypeAction,
        ClearAction,
        ScrollAction,
        HoverAction,
        SelectAction,
        WaitAction,
        WaitForElementAction,
        NavigateAction,
    ],
    Field(discriminator="type"),
]

_ACTION_MODELS: dict[str, type[BaseModel]] = {
    "click": ClickAction,
    "type": TypeAction,
    "clear": ClearAction,
    "scroll": ScrollAction,
    "hover": HoverAction,
    "select": SelectAction,
    "wait": WaitAction,
    "waitForElement": WaitForElementAction,
    "navigate": NavigateAction,
}

# Fields that must be present and non-empty, in the order they are reported.
_REQUIRED_FIELDS: dict[str, tuple[str, ...]] = {
    "click": ("selector",),
    "type": ("selector", "text"),
    "clear": ("selector",),
    "hover": ("selector",),
    "select": ("selector", "value"),
    "waitForElement": ("selector",),
    "navigate": ("url",),
}

_ACTION_LABELS = {"waitForElement": "WaitForElement"}


def parse_action(raw: Any) -> BaseModel:
    """Validate one raw action mapping into its typed variant.

    Raises ``InputError`` naming the action type when the type is unknown or a
    required field is missing.
    """

    if isinstance(raw, BaseModel):
        return raw
    if not isinstance(raw, Mapping):
        raise InputError(f"Action must be an object, got {type(raw).__name__}")
    action_type = raw.get("type")
    model = _ACTION_MODELS.get(action_type) if isinstance(action_type, str) else None
    if model is None:
        raise InputError(f"Unknown action type: {action_type}")
    missing = [name for name in _REQUIRED_FIELDS.get(action_type, ()) if not raw.get(name)]
    if missing:
        label = _ACTION_LABELS.get(action_type, action_type.capitalize())
        raise InputError(f"{label} action requires {' and '.join(missing)}")
    return model.model_validate(dict(raw))


# -- Cookies --------------------------------------------------------------------


class CookieSpec(_RequestModel):
    name: str = Field(min_length=1)
    value: str
    domain: str | None = None
    path: str = "/"
    expires: float | None = Field(default=None, description="Unix time in seconds")
    http_only: bool | None = None
    secure: bool | None = None
    same_site: SameSite | None = None

    def to_playwright(self, default_domain: str) -> dict[str, Any]:
        """Return the dict accepted by ``BrowserContext.add_cookies``."""

        cookie: dict[str, Any] = {
            "name": self.name,
            "value": self.value,
            "domain": self.domain or default_domain,
            "path": self.path or "/",
        }
        if self.expires is not None:
            cookie["expires"] = self.expires
        if self.http_only is not None:
            cookie["httpOnly"] = self.http_only
        if self.secure is not None:
            cookie["secure"] = self.secure
        if self.same_site is not None:
            cookie["sameSite"] = self.same_site.value
        return cookie


# -- Requests -------------------------------------------------------------------


class CaptureRequest(_RequestModel):
    """Immutable description of one screenshot run."""

    url: str = Field(default="", description="URL to capture screenshots from")
    breakpoints: list[Breakpoint] = Field(default_factory=list)
    headless: bool = True
    wait_for: WaitCondition = WaitCondition.NETWORK_IDLE_STRICT
    timeout: int = Field(default=30000, gt=0, description="Navigation timeout in milliseconds")
    max_width: int = Field(default=1280, gt=0)
    image_format: ImageFormat = ImageFormat.JPEG
    quality: int = Field(default=80, ge=1, le=100)
    actions: list[PageAction] = Field(default_factory=list)
    session_id: str | None = None
    user_data_dir: str | None = None
    cookies: list[CookieSpec] = Field(default_factory=list)

    @field_validator("actions", mode="before")
    @classmethod
    def _parse_actions(cls, value: Any) -> Any:
        if value is None:
            return []
        if not isinstance(value, list):
            return value
        parsed = []
        for index, raw in enumerate(value, start=1):
            try:
                parsed.append(parse_action(raw))
            except InputError as exc:
                raise InputError(f"Invalid action #{index}: {exc}") from exc
        return parsed

    @field_validator("breakpoints", "cookies", mode="before")
    @classmethod
    def _none_as_empty(cls, value: Any) -> Any:
        return [] if value is None else value

    @property
    def widths(self) -> list[int]:
        """Requested viewport widths, falling back to mobile/tablet/desktop."""

        if not self.breakpoints:
            return list(DEFAULT_WIDTHS)
        return [breakpoint.width for breakpoint in self.breakpoints]

    @property
    def host(self) -> str:
        return urlparse(self.url).hostname or ""


# -- Results --------------------------------------------------------------------


class DiagnosticType(str, Enum):
    JAVASCRIPT = "javascript"
    CONSOLE = "console"
    NETWORK = "network"
    SECURITY = "security"


class DiagnosticLevel(str, Enum):
    ERROR = "error"
    WARNING = "warning"
    INFO = "info"


class DiagnosticRecord(BaseModel):
    """One page-runtime event observed during a capture run."""

    model_config = ConfigDict(frozen=True)

    type: DiagnosticType
    level: DiagnosticLevel
    message: str
    timestamp: str
    source: str | None = None
    line: int | None = None
    column: int | None = None
    url: str | None = None
    status_code: int | None = None


class DiagnosticSummary(BaseModel):
    total_errors: int = 0
    total_warnings: int = 0
    total_logs: int = 0
    has_javascript_errors: bool = False
    has_network_errors: bool = False
    has_console_logs: bool = False


class Size(BaseModel):
    width: int = Field(ge=0)
    height: int = Field(ge=0)


class CaptureMetadata(BaseModel):
    viewport: Size = Field(description="Layout viewport used while rendering")
    actual_content_size: Size
    load_time_ms: int = Field(ge=0)
    timestamp: str
    optimized: bool = Field(description="True when the image was clipped to max width")
    original_size: Size | None = None


class ViewportCapture(BaseModel):
    width: int = Field(description="Effective (possibly clamped) width")
    height: int = Field(description="Measured content height")
    image: bytes = Field(repr=False)
    format: ImageFormat
    metadata: CaptureMetadata

    @property
    def mime_type(self) -> str:
        return self.format.mime_type


class SessionInfo(BaseModel):
    session_id: str
    profile_dir: str | None = None
    persistent: bool = True


class CaptureResult(BaseModel):
    success: bool
    screenshots: list[ViewportCapture] = Field(default_factory=list)
    page_errors: list[DiagnosticRecord] = Field(default_factory=list)
    error_summary: DiagnosticSummary = Field(default_factory=DiagnosticSummary)
    session: SessionInfo | None = None
    error: str | None = None

    @classmethod
    def failed(cls, message: str) -> "CaptureResult":
        return cls(success=False, error=message)

"""Typed configuration objects backed by python-decouple settings."""

from __future__ import annotations

import tempfile
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path

from decouple import Config as DecoupleConfig, RepositoryEmpty, RepositoryEnv

__all__ = [
    "BrowserSettings",
    "ActionSettings",
    "LoggingSettings",
    "TelemetrySettings",
    "ServerSettings",
    "Settings",
    "SANDBOX_ARGS",
    "load_config",
    "get_settings",
]

SANDBOX_ARGS: tuple[str, ...] = ("--no-sandbox", "--disable-setuid-sandbox")


@dataclass(frozen=True, slots=True)
class BrowserSettings:
    """Chromium launch and profile layout knobs."""

    executable_path: str | None
    profile_root: Path
    launch_args: tuple[str, ...]
    initial_viewport_height: int


@dataclass(frozen=True, slots=True)
class ActionSettings:
    """Timing used while replaying scripted page actions."""

    element_timeout_ms: int
    settle_ms: int


@dataclass(frozen=True, slots=True)
class LoggingSettings:
    """Log level plus the optional JSONL diagnostics log."""

    level: str
    diagnostics_log_path: Path | None


@dataclass(frozen=True, slots=True)
class TelemetrySettings:
    """Prometheus exporter port (0 disables)."""

    prometheus_port: int


@dataclass(frozen=True, slots=True)
class ServerSettings:
    name: str


@dataclass(frozen=True, slots=True)
class Settings:
    """Top-level immutable configuration container."""

    env_path: str
    browser: BrowserSettings
    actions: ActionSettings
    logging: LoggingSettings
    telemetry: TelemetrySettings
    server: ServerSettings


def load_config(env_path: str = ".env") -> DecoupleConfig:
    """Return a python-decouple config anchored to the repository .env file.

    Without a .env file only the process environment is consulted.
    """

    if Path(env_path).is_file():
        return DecoupleConfig(RepositoryEnv(env_path))
    return DecoupleConfig(RepositoryEmpty())


def _int(cfg: DecoupleConfig, key: str, *, default: int) -> int:
    return cfg(key, cast=int, default=default)


def _csv_tuple(cfg: DecoupleConfig, key: str) -> tuple[str, ...]:
    raw = cfg(key, default="")
    if not raw:
        return tuple()
    return tuple(part.strip() for part in raw.split(",") if part.strip())


def _optional_path(cfg: DecoupleConfig, key: str) -> Path | None:
    raw = cfg(key, default="")
    return Path(raw) if raw else None


@lru_cache(maxsize=1)
def get_settings(env_path: str = ".env") -> Settings:
    """Load and memoize structured settings for the current process."""

    cfg = load_config(env_path)

    default_profile_root = Path(tempfile.gettempdir()) / "viewshot-sessions"
    extra_args = _csv_tuple(cfg, "BROWSER_EXTRA_ARGS")
    browser = BrowserSettings(
        executable_path=cfg("BROWSER_EXECUTABLE_PATH", default=None) or None,
        profile_root=Path(cfg("PROFILE_ROOT", default=str(default_profile_root))),
        launch_args=SANDBOX_ARGS + tuple(arg for arg in extra_args if arg not in SANDBOX_ARGS),
        initial_viewport_height=_int(cfg, "CAPTURE_INITIAL_HEIGHT", default=800),
    )
    actions = ActionSettings(
        element_timeout_ms=_int(cfg, "ACTION_ELEMENT_TIMEOUT_MS", default=5000),
        settle_ms=_int(cfg, "ACTION_SETTLE_MS", default=100),
    )
    if actions.element_timeout_ms <= 0:
        msg = "ACTION_ELEMENT_TIMEOUT_MS must be positive"
        raise ValueError(msg)

    logging_settings = LoggingSettings(
        level=cfg("LOG_LEVEL", default="INFO").upper(),
        diagnostics_log_path=_optional_path(cfg, "DIAGNOSTICS_LOG_PATH"),
    )
    telemetry = TelemetrySettings(prometheus_port=_int(cfg, "PROMETHEUS_PORT", default=0))
    server = ServerSettings(name=cfg("MCP_SERVER_NAME", default="viewshot"))

    return Settings(
        env_path=env_path,
        browser=browser,
        actions=actions,
        logging=logging_settings,
        telemetry=telemetry,
        server=server,
    )

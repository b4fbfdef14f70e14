"""Process settings read from ``CVAC_*`` environment variables, plus startup checks."""

from __future__ import annotations

import os
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import List, Mapping, Optional

from .documents import ProjectLayout

DEFAULT_PORT = 3000


def _env_float(environ: Mapping[str, str], key: str, default: float) -> float:
    raw = environ.get(key, "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _env_int(environ: Mapping[str, str], key: str, default: int) -> int:
    raw = environ.get(key, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_flag(environ: Mapping[str, str], key: str, default: bool) -> bool:
    raw = environ.get(key, "").strip().lower()
    if not raw:
        return default
    return raw in {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class PreviewSettings:
    """Runtime knobs for one preview server process."""

    root_dir: Path
    host: str = "127.0.0.1"
    port: int = DEFAULT_PORT
    debounce_seconds: float = 0.1
    heartbeat_seconds: float = 30.0
    idle_grace_seconds: float = 5.0
    idle_shutdown: bool = True
    render_timeout_seconds: float = 300.0
    extract_timeout_seconds: float = 120.0
    requested_document: Optional[str] = None
    update_available: bool = False
    verbose: bool = False

    @property
    def layout(self) -> ProjectLayout:
        return ProjectLayout(self.root_dir)

    @property
    def browsers_dir(self) -> Path:
        """Repo-local Playwright browser install, removed by cleanup."""
        return self.root_dir / ".cvac" / "browsers"

    @property
    def base_url(self) -> str:
        return f"http://localhost:{self.port}"

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "PreviewSettings":
        env = os.environ if environ is None else environ
        root = Path(env.get("CVAC_ROOT") or Path.cwd()).expanduser().resolve()
        return cls(
            root_dir=root,
            host=env.get("CVAC_HOST", "127.0.0.1") or "127.0.0.1",
            port=_env_int(env, "CVAC_PORT", DEFAULT_PORT),
            debounce_seconds=_env_float(env, "CVAC_DEBOUNCE_MS", 100.0) / 1000.0,
            heartbeat_seconds=_env_float(env, "CVAC_HEARTBEAT_SECONDS", 30.0),
            idle_grace_seconds=_env_float(env, "CVAC_IDLE_GRACE_SECONDS", 5.0),
            idle_shutdown=_env_flag(env, "CVAC_IDLE_SHUTDOWN", True),
            render_timeout_seconds=_env_float(env, "CVAC_RENDER_TIMEOUT_SECONDS", 300.0),
            extract_timeout_seconds=_env_float(env, "CVAC_EXTRACT_TIMEOUT_SECONDS", 120.0),
            requested_document=env.get("CVAC_RESUME") or None,
            update_available=_env_flag(env, "CVAC_UPDATE_AVAILABLE", False),
            verbose=_env_flag(env, "CVAC_VERBOSE", False),
        )

    def to_env(self) -> dict:
        """Environment passed to a child server so it rebuilds the same settings."""
        env = {
            "CVAC_ROOT": str(self.root_dir),
            "CVAC_HOST": self.host,
            "CVAC_PORT": str(self.port),
            "CVAC_DEBOUNCE_MS": str(self.debounce_seconds * 1000.0),
            "CVAC_HEARTBEAT_SECONDS": str(self.heartbeat_seconds),
            "CVAC_IDLE_GRACE_SECONDS": str(self.idle_grace_seconds),
            "CVAC_IDLE_SHUTDOWN": "1" if self.idle_shutdown else "0",
            "CVAC_RENDER_TIMEOUT_SECONDS": str(self.render_timeout_seconds),
            "CVAC_EXTRACT_TIMEOUT_SECONDS": str(self.extract_timeout_seconds),
            "CVAC_UPDATE_AVAILABLE": "1" if self.update_available else "0",
            "CVAC_VERBOSE": "1" if self.verbose else "0",
        }
        if self.requested_document:
            env["CVAC_RESUME"] = self.requested_document
        return env


class Severity(Enum):
    ERROR = "error"
    WARNING = "warning"


@dataclass
class ConfigIssue:
    """A single settings problem found at startup."""
    field: str
    message: str
    severity: Severity


def validate_settings(settings: PreviewSettings) -> List[ConfigIssue]:
    """Check settings before the server binds its port.

    Returns:
        List of ConfigIssue (empty = valid)
    """
    issues: List[ConfigIssue] = []

    if not 0 < settings.port < 65536:
        issues.append(ConfigIssue(
            field="port",
            message=f"port must be between 1 and 65535, got {settings.port}",
            severity=Severity.ERROR,
        ))

    if settings.host not in {"127.0.0.1", "localhost", "::1"}:
        issues.append(ConfigIssue(
            field="host",
            message=f"preview server only binds to localhost, got {settings.host}",
            severity=Severity.ERROR,
        ))

    for field_name in ("render_timeout_seconds", "extract_timeout_seconds", "heartbeat_seconds"):
        value = getattr(settings, field_name)
        if value <= 0:
            issues.append(ConfigIssue(
                field=field_name,
                message=f"{field_name} must be positive, got {value}",
                severity=Severity.ERROR,
            ))

    if settings.debounce_seconds < 0 or settings.idle_grace_seconds < 0:
        issues.append(ConfigIssue(
            field="timers",
            message="debounce and idle grace periods cannot be negative",
            severity=Severity.ERROR,
        ))

    if not settings.root_dir.exists():
        issues.append(ConfigIssue(
            field="root_dir",
            message=f"Root directory does not exist: {settings.root_dir}",
            severity=Severity.WARNING,
        ))

    return issues


def has_errors(issues: List[ConfigIssue]) -> bool:
    """Check if any issues are errors (not just warnings)."""
    return any(issue.severity == Severity.ERROR for issue in issues)

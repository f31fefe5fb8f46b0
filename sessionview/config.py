"""Sessionview configuration."""
import os
from pathlib import Path


def _env_bool(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        return default


def _env_path(name: str, default: Path) -> Path:
    value = os.getenv(name)
    if not value:
        return default
    return Path(value).expanduser()


HOME_DIR = Path.home()

# Session roots written by the two CLIs
CODEX_SESSIONS_DIR = _env_path("SESSIONVIEW_CODEX_SESSIONS_DIR", HOME_DIR / ".codex" / "sessions")
CLAUDE_PROJECTS_DIR = _env_path("SESSIONVIEW_CLAUDE_PROJECTS_DIR", HOME_DIR / ".claude" / "projects")
CLAUDE_REF_PREFIX = "claude:"

# Line extraction
MAX_LINE_BYTES = _env_int("SESSIONVIEW_MAX_LINE_BYTES", 10 * 1024 * 1024)
READ_CHUNK_BYTES = _env_int("SESSIONVIEW_READ_CHUNK_BYTES", 256 * 1024)

# Local image paths are rewritten to this prefix + url-encoded path
IMAGE_PROXY_PREFIX = os.getenv("SESSIONVIEW_IMAGE_PROXY_PREFIX", "/api/image?path=")

# Observability
OTEL_ENABLED = _env_bool("SESSIONVIEW_OTEL_ENABLED", False)
OTEL_ENDPOINT = os.getenv("SESSIONVIEW_OTEL_ENDPOINT", "http://localhost:4318")
OTEL_SERVICE_NAME = os.getenv("SESSIONVIEW_OTEL_SERVICE_NAME", "sessionview")
PROM_PORT = _env_int("SESSIONVIEW_PROM_PORT", 0)

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path


@dataclass(slots=True)
class Settings:
    host: str
    port: int
    workspace_root: str | None
    command_timeout_ms: int
    idle_timeout_ms: int
    git_check_timeout_ms: int
    glob_max_results: int
    background_max_timeout_ms: int
    log_level: str


def _parse_positive_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = int(raw.strip())
    except ValueError as exc:
        raise RuntimeError(f"{name} must be an integer, got {raw!r}") from exc
    if value <= 0:
        raise RuntimeError(f"{name} must be positive, got {value}")
    return value


def load_settings() -> Settings:
    raw_root = os.getenv("SHELLGATE_WORKSPACE_ROOT", "").strip()
    workspace_root = str(Path(raw_root).expanduser().resolve()) if raw_root else None

    return Settings(
        host=os.getenv("SHELLGATE_HOST", "127.0.0.1"),
        port=_parse_positive_int("SHELLGATE_PORT", 8050),
        workspace_root=workspace_root,
        command_timeout_ms=_parse_positive_int("SHELLGATE_COMMAND_TIMEOUT_MS", 300000),
        idle_timeout_ms=_parse_positive_int("SHELLGATE_IDLE_TIMEOUT_MS", 60000),
        git_check_timeout_ms=_parse_positive_int("SHELLGATE_GIT_CHECK_TIMEOUT_MS", 5000),
        glob_max_results=_parse_positive_int("SHELLGATE_GLOB_MAX_RESULTS", 10000),
        background_max_timeout_ms=_parse_positive_int("SHELLGATE_BACKGROUND_MAX_TIMEOUT_MS", 7200000),
        log_level=os.getenv("SHELLGATE_LOG_LEVEL", "INFO").strip().upper() or "INFO",
    )

"""
Logging Context and Configuration State.

Holds the per-request correlation id (a ``ContextVar``, so it follows
threads started with ``contextvars.copy_context`` and asyncio tasks) and
the module-level logging configuration shared by the whole process.

Environment Variables:
    - PODGEN_SETTINGS: Path to settings.yaml (default: config/settings.yaml)
    - PODGEN_LOG_LEVEL: Log level (1-4 or a name)
    - PODGEN_LOG_DIR: Directory for the JSONL log file
    - PODGEN_JSONL_FILE: JSONL file name
    - PODGEN_LOG_ROTATE_BYTES: Rotate the JSONL file past this size
    - PODGEN_LOG_ROTATE_BACKUP: Rotated files to keep

Usage:
    from podgen.core.logging.context import set_request_id, get_request_id

    set_request_id("ep-4f2a9c")
    get_request_id()  # "ep-4f2a9c"
"""
from __future__ import annotations

import os
from contextvars import ContextVar
from typing import Any, Dict

from .levels import LEVEL_NAMES, LogLevel

# "-" outside of any request
_request_id: ContextVar[str] = ContextVar("request_id", default="-")

_configured: bool = False
_log_config: Dict[str, Any] = {}
_current_level: LogLevel = LogLevel.NORMAL


def get_request_id() -> str:
    """Request id of the current context, or ``"-"``."""
    return _request_id.get()


def set_request_id(rid: str) -> None:
    """Bind a request id to the current context for log correlation."""
    _request_id.set(rid)


def get_level() -> LogLevel:
    return _current_level


def set_level(level: LogLevel) -> None:
    global _current_level
    _current_level = level


def get_level_name() -> str:
    """Current level as a name, e.g. ``"VERBOSE"``."""
    return LEVEL_NAMES.get(_current_level, "NORMAL")


def is_configured() -> bool:
    return _configured


def set_configured(value: bool) -> None:
    global _configured
    _configured = value


def get_log_config() -> Dict[str, Any]:
    return _log_config


def set_log_config(config: Dict[str, Any]) -> None:
    global _log_config
    _log_config = config


def _int_env(name: str) -> int | None:
    raw = os.getenv(name)
    if not raw:
        return None
    try:
        return int(raw)
    except ValueError:
        return None


def read_logging_config() -> Dict[str, Any]:
    """
    Resolve the logging section.

    Priority, highest first: environment variables, the ``logging``
    section of settings.yaml, built-in defaults. A missing or broken
    settings file is not an error here; logging must come up regardless.
    """
    cfg: Dict[str, Any] = {}

    settings_path = os.getenv("PODGEN_SETTINGS", "config/settings.yaml")
    try:
        from podgen.core.config import load_settings
        settings = load_settings(settings_path)
        cfg.update(settings.raw.get("logging", {}) or {})
    except Exception:
        pass

    if os.getenv("PODGEN_LOG_LEVEL"):
        cfg["level"] = os.environ["PODGEN_LOG_LEVEL"]
    if os.getenv("PODGEN_LOG_DIR"):
        cfg["log_dir"] = os.environ["PODGEN_LOG_DIR"]
    if os.getenv("PODGEN_JSONL_FILE"):
        cfg["jsonl_file"] = os.environ["PODGEN_JSONL_FILE"]

    rotate_bytes = _int_env("PODGEN_LOG_ROTATE_BYTES")
    if rotate_bytes is not None:
        cfg["rotate_max_bytes"] = rotate_bytes
    rotate_backup = _int_env("PODGEN_LOG_ROTATE_BACKUP")
    if rotate_backup is not None:
        cfg["rotate_backup_count"] = rotate_backup

    return cfg

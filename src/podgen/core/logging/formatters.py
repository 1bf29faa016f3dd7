"""
Log Formatters.

    JsonlFormatter: one JSON object per line, for the log file.
    ColoredConsoleFormatter: short colored lines for the terminal.

Output Examples:
    JSONL:
        {"ts":"2026-03-02T10:14:05+01:00","level":2,"tag":"INFO","message":"cache_hit","request_id":"ep-4f2a9c","extra":{"stage":"script"}}

    Console:
        10:14:05 [ INFO  ] (ep-4f2a9c) cache_hit stage=script

Field Coloring:
    seconds       green < 0.1s <= yellow < 1s <= red
    cache         hit green, miss yellow
    stage         blue
    anything else dim
"""
from __future__ import annotations

import json
import logging
from datetime import datetime
from typing import Any, Dict

from .colors import Colors, get_tag_color


def _use_colors() -> bool:
    # read at call time; tests flip the flag on the package
    import podgen.core.logging as log_module
    return getattr(log_module, "_USE_COLORS", False)


def _paint(text: str, color: str) -> str:
    if not _use_colors():
        return text
    return f"{color}{text}{Colors.RESET}"


class JsonlFormatter(logging.Formatter):
    """
    Render a record as a single JSON line.

    Keys: ``ts`` (ISO, local timezone), ``level`` (1-4), ``tag``,
    ``message``, ``request_id`` and, when present, ``event``,
    ``seconds`` and ``extra``.
    """

    def format(self, record: logging.LogRecord) -> str:
        ts = datetime.fromtimestamp(record.created).astimezone().isoformat()

        payload: Dict[str, Any] = {
            "ts": ts,
            "level": getattr(record, "numeric_level", 2),
            "tag": getattr(record, "tag", record.levelname),
            "message": record.getMessage(),
            "request_id": getattr(record, "request_id", "-"),
        }

        event = getattr(record, "event", None)
        if event:
            payload["event"] = event

        seconds = getattr(record, "seconds", None)
        if seconds is not None:
            payload["seconds"] = seconds

        extra_data = getattr(record, "extra_data", None)
        if extra_data:
            payload["extra"] = extra_data

        return json.dumps(payload, ensure_ascii=False, default=str)


class ColoredConsoleFormatter(logging.Formatter):
    """
    Render a record as ``HH:MM:SS [ TAG ] (rid) message key=value 0.123s``.

    The request id is omitted outside of a request.
    """

    def format(self, record: logging.LogRecord) -> str:
        ts = datetime.fromtimestamp(record.created).strftime("%H:%M:%S")
        tag = getattr(record, "tag", record.levelname)
        rid = getattr(record, "request_id", "-")

        parts = [
            _paint(ts, Colors.DIM),
            _paint(f"[{tag:^7}]", get_tag_color(tag)),
        ]
        if rid != "-":
            parts.append(_paint(f"({rid})", Colors.DIM + Colors.CYAN))
        parts.append(record.getMessage())

        event = getattr(record, "event", None)
        if event:
            parts.append(_paint(f"event={event}", Colors.BLUE))

        extra_data = getattr(record, "extra_data", None)
        if extra_data:
            for k, v in extra_data.items():
                parts.append(_paint(f"{k}={v}", self._field_color(k, v)))

        seconds = getattr(record, "seconds", None)
        if seconds is not None:
            parts.append(_paint(f"{seconds:.3f}s", self._timing_color(seconds)))

        return " ".join(parts)

    @staticmethod
    def _timing_color(seconds: float) -> str:
        if seconds < 0.1:
            return Colors.GREEN
        if seconds < 1.0:
            return Colors.YELLOW
        return Colors.RED

    @staticmethod
    def _field_color(key: str, value: Any) -> str:
        if key == "cache":
            return Colors.GREEN if value == "hit" else Colors.YELLOW
        if key == "stage":
            return Colors.BLUE
        if key in ("chunk", "chunks") and isinstance(value, int):
            return Colors.MAGENTA
        return Colors.DIM

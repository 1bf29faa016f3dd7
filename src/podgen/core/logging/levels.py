"""
Numeric Log Levels.

podgen configures verbosity with a single number instead of Python's
named levels. The number reads naturally from a CLI flag or an env var
(``PODGEN_LOG_LEVEL=3``) and maps onto the standard logging levels:

    1 = MINIMAL  -> logging.WARNING  (startup, shutdown, failures)
    2 = NORMAL   -> logging.INFO     (stage transitions, cache hit/miss)
    3 = VERBOSE  -> logging.DEBUG    (per-chunk timings, plan details)
    4 = DEBUG    -> logging.DEBUG-5  (keys, byte offsets, raw sizes)

Usage:
    from podgen.core.logging.levels import LogLevel, coerce_level

    coerce_level(3)          # LogLevel.VERBOSE
    coerce_level("warning")  # LogLevel.MINIMAL
"""
from __future__ import annotations

import logging
from enum import IntEnum
from typing import Any


class LogLevel(IntEnum):
    """Verbosity levels, increasing from 1 to 4."""
    MINIMAL = 1
    NORMAL = 2
    VERBOSE = 3
    DEBUG = 4


LEVEL_MAP = {
    LogLevel.MINIMAL: logging.WARNING,
    LogLevel.NORMAL: logging.INFO,
    LogLevel.VERBOSE: logging.DEBUG,
    LogLevel.DEBUG: logging.DEBUG - 5,
}

LEVEL_NAMES = {
    1: "MINIMAL",
    2: "NORMAL",
    3: "VERBOSE",
    4: "DEBUG",
}

_NAME_MAP = {
    "MINIMAL": LogLevel.MINIMAL,
    "NORMAL": LogLevel.NORMAL,
    "VERBOSE": LogLevel.VERBOSE,
    "DEBUG": LogLevel.DEBUG,
    "TRACE": LogLevel.DEBUG,
    # stdlib names
    "CRITICAL": LogLevel.MINIMAL,
    "ERROR": LogLevel.MINIMAL,
    "WARNING": LogLevel.MINIMAL,
    "WARN": LogLevel.MINIMAL,
    "INFO": LogLevel.NORMAL,
    "1": LogLevel.MINIMAL,
    "2": LogLevel.NORMAL,
    "3": LogLevel.VERBOSE,
    "4": LogLevel.DEBUG,
}


def coerce_level(value: Any) -> LogLevel:
    """
    Convert an int, a name or a LogLevel to a LogLevel.

    Integers 1-4 are taken as-is; larger integers are read as stdlib
    levels (``logging.WARNING`` -> MINIMAL). Anything unparseable falls
    back to NORMAL.

    Examples:
        >>> coerce_level(4)
        <LogLevel.DEBUG: 4>
        >>> coerce_level(logging.INFO)
        <LogLevel.NORMAL: 2>
        >>> coerce_level("nonsense")
        <LogLevel.NORMAL: 2>
    """
    if isinstance(value, LogLevel):
        return value

    if isinstance(value, int):
        if 1 <= value <= 4:
            return LogLevel(value)
        if value >= logging.WARNING:
            return LogLevel.MINIMAL
        if value >= logging.INFO:
            return LogLevel.NORMAL
        return LogLevel.DEBUG

    if isinstance(value, str):
        return _NAME_MAP.get(value.upper().strip(), LogLevel.NORMAL)

    return LogLevel.NORMAL

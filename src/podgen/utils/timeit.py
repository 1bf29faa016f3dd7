"""
Timing Utilities.

Wall-clock timing for pipeline stages and provider calls. Results end up
in the ``seconds`` field of log records.

Example:
    with timeit("enrich") as t:
        items = enricher.enrich(items)
    info(_LOG, "enriched", count=len(items), seconds=t.seconds)
"""
from __future__ import annotations

from dataclasses import dataclass
from time import perf_counter
from typing import Any, Dict, Optional


@dataclass
class Timing:
    """
    Attributes:
        name: What was timed (e.g. "synthesize_chunk").
        seconds: Duration in seconds.
        meta: Optional context.
    """
    name: str
    seconds: float
    meta: Optional[Dict[str, Any]] = None


class timeit:
    """
    Context manager measuring the enclosed block with ``perf_counter``.

    ``timing`` is set on exit, including when the block raises.
    """

    def __init__(self, name: str, meta: Optional[Dict[str, Any]] = None):
        self.name = name
        self.meta = meta
        self._t0: float | None = None
        self.timing: Timing | None = None

    def __enter__(self) -> "timeit":
        self._t0 = perf_counter()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        t1 = perf_counter()
        assert self._t0 is not None
        self.timing = Timing(name=self.name, seconds=(t1 - self._t0), meta=self.meta)

    @property
    def seconds(self) -> float:
        """Elapsed seconds, rounded for logging; -1.0 before exit."""
        return round(self.timing.seconds, 4) if self.timing else -1.0

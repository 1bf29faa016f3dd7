"""
Durable Episode Records.

One JSON file per finished episode under ``history.base_dir``. Records
never expire and are separate from the TTL-bound stage cache; the audio
itself is referenced by its ``audio:`` cache key, not copied.
"""
from __future__ import annotations

import json
import os
import tempfile
import time
import uuid
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

from podgen.core.logging import debug, get_logger

_LOG = get_logger("podgen.history")


@dataclass
class EpisodeRecord:
    id: str
    created_at: float
    title: str
    topics: List[str]
    roster: List[str]
    provider: str
    duration_seconds: float
    turns: int
    source_titles: List[str] = field(default_factory=list)
    audio_key: Optional[str] = None
    mime_type: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "EpisodeRecord":
        return cls(
            id=str(data["id"]),
            created_at=float(data["created_at"]),
            title=str(data.get("title", "")),
            topics=list(data.get("topics") or []),
            roster=list(data.get("roster") or []),
            provider=str(data.get("provider", "")),
            duration_seconds=float(data.get("duration_seconds", 0.0)),
            turns=int(data.get("turns", 0)),
            source_titles=list(data.get("source_titles") or []),
            audio_key=data.get("audio_key"),
            mime_type=data.get("mime_type"),
        )


def episode_title(source_titles: List[str], topics: List[str], max_titles: int = 2) -> str:
    """Short title from the first sources, else the topics."""
    picked = [t for t in source_titles if t][:max_titles]
    if picked:
        return " / ".join(picked)
    return ", ".join(topics) or "Untitled episode"


def new_episode_id() -> str:
    return uuid.uuid4().hex[:12]


class EpisodeRecordStore:
    """
    Args:
        base_dir: Directory holding ``<id>.json`` records.
        clock: Timestamp source.
    """

    def __init__(self, base_dir: str | Path, clock=time.time):
        self._base = Path(base_dir)
        self._clock = clock

    @property
    def base_dir(self) -> Path:
        return self._base

    def _path(self, episode_id: str) -> Path:
        if not episode_id or not episode_id.replace("-", "").isalnum():
            raise ValueError(f"invalid episode id: {episode_id!r}")
        return self._base / f"{episode_id}.json"

    def save(self, record: EpisodeRecord) -> Path:
        path = self._path(record.id)
        self._base.mkdir(parents=True, exist_ok=True)
        fd, tmp = tempfile.mkstemp(dir=self._base, suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(record.to_dict(), f, ensure_ascii=False, indent=2)
            os.replace(tmp, path)
        except BaseException:
            if os.path.exists(tmp):
                os.unlink(tmp)
            raise
        debug(_LOG, "episode_saved", id=record.id, path=str(path))
        return path

    def create(self, **fields: Any) -> EpisodeRecord:
        """Build a record with a fresh id and timestamp and save it."""
        record = EpisodeRecord(id=new_episode_id(), created_at=self._clock(), **fields)
        self.save(record)
        return record

    def get(self, episode_id: str) -> Optional[EpisodeRecord]:
        try:
            path = self._path(episode_id)
        except ValueError:
            return None
        if not path.exists():
            return None
        with path.open("r", encoding="utf-8") as f:
            return EpisodeRecord.from_dict(json.load(f))

    def list(self, limit: int = 50) -> List[EpisodeRecord]:
        """Most recent first."""
        if not self._base.exists():
            return []
        records = []
        for path in self._base.glob("*.json"):
            try:
                with path.open("r", encoding="utf-8") as f:
                    records.append(EpisodeRecord.from_dict(json.load(f)))
            except (OSError, ValueError, KeyError) as e:
                debug(_LOG, "episode_unreadable", path=str(path), error=str(e))
        records.sort(key=lambda r: r.created_at, reverse=True)
        return records[:limit]

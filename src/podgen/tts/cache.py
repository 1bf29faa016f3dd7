"""
Stage Cache.

File-backed memo of pipeline stage outputs. Each stage result is stored
under a content-derived key and is valid for one TTL (default one hour)
measured from its write time.

Features:
    - Content-addressed keys (``<stage>:<sha256>``)
    - Sharded directory layout per stage
    - Atomic whole-value writes (temp file + rename)
    - Lazy expiry on read, explicit ``sweep_expired`` for deletion
    - Corrupt records read as misses, never as errors
    - Injectable clock for deterministic TTL behavior

File Organization:
    {base_dir}/
        sources/
            3f/3fa1...e9.json
        audio/
            9c/9c02...11.json      entry record (key, written_at, mime_type)
            9c/9c02...11.wav       payload blob

    Structured values live inside the ``.json`` record. Byte values are
    written to a sibling blob whose extension follows the MIME tag; the
    record is written last, so a blob without a record is never read.

Key Generation:
    Each stage has its own canonicalization so that equivalent requests
    share entries:
        sources   sorted, case-folded topics + sorted custom inputs
        enriched  title/url/snippet of every collected item, in order
        script    title/url/summary of every enriched item + roster
        audio     speaker:text of every turn + speaker count + provider

Usage:
    from podgen.tts.cache import CacheStore, sources_key

    store = CacheStore(".cache", ttl_seconds=3600)
    key = sources_key(["AI", "space"], [])
    items = store.get(key)
    if items is None:
        items = collect()
        store.set(key, items)

    store.sweep_expired()  # -> number of records removed

See Also:
    - services/pipeline.py: Stage orchestration on top of this store
    - services/history.py: Durable episode records (never expire)
"""
from __future__ import annotations

import hashlib
import json
import os
import re
import tempfile
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, Iterator, Optional, Sequence

from podgen.core.config import Defaults
from podgen.core.logging import debug, get_logger, info, verbose, warn
from podgen.core.models import CustomInput, DialogueTurn, SourceItem

_LOG = get_logger("podgen.cache")

STAGES = ("sources", "enriched", "script", "audio")

_KEY_RE = re.compile(r"^([a-z]+):([0-9a-f]{64})$")

_MIME_EXT = {
    "audio/wav": ".wav",
    "audio/x-wav": ".wav",
    "audio/mpeg": ".mp3",
}


# =============================================================================
# Keys
# =============================================================================

def hash_parts(parts: Iterable[str]) -> str:
    """SHA256 over the parts joined by ``|`` separators."""
    h = hashlib.sha256()
    for part in parts:
        h.update(part.encode("utf-8"))
        h.update(b"|")
    return h.hexdigest()


def make_key(stage: str, parts: Iterable[str]) -> str:
    if stage not in STAGES:
        raise ValueError(f"unknown cache stage: {stage}")
    return f"{stage}:{hash_parts(parts)}"


def _norm_topic(topic: str) -> str:
    return " ".join(topic.split()).casefold()


def sources_key(topics: Sequence[str], custom_inputs: Sequence[CustomInput] = ()) -> str:
    """Order-insensitive over topics and over custom inputs."""
    topic_parts = sorted(_norm_topic(t) for t in topics)
    input_parts = sorted(f"{ci.kind}={ci.value.strip()}" for ci in custom_inputs)
    return make_key("sources", ["topics", *topic_parts, "inputs", *input_parts])


def enriched_key(items: Sequence[SourceItem]) -> str:
    parts = []
    for item in items:
        parts.extend((item.title, item.url, item.snippet))
    return make_key("enriched", parts)


def script_key(items: Sequence[SourceItem], roster: Sequence[str]) -> str:
    parts = [f"speakers={len(roster)}", *roster]
    for item in items:
        parts.extend((item.title, item.url, item.summary_text))
    return make_key("script", parts)


def audio_key(turns: Sequence[DialogueTurn], roster: Sequence[str], provider: str) -> str:
    parts = [f"provider={provider}", f"speakers={len(roster)}"]
    parts.extend(f"{t.speaker}:{t.text}" for t in turns)
    return make_key("audio", parts)


# =============================================================================
# Store
# =============================================================================

@dataclass(frozen=True)
class CacheEntry:
    """
    A stored stage result.

    Attributes:
        key: ``<stage>:<sha256>`` key.
        payload: Decoded JSON value, or bytes for blob entries.
        written_at: Clock value at write time (seconds).
        mime_type: MIME tag for blob entries, None for JSON values.
    """
    key: str
    payload: Any
    written_at: float
    mime_type: Optional[str] = None

    def age(self, now: float) -> float:
        return now - self.written_at

    def is_expired(self, now: float, ttl_seconds: float) -> bool:
        return self.age(now) > ttl_seconds


class CacheStore:
    """
    File-backed stage cache with TTL.

    No cross-process locking: two writers for the same key both write a
    complete value and the last rename wins.

    Args:
        base_dir: Root directory for cache files.
        ttl_seconds: Entry lifetime, from write time.
        clock: Returns the current time in seconds. Defaults to time.time.
    """

    def __init__(
        self,
        base_dir: str | Path = Defaults.CACHE_BASE_DIR,
        ttl_seconds: float = Defaults.CACHE_TTL_SECONDS,
        clock: Callable[[], float] = time.time,
    ):
        self._base_dir = Path(base_dir)
        self._ttl_seconds = ttl_seconds
        self._clock = clock

    @property
    def base_dir(self) -> Path:
        return self._base_dir

    @property
    def ttl_seconds(self) -> float:
        return self._ttl_seconds

    # ─────────────────────────────────────────────────────────────────────────
    # Paths
    # ─────────────────────────────────────────────────────────────────────────

    def _record_path(self, key: str) -> Path:
        m = _KEY_RE.match(key)
        if not m:
            raise ValueError(f"malformed cache key: {key!r}")
        stage, digest = m.groups()
        return self._base_dir / stage / digest[:2] / f"{digest}.json"

    @staticmethod
    def _blob_name(record: Path, mime_type: Optional[str]) -> str:
        return record.stem + _MIME_EXT.get(mime_type or "", ".bin")

    @staticmethod
    def _atomic_write(path: Path, data: bytes) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp = tempfile.mkstemp(dir=path.parent, prefix=path.name + ".", suffix=".tmp")
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(data)
            os.replace(tmp, path)
        except BaseException:
            try:
                os.unlink(tmp)
            except OSError:
                pass
            raise

    # ─────────────────────────────────────────────────────────────────────────
    # Read
    # ─────────────────────────────────────────────────────────────────────────

    def _load(self, record: Path) -> CacheEntry:
        """Read a record and its blob. Raises on any inconsistency."""
        meta = json.loads(record.read_text(encoding="utf-8"))
        written_at = float(meta["written_at"])
        mime_type = meta.get("mime_type")
        blob = meta.get("blob")
        if blob is not None:
            payload: Any = (record.parent / str(blob)).read_bytes()
        else:
            payload = meta["payload"]
        return CacheEntry(key=str(meta["key"]), payload=payload, written_at=written_at, mime_type=mime_type)

    def get_entry(self, key: str) -> Optional[CacheEntry]:
        """
        Return the live entry for a key, or None.

        Expired entries read as misses but are left on disk for
        ``sweep_expired``. Unreadable entries are logged and read as misses.
        """
        record = self._record_path(key)
        if not record.exists():
            debug(_LOG, "cache_absent", key=key[:20])
            return None

        try:
            entry = self._load(record)
        except (OSError, ValueError, KeyError, TypeError) as e:
            warn(_LOG, "cache_corrupt", key=key[:20], error=str(e))
            return None

        if entry.key != key:
            warn(_LOG, "cache_corrupt", key=key[:20], error="key mismatch")
            return None

        now = self._clock()
        if entry.is_expired(now, self._ttl_seconds):
            verbose(_LOG, "cache_expired", key=key[:20], age=round(entry.age(now), 1))
            return None

        return entry

    def get(self, key: str) -> Any:
        """Payload for a live entry, or None."""
        entry = self.get_entry(key)
        return entry.payload if entry is not None else None

    # ─────────────────────────────────────────────────────────────────────────
    # Write
    # ─────────────────────────────────────────────────────────────────────────

    def set(self, key: str, value: Any, mime_type: Optional[str] = None) -> bool:
        """
        Store a value, replacing any previous one entirely.

        Bytes go to a blob file tagged with ``mime_type``; anything else
        must be JSON-serializable. Write failures are logged and reported
        through the return value, never raised.
        """
        record = self._record_path(key)
        meta: Dict[str, Any] = {"key": key, "written_at": self._clock(), "mime_type": mime_type}

        is_blob = isinstance(value, (bytes, bytearray))
        try:
            if is_blob:
                blob_name = self._blob_name(record, mime_type)
                self._atomic_write(record.parent / blob_name, bytes(value))
                meta["blob"] = blob_name
            else:
                meta["payload"] = value
            data = json.dumps(meta, ensure_ascii=False).encode("utf-8")
            self._atomic_write(record, data)
        except (OSError, TypeError, ValueError) as e:
            warn(_LOG, "cache_write_error", key=key[:20], error=str(e))
            return False

        # a previous value may have left a blob with another extension
        for path in list(self._entry_files(record)):
            if path == record or path.name == meta.get("blob"):
                continue
            try:
                path.unlink()
            except OSError as e:
                verbose(_LOG, "cache_stale_blob_error", file=str(path), error=str(e))

        verbose(_LOG, "cache_saved", key=key[:20], bytes=len(value) if is_blob else len(data))
        return True

    def delete(self, key: str) -> bool:
        record = self._record_path(key)
        removed = False
        for path in self._entry_files(record):
            try:
                path.unlink()
                removed = True
            except FileNotFoundError:
                pass
        return removed

    # ─────────────────────────────────────────────────────────────────────────
    # Maintenance
    # ─────────────────────────────────────────────────────────────────────────

    def _entry_files(self, record: Path) -> Iterator[Path]:
        yield record
        # blobs share the record stem
        if record.parent.exists():
            for sibling in record.parent.glob(record.stem + ".*"):
                if sibling != record and not sibling.name.endswith(".tmp"):
                    yield sibling

    def _records(self) -> Iterator[Path]:
        if not self._base_dir.exists():
            return
        for stage in STAGES:
            stage_dir = self._base_dir / stage
            if stage_dir.is_dir():
                yield from stage_dir.glob("*/*.json")

    def sweep_expired(self) -> int:
        """
        Delete expired and unreadable records (and their blobs).

        Returns:
            Number of records removed.
        """
        now = self._clock()
        removed = 0

        for record in list(self._records()):
            try:
                meta = json.loads(record.read_text(encoding="utf-8"))
                expired = now - float(meta["written_at"]) > self._ttl_seconds
            except (OSError, ValueError, KeyError, TypeError):
                expired = True
            if not expired:
                continue

            for path in list(self._entry_files(record)):
                try:
                    path.unlink()
                except OSError as e:
                    verbose(_LOG, "cache_sweep_file_error", file=str(path), error=str(e))
            removed += 1

            try:
                if not any(record.parent.iterdir()):
                    record.parent.rmdir()
            except OSError:
                pass

        if removed:
            info(_LOG, "cache_swept", removed=removed)
        return removed

    def stats(self) -> Dict[str, Any]:
        """Entry counts per stage, total bytes and expired count."""
        now = self._clock()
        per_stage = {stage: 0 for stage in STAGES}
        total_bytes = 0
        expired = 0

        for record in self._records():
            per_stage[record.parent.parent.name] += 1
            for path in self._entry_files(record):
                try:
                    total_bytes += path.stat().st_size
                except OSError:
                    pass
            try:
                meta = json.loads(record.read_text(encoding="utf-8"))
                if now - float(meta["written_at"]) > self._ttl_seconds:
                    expired += 1
            except (OSError, ValueError, KeyError, TypeError):
                expired += 1

        return {
            "entries": per_stage,
            "total_entries": sum(per_stage.values()),
            "expired": expired,
            "total_bytes": total_bytes,
            "ttl_seconds": self._ttl_seconds,
        }

"""
Tests for the stage cache.

Tests cover:
- Stage key canonicalization
- JSON and blob round trips
- TTL from write time (fake clock)
- Corrupt records read as misses
- sweep_expired() and stats()
"""
import json

import pytest
from conftest import make_items, make_turns

from podgen.core.models import CustomInput
from podgen.tts.cache import (
    CacheStore,
    audio_key,
    enriched_key,
    make_key,
    script_key,
    sources_key,
)


class TestKeys:
    def test_sources_key_ignores_order_and_case(self):
        a = sources_key(["AI", "Space  Exploration"], [CustomInput("prompt", "heat pumps")])
        b = sources_key(["space exploration", "ai"], [CustomInput("prompt", "heat pumps ")])
        assert a == b
        assert a.startswith("sources:")

    def test_sources_key_distinguishes_inputs(self):
        assert sources_key(["AI"]) != sources_key(["AI"], [CustomInput("url", "https://x.test/a")])
        assert sources_key(["AI"]) != sources_key(["AI", "space"])

    def test_script_key_depends_on_roster(self):
        items = make_items(2)
        assert script_key(items, ["alex", "jordan"]) != script_key(items, ["alex", "jordan", "casey"])

    def test_enriched_key_depends_on_items(self):
        assert enriched_key(make_items(2)) != enriched_key(make_items(3))

    def test_audio_key_depends_on_provider(self):
        turns = make_turns(4)
        assert audio_key(turns, ["alex", "jordan"], "dia-fal") != audio_key(turns, ["alex", "jordan"], "tone")

    def test_unknown_stage(self):
        with pytest.raises(ValueError):
            make_key("thumbnails", ["x"])


class TestStore:
    def test_json_roundtrip(self, tmp_path, clock):
        store = CacheStore(tmp_path, ttl_seconds=3600, clock=clock)
        key = sources_key(["AI"])
        value = [i.to_dict() for i in make_items(2)]

        assert store.get(key) is None
        assert store.set(key, value) is True
        assert store.get(key) == value

        entry = store.get_entry(key)
        assert entry.written_at == clock.now
        assert entry.mime_type is None

    def test_blob_roundtrip(self, tmp_path, clock):
        store = CacheStore(tmp_path, clock=clock)
        key = audio_key(make_turns(2), ["alex"], "tone")
        store.set(key, b"RIFF-bytes", mime_type="audio/wav")

        entry = store.get_entry(key)
        assert entry.payload == b"RIFF-bytes"
        assert entry.mime_type == "audio/wav"
        assert list((tmp_path / "audio").glob("*/*.wav"))

    def test_overwrite_replaces_value(self, tmp_path, clock):
        store = CacheStore(tmp_path, clock=clock)
        key = sources_key(["AI"])
        store.set(key, ["old"])
        store.set(key, ["new"])
        assert store.get(key) == ["new"]

    def test_overwrite_with_other_mime_removes_old_blob(self, tmp_path, clock):
        store = CacheStore(tmp_path, clock=clock)
        key = audio_key(make_turns(2), ["alex"], "tone")
        store.set(key, b"RIFF-bytes", mime_type="audio/wav")
        store.set(key, b"ID3-bytes", mime_type="audio/mpeg")

        assert store.get_entry(key).payload == b"ID3-bytes"
        assert not list((tmp_path / "audio").glob("*/*.wav"))
        assert len(list((tmp_path / "audio").glob("*/*.mp3"))) == 1

    def test_json_overwrite_removes_blob(self, tmp_path, clock):
        store = CacheStore(tmp_path, clock=clock)
        key = audio_key(make_turns(2), ["alex"], "tone")
        store.set(key, b"RIFF-bytes", mime_type="audio/wav")
        store.set(key, {"note": "replaced"})

        assert store.get(key) == {"note": "replaced"}
        assert [p.suffix for p in (tmp_path / "audio").glob("*/*")] == [".json"]

    def test_malformed_key(self, tmp_path):
        with pytest.raises(ValueError):
            CacheStore(tmp_path).get("sources:not-a-digest")


class TestTTL:
    def test_valid_until_ttl(self, tmp_path, clock):
        store = CacheStore(tmp_path, ttl_seconds=3600, clock=clock)
        key = sources_key(["AI"])
        store.set(key, ["x"])

        clock.advance(3600)
        assert store.get(key) == ["x"]
        clock.advance(1)
        assert store.get(key) is None

    def test_expired_entry_left_for_sweep(self, tmp_path, clock):
        store = CacheStore(tmp_path, ttl_seconds=10, clock=clock)
        key = sources_key(["AI"])
        store.set(key, ["x"])
        clock.advance(11)

        assert store.get(key) is None
        assert store.stats()["total_entries"] == 1
        assert store.sweep_expired() == 1
        assert store.stats()["total_entries"] == 0

    def test_sweep_keeps_live_entries(self, tmp_path, clock):
        store = CacheStore(tmp_path, ttl_seconds=10, clock=clock)
        old = sources_key(["old"])
        store.set(old, ["x"])
        clock.advance(8)
        fresh = audio_key(make_turns(1), ["alex"], "tone")
        store.set(fresh, b"data", mime_type="audio/mpeg")
        clock.advance(5)

        assert store.sweep_expired() == 1
        assert store.get(old) is None
        assert store.get(fresh) == b"data"


class TestCorruption:
    def _record(self, store, key):
        return store._record_path(key)

    def test_unparseable_record_is_miss(self, tmp_path, clock):
        store = CacheStore(tmp_path, clock=clock)
        key = sources_key(["AI"])
        store.set(key, ["x"])
        self._record(store, key).write_text("{not json", encoding="utf-8")
        assert store.get(key) is None

    def test_missing_blob_is_miss(self, tmp_path, clock):
        store = CacheStore(tmp_path, clock=clock)
        key = audio_key(make_turns(1), ["alex"], "tone")
        store.set(key, b"data", mime_type="audio/wav")
        for blob in (tmp_path / "audio").glob("*/*.wav"):
            blob.unlink()
        assert store.get(key) is None

    def test_key_mismatch_is_miss(self, tmp_path, clock):
        store = CacheStore(tmp_path, clock=clock)
        key = sources_key(["AI"])
        store.set(key, ["x"])
        record = self._record(store, key)
        meta = json.loads(record.read_text(encoding="utf-8"))
        meta["key"] = sources_key(["other"])
        record.write_text(json.dumps(meta), encoding="utf-8")
        assert store.get(key) is None

    def test_sweep_removes_corrupt(self, tmp_path, clock):
        store = CacheStore(tmp_path, clock=clock)
        key = sources_key(["AI"])
        store.set(key, ["x"])
        self._record(store, key).write_text("garbage", encoding="utf-8")

        assert store.stats()["expired"] == 1
        assert store.sweep_expired() == 1
        assert not self._record(store, key).exists()


def test_stats_counts_per_stage(tmp_path, clock):
    store = CacheStore(tmp_path, ttl_seconds=60, clock=clock)
    store.set(sources_key(["a"]), ["x"])
    store.set(sources_key(["b"]), ["y"])
    store.set(audio_key(make_turns(1), ["alex"], "tone"), b"\x00" * 100, mime_type="audio/wav")

    stats = store.stats()
    assert stats["entries"]["sources"] == 2
    assert stats["entries"]["audio"] == 1
    assert stats["total_entries"] == 3
    assert stats["expired"] == 0
    assert stats["total_bytes"] >= 100
    assert stats["ttl_seconds"] == 60

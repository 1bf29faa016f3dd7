"""
Tests for PipelineOrchestrator.

Tests cover:
- End-to-end run with fakes: stage order, single synthesis call
- Every stage cached; a repeat run is all hits
- Resume after a failed stage
- Stage-tagged errors (EMPTY_RESULT, PROVIDER_FAILED, INTERNAL_ERROR)
- Custom URL / prompt inputs
- Corrupt cache entries treated as misses
- Episode history records
"""
from unittest.mock import Mock

import pytest
from conftest import FakeCollector, FakeWriter, RecordingProvider, SnippetEnricher, make_items

from podgen.core.errors import PipelineError, ProviderError
from podgen.core.models import CustomInput, DialogueTurn
from podgen.services.history import EpisodeRecordStore
from podgen.services.pipeline import PipelineOrchestrator, PipelineState, build_pipeline, url_source
from podgen.tts.cache import CacheStore, sources_key
from podgen.tts.synthesis import AudioSynthesisEngine

ROSTER = ["alex", "jordan"]


def _script(n=40):
    """n turns of 100 characters and 3 words each (40 turns: 4000 chars, 48s)."""
    text = " ".join(["x" * 33, "x" * 33, "x" * 31]) + "."
    return [DialogueTurn(ROSTER[i % 2], text) for i in range(n)]


class Harness:
    def __init__(self, tmp_path, clock, items=None, turns=None, **fakes):
        self.cache = CacheStore(tmp_path / "cache", ttl_seconds=3600, clock=clock)
        self.history = EpisodeRecordStore(tmp_path / "episodes", clock=clock)
        self.collector = fakes.get("collector") or FakeCollector(make_items(6) if items is None else items)
        self.enricher = fakes.get("enricher") or SnippetEnricher(batch_size=3)
        self.writer = fakes.get("writer") or FakeWriter(turns if turns is not None else _script())
        self.provider = fakes.get("provider") or RecordingProvider(reference_audio=True)

    def pipeline(self, **overrides):
        args = dict(
            cache=self.cache,
            collector=self.collector,
            enricher=self.enricher,
            writer=self.writer,
            engine=AudioSynthesisEngine(self.provider),
            history=self.history,
        )
        args.update(overrides)
        return PipelineOrchestrator(**args)


class TestEndToEnd:
    def test_two_topics_one_synthesis_call(self, tmp_path, clock):
        h = Harness(tmp_path, clock)
        result = h.pipeline().run_pipeline(["AI", "space"], [], ROSTER)

        assert h.collector.calls == [["AI", "space"]]
        assert len(h.enricher.seen) == 6
        assert len(result.sources) == 6
        assert all(s.detailed_summary for s in result.sources)
        assert sum(len(t.text) for t in result.dialogue) == 4000
        assert len(h.provider.calls) == 1
        assert h.provider.calls[0]["reference_audio"] is None
        assert result.audio.data[:4] == b"RIFF"
        assert result.cache == {"sources": "miss", "enriched": "miss", "script": "miss", "audio": "miss"}
        assert result.estimated_seconds > 0

    def test_repeat_run_hits_every_stage(self, tmp_path, clock):
        h = Harness(tmp_path, clock)
        first = h.pipeline().run_pipeline(["AI", "space"], [], ROSTER)
        second = h.pipeline().run_pipeline(["space", "ai"], [], ROSTER)

        assert second.cache == {"sources": "hit", "enriched": "hit", "script": "hit", "audio": "hit"}
        assert len(h.collector.calls) == 1
        assert h.writer.calls == 1
        assert len(h.provider.calls) == 1
        assert second.audio.data == first.audio.data
        assert second.dialogue == first.dialogue

    def test_expired_cache_recomputes(self, tmp_path, clock):
        h = Harness(tmp_path, clock)
        h.pipeline().run_pipeline(["AI"], [], ROSTER)
        clock.advance(3601)
        result = h.pipeline().run_pipeline(["AI"], [], ROSTER)
        assert result.cache["sources"] == "miss"
        assert len(h.collector.calls) == 2


class TestFailures:
    def test_resume_after_script_failure(self, tmp_path, clock):
        h = Harness(tmp_path, clock, writer=FakeWriter([], error=ProviderError("timeout", collaborator="openai")))
        with pytest.raises(PipelineError) as exc_info:
            h.pipeline().run_pipeline(["AI"], [], ROSTER)
        err = exc_info.value
        assert err.stage == PipelineState.GENERATING_SCRIPT.value
        assert err.code == "PROVIDER_FAILED"
        assert err.details["stage"] == "generating_script"
        assert h.provider.calls == []

        h.writer.error = None
        h.writer.turns = _script(10)
        result = h.pipeline().run_pipeline(["AI"], [], ROSTER)
        assert result.cache == {"sources": "hit", "enriched": "hit", "script": "miss", "audio": "miss"}
        assert len(h.collector.calls) == 1

    def test_empty_sources_not_cached(self, tmp_path, clock):
        h = Harness(tmp_path, clock, items=[])
        for _ in range(2):
            with pytest.raises(PipelineError) as exc_info:
                h.pipeline().run_pipeline(["nothing"], [], ROSTER)
            assert exc_info.value.code == "EMPTY_RESULT"
            assert exc_info.value.stage == "collecting_sources"
        assert len(h.collector.calls) == 2
        assert h.cache.stats()["total_entries"] == 0

    def test_unexpected_exception_wrapped(self, tmp_path, clock):
        h = Harness(tmp_path, clock, collector=FakeCollector([], error=RuntimeError("socket closed")))
        with pytest.raises(PipelineError) as exc_info:
            h.pipeline().run_pipeline(["AI"], [], ROSTER)
        assert exc_info.value.code == "INTERNAL_ERROR"
        assert exc_info.value.details["exception"] == "RuntimeError"
        assert isinstance(exc_info.value.cause, RuntimeError)

    def test_enrichment_failure_does_not_abort(self, tmp_path, clock):
        items = make_items(6)
        h = Harness(tmp_path, clock, items=items, enricher=SnippetEnricher(fail_urls={items[3].url}))
        result = h.pipeline().run_pipeline(["AI"], [], ROSTER)
        failed = next(s for s in result.sources if s.url == items[3].url)
        assert failed.detailed_summary == items[3].snippet

    def test_corrupt_sources_entry_is_miss(self, tmp_path, clock):
        h = Harness(tmp_path, clock)
        h.cache.set(sources_key(["AI"]), [1, 2, 3])
        result = h.pipeline().run_pipeline(["AI"], [], ROSTER)
        assert result.cache["sources"] == "miss"
        assert len(h.collector.calls) == 1

    def test_truncated_audio_entry_is_miss(self, tmp_path, clock):
        """A blob with a RIFF/WAVE signature but no data sub-chunk is re-synthesized."""
        h = Harness(tmp_path, clock)
        first = h.pipeline().run_pipeline(["AI"], [], ROSTER)
        key = h.history.get(first.episode_id).audio_key
        h.cache.set(key, b"RIFF\x04\x00\x00\x00WAVE", mime_type="audio/wav")

        second = h.pipeline().run_pipeline(["AI"], [], ROSTER)
        assert second.cache["audio"] == "miss"
        assert len(h.provider.calls) == 2
        assert second.audio.data == first.audio.data

    def test_history_failure_only_logged(self, tmp_path, clock):
        h = Harness(tmp_path, clock)
        history = Mock()
        history.create.side_effect = OSError("disk full")
        result = h.pipeline(history=history).run_pipeline(["AI"], [], ROSTER)
        assert len(result.episode_id) == 12


class TestCustomInputs:
    def test_url_becomes_source_and_prompt_is_searched(self, tmp_path, clock):
        h = Harness(tmp_path, clock)
        inputs = [
            CustomInput("url", "https://www.example.org/deep-dive"),
            CustomInput("prompt", "heat pumps"),
        ]
        result = h.pipeline().run_pipeline(["climate"], inputs, ROSTER)

        assert h.collector.calls == [["climate", "heat pumps"]]
        custom = result.sources[-1]
        assert custom.url == "https://www.example.org/deep-dive"
        assert custom.origin == "example.org"

    def test_url_only_request(self, tmp_path, clock):
        h = Harness(tmp_path, clock)
        result = h.pipeline().run_pipeline([], [CustomInput("url", "https://a.test/x")], ROSTER)
        assert h.collector.calls == []
        assert [s.url for s in result.sources] == ["https://a.test/x"]

    def test_url_source(self):
        item = url_source("https://news.example.com/a?b=1")
        assert item.title == "https://news.example.com/a?b=1"
        assert item.origin == "news.example.com"


class TestHistory:
    def test_record_saved(self, tmp_path, clock):
        h = Harness(tmp_path, clock)
        result = h.pipeline().run_pipeline(["AI"], [], ROSTER)

        record = h.history.get(result.episode_id)
        assert record is not None
        assert record.title == "Story 0 / Story 1"
        assert record.provider == "recording"
        assert record.turns == len(result.dialogue)
        assert record.audio_key.startswith("audio:")
        assert record.mime_type == "audio/wav"
        assert h.history.list()[0].id == result.episode_id


def test_build_pipeline_with_tone_provider(tmp_path):
    from podgen.core.config import Settings

    settings = Settings(raw={
        "synthesis": {"provider": "tone", "max_parallel": 2},
        "cache": {"base_dir": str(tmp_path / "cache")},
        "history": {"base_dir": str(tmp_path / "episodes")},
    })
    h = Harness(tmp_path, lambda: 0.0)
    pipeline = build_pipeline(settings, collector=h.collector, enricher=h.enricher, writer=h.writer)

    assert pipeline.provider_name == "tone"
    assert pipeline.cache.base_dir == tmp_path / "cache"
    result = pipeline.run_pipeline(["AI"], [], ROSTER)
    assert result.audio.mime_type == "audio/wav"
    assert result.audio.duration_seconds > 0

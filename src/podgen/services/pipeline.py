"""
PipelineOrchestrator - Topics to Finished Episode.

This module sequences the four expensive stages of an episode and puts
the stage cache in front of each of them.

Architecture:
    Topics → Sources → Enriched sources → Dialogue → Episode audio

State Machine (per request):
    COLLECTING_SOURCES → ENRICHING → GENERATING_SCRIPT → SYNTHESIZING_AUDIO → DONE

    Before each stage the stage key is computed from what the previous
    stages produced. On a hit the remote call is skipped; on a miss the
    collaborator runs and its result is written to the cache before the
    next stage starts. A failure aborts the run with a PipelineError
    naming the stage; everything cached so far stays valid, so retrying
    the same request resumes at the first stage without a hit.

Custom Inputs:
    - prompt: searched like an extra topic
    - url: added directly as a source item (origin = host) and enriched
      like any other item

Empty Results:
    Zero source items is fatal (EMPTY_RESULT) and is never cached, so a
    later retry searches again.

Example:
    >>> from podgen.core.config import load_settings
    >>> from podgen.services.pipeline import build_pipeline
    >>> pipeline = build_pipeline(load_settings())
    >>> result = pipeline.run_pipeline(["AI", "space"], [], ["alex", "jordan"])
    >>> result.cache
    {'sources': 'miss', 'enriched': 'miss', 'script': 'miss', 'audio': 'miss'}
"""
from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Sequence, TypeVar
from urllib.parse import urlparse

from podgen.core.config import PipelineConfig, Settings
from podgen.core.errors import ContainerError, EmptyResultError, PipelineError
from podgen.core.logging import error, fail, get_logger, info, set_request_id, success, verbose, warn
from podgen.core.models import CustomInput, DialogueTurn, EpisodeAudio, EpisodeResult, SourceItem
from podgen.services.history import EpisodeRecordStore, episode_title, new_episode_id
from podgen.sources.base import Enricher, ScriptGenerator, SourceCollector
from podgen.tts.cache import CacheStore, audio_key, enriched_key, script_key, sources_key
from podgen.tts.container import ContainerCodec, is_container
from podgen.tts.synthesis import AudioSynthesisEngine
from podgen.utils.text import estimate_seconds
from podgen.utils.timeit import timeit

_LOG = get_logger("podgen.pipeline")

T = TypeVar("T")


class PipelineState(str, Enum):
    COLLECTING_SOURCES = "collecting_sources"
    ENRICHING = "enriching"
    GENERATING_SCRIPT = "generating_script"
    SYNTHESIZING_AUDIO = "synthesizing_audio"
    DONE = "done"


@dataclass
class PipelineRun:
    """Request-scoped state of one run. Never shared between requests."""
    request_id: str
    topics: List[str]
    custom_inputs: List[CustomInput]
    roster: List[str]
    state: PipelineState = PipelineState.COLLECTING_SOURCES
    cache: Dict[str, str] = field(default_factory=dict)
    timings: Dict[str, float] = field(default_factory=dict)


def url_source(url: str) -> SourceItem:
    host = urlparse(url).netloc.lower()
    if host.startswith("www."):
        host = host[4:]
    return SourceItem(title=url, snippet="", url=url, origin=host or "Unknown")


class PipelineOrchestrator:
    """
    Runs episodes end to end.

    Collaborators are injected; the orchestrator itself holds no
    per-request state, so one instance can serve concurrent requests.

    Args:
        cache: Stage cache.
        collector: Source search.
        enricher: Source enrichment.
        writer: Dialogue generation.
        engine: Audio synthesis (owns the provider).
        history: Optional durable episode record store.
        config: Pipeline configuration (speaking rate).
    """

    def __init__(
        self,
        cache: CacheStore,
        collector: SourceCollector,
        enricher: Enricher,
        writer: ScriptGenerator,
        engine: AudioSynthesisEngine,
        history: Optional[EpisodeRecordStore] = None,
        config: Optional[PipelineConfig] = None,
    ):
        self._cache = cache
        self._collector = collector
        self._enricher = enricher
        self._writer = writer
        self._engine = engine
        self._history = history
        self._config = config or PipelineConfig()
        self._codec = ContainerCodec()

    # =========================================================================
    # Properties
    # =========================================================================

    @property
    def cache(self) -> CacheStore:
        return self._cache

    @property
    def engine(self) -> AudioSynthesisEngine:
        return self._engine

    @property
    def history(self) -> Optional[EpisodeRecordStore]:
        return self._history

    @property
    def provider_name(self) -> str:
        return self._engine.provider.name

    # =========================================================================
    # Stage helpers
    # =========================================================================

    def _run_stage(self, run: PipelineRun, state: PipelineState, fn: Callable[[], T]) -> T:
        run.state = state
        verbose(_LOG, "stage_enter", stage=state.value)
        try:
            with timeit(state.value) as t:
                result = fn()
        except PipelineError:
            raise
        except Exception as e:
            fail(_LOG, "stage_failed", stage=state.value, error=str(e), error_type=type(e).__name__)
            raise PipelineError(state.value, e) from e
        run.timings[state.value] = t.seconds
        return result

    def _cached(self, run: PipelineRun, stage: str, key: str, decode: Callable[[Any], T]) -> Optional[T]:
        entry = self._cache.get_entry(key)
        if entry is None:
            run.cache[stage] = "miss"
            info(_LOG, "cache", stage=stage, cache="miss")
            return None
        try:
            value = decode(entry)
        except (KeyError, TypeError, ValueError, AttributeError, ContainerError) as e:
            warn(_LOG, "cache_corrupt", stage=stage, key=key[:20], error=str(e))
            run.cache[stage] = "miss"
            return None
        run.cache[stage] = "hit"
        info(_LOG, "cache", stage=stage, cache="hit")
        return value

    @staticmethod
    def _decode_items(entry) -> List[SourceItem]:
        return [SourceItem.from_dict(d) for d in entry.payload]

    @staticmethod
    def _decode_turns(entry) -> List[DialogueTurn]:
        return [DialogueTurn.from_dict(d) for d in entry.payload]

    def _decode_audio(self, entry) -> EpisodeAudio:
        data = entry.payload
        if not isinstance(data, (bytes, bytearray)):
            raise TypeError("audio entry is not a blob")
        mime = entry.mime_type or "application/octet-stream"
        if is_container(data):
            buf = self._codec.decode(bytes(data))
            return EpisodeAudio(data=bytes(data), mime_type=mime, duration_seconds=self._codec.duration_seconds(buf), format=buf.format)
        return EpisodeAudio(data=bytes(data), mime_type=mime, duration_seconds=0.0)

    # =========================================================================
    # Stages
    # =========================================================================

    def _collect(self, run: PipelineRun) -> List[SourceItem]:
        key = sources_key(run.topics, run.custom_inputs)
        items = self._cached(run, "sources", key, self._decode_items)
        if items is None:
            queries = list(run.topics) + [c.value for c in run.custom_inputs if c.kind == "prompt"]
            items = self._collector.fetch(queries) if queries else []
            seen = {i.url for i in items}
            for c in run.custom_inputs:
                if c.kind == "url" and c.value not in seen:
                    seen.add(c.value)
                    items.append(url_source(c.value))
            if items:
                self._cache.set(key, [i.to_dict() for i in items])

        if not items:
            raise EmptyResultError(details={"topics": list(run.topics)})
        info(_LOG, "sources_ready", items=len(items))
        return items

    def _enrich(self, run: PipelineRun, items: List[SourceItem]) -> List[SourceItem]:
        key = enriched_key(items)
        enriched = self._cached(run, "enriched", key, self._decode_items)
        if enriched is None:
            enriched = self._enricher.enrich(items)
            self._cache.set(key, [i.to_dict() for i in enriched])
        return enriched

    def _write_script(self, run: PipelineRun, items: List[SourceItem]) -> List[DialogueTurn]:
        key = script_key(items, run.roster)
        turns = self._cached(run, "script", key, self._decode_turns)
        if turns is None:
            turns = self._writer.generate(items, run.roster)
            self._cache.set(key, [t.to_dict() for t in turns])
        info(_LOG, "script_ready", turns=len(turns))
        return turns

    def _synthesize(self, run: PipelineRun, turns: List[DialogueTurn]) -> tuple[EpisodeAudio, str]:
        key = audio_key(turns, run.roster, self.provider_name)
        audio = self._cached(run, "audio", key, self._decode_audio)
        if audio is None:
            audio = self._engine.synthesize_dialogue(turns, run.roster)
            self._cache.set(key, audio.data, mime_type=audio.mime_type)
        return audio, key

    # =========================================================================
    # Public API
    # =========================================================================

    def run_pipeline(
        self,
        topics: Sequence[str],
        custom_inputs: Sequence[CustomInput] = (),
        roster: Sequence[str] = ("alex", "jordan"),
    ) -> EpisodeResult:
        """
        Produce one episode.

        Args:
            topics: Search topics (already validated).
            custom_inputs: URL / prompt inputs (already validated).
            roster: Ordered speaker ids, 1-4.

        Returns:
            EpisodeResult with audio, dialogue, sources and per-stage cache
            status.

        Raises:
            PipelineError: A stage failed; ``stage`` and ``code`` say which
                and how.
        """
        run = PipelineRun(
            request_id=uuid.uuid4().hex[:12],
            topics=list(topics),
            custom_inputs=list(custom_inputs),
            roster=list(roster),
        )
        set_request_id(run.request_id)
        info(
            _LOG, "pipeline_start",
            topics=run.topics,
            inputs=len(run.custom_inputs),
            speakers=len(run.roster),
            provider=self.provider_name,
        )

        with timeit("pipeline") as total:
            items = self._run_stage(run, PipelineState.COLLECTING_SOURCES, lambda: self._collect(run))
            enriched = self._run_stage(run, PipelineState.ENRICHING, lambda: self._enrich(run, items))
            turns = self._run_stage(run, PipelineState.GENERATING_SCRIPT, lambda: self._write_script(run, enriched))
            audio, key = self._run_stage(run, PipelineState.SYNTHESIZING_AUDIO, lambda: self._synthesize(run, turns))
            run.state = PipelineState.DONE

        est = estimate_seconds((t.text for t in turns), self._config.chunking.words_per_minute)
        if audio.duration_seconds <= 0:
            audio.duration_seconds = est

        episode_id = self._record(run, enriched, turns, audio, key)
        success(
            _LOG, "pipeline_done",
            episode=episode_id,
            bytes=len(audio.data),
            audio_seconds=round(audio.duration_seconds, 1),
            cache=",".join(f"{k}={v}" for k, v in run.cache.items()),
            seconds=total.seconds,
        )
        return EpisodeResult(
            episode_id=episode_id,
            audio=audio,
            dialogue=turns,
            sources=enriched,
            estimated_seconds=est,
            cache=dict(run.cache),
        )

    def preview_sources(self, topics: Sequence[str]) -> List[SourceItem]:
        """
        Collect sources for topics without running the later stages.

        Shares the ``sources`` cache stage with ``run_pipeline``, so a
        preview followed by a run searches once.

        Raises:
            EmptyResultError: Nothing found.
            ProviderError: The search failed.
        """
        run = PipelineRun(request_id=uuid.uuid4().hex[:12], topics=list(topics), custom_inputs=[], roster=[])
        set_request_id(run.request_id)
        return self._collect(run)

    def episode_audio(self, episode_id: str) -> Optional[EpisodeAudio]:
        """Audio of a past episode while its cache entry is live, else None."""
        record = self._history.get(episode_id) if self._history is not None else None
        if record is None or not record.audio_key:
            return None
        entry = self._cache.get_entry(record.audio_key)
        if entry is None:
            verbose(_LOG, "episode_audio_gone", episode=episode_id)
            return None
        try:
            return self._decode_audio(entry)
        except (TypeError, ContainerError) as e:
            warn(_LOG, "cache_corrupt", stage="audio", key=record.audio_key[:20], error=str(e))
            return None

    def _record(
        self,
        run: PipelineRun,
        sources: List[SourceItem],
        turns: List[DialogueTurn],
        audio: EpisodeAudio,
        key: str,
    ) -> str:
        """Save the durable episode record. Failures are logged only."""
        if self._history is None:
            return new_episode_id()
        titles = [s.title for s in sources]
        try:
            record = self._history.create(
                title=episode_title(titles, run.topics),
                topics=run.topics + [c.value for c in run.custom_inputs],
                roster=run.roster,
                provider=self.provider_name,
                duration_seconds=round(audio.duration_seconds, 2),
                turns=len(turns),
                source_titles=titles,
                audio_key=key,
                mime_type=audio.mime_type,
            )
        except Exception as e:
            error(_LOG, "history_write_failed", error=str(e), error_type=type(e).__name__)
            return new_episode_id()
        return record.id


# =============================================================================
# Factory
# =============================================================================

def build_pipeline(settings: Settings, **overrides: Any) -> PipelineOrchestrator:
    """
    Wire the production collaborators from settings.

    ``overrides`` may replace any constructor argument of
    PipelineOrchestrator (tests pass fakes this way).
    """
    from podgen.sources.dataforseo import DataForSEOCollector
    from podgen.sources.enricher import ArticleEnricher
    from podgen.sources.script_writer import OpenAIScriptWriter
    from podgen.tts.provider import create_provider

    config = settings.get_pipeline_config()

    if "engine" not in overrides:
        provider = create_provider(config.synthesis.provider, config=config, options=config.synthesis.options)
        overrides["engine"] = AudioSynthesisEngine(
            provider,
            chunking=config.chunking,
            max_parallel=config.synthesis.max_parallel,
        )

    args: Dict[str, Any] = {
        "cache": lambda: CacheStore(config.cache.base_dir, ttl_seconds=config.cache.ttl_seconds),
        "collector": lambda: DataForSEOCollector(config.sources, timeout_s=config.http.timeout_s),
        "enricher": lambda: ArticleEnricher(config.enrichment),
        "writer": lambda: OpenAIScriptWriter(config.script, timeout_s=config.http.timeout_s),
        "history": lambda: EpisodeRecordStore(config.history.base_dir),
    }
    kwargs = {name: overrides[name] if name in overrides else make() for name, make in args.items()}
    return PipelineOrchestrator(engine=overrides["engine"], config=config, **kwargs)

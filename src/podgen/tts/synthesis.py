"""
AudioSynthesisEngine - Dialogue to Episode Audio.

Turns a full dialogue into one finished audio file with the configured
SynthesisProvider:

    whole-dialogue provider   format once → synthesize once
    per-chunk provider        plan chunks → synthesize each → concatenate

Reference Chaining:
    Independent calls drift in timbre. When the provider accepts
    reference audio, chunk 0 is synthesized without one and every later
    chunk is anchored to chunk 0's audio and script (never to the
    previous chunk). Chained calls are strictly sequential.

    Providers without reference support may synthesize chunks
    concurrently (``synthesis.max_parallel``); results are joined in
    chunk order regardless of completion order.

Concatenation:
    Every fragment must share chunk 0's format. A mismatch raises
    FormatMismatch before any output is built.
"""
from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from typing import List, Optional, Sequence

from podgen.core.config import ChunkingConfig
from podgen.core.errors import InvalidInputError
from podgen.core.logging import get_logger, info, verbose
from podgen.core.models import AudioBuffer, Chunk, DialogueTurn, EpisodeAudio
from podgen.tts.chunker import ChunkPlanner
from podgen.tts.container import ContainerCodec, WAV_MIME
from podgen.tts.dialects import active_roster
from podgen.tts.provider import SynthesisProvider
from podgen.utils.timeit import timeit

_LOG = get_logger("podgen.synthesis")


class AudioSynthesisEngine:
    """
    Args:
        provider: Resolved synthesis provider.
        chunking: Chunk budgets. Defaults to the provider config's.
        codec: Container codec. Defaults to ContainerCodec().
        max_parallel: Concurrent chunk calls for providers without
            reference support.
    """

    def __init__(
        self,
        provider: SynthesisProvider,
        chunking: Optional[ChunkingConfig] = None,
        codec: Optional[ContainerCodec] = None,
        max_parallel: int = 1,
    ):
        self._provider = provider
        self._chunking = chunking or provider.config.chunking
        self._codec = codec or ContainerCodec()
        self._max_parallel = max(1, int(max_parallel))

    @property
    def provider(self) -> SynthesisProvider:
        return self._provider

    def _speakers(self, turns: Sequence[DialogueTurn], roster: Sequence[str]) -> List[str]:
        return active_roster(roster, turns) or list(roster)

    def plan(self, turns: Sequence[DialogueTurn], roster: Sequence[str]) -> List[Chunk]:
        """Chunks the provider will be called with, in call order."""
        formatter = self._provider.formatter(self._speakers(turns, roster))
        planner = ChunkPlanner(formatter, self._chunking)
        if self._provider.capabilities.whole_dialogue:
            return [Chunk(turns=list(turns), script=formatter.format(turns), estimated_seconds=planner.estimate_seconds(turns))]
        return planner.plan(turns)

    def synthesize_dialogue(self, turns: Sequence[DialogueTurn], roster: Sequence[str]) -> EpisodeAudio:
        """
        Render a dialogue as one episode.

        Raises:
            InvalidInputError: No turns.
            SynthesisError: A provider call failed.
            FormatMismatch: Fragments cannot be concatenated.
        """
        if not turns:
            raise InvalidInputError("dialogue has no turns")

        speakers = self._speakers(turns, roster)
        chunks = self.plan(turns, speakers)
        estimated = sum(c.estimated_seconds for c in chunks)
        caps = self._provider.capabilities
        info(
            _LOG, "synthesis_start",
            provider=self._provider.name,
            turns=len(turns),
            chunks=len(chunks),
            est_seconds=round(estimated, 1),
        )

        with timeit("synthesize_dialogue") as t:
            if len(chunks) == 1:
                buffers = [self._provider.synthesize(chunks[0].script, speakers)]
            elif caps.reference_audio:
                buffers = self._synthesize_chained(chunks, speakers)
            else:
                buffers = self._synthesize_independent(chunks, speakers)

            if len(buffers) == 1 and buffers[0].is_opaque:
                episode = EpisodeAudio(
                    data=buffers[0].payload,
                    mime_type=buffers[0].mime_type,
                    duration_seconds=estimated,
                )
            else:
                joined = self._codec.concatenate(buffers)
                episode = EpisodeAudio(
                    data=self._codec.encode(joined),
                    mime_type=WAV_MIME,
                    duration_seconds=self._codec.duration_seconds(joined),
                    format=joined.format,
                )

        info(
            _LOG, "synthesis_done",
            provider=self._provider.name,
            chunks=len(chunks),
            bytes=len(episode.data),
            audio_seconds=round(episode.duration_seconds, 2),
            seconds=t.seconds,
        )
        return episode

    # ─────────────────────────────────────────────────────────────────────────
    # Chunk scheduling
    # ─────────────────────────────────────────────────────────────────────────

    def _synthesize_chunk(
        self,
        idx: int,
        total: int,
        chunk: Chunk,
        speakers: Sequence[str],
        reference: Optional[AudioBuffer] = None,
        reference_text: Optional[str] = None,
    ) -> AudioBuffer:
        with timeit("synthesize_chunk") as t:
            buf = self._provider.synthesize(chunk.script, speakers, reference, reference_text)
        verbose(
            _LOG, "chunk_done",
            chunk=idx + 1,
            chunks=total,
            chars=chunk.chars,
            referenced=reference is not None,
            seconds=t.seconds,
        )
        return buf

    def _synthesize_chained(self, chunks: Sequence[Chunk], speakers: Sequence[str]) -> List[AudioBuffer]:
        total = len(chunks)
        first = self._synthesize_chunk(0, total, chunks[0], speakers)
        out = [first]
        for idx in range(1, total):
            out.append(self._synthesize_chunk(idx, total, chunks[idx], speakers, first, chunks[0].script))
        return out

    def _synthesize_independent(self, chunks: Sequence[Chunk], speakers: Sequence[str]) -> List[AudioBuffer]:
        total = len(chunks)
        if self._max_parallel == 1:
            return [self._synthesize_chunk(i, total, c, speakers) for i, c in enumerate(chunks)]

        workers = min(self._max_parallel, total)
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="podgen-synth") as pool:
            futures = [pool.submit(self._synthesize_chunk, i, total, c, speakers) for i, c in enumerate(chunks)]
            # chunk order, not completion order
            return [f.result() for f in futures]

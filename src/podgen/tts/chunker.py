"""
Chunk Planning for Multi-Speaker Synthesis.

Synthesis providers cap how much script one call may carry. The planner
splits an ordered dialogue into chunks that respect both a character
budget (measured on the provider-formatted script) and an estimated
duration budget (word count at a fixed speaking rate), without ever
splitting a turn.

Planning Steps:
    1. If the whole script fits both maxima, return one chunk.
    2. Walk turns; close the current chunk before a turn that would push
       it past either maximum.
    3. Close early after a turn that ends a sentence once the chunk has
       reached both targets and both minimums.
    4. If the last chunk is under either minimum and merging it into the
       previous one stays within both maxima, merge.

A turn that alone exceeds a maximum becomes its own chunk and is logged.

Example:
    >>> planner = ChunkPlanner(formatter)
    >>> chunks = planner.plan(turns)
    >>> [round(c.estimated_seconds) for c in chunks]
    [58, 57, 25]
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import List, Optional, Sequence

from podgen.core.config import ChunkingConfig
from podgen.core.logging import get_logger, verbose, warn
from podgen.core.models import Chunk, DialogueTurn
from podgen.tts.dialects import ScriptFormatter
from podgen.utils.text import word_count
from podgen.utils.timeit import timeit

_LOG = get_logger("podgen.chunker")

# terminal punctuation, optionally followed by closing quotes or brackets
_SENTENCE_END = re.compile(r"[.!?…][\"'”’»)\]]*\s*$", re.UNICODE)


def ends_sentence(text: str) -> bool:
    return bool(_SENTENCE_END.search(text))


@dataclass
class _Draft:
    """A chunk under construction."""
    turns: List[DialogueTurn]
    pieces: List[str]
    chars: int = 0
    words: int = 0


class ChunkPlanner:
    """
    Splits dialogue into provider-sized chunks.

    Args:
        formatter: Renders turns in the provider's script dialect; the
            character budget applies to its output.
        config: Budgets. Defaults to ChunkingConfig().
    """

    def __init__(self, formatter: ScriptFormatter, config: Optional[ChunkingConfig] = None):
        self._formatter = formatter
        self._cfg = config or ChunkingConfig()

    @property
    def config(self) -> ChunkingConfig:
        return self._cfg

    def seconds_for_words(self, words: int) -> float:
        return words * 60.0 / self._cfg.words_per_minute

    def estimate_seconds(self, turns: Sequence[DialogueTurn]) -> float:
        """Speaking time of the spoken text; delivery tags are not counted."""
        return self.seconds_for_words(sum(word_count(self._formatter.clean(t.text)) for t in turns))

    def plan(self, turns: Sequence[DialogueTurn]) -> List[Chunk]:
        """
        Plan chunks for an ordered dialogue.

        Returns:
            Chunks whose turns, concatenated, equal ``turns``. Empty input
            gives an empty plan.
        """
        if not turns:
            return []

        with timeit("chunk_plan") as t:
            script = self._formatter.format(turns)
            seconds = self.estimate_seconds(turns)
            if len(script) <= self._cfg.max_chars and seconds <= self._cfg.max_seconds:
                chunks = [Chunk(turns=list(turns), script=script, estimated_seconds=seconds)]
            else:
                drafts = self._merge_tail(self._walk(turns))
                chunks = [self._finish(d) for d in drafts]

        verbose(
            _LOG, "chunk_plan",
            turns=len(turns),
            chunks=len(chunks),
            chars=[c.chars for c in chunks],
            seconds=t.seconds,
        )
        return chunks

    # ─────────────────────────────────────────────────────────────────────────
    # Internals
    # ─────────────────────────────────────────────────────────────────────────

    def _sep_len(self, draft: _Draft) -> int:
        return len(self._formatter.separator) if draft.pieces else 0

    def _over_max(self, chars: int, words: int) -> bool:
        return chars > self._cfg.max_chars or self.seconds_for_words(words) > self._cfg.max_seconds

    def _reached_target(self, draft: _Draft) -> bool:
        secs = self.seconds_for_words(draft.words)
        return (
            draft.chars >= self._cfg.target_chars
            and secs >= self._cfg.target_seconds
            and draft.chars >= self._cfg.min_chars
            and secs >= self._cfg.min_seconds
        )

    def _undersized(self, draft: _Draft) -> bool:
        return draft.chars < self._cfg.min_chars or self.seconds_for_words(draft.words) < self._cfg.min_seconds

    def _walk(self, turns: Sequence[DialogueTurn]) -> List[_Draft]:
        drafts: List[_Draft] = []
        current = _Draft(turns=[], pieces=[])

        for turn in turns:
            spoken = self._formatter.clean(turn.text)
            piece = self._formatter.format_turn(turn)
            words = word_count(spoken)

            if current.turns and self._over_max(
                current.chars + self._sep_len(current) + len(piece),
                current.words + words,
            ):
                drafts.append(current)
                current = _Draft(turns=[], pieces=[])

            if not current.turns and self._over_max(len(piece), words):
                warn(
                    _LOG, "oversized_turn",
                    speaker=turn.speaker,
                    chars=len(piece),
                    est_seconds=round(self.seconds_for_words(words), 1),
                )

            current.chars += self._sep_len(current) + len(piece)
            current.words += words
            current.turns.append(turn)
            current.pieces.append(piece)

            if self._reached_target(current) and ends_sentence(spoken):
                drafts.append(current)
                current = _Draft(turns=[], pieces=[])

        if current.turns:
            drafts.append(current)
        return drafts

    def _merge_tail(self, drafts: List[_Draft]) -> List[_Draft]:
        if len(drafts) < 2 or not self._undersized(drafts[-1]):
            return drafts

        prev, last = drafts[-2], drafts[-1]
        merged_chars = prev.chars + len(self._formatter.separator) + last.chars
        merged_words = prev.words + last.words
        if self._over_max(merged_chars, merged_words):
            return drafts

        verbose(_LOG, "chunk_tail_merged", chars=last.chars, est_seconds=round(self.seconds_for_words(last.words), 1))
        merged = _Draft(
            turns=prev.turns + last.turns,
            pieces=prev.pieces + last.pieces,
            chars=merged_chars,
            words=merged_words,
        )
        return drafts[:-2] + [merged]

    def _finish(self, draft: _Draft) -> Chunk:
        return Chunk(
            turns=list(draft.turns),
            script=self._formatter.join(draft.pieces),
            estimated_seconds=self.seconds_for_words(draft.words),
        )

"""
Script Dialects.

Synthesis models disagree on how a multi-speaker script must look. A
``ScriptFormatter`` renders dialogue turns in the dialect a provider
declares in its capabilities:

    INLINE_TAGS     "[S1] Hey there. [S2] Hi!"        (space-joined, 1-based)
    SPEAKER_LINES   "Speaker 0: Hey there.\\nSpeaker 1: Hi!"  (0-based)
    PLAIN           "Hey there. Hi!"                   (no labels)

Delivery annotations such as ``[laughs]`` are always stripped: models
that read tags literally would speak them. Dia additionally drops
``(parenthesized)`` stage directions.

Speaker numbers come from the position in the roster. Models with fewer
voices than the roster fold the extra speakers onto their last voice.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Iterable, List, Sequence, Tuple

from podgen.core.models import DialogueTurn
from podgen.utils.text import strip_annotations, strip_tags


class ScriptDialect(str, Enum):
    INLINE_TAGS = "inline_tags"
    SPEAKER_LINES = "speaker_lines"
    PLAIN = "plain"


@dataclass(frozen=True)
class ScriptFormatter:
    """
    Renders turns for one provider and one roster.

    Attributes:
        dialect: Target script dialect.
        roster: Speaker ids in voice order.
        strip_parentheticals: Also remove ``(...)`` annotations.
        max_speakers: Voices the model can tell apart.
    """
    dialect: ScriptDialect
    roster: Tuple[str, ...]
    strip_parentheticals: bool = False
    max_speakers: int = 4

    @property
    def separator(self) -> str:
        return "\n" if self.dialect == ScriptDialect.SPEAKER_LINES else " "

    def speaker_index(self, speaker: str) -> int:
        """0-based voice index; unknown speakers take the first voice."""
        try:
            idx = self.roster.index(speaker)
        except ValueError:
            idx = 0
        return min(idx, self.max_speakers - 1)

    def clean(self, text: str) -> str:
        if self.strip_parentheticals or self.dialect == ScriptDialect.PLAIN:
            return strip_annotations(text)
        return strip_tags(text)

    def format_turn(self, turn: DialogueTurn) -> str:
        text = self.clean(turn.text)
        if self.dialect == ScriptDialect.INLINE_TAGS:
            return f"[S{self.speaker_index(turn.speaker) + 1}] {text}".rstrip()
        if self.dialect == ScriptDialect.SPEAKER_LINES:
            return f"Speaker {self.speaker_index(turn.speaker)}: {text}".rstrip()
        return text

    def join(self, pieces: Iterable[str]) -> str:
        return self.separator.join(pieces)

    def format(self, turns: Sequence[DialogueTurn]) -> str:
        return self.join(self.format_turn(t) for t in turns)


def active_roster(roster: Sequence[str], turns: Sequence[DialogueTurn]) -> List[str]:
    """Roster members that actually speak, in roster order."""
    speaking = {t.speaker for t in turns}
    return [s for s in roster if s in speaking]

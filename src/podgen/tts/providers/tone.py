"""
Offline Tone Provider.

Renders a script as a sequence of sine tones, one per line or tag, with
a pitch per speaker and a length proportional to the word count. No
network, no credentials: used for dry runs, CI, and local development of
the rest of the pipeline.

It accepts reference audio like a voice-cloning model would, and matches
the reference's sample rate so chained chunks always concatenate.

Settings (``synthesis.tone``):
    sample_rate: 24000
    dialect: speaker_lines | inline_tags
    words_per_minute: 150
"""
from __future__ import annotations

import re
from typing import Any, Dict, List, Optional, Sequence, Tuple

import numpy as np

from podgen.core.config import PipelineConfig
from podgen.core.logging import verbose
from podgen.core.models import AudioBuffer
from podgen.tts.container import ContainerCodec
from podgen.tts.dialects import ScriptDialect
from podgen.tts.provider import ProviderCapabilities, SynthesisProvider
from podgen.utils.audio import wav_bytes_from_float32
from podgen.utils.text import word_count

_LINE_LABEL = re.compile(r"^Speaker\s+(\d+):\s*(.*)$")
_INLINE_TAG = re.compile(r"\[S(\d+)\]")

# A3, C#4, E4, A4
_PITCHES = (220.0, 277.18, 329.63, 440.0)
_GAP_SECONDS = 0.15
_AMPLITUDE = 0.2


def split_script(script: str, dialect: ScriptDialect) -> List[Tuple[int, str]]:
    """(0-based speaker index, text) segments of a formatted script."""
    if dialect == ScriptDialect.SPEAKER_LINES:
        out = []
        for line in script.splitlines():
            m = _LINE_LABEL.match(line.strip())
            if m:
                out.append((int(m.group(1)), m.group(2)))
            elif line.strip():
                out.append((0, line.strip()))
        return out

    if dialect == ScriptDialect.INLINE_TAGS:
        parts = _INLINE_TAG.split(script)
        out = [(0, parts[0].strip())] if parts[0].strip() else []
        for i in range(1, len(parts) - 1, 2):
            out.append((max(int(parts[i]) - 1, 0), parts[i + 1].strip()))
        return out

    return [(0, script.strip())] if script.strip() else []


class ToneProvider(SynthesisProvider):
    name = "tone"
    capabilities = ProviderCapabilities(
        whole_dialogue=False,
        reference_audio=True,
        dialect=ScriptDialect.SPEAKER_LINES,
        max_speakers=len(_PITCHES),
    )

    def __init__(self, config: Optional[PipelineConfig] = None, options: Optional[Dict[str, Any]] = None, **_: Any):
        super().__init__(config=config, options=options)
        dialect = ScriptDialect(str(self.options.get("dialect", ScriptDialect.SPEAKER_LINES.value)))
        # per instance: the dialect is configurable
        self.capabilities = ProviderCapabilities(
            whole_dialogue=bool(self.options.get("whole_dialogue", False)),
            reference_audio=True,
            dialect=dialect,
            max_speakers=len(_PITCHES),
        )
        self.sample_rate = int(self.options.get("sample_rate", 24000))
        self.words_per_minute = float(self.options.get("words_per_minute", self.config.chunking.words_per_minute))
        self._codec = ContainerCodec()

    def synthesize(
        self,
        script: str,
        speakers: Sequence[str] = (),
        reference_audio: Optional[AudioBuffer] = None,
        reference_text: Optional[str] = None,
    ) -> AudioBuffer:
        sr = self.sample_rate
        if reference_audio is not None and reference_audio.format is not None:
            sr = reference_audio.format.sample_rate

        segments = split_script(script, self.capabilities.dialect)
        gap = np.zeros(int(sr * _GAP_SECONDS), dtype=np.float32)
        pieces: List[np.ndarray] = []
        for speaker, text in segments:
            seconds = max(word_count(text), 1) * 60.0 / self.words_per_minute
            t = np.arange(int(sr * seconds), dtype=np.float32) / sr
            pitch = _PITCHES[min(speaker, len(_PITCHES) - 1)]
            pieces.append((_AMPLITUDE * np.sin(2 * np.pi * pitch * t)).astype(np.float32))
            pieces.append(gap)

        wave = np.concatenate(pieces) if pieces else gap
        audio = self._codec.decode(wav_bytes_from_float32(wave, sr))
        verbose(self.logger, "tones_rendered", segments=len(segments), sr=sr, audio_seconds=round(len(wave) / sr, 2))
        return audio

"""
VibeVoice on fal.ai.

Renders the whole dialogue in one call from ``Speaker N:`` lines
(0-based) and returns MP3, which is passed through as-is.

Settings (``synthesis.vibevoice-fal``):
    model: fal-ai/vibevoice
    cfg_scale: 1.3
    presets: {alex: "Frank [EN]", jordan: "Alice [EN]"}
"""
from __future__ import annotations

from typing import Optional, Sequence

from podgen.core.logging import info
from podgen.core.models import AudioBuffer
from podgen.tts.dialects import ScriptDialect
from podgen.tts.provider import ProviderCapabilities
from podgen.tts.providers.helpers import RemoteProvider
from podgen.utils.timeit import timeit


class VibeVoiceFalProvider(RemoteProvider):
    name = "vibevoice-fal"
    capabilities = ProviderCapabilities(
        whole_dialogue=True,
        reference_audio=False,
        dialect=ScriptDialect.SPEAKER_LINES,
        max_speakers=4,
    )

    def synthesize(
        self,
        script: str,
        speakers: Sequence[str] = (),
        reference_audio: Optional[AudioBuffer] = None,
        reference_text: Optional[str] = None,
    ) -> AudioBuffer:
        payload = {
            "script": script,
            "speakers": [{"preset": p} for p in self.presets_for(speakers) if p],
            "cfg_scale": float(self.options.get("cfg_scale", 1.3)),
        }

        with timeit("vibevoice_fal") as t:
            result = self.fal_run(str(self.options.get("model", "fal-ai/vibevoice")), payload)
            audio = self.download_audio(self.fal_audio_url(result))

        info(
            self.logger, "dialogue_synthesized",
            chars=len(script),
            speakers=len(speakers),
            bytes=len(audio.payload),
            reported_duration=(result.get("audio") or {}).get("duration"),
            seconds=t.seconds,
        )
        return audio

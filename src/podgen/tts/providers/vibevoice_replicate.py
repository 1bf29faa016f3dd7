"""
VibeVoice on Replicate.

Whole dialogue in one prediction. The model takes ``[S1]``-style inline
tags with every delivery tag removed (it infers tone from the words and
would read tags aloud). Output is a WAV file URL.

Settings (``synthesis.vibevoice-replicate``):
    model: microsoft/vibevoice
    scale: 1.3
    presets: {alex: en-Frank_man, jordan: en-Alice_woman}

Credentials: REPLICATE_API_TOKEN.
"""
from __future__ import annotations

from typing import Any, Dict, Optional, Sequence

from podgen.core.logging import info
from podgen.core.models import AudioBuffer
from podgen.tts.dialects import ScriptDialect
from podgen.tts.provider import ProviderCapabilities
from podgen.tts.providers.helpers import RemoteProvider
from podgen.utils.timeit import timeit


class VibeVoiceReplicateProvider(RemoteProvider):
    name = "vibevoice-replicate"
    capabilities = ProviderCapabilities(
        whole_dialogue=True,
        reference_audio=False,
        dialect=ScriptDialect.INLINE_TAGS,
        max_speakers=4,
    )

    def synthesize(
        self,
        script: str,
        speakers: Sequence[str] = (),
        reference_audio: Optional[AudioBuffer] = None,
        reference_text: Optional[str] = None,
    ) -> AudioBuffer:
        payload: Dict[str, Any] = {
            "script": script,
            "scale": float(self.options.get("scale", 1.3)),
        }
        for idx, preset in enumerate(self.presets_for(speakers), start=1):
            if preset:
                payload[f"speaker_{idx}"] = preset

        with timeit("vibevoice_replicate") as t:
            output = self.replicate_run(str(self.options.get("model", "microsoft/vibevoice")), payload)
            # a bare URL, or a list of URLs for multi-file models
            if isinstance(output, list):
                output = output[0] if output else None
            if not isinstance(output, str) or not output:
                raise self._fail("no audio URL in prediction output", output=str(output)[:200])
            audio = self.download_audio(output)

        info(
            self.logger, "dialogue_synthesized",
            chars=len(script),
            speakers=len(speakers),
            bytes=len(audio.payload),
            seconds=t.seconds,
        )
        return audio

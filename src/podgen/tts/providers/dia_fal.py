"""
Dia on fal.ai.

Dia reads ``[S1]``/``[S2]`` inline speaker tags and caps each request at
roughly 10k characters, so long episodes are synthesized chunk by chunk.
Voices drift between independent calls; every chunk after the first goes
to the voice-clone endpoint with the first chunk's audio and script as
the reference.

Settings (``synthesis.dia-fal``):
    model: fal-ai/dia-tts
    clone_model: fal-ai/dia-tts/voice-clone

Credentials: FAL_KEY (FAL_API_KEY is accepted too).
"""
from __future__ import annotations

from typing import Optional, Sequence

from podgen.core.logging import info
from podgen.core.models import AudioBuffer
from podgen.tts.dialects import ScriptDialect
from podgen.tts.provider import ProviderCapabilities
from podgen.tts.providers.helpers import RemoteProvider, wav_data_uri
from podgen.utils.timeit import timeit


class DiaFalProvider(RemoteProvider):
    name = "dia-fal"
    capabilities = ProviderCapabilities(
        whole_dialogue=False,
        reference_audio=True,
        dialect=ScriptDialect.INLINE_TAGS,
        max_speakers=2,
        strip_parentheticals=True,
    )

    def synthesize(
        self,
        script: str,
        speakers: Sequence[str] = (),
        reference_audio: Optional[AudioBuffer] = None,
        reference_text: Optional[str] = None,
    ) -> AudioBuffer:
        if reference_audio is not None:
            model = str(self.options.get("clone_model", "fal-ai/dia-tts/voice-clone"))
            payload = {
                "text": script,
                "ref_audio_url": wav_data_uri(self._codec.encode(reference_audio)),
                "ref_text": reference_text or "",
            }
        else:
            model = str(self.options.get("model", "fal-ai/dia-tts"))
            payload = {"text": script}

        with timeit("dia_fal") as t:
            result = self.fal_run(model, payload)
            audio = self.download_audio(self.fal_audio_url(result))

        info(
            self.logger, "clip_synthesized",
            chars=len(script),
            referenced=reference_audio is not None,
            bytes=len(audio.payload),
            seconds=t.seconds,
        )
        return audio

"""
Synthesis Provider Implementations.

Available Providers:
    - DiaFalProvider: Dia on fal.ai, chunked, voice-clone references
    - VibeVoiceFalProvider: VibeVoice on fal.ai, whole dialogue, MP3
    - VibeVoiceReplicateProvider: VibeVoice on Replicate, whole dialogue, WAV
    - ToneProvider: offline sine-tone renderer

Provider classes are imported lazily; use
``podgen.tts.provider.create_provider`` to build one by name.
"""
from __future__ import annotations

from typing import TYPE_CHECKING

__all__ = [
    "DiaFalProvider",
    "VibeVoiceFalProvider",
    "VibeVoiceReplicateProvider",
    "ToneProvider",
]


def __getattr__(name: str):
    if name == "DiaFalProvider":
        from podgen.tts.providers.dia_fal import DiaFalProvider
        return DiaFalProvider
    if name == "VibeVoiceFalProvider":
        from podgen.tts.providers.vibevoice_fal import VibeVoiceFalProvider
        return VibeVoiceFalProvider
    if name == "VibeVoiceReplicateProvider":
        from podgen.tts.providers.vibevoice_replicate import VibeVoiceReplicateProvider
        return VibeVoiceReplicateProvider
    if name == "ToneProvider":
        from podgen.tts.providers.tone import ToneProvider
        return ToneProvider
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


if TYPE_CHECKING:
    from podgen.tts.providers.dia_fal import DiaFalProvider
    from podgen.tts.providers.tone import ToneProvider
    from podgen.tts.providers.vibevoice_fal import VibeVoiceFalProvider
    from podgen.tts.providers.vibevoice_replicate import VibeVoiceReplicateProvider

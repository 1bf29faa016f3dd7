"""
podgen: Topics-to-Podcast Pipeline.

Turns a handful of topics into a multi-host audio episode: news search,
article enrichment, LLM dialogue writing, and speech synthesis, with
every stage result cached so a failed run resumes where it stopped.

Supported Synthesis Providers:
    - dia-fal: Dia on fal.ai, two voices, voice cloning for continuity
    - vibevoice-fal: VibeVoice on fal.ai, whole dialogue in one call
    - vibevoice-replicate: VibeVoice on Replicate, whole dialogue in one call
    - tone: Offline sine-tone renderer for dry runs and tests

Key Features:
    - Stage cache with TTL, keyed on canonical stage inputs
    - Dialogue chunking under provider length limits
    - Reference-audio chaining so every chunk keeps the first chunk's voices
    - WAV concatenation with format checks
    - Durable episode history

Example Usage:
    >>> from podgen.core.config import load_settings
    >>> from podgen.services import build_pipeline
    >>>
    >>> pipeline = build_pipeline(load_settings("config/settings.yaml"))
    >>> result = pipeline.run_pipeline(["AI"], roster=["alex", "jordan"])
    >>> with open("episode.wav", "wb") as f:
    ...     f.write(result.audio.data)
"""

__version__ = "0.1.0"
__all__ = ["__version__"]

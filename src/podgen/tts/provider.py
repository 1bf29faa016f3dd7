"""
Synthesis Provider Base Class and Registry.

This module provides:
    - ProviderCapabilities: what a provider can do and which script it reads
    - SynthesisProvider: abstract base class for all providers
    - register_provider / create_provider: the provider registry

Provider Selection:
    The provider is chosen by ``synthesis.provider`` in settings.yaml (or
    PODGEN_SYNTHESIS_PROVIDER) and resolved once when the pipeline is
    built. Registered providers:
        - dia-fal: Dia on fal.ai, per-chunk, voice-clone references
        - vibevoice-fal: VibeVoice on fal.ai, whole dialogue, MP3 output
        - vibevoice-replicate: VibeVoice on Replicate, whole dialogue, WAV output
        - tone: offline tone renderer for dry runs and tests

Implementing a New Provider:
    1. Create providers/<name>.py
    2. Inherit from SynthesisProvider, set ``name`` and ``capabilities``
    3. Implement synthesize()
    4. Add it to _REGISTRY below (or call register_provider)
"""
from __future__ import annotations

import importlib
import threading
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Sequence, Union

from podgen.core.config import PipelineConfig, Settings
from podgen.core.logging import get_logger, info
from podgen.core.models import AudioBuffer
from podgen.tts.dialects import ScriptDialect, ScriptFormatter

_LOG = get_logger("podgen.provider")


@dataclass(frozen=True)
class ProviderCapabilities:
    """
    Attributes:
        whole_dialogue: Accepts the full dialogue in one call; no chunking.
        reference_audio: Accepts reference audio + transcript to keep voices
            consistent across calls.
        dialect: Script dialect the model reads.
        max_speakers: Distinct voices the model supports.
        strip_parentheticals: Model speaks ``(...)`` notes aloud.
    """
    whole_dialogue: bool
    reference_audio: bool
    dialect: ScriptDialect
    max_speakers: int = 4
    strip_parentheticals: bool = False


class SynthesisProvider:
    """
    Abstract base class for synthesis providers.

    Subclasses implement ``synthesize``. Remote failures must surface as
    ``SynthesisError``; there is no fallback provider.

    Attributes:
        name: Registry id.
        capabilities: ProviderCapabilities.
        options: Provider section of the synthesis settings.
    """
    name: str = "base"
    capabilities: ProviderCapabilities = ProviderCapabilities(
        whole_dialogue=False,
        reference_audio=False,
        dialect=ScriptDialect.PLAIN,
    )

    def __init__(self, config: Optional[PipelineConfig] = None, options: Optional[Dict[str, Any]] = None):
        self.config = config or PipelineConfig()
        self.options: Dict[str, Any] = dict(options or {})
        self.logger = get_logger(f"podgen.provider.{self.name}")

    def formatter(self, roster: Sequence[str]) -> ScriptFormatter:
        caps = self.capabilities
        return ScriptFormatter(
            dialect=caps.dialect,
            roster=tuple(roster),
            strip_parentheticals=caps.strip_parentheticals,
            max_speakers=caps.max_speakers,
        )

    def synthesize(
        self,
        script: str,
        speakers: Sequence[str] = (),
        reference_audio: Optional[AudioBuffer] = None,
        reference_text: Optional[str] = None,
    ) -> AudioBuffer:
        """
        Render a formatted script.

        Args:
            script: Script in this provider's dialect.
            speakers: Roster ids in voice order, for voice presets.
            reference_audio: Earlier output whose voices should be matched.
            reference_text: Script that produced ``reference_audio``.

        Raises:
            SynthesisError: The provider call failed.
        """
        raise NotImplementedError

    def close(self) -> None:
        """Release network clients. Safe to call more than once."""

    def describe(self) -> Dict[str, Any]:
        caps = self.capabilities
        return {
            "name": self.name,
            "whole_dialogue": caps.whole_dialogue,
            "reference_audio": caps.reference_audio,
            "dialect": caps.dialect.value,
            "max_speakers": caps.max_speakers,
        }


# =============================================================================
# Registry
# =============================================================================

ProviderFactory = Callable[..., SynthesisProvider]

# "module:Class" entries are imported on first use
_REGISTRY: Dict[str, Union[str, ProviderFactory]] = {
    "dia-fal": "podgen.tts.providers.dia_fal:DiaFalProvider",
    "vibevoice-fal": "podgen.tts.providers.vibevoice_fal:VibeVoiceFalProvider",
    "vibevoice-replicate": "podgen.tts.providers.vibevoice_replicate:VibeVoiceReplicateProvider",
    "tone": "podgen.tts.providers.tone:ToneProvider",
}
_REGISTRY_LOCK = threading.Lock()


def register_provider(name: str, factory: Union[str, ProviderFactory]) -> None:
    """Add or replace a registry entry."""
    with _REGISTRY_LOCK:
        _REGISTRY[name] = factory


def available_providers() -> List[str]:
    return sorted(_REGISTRY)


def _resolve_factory(name: str) -> ProviderFactory:
    try:
        entry = _REGISTRY[name]
    except KeyError:
        raise ValueError(f"Unknown synthesis provider: {name} (known: {', '.join(available_providers())})") from None
    if isinstance(entry, str):
        module_name, _, attr = entry.partition(":")
        entry = getattr(importlib.import_module(module_name), attr)
    return entry


def provider_class(name: str) -> ProviderFactory:
    return _resolve_factory(name.strip().lower())


def create_provider(
    name: str,
    config: Optional[PipelineConfig] = None,
    options: Optional[Dict[str, Any]] = None,
    **kwargs: Any,
) -> SynthesisProvider:
    """
    Instantiate a registered provider.

    Raises:
        ValueError: Unknown provider id.
    """
    factory = _resolve_factory(name.strip().lower())
    provider = factory(config=config, options=options, **kwargs)
    info(_LOG, "provider_ready", provider=provider.name, **{
        k: v for k, v in provider.describe().items() if k != "name"
    })
    return provider


def provider_from_settings(settings: Settings, **kwargs: Any) -> SynthesisProvider:
    """Resolve the configured provider with its settings section."""
    config = settings.get_pipeline_config()
    return create_provider(config.synthesis.provider, config=config, options=config.synthesis.options, **kwargs)

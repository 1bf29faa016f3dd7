"""
Data Model.

Plain dataclasses passed between pipeline stages. Everything that is
cached as JSON has ``to_dict`` / ``from_dict``; audio types carry bytes
and are cached as blobs instead.

    SourceItem      one news article (optionally enriched)
    CustomInput     a caller-supplied URL or free-text prompt
    DialogueTurn    one spoken line
    AudioFormat     PCM descriptor read from a container header
    AudioBuffer     raw samples + format, or opaque encoded bytes
    Chunk           one provider request worth of turns
    EpisodeAudio    the finished container bytes
    EpisodeResult   what run_pipeline returns
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


INPUT_KINDS = ("url", "prompt")


@dataclass(frozen=True)
class CustomInput:
    """A URL to include as a source, or a prompt to search for."""
    kind: str
    value: str

    def to_dict(self) -> Dict[str, Any]:
        return {"kind": self.kind, "value": self.value}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CustomInput":
        return cls(kind=str(data["kind"]), value=str(data["value"]))


@dataclass
class SourceItem:
    """
    A news article.

    ``detailed_summary`` and the detail lists are filled in by the
    enrichment stage; everything downstream reads ``summary_text``.
    """
    title: str
    snippet: str
    url: str
    origin: str
    published_at: Optional[str] = None
    detailed_summary: Optional[str] = None
    key_details: List[str] = field(default_factory=list)
    quotes: List[str] = field(default_factory=list)
    numbers: List[str] = field(default_factory=list)

    @property
    def summary_text(self) -> str:
        return self.detailed_summary or self.snippet

    @property
    def is_enriched(self) -> bool:
        return self.detailed_summary is not None

    def with_snippet_summary(self) -> "SourceItem":
        """Copy of this item enriched with its own snippet."""
        return SourceItem(
            title=self.title,
            snippet=self.snippet,
            url=self.url,
            origin=self.origin,
            published_at=self.published_at,
            detailed_summary=self.snippet,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "title": self.title,
            "snippet": self.snippet,
            "url": self.url,
            "origin": self.origin,
            "published_at": self.published_at,
            "detailed_summary": self.detailed_summary,
            "key_details": list(self.key_details),
            "quotes": list(self.quotes),
            "numbers": list(self.numbers),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SourceItem":
        return cls(
            title=str(data.get("title", "")),
            snippet=str(data.get("snippet", "") or ""),
            url=str(data.get("url", "")),
            origin=str(data.get("origin", "") or "Unknown"),
            published_at=data.get("published_at"),
            detailed_summary=data.get("detailed_summary"),
            key_details=list(data.get("key_details") or []),
            quotes=list(data.get("quotes") or []),
            numbers=list(data.get("numbers") or []),
        )


@dataclass(frozen=True)
class DialogueTurn:
    speaker: str
    text: str

    def to_dict(self) -> Dict[str, str]:
        return {"speaker": self.speaker, "text": self.text}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DialogueTurn":
        return cls(speaker=str(data["speaker"]), text=str(data["text"]))


@dataclass(frozen=True)
class AudioFormat:
    """
    PCM descriptor from a WAV ``fmt `` sub-chunk.

    ``encoding`` is the WAVE format tag (1 = integer PCM, 3 = IEEE float).
    """
    channels: int
    sample_rate: int
    bits_per_sample: int
    encoding: int = 1

    @property
    def block_align(self) -> int:
        return self.channels * self.bits_per_sample // 8

    @property
    def byte_rate(self) -> int:
        return self.sample_rate * self.block_align

    def to_dict(self) -> Dict[str, int]:
        return {
            "channels": self.channels,
            "sample_rate": self.sample_rate,
            "bits_per_sample": self.bits_per_sample,
            "encoding": self.encoding,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AudioFormat":
        return cls(
            channels=int(data["channels"]),
            sample_rate=int(data["sample_rate"]),
            bits_per_sample=int(data["bits_per_sample"]),
            encoding=int(data.get("encoding", 1)),
        )


@dataclass(frozen=True)
class AudioBuffer:
    """
    Audio returned by a provider.

    With a ``format`` the payload is raw sample bytes. Without one the
    payload is an already-encoded file (``mime_type`` says which) that
    can be passed through but not concatenated.
    """
    payload: bytes
    format: Optional[AudioFormat] = None
    mime_type: str = "audio/wav"

    @property
    def is_opaque(self) -> bool:
        return self.format is None


@dataclass
class Chunk:
    """Turns serialized into one provider request."""
    turns: List[DialogueTurn]
    script: str
    estimated_seconds: float

    @property
    def chars(self) -> int:
        return len(self.script)


@dataclass
class EpisodeAudio:
    data: bytes
    mime_type: str
    duration_seconds: float
    format: Optional[AudioFormat] = None

    @property
    def extension(self) -> str:
        return {"audio/wav": ".wav", "audio/mpeg": ".mp3"}.get(self.mime_type, ".bin")


@dataclass
class EpisodeResult:
    """
    Output of one pipeline run.

    Attributes:
        episode_id: Id of the durable episode record.
        audio: Finished episode audio.
        dialogue: Script that was synthesized.
        sources: Enriched source items the script was written from.
        estimated_seconds: Speaking-time estimate from the word count.
        cache: Per-stage cache status, e.g. ``{"sources": "hit", ...}``.
    """
    episode_id: str
    audio: EpisodeAudio
    dialogue: List[DialogueTurn]
    sources: List[SourceItem]
    estimated_seconds: float
    cache: Dict[str, str] = field(default_factory=dict)

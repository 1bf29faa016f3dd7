"""Shared fakes for the pipeline and synthesis tests."""
from __future__ import annotations

import struct
import threading
from typing import List, Optional, Sequence

import pytest

from podgen.core.models import AudioBuffer, AudioFormat, DialogueTurn, SourceItem
from podgen.sources.base import Enricher, ScriptGenerator, SourceCollector
from podgen.tts.dialects import ScriptDialect
from podgen.tts.provider import ProviderCapabilities, SynthesisProvider

PCM16_MONO = AudioFormat(channels=1, sample_rate=24000, bits_per_sample=16)


def make_wav(payload: bytes, channels: int = 1, sample_rate: int = 24000, bits: int = 16,
             extra_chunks: Sequence[tuple] = ()) -> bytes:
    """Hand-built WAV file; ``extra_chunks`` are (id, body) pairs placed before ``data``."""
    block_align = channels * bits // 8
    fmt = struct.pack("<HHIIHH", 1, channels, sample_rate, sample_rate * block_align, block_align, bits)
    body = b"WAVE" + b"fmt " + struct.pack("<I", len(fmt)) + fmt
    for chunk_id, chunk_body in extra_chunks:
        body += chunk_id + struct.pack("<I", len(chunk_body)) + chunk_body
        if len(chunk_body) & 1:
            body += b"\x00"
    body += b"data" + struct.pack("<I", len(payload)) + payload
    return b"RIFF" + struct.pack("<I", len(body)) + body


class FakeClock:
    def __init__(self, now: float = 1_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class RecordingProvider(SynthesisProvider):
    """Returns the script bytes as PCM and records every call."""
    name = "recording"

    def __init__(self, whole_dialogue: bool = False, reference_audio: bool = True,
                 dialect: ScriptDialect = ScriptDialect.INLINE_TAGS, formats: Optional[List[AudioFormat]] = None,
                 opaque: bool = False, **kwargs):
        super().__init__(**kwargs)
        self.capabilities = ProviderCapabilities(
            whole_dialogue=whole_dialogue,
            reference_audio=reference_audio,
            dialect=dialect,
            max_speakers=4,
        )
        self.calls: List[dict] = []
        self._formats = formats or []
        self._opaque = opaque
        self._lock = threading.Lock()

    def synthesize(self, script, speakers=(), reference_audio=None, reference_text=None):
        with self._lock:
            idx = len(self.calls)
            self.calls.append({
                "script": script,
                "speakers": list(speakers),
                "reference_audio": reference_audio,
                "reference_text": reference_text,
            })
        if self._opaque:
            return AudioBuffer(payload=b"ID3" + script.encode("utf-8"), format=None, mime_type="audio/mpeg")
        fmt = self._formats[idx] if idx < len(self._formats) else PCM16_MONO
        payload = script.encode("utf-8")
        if len(payload) & 1:
            payload += b" "
        return AudioBuffer(payload=payload, format=fmt)


class FakeCollector(SourceCollector):
    def __init__(self, items: List[SourceItem], error: Optional[Exception] = None):
        self.items = items
        self.error = error
        self.calls: List[List[str]] = []

    def fetch(self, queries):
        self.calls.append(list(queries))
        if self.error is not None:
            raise self.error
        return [SourceItem.from_dict(i.to_dict()) for i in self.items]


class SnippetEnricher(Enricher):
    def __init__(self, fail_urls=(), batch_size: int = 3):
        super().__init__(batch_size=batch_size)
        self.fail_urls = set(fail_urls)
        self.seen: List[str] = []
        self._lock = threading.Lock()

    def enrich_item(self, item):
        with self._lock:
            self.seen.append(item.url)
        if item.url in self.fail_urls:
            raise RuntimeError("summarizer unavailable")
        enriched = SourceItem.from_dict(item.to_dict())
        enriched.detailed_summary = f"Summary of {item.title}"
        return enriched


class FakeWriter(ScriptGenerator):
    def __init__(self, turns: List[DialogueTurn], error: Optional[Exception] = None):
        self.turns = turns
        self.error = error
        self.calls = 0

    def generate(self, items, roster):
        self.calls += 1
        if self.error is not None:
            raise self.error
        return list(self.turns)


def make_items(n: int) -> List[SourceItem]:
    return [
        SourceItem(
            title=f"Story {i}",
            snippet=f"Snippet for story {i}.",
            url=f"https://news.example.com/story-{i}",
            origin="Example News",
        )
        for i in range(n)
    ]


def make_turns(n: int, words: int = 3, roster=("alex", "jordan"), end: str = ".") -> List[DialogueTurn]:
    text = " ".join(["word"] * words) + end
    return [DialogueTurn(speaker=roster[i % len(roster)], text=text) for i in range(n)]


@pytest.fixture
def clock():
    return FakeClock()

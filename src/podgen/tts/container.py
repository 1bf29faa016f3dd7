"""
RIFF/WAVE Container Codec.

Reads and writes the WAV container around raw PCM samples so that audio
fragments from separate provider calls can be joined into one file.

RIFF Layout:
    offset 0   "RIFF" + uint32 LE riff size
    offset 8   "WAVE"
    offset 12  sub-chunks: 4-byte id + uint32 LE size + body
               (bodies with odd size are followed by one pad byte)

Providers do not agree on what sits between the header and the samples
(``LIST``/``fact`` chunks, extensible ``fmt `` bodies), so nothing is
read from fixed offsets: sub-chunks are located by scanning ids, with
every read bounds-checked and the scan capped at ``max_scan`` entries.
A ``data`` size larger than the bytes present (written by streaming
encoders that never patch the header) is clamped.

Usage:
    codec = ContainerCodec()
    parts = [codec.decode(wav) for wav in fragments]
    joined = codec.concatenate(parts)      # FormatMismatch on disagreement
    wav_bytes = codec.encode(joined)       # canonical 44-byte header
"""
from __future__ import annotations

import struct
from typing import Iterator, Optional, Sequence, Tuple

from podgen.core.errors import FormatMismatch, PayloadNotFound, UnrecognizedContainer
from podgen.core.logging import debug, get_logger
from podgen.core.models import AudioBuffer, AudioFormat

_LOG = get_logger("podgen.container")

RIFF_HEADER_SIZE = 12
SUBCHUNK_HEADER_SIZE = 8
CANONICAL_HEADER_SIZE = 44
DEFAULT_MAX_SCAN = 64

WAVE_FORMAT_PCM = 0x0001
WAVE_FORMAT_EXTENSIBLE = 0xFFFE

WAV_MIME = "audio/wav"


def is_container(data: bytes) -> bool:
    """True if the bytes start with a RIFF/WAVE signature."""
    return len(data) >= RIFF_HEADER_SIZE and data[:4] == b"RIFF" and data[8:12] == b"WAVE"


class ContainerCodec:
    """
    Stateless WAV reader/writer.

    Args:
        max_scan: Maximum number of sub-chunks inspected per file.
    """

    def __init__(self, max_scan: int = DEFAULT_MAX_SCAN):
        self.max_scan = max_scan

    # ─────────────────────────────────────────────────────────────────────────
    # Parsing
    # ─────────────────────────────────────────────────────────────────────────

    def _subchunks(self, data: bytes) -> Iterator[Tuple[bytes, int, int]]:
        """Yield (id, body offset, declared size) for each sub-chunk."""
        if not is_container(data):
            raise UnrecognizedContainer(
                "missing RIFF/WAVE signature",
                details={"head": data[:12].hex()},
            )

        offset = RIFF_HEADER_SIZE
        for _ in range(self.max_scan):
            if offset + SUBCHUNK_HEADER_SIZE > len(data):
                return
            chunk_id = data[offset:offset + 4]
            (size,) = struct.unpack_from("<I", data, offset + 4)
            body = offset + SUBCHUNK_HEADER_SIZE
            yield chunk_id, body, size
            offset = body + size + (size & 1)

    def _find(self, data: bytes, wanted: bytes) -> Optional[Tuple[int, int]]:
        for chunk_id, body, size in self._subchunks(data):
            if chunk_id == wanted:
                return body, size
        return None

    def read_format(self, data: bytes) -> AudioFormat:
        """
        Read the audio format from the ``fmt `` sub-chunk.

        Raises:
            UnrecognizedContainer: No signature, or no usable ``fmt `` chunk.
        """
        found = self._find(data, b"fmt ")
        if found is None:
            raise UnrecognizedContainer("no fmt sub-chunk")
        body, size = found
        if size < 16 or body + 16 > len(data):
            raise UnrecognizedContainer("truncated fmt sub-chunk", details={"size": size})

        tag, channels, sample_rate, _byte_rate, _block_align, bits = struct.unpack_from("<HHIIHH", data, body)
        # extensible: real format tag is the first two bytes of the sub-format GUID
        if tag == WAVE_FORMAT_EXTENSIBLE and size >= 40 and body + 26 <= len(data):
            (tag,) = struct.unpack_from("<H", data, body + 24)

        return AudioFormat(channels=channels, sample_rate=sample_rate, bits_per_sample=bits, encoding=tag)

    def extract_payload(self, data: bytes) -> bytes:
        """
        Raw sample bytes of the ``data`` sub-chunk.

        Raises:
            UnrecognizedContainer: No RIFF/WAVE signature.
            PayloadNotFound: No ``data`` sub-chunk within the scan limit.
        """
        found = self._find(data, b"data")
        if found is None:
            raise PayloadNotFound("no data sub-chunk", details={"max_scan": self.max_scan, "bytes": len(data)})
        body, size = found
        available = len(data) - body
        if size > available:
            debug(_LOG, "data_size_clamped", declared=size, available=available)
            size = available
        return data[body:body + size]

    def decode(self, data: bytes) -> AudioBuffer:
        return AudioBuffer(payload=self.extract_payload(data), format=self.read_format(data), mime_type=WAV_MIME)

    # ─────────────────────────────────────────────────────────────────────────
    # Writing
    # ─────────────────────────────────────────────────────────────────────────

    def encode(self, buffer: AudioBuffer) -> bytes:
        """
        Wrap raw samples in a canonical 44-byte WAV header.

        Opaque buffers are already encoded and are returned unchanged.
        """
        if buffer.format is None:
            return buffer.payload

        fmt = buffer.format
        payload = buffer.payload
        header = struct.pack(
            "<4sI4s4sIHHIIHH4sI",
            b"RIFF",
            36 + len(payload),
            b"WAVE",
            b"fmt ",
            16,
            fmt.encoding,
            fmt.channels,
            fmt.sample_rate,
            fmt.byte_rate,
            fmt.block_align,
            fmt.bits_per_sample,
            b"data",
            len(payload),
        )
        out = header + payload
        if len(payload) & 1:
            out += b"\x00"
        return out

    def concatenate(self, buffers: Sequence[AudioBuffer]) -> AudioBuffer:
        """
        Join buffers in order.

        Every buffer must carry the first buffer's format. The result's
        payload length is the sum of the inputs'.

        Raises:
            FormatMismatch: A buffer is opaque or differs in format.
            ValueError: No buffers given.
        """
        if not buffers:
            raise ValueError("nothing to concatenate")

        reference = buffers[0].format
        for idx, buf in enumerate(buffers):
            if buf.format is None:
                raise FormatMismatch(
                    "cannot concatenate encoded audio",
                    details={"index": idx, "mime_type": buf.mime_type},
                )
            if buf.format != reference:
                raise FormatMismatch(
                    "audio fragments use different formats",
                    details={"index": idx, "expected": reference.to_dict(), "got": buf.format.to_dict()},
                )

        return AudioBuffer(payload=b"".join(b.payload for b in buffers), format=reference, mime_type=WAV_MIME)

    @staticmethod
    def duration_seconds(buffer: AudioBuffer) -> float:
        """Playback length of raw samples; 0.0 for opaque buffers."""
        if buffer.format is None or buffer.format.byte_rate == 0:
            return 0.0
        return len(buffer.payload) / buffer.format.byte_rate

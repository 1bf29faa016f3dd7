"""
Tests for the WAV container codec.

Tests cover:
- Canonical encode / decode
- Sub-chunks between fmt and data (LIST, fact, odd sizes)
- WAVE_FORMAT_EXTENSIBLE format tags
- Oversized data sizes clamped to the bytes present
- Unrecognized containers and missing data chunks
- Concatenation and format mismatches
"""
import struct

import pytest
from conftest import PCM16_MONO, make_wav

from podgen.core.errors import ContainerError, FormatMismatch, PayloadNotFound, UnrecognizedContainer
from podgen.core.models import AudioBuffer, AudioFormat
from podgen.tts.container import ContainerCodec, is_container

codec = ContainerCodec()


class TestDecode:
    def test_canonical_header(self):
        payload = b"\x01\x02" * 100
        buf = codec.decode(make_wav(payload))
        assert buf.payload == payload
        assert buf.format == PCM16_MONO
        assert buf.mime_type == "audio/wav"

    def test_skips_list_and_fact_chunks(self):
        """Chunks between fmt and data are scanned past, including odd-sized ones."""
        payload = b"\x00\x10" * 50
        wav = make_wav(payload, extra_chunks=[(b"LIST", b"INFOabc"), (b"fact", b"\x00\x00\x00\x00")])
        assert codec.extract_payload(wav) == payload

    def test_stereo_format(self):
        buf = codec.decode(make_wav(b"\x00" * 16, channels=2, sample_rate=44100))
        assert buf.format.channels == 2
        assert buf.format.sample_rate == 44100
        assert buf.format.block_align == 4

    def test_extensible_fmt(self):
        """The real format tag comes from the sub-format GUID."""
        fmt = struct.pack("<HHIIHH", 0xFFFE, 1, 16000, 32000, 2, 16)
        fmt += struct.pack("<HHI", 22, 16, 0x4)  # cbSize, valid bits, channel mask
        fmt += struct.pack("<H", 1) + b"\x00\x00\x00\x00\x10\x00\x80\x00\x00\xaa\x00\x38\x9b\x71"
        payload = b"\x00\x00" * 8
        body = b"WAVE" + b"fmt " + struct.pack("<I", len(fmt)) + fmt
        body += b"data" + struct.pack("<I", len(payload)) + payload
        wav = b"RIFF" + struct.pack("<I", len(body)) + body

        fmt_read = codec.read_format(wav)
        assert fmt_read.encoding == 1
        assert fmt_read.sample_rate == 16000

    def test_data_size_clamped(self):
        """Streaming encoders leave 0xFFFFFFFF in the data size."""
        payload = b"\x01\x00" * 10
        wav = bytearray(make_wav(payload))
        struct.pack_into("<I", wav, 40, 0xFFFFFFFF)
        assert codec.extract_payload(bytes(wav)) == payload


class TestDecodeErrors:
    def test_not_riff(self):
        with pytest.raises(UnrecognizedContainer):
            codec.decode(b"ID3\x04" + b"\x00" * 100)
        assert not is_container(b"ID3")

    def test_unrecognized_is_container_error(self):
        with pytest.raises(ContainerError) as exc_info:
            codec.extract_payload(b"not audio at all")
        assert exc_info.value.code == "CONTAINER_INVALID"

    def test_missing_data_chunk(self):
        wav = make_wav(b"")[:-8]  # drop the data sub-chunk header
        with pytest.raises(PayloadNotFound):
            codec.extract_payload(wav)

    def test_scan_limit(self):
        """data beyond max_scan sub-chunks is not found."""
        extras = [(b"junk", b"\x00\x00")] * 5
        wav = make_wav(b"\x00\x00", extra_chunks=extras)
        assert ContainerCodec(max_scan=10).extract_payload(wav) == b"\x00\x00"
        with pytest.raises(PayloadNotFound):
            ContainerCodec(max_scan=3).extract_payload(wav)


class TestEncode:
    def test_canonical_44_byte_header(self):
        buf = AudioBuffer(payload=b"\x00\x01" * 20, format=PCM16_MONO)
        wav = codec.encode(buf)
        assert wav[:4] == b"RIFF"
        assert wav[8:12] == b"WAVE"
        assert len(wav) == 44 + 40
        assert codec.decode(wav) == buf

    def test_odd_payload_padded(self):
        fmt = AudioFormat(channels=1, sample_rate=8000, bits_per_sample=8)
        wav = codec.encode(AudioBuffer(payload=b"\x80" * 3, format=fmt))
        assert len(wav) == 44 + 4
        assert codec.extract_payload(wav) == b"\x80" * 3

    def test_opaque_passthrough(self):
        mp3 = AudioBuffer(payload=b"ID3....", format=None, mime_type="audio/mpeg")
        assert codec.encode(mp3) == b"ID3...."


class TestConcatenate:
    def test_lengths_add_up(self):
        parts = [AudioBuffer(payload=bytes([i]) * (10 * (i + 1)), format=PCM16_MONO) for i in range(3)]
        joined = codec.concatenate(parts)
        assert len(joined.payload) == 10 + 20 + 30
        assert joined.payload.startswith(b"\x00" * 10)
        assert joined.format == PCM16_MONO

    def test_format_mismatch(self):
        other = AudioFormat(channels=1, sample_rate=44100, bits_per_sample=16)
        parts = [AudioBuffer(b"\x00\x00", PCM16_MONO), AudioBuffer(b"\x00\x00", other)]
        with pytest.raises(FormatMismatch) as exc_info:
            codec.concatenate(parts)
        assert exc_info.value.details["index"] == 1

    def test_opaque_cannot_be_joined(self):
        parts = [AudioBuffer(b"\x00\x00", PCM16_MONO), AudioBuffer(b"ID3", None, "audio/mpeg")]
        with pytest.raises(FormatMismatch):
            codec.concatenate(parts)

    def test_empty(self):
        with pytest.raises(ValueError):
            codec.concatenate([])

    def test_duration(self):
        one_second = AudioBuffer(payload=b"\x00" * 48000, format=PCM16_MONO)
        assert codec.duration_seconds(one_second) == pytest.approx(1.0)
        assert codec.duration_seconds(AudioBuffer(b"ID3", None, "audio/mpeg")) == 0.0

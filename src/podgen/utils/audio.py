"""
Audio Helpers.

Float waveform <-> WAV bytes conversion for providers that render audio
locally. All locally rendered audio is mono PCM 16-bit.

Dependencies:
    - numpy: sample arrays
    - soundfile: WAV encoding (libsndfile)
"""
from __future__ import annotations

import io

import numpy as np
import soundfile as sf

from podgen.core.logging import debug, get_logger
from podgen.utils.timeit import timeit

_LOG = get_logger("podgen.audio")


def wav_bytes_from_float32(waveform: np.ndarray, sample_rate: int) -> bytes:
    """
    Encode a float32 waveform in [-1, 1] as a PCM 16-bit WAV file.

    Multi-dimensional input is flattened to mono.
    """
    with timeit("wav_encode") as t:
        wav = np.asarray(waveform, dtype=np.float32)
        if wav.ndim > 1:
            wav = wav.reshape(-1)

        buf = io.BytesIO()
        sf.write(buf, wav, sample_rate, format="WAV", subtype="PCM_16")
        out = buf.getvalue()

    debug(_LOG, "wav_encoded", bytes=len(out), sr=sample_rate, seconds=t.seconds)
    return out


def wav_bytes_to_float32(wav_bytes: bytes) -> tuple[np.ndarray, int]:
    """Decode WAV bytes to a mono float32 array and its sample rate."""
    wav, sr = sf.read(io.BytesIO(wav_bytes), dtype="float32")
    if wav.ndim > 1:
        wav = wav.mean(axis=1)
    return np.asarray(wav, dtype=np.float32), int(sr)

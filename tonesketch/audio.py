from __future__ import annotations

import base64
import binascii
import struct
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import numpy as np
import soundfile as sf  # type: ignore[import]
from numpy.typing import NDArray

from .config import SAMPLE_RATE
from .errors import InvalidConfigError

AudioNumbers = NDArray[np.floating[Any]] | Sequence[float]

PCM_SCALE = 0x7FFF
HEADER_SIZE = 44
CHANNELS = 1
BITS_PER_SAMPLE = 16
BYTES_PER_SAMPLE = BITS_PER_SAMPLE // 8
DATA_URL_PREFIX = "data:audio/wav;base64,"

# RIFF size, fmt chunk (size, format, channels, rate, byte rate, block align, bits), data size
_HEADER = struct.Struct("<4sI4s4sIHHIIHH4sI")


@dataclass(frozen=True, slots=True)
class WavInfo:
    sample_rate: int
    channels: int
    bits_per_sample: int
    data_size: int

    @property
    def num_samples(self) -> int:
        return self.data_size // (self.channels * self.bits_per_sample // 8)

    @property
    def duration(self) -> float:
        return self.num_samples / self.sample_rate


def quantize(samples: AudioNumbers) -> NDArray[np.int16]:
    """Clamp to [-1, 1] and scale to little-endian signed 16-bit PCM."""

    clipped = np.clip(np.asarray(samples, dtype=np.float64).reshape(-1), -1.0, 1.0)
    return (clipped * PCM_SCALE).astype("<i2")


def wav_header(num_samples: int, *, sample_rate: int = SAMPLE_RATE) -> bytes:
    data_size = num_samples * BYTES_PER_SAMPLE * CHANNELS
    return _HEADER.pack(
        b"RIFF",
        36 + data_size,
        b"WAVE",
        b"fmt ",
        16,
        1,
        CHANNELS,
        sample_rate,
        sample_rate * BYTES_PER_SAMPLE * CHANNELS,
        BYTES_PER_SAMPLE * CHANNELS,
        BITS_PER_SAMPLE,
        b"data",
        data_size,
    )


def encode_wav(samples: AudioNumbers, *, sample_rate: int = SAMPLE_RATE) -> bytes:
    """Serialize samples as a canonical 44-byte-header mono PCM WAV."""

    pcm = quantize(samples)
    return wav_header(pcm.size, sample_rate=sample_rate) + pcm.tobytes()


def read_wav_info(wav_bytes: bytes) -> WavInfo:
    """Parse a canonical PCM WAV header."""

    if len(wav_bytes) < HEADER_SIZE:
        raise InvalidConfigError("WAV data is shorter than its header")
    (
        riff,
        riff_size,
        wave,
        fmt,
        fmt_size,
        audio_format,
        channels,
        sample_rate,
        _byte_rate,
        _block_align,
        bits_per_sample,
        data_tag,
        data_size,
    ) = _HEADER.unpack_from(wav_bytes)
    if riff != b"RIFF" or wave != b"WAVE" or fmt != b"fmt " or data_tag != b"data":
        raise InvalidConfigError("not a canonical RIFF/WAVE file")
    if fmt_size != 16 or audio_format != 1:
        raise InvalidConfigError("only uncompressed PCM WAV is supported")
    if riff_size != 36 + data_size or len(wav_bytes) != HEADER_SIZE + data_size:
        raise InvalidConfigError("WAV chunk sizes do not match the payload")
    return WavInfo(
        sample_rate=sample_rate,
        channels=channels,
        bits_per_sample=bits_per_sample,
        data_size=data_size,
    )


def pcm_samples(wav_bytes: bytes) -> NDArray[np.int16]:
    read_wav_info(wav_bytes)
    return np.frombuffer(wav_bytes, dtype="<i2", offset=HEADER_SIZE)


def to_data_url(wav_bytes: bytes) -> str:
    return DATA_URL_PREFIX + base64.b64encode(wav_bytes).decode("ascii")


def decode_data_url(url: str) -> bytes:
    if not url.startswith(DATA_URL_PREFIX):
        raise InvalidConfigError("expected a data:audio/wav;base64 URL")
    try:
        return base64.b64decode(url[len(DATA_URL_PREFIX) :], validate=True)
    except binascii.Error as exc:
        raise InvalidConfigError(f"invalid base64 payload: {exc}") from exc


def write_wav(
    path: str | Path,
    samples: AudioNumbers,
    *,
    sample_rate: int = SAMPLE_RATE,
) -> Path:
    """Write samples to a 16-bit PCM wav file."""

    target = Path(path)
    pcm = quantize(samples)
    sf.write(target, pcm, sample_rate, subtype="PCM_16")
    return target

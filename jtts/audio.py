"""Waveform container and in-memory audio encoding (PCM / WAV)."""

from __future__ import annotations

import io
import logging
import struct
from dataclasses import dataclass
from typing import Iterable

import numpy as np

logger = logging.getLogger(__name__)

WAVE_FORMAT_PCM = 1
WAVE_FORMAT_IEEE_FLOAT = 3


@dataclass(frozen=True)
class WaveformBuffer:
    """Mono float32 samples in [-1, 1] at ``sample_rate``."""
    samples: np.ndarray
    sample_rate: int

    def __len__(self) -> int:
        return int(self.samples.shape[0])

    @property
    def duration_seconds(self) -> float:
        return len(self) / self.sample_rate

    @classmethod
    def empty(cls, sample_rate: int) -> WaveformBuffer:
        return cls(samples=np.zeros(0, dtype=np.float32), sample_rate=sample_rate)

    def to_int16(self) -> np.ndarray:
        return float32_to_int16(self.samples)

    def to_wav(self, sample_format: str = "int16") -> bytes:
        return encode_wav(self.samples, self.sample_rate, sample_format=sample_format)


def float32_to_int16(audio: np.ndarray) -> np.ndarray:
    """Convert float32 [-1, 1] to int16."""
    audio = np.clip(audio, -1.0, 1.0)
    return (audio * 32767).astype(np.int16)


def encode_pcm(audio: np.ndarray) -> bytes:
    """Encode to raw 16-bit little-endian mono PCM."""
    return float32_to_int16(audio).astype("<i2").tobytes()


def encode_wav(audio: np.ndarray, sample_rate: int, sample_format: str = "int16") -> bytes:
    """Encode a mono float32 array to WAV bytes.

    ``sample_format`` is ``"int16"`` (PCM) or ``"float32"`` (IEEE float).
    """
    if sample_format == "int16":
        data = encode_pcm(audio)
        format_tag, bits = WAVE_FORMAT_PCM, 16
    elif sample_format == "float32":
        data = np.asarray(audio, dtype="<f4").tobytes()
        format_tag, bits = WAVE_FORMAT_IEEE_FLOAT, 32
    else:
        raise ValueError(f"Unsupported WAV sample format: {sample_format!r}")

    block_align = bits // 8
    buf = io.BytesIO()
    buf.write(b"RIFF")
    buf.write(struct.pack("<I", 36 + len(data)))
    buf.write(b"WAVE")
    buf.write(b"fmt ")
    buf.write(struct.pack("<I", 16))  # chunk size
    buf.write(struct.pack("<H", format_tag))
    buf.write(struct.pack("<H", 1))   # mono
    buf.write(struct.pack("<I", sample_rate))
    buf.write(struct.pack("<I", sample_rate * block_align))  # byte rate
    buf.write(struct.pack("<H", block_align))
    buf.write(struct.pack("<H", bits))
    buf.write(b"data")
    buf.write(struct.pack("<I", len(data)))
    buf.write(data)
    return buf.getvalue()


def concatenate(waves: Iterable[WaveformBuffer], pause_seconds: float = 0.0) -> WaveformBuffer:
    """Join waveforms with ``pause_seconds`` of silence between them."""
    waves = list(waves)
    if not waves:
        raise ValueError("No waveforms to concatenate")
    sample_rate = waves[0].sample_rate
    if any(w.sample_rate != sample_rate for w in waves):
        raise ValueError("Cannot concatenate waveforms with different sample rates")

    silence = np.zeros(int(round(pause_seconds * sample_rate)), dtype=np.float32)
    parts: list[np.ndarray] = []
    for i, wave in enumerate(waves):
        if i > 0 and silence.size:
            parts.append(silence)
        parts.append(wave.samples.astype(np.float32, copy=False))
    return WaveformBuffer(samples=np.concatenate(parts), sample_rate=sample_rate)

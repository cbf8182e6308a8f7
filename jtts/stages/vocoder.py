"""Vocoder stage: latent frames → waveform."""

from __future__ import annotations

import logging

import numpy as np

from jtts.audio import WaveformBuffer
from jtts.runtime.session import InferenceSession
from jtts.stages.acoustic import AcousticFrames

logger = logging.getLogger(__name__)

LATENTS_INPUT = "latents"


class Vocoder:
    """Turns ``[latent_dim, F]`` frames into mono float32 audio."""

    def __init__(self, session: InferenceSession, sample_rate: int, hop_length: int) -> None:
        self.session = session
        self.sample_rate = sample_rate
        self.hop_length = hop_length

    def expected_samples(self, frames: AcousticFrames) -> int:
        return frames.frame_count * self.hop_length

    def synthesize(self, frames: AcousticFrames) -> WaveformBuffer:
        latents = np.ascontiguousarray(frames.latents[np.newaxis], dtype=np.float32)
        outputs = self.session.run({LATENTS_INPUT: latents})
        audio = np.asarray(next(iter(outputs.values())), dtype=np.float32).reshape(-1)
        logger.debug("Vocoder produced %d samples from %d frames", audio.shape[0], frames.frame_count)
        return WaveformBuffer(samples=audio, sample_rate=self.sample_rate)

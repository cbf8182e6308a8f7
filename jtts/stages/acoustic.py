"""Acoustic model stage: per-phoneme durations and latents, expanded to frames."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass

import numpy as np

from jtts.archive.metadata import ArchiveMetadata
from jtts.errors import InferenceError, ShapeMismatch
from jtts.nlp.frontend import PhonemeSequence
from jtts.runtime.session import InferenceSession
from jtts.stages.encoder import ContextualEmbeddings

logger = logging.getLogger(__name__)

DURATIONS_OUTPUT = "durations"
LATENTS_OUTPUT = "latents"


def check_scale(name: str, value: float) -> None:
    if not (math.isfinite(value) and value > 0):
        raise ValueError(f"{name} must be a positive finite number, got {value}")


@dataclass(frozen=True)
class SynthesisOptions:
    """Per-request sampling knobs."""
    sdp_ratio: float = 0.0
    noise_scale: float = 0.677
    noise_scale_w: float = 0.8
    speaker_id: int | str | None = None  # id or speaker name; None = archive default
    style_strength: float = 1.0
    split_sentences: bool = False
    pause_seconds: float = 0.5

    def __post_init__(self) -> None:
        if not 0.0 <= self.sdp_ratio <= 1.0:
            raise ValueError(f"sdp_ratio must be within [0, 1], got {self.sdp_ratio}")
        if self.noise_scale < 0 or self.noise_scale_w < 0:
            raise ValueError("noise scales must be non-negative")
        if self.pause_seconds < 0:
            raise ValueError(f"pause_seconds must be non-negative, got {self.pause_seconds}")


@dataclass(frozen=True)
class AcousticFrames:
    """Latent frames ``[latent_dim, frame_count]`` and the durations behind them."""
    latents: np.ndarray
    durations: np.ndarray

    @property
    def frame_count(self) -> int:
        return int(self.latents.shape[1])

    @property
    def latent_dim(self) -> int:
        return int(self.latents.shape[0])


def expand_frames(latents: np.ndarray, durations: np.ndarray, rate_scale: float) -> tuple[np.ndarray, np.ndarray]:
    """Scale, floor and clamp ``durations``, then repeat each latent column."""
    if not np.all(np.isfinite(durations)):
        raise InferenceError("Acoustic model produced non-finite durations")
    frames_per_phoneme = np.maximum(np.floor(durations * rate_scale), 1).astype(np.int64)
    return np.repeat(latents, frames_per_phoneme, axis=1), frames_per_phoneme


class AcousticModel:
    """Runs the acoustic graph for one phoneme sequence."""

    def __init__(
        self,
        session: InferenceSession,
        metadata: ArchiveMetadata,
        style_dim: int,
    ) -> None:
        self.session = session
        self.metadata = metadata
        self.style_dim = style_dim
        missing = [
            name for name in (DURATIONS_OUTPUT, LATENTS_OUTPUT) if name not in session.output_names
        ]
        if missing:
            raise ShapeMismatch(f"Acoustic graph does not declare outputs {missing}")

    def _feeds(
        self,
        phonemes: PhonemeSequence,
        embeddings: ContextualEmbeddings,
        style: np.ndarray,
        options: SynthesisOptions,
    ) -> dict[str, np.ndarray]:
        meta = self.metadata
        tones = [0 if p.blank else p.accent + meta.tone_start for p in phonemes.phonemes]
        language = [0 if p.blank else meta.language_id for p in phonemes.phonemes]
        feeds = {
            "x_tst": np.asarray([phonemes.ids], dtype=np.int64),
            "x_tst_lengths": np.asarray([len(phonemes)], dtype=np.int64),
            "tones": np.asarray([tones], dtype=np.int64),
            "language": np.asarray([language], dtype=np.int64),
            "bert": embeddings.values[np.newaxis].astype(np.float32, copy=False),
            "style_vec": style[np.newaxis].astype(np.float32, copy=False),
        }
        if self.session.has_input("sid"):
            speaker = meta.speaker_id(options.speaker_id)
            feeds["sid"] = np.asarray([speaker], dtype=np.int64)
        for name in ("sdp_ratio", "noise_scale", "noise_scale_w"):
            if self.session.has_input(name):
                feeds[name] = np.asarray([getattr(options, name)], dtype=np.float32)
        # Rate is applied to the predicted durations, not inside the graph.
        if self.session.has_input("length_scale"):
            feeds["length_scale"] = np.asarray([1.0], dtype=np.float32)
        return feeds

    def predict(
        self,
        phonemes: PhonemeSequence,
        embeddings: ContextualEmbeddings,
        style: np.ndarray,
        rate_scale: float = 1.0,
        pitch_scale: float = 1.0,
        options: SynthesisOptions | None = None,
    ) -> AcousticFrames:
        check_scale("rate_scale", rate_scale)
        check_scale("pitch_scale", pitch_scale)
        options = options or SynthesisOptions()

        n_phonemes = len(phonemes)
        style = np.asarray(style, dtype=np.float32).reshape(-1)
        if style.shape[0] != self.style_dim:
            raise ShapeMismatch(f"Style vector has width {style.shape[0]}, expected {self.style_dim}")
        expected = (self.metadata.embedding_width, n_phonemes)
        if embeddings.values.shape != expected:
            raise ShapeMismatch(
                f"Embeddings have shape {list(embeddings.values.shape)}, expected {list(expected)}"
            )

        outputs = self.session.run(
            self._feeds(phonemes, embeddings, style, options),
            output_names=[DURATIONS_OUTPUT, LATENTS_OUTPUT],
        )

        durations = np.asarray(outputs[DURATIONS_OUTPUT], dtype=np.float64)
        if durations.size != n_phonemes:
            raise ShapeMismatch(
                f"Acoustic model returned {durations.size} durations for {n_phonemes} phonemes"
            )
        latents = np.asarray(outputs[LATENTS_OUTPUT], dtype=np.float32)
        if latents.ndim == 3 and latents.shape[0] == 1:
            latents = latents[0]
        if latents.shape != (self.metadata.latent_dim, n_phonemes):
            raise ShapeMismatch(
                f"Acoustic latents have shape {list(latents.shape)}, "
                f"expected {[self.metadata.latent_dim, n_phonemes]}"
            )

        frames, frames_per_phoneme = expand_frames(latents, durations.reshape(n_phonemes), rate_scale)
        if pitch_scale != 1.0:
            frames[self.metadata.pitch_channel] *= pitch_scale
        logger.debug("Expanded %d phonemes to %d frames", n_phonemes, frames.shape[1])
        return AcousticFrames(latents=frames, durations=frames_per_phoneme)

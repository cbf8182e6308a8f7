"""Pipeline orchestrator: text in, waveform out.

One :class:`Synthesizer` owns one session per stage and must not be shared
between concurrent requests; use :meth:`Synthesizer.spawn` for more.

Usage:
    archive = jtts.archive.load_path("model.sbv2")
    with Synthesizer(archive) as synth:
        wave = synth.synthesize_text("こんにちは", "Happy(2)+Neutral")
        wav_bytes = wave.to_wav()
"""

from __future__ import annotations

import logging
import threading
import time
from concurrent.futures import Future, ThreadPoolExecutor
from contextlib import contextmanager
from pathlib import Path
from typing import Callable, Iterator

import numpy as np

from jtts.archive.loader import REQUIRED_GRAPHS, ModelArchive, load_path
from jtts.audio import WaveformBuffer, concatenate
from jtts.errors import LengthMismatch, MissingEntry, SynthesisCancelled, TtsError
from jtts.nlp.frontend import Annotator, LinguisticFrontend
from jtts.runtime.session import BackendConfig, InferenceSession, create_session
from jtts.stages.acoustic import AcousticModel, SynthesisOptions, check_scale
from jtts.stages.encoder import ContextualEncoder, HFTokenizer, SubwordTokenizer
from jtts.stages.vocoder import Vocoder
from jtts.style.mixer import StyleMixer
from jtts.style.selection import StyleSelectionLike, coerce_selection

logger = logging.getLogger(__name__)

SessionFactory = Callable[[bytes, BackendConfig, str], InferenceSession]

__all__ = ["SessionFactory", "SynthesisOptions", "Synthesizer"]


@contextmanager
def _stage(name: str) -> Iterator[None]:
    """Re-raise any failure inside the block as ``TtsError(name, cause)``."""
    try:
        yield
    except TtsError:
        raise
    except Exception as e:
        raise TtsError(name, e) from e


def _check_cancelled(cancel: threading.Event | None, stage: str) -> None:
    if cancel is not None and cancel.is_set():
        raise SynthesisCancelled(stage)


class Synthesizer:
    """Runs frontend → encoder → acoustic → vocoder for one archive."""

    def __init__(
        self,
        archive: ModelArchive,
        *,
        annotator: Annotator | None = None,
        tokenizer: SubwordTokenizer | None = None,
        backend_config: BackendConfig | None = None,
        session_factory: SessionFactory = create_session,
    ) -> None:
        self.archive = archive
        self.backend_config = backend_config or BackendConfig()
        self._session_factory = session_factory
        meta = archive.metadata

        if tokenizer is None:
            if archive.tokenizer_json is None:
                raise MissingEntry("tokenizer")
            tokenizer = HFTokenizer.from_json(archive.tokenizer_json)
        self.tokenizer = tokenizer

        self.frontend = LinguisticFrontend(annotator, meta.symbol_table())
        self.mixer = StyleMixer.from_archive(archive)

        start = time.time()
        sessions = {
            name: session_factory(archive.graphs[name], self.backend_config, name)
            for name in REQUIRED_GRAPHS
        }
        self.encoder = ContextualEncoder(sessions["bert"], tokenizer, meta)
        self.acoustic = AcousticModel(sessions["acoustic"], meta, archive.style_dim)
        self.vocoder = Vocoder(sessions["vocoder"], meta.sample_rate, meta.hop_length)
        logger.info(
            "Synthesizer ready for %r (%d sessions) in %.2fs",
            archive.name or "<unnamed>", len(sessions), time.time() - start,
        )

        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="jtts-style")

    @classmethod
    def from_path(cls, path: str | Path, **kwargs) -> Synthesizer:
        return cls(load_path(path), **kwargs)

    @property
    def sample_rate(self) -> int:
        return self.archive.metadata.sample_rate

    def spawn(self) -> Synthesizer:
        """A new synthesizer over the same archive with its own sessions."""
        return Synthesizer(
            self.archive,
            annotator=self.frontend.annotator,
            tokenizer=self.tokenizer,
            backend_config=self.backend_config,
            session_factory=self._session_factory,
        )

    def close(self) -> None:
        self._executor.shutdown(wait=True)

    def __enter__(self) -> Synthesizer:
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    def synthesize_text(
        self,
        text: str,
        style_selection: StyleSelectionLike,
        rate_scale: float = 1.0,
        pitch_scale: float = 1.0,
        *,
        options: SynthesisOptions | None = None,
        cancel: threading.Event | None = None,
    ) -> WaveformBuffer:
        """Synthesize ``text`` in the requested style.

        ``rate_scale`` multiplies phoneme durations (2.0 is twice as long),
        ``pitch_scale`` multiplies the pitch channel of the latent frames.

        Raises:
            TtsError: a stage failed; ``stage`` names it and ``cause`` keeps
                the original error. ``SynthesisCancelled`` when ``cancel``
                was set before a stage started.
        """
        check_scale("rate_scale", rate_scale)
        check_scale("pitch_scale", pitch_scale)
        options = options or SynthesisOptions()

        start = time.time()
        with _stage("style"):
            selection = coerce_selection(style_selection)
        style_future = self._executor.submit(self.mixer.resolve, selection, options.style_strength)
        try:
            if options.split_sentences:
                lines = [line for line in text.split("\n") if line.strip()]
                waves = [
                    self._synthesize_one(line, style_future, rate_scale, pitch_scale, options, cancel)
                    for line in lines
                ]
                waves = [w for w in waves if len(w)]
                if waves:
                    wave = concatenate(waves, options.pause_seconds)
                else:
                    wave = WaveformBuffer.empty(self.sample_rate)
            else:
                wave = self._synthesize_one(text, style_future, rate_scale, pitch_scale, options, cancel)
        finally:
            style_future.cancel()

        logger.info(
            "Synthesized %.2fs of audio for %d characters in %.2fs",
            wave.duration_seconds, len(text), time.time() - start,
        )
        return wave

    def _synthesize_one(
        self,
        text: str,
        style_future: Future,
        rate_scale: float,
        pitch_scale: float,
        options: SynthesisOptions,
        cancel: threading.Event | None,
    ) -> WaveformBuffer:
        meta = self.archive.metadata

        _check_cancelled(cancel, "frontend")
        with _stage("frontend"):
            phonemes = self.frontend.analyze(text)
        if phonemes.is_empty:
            return WaveformBuffer.empty(self.sample_rate)
        if meta.add_blank:
            phonemes = phonemes.interspersed(meta.pad_id)

        _check_cancelled(cancel, "encoder")
        with _stage("encoder"):
            embeddings = self.encoder.encode(phonemes.text, phonemes)

        _check_cancelled(cancel, "style")
        with _stage("style"):
            style: np.ndarray = style_future.result()

        _check_cancelled(cancel, "acoustic")
        with _stage("acoustic"):
            frames = self.acoustic.predict(
                phonemes, embeddings, style, rate_scale, pitch_scale, options
            )

        _check_cancelled(cancel, "vocoder")
        with _stage("vocoder"):
            wave = self.vocoder.synthesize(frames)
            expected = self.vocoder.expected_samples(frames)
            if len(wave) != expected:
                raise LengthMismatch(expected, len(wave))
        return wave

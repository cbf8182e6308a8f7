"""Model holder: routes synthesis requests to registered archives by identifier."""

from __future__ import annotations

import logging
import threading
import time
from collections import OrderedDict
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

from jtts.archive.loader import ArchiveSource, ModelArchive, load
from jtts.audio import WaveformBuffer
from jtts.errors import ModelNotFoundError
from jtts.nlp.frontend import Annotator
from jtts.runtime.session import BackendConfig, create_session
from jtts.stages.acoustic import SynthesisOptions
from jtts.stages.encoder import SubwordTokenizer
from jtts.style.selection import StyleSelectionLike
from jtts.synthesizer import SessionFactory, Synthesizer

if TYPE_CHECKING:
    from jtts.config import Settings

logger = logging.getLogger(__name__)


@dataclass
class LoadedModelInfo:
    """Info about a model whose sessions are live."""
    model: str
    backend: str
    device: str
    loaded_at: float
    last_used_at: float | None = None


@dataclass
class _Entry:
    archive: ModelArchive
    tokenizer: SubwordTokenizer | None
    registered_at: float


class ModelHolder:
    """Registry of archives with a cap on how many keep live sessions.

    Archives stay registered until :meth:`unload`; when ``max_loaded_models``
    is reached the least recently used model loses its sessions, which are
    rebuilt on its next request.
    """

    def __init__(
        self,
        max_loaded_models: int = 0,
        *,
        backend_config: BackendConfig | None = None,
        annotator: Annotator | None = None,
        session_factory: SessionFactory = create_session,
        default_style: str | int = "Neutral",
    ) -> None:
        if max_loaded_models < 0:
            raise ValueError("max_loaded_models must be >= 0 (0 = unlimited)")
        self.max_loaded_models = max_loaded_models
        self.backend_config = backend_config or BackendConfig()
        self.default_style = default_style
        self._annotator = annotator
        self._session_factory = session_factory
        self._entries: dict[str, _Entry] = {}
        # ident → synthesizer, least recently used first
        self._live: OrderedDict[str, Synthesizer] = OrderedDict()
        self._loaded_at: dict[str, float] = {}
        self._last_used: dict[str, float] = {}
        self._lock = threading.RLock()

    @classmethod
    def from_settings(
        cls, settings: Settings, *, tokenizer: SubwordTokenizer | None = None, **kwargs
    ) -> ModelHolder:
        """Build a holder from settings, registering ``archive_path`` under its file stem."""
        holder = cls(
            settings.max_loaded_models,
            backend_config=settings.backend_config(),
            default_style=settings.default_style,
            **kwargs,
        )
        if settings.archive_path:
            path = Path(settings.archive_path)
            holder.load(path.stem, path, tokenizer=tokenizer)
        return holder

    def _is_full(self) -> bool:
        return self.max_loaded_models > 0 and len(self._live) >= self.max_loaded_models

    def load(
        self,
        ident: str,
        source: ArchiveSource | ModelArchive,
        tokenizer: SubwordTokenizer | None = None,
    ) -> None:
        """Register an archive under ``ident``; a second load is a no-op."""
        with self._lock:
            if ident in self._entries:
                logger.debug("Model %s already registered", ident)
                return
            archive = source if isinstance(source, ModelArchive) else load(source)
            self._entries[ident] = _Entry(archive=archive, tokenizer=tokenizer, registered_at=time.time())
            logger.info("Registered model %s", ident)
            if not self._is_full():
                self._start_sessions(ident)

    def unload(self, ident: str) -> bool:
        with self._lock:
            entry = self._entries.pop(ident, None)
            if entry is None:
                return False
            self._stop_sessions(ident)
            logger.info("Unloaded model %s", ident)
            return True

    def model_idents(self) -> list[str]:
        with self._lock:
            return list(self._entries)

    def is_model_loaded(self, ident: str) -> bool:
        with self._lock:
            return ident in self._live

    def loaded_models(self) -> list[LoadedModelInfo]:
        with self._lock:
            device = ", ".join(self.backend_config.providers)
            return [
                LoadedModelInfo(
                    model=ident,
                    backend="onnxruntime",
                    device=device,
                    loaded_at=self._loaded_at[ident],
                    last_used_at=self._last_used.get(ident),
                )
                for ident in self._live
            ]

    def _start_sessions(self, ident: str) -> Synthesizer:
        entry = self._entries[ident]
        synth = Synthesizer(
            entry.archive,
            annotator=self._annotator,
            tokenizer=entry.tokenizer,
            backend_config=self.backend_config,
            session_factory=self._session_factory,
        )
        self._live[ident] = synth
        self._loaded_at[ident] = time.time()
        return synth

    def _stop_sessions(self, ident: str) -> None:
        synth = self._live.pop(ident, None)
        if synth is None:
            return
        synth.close()
        self._loaded_at.pop(ident, None)
        self._last_used.pop(ident, None)
        logger.info("Released sessions for model %s", ident)

    def _get_synthesizer(self, ident: str) -> Synthesizer:
        if ident not in self._entries:
            raise ModelNotFoundError(ident)
        synth = self._live.get(ident)
        if synth is None:
            while self._is_full():
                evicted = next(iter(self._live))
                logger.info("Session cap %d reached, evicting %s", self.max_loaded_models, evicted)
                self._stop_sessions(evicted)
            synth = self._start_sessions(ident)
        self._live.move_to_end(ident)
        self._last_used[ident] = time.time()
        return synth

    def _resolve_default_style(self, ident: str) -> str | int:
        styles = self._entries[ident].archive.metadata.styles
        if isinstance(self.default_style, int) or self.default_style in styles:
            return self.default_style
        return 0

    def synthesize(
        self,
        ident: str,
        text: str,
        style: StyleSelectionLike | None = None,
        rate_scale: float = 1.0,
        pitch_scale: float = 1.0,
        *,
        options: SynthesisOptions | None = None,
        cancel: threading.Event | None = None,
    ) -> WaveformBuffer:
        """Synthesize with the model registered as ``ident``."""
        with self._lock:
            synth = self._get_synthesizer(ident)
            if style is None:
                style = self._resolve_default_style(ident)
            return synth.synthesize_text(
                text, style, rate_scale, pitch_scale, options=options, cancel=cancel
            )

    def close(self) -> None:
        with self._lock:
            for ident in list(self._live):
                self._stop_sessions(ident)

    def __enter__(self) -> ModelHolder:
        return self

    def __exit__(self, *exc) -> None:
        self.close()

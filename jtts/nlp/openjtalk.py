"""OpenJTalk morphological analyzer wrapper (via pyopenjtalk).

pyopenjtalk is imported lazily on first use so that importing :mod:`jtts`
does not pull in the dictionary. A missing library or an unusable dictionary
surfaces as :class:`~jtts.errors.DictionaryUnavailable`.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field

from jtts.errors import DictionaryUnavailable
from jtts.nlp.prosody import prosody_from_labels

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Word:
    """A surface string and its katakana reading."""
    surface: str
    reading: str


@dataclass(frozen=True)
class Annotation:
    """Analyzer output for one utterance."""
    words: list[Word] = field(default_factory=list)
    prosody: list[str] = field(default_factory=list)


class OpenJTalkAnnotator:
    """Runs the OpenJTalk front-end and label generator on normalized text."""

    def __init__(self) -> None:
        self._module = None
        self._lock = threading.Lock()

    def _pyopenjtalk(self):
        if self._module is not None:
            return self._module
        with self._lock:
            if self._module is None:
                try:
                    import pyopenjtalk
                except ImportError as e:
                    raise DictionaryUnavailable(
                        "pyopenjtalk is not installed. Install with: pip install pyopenjtalk"
                    ) from e
                self._module = pyopenjtalk
                logger.debug("pyopenjtalk loaded")
        return self._module

    def _run_frontend(self, text: str) -> list[dict]:
        module = self._pyopenjtalk()
        try:
            return module.run_frontend(text)
        except (RuntimeError, OSError) as e:
            raise DictionaryUnavailable(f"OpenJTalk analysis failed: {e}") from e

    def expand_numbers(self, text: str) -> str:
        """Return ``text`` with digits replaced by their written reading."""
        if not any(ch.isdigit() for ch in text):
            return text
        return "".join(node["string"] for node in self._run_frontend(text))

    def annotate(self, text: str) -> Annotation:
        if not text:
            return Annotation()
        features = self._run_frontend(text)
        module = self._pyopenjtalk()
        try:
            labels = module.make_label(features)
        except (RuntimeError, OSError) as e:
            raise DictionaryUnavailable(f"OpenJTalk label generation failed: {e}") from e

        words = [
            Word(surface=node["string"], reading=node["pron"].replace("’", ""))
            for node in features
        ]
        return Annotation(words=words, prosody=prosody_from_labels(labels))

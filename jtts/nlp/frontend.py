"""Linguistic front-end: raw text → phoneme sequence with accents and alignment."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from typing import Protocol

from jtts.nlp.normalizer import normalize_text, replace_punctuation
from jtts.nlp.openjtalk import Annotation, OpenJTalkAnnotator
from jtts.nlp.prosody import (
    align_tones,
    distribute_phone,
    handle_long,
    kata_to_phonemes,
    phone_tones_from_prosody,
)
from jtts.nlp.symbols import PAD, PUNCTUATIONS, SymbolTable

logger = logging.getLogger(__name__)


class Annotator(Protocol):
    """Morphological analyzer collaborator."""

    def expand_numbers(self, text: str) -> str: ...
    def annotate(self, text: str) -> Annotation: ...


@dataclass(frozen=True)
class Phoneme:
    """One phoneme with its pitch accent (0 low, 1 high)."""
    symbol: str
    accent: int = 0
    word_boundary: bool = False
    blank: bool = False


@dataclass(frozen=True)
class PhonemeSequence:
    """Phonemes, their ids and the per-character ``word2ph`` alignment.

    ``word2ph`` has one entry per character of ``text`` plus a leading and a
    trailing entry for the encoder's special tokens; it always sums to the
    number of phonemes.
    """
    phonemes: tuple[Phoneme, ...] = ()
    ids: tuple[int, ...] = ()
    word2ph: tuple[int, ...] = ()
    text: str = ""
    substitution_count: int = 0
    blanks_interspersed: bool = field(default=False)

    @classmethod
    def empty(cls, text: str = "") -> PhonemeSequence:
        return cls(text=text)

    def __len__(self) -> int:
        return len(self.phonemes)

    @property
    def is_empty(self) -> bool:
        return not self.phonemes

    @property
    def symbols(self) -> list[str]:
        return [p.symbol for p in self.phonemes]

    @property
    def tones(self) -> list[int]:
        return [p.accent for p in self.phonemes]

    def interspersed(self, blank_id: int = 0) -> PhonemeSequence:
        """Return a copy with a blank token around every phoneme.

        ``word2ph`` is doubled and its first entry gets the extra leading blank.
        """
        if self.blanks_interspersed:
            raise ValueError("Blank tokens are already interspersed")
        if self.is_empty:
            return replace(self, blanks_interspersed=True)

        blank = Phoneme(symbol=PAD, blank=True)
        phonemes: list[Phoneme] = [blank]
        ids: list[int] = [blank_id]
        for phoneme, idx in zip(self.phonemes, self.ids):
            phonemes.extend((phoneme, blank))
            ids.extend((idx, blank_id))

        word2ph = [n * 2 for n in self.word2ph]
        word2ph[0] += 1
        return replace(
            self,
            phonemes=tuple(phonemes),
            ids=tuple(ids),
            word2ph=tuple(word2ph),
            blanks_interspersed=True,
        )


class LinguisticFrontend:
    """Turns raw Japanese text into a :class:`PhonemeSequence`.

    Unknown words and phonemes never fail a request: they are replaced by the
    symbol table's unknown symbol and counted in ``substitution_count``.
    """

    def __init__(
        self,
        annotator: Annotator | None = None,
        symbols: SymbolTable | None = None,
    ) -> None:
        self.annotator = annotator if annotator is not None else OpenJTalkAnnotator()
        self.symbols = symbols if symbols is not None else SymbolTable()

    def analyze(self, text: str) -> PhonemeSequence:
        normalized = normalize_text(self.annotator.expand_numbers(text))
        if not normalized:
            return PhonemeSequence.empty()

        annotation = self.annotator.annotate(normalized)
        phone_tones = phone_tones_from_prosody(annotation.prosody)

        substitutions = 0
        surfaces: list[str] = []
        sep_phonemes: list[list[str]] = []
        for word in annotation.words:
            surface = replace_punctuation(word.surface)
            if not surface:
                continue
            phonemes, missed = self._word_phonemes(surface, word.reading)
            surfaces.append(surface)
            sep_phonemes.append(phonemes)
            substitutions += missed

        if not surfaces:
            return PhonemeSequence.empty()

        sep_phonemes = handle_long(sep_phonemes)
        # A long-vowel mark with no vowel before it cannot be resolved.
        for phonemes in sep_phonemes:
            for i, phoneme in enumerate(phonemes):
                if phoneme == "ー":
                    phonemes[i] = self.symbols.unk
                    substitutions += 1

        flat = [p for phonemes in sep_phonemes for p in phonemes]
        aligned = align_tones(flat, phone_tones, unk=self.symbols.unk)

        word2ph: list[int] = []
        starts: set[int] = set()
        position = 0
        for surface, phonemes in zip(surfaces, sep_phonemes):
            word2ph.extend(distribute_phone(len(phonemes), len(surface)))
            starts.add(position)
            position += len(phonemes)

        symbols = [PAD] + [phone for phone, _ in aligned] + [PAD]
        tones = [0] + [tone for _, tone in aligned] + [0]
        boundaries = [True] + [i in starts for i in range(len(aligned))] + [True]

        ids, misses = self.symbols.encode(symbols)
        if misses:
            symbols = [s if s in self.symbols else self.symbols.unk for s in symbols]
            substitutions += misses

        if substitutions:
            logger.warning(
                "Replaced %d unknown word/phoneme(s) with %s in %r",
                substitutions, self.symbols.unk, normalized,
            )

        entries = tuple(
            Phoneme(symbol=s, accent=t, word_boundary=b)
            for s, t, b in zip(symbols, tones, boundaries)
        )
        sequence = PhonemeSequence(
            phonemes=entries,
            ids=tuple(ids),
            word2ph=tuple([1] + word2ph + [1]),
            text="".join(surfaces),
            substitution_count=substitutions,
        )
        logger.debug("Analyzed %r into %d phonemes", sequence.text, len(sequence))
        return sequence

    def _word_phonemes(self, surface: str, reading: str) -> tuple[list[str], int]:
        """Phonemes for one analyzed word, and how many were substituted."""
        unknown = [self.symbols.unk] * len(surface)
        if reading == "、":
            if not set(surface) <= set(PUNCTUATIONS):
                return unknown, len(unknown)
            reading = surface
        elif reading == "？":
            reading = "?"
        elif not reading:
            return unknown, len(unknown)

        phonemes = kata_to_phonemes(reading)
        if phonemes is None:
            return unknown, len(unknown)
        return phonemes, 0

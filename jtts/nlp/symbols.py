"""Phoneme inventory shared by the front-end and the archive metadata."""

from __future__ import annotations

from typing import Iterable, Sequence

PAD = "_"
UNK = "UNK"

PUNCTUATIONS = ["!", "?", "…", ",", ".", "'", "-"]
PUNCTUATION_SYMBOLS = PUNCTUATIONS + ["SP", UNK]

ZH_SYMBOLS = [
    "E", "En", "a", "ai", "an", "ang", "ao", "b", "c", "ch", "d", "e", "ei", "en", "eng",
    "er", "f", "g", "h", "i", "i0", "ia", "ian", "iang", "iao", "ie", "in", "ing", "iong",
    "ir", "iu", "j", "k", "l", "m", "n", "o", "ong", "ou", "p", "q", "r", "s", "sh", "t",
    "u", "ua", "uai", "uan", "uang", "ui", "un", "uo", "v", "van", "ve", "vn", "w", "x",
    "y", "z", "zh", "AA", "EE", "OO",
]

JP_SYMBOLS = [
    "N", "a", "a:", "b", "by", "ch", "d", "dy", "e", "e:", "f", "g", "gy", "h", "hy",
    "i", "i:", "j", "k", "ky", "m", "my", "n", "ny", "o", "o:", "p", "py", "q", "r",
    "ry", "s", "sh", "t", "ts", "ty", "u", "u:", "w", "y", "z", "zy",
]

EN_SYMBOLS = [
    "aa", "ae", "ah", "ao", "aw", "ay", "b", "ch", "d", "dh", "eh", "er", "ey", "f", "g",
    "hh", "ih", "iy", "jh", "k", "l", "m", "n", "ng", "ow", "oy", "p", "r", "s", "sh",
    "t", "th", "uh", "uw", "V", "w", "y", "z", "zh",
]

NORMAL_SYMBOLS = sorted(set(ZH_SYMBOLS + JP_SYMBOLS + EN_SYMBOLS))

# Index 0 is the padding/blank symbol.
DEFAULT_SYMBOLS: list[str] = [PAD] + NORMAL_SYMBOLS + PUNCTUATION_SYMBOLS

NUM_ZH_TONES = 6
NUM_JP_TONES = 2
JP_TONE_START = NUM_ZH_TONES
JP_LANGUAGE_ID = 1

VOWELS = ("a", "i", "u", "e", "o", "N")


class SymbolTable:
    """Maps phoneme symbols to model input ids."""

    def __init__(self, symbols: Sequence[str] | None = None, unk: str = UNK) -> None:
        self.symbols: tuple[str, ...] = tuple(symbols if symbols is not None else DEFAULT_SYMBOLS)
        self._ids = {s: i for i, s in enumerate(self.symbols)}
        if unk not in self._ids:
            raise ValueError(f"Unknown-phoneme symbol {unk!r} is not in the symbol table")
        self.unk = unk
        self.unk_id = self._ids[unk]

    def __len__(self) -> int:
        return len(self.symbols)

    def __contains__(self, symbol: object) -> bool:
        return symbol in self._ids

    def id_of(self, symbol: str) -> int:
        return self._ids.get(symbol, self.unk_id)

    def encode(self, symbols: Iterable[str]) -> tuple[list[int], int]:
        """Return ids for ``symbols`` and how many fell back to the unknown id."""
        ids: list[int] = []
        misses = 0
        for symbol in symbols:
            idx = self._ids.get(symbol)
            if idx is None:
                idx = self.unk_id
                misses += 1
            ids.append(idx)
        return ids, misses

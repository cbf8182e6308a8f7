"""Text normalization ahead of morphological analysis."""

from __future__ import annotations

import re
import unicodedata

from jtts.nlp.symbols import PUNCTUATIONS

_REPLACE_MAP: dict[str, str] = {
    "：": ",",
    "；": ",",
    "，": ",",
    "。": ".",
    "！": "!",
    "？": "?",
    "\n": ".",
    "．": ".",
    "…": "...",
    "···": "...",
    "・・・": "...",
    "·": ",",
    "・": ",",
    "、": ",",
    "$": ".",
    "“": "'",
    "”": "'",
    '"': "'",
    "‘": "'",
    "’": "'",
    "（": "'",
    "）": "'",
    "(": "'",
    ")": "'",
    "《": "'",
    "》": "'",
    "【": "'",
    "】": "'",
    "[": "'",
    "]": "'",
    "—": "-",
    "−": "-",
    "～": "-",
    "~": "-",
    "「": "'",
    "」": "'",
}

_REPLACE_PATTERN = re.compile("|".join(re.escape(p) for p in _REPLACE_MAP))

# Hiragana, katakana, CJK (incl. ext. A and 々), latin and greek letters, punctuation.
_DISALLOWED_PATTERN = re.compile(
    r"[^\u3040-\u309F\u30A0-\u30FF\u4E00-\u9FFF\u3400-\u4DBF\u3005"
    r"A-Za-z\uFF21-\uFF3A\uFF41-\uFF5A"
    r"\u0391-\u03A9\u03B1-\u03C9"
    + re.escape("".join(PUNCTUATIONS))
    + r"]+"
)


def replace_punctuation(text: str) -> str:
    """Map punctuation onto the model inventory and drop unsupported characters."""
    replaced = _REPLACE_PATTERN.sub(lambda m: _REPLACE_MAP[m.group()], text)
    return _DISALLOWED_PATTERN.sub("", replaced)


def normalize_text(text: str) -> str:
    res = unicodedata.normalize("NFKC", text)
    res = res.replace("~", "ー").replace("～", "ー").replace("〜", "ー")
    res = replace_punctuation(res)
    # Stray combining (han)dakuten left over after NFKC.
    for mark in ("\u3099", "\u309A", "\u309B", "\u309C"):
        res = res.replace(mark, "")
    return res

"""Pure helpers turning analyzer output into phonemes, tones and alignments.

Prosody symbols follow the usual OpenJTalk full-context convention:
``^`` utterance start, ``$`` / ``?`` end (declarative / interrogative),
``_`` pause, ``#`` accent phrase boundary, ``[`` pitch rise, ``]`` pitch fall.
"""

from __future__ import annotations

import re
from typing import Sequence

from jtts.errors import ProsodyMismatch
from jtts.nlp.mora import MORA_KATA_TO_MORA_PHONEMES, MORA_PATTERN
from jtts.nlp.symbols import PUNCTUATIONS, UNK, VOWELS

_KATAKANA_RE = re.compile(r"[\u30A0-\u30FF]+")
_LONG_RE = re.compile(r"(\w)(ー*)")

_PHONEME_RE = re.compile(r"\-(.*?)\+")
_A1_RE = re.compile(r"/A:([0-9\-]+)\+")
_A2_RE = re.compile(r"\+(\d+)\+")
_A3_RE = re.compile(r"\+(\d+)/")
_E3_RE = re.compile(r"!(\d+)_")
_F1_RE = re.compile(r"/F:(\d+)_")


def _numeric_feature(regex: re.Pattern[str], label: str) -> int:
    match = regex.search(label)
    if match is None:
        return -50
    return int(match.group(1))


def prosody_from_labels(labels: Sequence[str]) -> list[str]:
    """Extract the phoneme + prosody-mark stream from full-context labels."""
    phones: list[str] = []
    n_labels = len(labels)
    for n, label in enumerate(labels):
        match = _PHONEME_RE.search(label)
        if match is None:
            raise ProsodyMismatch(f"Malformed full-context label: {label!r}")
        p3 = match.group(1)
        if p3 in "AEIOU":
            p3 = p3.lower()

        if p3 == "sil":
            if n == 0:
                phones.append("^")
            elif n == n_labels - 1:
                e3 = _numeric_feature(_E3_RE, label)
                phones.append("?" if e3 == 1 else "$")
            continue
        if p3 == "pau":
            phones.append("_")
            continue
        phones.append(p3)

        a1 = _numeric_feature(_A1_RE, label)
        a2 = _numeric_feature(_A2_RE, label)
        a3 = _numeric_feature(_A3_RE, label)
        f1 = _numeric_feature(_F1_RE, label)
        a2_next = _numeric_feature(_A2_RE, labels[n + 1]) if n + 1 < n_labels else -50

        if a3 == 1 and a2_next == 1 and p3 in "aeiouAEIOUNcl":
            phones.append("#")
        elif a1 == 0 and a2_next == a2 + 1 and a2 != f1:
            phones.append("]")
        elif a2 == 1 and a2_next == 2:
            phones.append("[")
    return phones


def _fix_phone_tone(phrase: list[tuple[str, int]]) -> list[tuple[str, int]]:
    """Normalise a phrase's relative pitch levels to {0, 1}."""
    tone_values = {tone for _, tone in phrase}
    if len(tone_values) <= 1:
        if tone_values and tone_values != {0}:
            raise ProsodyMismatch(f"Unexpected tone values: {sorted(tone_values)}")
        return phrase
    if len(tone_values) == 2:
        if tone_values == {0, 1}:
            return phrase
        if tone_values == {-1, 0}:
            return [(phone, 0 if tone == -1 else 1) for phone, tone in phrase]
    raise ProsodyMismatch(f"Unexpected tone values: {sorted(tone_values)}")


def phone_tones_from_prosody(prosody: Sequence[str]) -> list[tuple[str, int]]:
    """Rebuild (phoneme, tone) pairs, without punctuation, from a prosody stream."""
    result: list[tuple[str, int]] = []
    current_phrase: list[tuple[str, int]] = []
    current_tone = 0
    for letter in prosody:
        if letter == "^":
            continue
        if letter in ("$", "?", "_", "#"):
            result.extend(_fix_phone_tone(current_phrase))
            current_phrase = []
            current_tone = 0
        elif letter == "[":
            current_tone += 1
        elif letter == "]":
            current_tone -= 1
        else:
            current_phrase.append(("q" if letter == "cl" else letter, current_tone))
    # Streams without a closing mark still carry their last phrase.
    result.extend(_fix_phone_tone(current_phrase))
    return result


def kata_to_phonemes(text: str) -> list[str] | None:
    """Convert a katakana reading to phonemes.

    Returns ``None`` when ``text`` is not katakana so the caller can substitute
    the unknown phoneme.
    """
    if set(text) <= set(PUNCTUATIONS):
        return list(text)
    if _KATAKANA_RE.fullmatch(text) is None:
        return None

    def _mora(match: re.Match[str]) -> str:
        consonant, vowel = MORA_KATA_TO_MORA_PHONEMES[match.group()]
        if consonant is None:
            return f" {vowel}"
        return f" {consonant} {vowel}"

    spaced = MORA_PATTERN.sub(_mora, text)
    spaced = _LONG_RE.sub(lambda m: m.group(1) + (" " + m.group(1)) * len(m.group(2)), spaced)
    return spaced.strip().split(" ")


def handle_long(sep_phonemes: list[list[str]]) -> list[list[str]]:
    """Replace the long-vowel mark with the vowel it extends."""
    for i, phonemes in enumerate(sep_phonemes):
        if not phonemes:
            continue
        if phonemes[0] == "ー" and i > 0 and sep_phonemes[i - 1]:
            prev = sep_phonemes[i - 1][-1]
            if prev in VOWELS:
                phonemes[0] = prev
        for j in range(1, len(phonemes)):
            if phonemes[j] == "ー":
                phonemes[j] = phonemes[j - 1][-1]
    return sep_phonemes


def align_tones(
    phones_with_punct: Sequence[str],
    phone_tones: Sequence[tuple[str, int]],
    unk: str = UNK,
) -> list[tuple[str, int]]:
    """Attach tones to the punctuated phoneme list; punctuation gets tone 0."""
    result: list[tuple[str, int]] = []
    tone_index = 0
    for phone in phones_with_punct:
        if tone_index >= len(phone_tones):
            result.append((phone, 0))
        elif phone == phone_tones[tone_index][0]:
            result.append((phone, phone_tones[tone_index][1]))
            tone_index += 1
        elif phone in PUNCTUATIONS or phone == unk:
            result.append((phone, 0))
        else:
            raise ProsodyMismatch(
                f"Mismatched phoneme {phone!r}; expected {phone_tones[tone_index][0]!r}"
            )
    return result


def distribute_phone(n_phone: int, n_word: int) -> list[int]:
    """Spread ``n_phone`` phonemes over ``n_word`` characters as evenly as possible."""
    phones_per_word = [0] * n_word
    if n_word == 0:
        return phones_per_word
    for _ in range(n_phone):
        min_index = phones_per_word.index(min(phones_per_word))
        phones_per_word[min_index] += 1
    return phones_per_word

"""Tests for the g2p / prosody helpers."""

from __future__ import annotations

import pytest

from jtts.errors import ProsodyMismatch
from jtts.nlp.prosody import (
    align_tones,
    distribute_phone,
    handle_long,
    kata_to_phonemes,
    phone_tones_from_prosody,
    prosody_from_labels,
)


def label(phoneme, a1="xx", a2="xx", a3="xx", e3="xx", f1="xx"):
    """A full-context label with only the fields the prosody extractor reads."""
    return (
        f"xx^xx-{phoneme}+xx=xx/A:{a1}+{a2}+{a3}/B:xx-xx_xx/C:xx_xx+xx/D:xx+xx_xx"
        f"/E:xx_xx!{e3}_xx-xx/F:{f1}_xx#xx_xx@xx_xx|xx_xx"
    )


# アメ (rain), accent on the first mora
ATAMADAKA = [
    label("sil"),
    label("a", a1=0, a2=1, a3=2, f1=2),
    label("m", a1=1, a2=2, a3=1, f1=2),
    label("e", a1=1, a2=2, a3=1, f1=2),
    label("sil"),
]

# アメ (candy), flat accent
HEIBAN = [
    label("sil"),
    label("a", a1=1, a2=1, a3=2, f1=2),
    label("m", a1=2, a2=2, a3=1, f1=2),
    label("e", a1=2, a2=2, a3=1, f1=2),
    label("sil"),
]


class TestProsodyFromLabels:
    def test_falling_accent(self):
        assert prosody_from_labels(ATAMADAKA) == ["^", "a", "]", "m", "e", "$"]

    def test_rising_accent(self):
        assert prosody_from_labels(HEIBAN) == ["^", "a", "[", "m", "e", "$"]

    def test_question(self):
        labels = HEIBAN[:-1] + [label("sil", e3=1)]
        assert prosody_from_labels(labels)[-1] == "?"

    def test_pause(self):
        labels = [label("sil"), label("a", a1=1, a2=1, a3=1, f1=1), label("pau"), label("sil")]
        assert prosody_from_labels(labels) == ["^", "a", "_", "$"]

    def test_uppercase_devoiced_vowel(self):
        labels = [label("sil"), label("k"), label("U"), label("sil")]
        assert prosody_from_labels(labels) == ["^", "k", "u", "$"]

    def test_malformed_label(self):
        with pytest.raises(ProsodyMismatch):
            prosody_from_labels(["garbage"])


class TestPhoneTones:
    def test_falling(self):
        prosody = ["^", "a", "]", "m", "e", "$"]
        assert phone_tones_from_prosody(prosody) == [("a", 1), ("m", 0), ("e", 0)]

    def test_rising(self):
        prosody = ["^", "a", "[", "m", "e", "$"]
        assert phone_tones_from_prosody(prosody) == [("a", 0), ("m", 1), ("e", 1)]

    def test_phrase_boundary_resets(self):
        prosody = ["^", "a", "[", "i", "#", "u", "$"]
        assert phone_tones_from_prosody(prosody) == [("a", 0), ("i", 1), ("u", 0)]

    def test_geminate(self):
        assert phone_tones_from_prosody(["^", "cl", "$"]) == [("q", 0)]

    def test_unterminated_stream(self):
        assert phone_tones_from_prosody(["^", "a"]) == [("a", 0)]

    def test_invalid_tone_set(self):
        with pytest.raises(ProsodyMismatch):
            phone_tones_from_prosody(["^", "a", "[", "[", "m", "$"])


class TestKataToPhonemes:
    def test_simple(self):
        assert kata_to_phonemes("アメ") == ["a", "m", "e"]

    def test_palatalized_and_geminate(self):
        assert kata_to_phonemes("キャット") == ["ky", "a", "q", "t", "o"]

    def test_long_vowels(self):
        assert kata_to_phonemes("コーヒー") == ["k", "o", "o", "h", "i", "i"]

    def test_moraic_nasal(self):
        assert kata_to_phonemes("ホン") == ["h", "o", "N"]

    def test_punctuation_passthrough(self):
        assert kata_to_phonemes("!?") == ["!", "?"]

    def test_not_katakana(self):
        assert kata_to_phonemes("abc") is None
        assert kata_to_phonemes("ひらがな") is None


class TestHandleLong:
    def test_extends_previous_vowel(self):
        assert handle_long([["a"], ["ー"]]) == [["a"], ["a"]]

    def test_after_moraic_nasal(self):
        assert handle_long([["N"], ["ー"]]) == [["N"], ["N"]]

    def test_leading_mark_is_left(self):
        assert handle_long([["ー"], ["a"]]) == [["ー"], ["a"]]

    def test_after_consonant_is_left(self):
        assert handle_long([["k"], ["ー"]]) == [["k"], ["ー"]]

    def test_empty_words(self):
        assert handle_long([[], ["a"]]) == [[], ["a"]]


class TestAlignTones:
    def test_punctuation_gets_low_tone(self):
        result = align_tones(["a", ",", "m"], [("a", 1), ("m", 0)])
        assert result == [("a", 1), (",", 0), ("m", 0)]

    def test_unknown_gets_low_tone(self):
        result = align_tones(["UNK", "a"], [("a", 1)])
        assert result == [("UNK", 0), ("a", 1)]

    def test_trailing_phones(self):
        assert align_tones(["a", "i"], [("a", 1)]) == [("a", 1), ("i", 0)]

    def test_mismatch(self):
        with pytest.raises(ProsodyMismatch):
            align_tones(["a", "k"], [("a", 1), ("m", 0)])


class TestDistributePhone:
    def test_even(self):
        assert distribute_phone(4, 2) == [2, 2]

    def test_uneven(self):
        assert distribute_phone(3, 2) == [2, 1]
        assert distribute_phone(1, 3) == [1, 0, 0]

    def test_no_phones(self):
        assert distribute_phone(0, 2) == [0, 0]

    def test_no_chars(self):
        assert distribute_phone(3, 0) == []

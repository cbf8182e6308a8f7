"""Contextual encoder stage: BERT embeddings aligned to the phoneme sequence."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Protocol, Sequence

import numpy as np

from jtts.archive.metadata import ArchiveMetadata
from jtts.errors import AlignmentMismatch, ShapeMismatch
from jtts.nlp.frontend import PhonemeSequence
from jtts.runtime.session import InferenceSession

logger = logging.getLogger(__name__)


class SubwordTokenizer(Protocol):
    """Splits text into subword ids with ``(start, end)`` character offsets."""

    def encode(self, text: str) -> tuple[list[int], list[tuple[int, int]]]: ...


class HFTokenizer:
    """Adapter over a HuggingFace ``tokenizers.Tokenizer``.

    Each character is encoded on its own, so a run of characters missing
    from a character-level vocabulary never collapses into one unknown
    token; every token a character yields gets that character's offsets.
    """

    def __init__(self, tokenizer) -> None:
        self._tokenizer = tokenizer

    @classmethod
    def from_json(cls, data: bytes | str) -> HFTokenizer:
        from tokenizers import Tokenizer

        if isinstance(data, bytes):
            data = data.decode("utf-8")
        return cls(Tokenizer.from_str(data))

    @classmethod
    def from_file(cls, path: str) -> HFTokenizer:
        from tokenizers import Tokenizer

        return cls(Tokenizer.from_file(path))

    def encode(self, text: str) -> tuple[list[int], list[tuple[int, int]]]:
        ids: list[int] = []
        offsets: list[tuple[int, int]] = []
        for i, ch in enumerate(text):
            encoding = self._tokenizer.encode(ch, add_special_tokens=False)
            ids.extend(encoding.ids)
            offsets.extend([(i, i + 1)] * len(encoding.ids))
        return ids, offsets


@dataclass(frozen=True)
class ContextualEmbeddings:
    """Phoneme-level embeddings, shape ``[embedding_width, n_phonemes]``."""
    values: np.ndarray

    @property
    def width(self) -> int:
        return int(self.values.shape[0])

    @property
    def n_phonemes(self) -> int:
        return int(self.values.shape[1])


def char_embeddings(
    hidden: np.ndarray,
    offsets: Sequence[tuple[int, int]],
    n_chars: int,
) -> np.ndarray:
    """Per-character rows, framed by the CLS and SEP rows.

    ``hidden`` holds one row per token including CLS (first) and SEP (last).
    A character takes the mean of every subword row whose offsets cover it.
    """
    rows = np.empty((n_chars + 2, hidden.shape[1]), dtype=np.float32)
    rows[0] = hidden[0]
    rows[-1] = hidden[-1]

    covering: list[list[int]] = [[] for _ in range(n_chars)]
    for token_index, (start, end) in enumerate(offsets):
        for char_index in range(max(start, 0), min(end, n_chars)):
            covering[char_index].append(token_index + 1)

    for char_index, tokens in enumerate(covering):
        if not tokens:
            raise AlignmentMismatch(f"Character {char_index} is not covered by any subword token")
        rows[char_index + 1] = hidden[tokens].mean(axis=0)
    return rows


class ContextualEncoder:
    """Runs the BERT graph and expands its output to phoneme resolution."""

    def __init__(
        self,
        session: InferenceSession,
        tokenizer: SubwordTokenizer,
        metadata: ArchiveMetadata,
    ) -> None:
        self.session = session
        self.tokenizer = tokenizer
        self.metadata = metadata

    def encode(self, text: str, phonemes: PhonemeSequence) -> ContextualEmbeddings:
        word2ph = np.asarray(phonemes.word2ph, dtype=np.int64)
        if len(word2ph) != len(text) + 2:
            raise AlignmentMismatch(
                f"word2ph has {len(word2ph)} entries for {len(text)} characters (expected {len(text) + 2})"
            )
        if int(word2ph.sum()) != len(phonemes):
            raise AlignmentMismatch(
                f"word2ph sums to {int(word2ph.sum())} but there are {len(phonemes)} phonemes"
            )

        ids, offsets = self.tokenizer.encode(text)
        token_ids = [self.metadata.cls_token_id, *ids, self.metadata.sep_token_id]
        input_ids = np.asarray([token_ids], dtype=np.int64)
        feeds = {
            "input_ids": input_ids,
            "attention_mask": np.ones_like(input_ids),
        }
        if self.session.has_input("token_type_ids"):
            feeds["token_type_ids"] = np.zeros_like(input_ids)

        outputs = self.session.run(feeds)
        hidden = np.asarray(next(iter(outputs.values())), dtype=np.float32)
        if hidden.ndim == 3 and hidden.shape[0] == 1:
            hidden = hidden[0]
        expected = (len(token_ids), self.metadata.embedding_width)
        if hidden.shape != expected:
            raise ShapeMismatch(
                f"BERT output has shape {list(hidden.shape)}, expected {list(expected)}"
            )
        logger.debug("BERT produced %d token embeddings for %d characters", len(token_ids), len(text))

        rows = char_embeddings(hidden, offsets, len(text))
        expanded = np.repeat(rows, word2ph, axis=0)
        return ContextualEmbeddings(np.ascontiguousarray(expanded.T))

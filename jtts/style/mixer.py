"""Style embedding lookup and blending."""

from __future__ import annotations

import logging
from typing import Iterable, Mapping

import numpy as np

from jtts.errors import EmptySelection, InvalidWeight, UnknownStyle
from jtts.style.selection import StyleSelection

logger = logging.getLogger(__name__)

NEUTRAL_ROW = 0


class StyleMixer:
    """Resolves weighted style requests against a read-only style table.

    Row 0 is the neutral (mean) style that ``strength`` pulls towards or
    away from.
    """

    def __init__(self, table: np.ndarray, styles: Mapping[str, int] | None = None) -> None:
        if table.ndim != 2 or table.shape[0] < 1:
            raise ValueError(f"Style table must be [n_styles, style_dim], got {list(table.shape)}")
        self.table = table
        self.styles = dict(styles or {})

    @classmethod
    def from_archive(cls, archive) -> StyleMixer:
        return cls(archive.style_vectors, archive.metadata.styles)

    @property
    def style_dim(self) -> int:
        return int(self.table.shape[1])

    @property
    def neutral(self) -> np.ndarray:
        return self.table[NEUTRAL_ROW]

    def row_of(self, style_id: str | int) -> int:
        if isinstance(style_id, (int, np.integer)) and not isinstance(style_id, bool):
            row = int(style_id)
        elif isinstance(style_id, str) and style_id in self.styles:
            row = self.styles[style_id]
        else:
            raise UnknownStyle(style_id)
        if not 0 <= row < self.table.shape[0]:
            raise UnknownStyle(style_id)
        return row

    def lookup(self, style_id: str | int) -> np.ndarray:
        return self.table[self.row_of(style_id)]

    def resolve(
        self,
        requests: StyleSelection | Iterable[tuple[str | int, float]],
        strength: float = 1.0,
    ) -> np.ndarray:
        """Return one style vector for ``requests`` (``(style_id, weight)`` pairs)."""
        if isinstance(requests, StyleSelection):
            requests = requests.as_requests()
        requests = list(requests)
        if not requests:
            raise EmptySelection("No styles were requested")

        # Every id is checked before any arithmetic.
        vectors = [self.lookup(style_id) for style_id, _ in requests]
        weights = np.asarray([weight for _, weight in requests], dtype=np.float64)
        if not np.all(np.isfinite(weights)) or np.any(weights < 0):
            raise InvalidWeight(f"Style weights must be finite and non-negative, got {weights.tolist()}")
        total = weights.sum()
        if total == 0:
            raise InvalidWeight("Style weights sum to zero")

        if len(vectors) == 1:
            vector = vectors[0].astype(np.float32, copy=True)
        else:
            stacked = np.stack(vectors).astype(np.float64)
            vector = ((weights / total)[:, np.newaxis] * stacked).sum(axis=0).astype(np.float32)

        if strength != 1.0:
            if strength == 0.0:
                logger.warning("Style strength is 0; using the neutral style")
            mean = self.neutral.astype(np.float32)
            vector = (mean + (vector - mean) * np.float32(strength)).astype(np.float32)
        return vector

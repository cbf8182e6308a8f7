"""Style selections and blend parsing."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterable, Union

from jtts.errors import EmptySelection


@dataclass
class StyleComponent:
    """A single style with its weight in a blend."""
    style_id: str | int
    weight: float = 1.0


@dataclass
class StyleSelection:
    """Parsed style selection: one or more weighted styles."""
    components: list[StyleComponent]

    def as_requests(self) -> list[tuple[str | int, float]]:
        return [(c.style_id, c.weight) for c in self.components]


StyleSelectionLike = Union[str, int, StyleSelection, Iterable[tuple[Union[str, int], float]]]

# Pattern: style or style(weight)
_COMPONENT_RE = re.compile(r"([^\s()+]+)(?:\((\d+(?:\.\d+)?)\))?")


def _coerce_id(style_id: str) -> str | int:
    return int(style_id) if style_id.isascii() and style_id.isdigit() else style_id


def parse_style_spec(spec: str) -> StyleSelection:
    """Parse a style string like 'Happy(2)+Sad(1)' into a StyleSelection.

    Supports:
    - Single style: 'Happy'
    - Row index: '3'
    - Blend: 'Happy+Sad' (equal weights)
    - Weighted blend: 'Happy(2)+Sad(1)'
    """
    if not spec.strip():
        raise EmptySelection("Empty style specification")

    components = []
    for part in spec.split("+"):
        part = part.strip()
        m = _COMPONENT_RE.fullmatch(part)
        if not m:
            raise ValueError(f"Invalid style spec component: {part!r}")
        weight = float(m.group(2)) if m.group(2) else 1.0
        components.append(StyleComponent(style_id=_coerce_id(m.group(1)), weight=weight))

    return StyleSelection(components=components)


def coerce_selection(selection: StyleSelectionLike) -> StyleSelection:
    """Accept a name, row, textual spec, StyleSelection or ``(id, weight)`` pairs."""
    if isinstance(selection, StyleSelection):
        return selection
    if isinstance(selection, str):
        return parse_style_spec(selection)
    if isinstance(selection, int):
        return StyleSelection(components=[StyleComponent(style_id=selection)])
    components = [StyleComponent(style_id=sid, weight=float(w)) for sid, w in selection]
    if not components:
        raise EmptySelection("No styles were requested")
    return StyleSelection(components=components)

"""Style selection parsing and style-vector mixing."""

from jtts.style.mixer import StyleMixer
from jtts.style.selection import StyleComponent, StyleSelection, coerce_selection, parse_style_spec

__all__ = ["StyleComponent", "StyleMixer", "StyleSelection", "coerce_selection", "parse_style_spec"]

"""Japanese linguistic front-end (normalization, g2p, accents, alignment)."""

from jtts.nlp.frontend import LinguisticFrontend, Phoneme, PhonemeSequence
from jtts.nlp.openjtalk import Annotation, OpenJTalkAnnotator, Word
from jtts.nlp.symbols import SymbolTable

__all__ = [
    "Annotation",
    "LinguisticFrontend",
    "OpenJTalkAnnotator",
    "Phoneme",
    "PhonemeSequence",
    "SymbolTable",
    "Word",
]

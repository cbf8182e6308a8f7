"""Inference stages: contextual encoder, acoustic model and vocoder."""

from jtts.stages.acoustic import AcousticFrames, AcousticModel, SynthesisOptions
from jtts.stages.encoder import ContextualEmbeddings, ContextualEncoder, HFTokenizer, SubwordTokenizer
from jtts.stages.vocoder import Vocoder

__all__ = [
    "AcousticFrames",
    "AcousticModel",
    "ContextualEmbeddings",
    "ContextualEncoder",
    "HFTokenizer",
    "SubwordTokenizer",
    "SynthesisOptions",
    "Vocoder",
]

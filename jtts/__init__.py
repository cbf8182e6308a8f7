"""jtts: Japanese text-to-speech inference on onnxruntime."""

from jtts.archive import ArchiveMetadata, ModelArchive, build_archive, load, load_path
from jtts.audio import WaveformBuffer, encode_wav
from jtts.errors import JttsError, TtsError
from jtts.holder import LoadedModelInfo, ModelHolder
from jtts.runtime import BackendConfig
from jtts.stages import SynthesisOptions
from jtts.style import StyleSelection, parse_style_spec
from jtts.synthesizer import Synthesizer

__version__ = "0.1.0"

__all__ = [
    "ArchiveMetadata",
    "BackendConfig",
    "JttsError",
    "LoadedModelInfo",
    "ModelArchive",
    "ModelHolder",
    "StyleSelection",
    "SynthesisOptions",
    "Synthesizer",
    "TtsError",
    "WaveformBuffer",
    "__version__",
    "build_archive",
    "encode_wav",
    "load",
    "load_path",
    "parse_style_spec",
]

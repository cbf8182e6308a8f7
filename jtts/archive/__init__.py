"""Model archive format: loading, metadata validation and packing."""

from jtts.archive.loader import REQUIRED_GRAPHS, ModelArchive, load, load_path, read_archive
from jtts.archive.metadata import ArchiveMetadata, parse_metadata, parse_style_table
from jtts.archive.writer import build_archive

__all__ = [
    "REQUIRED_GRAPHS",
    "ArchiveMetadata",
    "ModelArchive",
    "build_archive",
    "load",
    "load_path",
    "parse_metadata",
    "parse_style_table",
    "read_archive",
]

"""Model archive loader for the zstd-compressed tar of graphs, metadata and styles.

Layout::

    metadata.json          required, see ArchiveMetadata
    style_vectors.json     required, {"shape": [n, d], "data": [[...], ...]}
    bert.onnx              required
    acoustic.onnx          required
    vocoder.onnx           required
    tokenizer.json         optional HuggingFace tokenizer definition

Nothing is executed at load time; sessions are built later from the graph
bytes kept in the returned :class:`ModelArchive`.
"""

from __future__ import annotations

import io
import logging
import tarfile
import time
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import BinaryIO, Mapping, Union

import numpy as np
import zstandard

from jtts.archive.metadata import ArchiveMetadata, parse_metadata, parse_style_table
from jtts.errors import CorruptArchive, MissingEntry

logger = logging.getLogger(__name__)

METADATA_ENTRY = "metadata.json"
STYLE_VECTORS_ENTRY = "style_vectors.json"
TOKENIZER_ENTRY = "tokenizer.json"
GRAPH_SUFFIX = ".onnx"

# Every graph the synthesizer needs, in pipeline order.
REQUIRED_GRAPHS = ("bert", "acoustic", "vocoder")

ArchiveSource = Union[str, Path, bytes, bytearray, memoryview, BinaryIO]


@dataclass(frozen=True)
class ModelArchive:
    """Immutable, thread-shareable contents of a loaded archive."""
    metadata: ArchiveMetadata
    style_vectors: np.ndarray
    graphs: Mapping[str, bytes]
    tokenizer_json: bytes | None = None
    extras: Mapping[str, bytes] = field(default_factory=lambda: MappingProxyType({}))

    @property
    def name(self) -> str:
        return self.metadata.model_name

    @property
    def sample_rate(self) -> int:
        return self.metadata.sample_rate

    @property
    def style_dim(self) -> int:
        return int(self.style_vectors.shape[1])

    @property
    def size_bytes(self) -> int:
        return sum(len(blob) for blob in self.graphs.values())


_END_MARKER_SIZE = 2 * tarfile.BLOCKSIZE


def _normalize_entry_name(name: str) -> str:
    while name.startswith("./"):
        name = name[2:]
    return name


def read_archive(source: ArchiveSource) -> dict[str, bytes]:
    """Decompress ``source`` and return its regular-file entries by name."""
    if isinstance(source, (str, Path)):
        with open(source, "rb") as fh:
            return read_archive(fh)
    if isinstance(source, (bytes, bytearray, memoryview)):
        return read_archive(io.BytesIO(bytes(source)))

    entries: dict[str, bytes] = {}
    dctx = zstandard.ZstdDecompressor()
    try:
        with dctx.stream_reader(source, closefd=False) as reader:
            data = reader.read()
        with tarfile.open(fileobj=io.BytesIO(data), mode="r|") as tar:
            for member in tar:
                if not member.isfile():
                    continue
                extracted = tar.extractfile(member)
                if extracted is None:
                    continue
                entries[_normalize_entry_name(member.name)] = extracted.read()
            end = tar.offset
    except (zstandard.ZstdError, tarfile.TarError, EOFError) as e:
        raise CorruptArchive(f"Cannot read model archive: {e}") from e
    # tarfile stops quietly at a missing header, so a stream cut between
    # members only shows up as an absent end-of-archive marker.
    if data[end:end + _END_MARKER_SIZE] != tarfile.NUL * _END_MARKER_SIZE:
        raise CorruptArchive(f"Model archive is truncated: no end-of-archive marker at offset {end}")
    return entries


def load(source: ArchiveSource) -> ModelArchive:
    """Load and validate a model archive from a path, bytes or binary file.

    Raises:
        CorruptArchive: the container cannot be decompressed or demultiplexed.
        MissingEntry: a required entry is absent.
        InvalidMetadata: metadata or the style table is unusable.
    """
    start = time.time()
    entries = read_archive(source)

    if METADATA_ENTRY not in entries:
        raise MissingEntry(METADATA_ENTRY)
    metadata = parse_metadata(entries.pop(METADATA_ENTRY))

    if STYLE_VECTORS_ENTRY not in entries:
        raise MissingEntry(STYLE_VECTORS_ENTRY)
    style_vectors = parse_style_table(entries.pop(STYLE_VECTORS_ENTRY), metadata)

    graphs: dict[str, bytes] = {}
    extras: dict[str, bytes] = {}
    tokenizer_json = entries.pop(TOKENIZER_ENTRY, None)
    for name, blob in entries.items():
        if name.endswith(GRAPH_SUFFIX) and "/" not in name:
            graphs[name[: -len(GRAPH_SUFFIX)]] = blob
        else:
            logger.debug("Ignoring archive entry %s (%d bytes)", name, len(blob))
            extras[name] = blob

    for required in REQUIRED_GRAPHS:
        if required not in graphs:
            raise MissingEntry(required)

    archive = ModelArchive(
        metadata=metadata,
        style_vectors=style_vectors,
        graphs=MappingProxyType(graphs),
        tokenizer_json=tokenizer_json,
        extras=MappingProxyType(extras),
    )
    logger.info(
        "Loaded model archive %r (%d graphs, %.1f MB, %d styles) in %.2fs",
        archive.name or "<unnamed>", len(graphs), archive.size_bytes / 1e6, style_vectors.shape[0],
        time.time() - start,
    )
    return archive


def load_path(path: str | Path) -> ModelArchive:
    """Load an archive from a file on disk."""
    path = Path(path)
    if not path.is_file():
        raise FileNotFoundError(f"Model archive not found: {path}")
    return load(path)

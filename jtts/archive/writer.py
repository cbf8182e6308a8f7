"""Pack graphs, metadata and style vectors into a model archive."""

from __future__ import annotations

import io
import json
import tarfile
from typing import Any, Mapping, Sequence

import numpy as np
import zstandard

from jtts.archive.loader import METADATA_ENTRY, STYLE_VECTORS_ENTRY, TOKENIZER_ENTRY
from jtts.archive.metadata import ArchiveMetadata


def _add_entry(tar: tarfile.TarFile, name: str, data: bytes) -> None:
    info = tarfile.TarInfo(name=name)
    info.size = len(data)
    tar.addfile(info, io.BytesIO(data))


def build_archive(
    metadata: ArchiveMetadata | Mapping[str, Any],
    style_vectors: np.ndarray | Sequence[Sequence[float]],
    graphs: Mapping[str, bytes],
    tokenizer: bytes | str | None = None,
    level: int = 3,
    extra_entries: Mapping[str, bytes] | None = None,
) -> bytes:
    """Return the zstd-compressed tar bytes for an archive.

    ``graphs`` maps model names (``bert``, ``acoustic``, ``vocoder``) to
    serialized graph bytes. No validation beyond serialization is done, so
    deliberately broken archives can be produced too.
    """
    if isinstance(metadata, ArchiveMetadata):
        metadata_json = metadata.model_dump_json().encode("utf-8")
    else:
        metadata_json = json.dumps(dict(metadata)).encode("utf-8")

    table = np.asarray(style_vectors, dtype=np.float32)
    style_json = json.dumps({"shape": list(table.shape), "data": table.tolist()}).encode("utf-8")

    tar_buf = io.BytesIO()
    with tarfile.open(fileobj=tar_buf, mode="w") as tar:
        _add_entry(tar, METADATA_ENTRY, metadata_json)
        _add_entry(tar, STYLE_VECTORS_ENTRY, style_json)
        for name, blob in graphs.items():
            _add_entry(tar, f"{name}.onnx", bytes(blob))
        if tokenizer is not None:
            if isinstance(tokenizer, str):
                tokenizer = tokenizer.encode("utf-8")
            _add_entry(tar, TOKENIZER_ENTRY, tokenizer)
        for name, blob in (extra_entries or {}).items():
            _add_entry(tar, name, bytes(blob))

    cctx = zstandard.ZstdCompressor(level=level)
    return cctx.compress(tar_buf.getvalue())

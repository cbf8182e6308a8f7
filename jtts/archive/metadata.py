"""Pydantic models for the archive's ``metadata.json`` and style table."""

from __future__ import annotations

import json

import numpy as np
from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator

from jtts.errors import InvalidMetadata
from jtts.nlp.symbols import DEFAULT_SYMBOLS, JP_LANGUAGE_ID, JP_TONE_START, PAD, UNK, SymbolTable

SUPPORTED_FORMAT_VERSIONS = (1,)


class ArchiveMetadata(BaseModel):
    """Model-level constants shipped inside an archive."""
    format_version: int
    model_name: str = ""

    sample_rate: int = Field(gt=0)
    hop_length: int = Field(gt=0)
    embedding_width: int = Field(gt=0)
    latent_dim: int = Field(gt=0)
    style_dim: int | None = Field(default=None, gt=0)
    pitch_channel: int = Field(default=0, ge=0)

    symbols: list[str] = Field(default_factory=lambda: list(DEFAULT_SYMBOLS))
    unk_symbol: str = UNK
    pad_symbol: str = PAD
    tone_start: int = Field(default=JP_TONE_START, ge=0)
    language_id: int = Field(default=JP_LANGUAGE_ID, ge=0)
    add_blank: bool = True

    cls_token_id: int = 1
    sep_token_id: int = 2

    styles: dict[str, int] = Field(default_factory=lambda: {"Neutral": 0})
    speakers: dict[str, int] = Field(default_factory=dict)
    default_speaker_id: int = Field(default=0, ge=0)

    @field_validator("format_version")
    @classmethod
    def _check_version(cls, value: int) -> int:
        if value not in SUPPORTED_FORMAT_VERSIONS:
            raise ValueError(
                f"unsupported format version {value} "
                f"(supported: {', '.join(map(str, SUPPORTED_FORMAT_VERSIONS))})"
            )
        return value

    @model_validator(mode="after")
    def _check_consistency(self) -> ArchiveMetadata:
        if self.pitch_channel >= self.latent_dim:
            raise ValueError(
                f"pitch_channel {self.pitch_channel} out of range for latent_dim {self.latent_dim}"
            )
        if self.unk_symbol not in self.symbols:
            raise ValueError(f"unk_symbol {self.unk_symbol!r} is not in symbols")
        if self.pad_symbol not in self.symbols:
            raise ValueError(f"pad_symbol {self.pad_symbol!r} is not in symbols")
        if any(row < 0 for row in self.styles.values()):
            raise ValueError("style rows must be non-negative")
        if any(sid < 0 for sid in self.speakers.values()):
            raise ValueError("speaker ids must be non-negative")
        return self

    def speaker_id(self, speaker: int | str | None = None) -> int:
        """Resolve a speaker name or id; ``None`` gives the default speaker."""
        if speaker is None:
            return self.default_speaker_id
        if isinstance(speaker, str):
            if speaker not in self.speakers:
                raise ValueError(f"Unknown speaker {speaker!r} (known: {sorted(self.speakers)})")
            return self.speakers[speaker]
        return int(speaker)

    @property
    def pad_id(self) -> int:
        return self.symbols.index(self.pad_symbol)

    def symbol_table(self) -> SymbolTable:
        return SymbolTable(self.symbols, unk=self.unk_symbol)


def _format_validation_error(exc: ValidationError) -> str:
    parts = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err["loc"]) or "metadata"
        parts.append(f"{loc}: {err['msg']}")
    return "; ".join(parts)


def parse_metadata(raw: bytes | str) -> ArchiveMetadata:
    """Parse and validate ``metadata.json`` contents."""
    try:
        data = json.loads(raw)
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise InvalidMetadata(f"metadata.json is not valid JSON: {e}") from e
    if not isinstance(data, dict):
        raise InvalidMetadata("metadata.json must contain a JSON object")
    try:
        return ArchiveMetadata.model_validate(data)
    except ValidationError as e:
        raise InvalidMetadata(_format_validation_error(e)) from e


class StyleTablePayload(BaseModel):
    """``style_vectors.json``: a row-major ``[n_styles, style_dim]`` table."""
    shape: tuple[int, int]
    data: list[list[float]]


def parse_style_table(raw: bytes | str, metadata: ArchiveMetadata) -> np.ndarray:
    """Parse the style table and check it against ``metadata``.

    Returns a read-only float32 array of shape ``[n_styles, style_dim]``.
    """
    try:
        payload = StyleTablePayload.model_validate_json(raw)
    except ValidationError as e:
        raise InvalidMetadata(f"style_vectors.json: {_format_validation_error(e)}") from e

    n_styles, width = payload.shape
    if n_styles < 1 or width < 1:
        raise InvalidMetadata(f"style table shape must be positive, got {list(payload.shape)}")
    try:
        table = np.asarray(payload.data, dtype=np.float32)
    except ValueError as e:
        raise InvalidMetadata(f"style table rows have unequal lengths: {e}") from e
    if table.shape != (n_styles, width):
        raise InvalidMetadata(
            f"style table data has shape {list(table.shape)}, declared {list(payload.shape)}"
        )
    if metadata.style_dim is not None and metadata.style_dim != width:
        raise InvalidMetadata(
            f"style table width {width} does not match style_dim {metadata.style_dim}"
        )
    for name, row in metadata.styles.items():
        if row >= n_styles:
            raise InvalidMetadata(f"style {name!r} refers to row {row} of {n_styles}")

    table.setflags(write=False)
    return table

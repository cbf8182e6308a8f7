"""Exception taxonomy for archive loading, analysis, inference and synthesis."""

from __future__ import annotations


class JttsError(Exception):
    """Base class for every error raised by jtts."""


# ---------------------------------------------------------------------------
# Archive
# ---------------------------------------------------------------------------

class ArchiveError(JttsError):
    """The model archive cannot be turned into a usable pipeline."""


class CorruptArchive(ArchiveError):
    """Decompression or tar demultiplexing failed."""


class MissingEntry(ArchiveError):
    """A required archive entry is absent."""

    def __init__(self, name: str) -> None:
        super().__init__(f"Archive entry not found: {name}")
        self.name = name


class InvalidMetadata(ArchiveError):
    """Metadata is present but unusable."""

    def __init__(self, reason: str) -> None:
        super().__init__(f"Invalid archive metadata: {reason}")
        self.reason = reason


# ---------------------------------------------------------------------------
# Linguistic front-end
# ---------------------------------------------------------------------------

class LinguisticError(JttsError):
    """Text could not be analyzed."""


class DictionaryUnavailable(LinguisticError):
    """The morphological analyzer or its dictionary cannot be used."""


class ProsodyMismatch(LinguisticError):
    """Analyzer readings and accent labels disagree."""


# ---------------------------------------------------------------------------
# Inference
# ---------------------------------------------------------------------------

class InferenceError(JttsError):
    """A model stage failed for the current request."""


class ShapeMismatch(InferenceError):
    """Tensors do not match a graph's declared signature."""


class AlignmentMismatch(InferenceError):
    """Subword embeddings cannot be mapped onto the phoneme sequence."""


class LengthMismatch(InferenceError):
    """The vocoder produced a different number of samples than expected."""

    def __init__(self, expected: int, actual: int) -> None:
        super().__init__(f"Expected {expected} samples from the vocoder, got {actual}")
        self.expected = expected
        self.actual = actual


class BackendFailure(InferenceError):
    """The execution backend raised while creating or running a session."""

    def __init__(self, reason: str) -> None:
        super().__init__(reason)
        self.reason = reason


# ---------------------------------------------------------------------------
# Style selection
# ---------------------------------------------------------------------------

class StyleError(JttsError):
    """The requested style selection is not valid for this archive."""


class UnknownStyle(StyleError, KeyError):
    """Raised when a style id does not exist in the style table."""

    def __init__(self, style_id: str | int) -> None:
        super().__init__(style_id)
        self.style_id = style_id

    def __str__(self) -> str:
        return f"Unknown style: {self.style_id!r}"


class EmptySelection(StyleError):
    """No styles were requested."""


class InvalidWeight(StyleError):
    """A blend weight is negative or all weights are zero."""


# ---------------------------------------------------------------------------
# Orchestration
# ---------------------------------------------------------------------------

class TtsError(JttsError):
    """A pipeline stage failed; ``cause`` keeps the original error."""

    def __init__(self, stage: str, cause: BaseException | None = None) -> None:
        self.stage = str(stage)
        self.cause = cause
        if cause is None:
            message = f"{self.stage} stage failed"
        else:
            message = f"{self.stage} stage failed: {cause}"
        super().__init__(message)


class SynthesisCancelled(TtsError):
    """Cancellation was requested before ``stage`` started."""

    def __init__(self, stage: str) -> None:
        super().__init__(stage)
        self.args = (f"Synthesis cancelled before the {self.stage} stage",)


class ModelNotFoundError(JttsError, KeyError):
    """No archive is registered under the given identifier."""

    def __str__(self) -> str:
        return f"Model not found: {self.args[0]!r}"

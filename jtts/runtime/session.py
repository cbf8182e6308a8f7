"""onnxruntime boundary: session construction and signature-checked execution."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any, Mapping, Sequence

import numpy as np

from jtts.errors import BackendFailure, ShapeMismatch

logger = logging.getLogger(__name__)

# onnxruntime type strings → numpy dtypes
ORT_DTYPES: dict[str, np.dtype] = {
    "tensor(float)": np.dtype(np.float32),
    "tensor(float16)": np.dtype(np.float16),
    "tensor(double)": np.dtype(np.float64),
    "tensor(int64)": np.dtype(np.int64),
    "tensor(int32)": np.dtype(np.int32),
    "tensor(int8)": np.dtype(np.int8),
    "tensor(uint8)": np.dtype(np.uint8),
    "tensor(bool)": np.dtype(np.bool_),
}

GRAPH_OPTIMIZATION_LEVELS = {
    "disable": "ORT_DISABLE_ALL",
    "basic": "ORT_ENABLE_BASIC",
    "extended": "ORT_ENABLE_EXTENDED",
    "all": "ORT_ENABLE_ALL",
}

_DEVICE_PROVIDERS = ("CUDAExecutionProvider", "TensorrtExecutionProvider", "DmlExecutionProvider")


@dataclass(frozen=True)
class BackendConfig:
    """Execution settings forwarded to every session."""
    providers: tuple[str, ...] = ("CPUExecutionProvider",)
    intra_op_threads: int = 0  # 0 = runtime default
    inter_op_threads: int = 0
    device_id: int = 0
    precision: str = "fp32"
    graph_optimization: str = "all"
    parallel_execution: bool = False

    def __post_init__(self) -> None:
        if self.graph_optimization not in GRAPH_OPTIMIZATION_LEVELS:
            raise ValueError(
                f"Unknown graph optimization level {self.graph_optimization!r}; "
                f"expected one of {sorted(GRAPH_OPTIMIZATION_LEVELS)}"
            )
        if self.precision not in ("fp32", "fp16"):
            raise ValueError(f"Unknown precision {self.precision!r}; expected 'fp32' or 'fp16'")
        if not self.providers:
            raise ValueError("At least one execution provider is required")

    def session_options(self, ort: Any) -> Any:
        opts = ort.SessionOptions()
        opts.graph_optimization_level = getattr(
            ort.GraphOptimizationLevel, GRAPH_OPTIMIZATION_LEVELS[self.graph_optimization]
        )
        if self.intra_op_threads > 0:
            opts.intra_op_num_threads = self.intra_op_threads
        if self.inter_op_threads > 0:
            opts.inter_op_num_threads = self.inter_op_threads
        if self.parallel_execution:
            opts.execution_mode = ort.ExecutionMode.ORT_PARALLEL
        return opts

    def provider_list(self, available: Sequence[str] | None = None) -> list[tuple[str, dict[str, Any]]]:
        """Providers with their options, dropping ones the runtime does not offer."""
        providers: list[tuple[str, dict[str, Any]]] = []
        for name in self.providers:
            if available is not None and name not in available:
                logger.warning("Execution provider %s is not available, skipping", name)
                continue
            options: dict[str, Any] = {}
            if name in _DEVICE_PROVIDERS:
                options["device_id"] = self.device_id
            if name == "CUDAExecutionProvider":
                options["cudnn_conv_algo_search"] = "DEFAULT"
            if name == "TensorrtExecutionProvider" and self.precision == "fp16":
                options["trt_fp16_enable"] = True
            if name == "CPUExecutionProvider":
                options["arena_extend_strategy"] = "kSameAsRequested"
            providers.append((name, options))
        if not providers:
            logger.warning("No requested execution provider is available, using CPU")
            providers.append(("CPUExecutionProvider", {}))
        return providers


@dataclass(frozen=True)
class TensorSpec:
    """Declared name, shape and element type of a graph input or output."""
    name: str
    shape: tuple[int | str | None, ...]
    dtype: np.dtype | None

    @property
    def rank(self) -> int:
        return len(self.shape)

    @classmethod
    def from_node(cls, node: Any) -> TensorSpec:
        shape = tuple(dim if isinstance(dim, int) else (dim or None) for dim in (node.shape or ()))
        return cls(name=node.name, shape=shape, dtype=ORT_DTYPES.get(node.type))


class InferenceSession:
    """One onnxruntime session plus its declared signature.

    ``run`` checks names, ranks, fixed dimensions and dtypes before handing
    the tensors to the runtime, so mismatches surface as ``ShapeMismatch``
    instead of backend-specific errors.
    """

    def __init__(self, session: Any, name: str = "graph") -> None:
        self._session = session
        self.name = name
        self.inputs: dict[str, TensorSpec] = {
            node.name: TensorSpec.from_node(node) for node in session.get_inputs()
        }
        self.outputs: list[TensorSpec] = [TensorSpec.from_node(node) for node in session.get_outputs()]

    def __repr__(self) -> str:
        return f"InferenceSession(name={self.name!r}, inputs={list(self.inputs)})"

    def has_input(self, name: str) -> bool:
        return name in self.inputs

    @property
    def output_names(self) -> list[str]:
        return [spec.name for spec in self.outputs]

    def validate(self, inputs: Mapping[str, np.ndarray]) -> None:
        missing = [name for name in self.inputs if name not in inputs]
        if missing:
            raise ShapeMismatch(f"{self.name}: missing inputs {missing}")
        unexpected = [name for name in inputs if name not in self.inputs]
        if unexpected:
            raise ShapeMismatch(f"{self.name}: unexpected inputs {unexpected}")

        for name, value in inputs.items():
            spec = self.inputs[name]
            if spec.shape and value.ndim != spec.rank:
                raise ShapeMismatch(
                    f"{self.name}: input {name!r} has rank {value.ndim}, expected {spec.rank}"
                )
            for axis, (actual, declared) in enumerate(zip(value.shape, spec.shape)):
                if isinstance(declared, int) and declared >= 0 and actual != declared:
                    raise ShapeMismatch(
                        f"{self.name}: input {name!r} axis {axis} is {actual}, expected {declared}"
                    )
            if spec.dtype is not None and value.dtype != spec.dtype:
                raise ShapeMismatch(
                    f"{self.name}: input {name!r} has dtype {value.dtype}, expected {spec.dtype}"
                )

    def run(
        self,
        inputs: Mapping[str, np.ndarray],
        output_names: Sequence[str] | None = None,
    ) -> dict[str, np.ndarray]:
        """Run the graph and return its outputs by name."""
        self.validate(inputs)
        names = list(output_names) if output_names is not None else self.output_names
        try:
            results = self._session.run(names, dict(inputs))
        except Exception as e:
            raise BackendFailure(f"{self.name}: inference failed: {e}") from e
        return {name: np.asarray(value) for name, value in zip(names, results)}


def create_session(
    graph_bytes: bytes,
    config: BackendConfig | None = None,
    name: str = "graph",
) -> InferenceSession:
    """Build an :class:`InferenceSession` from serialized graph bytes."""
    config = config or BackendConfig()
    import onnxruntime as ort

    start = time.time()
    try:
        session = ort.InferenceSession(
            graph_bytes,
            sess_options=config.session_options(ort),
            providers=config.provider_list(ort.get_available_providers()),
        )
    except Exception as e:
        raise BackendFailure(f"{name}: cannot create session: {e}") from e
    logger.info(
        "Created %s session (%s) in %.2fs",
        name, ", ".join(session.get_providers()), time.time() - start,
    )
    return InferenceSession(session, name=name)

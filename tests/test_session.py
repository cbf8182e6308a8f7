"""Tests for the onnxruntime boundary (mocked runtime)."""

from __future__ import annotations

import sys
from unittest.mock import MagicMock, patch

import numpy as np
import pytest

from fakes import FakeOrtSession, NodeArg
from jtts.errors import BackendFailure, ShapeMismatch
from jtts.runtime.session import BackendConfig, InferenceSession, create_session


def _echo_session():
    inputs = [
        NodeArg("x", [1, "T"], "tensor(int64)"),
        NodeArg("style", [1, 3]),
    ]
    outputs = [NodeArg("y", [1, "T"])]
    return FakeOrtSession(inputs, outputs, lambda feeds: {"y": feeds["x"].astype(np.float32) * 2})


def _feeds(t: int = 4):
    return {
        "x": np.arange(t, dtype=np.int64)[np.newaxis],
        "style": np.zeros((1, 3), dtype=np.float32),
    }


class TestInferenceSession:
    def test_signature(self):
        session = InferenceSession(_echo_session(), name="echo")
        assert session.has_input("x")
        assert not session.has_input("z")
        assert session.inputs["x"].shape == (1, "T")
        assert session.inputs["x"].dtype == np.int64
        assert session.output_names == ["y"]

    def test_run_returns_named_outputs(self):
        session = InferenceSession(_echo_session(), name="echo")
        outputs = session.run(_feeds())
        np.testing.assert_array_equal(outputs["y"], [[0.0, 2.0, 4.0, 6.0]])

    def test_missing_input(self):
        session = InferenceSession(_echo_session())
        feeds = _feeds()
        del feeds["style"]
        with pytest.raises(ShapeMismatch, match="missing"):
            session.run(feeds)

    def test_unexpected_input(self):
        session = InferenceSession(_echo_session())
        feeds = dict(_feeds(), extra=np.zeros(1, dtype=np.float32))
        with pytest.raises(ShapeMismatch, match="unexpected"):
            session.run(feeds)

    def test_wrong_rank(self):
        session = InferenceSession(_echo_session())
        feeds = dict(_feeds(), x=np.arange(4, dtype=np.int64))
        with pytest.raises(ShapeMismatch, match="rank"):
            session.run(feeds)

    def test_wrong_fixed_dim(self):
        session = InferenceSession(_echo_session())
        feeds = dict(_feeds(), style=np.zeros((1, 5), dtype=np.float32))
        with pytest.raises(ShapeMismatch, match="axis 1"):
            session.run(feeds)

    def test_wrong_dtype(self):
        session = InferenceSession(_echo_session())
        feeds = dict(_feeds(), x=np.arange(4, dtype=np.int32)[np.newaxis])
        with pytest.raises(ShapeMismatch, match="dtype"):
            session.run(feeds)

    def test_symbolic_dims_accept_any_length(self):
        session = InferenceSession(_echo_session())
        assert session.run(_feeds(t=17))["y"].shape == (1, 17)

    def test_backend_error_is_wrapped(self):
        def boom(feeds):
            raise RuntimeError("kernel exploded")

        fake = FakeOrtSession([NodeArg("x", [1])], [NodeArg("y", [1])], boom)
        session = InferenceSession(fake, name="boom")
        with pytest.raises(BackendFailure, match="kernel exploded") as exc_info:
            session.run({"x": np.zeros(1, dtype=np.float32)})
        assert isinstance(exc_info.value.__cause__, RuntimeError)


class TestBackendConfig:
    def test_defaults(self):
        config = BackendConfig()
        assert config.providers == ("CPUExecutionProvider",)
        assert config.graph_optimization == "all"

    def test_invalid_optimization_level(self):
        with pytest.raises(ValueError):
            BackendConfig(graph_optimization="max")

    def test_invalid_precision(self):
        with pytest.raises(ValueError):
            BackendConfig(precision="int4")

    def test_provider_options(self):
        config = BackendConfig(
            providers=("TensorrtExecutionProvider", "CUDAExecutionProvider", "CPUExecutionProvider"),
            device_id=1,
            precision="fp16",
        )
        providers = dict(config.provider_list())
        assert providers["CUDAExecutionProvider"]["device_id"] == 1
        assert providers["TensorrtExecutionProvider"]["trt_fp16_enable"] is True
        assert "device_id" not in providers["CPUExecutionProvider"]

    def test_unavailable_providers_are_dropped(self):
        config = BackendConfig(providers=("CUDAExecutionProvider", "CPUExecutionProvider"))
        names = [name for name, _ in config.provider_list(["CPUExecutionProvider"])]
        assert names == ["CPUExecutionProvider"]

    def test_falls_back_to_cpu(self):
        config = BackendConfig(providers=("CUDAExecutionProvider",))
        names = [name for name, _ in config.provider_list([])]
        assert names == ["CPUExecutionProvider"]

    def test_session_options(self):
        ort = MagicMock()
        config = BackendConfig(intra_op_threads=4, inter_op_threads=2, parallel_execution=True,
                               graph_optimization="basic")
        opts = config.session_options(ort)
        assert opts.intra_op_num_threads == 4
        assert opts.inter_op_num_threads == 2
        assert opts.execution_mode == ort.ExecutionMode.ORT_PARALLEL
        assert opts.graph_optimization_level == ort.GraphOptimizationLevel.ORT_ENABLE_BASIC


class TestCreateSession:
    def test_builds_from_bytes(self):
        mock_ort = MagicMock()
        mock_ort.get_available_providers.return_value = ["CPUExecutionProvider"]
        mock_ort.InferenceSession.return_value = _echo_session()
        with patch.dict(sys.modules, {"onnxruntime": mock_ort}):
            session = create_session(b"graph", BackendConfig(), name="echo")
        assert session.name == "echo"
        assert session.has_input("x")
        args, kwargs = mock_ort.InferenceSession.call_args
        assert args[0] == b"graph"
        assert kwargs["providers"][0][0] == "CPUExecutionProvider"

    def test_creation_failure(self):
        mock_ort = MagicMock()
        mock_ort.get_available_providers.return_value = ["CPUExecutionProvider"]
        mock_ort.InferenceSession.side_effect = RuntimeError("bad protobuf")
        with patch.dict(sys.modules, {"onnxruntime": mock_ort}):
            with pytest.raises(BackendFailure, match="bad protobuf"):
                create_session(b"garbage", name="bert")

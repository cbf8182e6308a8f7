"""Inference runtime boundary (onnxruntime)."""

from jtts.runtime.session import BackendConfig, InferenceSession, TensorSpec, create_session

__all__ = ["BackendConfig", "InferenceSession", "TensorSpec", "create_session"]

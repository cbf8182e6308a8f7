"""Configuration via environment variables."""

from __future__ import annotations

import logging
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings

from jtts.logging_setup import setup_logging
from jtts.runtime.session import BackendConfig


class Settings(BaseSettings):
    """jtts settings, all configurable via ``JTTS_*`` environment variables."""

    archive_path: str | None = None  # default model archive (.sbv2)
    providers: list[str] = Field(default_factory=lambda: ["CPUExecutionProvider"])
    intra_op_threads: int = Field(default=0, ge=0)  # 0 = runtime default
    inter_op_threads: int = Field(default=0, ge=0)
    device_id: int = Field(default=0, ge=0)
    precision: Literal["fp32", "fp16"] = "fp32"
    graph_optimization: Literal["disable", "basic", "extended", "all"] = "all"
    parallel_execution: bool = False
    max_loaded_models: int = Field(default=0, ge=0)  # 0 = unlimited
    default_style: str = "Neutral"
    log_level: str = "INFO"
    log_file: str | None = None

    model_config = {"env_prefix": "JTTS_", "case_sensitive": False}

    def backend_config(self) -> BackendConfig:
        return BackendConfig(
            providers=tuple(self.providers),
            intra_op_threads=self.intra_op_threads,
            inter_op_threads=self.inter_op_threads,
            device_id=self.device_id,
            precision=self.precision,
            graph_optimization=self.graph_optimization,
            parallel_execution=self.parallel_execution,
        )

    def configure_logging(self) -> logging.Logger:
        return setup_logging(self.log_level, self.log_file)


settings = Settings()

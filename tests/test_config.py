"""Tests for environment-driven settings."""

import logging
import os
from unittest.mock import patch

import pytest
from pydantic import ValidationError

from jtts.config import Settings


class TestSettings:
    def test_defaults(self):
        with patch.dict(os.environ, {}, clear=True):
            s = Settings()
        assert s.providers == ["CPUExecutionProvider"]
        assert s.max_loaded_models == 0
        assert s.default_style == "Neutral"
        assert s.log_file is None

    def test_env_overrides(self):
        env = {
            "JTTS_MAX_LOADED_MODELS": "3",
            "JTTS_INTRA_OP_THREADS": "4",
            "JTTS_GRAPH_OPTIMIZATION": "basic",
            "JTTS_PROVIDERS": '["CUDAExecutionProvider", "CPUExecutionProvider"]',
            "jtts_default_style": "Happy",
        }
        with patch.dict(os.environ, env, clear=True):
            s = Settings()
        assert s.max_loaded_models == 3
        assert s.intra_op_threads == 4
        assert s.graph_optimization == "basic"
        assert s.providers == ["CUDAExecutionProvider", "CPUExecutionProvider"]
        assert s.default_style == "Happy"

    def test_invalid_precision(self):
        with patch.dict(os.environ, {"JTTS_PRECISION": "int8"}, clear=True):
            with pytest.raises(ValidationError):
                Settings()

    def test_backend_config(self):
        with patch.dict(os.environ, {}, clear=True):
            s = Settings(device_id=1, precision="fp16", parallel_execution=True)
        config = s.backend_config()
        assert config.providers == ("CPUExecutionProvider",)
        assert config.device_id == 1
        assert config.precision == "fp16"
        assert config.parallel_execution is True


class TestConfigureLogging:
    @pytest.fixture(autouse=True)
    def _restore_logger(self):
        logger = logging.getLogger("jtts")
        handlers, level, propagate = list(logger.handlers), logger.level, logger.propagate
        yield
        for handler in list(logger.handlers):
            if handler not in handlers:
                logger.removeHandler(handler)
                handler.close()
        logger.setLevel(level)
        logger.propagate = propagate

    def test_level_and_file_from_env(self, tmp_path):
        log_file = tmp_path / "jtts.log"
        env = {"JTTS_LOG_LEVEL": "warning", "JTTS_LOG_FILE": str(log_file)}
        with patch.dict(os.environ, env, clear=True):
            s = Settings()
        logger = s.configure_logging()
        assert logger.level == logging.WARNING
        logging.getLogger("jtts.holder").warning("Model %s evicted", "a")
        logging.getLogger("jtts.holder").info("Registered model %s", "a")
        for handler in logger.handlers:
            handler.flush()
        content = log_file.read_text()
        assert "Model a evicted" in content
        assert "Registered model" not in content

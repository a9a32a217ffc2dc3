"""
Tests for backend selection and graceful CPU fallback.
"""

import logging

import pytest

import vision_kernels.backend as backend
from vision_kernels.acceleration.hardware_detection import GPUInfo
from vision_kernels.errors import BuildError
from vision_kernels.utils.config import AppConfig
from vision_kernels.utils.logging import configure_from_config, setup_logger


def _config(**backend_overrides):
    cfg = AppConfig()
    cfg.backend = cfg.backend.model_copy(update=backend_overrides)
    cfg.parallel = cfg.parallel.model_copy(update={"n_workers": 2})
    return cfg


@pytest.fixture
def gpu_available(monkeypatch):
    monkeypatch.setattr(
        backend, "get_gpu_info", lambda device_id=0: GPUInfo(available=True, device_count=1)
    )


class TestCreateProgram:
    """Test create_program backend choice."""

    def test_cpu_when_gpu_disabled(self):
        program = backend.create_program(_config(prefer_gpu=False))
        assert not program.is_accelerated
        assert program.name == "cpu"
        program.close()

    def test_cpu_when_gpu_missing(self, monkeypatch):
        monkeypatch.setattr(
            backend,
            "get_gpu_info",
            lambda device_id=0: GPUInfo(available=False, device_count=0, error_message="none"),
        )
        program = backend.create_program(_config())
        assert not program.is_accelerated

    def test_build_error_propagates_with_fallback(self, monkeypatch, gpu_available, caplog):
        def fail(**kwargs):
            raise BuildError("compile failed", log="error: boom")

        monkeypatch.setattr(backend, "CudaComputeDevice", fail)
        with caplog.at_level(logging.ERROR, logger="vision_kernels.backend"):
            with pytest.raises(BuildError):
                backend.create_program(_config(fallback_to_cpu=True))
        assert "error: boom" in caplog.text

    def test_fallback_on_runtime_error(self, monkeypatch, gpu_available):
        def fail(**kwargs):
            raise RuntimeError("cudaErrorNoDevice")

        monkeypatch.setattr(backend, "CudaComputeDevice", fail)
        program = backend.create_program(_config())
        assert not program.is_accelerated

    def test_runtime_error_without_fallback(self, monkeypatch, gpu_available):
        def fail(**kwargs):
            raise RuntimeError("cudaErrorNoDevice")

        monkeypatch.setattr(backend, "CudaComputeDevice", fail)
        with pytest.raises(RuntimeError, match="cudaErrorNoDevice"):
            backend.create_program(_config(fallback_to_cpu=False))

    def test_cpu_when_device_memory_short(self, monkeypatch, gpu_available):
        requested = {}

        def check(required_gb, device_id=0):
            requested["args"] = (required_gb, device_id)
            return False, 0.5

        def unexpected(**kwargs):
            raise AssertionError("device must not be built")

        monkeypatch.setattr(backend, "check_gpu_memory", check)
        monkeypatch.setattr(backend, "CudaComputeDevice", unexpected)
        program = backend.create_program(_config(min_free_memory_gb=2.0, device_id=0))
        assert not program.is_accelerated
        assert requested["args"] == (2.0, 0)

    def test_device_when_memory_sufficient(self, monkeypatch, gpu_available, emulated_device):
        monkeypatch.setattr(backend, "check_gpu_memory", lambda required_gb, device_id=0: (True, 8.0))
        monkeypatch.setattr(backend, "CudaComputeDevice", lambda **kwargs: emulated_device)
        program = backend.create_program(_config(min_free_memory_gb=2.0))
        assert program.is_accelerated

    def test_memory_not_checked_by_default(self, monkeypatch, gpu_available, emulated_device):
        def check(required_gb, device_id=0):
            raise AssertionError("memory check must be skipped")

        monkeypatch.setattr(backend, "check_gpu_memory", check)
        monkeypatch.setattr(backend, "CudaComputeDevice", lambda **kwargs: emulated_device)
        assert backend.create_program(_config()).is_accelerated

    def test_build_error_without_fallback(self, monkeypatch, gpu_available):
        def fail(**kwargs):
            raise BuildError("compile failed", log="error: boom")

        monkeypatch.setattr(backend, "CudaComputeDevice", fail)
        with pytest.raises(BuildError):
            backend.create_program(_config(fallback_to_cpu=False))

    def test_device_program_when_available(self, monkeypatch, gpu_available, emulated_device):
        captured = {}

        def build(**kwargs):
            captured.update(kwargs)
            return emulated_device

        monkeypatch.setattr(backend, "CudaComputeDevice", build)
        program = backend.create_program(_config(device_id=0))
        assert program.is_accelerated
        assert captured["block_2d"] == (16, 16)
        assert captured["binary_cache"] is None

    def test_cpu_program_without_fan_out(self):
        cfg = AppConfig()
        cfg.parallel = cfg.parallel.model_copy(update={"enabled": False})
        program = backend.create_cpu_program(cfg)
        assert program.dispatcher.fan_out is None


class TestLogging:
    """Test logger setup."""

    def test_setup_logger_level_name(self):
        logger = setup_logger("vision_kernels.test_level", level="DEBUG")
        assert logger.level == logging.DEBUG
        assert len(logger.handlers) == 1

    def test_setup_logger_idempotent(self):
        first = setup_logger("vision_kernels.test_idempotent")
        second = setup_logger("vision_kernels.test_idempotent")
        assert first is second
        assert len(second.handlers) == 1

    def test_log_file(self, tmp_path):
        log_file = tmp_path / "logs" / "run.log"
        logger = setup_logger("vision_kernels.test_file", log_file=str(log_file))
        logger.info("hello")
        for handler in logger.handlers:
            handler.flush()
        assert "hello" in log_file.read_text()

    def test_configure_from_config(self):
        logger = configure_from_config(AppConfig().logging)
        assert logger.name == "vision_kernels"

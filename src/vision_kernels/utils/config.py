"""
Configuration management for vision-kernels.

Provides a typed pydantic model and YAML loader with sensible defaults.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, List, Literal, Optional, Tuple

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator


# -----------------------
# Typed config structures
# -----------------------


class BackendConfig(BaseModel):
    prefer_gpu: bool = Field(default=True, description="Use the CUDA backend when a device is detected")
    fallback_to_cpu: bool = Field(
        default=True,
        description="Fall back to the CPU reference backend if the CUDA device cannot be initialised",
    )
    device_id: int = Field(default=0, ge=0, description="CUDA device ordinal")
    min_free_memory_gb: float = Field(
        default=0.0, ge=0.0, description="Free device memory required to pick CUDA (0 = no check)"
    )


class ParallelConfig(BaseModel):
    enabled: bool = Field(default=True, description="Fan CPU kernels out over worker threads")
    n_workers: Optional[int] = Field(
        default=None, description="Number of worker threads (None = auto-detect: cpu_count - 1)"
    )
    min_pixels: int = Field(
        default=65536, ge=1, description="Smallest kernel extent (pixels) that is split across threads"
    )


class CudaConfig(BaseModel):
    block_2d: Tuple[int, int] = Field(default=(16, 16), description="Thread block shape for 2D kernels")
    block_1d: int = Field(default=256, ge=1, description="Thread block size for 1D kernels")
    compile_options: List[str] = Field(
        default_factory=lambda: ["--std=c++11", "--fmad=false"],
        description="NVRTC options for the kernel program",
    )
    use_binary_cache: bool = Field(
        default=True, description="Reuse compiled kernel programs across backends on the same device"
    )

    @field_validator("block_2d")
    @classmethod
    def _positive_block(cls, value: Tuple[int, int]) -> Tuple[int, int]:
        if value[0] < 1 or value[1] < 1:
            raise ValueError(f"block_2d entries must be positive, got {value}")
        return value


class LoggingConfig(BaseModel):
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(default="INFO")
    file: Optional[str] = Field(default=None)


class AppConfig(BaseModel):
    backend: BackendConfig = Field(default_factory=BackendConfig)
    parallel: ParallelConfig = Field(default_factory=ParallelConfig)
    cuda: CudaConfig = Field(default_factory=CudaConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


# -----------------------
# Loader
# -----------------------


def _project_root() -> Path:
    """
    Resolve the repository root directory.

    File is at: repo_root/src/vision_kernels/utils/config.py
    parents sequence:
      0 -> .../src/vision_kernels/utils
      1 -> .../src/vision_kernels
      2 -> .../src
      3 -> repo_root
    """
    return Path(__file__).resolve().parents[3]


def load_config(path: Optional[str | Path] = None, *, allow_missing: bool = True) -> AppConfig:
    """
    Load configuration from YAML into a typed AppConfig.

    Search order when path is None:
    1) repo_root/config/default.yaml
    2) if missing and allow_missing=True: return default AppConfig()

    Args:
        path: Explicit YAML file path.
        allow_missing: If True, returns defaults when file missing; otherwise raises.

    Returns:
        AppConfig instance
    """
    cfg_path: Path
    if path is None:
        cfg_path = _project_root() / "config" / "default.yaml"
    else:
        cfg_path = Path(path)

    if not cfg_path.exists():
        if allow_missing:
            return AppConfig()
        raise FileNotFoundError(f"Config file not found: {cfg_path}")

    with cfg_path.open("r", encoding="utf-8") as f:
        raw: Dict[str, Any] = yaml.safe_load(f) or {}

    try:
        return AppConfig.model_validate(raw)
    except ValidationError as e:
        # Re-raise with context to help users fix the YAML
        raise ValueError(f"Invalid configuration in {cfg_path}: {e}")

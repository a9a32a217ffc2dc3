"""
Utility Functions Module

- Logging setup (logging.py)
- Typed configuration and YAML loading (config.py)
"""

from .logging import setup_logger
from .config import AppConfig, load_config

__all__ = [
    "setup_logger",
    "AppConfig",
    "load_config",
]

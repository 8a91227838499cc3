"""
Runtime configuration, logging, and shared-access utilities for kdtreex.
"""

from kdtreex.config import RuntimeConfig, reset_runtime_config_cache, runtime_config
from kdtreex.logging import get_logger
from kdtreex.runtime.guard import ReadWriteLock

__all__ = [
    "RuntimeConfig",
    "runtime_config",
    "reset_runtime_config_cache",
    "get_logger",
    "ReadWriteLock",
]

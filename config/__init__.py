"""Configuration module for the AutoQA runner."""
from config.models import (
    AutoQAConfig,
    BrowserConfig,
    CleanupConfig,
    LoopConfig,
    OracleConfig,
    StorageConfig,
    load_config,
)

__all__ = [
    "AutoQAConfig",
    "BrowserConfig",
    "CleanupConfig",
    "LoopConfig",
    "OracleConfig",
    "StorageConfig",
    "load_config",
]

"""
Configuration module for skillpack.

Exports the main components for convenient imports.
"""

from .loader import load_config, resolve_repo_root
from .schema import (
    AppConfig,
    InstallConfig,
    LayoutConfig,
    LoggingConfig,
    ManifestConfig,
    PackagingConfig,
)

__all__ = [
    "load_config",
    "resolve_repo_root",
    "AppConfig",
    "InstallConfig",
    "LayoutConfig",
    "LoggingConfig",
    "ManifestConfig",
    "PackagingConfig",
]

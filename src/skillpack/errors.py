"""
Error taxonomy for skillpack.

Every error carries the process exit code the CLI should use when it
reaches the dispatcher boundary:

    1 -> usage error, bundle not found, invalid manifest
    2 -> filesystem failure (read, write, unsupported operation)
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .skills.validator import Finding


class SkillpackError(Exception):
    """Base error for all skillpack operations."""

    exit_code: int = 1


class NotFoundError(SkillpackError):
    """Raised when a bundle, its root directory or its manifest is missing.

    Attributes:
        available: Sorted names of the bundles that do exist, for display.
    """

    exit_code = 1

    def __init__(self, message: str, available: list[str] | None = None):
        super().__init__(message)
        self.available = sorted(available or [])


class ValidationError(SkillpackError):
    """Raised when a bundle's manifest has error-level findings."""

    exit_code = 1

    def __init__(self, message: str, findings: list[Finding] | None = None):
        super().__init__(message)
        self.findings = list(findings or [])


class ReadError(SkillpackError):
    """Raised when a bundle cannot be read (permissions, broken paths)."""

    exit_code = 2


class WriteError(SkillpackError):
    """Raised when a destination cannot be created or overwritten."""

    exit_code = 2


class UnsupportedOperationError(SkillpackError):
    """Raised when the platform or filesystem refuses to create symlinks."""

    exit_code = 2

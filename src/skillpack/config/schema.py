"""
Pydantic models for skillpack configuration.

Defines all configuration schemas using Pydantic v2 for validation,
defaults, and serialization.
"""

from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field, field_validator


class LoggingConfig(BaseModel):
    """Logging system configuration."""

    level: Literal["debug", "info", "human", "warn", "error"] = "human"
    file: Path | None = None
    verbose: int = 0

    model_config = {"extra": "forbid"}


class LayoutConfig(BaseModel):
    """Where skills live and where outputs are written.

    All relative directories are resolved against the repository root,
    except ``commands_dir`` which is relative to the install target.
    """

    repo_root: Path | None = Field(
        default=None,
        description="Repository root. If unset, it is auto-detected from the working directory.",
    )
    skills_dir: str = "skills"
    dist_dir: str = "dist"
    commands_dir: str = ".claude/commands"

    model_config = {"extra": "forbid"}


class ManifestConfig(BaseModel):
    """Manifest naming conventions and metadata limits."""

    candidates: list[str] = Field(
        default_factory=lambda: ["{name}.md", "SKILL.md"],
        description=(
            "Manifest filenames tried in order for each bundle. "
            "'{name}' is replaced with the bundle directory name."
        ),
    )
    supporting_dirs: list[str] = Field(default_factory=lambda: ["references"])
    description_max_length: int = Field(default=1024, ge=1)
    name_max_length: int = Field(default=64, ge=1)

    model_config = {"extra": "forbid"}

    @field_validator("candidates")
    @classmethod
    def _not_empty(cls, v: list[str]) -> list[str]:
        if not v:
            raise ValueError("at least one manifest candidate is required")
        return v


class InstallConfig(BaseModel):
    """Slash-command installation settings."""

    strip_suffixes: list[str] = Field(
        default_factory=lambda: ["-modelling", "-pattern", "-skill"],
        description="Trailing tokens removed (at most one) to derive the command name.",
    )
    default_mode: Literal["copy", "symlink"] = "copy"

    model_config = {"extra": "forbid"}


class PackagingConfig(BaseModel):
    """Archive packaging settings."""

    exclude: list[str] = Field(
        default_factory=lambda: [".DS_Store", "__pycache__", ".git"],
        description="Glob patterns matched against every path component; matches are never archived.",
    )

    model_config = {"extra": "forbid"}


class AppConfig(BaseModel):
    """Complete application configuration.

    This is the root of the configuration tree. It combines all sections
    and is the entry point for validation.
    """

    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    layout: LayoutConfig = Field(default_factory=LayoutConfig)
    manifest: ManifestConfig = Field(default_factory=ManifestConfig)
    install: InstallConfig = Field(default_factory=InstallConfig)
    packaging: PackagingConfig = Field(default_factory=PackagingConfig)

    model_config = {"extra": "forbid"}

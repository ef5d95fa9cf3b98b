"""
Skills Installer -- Installs a bundle's manifest as a slash command in a project.

The manifest lands at ``<target>/.claude/commands/<command_name><ext>``,
either as a byte copy or as a symlink to the absolute manifest path.
Re-running an install replaces the previous file; the source bundle is
never modified.
"""

import os
import shutil
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Literal

import structlog

from ..errors import UnsupportedOperationError, WriteError
from .loader import Bundle, resolve_content

logger = structlog.get_logger()

InstallMode = Literal["copy", "symlink"]

DEFAULT_STRIP_SUFFIXES: tuple[str, ...] = ("-modelling", "-pattern", "-skill")
DEFAULT_COMMANDS_DIR = ".claude/commands"


def derive_command_name(
    bundle_name: str,
    suffixes: Sequence[str] = DEFAULT_STRIP_SUFFIXES,
) -> str:
    """Strip one known trailing suffix from a bundle name.

    At most one suffix is removed, and never when that would leave an
    empty name.

        >>> derive_command_name("mongodb-data-modelling")
        'mongodb-data'
        >>> derive_command_name("foo-modelling-modelling")
        'foo-modelling'
    """
    for suffix in suffixes:
        if suffix and bundle_name.endswith(suffix) and len(bundle_name) > len(suffix):
            return bundle_name[: -len(suffix)]
    return bundle_name


@dataclass
class InstallTarget:
    """Destination project for an install."""

    target_dir: Path
    command_name: str
    mode: InstallMode = "copy"
    commands_dir: str = DEFAULT_COMMANDS_DIR

    @classmethod
    def for_bundle(
        cls,
        bundle: Bundle,
        target_dir: Path,
        mode: InstallMode = "copy",
        commands_dir: str = DEFAULT_COMMANDS_DIR,
        strip_suffixes: Sequence[str] = DEFAULT_STRIP_SUFFIXES,
    ) -> "InstallTarget":
        return cls(
            target_dir=Path(target_dir),
            command_name=derive_command_name(bundle.name, strip_suffixes),
            mode=mode,
            commands_dir=commands_dir,
        )

    @property
    def command_dir(self) -> Path:
        return self.target_dir / self.commands_dir


@dataclass
class InstalledLocation:
    """Result of a successful install."""

    path: Path
    source: Path
    command_name: str
    mode: InstallMode


def install(bundle: Bundle, target: InstallTarget) -> InstalledLocation:
    """Install ``bundle``'s manifest into ``target``.

    Raises:
        NotFoundError: If the bundle has no manifest.
        WriteError: If the command directory or the file cannot be written.
        UnsupportedOperationError: If symlinks are not available.
    """
    manifest, _ = resolve_content(bundle)

    command_dir = target.command_dir
    try:
        command_dir.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise WriteError(f"Cannot create {command_dir}: {e}") from e

    dest = command_dir / f"{target.command_name}{manifest.suffix}"
    if dest.is_dir() and not dest.is_symlink():
        raise WriteError(f"Destination is a directory: {dest}")

    if target.mode == "symlink":
        source = manifest.resolve()
        _replace_with_symlink(source, dest)
    else:
        source = manifest
        _replace_with_copy(source, dest)

    logger.info(
        "skill_installed",
        name=bundle.name,
        command=target.command_name,
        mode=target.mode,
        path=str(dest),
    )
    return InstalledLocation(
        path=dest,
        source=source,
        command_name=target.command_name,
        mode=target.mode,
    )


def _remove_existing(dest: Path) -> None:
    try:
        if dest.is_symlink() or dest.exists():
            dest.unlink()
    except OSError as e:
        raise WriteError(f"Cannot remove existing {dest}: {e}") from e


def _replace_with_copy(source: Path, dest: Path) -> None:
    # A symlink left by a previous --symlink install points back at the
    # manifest; writing through it would overwrite the source.
    if dest.is_symlink():
        _remove_existing(dest)
    try:
        shutil.copyfile(source, dest)
    except OSError as e:
        raise WriteError(f"Cannot copy {source} to {dest}: {e}") from e


def _replace_with_symlink(source: Path, dest: Path) -> None:
    if not hasattr(os, "symlink"):
        raise UnsupportedOperationError("Symlinks are not supported on this platform")

    _remove_existing(dest)
    try:
        os.symlink(source, dest)
    except NotImplementedError as e:
        raise UnsupportedOperationError(f"Symlinks are not supported: {e}") from e
    except OSError as e:
        # Windows without developer mode reports ERROR_PRIVILEGE_NOT_HELD (1314)
        if getattr(e, "winerror", None) == 1314:
            raise UnsupportedOperationError(
                f"Symlinks are not permitted here: {e}"
            ) from e
        raise WriteError(f"Cannot link {dest} -> {source}: {e}") from e

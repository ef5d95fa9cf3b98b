"""
Skills Packager -- Archives a bundle directory into ``<output_dir>/<name>.zip``.

The archive has the bundle directory as its single top-level entry, so
extracting it reproduces ``<name>/...``. Paths with any component that
matches an exclusion pattern (OS metadata, bytecode caches, VCS
directories) are left out.

The zip is written to a temporary file next to the destination and
renamed into place once it is closed, so a failure never leaves a
partial archive behind.
"""

import fnmatch
import os
import tempfile
import zipfile
from collections.abc import Sequence
from dataclasses import dataclass, field
from pathlib import Path

import structlog

from ..errors import ReadError, WriteError
from .loader import Bundle, resolve_content

logger = structlog.get_logger()

DEFAULT_EXCLUDE: tuple[str, ...] = (".DS_Store", "__pycache__", ".git")


@dataclass
class ArchiveEntry:
    """One entry written to an archive."""

    name: str
    size: int
    is_dir: bool = False


@dataclass
class PackageArtifact:
    """A written archive and the entries it contains, in write order."""

    source_bundle: Bundle
    output_path: Path
    excluded_patterns: frozenset[str] = field(default_factory=frozenset)
    entries: list[ArchiveEntry] = field(default_factory=list)

    @property
    def total_size(self) -> int:
        return sum(e.size for e in self.entries)


def _current_umask() -> int:
    umask = os.umask(0)
    os.umask(umask)
    return umask


def is_excluded(rel_path: str, patterns: Sequence[str]) -> bool:
    """True if any component of ``rel_path`` matches any pattern."""
    parts = [p for p in rel_path.replace(os.sep, "/").split("/") if p]
    return any(fnmatch.fnmatchcase(part, pat) for part in parts for pat in patterns)


def iter_bundle_files(root: Path, exclude: Sequence[str]):
    """Yield ``(path, relative_posix_path, is_dir)`` in sorted walk order.

    Excluded directories are pruned before they are descended into.
    Symlinked directories are followed, like ``zip -r``.

    Raises:
        ReadError: If any directory in the bundle cannot be listed, or a
            symlinked directory points back at one of its own ancestors.
    """

    def _on_error(err: OSError) -> None:
        raise ReadError(f"Cannot read {err.filename}: {err.strerror}") from err

    def _identity(path: Path) -> tuple[int, int]:
        try:
            st = os.stat(path)
        except OSError as e:
            raise ReadError(f"Cannot read {path}: {e}") from e
        return st.st_dev, st.st_ino

    # (st_dev, st_ino) of every directory on the path from root to dirpath
    ancestors: dict[str, frozenset[tuple[int, int]]] = {
        str(root): frozenset({_identity(root)}),
    }
    for dirpath, dirnames, filenames in os.walk(root, onerror=_on_error, followlinks=True):
        current = Path(dirpath)
        dirnames[:] = sorted(d for d in dirnames if not is_excluded(d, exclude))
        chain = ancestors.pop(dirpath)
        for d in dirnames:
            identity = _identity(current / d)
            if identity in chain:
                raise ReadError(f"Symlink loop in skill directory: {current / d}")
            ancestors[os.path.join(dirpath, d)] = chain | {identity}
        rel_dir = current.relative_to(root).as_posix()
        if rel_dir != ".":
            yield current, rel_dir, True
        for filename in sorted(filenames):
            if is_excluded(filename, exclude):
                continue
            path = current / filename
            rel = filename if rel_dir == "." else f"{rel_dir}/{filename}"
            yield path, rel, False


def package(
    bundle: Bundle,
    output_dir: Path,
    exclude: Sequence[str] = DEFAULT_EXCLUDE,
) -> PackageArtifact:
    """Archive ``bundle`` into ``output_dir/<bundle.name>.zip``.

    Raises:
        NotFoundError: If the bundle has no manifest.
        ReadError: If the bundle directory or one of its files cannot be read.
        WriteError: If the output directory or archive cannot be written.
    """
    resolve_content(bundle)
    if not bundle.root_path.is_dir():
        raise ReadError(f"Skill directory not readable: {bundle.root_path}")

    output_dir = Path(output_dir)
    try:
        output_dir.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise WriteError(f"Cannot create {output_dir}: {e}") from e

    output_path = output_dir / f"{bundle.name}.zip"
    try:
        if output_path.is_symlink() or output_path.exists():
            output_path.unlink()
        fd, tmp_name = tempfile.mkstemp(
            prefix=f".{bundle.name}.", suffix=".zip.part", dir=output_dir
        )
        os.close(fd)
    except OSError as e:
        raise WriteError(f"Cannot write {output_path}: {e}") from e

    tmp_path = Path(tmp_name)
    artifact = PackageArtifact(
        source_bundle=bundle,
        output_path=output_path,
        excluded_patterns=frozenset(exclude),
    )
    try:
        with zipfile.ZipFile(
            tmp_path, "w", compression=zipfile.ZIP_DEFLATED, strict_timestamps=False
        ) as zf:
            top = f"{bundle.name}/"
            zf.writestr(zipfile.ZipInfo(top), b"")
            artifact.entries.append(ArchiveEntry(name=top, size=0, is_dir=True))

            for path, rel, is_dir in iter_bundle_files(bundle.root_path, exclude):
                arcname = f"{bundle.name}/{rel}"
                if is_dir:
                    arcname += "/"
                    zf.write(path, arcname)
                    artifact.entries.append(ArchiveEntry(name=arcname, size=0, is_dir=True))
                    continue
                try:
                    zf.write(path, arcname)
                    size = path.stat().st_size
                except OSError as e:
                    raise ReadError(f"Cannot read {path}: {e}") from e
                artifact.entries.append(ArchiveEntry(name=arcname, size=size))
                logger.debug("archive_entry_written", entry=arcname, size=size)

        # mkstemp creates 0600; archives get the usual umask-derived mode
        os.chmod(tmp_path, 0o666 & ~_current_umask())
        os.replace(tmp_path, output_path)
    except OSError as e:
        raise WriteError(f"Cannot write {output_path}: {e}") from e
    finally:
        # no-op once the archive has been renamed into place
        tmp_path.unlink(missing_ok=True)

    logger.info(
        "skill_packaged",
        name=bundle.name,
        path=str(output_path),
        entries=len(artifact.entries),
    )
    return artifact

"""
Skills Loader -- Discovers bundles under a skills root and resolves their content.

A bundle is an immediate subdirectory of the skills root:

    skills/
        mongodb-data-modelling/
            mongodb-data-modelling.md   <- manifest ("{name}.md" or "SKILL.md")
            references/                 <- optional supporting files
                indexes.md

Nothing is cached between calls: every lookup reads the filesystem again.
"""

import os
from collections.abc import Iterator, Sequence
from dataclasses import dataclass, field
from pathlib import Path

import structlog

from ..errors import NotFoundError, ReadError

logger = structlog.get_logger()

DEFAULT_MANIFEST_CANDIDATES: tuple[str, ...] = ("{name}.md", "SKILL.md")
DEFAULT_SUPPORTING_DIRS: tuple[str, ...] = ("references",)


@dataclass
class Bundle:
    """A named skill directory and its convention-defined files."""

    name: str
    root_path: Path
    manifest_path: Path
    supporting_paths: list[Path] = field(default_factory=list)

    @classmethod
    def from_directory(
        cls,
        path: Path,
        manifest_candidates: Sequence[str] = DEFAULT_MANIFEST_CANDIDATES,
        supporting_dirs: Sequence[str] = DEFAULT_SUPPORTING_DIRS,
    ) -> "Bundle":
        """Build a Bundle view over ``path``.

        The manifest is the first candidate that exists as a file. When no
        candidate exists, ``manifest_path`` points at the first candidate so
        the validator can report where it was expected.
        """
        name = path.name
        candidates = [path / c.format(name=name) for c in manifest_candidates]
        manifest = next((c for c in candidates if c.is_file()), candidates[0])
        return cls(
            name=name,
            root_path=path,
            manifest_path=manifest,
            supporting_paths=_collect_supporting(path, supporting_dirs),
        )

    @property
    def has_manifest(self) -> bool:
        return self.manifest_path.is_file()


def _collect_supporting(root: Path, supporting_dirs: Sequence[str]) -> list[Path]:
    paths: list[Path] = []
    for dir_name in supporting_dirs:
        base = root / dir_name
        if base.is_dir():
            paths.extend(sorted(p for p in base.rglob("*") if p.is_file()))
    return paths


class BundleSequence:
    """Lazy, restartable view over the bundles of a skills root.

    Each iteration scans the directory again, in directory-entry order.
    Hidden directories are skipped.
    """

    def __init__(
        self,
        root: Path,
        manifest_candidates: Sequence[str] = DEFAULT_MANIFEST_CANDIDATES,
        supporting_dirs: Sequence[str] = DEFAULT_SUPPORTING_DIRS,
    ):
        self.root = Path(root)
        self.manifest_candidates = tuple(manifest_candidates)
        self.supporting_dirs = tuple(supporting_dirs)

    def __iter__(self) -> Iterator[Bundle]:
        try:
            with os.scandir(self.root) as entries:
                for entry in entries:
                    if entry.name.startswith(".") or not entry.is_dir():
                        continue
                    yield Bundle.from_directory(
                        Path(entry.path),
                        self.manifest_candidates,
                        self.supporting_dirs,
                    )
        except FileNotFoundError as e:
            raise NotFoundError(f"Skills directory not found: {self.root}") from e
        except OSError as e:
            raise ReadError(f"Cannot read skills directory {self.root}: {e}") from e

    def names(self) -> list[str]:
        """Sorted bundle names, for display and suggestions."""
        return sorted(b.name for b in self)


def list_bundles(
    root: Path,
    manifest_candidates: Sequence[str] = DEFAULT_MANIFEST_CANDIDATES,
    supporting_dirs: Sequence[str] = DEFAULT_SUPPORTING_DIRS,
) -> BundleSequence:
    """Enumerate the bundles under ``root``.

    Raises:
        NotFoundError: If ``root`` does not exist or is not a directory.
    """
    root = Path(root)
    if not root.is_dir():
        raise NotFoundError(f"Skills directory not found: {root}")
    return BundleSequence(root, manifest_candidates, supporting_dirs)


def resolve_bundle(
    root: Path,
    name: str,
    manifest_candidates: Sequence[str] = DEFAULT_MANIFEST_CANDIDATES,
    supporting_dirs: Sequence[str] = DEFAULT_SUPPORTING_DIRS,
) -> Bundle:
    """Look up a single bundle by exact name.

    Raises:
        NotFoundError: If no directory called ``name`` exists under ``root``.
            ``available`` lists the bundles that do exist.
    """
    bundles = list_bundles(root, manifest_candidates, supporting_dirs)
    path = Path(root) / name
    # Names with separators or dot-prefixes never denote a bundle
    if name and Path(name).name == name and not name.startswith(".") and path.is_dir():
        bundle = Bundle.from_directory(path, manifest_candidates, supporting_dirs)
        logger.debug("bundle_resolved", name=name, manifest=str(bundle.manifest_path))
        return bundle

    raise NotFoundError(
        f"Skill '{name}' not found at {path}",
        available=bundles.names(),
    )


def resolve_content(bundle: Bundle) -> tuple[Path, list[Path]]:
    """Return the manifest path and the supporting files of a bundle.

    Raises:
        NotFoundError: If the manifest file does not exist.
    """
    if not bundle.has_manifest:
        raise NotFoundError(f"Skill prompt file not found at {bundle.manifest_path}")
    return bundle.manifest_path, list(bundle.supporting_paths)


def read_content(bundle: Bundle) -> bytes:
    """Read the manifest verbatim.

    Raises:
        NotFoundError: If the manifest is missing.
        ReadError: If the manifest exists but cannot be read.
    """
    manifest, _ = resolve_content(bundle)
    try:
        data = manifest.read_bytes()
    except OSError as e:
        raise ReadError(f"Cannot read {manifest}: {e}") from e
    logger.debug("manifest_read", name=bundle.name, bytes=len(data))
    return data

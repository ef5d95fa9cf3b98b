"""
Tests for the bundle packager.

Covers:
- Archive layout: single top-level directory, sorted entries
- Exclusions: .DS_Store, __pycache__, .git and custom patterns
- Extract round-trip against the source tree
- Overwrite of previous artifacts, no leftovers on failure
"""

import os
import stat
import zipfile
from pathlib import Path

import pytest

from skillpack.errors import NotFoundError, ReadError, WriteError
from skillpack.skills.loader import Bundle, resolve_bundle
from skillpack.skills.packager import is_excluded, package


@pytest.fixture
def skills_root(tmp_path: Path) -> Path:
    root = tmp_path / "skills"
    bundle = root / "mongodb-data-modelling"
    (bundle / "references" / "deep").mkdir(parents=True)
    (bundle / "mongodb-data-modelling.md").write_text("# MongoDB\n\nModel data.\n")
    (bundle / "references" / "indexes.md").write_text("Indexes.\n")
    (bundle / "references" / "deep" / "notes.txt").write_bytes(b"\x00\x01binary\xff")
    (bundle / "empty").mkdir()

    # Artifacts that must never be archived
    (bundle / ".DS_Store").write_bytes(b"mac")
    (bundle / "references" / ".DS_Store").write_bytes(b"mac")
    (bundle / "__pycache__").mkdir()
    (bundle / "__pycache__" / "x.cpython-312.pyc").write_bytes(b"pyc")
    (bundle / ".git" / "objects").mkdir(parents=True)
    (bundle / ".git" / "HEAD").write_text("ref: refs/heads/main\n")

    broken = root / "broken"
    broken.mkdir()
    (broken / "README.md").write_text("no manifest")
    return root


def _tree(root: Path) -> dict[str, bytes | None]:
    """Map relative posix paths to bytes (None for directories)."""
    result: dict[str, bytes | None] = {}
    for path in sorted(root.rglob("*")):
        rel = path.relative_to(root).as_posix()
        result[rel] = None if path.is_dir() else path.read_bytes()
    return result


# ── Tests: is_excluded ───────────────────────────────────────────────


class TestIsExcluded:
    @pytest.mark.parametrize(
        "rel_path",
        [".DS_Store", "a/.DS_Store", "__pycache__", "x/__pycache__/y.pyc", ".git/HEAD"],
    )
    def test_excluded(self, rel_path: str):
        assert is_excluded(rel_path, [".DS_Store", "__pycache__", ".git"])

    @pytest.mark.parametrize("rel_path", ["a.md", "references/git.md", ".gitignore"])
    def test_included(self, rel_path: str):
        assert not is_excluded(rel_path, [".DS_Store", "__pycache__", ".git"])

    def test_glob_patterns(self):
        assert is_excluded("notes/tmp.swp", ["*.swp"])


# ── Tests: package ───────────────────────────────────────────────────


class TestPackage:
    def test_output_path(self, skills_root: Path, tmp_path: Path):
        bundle = resolve_bundle(skills_root, "mongodb-data-modelling")
        artifact = package(bundle, tmp_path / "dist")
        assert artifact.output_path == tmp_path / "dist" / "mongodb-data-modelling.zip"
        assert artifact.output_path.is_file()
        assert artifact.source_bundle is bundle

    def test_single_top_level_entry(self, skills_root: Path, tmp_path: Path):
        bundle = resolve_bundle(skills_root, "mongodb-data-modelling")
        artifact = package(bundle, tmp_path / "dist")
        with zipfile.ZipFile(artifact.output_path) as zf:
            tops = {name.split("/")[0] for name in zf.namelist()}
        assert tops == {"mongodb-data-modelling"}

    def test_entries_match_archive(self, skills_root: Path, tmp_path: Path):
        bundle = resolve_bundle(skills_root, "mongodb-data-modelling")
        artifact = package(bundle, tmp_path / "dist")
        with zipfile.ZipFile(artifact.output_path) as zf:
            assert [e.name for e in artifact.entries] == zf.namelist()
        assert artifact.entries[0].name == "mongodb-data-modelling/"
        assert artifact.total_size == sum(e.size for e in artifact.entries)

    def test_exclusions_absent(self, skills_root: Path, tmp_path: Path):
        bundle = resolve_bundle(skills_root, "mongodb-data-modelling")
        artifact = package(bundle, tmp_path / "dist")
        with zipfile.ZipFile(artifact.output_path) as zf:
            names = zf.namelist()
        assert not any(".DS_Store" in n for n in names)
        assert not any("__pycache__" in n for n in names)
        assert not any("/.git" in n for n in names)

    def test_round_trip(self, skills_root: Path, tmp_path: Path):
        bundle = resolve_bundle(skills_root, "mongodb-data-modelling")
        artifact = package(bundle, tmp_path / "dist")
        extract = tmp_path / "extract"
        with zipfile.ZipFile(artifact.output_path) as zf:
            zf.extractall(extract)

        expected = {
            rel: data
            for rel, data in _tree(bundle.root_path).items()
            if not is_excluded(rel, [".DS_Store", "__pycache__", ".git"])
        }
        assert _tree(extract / "mongodb-data-modelling") == expected
        assert "empty" in expected

    def test_custom_exclusions(self, skills_root: Path, tmp_path: Path):
        bundle = resolve_bundle(skills_root, "mongodb-data-modelling")
        artifact = package(bundle, tmp_path / "dist", exclude=["references"])
        names = [e.name for e in artifact.entries]
        assert not any("references" in n for n in names)
        assert "mongodb-data-modelling/.DS_Store" in names
        assert artifact.excluded_patterns == frozenset({"references"})

    def test_replaces_previous_artifact(self, skills_root: Path, tmp_path: Path):
        dist = tmp_path / "dist"
        dist.mkdir()
        (dist / "mongodb-data-modelling.zip").write_bytes(b"not a zip")
        bundle = resolve_bundle(skills_root, "mongodb-data-modelling")
        artifact = package(bundle, dist)
        assert zipfile.is_zipfile(artifact.output_path)
        assert sorted(p.name for p in dist.iterdir()) == ["mongodb-data-modelling.zip"]

    def test_repackaging_is_stable(self, skills_root: Path, tmp_path: Path):
        bundle = resolve_bundle(skills_root, "mongodb-data-modelling")
        first = [e.name for e in package(bundle, tmp_path / "dist").entries]
        second = [e.name for e in package(bundle, tmp_path / "dist").entries]
        assert first == second


# ── Tests: errors ────────────────────────────────────────────────────


class TestPackageErrors:
    def test_missing_manifest_writes_nothing(self, skills_root: Path, tmp_path: Path):
        bundle = resolve_bundle(skills_root, "broken")
        dist = tmp_path / "dist"
        with pytest.raises(NotFoundError):
            package(bundle, dist)
        assert not (dist / "broken.zip").exists()

    def test_unwritable_output_dir(self, skills_root: Path, tmp_path: Path):
        blocker = tmp_path / "dist"
        blocker.write_text("a file, not a directory")
        bundle = resolve_bundle(skills_root, "mongodb-data-modelling")
        with pytest.raises(WriteError):
            package(bundle, blocker)

    def test_no_partial_archive_on_failure(self, skills_root: Path, tmp_path: Path, monkeypatch):
        from skillpack.skills import packager as packager_mod

        def _boom(*args, **kwargs):
            raise OSError("disk full")

        monkeypatch.setattr(packager_mod.os, "replace", _boom)
        bundle = resolve_bundle(skills_root, "mongodb-data-modelling")
        dist = tmp_path / "dist"
        with pytest.raises(WriteError):
            package(bundle, dist)
        assert list(dist.iterdir()) == []


# ── Tests: symlinks and permissions ──────────────────────────────────


class TestPackageFilesystem:
    def test_follows_symlinked_directory(self, tmp_path: Path):
        shared = tmp_path / "shared"
        (shared / "nested").mkdir(parents=True)
        (shared / "ref.md").write_text("Shared reference.\n")
        (shared / "nested" / "more.md").write_text("More.\n")

        root = tmp_path / "skills"
        (root / "alpha").mkdir(parents=True)
        (root / "alpha" / "alpha.md").write_text("# Alpha\n")
        (root / "alpha" / "references").symlink_to(shared, target_is_directory=True)

        bundle = resolve_bundle(root, "alpha")
        artifact = package(bundle, tmp_path / "dist")
        names = [e.name for e in artifact.entries]
        assert "alpha/references/" in names
        assert "alpha/references/ref.md" in names
        assert "alpha/references/nested/more.md" in names

        extract = tmp_path / "extract"
        with zipfile.ZipFile(artifact.output_path) as zf:
            zf.extractall(extract)
        assert (extract / "alpha" / "references" / "ref.md").read_text() == "Shared reference.\n"
        archived = {
            p.relative_to(extract / "alpha").as_posix()
            for p in (extract / "alpha" / "references").rglob("*")
            if p.is_file()
        }
        supporting = {p.relative_to(bundle.root_path).as_posix() for p in bundle.supporting_paths}
        assert archived == supporting

    def test_symlink_loop_raises(self, tmp_path: Path):
        root = tmp_path / "skills"
        (root / "alpha" / "references").mkdir(parents=True)
        (root / "alpha" / "alpha.md").write_text("# Alpha\n")
        (root / "alpha" / "references" / "back").symlink_to(
            root / "alpha", target_is_directory=True
        )

        bundle = Bundle.from_directory(root / "alpha", supporting_dirs=[])
        dist = tmp_path / "dist"
        with pytest.raises(ReadError):
            package(bundle, dist)
        assert list(dist.iterdir()) == []

    def test_archive_mode_follows_umask(self, skills_root: Path, tmp_path: Path):
        bundle = resolve_bundle(skills_root, "mongodb-data-modelling")
        old_umask = os.umask(0o022)
        try:
            artifact = package(bundle, tmp_path / "dist")
        finally:
            os.umask(old_umask)
        assert stat.S_IMODE(artifact.output_path.stat().st_mode) == 0o644

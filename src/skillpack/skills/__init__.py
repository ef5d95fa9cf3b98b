"""
Skills -- discovery, validation, installation and packaging of skill bundles.
"""

from .installer import (
    InstalledLocation,
    InstallTarget,
    derive_command_name,
    install,
)
from .loader import (
    Bundle,
    BundleSequence,
    list_bundles,
    read_content,
    resolve_bundle,
    resolve_content,
)
from .packager import ArchiveEntry, PackageArtifact, package
from .validator import Finding, ValidationResult, validate

__all__ = [
    "ArchiveEntry",
    "Bundle",
    "BundleSequence",
    "Finding",
    "InstallTarget",
    "InstalledLocation",
    "PackageArtifact",
    "ValidationResult",
    "derive_command_name",
    "install",
    "list_bundles",
    "package",
    "read_content",
    "resolve_bundle",
    "resolve_content",
    "validate",
]

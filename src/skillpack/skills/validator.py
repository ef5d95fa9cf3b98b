"""
Bundle Validator -- Structural and metadata checks for a bundle's manifest.

Checks, in order:
1. The manifest exists at its convention-defined path (error).
2. The manifest is non-empty (error).
3. If the manifest opens with a YAML frontmatter block, it parses (error)
   and its ``name``/``description`` keys are well-formed (warnings).

Content-quality problems are always warnings; ``validate`` never raises.
"""

import re
from dataclasses import dataclass, field
from typing import Any, Literal

import structlog
import yaml

from ..errors import ValidationError
from .loader import Bundle

logger = structlog.get_logger()

Severity = Literal["error", "warning"]

_FRONTMATTER_RE = re.compile(r"^---[ \t]*\r?\n(.*?)\r?\n---[ \t]*(?:\r?\n|$)", re.DOTALL)
_NAME_RE = re.compile(r"^[a-z0-9]+(?:-[a-z0-9]+)*$")
_DISALLOWED_DESCRIPTION_CHARS = ("<", ">")


@dataclass
class Finding:
    """A single validation finding."""

    severity: Severity
    code: str
    message: str

    def __str__(self) -> str:
        return f"{self.severity} {self.code}: {self.message}"


@dataclass
class ValidationResult:
    """Findings for one bundle."""

    bundle_name: str
    findings: list[Finding] = field(default_factory=list)

    @property
    def errors(self) -> list[Finding]:
        return [f for f in self.findings if f.severity == "error"]

    @property
    def warnings(self) -> list[Finding]:
        return [f for f in self.findings if f.severity == "warning"]

    @property
    def ok(self) -> bool:
        """True when nothing blocks use of the bundle."""
        return not self.errors

    def raise_for_errors(self) -> None:
        """Raise ValidationError if any error-level finding exists."""
        if self.errors:
            summary = "; ".join(f.message for f in self.errors)
            raise ValidationError(
                f"Skill '{self.bundle_name}' is invalid: {summary}",
                findings=self.errors,
            )


def parse_frontmatter(text: str) -> tuple[dict[str, Any] | None, str]:
    """Split a manifest into (frontmatter, body).

    Returns:
        ``(None, text)`` when there is no frontmatter block.

    Raises:
        yaml.YAMLError: If the block exists but is not valid YAML.
    """
    match = _FRONTMATTER_RE.match(text)
    if not match:
        return None, text
    meta = yaml.safe_load(match.group(1))
    if meta is None:
        meta = {}
    return meta, text[match.end():]


def validate(
    bundle: Bundle,
    description_max_length: int = 1024,
    name_max_length: int = 64,
) -> ValidationResult:
    """Validate a bundle's manifest and return every finding."""
    result = ValidationResult(bundle_name=bundle.name)
    findings = result.findings

    if not bundle.has_manifest:
        findings.append(Finding(
            "error", "manifest_missing",
            f"manifest not found at {bundle.manifest_path}",
        ))
        return result

    try:
        raw = bundle.manifest_path.read_bytes()
    except OSError as e:
        findings.append(Finding("error", "manifest_unreadable", str(e)))
        return result

    if not raw.strip():
        findings.append(Finding(
            "error", "manifest_empty",
            f"manifest is empty: {bundle.manifest_path.name}",
        ))
        return result

    text = raw.decode("utf-8", errors="replace")
    try:
        meta, _body = parse_frontmatter(text)
    except yaml.YAMLError as e:
        findings.append(Finding(
            "error", "frontmatter_invalid",
            f"frontmatter is not valid YAML: {e}",
        ))
        return result

    if meta is None:
        return result

    if not isinstance(meta, dict):
        findings.append(Finding(
            "error", "frontmatter_invalid",
            "frontmatter must be a mapping of keys to values",
        ))
        return result

    findings.extend(_check_name(meta, bundle.name, name_max_length))
    findings.extend(_check_description(meta, description_max_length))

    for f in result.warnings:
        logger.info("validation_warning", bundle=bundle.name, code=f.code)
    return result


def _check_name(meta: dict[str, Any], dir_name: str, max_length: int) -> list[Finding]:
    if "name" not in meta:
        return [Finding("warning", "name_missing", "frontmatter has no 'name'")]

    name = meta["name"]
    if not isinstance(name, str):
        return [Finding("warning", "name_type", "'name' must be a string")]

    findings: list[Finding] = []
    if name != dir_name:
        findings.append(Finding(
            "warning", "name_mismatch",
            f"'name' is '{name}' but the directory is '{dir_name}'",
        ))
    if len(name) > max_length:
        findings.append(Finding(
            "warning", "name_too_long",
            f"'name' has {len(name)} characters (max {max_length})",
        ))
    if not _NAME_RE.match(name):
        findings.append(Finding(
            "warning", "name_chars",
            "'name' should use lowercase letters, digits and single hyphens",
        ))
    return findings


def _check_description(meta: dict[str, Any], max_length: int) -> list[Finding]:
    if "description" not in meta:
        return [Finding("warning", "description_missing", "frontmatter has no 'description'")]

    description = meta["description"]
    if not isinstance(description, str):
        return [Finding("warning", "description_type", "'description' must be a string")]

    findings: list[Finding] = []
    if not description.strip():
        findings.append(Finding("warning", "description_empty", "'description' is empty"))
    if len(description) > max_length:
        findings.append(Finding(
            "warning", "description_too_long",
            f"'description' has {len(description)} characters (max {max_length})",
        ))
    if any(c in description for c in _DISALLOWED_DESCRIPTION_CHARS):
        findings.append(Finding(
            "warning", "description_chars",
            "'description' must not contain angle brackets",
        ))
    return findings

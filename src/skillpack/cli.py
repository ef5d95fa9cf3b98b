"""
Main CLI for skillpack using Click.

Commands:
    load <name>                           print a skill's manifest to stdout
    install <name> [target] [--symlink]   install it as a slash command
    package <name>                        zip it into dist/<name>.zip
    package-all                           zip every skill, stopping at the first failure
    list / validate [name]                inspect the skills directory

Every command resolves the repository root and the bundle list fresh.
Library errors are converted to a message on stderr and an exit code here.
"""

import sys
from dataclasses import dataclass
from pathlib import Path
from typing import NoReturn

import click
import pydantic
import structlog
import yaml

from . import __version__
from .config import AppConfig, load_config, resolve_repo_root
from .errors import NotFoundError, SkillpackError
from .logging import HumanLog, configure_logging
from .skills import (
    Bundle,
    InstallTarget,
    PackageArtifact,
    ValidationResult,
    install,
    list_bundles,
    package,
    read_content,
    resolve_bundle,
    validate,
)

# Exit codes
EXIT_SUCCESS = 0
EXIT_FAILED = 1

logger = structlog.get_logger()


@dataclass
class Session:
    """Per-invocation state: configuration and the resolved repository root."""

    config: AppConfig
    repo_root: Path

    @property
    def skills_dir(self) -> Path:
        return self.repo_root / self.config.layout.skills_dir

    @property
    def dist_dir(self) -> Path:
        return self.repo_root / self.config.layout.dist_dir

    def bundles(self) -> list[Bundle]:
        """All bundles, sorted by name."""
        found = list_bundles(
            self.skills_dir,
            self.config.manifest.candidates,
            self.config.manifest.supporting_dirs,
        )
        return sorted(found, key=lambda b: b.name)

    def available_names(self) -> list[str]:
        try:
            return [b.name for b in self.bundles()]
        except SkillpackError:
            return []

    def resolve(self, name: str) -> Bundle:
        return resolve_bundle(
            self.skills_dir,
            name,
            self.config.manifest.candidates,
            self.config.manifest.supporting_dirs,
        )

    def validate(self, bundle: Bundle) -> ValidationResult:
        return validate(
            bundle,
            description_max_length=self.config.manifest.description_max_length,
            name_max_length=self.config.manifest.name_max_length,
        )

    def checked(self, bundle: Bundle) -> Bundle:
        """Validate a bundle before use; warnings are logged, errors raise."""
        result = self.validate(bundle)
        hlog = HumanLog(structlog.get_logger("skillpack.cli"))
        for finding in result.warnings:
            hlog.validation_warning(bundle.name, finding.message)
        result.raise_for_errors()
        return bundle


def _print_available(names: list[str], err: bool = False) -> None:
    click.echo("Available skills:", err=err)
    if not names:
        click.echo("  (none)", err=err)
    for name in names:
        click.echo(f"  {name}", err=err)


def _usage_and_exit(session: Session, usage: str, err: bool = False) -> NoReturn:
    """Print usage plus the available skills and exit with EXIT_FAILED."""
    click.echo(f"Usage: skillpack {usage}", err=err)
    click.echo("", err=err)
    _print_available(session.available_names(), err=err)
    sys.exit(EXIT_FAILED)


def _fail(error: SkillpackError, prefix: str = "Error") -> NoReturn:
    """Report a library error on stderr and exit with its code."""
    click.echo(f"{prefix}: {error}", err=True)
    if isinstance(error, NotFoundError) and error.available:
        click.echo("", err=True)
        _print_available(error.available, err=True)
    logger.debug("command_failed", error_type=type(error).__name__, exit_code=error.exit_code)
    sys.exit(error.exit_code)


@click.group()
@click.version_option(version=__version__, prog_name="skillpack")
@click.option(
    "-c",
    "--config",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Path to a YAML configuration file",
)
@click.option(
    "--root",
    type=click.Path(file_okay=False, path_type=Path),
    help="Repository root containing the skills directory (default: auto-detect)",
)
@click.option("-v", "--verbose", count=True, help="Technical logs on stderr (-v info, -vv debug)")
@click.option("--quiet", is_flag=True, help="Silence progress and technical logs")
@click.option(
    "--log-file",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Write JSON logs to this file",
)
@click.pass_context
def main(
    ctx: click.Context,
    config: Path | None,
    root: Path | None,
    verbose: int,
    quiet: bool,
    log_file: Path | None,
) -> None:
    """skillpack - Load, install and package skill bundles.

    A skill is a directory under skills/ holding a Markdown manifest
    (<name>.md or SKILL.md) and optional references/.
    """
    cli_args = {"root": root, "verbose": verbose, "log_file": log_file}
    try:
        app_config = load_config(config_path=config, cli_args=cli_args)
    except FileNotFoundError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(EXIT_FAILED)
    except (pydantic.ValidationError, yaml.YAMLError, ValueError) as e:
        click.echo(f"Invalid configuration: {e}", err=True)
        sys.exit(EXIT_FAILED)

    configure_logging(app_config.logging, quiet=quiet)
    repo_root = resolve_repo_root(app_config)
    logger.debug("repo_root_resolved", root=str(repo_root))
    ctx.obj = Session(config=app_config, repo_root=repo_root)


@main.command()
@click.argument("name", required=False)
@click.pass_obj
def load(session: Session, name: str | None) -> None:
    """Print a skill's manifest to stdout for piping into other tools.

    \b
    Examples:
      skillpack load mongodb-data-modelling | pbcopy
      claude --system "$(skillpack load mongodb-data-modelling)"
    """
    if not name:
        _usage_and_exit(session, "load <skill-name>", err=True)

    try:
        data = read_content(session.resolve(name))
    except SkillpackError as e:
        _fail(e)

    # bytes go to the binary stream untouched
    click.echo(data, nl=False)


@main.command("install")
@click.argument("name", required=False)
@click.argument(
    "target_dir",
    required=False,
    type=click.Path(file_okay=False, path_type=Path),
)
@click.option("--symlink", is_flag=True, help="Link instead of copying (stays in sync with the repo)")
@click.option("--copy", "force_copy", is_flag=True, help="Copy even if the configured default is symlink")
@click.pass_obj
def install_cmd(
    session: Session,
    name: str | None,
    target_dir: Path | None,
    symlink: bool,
    force_copy: bool,
) -> None:
    """Install a skill as a slash command in a project (default: current directory)."""
    if not name:
        _usage_and_exit(session, "install <skill-name> [target-project-dir] [--symlink]")
    if symlink and force_copy:
        click.echo("Error: --symlink and --copy are mutually exclusive", err=True)
        sys.exit(EXIT_FAILED)

    if symlink:
        mode = "symlink"
    elif force_copy:
        mode = "copy"
    else:
        mode = session.config.install.default_mode

    try:
        bundle = session.checked(session.resolve(name))
        target = InstallTarget.for_bundle(
            bundle,
            target_dir or Path.cwd(),
            mode=mode,
            commands_dir=session.config.layout.commands_dir,
            strip_suffixes=session.config.install.strip_suffixes,
        )
        location = install(bundle, target)
    except SkillpackError as e:
        _fail(e)

    command = f"/{location.command_name}"
    if location.mode == "symlink":
        click.echo(f"Linked skill as slash command: {command}")
        click.echo(f"  Symlink: {location.path} -> {location.source}")
    else:
        click.echo(f"Installed skill as slash command: {command}")
        click.echo(f"  Source: {location.source}")
        click.echo(f"  Target: {location.path}")
    click.echo("")
    click.echo("Usage:")
    click.echo(f"  {command} <your request>")


def _print_listing(artifact: PackageArtifact) -> None:
    click.echo(f"Packaged: {artifact.output_path}")
    click.echo("Contents:")
    click.echo(f"  {'Length':>9}  Name")
    click.echo(f"  {'-' * 9}  {'-' * 4}")
    for entry in artifact.entries:
        click.echo(f"  {entry.size:>9}  {entry.name}")
    click.echo(f"  {'-' * 9}  {'-' * 4}")
    click.echo(f"  {artifact.total_size:>9}  {len(artifact.entries)} entries")


@main.command("package")
@click.argument("name", required=False)
@click.option(
    "-o",
    "--output-dir",
    type=click.Path(file_okay=False, path_type=Path),
    help="Output directory (default: <repo>/dist)",
)
@click.pass_obj
def package_cmd(session: Session, name: str | None, output_dir: Path | None) -> None:
    """Package a single skill into a distributable zip file."""
    if not name:
        _usage_and_exit(session, "package <skill-name>")

    try:
        bundle = session.checked(session.resolve(name))
        artifact = package(
            bundle,
            output_dir or session.dist_dir,
            exclude=session.config.packaging.exclude,
        )
    except SkillpackError as e:
        _fail(e)

    _print_listing(artifact)


@main.command("package-all")
@click.option(
    "-o",
    "--output-dir",
    type=click.Path(file_okay=False, path_type=Path),
    help="Output directory (default: <repo>/dist)",
)
@click.pass_obj
def package_all_cmd(session: Session, output_dir: Path | None) -> None:
    """Package every skill into dist/<name>.zip, stopping at the first failure."""
    hlog = HumanLog(structlog.get_logger("skillpack.cli"))
    try:
        bundles = session.bundles()
    except SkillpackError as e:
        _fail(e)

    if not bundles:
        click.echo(f"No skills found in {session.skills_dir}", err=True)
        sys.exit(EXIT_FAILED)

    count = 0
    for bundle in bundles:
        hlog.package_start(bundle.name)
        try:
            artifact = package(
                session.checked(bundle),
                output_dir or session.dist_dir,
                exclude=session.config.packaging.exclude,
            )
        except SkillpackError as e:
            hlog.package_failed(bundle.name, str(e))
            _fail(e, prefix=f"Error packaging '{bundle.name}'")
        hlog.package_done(bundle.name, len(artifact.entries), str(artifact.output_path))
        click.echo(f"Packaged: {artifact.output_path}")
        count += 1

    click.echo(f"Done. Packaged {count} skill(s).")


@main.command("list")
@click.pass_obj
def list_cmd(session: Session) -> None:
    """List available skills with their manifest and validation status."""
    try:
        bundles = session.bundles()
    except SkillpackError as e:
        _fail(e)

    if not bundles:
        click.echo(f"No skills found in {session.skills_dir}")
        return

    for bundle in bundles:
        result = session.validate(bundle)
        manifest = bundle.manifest_path.name if bundle.has_manifest else "-"
        if result.errors:
            status = "invalid"
        elif result.warnings:
            status = f"{len(result.warnings)} warning(s)"
        else:
            status = "ok"
        click.echo(f"  {bundle.name:<32} {manifest:<28} {status}")


@main.command("validate")
@click.argument("name", required=False)
@click.pass_obj
def validate_cmd(session: Session, name: str | None) -> None:
    """Validate one skill, or every skill when no name is given."""
    try:
        bundles = [session.resolve(name)] if name else session.bundles()
    except SkillpackError as e:
        _fail(e)

    has_errors = False
    for bundle in bundles:
        result = session.validate(bundle)
        if not result.findings:
            click.echo(f"{bundle.name}: ok")
            continue
        for finding in result.findings:
            click.echo(f"{bundle.name}: {finding}")
        has_errors = has_errors or not result.ok

    sys.exit(EXIT_FAILED if has_errors else EXIT_SUCCESS)

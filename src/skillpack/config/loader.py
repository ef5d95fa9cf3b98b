"""
Configuration loader with deep merge.

Precedence order (lowest to highest):
1. Defaults (defined in the Pydantic schemas)
2. YAML file
3. Environment variables
4. CLI arguments

The merge is recursive so every key survives at every level.
"""

import os
from pathlib import Path
from typing import Any

import yaml

from .schema import AppConfig


def deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Recursively merge two dictionaries.

    Args:
        base: Base dictionary
        override: Dictionary whose values win on leaf conflicts

    Returns:
        New merged dictionary.

    Example:
        >>> deep_merge({"a": {"b": 1, "c": 2}}, {"a": {"b": 99}, "d": 4})
        {'a': {'b': 99, 'c': 2}, 'd': 4}
    """
    result = base.copy()
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def load_yaml_config(config_path: Path | None) -> dict[str, Any]:
    """Load configuration from a YAML file.

    Returns:
        Parsed dictionary, or an empty dict when no path is given.

    Raises:
        FileNotFoundError: If config_path does not exist.
        ValueError: If the file does not hold a mapping.
    """
    if not config_path:
        return {}

    if not config_path.exists():
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    with open(config_path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f)

    if not data:
        return {}
    if not isinstance(data, dict):
        raise ValueError(
            f"Configuration file must be a mapping, got {type(data).__name__}: {config_path}"
        )
    return data


def load_env_overrides() -> dict[str, Any]:
    """Load overrides from environment variables.

    Supported variables:
        SKILLPACK_ROOT: overrides layout.repo_root
        SKILLPACK_SKILLS_DIR: overrides layout.skills_dir
        SKILLPACK_DIST_DIR: overrides layout.dist_dir
        SKILLPACK_LOG_LEVEL: overrides logging.level
    """
    overrides: dict[str, Any] = {}

    if root := os.environ.get("SKILLPACK_ROOT"):
        overrides.setdefault("layout", {})["repo_root"] = root

    if skills_dir := os.environ.get("SKILLPACK_SKILLS_DIR"):
        overrides.setdefault("layout", {})["skills_dir"] = skills_dir

    if dist_dir := os.environ.get("SKILLPACK_DIST_DIR"):
        overrides.setdefault("layout", {})["dist_dir"] = dist_dir

    if log_level := os.environ.get("SKILLPACK_LOG_LEVEL"):
        overrides.setdefault("logging", {})["level"] = log_level.lower()

    return overrides


def apply_cli_overrides(config_dict: dict[str, Any], cli_args: dict[str, Any]) -> dict[str, Any]:
    """Apply overrides coming from CLI flags."""
    overrides: dict[str, Any] = {}

    if cli_args.get("root"):
        overrides.setdefault("layout", {})["repo_root"] = cli_args["root"]

    if cli_args.get("log_file"):
        overrides.setdefault("logging", {})["file"] = cli_args["log_file"]

    if cli_args.get("verbose") is not None:
        overrides.setdefault("logging", {})["verbose"] = cli_args["verbose"]

    return deep_merge(config_dict, overrides)


def load_config(
    config_path: Path | None = None,
    cli_args: dict[str, Any] | None = None,
) -> AppConfig:
    """Load and validate the complete application configuration.

    Args:
        config_path: Path to the YAML configuration file
        cli_args: Dictionary of CLI arguments

    Returns:
        Validated AppConfig

    Raises:
        FileNotFoundError: If config_path does not exist
        pydantic.ValidationError: If the merged configuration is invalid
    """
    cli_args = cli_args or {}

    yaml_config = load_yaml_config(config_path)
    merged = deep_merge(yaml_config, load_env_overrides())
    merged = apply_cli_overrides(merged, cli_args)

    return AppConfig(**merged)


def resolve_repo_root(config: AppConfig, start: Path | None = None) -> Path:
    """Resolve the repository root once per invocation.

    Uses ``layout.repo_root`` when configured. Otherwise walks up from
    ``start`` (default: the working directory) and returns the first
    directory that contains ``layout.skills_dir``, falling back to
    ``start`` itself.
    """
    if config.layout.repo_root is not None:
        return config.layout.repo_root.expanduser().resolve()

    start = (start or Path.cwd()).resolve()
    for candidate in (start, *start.parents):
        if (candidate / config.layout.skills_dir).is_dir():
            return candidate
    return start

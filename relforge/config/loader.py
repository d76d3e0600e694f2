# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Config loader: reads YAML from disk and produces a validated, frozen
RelforgeConfig.

The loading pipeline is linear:
  1. Read raw text from the file
  2. Parse as YAML into a plain dict
  3. Merge environment overrides into the `release:` section
  4. Hand the dict to pydantic for schema validation

Command-line overrides go through `apply_release_overrides`, which re-runs
validation on the merged result. A broken config stops the run before any
build starts.
"""

import os
from pathlib import Path
from typing import Any, Mapping

import yaml
from pydantic import ValidationError

from relforge.config.exceptions import ConfigLoadError, ConfigValidationError
from relforge.config.schema import RelforgeConfig

DEFAULT_CONFIG_VERSION = "1.0.0"

_TRUTHY = {"1", "true", "yes", "on"}


def _read_yaml_file(config_path: Path) -> dict[str, Any]:
    """
    Read a YAML file and return the parsed dict.

    Raises:
        ConfigLoadError: If the file doesn't exist, isn't readable, or isn't valid YAML.
    """
    if not config_path.exists():
        raise ConfigLoadError(f"Config file not found: {config_path}")

    if not config_path.is_file():
        raise ConfigLoadError(f"Config path is not a file: {config_path}")

    try:
        raw_text = config_path.read_text(encoding="utf-8")
    except OSError as err:
        raise ConfigLoadError(f"Cannot read config file {config_path}: {err}") from err

    try:
        parsed = yaml.safe_load(raw_text)
    except yaml.YAMLError as err:
        raise ConfigLoadError(f"Invalid YAML in {config_path}: {err}") from err

    if not isinstance(parsed, dict):
        raise ConfigLoadError(
            f"Config file must contain a YAML mapping (dict), got {type(parsed).__name__}"
        )

    return parsed


def environment_overrides(environ: Mapping[str, str] | None = None) -> dict[str, Any]:
    """
    Collect release overrides from environment variables.

      RELFORGE_TARGET_DIR  -> target_dir (CARGO_TARGET_DIR is used if unset)
      RELFORGE_VERBOSE=1   -> verbose
      RELFORGE_URL_BASE    -> url_base
    """
    env = os.environ if environ is None else environ
    overrides: dict[str, Any] = {}

    target_dir = env.get("RELFORGE_TARGET_DIR") or env.get("CARGO_TARGET_DIR")
    if target_dir:
        overrides["target_dir"] = target_dir

    verbose = env.get("RELFORGE_VERBOSE")
    if verbose is not None and verbose.strip().lower() in _TRUTHY:
        overrides["verbose"] = True

    url_base = env.get("RELFORGE_URL_BASE")
    if url_base:
        overrides["url_base"] = url_base

    return overrides


def _validate(raw_data: dict[str, Any], source: str) -> RelforgeConfig:
    try:
        return RelforgeConfig.model_validate(raw_data)
    except ValidationError as err:
        raise ConfigValidationError(f"Config validation failed for {source}:\n{err}") from err


def _merge_release(raw_data: dict[str, Any], updates: Mapping[str, Any]) -> dict[str, Any]:
    merged = dict(raw_data)
    release = dict(merged.get("release") or {})
    release.update(updates)
    merged["release"] = release
    return merged


def load_config(
    config_path: Path | None = None,
    environ: Mapping[str, str] | None = None,
) -> RelforgeConfig:
    """
    Load, validate, and freeze a release config.

    With no path, a default config is built (global section only) so the CLI
    can run purely from flags.

    Args:
        config_path: Path to a YAML config file, or None.
        environ: Environment to read overrides from. Defaults to os.environ.

    Returns:
        A fully validated, frozen RelforgeConfig instance.

    Raises:
        ConfigLoadError: File I/O or YAML parse failures.
        ConfigValidationError: Schema violations (missing fields, wrong types, unknown keys).
    """
    if config_path is None:
        raw_data: dict[str, Any] = {"global": {"config_version": DEFAULT_CONFIG_VERSION}}
        source = "<defaults>"
    else:
        raw_data = _read_yaml_file(config_path)
        source = str(config_path)

    overrides = environment_overrides(environ)
    if overrides:
        raw_data = _merge_release(raw_data, overrides)

    return _validate(raw_data, source)


def apply_release_overrides(
    config: RelforgeConfig, updates: Mapping[str, Any]
) -> RelforgeConfig:
    """
    Return a new config with `updates` merged into the release section.

    Keys whose value is None are ignored, so callers can pass every CLI flag
    through without filtering.
    """
    effective = {key: value for key, value in updates.items() if value is not None}
    if not effective:
        return config
    raw_data = config.model_dump(by_alias=True, mode="json")
    return _validate(_merge_release(raw_data, effective), "<overrides>")

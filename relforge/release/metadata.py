# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Package version lookup for installer metadata.

Order:
  1. metadata.version from the config, if pinned
  2. `version` from <root>/<package>/Cargo.toml, then <root>/Cargo.toml,
     reading [package] and then [workspace.package] in each
  3. "0.0.0"
"""

import logging
import tomllib
from pathlib import Path
from typing import Any, Optional

from relforge.logging.logger import get_logger

_logger: logging.Logger = get_logger(__name__)

FALLBACK_VERSION = "0.0.0"


def _version_from_manifest(manifest_path: Path) -> Optional[str]:
    if not manifest_path.is_file():
        return None
    try:
        with open(manifest_path, "rb") as handle:
            data: dict[str, Any] = tomllib.load(handle)
    except (OSError, tomllib.TOMLDecodeError) as err:
        _logger.warning(
            "Unreadable Cargo manifest", extra={"path": str(manifest_path), "error": str(err)}
        )
        return None

    package = data.get("package") or {}
    version = package.get("version")
    if isinstance(version, str):
        return version

    workspace_package = (data.get("workspace") or {}).get("package") or {}
    version = workspace_package.get("version")
    if isinstance(version, str):
        return version
    return None


class VersionResolver:
    """Caches one version per package for the run."""

    def __init__(self, project_root: Path, pinned: Optional[str] = None) -> None:
        self._root = project_root
        self._pinned = pinned
        self._cache: dict[str, str] = {}

    def __call__(self, package: str) -> str:
        if self._pinned:
            return self._pinned
        if package not in self._cache:
            self._cache[package] = self._lookup(package)
        return self._cache[package]

    def _lookup(self, package: str) -> str:
        for manifest in (self._root / package / "Cargo.toml", self._root / "Cargo.toml"):
            version = _version_from_manifest(manifest)
            if version is not None:
                return version
        _logger.warning(
            "No version found, using fallback",
            extra={"package": package, "version": FALLBACK_VERSION},
        )
        return FALLBACK_VERSION

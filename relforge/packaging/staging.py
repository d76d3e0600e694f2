# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Staging context: the one object that owns the output directory for a run.

It is threaded through every phase and accumulates what the run produced
(artifacts, manifests) and what went wrong (issues). Nothing else writes
into the output directory without going through it.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from relforge.errors import Issue, IssueKind
from relforge.logging.logger import get_logger
from relforge.models import Artifact, ArtifactKind, Manifest
from relforge.utils.filesystem import reset_directory
from relforge.utils.paths import ensure_directory, ensure_safe_output_dir

_logger: logging.Logger = get_logger(__name__)

LOGS_DIRNAME = "logs"


@dataclass
class StagingContext:
    output_dir: Path
    project_root: Path
    artifacts: list[Artifact] = field(default_factory=list)
    manifests: list[Manifest] = field(default_factory=list)
    issues: list[Issue] = field(default_factory=list)

    @property
    def logs_dir(self) -> Path:
        return self.output_dir / LOGS_DIRNAME

    def prepare(self) -> None:
        """
        Clear the output directory and recreate it with an empty logs dir.

        Raises:
            OutputDirectoryError: The directory is not safe to clear.
        """
        self.output_dir = ensure_safe_output_dir(self.output_dir, self.project_root)
        reset_directory(self.output_dir)
        ensure_directory(self.logs_dir)
        _logger.info("Output directory reset", extra={"output_dir": str(self.output_dir)})

    def log_path(self, name: str) -> Path:
        return ensure_directory(self.logs_dir) / name

    def add_artifact(self, artifact: Artifact) -> Artifact:
        # Same path means the same artifact rebuilt; keep one entry.
        self.artifacts = [existing for existing in self.artifacts if existing.path != artifact.path]
        self.artifacts.append(artifact)
        _logger.info(
            "Artifact staged",
            extra={"artifact": artifact.name, "kind": artifact.kind.value, "package": artifact.package},
        )
        return artifact

    def add_manifest(self, manifest: Manifest) -> Manifest:
        self.manifests = [existing for existing in self.manifests if existing.path != manifest.path]
        self.manifests.append(manifest)
        return manifest

    def record(self, issue: Issue) -> Issue:
        self.issues.append(issue)
        log = _logger.error if issue.is_error else _logger.warning
        log(
            issue.message,
            extra={"issue": issue.kind.value, "subject": issue.subject, "required": issue.required},
        )
        return issue

    def warn(self, kind: IssueKind, subject: str, message: str) -> Issue:
        return self.record(Issue(kind=kind, subject=subject, message=message, required=False))

    def artifacts_for(
        self, package: Optional[str] = None, kind: Optional[ArtifactKind] = None
    ) -> list[Artifact]:
        return [
            artifact
            for artifact in self.artifacts
            if (package is None or artifact.package == package)
            and (kind is None or artifact.kind == kind)
        ]

    @property
    def failed(self) -> bool:
        return any(issue.is_fatal for issue in self.issues)

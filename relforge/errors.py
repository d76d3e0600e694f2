# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Error taxonomy for relforge.

Two families live here:

  - Exceptions for failures that abort one unit of work (a build job, a
    sub-builder, a manifest). They are always caught at the unit boundary
    and converted into an Issue; nothing below the top-level run is allowed
    to take the whole release down.
  - Issue records for everything the final summary reports. Warnings are
    data, not exceptions: an unknown tag or a missing linker is written down
    and the run moves on.
"""

from dataclasses import dataclass
from enum import Enum


class RelforgeError(Exception):
    """Base for all relforge errors."""


class BuildError(RelforgeError):
    """The compiler exited non-zero for a build job."""

    def __init__(self, message: str, exit_code: int, diagnostics: str = "") -> None:
        super().__init__(message)
        self.exit_code = exit_code
        self.diagnostics = diagnostics


class ArtifactNotFoundError(RelforgeError):
    """
    The compiler exited zero but reported no executable.

    This points at a tooling mismatch (wrong package name, a library-only
    crate, a protocol change) rather than a compile failure.
    """


class PackagingError(RelforgeError):
    """An installer sub-builder could not produce its output."""


class ManifestError(RelforgeError):
    """A manifest could not be materialized (no artifact, hash failure, bad state)."""


class OutputDirectoryError(RelforgeError):
    """The configured output directory is not safe to clear."""


class IssueKind(str, Enum):
    RESOLUTION_WARNING = "resolution-warning"
    PROVISION_WARNING = "provision-warning"
    BUILD_ERROR = "build-error"
    ARTIFACT_NOT_FOUND = "artifact-not-found"
    PACKAGING_ERROR = "packaging-error"
    PACKAGING_WARNING = "packaging-warning"
    MANIFEST_ERROR = "manifest-error"


_ERROR_KINDS: frozenset[IssueKind] = frozenset(
    {
        IssueKind.BUILD_ERROR,
        IssueKind.ARTIFACT_NOT_FOUND,
        IssueKind.PACKAGING_ERROR,
        IssueKind.MANIFEST_ERROR,
    }
)


@dataclass(frozen=True)
class Issue:
    """
    One warning or error collected during a run.

    `required` only matters for build errors: a job whose toolchain could not
    be provisioned is still attempted, but its failure does not flip the exit
    status.
    """

    kind: IssueKind
    subject: str
    message: str
    required: bool = True

    @property
    def is_error(self) -> bool:
        return self.kind in _ERROR_KINDS

    @property
    def is_fatal(self) -> bool:
        """True when this issue makes the whole run exit non-zero."""
        return self.required and self.kind in (
            IssueKind.BUILD_ERROR,
            IssueKind.ARTIFACT_NOT_FOUND,
            IssueKind.PACKAGING_ERROR,
        )

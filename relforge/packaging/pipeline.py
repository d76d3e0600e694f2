# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Packaging pipeline.

Two duties:

  1. Per successful build: copy the raw binary and write the archive
     (binary + docs) into the output directory under the deterministic
     naming convention. These outputs are required: failing to write them
     is a packaging error that counts against the run.

  2. Per requested installer tag: run the sub-builder once per package,
     against the host build of that package. Each run is isolated, with its
     own scratch directory and its own log file. A failure becomes a
     packaging warning and the next sub-builder runs regardless.
"""

import logging
import shutil
import tempfile
from pathlib import Path
from typing import Callable, Iterable, Mapping, Optional

from relforge.config.schema import ReleaseConfig
from relforge.errors import Issue, IssueKind, PackagingError
from relforge.logging.logger import get_logger
from relforge.models import (
    Artifact,
    ArtifactKind,
    BuildJob,
    CpuFlavor,
    PlatformTarget,
    StepOutcome,
    StepStatus,
)
from relforge.packaging.archive import write_archive
from relforge.packaging.installers import InstallerRequest, create_installer
from relforge.packaging.installers.base import Installer
from relforge.packaging.naming import archive_name, host_alias_name, raw_binary_name
from relforge.packaging.staging import StagingContext
from relforge.runtime.environment import HostInfo
from relforge.toolchain.package_manager import WhichFn
from relforge.utils.filesystem import copy_executable
from relforge.utils.process import ToolRunner, run_tool

_logger: logging.Logger = get_logger(__name__)

VersionLookup = Callable[[str], str]


class PackagingPipeline:
    """
    Turns built executables into release artifacts.

    Args:
        staging: The run's staging context.
        release: Release settings (docs, archive format, metadata, ...).
        host: Host information; installers package the host triple's builds.
        host_target: Catalog entry for the host triple.
        version_for: Resolves a package's version for installer metadata.
        runner: External tool runner handed to sub-builders.
        which: PATH lookup handed to sub-builders.
        environ: Environment handed to sub-builders (LINUXDEPLOY, ...).
    """

    def __init__(
        self,
        staging: StagingContext,
        release: ReleaseConfig,
        host: HostInfo,
        host_target: PlatformTarget,
        version_for: VersionLookup,
        runner: ToolRunner = run_tool,
        which: WhichFn = shutil.which,
        environ: Optional[Mapping[str, str]] = None,
    ) -> None:
        self._staging = staging
        self._release = release
        self._host = host
        self._host_target = host_target
        self._version_for = version_for
        self._runner = runner
        self._which = which
        self._environ = environ
        self._docs: Optional[tuple[Path, ...]] = None
        self._host_builds: dict[str, tuple[CpuFlavor, Path, str]] = {}

    @property
    def docs(self) -> tuple[Path, ...]:
        """Doc files that exist. Missing ones are reported once and skipped."""
        if self._docs is None:
            found: list[Path] = []
            for entry in self._release.docs:
                path = self._staging.project_root / entry
                if path.is_file():
                    found.append(path)
                else:
                    self._staging.warn(
                        IssueKind.PACKAGING_WARNING, entry, f"doc file not found: {path}"
                    )
            self._docs = tuple(found)
        return self._docs

    def host_binary(self, package: str) -> Optional[Path]:
        build = self._host_builds.get(package)
        return build[1] if build is not None else None

    def _remember_host_build(self, job: BuildJob, staged: Path, binary_name: str) -> None:
        if str(job.target.triple) != self._host.triple:
            return
        current = self._host_builds.get(job.package)
        # The generic build is the one users install; native only fills a gap.
        if current is None or job.flavor == CpuFlavor.GENERIC:
            self._host_builds[job.package] = (job.flavor, staged, binary_name)

    def package_build(self, job: BuildJob, executable: Path) -> list[Artifact]:
        """
        Stage one successful build: raw copy, then archive unless raw-only.

        A failure is recorded as a packaging error on the job; the artifacts
        written before the failure stay staged.
        """
        staging = self._staging
        output_dir = staging.output_dir
        label = job.target.label
        produced: list[Artifact] = []

        try:
            raw_path = output_dir / raw_binary_name(job.package, job.target, job.flavor)
            copy_executable(executable, raw_path)
            # Later builds of the same triple reuse the compiler output path, so
            # installers and aliases read the staged copy.
            self._remember_host_build(job, raw_path, executable.name)
            produced.append(
                staging.add_artifact(Artifact(raw_path, ArtifactKind.RAW_BINARY, label, job.package))
            )

            if not self._release.raw_only:
                archive_path = output_dir / archive_name(
                    job.package, job.target, job.flavor, self._release.archive_format
                )
                write_archive(
                    archive_path,
                    self._archive_entries(executable, executable.name),
                    self._release.archive_format,
                )
                produced.append(
                    staging.add_artifact(Artifact(archive_path, ArtifactKind.ARCHIVE, label, job.package))
                )
        except (OSError, ValueError) as err:
            staging.record(
                Issue(
                    kind=IssueKind.PACKAGING_ERROR,
                    subject=job.key,
                    message=f"could not stage {job.key}: {err}",
                    required=job.required,
                )
            )
        return produced

    def _archive_entries(self, binary: Path, binary_name: str) -> list[tuple[Path, str, bool]]:
        entries = [(binary, binary_name, True)]
        entries += [(doc, doc.name, False) for doc in self.docs]
        return entries

    def package_host_aliases(self) -> list[Artifact]:
        """`<package>-<os>-<arch>.<ext>` archives of the host builds."""
        if self._release.raw_only:
            return []
        produced: list[Artifact] = []
        for package, (_flavor, staged, binary_name) in self._host_builds.items():
            path = self._staging.output_dir / host_alias_name(
                package, self._host_target, self._release.archive_format
            )
            try:
                write_archive(
                    path, self._archive_entries(staged, binary_name), self._release.archive_format
                )
            except OSError as err:
                self._staging.warn(
                    IssueKind.PACKAGING_WARNING, package, f"host alias archive failed: {err}"
                )
                continue
            produced.append(
                self._staging.add_artifact(
                    Artifact(path, ArtifactKind.ARCHIVE, self._host_target.label, package)
                )
            )
        return produced

    def run_installers(self, tags: Iterable[str], packages: Iterable[str]) -> list[StepOutcome]:
        """Run every requested sub-builder for every package, each in isolation."""
        packages = list(packages)
        outcomes: list[StepOutcome] = []
        for tag in tags:
            installer = create_installer(
                tag, environ=self._environ, runner=self._runner, which=self._which
            )
            reason = installer.unsupported_reason(self._host)
            if reason is not None:
                self._staging.warn(IssueKind.PACKAGING_WARNING, tag, f"skipped: {reason}")
                outcomes.append(StepOutcome(StepStatus.SKIPPED_UNSUPPORTED, reason))
                continue
            for package in packages:
                outcomes.append(self.run_installer(installer, package))
        return outcomes

    def run_installer(self, installer: Installer, package: str) -> StepOutcome:
        staging = self._staging
        subject = f"{installer.tag}:{package}"
        binary = self.host_binary(package)
        if installer.requires_binary and binary is None:
            detail = f"no host build of {package} to package"
            staging.warn(IssueKind.PACKAGING_WARNING, subject, f"skipped: {detail}")
            return StepOutcome(StepStatus.SKIPPED_UNSUPPORTED, detail)

        log_file = staging.log_path(installer.log_name)
        _logger.info("Running installer", extra={"installer": installer.tag, "package": package})

        scratch: Optional[tempfile.TemporaryDirectory[str]] = None
        try:
            scratch = tempfile.TemporaryDirectory(
                prefix=f"relforge-{installer.tag}-", ignore_cleanup_errors=True
            )
            request = InstallerRequest(
                package=package,
                binary=binary,
                target=self._host_target,
                version=self._version_for(package),
                metadata=self._release.metadata,
                output_dir=staging.output_dir,
                work_dir=Path(scratch.name),
                log_file=log_file,
                docs=self.docs,
                heartbeat_seconds=self._release.heartbeat_seconds,
            )
            output = installer.build(request)
        except (PackagingError, OSError) as err:
            with open(log_file, "a", encoding="utf-8") as handle:
                handle.write(f"[{subject}] failed: {err}\n")
            staging.warn(
                IssueKind.PACKAGING_WARNING,
                subject,
                f"{installer.tag} failed for {package}: {err} (see {log_file})",
            )
            return StepOutcome(StepStatus.FAILED_RECOVERABLE, str(err))
        finally:
            if scratch is not None:
                _discard_scratch(scratch, installer.tag)

        for path in output.files:
            staging.add_artifact(
                Artifact(path, ArtifactKind.INSTALLER, self._host_target.label, package)
            )
        for manifest in output.manifests:
            staging.add_manifest(manifest)
        return StepOutcome(
            StepStatus.SUCCESS,
            f"{installer.tag} built for {package}",
            outputs=tuple(output.files) + tuple(m.path for m in output.manifests),
        )


def _discard_scratch(scratch: tempfile.TemporaryDirectory[str], tag: str) -> None:
    # Busy mounts (flatpak-builder) or locked files (wix) can outlive the tool.
    try:
        scratch.cleanup()
    except OSError as err:
        _logger.warning(
            "Could not remove installer scratch directory",
            extra={"installer": tag, "path": scratch.name, "error": str(err)},
        )

# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Release orchestrator: one sequential pass from a tag list to a populated
output directory.

    resolve → provision → build (flavor × target × package) → package
            → installers → materialize → SHA256SUMS

Every phase below the run is isolated per unit of work. An unknown tag, a
missing linker, a failed build or a broken installer is written down as an
Issue and the pass moves on. Only required build jobs and their staging
decide whether the run as a whole succeeded.
"""

import logging
import shutil
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Mapping, Optional

from relforge.build.executor import BuildExecutor, StreamRunner
from relforge.build.matrix import expand_matrix
from relforge.config.schema import RelforgeConfig
from relforge.errors import (
    ArtifactNotFoundError,
    BuildError,
    Issue,
    IssueKind,
    RelforgeError,
)
from relforge.logging.logger import get_logger
from relforge.manifests.materializer import MaterializeResult, materialize_all
from relforge.models import (
    Artifact,
    ArtifactKind,
    BuildJob,
    Manifest,
    PlatformTarget,
    StepOutcome,
    StepStatus,
)
from relforge.packaging.pipeline import PackagingPipeline
from relforge.packaging.staging import StagingContext
from relforge.release.checksums import generate_checksums, write_checksum_file
from relforge.release.metadata import VersionResolver
from relforge.runtime.environment import HostInfo, safe_target_dir
from relforge.targets.catalog import target_for_triple
from relforge.targets.resolver import Resolution, resolve_targets
from relforge.toolchain.package_manager import WhichFn
from relforge.toolchain.provisioner import ToolchainProvisioner, unsupported_reason
from relforge.utils.paths import resolve_under
from relforge.utils.process import ToolRunner, run_tool, stream_tool

_logger: logging.Logger = get_logger(__name__)


class JobStatus(str, Enum):
    BUILT = "built"
    FAILED = "failed"
    NO_ARTIFACT = "no-artifact"
    PLANNED = "planned"


@dataclass(frozen=True)
class JobResult:
    job: BuildJob
    status: JobStatus
    executable: Optional[Path] = None
    detail: str = ""


@dataclass
class ReleaseReport:
    """Everything a run produced and everything that went wrong."""

    output_dir: Path
    host: HostInfo
    resolution: Resolution
    jobs: list[JobResult] = field(default_factory=list)
    artifacts: list[Artifact] = field(default_factory=list)
    manifests: list[Manifest] = field(default_factory=list)
    issues: list[Issue] = field(default_factory=list)
    installer_outcomes: list[StepOutcome] = field(default_factory=list)
    materialized: list[MaterializeResult] = field(default_factory=list)
    checksum_file: Optional[Path] = None
    dry_run: bool = False

    @property
    def succeeded(self) -> bool:
        return not any(issue.is_fatal for issue in self.issues)

    @property
    def warnings(self) -> list[Issue]:
        return [issue for issue in self.issues if not issue.is_error]

    @property
    def errors(self) -> list[Issue]:
        return [issue for issue in self.issues if issue.is_error]


def plan_targets(resolution: Resolution, host: HostInfo) -> list[PlatformTarget]:
    """
    Platform targets to build, host triple included when needed.

    The host triple is built first when no platform tag was requested (plain
    host release) or when any installer tag was (installers package the host
    build).
    """
    targets = list(resolution.platform_targets)
    needs_host = not targets or bool(resolution.installer_tags)
    if needs_host and all(str(t.triple) != host.triple for t in targets):
        targets.insert(0, target_for_triple(host.triple))
    return targets


def _build_root(config: RelforgeConfig, project_root: Path) -> Optional[Path]:
    release = config.release
    if release.target_dir:
        return resolve_under(project_root, release.target_dir)
    return safe_target_dir(project_root, config.global_config.project_name)


class ReleaseOrchestrator:
    """
    Runs one release.

    Args:
        config: Validated config (file, environment and CLI already merged).
        host: The machine we run on.
        cwd: Base for a relative project_root. Defaults to the process cwd.
        build_runner: Streaming runner for compiler invocations.
        tool_runner: Runner for provisioning and installer tools.
        which: PATH lookup.
        environ: Environment for tool lookups (LINUXDEPLOY, RUSTFLAGS, ...).
    """

    def __init__(
        self,
        config: RelforgeConfig,
        host: HostInfo,
        cwd: Optional[Path] = None,
        build_runner: StreamRunner = stream_tool,
        tool_runner: ToolRunner = run_tool,
        which: WhichFn = shutil.which,
        environ: Optional[Mapping[str, str]] = None,
    ) -> None:
        self._config = config
        self._release = config.release
        self._host = host
        self._build_runner = build_runner
        self._tool_runner = tool_runner
        self._which = which
        self._environ = environ
        base = cwd if cwd is not None else Path.cwd()
        self.project_root = resolve_under(base, self._release.project_root)
        self.output_dir = resolve_under(self.project_root, self._release.output_dir)

    def run(self, dry_run: bool = False) -> ReleaseReport:
        """
        Execute the release.

        Raises:
            RelforgeError: No packages configured.
            OutputDirectoryError: The output directory is unsafe to clear.
        """
        release = self._release
        if not release.packages:
            raise RelforgeError("No packages to build; set release.packages or pass --packages")

        resolution = resolve_targets(release.targets)
        staging = StagingContext(output_dir=self.output_dir, project_root=self.project_root)
        staging.issues.extend(resolution.warnings)
        report = ReleaseReport(
            output_dir=self.output_dir, host=self._host, resolution=resolution, dry_run=dry_run
        )

        if not dry_run:
            staging.prepare()
            report.output_dir = staging.output_dir

        targets = plan_targets(resolution, self._host)
        buildable, best_effort = self._provision(targets, staging, dry_run)

        jobs, skipped = expand_matrix(
            release.packages,
            buildable,
            release.cpu_flavors,
            self._host,
            best_effort_triples=best_effort,
            base_env=self._environ,
        )
        for target, flavor in skipped:
            staging.warn(
                IssueKind.PROVISION_WARNING,
                f"{target.triple}/{flavor.value}",
                f"{flavor.value} codegen is only built for the host triple; skipping {target.triple}",
            )

        _logger.info(
            "Release planned",
            extra={
                "packages": list(release.packages),
                "targets": [str(t.triple) for t in buildable],
                "flavors": [f.value for f in release.cpu_flavors],
                "jobs": len(jobs),
                "dry_run": dry_run,
            },
        )

        if dry_run:
            report.jobs = [JobResult(job, JobStatus.PLANNED) for job in jobs]
            report.issues = list(staging.issues)
            return report

        host_target = target_for_triple(self._host.triple)
        pipeline = PackagingPipeline(
            staging,
            release,
            self._host,
            host_target,
            version_for=VersionResolver(self.project_root, release.metadata.version),
            runner=self._tool_runner,
            which=self._which,
            environ=self._environ,
        )
        executor = BuildExecutor(
            release.cargo,
            self.project_root,
            target_dir=_build_root(self._config, self.project_root),
            log_dir=staging.logs_dir if release.verbose else None,
            heartbeat_seconds=release.heartbeat_seconds,
            runner=self._build_runner,
        )

        for job in jobs:
            report.jobs.append(self._build_one(job, executor, pipeline, staging))

        if release.host_alias:
            pipeline.package_host_aliases()

        report.installer_outcomes = pipeline.run_installers(
            resolution.installer_tags, release.packages
        )

        if release.url_base:
            results, failures = materialize_all(staging.manifests, staging.artifacts, release.url_base)
            report.materialized = results
            for manifest, err in failures:
                staging.record(
                    Issue(IssueKind.MANIFEST_ERROR, str(manifest.path.name), str(err), required=False)
                )
        elif staging.manifests:
            _logger.info(
                "No base URL; manifests keep their placeholders",
                extra={"manifests": [str(m.path) for m in staging.manifests]},
            )

        report.checksum_file = write_checksum_file(
            staging.output_dir, generate_checksums(staging.output_dir)
        )

        report.artifacts = list(staging.artifacts)
        report.manifests = list(staging.manifests)
        report.issues = list(staging.issues)
        _logger.info(
            "Release finished",
            extra={
                "succeeded": report.succeeded,
                "artifacts": len(report.artifacts),
                "installers": len(staging.artifacts_for(kind=ArtifactKind.INSTALLER)),
                "errors": len(report.errors),
                "warnings": len(report.warnings),
            },
        )
        return report

    def _provision(
        self, targets: list[PlatformTarget], staging: StagingContext, dry_run: bool
    ) -> tuple[list[PlatformTarget], set[str]]:
        """Split targets into buildable ones and the triples that are best-effort."""
        provisioner: Optional[ToolchainProvisioner] = None
        if self._release.provision and not dry_run:
            provisioner = ToolchainProvisioner(
                self._host,
                runner=self._tool_runner,
                which=self._which,
                log_file=staging.log_path("provision.log"),
                heartbeat_seconds=self._release.heartbeat_seconds,
            )

        buildable: list[PlatformTarget] = []
        best_effort: set[str] = set()
        for target in targets:
            triple = str(target.triple)
            if provisioner is not None:
                outcome = provisioner.provision(target)
            else:
                reason = unsupported_reason(target, self._host)
                outcome = (
                    StepOutcome(StepStatus.SKIPPED_UNSUPPORTED, reason)
                    if reason is not None
                    else StepOutcome(StepStatus.SUCCESS, "provisioning disabled")
                )

            if outcome.status == StepStatus.SKIPPED_UNSUPPORTED:
                staging.warn(IssueKind.PROVISION_WARNING, triple, f"skipping {triple}: {outcome.detail}")
                continue
            if outcome.status == StepStatus.FAILED_RECOVERABLE:
                staging.warn(
                    IssueKind.PROVISION_WARNING,
                    triple,
                    f"toolchain for {triple} not provisioned, building best-effort: {outcome.detail}",
                )
                best_effort.add(triple)
            buildable.append(target)
        return buildable, best_effort

    @staticmethod
    def _build_one(
        job: BuildJob,
        executor: BuildExecutor,
        pipeline: PackagingPipeline,
        staging: StagingContext,
    ) -> JobResult:
        try:
            executable = executor.execute(job)
        except BuildError as err:
            if err.diagnostics:
                _logger.error(
                    "Build diagnostics", extra={"job": job.key, "diagnostics": err.diagnostics}
                )
            staging.record(Issue(IssueKind.BUILD_ERROR, job.key, str(err), required=job.required))
            return JobResult(job, JobStatus.FAILED, detail=str(err))
        except ArtifactNotFoundError as err:
            staging.record(
                Issue(IssueKind.ARTIFACT_NOT_FOUND, job.key, str(err), required=job.required)
            )
            return JobResult(job, JobStatus.NO_ARTIFACT, detail=str(err))

        pipeline.package_build(job, executable)
        return JobResult(job, JobStatus.BUILT, executable=executable)


def run_release(
    config: RelforgeConfig,
    host: HostInfo,
    dry_run: bool = False,
    **kwargs,
) -> ReleaseReport:
    """Convenience wrapper: build an orchestrator and run it once."""
    return ReleaseOrchestrator(config, host, **kwargs).run(dry_run=dry_run)

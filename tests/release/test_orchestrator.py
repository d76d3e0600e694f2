# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
End-to-end release runs against the fake compiler.

These drive the whole pass (resolve, build, package, installers,
materialize, checksums) with real subprocesses but no real toolchain.
"""

import json
import zipfile
from pathlib import Path
from typing import Callable, Optional

import pytest

from relforge.config.schema import RelforgeConfig
from relforge.errors import IssueKind, RelforgeError
from relforge.release.checksums import CHECKSUM_FILENAME, verify_checksums
from relforge.release.orchestrator import (
    JobStatus,
    ReleaseOrchestrator,
    plan_targets,
    run_release,
)
from relforge.runtime.environment import HostInfo
from relforge.targets.resolver import resolve_targets
from relforge.utils.process import ToolResult

ConfigFactory = Callable[..., RelforgeConfig]


def no_tools(name: str) -> Optional[str]:
    return None


def refusing_runner(argv, **kwargs) -> ToolResult:
    raise AssertionError(f"no external tool expected, got {argv}")


def release(config: RelforgeConfig, host: HostInfo, **kwargs):
    kwargs.setdefault("tool_runner", refusing_runner)
    kwargs.setdefault("which", no_tools)
    kwargs.setdefault("environ", {})
    return run_release(config, host, **kwargs)


class TestHostRelease:
    def test_linux_gnu_generic_archive_and_raw_binary(
        self, make_config: ConfigFactory, linux_host: HostInfo, project_dir: Path
    ) -> None:
        report = release(make_config(), linux_host)

        dist = project_dir / "dist"
        assert report.succeeded
        assert report.output_dir == dist.resolve()
        assert (dist / "app-linux-x86_64-generic").is_file()
        with zipfile.ZipFile(dist / "app-linux-x86_64-generic.zip") as archive:
            assert archive.namelist() == ["app", "README.md"]
        assert [job.status for job in report.jobs] == [JobStatus.BUILT]

    def test_checksums_cover_top_level_artifacts(
        self, make_config: ConfigFactory, linux_host: HostInfo, project_dir: Path
    ) -> None:
        report = release(make_config(), linux_host)

        assert report.checksum_file == (project_dir / "dist" / CHECKSUM_FILENAME).resolve()
        listed = report.checksum_file.read_text(encoding="utf-8").splitlines()
        assert [line.split("  ", 1)[1] for line in listed] == [
            "app-linux-x86_64-generic",
            "app-linux-x86_64-generic.zip",
        ]
        assert verify_checksums(report.output_dir).is_valid

    def test_previous_output_is_cleared(
        self, make_config: ConfigFactory, linux_host: HostInfo, project_dir: Path
    ) -> None:
        stale = project_dir / "dist" / "old-release.zip"
        stale.parent.mkdir()
        stale.write_bytes(b"old")

        release(make_config(), linux_host)
        assert not stale.exists()

    def test_empty_target_list_builds_host(
        self, make_config: ConfigFactory, linux_host: HostInfo, project_dir: Path
    ) -> None:
        report = release(make_config(targets=[]), linux_host)
        assert [str(job.job.target.triple) for job in report.jobs] == [linux_host.triple]
        assert (project_dir / "dist" / "app-linux-x86_64-generic.zip").is_file()

    def test_native_flavor_builds_host_only(
        self, make_config: ConfigFactory, linux_host: HostInfo, project_dir: Path
    ) -> None:
        report = release(
            make_config(targets=["linux-gnu", "linux-musl"], cpu_flavors=["generic", "native"]),
            linux_host,
        )

        assert [job.job.key for job in report.jobs] == [
            "app/x86_64-unknown-linux-gnu/generic",
            "app/x86_64-unknown-linux-musl/generic",
            "app/x86_64-unknown-linux-gnu/native",
        ]
        assert (project_dir / "dist" / "app-linux-x86_64-native.zip").is_file()
        assert any(issue.kind == IssueKind.PROVISION_WARNING for issue in report.issues)
        assert report.succeeded


class TestResolutionWarnings:
    def test_unknown_tag_and_musl(
        self, make_config: ConfigFactory, linux_host: HostInfo, project_dir: Path
    ) -> None:
        report = release(make_config(targets=["unknown-tag", "linux-musl"]), linux_host)

        resolution_warnings = [
            issue for issue in report.issues if issue.kind == IssueKind.RESOLUTION_WARNING
        ]
        assert len(resolution_warnings) == 1
        assert (project_dir / "dist" / "app-linux-x86_64-musl-generic.zip").is_file()
        assert report.succeeded

    def test_musl_drops_default_features(
        self,
        make_config: ConfigFactory,
        linux_host: HostInfo,
        tmp_path: Path,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        cargo_log = tmp_path / "cargo-calls.jsonl"
        monkeypatch.setenv("FAKE_CARGO_LOG", str(cargo_log))

        release(make_config(targets=["linux-musl"]), linux_host)

        calls = [json.loads(line) for line in cargo_log.read_text(encoding="utf-8").splitlines()]
        assert len(calls) == 1
        assert "--no-default-features" in calls[0]["argv"]
        assert calls[0]["linker_vars"]["CARGO_TARGET_X86_64_UNKNOWN_LINUX_MUSL_LINKER"] == "musl-gcc"


class TestFailureIsolation:
    def test_one_failing_target_does_not_stop_the_others(
        self,
        make_config: ConfigFactory,
        linux_host: HostInfo,
        project_dir: Path,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        monkeypatch.setenv("FAKE_CARGO_FAIL", "x86_64-unknown-linux-musl")

        report = release(make_config(targets=["linux-musl", "linux-gnu"]), linux_host)

        dist = project_dir / "dist"
        assert not report.succeeded
        assert (dist / "app-linux-x86_64-generic.zip").is_file()
        assert not (dist / "app-linux-x86_64-musl-generic.zip").exists()
        assert [job.status for job in report.jobs] == [JobStatus.FAILED, JobStatus.BUILT]
        errors = [issue for issue in report.errors if issue.kind == IssueKind.BUILD_ERROR]
        assert [issue.subject for issue in errors] == ["app/x86_64-unknown-linux-musl/generic"]

    def test_no_executable_reported(
        self,
        make_config: ConfigFactory,
        linux_host: HostInfo,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        monkeypatch.setenv("FAKE_CARGO_NO_BIN", "app")

        report = release(make_config(), linux_host)

        assert not report.succeeded
        assert [job.status for job in report.jobs] == [JobStatus.NO_ARTIFACT]
        assert report.errors[0].kind == IssueKind.ARTIFACT_NOT_FOUND

    def test_failed_installer_is_only_a_warning(
        self, make_config: ConfigFactory, linux_host: HostInfo, project_dir: Path
    ) -> None:
        report = release(make_config(targets=["linux-gnu", "linux-deb", "homebrew"]), linux_host)

        assert report.succeeded
        assert (project_dir / "dist" / "app-linux-x86_64-generic.zip").is_file()
        assert (project_dir / "dist" / "brew" / "app.rb").is_file()
        assert any(
            issue.kind == IssueKind.PACKAGING_WARNING and issue.subject == "linux-deb:app"
            for issue in report.issues
        )

    def test_unsupported_triple_is_skipped(
        self, make_config: ConfigFactory, linux_host: HostInfo
    ) -> None:
        report = release(make_config(targets=["linux-gnu", "macos-aarch64"]), linux_host)

        assert report.succeeded
        assert [str(job.job.target.triple) for job in report.jobs] == [linux_host.triple]
        assert any(issue.subject == "aarch64-apple-darwin" for issue in report.warnings)


class TestMaterialization:
    def test_manifests_materialized_when_url_base_set(
        self, make_config: ConfigFactory, linux_host: HostInfo, project_dir: Path
    ) -> None:
        report = release(
            make_config(
                targets=["linux-gnu", "homebrew", "scoop"],
                url_base="https://dl.example.com/v1.2.3",
            ),
            linux_host,
        )

        formula = (project_dir / "dist" / "brew" / "app.rb").read_text(encoding="utf-8")
        assert 'url "https://dl.example.com/v1.2.3/app-linux-x86_64-generic.zip"' in formula
        assert "__URL_TARBALL__" not in formula
        assert [r.manifest.path.name for r in report.materialized] == ["app.rb"]

        # No Windows artifact for scoop: a non-fatal manifest error.
        manifest_errors = [i for i in report.issues if i.kind == IssueKind.MANIFEST_ERROR]
        assert [i.subject for i in manifest_errors] == ["app.json"]
        assert report.succeeded

    def test_placeholders_kept_without_url_base(
        self, make_config: ConfigFactory, linux_host: HostInfo, project_dir: Path
    ) -> None:
        report = release(make_config(targets=["homebrew"]), linux_host)

        formula = (project_dir / "dist" / "brew" / "app.rb").read_text(encoding="utf-8")
        assert "__URL_TARBALL__" in formula
        assert report.materialized == []


class TestRunGuards:
    def test_no_packages(self, make_config: ConfigFactory, linux_host: HostInfo) -> None:
        with pytest.raises(RelforgeError, match="No packages"):
            release(make_config(packages=[]), linux_host)

    def test_dry_run_builds_and_writes_nothing(
        self, make_config: ConfigFactory, linux_host: HostInfo, project_dir: Path
    ) -> None:
        report = release(make_config(targets=["linux-gnu", "linux-musl"]), linux_host, dry_run=True)

        assert report.dry_run
        assert [job.status for job in report.jobs] == [JobStatus.PLANNED, JobStatus.PLANNED]
        assert not (project_dir / "dist").exists()

    def test_relative_project_root_uses_cwd(
        self, make_config: ConfigFactory, linux_host: HostInfo, project_dir: Path
    ) -> None:
        config = make_config(project_root="project")
        orchestrator = ReleaseOrchestrator(config, linux_host, cwd=project_dir.parent)
        assert orchestrator.project_root == project_dir.resolve()
        assert orchestrator.output_dir == (project_dir / "dist").resolve()


class TestPlanTargets:
    def test_installers_pull_in_host(self, linux_host: HostInfo) -> None:
        targets = plan_targets(resolve_targets("linux-musl,linux-deb"), linux_host)
        assert [str(t.triple) for t in targets] == [linux_host.triple, "x86_64-unknown-linux-musl"]

    def test_platform_only_list_is_kept(self, linux_host: HostInfo) -> None:
        targets = plan_targets(resolve_targets("linux-musl"), linux_host)
        assert [str(t.triple) for t in targets] == ["x86_64-unknown-linux-musl"]

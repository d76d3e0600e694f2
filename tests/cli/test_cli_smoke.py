# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
CLI smoke tests.

CLI tests must verify:
  - commands execute
  - exit codes are correct
  - help text exists

We use subprocess to test the actual CLI entrypoint the way a user would.
This catches issues that unit tests miss, like broken imports or entrypoint
registration. Builds go through the fake compiler, never a real cargo.
"""

import os
import subprocess
import sys
import textwrap
from pathlib import Path
from typing import Optional

import pytest

from relforge.runtime.environment import detect_host


def _clean_env(**extra: str) -> dict[str, str]:
    env = {
        key: value
        for key, value in os.environ.items()
        if not key.startswith(("RELFORGE_", "FAKE_CARGO_")) and key != "CARGO_TARGET_DIR"
    }
    env.update(extra)
    return env


def _run_cli(
    *args: str, env: Optional[dict[str, str]] = None, timeout: int = 10
) -> subprocess.CompletedProcess[str]:
    """Run `relforge` with the given arguments and capture output."""
    return subprocess.run(
        [sys.executable, "-m", "relforge.cli.main", *args],
        capture_output=True,
        text=True,
        timeout=timeout,
        env=env if env is not None else _clean_env(),
    )


def _plain_lines(stdout: str) -> list[str]:
    """Command output without the JSON log lines that share stdout."""
    return [line for line in stdout.splitlines() if line and not line.startswith("{")]


@pytest.fixture()
def release_config(tmp_path: Path, project_dir: Path, fake_cargo: list[str]) -> Path:
    """A release config that builds `app` for the host with the fake compiler."""
    command = ", ".join(f'"{part}"' for part in fake_cargo)
    content = textwrap.dedent(f"""\
        global:
          config_version: "1.0.0"
          project_name: "app"
          log_level: "WARNING"
        release:
          project_root: "{project_dir}"
          packages: [app]
          targets: []
          output_dir: dist
          provision: false
          target_dir: "{tmp_path / 'cargo-target'}"
          cargo:
            command: [{command}]
    """)
    config_file = tmp_path / "release.yaml"
    config_file.write_text(content, encoding="utf-8")
    return config_file


class TestHelpTexts:
    """Every subcommand must have working --help output."""

    @pytest.mark.parametrize(
        "subcommand",
        ["package", "resolve", "materialize", "verify", "info"],
    )
    def test_subcommand_help_exits_zero(self, subcommand: str) -> None:
        result = _run_cli(subcommand, "--help")
        assert result.returncode == 0
        assert subcommand in result.stdout.lower() or "usage" in result.stdout.lower()

    def test_root_help_exits_with_user_error(self) -> None:
        """Running relforge with no args should show help and exit with USER_ERROR (1)."""
        result = _run_cli()
        assert result.returncode == 1
        assert "usage" in result.stdout.lower()

    def test_unknown_subcommand_fails(self) -> None:
        result = _run_cli("publish")
        assert result.returncode != 0


class TestBasicCommands:
    def test_info_exits_zero(self) -> None:
        result = _run_cli("info", timeout=30)
        assert result.returncode == 0

    def test_resolve_prints_tags(self) -> None:
        result = _run_cli("resolve", "--targets", "linux-gnu,bogus,linux-gnu,windows-msvc")
        assert result.returncode == 0
        assert _plain_lines(result.stdout) == ["linux-gnu", "windows-msvc"]

    def test_missing_config_is_config_error(self, tmp_path: Path) -> None:
        result = _run_cli("resolve", "--config", str(tmp_path / "absent.yaml"))
        assert result.returncode == 2

    def test_invalid_config_is_config_error(self, invalid_config_file: Path) -> None:
        result = _run_cli("info", "--config", str(invalid_config_file))
        assert result.returncode == 2

    def test_materialize_without_url_is_user_error(self, tmp_path: Path) -> None:
        result = _run_cli("materialize", "--output-dir", str(tmp_path))
        assert result.returncode == 1

    def test_verify_missing_output_dir_is_user_error(self, tmp_path: Path) -> None:
        result = _run_cli("verify", "--output-dir", str(tmp_path / "nowhere"))
        assert result.returncode == 1


class TestPackageCommand:
    def test_package_then_verify(self, release_config: Path, project_dir: Path) -> None:
        result = _run_cli("package", "--config", str(release_config), timeout=60)
        assert result.returncode == 0, result.stdout + result.stderr
        assert "Status: OK" in result.stdout

        dist = project_dir / "dist"
        assert (dist / "SHA256SUMS").is_file()
        assert list(dist.glob("app-*-generic.zip"))

        verify = _run_cli("verify", "--config", str(release_config), timeout=30)
        assert verify.returncode == 0

    def test_tampered_output_fails_verification(
        self, release_config: Path, project_dir: Path
    ) -> None:
        assert _run_cli("package", "--config", str(release_config), timeout=60).returncode == 0
        archive = next((project_dir / "dist").glob("app-*-generic.zip"))
        archive.write_bytes(b"tampered")

        result = _run_cli("verify", "--config", str(release_config), timeout=30)
        assert result.returncode == 4

    def test_build_failure_exits_build_failed(self, release_config: Path) -> None:
        host = detect_host()
        env = _clean_env(FAKE_CARGO_FAIL=host.triple)
        result = _run_cli("package", "--config", str(release_config), env=env, timeout=60)
        assert result.returncode == 5
        assert "Status: FAILED" in result.stdout

    def test_no_packages_is_user_error(self, release_config: Path) -> None:
        result = _run_cli("package", "--config", str(release_config), "--packages", "", timeout=30)
        assert result.returncode == 1

    def test_dry_run_builds_nothing(self, release_config: Path, project_dir: Path) -> None:
        result = _run_cli("package", "--config", str(release_config), "--dry-run", timeout=30)
        assert result.returncode == 0
        assert "Release plan" in result.stdout
        assert not (project_dir / "dist" / "SHA256SUMS").exists()

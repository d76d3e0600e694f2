# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Shared pytest fixtures for relforge tests.

Fixtures here are available to every test file automatically.
We keep them minimal — just the stuff that multiple test modules need.

Integration tests never run a real compiler: `fake_cargo` points at a small
script that answers like `cargo build --message-format=json` would.
"""

import sys
import textwrap
from pathlib import Path
from typing import Any, Callable

import pytest

from relforge.config.schema import RelforgeConfig
from relforge.runtime.environment import HostInfo

FAKE_CARGO = Path(__file__).parent / "fake_cargo.py"


@pytest.fixture()
def tmp_config_file(tmp_path: Path) -> Path:
    """
    Create a minimal valid config YAML file in a temp directory.

    This is the smallest config that passes schema validation.
    Tests that need specific config values should write their own files.
    """
    config_content = textwrap.dedent("""\
        global:
          config_version: "1.0.0"
          project_name: "relforge-test"
          log_level: "DEBUG"
    """)
    config_file = tmp_path / "test_config.yaml"
    config_file.write_text(config_content, encoding="utf-8")
    return config_file


@pytest.fixture()
def invalid_config_file(tmp_path: Path) -> Path:
    """A config file that's valid YAML but fails schema validation (missing required field)."""
    config_content = textwrap.dedent("""\
        global:
          project_name: "relforge-test"
    """)
    config_file = tmp_path / "invalid_config.yaml"
    config_file.write_text(config_content, encoding="utf-8")
    return config_file


@pytest.fixture()
def broken_yaml_file(tmp_path: Path) -> Path:
    """A file that isn't valid YAML at all."""
    config_file = tmp_path / "broken.yaml"
    config_file.write_text("{{not: yaml: at: all:::", encoding="utf-8")
    return config_file


@pytest.fixture()
def fake_cargo() -> list[str]:
    """Compiler command prefix that runs the fake cargo script."""
    return [sys.executable, str(FAKE_CARGO)]


@pytest.fixture()
def project_dir(tmp_path: Path) -> Path:
    """A minimal Cargo workspace: a root manifest with a version and a README."""
    project = tmp_path / "project"
    project.mkdir()
    (project / "Cargo.toml").write_text(
        textwrap.dedent("""\
            [workspace]
            members = ["app"]

            [workspace.package]
            version = "1.2.3"
        """),
        encoding="utf-8",
    )
    (project / "README.md").write_text("# app\n", encoding="utf-8")
    return project


@pytest.fixture()
def linux_host() -> HostInfo:
    return HostInfo(os_tag="linux", arch="x86_64", triple="x86_64-unknown-linux-gnu")


@pytest.fixture()
def make_config(
    tmp_path: Path, project_dir: Path, fake_cargo: list[str]
) -> Callable[..., RelforgeConfig]:
    """
    Factory for release configs wired to the fake compiler.

    Keyword arguments override fields of the release section.
    """

    def _make(**release: Any) -> RelforgeConfig:
        section: dict[str, Any] = {
            "project_root": str(project_dir),
            "packages": ["app"],
            "targets": ["linux-gnu"],
            "output_dir": "dist",
            "provision": False,
            "target_dir": str(tmp_path / "cargo-target"),
            "heartbeat_seconds": 30.0,
            "cargo": {"command": list(fake_cargo)},
        }
        section.update(release)
        return RelforgeConfig.model_validate(
            {"global": {"config_version": "1.0.0", "project_name": "app"}, "release": section}
        )

    return _make

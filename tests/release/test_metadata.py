# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""Tests for package version lookup from Cargo manifests."""

from pathlib import Path

from relforge.release.metadata import FALLBACK_VERSION, VersionResolver


def write_manifest(path: Path, content: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")


class TestVersionResolver:
    def test_pinned_version_wins(self, tmp_path: Path) -> None:
        write_manifest(tmp_path / "Cargo.toml", '[package]\nname = "app"\nversion = "0.1.0"\n')
        assert VersionResolver(tmp_path, pinned="9.9.9")("app") == "9.9.9"

    def test_member_manifest_before_root(self, tmp_path: Path) -> None:
        write_manifest(tmp_path / "Cargo.toml", '[workspace.package]\nversion = "1.0.0"\n')
        write_manifest(tmp_path / "cli" / "Cargo.toml", '[package]\nname = "cli"\nversion = "2.0.0"\n')

        resolve = VersionResolver(tmp_path)
        assert resolve("cli") == "2.0.0"
        assert resolve("gui") == "1.0.0"

    def test_inherited_workspace_version(self, tmp_path: Path) -> None:
        write_manifest(tmp_path / "Cargo.toml", '[workspace.package]\nversion = "3.1.4"\n')
        write_manifest(
            tmp_path / "cli" / "Cargo.toml",
            '[package]\nname = "cli"\nversion.workspace = true\n',
        )
        assert VersionResolver(tmp_path)("cli") == "3.1.4"

    def test_fallback_when_nothing_found(self, tmp_path: Path) -> None:
        assert VersionResolver(tmp_path)("app") == FALLBACK_VERSION

    def test_broken_manifest_falls_through(self, tmp_path: Path) -> None:
        write_manifest(tmp_path / "cli" / "Cargo.toml", "[package\nbroken")
        write_manifest(tmp_path / "Cargo.toml", '[package]\nname = "root"\nversion = "0.5.0"\n')
        assert VersionResolver(tmp_path)("cli") == "0.5.0"

    def test_results_are_cached(self, tmp_path: Path) -> None:
        write_manifest(tmp_path / "Cargo.toml", '[package]\nname = "app"\nversion = "1.0.0"\n')
        resolve = VersionResolver(tmp_path)
        assert resolve("app") == "1.0.0"

        write_manifest(tmp_path / "Cargo.toml", '[package]\nname = "app"\nversion = "2.0.0"\n')
        assert resolve("app") == "1.0.0"

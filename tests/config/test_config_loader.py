# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Tests for the config loader, the entry point for all config loading in relforge.

We test four things:
  1. Valid YAML loads into a frozen, correct config object
  2. Schema violations raise ConfigValidationError
  3. Broken or missing files raise ConfigLoadError
  4. Environment and command-line overrides produce a new, re-validated config
"""

import textwrap
from pathlib import Path

import pytest
from pydantic import ValidationError

from relforge.config.exceptions import ConfigLoadError, ConfigValidationError
from relforge.config.loader import apply_release_overrides, environment_overrides, load_config
from relforge.models import CpuFlavor


class TestLoadValidConfig:
    def test_loads_minimal_valid_config(self, tmp_config_file: Path) -> None:
        config = load_config(tmp_config_file, environ={})
        assert config.global_config.project_name == "relforge-test"
        assert config.global_config.log_level == "DEBUG"

    def test_release_defaults(self, tmp_config_file: Path) -> None:
        release = load_config(tmp_config_file, environ={}).release
        assert release.packages == []
        assert release.targets == []
        assert release.cpu_flavors == [CpuFlavor.GENERIC]
        assert release.output_dir == "dist"
        assert release.archive_format == "zip"
        assert release.url_base is None
        assert release.cargo.command == ["cargo"]

    def test_loads_full_release_section(self, tmp_path: Path) -> None:
        content = textwrap.dedent("""\
            global:
              config_version: "1.0.0"
              project_name: "hyperdu"
            release:
              packages: [hyperdu-cli, hyperdu-gui]
              targets: [linux-all, homebrew]
              cpu_flavors: [generic, native]
              archive_format: tar.gz
              url_base: https://dl.example.com/v1
              cargo:
                locked: true
              metadata:
                description: "Hyper-fast disk usage analyzer"
        """)
        config_file = tmp_path / "full.yaml"
        config_file.write_text(content, encoding="utf-8")

        release = load_config(config_file, environ={}).release
        assert release.packages == ["hyperdu-cli", "hyperdu-gui"]
        assert release.cpu_flavors == [CpuFlavor.GENERIC, CpuFlavor.NATIVE]
        assert release.archive_format == "tar.gz"
        assert release.cargo.locked is True
        assert release.metadata.description == "Hyper-fast disk usage analyzer"

    def test_no_path_gives_defaults(self) -> None:
        config = load_config(None, environ={})
        assert config.global_config.config_version == "1.0.0"
        assert config.release.provision is True


class TestLoadInvalidConfig:
    def test_missing_required_field_raises_validation_error(
        self, invalid_config_file: Path
    ) -> None:
        with pytest.raises(ConfigValidationError):
            load_config(invalid_config_file, environ={})

    def test_unknown_field_raises_validation_error(self, tmp_path: Path) -> None:
        content = textwrap.dedent("""\
            global:
              config_version: "1.0.0"
            release:
              some_nonsense_field: true
        """)
        config_file = tmp_path / "unknown_field.yaml"
        config_file.write_text(content, encoding="utf-8")

        with pytest.raises(ConfigValidationError):
            load_config(config_file, environ={})

    def test_unknown_flavor_raises_validation_error(self, tmp_path: Path) -> None:
        content = textwrap.dedent("""\
            global:
              config_version: "1.0.0"
            release:
              cpu_flavors: [turbo]
        """)
        config_file = tmp_path / "flavor.yaml"
        config_file.write_text(content, encoding="utf-8")

        with pytest.raises(ConfigValidationError):
            load_config(config_file, environ={})

    def test_relative_url_base_is_rejected(self, tmp_path: Path) -> None:
        content = textwrap.dedent("""\
            global:
              config_version: "1.0.0"
            release:
              url_base: dl.example.com
        """)
        config_file = tmp_path / "url.yaml"
        config_file.write_text(content, encoding="utf-8")

        with pytest.raises(ConfigValidationError):
            load_config(config_file, environ={})

    def test_broken_yaml_raises_load_error(self, broken_yaml_file: Path) -> None:
        with pytest.raises(ConfigLoadError):
            load_config(broken_yaml_file, environ={})

    def test_nonexistent_file_raises_load_error(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigLoadError):
            load_config(tmp_path / "does_not_exist.yaml", environ={})

    def test_directory_path_raises_load_error(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigLoadError):
            load_config(tmp_path, environ={})

    def test_non_mapping_yaml_raises_load_error(self, tmp_path: Path) -> None:
        config_file = tmp_path / "list.yaml"
        config_file.write_text("- just\n- a list\n", encoding="utf-8")
        with pytest.raises(ConfigLoadError):
            load_config(config_file, environ={})


class TestEnvironmentOverrides:
    def test_collects_known_variables(self) -> None:
        overrides = environment_overrides(
            {
                "RELFORGE_TARGET_DIR": "/tmp/build",
                "RELFORGE_VERBOSE": "yes",
                "RELFORGE_URL_BASE": "https://dl.example.com",
            }
        )
        assert overrides == {
            "target_dir": "/tmp/build",
            "verbose": True,
            "url_base": "https://dl.example.com",
        }

    def test_cargo_target_dir_is_a_fallback(self) -> None:
        assert environment_overrides({"CARGO_TARGET_DIR": "/x"}) == {"target_dir": "/x"}
        assert environment_overrides(
            {"CARGO_TARGET_DIR": "/x", "RELFORGE_TARGET_DIR": "/y"}
        ) == {"target_dir": "/y"}

    def test_falsy_verbose_is_ignored(self) -> None:
        assert environment_overrides({"RELFORGE_VERBOSE": "0"}) == {}

    def test_environment_reaches_loaded_config(self, tmp_config_file: Path) -> None:
        config = load_config(tmp_config_file, environ={"RELFORGE_VERBOSE": "1"})
        assert config.release.verbose is True

    def test_bad_environment_value_is_a_validation_error(self, tmp_config_file: Path) -> None:
        with pytest.raises(ConfigValidationError):
            load_config(tmp_config_file, environ={"RELFORGE_URL_BASE": "not-a-url"})


class TestReleaseOverrides:
    def test_none_values_are_ignored(self, tmp_config_file: Path) -> None:
        config = load_config(tmp_config_file, environ={})
        assert apply_release_overrides(config, {"packages": None}) is config

    def test_overrides_produce_new_config(self, tmp_config_file: Path) -> None:
        config = load_config(tmp_config_file, environ={})
        updated = apply_release_overrides(
            config, {"packages": ["app"], "cpu_flavors": ["native"], "raw_only": True}
        )

        assert updated.release.packages == ["app"]
        assert updated.release.cpu_flavors == [CpuFlavor.NATIVE]
        assert updated.release.raw_only is True
        assert config.release.packages == []
        assert updated.global_config == config.global_config

    def test_invalid_override_raises(self, tmp_config_file: Path) -> None:
        config = load_config(tmp_config_file, environ={})
        with pytest.raises(ConfigValidationError):
            apply_release_overrides(config, {"archive_format": "rar"})


class TestConfigImmutability:
    def test_cannot_mutate_release(self, tmp_config_file: Path) -> None:
        config = load_config(tmp_config_file, environ={})
        with pytest.raises(ValidationError):
            config.release.output_dir = "elsewhere"  # type: ignore[misc]

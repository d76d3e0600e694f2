# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Type-safe configuration schemas for relforge.

Every config section gets its own frozen pydantic model. Frozen means once
you create it, you cannot mutate it; overrides from the environment or the
command line produce a new, re-validated config instead.

The models use pydantic v2's ConfigDict with:
  - frozen=True: immutability after construction
  - extra="forbid": unknown fields cause immediate failure
  - validate_default=True: even defaults get type-checked

A release config file looks like this:

    global:
      config_version: "1.0.0"
      project_name: "hyperdu"
    release:
      packages: [hyperdu-cli, hyperdu-gui]
      targets: [linux-all]
      cpu_flavors: [generic, native]
      metadata:
        description: "Hyper-fast disk usage analyzer"
"""

from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from relforge.models import CpuFlavor


class GlobalConfig(BaseModel):
    """Cross-cutting settings: project identity and observability."""

    model_config = ConfigDict(frozen=True, extra="forbid", validate_default=True)

    config_version: str = Field(
        description="Schema version for compatibility tracking, e.g. '1.0.0'"
    )
    project_name: str = Field(
        default="relforge-project", description="Human-readable project identifier"
    )
    log_level: str = Field(
        default="INFO",
        description="One of DEBUG, INFO, WARNING, ERROR, CRITICAL",
    )
    log_file: Optional[str] = Field(
        default=None,
        description="Optional path for a JSON log file, relative to the working directory",
    )


class CargoConfig(BaseModel):
    """How the compiler is invoked."""

    model_config = ConfigDict(frozen=True, extra="forbid", validate_default=True)

    command: list[str] = Field(
        default_factory=lambda: ["cargo"],
        min_length=1,
        description="Compiler command prefix; `build ...` is appended",
    )
    profile: str = Field(default="release", description="Cargo profile name")
    locked: bool = Field(default=False, description="Pass --locked")
    nightly: bool = Field(default=False, description="Run `cargo +nightly`")
    timings: bool = Field(default=False, description="Pass --timings")
    extra_args: list[str] = Field(
        default_factory=list, description="Appended verbatim to every build"
    )


class PackageMetadata(BaseModel):
    """
    Static metadata handed to installer sub-builders.

    `version` stays None unless pinned here; the release resolves it from
    Cargo.toml at run time.
    """

    model_config = ConfigDict(frozen=True, extra="forbid", validate_default=True)

    version: Optional[str] = Field(default=None)
    description: str = Field(default="")
    homepage: str = Field(default="")
    license: str = Field(default="MIT")
    maintainer: str = Field(default="Unknown <unknown@example.com>")
    publisher: str = Field(default="")
    app_id_prefix: str = Field(
        default="io.github",
        description="Reverse-DNS prefix for Flatpak app ids and macOS bundle identifiers",
    )


class ReleaseConfig(BaseModel):
    """
    Everything a release run needs: what to build, for which targets, and
    where the results go.
    """

    model_config = ConfigDict(frozen=True, extra="forbid", validate_default=True)

    project_root: str = Field(default=".", description="Cargo workspace root")
    packages: list[str] = Field(
        default_factory=list,
        description="Buildable packages, in build order",
    )
    targets: list[str] = Field(
        default_factory=list,
        description="Target tags; empty means host only",
    )
    cpu_flavors: list[CpuFlavor] = Field(
        default_factory=lambda: [CpuFlavor.GENERIC],
        min_length=1,
    )
    output_dir: str = Field(default="dist", description="Cleared at the start of every run")
    docs: list[str] = Field(
        default_factory=lambda: ["README.md"],
        description="Files bundled into every archive, relative to project_root",
    )
    archive_format: Literal["zip", "tar.gz"] = Field(default="zip")
    raw_only: bool = Field(default=False, description="Skip archives, copy raw binaries only")
    host_alias: bool = Field(
        default=False,
        description="Also write the host archive without the flavor suffix",
    )
    target_dir: Optional[str] = Field(
        default=None, description="Build output root override (CARGO_TARGET_DIR)"
    )
    verbose: bool = Field(default=False, description="Write raw build logs per job")
    url_base: Optional[str] = Field(
        default=None, description="Base download URL; enables manifest materialization"
    )
    provision: bool = Field(default=True, description="Install cross toolchains on demand")
    heartbeat_seconds: float = Field(default=5.0, gt=0)
    cargo: CargoConfig = Field(default_factory=CargoConfig)
    metadata: PackageMetadata = Field(default_factory=PackageMetadata)

    @field_validator("packages", "targets")
    @classmethod
    def _no_blank_entries(cls, value: list[str]) -> list[str]:
        cleaned = [item.strip() for item in value]
        if any(not item for item in cleaned):
            raise ValueError("entries must be non-empty strings")
        return cleaned

    @field_validator("url_base")
    @classmethod
    def _url_base_has_scheme(cls, value: Optional[str]) -> Optional[str]:
        if value is None or value == "":
            return None
        if "://" not in value:
            raise ValueError(f"url_base must be an absolute URL, got {value!r}")
        return value


class RelforgeConfig(BaseModel):
    """Top-level config container."""

    model_config = ConfigDict(frozen=True, extra="forbid", validate_default=True)

    global_config: GlobalConfig = Field(alias="global")
    release: ReleaseConfig = Field(default_factory=ReleaseConfig)

# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Core data model shared by every phase.

All of these are created fresh per invocation. Nothing is persisted between
runs except the files the run writes into the output directory, and that
directory is cleared at the start of every run.
"""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path


class CpuFlavor(str, Enum):
    """Portable codegen vs. host-CPU-tuned codegen."""

    GENERIC = "generic"
    NATIVE = "native"


@dataclass(frozen=True)
class PlatformTriple:
    """
    A Rust target triple, split into its parts.

    Triples come in three- and four-part forms (`aarch64-apple-darwin`,
    `x86_64-unknown-linux-gnu`). For the three-part form the ABI is empty.
    """

    arch: str
    vendor: str
    os: str
    abi: str = ""

    @classmethod
    def parse(cls, triple: str) -> "PlatformTriple":
        parts = triple.strip().split("-")
        if len(parts) == 3:
            return cls(arch=parts[0], vendor=parts[1], os=parts[2])
        if len(parts) == 4:
            return cls(arch=parts[0], vendor=parts[1], os=parts[2], abi=parts[3])
        raise ValueError(f"Not a target triple: {triple!r}")

    @property
    def is_windows(self) -> bool:
        return self.os == "windows"

    @property
    def is_apple(self) -> bool:
        return self.vendor == "apple" or self.os == "darwin"

    @property
    def is_msvc(self) -> bool:
        return self.abi == "msvc"

    def __str__(self) -> str:
        parts = [self.arch, self.vendor, self.os]
        if self.abi:
            parts.append(self.abi)
        return "-".join(parts)


@dataclass(frozen=True)
class PlatformTarget:
    """
    A concrete build destination: the triple plus how it is named on disk.

    `os_tag` and `arch` feed the artifact naming convention; `variant` is
    appended to the arch part for triples that share os/arch with another one
    (musl vs. gnu, msvc vs. gnu).
    """

    tag: str
    triple: PlatformTriple
    os_tag: str
    arch: str
    variant: str = ""
    linker: str | None = None
    toolchain_packages: dict[str, str] = field(default_factory=dict, hash=False, compare=False)
    reduced_features: bool = False

    @property
    def label(self) -> str:
        parts = [self.os_tag, self.arch]
        if self.variant:
            parts.append(self.variant)
        return "-".join(parts)


@dataclass(frozen=True)
class BuildJob:
    """One compiler invocation: (package, target, flavor) plus extra flags and env."""

    package: str
    target: PlatformTarget
    flavor: CpuFlavor
    extra_args: tuple[str, ...] = ()
    env: dict[str, str] = field(default_factory=dict, hash=False, compare=False)
    required: bool = True

    @property
    def key(self) -> str:
        return f"{self.package}/{self.target.triple}/{self.flavor.value}"


class ArtifactKind(str, Enum):
    RAW_BINARY = "raw-binary"
    ARCHIVE = "archive"
    INSTALLER = "installer"


@dataclass(frozen=True)
class Artifact:
    path: Path
    kind: ArtifactKind
    platform_label: str
    package: str

    @property
    def name(self) -> str:
        return self.path.name


class ManifestKind(str, Enum):
    FORMULA = "formula"
    JSON_MANIFEST = "json-manifest"
    YAML_MANIFEST = "yaml-manifest"


@dataclass(frozen=True)
class Manifest:
    """
    A generated package-manager manifest.

    `url_token` and `hash_token` are the literal placeholder strings the
    sub-builder wrote; the materializer replaces exactly these.
    """

    kind: ManifestKind
    path: Path
    package: str
    url_token: str
    hash_token: str


class StepStatus(str, Enum):
    SUCCESS = "success"
    SKIPPED_UNSUPPORTED = "skipped-unsupported"
    FAILED_RECOVERABLE = "failed-recoverable"


@dataclass(frozen=True)
class StepOutcome:
    """Structured result of a best-effort step (provisioning, installer sub-builder)."""

    status: StepStatus
    detail: str = ""
    outputs: tuple[Path, ...] = ()

    @property
    def ok(self) -> bool:
        return self.status == StepStatus.SUCCESS

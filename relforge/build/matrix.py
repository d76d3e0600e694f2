# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Build matrix expansion: (flavor × target × package) → BuildJob list.

The iteration order is fixed: flavor outermost, then target in resolved
order, then package in config order. Two runs with the same inputs log
the same sequence of builds.

Per-job flags and environment are decided here, not in the executor:
  - native flavor adds `-C target-cpu=native` to RUSTFLAGS
  - cross triples get `CARGO_TARGET_<TRIPLE>_LINKER` pointing at their linker
  - musl/aarch64 builds drop default features to shrink the dependency surface
"""

import os
from typing import Iterable, Mapping, Optional

from relforge.models import BuildJob, CpuFlavor, PlatformTarget
from relforge.runtime.environment import HostInfo

NATIVE_RUSTFLAGS = "-C target-cpu=native"


def linker_env_var(triple: str) -> str:
    """CARGO_TARGET_X86_64_PC_WINDOWS_GNU_LINKER for x86_64-pc-windows-gnu."""
    return f"CARGO_TARGET_{triple.upper().replace('-', '_').replace('.', '_')}_LINKER"


def job_env(
    target: PlatformTarget,
    flavor: CpuFlavor,
    host: HostInfo,
    base_env: Optional[Mapping[str, str]] = None,
) -> dict[str, str]:
    environ = os.environ if base_env is None else base_env
    env: dict[str, str] = {}

    if flavor == CpuFlavor.NATIVE:
        existing = environ.get("RUSTFLAGS", "").strip()
        env["RUSTFLAGS"] = f"{existing} {NATIVE_RUSTFLAGS}".strip()

    triple = str(target.triple)
    if target.linker is not None and triple != host.triple:
        env[linker_env_var(triple)] = target.linker

    return env


def job_args(target: PlatformTarget) -> tuple[str, ...]:
    if target.reduced_features:
        return ("--no-default-features",)
    return ()


def make_job(
    package: str,
    target: PlatformTarget,
    flavor: CpuFlavor,
    host: HostInfo,
    required: bool = True,
    base_env: Optional[Mapping[str, str]] = None,
) -> BuildJob:
    return BuildJob(
        package=package,
        target=target,
        flavor=flavor,
        extra_args=job_args(target),
        env=job_env(target, flavor, host, base_env),
        required=required,
    )


def native_allowed(target: PlatformTarget, host: HostInfo) -> bool:
    """Host-tuned codegen only makes sense for the host triple."""
    return str(target.triple) == host.triple


def expand_matrix(
    packages: Iterable[str],
    targets: Iterable[PlatformTarget],
    flavors: Iterable[CpuFlavor],
    host: HostInfo,
    best_effort_triples: Iterable[str] = (),
    base_env: Optional[Mapping[str, str]] = None,
) -> tuple[list[BuildJob], list[tuple[PlatformTarget, CpuFlavor]]]:
    """
    Expand the matrix.

    Returns:
        (jobs, skipped) where `skipped` lists the (target, flavor) pairs that
        were dropped because native codegen was requested for a cross triple.
    """
    packages = list(packages)
    targets = list(targets)
    best_effort = set(best_effort_triples)
    jobs: list[BuildJob] = []
    skipped: list[tuple[PlatformTarget, CpuFlavor]] = []

    for flavor in flavors:
        for target in targets:
            if flavor == CpuFlavor.NATIVE and not native_allowed(target, host):
                skipped.append((target, flavor))
                continue
            required = str(target.triple) not in best_effort
            for package in packages:
                jobs.append(make_job(package, target, flavor, host, required, base_env))

    return jobs, skipped

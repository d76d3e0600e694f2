# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Toolchain provisioner: makes sure a cross triple can actually be built.

For every triple other than the host it guarantees, best effort:
  (a) the Rust target is installed (`rustup target add`)
  (b) the native linker is on PATH, installing the distro package if not

Outcomes are structured, never exceptions:
  - success: nothing to do, or everything installed
  - skipped-unsupported: the triple needs a vendor SDK this host cannot have
    (Apple targets off macOS, MSVC off Windows). Structural, no retry. Jobs
    for the triple are dropped from the matrix.
  - failed-recoverable: an install step failed. Jobs are still attempted
    (the toolchain may already work), but become best-effort.

Each triple is provisioned once per run; repeated calls return the cached outcome.
"""

import logging
import shutil
from pathlib import Path
from typing import Optional

from relforge.logging.logger import get_logger
from relforge.models import PlatformTarget, StepOutcome, StepStatus
from relforge.runtime.environment import HostInfo
from relforge.toolchain.package_manager import WhichFn, detect_package_manager, needs_sudo
from relforge.utils.process import ToolResult, ToolRunner, run_tool

_logger: logging.Logger = get_logger(__name__)


def unsupported_reason(target: PlatformTarget, host: HostInfo) -> Optional[str]:
    """Why this host can never build `target`, or None if it can try."""
    triple = target.triple
    if triple.is_apple and not host.is_macos:
        return f"{triple} requires the Apple SDK/toolchain, unavailable on {host.os_tag}"
    if triple.is_msvc and not host.is_windows:
        return f"{triple} requires the MSVC toolchain, unavailable on {host.os_tag}"
    return None


class ToolchainProvisioner:
    """Best-effort installer for cross-compilation toolchains."""

    def __init__(
        self,
        host: HostInfo,
        runner: ToolRunner = run_tool,
        which: WhichFn = shutil.which,
        log_file: Optional[Path] = None,
        heartbeat_seconds: float = 5.0,
        rustup: str = "rustup",
    ) -> None:
        self._host = host
        self._runner = runner
        self._which = which
        self._log_file = log_file
        self._heartbeat = heartbeat_seconds
        self._rustup = rustup
        self._cache: dict[str, StepOutcome] = {}

    def _run(self, argv: list[str]) -> ToolResult:
        return self._runner(
            argv,
            log_file=self._log_file,
            heartbeat_seconds=self._heartbeat,
            label=" ".join(argv[:3]),
        )

    def _ensure_rust_target(self, triple: str) -> Optional[str]:
        """Returns an error detail, or None on success."""
        listed = self._run([self._rustup, "target", "list", "--installed"])
        if not listed.ok:
            return f"rustup unavailable (exit {listed.exit_code}): {listed.tail(3)}"

        installed = {line.strip() for line in listed.output.splitlines()}
        if triple in installed:
            return None

        _logger.info("Installing Rust target", extra={"triple": triple})
        added = self._run([self._rustup, "target", "add", triple])
        if not added.ok:
            return f"rustup target add {triple} failed (exit {added.exit_code})"
        return None

    def _ensure_linker(self, target: PlatformTarget) -> Optional[str]:
        linker = target.linker
        if linker is None or self._which(linker):
            return None

        manager = detect_package_manager(self._which)
        if manager is None:
            return f"linker {linker} missing and no supported package manager found"

        package = target.toolchain_packages.get(manager.name)
        if package is None:
            return f"linker {linker} missing and {manager.name} has no known package for it"

        _logger.info(
            "Installing cross linker",
            extra={"linker": linker, "package": package, "package_manager": manager.name},
        )
        for argv in manager.install_commands(package, use_sudo=needs_sudo(self._which)):
            result = self._run(argv)
            if not result.ok:
                return f"{' '.join(argv)} failed (exit {result.exit_code})"

        if not self._which(linker):
            return f"installed {package} but {linker} is still not on PATH"
        return None

    def provision(self, target: PlatformTarget) -> StepOutcome:
        triple = str(target.triple)
        cached = self._cache.get(triple)
        if cached is not None:
            return cached

        outcome = self._provision(target)
        self._cache[triple] = outcome

        if outcome.status == StepStatus.SUCCESS:
            _logger.debug("Toolchain ready", extra={"triple": triple, "detail": outcome.detail})
        else:
            _logger.warning(
                "Toolchain not provisioned",
                extra={"triple": triple, "status": outcome.status.value, "detail": outcome.detail},
            )
        return outcome

    def _provision(self, target: PlatformTarget) -> StepOutcome:
        triple = str(target.triple)
        if triple == self._host.triple:
            return StepOutcome(StepStatus.SUCCESS, "host triple")

        reason = unsupported_reason(target, self._host)
        if reason is not None:
            return StepOutcome(StepStatus.SKIPPED_UNSUPPORTED, reason)

        problems = [
            problem
            for problem in (self._ensure_rust_target(triple), self._ensure_linker(target))
            if problem is not None
        ]
        if problems:
            return StepOutcome(StepStatus.FAILED_RECOVERABLE, "; ".join(problems))
        return StepOutcome(StepStatus.SUCCESS, "toolchain installed")

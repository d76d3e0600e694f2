# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Tests for the toolchain provisioner.

No real rustup or package manager is touched: the runner and the PATH lookup
are replaced with recording fakes.
"""

from pathlib import Path
from typing import Optional

from relforge.models import StepStatus
from relforge.runtime.environment import HostInfo
from relforge.targets.catalog import PLATFORM_TARGETS
from relforge.toolchain.package_manager import (
    PRIORITY,
    PackageManager,
    detect_package_manager,
)
from relforge.toolchain.provisioner import ToolchainProvisioner, unsupported_reason
from relforge.utils.process import ToolResult

LINUX = HostInfo(os_tag="linux", arch="x86_64", triple="x86_64-unknown-linux-gnu")
MACOS = HostInfo(os_tag="macos", arch="aarch64", triple="aarch64-apple-darwin")


class FakeRunner:
    """Records commands; answers `rustup target list` from a fixed set."""

    def __init__(
        self,
        installed: tuple[str, ...] = (),
        failing: tuple[str, ...] = (),
        on_run=None,
    ) -> None:
        self.installed = list(installed)
        self.failing = failing
        self.on_run = on_run
        self.calls: list[list[str]] = []

    def __call__(self, argv, **kwargs) -> ToolResult:
        argv = [str(part) for part in argv]
        self.calls.append(argv)
        joined = " ".join(argv)
        if any(pattern in joined for pattern in self.failing):
            return ToolResult(tuple(argv), 1, "boom", 0.0)
        if self.on_run is not None:
            self.on_run(argv)
        output = "\n".join(self.installed) if argv[1:3] == ["target", "list"] else ""
        return ToolResult(tuple(argv), 0, output, 0.0)


def which_from(available: set[str]):
    def _which(name: str) -> Optional[str]:
        return f"/usr/bin/{name}" if name in available else None

    return _which


class TestUnsupportedReason:
    def test_apple_off_macos(self) -> None:
        assert unsupported_reason(PLATFORM_TARGETS["macos-aarch64"], LINUX) is not None

    def test_apple_on_macos(self) -> None:
        assert unsupported_reason(PLATFORM_TARGETS["macos-x86_64"], MACOS) is None

    def test_msvc_off_windows(self) -> None:
        assert unsupported_reason(PLATFORM_TARGETS["windows-msvc"], LINUX) is not None

    def test_gnu_cross_is_supported(self) -> None:
        assert unsupported_reason(PLATFORM_TARGETS["windows-gnu"], LINUX) is None


class TestProvision:
    def test_host_triple_needs_nothing(self) -> None:
        runner = FakeRunner()
        provisioner = ToolchainProvisioner(LINUX, runner=runner, which=which_from(set()))

        outcome = provisioner.provision(PLATFORM_TARGETS["linux-gnu"])
        assert outcome.status == StepStatus.SUCCESS
        assert runner.calls == []

    def test_unsupported_is_skipped_without_running_anything(self) -> None:
        runner = FakeRunner()
        provisioner = ToolchainProvisioner(LINUX, runner=runner, which=which_from(set()))

        outcome = provisioner.provision(PLATFORM_TARGETS["macos-aarch64"])
        assert outcome.status == StepStatus.SKIPPED_UNSUPPORTED
        assert runner.calls == []

    def test_installed_target_and_linker_succeeds(self) -> None:
        runner = FakeRunner(installed=("x86_64-unknown-linux-musl",))
        provisioner = ToolchainProvisioner(
            LINUX, runner=runner, which=which_from({"musl-gcc"})
        )

        outcome = provisioner.provision(PLATFORM_TARGETS["linux-musl"])
        assert outcome.ok
        assert runner.calls == [["rustup", "target", "list", "--installed"]]

    def test_missing_rust_target_is_added(self) -> None:
        runner = FakeRunner()
        provisioner = ToolchainProvisioner(
            LINUX, runner=runner, which=which_from({"musl-gcc"})
        )

        outcome = provisioner.provision(PLATFORM_TARGETS["linux-musl"])
        assert outcome.ok
        assert ["rustup", "target", "add", "x86_64-unknown-linux-musl"] in runner.calls

    def test_missing_linker_is_installed_with_package_manager(self) -> None:
        available = {"apt-get"}
        runner = FakeRunner(
            installed=("x86_64-pc-windows-gnu",),
            on_run=lambda argv: available.add("x86_64-w64-mingw32-gcc")
            if "install" in argv
            else None,
        )
        provisioner = ToolchainProvisioner(LINUX, runner=runner, which=which_from(available))

        outcome = provisioner.provision(PLATFORM_TARGETS["windows-gnu"])
        assert outcome.ok
        assert ["apt-get", "update", "-y"] in runner.calls
        assert ["apt-get", "install", "-y", "mingw-w64"] in runner.calls

    def test_linker_still_missing_is_recoverable_failure(self) -> None:
        runner = FakeRunner(installed=("x86_64-pc-windows-gnu",))
        provisioner = ToolchainProvisioner(
            LINUX, runner=runner, which=which_from({"dnf"})
        )

        outcome = provisioner.provision(PLATFORM_TARGETS["windows-gnu"])
        assert outcome.status == StepStatus.FAILED_RECOVERABLE
        assert "still not on PATH" in outcome.detail

    def test_no_package_manager_is_recoverable_failure(self) -> None:
        runner = FakeRunner(installed=("aarch64-unknown-linux-gnu",))
        provisioner = ToolchainProvisioner(LINUX, runner=runner, which=which_from(set()))

        outcome = provisioner.provision(PLATFORM_TARGETS["linux-aarch64"])
        assert outcome.status == StepStatus.FAILED_RECOVERABLE
        assert "no supported package manager" in outcome.detail

    def test_rustup_failure_is_recoverable(self) -> None:
        runner = FakeRunner(failing=("rustup target list",))
        provisioner = ToolchainProvisioner(
            LINUX, runner=runner, which=which_from({"musl-gcc"})
        )

        outcome = provisioner.provision(PLATFORM_TARGETS["linux-musl"])
        assert outcome.status == StepStatus.FAILED_RECOVERABLE
        assert "rustup unavailable" in outcome.detail

    def test_outcome_is_cached_per_triple(self) -> None:
        runner = FakeRunner()
        provisioner = ToolchainProvisioner(
            LINUX, runner=runner, which=which_from({"musl-gcc"})
        )

        first = provisioner.provision(PLATFORM_TARGETS["linux-musl"])
        calls_after_first = len(runner.calls)
        second = provisioner.provision(PLATFORM_TARGETS["linux-musl"])

        assert first == second
        assert len(runner.calls) == calls_after_first

    def test_log_file_is_passed_to_runner(self, tmp_path: Path) -> None:
        seen: list[Optional[Path]] = []

        def runner(argv, **kwargs) -> ToolResult:
            seen.append(kwargs.get("log_file"))
            return ToolResult(tuple(argv), 0, "", 0.0)

        log_file = tmp_path / "provision.log"
        provisioner = ToolchainProvisioner(
            LINUX, runner=runner, which=which_from({"musl-gcc"}), log_file=log_file
        )
        provisioner.provision(PLATFORM_TARGETS["linux-musl"])
        assert seen and all(path == log_file for path in seen)


class TestPackageManager:
    def test_priority_order(self) -> None:
        manager = detect_package_manager(which_from({"brew", "dnf", "apt-get"}))
        assert manager is not None
        assert manager.name == "apt-get"

    def test_none_found(self) -> None:
        assert detect_package_manager(which_from(set())) is None

    def test_install_commands_with_sudo(self) -> None:
        apt = PRIORITY[0]
        assert apt.install_commands("musl-tools", use_sudo=True) == [
            ["sudo", "-n", "apt-get", "update", "-y"],
            ["sudo", "-n", "apt-get", "install", "-y", "musl-tools"],
        ]

    def test_brew_never_uses_sudo(self) -> None:
        brew = PackageManager("brew", ("install",), needs_root=False)
        assert brew.install_commands("mingw-w64", use_sudo=True) == [
            ["brew", "install", "mingw-w64"]
        ]

# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
System package manager detection.

Managers are tried in a fixed priority order and the first one found on PATH
wins. Installation is always non-interactive; when not running as root the
command is wrapped in `sudo -n`, which fails fast instead of prompting.
"""

import os
import shutil
from dataclasses import dataclass
from typing import Callable, Optional

WhichFn = Callable[[str], Optional[str]]


@dataclass(frozen=True)
class PackageManager:
    name: str
    install_args: tuple[str, ...]
    refresh_args: tuple[str, ...] = ()
    needs_root: bool = True

    def install_commands(self, package: str, use_sudo: bool) -> list[list[str]]:
        """Commands to run, in order, to install `package`."""
        prefix = ["sudo", "-n"] if (use_sudo and self.needs_root) else []
        commands: list[list[str]] = []
        if self.refresh_args:
            commands.append([*prefix, self.name, *self.refresh_args])
        commands.append([*prefix, self.name, *self.install_args, package])
        return commands


PRIORITY: tuple[PackageManager, ...] = (
    PackageManager("apt-get", ("install", "-y"), refresh_args=("update", "-y")),
    PackageManager("dnf", ("install", "-y")),
    PackageManager("yum", ("install", "-y")),
    PackageManager("pacman", ("-Sy", "--noconfirm")),
    PackageManager("zypper", ("--non-interactive", "install")),
    PackageManager("brew", ("install",), needs_root=False),
)


def detect_package_manager(which: WhichFn = shutil.which) -> Optional[PackageManager]:
    """First package manager on PATH in priority order, or None."""
    for manager in PRIORITY:
        if which(manager.name):
            return manager
    return None


def needs_sudo(which: WhichFn = shutil.which) -> bool:
    """True when we are not root and sudo exists."""
    geteuid = getattr(os, "geteuid", None)
    if geteuid is None or geteuid() == 0:
        return False
    return which("sudo") is not None

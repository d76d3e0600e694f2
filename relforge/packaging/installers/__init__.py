# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""Installer sub-builder registry, keyed by installer tag."""

from typing import Mapping, Optional

from relforge.packaging.installers.appimage import AppImageInstaller
from relforge.packaging.installers.base import Installer, InstallerOutput, InstallerRequest
from relforge.packaging.installers.deb import DebInstaller
from relforge.packaging.installers.dmg import DmgInstaller
from relforge.packaging.installers.flatpak import FlatpakInstaller
from relforge.packaging.installers.manifests import (
    HomebrewInstaller,
    ScoopInstaller,
    WingetInstaller,
)
from relforge.packaging.installers.msi import MsiInstaller
from relforge.packaging.installers.rpm import RpmInstaller
from relforge.packaging.installers.snap import SnapInstaller

INSTALLERS: dict[str, type[Installer]] = {
    cls.tag: cls
    for cls in (
        DebInstaller,
        RpmInstaller,
        AppImageInstaller,
        SnapInstaller,
        FlatpakInstaller,
        DmgInstaller,
        HomebrewInstaller,
        MsiInstaller,
        ScoopInstaller,
        WingetInstaller,
    )
}


def create_installer(tag: str, environ: Optional[Mapping[str, str]] = None, **kwargs) -> Installer:
    """
    Instantiate the sub-builder for an installer tag.

    Raises:
        KeyError: Unknown installer tag.
    """
    return INSTALLERS[tag](environ=environ, **kwargs)


__all__ = [
    "INSTALLERS",
    "Installer",
    "InstallerOutput",
    "InstallerRequest",
    "create_installer",
]

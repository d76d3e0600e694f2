# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""Debian package via dpkg-deb."""

import shutil

from relforge.packaging.installers.base import (
    Installer,
    InstallerOutput,
    InstallerRequest,
    summary_line,
)
from relforge.utils.filesystem import copy_executable

DEB_ARCHES: dict[str, str] = {
    "x86_64": "amd64",
    "aarch64": "arm64",
    "i686": "i386",
    "armv7": "armhf",
    "riscv64": "riscv64",
}


def deb_arch(arch: str) -> str:
    return DEB_ARCHES.get(arch, arch)


def deb_version(version: str) -> str:
    # Debian sorts "~" before the release, which is what a semver pre-release means.
    return version.replace("-", "~", 1)


def control_file(request: InstallerRequest) -> str:
    metadata = request.metadata
    lines = [
        f"Package: {request.package.lower()}",
        f"Version: {deb_version(request.version)}",
        f"Architecture: {deb_arch(request.target.arch)}",
        f"Maintainer: {metadata.maintainer}",
        "Section: utils",
        "Priority: optional",
    ]
    if metadata.homepage:
        lines.append(f"Homepage: {metadata.homepage}")
    lines.append(f"Description: {summary_line(request)}")
    return "\n".join(lines) + "\n"


class DebInstaller(Installer):
    tag = "linux-deb"
    host_os = "linux"
    log_name = "deb-pack.log"

    def build(self, request: InstallerRequest) -> InstallerOutput:
        dpkg_deb = self.require_tool("dpkg-deb", "install dpkg")
        binary = self.binary_of(request)

        name = f"{request.package.lower()}_{deb_version(request.version)}_{deb_arch(request.target.arch)}"
        root = request.work_dir / name
        copy_executable(binary, root / "usr" / "bin" / request.package)

        doc_dir = root / "usr" / "share" / "doc" / request.package.lower()
        doc_dir.mkdir(parents=True, exist_ok=True)
        for doc in request.docs:
            shutil.copy2(str(doc), str(doc_dir / doc.name))

        control_dir = root / "DEBIAN"
        control_dir.mkdir(parents=True, exist_ok=True)
        (control_dir / "control").write_text(control_file(request), encoding="utf-8")

        deb_path = request.work_dir / f"{name}.deb"
        self.run([dpkg_deb, "--build", "--root-owner-group", str(root), str(deb_path)], request)
        return InstallerOutput(files=[self.publish(deb_path, request)])

# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Windows installer via the WiX toolset (`wix build`, v4+).

The UpgradeCode is derived from the package name, so every release of one
package upgrades the previous install instead of sitting next to it.
"""

import re
import uuid
import xml.etree.ElementTree as ElementTree

from relforge.packaging.installers.base import (
    Installer,
    InstallerOutput,
    InstallerRequest,
)
from relforge.packaging.naming import binary_file_name

WIX_NAMESPACE = "http://wixtoolset.org/schemas/v4/wxs"
_UPGRADE_NAMESPACE = uuid.uuid5(uuid.NAMESPACE_URL, "relforge:msi-upgrade-code")

WIX_ARCHES: dict[str, str] = {"x86_64": "x64", "aarch64": "arm64", "i686": "x86"}


def msi_version(version: str) -> str:
    """MSI versions are up to three dot-separated integers: 1.2.3-rc1 → 1.2.3."""
    numbers = re.findall(r"\d+", version.split("-", 1)[0].split("+", 1)[0])[:3]
    while len(numbers) < 3:
        numbers.append("0")
    return ".".join(numbers)


def upgrade_code(package: str) -> str:
    return "{" + str(uuid.uuid5(_UPGRADE_NAMESPACE, package)).upper() + "}"


def wxs_document(request: InstallerRequest) -> str:
    package = request.package
    metadata = request.metadata
    binary = request.binary

    wix = ElementTree.Element("Wix", {"xmlns": WIX_NAMESPACE})
    product = ElementTree.SubElement(
        wix,
        "Package",
        {
            "Name": package,
            "Manufacturer": metadata.publisher or metadata.maintainer,
            "Version": msi_version(request.version),
            "UpgradeCode": upgrade_code(package),
        },
    )
    ElementTree.SubElement(
        product,
        "MajorUpgrade",
        {"DowngradeErrorMessage": f"A newer version of {package} is already installed."},
    )
    ElementTree.SubElement(product, "MediaTemplate", {"EmbedCab": "yes"})
    program_files = ElementTree.SubElement(
        product, "StandardDirectory", {"Id": "ProgramFiles64Folder"}
    )
    install_dir = ElementTree.SubElement(
        program_files, "Directory", {"Id": "INSTALLFOLDER", "Name": package}
    )
    component = ElementTree.SubElement(install_dir, "Component", {"Id": "MainExecutable"})
    ElementTree.SubElement(
        component,
        "File",
        {"Source": str(binary), "Name": binary_file_name(package, request.target), "KeyPath": "yes"},
    )
    feature = ElementTree.SubElement(product, "Feature", {"Id": "Main"})
    ElementTree.SubElement(feature, "ComponentRef", {"Id": "MainExecutable"})

    ElementTree.indent(wix)
    return ElementTree.tostring(wix, encoding="unicode", xml_declaration=True) + "\n"


class MsiInstaller(Installer):
    tag = "windows-msi"
    host_os = "windows"
    log_name = "msi-pack.log"

    def build(self, request: InstallerRequest) -> InstallerOutput:
        wix = self.require_tool("wix", "dotnet tool install --global wix")
        self.binary_of(request)

        wxs = request.work_dir / f"{request.package}.wxs"
        wxs.write_text(wxs_document(request), encoding="utf-8")
        arch = request.target.arch
        msi = request.work_dir / f"{request.package}-{request.version}-{arch}.msi"
        self.run(
            [wix, "build", "-arch", WIX_ARCHES.get(arch, "x64"), "-o", str(msi), str(wxs)],
            request,
            cwd=request.work_dir,
        )
        return InstallerOutput(files=[self.publish(msi, request)])

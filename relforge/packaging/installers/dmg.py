# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
macOS disk image.

Wraps the binary in a minimal .app bundle, then builds <package>.dmg with
create-dmg when it is installed, falling back to hdiutil which every macOS
host has.
"""

import plistlib

from relforge.packaging.installers.base import (
    Installer,
    InstallerOutput,
    InstallerRequest,
    slug,
)
from relforge.utils.filesystem import copy_executable


def info_plist(request: InstallerRequest) -> bytes:
    package = request.package
    return plistlib.dumps(
        {
            "CFBundleDevelopmentRegion": "en",
            "CFBundleExecutable": package,
            "CFBundleIdentifier": f"{request.metadata.app_id_prefix}.{slug(package)}",
            "CFBundleInfoDictionaryVersion": "6.0",
            "CFBundleName": package,
            "CFBundlePackageType": "APPL",
            "CFBundleShortVersionString": request.version,
            "CFBundleVersion": request.version,
            "LSMinimumSystemVersion": "10.13",
        },
        sort_keys=True,
    )


class DmgInstaller(Installer):
    tag = "macos-dmg"
    host_os = "macos"
    log_name = "dmg-pack.log"

    def build(self, request: InstallerRequest) -> InstallerOutput:
        binary = self.binary_of(request)
        package = request.package

        source = request.work_dir / "source"
        app = source / f"{package}.app"
        copy_executable(binary, app / "Contents" / "MacOS" / package)
        (app / "Contents" / "Info.plist").write_bytes(info_plist(request))

        dmg = request.work_dir / f"{package}.dmg"
        create_dmg = self._which("create-dmg")
        if create_dmg:
            argv = [create_dmg, "--overwrite", "--volname", package, str(dmg), str(source)]
        else:
            hdiutil = self.require_tool("hdiutil", "install create-dmg or run on macOS")
            argv = [
                hdiutil,
                "create",
                "-volname",
                package,
                "-srcfolder",
                str(source),
                "-ov",
                "-format",
                "UDZO",
                str(dmg),
            ]
        self.run(argv, request, cwd=request.work_dir)
        return InstallerOutput(files=[self.publish(dmg, request)])

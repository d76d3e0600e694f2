# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Flatpak bundle via flatpak-builder and `flatpak build-bundle`.

The manifest is written to <output>/flatpak/<app-id>.yaml before anything
runs and is kept even when the build fails, so it can be fed to a Flathub
submission by hand.
"""

from pathlib import Path
from typing import Any

import yaml

from relforge.packaging.installers.base import (
    Installer,
    InstallerOutput,
    InstallerRequest,
    slug,
)

RUNTIME = "org.freedesktop.Platform"
RUNTIME_VERSION = "23.08"
SDK = "org.freedesktop.Sdk"


def app_id(request: InstallerRequest) -> str:
    return f"{request.metadata.app_id_prefix}.{slug(request.package)}"


def flatpak_manifest(request: InstallerRequest, binary: Path) -> dict[str, Any]:
    package = request.package
    return {
        "app-id": app_id(request),
        "runtime": RUNTIME,
        "runtime-version": RUNTIME_VERSION,
        "sdk": SDK,
        "command": package,
        "modules": [
            {
                "name": package,
                "buildsystem": "simple",
                "build-commands": [f"install -Dm755 {binary.name} /app/bin/{package}"],
                "sources": [{"type": "file", "path": str(binary)}],
            }
        ],
    }


class FlatpakInstaller(Installer):
    tag = "linux-flatpak"
    host_os = "linux"
    log_name = "flatpak-pack.log"

    def build(self, request: InstallerRequest) -> InstallerOutput:
        binary = self.binary_of(request)
        identifier = app_id(request)

        manifest_path = request.output_dir / "flatpak" / f"{identifier}.yaml"
        manifest_path.parent.mkdir(parents=True, exist_ok=True)
        manifest_path.write_text(
            yaml.safe_dump(flatpak_manifest(request, binary), sort_keys=False), encoding="utf-8"
        )

        builder = self.require_tool("flatpak-builder", "install flatpak-builder")
        flatpak = self.require_tool("flatpak", "install flatpak")

        work = request.work_dir
        repo = work / "repo"
        # State dir on the same filesystem as the build dir; bridged mounts break hardlinks.
        self.run(
            [
                builder,
                "--force-clean",
                "--state-dir",
                str(work / "state"),
                "--repo",
                str(repo),
                str(work / "build"),
                str(manifest_path),
            ],
            request,
            cwd=work,
        )
        bundle = work / f"{identifier}.flatpak"
        self.run([flatpak, "build-bundle", str(repo), str(bundle), identifier], request, cwd=work)
        return InstallerOutput(files=[self.publish(bundle, request)])

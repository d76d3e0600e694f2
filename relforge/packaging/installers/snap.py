# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Snap via `snapcraft pack`.

The binary is already built, so the generated snapcraft.yaml uses the dump
plugin over a staged directory instead of rebuilding from source.
"""

from typing import Any

import yaml

from relforge.packaging.installers.base import (
    Installer,
    InstallerOutput,
    InstallerRequest,
    summary_line,
)
from relforge.utils.filesystem import copy_executable

SNAP_BASE = "core22"
SUMMARY_LIMIT = 78


def snap_name(package: str) -> str:
    return package.lower().replace("_", "-")


def snapcraft_manifest(request: InstallerRequest) -> dict[str, Any]:
    name = snap_name(request.package)
    summary = summary_line(request)
    return {
        "name": name,
        "base": SNAP_BASE,
        "version": request.version,
        "summary": summary[:SUMMARY_LIMIT],
        "description": summary,
        "grade": "stable",
        "confinement": "classic",
        "apps": {name: {"command": f"bin/{request.package}"}},
        "parts": {name: {"plugin": "dump", "source": "stage"}},
    }


class SnapInstaller(Installer):
    tag = "linux-snap"
    host_os = "linux"
    log_name = "snapcraft-pack.log"

    def build(self, request: InstallerRequest) -> InstallerOutput:
        snapcraft = self.require_tool("snapcraft", "snap install snapcraft --classic")
        binary = self.binary_of(request)

        copy_executable(binary, request.work_dir / "stage" / "bin" / request.package)
        manifest_path = request.work_dir / "snap" / "snapcraft.yaml"
        manifest_path.parent.mkdir(parents=True, exist_ok=True)
        manifest_path.write_text(
            yaml.safe_dump(snapcraft_manifest(request), sort_keys=False), encoding="utf-8"
        )

        self.run([snapcraft, "pack"], request, cwd=request.work_dir)
        outputs = sorted(request.work_dir.glob("*.snap"))
        if not outputs:
            outputs = self.find_outputs(request.work_dir, "*.snap")
        return InstallerOutput(files=[self.publish(path, request) for path in outputs])

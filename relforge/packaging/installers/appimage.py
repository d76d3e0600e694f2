# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
AppImage via linuxdeploy.

linuxdeploy insists on a desktop entry and an icon. Projects rarely ship a
64x64 PNG next to a CLI, so a plain placeholder icon is generated.
The tool path can be overridden with the LINUXDEPLOY environment variable.
"""

import struct
import zlib

from relforge.packaging.installers.base import Installer, InstallerOutput, InstallerRequest
from relforge.utils.filesystem import copy_executable

ICON_SIZE = 64
ICON_RGB = (0x4A, 0x90, 0xD9)


def _png_chunk(kind: bytes, data: bytes) -> bytes:
    return (
        struct.pack(">I", len(data))
        + kind
        + data
        + struct.pack(">I", zlib.crc32(kind + data) & 0xFFFFFFFF)
    )


def solid_png(size: int = ICON_SIZE, rgb: tuple[int, int, int] = ICON_RGB) -> bytes:
    """A square single-colour RGB PNG."""
    row = b"\x00" + bytes(rgb) * size
    header = struct.pack(">IIBBBBB", size, size, 8, 2, 0, 0, 0)
    return (
        b"\x89PNG\r\n\x1a\n"
        + _png_chunk(b"IHDR", header)
        + _png_chunk(b"IDAT", zlib.compress(row * size, 9))
        + _png_chunk(b"IEND", b"")
    )


def desktop_entry(package: str, comment: str) -> str:
    return (
        "[Desktop Entry]\n"
        "Type=Application\n"
        f"Name={package}\n"
        f"Comment={comment}\n"
        f"Exec={package}\n"
        f"Icon={package}\n"
        "Categories=Utility;\n"
        "Terminal=true\n"
    )


class AppImageInstaller(Installer):
    tag = "linux-appimage"
    host_os = "linux"
    log_name = "appimage-pack.log"

    def build(self, request: InstallerRequest) -> InstallerOutput:
        tool = self._environ.get("LINUXDEPLOY") or "linuxdeploy"
        linuxdeploy = self.require_tool(tool, "set LINUXDEPLOY to its path")
        binary = self.binary_of(request)
        package = request.package

        appdir = request.work_dir / "AppDir"
        executable = copy_executable(binary, appdir / "usr" / "bin" / package)
        desktop = appdir / "usr" / "share" / "applications" / f"{package}.desktop"
        desktop.parent.mkdir(parents=True, exist_ok=True)
        desktop.write_text(
            desktop_entry(package, request.metadata.description or package), encoding="utf-8"
        )
        icon = request.work_dir / f"{package}.png"
        icon.write_bytes(solid_png())

        env = {"VERSION": request.version, "ARCH": request.target.arch}
        self.run(
            [
                linuxdeploy,
                "--appdir",
                str(appdir),
                "--executable",
                str(executable),
                "--desktop-file",
                str(desktop),
                "--icon-file",
                str(icon),
                "--output",
                "appimage",
            ],
            request,
            cwd=request.work_dir,
            env=env,
        )
        outputs = sorted(request.work_dir.glob("*.AppImage"))
        if not outputs:
            outputs = self.find_outputs(request.work_dir, "*.AppImage")
        return InstallerOutput(files=[self.publish(path, request) for path in outputs])

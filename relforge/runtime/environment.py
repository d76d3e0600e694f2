# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Host detection and environment inspection.

Answers three questions the pipeline needs before it builds anything:
  - which OS family and architecture are we on (drives naming and which
    installers can run at all)
  - what is the compiler's host triple (the one target that needs no cross
    toolchain)
  - is the project on a bridged filesystem where cargo's temp files break
"""

import platform
import subprocess
import sys
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import NamedTuple, Optional

from relforge.logging.logger import get_logger

logger = get_logger(__name__)

MINIMUM_PYTHON_MAJOR = 3
MINIMUM_PYTHON_MINOR = 11

# Filesystems where cargo has trouble removing its temp archives (WSL drvfs,
# FUSE mounts, Plan 9 shares used by VMs and containers).
BRIDGED_FILESYSTEMS: frozenset[str] = frozenset({"drvfs", "fuseblk", "9p", "9p2000", "v9fs"})

_OS_TAGS = {"linux": "linux", "darwin": "macos", "windows": "windows"}
_ARCH_ALIASES = {"amd64": "x86_64", "x64": "x86_64", "arm64": "aarch64"}


@dataclass(frozen=True)
class HostInfo:
    """What we are building on."""

    os_tag: str
    arch: str
    triple: str

    @property
    def is_linux(self) -> bool:
        return self.os_tag == "linux"

    @property
    def is_macos(self) -> bool:
        return self.os_tag == "macos"

    @property
    def is_windows(self) -> bool:
        return self.os_tag == "windows"


class SystemInfo(NamedTuple):
    """Snapshot of the current system environment."""

    python_version: str
    platform: str
    architecture: str
    hostname: str


def os_tag_for(system_name: str) -> str:
    """Normalize `platform.system()` output (also msys/mingw/cygwin) to linux/macos/windows."""
    lowered = system_name.lower()
    if lowered.startswith(("msys", "mingw", "cygwin")):
        return "windows"
    return _OS_TAGS.get(lowered, lowered)


def normalize_arch(machine: str) -> str:
    lowered = machine.lower()
    return _ARCH_ALIASES.get(lowered, lowered)


def _guess_triple(os_tag: str, arch: str) -> str:
    if os_tag == "linux":
        return f"{arch}-unknown-linux-gnu"
    if os_tag == "macos":
        return f"{arch}-apple-darwin"
    if os_tag == "windows":
        return f"{arch}-pc-windows-msvc"
    return f"{arch}-unknown-{os_tag}"


def query_rustc_host(rustc: str = "rustc") -> Optional[str]:
    """
    Ask rustc for its host triple (`rustc -vV`, line `host: ...`).

    Returns None if rustc is missing or prints something unexpected.
    """
    try:
        result = subprocess.run(
            [rustc, "-vV"],
            capture_output=True,
            text=True,
            timeout=15,
            check=False,
        )
    except (FileNotFoundError, subprocess.TimeoutExpired):
        return None

    if result.returncode != 0:
        return None

    for line in result.stdout.splitlines():
        if line.startswith("host:"):
            return line.split(":", 1)[1].strip() or None
    return None


def detect_host(rustc: str = "rustc") -> HostInfo:
    """Detect the host, preferring rustc's own idea of the host triple."""
    os_tag = os_tag_for(platform.system())
    arch = normalize_arch(platform.machine())
    triple = query_rustc_host(rustc) or _guess_triple(os_tag, arch)
    return HostInfo(os_tag=os_tag, arch=arch, triple=triple)


def filesystem_type(path: Path, mounts_file: Path = Path("/proc/mounts")) -> Optional[str]:
    """
    Filesystem type of the mount containing `path`, from /proc/mounts.

    Picks the longest mount point that is a prefix of the resolved path.
    Returns None where /proc/mounts does not exist (macOS, Windows).
    """
    try:
        content = mounts_file.read_text(encoding="utf-8", errors="replace")
    except OSError:
        return None

    resolved = str(path.resolve())
    best_mount = ""
    best_type: Optional[str] = None
    for line in content.splitlines():
        fields = line.split()
        if len(fields) < 3:
            continue
        mount_point = fields[1].replace("\\040", " ")
        prefix = mount_point.rstrip("/") + "/"
        if resolved == mount_point or resolved.startswith(prefix) or mount_point == "/":
            if len(mount_point) >= len(best_mount):
                best_mount = mount_point
                best_type = fields[2]
    return best_type


def safe_target_dir(
    project_root: Path,
    project_name: str,
    mounts_file: Path = Path("/proc/mounts"),
) -> Optional[Path]:
    """
    Pick a cargo target dir off a bridged filesystem, or None if not needed.

    Only called when neither the config nor the environment set a target dir.
    """
    fs_type = filesystem_type(project_root, mounts_file)
    if fs_type is None:
        return None
    if fs_type in BRIDGED_FILESYSTEMS or fs_type.startswith("9p"):
        target = Path(tempfile.gettempdir()) / f"{project_name}-target"
        logger.info(
            "Project is on a bridged filesystem, moving build output",
            extra={"fs_type": fs_type, "target_dir": str(target)},
        )
        return target
    return None


def check_minimum_python() -> None:
    """
    Verify we're running Python 3.11+ (tomllib, modern typing).

    Raises:
        RuntimeError: If Python version is below 3.11.
    """
    major, minor = sys.version_info[:2]
    if major < MINIMUM_PYTHON_MAJOR or (
        major == MINIMUM_PYTHON_MAJOR and minor < MINIMUM_PYTHON_MINOR
    ):
        raise RuntimeError(
            f"relforge requires Python >= {MINIMUM_PYTHON_MAJOR}.{MINIMUM_PYTHON_MINOR}, "
            f"but you're running {major}.{minor}. Please upgrade."
        )


def get_system_info() -> SystemInfo:
    """Collect basic system information for logging and diagnostics."""
    return SystemInfo(
        python_version=platform.python_version(),
        platform=platform.system(),
        architecture=platform.machine(),
        hostname=platform.node(),
    )

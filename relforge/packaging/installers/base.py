# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Installer sub-builder base class.

A sub-builder wraps one third-party packaging tool. It receives the host
build of one package plus static metadata, works in a private scratch
directory, and hands back the files it produced. It never triggers builds.

Failure is signalled by raising PackagingError. The pipeline catches it,
appends it to the sub-builder's own log, and records a packaging warning,
so a broken packager never stops its siblings.
"""

import os
import re
import shutil
from dataclasses import dataclass, field
from pathlib import Path
from typing import Mapping, Optional, Sequence

from relforge.config.schema import PackageMetadata
from relforge.errors import PackagingError
from relforge.models import Manifest, PlatformTarget
from relforge.runtime.environment import HostInfo
from relforge.toolchain.package_manager import WhichFn
from relforge.utils.process import ToolResult, ToolRunner, run_tool


@dataclass(frozen=True)
class InstallerRequest:
    """Everything a sub-builder may look at."""

    package: str
    binary: Optional[Path]
    target: PlatformTarget
    version: str
    metadata: PackageMetadata
    output_dir: Path
    work_dir: Path
    log_file: Path
    docs: tuple[Path, ...] = ()
    heartbeat_seconds: float = 5.0


@dataclass
class InstallerOutput:
    files: list[Path] = field(default_factory=list)
    manifests: list[Manifest] = field(default_factory=list)


def slug(package: str) -> str:
    """Identifier-safe form of a package name: hyperdu-cli → hyperdu_cli."""
    return re.sub(r"[^A-Za-z0-9_]", "_", package)


def summary_line(request: InstallerRequest) -> str:
    return request.metadata.description or f"{request.package} command-line tool"


class Installer:
    """
    Base class for sub-builders.

    Subclasses set `tag`, `host_os` (None: runs anywhere) and `log_name`,
    and implement `build`.
    """

    tag: str = ""
    host_os: Optional[str] = None
    log_name: str = ""
    requires_binary: bool = True

    def __init__(
        self,
        runner: ToolRunner = run_tool,
        which: WhichFn = shutil.which,
        environ: Optional[Mapping[str, str]] = None,
    ) -> None:
        self._runner = runner
        self._which = which
        self._environ = os.environ if environ is None else environ

    def unsupported_reason(self, host: HostInfo) -> Optional[str]:
        if self.host_os is not None and host.os_tag != self.host_os:
            return f"{self.tag} needs a {self.host_os} host, running on {host.os_tag}"
        return None

    def build(self, request: InstallerRequest) -> InstallerOutput:
        raise NotImplementedError

    def require_tool(self, name: str, hint: str = "") -> str:
        """Absolute path of `name` on PATH, or PackagingError."""
        found = self._which(name)
        if not found:
            message = f"{name} not found on PATH"
            raise PackagingError(f"{message} ({hint})" if hint else message)
        return found

    def run(
        self,
        argv: Sequence[str],
        request: InstallerRequest,
        cwd: Optional[Path] = None,
        env: Optional[Mapping[str, str]] = None,
    ) -> ToolResult:
        result = self._runner(
            list(argv),
            cwd=cwd,
            env=env,
            log_file=request.log_file,
            heartbeat_seconds=request.heartbeat_seconds,
            label=f"{self.tag} {Path(argv[0]).name}",
        )
        if not result.ok:
            raise PackagingError(
                f"{Path(argv[0]).name} failed with exit {result.exit_code}: {result.tail(5)}"
            )
        return result

    @staticmethod
    def publish(source: Path, request: InstallerRequest) -> Path:
        """Copy a produced file into the output directory under its own name."""
        if not source.is_file():
            raise PackagingError(f"expected output {source.name} was not produced")
        destination = request.output_dir / source.name
        shutil.copy2(str(source), str(destination))
        return destination

    @staticmethod
    def find_outputs(directory: Path, pattern: str) -> list[Path]:
        """Files under `directory` matching `pattern`, sorted; PackagingError if none."""
        found = sorted(path for path in directory.rglob(pattern) if path.is_file())
        if not found:
            raise PackagingError(f"no {pattern} produced under {directory}")
        return found

    @staticmethod
    def binary_of(request: InstallerRequest) -> Path:
        if request.binary is None or not request.binary.is_file():
            raise PackagingError(f"no host build of {request.package} to package")
        return request.binary

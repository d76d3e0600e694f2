# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Build executor: runs cargo for one BuildJob and reports the executable it
actually wrote.

The output location is never guessed. Profile names, CARGO_TARGET_DIR
overrides, and `--target` subdirectories all move the binary, so the
executor asks cargo: it runs with `--message-format=json-render-diagnostics`
and reads the path from the `compiler-artifact` events.

Failure modes:
  - non-zero exit                      → BuildError with the diagnostics
  - zero exit, no executable reported  → ArtifactNotFoundError
  - reported executable missing on disk → ArtifactNotFoundError
"""

import logging
from pathlib import Path
from typing import Callable, Optional

from relforge.build.events import (
    collect_executables,
    diagnostics_text,
    parse_events,
    select_executable,
)
from relforge.config.schema import CargoConfig
from relforge.errors import ArtifactNotFoundError, BuildError
from relforge.logging.logger import get_logger
from relforge.models import BuildJob
from relforge.utils.process import ToolResult, stream_tool

_logger: logging.Logger = get_logger(__name__)

MESSAGE_FORMAT = "--message-format=json-render-diagnostics"

StreamRunner = Callable[..., ToolResult]


def build_log_name(job: BuildJob) -> str:
    return f"build_{job.package}_{job.target.triple}_{job.flavor.value}.log"


class BuildExecutor:
    """
    Runs one cargo build per job, strictly one at a time.

    Args:
        cargo: Compiler invocation settings.
        project_root: Working directory for cargo (the workspace root).
        target_dir: Build output root; exported as CARGO_TARGET_DIR when set.
        log_dir: When set (verbose mode), raw cargo output for each job is
            written to <log_dir>/build_<package>_<triple>_<flavor>.log.
        heartbeat_seconds: Interval for "still running" lines.
        runner: Streaming process runner, replaceable in tests.
    """

    def __init__(
        self,
        cargo: CargoConfig,
        project_root: Path,
        target_dir: Optional[Path] = None,
        log_dir: Optional[Path] = None,
        heartbeat_seconds: float = 5.0,
        runner: StreamRunner = stream_tool,
    ) -> None:
        self._cargo = cargo
        self._project_root = project_root
        self._target_dir = target_dir
        self._log_dir = log_dir
        self._heartbeat = heartbeat_seconds
        self._runner = runner

    def command_for(self, job: BuildJob) -> list[str]:
        cargo = self._cargo
        argv = list(cargo.command)
        if cargo.nightly:
            argv.append("+nightly")
        argv += ["build", "-p", job.package]
        if cargo.profile == "release":
            argv.append("--release")
        else:
            argv += ["--profile", cargo.profile]
        argv += ["--target", str(job.target.triple), MESSAGE_FORMAT]
        if cargo.locked:
            argv.append("--locked")
        if cargo.timings:
            argv.append("--timings")
        argv += list(job.extra_args)
        argv += list(cargo.extra_args)
        return argv

    def env_for(self, job: BuildJob) -> dict[str, str]:
        env = dict(job.env)
        if self._target_dir is not None:
            env["CARGO_TARGET_DIR"] = str(self._target_dir)
        return env

    def execute(self, job: BuildJob) -> Path:
        """
        Build one job and return the path of the produced executable.

        Raises:
            BuildError: cargo exited non-zero.
            ArtifactNotFoundError: cargo succeeded but reported no usable executable.
        """
        argv = self.command_for(job)
        log_file = self._log_dir / build_log_name(job) if self._log_dir is not None else None

        _logger.info(
            "Building",
            extra={
                "package": job.package,
                "triple": str(job.target.triple),
                "flavor": job.flavor.value,
                "required": job.required,
            },
        )

        lines: list[str] = []
        result = self._runner(
            argv,
            on_line=lines.append,
            cwd=self._project_root,
            env=self.env_for(job),
            log_file=log_file,
            heartbeat_seconds=self._heartbeat,
            label=f"cargo build {job.key}",
        )

        events = parse_events(lines)

        if not result.ok:
            diagnostics = diagnostics_text(lines, events) or result.tail()
            raise BuildError(
                f"cargo build failed for {job.key} (exit {result.exit_code})",
                exit_code=result.exit_code,
                diagnostics=diagnostics,
            )

        executable = select_executable(events, package=job.package)
        if executable is None:
            raise ArtifactNotFoundError(
                f"cargo build succeeded for {job.key} but reported no executable"
            )
        candidates = collect_executables(events)
        if len(candidates) > 1:
            _logger.debug(
                "Several executables reported",
                extra={
                    "package": job.package,
                    "candidates": [str(path) for path in candidates],
                    "selected": str(executable),
                },
            )
        if not executable.is_file():
            raise ArtifactNotFoundError(
                f"cargo reported {executable} for {job.key}, but the file does not exist"
            )

        _logger.info(
            "Build finished",
            extra={
                "package": job.package,
                "triple": str(job.target.triple),
                "flavor": job.flavor.value,
                "executable": str(executable),
                "elapsed_seconds": round(result.elapsed_seconds, 3),
            },
        )
        return executable

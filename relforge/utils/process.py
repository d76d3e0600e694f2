# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
External tool invocation.

Every external program relforge runs (cargo, rustup, apt-get, dpkg-deb,
linuxdeploy, ...) goes through `stream_tool`. It:

  - never uses shell=True
  - merges stderr into stdout so nothing is lost and nothing deadlocks
  - hands each output line to a callback as it arrives
  - optionally tees raw output into a per-step log file
  - runs a Heartbeat alongside the child
  - never raises on a non-zero exit; the exit code is part of the result

A missing executable is reported as exit code 127, the same code a shell
would give, instead of a FileNotFoundError.
"""

import os
import subprocess
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Mapping, Optional, Sequence

from relforge.build.heartbeat import Heartbeat
from relforge.logging.logger import get_logger

logger = get_logger(__name__)

COMMAND_NOT_FOUND = 127

LineCallback = Callable[[str], None]


@dataclass(frozen=True)
class ToolResult:
    """Outcome of one external tool invocation."""

    argv: tuple[str, ...]
    exit_code: int
    output: str
    elapsed_seconds: float

    @property
    def ok(self) -> bool:
        return self.exit_code == 0

    def tail(self, lines: int = 20) -> str:
        """Last few lines of output, for error messages."""
        return "\n".join(self.output.splitlines()[-lines:])


ToolRunner = Callable[..., ToolResult]


def _merged_env(env: Optional[Mapping[str, str]]) -> dict[str, str]:
    merged = dict(os.environ)
    if env:
        merged.update(env)
    return merged


def stream_tool(
    argv: Sequence[str],
    on_line: Optional[LineCallback] = None,
    cwd: Optional[Path] = None,
    env: Optional[Mapping[str, str]] = None,
    log_file: Optional[Path] = None,
    heartbeat_seconds: float = 5.0,
    label: Optional[str] = None,
) -> ToolResult:
    """
    Run a command to completion, streaming its output line by line.

    Args:
        argv: Program and arguments.
        on_line: Called with each output line (newline stripped).
        cwd: Working directory for the child.
        env: Extra environment variables, layered over os.environ.
        log_file: If set, raw output is appended here.
        heartbeat_seconds: Interval for "still running" log lines.
        label: Name used in heartbeat lines; defaults to the program name.

    Returns:
        ToolResult with the exit code and the captured output.
    """
    argv = tuple(str(part) for part in argv)
    label = label or Path(argv[0]).name
    start = time.monotonic()
    captured: list[str] = []

    log_handle = None
    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        log_handle = open(log_file, "a", encoding="utf-8")
        log_handle.write(f"$ {' '.join(argv)}\n")

    try:
        try:
            process = subprocess.Popen(
                argv,
                cwd=str(cwd) if cwd is not None else None,
                env=_merged_env(env),
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                text=True,
                encoding="utf-8",
                errors="replace",
            )
        except (FileNotFoundError, PermissionError) as err:
            message = f"{argv[0]}: {err.strerror or err}"
            if log_handle is not None:
                log_handle.write(message + "\n")
            logger.debug("Tool not runnable", extra={"argv": list(argv), "error": str(err)})
            return ToolResult(
                argv=argv,
                exit_code=COMMAND_NOT_FOUND,
                output=message,
                elapsed_seconds=time.monotonic() - start,
            )

        with process:
            try:
                with Heartbeat(label, heartbeat_seconds, is_alive=lambda: process.poll() is None):
                    assert process.stdout is not None
                    for raw_line in process.stdout:
                        line = raw_line.rstrip("\r\n")
                        captured.append(line)
                        if log_handle is not None:
                            log_handle.write(line + "\n")
                        if on_line is not None:
                            on_line(line)
                    exit_code = process.wait()
            finally:
                # A raising callback or an interrupt must not leave the child behind.
                if process.poll() is None:
                    process.kill()
                    process.wait()

        if log_handle is not None:
            log_handle.write(f"[exit {exit_code}]\n")
    finally:
        if log_handle is not None:
            log_handle.close()

    elapsed = time.monotonic() - start
    logger.debug(
        "Tool finished",
        extra={"argv": list(argv), "exit_code": exit_code, "elapsed_seconds": round(elapsed, 3)},
    )
    return ToolResult(
        argv=argv,
        exit_code=exit_code,
        output="\n".join(captured),
        elapsed_seconds=elapsed,
    )


def run_tool(
    argv: Sequence[str],
    cwd: Optional[Path] = None,
    env: Optional[Mapping[str, str]] = None,
    log_file: Optional[Path] = None,
    heartbeat_seconds: float = 5.0,
    label: Optional[str] = None,
) -> ToolResult:
    """Run a command to completion and return its captured output."""
    return stream_tool(
        argv,
        cwd=cwd,
        env=env,
        log_file=log_file,
        heartbeat_seconds=heartbeat_seconds,
        label=label,
    )

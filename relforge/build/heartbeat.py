# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
"Still running" heartbeat for long external tool invocations.

A release build can sit inside one cargo invocation for many minutes without
printing anything we parse. The heartbeat is a daemon thread that logs a
progress line every few seconds while the child is alive.

It is purely observational: it reads nothing but the child's liveness and the
clock, writes nothing but log lines, and stops the moment the child exits or
the owning `with` block ends, whichever comes first.
"""

import threading
import time
from types import TracebackType
from typing import Callable, Optional

from relforge.logging.logger import get_logger

logger = get_logger(__name__)

EmitFn = Callable[[str, float], None]


def _log_heartbeat(label: str, elapsed: float) -> None:
    logger.info("Still running", extra={"label": label, "elapsed_seconds": round(elapsed, 1)})


class Heartbeat:
    """
    Context manager that emits periodic progress lines.

    Usage:
        process = subprocess.Popen(...)
        with Heartbeat("cargo build hyperdu-cli", 5.0, is_alive=lambda: process.poll() is None):
            for line in process.stdout:
                ...
            process.wait()
    """

    def __init__(
        self,
        label: str,
        interval_seconds: float,
        is_alive: Optional[Callable[[], bool]] = None,
        emit: Optional[EmitFn] = None,
    ) -> None:
        if interval_seconds <= 0:
            raise ValueError(f"Heartbeat interval must be positive, got {interval_seconds}")
        self._label = label
        self._interval = interval_seconds
        self._is_alive = is_alive
        self._emit = emit or _log_heartbeat
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._started_at = 0.0
        self.beats = 0

    def _run(self) -> None:
        while not self._stop.wait(self._interval):
            if self._is_alive is not None and not self._is_alive():
                return
            self.beats += 1
            self._emit(self._label, time.monotonic() - self._started_at)

    def start(self) -> None:
        self._started_at = time.monotonic()
        self._thread = threading.Thread(
            target=self._run, name=f"heartbeat:{self._label}", daemon=True
        )
        self._thread.start()

    def stop(self) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join()
            self._thread = None

    def __enter__(self) -> "Heartbeat":
        self.start()
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        self.stop()

# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Safe filesystem operations for relforge.

Atomic writes work by writing to a temporary file in the same directory as
the target, then replacing. Replace on the same filesystem is atomic, so a
crash mid-write leaves either the old content or the new content, never a
half-written manifest.
"""

import os
import shutil
import stat
import tempfile
from pathlib import Path

TEMP_PREFIX = ".relforge_tmp_"


def atomic_write(target_path: Path, content: str, encoding: str = "utf-8") -> None:
    """
    Write text to a file atomically.

    The temp file lives in the target's directory so `os.replace` never
    crosses a filesystem boundary. Unlike a plain rename this also works on
    Windows when the target already exists.

    Raises:
        OSError: If the write or replace fails. The target is untouched.
    """
    atomic_write_bytes(target_path, content.encode(encoding))


def atomic_write_bytes(target_path: Path, data: bytes) -> None:
    """Write binary data to a file atomically. Same approach as atomic_write."""
    target_path.parent.mkdir(parents=True, exist_ok=True)

    # delete=False: the file must survive closing so it can be moved into place.
    temp_fd = tempfile.NamedTemporaryFile(
        mode="wb",
        dir=str(target_path.parent),
        prefix=TEMP_PREFIX,
        suffix=".tmp",
        delete=False,
    )
    temp_path = Path(temp_fd.name)

    try:
        temp_fd.write(data)
        temp_fd.flush()
        os.fsync(temp_fd.fileno())
        temp_fd.close()
        if target_path.exists():
            shutil.copymode(str(target_path), str(temp_path))
        os.replace(temp_path, target_path)
    except BaseException:
        temp_fd.close()
        if temp_path.exists():
            temp_path.unlink()
        raise


def reset_directory(path: Path) -> Path:
    """
    Delete a directory tree (if present) and recreate it empty.

    Callers are responsible for checking the path is safe to wipe; see
    relforge.utils.paths.ensure_safe_output_dir.
    """
    if path.is_symlink() or path.is_file():
        path.unlink()
    elif path.exists():
        shutil.rmtree(path)
    path.mkdir(parents=True, exist_ok=True)
    return path


def copy_executable(source: Path, destination: Path) -> Path:
    """
    Copy a binary and mark it executable for everyone who can read it.

    Overwrites an existing destination: artifact names are deterministic, so
    a collision means "same artifact, newer build".
    """
    destination.parent.mkdir(parents=True, exist_ok=True)
    shutil.copy2(str(source), str(destination))
    mode = destination.stat().st_mode
    destination.chmod(mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    return destination

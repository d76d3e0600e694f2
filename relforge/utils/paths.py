# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Path utilities for relforge.

The output directory is wiped at the start of every run. That is only safe if
it cannot point at something precious, so the guard lives here.
"""

from pathlib import Path

from relforge.errors import OutputDirectoryError


def ensure_directory(path: Path) -> Path:
    """Create a directory (and parents) if it doesn't exist. Returns the path for chaining."""
    path.mkdir(parents=True, exist_ok=True)
    return path


def resolve_under(base: Path, value: str) -> Path:
    """Resolve a config path: absolute paths stay as-is, relative ones hang off `base`."""
    candidate = Path(value).expanduser()
    if not candidate.is_absolute():
        candidate = base / candidate
    return candidate.resolve()


def ensure_safe_output_dir(output_dir: Path, project_root: Path) -> Path:
    """
    Refuse to clear directories whose loss would destroy the project.

    Rejected:
      - the filesystem root and the user's home directory
      - the project root itself, or any ancestor of it

    Returns:
        The resolved output directory.

    Raises:
        OutputDirectoryError: If the directory is not safe to wipe.
    """
    resolved = output_dir.resolve()
    root = project_root.resolve()

    if resolved == Path(resolved.anchor) or resolved == Path.home().resolve():
        raise OutputDirectoryError(f"Refusing to use {resolved} as the output directory")

    if resolved == root or resolved in root.parents:
        raise OutputDirectoryError(
            f"Output directory {resolved} contains the project root {root}; "
            "refusing to clear it."
        )

    return resolved

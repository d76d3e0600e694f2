# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Release checksums.

SHA256SUMS lists every top-level file in the output directory, one line per
file in the GNU coreutils format, sorted by name:

    <sha256hex>  <filename>

so `sha256sum -c SHA256SUMS` works on the published assets. Subdirectories
(logs, manifests) are not release assets and are not listed.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path

from relforge.logging.logger import get_logger
from relforge.utils.filesystem import TEMP_PREFIX, atomic_write
from relforge.utils.hashing import compute_sha256, verify_checksum

_logger: logging.Logger = get_logger(__name__)

CHECKSUM_FILENAME = "SHA256SUMS"


@dataclass(frozen=True)
class VerificationResult:
    """Outcome of a checksum verification run."""

    is_valid: bool
    checked_count: int
    mismatches: list[str] = field(default_factory=list)
    missing_files: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)


def generate_checksums(release_dir: Path) -> dict[str, str]:
    """
    SHA-256 of every top-level file in `release_dir`, keyed by file name.

    Raises:
        FileNotFoundError: If release_dir doesn't exist.
    """
    if not release_dir.is_dir():
        raise FileNotFoundError(f"Release directory not found: {release_dir}")

    checksums: dict[str, str] = {}
    for file_path in sorted(release_dir.iterdir()):
        if not file_path.is_file():
            continue
        if file_path.name == CHECKSUM_FILENAME or file_path.name.startswith(TEMP_PREFIX):
            continue
        checksums[file_path.name] = compute_sha256(file_path)

    _logger.info(
        "Checksums generated",
        extra={"file_count": len(checksums), "release_dir": str(release_dir)},
    )
    return checksums


def write_checksum_file(release_dir: Path, checksums: dict[str, str]) -> Path:
    checksum_path = release_dir / CHECKSUM_FILENAME
    lines = [f"{checksums[name]}  {name}" for name in sorted(checksums)]
    atomic_write(checksum_path, "\n".join(lines) + "\n" if lines else "")
    _logger.info(
        "Checksum file written",
        extra={"path": str(checksum_path), "entries": len(lines)},
    )
    return checksum_path


def parse_checksum_file(checksum_path: Path) -> dict[str, str]:
    """
    Parse a SHA256SUMS file into {filename: sha256_hex}.

    Accepts the binary-mode marker (`<hash> *<name>`) that sha256sum -b writes.

    Raises:
        FileNotFoundError: If the file doesn't exist.
        ValueError: If a line is malformed.
    """
    if not checksum_path.is_file():
        raise FileNotFoundError(f"Checksum file not found: {checksum_path}")

    checksums: dict[str, str] = {}
    content = checksum_path.read_text(encoding="utf-8")
    for line_num, line in enumerate(content.splitlines(), start=1):
        line = line.strip()
        if not line:
            continue
        parts = line.split(maxsplit=1)
        if len(parts) != 2:
            raise ValueError(
                f"Invalid checksum format at line {line_num}: expected "
                f"'<sha256>  <filename>', got: {line!r}"
            )
        sha256_hex, filename = parts
        if len(sha256_hex) != 64:
            raise ValueError(
                f"Invalid SHA256 hash length at line {line_num}: "
                f"expected 64 chars, got {len(sha256_hex)}"
            )
        checksums[filename.lstrip("*")] = sha256_hex.lower()
    return checksums


def verify_checksums(release_dir: Path) -> VerificationResult:
    """
    Verify every entry of SHA256SUMS. Reports all mismatches and missing
    files, not just the first.
    """
    checksum_path = release_dir / CHECKSUM_FILENAME
    if not checksum_path.is_file():
        return VerificationResult(
            is_valid=False,
            checked_count=0,
            errors=[f"{CHECKSUM_FILENAME} not found in {release_dir}"],
        )

    try:
        expected = parse_checksum_file(checksum_path)
    except ValueError as err:
        return VerificationResult(
            is_valid=False,
            checked_count=0,
            errors=[f"Failed to parse {CHECKSUM_FILENAME}: {err}"],
        )

    mismatches: list[str] = []
    missing_files: list[str] = []
    checked = 0

    for filename, expected_hash in sorted(expected.items()):
        file_path = release_dir / filename
        if not file_path.is_file():
            missing_files.append(filename)
            _logger.error("File missing during verification", extra={"file": filename})
            continue
        checked += 1
        if not verify_checksum(file_path, expected_hash):
            mismatches.append(filename)
            _logger.error("Checksum mismatch", extra={"file": filename})

    is_valid = not mismatches and not missing_files
    if is_valid:
        _logger.info("All checksums verified", extra={"checked_count": checked})
    else:
        _logger.error(
            "Checksum verification failed",
            extra={"mismatches": len(mismatches), "missing": len(missing_files)},
        )
    return VerificationResult(
        is_valid=is_valid,
        checked_count=checked,
        mismatches=mismatches,
        missing_files=missing_files,
    )

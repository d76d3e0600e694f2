# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Archive writers.

Entries are written in the order given, with a fixed timestamp and fixed
permissions, so two archives built from identical inputs are identical
byte for byte. Archives are assembled next to their destination and moved
into place, so a reader never sees a half-written archive.
"""

import gzip
import io
import os
import tarfile
import tempfile
import zipfile
from pathlib import Path
from typing import Sequence

from relforge.utils.filesystem import TEMP_PREFIX

# 1980-01-01, the earliest timestamp the zip format can store.
FIXED_TIMESTAMP = 315532800
_ZIP_DATE_TIME = (1980, 1, 1, 0, 0, 0)

EXECUTABLE_MODE = 0o755
FILE_MODE = 0o644

ArchiveEntry = tuple[Path, str, bool]


def _write_zip(handle, entries: Sequence[ArchiveEntry]) -> None:
    with zipfile.ZipFile(handle, "w", compression=zipfile.ZIP_DEFLATED, compresslevel=9) as archive:
        for source, arcname, executable in entries:
            info = zipfile.ZipInfo(arcname, date_time=_ZIP_DATE_TIME)
            info.compress_type = zipfile.ZIP_DEFLATED
            mode = EXECUTABLE_MODE if executable else FILE_MODE
            info.external_attr = (0o100000 | mode) << 16
            info.create_system = 3
            archive.writestr(info, source.read_bytes())


def _write_tar_gz(handle, entries: Sequence[ArchiveEntry]) -> None:
    # mtime=0 and no filename keep the gzip header stable.
    with gzip.GzipFile(filename="", mode="wb", fileobj=handle, mtime=0) as compressed:
        with tarfile.open(fileobj=compressed, mode="w", format=tarfile.PAX_FORMAT) as archive:
            for source, arcname, executable in entries:
                data = source.read_bytes()
                info = tarfile.TarInfo(arcname)
                info.size = len(data)
                info.mtime = FIXED_TIMESTAMP
                info.mode = EXECUTABLE_MODE if executable else FILE_MODE
                info.uid = info.gid = 0
                info.uname = info.gname = ""
                archive.addfile(info, io.BytesIO(data))


def write_archive(destination: Path, entries: Sequence[ArchiveEntry], archive_format: str) -> Path:
    """
    Write `entries` into a zip or tar.gz archive at `destination`.

    Args:
        destination: Final archive path. Overwritten if it exists.
        entries: (source file, name inside the archive, executable?) triples.
        archive_format: "zip" or "tar.gz".

    Raises:
        ValueError: Unknown archive format.
        OSError: A source could not be read or the archive not written.
    """
    if archive_format == "zip":
        writer = _write_zip
    elif archive_format == "tar.gz":
        writer = _write_tar_gz
    else:
        raise ValueError(f"Unsupported archive format: {archive_format!r}")

    destination.parent.mkdir(parents=True, exist_ok=True)
    temp_fd = tempfile.NamedTemporaryFile(
        mode="wb",
        dir=str(destination.parent),
        prefix=TEMP_PREFIX,
        suffix=".tmp",
        delete=False,
    )
    temp_path = Path(temp_fd.name)
    try:
        writer(temp_fd, entries)
        temp_fd.close()
        os.chmod(temp_path, FILE_MODE)
        os.replace(temp_path, destination)
    except BaseException:
        temp_fd.close()
        if temp_path.exists():
            temp_path.unlink()
        raise
    return destination

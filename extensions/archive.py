"""Extension archive extraction and packaging.

Imports accept .zip and .tar.gz/.tgz archives whose descriptor sits at the
archive root or inside a single wrapper directory. Exports are always zip.
"""

from __future__ import annotations

import logging
import tarfile
import zipfile
from datetime import datetime
from pathlib import Path, PurePosixPath
from typing import BinaryIO

from extensions.errors import InvalidPackageError
from extensions.manifest import DESCRIPTOR_FILENAME

logger = logging.getLogger(__name__)

TAR_SUFFIXES = (".tar.gz", ".tgz", ".tar")
EXPORT_TIMESTAMP = "%Y-%m-%d-%H%M%S"


def _is_tar(path: Path) -> bool:
    return path.name.lower().endswith(TAR_SUFFIXES)


def _check_member(name: str, archive_path: Path) -> None:
    member = PurePosixPath(name.replace("\\", "/"))
    if member.is_absolute() or ".." in member.parts:
        raise InvalidPackageError(f"Unsafe path in archive {archive_path.name}: {name}")


def extract_archive(archive_path: Path, destination: Path) -> None:
    """Extract a zip or tar archive into a directory.

    Raises:
        InvalidPackageError: If the archive cannot be read or a member
            would land outside the destination.
    """
    if not archive_path.is_file():
        raise InvalidPackageError(f"Archive not found: {archive_path}")

    destination.mkdir(parents=True, exist_ok=True)
    try:
        if _is_tar(archive_path):
            with tarfile.open(archive_path, "r:*") as tar:
                tar.extractall(destination, filter="data")
        else:
            with zipfile.ZipFile(archive_path) as zf:
                for name in zf.namelist():
                    _check_member(name, archive_path)
                zf.extractall(destination)
    except (zipfile.BadZipFile, tarfile.TarError) as e:
        raise InvalidPackageError(f"Failed to open archive {archive_path.name}: {e}") from e
    logger.debug("Extracted %s to %s", archive_path.name, destination)


def locate_descriptor_root(directory: Path) -> Path | None:
    """Find the extension root inside an extracted archive.

    The root itself wins; otherwise the first immediate subdirectory
    (by name) holding a descriptor is used.
    """
    if (directory / DESCRIPTOR_FILENAME).is_file():
        return directory
    for child in sorted(p for p in directory.iterdir() if p.is_dir()):
        if (child / DESCRIPTOR_FILENAME).is_file():
            return child
    return None


def write_archive(source_dir: Path, fileobj: BinaryIO) -> int:
    """Stream a directory tree into a zip archive with relative paths.

    Returns:
        Number of files written.
    """
    count = 0
    with zipfile.ZipFile(fileobj, "w", compression=zipfile.ZIP_DEFLATED) as zf:
        for path in sorted(source_dir.rglob("*")):
            if path.is_file():
                zf.write(path, path.relative_to(source_dir).as_posix())
                count += 1
    return count


def export_filename(extension_id: str, now: datetime | None = None) -> str:
    """Name of an export archive, e.g. "my-ext-2025-01-31-142501.zip"."""
    return f"{extension_id}-{(now or datetime.now()).strftime(EXPORT_TIMESTAMP)}.zip"

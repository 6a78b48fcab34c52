"""Locate and unpack the task archive."""

from __future__ import annotations

import logging
import os
import shlex
import shutil
import stat
import tarfile
import zipfile
from pathlib import Path

from buildpilot.errors import ArchiveError
from buildpilot.shell import ShellAdapter

LOGGER = logging.getLogger(__name__)

SUPPORTED_SUFFIXES = (".zip", ".7z", ".tar.gz", ".tgz", ".rar")
_UNPACK_FORMATS = {".zip": "zip", ".tar.gz": "gztar", ".tgz": "gztar"}


def archive_suffix(path: Path) -> str | None:
    lowered = path.name.lower()
    for suffix in SUPPORTED_SUFFIXES:
        if lowered.endswith(suffix):
            return suffix
    return None


def find_task_archive(task_dir: Path) -> Path:
    """Return the first supported archive in ``task_dir`` by name."""
    if not task_dir.is_dir():
        raise ArchiveError(f"Task directory not found: {task_dir}")
    candidates = sorted(
        entry for entry in task_dir.iterdir() if entry.is_file() and archive_suffix(entry)
    )
    if not candidates:
        raise ArchiveError(
            f"No archive found in {task_dir}. Expected zip/7z/tar.gz/tgz/rar."
        )
    if len(candidates) > 1:
        LOGGER.warning(
            "multiple_task_archives",
            extra={"selected": candidates[0].name, "count": len(candidates)},
        )
    return candidates[0]


def extract_archive(archive: Path, destination: Path, shell: ShellAdapter) -> Path:
    """Unpack ``archive`` into ``destination`` and return the destination."""
    suffix = archive_suffix(archive)
    if suffix is None:
        raise ArchiveError(f"Unsupported archive format: {archive}")
    destination.mkdir(parents=True, exist_ok=True)

    unpack_format = _UNPACK_FORMATS.get(suffix)
    if unpack_format is not None:
        try:
            if unpack_format == "zip":
                _extract_zip(archive, destination)
            else:
                shutil.unpack_archive(str(archive), str(destination), format=unpack_format)
        except (OSError, ValueError, tarfile.TarError, zipfile.BadZipFile) as exc:
            raise ArchiveError(f"Extraction failed for {archive.name}: {exc}") from exc
        LOGGER.info("archive_extracted", extra={"archive": str(archive), "format": unpack_format})
        return destination

    source = shlex.quote(str(archive))
    target = shlex.quote(str(destination))
    command = f"7z x {source} -o{target} -y"
    if suffix == ".rar":
        command = f"{command} || unrar x {source} {target}"
    result = shell.execute(command)
    if result.exit_code != 0:
        raise ArchiveError(f"Extraction failed: {result.stderr or result.stdout}")
    LOGGER.info("archive_extracted", extra={"archive": str(archive), "format": suffix})
    return destination


def _extract_zip(archive: Path, destination: Path) -> None:
    """Extract a zip archive keeping Unix permission bits and symbolic links.

    Entries stored with a symlink mode hold the link target as their data.
    """
    with zipfile.ZipFile(archive) as handle:
        for info in handle.infolist():
            mode = info.external_attr >> 16
            previous = destination / info.filename
            if previous.is_symlink():
                previous.unlink()
            extracted = Path(handle.extract(info, destination))
            if stat.S_ISLNK(mode):
                link_target = extracted.read_text(encoding="utf-8")
                extracted.unlink()
                os.symlink(link_target, extracted)
            elif not info.is_dir() and stat.S_IMODE(mode):
                extracted.chmod(stat.S_IMODE(mode))

"""Move the build output into the release directory."""

from __future__ import annotations

import errno
import logging
import os
import shutil
from pathlib import Path

from buildpilot.errors import PublishError

LOGGER = logging.getLogger(__name__)

DEFAULT_RELEASE_NAME = "dist"


def publish_release(
    output_dir: Path, release_dir: Path, name: str = DEFAULT_RELEASE_NAME
) -> Path:
    """Relocate ``output_dir`` to ``release_dir / name`` and return the new path.

    Any previous release under the same name is removed first. A plain rename
    is attempted; only a cross-device failure switches to copy-then-delete,
    which keeps symbolic links as links.
    """
    destination = release_dir / name
    try:
        release_dir.mkdir(parents=True, exist_ok=True)
        _remove_path(destination)
        try:
            os.rename(output_dir, destination)
        except OSError as exc:
            if exc.errno != errno.EXDEV:
                raise
            LOGGER.info(
                "release_cross_device_copy",
                extra={"source": str(output_dir), "destination": str(destination)},
            )
            shutil.copytree(output_dir, destination, symlinks=True)
            shutil.rmtree(output_dir)
    except OSError as exc:
        LOGGER.error(
            "release_publish_failed",
            extra={"source": str(output_dir), "destination": str(destination), "error": str(exc)},
        )
        raise PublishError(f"Failed to publish {output_dir} to {destination}: {exc}") from exc

    LOGGER.info("release_published", extra={"destination": str(destination)})
    return destination


def _remove_path(target: Path) -> None:
    if target.is_symlink() or target.is_file():
        target.unlink()
    elif target.is_dir():
        shutil.rmtree(target)

"""Find the directory a front-end build wrote its static output to."""

from __future__ import annotations

import logging
import os
from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path

LOGGER = logging.getLogger(__name__)

ENTRY_DOCUMENT = "index.html"
DEFAULT_MAX_DEPTH = 3
DEFAULT_EXCLUDED_DIRS = frozenset(
    {
        "node_modules",
        ".git",
        ".next",
        ".nuxt",
        ".svelte-kit",
        ".angular",
        ".cache",
        "source",
        "release",
    }
)
FALLBACK_OUTPUT_DIRS = ("dist", "build", "out", "public")


@dataclass(frozen=True, slots=True)
class ArtifactCandidate:
    path: Path
    modified: float
    depth: int


def locate_static_output(
    root: Path,
    *,
    max_depth: int = DEFAULT_MAX_DEPTH,
    excluded: Iterable[str] = DEFAULT_EXCLUDED_DIRS,
) -> Path | None:
    """Return the most recently modified directory that holds ``index.html``.

    Subdirectories of ``root`` are searched while the remaining depth budget
    is non-negative; denied names are never entered. When nothing is found,
    the conventional output names directly under ``root`` are tried instead.
    Equal timestamps prefer the shallower directory, then lexical order.
    """
    excluded_names = frozenset(excluded)
    candidates = list(_walk(root, max_depth, excluded_names, depth=1))
    if not candidates:
        candidates = list(_fallback_candidates(root))
        if candidates:
            LOGGER.info("artifact_fallback_used", extra={"root": str(root)})
    if not candidates:
        LOGGER.warning("artifact_not_found", extra={"root": str(root)})
        return None

    best = min(candidates, key=lambda c: (-c.modified, c.depth, str(c.path)))
    LOGGER.info(
        "artifact_selected",
        extra={"path": str(best.path), "candidates": len(candidates)},
    )
    return best.path


def _walk(
    directory: Path, budget: int, excluded: frozenset[str], *, depth: int
) -> Iterable[ArtifactCandidate]:
    if budget < 0:
        return
    try:
        entries = sorted(os.scandir(directory), key=lambda entry: entry.name)
    except OSError as exc:
        LOGGER.warning("artifact_scan_skipped", extra={"path": str(directory), "error": str(exc)})
        return
    for entry in entries:
        if entry.name in excluded or not entry.is_dir(follow_symlinks=False):
            continue
        path = Path(entry.path)
        if (path / ENTRY_DOCUMENT).is_file():
            yield ArtifactCandidate(path=path, modified=path.stat().st_mtime, depth=depth)
        yield from _walk(path, budget - 1, excluded, depth=depth + 1)


def _fallback_candidates(root: Path) -> Iterable[ArtifactCandidate]:
    for name in FALLBACK_OUTPUT_DIRS:
        path = root / name
        if path.is_dir():
            yield ArtifactCandidate(path=path, modified=path.stat().st_mtime, depth=1)

"""Describe a project tree for the planner's first prompt."""

from __future__ import annotations

from pathlib import Path

NO_MANIFEST_TEXT = "No package.json found"


def describe_directory(target: Path, depth: int = 1) -> str:
    entries = _sorted_entries(target)
    lines = [f"{target.name}/: {len(entries)} items"]
    for entry in entries:
        if not entry.is_dir():
            lines.append(f"- {entry.name}")
            continue
        lines.append(f"- {entry.name}/")
        if depth > 0:
            children = [
                f"{child.name}/" if child.is_dir() else child.name
                for child in _sorted_entries(entry)
            ]
            lines.append(f"  {', '.join(children) or '(empty)'}")
    return "\n".join(lines)


def find_package_manifests(target: Path) -> list[Path]:
    """Return the root ``package.json``, or else those one level down."""
    root_manifest = target / "package.json"
    if root_manifest.is_file():
        return [root_manifest]
    return [
        entry / "package.json"
        for entry in _sorted_entries(target)
        if entry.is_dir() and (entry / "package.json").is_file()
    ]


def read_package_manifests(target: Path, *, relative_to: Path | None = None) -> str:
    manifests = find_package_manifests(target)
    if not manifests:
        return NO_MANIFEST_TEXT
    base = relative_to or target.parent
    blocks = []
    for manifest in manifests:
        content = manifest.read_text(encoding="utf-8", errors="replace").strip()
        blocks.append(f"{_display_path(manifest, base)}:\n{content}")
    return "\n\n".join(blocks)


def _display_path(path: Path, base: Path) -> str:
    try:
        return str(path.relative_to(base))
    except ValueError:
        return str(path)


def _sorted_entries(directory: Path) -> list[Path]:
    return sorted(directory.iterdir(), key=lambda entry: entry.name)

"""Filesystem steps around the compile call: build folder setup, cleanup, archiving."""
from __future__ import annotations

from pathlib import Path
from typing import Iterable, List
import os
import shutil
import stat

from core.archive import ArchiveArtifact, ArchiveConsole, ArchiveManager

DO_NOT_SHIP_SUFFIX = "BurstDebugInformation_DoNotShip"


def _make_writable(root: Path) -> None:
    """Clear read-only bits below *root* so the tree can be removed."""

    if not root.exists():
        return
    for dirpath, dirnames, filenames in os.walk(root):
        for name in (*dirnames, *filenames):
            path = Path(dirpath) / name
            if path.is_symlink():
                continue
            path.chmod(path.stat().st_mode | stat.S_IWRITE)
    root.chmod(root.stat().st_mode | stat.S_IWRITE)


def delete_directory(path: Path) -> None:
    if not path.is_dir():
        return
    _make_writable(path)
    shutil.rmtree(path)


def ensure_build_directory(build_dir: Path) -> None:
    """Delete *build_dir* if present and create it empty."""

    if not str(build_dir).strip():
        raise ValueError("Build directory path is empty")
    delete_directory(build_dir)
    build_dir.mkdir(parents=True, exist_ok=True)


def delete_file_if_exists(path: Path | None) -> bool:
    if path is None or not path.is_file():
        return False
    path.chmod(path.stat().st_mode | stat.S_IWRITE)
    path.unlink()
    return True


def _matches(name: str, targets: Iterable[str]) -> bool:
    lowered = name.lower()
    return any(lowered == target or lowered.endswith(target) for target in targets)


def find_directories(root: Path, names: Iterable[str]) -> List[Path]:
    """Directories below *root* whose name equals or ends with one of *names*.

    Matching ignores case. Deeper paths come first so nested matches are
    removed before their parents.
    """

    targets = {name.strip().lower() for name in names if name and name.strip()}
    if not root.is_dir() or not targets:
        return []
    matches = [
        Path(dirpath) / dirname
        for dirpath, dirnames, _ in os.walk(root)
        for dirname in dirnames
        if _matches(dirname, targets)
    ]
    return sorted(matches, key=lambda path: len(str(path)), reverse=True)


def remove_directories_by_name(root: Path, names: Iterable[str]) -> int:
    matches = find_directories(root, names)
    removed = 0
    for path in matches:
        if not path.exists():
            continue
        delete_directory(path)
        removed += 1
    return removed


def remove_do_not_ship_byproducts(root: Path) -> int:
    return remove_directories_by_name(root, [DO_NOT_SHIP_SUFFIX])


def create_archive(
    source_dir: Path,
    target_path: Path,
    *,
    console: ArchiveConsole,
    archive_format: str | None = None,
) -> Path:
    """Archive the contents of *source_dir*; the folder itself is not an entry."""

    if not source_dir.is_dir():
        raise FileNotFoundError(f"Build directory not found: {source_dir}")
    manager = ArchiveManager(console)
    return manager.create_archive(
        artifact=ArchiveArtifact(source_dir=source_dir, label=source_dir.name),
        target_path=target_path,
        format_hint=archive_format,
    )


__all__ = [
    "DO_NOT_SHIP_SUFFIX",
    "create_archive",
    "delete_directory",
    "delete_file_if_exists",
    "ensure_build_directory",
    "find_directories",
    "remove_directories_by_name",
    "remove_do_not_ship_byproducts",
]

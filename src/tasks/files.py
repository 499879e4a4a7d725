# src/tasks/files.py - v1
"""Filesystem helpers shared by the build tasks.

Every listing is sorted so that two runs over the same tree visit files
in the same order. Paths handed around between tasks are posix strings
relative to a root.
"""

from __future__ import annotations

import fnmatch
import shutil
from collections.abc import Iterable, Sequence
from pathlib import Path


def list_files(
    root: Path,
    patterns: Sequence[str] = ("**/*",),
    exclude: Sequence[str] = (),
    dot: bool = True,
) -> list[str]:
    """Relative paths of files under root matching any pattern.

    Args:
        root: Directory to search; a missing directory yields nothing.
        patterns: Path.glob patterns relative to root.
        exclude: fnmatch globs matched against the relative path.
        dot: Include files whose name starts with a dot.
    """
    if not root.is_dir():
        return []
    found: set[str] = set()
    for pattern in patterns:
        for path in root.glob(pattern):
            if not path.is_file():
                continue
            rel = path.relative_to(root).as_posix()
            if not dot and path.name.startswith("."):
                continue
            if is_excluded(rel, exclude):
                continue
            found.add(rel)
    return sorted(found)


def is_excluded(rel: str, exclude: Iterable[str]) -> bool:
    return any(fnmatch.fnmatch(rel, pat) for pat in exclude)


def copy_file(src: Path, dst: Path) -> None:
    dst.parent.mkdir(parents=True, exist_ok=True)
    shutil.copyfile(src, dst)


def copy_tree(
    src_root: Path,
    dst_root: Path,
    patterns: Sequence[str] = ("**/*",),
    exclude: Sequence[str] = (),
) -> list[str]:
    """Copy matching files, keeping relative paths. Returns what was copied."""
    copied = list_files(src_root, patterns, exclude)
    for rel in copied:
        copy_file(src_root / rel, dst_root / rel)
    return copied


def read_text(path: Path) -> str:
    return path.read_text(encoding="utf-8")


def write_text(path: Path, text: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")


def write_bytes(path: Path, data: bytes) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(data)


def remove_tree(path: Path) -> bool:
    """Delete a directory tree. Returns False when there was nothing to delete."""
    if not path.exists():
        return False
    if path.is_dir() and not path.is_symlink():
        shutil.rmtree(path)
    else:
        path.unlink()
    return True

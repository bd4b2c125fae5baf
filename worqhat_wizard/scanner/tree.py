"""Plain-text directory tree renderer."""

from __future__ import annotations

import os
from collections.abc import Iterable
from pathlib import Path

from worqhat_wizard.config import TREE_IGNORE_DIRS

_BRANCH = "├── "
_LAST = "└── "
_PIPE = "│   "
_BLANK = "    "


def _printable(name: str) -> str:
    # Undecodable bytes in file names surface as surrogates; show them as "?".
    return name.encode("utf-8", errors="replace").decode("utf-8")


def _tree_lines(directory: Path, ignore: frozenset[str], prefix: str) -> list[str]:
    try:
        names = sorted(n for n in os.listdir(directory) if n not in ignore)
    except OSError:
        return []

    lines: list[str] = []
    for index, name in enumerate(names):
        full = directory / name
        try:
            # lstat so symlinks are listed but never followed
            is_real_dir = full.is_dir() and not full.is_symlink()
        except OSError:
            continue
        is_last = index == len(names) - 1
        lines.append(prefix + (_LAST if is_last else _BRANCH) + _printable(name))
        if is_real_dir:
            lines.extend(_tree_lines(full, ignore, prefix + (_BLANK if is_last else _PIPE)))
    return lines


def build_project_tree(root: str | Path, ignore_dirs: Iterable[str] = TREE_IGNORE_DIRS) -> str:
    """Render *root* as an indented tree listing.

    Entries whose name is in *ignore_dirs* are omitted entirely.  Symbolic
    links are listed but never descended into.

    Example output::

        my-app
        ├── package.json
        └── src
            └── index.ts
    """
    root_path = Path(root)
    label = root_path.resolve().name or str(root_path)
    return "\n".join([_printable(label), *_tree_lines(root_path, frozenset(ignore_dirs), "")])

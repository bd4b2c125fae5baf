"""Collect small source files that show the project's coding style."""

from __future__ import annotations

import os
from collections.abc import Iterable
from pathlib import Path

from pydantic import BaseModel

from worqhat_wizard.config import SAMPLE_SKIP_DIRS
from worqhat_wizard.scanner.languages import SAMPLE_EXTENSIONS, Language

MAX_SAMPLES = 2
MAX_SAMPLE_BYTES = 100 * 1024


class CodeSample(BaseModel):
    """A project file sent to the backend as a style reference."""

    path: str
    content: str


def find_language_samples(
    cwd: str | Path,
    language: Language,
    skip_dirs: Iterable[str] = SAMPLE_SKIP_DIRS,
    limit: int = MAX_SAMPLES,
) -> list[CodeSample]:
    """Return up to *limit* files written in *language* under *cwd*.

    Files larger than ``MAX_SAMPLE_BYTES`` or that cannot be decoded are
    skipped.  Paths in the result are relative to *cwd*.
    """
    root = Path(cwd)
    extensions = SAMPLE_EXTENSIONS[language]
    skip = frozenset(skip_dirs)
    results: list[CodeSample] = []
    stack: list[Path] = [root]

    while stack and len(results) < limit:
        directory = stack.pop()
        try:
            entries = sorted(os.scandir(directory), key=lambda e: e.name)
        except OSError:
            continue

        for entry in entries:
            if len(results) >= limit:
                break
            try:
                if entry.is_dir(follow_symlinks=False):
                    if entry.name not in skip:
                        stack.append(Path(entry.path))
                    continue
                if Path(entry.name).suffix.lower() not in extensions:
                    continue
                if entry.stat().st_size > MAX_SAMPLE_BYTES:
                    continue
                content = Path(entry.path).read_text(encoding="utf-8")
            except (OSError, UnicodeDecodeError):
                continue
            results.append(
                CodeSample(path=Path(entry.path).relative_to(root).as_posix(), content=content)
            )

    return results

"""Project language and framework detection.

Looks at ``package.json`` dependencies for well-known frontend frameworks and
walks the directory tree (to a shallow depth) collecting languages by file
extension.
"""

from __future__ import annotations

import json
import os
from collections.abc import Iterable
from pathlib import Path

from pydantic import BaseModel, Field

from worqhat_wizard.config import TREE_IGNORE_DIRS
from worqhat_wizard.errors import ScanFailure
from worqhat_wizard.scanner.languages import EXTENSION_LANGUAGES, Language

MAX_SCAN_DEPTH = 3
UNKNOWN_LANGUAGE = "unknown"


class DetectResult(BaseModel):
    """Languages and frameworks found in a project directory."""

    languages: list[str] = Field(default_factory=list)
    frameworks: list[str] = Field(default_factory=list)

    @property
    def languages_or_unknown(self) -> list[str]:
        """Detected languages, or ``["unknown"]`` when nothing matched."""
        return self.languages or [UNKNOWN_LANGUAGE]


def _frameworks_from_package_json(package_json: Path) -> tuple[list[str], set[str]]:
    """Return ``(frameworks, languages)`` implied by a ``package.json``.

    A malformed manifest still marks the project as JavaScript.
    """
    frameworks: list[str] = []
    languages: set[str] = {Language.JAVASCRIPT.value}

    try:
        data = json.loads(package_json.read_text(encoding="utf-8"))
    except (OSError, ValueError):
        return frameworks, languages
    if not isinstance(data, dict):
        return frameworks, languages

    deps: dict[str, object] = {}
    for key in ("dependencies", "devDependencies"):
        section = data.get(key)
        if isinstance(section, dict):
            deps.update(section)

    if deps.get("next"):
        frameworks.append("Next.js")
    if deps.get("astro"):
        frameworks.append("Astro")
    if deps.get("react") and "Next.js" not in frameworks:
        frameworks.append("React")
    if deps.get("svelte") or deps.get("@sveltejs/kit"):
        frameworks.append("Svelte")
    if deps.get("typescript"):
        languages.add(Language.TYPESCRIPT.value)

    return frameworks, languages


def _walk_languages(
    directory: Path,
    ignore: frozenset[str],
    found: set[str],
    depth: int = 0,
) -> None:
    if depth > MAX_SCAN_DEPTH:
        return
    try:
        children = list(os.scandir(directory))
    except OSError:
        return

    for entry in children:
        try:
            is_dir = entry.is_dir()
        except OSError:
            continue
        if is_dir:
            if entry.name not in ignore:
                _walk_languages(Path(entry.path), ignore, found, depth + 1)
            continue
        lang = EXTENSION_LANGUAGES.get(Path(entry.name).suffix.lower())
        if lang is not None:
            found.add(lang.value)


def detect_project(cwd: str | Path, ignore_dirs: Iterable[str] = TREE_IGNORE_DIRS) -> DetectResult:
    """Classify the languages and frameworks used under *cwd*.

    Raises:
        ScanFailure: If *cwd* is not a readable directory.
    """
    root = Path(cwd)
    if not root.is_dir():
        raise ScanFailure(f"Not a directory: {root}")
    try:
        os.listdir(root)
    except OSError as exc:
        raise ScanFailure(f"Cannot read {root}: {exc}") from exc

    frameworks: list[str] = []
    languages: set[str] = set()

    package_json = root / "package.json"
    if package_json.is_file():
        frameworks, languages = _frameworks_from_package_json(package_json)

    _walk_languages(root, frozenset(ignore_dirs), languages)

    return DetectResult(languages=sorted(languages), frameworks=frameworks)

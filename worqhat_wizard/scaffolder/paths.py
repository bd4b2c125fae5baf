"""Look up the well-known integration files in a scaffold proposal.

The backend proposes arbitrary relative paths.  Later generation stages only
care about a handful of them, identified by the ``worqhat/<name>.<ext>``
naming convention.
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from enum import Enum

INTEGRATION_DIR = "worqhat"


class DistinguishedFile(str, Enum):
    """Base names of the integration files later stages fill in."""

    CONFIG = "config"
    DATABASE = "db"
    WORKFLOWS = "workflows"
    STORAGE = "storage"


def _pattern_for(kind: DistinguishedFile) -> re.Pattern[str]:
    # "worqhat" must be a whole path segment; the extension is one alphabetic segment.
    return re.compile(rf"(^|/){INTEGRATION_DIR}/{kind.value}\.[a-z]+$", re.IGNORECASE)


_PATTERNS: dict[DistinguishedFile, re.Pattern[str]] = {
    kind: _pattern_for(kind) for kind in DistinguishedFile
}


def matches_distinguished(path: str, kind: DistinguishedFile) -> bool:
    """Return ``True`` if *path* names the *kind* integration file."""
    return _PATTERNS[kind].search(path.replace("\\", "/")) is not None


def find_distinguished_path(paths: Iterable[str], kind: DistinguishedFile) -> str | None:
    """Return the first proposed path matching *kind*, or ``None``.

    Examples::

        find_distinguished_path(["src/worqhat/config.ts"], DistinguishedFile.CONFIG)
            -> "src/worqhat/config.ts"
        find_distinguished_path(["src/myworqhat/config.ts"], DistinguishedFile.CONFIG)
            -> None
    """
    for path in paths:
        if matches_distinguished(path, kind):
            return path
    return None

"""Scaffold file handling -- distinguished-path lookup and on-disk writes."""

from worqhat_wizard.scaffolder.paths import (
    DistinguishedFile,
    find_distinguished_path,
    matches_distinguished,
)
from worqhat_wizard.scaffolder.writer import (
    WriteReport,
    header_for,
    resolve_inside,
    write_scaffold_files,
)

__all__ = [
    "DistinguishedFile",
    "WriteReport",
    "find_distinguished_path",
    "header_for",
    "matches_distinguished",
    "resolve_inside",
    "write_scaffold_files",
]

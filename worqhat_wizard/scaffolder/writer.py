"""Materialise scaffold proposals on disk.

Only files that do not exist yet are created; an existing file is never
touched, which makes repeated runs against the same proposal safe.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime, timezone
from pathlib import Path

from pydantic import BaseModel, Field

from worqhat_wizard.errors import FilesystemFailure


class WriteReport(BaseModel):
    """Outcome of a scaffold write pass."""

    created: list[str] = Field(default_factory=list)
    skipped: list[str] = Field(default_factory=list)
    failed: dict[str, str] = Field(default_factory=dict)


def header_for(rel_path: str, language: str, created_at: datetime | None = None) -> str:
    """Return the comment header placed at the top of a new scaffold file."""
    stamp = (created_at or datetime.now(timezone.utc)).isoformat()
    lines = [
        "WorqHat scaffold file",
        f"Language: {language}",
        f"Created: {stamp}",
        "You can implement your workflows and database helpers here.",
    ]
    ext = Path(rel_path).suffix.lower()
    if ext == ".py":
        return '"""\n' + "\n".join(lines) + '\n"""\n\n'
    if ext == ".rb":
        return "\n".join(f"# {line}" for line in lines) + "\n\n"
    # JS/TS and anything unrecognised get line comments
    return "\n".join(f"// {line}" for line in lines) + "\n\n"


def resolve_inside(root: Path, rel_path: str) -> Path:
    """Join *rel_path* onto *root*, refusing paths that escape it.

    Raises:
        FilesystemFailure: If the resolved path lies outside *root*.
    """
    base = root.resolve()
    full = (base / rel_path).resolve()
    if full != base and base not in full.parents:
        raise FilesystemFailure(f"Refusing to write outside the project: {rel_path}")
    return full


def write_scaffold_files(cwd: str | Path, paths: Iterable[str], language: str) -> WriteReport:
    """Create every proposed file that does not already exist.

    Failures are collected per file rather than raised so one bad path
    cannot stop the remaining files from being created.
    """
    root = Path(cwd)
    report = WriteReport()
    for rel in paths:
        try:
            full = resolve_inside(root, rel)
            if full.exists():
                report.skipped.append(rel)
                continue
            full.parent.mkdir(parents=True, exist_ok=True)
            with full.open("x", encoding="utf-8") as handle:
                handle.write(header_for(rel, language))
            report.created.append(rel)
        except FileExistsError:
            report.skipped.append(rel)
        except (OSError, FilesystemFailure) as exc:
            report.failed[rel] = str(exc)
    return report

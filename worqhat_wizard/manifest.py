"""Append-only Markdown manifest (``WORQHAT.md``).

Each pipeline stage contributes at most one section.  Sections are only ever
appended to the end of the file, so any later read is a prefix-extension of
an earlier one within the same run.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from datetime import datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING

from worqhat_wizard.errors import FilesystemFailure

if TYPE_CHECKING:
    from worqhat_wizard.backend_client import ScaffoldProposal, WorkflowItem


class ManifestDocument:
    """Handle on the run's manifest file.

    Attributes:
        path: Location of the Markdown file.
        sections: Keys of the sections written so far, in order.
    """

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)
        self.sections: list[str] = []

    def initialize(self, content: str, key: str = "project") -> None:
        """Write the first section, replacing any manifest from an earlier run.

        Raises:
            FilesystemFailure: If the file cannot be written.
        """
        try:
            self.path.write_text(content, encoding="utf-8", errors="replace")
        except OSError as exc:
            raise FilesystemFailure(f"Could not write {self.path}: {exc}") from exc
        self.sections = [key]

    def append(self, key: str, content: str) -> None:
        """Append a section to the end of the manifest.

        Raises:
            ValueError: If the manifest was not initialised or *key* was
                already appended.
            FilesystemFailure: If the file cannot be written.
        """
        if not self.sections:
            raise ValueError("Manifest must be initialised before appending")
        if key in self.sections:
            raise ValueError(f"Manifest section already written: {key}")
        try:
            with self.path.open("a", encoding="utf-8", errors="replace") as handle:
                handle.write(content)
        except OSError as exc:
            raise FilesystemFailure(f"Could not append to {self.path}: {exc}") from exc
        self.sections.append(key)

    def has_section(self, key: str) -> bool:
        return key in self.sections

    def read(self) -> str:
        return self.path.read_text(encoding="utf-8")


# ---------------------------------------------------------------------------
# Section renderers
# ---------------------------------------------------------------------------


def render_project_section(
    languages: Iterable[str],
    frameworks: Iterable[str],
    tree: str,
    created_at: datetime | None = None,
) -> str:
    stamp = (created_at or datetime.now(timezone.utc)).isoformat()
    lines = [
        "# WorqHat Project",
        "",
        "Initialized with WorqHat Wizard.",
        "",
        f"- Date: {stamp}",
        f"- Detected Frameworks: {', '.join(frameworks) or 'none'}",
        f"- Detected Languages: {', '.join(languages)}",
        "",
        "## Project Tree",
        "",
        "```",
        tree,
        "```",
        "",
    ]
    return "\n".join(lines)


def render_workflows_section(workflows: Iterable["WorkflowItem"]) -> str:
    lines = ["", "## Selected Workflows", ""]
    lines.extend(f"- {w.name} ({w.id})" for w in workflows)
    lines.append("")
    return "\n".join(lines)


def render_tables_section(
    tables: Iterable[str],
    table_environments: Mapping[str, list[str]] | None = None,
) -> str:
    """Render the selected tables, annotated with their environments."""
    envs = table_environments or {}
    lines = ["", "## Selected Tables", ""]
    for table in tables:
        if envs.get(table):
            lines.append(f"- {table} ({', '.join(envs[table])})")
        else:
            lines.append(f"- {table}")
    lines.append("")
    return "\n".join(lines)


def render_proposal_section(proposal: "ScaffoldProposal") -> str:
    lines = [
        "",
        "## Proposed WorqHat Structure",
        "",
        "```",
        proposal.tree,
        "```",
        "",
        "Files:",
        "",
    ]
    lines.extend(f"- {p}" for p in proposal.paths)
    lines.append("")
    if proposal.thinking:
        lines.extend(["", "## Thinking", "", proposal.thinking, ""])
    return "\n".join(lines)


def render_docs_section(docs: Iterable[str]) -> str:
    return "".join(f"{doc}\n" for doc in docs)

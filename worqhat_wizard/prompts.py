"""Interactive terminal prompts.

``Prompter`` owns all keyboard interaction: an arrow-key multi-select menu
rendered with ``rich.live.Live`` and a line prompt for the API key.  The
higher-level ``select_*`` helpers turn menu answers into wizard selections
and degrade to an empty selection when the prompt cannot be shown.
"""

from __future__ import annotations

import sys
from collections.abc import Sequence

import readchar
from pydantic import BaseModel
from rich.live import Live
from rich.panel import Panel
from rich.prompt import Prompt
from rich.table import Table

from worqhat_wizard.backend_client import WorkflowItem
from worqhat_wizard.utils import console, print_success, print_warning

HINT = "Use ↑/↓ to move, Space to select/deselect, A to toggle all, Enter to confirm, Esc to skip."


class InstallChoices(BaseModel):
    """Capabilities the user asked the wizard to set up."""

    workflows: bool = False
    database: bool = False
    storage: bool = False

    def labels(self) -> list[str]:
        names = []
        if self.workflows:
            names.append("Workflows")
        if self.database:
            names.append("Database")
        if self.storage:
            names.append("Storage")
        return names


INSTALL_OPTIONS: list[tuple[str, str]] = [
    ("workflows", "Workflows"),
    ("database", "Database"),
    ("storage", "Storage"),
]


def get_key() -> str:
    """Read a single keypress and name the ones the menu reacts to."""
    key = readchar.readkey()
    if key == readchar.key.UP:
        return "up"
    if key == readchar.key.DOWN:
        return "down"
    if key in (readchar.key.ENTER, readchar.key.CR, readchar.key.LF):
        return "enter"
    if key == readchar.key.SPACE:
        return "space"
    if key == readchar.key.ESC:
        return "escape"
    if key == readchar.key.CTRL_C:
        raise KeyboardInterrupt
    return key


class Prompter:
    """Keyboard-driven prompts bound to the shared console."""

    def multiselect(self, title: str, choices: Sequence[tuple[str, str]]) -> list[str]:
        """Let the user tick any number of *choices*.

        Args:
            title: Heading shown above the menu.
            choices: ``(value, label)`` pairs.

        Returns:
            Selected values in menu order.  Esc returns an empty list.

        Raises:
            EOFError: If stdin is not an interactive terminal.
        """
        if not choices:
            return []
        if not sys.stdin.isatty():
            raise EOFError("stdin is not an interactive terminal")

        cursor = 0
        ticked: set[int] = set()

        def render() -> Panel:
            table = Table.grid(padding=(0, 1))
            table.add_column(style="cyan", width=2)
            table.add_column(width=3)
            table.add_column()
            for i, (_, label) in enumerate(choices):
                pointer = "▶" if i == cursor else " "
                box = "[green]◉[/green]" if i in ticked else "○"
                table.add_row(pointer, box, label)
            table.add_row("", "", "")
            table.add_row("", "", f"[dim]{HINT}[/dim]")
            return Panel(table, title=f"[bold]{title}[/bold]", border_style="cyan", padding=(1, 2))

        with Live(render(), console=console, transient=True, auto_refresh=False) as live:
            while True:
                key = get_key()
                if key == "up":
                    cursor = (cursor - 1) % len(choices)
                elif key == "down":
                    cursor = (cursor + 1) % len(choices)
                elif key == "space":
                    ticked ^= {cursor}
                elif key.lower() == "a":
                    ticked = set() if len(ticked) == len(choices) else set(range(len(choices)))
                elif key == "enter":
                    break
                elif key == "escape":
                    ticked = set()
                    break
                live.update(render(), refresh=True)

        return [choices[i][0] for i in sorted(ticked)]

    def ask_secret(self, question: str) -> str:
        return Prompt.ask(question, console=console)


# ---------------------------------------------------------------------------
# Wizard selections
# ---------------------------------------------------------------------------


def _safe_multiselect(
    prompter: Prompter, title: str, choices: Sequence[tuple[str, str]]
) -> list[str]:
    try:
        return prompter.multiselect(title, choices)
    except (EOFError, OSError) as exc:
        print_warning(f"Could not show the selection prompt ({exc}); nothing selected.")
        return []


def prompt_install_options(prompter: Prompter) -> InstallChoices:
    selected = _safe_multiselect(prompter, "What do you want to install?", INSTALL_OPTIONS)
    return InstallChoices(
        workflows="workflows" in selected,
        database="database" in selected,
        storage="storage" in selected,
    )


def select_workflows(prompter: Prompter, items: list[WorkflowItem]) -> list[WorkflowItem]:
    """Ask which of *items* to install and return the chosen records."""
    ids = set(
        _safe_multiselect(
            prompter,
            "Select workflows to install/configure",
            [(w.id, w.name) for w in items],
        )
    )
    chosen = [w for w in items if w.id in ids]
    if chosen:
        print_success(f"Selected workflows: {', '.join(w.name for w in chosen)}")
    else:
        print_warning("No workflows selected.")
    return chosen


def select_environments(prompter: Prompter, environments: list[str]) -> list[str]:
    if len(environments) == 1:
        return list(environments)
    return _safe_multiselect(
        prompter, "Select environments", [(env, env) for env in environments]
    )


def select_tables(
    prompter: Prompter,
    tables: list[str],
    table_environments: dict[str, list[str]] | None = None,
) -> list[str]:
    envs = table_environments or {}
    choices = [
        (t, f"{t} [dim]({', '.join(envs[t])})[/dim]" if envs.get(t) else t) for t in tables
    ]
    selected = _safe_multiselect(prompter, "Select tables to use", choices)
    if not selected:
        print_warning("No tables selected.")
    return selected

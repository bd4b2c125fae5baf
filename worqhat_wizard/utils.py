"""Shared utility functions for the WorqHat wizard.

Provides async command execution, Rich-based terminal output and the
spinner used while the wizard waits on the network or a subprocess.
"""

from __future__ import annotations

import asyncio
import os
from pathlib import Path
from types import TracebackType

from rich.console import Console
from rich.panel import Panel
from rich.rule import Rule
from rich.status import Status
from rich.table import Table

console = Console()

# ---------------------------------------------------------------------------
# Async command execution
# ---------------------------------------------------------------------------


async def run_command(
    cmd: list[str],
    cwd: str | Path | None = None,
    timeout: float | None = 120,
    capture: bool = True,
    env: dict[str, str] | None = None,
) -> tuple[int, str, str]:
    """Run a command asynchronously.

    Args:
        cmd: Program and arguments.
        cwd: Working directory for the child process.
        timeout: Maximum wall-clock seconds before the process is killed,
            or ``None`` to wait indefinitely.
        capture: Whether to capture stdout/stderr (if ``False`` they inherit
            the parent's streams).
        env: Optional extra environment variables merged on top of ``os.environ``.

    Returns:
        A ``(returncode, stdout, stderr)`` tuple.  A missing executable is
        reported as return code 127 rather than raised.
    """
    merged_env: dict[str, str] | None = None
    if env:
        merged_env = {**os.environ, **env}

    stdout_pipe = asyncio.subprocess.PIPE if capture else None
    stderr_pipe = asyncio.subprocess.PIPE if capture else None

    try:
        process = await asyncio.create_subprocess_exec(
            *cmd,
            stdout=stdout_pipe,
            stderr=stderr_pipe,
            cwd=str(cwd) if cwd else None,
            env=merged_env,
        )
    except FileNotFoundError:
        return (127, "", f"Command not found: {cmd[0]}")

    try:
        stdout_bytes, stderr_bytes = await asyncio.wait_for(
            process.communicate(), timeout=timeout
        )
    except asyncio.TimeoutError:
        process.kill()
        await process.wait()
        return (-1, "", f"Command timed out after {timeout}s: {' '.join(cmd)}")

    stdout_str = (stdout_bytes or b"").decode("utf-8", errors="replace").strip()
    stderr_str = (stderr_bytes or b"").decode("utf-8", errors="replace").strip()
    return (process.returncode or 0, stdout_str, stderr_str)


# ---------------------------------------------------------------------------
# Formatting helpers
# ---------------------------------------------------------------------------


def format_duration(seconds: float) -> str:
    """Format a duration in seconds to a human-readable string.

    Examples::

        format_duration(3.7)  -> "3.7s"
        format_duration(65.2) -> "1m 5s"
    """
    if seconds < 0:
        return "0.0s"
    minutes = int(seconds // 60)
    secs = seconds % 60
    if minutes:
        return f"{minutes}m {int(secs)}s"
    return f"{secs:.1f}s"


def mask_secret(secret: str, visible: int = 4) -> str:
    """Mask an API key, keeping only its last *visible* characters."""
    tail = secret[-visible:] if len(secret) > visible else secret
    return f"wh_***************{tail}"


# ---------------------------------------------------------------------------
# Rich output helpers
# ---------------------------------------------------------------------------


def print_banner(version: str) -> None:
    """Print the welcome banner shown at the top of every run."""
    console.print(
        Panel(
            "[bold cyan]Welcome to the WorqHat setup wizard[/bold cyan]\n"
            f"[dim]version {version}[/dim]",
            border_style="cyan",
        )
    )


def print_stage_header(number: int, title: str) -> None:
    """Print a rule announcing the start of a pipeline stage."""
    console.print()
    console.print(Rule(f"[bold cyan] {number}. {title} [/bold cyan]", style="cyan", align="left"))


def print_summary_table(data: dict[str, str], title: str = "Summary") -> None:
    """Print a two-column key/value summary table."""
    table = Table(title=title, show_header=True, header_style="bold cyan")
    table.add_column("Item", style="dim", no_wrap=True)
    table.add_column("Value")

    for key, value in data.items():
        table.add_row(key, str(value))

    console.print(table)
    console.print()


def print_box(lines: list[str], style: str = "cyan") -> None:
    """Print *lines* inside a dashed box."""
    width = max(len(line) for line in lines) + 4
    rule = "-" * width
    console.print()
    console.print(rule, style=style, highlight=False)
    for line in lines:
        console.print(f"- {line.ljust(width - 4)} -", style=style, highlight=False)
    console.print(rule, style=style, highlight=False)
    console.print()


def print_success(message: str) -> None:
    """Print a green success message."""
    console.print(f"[bold green]✔ {message}[/bold green]")


def print_error(message: str) -> None:
    """Print a red error message."""
    console.print(f"[bold red]✖ {message}[/bold red]")


def print_warning(message: str) -> None:
    """Print a yellow warning message."""
    console.print(f"[bold yellow]! {message}[/bold yellow]")


def print_info(message: str) -> None:
    console.print(f"  {message}")


# ---------------------------------------------------------------------------
# Spinner
# ---------------------------------------------------------------------------


class Spinner:
    """Animated status line shown while the wizard waits.

    The spinner owns the current terminal line between ``start()`` and the
    terminal ``succeed()`` / ``fail()`` call.  The live display is always
    torn down before the terminal frame is printed, so no other output can
    interleave with the animation.

    Used as a context manager, the spinner fails automatically when an
    exception escapes the block and is left untouched when the block has
    already called ``succeed()`` or ``fail()``::

        with Spinner("Fetching workflows...") as spin:
            items = await fetch()
            spin.succeed(f"Fetched {len(items)} workflow(s)")
    """

    def __init__(self, text: str, out: Console | None = None) -> None:
        self.text = text
        self.console = out or console
        self._status: Status | None = None

    @property
    def active(self) -> bool:
        return self._status is not None

    def start(self) -> "Spinner":
        if self._status is None:
            self._status = self.console.status(self.text, spinner="dots")
            self._status.start()
        return self

    def _stop(self) -> None:
        if self._status is not None:
            self._status.stop()
            self._status = None

    def succeed(self, message: str | None = None) -> None:
        self._stop()
        self.console.print(f"[green]✔[/green] {message or self.text}")

    def fail(self, message: str | None = None) -> None:
        self._stop()
        self.console.print(f"[red]✖[/red] {message or self.text}")

    def __enter__(self) -> "Spinner":
        return self.start()

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        if not self.active:
            return
        if exc_type is not None:
            self.fail()
        else:
            self.succeed()

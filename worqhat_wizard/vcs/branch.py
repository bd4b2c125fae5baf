"""Git repository detection and dedicated working-branch creation.

Before the wizard touches any file it moves the user onto a fresh branch
named ``<prefix>/<YYYY-MM-DD-HHMMSS>`` so every change lands in one
reviewable unit.  Failing to do so is never fatal: the descriptor returned
records that no branch was created and later git steps fall back to the
current branch.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

from worqhat_wizard.config import DEFAULT_BRANCH_PREFIX
from worqhat_wizard.errors import GitFailure
from worqhat_wizard.utils import console, print_success, print_warning

NO_REPOSITORY_MESSAGE = (
    "No git repository detected here. This might be a mistake; "
    "continuing without creating a branch."
)


@dataclass
class GitBranchDescriptor:
    """What the branch stage achieved."""

    created: bool
    name: str | None = None
    source_branch: str | None = None
    message: str = ""


async def _run_git(
    *args: str,
    cwd: str | Path | None = None,
    timeout: float = 60.0,
) -> tuple[str, str]:
    """Run a git command asynchronously and return (stdout, stderr).

    Raises GitFailure if git is missing, times out, or exits non-zero.
    """
    cmd = ["git"] + list(args)
    cmd_str = " ".join(cmd)

    try:
        process = await asyncio.create_subprocess_exec(
            *cmd,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            cwd=str(cwd) if cwd else None,
        )
    except FileNotFoundError as exc:
        raise GitFailure("git executable not found", command=cmd_str) from exc

    try:
        stdout_bytes, stderr_bytes = await asyncio.wait_for(
            process.communicate(), timeout=timeout
        )
    except asyncio.TimeoutError:
        process.kill()
        raise GitFailure(
            f"Git command timed out after {timeout}s: {cmd_str}",
            command=cmd_str,
        )

    stdout = stdout_bytes.decode("utf-8", errors="replace").strip()
    stderr = stderr_bytes.decode("utf-8", errors="replace").strip()

    if process.returncode != 0:
        raise GitFailure(
            f"Git command failed (exit {process.returncode}): {cmd_str}\n{stderr}",
            command=cmd_str,
            stderr=stderr,
        )

    return stdout, stderr


def make_branch_name(prefix: str = DEFAULT_BRANCH_PREFIX, now: datetime | None = None) -> str:
    """Return ``<prefix>/<YYYY-MM-DD-HHMMSS>`` using local time."""
    stamp = (now or datetime.now()).strftime("%Y-%m-%d-%H%M%S")
    return f"{prefix.rstrip('/')}/{stamp}"


class BranchManager:
    """Inspects and switches branches in the working directory."""

    def __init__(self, cwd: str | Path) -> None:
        self.cwd = Path(cwd)

    async def is_repository(self) -> bool:
        """``True`` when *cwd* is inside a git work tree (subdirectories included)."""
        try:
            stdout, _ = await _run_git("rev-parse", "--is-inside-work-tree", cwd=self.cwd)
        except GitFailure:
            return False
        return stdout.strip() == "true"

    async def current_branch(self) -> str | None:
        try:
            stdout, _ = await _run_git("rev-parse", "--abbrev-ref", "HEAD", cwd=self.cwd)
        except GitFailure:
            return None
        return stdout.strip() or None

    async def checkout(self, name: str) -> None:
        await _run_git("checkout", name, cwd=self.cwd)

    async def create_working_branch(
        self, prefix: str = DEFAULT_BRANCH_PREFIX, now: datetime | None = None
    ) -> GitBranchDescriptor:
        """Create and switch to a uniquely named branch.

        Never raises; failures are reported in the returned descriptor.
        """
        if not await self.is_repository():
            print_warning(NO_REPOSITORY_MESSAGE)
            return GitBranchDescriptor(created=False, message=NO_REPOSITORY_MESSAGE)

        source = await self.current_branch() or "HEAD"
        console.print(f"• Current branch: [cyan]{source}[/cyan]")

        name = make_branch_name(prefix, now)
        console.print(f"• Creating new branch: [cyan]{name}[/cyan] from [cyan]{source}[/cyan] ...")

        try:
            await _run_git("checkout", "-b", name, cwd=self.cwd)
        except GitFailure as exc:
            message = f"Failed to create branch. {exc.stderr}".strip()
            print_warning(message)
            print_warning("Continuing without a dedicated branch.")
            return GitBranchDescriptor(created=False, source_branch=source, message=message)

        print_success(f"Switched to new branch {name}")
        return GitBranchDescriptor(
            created=True, name=name, source_branch=source, message="Branch created"
        )

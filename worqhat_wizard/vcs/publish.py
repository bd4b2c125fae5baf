"""Commit the wizard's changes, push them and open a pull request.

Each step degrades to a warning: a failed commit still attempts the push,
a failed push skips the pull request, and a missing ``gh`` CLI only means
the user opens the PR by hand.  The one hard stop is failing to check out
the dedicated branch, which ends this step without touching the index.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from worqhat_wizard.errors import GitFailure
from worqhat_wizard.utils import print_info, print_success, print_warning, run_command
from worqhat_wizard.vcs.branch import BranchManager, GitBranchDescriptor, _run_git

COMMIT_TITLE = "feat(worqhat): initial WorqHat setup and docs"

COMMIT_BODY = "\n".join(
    [
        "Adds WorqHat configuration, initial workflows scaffolding, and usage "
        "documentation to help you get started quickly.",
        "",
        "What's included:",
        "- worqhat/config: client configuration and environment setup instructions",
        "- worqhat/workflows: starter workflow functions with strong comments and error handling",
        "- WORQHAT.md: how to use the generated pieces in your project",
        "",
        "Notes:",
        "- Secrets: set WORQHAT_API_KEY in your shell or .env (see WORQHAT.md).",
        "- Workflows examples intentionally do not pass/import the client; it's already wired in.",
    ]
)

PR_BODY = "\n".join(
    [
        "# WorqHat setup and documentation",
        "",
        "## Summary",
        "Initialize WorqHat in this repository with configuration, starter workflows, "
        "and a usage guide (WORQHAT.md).",
        "",
        "## Changes",
        "- Add worqhat/config with environment setup guidance (WORQHAT_API_KEY).",
        "- Add worqhat/workflows with example functions and comments (no client passed in examples).",
        "- Generate WORQHAT.md with usage, API overview, and examples.",
        "",
        "## How to use",
        "- Read WORQHAT.md for environment setup and examples.",
        "- Import workflow functions from './worqhat/workflows' directly (no client argument).",
    ]
)


@dataclass
class PublishReport:
    """Which git steps completed."""

    repository: bool = False
    checked_out: bool = False
    committed: bool = False
    pushed: bool = False
    pr_created: bool = False
    warnings: list[str] = field(default_factory=list)

    def warn(self, message: str) -> None:
        self.warnings.append(message)
        print_warning(message)


async def commit_and_open_pr(
    cwd: str | Path,
    branch: GitBranchDescriptor,
    push_timeout: float | None = None,
) -> PublishReport:
    """Run the commit -> push -> PR chain for the wizard's changes.

    Never raises for git or ``gh`` failures; inspect the returned report.
    """
    root = Path(cwd)
    report = PublishReport()
    manager = BranchManager(root)

    if not await manager.is_repository():
        report.warn("Skipping commit and PR: not inside a Git repository.")
        return report
    report.repository = True

    if branch.created and branch.name:
        print_info(f"Using branch: [cyan]{branch.name}[/cyan]")
        try:
            await manager.checkout(branch.name)
        except GitFailure as exc:
            report.warn(f"Failed to switch to the wizard branch: {exc.stderr or exc}")
            return report
        report.checked_out = True
    else:
        print_warning("No dedicated wizard branch was created; using current branch.")

    print_info("Staging files...")
    try:
        await _run_git("add", "-A", cwd=root)
    except GitFailure as exc:
        report.warn(f"Failed to stage files: {exc.stderr or exc}")
        return report

    print_info("Creating commit with message and description...")
    try:
        await _run_git("commit", "-m", COMMIT_TITLE, "-m", COMMIT_BODY, cwd=root)
        report.committed = True
        print_success("Changes committed.")
    except GitFailure:
        report.warn("No changes to commit or commit failed. Continuing to PR step if possible.")

    push_ref = branch.name if branch.created and branch.name else "HEAD"
    print_info("Pushing branch to origin...")
    # Not captured so git can prompt for credentials.
    returncode, _, _ = await run_command(
        ["git", "push", "-u", "origin", push_ref], cwd=root, timeout=push_timeout, capture=False
    )
    if returncode != 0:
        report.warn(
            "Could not push branch to origin. Ensure a remote is set and you have "
            "permissions. Skipping PR creation."
        )
        return report
    report.pushed = True

    gh_code, _, _ = await run_command(["gh", "--version"], cwd=root)
    if gh_code != 0:
        report.warn(
            "GitHub CLI (gh) not found. Skipping PR creation. "
            "You can create a PR from your Git host UI."
        )
        return report

    print_info("Creating a pull request...")
    pr_code, _, _ = await run_command(
        ["gh", "pr", "create", "--title", COMMIT_TITLE, "--body", PR_BODY],
        cwd=root,
        timeout=push_timeout,
        capture=False,
    )
    if pr_code == 0:
        report.pr_created = True
        print_success("Pull request has been created.")
    else:
        report.warn(
            "Failed to create PR via GitHub CLI. You may create it manually on your Git host."
        )
    return report

"""Install the WorqHat SDK with the project's own package manager."""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel

from worqhat_wizard.scanner.languages import Language
from worqhat_wizard.utils import console, print_error, print_success, print_warning, run_command

SDK_PACKAGE = "worqhat"


class InstallResult(BaseModel):
    """Outcome of an SDK install attempt."""

    attempted: bool
    success: bool
    command: str = ""
    message: str = ""


def detect_node_package_manager(cwd: str | Path) -> str:
    """Pick npm, yarn or pnpm from the lockfile present in *cwd*."""
    root = Path(cwd)
    if (root / "yarn.lock").exists():
        return "yarn"
    if (root / "pnpm-lock.yaml").exists():
        return "pnpm"
    return "npm"


def node_install_command(manager: str, force_install: bool = False) -> list[str]:
    if manager == "yarn":
        return ["yarn", "add", SDK_PACKAGE]
    if manager == "pnpm":
        return ["pnpm", "add", SDK_PACKAGE]
    cmd = ["npm", "install", SDK_PACKAGE]
    if force_install:
        cmd.append("--legacy-peer-deps")
    return cmd


PYTHON_INSTALL_COMMANDS: tuple[list[str], ...] = (
    ["python3", "-m", "pip", "install", SDK_PACKAGE],
    ["pip3", "install", SDK_PACKAGE],
    ["pip", "install", SDK_PACKAGE],
)


class PackageInstaller:
    """Runs the package-manager command appropriate for a language.

    Output of the package manager is streamed straight to the terminal.
    """

    def __init__(self, cwd: str | Path, timeout: float = 600) -> None:
        self.cwd = Path(cwd)
        self.timeout = timeout

    async def _run(self, cmd: list[str]) -> int:
        returncode, _, stderr = await run_command(
            cmd, cwd=self.cwd, timeout=self.timeout, capture=False
        )
        if returncode == 127 or returncode == -1:
            console.print(f"  [dim]{stderr}[/dim]")
        return returncode

    async def install(self, language: Language, force_install: bool = False) -> InstallResult:
        """Install the SDK for *language*.

        Ruby (and anything else without an official SDK) is skipped with a
        notice rather than treated as a failure.
        """
        if language in (Language.JAVASCRIPT, Language.TYPESCRIPT):
            console.print("[bold]Installing WorqHat SDK for JavaScript/TypeScript[/bold]")
            console.print("[dim]Using your project's package manager to add dependency.[/dim]")
            manager = detect_node_package_manager(self.cwd)
            cmd = node_install_command(manager, force_install)
            console.print(f"[cyan]Installing {SDK_PACKAGE} via {manager}...[/cyan]")
            ok = await self._run(cmd) == 0
            return self._report(ok, " ".join(cmd))

        if language == Language.PYTHON:
            console.print("[bold]Installing WorqHat SDK for Python[/bold]")
            console.print("[dim]Using your active Python environment.[/dim]")
            console.print(f"[cyan]Installing {SDK_PACKAGE} via pip...[/cyan]")
            last = ""
            for cmd in PYTHON_INSTALL_COMMANDS:
                last = " ".join(cmd)
                if await self._run(cmd) == 0:
                    return self._report(True, last)
            return self._report(False, last)

        message = (
            "No official SDK detected for this language. "
            "Use the REST API in your code. Skipping installation."
        )
        print_warning(message)
        return InstallResult(attempted=False, success=False, message=message)

    @staticmethod
    def _report(ok: bool, command: str) -> InstallResult:
        if ok:
            print_success("SDK installed")
            return InstallResult(attempted=True, success=True, command=command)
        print_error("Failed to install SDK")
        return InstallResult(
            attempted=True, success=False, command=command, message="Failed to install SDK"
        )

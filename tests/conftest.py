"""Shared pytest fixtures for the WorqHat wizard test suite.

Provides reusable fixtures for:
- Temporary project directories and real git repositories
- A ``Config`` isolated from the user's home directory
- Scripted prompters and fake backend clients
- Mock subprocess helpers
"""

from __future__ import annotations

import json
import subprocess
from pathlib import Path
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest

from worqhat_wizard.backend_client import (
    BackendClient,
    DocsResult,
    EnvironmentList,
    GenerationResult,
    ScaffoldProposal,
    TableList,
    WorkflowItem,
    WorkflowList,
)
from worqhat_wizard.config import BackendConfig, Config
from worqhat_wizard.installer import InstallResult


# ---------------------------------------------------------------------------
# Paths & Directories
# ---------------------------------------------------------------------------

@pytest.fixture
def tmp_project_dir(tmp_path: Path) -> Path:
    """Empty project directory (auto-cleanup)."""
    project_dir = tmp_path / "test-project"
    project_dir.mkdir()
    yield project_dir


@pytest.fixture
def tmp_git_repo(tmp_path: Path) -> Path:
    """Temporary git repository with an initial commit on ``main``."""
    repo_dir = tmp_path / "test-repo"
    repo_dir.mkdir()
    subprocess.run(["git", "init", "-b", "main"], cwd=repo_dir, check=True, capture_output=True)
    subprocess.run(
        ["git", "config", "user.email", "test@worqhat.local"],
        cwd=repo_dir, check=True, capture_output=True,
    )
    subprocess.run(
        ["git", "config", "user.name", "WorqHat Test"],
        cwd=repo_dir, check=True, capture_output=True,
    )
    subprocess.run(
        ["git", "config", "commit.gpgsign", "false"],
        cwd=repo_dir, check=True, capture_output=True,
    )
    readme = repo_dir / "README.md"
    readme.write_text("# Test Project\n", encoding="utf-8")
    subprocess.run(["git", "add", "."], cwd=repo_dir, check=True, capture_output=True)
    subprocess.run(
        ["git", "commit", "-m", "Initial commit"],
        cwd=repo_dir, check=True, capture_output=True,
    )
    yield repo_dir


@pytest.fixture
def react_python_project(tmp_project_dir: Path) -> Path:
    """One ``.py`` file plus a ``package.json`` depending on React."""
    (tmp_project_dir / "app.py").write_text("print('hi')\n", encoding="utf-8")
    (tmp_project_dir / "package.json").write_text(
        json.dumps({"name": "demo", "dependencies": {"react": "^18.2.0"}}),
        encoding="utf-8",
    )
    return tmp_project_dir


def make_config(working_dir: Path, home: Path) -> Config:
    """Config rooted at *working_dir* with credentials kept under *home*."""
    return Config(
        working_dir=working_dir,
        credentials_dir=home / ".worqhat",
        backend=BackendConfig(url="https://backend.test"),
    )


@pytest.fixture
def wizard_config(tmp_project_dir: Path, tmp_path: Path) -> Config:
    return make_config(tmp_project_dir, tmp_path / "home")


@pytest.fixture
def saved_credentials(wizard_config: Config) -> Path:
    """Write a credential file so no key prompt is needed."""
    path = wizard_config.credentials_path
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(
        json.dumps({"apiKey": "wh_test_key_1234", "savedAt": "2026-01-01T00:00:00+00:00"}),
        encoding="utf-8",
    )
    return path


# ---------------------------------------------------------------------------
# Prompts
# ---------------------------------------------------------------------------

class ScriptedPrompter:
    """Prompter that replays canned answers.

    ``selections`` maps a menu title to the values to return; menus with
    no entry return nothing.  ``secrets`` are returned in order by
    ``ask_secret``.
    """

    def __init__(
        self,
        selections: dict[str, list[str]] | None = None,
        secrets: list[str] | None = None,
    ) -> None:
        self.selections = selections or {}
        self.secrets = list(secrets or [])
        self.menus: list[str] = []
        self.questions: list[str] = []

    def multiselect(self, title: str, choices: list[tuple[str, str]]) -> list[str]:
        self.menus.append(title)
        wanted = self.selections.get(title, [])
        return [value for value, _ in choices if value in wanted]

    def ask_secret(self, question: str) -> str:
        self.questions.append(question)
        if not self.secrets:
            raise EOFError("no more scripted answers")
        return self.secrets.pop(0)


@pytest.fixture
def scripted_prompter():
    """Factory for ``ScriptedPrompter`` instances."""
    return ScriptedPrompter


# ---------------------------------------------------------------------------
# Backend
# ---------------------------------------------------------------------------

def make_backend(**overrides: Any) -> MagicMock:
    """A ``BackendClient`` stand-in whose calls all succeed by default."""
    backend = MagicMock(spec=BackendClient)
    backend.list_workflows = AsyncMock(
        return_value=WorkflowList(
            items=[WorkflowItem(id="wf-1", name="Summarise"), WorkflowItem(id="wf-2", name="Classify")]
        )
    )
    backend.list_environments = AsyncMock(
        return_value=EnvironmentList(environments=["production"])
    )
    backend.list_tables = AsyncMock(
        return_value=TableList(
            tables=["users", "orders"],
            environments=["production"],
            table_environments={"users": ["production"], "orders": ["production"]},
        )
    )
    backend.request_scaffold = AsyncMock(
        return_value=ScaffoldProposal(
            language="typescript",
            tree="worqhat\n├── config.ts\n├── db.ts\n└── workflows.ts",
            paths=["worqhat/config.ts", "worqhat/db.ts", "worqhat/workflows.ts"],
        )
    )
    backend.generate_config = AsyncMock(
        return_value=GenerationResult(path="worqhat/config.ts", code="export const config = {}\n")
    )
    backend.generate_db = AsyncMock(
        return_value=GenerationResult(path="worqhat/db.ts", code="export const db = {}\n")
    )
    backend.generate_workflows = AsyncMock(
        return_value=GenerationResult(path="worqhat/workflows.ts", code="export const wf = {}\n")
    )
    backend.generate_storage = AsyncMock(
        return_value=GenerationResult(path="worqhat/storage.ts", code="export const storage = {}\n")
    )
    backend.explain = AsyncMock(return_value=DocsResult(docs="## Using the config\n\nImport it."))
    for name, value in overrides.items():
        setattr(backend, name, value)
    return backend


@pytest.fixture
def fake_backend():
    """Factory for fake backends; keyword arguments replace individual methods."""
    return make_backend


@pytest.fixture
def fake_installer() -> MagicMock:
    installer = MagicMock()
    installer.install = AsyncMock(
        return_value=InstallResult(attempted=True, success=True, command="npm install worqhat")
    )
    return installer


def mock_transport(routes: dict[tuple[str, str], httpx.Response]) -> httpx.MockTransport:
    """``httpx.MockTransport`` answering ``(method, path)`` pairs, 404 otherwise.

    Every request seen is recorded on ``transport.requests``.
    """
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        response = routes.get((request.method, request.url.path))
        if response is None:
            return httpx.Response(404, json={"ok": False, "error": "not found"})
        return response

    transport = httpx.MockTransport(handler)
    transport.requests = seen  # type: ignore[attr-defined]
    return transport


# ---------------------------------------------------------------------------
# Subprocess
# ---------------------------------------------------------------------------

@pytest.fixture
def mock_subprocess():
    """Mock asyncio subprocess for testing command execution.

    Returns a factory that creates mock subprocess instances with configurable
    stdout, stderr, and return codes.

    Usage:
        def test_command(mock_subprocess):
            proc = mock_subprocess(stdout="output", returncode=0)
            with patch("asyncio.create_subprocess_exec", return_value=proc):
                ...
    """
    def factory(
        stdout: str = "",
        stderr: str = "",
        returncode: int = 0,
    ) -> AsyncMock:
        mock_proc = AsyncMock()
        mock_proc.communicate = AsyncMock(
            return_value=(stdout.encode("utf-8"), stderr.encode("utf-8"))
        )
        mock_proc.returncode = returncode
        mock_proc.pid = 99999
        mock_proc.kill = MagicMock()
        mock_proc.wait = AsyncMock(return_value=returncode)
        return mock_proc

    return factory


@pytest.fixture
def http_transport():
    """Factory for recording ``httpx.MockTransport`` instances."""
    return mock_transport


@pytest.fixture
def repo_config(tmp_git_repo: Path, tmp_path: Path) -> Config:
    return make_config(tmp_git_repo, tmp_path / "home")


@pytest.fixture(autouse=True)
def wide_console():
    """Stop Rich wrapping long messages while output is captured."""
    from worqhat_wizard.utils import console

    previous = console._width
    console.width = 200
    yield console
    console._width = previous

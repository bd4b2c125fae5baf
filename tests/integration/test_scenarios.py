"""End-to-end wizard runs against temporary projects.

The backend, interactive prompts and package manager are faked; scanning,
file writes, the manifest and git all run for real.
"""

from __future__ import annotations

import subprocess
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from worqhat_wizard.backend_client import ScaffoldProposal
from worqhat_wizard.config import WizardOptions
from worqhat_wizard.errors import NetworkFailure
from worqhat_wizard.pipeline import OK, SKIPPED, Pipeline, run_cli
from worqhat_wizard.scanner import Language
from worqhat_wizard.vcs.branch import NO_REPOSITORY_MESSAGE
from worqhat_wizard.vcs.publish import COMMIT_TITLE


def _git(repo: Path, *args: str) -> str:
    return subprocess.run(
        ["git", *args], cwd=repo, check=True, capture_output=True, text=True
    ).stdout.strip()


def _pipeline(config, backend, prompter, installer) -> Pipeline:
    return Pipeline(config, WizardOptions(), backend=backend, prompter=prompter, installer=installer)


@pytest.mark.integration
@pytest.mark.asyncio
async def test_empty_directory_without_git(
    wizard_config, saved_credentials, scripted_prompter, fake_backend, fake_installer
):
    session = await _pipeline(
        wizard_config, fake_backend(), scripted_prompter(), fake_installer
    ).run()

    assert session.languages == ["unknown"]
    assert session.target_language is Language.JAVASCRIPT
    assert session.outcomes["branch"] == SKIPPED
    assert session.branch.message == NO_REPOSITORY_MESSAGE

    manifest = wizard_config.manifest_path.read_text(encoding="utf-8")
    assert "## Project Tree" in manifest
    assert "- Detected Languages: unknown" in manifest

    assert session.outcomes["git"] == SKIPPED
    assert session.publish.warnings == ["Skipping commit and PR: not inside a Git repository."]


@pytest.mark.integration
@pytest.mark.asyncio
async def test_react_and_python_project(
    react_python_project, wizard_config, saved_credentials, scripted_prompter,
    fake_backend, fake_installer,
):
    assert wizard_config.working_dir == react_python_project
    backend = fake_backend()
    session = await _pipeline(wizard_config, backend, scripted_prompter(), fake_installer).run()

    assert {"python", "javascript"} <= set(session.languages)
    assert session.frameworks == ["React"]
    assert session.target_language is Language.JAVASCRIPT
    assert backend.request_scaffold.await_args.kwargs["language"] == "javascript"

    manifest = wizard_config.manifest_path.read_text(encoding="utf-8")
    assert "- Detected Frameworks: React" in manifest
    assert "app.py" in manifest
    assert "package.json" in manifest


@pytest.mark.integration
def test_failed_proposal_still_exits_zero(
    wizard_config, saved_credentials, scripted_prompter, fake_backend, fake_installer, capsys
):
    backend = fake_backend(
        request_scaffold=AsyncMock(
            return_value=ScaffoldProposal.from_error(NetworkFailure("HTTP 502"))
        )
    )
    prompter = scripted_prompter({"What do you want to install?": ["workflows"]})

    with patch("worqhat_wizard.pipeline.BackendClient", return_value=backend), \
         patch("worqhat_wizard.pipeline.Prompter", return_value=prompter), \
         patch("worqhat_wizard.pipeline.PackageInstaller", return_value=fake_installer):
        assert run_cli([], wizard_config) == 0

    out = capsys.readouterr().out
    assert out.count("Request scaffold proposal failed") == 1
    assert "Skipping commit and PR" in out
    backend.generate_config.assert_not_awaited()
    backend.explain.assert_not_awaited()
    fake_installer.install.assert_not_awaited()
    assert not (wizard_config.working_dir / "worqhat").exists()


@pytest.mark.integration
def test_logout_removes_credentials(wizard_config, saved_credentials, capsys):
    prompter_cls = MagicMock()
    with patch("worqhat_wizard.pipeline.Prompter", prompter_cls), \
         patch.object(Pipeline, "run") as run:
        assert run_cli(["--logout"], wizard_config) == 0

    assert not saved_credentials.exists()
    assert "Logged out. Removed saved API key." in capsys.readouterr().out
    prompter_cls.assert_not_called()
    run.assert_not_called()
    assert not wizard_config.manifest_path.exists()


@pytest.mark.integration
@pytest.mark.asyncio
async def test_git_repository_gets_branch_and_commit(
    repo_config, scripted_prompter, fake_backend, fake_installer
):
    repo = repo_config.working_dir
    repo_config.credentials_path.parent.mkdir(parents=True)
    repo_config.credentials_path.write_text('{"apiKey": "wh_repo_0001"}', encoding="utf-8")

    runner = AsyncMock(return_value=(0, "", ""))
    with patch("worqhat_wizard.vcs.publish.run_command", runner):
        session = await _pipeline(
            repo_config, fake_backend(), scripted_prompter(), fake_installer
        ).run()

    assert session.outcomes["branch"] == OK
    assert session.outcomes["git"] == OK
    assert _git(repo, "rev-parse", "--abbrev-ref", "HEAD") == session.branch.name
    assert session.branch.name.startswith("worqhat-wizard/")
    assert _git(repo, "log", "-1", "--format=%s") == COMMIT_TITLE

    committed = _git(repo, "show", "--name-only", "--format=", "HEAD").splitlines()
    assert "WORQHAT.md" in committed
    assert "worqhat/config.ts" in committed
    assert session.publish.pr_created

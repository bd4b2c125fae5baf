"""WorqHat wizard pipeline orchestrator.

Runs one linear pass over a fixed list of stages:

 1. Scan project               -- fatal
 2. Create working branch
 3. Initialize manifest        -- fatal
 4. Resolve credential         -- fatal
 5. Choose install options
 6. Select workflows           -- if workflows chosen
 7. Select tables              -- if database chosen
 8. Request scaffold proposal
 9. Write scaffold files       -- 9 to 15 need a proposal
10. Install packages
11. Generate config
12. Generate database helpers
13. Generate workflow helpers
14. Generate storage helpers
15. Generate documentation
16. Commit and open pull request

Every stage is a ``Stage`` descriptor carrying its ``run`` coroutine and a
``fatal`` flag.  A fatal stage that fails aborts the run; any other failure
is reported and the next stage runs with whatever the session holds.

Usage::

    worqhat-wizard
    worqhat-wizard --branch-prefix feat/worqhat --force-install
    worqhat-wizard --logout
"""

from __future__ import annotations

import argparse
import asyncio
import sys
import time
import traceback
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from pathlib import Path

from worqhat_wizard import __version__
from worqhat_wizard.auth import CredentialStore, ensure_api_key, logout
from worqhat_wizard.backend_client import (
    BackendClient,
    GenerationResult,
    ScaffoldProposal,
    WorkflowItem,
)
from worqhat_wizard.config import Config, WizardOptions
from worqhat_wizard.errors import (
    FilesystemFailure,
    PipelineAbort,
    ValidationFailure,
    WizardError,
)
from worqhat_wizard.installer import PackageInstaller
from worqhat_wizard.manifest import (
    ManifestDocument,
    render_docs_section,
    render_project_section,
    render_proposal_section,
    render_tables_section,
    render_workflows_section,
)
from worqhat_wizard.prompts import (
    InstallChoices,
    Prompter,
    prompt_install_options,
    select_environments,
    select_tables,
    select_workflows,
)
from worqhat_wizard.scaffolder import (
    DistinguishedFile,
    find_distinguished_path,
    resolve_inside,
    write_scaffold_files,
)
from worqhat_wizard.scanner import (
    CodeSample,
    Language,
    build_project_tree,
    detect_project,
    find_language_samples,
    normalize_language,
    resolve_target_language,
)
from worqhat_wizard.utils import (
    Spinner,
    console,
    format_duration,
    print_banner,
    print_box,
    print_error,
    print_info,
    print_stage_header,
    print_success,
    print_summary_table,
    print_warning,
)
from worqhat_wizard.vcs import BranchManager, GitBranchDescriptor, PublishReport, commit_and_open_pr

OK = "ok"
FAILED = "failed"
SKIPPED = "skipped"

# ---------------------------------------------------------------------------
# Session and stage descriptors
# ---------------------------------------------------------------------------


@dataclass
class Session:
    """State of a single wizard run, filled in stage by stage."""

    cwd: Path
    languages: list[str] = field(default_factory=list)
    frameworks: list[str] = field(default_factory=list)
    tree: str = ""
    target_language: Language = Language.JAVASCRIPT
    language: Language = Language.JAVASCRIPT
    api_key: str = ""
    branch: GitBranchDescriptor = field(default_factory=lambda: GitBranchDescriptor(created=False))
    choices: InstallChoices = field(default_factory=InstallChoices)
    workflows: list[WorkflowItem] = field(default_factory=list)
    environments: list[str] = field(default_factory=list)
    tables: list[str] = field(default_factory=list)
    table_environments: dict[str, list[str]] = field(default_factory=dict)
    proposal: ScaffoldProposal | None = None
    samples: list[CodeSample] | None = None
    generated: dict[DistinguishedFile, str] = field(default_factory=dict)
    manifest: ManifestDocument | None = None
    publish: PublishReport | None = None
    outcomes: dict[str, str] = field(default_factory=dict)

    @property
    def scaffold_paths(self) -> list[str]:
        return list(self.proposal.paths) if self.proposal else []

    def distinguished(self, kind: DistinguishedFile) -> str | None:
        return find_distinguished_path(self.scaffold_paths, kind)

    def read_config_code(self) -> str:
        """Best-effort read of the config file; empty string when unavailable."""
        rel = self.distinguished(DistinguishedFile.CONFIG)
        if not rel:
            return ""
        try:
            return resolve_inside(self.cwd, rel).read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError, FilesystemFailure):
            return ""


StageRun = Callable[[Session], Awaitable[str | None]]


@dataclass(frozen=True)
class Stage:
    """One step of the pipeline.

    ``run`` returns ``None`` (or ``"ok"``) on success, or ``"skipped"`` /
    ``"failed"`` when it handled a degraded outcome itself.  Raising marks
    the stage failed; for a ``fatal`` stage that ends the run.
    """

    key: str
    title: str
    run: StageRun
    fatal: bool = False
    when: Callable[[Session], bool] | None = None


def _has_proposal(session: Session) -> bool:
    return session.proposal is not None


# ---------------------------------------------------------------------------
# Pipeline Orchestrator
# ---------------------------------------------------------------------------


class Pipeline:
    """WorqHat wizard orchestrator.

    Attributes:
        config: Run configuration.
        options: Parsed command-line options.
        backend: Client for the generation service.
        prompter: Source of interactive answers.
        installer: Package-manager runner.
        branches: Git branch helper bound to the working directory.
    """

    def __init__(
        self,
        config: Config,
        options: WizardOptions | None = None,
        backend: BackendClient | None = None,
        prompter: Prompter | None = None,
        installer: PackageInstaller | None = None,
    ) -> None:
        self.config = config
        self.options = options or WizardOptions(branch_prefix=config.branch_prefix)
        self.backend = backend or BackendClient(
            base_url=config.backend.url, timeout=config.backend.timeout
        )
        self.prompter = prompter or Prompter()
        self.installer = installer or PackageInstaller(
            config.working_dir, timeout=config.install_timeout
        )
        self.branches = BranchManager(config.working_dir)
        self.credentials = CredentialStore(config.credentials_path)

    def stages(self) -> list[Stage]:
        return [
            Stage("scan", "Scan project", self.scan_project, fatal=True),
            Stage("branch", "Create working branch", self.create_branch),
            Stage("manifest", "Initialize manifest", self.init_manifest, fatal=True),
            Stage("credential", "Resolve credential", self.resolve_credential, fatal=True),
            Stage("install_options", "Choose install options", self.choose_install_options),
            Stage(
                "workflows", "Select workflows", self.select_workflows,
                when=lambda s: s.choices.workflows,
            ),
            Stage(
                "tables", "Select tables", self.select_tables,
                when=lambda s: s.choices.database,
            ),
            Stage("scaffold", "Request scaffold proposal", self.request_scaffold),
            Stage("write", "Write scaffold files", self.write_files, when=_has_proposal),
            Stage("install", "Install packages", self.install_packages, when=_has_proposal),
            Stage("config", "Generate config", self.generate_config, when=_has_proposal),
            Stage(
                "db", "Generate database helpers", self.generate_db,
                when=lambda s: _has_proposal(s) and s.choices.database,
            ),
            Stage(
                "workflow_helpers", "Generate workflow helpers", self.generate_workflows,
                when=lambda s: _has_proposal(s) and s.choices.workflows,
            ),
            Stage(
                "storage", "Generate storage helpers", self.generate_storage,
                when=lambda s: _has_proposal(s) and s.choices.storage,
            ),
            Stage("docs", "Generate documentation", self.generate_docs, when=_has_proposal),
            Stage("git", "Commit and open pull request", self.commit_and_publish),
        ]

    async def run(self) -> Session:
        """Execute every stage in order.

        Returns:
            The final session, including per-stage ``outcomes``.

        Raises:
            PipelineAbort: If a fatal stage fails.
        """
        started = time.monotonic()
        session = Session(cwd=self.config.working_dir)

        for number, stage in enumerate(self.stages(), start=1):
            if stage.when is not None and not stage.when(session):
                session.outcomes[stage.key] = SKIPPED
                continue

            print_stage_header(number, stage.title)
            try:
                outcome = await stage.run(session)
                session.outcomes[stage.key] = outcome or OK
            except WizardError as exc:
                session.outcomes[stage.key] = FAILED
                if stage.fatal:
                    raise PipelineAbort(f"{stage.title} failed: {exc}", stage=stage.key) from exc
                print_warning(f"{stage.title} failed: {exc}. Continuing.")
            except Exception as exc:
                session.outcomes[stage.key] = FAILED
                if stage.fatal:
                    raise PipelineAbort(f"{stage.title} failed: {exc}", stage=stage.key) from exc
                print_warning(f"{stage.title} failed unexpectedly: {exc}. Continuing.")
                console.print(f"[dim]{traceback.format_exc()}[/dim]")

        self._print_final_summary(session, time.monotonic() - started)
        return session

    # ------------------------------------------------------------------
    # Stages 1-4: scan, branch, manifest, credential
    # ------------------------------------------------------------------

    async def scan_project(self, session: Session) -> None:
        with Spinner("Scanning project tree and detecting languages...") as spin:
            detected = detect_project(session.cwd, self.config.ignore_dirs)
            session.tree = build_project_tree(session.cwd, self.config.ignore_dirs)
            spin.succeed("Scan complete")

        session.languages = detected.languages_or_unknown
        session.frameworks = detected.frameworks
        session.target_language = resolve_target_language(session.languages)
        session.language = session.target_language
        print_success(f"Identified language(s): {', '.join(session.languages)}")
        if session.frameworks:
            print_success(f"Identified framework(s): {', '.join(session.frameworks)}")

    async def create_branch(self, session: Session) -> str | None:
        session.branch = await self.branches.create_working_branch(self.options.branch_prefix)
        if session.branch.created:
            return OK
        # No source branch means there was no repository at all.
        return FAILED if session.branch.source_branch else SKIPPED

    async def init_manifest(self, session: Session) -> None:
        manifest = ManifestDocument(self.config.manifest_path)
        manifest.initialize(
            render_project_section(session.languages, session.frameworks, session.tree)
        )
        session.manifest = manifest
        print_success(f"Wrote {self.config.manifest_name}")

    async def resolve_credential(self, session: Session) -> None:
        session.api_key = ensure_api_key(self.credentials, self.prompter.ask_secret)

    # ------------------------------------------------------------------
    # Stages 5-7: selections
    # ------------------------------------------------------------------

    async def choose_install_options(self, session: Session) -> None:
        session.choices = prompt_install_options(self.prompter)
        print_success(f"Selected: {', '.join(session.choices.labels()) or 'None'}")

    async def select_workflows(self, session: Session) -> str | None:
        with Spinner("Fetching workflows from backend...") as spin:
            listing = (await self.backend.list_workflows(session.api_key)).unwrap()
            spin.succeed(f"Fetched {len(listing.items)} workflow(s)")

        session.workflows = select_workflows(self.prompter, listing.items)
        if not session.workflows:
            return SKIPPED
        self._append(session, "workflows", render_workflows_section(session.workflows))
        return None

    async def select_tables(self, session: Session) -> str | None:
        with Spinner("Fetching available environments...") as spin:
            envs = (await self.backend.list_environments(session.api_key)).unwrap()
            spin.succeed(f"Found {len(envs.environments)} environment(s)")

        if envs.environments:
            session.environments = select_environments(self.prompter, envs.environments)
            if not session.environments:
                print_warning("No environments selected.")
                return SKIPPED

        with Spinner("Fetching tables...") as spin:
            listing = (await self.backend.list_tables(session.api_key, session.environments)).unwrap()
            spin.succeed(f"Fetched {len(listing.tables)} table(s)")

        if not listing.tables:
            print_warning("No tables found or unable to fetch.")
            return SKIPPED

        session.table_environments = listing.table_environments
        session.tables = select_tables(self.prompter, listing.tables, listing.table_environments)
        if not session.tables:
            return SKIPPED
        self._append(
            session, "tables", render_tables_section(session.tables, session.table_environments)
        )
        return None

    # ------------------------------------------------------------------
    # Stages 8-10: proposal, files, packages
    # ------------------------------------------------------------------

    async def request_scaffold(self, session: Session) -> None:
        with Spinner("Requesting new files from backend...") as spin:
            result = await self.backend.request_scaffold(
                language=session.target_language.value,
                tree=session.tree,
                workflows=[w.name for w in session.workflows],
                tables=list(session.tables),
            )
            if not result.ok:
                spin.fail("Failed to get new files proposal")
            proposal = result.unwrap()
            session.language = normalize_language(proposal.language, session.target_language)
            spin.succeed(f"New files ready ({proposal.language})")

        session.proposal = proposal
        if proposal.thinking:
            console.print("\n[bold cyan]===== Thinking =====[/bold cyan]")
            console.print(proposal.thinking, highlight=False, markup=False)
            console.print("[bold cyan]===== End Thinking =====[/bold cyan]\n")
        self._append(session, "proposal", render_proposal_section(proposal))

    async def write_files(self, session: Session) -> str | None:
        language = session.proposal.language if session.proposal else session.language.value
        report = write_scaffold_files(session.cwd, session.scaffold_paths, language)
        for rel, error in report.failed.items():
            print_warning(f"Could not create {rel}: {error}")
        for rel in report.skipped:
            print_info(f"[dim]Kept existing {rel}[/dim]")
        print_success(
            f"Created {len(report.created)} new file(s), kept {len(report.skipped)} existing."
        )
        if report.failed and not (report.created or report.skipped):
            return FAILED
        return None

    async def install_packages(self, session: Session) -> str | None:
        console.print("[bold]Installing required packages for WorqHat...[/bold]")
        result = await self.installer.install(session.language, self.options.force_install)
        if not result.attempted:
            return SKIPPED
        return OK if result.success else FAILED

    # ------------------------------------------------------------------
    # Stages 11-14: per-file generation
    # ------------------------------------------------------------------

    def _code_samples(self, session: Session) -> list[CodeSample]:
        if session.samples is None:
            session.samples = find_language_samples(
                session.cwd, session.language, self.config.sample_skip_dirs
            )
        return session.samples

    def _write_generated(
        self, session: Session, kind: DistinguishedFile, result: GenerationResult
    ) -> str:
        """Write generated code to disk and remember where it went."""
        if not result.path or result.code is None:
            raise ValidationFailure("Generation result has no path or code")
        target = resolve_inside(session.cwd, result.path)
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(result.code, encoding="utf-8")
        except OSError as exc:
            raise FilesystemFailure(f"Could not write {result.path}: {exc}") from exc
        session.generated[kind] = result.path
        return result.path

    async def _generate(
        self,
        session: Session,
        kind: DistinguishedFile,
        label: str,
        request: Callable[[str], Awaitable[GenerationResult]],
    ) -> str | None:
        """Shared flow of the generation stages.

        Looks up the proposed path for *kind*, calls *request* with it and
        writes the returned code.
        """
        target = session.distinguished(kind)
        if not target:
            print_warning(f"{label.capitalize()} path not proposed; skipping {label} generation.")
            return SKIPPED

        with Spinner(f"Generating WorqHat {label}...") as spin:
            result = (await request(target)).unwrap()
            written = self._write_generated(session, kind, result)
            spin.succeed(f"{label.capitalize()} generated at {written}")
        return None

    async def generate_config(self, session: Session) -> str | None:
        samples = self._code_samples(session)
        return await self._generate(
            session,
            DistinguishedFile.CONFIG,
            "config",
            lambda target: self.backend.generate_config(
                session.api_key, session.language.value, target, samples
            ),
        )

    async def generate_db(self, session: Session) -> str | None:
        samples = self._code_samples(session)
        config_code = session.read_config_code()
        return await self._generate(
            session,
            DistinguishedFile.DATABASE,
            "db helpers",
            lambda target: self.backend.generate_db(
                session.api_key, session.language.value, target, config_code,
                list(session.tables), samples,
            ),
        )

    async def generate_workflows(self, session: Session) -> str | None:
        samples = self._code_samples(session)
        config_code = session.read_config_code()
        return await self._generate(
            session,
            DistinguishedFile.WORKFLOWS,
            "workflows helpers",
            lambda target: self.backend.generate_workflows(
                session.api_key, session.language.value, target, config_code,
                list(session.workflows), samples,
            ),
        )

    async def generate_storage(self, session: Session) -> str | None:
        config_code = session.read_config_code()
        return await self._generate(
            session,
            DistinguishedFile.STORAGE,
            "storage helpers",
            lambda target: self.backend.generate_storage(
                session.api_key, session.language.value, target, config_code
            ),
        )

    # ------------------------------------------------------------------
    # Stage 15: documentation
    # ------------------------------------------------------------------

    def _doc_targets(self, session: Session) -> list[tuple[str, str]]:
        wanted = [
            ("config", DistinguishedFile.CONFIG, True),
            ("db", DistinguishedFile.DATABASE, session.choices.database),
            ("workflows", DistinguishedFile.WORKFLOWS, session.choices.workflows),
            ("storage", DistinguishedFile.STORAGE, session.choices.storage),
        ]
        targets: list[tuple[str, str]] = []
        for label, kind, enabled in wanted:
            rel = session.distinguished(kind)
            if enabled and rel:
                targets.append((label, rel))
        return targets

    async def generate_docs(self, session: Session) -> str | None:
        docs: list[str] = []
        failures = 0
        for label, rel in self._doc_targets(session):
            try:
                path = resolve_inside(session.cwd, rel)
                if not path.is_file():
                    continue
                code = path.read_text(encoding="utf-8")
            except (OSError, UnicodeDecodeError, FilesystemFailure) as exc:
                print_warning(f"Could not read {rel} for documentation: {exc}")
                failures += 1
                continue

            spin = Spinner(f"Generating documentation for {label}...").start()
            result = await self.backend.explain(
                session.api_key, session.language.value, path.name, code
            )
            if result.ok:
                docs.append(result.docs)
                spin.succeed(f"Documentation ready for {label}")
            else:
                failures += 1
                spin.fail(f"Failed to generate docs for {label}")
                print_warning(result.error or "Documentation request failed")

        if not docs:
            return FAILED if failures else SKIPPED

        self._append(session, "docs", render_docs_section(docs))
        print_success(f"Docs appended to {self.config.manifest_name}")
        print_box(
            [
                "We have set up your basic WorqHat configuration.",
                f"Open {self.config.manifest_name} to learn how to use it in your projects.",
            ]
        )
        return FAILED if failures else None

    # ------------------------------------------------------------------
    # Stage 16: git
    # ------------------------------------------------------------------

    async def commit_and_publish(self, session: Session) -> str | None:
        session.publish = await commit_and_open_pr(session.cwd, session.branch)
        if not session.publish.repository:
            return SKIPPED
        return OK if session.publish.pushed else FAILED

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _append(self, session: Session, key: str, content: str) -> None:
        if session.manifest is None:
            raise FilesystemFailure("Manifest has not been initialised")
        session.manifest.append(key, content)
        print_success(f"Updated {self.config.manifest_name} ({key}).")

    def _print_final_summary(self, session: Session, elapsed: float) -> None:
        rows = {stage.title: session.outcomes.get(stage.key, SKIPPED) for stage in self.stages()}
        rows["Duration"] = format_duration(elapsed)
        if session.branch.created and session.branch.name:
            rows["Branch"] = session.branch.name
        print_summary_table(rows, title="WorqHat Wizard")


# ---------------------------------------------------------------------------
# CLI entry point
# ---------------------------------------------------------------------------


def build_parser(default_prefix: str) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="worqhat-wizard",
        description="WorqHat setup wizard -- add WorqHat to an existing project",
        allow_abbrev=False,
    )
    parser.add_argument("--version", action="version", version=__version__)
    parser.add_argument(
        "--force-install",
        action="store_true",
        help="Force install packages even if peer dependency checks fail",
    )
    parser.add_argument(
        "--logout",
        action="store_true",
        help="Remove saved API key from credentials",
    )
    parser.add_argument(
        "--branch-prefix",
        nargs="?",
        const=None,
        default=default_prefix,
        help=f"Prefix for the new git branch created by the wizard (default: {default_prefix})",
    )
    return parser


def parse_options(argv: list[str] | None, config: Config) -> WizardOptions:
    """Parse *argv* into ``WizardOptions``; unknown flags are ignored."""
    args, _unknown = build_parser(config.branch_prefix).parse_known_args(argv)
    return WizardOptions(
        force_install=args.force_install,
        logout=args.logout,
        branch_prefix=args.branch_prefix or config.branch_prefix,
    )


def run_cli(argv: list[str] | None = None, config: Config | None = None) -> int:
    """Run the wizard and return the process exit code."""
    try:
        config = config or Config.from_env(working_dir=Path.cwd())
    except ValueError as exc:
        print_error(f"Invalid configuration: {exc}")
        return 1
    options = parse_options(argv, config)

    print_banner(__version__)

    if options.logout:
        try:
            logout(CredentialStore(config.credentials_path))
        except WizardError as exc:
            print_error(str(exc))
            return 1
        return 0

    pipeline = Pipeline(config, options)
    try:
        asyncio.run(pipeline.run())
    except PipelineAbort as exc:
        print_error(str(exc))
        return 1
    except KeyboardInterrupt:
        print_warning("Interrupted.")
        return 130
    except Exception as exc:
        print_error(f"Unexpected error: {exc}")
        console.print(f"[dim]{traceback.format_exc()}[/dim]")
        return 1
    return 0


def main() -> None:
    """Console-script entry point for ``worqhat-wizard``."""
    sys.exit(run_cli(sys.argv[1:]))


if __name__ == "__main__":
    main()

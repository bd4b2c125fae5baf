"""WorqHat wizard configuration.

Typed settings for a single wizard run.  ``Config`` is a Pydantic v2 model
so values coming from the environment are validated at construction time.
``WizardOptions`` is the immutable record built once from the command line.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field

DEFAULT_BASE_URL = "https://cli.worqhat.app"
DEFAULT_BRANCH_PREFIX = "worqhat-wizard"

# Directories the tree renderer and language sniffer never descend into.
TREE_IGNORE_DIRS: tuple[str, ...] = (
    "node_modules",
    ".git",
    "dist",
    "build",
    ".next",
    ".astro",
    ".svelte-kit",
)

SAMPLE_SKIP_DIRS: tuple[str, ...] = (
    "node_modules",
    ".git",
    "dist",
    "build",
    ".next",
    ".turbo",
    ".cache",
    ".venv",
    "__pycache__",
)


class BackendConfig(BaseModel):
    """Connection settings for the remote generation service."""

    url: str = Field(default=DEFAULT_BASE_URL)
    timeout: int = Field(default=120, ge=5, description="Per-request timeout in seconds")


class Config(BaseModel):
    """Global wizard configuration.

    Created once by the CLI entry point and handed to the ``Pipeline``.
    """

    working_dir: Path = Field(default=Path("."))
    manifest_name: str = Field(default="WORQHAT.md")
    credentials_dir: Path = Field(default_factory=lambda: Path.home() / ".worqhat")
    credentials_name: str = Field(default="credentials.json")
    branch_prefix: str = Field(default=DEFAULT_BRANCH_PREFIX, min_length=1)
    install_timeout: int = Field(
        default=600, ge=30, description="Package manager process timeout in seconds"
    )
    backend: BackendConfig = Field(default_factory=BackendConfig)
    ignore_dirs: list[str] = Field(default_factory=lambda: list(TREE_IGNORE_DIRS))
    sample_skip_dirs: list[str] = Field(default_factory=lambda: list(SAMPLE_SKIP_DIRS))

    # ------------------------------------------------------------------
    # Derived paths (read-only properties)
    # ------------------------------------------------------------------

    @property
    def manifest_path(self) -> Path:
        """Path to the run manifest inside the working directory."""
        return self.working_dir / self.manifest_name

    @property
    def credentials_path(self) -> Path:
        """Path to the per-user credential file."""
        return self.credentials_dir / self.credentials_name

    @classmethod
    def from_env(cls, working_dir: Path | None = None) -> "Config":
        """Build a ``Config`` from environment variables.

        Recognised variables (all optional):
            WORQHAT_BASE_URL, WORQHAT_TIMEOUT, WORQHAT_CREDENTIALS_DIR,
            WORQHAT_BRANCH_PREFIX.
        """
        backend_kwargs: dict[str, Any] = {}
        if os.environ.get("WORQHAT_BASE_URL"):
            backend_kwargs["url"] = os.environ["WORQHAT_BASE_URL"].rstrip("/")
        if os.environ.get("WORQHAT_TIMEOUT"):
            backend_kwargs["timeout"] = int(os.environ["WORQHAT_TIMEOUT"])

        kwargs: dict[str, Any] = {"backend": BackendConfig(**backend_kwargs)}
        if working_dir is not None:
            kwargs["working_dir"] = working_dir
        if os.environ.get("WORQHAT_CREDENTIALS_DIR"):
            kwargs["credentials_dir"] = Path(os.environ["WORQHAT_CREDENTIALS_DIR"]).expanduser()
        if os.environ.get("WORQHAT_BRANCH_PREFIX"):
            kwargs["branch_prefix"] = os.environ["WORQHAT_BRANCH_PREFIX"]

        return cls(**kwargs)


@dataclass(frozen=True)
class WizardOptions:
    """Command-line options, parsed once at startup."""

    force_install: bool = False
    logout: bool = False
    branch_prefix: str = DEFAULT_BRANCH_PREFIX

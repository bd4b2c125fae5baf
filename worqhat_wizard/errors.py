"""Error taxonomy for the setup wizard.

Every failure the pipeline can observe is mapped onto one of these classes
before it reaches the orchestrator.  Whether a failure aborts the run is a
property of the *stage* that raised it, not of the class itself.
"""

from __future__ import annotations


class WizardError(Exception):
    """Base class for all classified wizard failures."""

    def __init__(self, message: str, stage: str = "") -> None:
        self.stage = stage
        super().__init__(message)


class ScanFailure(WizardError):
    """The working directory could not be enumerated."""


class AuthFailure(WizardError):
    """No API key could be obtained from the store or the user."""


class NetworkFailure(WizardError):
    """Transport error or non-2xx response from the backend."""

    def __init__(self, message: str, stage: str = "", status_code: int | None = None) -> None:
        self.status_code = status_code
        super().__init__(message, stage=stage)


class ValidationFailure(WizardError):
    """A 2xx backend response whose payload broke the expected contract."""


class FilesystemFailure(WizardError):
    """A local read or write failed."""


class GitFailure(WizardError):
    """A git (or PR tool) subprocess exited non-zero."""

    def __init__(self, message: str, command: str = "", stderr: str = "") -> None:
        self.command = command
        self.stderr = stderr
        super().__init__(message)


class PipelineAbort(WizardError):
    """Raised by the orchestrator when a fatal stage fails."""

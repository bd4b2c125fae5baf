"""Local credential storage for the WorqHat API key.

The key lives in a small JSON document (``{"apiKey", "savedAt"}``) under the
user's home directory, readable only by its owner where the platform allows.
"""

from __future__ import annotations

import json
import os
from collections.abc import Callable
from datetime import datetime, timezone
from pathlib import Path

from pydantic import BaseModel, Field, ValidationError

from worqhat_wizard.errors import AuthFailure, FilesystemFailure
from worqhat_wizard.utils import console, mask_secret, print_success, print_warning

SIGNUP_URL = "https://worqhat.app"


class Credentials(BaseModel):
    """On-disk credential document."""

    api_key: str = Field(alias="apiKey", min_length=1)
    saved_at: str = Field(
        alias="savedAt",
        default_factory=lambda: datetime.now(timezone.utc).isoformat(),
    )

    model_config = {"populate_by_name": True}


class CredentialStore:
    """Read, write and delete the saved API key."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    def load(self) -> str | None:
        """Return the saved API key, or ``None`` if absent or unreadable."""
        if not self.path.is_file():
            return None
        try:
            creds = Credentials.model_validate_json(self.path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, ValidationError):
            return None
        key = creds.api_key.strip()
        return key or None

    def save(self, api_key: str) -> Credentials:
        """Persist *api_key*, restricting the file to its owner.

        Raises:
            FilesystemFailure: If the file cannot be written.
        """
        creds = Credentials(api_key=api_key.strip())
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            # Owner-only from creation; chmod below covers a pre-existing file.
            fd = os.open(self.path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(json.dumps(creds.model_dump(by_alias=True), indent=2))
        except OSError as exc:
            raise FilesystemFailure(f"Could not save credentials to {self.path}: {exc}") from exc
        try:
            os.chmod(self.path, 0o600)
        except OSError:
            # Not supported on every platform.
            pass
        return creds

    def delete(self) -> bool:
        """Remove the credential file.  Returns ``False`` if there was none.

        Raises:
            FilesystemFailure: If the file exists but cannot be removed.
        """
        if not self.path.exists():
            return False
        try:
            self.path.unlink()
        except OSError as exc:
            raise FilesystemFailure(f"Failed to remove credentials: {exc}") from exc
        return True


def ensure_api_key(store: CredentialStore, ask: Callable[[str], str]) -> str:
    """Return the saved key, prompting until a non-empty one is entered.

    Args:
        store: Where the key is read from and saved to.
        ask: Line-input callable, e.g. ``Prompter.ask_secret``.

    Raises:
        AuthFailure: If the user aborts the prompt (Ctrl-C / EOF).
    """
    existing = store.load()
    if existing:
        print_success(f"Found saved API key ({mask_secret(existing)}).")
        return existing

    console.print("[bold]●  Authenticate with your WorqHat account[/bold]")
    console.print(f"│  1) Visit [cyan]{SIGNUP_URL}[/cyan]")
    console.print("│  2) Create or copy an API key for CLI usage")
    console.print("│  3) Paste the API key below")

    while True:
        try:
            api_key = ask("◇  Paste your WorqHat API key").strip()
        except (KeyboardInterrupt, EOFError) as exc:
            raise AuthFailure("API key entry was cancelled") from exc
        if api_key:
            break
        print_warning("API key cannot be empty. Please paste the full key.")

    try:
        store.save(api_key)
    except FilesystemFailure as exc:
        print_warning(f"{exc}. The key will only be used for this run.")
    else:
        print_success("API key saved. You are now authenticated.")
    return api_key


def logout(store: CredentialStore) -> bool:
    """Delete the saved key and report what happened."""
    removed = store.delete()
    if removed:
        print_success("Logged out. Removed saved API key.")
    else:
        console.print("No saved API key found. Nothing to do.")
    return removed

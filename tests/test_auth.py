"""Unit tests for credential storage and the API-key prompt.

Tests cover:
- Saving with owner-only permissions and the camelCase JSON shape
- Loading tolerance for missing and corrupt files
- ensure_api_key re-prompting and cancellation
- logout messages
"""

from __future__ import annotations

import json
import os
import stat
from pathlib import Path
from unittest.mock import patch

import pytest

from worqhat_wizard.auth import CredentialStore, Credentials, ensure_api_key, logout
from worqhat_wizard.errors import AuthFailure


@pytest.fixture
def store(tmp_path: Path) -> CredentialStore:
    return CredentialStore(tmp_path / ".worqhat" / "credentials.json")


class TestCredentialStore:
    @pytest.mark.unit
    def test_save_writes_camel_case_json(self, store: CredentialStore):
        store.save("  wh_abc123  ")
        data = json.loads(store.path.read_text(encoding="utf-8"))
        assert data["apiKey"] == "wh_abc123"
        assert "savedAt" in data

    @pytest.mark.unit
    @pytest.mark.skipif(os.name == "nt", reason="POSIX permissions only")
    def test_save_restricts_permissions(self, store: CredentialStore):
        store.save("wh_abc123")
        assert stat.S_IMODE(store.path.stat().st_mode) == 0o600

    @pytest.mark.unit
    def test_load_roundtrip(self, store: CredentialStore):
        store.save("wh_abc123")
        assert store.load() == "wh_abc123"

    @pytest.mark.unit
    def test_load_missing(self, store: CredentialStore):
        assert store.load() is None

    @pytest.mark.unit
    def test_load_corrupt(self, store: CredentialStore):
        store.path.parent.mkdir(parents=True)
        store.path.write_text("not json", encoding="utf-8")
        assert store.load() is None

    @pytest.mark.unit
    def test_load_undecodable_bytes(self, store: CredentialStore):
        store.path.parent.mkdir(parents=True)
        store.path.write_bytes(b'{"apiKey": "\xff\xfe"}')
        assert store.load() is None

    @pytest.mark.unit
    @pytest.mark.skipif(os.name == "nt", reason="POSIX permissions only")
    def test_save_creates_owner_only_file(self, store: CredentialStore):
        with patch("worqhat_wizard.auth.os.chmod") as chmod:
            store.save("wh_abc123")
        chmod.assert_called_once()
        assert stat.S_IMODE(store.path.stat().st_mode) & 0o077 == 0

    @pytest.mark.unit
    def test_load_blank_key(self, store: CredentialStore):
        store.path.parent.mkdir(parents=True)
        store.path.write_text(json.dumps({"apiKey": "   "}), encoding="utf-8")
        assert store.load() is None

    @pytest.mark.unit
    def test_delete(self, store: CredentialStore):
        assert store.delete() is False
        store.save("wh_abc123")
        assert store.delete() is True
        assert not store.path.exists()


class TestCredentialsModel:
    @pytest.mark.unit
    def test_accepts_field_names_and_aliases(self):
        assert Credentials(api_key="k").api_key == "k"
        assert Credentials.model_validate({"apiKey": "k"}).api_key == "k"


class TestEnsureApiKey:
    @pytest.mark.unit
    def test_undecodable_file_prompts_for_key(self, store: CredentialStore):
        store.path.parent.mkdir(parents=True)
        store.path.write_bytes(b'{"apiKey": "\xff\xfe"}')

        assert ensure_api_key(store, lambda _q: "wh_new_key") == "wh_new_key"
        assert store.load() == "wh_new_key"

    @pytest.mark.unit
    def test_saved_key_skips_prompt(self, store: CredentialStore, capsys):
        store.save("wh_saved_9876")

        def ask(_question):
            raise AssertionError("should not prompt")

        assert ensure_api_key(store, ask) == "wh_saved_9876"
        out = capsys.readouterr().out
        assert "9876" in out
        assert "wh_saved_9876" not in out

    @pytest.mark.unit
    def test_reprompts_on_empty(self, store: CredentialStore):
        answers = iter(["", "   ", "wh_new_key"])
        asked: list[str] = []

        def ask(question):
            asked.append(question)
            return next(answers)

        assert ensure_api_key(store, ask) == "wh_new_key"
        assert len(asked) == 3
        assert store.load() == "wh_new_key"

    @pytest.mark.unit
    @pytest.mark.parametrize("exc", [KeyboardInterrupt, EOFError])
    def test_cancel_raises_auth_failure(self, store: CredentialStore, exc):
        def ask(_question):
            raise exc()

        with pytest.raises(AuthFailure):
            ensure_api_key(store, ask)
        assert not store.path.exists()

    @pytest.mark.unit
    def test_unwritable_store_still_returns_key(self, tmp_path: Path, capsys):
        blocker = tmp_path / "blocker"
        blocker.write_text("", encoding="utf-8")
        store = CredentialStore(blocker / "credentials.json")

        assert ensure_api_key(store, lambda _q: "wh_temp") == "wh_temp"
        assert "only be used for this run" in capsys.readouterr().out


class TestLogout:
    @pytest.mark.unit
    def test_removes_saved_key(self, store: CredentialStore, capsys):
        store.save("wh_abc123")
        assert logout(store) is True
        assert "Logged out. Removed saved API key." in capsys.readouterr().out

    @pytest.mark.unit
    def test_nothing_to_do(self, store: CredentialStore, capsys):
        assert logout(store) is False
        assert "No saved API key found. Nothing to do." in capsys.readouterr().out

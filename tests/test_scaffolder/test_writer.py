"""Unit tests for scaffold file creation (worqhat_wizard.scaffolder.writer).

Tests cover:
- Comment header style per extension
- Never overwriting existing files
- Refusing paths that escape the project
"""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path

import pytest

from worqhat_wizard.errors import FilesystemFailure
from worqhat_wizard.scaffolder.writer import header_for, resolve_inside, write_scaffold_files

_STAMP = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


class TestHeaderFor:
    @pytest.mark.unit
    def test_python_docstring(self):
        header = header_for("worqhat/config.py", "python", _STAMP)
        assert header.startswith('"""\nWorqHat scaffold file\n')
        assert "Language: python" in header
        assert "Created: 2026-03-01T12:00:00+00:00" in header

    @pytest.mark.unit
    def test_ruby_hash_comments(self):
        header = header_for("worqhat/config.rb", "ruby", _STAMP)
        assert header.splitlines()[0] == "# WorqHat scaffold file"

    @pytest.mark.unit
    @pytest.mark.parametrize("name", ["worqhat/config.ts", "worqhat/config.js", "worqhat/README.md"])
    def test_line_comments_otherwise(self, name):
        header = header_for(name, "typescript", _STAMP)
        assert all(line.startswith("// ") for line in header.strip().splitlines())


class TestResolveInside:
    @pytest.mark.unit
    def test_relative_path(self, tmp_path: Path):
        assert resolve_inside(tmp_path, "a/b.ts") == (tmp_path / "a" / "b.ts").resolve()

    @pytest.mark.unit
    @pytest.mark.parametrize("rel", ["../outside.ts", "a/../../outside.ts", "/etc/passwd"])
    def test_escape_rejected(self, tmp_path: Path, rel):
        with pytest.raises(FilesystemFailure):
            resolve_inside(tmp_path / "project", rel)


class TestWriteScaffoldFiles:
    @pytest.mark.unit
    def test_creates_missing_files_with_parents(self, tmp_path: Path):
        report = write_scaffold_files(tmp_path, ["worqhat/config.ts", "worqhat/db.ts"], "typescript")
        assert report.created == ["worqhat/config.ts", "worqhat/db.ts"]
        assert report.skipped == []
        content = (tmp_path / "worqhat" / "config.ts").read_text(encoding="utf-8")
        assert content.startswith("// WorqHat scaffold file")

    @pytest.mark.unit
    def test_existing_file_untouched(self, tmp_path: Path):
        target = tmp_path / "worqhat" / "config.ts"
        target.parent.mkdir()
        target.write_text("keep me", encoding="utf-8")

        report = write_scaffold_files(tmp_path, ["worqhat/config.ts"], "typescript")
        assert report.skipped == ["worqhat/config.ts"]
        assert report.created == []
        assert target.read_text(encoding="utf-8") == "keep me"

    @pytest.mark.unit
    def test_bad_path_collected_not_raised(self, tmp_path: Path):
        report = write_scaffold_files(tmp_path, ["../evil.ts", "worqhat/ok.ts"], "typescript")
        assert "../evil.ts" in report.failed
        assert report.created == ["worqhat/ok.ts"]
        assert not (tmp_path.parent / "evil.ts").exists()

    @pytest.mark.unit
    def test_second_run_skips_everything(self, tmp_path: Path):
        paths = ["worqhat/config.py"]
        write_scaffold_files(tmp_path, paths, "python")
        report = write_scaffold_files(tmp_path, paths, "python")
        assert report.created == []
        assert report.skipped == paths

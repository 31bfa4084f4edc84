"""Tests for release notes output storage.

Run with: pytest tests/test_storage.py -v
"""

from __future__ import annotations

from pathlib import Path

import pytest

from nuntia.storage import resolve_path, set_action_output, write_text_file


class TestWriteTextFile:
    def test_creates_parent_directories(self, tmp_path: Path) -> None:
        target = tmp_path / "artifacts" / "nested" / "notes.md"
        written = write_text_file(target, "# Notes\n")
        assert written == target
        assert target.read_text(encoding="utf-8") == "# Notes\n"

    def test_relative_paths_resolve_against_cwd(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.chdir(tmp_path)
        written = write_text_file("out/notes.md", "hello")
        assert written == tmp_path / "out" / "notes.md"
        assert written.read_text(encoding="utf-8") == "hello"

    def test_resolve_absolute_path_unchanged(self, tmp_path: Path) -> None:
        assert resolve_path(tmp_path / "x.md") == tmp_path / "x.md"


class TestSetActionOutput:
    def test_noop_outside_actions(self) -> None:
        assert set_action_output("input-tokens", "10", env={}) is False

    def test_appends_single_line(self, tmp_path: Path) -> None:
        output = tmp_path / "github_output"
        env = {"GITHUB_OUTPUT": str(output)}
        assert set_action_output("input-tokens", "10", env=env) is True
        assert set_action_output("output-tokens", "5", env=env) is True
        assert output.read_text(encoding="utf-8") == "input-tokens=10\noutput-tokens=5\n"

    def test_multiline_uses_delimiter(self, tmp_path: Path) -> None:
        output = tmp_path / "github_output"
        set_action_output("notes", "line one\nline two", env={"GITHUB_OUTPUT": str(output)})
        lines = output.read_text(encoding="utf-8").splitlines()
        assert lines[0].startswith("notes<<ghadelimiter_")
        delimiter = lines[0].split("<<", 1)[1]
        assert lines[1:] == ["line one", "line two", delimiter]

"""Tests for the Typer-based CLI.

These tests drive the chaptermark CLI through typer.testing.CliRunner.
"""

from __future__ import annotations

import os
import runpy
import sys
from pathlib import Path
from unittest import mock

import pytest
from typer.testing import CliRunner

from chaptermark import __version__
from chaptermark.cli import app
from chaptermark.cli.apply import duration_callback
from chaptermark.env_settings import clear_env_settings_cache
from tests.conftest import AUDIO_PAYLOAD, sha256, split_frames


@pytest.fixture
def runner(clean_env: None) -> CliRunner:
    """Create a CLI runner with a clean environment."""
    return CliRunner()


def chapter_count(path: Path) -> int:
    frames, _ = split_frames(path.read_bytes())
    return sum(1 for f in frames if f[:4] == b"CHAP")


class TestCliHelp:
    """Test CLI help output."""

    def test_main_help(self, runner: CliRunner) -> None:
        result = runner.invoke(app, ["--help"])
        assert result.exit_code == 0
        assert "apply" in result.output

    def test_version_option(self, runner: CliRunner) -> None:
        result = runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert f"chaptermark {__version__}" in result.output

    def test_apply_help(self, runner: CliRunner) -> None:
        result = runner.invoke(app, ["apply", "--help"])
        assert result.exit_code == 0
        assert "--dry-run" in result.output
        assert "--copy" in result.output


class TestApplyCommand:
    """Tests for the apply command."""

    def test_writes_chapters(self, runner: CliRunner, marker_csv: Path, tagged_mp3: Path) -> None:
        result = runner.invoke(app, ["apply", str(marker_csv), str(tagged_mp3)])
        assert result.exit_code == 0, result.output
        assert "Wrote 3 chapters" in result.output
        assert "Intro" in result.output
        assert chapter_count(tagged_mp3) == 3

    def test_reports_replaced_chapters(
        self, runner: CliRunner, marker_csv: Path, chaptered_mp3: Path
    ) -> None:
        result = runner.invoke(app, ["apply", str(marker_csv), str(chaptered_mp3)])
        assert result.exit_code == 0, result.output
        assert "Replaced 2 existing CHAP/CTOC frames" in result.output
        assert chapter_count(chaptered_mp3) == 3

    def test_output_option(
        self, runner: CliRunner, marker_csv: Path, tagged_mp3: Path, tmp_path: Path
    ) -> None:
        before = sha256(tagged_mp3)
        target = tmp_path / "tagged.mp3"
        result = runner.invoke(app, ["apply", str(marker_csv), str(tagged_mp3), "-o", str(target)])
        assert result.exit_code == 0, result.output
        assert sha256(tagged_mp3) == before
        assert chapter_count(target) == 3

    def test_copy_option(self, runner: CliRunner, marker_csv: Path, tagged_mp3: Path) -> None:
        """--copy writes <stem>_enriched.mp3 next to the input."""
        before = sha256(tagged_mp3)
        result = runner.invoke(app, ["apply", str(marker_csv), str(tagged_mp3), "--copy"])
        assert result.exit_code == 0, result.output
        assert sha256(tagged_mp3) == before
        assert chapter_count(tagged_mp3.with_name("episode_enriched.mp3")) == 3

    def test_output_and_copy_conflict(
        self, runner: CliRunner, marker_csv: Path, tagged_mp3: Path, tmp_path: Path
    ) -> None:
        result = runner.invoke(
            app,
            ["apply", str(marker_csv), str(tagged_mp3), "--copy", "-o", str(tmp_path / "x.mp3")],
        )
        assert result.exit_code == 2

    def test_dry_run(self, runner: CliRunner, marker_csv: Path, tagged_mp3: Path) -> None:
        before = sha256(tagged_mp3)
        result = runner.invoke(app, ["apply", str(marker_csv), str(tagged_mp3), "--dry-run"])
        assert result.exit_code == 0, result.output
        assert "DRY RUN" in result.output
        assert sha256(tagged_mp3) == before

    def test_duration_option(self, runner: CliRunner, tmp_path: Path, tagged_mp3: Path) -> None:
        """--duration closes the last chapter when the markers do not."""
        markers = tmp_path / "open.csv"
        markers.write_text("Name,Start\nA,0:00:00.000\nB,0:00:30.000\n")
        result = runner.invoke(
            app, ["apply", str(markers), str(tagged_mp3), "--duration", "0:01:00.000"]
        )
        assert result.exit_code == 0, result.output
        assert "0:01:00.000" in result.output

    def test_invalid_duration(self, runner: CliRunner, marker_csv: Path, tagged_mp3: Path) -> None:
        result = runner.invoke(
            app, ["apply", str(marker_csv), str(tagged_mp3), "--duration", "soon"]
        )
        assert result.exit_code == 2

    def test_missing_marker_file(self, runner: CliRunner, tmp_path: Path, tagged_mp3: Path) -> None:
        result = runner.invoke(app, ["apply", str(tmp_path / "none.csv"), str(tagged_mp3)])
        assert result.exit_code == 2


class TestApplyErrors:
    """Tests for conversion failures reported by apply."""

    def test_unordered_markers(self, runner: CliRunner, tmp_path: Path, tagged_mp3: Path) -> None:
        markers = tmp_path / "bad.csv"
        markers.write_text("Name,Start\nA,0:02:00.000\nB,0:01:59.000\n")
        before = sha256(tagged_mp3)
        result = runner.invoke(app, ["apply", str(markers), str(tagged_mp3)])
        assert result.exit_code == 1
        assert "UnorderedMarkers" in result.output
        assert sha256(tagged_mp3) == before

    def test_untagged_mp3(self, runner: CliRunner, marker_csv: Path, tmp_path: Path) -> None:
        raw = tmp_path / "raw.mp3"
        raw.write_bytes(AUDIO_PAYLOAD)
        result = runner.invoke(app, ["apply", str(marker_csv), str(raw)])
        assert result.exit_code == 1
        assert "TagRegionNotFound" in result.output
        assert raw.read_bytes() == AUDIO_PAYLOAD

    def test_invalid_environment(
        self, runner: CliRunner, marker_csv: Path, tagged_mp3: Path
    ) -> None:
        """Bad CHAPTERMARK_* values are reported before any work is done."""
        with mock.patch.dict(os.environ, {"CHAPTERMARK_TEXT_ENCODING": "ebcdic"}):
            clear_env_settings_cache()
            result = runner.invoke(app, ["apply", str(marker_csv), str(tagged_mp3)])
        assert result.exit_code == 2
        assert "environment configuration" in result.output


class TestDurationCallback:
    def test_none(self) -> None:
        assert duration_callback(None) is None

    def test_parses(self) -> None:
        assert duration_callback("1:00.500") == 60500


class TestModuleEntry:
    """Tests for ``python -m chaptermark``."""

    def run_module(self, run_name: str) -> None:
        with mock.patch.dict(sys.modules):
            sys.modules.pop("chaptermark.__main__", None)
            runpy.run_module("chaptermark", run_name=run_name)

    def test_import_does_not_run_cli(self, clean_env: None) -> None:
        """Importing the module entry point must not parse argv or exit."""
        with mock.patch.object(sys, "argv", ["chaptermark", "--version"]):
            self.run_module("chaptermark.__main__")

    def test_runs_as_main(self, clean_env: None) -> None:
        with (
            mock.patch.object(sys, "argv", ["chaptermark", "--version"]),
            pytest.raises(SystemExit) as exc_info,
        ):
            self.run_module("__main__")
        assert exc_info.value.code == 0

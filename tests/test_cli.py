"""Tests for the mdcrules command line interface."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any

import pytest
from typer.testing import CliRunner

from mdcrules import __version__
from mdcrules.cli import ExitCode, app

if TYPE_CHECKING:
    from collections.abc import Callable
    from pathlib import Path


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()


def json_line(output: str) -> list[dict[str, Any]]:
    """Pick the JSON array out of output that may also hold log lines."""
    [line] = [ln for ln in output.splitlines() if ln.startswith("[")]
    return json.loads(line)


class TestVersion:
    def test_version(self, runner: CliRunner) -> None:
        result = runner.invoke(app, ["--version"])

        assert result.exit_code == ExitCode.SUCCESS
        assert __version__ in result.output


class TestValidate:
    def test_valid_directory(self, runner: CliRunner, sample_rules_dir: Path) -> None:
        result = runner.invoke(app, ["validate", "--rules-dir", str(sample_rules_dir)])

        assert result.exit_code == ExitCode.SUCCESS
        assert "Loaded 2 rule(s) from 2 document(s)" in result.output

    def test_malformed_document(
        self,
        runner: CliRunner,
        sample_rules_dir: Path,
        write_text: Callable[[str, str], Path],
    ) -> None:
        write_text("broken.mdc", "---\nname: [unclosed\n---\n")

        result = runner.invoke(app, ["validate", "--rules-dir", str(sample_rules_dir)])

        assert result.exit_code == ExitCode.LOAD_ERROR
        assert "ParseError" in result.output
        assert "1 malformed document(s)" in result.output

    def test_missing_directory(self, runner: CliRunner, temp_dir: Path) -> None:
        result = runner.invoke(app, ["validate", "--rules-dir", str(temp_dir / "nope")])

        assert result.exit_code == ExitCode.LOAD_ERROR
        assert "Cannot load rules" in result.output

    def test_bad_config(self, runner: CliRunner, write_config: Callable[..., Path]) -> None:
        path = write_config({"version": 7})

        result = runner.invoke(app, ["validate", "--config", str(path)])

        assert result.exit_code == ExitCode.CONFIG_ERROR
        assert "Configuration error" in result.output

    def test_rules_dir_from_config(
        self,
        runner: CliRunner,
        sample_rules_dir: Path,
        write_config: Callable[..., Path],
    ) -> None:
        path = write_config({"rules": {"directory": str(sample_rules_dir)}})

        result = runner.invoke(app, ["validate", "--config", str(path)])

        assert result.exit_code == ExitCode.SUCCESS


class TestListAndShow:
    def test_list_in_evaluation_order(self, runner: CliRunner, sample_rules_dir: Path) -> None:
        result = runner.invoke(app, ["list", "--rules-dir", str(sample_rules_dir)])

        assert result.exit_code == ExitCode.SUCCESS
        assert result.output.index("code-refactor") < result.output.index("onboard")
        assert "command:onboard project" in result.output

    def test_list_empty(self, runner: CliRunner, rules_dir: Path) -> None:
        result = runner.invoke(app, ["list", "--rules-dir", str(rules_dir)])

        assert result.exit_code == ExitCode.SUCCESS
        assert "No rules loaded." in result.output

    def test_show_mdc(self, runner: CliRunner, sample_rules_dir: Path) -> None:
        result = runner.invoke(app, ["show", "onboard", "--rules-dir", str(sample_rules_dir)])

        assert result.exit_code == ExitCode.SUCCESS
        assert "---\nname: onboard\n" in result.output
        assert "Run once per project." in result.output

    def test_show_yaml(self, runner: CliRunner, sample_rules_dir: Path) -> None:
        result = runner.invoke(
            app,
            ["show", "code-refactor", "--rules-dir", str(sample_rules_dir), "--format", "yaml"],
        )

        assert result.exit_code == ExitCode.SUCCESS
        assert "name: code-refactor" in result.output
        assert "---" not in result.output

    def test_show_unknown_rule(self, runner: CliRunner, sample_rules_dir: Path) -> None:
        result = runner.invoke(app, ["show", "missing", "--rules-dir", str(sample_rules_dir)])

        assert result.exit_code == ExitCode.LOAD_ERROR
        assert "No rule named 'missing'" in result.output


class TestSubmit:
    def test_prints_effects(self, runner: CliRunner, sample_rules_dir: Path) -> None:
        result = runner.invoke(
            app,
            ["submit", "command", "onboard project", "--rules-dir", str(sample_rules_dir)],
        )

        assert result.exit_code == ExitCode.SUCCESS
        assert "[onboard] message" in result.output
        assert "Project onboarding complete!" in result.output

    def test_no_match(self, runner: CliRunner, sample_rules_dir: Path) -> None:
        result = runner.invoke(
            app,
            ["submit", "lifecycle", "session-start", "--rules-dir", str(sample_rules_dir)],
        )

        assert result.exit_code == ExitCode.SUCCESS
        assert "No rules matched." in result.output

    def test_json_output(self, runner: CliRunner, sample_rules_dir: Path) -> None:
        result = runner.invoke(
            app,
            [
                "submit",
                "command",
                "Code.refactor:Foo.swift",
                "--rules-dir",
                str(sample_rules_dir),
                "--json",
            ],
        )

        assert result.exit_code == ExitCode.SUCCESS
        [effect] = json_line(result.output)
        assert effect["effectKind"] == "fileWrite"
        assert effect["targetPath"] == "reports/Foo.swift.md"
        assert effect["ruleName"] == "code-refactor"

    def test_apply_writes_into_output_dir(
        self,
        runner: CliRunner,
        sample_rules_dir: Path,
        output_dir: Path,
    ) -> None:
        result = runner.invoke(
            app,
            [
                "submit",
                "command",
                "Code.refactor:Foo.swift",
                "--rules-dir",
                str(sample_rules_dir),
                "--output-dir",
                str(output_dir),
                "--apply",
            ],
        )

        assert result.exit_code == ExitCode.SUCCESS
        report = output_dir / "reports" / "Foo.swift.md"
        assert report.read_text(encoding="utf-8") == "# Refactor report for Foo.swift\n"

    def test_apply_dry_run(
        self,
        runner: CliRunner,
        sample_rules_dir: Path,
        output_dir: Path,
    ) -> None:
        result = runner.invoke(
            app,
            [
                "submit",
                "command",
                "Code.refactor:Foo.swift",
                "--rules-dir",
                str(sample_rules_dir),
                "--output-dir",
                str(output_dir),
                "--apply",
                "--dry-run",
            ],
        )

        assert result.exit_code == ExitCode.SUCCESS
        assert not output_dir.exists()

    def test_binding_error_is_partial_failure(
        self,
        runner: CliRunner,
        sample_rules_dir: Path,
        write_rule: Callable[..., Path],
    ) -> None:
        write_rule(
            "broken.mdc",
            {
                "name": "broken",
                "filters": [{"type": "command", "pattern": "onboard"}],
                "actions": [{"type": "react", "template": "{{ 4 }}"}],
            },
        )

        result = runner.invoke(
            app,
            ["submit", "command", "onboard project", "--rules-dir", str(sample_rules_dir)],
        )

        assert result.exit_code == ExitCode.PARTIAL_FAILURE
        assert "Project onboarding complete!" in result.output
        assert "{{ 4 }}" in result.output

    def test_unknown_event_kind(self, runner: CliRunner, sample_rules_dir: Path) -> None:
        result = runner.invoke(
            app,
            ["submit", "keystroke", "q", "--rules-dir", str(sample_rules_dir)],
        )

        assert result.exit_code == 2

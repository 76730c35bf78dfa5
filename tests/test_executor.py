"""Tests for the reference effect executor."""

from __future__ import annotations

import io
from typing import TYPE_CHECKING

from mdcrules.actions.effects import EffectDescription
from mdcrules.actions.executor import EffectExecutor, ExecutionStatus
from mdcrules.rules.models import EffectKind

if TYPE_CHECKING:
    from pathlib import Path


def effect(kind: EffectKind, content: str, target: str | None = None) -> EffectDescription:
    return EffectDescription(
        effect_kind=kind,
        content=content,
        target_path=target,
        rule_name="test-rule",
    )


class TestEffectExecutor:
    def test_message_is_printed(self, output_dir: Path) -> None:
        stream = io.StringIO()
        executor = EffectExecutor(output_dir, output=stream)

        result = executor.execute(effect(EffectKind.MESSAGE, "Project onboarding complete!"))

        assert result.status is ExecutionStatus.SUCCESS
        assert stream.getvalue() == "[test-rule] Project onboarding complete!\n"

    def test_file_write_creates_parents(self, output_dir: Path) -> None:
        executor = EffectExecutor(output_dir, output=io.StringIO())

        result = executor.execute(
            effect(EffectKind.FILE_WRITE, "# Report\n", "reports/Foo.swift.md")
        )

        assert result.is_success
        written = output_dir / "reports" / "Foo.swift.md"
        assert written.read_text(encoding="utf-8") == "# Report\n"
        assert result.details["path"] == str(written.resolve())

    def test_dry_run_does_not_write(self, output_dir: Path) -> None:
        executor = EffectExecutor(output_dir, output=io.StringIO(), dry_run=True)

        result = executor.execute(effect(EffectKind.FILE_WRITE, "x", "report.md"))

        assert result.status is ExecutionStatus.DRY_RUN
        assert not output_dir.exists()

    def test_target_outside_output_dir_fails(self, output_dir: Path) -> None:
        executor = EffectExecutor(output_dir, output=io.StringIO())

        result = executor.execute(effect(EffectKind.FILE_WRITE, "x", "../escape.md"))

        assert result.is_failure
        assert "outside the output directory" in result.message
        assert not (output_dir.parent / "escape.md").exists()

    def test_other_effect_is_described(self, output_dir: Path) -> None:
        stream = io.StringIO()
        executor = EffectExecutor(output_dir, output=stream)

        result = executor.execute(effect(EffectKind.OTHER, "draw diagram", "arch.svg"))

        assert result.status is ExecutionStatus.SKIPPED
        assert "draw diagram" in stream.getvalue()
        assert "arch.svg" in stream.getvalue()

    def test_failures_are_isolated(self, output_dir: Path) -> None:
        stream = io.StringIO()
        executor = EffectExecutor(output_dir, output=stream)

        results = executor.execute_all(
            [
                effect(EffectKind.FILE_WRITE, "x", "../escape.md"),
                effect(EffectKind.MESSAGE, "still printed"),
            ]
        )

        assert [r.status for r in results] == [ExecutionStatus.FAILURE, ExecutionStatus.SUCCESS]
        assert "still printed" in stream.getvalue()

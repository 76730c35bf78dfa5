"""Reference executor for effect descriptions.

The engine core only describes effects. This module is the caller-side
executor used by the CLI:
- message effects are printed to the console
- file_write effects are written under the output directory
- other effects are printed as a description of what would happen

Each effect is executed independently; one failure never stops the rest.
"""

from __future__ import annotations

import logging
import sys
from datetime import UTC, datetime
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING, Any, TextIO

from pydantic import BaseModel, ConfigDict, Field

from mdcrules.actions.effects import EffectDescription
from mdcrules.rules.models import EffectKind

if TYPE_CHECKING:
    from collections.abc import Iterable

logger = logging.getLogger(__name__)


class ExecutionStatus(str, Enum):
    """Status of an effect execution."""

    SUCCESS = "success"
    FAILURE = "failure"
    SKIPPED = "skipped"
    DRY_RUN = "dry_run"


class ExecutionResult(BaseModel):
    """Result of executing one effect."""

    model_config = ConfigDict(frozen=True)

    effect: EffectDescription = Field(..., description="The effect that was executed")
    status: ExecutionStatus = Field(..., description="Execution status")
    message: str = Field(default="", description="Status message or error")
    executed_at: datetime = Field(
        default_factory=lambda: datetime.now(UTC),
        description="When the effect was executed",
    )
    details: dict[str, Any] = Field(default_factory=dict, description="Extra details")

    @property
    def is_success(self) -> bool:
        return self.status == ExecutionStatus.SUCCESS

    @property
    def is_failure(self) -> bool:
        return self.status == ExecutionStatus.FAILURE


class EffectExecutor:
    """Executor performing effect descriptions against the console and file system."""

    def __init__(
        self,
        output_dir: Path,
        *,
        output: TextIO | None = None,
        dry_run: bool = False,
        colorize: bool = True,
    ) -> None:
        """Initialize effect executor.

        Args:
            output_dir: Directory relative file targets are resolved against.
            output: Output stream for messages (defaults to stdout).
            dry_run: If True, describe file writes without performing them.
            colorize: Whether to use ANSI colors on a terminal.
        """
        self._output_dir = output_dir
        self._output = output or sys.stdout
        self._dry_run = dry_run
        self._colorize = colorize and self._output.isatty()

    @property
    def output_dir(self) -> Path:
        return self._output_dir

    def resolve_target(self, target: str) -> Path:
        """Resolve a target path inside the output directory.

        Raises:
            ValueError: If the target escapes the output directory.
        """
        root = self._output_dir.resolve()
        path = Path(target).expanduser()
        resolved = (path if path.is_absolute() else root / path).resolve()
        if not resolved.is_relative_to(root):
            msg = f"target '{target}' is outside the output directory {root}"
            raise ValueError(msg)
        return resolved

    def execute(self, effect: EffectDescription) -> ExecutionResult:
        """Execute a single effect.

        Args:
            effect: Effect description to perform.

        Returns:
            ExecutionResult with execution status.
        """
        try:
            if effect.effect_kind == EffectKind.MESSAGE:
                return self._execute_message(effect)
            if effect.effect_kind == EffectKind.FILE_WRITE:
                return self._execute_file_write(effect)
            return self._execute_other(effect)
        except Exception as e:
            logger.exception("Error executing %s effect", effect.effect_kind.value)
            return ExecutionResult(
                effect=effect,
                status=ExecutionStatus.FAILURE,
                message=str(e),
            )

    def execute_all(self, effects: Iterable[EffectDescription]) -> list[ExecutionResult]:
        """Execute effects in order, isolating failures."""
        results: list[ExecutionResult] = []
        for effect in effects:
            result = self.execute(effect)
            if result.is_failure:
                logger.error(
                    "Effect %s failed for rule '%s': %s",
                    effect.effect_kind.value,
                    effect.rule_name,
                    result.message,
                )
            results.append(result)
        return results

    def _execute_message(self, effect: EffectDescription) -> ExecutionResult:
        header = f"[{effect.rule_name}]"
        if self._colorize:
            header = f"\033[1;34m{header}\033[0m"
        print(f"{header} {effect.content}", file=self._output)
        return ExecutionResult(
            effect=effect,
            status=ExecutionStatus.SUCCESS,
            message="Message printed to console",
        )

    def _execute_file_write(self, effect: EffectDescription) -> ExecutionResult:
        if not effect.target_path:
            return ExecutionResult(
                effect=effect,
                status=ExecutionStatus.SKIPPED,
                message="file_write effect has no target path",
            )

        path = self.resolve_target(effect.target_path)

        if self._dry_run:
            logger.info("[DRY RUN] Would write %d chars to %s", len(effect.content), path)
            return ExecutionResult(
                effect=effect,
                status=ExecutionStatus.DRY_RUN,
                message=f"Dry run: would write {path}",
                details={"path": str(path)},
            )

        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(effect.content, encoding="utf-8")
        return ExecutionResult(
            effect=effect,
            status=ExecutionStatus.SUCCESS,
            message=f"Wrote {path}",
            details={"path": str(path), "bytes": len(effect.content.encode("utf-8"))},
        )

    def _execute_other(self, effect: EffectDescription) -> ExecutionResult:
        target = f" -> {effect.target_path}" if effect.target_path else ""
        print(f"[{effect.rule_name}] (other{target}) {effect.content}", file=self._output)
        return ExecutionResult(
            effect=effect,
            status=ExecutionStatus.SKIPPED,
            message="No executor for 'other' effects; description printed",
        )

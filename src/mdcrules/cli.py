"""CLI entry point for mdcrules.

This module provides the Typer-based CLI with commands:
- mdcrules validate: Load rule documents and report problems
- mdcrules list: Show loaded rules in evaluation order
- mdcrules show: Print a rule re-serialised to document form
- mdcrules submit: Submit one event and print (or apply) the effects

Exit codes:
- 0: Success
- 1: Configuration error
- 2: Rule load error
- 3: Partial failure
"""

from __future__ import annotations

import json
from enum import Enum, IntEnum
from pathlib import Path
from typing import TYPE_CHECKING, Annotated

import typer

from mdcrules import __version__
from mdcrules.actions.executor import EffectExecutor
from mdcrules.config import ConfigError, load_config_or_default
from mdcrules.logging import configure_logging, get_logger, log_effect_executed
from mdcrules.rules.engine import RulesEngine
from mdcrules.rules.models import EventKind
from mdcrules.rules.schema import Event
from mdcrules.rules.store import RuleSourceError, dump_rule
from mdcrules.session import SessionContext

if TYPE_CHECKING:
    import structlog

    from mdcrules.rules.store import LoadReport


class ExitCode(IntEnum):
    """CLI exit codes."""

    SUCCESS = 0
    CONFIG_ERROR = 1
    LOAD_ERROR = 2
    PARTIAL_FAILURE = 3


class DocumentFormat(str, Enum):
    """Serialisation format for ``show``."""

    MDC = "mdc"
    YAML = "yaml"


app = typer.Typer(
    name="mdcrules",
    help="Rule-matching and action-dispatch engine for assistant rule documents.",
    add_completion=False,
    no_args_is_help=True,
)

ConfigOption = Annotated[
    Path | None,
    typer.Option("--config", "-c", help="Path to configuration file."),
]
RulesDirOption = Annotated[
    Path | None,
    typer.Option("--rules-dir", "-r", help="Rule document directory (overrides config)."),
]
VerboseOption = Annotated[
    bool,
    typer.Option("--verbose", "-v", help="Enable debug logging."),
]


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        typer.echo(f"mdcrules {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Annotated[
        bool | None,
        typer.Option(
            "--version",
            "-V",
            help="Show version and exit.",
            callback=version_callback,
            is_eager=True,
        ),
    ] = None,
) -> None:
    """Rule-matching and action-dispatch engine for assistant rule documents."""


def _fail(message: str, code: ExitCode) -> typer.Exit:
    typer.echo(typer.style(f"✗ {message}", fg=typer.colors.RED), err=True)
    return typer.Exit(code)


def _open_session(
    config: Path | None,
    rules_dir: Path | None,
    log: structlog.stdlib.BoundLogger,
    *,
    output_dir: Path | None = None,
) -> tuple[SessionContext, LoadReport]:
    """Load config and rules into a fresh session.

    Raises:
        typer.Exit: With CONFIG_ERROR or LOAD_ERROR on failure.
    """
    try:
        cfg = load_config_or_default(config)
    except ConfigError as e:
        log.debug("config_error", error=str(e))
        raise _fail(f"Configuration error: {e}", ExitCode.CONFIG_ERROR) from e

    session = SessionContext(cfg, output_dir=output_dir)
    try:
        report = session.load(rules_dir)
    except RuleSourceError as e:
        raise _fail(f"Cannot load rules: {e}", ExitCode.LOAD_ERROR) from e

    return session, report


def _echo_report(report: LoadReport) -> None:
    for error in report.errors:
        label = type(error).__name__
        color = typer.colors.RED if label == "ParseError" else typer.colors.YELLOW
        typer.echo(typer.style(f"  {label}: {error}", fg=color), err=True)


@app.command()
def validate(
    config: ConfigOption = None,
    rules_dir: RulesDirOption = None,
    verbose: VerboseOption = False,
) -> None:
    """Load rule documents and report malformed or duplicate rules.

    Exits with code 0 if every document parsed, 2 otherwise. Duplicate
    names are reported as warnings only.
    """
    configure_logging(verbose=verbose, json_output=False)
    log = get_logger("mdcrules.cli")

    session, report = _open_session(config, rules_dir, log)
    _echo_report(report)

    summary = (
        f"{report.rules_loaded} rule(s) from {report.documents} document(s) in {report.source}"
    )
    if not report.ok:
        raise _fail(
            f"{len(report.parse_errors)} malformed document(s); loaded {summary}",
            ExitCode.LOAD_ERROR,
        )

    typer.echo(typer.style(f"✓ Loaded {summary}", fg=typer.colors.GREEN))
    if verbose:
        for rule in session.snapshot:
            typer.echo(f"  {rule.name} ({rule.priority.value})")


@app.command("list")
def list_rules(
    config: ConfigOption = None,
    rules_dir: RulesDirOption = None,
    verbose: VerboseOption = False,
) -> None:
    """List loaded rules in evaluation order (priority, then load order)."""
    configure_logging(verbose=verbose, json_output=False)
    log = get_logger("mdcrules.cli")

    session, report = _open_session(config, rules_dir, log)
    _echo_report(report)

    engine = RulesEngine(session.snapshot)
    if not engine.rules:
        typer.echo("No rules loaded.")
        return

    for rule in engine.rules:
        filters = ", ".join(f"{f.type.value}:{f.pattern}" for f in rule.filters) or "-"
        actions = ", ".join(a.type for a in rule.actions) or "-"
        typer.echo(f"{rule.priority.value:<6}  {rule.name}  [{filters}] -> {actions}")


@app.command()
def show(
    name: Annotated[str, typer.Argument(help="Rule name.")],
    config: ConfigOption = None,
    rules_dir: RulesDirOption = None,
    fmt: Annotated[
        DocumentFormat,
        typer.Option("--format", "-f", help="Output document format."),
    ] = DocumentFormat.MDC,
    verbose: VerboseOption = False,
) -> None:
    """Print a loaded rule re-serialised to document form."""
    configure_logging(verbose=verbose, json_output=False)
    log = get_logger("mdcrules.cli")

    session, _ = _open_session(config, rules_dir, log)
    rule = session.snapshot.get(name)
    if rule is None:
        raise _fail(f"No rule named '{name}'", ExitCode.LOAD_ERROR)

    typer.echo(dump_rule(rule, fmt.value), nl=False)


@app.command()
def submit(
    kind: Annotated[EventKind, typer.Argument(help="Event kind.")],
    payload: Annotated[str, typer.Argument(help="Command text, file path or event name.")],
    config: ConfigOption = None,
    rules_dir: RulesDirOption = None,
    output_dir: Annotated[
        Path | None,
        typer.Option("--output-dir", "-o", help="Output directory (overrides config)."),
    ] = None,
    apply: Annotated[
        bool,
        typer.Option("--apply", help="Execute the effects instead of only printing them."),
    ] = False,
    dry_run: Annotated[
        bool,
        typer.Option("--dry-run", help="With --apply, describe file writes without writing."),
    ] = False,
    as_json: Annotated[
        bool,
        typer.Option("--json", help="Print effects as a JSON array."),
    ] = False,
    verbose: VerboseOption = False,
) -> None:
    """Submit one event and print the resulting effect descriptions."""
    configure_logging(verbose=verbose)
    log = get_logger("mdcrules.cli")

    session, report = _open_session(config, rules_dir, log, output_dir=output_dir)
    _echo_report(report)

    outcome = session.process_event(Event(kind=kind, payload=payload))
    for error in outcome.errors:
        typer.echo(typer.style(f"  skipped: {error}", fg=typer.colors.YELLOW), err=True)

    failed = bool(outcome.errors)

    if apply:
        executor = EffectExecutor(session.output_dir, dry_run=dry_run)
        for result in executor.execute_all(outcome.effects):
            log_effect_executed(
                rule_name=result.effect.rule_name,
                effect_kind=result.effect.effect_kind.value,
                status=result.status.value,
                target=result.details.get("path"),
                error=result.message if result.is_failure else None,
            )
            failed = failed or result.is_failure
    elif as_json:
        typer.echo(json.dumps([e.model_dump(mode="json", by_alias=True) for e in outcome.effects]))
    elif not outcome.effects:
        typer.echo("No rules matched.")
    else:
        for effect in outcome.effects:
            target = f" -> {effect.target_path}" if effect.target_path else ""
            typer.echo(f"[{effect.rule_name}] {effect.effect_kind.value}{target}")
            typer.echo(effect.content)

    if failed:
        raise typer.Exit(ExitCode.PARTIAL_FAILURE)

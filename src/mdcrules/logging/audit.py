"""Structured JSON logging and audit trail functionality.

This module provides:
- structlog configuration for JSON (or console) logging to stderr
- Secret redaction for sensitive values that may appear in event payloads
- Structured log events for rule loading, matching, dispatch and execution
- Audit log decision formatting
"""

from __future__ import annotations

import logging
import re
import sys
from typing import TYPE_CHECKING, Any

import structlog

if TYPE_CHECKING:
    from collections.abc import Callable

    from structlog.typing import EventDict, WrappedLogger

    from mdcrules.actions.effects import EffectDescription
    from mdcrules.rules.schema import Event, MatchResult
    from mdcrules.rules.store import LoadReport

# Patterns for secret redaction
SECRET_PATTERNS: list[tuple[re.Pattern[str], str]] = [
    # Generic token assignments
    (re.compile(r"(token[=:]\s*['\"]?)([A-Za-z0-9_-]{20,})"), r"\1[REDACTED]"),
    # Bearer tokens in headers
    (re.compile(r"(Bearer\s+)([A-Za-z0-9._-]+)", re.IGNORECASE), r"\1[REDACTED]"),
    # Passwords passed on command lines
    (re.compile(r"(--?password[= ]\s*)(\S+)", re.IGNORECASE), r"\1[REDACTED]"),
    # Secret environment assignments prefixed to commands (DB_PASSWORD=... make)
    (
        re.compile(
            r"\b([A-Za-z0-9_]*(?:SECRET|PASSWORD|PASSWD|API_?KEY|TOKEN)[A-Za-z0-9_]*=)(\S+)",
            re.IGNORECASE,
        ),
        r"\1[REDACTED]",
    ),
]

# Longest payload/content excerpt written to the audit log
PREVIEW_LENGTH = 100


def redact_secrets(value: Any) -> Any:
    """Redact sensitive values from a string, dict, or list.

    Args:
        value: Value to redact. Can be str, dict, list, or other.

    Returns:
        Value with sensitive data redacted
    """
    if isinstance(value, str):
        result = value
        for pattern, replacement in SECRET_PATTERNS:
            result = pattern.sub(replacement, result)
        return result

    if isinstance(value, dict):
        return {k: redact_secrets(v) for k, v in value.items()}

    if isinstance(value, list):
        return [redact_secrets(item) for item in value]

    return value


def _redact_processor(
    _logger: WrappedLogger,
    _method_name: str,
    event_dict: EventDict,
) -> EventDict:
    """structlog processor that redacts secrets from log events."""
    return redact_secrets(event_dict)


def _preview(text: str) -> str:
    if len(text) <= PREVIEW_LENGTH:
        return text
    return text[: PREVIEW_LENGTH - 3] + "..."


def configure_logging(
    verbose: bool = False,
    json_output: bool = True,
) -> None:
    """Configure structured logging for the application.

    Sets up structlog with JSON formatting to stderr, including:
    - Timestamp in ISO format
    - Log level
    - Secret redaction
    - Exception formatting

    Args:
        verbose: If True, enable DEBUG level. Otherwise INFO.
        json_output: If True, output JSON. Otherwise use console format.
    """
    level = logging.DEBUG if verbose else logging.INFO

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stderr,
        level=level,
    )

    processors: list[Callable[..., Any]] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        _redact_processor,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]

    if json_output:
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=False))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Get a configured structlog logger.

    Args:
        name: Optional logger name (typically __name__)

    Returns:
        Bound structlog logger
    """
    return structlog.get_logger(name)


def log_load_report(report: LoadReport) -> None:
    """Log the outcome of loading a rule directory.

    Parse errors and duplicates are logged as warnings so they are never
    silently dropped.
    """
    log = get_logger("mdcrules.store")

    for error in report.errors:
        log.warning(
            "rule_load_problem",
            kind=type(error).__name__,
            path=str(error.path) if error.path else None,
            error=str(error),
        )

    log.info(
        "rules_loaded",
        source=str(report.source) if report.source else None,
        documents=report.documents,
        rules_loaded=report.rules_loaded,
        parse_errors=len(report.parse_errors),
        duplicates=len(report.duplicates),
    )


def log_event_received(event: Event) -> None:
    """Log when an event is submitted."""
    log = get_logger("mdcrules.events")
    log.debug(
        "event_received",
        event_id=event.id,
        event_kind=event.kind.value,
        payload=_preview(event.payload),
    )


def log_rule_matched(match: MatchResult) -> None:
    """Log a fired action of a matching rule."""
    log = get_logger("mdcrules.rules")
    log.debug(
        "rule_matched",
        event_id=match.event.id,
        rule_name=match.rule.name,
        priority=match.rule.priority.value,
        action_index=match.action_index,
        action_type=match.action.type,
        match_reason=match.match_reason,
    )


def log_effect_dispatched(event_id: str, effect: EffectDescription) -> None:
    """Log an effect description produced by the dispatcher."""
    log = get_logger("mdcrules.actions")
    log.debug(
        "effect_dispatched",
        event_id=event_id,
        rule_name=effect.rule_name,
        effect_kind=effect.effect_kind.value,
        target_path=effect.target_path,
        content_preview=_preview(effect.content),
    )


def log_dispatch_error(event_id: str, rule_name: str | None, error: str) -> None:
    """Log an action that was skipped because it could not be dispatched."""
    log = get_logger("mdcrules.actions")
    log.warning(
        "dispatch_skipped",
        event_id=event_id,
        rule_name=rule_name,
        error=error,
    )


def log_decision(
    event_id: str,
    event_kind: str,
    payload: str,
    rules_matched: list[str],
    effects: list[dict[str, Any]],
    errors: list[str],
) -> None:
    """Log the full decision trail for an event.

    Args:
        event_id: Event identifier
        event_kind: Kind of event
        payload: Event payload (truncated in the log)
        rules_matched: Names of the rules that fired, in dispatch order
        effects: Effect summaries (kind, rule, target)
        errors: Dispatch errors for skipped actions
    """
    log = get_logger("mdcrules.audit")
    log.info(
        "decision",
        event_id=event_id,
        event_kind=event_kind,
        payload=_preview(payload),
        rules_matched=rules_matched,
        effects=effects,
        effects_count=len(effects),
        errors=errors,
    )


def log_effect_executed(
    rule_name: str,
    effect_kind: str,
    status: str,
    target: str | None = None,
    error: str | None = None,
) -> None:
    """Log when an executor performs an effect."""
    log = get_logger("mdcrules.executor")

    log_func = log.info if status in ("success", "dry_run") else log.warning

    log_func(
        "effect_executed",
        rule_name=rule_name,
        effect_kind=effect_kind,
        status=status,
        target=target,
        error=error,
    )

"""Logging module for mdcrules.

This module provides structured JSON logging with:
- structlog configuration for consistent log formatting
- Secret redaction for tokens that may appear in event payloads
- Audit logging for decision trails

Usage:
    from mdcrules.logging import configure_logging, log_decision

    configure_logging(verbose=True)
    log_decision(event_id, event_kind, payload, rules_matched, effects, errors)
"""

from mdcrules.logging.audit import (
    configure_logging,
    get_logger,
    log_decision,
    log_dispatch_error,
    log_effect_dispatched,
    log_effect_executed,
    log_event_received,
    log_load_report,
    log_rule_matched,
    redact_secrets,
)

__all__ = [
    "configure_logging",
    "get_logger",
    "log_decision",
    "log_dispatch_error",
    "log_effect_dispatched",
    "log_effect_executed",
    "log_event_received",
    "log_load_report",
    "log_rule_matched",
    "redact_secrets",
]

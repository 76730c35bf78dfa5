"""Rule documents, loading and event matching."""

from mdcrules.rules.engine import RulesEngine, match_event
from mdcrules.rules.models import (
    Action,
    Condition,
    EffectKind,
    EventKind,
    Filter,
    FilterKind,
    Priority,
    ReactAction,
    Rule,
    RuleMetadata,
    SuggestAction,
)
from mdcrules.rules.patterns import PatternMatch, is_regex, search
from mdcrules.rules.schema import Captures, Event, MatchResult
from mdcrules.rules.store import (
    DuplicateRuleError,
    LoadReport,
    ParseError,
    RuleLoadError,
    RuleSnapshot,
    RuleSourceError,
    RuleStore,
    dump_rule,
    parse_document,
    parse_document_text,
)

__all__ = [
    "Action",
    "Captures",
    "Condition",
    "DuplicateRuleError",
    "EffectKind",
    "Event",
    "EventKind",
    "Filter",
    "FilterKind",
    "LoadReport",
    "MatchResult",
    "ParseError",
    "PatternMatch",
    "Priority",
    "ReactAction",
    "Rule",
    "RuleLoadError",
    "RuleMetadata",
    "RuleSnapshot",
    "RuleSourceError",
    "RuleStore",
    "RulesEngine",
    "SuggestAction",
    "dump_rule",
    "is_regex",
    "match_event",
    "parse_document",
    "parse_document_text",
    "search",
]

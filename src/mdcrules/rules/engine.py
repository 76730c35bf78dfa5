"""Rule evaluation engine.

This module provides the RulesEngine class for matching events against a
rule snapshot. It handles:
- Filter kind / event kind agreement
- Pattern matching via the pattern dialect (any filter triggers the rule)
- Per-action react conditions (all must match)
- Priority ordering (high > medium > low, then load order)

Matching is a pure function of (snapshot, event): the engine never
mutates rules and keeps no per-event state.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from mdcrules.rules.models import ReactAction
from mdcrules.rules.patterns import search
from mdcrules.rules.schema import Captures, MatchResult

if TYPE_CHECKING:
    from collections.abc import Iterable

    from mdcrules.rules.models import Action, Rule
    from mdcrules.rules.schema import Event

logger = logging.getLogger(__name__)


class RulesEngine:
    """Engine for matching events against rules.

    All matching rules fire; results are ordered by descending rule
    priority, ties broken by load order, then by action order within
    a rule.
    """

    def __init__(
        self,
        rules: Iterable[Rule],
        *,
        case_sensitive: bool = True,
    ) -> None:
        """Initialize rules engine.

        Args:
            rules: Rules in load order (a RuleSnapshot works too).
            case_sensitive: Whether patterns match case-sensitively.
        """
        indexed = list(enumerate(rules))
        indexed.sort(key=lambda item: (-item[1].priority.rank, item[0]))
        self._rules = [rule for _, rule in indexed]
        self._case_sensitive = case_sensitive

    @property
    def rules(self) -> list[Rule]:
        """Rules in evaluation order."""
        return list(self._rules)

    def match(self, event: Event) -> list[MatchResult]:
        """Match an event against all rules.

        Args:
            event: Event to match.

        Returns:
            One MatchResult per fired action, in dispatch order. Empty when
            nothing matches.
        """
        results: list[MatchResult] = []

        for rule in self._rules:
            try:
                results.extend(self._match_rule(event, rule))
            except Exception as e:
                logger.warning(
                    "Error evaluating rule '%s' for event '%s': %s",
                    rule.name,
                    event.id,
                    e,
                )

        return results

    def _match_rule(self, event: Event, rule: Rule) -> list[MatchResult]:
        captures, reason = self._evaluate_filters(event, rule)
        if captures is None:
            logger.debug(
                "Rule '%s' did not match event '%s': %s",
                rule.name,
                event.id,
                reason,
            )
            return []

        logger.debug("Rule '%s' matched event '%s': %s", rule.name, event.id, reason)

        results: list[MatchResult] = []
        for index, action in enumerate(rule.actions):
            fired, extra_named, action_reason = self._evaluate_action(event, action)
            if not fired:
                logger.debug(
                    "Action %d of rule '%s' held back: %s",
                    index,
                    rule.name,
                    action_reason,
                )
                continue

            results.append(
                MatchResult(
                    event=event,
                    rule=rule,
                    action=action,
                    action_index=index,
                    captures=captures.merged_with(extra_named),
                    match_reason=reason,
                )
            )

        return results

    def _evaluate_filters(
        self,
        event: Event,
        rule: Rule,
    ) -> tuple[Captures | None, str]:
        """Find the first filter of a rule that matches the event.

        Returns:
            Tuple of (captures or None, reason).
        """
        if not rule.filters:
            return None, "Rule has no filters"

        for index, rule_filter in enumerate(rule.filters):
            if rule_filter.type.event_kind != event.kind:
                continue

            found = search(
                rule_filter.pattern,
                event.payload,
                case_sensitive=self._case_sensitive,
            )
            if found is not None:
                reason = (
                    f"Filter {index} ({rule_filter.type.value}) "
                    f"pattern '{rule_filter.pattern}' matched '{found.text}'"
                )
                return Captures.from_pattern_match(found), reason

        return None, f"No {event.kind.value} filter matched '{event.payload}'"

    def _evaluate_action(
        self,
        event: Event,
        action: Action,
    ) -> tuple[bool, dict[str, str | None], str]:
        """Check a react action's conditions against the event payload.

        Returns:
            Tuple of (fires, named groups captured by conditions, reason).
        """
        if not isinstance(action, ReactAction) or not action.conditions:
            return True, {}, "Unconditional"

        named: dict[str, str | None] = {}
        for condition in action.conditions:
            found = search(
                condition.pattern,
                event.payload,
                case_sensitive=self._case_sensitive,
            )
            if found is None:
                return False, {}, f"Condition '{condition.pattern}' not met"
            named.update(found.named)

        return True, named, "All conditions met"


def match_event(
    event: Event,
    rules: Iterable[Rule],
    *,
    case_sensitive: bool = True,
) -> list[MatchResult]:
    """Match an event against a collection of rules.

    This is a convenience function that creates a RulesEngine and matches.

    Args:
        event: Event to match.
        rules: Rules in load order.
        case_sensitive: Whether patterns match case-sensitively.

    Returns:
        MatchResults in dispatch order.
    """
    return RulesEngine(rules, case_sensitive=case_sensitive).match(event)

"""Action dispatcher turning matches into effect descriptions.

This module provides the ActionDispatcher class which:
- Emits suggest messages verbatim
- Renders react templates and targets with captured groups ({{ 1 }}, {{ name }})
- Isolates failures: an action whose template cannot be bound is skipped
  and reported, the remaining matches are still dispatched

The dispatcher performs no I/O. Executing the returned descriptions is the
job of a caller-supplied executor (see ``mdcrules.actions.executor``).
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from mdcrules.actions.effects import EffectDescription
from mdcrules.rules.models import EffectKind, ReactAction, SuggestAction

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping
    from pathlib import Path

    from mdcrules.rules.schema import MatchResult

logger = logging.getLogger(__name__)

PLACEHOLDER_PATTERN = re.compile(r"\{\{\s*([A-Za-z0-9_.]+)\s*\}\}")


class DispatchError(Exception):
    """Raised when a matched action cannot be turned into an effect."""

    def __init__(self, message: str, rule_name: str | None = None) -> None:
        self.rule_name = rule_name
        super().__init__(message)


class TemplateBindingError(DispatchError):
    """Raised when a template references a capture group or variable that does not exist."""

    def __init__(
        self,
        placeholder: str,
        rule_name: str | None = None,
        available: Iterable[str] = (),
    ) -> None:
        self.placeholder = placeholder
        self.available = sorted(available)
        message = f"template references unknown binding '{{{{ {placeholder} }}}}'"
        if rule_name:
            message = f"rule '{rule_name}': {message}"
        super().__init__(message, rule_name)


@dataclass
class DispatchResult:
    """Effects produced for one event, plus the actions that were skipped."""

    effects: list[EffectDescription] = field(default_factory=list)
    errors: list[DispatchError] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors


def build_bindings(
    match: MatchResult,
    *,
    output_dir: Path | None = None,
) -> dict[str, str]:
    """Build the template variables available to a react action.

    Variables:
        0, 1, 2, ...: full match and positional capture groups
        <name>: named capture groups
        event.kind, event.payload, event.id, rule.name, rule.priority
        output_dir: session output directory (when known)

    Groups that did not participate in the match bind to an empty string.
    """
    event = match.event
    rule = match.rule

    bindings = {
        "event.kind": event.kind.value,
        "event.payload": event.payload,
        "event.id": event.id,
        "rule.name": rule.name,
        "rule.priority": rule.priority.value,
    }
    if output_dir is not None:
        bindings["output_dir"] = str(output_dir)

    captures = match.captures
    bindings["0"] = captures.text
    for index, value in enumerate(captures.groups, start=1):
        bindings[str(index)] = value or ""
    for name, value in captures.named.items():
        bindings[name] = value or ""

    return bindings


def render_template(
    template: str,
    bindings: Mapping[str, str],
    *,
    rule_name: str | None = None,
) -> str:
    """Substitute {{ placeholder }} references in a template.

    Args:
        template: Template text.
        bindings: Variable values.
        rule_name: Rule name for error reporting.

    Returns:
        Rendered text.

    Raises:
        TemplateBindingError: If a placeholder has no binding.
    """

    def replace_match(found: re.Match[str]) -> str:
        key = found.group(1)
        try:
            return bindings[key]
        except KeyError:
            raise TemplateBindingError(key, rule_name, bindings.keys()) from None

    return PLACEHOLDER_PATTERN.sub(replace_match, template)


class ActionDispatcher:
    """Dispatcher producing effect descriptions for matched actions."""

    def __init__(self, *, output_dir: Path | None = None) -> None:
        """Initialize action dispatcher.

        Args:
            output_dir: Output directory exposed to templates as {{ output_dir }}.
        """
        self._output_dir = output_dir

    def dispatch(self, match: MatchResult) -> EffectDescription:
        """Turn one match into an effect description.

        Args:
            match: Fired action of a matching rule.

        Returns:
            EffectDescription for an executor to perform.

        Raises:
            TemplateBindingError: If a react template cannot be bound.
        """
        action = match.action
        rule = match.rule

        if isinstance(action, SuggestAction):
            return EffectDescription(
                effect_kind=EffectKind.MESSAGE,
                content=action.message,
                rule_name=rule.name,
                action_index=match.action_index,
                priority=rule.priority,
            )

        if isinstance(action, ReactAction):
            bindings = build_bindings(match, output_dir=self._output_dir)
            content = render_template(action.template, bindings, rule_name=rule.name)
            target = (
                render_template(action.target, bindings, rule_name=rule.name)
                if action.target
                else None
            )
            return EffectDescription(
                effect_kind=action.effect_kind,
                content=content,
                target_path=target,
                rule_name=rule.name,
                action_index=match.action_index,
                priority=rule.priority,
            )

        msg = f"unsupported action type: {type(action).__name__}"
        raise DispatchError(msg, rule.name)

    def dispatch_all(self, matches: Iterable[MatchResult]) -> DispatchResult:
        """Dispatch matches in order with failure isolation.

        Each match is processed independently. If one action fails, it is
        reported in the result and the remaining matches are still dispatched.

        Args:
            matches: Matches in priority order.

        Returns:
            DispatchResult with effects in the same order as the matches.
        """
        result = DispatchResult()

        for match in matches:
            try:
                result.effects.append(self.dispatch(match))
            except DispatchError as e:
                logger.warning(
                    "Skipping action %d of rule '%s': %s",
                    match.action_index,
                    match.rule.name,
                    e,
                )
                result.errors.append(e)
            except Exception as e:
                logger.exception(
                    "Unhandled error dispatching action %d of rule '%s'",
                    match.action_index,
                    match.rule.name,
                )
                result.errors.append(DispatchError(f"Unhandled error: {e}", match.rule.name))

        return result


def dispatch_matches(
    matches: Iterable[MatchResult],
    *,
    output_dir: Path | None = None,
) -> DispatchResult:
    """Dispatch matches with a fresh dispatcher.

    Args:
        matches: Matches in priority order.
        output_dir: Output directory exposed to templates.

    Returns:
        DispatchResult.
    """
    return ActionDispatcher(output_dir=output_dir).dispatch_all(matches)

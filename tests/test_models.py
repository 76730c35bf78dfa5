"""Tests for rule document models."""

from __future__ import annotations

from typing import Any

import pytest
from pydantic import ValidationError

from mdcrules.rules.models import (
    Condition,
    EffectKind,
    EventKind,
    FilterKind,
    Priority,
    ReactAction,
    Rule,
    SuggestAction,
)


class TestFilterKind:
    def test_event_filter_listens_to_lifecycle_events(self) -> None:
        assert FilterKind.EVENT.event_kind is EventKind.LIFECYCLE

    def test_command_and_file_change_map_to_themselves(self) -> None:
        assert FilterKind.COMMAND.event_kind is EventKind.COMMAND
        assert FilterKind.FILE_CHANGE.event_kind is EventKind.FILE_CHANGE


class TestPriority:
    def test_ranks_are_ordered(self) -> None:
        assert Priority.HIGH.rank > Priority.MEDIUM.rank > Priority.LOW.rank


class TestRule:
    def test_valid_rule(self, onboard_rule: dict[str, Any]) -> None:
        rule = Rule.model_validate(onboard_rule)

        assert rule.name == "onboard"
        assert rule.filters[0].type is FilterKind.COMMAND
        assert isinstance(rule.actions[0], SuggestAction)
        assert rule.priority is Priority.MEDIUM

    def test_missing_name_is_rejected(self, onboard_rule: dict[str, Any]) -> None:
        del onboard_rule["name"]

        with pytest.raises(ValidationError):
            Rule.model_validate(onboard_rule)

    def test_blank_name_is_rejected(self, onboard_rule: dict[str, Any]) -> None:
        onboard_rule["name"] = "   "

        with pytest.raises(ValidationError):
            Rule.model_validate(onboard_rule)

    def test_unknown_filter_kind_is_rejected(self, onboard_rule: dict[str, Any]) -> None:
        onboard_rule["filters"] = [{"type": "keystroke", "pattern": "x"}]

        with pytest.raises(ValidationError):
            Rule.model_validate(onboard_rule)

    def test_unknown_action_type_is_rejected(self, onboard_rule: dict[str, Any]) -> None:
        onboard_rule["actions"] = [{"type": "execute", "command": "rm -rf /"}]

        with pytest.raises(ValidationError):
            Rule.model_validate(onboard_rule)

    def test_invalid_regex_is_rejected(self, onboard_rule: dict[str, Any]) -> None:
        onboard_rule["filters"] = [{"type": "command", "pattern": "refactor:(.*"}]

        with pytest.raises(ValidationError):
            Rule.model_validate(onboard_rule)

    def test_empty_pattern_is_allowed(self, onboard_rule: dict[str, Any]) -> None:
        onboard_rule["filters"] = [{"type": "command", "pattern": ""}]

        rule = Rule.model_validate(onboard_rule)

        assert rule.filters[0].pattern == ""

    def test_numeric_version_is_coerced(self, onboard_rule: dict[str, Any]) -> None:
        onboard_rule["metadata"] = {"priority": "high", "version": 1.0}

        rule = Rule.model_validate(onboard_rule)

        assert rule.metadata.version == "1.0"

    def test_rule_is_immutable(self, onboard_rule: dict[str, Any]) -> None:
        rule = Rule.model_validate(onboard_rule)

        with pytest.raises(ValidationError):
            rule.name = "other"  # type: ignore[misc]

    def test_to_document_omits_body_and_source(self, onboard_rule: dict[str, Any]) -> None:
        rule = Rule.model_validate({**onboard_rule, "body": "# Doc", "source": "a.mdc"})

        document = rule.to_document()

        assert "body" not in document
        assert "source" not in document
        assert document["filters"] == [{"type": "command", "pattern": "onboard project"}]


class TestReactAction:
    def test_condition_shorthand(self) -> None:
        action = ReactAction.model_validate(
            {"type": "react", "conditions": ["Tests/", {"pattern": r"\.swift$"}], "template": "x"}
        )

        assert action.conditions == (Condition(pattern="Tests/"), Condition(pattern=r"\.swift$"))

    def test_target_implies_file_write(self) -> None:
        action = ReactAction(template="x", target="out.md")

        assert action.effect_kind is EffectKind.FILE_WRITE

    def test_no_target_implies_other(self) -> None:
        action = ReactAction(template="draw diagram")

        assert action.effect_kind is EffectKind.OTHER

    def test_explicit_effect_wins(self) -> None:
        action = ReactAction(template="x", target="diagram.svg", effect=EffectKind.OTHER)

        assert action.effect_kind is EffectKind.OTHER

    def test_file_write_requires_target(self) -> None:
        with pytest.raises(ValidationError, match="requires a 'target'"):
            ReactAction(template="x", effect=EffectKind.FILE_WRITE)

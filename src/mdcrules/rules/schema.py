"""Event and rule matching result models."""

from __future__ import annotations

from datetime import UTC, datetime
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field

from mdcrules.rules.models import Action, EventKind, Rule
from mdcrules.rules.patterns import PatternMatch


class Event(BaseModel):
    """Unit of input to the engine: a command, a file change or a lifecycle signal."""

    model_config = ConfigDict(frozen=True)

    kind: EventKind = Field(..., description="What kind of occurrence this is")
    payload: str = Field(..., description="Command text, changed file path or event name")
    id: str = Field(default_factory=lambda: uuid4().hex[:12], description="Event identifier")
    received_at: datetime = Field(
        default_factory=lambda: datetime.now(UTC),
        description="When the event was submitted",
    )


class Captures(BaseModel):
    """Capture groups produced by the filter (and conditions) that matched."""

    model_config = ConfigDict(frozen=True)

    text: str = Field(default="", description="Full matched text (group 0)")
    groups: tuple[str | None, ...] = Field(default=(), description="Positional groups 1..n")
    named: dict[str, str | None] = Field(default_factory=dict, description="Named groups")

    @classmethod
    def from_pattern_match(cls, match: PatternMatch) -> Captures:
        return cls(text=match.text, groups=match.groups, named=dict(match.named))

    def merged_with(self, named: dict[str, str | None]) -> Captures:
        """Return a copy with extra named groups (existing names take precedence)."""
        if not named:
            return self
        return self.model_copy(update={"named": {**named, **self.named}})


class MatchResult(BaseModel):
    """One fired action of one matching rule."""

    model_config = ConfigDict(frozen=True)

    event: Event = Field(..., description="The event that matched")
    rule: Rule = Field(..., description="The rule that matched")
    action: Action = Field(..., description="The action that fires")
    action_index: int = Field(..., ge=0, description="Position of the action within the rule")
    captures: Captures = Field(default_factory=Captures, description="Captured groups")
    match_reason: str = Field(default="", description="Why the rule matched")

    @property
    def match_key(self) -> str:
        """Unique key for this match (event id, rule name and action index)."""
        return f"{self.event.id}:{self.rule.name}:{self.action_index}"

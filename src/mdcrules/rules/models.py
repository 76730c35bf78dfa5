"""Pydantic models for rule documents.

This module defines the rule document data model:
- Rule: A named unit pairing trigger filters with actions
- Filter: A pattern gating whether a rule considers an event
- Action types: SuggestAction, ReactAction (discriminated on ``type``)
- Condition: An extra pattern a react action requires
- RuleMetadata: Priority and informational version
"""

from __future__ import annotations

from enum import Enum
from typing import Annotated, Any, Literal

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)

from mdcrules.rules.patterns import validate_pattern


class EventKind(str, Enum):
    """Kind of event submitted to the engine."""

    COMMAND = "command"
    FILE_CHANGE = "file_change"
    LIFECYCLE = "lifecycle"


class FilterKind(str, Enum):
    """Kind of event a filter listens to."""

    COMMAND = "command"
    FILE_CHANGE = "file_change"
    EVENT = "event"

    @property
    def event_kind(self) -> EventKind:
        """The event kind this filter kind applies to."""
        if self is FilterKind.EVENT:
            return EventKind.LIFECYCLE
        return EventKind(self.value)


class EffectKind(str, Enum):
    """Kind of side effect an effect description asks an executor to perform."""

    MESSAGE = "message"
    FILE_WRITE = "file_write"
    OTHER = "other"


class Priority(str, Enum):
    """Rule priority; higher priorities are matched and dispatched first."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

    @property
    def rank(self) -> int:
        """Numeric rank (higher sorts first)."""
        return _PRIORITY_RANKS[self]


_PRIORITY_RANKS = {Priority.LOW: 0, Priority.MEDIUM: 1, Priority.HIGH: 2}


class Filter(BaseModel):
    """Trigger filter.

    Attributes:
        type: Which event kind the filter listens to
        pattern: Substring or regular expression matched against the payload
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    type: FilterKind
    pattern: str

    @field_validator("pattern")
    @classmethod
    def check_pattern(cls, v: str) -> str:
        """Ensure regex patterns compile at load time."""
        return validate_pattern(v)


class Condition(BaseModel):
    """Extra pattern a react action requires on the event payload.

    A bare string is accepted as shorthand for ``{pattern: ...}``.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    pattern: str

    @model_validator(mode="before")
    @classmethod
    def coerce_shorthand(cls, data: Any) -> Any:
        if isinstance(data, str):
            return {"pattern": data}
        return data

    @field_validator("pattern")
    @classmethod
    def check_pattern(cls, v: str) -> str:
        return validate_pattern(v)


class SuggestAction(BaseModel):
    """Action that emits a message verbatim once its rule matches.

    Attributes:
        type: Always 'suggest'
        message: Message text (may contain markdown)
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    type: Literal["suggest"] = "suggest"
    message: Annotated[str, Field(min_length=1)]


class ReactAction(BaseModel):
    """Action that renders a template into an effect description.

    Attributes:
        type: Always 'react'
        conditions: Extra patterns that must all match the payload
        template: Effect content with {{ placeholder }} references
        target: Optional templated target path
        effect: Effect kind (default: file_write with a target, other without)
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    type: Literal["react"] = "react"
    conditions: tuple[Condition, ...] = ()
    template: str
    target: str | None = None
    effect: EffectKind | None = None

    @model_validator(mode="after")
    def validate_file_write_target(self) -> ReactAction:
        """A file_write effect needs somewhere to write."""
        if self.effect == EffectKind.FILE_WRITE and not self.target:
            msg = "react action with effect 'file_write' requires a 'target'"
            raise ValueError(msg)
        return self

    @property
    def effect_kind(self) -> EffectKind:
        """Resolved effect kind."""
        if self.effect is not None:
            return self.effect
        return EffectKind.FILE_WRITE if self.target else EffectKind.OTHER


Action = Annotated[SuggestAction | ReactAction, Field(discriminator="type")]


class RuleMetadata(BaseModel):
    """Rule metadata.

    Attributes:
        priority: low, medium or high (default: medium)
        version: Informational version string
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    priority: Priority = Priority.MEDIUM
    version: str | None = None

    @field_validator("version", mode="before")
    @classmethod
    def coerce_version(cls, v: Any) -> Any:
        # YAML reads `version: 1.0` as a float
        if isinstance(v, int | float) and not isinstance(v, bool):
            return str(v)
        return v


class Rule(BaseModel):
    """A rule loaded from a document.

    Attributes:
        name: Unique rule name
        description: Optional one-line description
        filters: Ordered trigger filters (any one matching triggers the rule)
        actions: Ordered actions, each evaluated independently
        metadata: Priority and version
        body: Markdown body of an .mdc document
        source: Path of the document the rule was loaded from
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    name: Annotated[str, Field(min_length=1, max_length=200)]
    description: str | None = None
    filters: tuple[Filter, ...] = ()
    actions: tuple[Action, ...] = ()
    metadata: RuleMetadata = Field(default_factory=RuleMetadata)
    body: str = ""
    source: str | None = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        """Strip surrounding whitespace and reject blank names."""
        v = v.strip()
        if not v:
            msg = "rule name must not be blank"
            raise ValueError(msg)
        return v

    @property
    def priority(self) -> Priority:
        return self.metadata.priority

    def to_document(self) -> dict[str, Any]:
        """Return the rule as a plain document mapping (front matter fields).

        ``body`` and ``source`` are not part of the mapping; ``dump_rule``
        writes the body after the front matter.
        """
        return self.model_dump(
            mode="json",
            exclude={"body", "source"},
            exclude_none=True,
        )

"""Pydantic schema models for engine configuration.

This module defines the configuration models:
- Config: Top-level configuration container
- RulesConfig: Where rule documents live and how they are loaded and matched
- SessionConfig: Output directory and diagnostic history settings
"""

from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from mdcrules.paths import get_default_output_dir, get_default_rules_dir

DEFAULT_INCLUDE = ["*.mdc", "*.yaml", "*.yml"]


class DuplicatePolicy(str, Enum):
    """What the rule store does when two documents define the same rule name."""

    LAST_WINS = "last_wins"
    FIRST_WINS = "first_wins"


class RulesConfig(BaseModel):
    """Rule document loading and matching configuration.

    Attributes:
        directory: Rule document directory (default: ./.cursor/rules or XDG config)
        include: Glob patterns selecting rule documents
        recursive: Whether to descend into subdirectories
        duplicate_policy: Which definition wins on a duplicate rule name
        case_sensitive: Whether patterns match case-sensitively
    """

    model_config = ConfigDict(extra="forbid")

    directory: str | None = None
    include: Annotated[list[str], Field(min_length=1)] = Field(
        default_factory=lambda: list(DEFAULT_INCLUDE)
    )
    recursive: bool = True
    duplicate_policy: DuplicatePolicy = DuplicatePolicy.LAST_WINS
    case_sensitive: bool = True

    @field_validator("include")
    @classmethod
    def validate_include(cls, v: list[str]) -> list[str]:
        """Reject empty glob patterns."""
        if any(not pattern.strip() for pattern in v):
            msg = "include patterns must be non-empty globs like '*.mdc'"
            raise ValueError(msg)
        return v

    def get_directory(self) -> Path:
        """Get the rules directory path, expanding ~ if needed."""
        if self.directory:
            return Path(self.directory).expanduser()
        return get_default_rules_dir()


class SessionConfig(BaseModel):
    """Session context configuration.

    Attributes:
        output_dir: Directory effect executors resolve relative targets against
        history_size: How many triggered rule names to remember (1-1000, default: 20)
    """

    model_config = ConfigDict(extra="forbid")

    output_dir: str | None = None
    history_size: Annotated[int, Field(ge=1, le=1000)] = 20

    def get_output_dir(self) -> Path:
        """Get the output directory path, expanding ~ if needed."""
        if self.output_dir:
            return Path(self.output_dir).expanduser()
        return get_default_output_dir()


class Config(BaseModel):
    """Top-level configuration loaded from YAML.

    Attributes:
        version: Schema version (must be 1)
        rules: Rule loading and matching settings
        session: Session context settings
    """

    model_config = ConfigDict(extra="forbid")

    version: Literal[1] = 1
    rules: RulesConfig = Field(default_factory=RulesConfig)
    session: SessionConfig = Field(default_factory=SessionConfig)

"""Pattern dialect used by filters and react conditions.

A pattern is either:
- a plain substring, when it contains no regular-expression metacharacters
  (``onboard project``), or
- a regular expression applied with ``re.search`` otherwise
  (``Code.refactor:(.*)``, ``build|test``).

Matching is case-sensitive unless requested otherwise. An empty pattern
never matches anything.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from functools import lru_cache

REGEX_METACHARACTERS = frozenset(".^$*+?{}[]\\|()")


@dataclass(frozen=True)
class PatternMatch:
    """Result of a successful pattern search.

    Attributes:
        text: The matched portion of the input (group 0).
        groups: Positional capture groups; None for groups that did not participate.
        named: Named capture groups.
    """

    text: str
    groups: tuple[str | None, ...] = ()
    named: dict[str, str | None] = field(default_factory=dict)


def is_regex(pattern: str) -> bool:
    """Check whether a pattern is treated as a regular expression."""
    return any(ch in REGEX_METACHARACTERS for ch in pattern)


def validate_pattern(pattern: str) -> str:
    """Validate that a pattern compiles.

    Args:
        pattern: Pattern string.

    Returns:
        The pattern unchanged.

    Raises:
        ValueError: If the pattern is a regular expression that does not compile.
    """
    if is_regex(pattern):
        try:
            re.compile(pattern)
        except re.error as e:
            msg = f"invalid regular expression {pattern!r}: {e}"
            raise ValueError(msg) from e
    return pattern


@lru_cache(maxsize=1024)
def compile_pattern(pattern: str, *, case_sensitive: bool = True) -> re.Pattern[str] | None:
    """Compile a pattern for searching.

    Returns None for a case-sensitive substring, which is searched with
    ``str.find``. Case-insensitive substrings compile to an escaped regex so
    the match offsets refer to the original text.
    """
    if case_sensitive:
        return re.compile(pattern) if is_regex(pattern) else None
    source = pattern if is_regex(pattern) else re.escape(pattern)
    return re.compile(source, re.IGNORECASE)


def search(pattern: str, text: str, *, case_sensitive: bool = True) -> PatternMatch | None:
    """Search ``text`` for ``pattern`` using the pattern dialect.

    Args:
        pattern: Substring or regular expression.
        text: Event payload to search.
        case_sensitive: Whether the search is case-sensitive.

    Returns:
        PatternMatch on success, None otherwise.
    """
    if not pattern:
        return None

    compiled = compile_pattern(pattern, case_sensitive=case_sensitive)
    if compiled is None:
        start = text.find(pattern)
        if start < 0:
            return None
        return PatternMatch(text=pattern)

    match = compiled.search(text)
    if match is None:
        return None
    if not is_regex(pattern):
        return PatternMatch(text=match.group(0))
    return PatternMatch(text=match.group(0), groups=match.groups(), named=match.groupdict())

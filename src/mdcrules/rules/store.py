"""Rule document loading.

This module provides the RuleStore, which reads a directory of rule
documents into an immutable RuleSnapshot. It handles:
- .mdc/.md documents (YAML front matter + markdown body)
- .yaml/.yml documents (a single rule, or a mapping with a ``rules`` list)
- Malformed documents (skipped and reported, never fatal to the load)
- Duplicate rule names (reported; last_wins or first_wins policy)
- Serialising a rule back to document form (``dump_rule``)
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from datetime import UTC, datetime
from pathlib import Path
from typing import TYPE_CHECKING, Any, Literal

import yaml
from pydantic import ValidationError

from mdcrules.config.loader import format_validation_errors
from mdcrules.config.schema import DEFAULT_INCLUDE, DuplicatePolicy
from mdcrules.rules.models import Rule

if TYPE_CHECKING:
    from collections.abc import Iterator

    from mdcrules.config.schema import RulesConfig

logger = logging.getLogger(__name__)

FRONT_MATTER_SUFFIXES = frozenset({".mdc", ".md"})

FRONT_MATTER_PATTERN = re.compile(
    r"\A---[ \t]*\r?\n(?P<meta>.*?)^---[ \t]*(?:\r?\n|\Z)(?P<body>.*)\Z",
    re.DOTALL | re.MULTILINE,
)


class RuleLoadError(Exception):
    """Base class for problems found while loading rule documents."""

    def __init__(self, message: str, path: Path | None = None) -> None:
        self.path = path
        super().__init__(message)

    def __str__(self) -> str:
        message = super().__str__()
        if self.path is not None:
            return f"{self.path}: {message}"
        return message


class ParseError(RuleLoadError):
    """Raised when a rule document is malformed. The document is skipped."""


class DuplicateRuleError(RuleLoadError):
    """Reported when two documents define the same rule name."""

    def __init__(
        self,
        name: str,
        path: Path | None = None,
        previous: str | None = None,
        *,
        kept: Literal["first", "last"] = "last",
    ) -> None:
        self.name = name
        self.previous = previous
        self.kept = kept
        message = f"duplicate rule name '{name}'"
        if previous:
            message += f" (previously defined in {previous})"
        message += f"; keeping the {kept} definition"
        super().__init__(message, path)


class RuleSourceError(RuleLoadError):
    """Raised when the rule directory itself cannot be read."""


@dataclass(frozen=True)
class LoadReport:
    """Outcome of loading a rule directory.

    Attributes:
        source: Directory the rules were read from.
        documents: Number of documents read.
        rules_loaded: Number of rules in the resulting snapshot.
        errors: Parse errors and duplicate warnings, in discovery order, or the
            RuleSourceError of a failed first-use load.
    """

    source: Path | None = None
    documents: int = 0
    rules_loaded: int = 0
    errors: tuple[RuleLoadError, ...] = ()

    @property
    def parse_errors(self) -> list[ParseError]:
        return [e for e in self.errors if isinstance(e, ParseError)]

    @property
    def duplicates(self) -> list[DuplicateRuleError]:
        return [e for e in self.errors if isinstance(e, DuplicateRuleError)]

    @property
    def source_error(self) -> RuleSourceError | None:
        """Set when the directory itself could not be read."""
        for error in self.errors:
            if isinstance(error, RuleSourceError):
                return error
        return None

    @property
    def ok(self) -> bool:
        """True when the directory was read and every document parsed.

        Duplicates are only warnings.
        """
        return self.source_error is None and not self.parse_errors


@dataclass(frozen=True)
class RuleSnapshot:
    """Immutable set of loaded rules, in load order."""

    rules: tuple[Rule, ...] = ()
    report: LoadReport = field(default_factory=LoadReport)
    loaded_at: datetime | None = None

    def __len__(self) -> int:
        return len(self.rules)

    def __iter__(self) -> Iterator[Rule]:
        return iter(self.rules)

    @property
    def names(self) -> list[str]:
        return [rule.name for rule in self.rules]

    @property
    def source(self) -> Path | None:
        return self.report.source

    def get(self, name: str) -> Rule | None:
        """Look up a rule by name."""
        for rule in self.rules:
            if rule.name == name:
                return rule
        return None


def split_front_matter(text: str) -> tuple[str, str]:
    """Split an .mdc document into its front matter and markdown body.

    Args:
        text: Full document text.

    Returns:
        Tuple of (front matter YAML, body).

    Raises:
        ValueError: If the document has no front matter block.
    """
    match = FRONT_MATTER_PATTERN.match(text)
    if match is None:
        msg = "document has no '---' front matter block"
        raise ValueError(msg)
    return match.group("meta"), match.group("body")


def _load_mapping(text: str, path: Path | None) -> Any:
    try:
        return yaml.safe_load(text)
    except yaml.YAMLError as e:
        msg = f"invalid YAML: {e}"
        raise ParseError(msg, path) from e


def _validate_rule(data: Any, path: Path | None, **extra: Any) -> Rule:
    if not isinstance(data, dict):
        msg = "rule must be a mapping"
        raise ParseError(msg, path)

    if path is not None:
        extra.setdefault("source", str(path))

    try:
        return Rule.model_validate({**data, **extra})
    except ValidationError as e:
        details = "\n".join(format_validation_errors(e))
        msg = f"invalid rule '{data.get('name', '<unnamed>')}':\n{details}"
        raise ParseError(msg, path) from e


def parse_document_text(
    text: str,
    *,
    suffix: str = ".mdc",
    path: Path | None = None,
) -> list[Rule]:
    """Parse rule document text.

    Args:
        text: Document contents.
        suffix: File suffix selecting the format (.mdc/.md or .yaml/.yml).
        path: Source path, recorded on the rules and in errors.

    Returns:
        Rules defined by the document, in document order.

    Raises:
        ParseError: If the document is malformed.
    """
    if suffix.lower() in FRONT_MATTER_SUFFIXES:
        try:
            meta, body = split_front_matter(text)
        except ValueError as e:
            raise ParseError(str(e), path) from e
        data = _load_mapping(meta, path)
        if data is None:
            data = {}
        if not isinstance(data, dict):
            msg = "front matter must be a YAML mapping"
            raise ParseError(msg, path)
        return [_validate_rule(data, path, body=body)]

    data = _load_mapping(text, path)
    if isinstance(data, dict) and "rules" in data and "name" not in data:
        entries = data["rules"]
        if not isinstance(entries, list):
            msg = "'rules' must be a list of rule mappings"
            raise ParseError(msg, path)
        return [_validate_rule(entry, path) for entry in entries]

    return [_validate_rule(data, path)]


def parse_document(path: Path) -> list[Rule]:
    """Read and parse a rule document from disk.

    Raises:
        ParseError: If the document cannot be read or is malformed.
    """
    try:
        text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        msg = f"cannot read rule document: {e}"
        raise ParseError(msg, path) from e
    return parse_document_text(text, suffix=path.suffix, path=path)


def dump_rule(rule: Rule, fmt: Literal["mdc", "yaml"] = "mdc") -> str:
    """Serialise a rule back to document form.

    Parsing the result with the matching suffix yields an equal rule
    (apart from ``source``).

    Args:
        rule: Rule to serialise.
        fmt: "mdc" for front matter + body, "yaml" for a plain YAML mapping.

    Returns:
        Document text.
    """
    document = rule.to_document()
    if fmt == "yaml":
        if rule.body:
            document["body"] = rule.body
        return yaml.safe_dump(document, sort_keys=False, allow_unicode=True)

    front_matter = yaml.safe_dump(document, sort_keys=False, allow_unicode=True)
    return f"---\n{front_matter}---\n{rule.body}"


class RuleStore:
    """Loads rule documents from a directory into immutable snapshots.

    The active snapshot is replaced wholesale by ``load`` and ``reload``;
    snapshots handed out earlier are never mutated.
    """

    def __init__(
        self,
        source_dir: str | Path | None = None,
        *,
        include: list[str] | None = None,
        recursive: bool = True,
        duplicate_policy: DuplicatePolicy = DuplicatePolicy.LAST_WINS,
    ) -> None:
        """Initialize rule store.

        Args:
            source_dir: Default directory to load from.
            include: Glob patterns selecting documents.
            recursive: Whether to descend into subdirectories.
            duplicate_policy: Which definition wins on a duplicate name.
        """
        self._source_dir = Path(source_dir).expanduser() if source_dir else None
        self._include = list(include or DEFAULT_INCLUDE)
        self._recursive = recursive
        self._duplicate_policy = duplicate_policy
        self._snapshot = RuleSnapshot()

    @classmethod
    def from_config(cls, config: RulesConfig) -> RuleStore:
        """Create a store from the ``rules`` config section."""
        return cls(
            config.get_directory(),
            include=config.include,
            recursive=config.recursive,
            duplicate_policy=config.duplicate_policy,
        )

    @property
    def source_dir(self) -> Path | None:
        return self._source_dir

    @property
    def snapshot(self) -> RuleSnapshot:
        """The currently active snapshot (empty until loaded)."""
        return self._snapshot

    def discover(self, source_dir: Path) -> list[Path]:
        """List rule documents under a directory, sorted by relative path.

        Raises:
            RuleSourceError: If the directory does not exist.
        """
        if not source_dir.is_dir():
            msg = "rule directory does not exist"
            raise RuleSourceError(msg, source_dir)

        found: set[Path] = set()
        for pattern in self._include:
            matches = source_dir.rglob(pattern) if self._recursive else source_dir.glob(pattern)
            found.update(path for path in matches if path.is_file())

        return sorted(found, key=lambda p: p.relative_to(source_dir).as_posix())

    def load(self, source_dir: str | Path | None = None) -> RuleSnapshot:
        """Load all rule documents from a directory.

        Malformed documents are skipped and recorded in the snapshot's
        report; they never abort the load.

        Args:
            source_dir: Directory to load (defaults to the store's directory).

        Returns:
            The new active snapshot.

        Raises:
            RuleSourceError: If no directory is known or it does not exist.
        """
        directory = Path(source_dir).expanduser() if source_dir else self._source_dir
        if directory is None:
            msg = "no rule directory configured"
            raise RuleSourceError(msg)

        paths = self.discover(directory)
        rules: dict[str, Rule] = {}
        errors: list[RuleLoadError] = []

        for path in paths:
            try:
                document_rules = parse_document(path)
            except ParseError as e:
                logger.warning("Skipping rule document %s: %s", path, e)
                errors.append(e)
                continue

            for rule in document_rules:
                previous = rules.get(rule.name)
                if previous is None:
                    rules[rule.name] = rule
                    continue

                keep_first = self._duplicate_policy == DuplicatePolicy.FIRST_WINS
                duplicate = DuplicateRuleError(
                    rule.name,
                    path,
                    previous.source,
                    kept="first" if keep_first else "last",
                )
                logger.warning("%s", duplicate)
                errors.append(duplicate)
                if keep_first:
                    continue
                # The later definition also takes the later load position
                del rules[rule.name]
                rules[rule.name] = rule

        report = LoadReport(
            source=directory,
            documents=len(paths),
            rules_loaded=len(rules),
            errors=tuple(errors),
        )
        self._source_dir = directory
        self._snapshot = RuleSnapshot(
            rules=tuple(rules.values()),
            report=report,
            loaded_at=datetime.now(UTC),
        )
        logger.debug(
            "Loaded %d rule(s) from %d document(s) in %s",
            report.rules_loaded,
            report.documents,
            directory,
        )
        return self._snapshot

    def reload(self) -> RuleSnapshot:
        """Re-read the current directory and replace the active snapshot.

        Raises:
            RuleSourceError: If nothing was loaded before or the directory vanished.
                The previous snapshot stays active in that case.
        """
        return self.load(self._source_dir)

    def unload(self) -> None:
        """Drop the active snapshot."""
        self._snapshot = RuleSnapshot()

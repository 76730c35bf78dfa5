"""Session context: the engine's process-wide state and entry point.

A SessionContext owns:
- the active rule snapshot (empty at start, replaced wholesale on reload)
- the output directory exposed to templates and executors
- a bounded history of triggered rules, for diagnostics only

``submit_event`` is the single entry point callers use: it loads rules if
needed, matches the event, dispatches every fired action in priority order
and returns the effect descriptions.
"""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass, field
from datetime import UTC, datetime
from pathlib import Path
from typing import TYPE_CHECKING

from mdcrules.actions.dispatcher import ActionDispatcher
from mdcrules.config.schema import Config
from mdcrules.logging.audit import (
    log_decision,
    log_dispatch_error,
    log_effect_dispatched,
    log_event_received,
    log_load_report,
    log_rule_matched,
)
from mdcrules.rules.engine import RulesEngine
from mdcrules.rules.models import EventKind
from mdcrules.rules.schema import Event
from mdcrules.rules.store import LoadReport, RuleSnapshot, RuleSourceError, RuleStore

if TYPE_CHECKING:
    from mdcrules.actions.dispatcher import DispatchError
    from mdcrules.actions.effects import EffectDescription
    from mdcrules.rules.schema import MatchResult

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TriggeredRule:
    """History entry for a rule that produced at least one match."""

    rule_name: str
    event_kind: EventKind
    event_id: str
    triggered_at: datetime


@dataclass
class EventOutcome:
    """Everything the engine decided for one event."""

    event: Event
    matches: list[MatchResult] = field(default_factory=list)
    effects: list[EffectDescription] = field(default_factory=list)
    errors: list[DispatchError] = field(default_factory=list)

    @property
    def matched_rule_names(self) -> list[str]:
        """Names of the rules that fired, in dispatch order, without repeats."""
        return list(dict.fromkeys(m.rule.name for m in self.matches))


class SessionContext:
    """Process-wide engine state and event submission entry point."""

    def __init__(
        self,
        config: Config | None = None,
        *,
        store: RuleStore | None = None,
        output_dir: str | Path | None = None,
    ) -> None:
        """Initialize session context.

        Args:
            config: Engine configuration (defaults to schema defaults).
            store: Rule store to use (defaults to one built from config).
            output_dir: Override for the configured output directory.
        """
        self._config = config or Config()
        self._store = store or RuleStore.from_config(self._config.rules)
        self._output_dir = (
            Path(output_dir).expanduser()
            if output_dir
            else self._config.session.get_output_dir()
        )
        self._history: deque[TriggeredRule] = deque(maxlen=self._config.session.history_size)
        self._snapshot = RuleSnapshot()
        self._loaded = False

    @property
    def config(self) -> Config:
        return self._config

    @property
    def snapshot(self) -> RuleSnapshot:
        """The active rule snapshot."""
        return self._snapshot

    @property
    def loaded(self) -> bool:
        return self._loaded

    @property
    def output_dir(self) -> Path:
        return self._output_dir

    @output_dir.setter
    def output_dir(self, value: str | Path) -> None:
        self._output_dir = Path(value).expanduser()

    @property
    def history(self) -> list[TriggeredRule]:
        """Most recently triggered rules, oldest first."""
        return list(self._history)

    @property
    def last_triggered(self) -> TriggeredRule | None:
        return self._history[-1] if self._history else None

    def load(self, source_dir: str | Path | None = None) -> LoadReport:
        """Load rule documents and make them the active snapshot.

        Args:
            source_dir: Directory to load (defaults to the configured one).

        Returns:
            LoadReport listing parse errors and duplicate warnings.

        Raises:
            RuleSourceError: If the directory cannot be read. The previous
                snapshot stays active.
        """
        snapshot = self._store.load(source_dir)
        self._install(snapshot)
        return snapshot.report

    def reload(self) -> LoadReport:
        """Re-read the rule directory and replace the active snapshot.

        Raises:
            RuleSourceError: If the directory cannot be read.
        """
        snapshot = self._store.reload()
        self._install(snapshot)
        return snapshot.report

    def unload(self) -> None:
        """Drop all loaded rules."""
        self._store.unload()
        self._snapshot = RuleSnapshot()
        self._loaded = False

    def _install(self, snapshot: RuleSnapshot) -> None:
        self._snapshot = snapshot
        self._loaded = True
        log_load_report(snapshot.report)

    def _load_lazily(self) -> None:
        """First-use load; an unreadable rule directory leaves an empty snapshot.

        The failure is kept in the snapshot's report. Events are then matched
        against no rules until an explicit ``load`` or ``reload`` succeeds.
        """
        try:
            self.load()
        except RuleSourceError as e:
            logger.warning("No rules loaded: %s", e)
            report = LoadReport(source=e.path or self._store.source_dir, errors=(e,))
            self._install(RuleSnapshot(report=report, loaded_at=datetime.now(UTC)))

    def process_event(self, event: Event) -> EventOutcome:
        """Match and dispatch one event.

        Rules are loaded on first use when none have been loaded yet.

        Args:
            event: Event to process.

        Returns:
            EventOutcome with matches, effects (priority order) and
            dispatch errors.
        """
        if not self._loaded:
            self._load_lazily()

        log_event_received(event)

        engine = RulesEngine(self._snapshot, case_sensitive=self._config.rules.case_sensitive)
        matches = engine.match(event)
        for match in matches:
            log_rule_matched(match)

        dispatcher = ActionDispatcher(output_dir=self._output_dir)
        result = dispatcher.dispatch_all(matches)

        for effect in result.effects:
            log_effect_dispatched(event.id, effect)
        for error in result.errors:
            log_dispatch_error(event.id, error.rule_name, str(error))

        outcome = EventOutcome(
            event=event,
            matches=matches,
            effects=result.effects,
            errors=result.errors,
        )
        self._record(outcome)

        log_decision(
            event_id=event.id,
            event_kind=event.kind.value,
            payload=event.payload,
            rules_matched=outcome.matched_rule_names,
            effects=[
                {
                    "rule": effect.rule_name,
                    "kind": effect.effect_kind.value,
                    "target": effect.target_path,
                }
                for effect in outcome.effects
            ],
            errors=[str(error) for error in outcome.errors],
        )
        return outcome

    def submit_event(self, kind: EventKind | str, payload: str) -> list[EffectDescription]:
        """Submit an event and return the effects it produces.

        Args:
            kind: command, file_change or lifecycle.
            payload: Command text, changed file path or lifecycle event name.

        Returns:
            Effect descriptions in priority order (empty when nothing matched).

        Raises:
            ValueError: If ``kind`` is not a known event kind.
        """
        event = Event(kind=EventKind(kind), payload=payload)
        return self.process_event(event).effects

    def _record(self, outcome: EventOutcome) -> None:
        now = datetime.now(UTC)
        for name in outcome.matched_rule_names:
            self._history.append(
                TriggeredRule(
                    rule_name=name,
                    event_kind=outcome.event.kind,
                    event_id=outcome.event.id,
                    triggered_at=now,
                )
            )

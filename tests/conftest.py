"""Shared pytest fixtures for mdcrules tests.

This module provides common fixtures for:
- Temporary directories and config files
- Rule document writers (.mdc front matter and YAML)
- Sample rule documents
- structlog / logging isolation between tests
"""

from __future__ import annotations

import logging
import tempfile
from datetime import UTC, datetime
from pathlib import Path
from typing import TYPE_CHECKING, Any

import pytest
import structlog
import yaml

from mdcrules.rules.store import RuleStore

if TYPE_CHECKING:
    from collections.abc import Callable, Generator


# ============================================================================
# Logging isolation
# ============================================================================


@pytest.fixture(autouse=True)
def reset_logging() -> Generator[None, None, None]:
    """Undo configure_logging() calls made by a test (e.g. through the CLI)."""
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield
    structlog.reset_defaults()
    root.handlers[:] = handlers
    root.setLevel(level)


# ============================================================================
# Time Fixtures
# ============================================================================


@pytest.fixture
def frozen_time() -> datetime:
    """Return a fixed datetime for deterministic tests.

    Use with freezegun's freeze_time decorator:

        @freeze_time("2026-01-10T15:30:00Z")
        def test_something(frozen_time):
            assert datetime.now(UTC) == frozen_time
    """
    return datetime(2026, 1, 10, 15, 30, 0, tzinfo=UTC)


# ============================================================================
# Directory and config Fixtures
# ============================================================================


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for test files.

    Yields:
        Path to temporary directory (cleaned up after test)
    """
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def rules_dir(temp_dir: Path) -> Path:
    """Return an (initially empty) rule document directory."""
    path = temp_dir / "rules"
    path.mkdir()
    return path


@pytest.fixture
def output_dir(temp_dir: Path) -> Path:
    """Return an output directory path (not created)."""
    return temp_dir / "output"


@pytest.fixture
def write_config(temp_dir: Path) -> Callable[..., Path]:
    """Factory fixture to write config files.

    Args:
        config: Configuration dictionary
        filename: Name of the config file (default: mdcrules.yaml)

    Returns:
        Path to the written config file
    """

    def _write(config: dict[str, Any], filename: str = "mdcrules.yaml") -> Path:
        path = temp_dir / filename
        with path.open("w") as f:
            yaml.safe_dump(config, f)
        return path

    return _write


# ============================================================================
# Rule document Fixtures
# ============================================================================


@pytest.fixture
def write_rule(rules_dir: Path) -> Callable[..., Path]:
    """Factory fixture to write an .mdc rule document.

    Args:
        filename: Document name relative to the rules directory
        front_matter: Rule fields written as YAML front matter
        body: Markdown body after the front matter

    Returns:
        Path to the written document
    """

    def _write(filename: str, front_matter: dict[str, Any], body: str = "") -> Path:
        path = rules_dir / filename
        path.parent.mkdir(parents=True, exist_ok=True)
        meta = yaml.safe_dump(front_matter, sort_keys=False)
        path.write_text(f"---\n{meta}---\n{body}", encoding="utf-8")
        return path

    return _write


@pytest.fixture
def write_text(rules_dir: Path) -> Callable[[str, str], Path]:
    """Factory fixture to write a raw document into the rules directory."""

    def _write(filename: str, content: str) -> Path:
        path = rules_dir / filename
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
        return path

    return _write


@pytest.fixture
def onboard_rule() -> dict[str, Any]:
    """Rule that answers the onboarding command with a message."""
    return {
        "name": "onboard",
        "filters": [{"type": "command", "pattern": "onboard project"}],
        "actions": [{"type": "suggest", "message": "Project onboarding complete!"}],
        "metadata": {"priority": "medium", "version": "1.0.0"},
    }


@pytest.fixture
def refactor_rule() -> dict[str, Any]:
    """Rule that turns a refactor command into a report file."""
    return {
        "name": "code-refactor",
        "description": "Write a refactoring report for the requested file",
        "filters": [{"type": "command", "pattern": "Code.refactor:(.*)"}],
        "actions": [
            {
                "type": "react",
                "template": "# Refactor report for {{ 1 }}\n",
                "target": "reports/{{ 1 }}.md",
            }
        ],
        "metadata": {"priority": "high", "version": "2.1"},
    }


@pytest.fixture
def sample_rules_dir(
    rules_dir: Path,
    write_rule: Callable[..., Path],
    onboard_rule: dict[str, Any],
    refactor_rule: dict[str, Any],
) -> Path:
    """A rules directory holding the onboarding and refactor rules."""
    write_rule("onboard.mdc", onboard_rule, "\n# Onboarding\n\nRun once per project.\n")
    write_rule("swift/refactor.mdc", refactor_rule)
    return rules_dir


@pytest.fixture
def loaded_store(sample_rules_dir: Path) -> RuleStore:
    """RuleStore with the sample rules loaded."""
    store = RuleStore(sample_rules_dir)
    store.load()
    return store

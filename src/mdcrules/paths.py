"""XDG Base Directory Specification path utilities.

This module provides XDG-compliant paths for:
- Configuration files ($XDG_CONFIG_HOME/mdcrules, default: ~/.config/mdcrules)
- Effect output ($XDG_DATA_HOME/mdcrules/output, default: ~/.local/share/mdcrules/output)

Rule documents are looked up in the project first (./.cursor/rules, the layout
most assistant rule corpora ship with) and fall back to the user config dir.

Reference: https://specifications.freedesktop.org/basedir-spec/latest/
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

logger = logging.getLogger(__name__)

# XDG environment variable names
XDG_CONFIG_HOME = "XDG_CONFIG_HOME"
XDG_DATA_HOME = "XDG_DATA_HOME"

# Application name used in XDG directories
APP_NAME = "mdcrules"

# Project-local rule directory
PROJECT_RULES_DIR = Path(".cursor") / "rules"


def get_config_home() -> Path:
    """Get the XDG config home directory.

    Returns:
        Path from $XDG_CONFIG_HOME or ~/.config if not set
    """
    xdg_config = os.environ.get(XDG_CONFIG_HOME)
    if xdg_config:
        return Path(xdg_config).expanduser()
    return Path.home() / ".config"


def get_data_home() -> Path:
    """Get the XDG data home directory.

    Returns:
        Path from $XDG_DATA_HOME or ~/.local/share if not set
    """
    xdg_data = os.environ.get(XDG_DATA_HOME)
    if xdg_data:
        return Path(xdg_data).expanduser()
    return Path.home() / ".local" / "share"


def get_config_dir() -> Path:
    """Get the application config directory."""
    return get_config_home() / APP_NAME


def get_data_dir() -> Path:
    """Get the application data directory."""
    return get_data_home() / APP_NAME


def get_default_config_path() -> Path:
    """Get the default config file path.

    Returns:
        Path to config.yaml in the config directory
    """
    return get_config_dir() / "config.yaml"


def get_default_rules_dir(project_dir: Path | None = None) -> Path:
    """Get the default rule document directory.

    Prefers the project-local ``.cursor/rules`` directory when it exists,
    otherwise the ``rules`` directory under the user config dir.

    Args:
        project_dir: Project root to look in (defaults to the current directory).

    Returns:
        Path to the rules directory (may not exist).
    """
    project_rules = (project_dir or Path.cwd()) / PROJECT_RULES_DIR
    if project_rules.is_dir():
        return project_rules

    user_rules = get_config_dir() / "rules"
    logger.debug("No project rules at %s, using %s", project_rules, user_rules)
    return user_rules


def get_default_output_dir() -> Path:
    """Get the default directory effect executors write into.

    Returns:
        Path to the output directory under the data directory
    """
    return get_data_dir() / "output"

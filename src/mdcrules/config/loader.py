"""Locating, reading and validating the mdcrules config file.

The config file is optional. When present it is looked up next to the rule
corpus first, so a project that ships ``.cursor/rules`` can keep its engine
settings beside them:

1. ``--config`` (explicit path, must exist)
2. ``$MDCRULES_CONFIG``
3. ``./mdcrules.yaml``
4. ``./.cursor/mdcrules.yaml``
5. ``$XDG_CONFIG_HOME/mdcrules/config.yaml``

String values may reference the environment as ``${VAR}`` or
``${VAR:-fallback}``. Relative ``rules.directory`` and
``session.output_dir`` values are anchored at the config file's directory,
not at whatever directory the engine happens to be started from.
"""

from __future__ import annotations

import logging
import os
import re
from pathlib import Path
from typing import TYPE_CHECKING, Any

import yaml
from pydantic import ValidationError

from mdcrules.config.schema import Config
from mdcrules.paths import PROJECT_RULES_DIR, get_default_config_path

if TYPE_CHECKING:
    from collections.abc import Mapping

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "MDCRULES_CONFIG"
LOCAL_CONFIG_NAME = "mdcrules.yaml"

# ${NAME} or ${NAME:-fallback}
ENV_REFERENCE = re.compile(r"\$\{(?P<name>[A-Za-z_][A-Za-z0-9_]*)(?::-(?P<fallback>[^}]*))?\}")

# (section, key) pairs holding filesystem paths
PATH_SETTINGS = (("rules", "directory"), ("session", "output_dir"))


def format_validation_errors(error: ValidationError) -> list[str]:
    """Render pydantic errors as ``  - dotted.location: message`` lines.

    Shared by config and rule document validation.
    """
    return [
        f"  - {'.'.join(str(part) for part in err['loc'])}: {err['msg']}"
        for err in error.errors()
    ]


class ConfigError(Exception):
    """Raised when the config file cannot be found, read or validated."""

    def __init__(self, message: str, path: Path | None = None) -> None:
        self.message = message
        self.path = path
        super().__init__(message)

    def __str__(self) -> str:
        if self.path is None:
            return self.message
        return f"{self.path}: {self.message}"


class ConfigNotFoundError(ConfigError):
    """Raised when discovery finds no config file, or an explicit one is missing."""

    def __init__(self, searched: list[Path], path: Path | None = None) -> None:
        self.searched = searched
        if path is not None:
            message = "config file does not exist"
        else:
            message = "no config file in " + ", ".join(str(p) for p in searched)
        super().__init__(message, path)


class ConfigValidationError(ConfigError):
    """Raised when the config file does not fit the schema."""

    def __init__(self, error: ValidationError, path: Path | None = None) -> None:
        self.validation_errors = [dict(err) for err in error.errors()]
        problems = format_validation_errors(error)
        message = f"{len(problems)} invalid setting(s):\n" + "\n".join(problems)
        super().__init__(message, path)


class EnvironmentVariableError(ConfigError):
    """Raised when a ``${VAR}`` reference has no value and no fallback."""

    def __init__(self, var_name: str, path: Path | None = None) -> None:
        self.var_name = var_name
        message = f"${{{var_name}}} is not set (use ${{{var_name}:-fallback}} for a default)"
        super().__init__(message, path)


def expand_env_vars(
    value: Any,
    *,
    strict: bool = True,
    environ: Mapping[str, str] | None = None,
) -> Any:
    """Substitute ``${VAR}`` references in every string of a YAML value.

    Args:
        value: Parsed YAML (mapping, list, scalar).
        strict: Raise for unset variables without a fallback. Otherwise the
            reference is left as written.
        environ: Variables to read (defaults to ``os.environ``).

    Raises:
        EnvironmentVariableError: For an unset variable when ``strict``.

    Examples:
        >>> expand_env_vars({"directory": "${RULES_HOME:-/srv/rules}/ios"}, environ={})
        {'directory': '/srv/rules/ios'}
    """
    env = os.environ if environ is None else environ

    def substitute(found: re.Match[str]) -> str:
        name = found.group("name")
        if name in env:
            return env[name]
        if found.group("fallback") is not None:
            return found.group("fallback")
        if strict:
            raise EnvironmentVariableError(name)
        return found.group(0)

    def walk(node: Any) -> Any:
        if isinstance(node, str):
            return ENV_REFERENCE.sub(substitute, node)
        if isinstance(node, dict):
            return {key: walk(item) for key, item in node.items()}
        if isinstance(node, list):
            return [walk(item) for item in node]
        return node

    return walk(value)


def config_candidates(project_dir: Path | None = None) -> list[Path]:
    """Paths discovery tries, in order (explicit ``--config`` excluded)."""
    project = project_dir or Path.cwd()
    candidates: list[Path] = []

    env_path = os.environ.get(CONFIG_ENV_VAR)
    if env_path:
        candidates.append(Path(env_path).expanduser().resolve())

    candidates.append(project / LOCAL_CONFIG_NAME)
    candidates.append(project / PROJECT_RULES_DIR.parent / LOCAL_CONFIG_NAME)
    candidates.append(get_default_config_path())
    return candidates


def discover_config_path(
    explicit_path: str | Path | None = None,
    *,
    project_dir: Path | None = None,
) -> Path:
    """Find the config file to use.

    Raises:
        ConfigNotFoundError: If ``explicit_path`` does not exist, or if no
            candidate location holds a file.
    """
    if explicit_path:
        path = Path(explicit_path).expanduser().resolve()
        if not path.is_file():
            raise ConfigNotFoundError([path], path)
        return path

    candidates = config_candidates(project_dir)
    for candidate in candidates:
        if candidate.is_file():
            return candidate
    raise ConfigNotFoundError(candidates)


def read_config_file(path: Path) -> dict[str, Any]:
    """Parse a config file into a mapping (an empty file is an empty mapping).

    Raises:
        ConfigError: If the file is unreadable, not YAML, or not a mapping.
    """
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except OSError as e:
        raise ConfigError(f"cannot read config file ({e.strerror})", path) from e
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in config file: {e}", path) from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError("config file must hold a YAML mapping at the top level", path)
    return data


def anchor_paths(raw: dict[str, Any], base_dir: Path) -> dict[str, Any]:
    """Resolve relative path settings against ``base_dir``.

    ``~`` paths and absolute paths are left alone.
    """
    anchored = dict(raw)
    for section, key in PATH_SETTINGS:
        settings = anchored.get(section)
        if not isinstance(settings, dict):
            continue
        value = settings.get(key)
        if not isinstance(value, str) or not value or value.startswith("~"):
            continue
        if Path(value).is_absolute():
            continue
        anchored[section] = {**settings, key: str(base_dir / value)}
    return anchored


def load_config(
    path: str | Path | None = None,
    *,
    expand_env: bool = True,
    project_dir: Path | None = None,
) -> Config:
    """Discover, read and validate the config file.

    Args:
        path: Explicit config path (``--config``); discovery when None.
        expand_env: Whether to substitute ``${VAR}`` references.
        project_dir: Directory project-local candidates are looked up in.

    Raises:
        ConfigNotFoundError: No config file found.
        ConfigError: Unreadable or malformed file.
        EnvironmentVariableError: Unset variable without fallback.
        ConfigValidationError: Schema violation.
    """
    config_path = discover_config_path(path, project_dir=project_dir)
    raw = read_config_file(config_path)

    if expand_env:
        try:
            raw = expand_env_vars(raw)
        except EnvironmentVariableError as e:
            e.path = config_path
            raise

    raw = anchor_paths(raw, config_path.parent)

    try:
        config = Config.model_validate(raw)
    except ValidationError as e:
        raise ConfigValidationError(e, config_path) from e

    logger.debug("Loaded config from %s", config_path)
    return config


def load_config_or_default(
    path: str | Path | None = None,
    *,
    project_dir: Path | None = None,
) -> Config:
    """Like ``load_config``, but an undiscovered config means defaults.

    An explicit ``path`` that does not exist is still an error.
    """
    try:
        return load_config(path, project_dir=project_dir)
    except ConfigNotFoundError:
        if path:
            raise
        logger.debug("No config file found, using defaults")
        return Config()

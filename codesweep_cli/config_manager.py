"""Configuration manager for CodeSweep using TOML files.

Settings are layered: built-in defaults from :mod:`codesweep_cli.config`,
then ``~/.codesweep/config.toml``, then ``<root>/codesweep.toml``.  Only
the ``[analyzer]`` table is read.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import toml

from . import config

logger = logging.getLogger(__name__)


@dataclass
class AnalyzerSettings:
    """Resolved settings handed to every analysis phase."""

    contexts: Tuple[str, ...] = config.DEFAULT_CONTEXTS
    extensions: Tuple[str, ...] = config.SUPPORTED_EXTENSIONS
    skip_dirs: frozenset = frozenset(config.SKIP_DIRS)
    aliases: Dict[str, str] = field(default_factory=lambda: dict(config.DEFAULT_ALIASES))
    orm_clients: Tuple[str, ...] = config.ORM_CLIENTS
    system_fields: Tuple[str, ...] = config.SYSTEM_FIELDS
    extra_entry_patterns: Tuple[str, ...] = ()
    scope_aware: bool = False
    lenient_parse: bool = False
    fuzzy_references: bool = True


_LIST_KEYS = ("contexts", "extensions", "orm_clients", "system_fields", "extra_entry_patterns")
_BOOL_KEYS = ("scope_aware", "lenient_parse", "fuzzy_references")


def load_toml(path: Path) -> Dict[str, Any]:
    """Load the ``[analyzer]`` table from *path*.

    Returns an empty dict when the file is missing or malformed.
    """
    if not path.is_file():
        return {}
    try:
        data = toml.load(str(path))
    except (OSError, toml.TomlDecodeError) as exc:
        logger.warning("Ignoring unreadable config %s: %s", path, exc)
        return {}
    section = data.get("analyzer", {})
    if not isinstance(section, dict):
        logger.warning("Ignoring config %s: [analyzer] is not a table", path)
        return {}
    return section


def apply_overrides(settings: AnalyzerSettings, overrides: Dict[str, Any]) -> AnalyzerSettings:
    """Return a copy of *settings* with recognised keys from *overrides* applied."""
    changes: Dict[str, Any] = {}
    for key in _LIST_KEYS:
        if key in overrides:
            value = overrides[key]
            if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
                logger.warning("Config key '%s' must be a list of strings; ignored", key)
                continue
            changes[key] = tuple(value)
    for key in _BOOL_KEYS:
        if key in overrides:
            changes[key] = bool(overrides[key])
    if "skip_dirs" in overrides:
        value = overrides["skip_dirs"]
        if isinstance(value, list):
            changes["skip_dirs"] = frozenset(str(v) for v in value)
        else:
            logger.warning("Config key 'skip_dirs' must be a list; ignored")
    if "aliases" in overrides:
        value = overrides["aliases"]
        if isinstance(value, dict):
            merged = dict(settings.aliases)
            merged.update({str(k): str(v) for k, v in value.items()})
            changes["aliases"] = merged
        else:
            logger.warning("Config key 'aliases' must be a table; ignored")

    unknown = set(overrides) - set(_LIST_KEYS) - set(_BOOL_KEYS) - {"skip_dirs", "aliases"}
    for key in sorted(unknown):
        logger.warning("Unknown config key '%s' ignored", key)
    return replace(settings, **changes)


def load_settings(
    root: Path,
    user_config: Optional[Path] = None,
    **cli_overrides: Any,
) -> AnalyzerSettings:
    """Build settings for analysing *root*.

    Args:
        root: Project root directory.
        user_config: User-level config file; defaults to ``~/.codesweep/config.toml``.
        **cli_overrides: Values from command-line flags; ``None`` values are skipped.

    Returns:
        Fully resolved :class:`AnalyzerSettings`.
    """
    settings = AnalyzerSettings()
    sources: List[Path] = [user_config or config.USER_CONFIG_FILE, root / config.PROJECT_CONFIG_NAME]
    for source in sources:
        overrides = load_toml(source)
        if overrides:
            logger.debug("Loaded analyzer settings from %s", source)
            settings = apply_overrides(settings, overrides)

    flags = {k: v for k, v in cli_overrides.items() if v is not None}
    if flags:
        settings = apply_overrides(settings, flags)
    return settings

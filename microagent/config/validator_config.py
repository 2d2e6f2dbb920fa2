"""Validator configuration registry.

Provides the settings the layout scanner and rule checker share: which file
extensions and interpreter prefixes identify a tool script, which names are
skipped while walking, how deep walks may recurse, and the default
conformance level. Environment variables take precedence over YAML config.

Usage:
    from microagent.config.validator_config import get_config

    config = get_config()
    config.max_walk_depth       # 8, or MICROAGENT_MAX_WALK_DEPTH
    config.default_level        # "minimum", or MICROAGENT_LEVEL

    # Alternate YAML file (e.g. from --config)
    config = load_config(Path("strict.yaml"))
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

import yaml

from microagent.validator.errors import ConfigError

logger = logging.getLogger(__name__)

_CONFIG_PATH = Path(__file__).parent / "validator.yaml"
_cached_config: Optional["ValidatorConfig"] = None

VALID_LEVELS = ("minimum", "complete")

# Walks deeper than this are almost certainly a misconfigured symlink farm
WALK_DEPTH_MAX = 64


@dataclass(frozen=True)
class ValidatorConfig:
    """Resolved validator settings (env > YAML > defaults)."""
    default_level: str = "minimum"
    max_walk_depth: int = 8
    script_extensions: Tuple[str, ...] = (".py", ".sh", ".js", ".ts", ".rb", ".pl")
    interpreters: Tuple[str, ...] = ("python", "python3", "uv run", "node", "bash", "sh")
    ignored_names: Tuple[str, ...] = ("__pycache__", "node_modules", ".DS_Store")
    ignored_suffixes: Tuple[str, ...] = (".pyc", ".pyo")
    source: str = "default"  # "default" | path of the YAML file

    def interpreter_prefixes(self) -> Tuple[Tuple[str, ...], ...]:
        """Interpreters as token tuples, longest first so 'bun run' beats 'bun'."""
        prefixes = {tuple(i.split()) for i in self.interpreters if i.strip()}
        return tuple(sorted(prefixes, key=lambda p: (-len(p), p)))


def _default_config() -> Dict[str, Any]:
    """Return default configuration if validator.yaml doesn't exist."""
    defaults = ValidatorConfig()
    return {
        "version": "1.0",
        "defaults": {
            "level": defaults.default_level,
            "max_walk_depth": defaults.max_walk_depth,
        },
        "script_extensions": list(defaults.script_extensions),
        "interpreters": list(defaults.interpreters),
        "ignored_names": list(defaults.ignored_names),
        "ignored_suffixes": list(defaults.ignored_suffixes),
    }


def _read_yaml(path: Path) -> Dict[str, Any]:
    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except OSError as e:
        raise ConfigError(f"Cannot read validator config {path}: {e}") from e
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in validator config {path}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"Validator config {path} must be a mapping, got {type(data).__name__}")
    return data


def _resolve_level(config_level: Any) -> str:
    env_level = os.environ.get("MICROAGENT_LEVEL")
    if env_level:
        level = env_level.strip().lower()
        if level in VALID_LEVELS:
            return level
        logger.warning(
            "Ignoring MICROAGENT_LEVEL=%r (expected one of %s)", env_level, ", ".join(VALID_LEVELS)
        )

    level = str(config_level or "minimum").lower()
    if level not in VALID_LEVELS:
        logger.warning("Unknown default level %r in config, using 'minimum'", config_level)
        return "minimum"
    return level


def _resolve_walk_depth(config_depth: Any) -> int:
    raw = os.environ.get("MICROAGENT_MAX_WALK_DEPTH", config_depth)
    try:
        depth = int(raw)
    except (TypeError, ValueError):
        logger.warning("Invalid max_walk_depth %r, using %d", raw, ValidatorConfig.max_walk_depth)
        return ValidatorConfig.max_walk_depth

    if depth < 1:
        logger.warning("max_walk_depth %d is below 1. Clamping to 1.", depth)
        return 1
    if depth > WALK_DEPTH_MAX:
        logger.warning("max_walk_depth %d exceeds maximum %d. Clamping to %d.", depth, WALK_DEPTH_MAX, WALK_DEPTH_MAX)
        return WALK_DEPTH_MAX
    return depth


def _as_tuple(value: Any, fallback: Tuple[str, ...]) -> Tuple[str, ...]:
    if value is None:
        return fallback
    if isinstance(value, str):
        return (value,)
    return tuple(str(v) for v in value)


def config_from_dict(data: Dict[str, Any], source: str = "default") -> ValidatorConfig:
    """Build a ValidatorConfig from a parsed YAML mapping, applying env overrides."""
    base = ValidatorConfig()
    defaults = data.get("defaults") or {}

    extensions = _as_tuple(data.get("script_extensions"), base.script_extensions)
    extensions = tuple(e if e.startswith(".") else f".{e}" for e in extensions)

    return ValidatorConfig(
        default_level=_resolve_level(defaults.get("level")),
        max_walk_depth=_resolve_walk_depth(defaults.get("max_walk_depth", base.max_walk_depth)),
        script_extensions=tuple(e.lower() for e in extensions),
        interpreters=_as_tuple(data.get("interpreters"), base.interpreters),
        ignored_names=_as_tuple(data.get("ignored_names"), base.ignored_names),
        ignored_suffixes=_as_tuple(data.get("ignored_suffixes"), base.ignored_suffixes),
        source=source,
    )


def load_config(path: Optional[Path] = None) -> ValidatorConfig:
    """Load configuration from ``path`` (uncached).

    Raises:
        ConfigError: If the file is unreadable, not YAML, or not a mapping.
    """
    if path is None:
        return get_config()
    logger.debug("Loading validator config from %s", path)
    return config_from_dict(_read_yaml(path), source=str(path))


def get_config() -> ValidatorConfig:
    """Load the bundled validator.yaml, with caching."""
    global _cached_config
    if _cached_config is not None:
        return _cached_config

    if _CONFIG_PATH.exists():
        _cached_config = config_from_dict(_read_yaml(_CONFIG_PATH), source=str(_CONFIG_PATH))
    else:
        _cached_config = config_from_dict(_default_config())

    return _cached_config


def reset_config() -> None:
    """Reset cached config (for testing)."""
    global _cached_config
    _cached_config = None

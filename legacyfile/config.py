"""Load, validate and persist .legacyfile/config.yaml."""

from __future__ import annotations

import copy
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

from legacyfile.naming import SORT_ORDERS

CONFIG_DIR = ".legacyfile"
CONFIG_FILE = "config.yaml"

DEFAULT_ARCHIVE_PATH = "legacy"

# Default config values
DEFAULTS: dict[str, Any] = {
    "archive_path": DEFAULT_ARCHIVE_PATH,
    "sort_order": "ascending",
    "watch": {
        "min_interval": 60,
    },
}

# Short forms written by older settings files
_SORT_ORDER_ALIASES = {"asc": "ascending", "desc": "descending"}

# Default config template
CONFIG_TEMPLATE = """\
# Folder (relative to the vault root) holding every legacy snapshot and
# consolidated record.
archive_path: legacy

# Order snapshots are merged in on consolidation: ascending | descending
sort_order: ascending

watch:
  min_interval: 60  # seconds between automatic snapshots
"""


class ConfigError(Exception):
    """Raised when config is invalid."""


@dataclass(frozen=True)
class Settings:
    """Resolved settings handed to the writer, consolidator and watcher."""
    archive_path: str = DEFAULT_ARCHIVE_PATH
    sort_order: str = "ascending"
    min_interval: int = 60

    @classmethod
    def from_config(cls, config: dict[str, Any]) -> Settings:
        return cls(
            archive_path=config["archive_path"],
            sort_order=config["sort_order"],
            min_interval=config["watch"]["min_interval"],
        )


def config_path(vault_root: Path) -> Path:
    return Path(vault_root) / CONFIG_DIR / CONFIG_FILE


def _deep_merge(base: dict, override: dict) -> dict:
    """Merge override into base recursively. Override wins on conflicts."""
    result = base.copy()
    for key, val in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(val, dict):
            result[key] = _deep_merge(result[key], val)
        else:
            result[key] = val
    return result


def _normalize(config: dict) -> dict:
    """Apply aliases and fallbacks before validation."""
    order = config.get("sort_order")
    if isinstance(order, str):
        config["sort_order"] = _SORT_ORDER_ALIASES.get(order.strip().lower(), order.strip().lower())

    # An emptied archive path falls back to the default folder
    archive = config.get("archive_path")
    if archive is None or (isinstance(archive, str) and not archive.strip()):
        config["archive_path"] = DEFAULT_ARCHIVE_PATH
    return config


def _validate(config: dict) -> None:
    """Validate settings fields."""
    if not isinstance(config.get("archive_path"), str):
        raise ConfigError("'archive_path' must be a string")

    order = config.get("sort_order")
    if order not in SORT_ORDERS:
        raise ConfigError(
            f"Unsupported sort_order '{order}'. Expected one of: {', '.join(SORT_ORDERS)}."
        )

    watch = config.get("watch")
    if not isinstance(watch, dict):
        raise ConfigError("'watch' must be a mapping")
    interval = watch.get("min_interval")
    if isinstance(interval, bool) or not isinstance(interval, int) or interval < 0:
        raise ConfigError("'watch.min_interval' must be a non-negative integer")


def merge_config(raw: dict | None) -> dict:
    """Merge *raw* over DEFAULTS, normalise and validate."""
    config = _normalize(_deep_merge(copy.deepcopy(DEFAULTS), copy.deepcopy(raw or {})))
    _validate(config)
    return config


def load_config(vault_root: Path | None = None) -> dict:
    """Load config from .legacyfile/config.yaml under vault_root.

    Falls back to cwd if vault_root is None. A missing config file
    yields the defaults; explicit values override defaults field by
    field.
    """
    root = Path(vault_root) if vault_root else Path.cwd()
    path = config_path(root)

    if not path.exists():
        return merge_config({})

    with open(path) as f:
        raw = yaml.safe_load(f)

    if raw is None:
        raw = {}
    if not isinstance(raw, dict):
        raise ConfigError(f"Config must be a YAML mapping, got {type(raw).__name__}")

    return merge_config(raw)


def save_config(config: dict, vault_root: Path) -> Path:
    """Validate *config* and write it to .legacyfile/config.yaml."""
    merged = merge_config(config)
    path = config_path(vault_root)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(yaml.safe_dump(merged, sort_keys=True))
    return path


def update_setting(config: dict, key: str, value: str) -> dict:
    """Return a copy of *config* with one dotted *key* set from a string.

    ``watch.min_interval`` is parsed as an integer; other keys are
    stored as strings.
    """
    parts = key.split(".")
    known = DEFAULTS
    for part in parts:
        if not isinstance(known, dict) or part not in known:
            raise ConfigError(f"Unknown setting '{key}'")
        known = known[part]
    if isinstance(known, dict):
        raise ConfigError(f"Setting '{key}' is a section, not a value")

    parsed: Any = value
    if isinstance(known, int):
        try:
            parsed = int(value)
        except ValueError:
            raise ConfigError(f"Setting '{key}' must be an integer, got '{value}'") from None

    override: dict[str, Any] = {}
    node = override
    for part in parts[:-1]:
        node = node.setdefault(part, {})
    node[parts[-1]] = parsed
    return merge_config(_deep_merge(config, override))

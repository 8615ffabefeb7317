"""Resolve command-line flags and an optional YAML defaults file into a SelectionConfig."""
from __future__ import annotations

from datetime import datetime, timedelta

import yaml

from zsc.exclusions import read_exclusion_file
from zsc.models import (
    DEFAULT_AGE_DAYS,
    DEFAULT_BATCH_SIZE,
    SNAPSHOT_FORMAT,
    SelectionConfig,
    format_timestamp,
)


class ConfigError(Exception):
    pass


_STRING_KEYS = ("pool", "date", "exclude_file", "label")
_BOOL_KEYS = ("dry_run", "no_confirm", "show_queued", "show_excluded")
_INT_KEYS = ("per_iteration",)


def load_defaults(path: str) -> dict:
    """Load a YAML defaults file.

    Example:
        pool: tank
        exclude_file: /etc/zsc/keep.txt
        label: CHECKPOINT
        per_iteration: 50
        no_confirm: true
    """
    with open(path) as f:
        try:
            raw = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML in {path}: {e}")

    if raw is None:
        return {}
    if not isinstance(raw, dict):
        raise ConfigError(f"Config must be a YAML mapping: {path}")

    defaults = {}
    for key, value in raw.items():
        if key in _STRING_KEYS:
            if value is None:
                continue
            if not isinstance(value, (str, int)) or isinstance(value, bool):
                raise ConfigError(f"'{key}' must be a string, got {value!r}")
            defaults[key] = str(value)
        elif key in _BOOL_KEYS:
            if not isinstance(value, bool):
                raise ConfigError(f"'{key}' must be true or false, got {value!r}")
            defaults[key] = value
        elif key in _INT_KEYS:
            defaults[key] = value
        else:
            raise ConfigError(f"Unknown config key {key!r} in {path}")
    return defaults


def parse_cutoff(date: str | None, now: datetime) -> datetime:
    """Return the cutoff for an explicit date, or now minus the default window."""
    if not date:
        return now - timedelta(days=DEFAULT_AGE_DAYS)
    try:
        return datetime.strptime(date, SNAPSHOT_FORMAT)
    except ValueError:
        raise ConfigError(
            f"Invalid date {date!r}, expected {SNAPSHOT_FORMAT} (e.g. 2017-09-26-1111-00)"
        )


def parse_batch_size(value) -> int:
    if value is None:
        return DEFAULT_BATCH_SIZE
    # Only whole numbers; 1.9 must not quietly become 1.
    if isinstance(value, str) and value.strip().isascii() and value.strip().isdigit():
        size = int(value)
    elif isinstance(value, int) and not isinstance(value, bool):
        size = value
    else:
        raise ConfigError(f"per-iteration must be a positive integer, got {value!r}")
    if size < 1:
        raise ConfigError(f"per-iteration must be >= 1, got {size}")
    return size


def _pick(flag, defaults: dict, key: str, fallback=None):
    """Explicit flags win over file values, which win over the fallback."""
    if flag is not None:
        return flag
    return defaults.get(key, fallback)


def resolve_config(
    pool: str | None = None,
    date: str | None = None,
    exclude_file: str | None = None,
    label: str | None = None,
    per_iteration=None,
    dry_run: bool | None = None,
    no_confirm: bool | None = None,
    show_queued: bool | None = None,
    show_excluded: bool | None = None,
    show_config: bool = False,
    verbose: bool = False,
    defaults: dict | None = None,
    now: datetime | None = None,
) -> SelectionConfig:
    defaults = defaults or {}
    if now is None:
        now = datetime.now()

    pool = _pick(pool, defaults, "pool")
    if not pool or not pool.strip():
        raise ConfigError("Pool name not provided. Example: -p tank")
    pool = pool.strip()
    if "@" in pool or "/" in pool:
        raise ConfigError(f"Invalid pool name {pool!r}: expected a bare pool name")

    exclude_file = _pick(exclude_file, defaults, "exclude_file") or None
    label = _pick(label, defaults, "label") or None

    return SelectionConfig(
        pool=pool,
        cutoff=parse_cutoff(_pick(date, defaults, "date"), now),
        label=label,
        batch_size=parse_batch_size(_pick(per_iteration, defaults, "per_iteration")),
        exclude_file=exclude_file,
        dry_run=bool(_pick(dry_run, defaults, "dry_run", False)),
        no_confirm=bool(_pick(no_confirm, defaults, "no_confirm", False)),
        show_queued=bool(_pick(show_queued, defaults, "show_queued", False)),
        show_excluded=bool(_pick(show_excluded, defaults, "show_excluded", False)),
        show_config=show_config,
        verbose=verbose,
    )


def load_exclusions(config: SelectionConfig) -> frozenset[str]:
    """Read the configured exclusion file, reporting I/O problems as ConfigError."""
    try:
        return read_exclusion_file(config.exclude_file)
    except OSError as e:
        raise ConfigError(f"Cannot read exclude file {config.exclude_file}: {e.strerror or e}")
    except UnicodeDecodeError as e:
        raise ConfigError(f"Cannot read exclude file {config.exclude_file}: not valid text ({e.reason})")


def format_config(config: SelectionConfig) -> list[str]:
    """Lines describing the resolved configuration; every field when show_config is set."""
    lines = [
        f"Pool: {config.pool}",
        f"Cut Off Date: {format_timestamp(config.cutoff)}",
        f"Exclude File: {config.exclude_file or ''}",
        f"Label (Filter): {config.label or ''}",
    ]
    if config.show_config:
        lines += [
            f"Show Queued: {config.show_queued}",
            f"Show Excluded: {config.show_excluded}",
            f"Dry Run: {config.dry_run}",
            f"Iteration Amount (Batch): {config.batch_size}",
            f"Ask For Confirmation: {not config.no_confirm}",
            f"Show Config: {config.show_config}",
        ]
    return lines

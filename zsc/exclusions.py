"""Exclusion list: snapshot names that must never be deleted."""
from __future__ import annotations

from typing import Iterable


def build_exclusion_set(lines: Iterable[str]) -> frozenset[str]:
    """Return the set of excluded names.

    Entries are matched verbatim against full snapshot names later on, so they
    are not parsed here: a malformed name can still be protected.
    Blank lines and lines starting with '#' are ignored.
    """
    names = set()
    for line in lines:
        entry = line.strip()
        if not entry or entry.startswith("#"):
            continue
        names.add(entry)
    return frozenset(names)


def read_exclusion_file(path: str | None) -> frozenset[str]:
    """Load an exclusion file. No path means nothing is excluded.

    OSError and UnicodeDecodeError are left to the caller, which reports them
    as a configuration error.
    """
    if not path:
        return frozenset()
    with open(path, encoding="utf-8") as f:
        return build_exclusion_set(f.read().splitlines())

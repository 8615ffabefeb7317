"""Selection: decide which snapshots go, which are protected, and batch them."""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, Sequence, TypeVar

from zsc.models import MalformedIdentifier, SelectionConfig, SelectionResult, Snapshot

T = TypeVar("T")


def parse_candidates(raw_names: Iterable[str]) -> tuple[list[Snapshot], list[str]]:
    """Parse raw names, returning (snapshots, skipped) in input order."""
    snapshots: list[Snapshot] = []
    skipped: list[str] = []
    for name in raw_names:
        try:
            snapshots.append(Snapshot.parse(name))
        except MalformedIdentifier:
            skipped.append(name)
    return snapshots, skipped


# ---------------------------------------------------------------------------
# Filters
# ---------------------------------------------------------------------------

def age_filter(snapshot: Snapshot, cutoff: datetime) -> bool:
    return snapshot.is_stale(cutoff)


def exclusion_filter(snapshot: Snapshot, excluded_names: frozenset[str]) -> bool:
    return snapshot.full_name not in excluded_names


def label_filter(snapshot: Snapshot, label: str | None) -> bool:
    if not label:
        return True
    return snapshot.label == label


@dataclass(frozen=True)
class FilterChain:
    """The three predicates bound to one run's policy."""
    pool: str
    cutoff: datetime
    excluded_names: frozenset[str] = frozenset()
    label: str | None = None

    @classmethod
    def from_config(cls, config: SelectionConfig, excluded_names: frozenset[str]) -> "FilterChain":
        return cls(
            pool=config.pool,
            cutoff=config.cutoff,
            excluded_names=excluded_names,
            label=config.label,
        )

    def is_candidate(self, snapshot: Snapshot) -> bool:
        """True if the snapshot belongs to the pool, is old enough and has the label."""
        return (
            snapshot.pool == self.pool
            and age_filter(snapshot, self.cutoff)
            and label_filter(snapshot, self.label)
        )

    def should_delete(self, snapshot: Snapshot) -> bool:
        return self.is_candidate(snapshot) and exclusion_filter(snapshot, self.excluded_names)


def select(
    snapshots: Sequence[Snapshot],
    chain: FilterChain,
    skipped: Sequence[str] = (),
) -> SelectionResult:
    """Partition snapshots into to_delete and excluded, keeping input order.

    A snapshot counts as excluded only when the exclusion list is the sole
    reason it survives.
    """
    to_delete: list[Snapshot] = []
    excluded: list[Snapshot] = []
    retained = 0

    for snap in snapshots:
        if not chain.is_candidate(snap):
            retained += 1
        elif exclusion_filter(snap, chain.excluded_names):
            to_delete.append(snap)
        else:
            excluded.append(snap)

    return SelectionResult(
        to_delete=tuple(to_delete),
        excluded=tuple(excluded),
        retained=retained,
        skipped=tuple(skipped),
    )


def make_batches(items: Sequence[T], batch_size: int) -> list[list[T]]:
    """Split items into consecutive chunks of at most batch_size."""
    if batch_size < 1:
        raise ValueError(f"batch_size must be >= 1, got {batch_size}")
    return [
        list(items[start:start + batch_size])
        for start in range(0, len(items), batch_size)
    ]

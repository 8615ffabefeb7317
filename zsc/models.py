"""Data models for zfs-snapshot-cleaner."""
from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime

# boot@2020-08-12-1237-49-CHECKPOINT
SNAPSHOT_FORMAT = "%Y-%m-%d-%H%M-%S"

DEFAULT_BATCH_SIZE = 100
DEFAULT_AGE_DAYS = 30

_SNAPSHOT_RE = re.compile(
    r"(?P<dataset>[^@]+)@"
    r"(?P<stamp>[0-9]{4}-[0-9]{2}-[0-9]{2}-[0-9]{4}-[0-9]{2})"
    r"-(?P<label>.+)"
)


class MalformedIdentifier(ValueError):
    """Raised when a snapshot name does not follow dataset@YYYY-mm-dd-HHMM-ss-LABEL."""
    def __init__(self, identifier: str, reason: str):
        self.identifier = identifier
        self.reason = reason
        super().__init__(f"Not a managed snapshot: {identifier!r} ({reason})")


def format_timestamp(timestamp: datetime) -> str:
    # strftime("%Y") does not zero-pad years before 1000 on every platform.
    return f"{timestamp.year:04d}-{timestamp.strftime('%m-%d-%H%M-%S')}"


def format_snapshot_name(dataset: str, timestamp: datetime, label: str) -> str:
    return f"{dataset}@{format_timestamp(timestamp)}-{label}"


@dataclass(frozen=True)
class Snapshot:
    """A managed snapshot: dataset@timestamp-label."""
    dataset: str
    timestamp: datetime
    label: str

    @property
    def pool(self) -> str:
        return self.dataset.split("/")[0]

    @property
    def suffix(self) -> str:
        """Everything after the '@'."""
        return f"{format_timestamp(self.timestamp)}-{self.label}"

    @property
    def full_name(self) -> str:
        return format_snapshot_name(self.dataset, self.timestamp, self.label)

    def is_stale(self, cutoff: datetime) -> bool:
        # Ties are kept.
        return self.timestamp < cutoff

    @classmethod
    def parse(cls, full_name: str) -> "Snapshot":
        match = _SNAPSHOT_RE.fullmatch(full_name)
        if match is None:
            if "@" not in full_name:
                raise MalformedIdentifier(full_name, "missing '@'")
            raise MalformedIdentifier(full_name, f"expected <dataset>@{SNAPSHOT_FORMAT}-<label>")
        dataset = match.group("dataset")
        if not dataset.split("/")[0]:
            raise MalformedIdentifier(full_name, "empty pool name")
        try:
            timestamp = datetime.strptime(match.group("stamp"), SNAPSHOT_FORMAT)
        except ValueError as e:
            raise MalformedIdentifier(full_name, f"invalid timestamp: {e}") from e
        return cls(dataset=dataset, timestamp=timestamp, label=match.group("label"))

    def __str__(self) -> str:
        return self.full_name


@dataclass(frozen=True)
class SelectionConfig:
    """Resolved policy for one run. Built once by zsc.config, never mutated."""
    pool: str
    cutoff: datetime
    label: str | None = None
    batch_size: int = DEFAULT_BATCH_SIZE
    exclude_file: str | None = None
    dry_run: bool = False
    no_confirm: bool = False
    show_queued: bool = False
    show_excluded: bool = False
    show_config: bool = False
    verbose: bool = False

    def __post_init__(self):
        if not self.pool:
            raise ValueError("pool must not be empty")
        if self.batch_size < 1:
            raise ValueError(f"batch_size must be >= 1, got {self.batch_size}")


@dataclass(frozen=True)
class SelectionResult:
    """Partition of the candidate list.

    to_delete and excluded keep the order the candidates were listed in.
    retained counts valid snapshots that are too young, carry another label
    or live in another pool. skipped holds names that failed to parse.
    """
    to_delete: tuple[Snapshot, ...] = ()
    excluded: tuple[Snapshot, ...] = ()
    retained: int = 0
    skipped: tuple[str, ...] = ()

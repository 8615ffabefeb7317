"""Clean run orchestration: select, report, confirm, then destroy in batches.

The run is a small state machine:

    COMPUTING -> REPORTING -> STOP                      (dry run, nothing to do)
                           -> CONFIRMING -> STOP        (user declined)
                           -> DELETING   -> DONE | FAILED

Each handler performs one transition and returns the next state, so tests can
drive a run one step at a time.
"""
from __future__ import annotations

import os
import sys
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Callable

from zsc import zfs
from zsc.config import format_config
from zsc.executor import ExecutorError
from zsc.models import SelectionResult, Snapshot
from zsc.selection import FilterChain, make_batches, parse_candidates, select

if TYPE_CHECKING:
    from zsc.executor import Executor
    from zsc.models import SelectionConfig

# ANSI color codes (respect NO_COLOR convention: https://no-color.org)
if os.environ.get("NO_COLOR") is not None:
    GREEN = RED = YELLOW = RESET = ""
else:
    GREEN = "\033[32m"
    RED = "\033[31m"
    YELLOW = "\033[33m"
    RESET = "\033[0m"


class State(Enum):
    COMPUTING = "computing"
    REPORTING = "reporting"
    CONFIRMING = "confirming"
    DELETING = "deleting"
    STOP = "stop"
    DONE = "done"
    FAILED = "failed"


TERMINAL_STATES = frozenset({State.STOP, State.DONE, State.FAILED})


class DeletionFailure(Exception):
    """A batch could not be destroyed; later batches were not attempted.

    deleted counts every snapshot destroyed before the failure, including the
    ones of the failing batch whose dataset was already processed.
    """
    def __init__(
        self,
        batch_index: int,
        batches_total: int,
        cause: ExecutorError,
        deleted: int = 0,
        partial: int = 0,
    ):
        self.batch_index = batch_index
        self.batches_total = batches_total
        self.cause = cause
        self.deleted = deleted
        self.partial = partial
        super().__init__(
            f"Batch {batch_index + 1} of {batches_total} failed: {cause}"
        )

    @property
    def batches_done(self) -> int:
        return self.batch_index


def _confirm(prompt: str) -> bool:
    """Ask the user yes/no. Return True if yes."""
    try:
        answer = input(f"{prompt} [y/N] ").strip().lower()
    except (EOFError, KeyboardInterrupt):
        print()
        return False
    return answer in ("y", "yes")


def calculate_percentage(done: int, total: int) -> float:
    if total == 0:
        return 100.0
    return done / total * 100.0


def delete_batches(
    batches: list[list[Snapshot]],
    executor: "Executor",
    on_progress: Callable[[int, int], None] | None = None,
) -> int:
    """Destroy batches strictly in order. Return the number of snapshots deleted.

    Raises DeletionFailure on the first failing batch.
    """
    total = sum(len(b) for b in batches)
    deleted = 0
    for index, batch in enumerate(batches):
        try:
            zfs.destroy_batch(batch, executor)
        except ExecutorError as e:
            partial = e.destroyed if isinstance(e, zfs.BatchDestroyError) else 0
            raise DeletionFailure(
                index, len(batches), e, deleted=deleted + partial, partial=partial,
            ) from e
        deleted += len(batch)
        if on_progress is not None:
            on_progress(deleted, total)
    return deleted


@dataclass(frozen=True)
class CleanOutcome:
    state: State
    result: SelectionResult
    batches_total: int = 0
    batches_done: int = 0
    deleted: int = 0
    error: str = ""

    @property
    def exit_code(self) -> int:
        return 1 if self.state is State.FAILED else 0


class CleanRun:
    """One invocation against one pool."""

    def __init__(
        self,
        config: "SelectionConfig",
        executor: "Executor",
        excluded_names: frozenset[str] = frozenset(),
        confirm: Callable[[str], bool] = _confirm,
    ):
        self.config = config
        self.executor = executor
        self.chain = FilterChain.from_config(config, excluded_names)
        self.confirm = confirm
        self.state = State.COMPUTING
        self.result = SelectionResult()
        self.batches: list[list[Snapshot]] = []
        self.batches_done = 0
        self.deleted = 0
        self.error = ""

    def run(self) -> CleanOutcome:
        while self.state not in TERMINAL_STATES:
            self.step()
        return self.outcome()

    def step(self) -> State:
        handlers = {
            State.COMPUTING: self._compute,
            State.REPORTING: self._report,
            State.CONFIRMING: self._confirm_gate,
            State.DELETING: self._delete,
        }
        if self.state in TERMINAL_STATES:
            return self.state
        self.state = handlers[self.state]()
        return self.state

    def outcome(self) -> CleanOutcome:
        return CleanOutcome(
            state=self.state,
            result=self.result,
            batches_total=len(self.batches),
            batches_done=self.batches_done,
            deleted=self.deleted,
            error=self.error,
        )

    # --- handlers ---

    def _compute(self) -> State:
        # ExecutorError from listing propagates: nothing has been touched yet.
        raw_names = zfs.list_snapshot_names(
            self.config.pool, self.executor, label=self.config.label,
        )
        snapshots, skipped = parse_candidates(raw_names)
        self.result = select(snapshots, self.chain, skipped)
        self.batches = make_batches(self.result.to_delete, self.config.batch_size)
        return State.REPORTING

    def _report(self) -> State:
        result = self.result

        for name in result.skipped:
            print(f"{YELLOW}Snapshot is not in the managed format. Skipping: {name}{RESET}",
                  file=sys.stderr)

        if self.config.show_queued:
            print("These snapshots are QUEUED for REMOVAL:")
            print("-" * 16)
            for snap in result.to_delete:
                print(snap.full_name)
            print()

        if self.config.show_excluded:
            print("These snapshots are EXCLUDED from REMOVAL:")
            print("-" * 16)
            for snap in result.excluded:
                print(snap.full_name)
            print()

        print(f"Amount of Snapshots to Remove: {len(result.to_delete)}")
        print(f"Amount of Snapshots to Exclude: {len(result.excluded)}")
        if result.skipped:
            print(f"Amount of Unrecognized Snapshots: {len(result.skipped)}")
        print()

        if self.config.dry_run:
            print(f"[dry-run] Would delete {len(result.to_delete)} snapshot(s) "
                  f"in {len(self.batches)} batch(es).")
            return State.STOP
        if not result.to_delete:
            print(f"{GREEN}Your pool is already clean. Take care!{RESET}")
            return State.STOP
        if self.config.no_confirm:
            return State.DELETING
        return State.CONFIRMING

    def _confirm_gate(self) -> State:
        if self.confirm("Do you want to delete the above snapshots?"):
            return State.DELETING
        print("Nothing will be deleted. Take care!")
        return State.STOP

    def _delete(self) -> State:
        print(f"Cleaning {len(self.result.to_delete)} snapshot(s) "
              f"in {len(self.batches)} batch(es) of up to {self.config.batch_size} ...\n")

        def progress(done: int, total: int) -> None:
            self.batches_done += 1
            self.deleted = done
            pct = calculate_percentage(done, total)
            print(f"Deleted | {pct:6.2f}% <=> [{done}/{total}]")

        try:
            delete_batches(self.batches, self.executor, on_progress=progress)
        except DeletionFailure as e:
            self.error = str(e)
            self.deleted = e.deleted
            print(f"\n{RED}ERROR: {e}{RESET}", file=sys.stderr)
            print(
                f"{RED}{e.batches_done} of {e.batches_total} batch(es) completed "
                f"({self.deleted} snapshot(s) deleted, {e.partial} of them from the "
                f"failed batch) before the failure; "
                f"remaining batches were not attempted.{RESET}",
                file=sys.stderr,
            )
            return State.FAILED

        print(f"\n{GREEN}Deleted {self.deleted} snapshot(s) "
              f"in {self.batches_done} batch(es).{RESET}")
        return State.DONE


def print_config(config: "SelectionConfig") -> None:
    print("Configuration")
    print("-" * 16)
    for line in format_config(config):
        print(line)
    print()


def run_clean(
    config: "SelectionConfig",
    executor: "Executor",
    excluded_names: frozenset[str] = frozenset(),
    confirm: Callable[[str], bool] = _confirm,
) -> CleanOutcome:
    """Run a full clean and return its outcome."""
    print_config(config)
    return CleanRun(config, executor, excluded_names, confirm).run()

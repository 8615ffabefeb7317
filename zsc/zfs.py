"""ZFS operations using an Executor for dependency injection."""
from __future__ import annotations

from typing import TYPE_CHECKING

from zsc.executor import ExecutorError

if TYPE_CHECKING:
    from zsc.executor import Executor
    from zsc.models import Snapshot


def list_snapshot_names(
    pool: str,
    executor: "Executor",
    label: str | None = None,
) -> list[str]:
    """Return raw snapshot names under a pool, sorted by name.

    Names are returned unparsed so that malformed ones can be reported by the
    caller. With a label, names that cannot carry it are dropped early.
    """
    output = executor.run([
        "zfs", "list", "-H", "-o", "name", "-t", "snapshot", "-s", "name", "-r", pool,
    ])
    results = []
    for line in output.splitlines():
        name = line.strip()
        if not name:
            continue
        if label and not name.endswith(f"-{label}"):
            continue
        results.append(name)
    return results


def group_by_dataset(snapshots: list["Snapshot"]) -> list[tuple[str, list["Snapshot"]]]:
    """Group snapshots per dataset, datasets in order of first appearance."""
    groups: dict[str, list["Snapshot"]] = {}
    for snap in snapshots:
        groups.setdefault(snap.dataset, []).append(snap)
    return list(groups.items())


def build_destroy_argument(dataset: str, snapshots: list["Snapshot"]) -> str:
    """Return the comma form accepted by zfs destroy.

    Example: tank/os@2020-07-13-2354-09-A,2020-05-01-1100-00-A
    """
    return f"{dataset}@" + ",".join(s.suffix for s in snapshots)


class BatchDestroyError(ExecutorError):
    """A zfs destroy inside a batch failed after `destroyed` snapshots were already gone."""
    def __init__(self, cause: ExecutorError, destroyed: int):
        super().__init__(cause.cmd, cause.returncode, cause.stderr)
        self.destroyed = destroyed


def destroy_batch(
    snapshots: list["Snapshot"],
    executor: "Executor",
) -> int:
    """Destroy one batch, one zfs destroy per dataset. Return the number destroyed.

    Commands run one after the other. The first failure raises
    BatchDestroyError carrying how many snapshots of this batch were already
    destroyed; the remaining datasets of the batch are left untouched.
    """
    destroyed = 0
    for dataset, group in group_by_dataset(snapshots):
        try:
            executor.run(["zfs", "destroy", build_destroy_argument(dataset, group)])
        except ExecutorError as e:
            raise BatchDestroyError(e, destroyed) from e
        destroyed += len(group)
    return destroyed

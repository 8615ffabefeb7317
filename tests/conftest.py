"""MockExecutor and shared fixtures for testing."""
from __future__ import annotations

from datetime import datetime

import pytest


class MockExecutor:
    """
    Executor that returns pre-scripted responses for commands.

    responses: dict mapping tuple(cmd) -> stdout string, or an Exception to raise.
    If the command isn't found, raises KeyError (to catch unexpected calls in tests).

    Pass verbose=True to print every command that goes through the executor.
    """

    def __init__(self, responses: dict | None = None, is_verbose: bool = False):
        self.responses: dict = responses or {}
        self.verbose = is_verbose
        self.calls: list[list[str]] = []  # record of all commands run

    def run(self, cmd: list[str]) -> str:
        self.calls.append(cmd)
        if self.verbose:
            import shlex
            print(f"  [mock.run] {shlex.join(cmd)}")
        key = tuple(cmd)
        if key not in self.responses:
            raise KeyError(f"MockExecutor: unexpected command: {cmd}")
        result = self.responses[key]
        if isinstance(result, Exception):
            raise result
        return result

    @property
    def destroy_calls(self) -> list[list[str]]:
        return [c for c in self.calls if c[0:2] == ["zfs", "destroy"]]


# ---------------------------------------------------------------------------
# Snapshot data modeled on a small desktop pool
# ---------------------------------------------------------------------------

TANK_SNAPS = [
    "tank@2020-01-01-2354-09-CHECKPOINT",
    "tank/gentoo/home@2020-04-25-1300-15-CHECKPOINT",
    "tank/gentoo/os@2020-05-01-1100-00-CHECKPOINT",
    "tank/gentoo/os@2020-07-13-2354-09-CHECKPOINT",
    "tank/gentoo/os@2020-08-13-2354-09-CHECKPOINT",
    "tank/gentoo/os@2020-08-14-0900-00-NIGHTLY",
]

# Cutoff between 2020-07-13 and 2020-08-13.
CUTOFF = datetime(2020, 8, 1, 0, 0, 0)


def _snap_list_output(full_names: list[str]) -> str:
    return "\n".join(full_names) + "\n"


def list_cmd(pool: str) -> tuple:
    return ("zfs", "list", "-H", "-o", "name", "-t", "snapshot", "-s", "name", "-r", pool)


def make_list_responses(pool: str = "tank", snaps: list[str] | None = None) -> dict:
    if snaps is None:
        snaps = TANK_SNAPS
    return {list_cmd(pool): _snap_list_output(snaps)}


@pytest.fixture
def verbose(request):
    """True if -v was passed to pytest."""
    return request.config.getoption("--verbose", default=False)

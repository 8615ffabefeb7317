"""Executor protocol and the local implementation used to run zfs."""
from __future__ import annotations

import shlex
import subprocess
from typing import Protocol, runtime_checkable


class ExecutorError(Exception):
    """Raised when a command cannot be started or exits with a non-zero status."""
    def __init__(self, cmd: list[str], returncode: int, stderr: str):
        self.cmd = cmd
        self.returncode = returncode
        self.stderr = stderr
        super().__init__(
            f"Command {shlex.join(cmd)!r} exited {returncode}: {stderr.strip()}"
        )


@runtime_checkable
class Executor(Protocol):
    def run(self, cmd: list[str]) -> str:
        """Run a command to completion, return stdout. Raise ExecutorError on failure."""
        raise NotImplementedError


class LocalExecutor:
    """Run commands on this machine, echoing them first when verbose."""

    def __init__(self, verbose: bool = False):
        self.verbose = verbose

    def run(self, cmd: list[str]) -> str:
        if self.verbose:
            print(f"  [run] {shlex.join(cmd)}")
        try:
            result = subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                check=False,
            )
        except OSError as e:
            # 127 is what a shell reports for a missing binary
            raise ExecutorError(cmd, 127, str(e)) from e
        if result.returncode != 0:
            raise ExecutorError(cmd, result.returncode, result.stderr)
        return result.stdout

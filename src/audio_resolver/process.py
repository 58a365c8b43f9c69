"""Process runner -- bounded-time subprocess execution with output to a log file."""

from __future__ import annotations

import os
import signal
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol, Sequence

from loguru import logger

log = logger.bind(stage="process")


@dataclass(frozen=True)
class ProcessOutcome:
    returncode: int | None
    timed_out: bool = False

    @property
    def ok(self) -> bool:
        return not self.timed_out and self.returncode == 0


class ProcessRunner(Protocol):
    def run(
        self, cmd: Sequence[str], log_path: Path, timeout: float
    ) -> ProcessOutcome: ...


def _kill_tree(proc: subprocess.Popen) -> None:
    """Kill the process and everything it started.

    On POSIX the child leads its own session, so its pid is the process
    group id shared by any helpers a wrapper script spawned.
    """
    if os.name != "posix":
        proc.kill()
        return
    try:
        os.killpg(proc.pid, signal.SIGKILL)
    except ProcessLookupError:
        # Group already gone; reap the leader below
        pass


class SubprocessRunner:
    """Runs a command with stdout+stderr redirected to `log_path`.

    If the process is still alive after `timeout` seconds its whole process
    group is killed and the leader reaped before returning, so nothing it
    started outlives the call.
    """

    def run(self, cmd: Sequence[str], log_path: Path, timeout: float) -> ProcessOutcome:
        log.debug(f"Running: {' '.join(cmd)}")
        with open(log_path, "wb") as log_fh:
            proc = subprocess.Popen(
                list(cmd),
                stdin=subprocess.DEVNULL,
                stdout=log_fh,
                stderr=subprocess.STDOUT,
                start_new_session=os.name == "posix",
            )
            try:
                returncode = proc.wait(timeout=timeout)
            except subprocess.TimeoutExpired:
                _kill_tree(proc)
                proc.wait()
                log.debug(f"Killed process group of pid {proc.pid} after {timeout:g}s")
                return ProcessOutcome(returncode=proc.returncode, timed_out=True)
        return ProcessOutcome(returncode=returncode)

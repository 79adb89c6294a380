"""Run an external command and classify how it terminated.

Both the prefix lookup and the ``ip route`` backend go through
:func:`run_command`, so spawn failures, non-zero exits and signals are told
apart in exactly one place.
"""

from __future__ import annotations

import logging
import signal
import subprocess
from dataclasses import dataclass
from enum import Enum, auto
from typing import Callable, Optional, Sequence, Tuple

LOG = logging.getLogger(__name__)


class OutcomeKind(Enum):
    SUCCESS = auto()
    EXIT = auto()
    SIGNAL = auto()
    SPAWN_FAILURE = auto()


@dataclass(frozen=True)
class CommandOutcome:
    """Classified result of a single external invocation."""

    argv: Tuple[str, ...]
    kind: OutcomeKind
    returncode: Optional[int] = None
    signal: Optional[int] = None
    stdout: str = ""
    stderr: str = ""
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.kind is OutcomeKind.SUCCESS

    @property
    def command_line(self) -> str:
        return " ".join(self.argv)

    def describe(self) -> str:
        """Human readable one-liner used in log messages and summaries."""

        if self.kind is OutcomeKind.SUCCESS:
            return "succeeded"
        if self.kind is OutcomeKind.EXIT:
            detail = f"exit code {self.returncode}"
            if self.stderr.strip():
                detail += f": {self.stderr.strip()}"
            return detail
        if self.kind is OutcomeKind.SIGNAL:
            try:
                name = signal.Signals(self.signal).name
            except ValueError:
                name = str(self.signal)
            return f"terminated by signal {name}"
        return f"could not be started: {self.error}"


Executor = Callable[[Sequence[str]], CommandOutcome]


def run_command(argv: Sequence[str]) -> CommandOutcome:
    """Run ``argv`` to completion and return its classified outcome.

    The call blocks until the command exits; no timeout is applied.
    """

    argv = tuple(argv)
    LOG.info("Executing: %s", " ".join(argv))
    try:
        # Tool output is not guaranteed to be UTF-8.
        proc = subprocess.run(
            argv,
            check=False,
            text=True,
            encoding="utf-8",
            errors="replace",
            capture_output=True,
        )
    except OSError as exc:
        return CommandOutcome(argv=argv, kind=OutcomeKind.SPAWN_FAILURE, error=str(exc))

    if proc.returncode == 0:
        kind = OutcomeKind.SUCCESS
    elif proc.returncode < 0:
        return CommandOutcome(
            argv=argv,
            kind=OutcomeKind.SIGNAL,
            signal=-proc.returncode,
            stdout=proc.stdout,
            stderr=proc.stderr,
        )
    else:
        kind = OutcomeKind.EXIT
    return CommandOutcome(
        argv=argv,
        kind=kind,
        returncode=proc.returncode,
        stdout=proc.stdout,
        stderr=proc.stderr,
    )

"""Prefix lookups through ``bgpq4``/``bgpq3``."""

from __future__ import annotations

from typing import List, Optional, Sequence

from .command import CommandOutcome, Executor, run_command
from .config import AddressFamily

DEFAULT_LOOKUP_COMMAND = "bgpq4"
# bgpq expands the ``\n`` escape itself.
DEFAULT_PREFIX_FORMAT = "%n/%l\\n"


def extract_prefixes(output: str) -> List[str]:
    """Return the ``address/length`` lines of ``output`` in order.

    Anything else the tool prints is ignored.
    """

    prefixes = []
    for line in output.splitlines():
        line = line.strip()
        if line and "/" in line:
            prefixes.append(line)
    return prefixes


class BgpqLookup:
    """Query the aggregated prefixes an AS announces, one family at a time."""

    def __init__(
        self,
        command: str = DEFAULT_LOOKUP_COMMAND,
        *,
        prefix_format: str = DEFAULT_PREFIX_FORMAT,
        extra_args: Sequence[str] = (),
        executor: Optional[Executor] = None,
    ) -> None:
        self._command = command
        self._prefix_format = prefix_format
        self._extra_args = tuple(extra_args)
        self._executor = executor or run_command

    @property
    def command(self) -> str:
        return self._command

    def build_argv(self, asn_number: str, family: AddressFamily) -> List[str]:
        return [
            self._command,
            family.flag,
            "-A",
            "-F",
            self._prefix_format,
            *self._extra_args,
            f"AS{asn_number}",
        ]

    def query(self, asn_number: str, family: AddressFamily) -> CommandOutcome:
        """Run the lookup for the bare numeric ``asn_number``."""

        return self._executor(self.build_argv(asn_number, family))

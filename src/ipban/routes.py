"""Routing-table backends used to install and remove blackhole routes.

Two backends are available:

* :class:`IpRouteTable` shells out to iproute2 (``ip route add|del blackhole``)
  and classifies the outcome by exit status;
* :class:`NetlinkRouteTable` talks to the kernel directly through pyroute2.

Each backend reports a :class:`MutationOutcome` per request and knows which of
its own failure signals mean "the route to delete was not there".
"""

from __future__ import annotations

import errno
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum, auto
from typing import Dict, FrozenSet, List, Optional, Type

import pyroute2
from pyroute2.netlink.exceptions import NetlinkError

from .command import Executor, run_command
from .config import AddressFamily

LOG = logging.getLogger(__name__)

ADD = "add"
DELETE = "del"

# From /usr/include/linux/rtnetlink.h
RTN_BLACKHOLE = 6


class MutationStatus(Enum):
    APPLIED = auto()
    ABSENT = auto()
    FAILED = auto()


@dataclass(frozen=True)
class MutationOutcome:
    """Result of a single add/delete request."""

    operation: str
    family: AddressFamily
    prefix: str
    status: MutationStatus
    detail: str = ""


class RouteTable(ABC):
    """Base class for routing-table backends."""

    name = "base"

    @abstractmethod
    def mutate(self, operation: str, family: AddressFamily, prefix: str) -> MutationOutcome:
        """Apply ``operation`` (``add`` or ``del``) for a blackhole ``prefix``."""

    @abstractmethod
    def list_blackholes(self, family: AddressFamily) -> List[str]:
        """Return the blackhole routes currently installed for ``family``."""

    def add_blackhole(self, family: AddressFamily, prefix: str) -> MutationOutcome:
        return self.mutate(ADD, family, prefix)

    def delete_blackhole(self, family: AddressFamily, prefix: str) -> MutationOutcome:
        return self.mutate(DELETE, family, prefix)


class IpRouteTable(RouteTable):
    """Backend driving the iproute2 ``ip`` binary."""

    name = "iproute2"
    # ``ip route del`` exit codes that mean the route did not exist.
    ABSENT_EXIT_CODES: FrozenSet[int] = frozenset({2, 254})

    def __init__(self, ip_command: str = "ip", executor: Optional[Executor] = None) -> None:
        self._ip_command = ip_command
        self._executor = executor or run_command

    def mutate(self, operation: str, family: AddressFamily, prefix: str) -> MutationOutcome:
        outcome = self._executor(
            [self._ip_command, family.flag, "route", operation, "blackhole", prefix]
        )
        if outcome.ok:
            return MutationOutcome(operation, family, prefix, MutationStatus.APPLIED)

        if (
            operation == DELETE
            and outcome.returncode is not None
            and outcome.returncode in self.ABSENT_EXIT_CODES
        ):
            LOG.info(
                "Command likely failed because route didn't exist: %s (exit code: %d)",
                outcome.command_line,
                outcome.returncode,
            )
            return MutationOutcome(
                operation, family, prefix, MutationStatus.ABSENT, outcome.describe()
            )

        LOG.error("Error executing command: %s (%s)", outcome.command_line, outcome.describe())
        return MutationOutcome(
            operation, family, prefix, MutationStatus.FAILED, outcome.describe()
        )

    def list_blackholes(self, family: AddressFamily) -> List[str]:
        outcome = self._executor(
            [self._ip_command, family.flag, "route", "show", "type", "blackhole"]
        )
        if not outcome.ok:
            LOG.warning(
                "Could not list %s blackhole routes: %s", family.label, outcome.describe()
            )
            return []
        return [line.strip() for line in outcome.stdout.splitlines() if line.strip()]


class NetlinkRouteTable(RouteTable):
    """Backend issuing the route requests over netlink with pyroute2."""

    name = "netlink"
    ABSENT_ERRNOS: FrozenSet[int] = frozenset({errno.ESRCH, errno.ENOENT})

    def mutate(self, operation: str, family: AddressFamily, prefix: str) -> MutationOutcome:
        LOG.info("Executing: netlink %s route %s blackhole %s", family.label, operation, prefix)
        try:
            with pyroute2.IPRoute() as ipr:
                ipr.route(
                    operation,
                    dst=prefix,
                    type="blackhole",
                    family=family.socket_family,
                )
        except NetlinkError as exc:
            detail = f"netlink error {exc.code}: {exc}"
            if operation == DELETE and exc.code in self.ABSENT_ERRNOS:
                LOG.info("Route %s didn't exist (%s)", prefix, detail)
                return MutationOutcome(
                    operation, family, prefix, MutationStatus.ABSENT, detail
                )
            LOG.error("Netlink %s of blackhole %s failed: %s", operation, prefix, detail)
            return MutationOutcome(operation, family, prefix, MutationStatus.FAILED, detail)
        except (OSError, ValueError) as exc:
            LOG.error("Netlink %s of blackhole %s failed: %s", operation, prefix, exc)
            return MutationOutcome(operation, family, prefix, MutationStatus.FAILED, str(exc))

        return MutationOutcome(operation, family, prefix, MutationStatus.APPLIED)

    def list_blackholes(self, family: AddressFamily) -> List[str]:
        routes: List[str] = []
        try:
            with pyroute2.IPRoute() as ipr:
                dump = ipr.get_routes(family=family.socket_family, type=RTN_BLACKHOLE)
                for route in dump:
                    dst = route.get_attr("RTA_DST")
                    if not dst:
                        routes.append("blackhole default")
                        continue
                    routes.append(f"blackhole {dst}/{route.get('dst_len')}")
        except (NetlinkError, OSError) as exc:
            LOG.warning("Could not list %s blackhole routes: %s", family.label, exc)
            return []
        return routes


ROUTE_TABLES: Dict[str, Type[RouteTable]] = {
    IpRouteTable.name: IpRouteTable,
    NetlinkRouteTable.name: NetlinkRouteTable,
}


def build_route_table(backend: str, *, ip_command: str = "ip") -> RouteTable:
    """Instantiate the routing-table backend registered as ``backend``."""

    if backend not in ROUTE_TABLES:
        raise ValueError(f"unsupported route table backend '{backend}'")
    if backend == IpRouteTable.name:
        return IpRouteTable(ip_command=ip_command)
    return ROUTE_TABLES[backend]()

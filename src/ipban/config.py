"""Data structures shared by the parser, expander and reconciler.

These light-weight classes describe the route set a single run works on. The
whole model is rebuilt from scratch on every invocation; nothing here is
persisted between runs.
"""

from __future__ import annotations

import socket
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterable, Iterator, List

from .exceptions import RouteSetFrozenError


class AddressFamily(Enum):
    """Address families handled by the engine.

    The declaration order is the order in which families are reconciled.
    """

    IPV4 = 4
    IPV6 = 6

    @property
    def flag(self) -> str:
        """Command line switch selecting the family (``-4`` / ``-6``)."""

        return f"-{self.value}"

    @property
    def socket_family(self) -> int:
        return socket.AF_INET if self is AddressFamily.IPV4 else socket.AF_INET6

    @property
    def label(self) -> str:
        return f"IPv{self.value}"


class OrderedUniqueSet:
    """Insertion-ordered collection of unique strings."""

    def __init__(self, values: Iterable[str] = ()) -> None:
        # ``dict`` keeps insertion order, the values are unused.
        self._items: Dict[str, None] = {}
        self._frozen = False
        for value in values:
            self.add(value)

    def add(self, value: str) -> bool:
        """Insert ``value`` and return ``True`` if it was not already present."""

        if self._frozen:
            raise RouteSetFrozenError(f"cannot add {value} to a frozen set")
        if value in self._items:
            return False
        self._items[value] = None
        return True

    def freeze(self) -> None:
        self._frozen = True

    @property
    def frozen(self) -> bool:
        return self._frozen

    def as_list(self) -> List[str]:
        return list(self._items)

    def __contains__(self, value: object) -> bool:
        return value in self._items

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._items))

    def __len__(self) -> int:
        return len(self._items)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, OrderedUniqueSet):
            return NotImplemented
        return self.as_list() == other.as_list()

    def __repr__(self) -> str:
        return f"OrderedUniqueSet({self.as_list()!r})"


class RouteSet:
    """Deduplicated blackhole prefixes, one ordered collection per family."""

    def __init__(self) -> None:
        self._prefixes: Dict[AddressFamily, OrderedUniqueSet] = {
            family: OrderedUniqueSet() for family in AddressFamily
        }

    @property
    def ipv4(self) -> OrderedUniqueSet:
        return self._prefixes[AddressFamily.IPV4]

    @property
    def ipv6(self) -> OrderedUniqueSet:
        return self._prefixes[AddressFamily.IPV6]

    @property
    def frozen(self) -> bool:
        return all(prefixes.frozen for prefixes in self._prefixes.values())

    def add(self, family: AddressFamily, prefix: str) -> bool:
        """Insert ``prefix`` under ``family``; return whether it was new."""

        return self._prefixes[family].add(prefix)

    def for_family(self, family: AddressFamily) -> OrderedUniqueSet:
        return self._prefixes[family]

    def freeze(self) -> None:
        """Stop accepting new prefixes; the set is read-only from here on."""

        for prefixes in self._prefixes.values():
            prefixes.freeze()

    def __len__(self) -> int:
        return sum(len(prefixes) for prefixes in self._prefixes.values())

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, RouteSet):
            return NotImplemented
        return self._prefixes == other._prefixes


@dataclass(frozen=True)
class SectionNames:
    """Section identifiers that select the routes/ASN lists of a document.

    Attributes
    ----------
    ipv4_routes:
        Section whose ``routes`` key holds IPv4 prefixes.
    ipv6_routes:
        Section whose ``routes`` key holds IPv6 prefixes.
    asn_block:
        Section whose ``as_numbers`` key holds ASNs to expand and block.
    """

    ipv4_routes: str = "ipv4_routes"
    ipv6_routes: str = "ipv6_routes"
    asn_block: str = "asn_block"

    routes_key = "routes"
    asn_key = "as_numbers"


@dataclass
class ParsedConfig:
    """Outcome of parsing a routes document."""

    routes: RouteSet = field(default_factory=RouteSet)
    asns: OrderedUniqueSet = field(default_factory=OrderedUniqueSet)
    warnings: int = 0

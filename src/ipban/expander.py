"""Expand ASNs into the prefixes they announce.

Every ASN is looked up once per address family and the resulting prefixes are
merged into the run's :class:`~ipban.config.RouteSet`. Prefixes already
present, whether literal or from an earlier ASN, are dropped.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List

from .config import AddressFamily, RouteSet
from .lookup import BgpqLookup, extract_prefixes
from .parser import normalize_asn

LOG = logging.getLogger(__name__)


@dataclass
class AsnExpansion:
    """Per-ASN lookup bookkeeping."""

    asn: str
    number: str = ""
    seen: Dict[AddressFamily, int] = field(default_factory=dict)
    inserted: Dict[AddressFamily, int] = field(default_factory=dict)
    failed_families: List[AddressFamily] = field(default_factory=list)
    skipped: bool = False

    @property
    def failed(self) -> bool:
        return bool(self.failed_families)

    @property
    def total_inserted(self) -> int:
        return sum(self.inserted.values())


@dataclass
class ExpansionReport:
    asns: List[AsnExpansion] = field(default_factory=list)

    @property
    def total_inserted(self) -> int:
        return sum(entry.total_inserted for entry in self.asns)

    @property
    def failed_asns(self) -> List[str]:
        return [entry.asn for entry in self.asns if entry.failed]

    @property
    def skipped_asns(self) -> List[str]:
        return [entry.asn for entry in self.asns if entry.skipped]


class PrefixExpander:
    """Fold the prefixes announced by ASNs into a route set."""

    def __init__(self, lookup: BgpqLookup) -> None:
        self._lookup = lookup

    def expand(self, asns: Iterable[str], routes: RouteSet) -> ExpansionReport:
        report = ExpansionReport()
        for asn in asns:
            report.asns.append(self.expand_one(asn, routes))

        LOG.info(
            "Finished fetching ASN prefixes; added %d prefixes from ASN lookups",
            report.total_inserted,
        )
        if report.failed_asns:
            LOG.warning(
                "%d ASN prefix lookup(s) failed (%s); route list may be incomplete",
                len(report.failed_asns),
                ", ".join(report.failed_asns),
            )
        if report.skipped_asns:
            LOG.warning(
                "%d ASN(s) skipped as invalid: %s",
                len(report.skipped_asns),
                ", ".join(report.skipped_asns),
            )
        return report

    def expand_one(self, asn: str, routes: RouteSet) -> AsnExpansion:
        entry = AsnExpansion(asn=asn)
        number = normalize_asn(asn)
        if number is None:
            LOG.warning("Invalid ASN format '%s', skipping fetch", asn)
            entry.skipped = True
            return entry
        entry.number = number

        LOG.info("Fetching prefixes for AS%s", number)
        for family in AddressFamily:
            outcome = self._lookup.query(number, family)
            if not outcome.ok:
                LOG.warning(
                    "%s lookup for AS%s failed: '%s' %s",
                    family.label,
                    number,
                    outcome.command_line,
                    outcome.describe(),
                )
                entry.failed_families.append(family)
                continue

            prefixes = extract_prefixes(outcome.stdout)
            entry.seen[family] = len(prefixes)
            inserted = 0
            for prefix in prefixes:
                if routes.add(family, prefix):
                    inserted += 1
                    LOG.debug("Adding %s prefix from AS%s: %s", family.label, number, prefix)
            entry.inserted[family] = inserted

        if not entry.failed and not any(entry.seen.values()):
            LOG.info(
                "No prefixes found for AS%s via %s", number, self._lookup.command
            )
        return entry

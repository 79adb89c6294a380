"""Delete-then-add reconciliation of blackhole routes."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, List

from .config import AddressFamily, RouteSet
from .routes import ADD, DELETE, MutationOutcome, MutationStatus, RouteTable

LOG = logging.getLogger(__name__)


@dataclass
class ReconcileSummary:
    """Counts of mutation outcomes for one run."""

    counts: Dict[str, Dict[MutationStatus, int]] = field(
        default_factory=lambda: {
            op: {status: 0 for status in MutationStatus} for op in (DELETE, ADD)
        }
    )
    failed: List[MutationOutcome] = field(default_factory=list)

    def record(self, outcome: MutationOutcome) -> None:
        self.counts[outcome.operation][outcome.status] += 1
        if outcome.status is MutationStatus.FAILED:
            self.failed.append(outcome)

    @property
    def deletes_applied(self) -> int:
        return self.counts[DELETE][MutationStatus.APPLIED]

    @property
    def deletes_absent(self) -> int:
        return self.counts[DELETE][MutationStatus.ABSENT]

    @property
    def delete_failures(self) -> int:
        return self.counts[DELETE][MutationStatus.FAILED]

    @property
    def adds_applied(self) -> int:
        return self.counts[ADD][MutationStatus.APPLIED]

    @property
    def add_failures(self) -> int:
        return self.counts[ADD][MutationStatus.FAILED]

    @property
    def failures(self) -> int:
        return len(self.failed)


class Reconciler:
    """Bring the routing table in line with a frozen :class:`RouteSet`.

    For each family, IPv4 first, every prefix is deleted and then re-added.
    A failing request is logged and counted; the pass always moves on to the
    next prefix and nothing is retried.
    """

    def __init__(self, route_table: RouteTable) -> None:
        self._route_table = route_table

    def reconcile(self, routes: RouteSet) -> ReconcileSummary:
        summary = ReconcileSummary()
        for family in AddressFamily:
            prefixes = routes.for_family(family).as_list()
            if not prefixes:
                LOG.info("No %s routes to manage", family.label)
                continue
            self._run_pass(DELETE, family, prefixes, summary)
            self._run_pass(ADD, family, prefixes, summary)

        LOG.info(
            "Reconciliation finished: %d deleted, %d already absent, %d added, "
            "%d delete failure(s), %d add failure(s)",
            summary.deletes_applied,
            summary.deletes_absent,
            summary.adds_applied,
            summary.delete_failures,
            summary.add_failures,
        )
        for outcome in summary.failed:
            LOG.warning(
                "failed: %s %s blackhole %s (%s)",
                outcome.family.label,
                outcome.operation,
                outcome.prefix,
                outcome.detail,
            )
        return summary

    def _run_pass(
        self,
        operation: str,
        family: AddressFamily,
        prefixes: List[str],
        summary: ReconcileSummary,
    ) -> None:
        if operation == DELETE:
            verb, request = "delete", self._route_table.delete_blackhole
        else:
            verb, request = "add", self._route_table.add_blackhole
        LOG.info("Attempting to %s %d %s blackhole routes", verb, len(prefixes), family.label)
        for prefix in prefixes:
            summary.record(request(family, prefix))

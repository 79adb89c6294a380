"""Run orchestrator for the blackhole route reconciler.

A run reads the routes document, expands the configured ASNs, freezes the
resulting route set and hands it to the reconciler. Only a failure to read the
document aborts the run; every other problem is logged, counted and skipped.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from .config import AddressFamily, ParsedConfig, SectionNames
from .exceptions import ConfigReadError
from .expander import ExpansionReport, PrefixExpander
from .parser import parse_config
from .reconciler import ReconcileSummary, Reconciler
from .routes import RouteTable

LOG = logging.getLogger(__name__)


@dataclass
class RunReport:
    """Everything a run produced, for callers and tests."""

    config: ParsedConfig
    expansion: ExpansionReport
    summary: ReconcileSummary


class BlackholeDriver:
    """Wire the parser, expander and reconciler together for one run."""

    def __init__(
        self,
        route_table: RouteTable,
        expander: PrefixExpander,
        sections: Optional[SectionNames] = None,
        *,
        show_routes: bool = True,
    ) -> None:
        self._route_table = route_table
        self._expander = expander
        self._sections = sections or SectionNames()
        self._reconciler = Reconciler(route_table)
        self._show_routes = show_routes

    def load(self, path: Path) -> ParsedConfig:
        """Read and parse the routes document at ``path``.

        Raises :class:`ConfigReadError` if the file cannot be read.
        """

        LOG.info("Reading configuration from %s", path)
        try:
            # Non-UTF-8 bytes only spoil the tokens that contain them.
            text = Path(path).read_text(encoding="utf-8", errors="replace")
        except OSError as exc:
            raise ConfigReadError(path, str(exc)) from exc

        parsed = parse_config(text, self._sections)
        LOG.info(
            "Read %d direct IPv4 routes, %d direct IPv6 routes and %d ASNs to block",
            len(parsed.routes.ipv4),
            len(parsed.routes.ipv6),
            len(parsed.asns),
        )
        return parsed

    def run(self, path: Path) -> RunReport:
        parsed = self.load(path)
        routes = parsed.routes

        expansion = self._expander.expand(parsed.asns, routes)
        for family in AddressFamily:
            LOG.info(
                "Total unique %s routes to manage: %d",
                family.label,
                len(routes.for_family(family)),
            )
        routes.freeze()

        summary = self._reconciler.reconcile(routes)
        if self._show_routes:
            self.show_routes()

        LOG.info(
            "Run complete: %d parse warning(s), %d failed ASN lookup(s), "
            "%d route mutation failure(s)",
            parsed.warnings,
            len(expansion.failed_asns),
            summary.failures,
        )
        return RunReport(config=parsed, expansion=expansion, summary=summary)

    def show_routes(self) -> None:
        """Log the blackhole routes currently installed in the kernel."""

        for family in AddressFamily:
            installed = self._route_table.list_blackholes(family)
            LOG.info("%d %s blackhole routes installed", len(installed), family.label)
            for route in installed:
                LOG.info("  %s", route)

"""Entry point for the ipban command."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

import yaml

from ipban.driver import BlackholeDriver
from ipban.exceptions import ConfigReadError
from ipban.expander import PrefixExpander
from ipban.lookup import BgpqLookup
from ipban.routes import ROUTE_TABLES, build_route_table

from .config import DEFAULT_SETTINGS_PATH, AgentConfig, load_config

LOG = logging.getLogger(__name__)


def _setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
    )


def _parse_args(argv: list[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Install blackhole routes for configured prefixes and ASNs"
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help=f"Path to the agent settings file (default: {DEFAULT_SETTINGS_PATH} if present)",
    )
    parser.add_argument(
        "--routes",
        type=Path,
        default=None,
        help="Path to the routes document, overriding 'routes_file'",
    )
    parser.add_argument(
        "--backend",
        choices=sorted(ROUTE_TABLES),
        default=None,
        help="Routing table backend, overriding 'route_table.backend'",
    )
    parser.add_argument(
        "--lookup-command",
        default=None,
        help="Prefix lookup tool (bgpq4 or bgpq3), overriding 'lookup.command'",
    )
    parser.add_argument(
        "--no-show-routes",
        action="store_true",
        help="Do not list installed blackhole routes after reconciling",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable debug logging",
    )
    return parser.parse_args(argv)


def _settings_path(requested: Path | None) -> Path | None:
    if requested is not None:
        return requested
    if DEFAULT_SETTINGS_PATH.exists():
        return DEFAULT_SETTINGS_PATH
    LOG.debug("settings file %s does not exist, using defaults", DEFAULT_SETTINGS_PATH)
    return None


def _apply_overrides(config: AgentConfig, args: argparse.Namespace) -> AgentConfig:
    if args.routes is not None:
        config.routes_file = args.routes
    if args.backend is not None:
        config.route_table.backend = args.backend
    if args.lookup_command is not None:
        config.lookup.command = args.lookup_command
    if args.no_show_routes:
        config.show_routes = False
    return config


def build_driver(config: AgentConfig) -> BlackholeDriver:
    lookup = BgpqLookup(
        config.lookup.command,
        prefix_format=config.lookup.prefix_format,
        extra_args=config.lookup.extra_args,
    )
    route_table = build_route_table(
        config.route_table.backend, ip_command=config.route_table.ip_command
    )
    return BlackholeDriver(
        route_table,
        PrefixExpander(lookup),
        config.sections,
        show_routes=config.show_routes,
    )


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)
    _setup_logging(args.verbose)

    try:
        config = load_config(_settings_path(args.config))
    except (OSError, ValueError, yaml.YAMLError) as exc:
        LOG.error("Failed to load settings: %s", exc)
        return 1
    config = _apply_overrides(config, args)

    driver = build_driver(config)
    try:
        driver.run(config.routes_file)
    except ConfigReadError as exc:
        LOG.error("%s. Exiting.", exc)
        return 1

    LOG.info("Done")
    return 0


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())

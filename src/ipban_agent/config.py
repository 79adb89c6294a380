"""YAML settings loader for the ipban agent."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

import yaml

from ipban.config import SectionNames
from ipban.lookup import DEFAULT_LOOKUP_COMMAND, DEFAULT_PREFIX_FORMAT
from ipban.routes import ROUTE_TABLES

DEFAULT_SETTINGS_PATH = Path("/etc/ipban/ipban.yaml")
DEFAULT_ROUTES_PATH = Path("/etc/ipban/routes.toml")


@dataclass
class LookupConfig:
    command: str = DEFAULT_LOOKUP_COMMAND
    prefix_format: str = DEFAULT_PREFIX_FORMAT
    extra_args: List[str] = field(default_factory=list)


@dataclass
class RouteTableConfig:
    backend: str = "iproute2"
    ip_command: str = "ip"


@dataclass
class AgentConfig:
    routes_file: Path = DEFAULT_ROUTES_PATH
    show_routes: bool = True
    sections: SectionNames = field(default_factory=SectionNames)
    lookup: LookupConfig = field(default_factory=LookupConfig)
    route_table: RouteTableConfig = field(default_factory=RouteTableConfig)


def _mapping(data: dict, key: str) -> dict:
    section = data.get(key) or {}
    if not isinstance(section, dict):
        raise ValueError(f"'{key}' section must be a mapping")
    return section


def _parse_sections(section: dict) -> SectionNames:
    defaults = SectionNames()
    return SectionNames(
        ipv4_routes=str(section.get("ipv4_routes", defaults.ipv4_routes)),
        ipv6_routes=str(section.get("ipv6_routes", defaults.ipv6_routes)),
        asn_block=str(section.get("asn_block", defaults.asn_block)),
    )


def _parse_lookup(section: dict) -> LookupConfig:
    extra_args = section.get("extra_args", [])
    if not isinstance(extra_args, list):
        raise ValueError("lookup 'extra_args' must be a list if provided")
    return LookupConfig(
        command=str(section.get("command", DEFAULT_LOOKUP_COMMAND)),
        prefix_format=str(section.get("prefix_format", DEFAULT_PREFIX_FORMAT)),
        extra_args=[str(arg) for arg in extra_args],
    )


def _parse_route_table(section: dict) -> RouteTableConfig:
    backend = str(section.get("backend", "iproute2"))
    if backend not in ROUTE_TABLES:
        raise ValueError(f"Unsupported route table backend '{backend}'")
    return RouteTableConfig(
        backend=backend,
        ip_command=str(section.get("ip_command", "ip")),
    )


def _parse_routes_file(data: dict) -> Path:
    value = data.get("routes_file", str(DEFAULT_ROUTES_PATH))
    if not isinstance(value, str) or not value.strip():
        raise ValueError("'routes_file' must be a non-empty path string")
    return Path(value)


def load_config(path: Optional[Path]) -> AgentConfig:
    """Load agent settings from ``path``; ``None`` yields the defaults."""

    if path is None:
        return AgentConfig()

    data = yaml.safe_load(Path(path).read_text())
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ValueError("Agent configuration must be a mapping")

    return AgentConfig(
        routes_file=_parse_routes_file(data),
        show_routes=bool(data.get("show_routes", True)),
        sections=_parse_sections(_mapping(data, "sections")),
        lookup=_parse_lookup(_mapping(data, "lookup")),
        route_table=_parse_route_table(_mapping(data, "route_table")),
    )

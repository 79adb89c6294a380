"""Line-oriented parser for the blackhole routes document.

The document is a small TOML-like file::

    [ipv4_routes]
    routes = ["192.0.2.0/24", "198.51.100.0/24"]

    [ipv6_routes]
    routes = ["2001:db8::/32"]

    [asn_block]
    as_numbers = ["AS64496", 64511]

Only the three configured sections and their list keys are meaningful; every
other line is ignored. Malformed entries are warned about and skipped, the
parser always consumes the whole document.
"""

from __future__ import annotations

import logging
import re
from typing import List, Optional

from .config import AddressFamily, ParsedConfig, SectionNames

LOG = logging.getLogger(__name__)

_COMMENT_CHARS = "#;"
_ASN_RE = re.compile(r"^(?:as)?([0-9]+)$", re.IGNORECASE)


def normalize_asn(token: str) -> Optional[str]:
    """Return the bare numeric form of ``token`` or ``None`` if it is invalid.

    ``AS64496``, ``as64496`` and ``64496`` all normalise to ``"64496"``.
    """

    match = _ASN_RE.match(token)
    if match is None:
        return None
    return match.group(1)


def strip_comment(line: str) -> str:
    """Drop everything from the first unescaped ``#`` or ``;`` onward."""

    out: List[str] = []
    index = 0
    while index < len(line):
        char = line[index]
        if char == "\\" and index + 1 < len(line) and line[index + 1] in _COMMENT_CHARS:
            out.append(line[index + 1])
            index += 2
            continue
        if char in _COMMENT_CHARS:
            break
        out.append(char)
        index += 1
    return "".join(out)


def _unquote(token: str) -> str:
    token = token.strip()
    if len(token) >= 2 and token[0] == token[-1] and token[0] in "\"'":
        token = token[1:-1]
    return token.strip()


def split_list(value: str) -> Optional[List[str]]:
    """Split a bracketed list value into its tokens.

    Returns ``None`` when ``value`` is not bracket-delimited. Empty tokens
    (``[]`` or stray commas) are dropped.
    """

    if len(value) < 2 or value[0] != "[" or value[-1] != "]":
        return None
    tokens = (_unquote(token) for token in value[1:-1].split(","))
    return [token for token in tokens if token]


class ConfigParser:
    """Accumulate routes and ASNs from a routes document."""

    def __init__(self, sections: Optional[SectionNames] = None) -> None:
        self._sections = sections or SectionNames()
        self._result = ParsedConfig()
        self._section = ""
        self._line_num = 0

    def feed(self, text: str) -> ParsedConfig:
        for raw_line in text.splitlines():
            self._line_num += 1
            self._parse_line(raw_line)
        return self._result

    def _warn(self, message: str, *args) -> None:
        self._result.warnings += 1
        LOG.warning("line %d: " + message, self._line_num, *args)

    def _parse_line(self, raw_line: str) -> None:
        line = strip_comment(raw_line).strip()
        if not line:
            return

        if line.startswith("[") and line.endswith("]"):
            self._section = line[1:].split("]", 1)[0].strip()
            return

        if "=" not in line:
            return
        key, value = (part.strip() for part in line.split("=", 1))
        if not key or not value:
            return

        sections = self._sections
        if key == sections.routes_key and self._section == sections.ipv4_routes:
            self._parse_routes(AddressFamily.IPV4, value)
        elif key == sections.routes_key and self._section == sections.ipv6_routes:
            self._parse_routes(AddressFamily.IPV6, value)
        elif key == sections.asn_key and self._section == sections.asn_block:
            self._parse_asns(value)

    def _parse_routes(self, family: AddressFamily, value: str) -> None:
        tokens = split_list(value)
        if tokens is None:
            self._warn("malformed route list value '%s'", value)
            return

        for token in tokens:
            if "/" not in token:
                self._warn("invalid route format (missing '/') '%s'", token)
                continue
            if self._result.routes.add(family, token):
                LOG.debug("%s route %s accepted", family.label, token)

    def _parse_asns(self, value: str) -> None:
        tokens = split_list(value)
        if tokens is None:
            self._warn("malformed AS number list value '%s'", value)
            return

        for token in tokens:
            if normalize_asn(token) is None:
                self._warn("invalid ASN format '%s'", token)
                continue
            self._result.asns.add(token)


def parse_config(text: str, sections: Optional[SectionNames] = None) -> ParsedConfig:
    """Parse ``text`` into literal routes and the ASNs to expand."""

    result = ConfigParser(sections).feed(text)
    if result.warnings:
        LOG.warning("configuration parsed with %d warning(s)", result.warnings)
    return result


__all__ = [
    "ConfigParser",
    "normalize_asn",
    "parse_config",
    "split_list",
    "strip_comment",
]

import logging

import pytest

from ipban.command import CommandOutcome, OutcomeKind
from ipban.config import AddressFamily, RouteSet
from ipban.exceptions import RouteSetFrozenError
from ipban.expander import PrefixExpander
from ipban.lookup import BgpqLookup, extract_prefixes


def ok(stdout: str = "") -> CommandOutcome:
    return CommandOutcome(argv=(), kind=OutcomeKind.SUCCESS, returncode=0, stdout=stdout)


def spawn_failure() -> CommandOutcome:
    return CommandOutcome(argv=(), kind=OutcomeKind.SPAWN_FAILURE, error="No such file")


class FakeLookupExecutor:
    """Answer bgpq invocations from a ``(asn, flag) -> outcome`` table."""

    def __init__(self, responses):
        self.responses = responses
        self.calls: list[list[str]] = []

    def __call__(self, argv):
        argv = list(argv)
        self.calls.append(argv)
        return self.responses.get((argv[-1], argv[1]), ok())


def build_expander(responses, **kwargs):
    executor = FakeLookupExecutor(responses)
    lookup = BgpqLookup(executor=executor, **kwargs)
    return PrefixExpander(lookup), executor


def test_asn_expands_into_ipv4_only():
    expander, executor = build_expander({("AS65000", "-4"): ok("192.0.2.0/24\n")})
    routes = RouteSet()

    report = expander.expand(["AS65000"], routes)

    assert routes.ipv4.as_list() == ["192.0.2.0/24"]
    assert routes.ipv6.as_list() == []
    assert report.total_inserted == 1
    assert report.failed_asns == []
    assert [call[1] for call in executor.calls] == ["-4", "-6"]


def test_lookup_command_shape():
    expander, executor = build_expander({}, command="bgpq3", extra_args=["-S", "RIPE"])

    expander.expand(["as64496"], RouteSet())

    assert executor.calls[0] == ["bgpq3", "-4", "-A", "-F", "%n/%l\\n", "-S", "RIPE", "AS64496"]
    assert executor.calls[1] == ["bgpq3", "-6", "-A", "-F", "%n/%l\\n", "-S", "RIPE", "AS64496"]


def test_expanded_prefixes_are_deduplicated_in_order():
    expander, _ = build_expander(
        {
            ("AS1", "-4"): ok("192.0.2.0/24\n198.51.100.0/24\n"),
            ("AS2", "-4"): ok("198.51.100.0/24\n203.0.113.0/24\n"),
        }
    )
    routes = RouteSet()
    routes.add(AddressFamily.IPV4, "192.0.2.0/24")

    report = expander.expand(["AS1", "AS2"], routes)

    assert routes.ipv4.as_list() == ["192.0.2.0/24", "198.51.100.0/24", "203.0.113.0/24"]
    assert [entry.inserted[AddressFamily.IPV4] for entry in report.asns] == [1, 1]
    assert [entry.seen[AddressFamily.IPV4] for entry in report.asns] == [2, 2]


def test_non_prefix_output_is_ignored():
    expander, _ = build_expander(
        {("AS1", "-6"): ok("no prefixes found\n   \n 2001:db8::/32 \n")}
    )
    routes = RouteSet()

    expander.expand(["AS1"], routes)

    assert routes.ipv6.as_list() == ["2001:db8::/32"]


def test_lookup_spawn_failure_is_not_fatal():
    expander, executor = build_expander(
        {
            ("AS1", "-4"): spawn_failure(),
            ("AS1", "-6"): spawn_failure(),
            ("AS2", "-4"): ok("203.0.113.0/24\n"),
        }
    )
    routes = RouteSet()

    report = expander.expand(["AS1", "AS2"], routes)

    assert report.failed_asns == ["AS1"]
    assert report.asns[0].failed_families == [AddressFamily.IPV4, AddressFamily.IPV6]
    assert routes.ipv4.as_list() == ["203.0.113.0/24"]
    assert len(executor.calls) == 4


def test_failed_lookup_contributes_no_prefixes():
    failed = CommandOutcome(
        argv=(), kind=OutcomeKind.EXIT, returncode=1, stdout="10.0.0.0/8\n"
    )
    expander, _ = build_expander({("AS1", "-4"): failed})
    routes = RouteSet()

    report = expander.expand(["AS1"], routes)

    assert len(routes) == 0
    assert report.failed_asns == ["AS1"]


def test_asn_without_prefixes_is_not_a_failure():
    expander, _ = build_expander({})
    routes = RouteSet()

    report = expander.expand(["AS64512"], routes)

    assert len(routes) == 0
    assert report.failed_asns == []
    assert report.asns[0].total_inserted == 0


def test_invalid_asn_is_skipped_without_lookup():
    expander, executor = build_expander({})

    report = expander.expand(["ASX"], RouteSet())

    assert executor.calls == []
    assert report.skipped_asns == ["ASX"]


def test_expanding_into_frozen_set_raises():
    expander, _ = build_expander({("AS1", "-4"): ok("10.0.0.0/8\n")})
    routes = RouteSet()
    routes.freeze()

    with pytest.raises(RouteSetFrozenError):
        expander.expand(["AS1"], routes)


def test_extract_prefixes():
    assert extract_prefixes("10.0.0.0/8\r\nwarning\n\n 10.1.0.0/16\n") == [
        "10.0.0.0/8",
        "10.1.0.0/16",
    ]


def test_failed_lookups_are_summarised(caplog):
    expander, _ = build_expander(
        {
            ("AS1", "-4"): spawn_failure(),
            ("AS2", "-6"): spawn_failure(),
            ("AS3", "-4"): ok("203.0.113.0/24\n"),
        }
    )

    with caplog.at_level(logging.WARNING, logger="ipban.expander"):
        expander.expand(["AS1", "AS2", "AS3"], RouteSet())

    summary = [
        record.getMessage()
        for record in caplog.records
        if "route list may be incomplete" in record.getMessage()
    ]
    assert summary == [
        "2 ASN prefix lookup(s) failed (AS1, AS2); route list may be incomplete"
    ]


def test_asn_without_prefixes_is_logged_at_info(caplog):
    expander, _ = build_expander({})

    with caplog.at_level(logging.INFO, logger="ipban.expander"):
        expander.expand(["AS64512"], RouteSet())

    messages = [(record.levelno, record.getMessage()) for record in caplog.records]
    assert (logging.INFO, "No prefixes found for AS64512 via bgpq4") in messages
    assert not any(level >= logging.WARNING for level, _ in messages)


def test_skipped_asns_are_summarised(caplog):
    expander, _ = build_expander({})

    with caplog.at_level(logging.WARNING, logger="ipban.expander"):
        expander.expand(["ASX", "AS1"], RouteSet())

    assert "1 ASN(s) skipped as invalid: ASX" in caplog.text

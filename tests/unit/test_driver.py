from pathlib import Path

import pytest

from ipban.command import CommandOutcome, OutcomeKind
from ipban.config import AddressFamily
from ipban.driver import BlackholeDriver
from ipban.exceptions import ConfigReadError
from ipban.expander import PrefixExpander
from ipban.lookup import BgpqLookup
from ipban.routes import MutationOutcome, MutationStatus, RouteTable


class RecordingRouteTable(RouteTable):
    def __init__(self, delete_status=MutationStatus.APPLIED):
        self.calls: list[tuple[str, AddressFamily, str]] = []
        self.listed: list[AddressFamily] = []
        self.delete_status = delete_status

    def mutate(self, operation, family, prefix):
        self.calls.append((operation, family, prefix))
        status = self.delete_status if operation == "del" else MutationStatus.APPLIED
        return MutationOutcome(operation, family, prefix, status)

    def list_blackholes(self, family):
        self.listed.append(family)
        return [f"blackhole {prefix}" for op, fam, prefix in self.calls if fam is family and op == "add"]


class FakeLookupExecutor:
    def __init__(self, responses=None):
        self.responses = responses or {}
        self.calls: list[list[str]] = []

    def __call__(self, argv):
        argv = list(argv)
        self.calls.append(argv)
        stdout = self.responses.get((argv[-1], argv[1]), "")
        return CommandOutcome(argv=tuple(argv), kind=OutcomeKind.SUCCESS, returncode=0, stdout=stdout)


def build_driver(table, executor, show_routes=True) -> BlackholeDriver:
    return BlackholeDriver(
        table,
        PrefixExpander(BgpqLookup(executor=executor)),
        show_routes=show_routes,
    )


def write_routes(tmp_path: Path, text: str) -> Path:
    path = tmp_path / "routes.toml"
    path.write_text(text)
    return path


def test_run_merges_literals_and_asn_prefixes(tmp_path: Path):
    path = write_routes(
        tmp_path,
        """
[ipv4_routes]
routes = ["192.0.2.0/24"]
[ipv6_routes]
routes = ["2001:db8::/32"]
[asn_block]
as_numbers = ["AS65000"]
""",
    )
    executor = FakeLookupExecutor(
        {
            ("AS65000", "-4"): "192.0.2.0/24\n198.51.100.0/24\n",
            ("AS65000", "-6"): "2001:db8:1::/48\n",
        }
    )
    table = RecordingRouteTable()

    report = build_driver(table, executor).run(path)

    assert report.config.routes.ipv4.as_list() == ["192.0.2.0/24", "198.51.100.0/24"]
    assert report.config.routes.ipv6.as_list() == ["2001:db8::/32", "2001:db8:1::/48"]
    assert report.config.routes.frozen
    assert report.expansion.total_inserted == 2
    assert report.summary.adds_applied == 4
    assert report.summary.failures == 0
    assert table.listed == [AddressFamily.IPV4, AddressFamily.IPV6]


def test_asn_only_config(tmp_path: Path):
    path = write_routes(tmp_path, '[asn_block]\nas_numbers = ["AS65000"]\n')
    executor = FakeLookupExecutor({("AS65000", "-4"): "192.0.2.0/24\n"})
    table = RecordingRouteTable()

    report = build_driver(table, executor).run(path)

    assert report.config.routes.ipv4.as_list() == ["192.0.2.0/24"]
    assert report.config.routes.ipv6.as_list() == []


def test_run_with_absent_routes(tmp_path: Path):
    path = write_routes(tmp_path, '[ipv4_routes]\nroutes = ["203.0.113.0/24"]\n')
    table = RecordingRouteTable(delete_status=MutationStatus.ABSENT)

    report = build_driver(table, FakeLookupExecutor(), show_routes=False).run(path)

    assert report.summary.failures == 0
    assert report.summary.deletes_absent == 1
    assert report.summary.adds_applied == 1
    assert table.listed == []


def test_unreadable_config_is_fatal(tmp_path: Path):
    executor = FakeLookupExecutor()
    table = RecordingRouteTable()
    driver = build_driver(table, executor)

    with pytest.raises(ConfigReadError) as excinfo:
        driver.run(tmp_path / "missing.toml")

    assert excinfo.value.path == tmp_path / "missing.toml"
    assert table.calls == []
    assert executor.calls == []


def test_non_utf8_comment_does_not_abort_the_run(tmp_path: Path):
    path = tmp_path / "routes.toml"
    path.write_bytes(b"# caf\xe9\n[ipv4_routes]\nroutes = [\"192.0.2.0/24\"]\n")
    table = RecordingRouteTable()

    report = build_driver(table, FakeLookupExecutor(), show_routes=False).run(path)

    assert report.config.warnings == 0
    assert table.calls == [
        ("del", AddressFamily.IPV4, "192.0.2.0/24"),
        ("add", AddressFamily.IPV4, "192.0.2.0/24"),
    ]

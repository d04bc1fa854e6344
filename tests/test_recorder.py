"""
Tests for persisting installation histories
"""

import itertools
import logging
from datetime import datetime, timedelta, timezone

import pytest

from achistory.errors import AccessDeniedError, StoreAccessError
from achistory.layout import HISTORY_ROOT_PATH, get_history_root
from achistory.models import HistoryOrigin, InstallationLog
from achistory.recorder import history_node_name, persist_history
from achistory.store import MemorySession, read_file

BASE_DATE = datetime(2024, 1, 1, tzinfo=timezone.utc)


def make_log(minutes: int = 0, success: bool = True, **kwargs) -> InstallationLog:
    return InstallationLog(
        installation_date=BASE_DATE + timedelta(minutes=minutes),
        success=success,
        execution_time_ms=kwargs.pop("execution_time_ms", 1500),
        messages=kwargs.pop("messages", ["applied 3 groups"]),
        verbose_messages=kwargs.pop("verbose_messages", ["applied 3 groups", "group a: ok"]),
        **kwargs,
    )


@pytest.fixture
def session():
    return MemorySession()


@pytest.fixture
def clock():
    counter = itertools.count(1_700_000_000_000)
    return lambda: next(counter)


def child_names(session):
    return [n.name for n in get_history_root(session).get_nodes()]


def test_persist_writes_metadata_and_bodies(session, clock):
    """All metadata properties and both log files are written"""
    log = make_log(
        execution_time_ms=2345,
        config_file_contents_by_name={"/apps/a/x.yaml": "x", "/apps/a/y.yaml": "y"},
    )

    node = persist_history(session, log, 5, clock=clock)

    assert node.path == f"{HISTORY_ROOT_PATH}/history_1700000000000_via_api"
    assert node.get_property("installationDate") == "2024-01-01T00:00:00+00:00"
    assert node.get_property("timestamp") == 1704067200000
    assert node.get_property("success") is True
    assert node.get_property("executionTime") == 2345
    assert node.get_property("installedFrom") == "/apps/a/"
    assert node.get_property("sling:resourceType") == "/apps/netcentric/actool/components/historyRenderer"

    assert read_file(node.get_node("actool.log")) == b"applied 3 groups"
    assert read_file(node.get_node("actool-verbose.log")) == b"applied 3 groups\ngroup a: ok"
    assert node.get_node("actool.log").get_node("jcr:content").get_property("jcr:mimeType") == "text/plain"


def test_container_layout(session, clock):
    persist_history(session, make_log(), 5, clock=clock)

    assert session.get_node("/var/statistics").node_type == "nt:unstructured"
    assert session.get_node(HISTORY_ROOT_PATH).node_type == "sling:OrderedFolder"


def test_installed_from_prefixed_with_package_name(session, clock):
    log = make_log(crx_package_name="acl-pkg", config_file_contents_by_name={"/apps/a/x.yaml": ""})
    node = persist_history(session, log, 5, clock=clock)
    assert node.get_property("installedFrom") == "acl-pkg/apps/a/x.yaml"


def test_installed_from_without_config_files(session, clock):
    node = persist_history(session, make_log(config_file_contents_by_name={}), 5, clock=clock)
    assert node.get_property("installedFrom") == ""

    node = persist_history(session, make_log(minutes=1), 5, clock=clock)
    assert not node.has_property("installedFrom")


@pytest.mark.parametrize(
    "origin, package, suffix",
    [
        (HistoryOrigin.API, None, "_via_api"),
        (HistoryOrigin.JMX, None, "_via_jmx"),
        (HistoryOrigin.WEBCONSOLE, "", "_via_webconsole"),
        (HistoryOrigin.SCHEDULER, "   ", "_via_scheduler"),
        (HistoryOrigin.JMX, "my-package", "_via_hook_in_my-package"),
        (HistoryOrigin.API, "group/acl pkg", "_via_hook_in_group_acl_pkg"),
    ],
)
def test_history_node_name(origin, package, suffix):
    log = make_log(crx_package_name=package)
    assert history_node_name(log, origin, 42) == f"history_42{suffix}"


def test_newest_entry_is_first_child(session, clock):
    """Each new entry moves to the top regardless of installation date order"""
    for i, minutes in enumerate([5, 1, 9, 3]):
        node = persist_history(session, make_log(minutes=minutes), 10, clock=clock)
        names = child_names(session)
        assert names[0] == node.name
        assert len(names) == i + 1

    assert child_names(session) == [
        "history_1700000000003_via_api",
        "history_1700000000002_via_api",
        "history_1700000000001_via_api",
        "history_1700000000000_via_api",
    ]


def test_same_millisecond_different_origins(session):
    names = {
        persist_history(session, make_log(), 10, origin=origin, clock=lambda: 1000).name
        for origin in HistoryOrigin
    }
    assert len(names) == len(HistoryOrigin)
    assert len(child_names(session)) == len(HistoryOrigin)


def test_name_collision_reuses_entry(session):
    """A repeated name must not raise; the entry is overwritten"""
    first = persist_history(session, make_log(success=True), 10, clock=lambda: 1000)
    second = persist_history(session, make_log(success=False), 10, clock=lambda: 1000)

    assert first.name == second.name
    assert child_names(session) == [first.name]
    assert second.get_property("success") is False


def test_persist_prunes_to_retention(session, clock):
    for minutes in range(3):
        persist_history(session, make_log(minutes=minutes), 2, clock=clock)

    names = child_names(session)
    assert names == ["history_1700000000002_via_api", "history_1700000000001_via_api"]


def test_zero_retention_removes_new_entry(session, clock):
    node = persist_history(session, make_log(), 0, clock=clock)
    assert node.is_removed
    assert child_names(session) == []


def test_saved_message_recorded(session, clock, caplog):
    log = make_log()
    caplog.set_level(logging.INFO, logger="achistory.recorder")

    node = persist_history(session, log, 5, clock=clock)

    assert log.messages[-1].endswith(f"Saved history in node: {node.path}")
    assert f"Saved history in node: {node.path}" in caplog.text
    # the stored body is written before the message is added
    assert b"Saved history" not in read_file(node.get_node("actool.log"))


def test_store_errors_propagate(clock):
    session = MemorySession(read_only=True)
    with pytest.raises(AccessDeniedError) as excinfo:
        persist_history(session, make_log(), 5, clock=clock)
    assert isinstance(excinfo.value, StoreAccessError)

"""
Tests for history retention
"""

import itertools
from datetime import datetime, timedelta, timezone

import pytest

from achistory.layout import get_history_root
from achistory.models import InstallationLog
from achistory.recorder import persist_history
from achistory.retention import prune_history, sorted_history_nodes
from achistory.store import MemorySession

BASE_DATE = datetime(2024, 1, 1, tzinfo=timezone.utc)
SHUFFLED_MINUTES = [3, 7, 1, 9, 4, 0, 6]


def add_entry(history_root, name, timestamp=None):
    node = history_root.add_node(name)
    if timestamp is not None:
        node.set_property("timestamp", timestamp)
    return node


@pytest.fixture
def history_root():
    return get_history_root(MemorySession())


def test_keeps_largest_timestamps_regardless_of_order(history_root):
    for name, ts in [("history_a", 30), ("history_b", 10), ("history_c", 50), ("history_d", 20)]:
        add_entry(history_root, name, ts)

    removed = prune_history(history_root, 2)

    assert sorted(n.name for n in history_root.get_nodes()) == ["history_a", "history_c"]
    assert sorted(removed) == [
        "/var/statistics/achistory/history_b",
        "/var/statistics/achistory/history_d",
    ]


def test_ties_broken_by_name(history_root):
    for name in ("history_1", "history_3", "history_2"):
        add_entry(history_root, name, 100)

    prune_history(history_root, 1)

    assert [n.name for n in history_root.get_nodes()] == ["history_3"]


def test_non_history_children_untouched(history_root):
    add_entry(history_root, "history_old", 1)
    add_entry(history_root, "readme", 0)

    prune_history(history_root, 0)

    assert [n.name for n in history_root.get_nodes()] == ["readme"]


def test_missing_timestamp_sorts_oldest(history_root):
    add_entry(history_root, "history_legacy")
    add_entry(history_root, "history_new", 5)

    prune_history(history_root, 1)

    assert [n.name for n in history_root.get_nodes()] == ["history_new"]


@pytest.mark.parametrize("keep", [-3, 0])
def test_non_positive_keep_removes_all(history_root, keep):
    for i in range(3):
        add_entry(history_root, f"history_{i}", i)
    prune_history(history_root, keep)
    assert history_root.get_nodes() == []


def test_empty_container_is_noop(history_root):
    assert prune_history(history_root, 3) == []


def test_sorted_history_nodes_newest_first(history_root):
    for name, ts in [("history_a", 2), ("history_b", 3), ("history_c", 1)]:
        add_entry(history_root, name, ts)
    assert [n.name for n in sorted_history_nodes(history_root)] == ["history_b", "history_a", "history_c"]


@pytest.mark.parametrize("keep", range(0, len(SHUFFLED_MINUTES) + 2))
def test_retention_after_persisting(keep):
    """After N persists exactly min(N, k) entries with the largest timestamps remain"""
    session = MemorySession()
    counter = itertools.count(1)
    for minutes in SHUFFLED_MINUTES:
        log = InstallationLog(installation_date=BASE_DATE + timedelta(minutes=minutes))
        persist_history(session, log, keep, clock=lambda: next(counter))

    remaining = get_history_root(session).get_nodes()
    expected_count = min(len(SHUFFLED_MINUTES), keep)
    assert len(remaining) == expected_count

    expected_ts = sorted(
        (int((BASE_DATE + timedelta(minutes=m)).timestamp() * 1000) for m in SHUFFLED_MINUTES),
        reverse=True,
    )[:expected_count]
    assert sorted((n.get_property("timestamp") for n in remaining), reverse=True) == expected_ts

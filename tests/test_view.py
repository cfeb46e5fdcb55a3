"""
Tests for the kernel tab state machine and search filter.
"""

from __future__ import annotations

from fedoraforge.kernel.branches import Branch
from fedoraforge.kernel.composer import Composition, KernelRecord, RunningState
from fedoraforge.kernel.view import KernelTab, TabState, filter_records

RUNNING = RunningState("6.11.3-300.fc41.x86_64", "6.11.3", "EEVDF?")


def record(name, pkg, branch="A", version="6.11.3-300", description="Stock kernel"):
    return KernelRecord(name, pkg, pkg, 1, False, version, description, branch)


def composition(branch, *records):
    return Composition(branch, tuple(records), RUNNING, None, 3)


def loaded_tab(*names, owning=None, preferred=None):
    tab = KernelTab()
    tab.start_loading()
    found = [Branch(n, "u") for n in names]
    owner = next((b for b in found if b.name == owning), None)
    selected = tab.branches_loaded(found, owner, preferred)
    return tab, selected


# ----------------------------------------------------------------
# Filter
# ----------------------------------------------------------------


def test_filter_is_case_insensitive_and_keeps_order():
    records = [record("Cachyos LTO", "kernel-cachyos-lto"), record("Stock", "kernel"),
               record("Cachyos", "kernel-cachyos")]

    assert [r.main_package for r in filter_records(records, "CACHY")] == [
        "kernel-cachyos-lto", "kernel-cachyos"]


def test_filter_matches_version_and_description():
    records = [record("A", "a", version="6.12.0"), record("B", "b", description="Real-time patches")]

    assert [r.main_package for r in filter_records(records, "6.12")] == ["a"]
    assert [r.main_package for r in filter_records(records, "real-time")] == ["b"]


def test_empty_query_returns_everything():
    records = [record("A", "a"), record("B", "b")]

    assert filter_records(records, "  ") == records


# ----------------------------------------------------------------
# State machine
# ----------------------------------------------------------------


def test_branches_loaded_prefers_owning_branch():
    tab, selected = loaded_tab("A", "B", owning="B", preferred="A")

    assert selected == "B"
    assert tab.state is TabState.BRANCHES_LOADED
    assert tab.owning_branch == "B"


def test_branches_loaded_falls_back_to_saved_then_first():
    assert loaded_tab("A", "B", preferred="B")[1] == "B"
    assert loaded_tab("A", "B", preferred="gone")[1] == "A"
    assert loaded_tab()[1] is None


def test_catalog_flow():
    tab, selected = loaded_tab("A", "B")
    tab.select_branch(selected)
    assert tab.state is TabState.LOADING_CATALOG

    assert tab.catalog_loaded(composition("A", record("Stock", "kernel")))

    assert tab.state is TabState.CATALOG_READY
    assert [r.main_package for r in tab.visible()] == ["kernel"]
    assert tab.record("kernel").display_name == "Stock"


def test_superseded_composition_is_discarded():
    tab, _ = loaded_tab("A", "B")
    tab.select_branch("A")
    tab.select_branch("B")

    assert not tab.catalog_loaded(composition("A", record("Stock", "kernel")))
    assert tab.records == []
    assert tab.state is TabState.LOADING_CATALOG

    assert tab.catalog_loaded(composition("B", record("Other", "kernel-b", branch="B")))
    assert all(r.branch_name == "B" for r in tab.visible())


def test_catalog_failure_keeps_previous_catalog_of_same_branch():
    tab, _ = loaded_tab("A")
    tab.select_branch("A")
    tab.catalog_loaded(composition("A", record("Stock", "kernel")))

    tab.select_branch("A")
    assert tab.catalog_failed("A", "HTTP error")

    assert tab.state is TabState.CATALOG_READY
    assert tab.error == "HTTP error"
    assert len(tab.records) == 1


def test_stale_failure_is_ignored():
    tab, _ = loaded_tab("A", "B")
    tab.select_branch("B")

    assert not tab.catalog_failed("A", "boom")
    assert tab.error is None


def test_branch_load_failure_leaves_view_empty():
    tab = KernelTab()
    tab.branches_failed("Missing 'db_url'")

    assert tab.state is TabState.CATALOG_READY
    assert tab.visible() == []
    assert tab.error == "Missing 'db_url'"


def test_query_applies_to_visible():
    tab, _ = loaded_tab("A")
    tab.select_branch("A")
    tab.catalog_loaded(composition("A", record("Stock", "kernel"), record("RT", "kernel-rt")))

    tab.set_query("rt")

    assert [r.main_package for r in tab.visible()] == ["kernel-rt"]

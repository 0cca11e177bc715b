"""
Unit Tests for the Allocation Selector.

Tests:
- Cascading resets when an ancestor changes
- One-time initialization per estimate
- Emission suppression for unchanged targets
- Blocked and empty states
"""
import logging

import pytest

from studio_budget.domain.entities.allocation_target import AllocationTarget
from studio_budget.domain.entities.line_item import EstimateLevel
from studio_budget.domain.exceptions import DomainError
from studio_budget.domain.services.allocation_resolver import HierarchyIndex
from studio_budget.domain.services.allocation_selector import (
    AllocationSelector,
    SelectorState,
    SelectorStatus,
    change_level,
    default_state,
    restore_state,
    select_group,
    select_section,
    select_subsection,
)
from studio_budget.domain.services.hierarchy_builder import build_estimate


@pytest.fixture
def index(sample_estimate):
    return HierarchyIndex(sample_estimate)


@pytest.fixture
def emitted():
    """Targets received by the listener."""
    return []


@pytest.fixture
def selector(emitted):
    return AllocationSelector(listener=emitted.append, default_level="group")


class TestTransitions:
    """Tests for the pure transition functions."""

    def test_level_to_estimate_clears_ids(self, index):
        state = SelectorState(EstimateLevel.SECTION, "grp-1", "sec-1", "sub-1")
        assert change_level(state, index, "estimate") == SelectorState(EstimateLevel.ESTIMATE)

    def test_level_change_keeps_ids(self, index):
        state = SelectorState(EstimateLevel.GROUP, "grp-1", "sec-2", "")
        assert change_level(state, index, "section") == SelectorState(
            EstimateLevel.SECTION, "grp-1", "sec-2", ""
        )

    def test_level_change_fills_defaults(self, index):
        state = SelectorState(EstimateLevel.ESTIMATE)
        assert change_level(state, index, "subsection") == SelectorState(
            EstimateLevel.SUBSECTION, "grp-1", "sec-1", "sub-1"
        )

    def test_group_change_resets_descendants(self, index):
        state = SelectorState(EstimateLevel.SUBSECTION, "grp-1", "sec-1", "sub-2")
        new_state = select_group(state, index, "grp-2")
        assert new_state == SelectorState(EstimateLevel.SUBSECTION, "grp-2", "", "")

    def test_group_change_selects_first_children(self, index):
        state = SelectorState(EstimateLevel.SECTION, "grp-2", "", "")
        new_state = select_group(state, index, "grp-1")
        assert new_state == SelectorState(EstimateLevel.SECTION, "grp-1", "sec-1", "sub-1")

    def test_section_change_resets_subsection_and_syncs_group(self, index):
        state = SelectorState(EstimateLevel.SECTION, "grp-2", "", "")
        new_state = select_section(state, index, "sec-2")
        assert new_state == SelectorState(EstimateLevel.SECTION, "grp-1", "sec-2", "")

    def test_subsection_change_derives_ancestry(self, index):
        state = SelectorState(EstimateLevel.SUBSECTION, "grp-2", "", "")
        new_state = select_subsection(state, index, "sub-2")
        assert new_state == SelectorState(EstimateLevel.SUBSECTION, "grp-1", "sec-1", "sub-2")

    def test_clearing_section(self, index):
        state = SelectorState(EstimateLevel.SECTION, "grp-1", "sec-1", "sub-1")
        assert select_section(state, index, "") == SelectorState(
            EstimateLevel.SECTION, "grp-1", "", ""
        )

    def test_transitions_do_not_mutate(self, index):
        state = SelectorState(EstimateLevel.GROUP, "grp-1", "sec-1", "sub-1")
        select_group(state, index, "grp-2")
        assert state.group_id == "grp-1"

    def test_default_state(self, index):
        assert default_state(index, "group") == SelectorState(
            EstimateLevel.GROUP, "grp-1", "sec-1", "sub-1"
        )
        assert default_state(index, "estimate") == SelectorState(EstimateLevel.ESTIMATE)

    def test_restore_state(self, index):
        restored = restore_state(index, AllocationTarget("est-1", "section", "sec-2"))
        assert restored == SelectorState(EstimateLevel.SECTION, "grp-1", "sec-2", "")
        assert restore_state(index, AllocationTarget("est-1", "section", "gone")) is None
        assert restore_state(index, AllocationTarget("est-2", "group", "grp-1")) is None


class TestInitialization:
    """Tests for loading hierarchy data."""

    def test_status_before_load(self, selector):
        assert selector.status is SelectorStatus.LOADING
        assert selector.current_target() is None

    def test_input_before_load_rejected(self, selector):
        with pytest.raises(DomainError):
            selector.select_group("grp-1")

    def test_defaults_without_existing_target(self, selector, sample_estimate, emitted):
        target = selector.load(sample_estimate)
        assert selector.state == SelectorState(EstimateLevel.GROUP, "grp-1", "sec-1", "sub-1")
        assert target == AllocationTarget("est-1", "group", "grp-1")
        assert emitted == [target]
        assert selector.status is SelectorStatus.READY

    def test_restores_existing_target(self, selector, sample_estimate, emitted):
        existing = AllocationTarget("est-1", "subsection", "sub-2")
        selector.load(sample_estimate, existing_target=existing)
        assert selector.state == SelectorState(EstimateLevel.SUBSECTION, "grp-1", "sec-1", "sub-2")
        assert emitted == [existing]

    def test_restores_whole_estimate(self, selector, sample_estimate, emitted):
        selector.load(sample_estimate, existing_target=AllocationTarget.whole_estimate("est-1"))
        assert selector.state == SelectorState(EstimateLevel.ESTIMATE)
        assert emitted == [AllocationTarget.whole_estimate("est-1")]

    def test_stale_target_falls_back(self, selector, sample_estimate, caplog):
        with caplog.at_level(logging.WARNING):
            selector.load(sample_estimate, existing_target=AllocationTarget("est-1", "group", "gone"))
        assert selector.state == SelectorState(EstimateLevel.GROUP, "grp-1", "sec-1", "sub-1")
        assert "Could not restore allocation" in caplog.text

    def test_foreign_target_falls_back(self, selector, sample_estimate):
        selector.load(sample_estimate, existing_target=AllocationTarget("est-2", "group", "grp-2"))
        assert selector.state.group_id == "grp-1"

    def test_refresh_keeps_selection(self, selector, sample_estimate, emitted):
        """Test that reloading the same estimate does not re-run defaults."""
        selector.load(sample_estimate)
        selector.select_group("grp-2")

        selector.load(sample_estimate, existing_target=AllocationTarget("est-1", "section", "sec-1"))
        assert selector.state.group_id == "grp-2"
        assert len(emitted) == 2

    def test_new_estimate_reinitializes(self, selector, sample_estimate, scenario_payload):
        selector.load(sample_estimate)
        selector.select_group("grp-2")

        selector.load(build_estimate(scenario_payload))
        assert selector.state == SelectorState(EstimateLevel.GROUP, "g", "s", "a")

    def test_refresh_removing_selected_node_blocks(self, selector, sample_payload, emitted):
        selector.load(build_estimate(sample_payload), AllocationTarget("est-1", "subsection", "sub-2"))

        sample_payload["groups"][0]["sections"][0]["subsections"].pop()
        assert selector.load(build_estimate(sample_payload)) is None
        assert selector.status is SelectorStatus.BLOCKED
        assert len(emitted) == 1


class TestEmission:
    """Tests for duplicate-free emission."""

    def test_group_change_emits(self, selector, sample_estimate, emitted):
        selector.load(sample_estimate)
        selector.select_group("grp-2")
        assert emitted[-1] == AllocationTarget("est-1", "group", "grp-2")

    def test_same_target_suppressed(self, selector, sample_estimate, emitted):
        """Test that changing a lower id at group level emits nothing."""
        selector.load(sample_estimate)
        assert selector.select_section("sec-2") is None
        assert selector.select_subsection("sub-2") is None
        assert len(emitted) == 1

    def test_suppressed_after_round_trip(self, selector, sample_estimate, emitted):
        selector.load(sample_estimate)
        selector.set_level("section")
        selector.select_section("sec-2")
        selector.select_section("sec-2")
        assert [t.target_id for t in emitted] == ["grp-1", "sec-1", "sec-2"]

    def test_reentrant_listener_does_not_loop(self, sample_estimate):
        calls = []

        def listener(target):
            calls.append(target)
            # Echo the received target back into the selector
            selector.select_subsection(target.target_id)

        selector = AllocationSelector(listener=listener, default_level="subsection")
        selector.load(sample_estimate)
        assert calls == [AllocationTarget("est-1", "subsection", "sub-1")]

    def test_blocked_selection_emits_nothing(self, selector, sample_estimate, emitted):
        selector.load(sample_estimate)
        selector.set_level("subsection")
        selector.select_group("grp-2")

        assert selector.status is SelectorStatus.BLOCKED
        assert selector.current_target() is None
        assert emitted[-1] == AllocationTarget("est-1", "subsection", "sub-1")

    def test_level_to_estimate(self, selector, sample_estimate, emitted):
        selector.load(sample_estimate)
        target = selector.set_level(EstimateLevel.ESTIMATE)
        assert target == AllocationTarget.whole_estimate("est-1")
        assert selector.state == SelectorState(EstimateLevel.ESTIMATE)


class TestEmptyEstimate:
    """Tests for estimates without groups."""

    def test_empty_status(self, selector, empty_estimate, emitted):
        assert selector.load(empty_estimate) is None
        assert selector.status is SelectorStatus.EMPTY
        assert emitted == []

    def test_whole_estimate_still_allowed(self, selector, empty_estimate, emitted):
        selector.load(empty_estimate)
        selector.set_level("estimate")
        assert selector.status is SelectorStatus.READY
        assert emitted == [AllocationTarget.whole_estimate("est-empty")]

"""
Allocation Selector - Cascading level/group/section/subsection selection.

Transitions are pure functions of (state, index, input):
- level -> estimate clears every id
- a new group resets section and subsection to its first children
- a new section resets the subsection and re-syncs the group
- a new subsection re-derives its section and group

AllocationSelector wraps the transitions with per-estimate initialization
and duplicate-free emission of the resolved AllocationTarget.
"""
from dataclasses import dataclass, replace
from enum import Enum
from typing import Callable, Optional, Tuple, Union
import logging

from ...config import get_config
from ..entities.allocation_target import AllocationTarget
from ..entities.estimate import Estimate
from ..entities.line_item import EstimateLevel
from ..exceptions import DomainError, IncompleteSelectionError
from .allocation_resolver import AllocationResolver, HierarchyIndex, Selection

logger = logging.getLogger(__name__)

TargetListener = Callable[[AllocationTarget], None]


@dataclass(frozen=True)
class SelectorState:
    """Current level and chosen ids; '' means nothing chosen."""
    level: EstimateLevel = EstimateLevel.GROUP
    group_id: str = ""
    section_id: str = ""
    subsection_id: str = ""

    @property
    def selection(self) -> Selection:
        return Selection(self.group_id, self.section_id, self.subsection_id)

    @classmethod
    def from_selection(cls, level: EstimateLevel, selection: Selection) -> "SelectorState":
        return cls(
            level=level,
            group_id=selection.group_id,
            section_id=selection.section_id,
            subsection_id=selection.subsection_id,
        )


class SelectorStatus(str, Enum):
    LOADING = "loading"  # No estimate yet
    EMPTY = "empty"      # Estimate has no groups
    BLOCKED = "blocked"  # Selection incomplete for the level
    READY = "ready"


# =============================================================================
# Transitions
# =============================================================================

def change_level(
    state: SelectorState,
    index: HierarchyIndex,
    level: Union[EstimateLevel, str]
) -> SelectorState:
    level = EstimateLevel.parse(level)
    if level is EstimateLevel.ESTIMATE:
        return SelectorState(level=level)
    if not state.group_id:
        return SelectorState.from_selection(level, index.default_selection())
    return replace(state, level=level)


def select_group(state: SelectorState, index: HierarchyIndex, group_id: str) -> SelectorState:
    selection = index.descend_from_group(group_id) if group_id else Selection()
    return SelectorState.from_selection(state.level, selection)


def select_section(state: SelectorState, index: HierarchyIndex, section_id: str) -> SelectorState:
    section = index.section(section_id)
    if section is None:
        return replace(state, section_id=section_id or "", subsection_id="")

    first = section.first_subsection()
    return replace(
        state,
        group_id=section.group_id,
        section_id=section.id,
        subsection_id=first.id if first else "",
    )


def select_subsection(
    state: SelectorState,
    index: HierarchyIndex,
    subsection_id: str
) -> SelectorState:
    sub = index.subsection(subsection_id)
    if sub is None:
        return replace(state, subsection_id=subsection_id or "")
    return replace(
        state,
        group_id=sub.group_id,
        section_id=sub.section_id,
        subsection_id=sub.id,
    )


def default_state(
    index: HierarchyIndex,
    level: Union[EstimateLevel, str] = EstimateLevel.GROUP
) -> SelectorState:
    """First group/section/subsection at the given level (no ids for ESTIMATE)."""
    level = EstimateLevel.parse(level)
    if level is EstimateLevel.ESTIMATE:
        return SelectorState(level=level)
    return SelectorState.from_selection(level, index.default_selection())


def restore_state(
    index: HierarchyIndex,
    existing: AllocationTarget
) -> Optional[SelectorState]:
    """
    Rebuild selector state from a previously saved target.

    Returns:
        SelectorState, or None if the target belongs to another estimate
        or no longer resolves
    """
    if existing.estimate_id != index.estimate.estimate_id:
        return None
    if existing.is_whole_estimate:
        return SelectorState(level=EstimateLevel.ESTIMATE)

    result = AllocationResolver(index.estimate, index).locate(existing.target_id)
    if not result.found:
        return None
    return SelectorState.from_selection(result.level, result.selection)


# =============================================================================
# Stateful Selector
# =============================================================================

class AllocationSelector:
    """
    Interactive allocation picker for one document.

    Usage:
        selector = AllocationSelector(listener=document.set_allocation)
        selector.load(estimate, existing_target=document.allocation)
        selector.select_group("grp-2")

    The listener runs only when (estimate id, level, target id) changes.
    """

    def __init__(
        self,
        listener: Optional[TargetListener] = None,
        default_level: Optional[Union[EstimateLevel, str]] = None
    ):
        if default_level is None:
            default_level = get_config().default_level
        self.listener = listener
        self.default_level = EstimateLevel.parse(default_level)
        self.state = SelectorState(level=self.default_level)

        self.estimate: Optional[Estimate] = None
        self.index: Optional[HierarchyIndex] = None
        self._resolver: Optional[AllocationResolver] = None
        self._initialized_for: Optional[str] = None
        self._last_emitted: Optional[Tuple[str, str, Optional[str]]] = None

    def load(
        self,
        estimate: Estimate,
        existing_target: Optional[AllocationTarget] = None
    ) -> Optional[AllocationTarget]:
        """
        Receive (or refresh) hierarchy data.

        The first load of an estimate restores existing_target or falls back
        to the default selection. Later loads of the same estimate only
        swap the data and keep the current selection.

        Returns:
            The emitted target, or None if nothing was emitted
        """
        self.estimate = estimate
        self.index = HierarchyIndex(estimate)
        self._resolver = AllocationResolver(estimate, self.index)

        if self._initialized_for == estimate.estimate_id:
            logger.debug("Estimate %s refreshed; selection kept", estimate.estimate_id)
            return self._emit()
        self._initialized_for = estimate.estimate_id

        restored = restore_state(self.index, existing_target) if existing_target else None
        if restored is not None:
            self.state = restored
        else:
            if existing_target is not None:
                logger.warning(
                    "Could not restore allocation %s in estimate %s; using defaults",
                    existing_target.key(), estimate.estimate_id
                )
            self.state = default_state(self.index, self.default_level)

        return self._emit()

    # =========================================================================
    # User Input
    # =========================================================================

    def set_level(self, level: Union[EstimateLevel, str]) -> Optional[AllocationTarget]:
        self.state = change_level(self.state, self._require_index(), level)
        return self._emit()

    def select_group(self, group_id: str) -> Optional[AllocationTarget]:
        self.state = select_group(self.state, self._require_index(), group_id)
        return self._emit()

    def select_section(self, section_id: str) -> Optional[AllocationTarget]:
        self.state = select_section(self.state, self._require_index(), section_id)
        return self._emit()

    def select_subsection(self, subsection_id: str) -> Optional[AllocationTarget]:
        self.state = select_subsection(self.state, self._require_index(), subsection_id)
        return self._emit()

    # =========================================================================
    # Resolution
    # =========================================================================

    @property
    def status(self) -> SelectorStatus:
        if self.estimate is None:
            return SelectorStatus.LOADING
        if self.estimate.is_empty and self.state.level is not EstimateLevel.ESTIMATE:
            return SelectorStatus.EMPTY
        if self.current_target() is None:
            return SelectorStatus.BLOCKED
        return SelectorStatus.READY

    def current_target(self) -> Optional[AllocationTarget]:
        """
        Target for the current state.

        Returns:
            AllocationTarget, or None while loading, empty or incomplete
        """
        if self._resolver is None:
            return None
        try:
            target = self._resolver.build_target(self.state.level, self.state.selection)
        except IncompleteSelectionError:
            return None

        # A refresh may have removed the chosen node
        if not target.is_whole_estimate and not self._resolver.locate(target.target_id).found:
            return None
        return target

    def _emit(self) -> Optional[AllocationTarget]:
        target = self.current_target()
        if target is None:
            return None

        key = target.key()
        if key == self._last_emitted:
            return None

        # Recorded before the listener runs: re-entrant updates see it
        self._last_emitted = key
        logger.debug("Allocation target changed to %s", key)
        if self.listener is not None:
            self.listener(target)
        return target

    def _require_index(self) -> HierarchyIndex:
        if self.index is None:
            raise DomainError("No estimate has been loaded", code="SELECTOR_NOT_LOADED")
        return self.index

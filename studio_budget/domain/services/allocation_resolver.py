"""
Allocation Resolver - Maps selections to targets and targets back to paths.

Forward: (level, selected ids) -> target id
Inverse: target id -> (level, group id, section id, subsection id)

Lookup misses are results, not exceptions: a stale reference yields
NOT_FOUND, an estimate without groups yields EMPTY_STRUCTURE.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional, Tuple, Union
import logging

from ..entities.allocation_target import AllocationTarget
from ..entities.estimate import Estimate
from ..entities.line_item import EstimateLevel, Group, Section, Subsection
from ..exceptions import (
    AllocationTargetNotFoundError,
    CrossEstimateAllocationError,
    IncompleteSelectionError,
    ValidationError,
)

logger = logging.getLogger(__name__)


class LocateStatus(str, Enum):
    """Outcome of an inverse lookup."""
    FOUND = "found"
    NOT_FOUND = "not_found"
    EMPTY_STRUCTURE = "empty_structure"


@dataclass(frozen=True)
class Selection:
    """Chosen ids at each level; '' means nothing chosen."""
    group_id: str = ""
    section_id: str = ""
    subsection_id: str = ""


@dataclass(frozen=True)
class LocateResult:
    """
    Result of locating a node id in an estimate.

    Attributes:
        status: FOUND, NOT_FOUND or EMPTY_STRUCTURE
        level: Level of the matched node (None unless FOUND)
        group_id: Owning group id
        section_id: Owning section id (section and subsection matches)
        subsection_id: Matched subsection id
    """
    status: LocateStatus
    level: Optional[EstimateLevel] = None
    group_id: str = ""
    section_id: str = ""
    subsection_id: str = ""

    @property
    def found(self) -> bool:
        return self.status is LocateStatus.FOUND

    @property
    def selection(self) -> Selection:
        return Selection(self.group_id, self.section_id, self.subsection_id)


class HierarchyIndex:
    """
    Id -> node lookups over one estimate snapshot.

    Maps keep the first node seen in document order, so duplicate ids
    resolve deterministically.
    """

    def __init__(self, estimate: Estimate):
        self.estimate = estimate
        self.groups: Dict[str, Group] = {}
        self.sections: Dict[str, Section] = {}
        self.subsections: Dict[str, Subsection] = {}

        for group in estimate.groups:
            if group.id:
                self.groups.setdefault(group.id, group)
        for section in estimate.sections():
            if section.id:
                self.sections.setdefault(section.id, section)
        for sub in estimate.subsections():
            if sub.id:
                self.subsections.setdefault(sub.id, sub)

    @property
    def is_empty(self) -> bool:
        return self.estimate.is_empty

    def group(self, group_id: str) -> Optional[Group]:
        return self.groups.get(group_id) if group_id else None

    def section(self, section_id: str) -> Optional[Section]:
        return self.sections.get(section_id) if section_id else None

    def subsection(self, subsection_id: str) -> Optional[Subsection]:
        return self.subsections.get(subsection_id) if subsection_id else None

    def descend_from_group(self, group_id: str) -> Selection:
        """Group plus its first section and that section's first subsection."""
        group = self.group(group_id)
        section = group.first_section() if group else None
        sub = section.first_subsection() if section else None
        return Selection(
            group_id=group_id,
            section_id=section.id if section else "",
            subsection_id=sub.id if sub else "",
        )

    def default_selection(self) -> Selection:
        """First group, first section, first subsection in document order."""
        if self.is_empty:
            return Selection()
        return self.descend_from_group(self.estimate.groups[0].id)


class AllocationResolver:
    """
    Resolves allocation targets against one estimate.

    Every method takes the estimate explicitly through the resolver;
    nothing reads a global "current project".
    """

    def __init__(self, estimate: Estimate, index: Optional[HierarchyIndex] = None):
        self.estimate = estimate
        self.index = index or HierarchyIndex(estimate)

    # =========================================================================
    # Forward Resolution
    # =========================================================================

    def resolve_target(
        self,
        level: Union[EstimateLevel, str],
        selection: Selection
    ) -> str:
        """
        Pick the id the requested level refers to.

        Args:
            level: Requested allocation level
            selection: Ids chosen so far

        Returns:
            Estimate id for ESTIMATE, otherwise the selected node id

        Raises:
            IncompleteSelectionError: If the id for the level is not chosen
        """
        level = EstimateLevel.parse(level)
        if level is EstimateLevel.ESTIMATE:
            return self.estimate.estimate_id

        chosen = {
            EstimateLevel.GROUP: selection.group_id,
            EstimateLevel.SECTION: selection.section_id,
            EstimateLevel.SUBSECTION: selection.subsection_id,
        }[level]
        if not chosen:
            raise IncompleteSelectionError(level.value, level.value)
        return chosen

    def build_target(
        self,
        level: Union[EstimateLevel, str],
        selection: Selection
    ) -> AllocationTarget:
        """Resolve a selection into a canonical AllocationTarget."""
        level = EstimateLevel.parse(level)
        target_id = self.resolve_target(level, selection)
        if level is EstimateLevel.ESTIMATE:
            return AllocationTarget.whole_estimate(self.estimate.estimate_id)
        return AllocationTarget(
            estimate_id=self.estimate.estimate_id,
            level=level,
            target_id=target_id,
        )

    # =========================================================================
    # Inverse Resolution
    # =========================================================================

    def locate(self, target_id: Optional[str]) -> LocateResult:
        """
        Find a node by id: groups first, then sections, then subsections.

        Args:
            target_id: Node id to look up

        Returns:
            LocateResult; EMPTY_STRUCTURE for an estimate without groups,
            NOT_FOUND for an unknown id
        """
        if self.index.is_empty:
            return LocateResult(status=LocateStatus.EMPTY_STRUCTURE)
        if not target_id:
            return LocateResult(status=LocateStatus.NOT_FOUND)

        group = self.index.group(target_id)
        if group is not None:
            return LocateResult(
                status=LocateStatus.FOUND,
                level=EstimateLevel.GROUP,
                group_id=group.id,
            )

        section = self.index.section(target_id)
        if section is not None:
            return LocateResult(
                status=LocateStatus.FOUND,
                level=EstimateLevel.SECTION,
                group_id=section.group_id,
                section_id=section.id,
            )

        sub = self.index.subsection(target_id)
        if sub is not None:
            return LocateResult(
                status=LocateStatus.FOUND,
                level=EstimateLevel.SUBSECTION,
                group_id=sub.group_id,
                section_id=sub.section_id,
                subsection_id=sub.id,
            )

        logger.debug("Node '%s' not found in estimate %s", target_id, self.estimate.estimate_id)
        return LocateResult(status=LocateStatus.NOT_FOUND)

    # =========================================================================
    # Target Validation
    # =========================================================================

    def validate_target(self, target: AllocationTarget) -> Tuple[bool, List[str]]:
        """
        Check that a target can be charged against this estimate.

        Returns:
            Tuple of (is_valid, list of error messages)
        """
        errors = []

        if target.estimate_id != self.estimate.estimate_id:
            errors.append(
                f"Target belongs to estimate '{target.estimate_id}', "
                f"not '{self.estimate.estimate_id}'"
            )
            return False, errors

        if target.is_whole_estimate:
            return True, errors

        result = self.locate(target.target_id)
        if result.status is LocateStatus.EMPTY_STRUCTURE:
            errors.append(f"Estimate '{self.estimate.estimate_id}' has no structure")
        elif result.status is LocateStatus.NOT_FOUND:
            errors.append(
                f"Node '{target.target_id}' not found in estimate '{self.estimate.estimate_id}'"
            )
        elif result.level is not target.level:
            errors.append(
                f"Node '{target.target_id}' is a {result.level.value}, "
                f"not a {target.level.value}"
            )

        return len(errors) == 0, errors

    def ensure_target(self, target: AllocationTarget) -> LocateResult:
        """
        Raise unless the target resolves inside this estimate.

        Returns:
            LocateResult of the target node (FOUND), or a NOT_FOUND-free
            result with level ESTIMATE for whole-estimate targets

        Raises:
            CrossEstimateAllocationError: Target names another estimate
            AllocationTargetNotFoundError: Node is missing
            ValidationError: Node exists at a different level
        """
        if target.estimate_id != self.estimate.estimate_id:
            raise CrossEstimateAllocationError(target.estimate_id, self.estimate.estimate_id)

        if target.is_whole_estimate:
            return LocateResult(status=LocateStatus.FOUND, level=EstimateLevel.ESTIMATE)

        result = self.locate(target.target_id)
        if not result.found:
            raise AllocationTargetNotFoundError(target.target_id, self.estimate.estimate_id)
        if result.level is not target.level:
            raise ValidationError(
                "level",
                f"node '{target.target_id}' is a {result.level.value}, "
                f"not a {target.level.value}"
            )
        return result


def resolve_target(
    estimate: Estimate,
    level: Union[EstimateLevel, str],
    selection: Selection
) -> str:
    """Forward resolution against an estimate."""
    return AllocationResolver(estimate).resolve_target(level, selection)


def locate(estimate: Estimate, target_id: Optional[str]) -> LocateResult:
    """Inverse resolution against an estimate."""
    return AllocationResolver(estimate).locate(target_id)


def build_target(
    estimate: Estimate,
    level: Union[EstimateLevel, str],
    selection: Selection
) -> AllocationTarget:
    """Forward resolution into an AllocationTarget."""
    return AllocationResolver(estimate).build_target(level, selection)


def validate_target(estimate: Estimate, target: AllocationTarget) -> Tuple[bool, List[str]]:
    """Check a target against an estimate."""
    return AllocationResolver(estimate).validate_target(target)

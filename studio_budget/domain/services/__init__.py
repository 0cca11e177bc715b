"""
Domain Services - Hierarchy building, rollup, and allocation resolution.
"""

from .hierarchy_builder import HierarchyBuilder, build_estimate
from .rollup_service import RollupAggregator, RollupPolicy, aggregate
from .allocation_resolver import (
    AllocationResolver,
    HierarchyIndex,
    LocateResult,
    LocateStatus,
    Selection,
)
from .allocation_selector import AllocationSelector, SelectorState, SelectorStatus
from .allocation_links import AllocationLinkService, AllocationSummary

__all__ = [
    'HierarchyBuilder',
    'build_estimate',
    'RollupAggregator',
    'RollupPolicy',
    'aggregate',
    # Allocation
    'AllocationResolver',
    'HierarchyIndex',
    'LocateResult',
    'LocateStatus',
    'Selection',
    'AllocationSelector',
    'SelectorState',
    'SelectorStatus',
    'AllocationLinkService',
    'AllocationSummary',
]

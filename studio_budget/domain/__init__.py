"""
Domain Layer - Estimate hierarchy entities and services.

This module contains:
- entities/: Immutable domain objects (Estimate, Group, Section, Subsection, AllocationTarget)
- services/: Domain services (HierarchyBuilder, RollupAggregator, AllocationResolver, AllocationSelector)
"""

from .entities.line_item import EstimateLevel, LineItem, Group, Section, Subsection
from .entities.estimate import Estimate
from .entities.allocation_target import AllocationTarget
from .entities.allocated_document import AllocatedDocument, DocumentType

__all__ = [
    'EstimateLevel', 'LineItem', 'Group', 'Section', 'Subsection',
    'Estimate',
    'AllocationTarget',
    'AllocatedDocument', 'DocumentType',
]

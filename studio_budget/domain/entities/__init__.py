"""
Domain Entities - Immutable estimate snapshot and allocation value objects.
"""

from .line_item import EstimateLevel, LineItem, Group, Section, Subsection
from .estimate import Estimate
from .allocation_target import AllocationTarget
from .allocated_document import AllocatedDocument, DocumentType

__all__ = [
    'EstimateLevel', 'LineItem', 'Group', 'Section', 'Subsection',
    'Estimate',
    'AllocationTarget',
    'AllocatedDocument', 'DocumentType',
]

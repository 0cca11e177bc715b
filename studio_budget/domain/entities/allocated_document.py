"""
Allocated Document Entity - A financial document charged to a budget node.
"""
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum

from .allocation_target import AllocationTarget
from .line_item import ZERO


class DocumentType(str, Enum):
    """Document kinds that carry an allocation target."""
    PURCHASE_ORDER = "purchase_order"
    EXPENSE = "expense"
    WAGE = "wage"
    PAYSLIP = "payslip"
    SUBCONTRACTOR_ASSIGNMENT = "subcontractor_assignment"


@dataclass(frozen=True)
class AllocatedDocument:
    """
    A document referencing an estimate node.

    Attributes:
        document_type: Kind of document
        document_id: Identifier in the owning module
        project_id: Project the document belongs to
        target: Where the document is charged
        amount: Document value charged against the target
    """

    document_type: DocumentType
    document_id: str
    project_id: str
    target: AllocationTarget
    amount: Decimal = ZERO

    def to_dict(self) -> dict:
        """Serialize with the target in the wire form the document type uses."""
        if self.document_type is DocumentType.SUBCONTRACTOR_ASSIGNMENT:
            allocation = self.target.to_subcontractor_link(self.project_id)
        else:
            allocation = {'projectId': self.project_id, **self.target.to_dict()}
        return {
            'document_type': self.document_type.value,
            'document_id': self.document_id,
            'amount': float(self.amount),
            **allocation,
        }

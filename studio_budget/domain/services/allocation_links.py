"""
Allocation Links - Financial documents charged against estimate nodes.

Purchase orders, expenses, wages, payslips and subcontractor assignments
each carry an AllocationTarget. Attaching checks the target against the
estimate; summarizing totals charged amounts per node and reports links
whose node has since been removed.
"""
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Dict, Iterable, List, Union
import logging

from ..entities.allocated_document import AllocatedDocument, DocumentType
from ..entities.allocation_target import AllocationTarget
from ..entities.estimate import Estimate
from ..entities.line_item import ZERO
from ..exceptions import ProjectMismatchError
from ...modules.etl import parse_decimal
from .allocation_resolver import AllocationResolver

logger = logging.getLogger(__name__)


@dataclass
class AllocationSummary:
    """
    Allocated amounts for one estimate.

    Attributes:
        totals: Amount per target key (node id, or the estimate id for
            whole-estimate links)
        stale: Documents whose target no longer resolves
    """
    estimate_id: str
    totals: Dict[str, Decimal] = field(default_factory=dict)
    stale: List[AllocatedDocument] = field(default_factory=list)

    @property
    def total_allocated(self) -> Decimal:
        return sum(self.totals.values(), ZERO)

    def to_dict(self) -> dict:
        return {
            'estimate_id': self.estimate_id,
            'totals': {key: float(value) for key, value in self.totals.items()},
            'total_allocated': float(self.total_allocated),
            'stale': [doc.to_dict() for doc in self.stale],
        }


class AllocationLinkService:
    """
    Links documents to nodes of a single estimate.

    Business Rules:
    - A target must belong to this estimate
    - The document's project must be the estimate's project
    - A node-level target must name an existing node of that level
    """

    def __init__(self, estimate: Estimate):
        self.estimate = estimate
        self.resolver = AllocationResolver(estimate)

    def attach(
        self,
        document_type: Union[DocumentType, str],
        document_id: str,
        project_id: str,
        target: AllocationTarget,
        amount: Union[Decimal, str, float, int, None] = ZERO
    ) -> AllocatedDocument:
        """
        Charge a document against a node of this estimate.

        Args:
            document_type: Kind of document
            document_id: Document identifier
            project_id: Project the document belongs to
            target: Allocation target chosen for the document
            amount: Document value; malformed input counts as zero

        Returns:
            AllocatedDocument

        Raises:
            ProjectMismatchError: Document and estimate projects differ
            CrossEstimateAllocationError: Target names another estimate
            AllocationTargetNotFoundError: Target node does not exist
            ValidationError: Target node exists at another level
        """
        document_type = DocumentType(document_type)

        if project_id and self.estimate.project_id and project_id != self.estimate.project_id:
            raise ProjectMismatchError(project_id, self.estimate.project_id)

        self.resolver.ensure_target(target)

        document = AllocatedDocument(
            document_type=document_type,
            document_id=document_id,
            project_id=project_id or self.estimate.project_id,
            target=target,
            amount=parse_decimal(amount),
        )
        logger.info(
            "Attached %s %s to %s",
            document_type.value, document_id, target.key()
        )
        return document

    def summarize(self, documents: Iterable[AllocatedDocument]) -> AllocationSummary:
        """
        Total allocated amounts per target.

        Documents charged to other estimates are ignored.

        Returns:
            AllocationSummary
        """
        summary = AllocationSummary(estimate_id=self.estimate.estimate_id)

        for document in documents:
            target = document.target
            if target.estimate_id != self.estimate.estimate_id:
                logger.debug(
                    "Skipping %s %s: charged to estimate %s",
                    document.document_type.value, document.document_id, target.estimate_id
                )
                continue

            is_valid, errors = self.resolver.validate_target(target)
            if not is_valid:
                logger.warning(
                    "Stale allocation on %s %s: %s",
                    document.document_type.value, document.document_id, "; ".join(errors)
                )
                summary.stale.append(document)
                continue

            key = target.estimate_id if target.is_whole_estimate else target.target_id
            summary.totals[key] = summary.totals.get(key, ZERO) + document.amount

        return summary

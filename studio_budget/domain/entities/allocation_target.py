"""
Allocation Target - Reference from a financial document to a budget node.

Purchase orders, expenses, wages, payslips and subcontractor project links
each persist one of these as a plain attribute of their own record.
"""
from dataclasses import dataclass
from typing import Optional, Tuple

from ..exceptions import ValidationError
from .line_item import EstimateLevel


@dataclass(frozen=True)
class AllocationTarget:
    """
    Canonical (estimate, level, target node) triple.

    Attributes:
        estimate_id: Estimate the allocation charges against
        level: Level of the referenced node, or ESTIMATE for the whole estimate
        target_id: Node id; None iff level is ESTIMATE
    """

    estimate_id: str
    level: EstimateLevel = EstimateLevel.ESTIMATE
    target_id: Optional[str] = None

    def __post_init__(self):
        if not self.estimate_id:
            raise ValidationError("estimate_id", "an allocation requires an estimate")

        # Frozen: normalize through object.__setattr__
        object.__setattr__(self, 'level', EstimateLevel.parse(self.level))
        target_id = self.target_id or None
        object.__setattr__(self, 'target_id', target_id)

        if self.level is EstimateLevel.ESTIMATE and target_id is not None:
            raise ValidationError(
                "target_id", "whole-estimate allocations must not name a target node"
            )
        if self.level is not EstimateLevel.ESTIMATE and target_id is None:
            raise ValidationError(
                "target_id", f"a '{self.level.value}' allocation requires a target node"
            )

    @classmethod
    def whole_estimate(cls, estimate_id: str) -> "AllocationTarget":
        return cls(estimate_id=estimate_id, level=EstimateLevel.ESTIMATE)

    @property
    def is_whole_estimate(self) -> bool:
        return self.level is EstimateLevel.ESTIMATE

    def key(self) -> Tuple[str, str, Optional[str]]:
        """Identity tuple used for change detection."""
        return (self.estimate_id, self.level.value, self.target_id)

    def to_dict(self) -> dict:
        """Wire form stored on purchase orders, expenses, wages and payslips."""
        return {
            'estimateId': self.estimate_id,
            'estimateLevel': self.level.value,
            'estimateTargetId': self.target_id,
        }

    def to_subcontractor_link(self, project_id: str) -> dict:
        """Wire form stored on a subcontractor's project assignment."""
        return {
            'projectId': project_id,
            'estimateId': self.estimate_id,
            'allocationLevel': self.level.value,
            'allocationRef': self.target_id,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "AllocationTarget":
        """
        Parse either wire form.

        Accepts estimateLevel/estimateTargetId (documents) or
        allocationLevel/allocationRef (subcontractor links).
        """
        level = data.get('estimateLevel') or data.get('allocationLevel') or EstimateLevel.ESTIMATE
        target_id = data.get('estimateTargetId')
        if target_id is None:
            target_id = data.get('allocationRef')
        level = EstimateLevel.parse(level)
        if level is EstimateLevel.ESTIMATE:
            # Older records stored the estimate id itself as the target
            target_id = None
        return cls(
            estimate_id=str(data.get('estimateId') or ''),
            level=level,
            target_id=str(target_id) if target_id else None,
        )

"""
Estimate Entity - Root of the budget hierarchy.

Funds flow: Subsection -> Section -> Group -> Estimate total.
An Estimate is a read-only snapshot; rollup produces a new instance.
"""
from dataclasses import dataclass, field
import datetime
from decimal import Decimal
from typing import Iterator, Optional, Tuple

from .line_item import ZERO, Group, LineItem, Section, Subsection


@dataclass(frozen=True)
class Estimate:
    """
    A project's budget estimate.

    Attributes:
        estimate_id: Unique identifier
        project_id: Owning project
        name: Estimate name
        status: Workflow status as supplied by the source
        date: Estimate date
        total: Sum of group amounts
        spent: Sum of group spent
        balance: total - spent
        groups: Top-level groups in document order
    """

    estimate_id: str = ""
    project_id: str = ""
    name: str = ""
    status: str = ""
    date: Optional[datetime.date] = None
    total: Decimal = ZERO
    spent: Decimal = ZERO
    balance: Decimal = ZERO
    groups: Tuple[Group, ...] = field(default_factory=tuple)

    @property
    def is_empty(self) -> bool:
        """True when the estimate has no groups at all."""
        return not self.groups

    def sections(self) -> Iterator[Section]:
        """All sections in document order."""
        for group in self.groups:
            yield from group.sections

    def subsections(self) -> Iterator[Subsection]:
        """All subsections in document order."""
        for section in self.sections():
            yield from section.subsections

    def iter_nodes(self) -> Iterator[LineItem]:
        """Depth-first walk: each group, then its sections and their subsections."""
        for group in self.groups:
            yield group
            for section in group.sections:
                yield section
                yield from section.subsections

    def node_count(self) -> int:
        return sum(1 for _ in self.iter_nodes())

    def percent_spent(self) -> float:
        """Overall percent of the estimate spent."""
        if self.total == 0:
            return 0.0
        return float(self.spent / self.total) * 100

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            'estimate_id': self.estimate_id,
            'project_id': self.project_id,
            'name': self.name,
            'status': self.status,
            'date': self.date.isoformat() if self.date else None,
            'total': float(self.total),
            'spent': float(self.spent),
            'balance': float(self.balance),
            'percent_spent': self.percent_spent(),
            'groups': [group.to_dict() for group in self.groups],
        }

"""
Line Item Entities - Costed units of work at each estimate level.

Group -> Section -> Subsection share the LineItem shape:
quantity x rate = amount, with spent and balance tracked per node.
"""
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import ClassVar, Optional, Tuple

from ..exceptions import ValidationError


ZERO = Decimal("0")


class EstimateLevel(str, Enum):
    """Levels an allocation can target, most coarse first."""
    ESTIMATE = "estimate"
    GROUP = "group"
    SECTION = "section"
    SUBSECTION = "subsection"

    @classmethod
    def parse(cls, value) -> "EstimateLevel":
        """Accept an EstimateLevel or its string value (case-insensitive)."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise ValidationError("level", f"unknown estimate level {value!r}")


@dataclass(frozen=True)
class LineItem:
    """
    Base costed node shared by every estimate level.

    Attributes:
        id: Identifier, unique within its estimate
        code: Display code (not required to be unique)
        name: Display name
        description: Free text
        quantity: Measured quantity
        unit: Unit of measure
        rate: Price per unit
        amount: Budgeted amount (rate x quantity unless supplied)
        spent: Amount charged against this node
        balance: amount - spent
    """

    level: ClassVar[EstimateLevel]

    id: str = ""
    code: str = ""
    name: str = ""
    description: str = ""
    quantity: Decimal = ZERO
    unit: str = ""
    rate: Decimal = ZERO
    amount: Decimal = ZERO
    spent: Decimal = ZERO
    balance: Decimal = ZERO

    @property
    def children(self) -> Tuple["LineItem", ...]:
        """Next level down; empty for leaves."""
        return ()

    def percent_spent(self) -> float:
        """Percentage of the amount already spent."""
        if self.amount == 0:
            return 0.0
        return float(self.spent / self.amount) * 100

    def budget_status(self, warning_percent: float = 90.0) -> str:
        """
        Categorize spend against budget.

        Returns:
            'over-budget' when spent exceeds amount,
            'warning' at or above warning_percent,
            'on-track' otherwise
        """
        if self.spent > self.amount:
            return 'over-budget'
        if self.amount > 0 and self.percent_spent() >= warning_percent:
            return 'warning'
        return 'on-track'

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            'id': self.id,
            'level': self.level.value,
            'code': self.code,
            'name': self.name,
            'description': self.description,
            'quantity': float(self.quantity),
            'unit': self.unit,
            'rate': float(self.rate),
            'amount': float(self.amount),
            'spent': float(self.spent),
            'balance': float(self.balance),
            'percent_spent': self.percent_spent(),
        }


@dataclass(frozen=True)
class Subsection(LineItem):
    """Finest level of the estimate. Carries its full ancestry."""

    level: ClassVar[EstimateLevel] = EstimateLevel.SUBSECTION

    group_id: str = ""
    section_id: str = ""

    def to_dict(self) -> dict:
        data = super().to_dict()
        data['group_id'] = self.group_id
        data['section_id'] = self.section_id
        return data


@dataclass(frozen=True)
class Section(LineItem):
    """Middle level of the estimate."""

    level: ClassVar[EstimateLevel] = EstimateLevel.SECTION

    group_id: str = ""
    subsections: Tuple[Subsection, ...] = field(default_factory=tuple)

    @property
    def children(self) -> Tuple[Subsection, ...]:
        return self.subsections

    def first_subsection(self) -> Optional[Subsection]:
        return self.subsections[0] if self.subsections else None

    def to_dict(self) -> dict:
        data = super().to_dict()
        data['group_id'] = self.group_id
        data['subsections'] = [sub.to_dict() for sub in self.subsections]
        return data


@dataclass(frozen=True)
class Group(LineItem):
    """Top level of the estimate."""

    level: ClassVar[EstimateLevel] = EstimateLevel.GROUP

    sections: Tuple[Section, ...] = field(default_factory=tuple)

    @property
    def children(self) -> Tuple[Section, ...]:
        return self.sections

    def first_section(self) -> Optional[Section]:
        return self.sections[0] if self.sections else None

    def to_dict(self) -> dict:
        data = super().to_dict()
        data['sections'] = [section.to_dict() for section in self.sections]
        return data

"""
Rollup Service - Bottom-up aggregation of spent, amount and balance.

Ensures the estimate invariants:
- Section.spent = Σ(Subsection.spent)
- Group.spent = Σ(Section.spent)
- Estimate.spent = Σ(Group.spent), Estimate.total = Σ(Group.amount)
- balance = amount - spent at every level, never summed from children
- Under the bottom_up policy, parent amount = Σ(child.amount)
"""
from dataclasses import replace
from decimal import Decimal
from enum import Enum
from typing import Iterator, List, Optional, Sequence, Tuple, Union
import logging

from ...config import get_config
from ..entities.estimate import Estimate
from ..entities.line_item import Group, LineItem, Section
from ..exceptions import InvariantViolationError

logger = logging.getLogger(__name__)

ZERO = Decimal("0")


class RollupPolicy(str, Enum):
    """How parent amounts relate to their children."""
    BOTTOM_UP = "bottom_up"            # Parent amount is the sum of child amounts
    SOURCE_AMOUNTS = "source_amounts"  # Parent amount keeps the supplied figure


def _sum(values: Iterator[Decimal]) -> Decimal:
    return sum(values, ZERO)


class RollupAggregator:
    """
    Recomputes every ancestor level of an estimate from its descendants.

    aggregate() is a pure function of its input and idempotent:
    aggregate(aggregate(e)) == aggregate(e).

    A Group or Section without children is a leaf: it keeps its own
    amount and spent, exactly like a Subsection.
    """

    def __init__(
        self,
        policy: Optional[Union[RollupPolicy, str]] = None,
        tolerance: Optional[Decimal] = None
    ):
        if policy is None or tolerance is None:
            config = get_config()
            policy = policy if policy is not None else config.rollup_policy
            tolerance = tolerance if tolerance is not None else config.rollup_tolerance
        self.policy = RollupPolicy(policy)
        self.tolerance = Decimal(str(tolerance))

    # =========================================================================
    # Aggregation
    # =========================================================================

    def aggregate(self, estimate: Estimate) -> Estimate:
        """
        Return a new Estimate with figures rolled up from the leaves.

        Args:
            estimate: Built (or previously aggregated) estimate

        Returns:
            Aggregated copy; the input is not modified
        """
        groups = tuple(self._roll_group(group) for group in estimate.groups)
        total = _sum(g.amount for g in groups)
        spent = _sum(g.spent for g in groups)

        return replace(
            estimate,
            groups=groups,
            total=total,
            spent=spent,
            balance=total - spent,
        )

    def _roll_group(self, group: Group) -> Group:
        sections = tuple(self._roll_section(section) for section in group.sections)
        return self._roll_parent(group, sections, sections=sections)

    def _roll_section(self, section: Section) -> Section:
        subsections = tuple(self._roll_leaf(sub) for sub in section.subsections)
        return self._roll_parent(section, subsections, subsections=subsections)

    @staticmethod
    def _roll_leaf(node: LineItem) -> LineItem:
        return replace(node, balance=node.amount - node.spent)

    def _roll_parent(self, node: LineItem, children: Sequence[LineItem], **child_field):
        if not children:
            return replace(node, balance=node.amount - node.spent, **child_field)

        spent = _sum(child.spent for child in children)
        if self.policy is RollupPolicy.BOTTOM_UP:
            amount = _sum(child.amount for child in children)
        else:
            amount = node.amount

        return replace(
            node,
            amount=amount,
            spent=spent,
            balance=amount - spent,
            **child_field
        )

    # =========================================================================
    # Validation
    # =========================================================================

    def _violations(self, estimate: Estimate) -> Iterator[Tuple[str, Decimal, Decimal]]:
        """Yield (invariant name, expected, actual) for every violated invariant."""

        def differs(expected: Decimal, actual: Decimal) -> bool:
            return abs(expected - actual) > self.tolerance

        for node in estimate.iter_nodes():
            label = f"{node.level.value} '{node.id}'"
            expected_balance = node.amount - node.spent
            if differs(expected_balance, node.balance):
                yield f"{label} balance = amount - spent", expected_balance, node.balance

            children = node.children
            if not children:
                continue
            child_spent = _sum(c.spent for c in children)
            if differs(child_spent, node.spent):
                yield f"{label} spent = sum of children", child_spent, node.spent
            if self.policy is RollupPolicy.BOTTOM_UP:
                child_amount = _sum(c.amount for c in children)
                if differs(child_amount, node.amount):
                    yield f"{label} amount = sum of children", child_amount, node.amount

        group_total = _sum(g.amount for g in estimate.groups)
        if differs(group_total, estimate.total):
            yield "estimate total = sum of groups", group_total, estimate.total
        group_spent = _sum(g.spent for g in estimate.groups)
        if differs(group_spent, estimate.spent):
            yield "estimate spent = sum of groups", group_spent, estimate.spent
        expected_balance = estimate.total - estimate.spent
        if differs(expected_balance, estimate.balance):
            yield "estimate balance = total - spent", expected_balance, estimate.balance

    def validate(self, estimate: Estimate) -> Tuple[bool, List[str]]:
        """
        Validate rollup invariants.

        Args:
            estimate: Aggregated estimate

        Returns:
            Tuple of (is_valid, list of error messages)
        """
        errors = [
            f"Invariant '{name}' violated: expected {expected}, got {actual}"
            for name, expected, actual in self._violations(estimate)
        ]
        if errors:
            logger.info(
                "Estimate %s failed %d rollup checks", estimate.estimate_id, len(errors)
            )
        return len(errors) == 0, errors

    def assert_consistent(self, estimate: Estimate) -> None:
        """
        Raise on the first violated invariant.

        Raises:
            InvariantViolationError
        """
        for name, expected, actual in self._violations(estimate):
            raise InvariantViolationError(name, str(expected), str(actual))


def aggregate(estimate: Estimate, policy: Optional[Union[RollupPolicy, str]] = None) -> Estimate:
    """Aggregate an estimate with the given (or configured) policy."""
    return RollupAggregator(policy=policy).aggregate(estimate)

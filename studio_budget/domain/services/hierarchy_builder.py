"""
Hierarchy Builder - Raw estimate payload -> Estimate tree.

Builds the Group -> Section -> Subsection snapshot:
- Missing child arrays are empty, never an error
- amount = rate x quantity when the source omits it
- A supplied amount is kept verbatim, even when it disagrees with rate x quantity
- Sections carry their group id, subsections their (group id, section id)
"""
from decimal import Decimal
from typing import Any, Dict, Set
import logging

from ..entities.estimate import Estimate
from ..entities.line_item import Group, Section, Subsection
from ...modules.payload import (
    RawEstimate,
    RawGroup,
    RawLineItem,
    RawSection,
    RawSubsection,
    parse_raw_estimate,
)

logger = logging.getLogger(__name__)


def _line_item_fields(raw: RawLineItem) -> Dict[str, Any]:
    """Common LineItem fields with amount derived when absent."""
    amount = raw.amount if raw.amount is not None else raw.rate * raw.quantity
    return {
        'id': raw.id,
        'code': raw.code,
        'name': raw.name,
        'description': raw.description,
        'quantity': raw.quantity,
        'unit': raw.unit,
        'rate': raw.rate,
        'amount': amount,
        'spent': raw.spent,
        'balance': amount - raw.spent,
    }


class HierarchyBuilder:
    """
    Assembles raw estimate data into an Estimate.

    Pure transformation: no I/O, no shared state between build() calls.
    Duplicate or missing node ids are logged, not raised; first match wins
    on lookup, so the tree stays usable.
    """

    def build(self, raw: Any) -> Estimate:
        """
        Build an Estimate from a raw payload.

        Args:
            raw: Decoded payload mapping or RawEstimate

        Returns:
            Estimate with derived amounts and back-references populated.
            Estimate totals are the plain sums of the built groups;
            run the rollup aggregator for bottom-up figures.
        """
        payload: RawEstimate = parse_raw_estimate(raw)
        seen: Set[str] = set()

        groups = tuple(self._build_group(g, payload.estimate_id, seen) for g in payload.groups)

        total = sum((g.amount for g in groups), Decimal("0"))
        spent = sum((g.spent for g in groups), Decimal("0"))

        estimate = Estimate(
            estimate_id=payload.estimate_id,
            project_id=payload.project_id,
            name=payload.name,
            status=payload.status,
            date=payload.date,
            total=total,
            spent=spent,
            balance=total - spent,
            groups=groups,
        )
        logger.debug(
            "Built estimate %s: %d groups, %d nodes",
            estimate.estimate_id, len(groups), estimate.node_count()
        )
        return estimate

    def _build_group(self, raw: RawGroup, estimate_id: str, seen: Set[str]) -> Group:
        self._register_id(raw.id, "group", estimate_id, seen)
        sections = tuple(
            self._build_section(s, raw.id, estimate_id, seen) for s in raw.sections
        )
        return Group(sections=sections, **_line_item_fields(raw))

    def _build_section(
        self,
        raw: RawSection,
        group_id: str,
        estimate_id: str,
        seen: Set[str]
    ) -> Section:
        self._register_id(raw.id, "section", estimate_id, seen)
        subsections = tuple(
            self._build_subsection(sub, group_id, raw.id, estimate_id, seen)
            for sub in raw.subsections
        )
        return Section(group_id=group_id, subsections=subsections, **_line_item_fields(raw))

    def _build_subsection(
        self,
        raw: RawSubsection,
        group_id: str,
        section_id: str,
        estimate_id: str,
        seen: Set[str]
    ) -> Subsection:
        self._register_id(raw.id, "subsection", estimate_id, seen)
        return Subsection(group_id=group_id, section_id=section_id, **_line_item_fields(raw))

    @staticmethod
    def _register_id(node_id: str, level: str, estimate_id: str, seen: Set[str]) -> None:
        if not node_id:
            logger.warning("Estimate %s has a %s without an id", estimate_id, level)
            return
        if node_id in seen:
            logger.warning(
                "Estimate %s has duplicate node id '%s' (%s)", estimate_id, node_id, level
            )
        seen.add(node_id)


def build_estimate(raw: Any) -> Estimate:
    """Build an Estimate from a raw payload."""
    return HierarchyBuilder().build(raw)

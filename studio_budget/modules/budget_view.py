"""
Budget View Module for Studio Budget.

Flattens an aggregated estimate into one row per node (document order),
derives percent spent and budget status, and formats rows and summary
metrics for display. Amounts stay Decimal in the frame; display strings
are produced only at the edge.
"""
import pandas as pd
from decimal import Decimal
from typing import Dict, List, Optional
import logging

from ..config import get_config
from ..domain.entities.estimate import Estimate
from ..domain.entities.line_item import Group, LineItem, Section, Subsection
from .etl import amount_to_display

logger = logging.getLogger(__name__)

COLUMNS = [
    'level', 'node_id', 'code', 'name', 'description',
    'quantity', 'unit', 'rate', 'amount', 'spent', 'balance',
    'percent_spent', 'status', 'group_id', 'section_id',
]


def safe_divide(numerator: Decimal, denominator: Decimal) -> float:
    """Safe division that returns 0 on divide by zero."""
    if denominator == 0:
        return 0.0
    return float(numerator / denominator)


def _owning_group(node: LineItem) -> str:
    return node.id if isinstance(node, Group) else node.group_id


def _owning_section(node: LineItem) -> str:
    if isinstance(node, Subsection):
        return node.section_id
    return node.id if isinstance(node, Section) else ''


def flatten_estimate(estimate: Estimate, warning_percent: Optional[float] = None) -> pd.DataFrame:
    """
    Flatten an estimate tree into a DataFrame.

    Args:
        estimate: Aggregated estimate
        warning_percent: Threshold for 'warning' status (config default)

    Returns:
        DataFrame with COLUMNS, one row per group, section and subsection
    """
    if warning_percent is None:
        warning_percent = get_config().warning_percent

    rows = []
    for node in estimate.iter_nodes():
        rows.append({
            'level': node.level.value,
            'node_id': node.id,
            'code': node.code,
            'name': node.name,
            'description': node.description,
            'quantity': node.quantity,
            'unit': node.unit,
            'rate': node.rate,
            'amount': node.amount,
            'spent': node.spent,
            'balance': node.balance,
            'percent_spent': node.percent_spent(),
            'status': node.budget_status(warning_percent),
            'group_id': _owning_group(node),
            'section_id': _owning_section(node),
        })

    df = pd.DataFrame(rows, columns=COLUMNS)
    logger.debug("Flattened estimate %s into %d rows", estimate.estimate_id, len(df))
    return df


def format_for_display(df: pd.DataFrame, currency: Optional[dict] = None) -> List[Dict]:
    """
    Convert a flattened estimate DataFrame to list of dicts for display.
    Formats amounts as currency strings and keeps raw values for sorting.
    """
    if currency is None:
        currency = get_config().currency_config

    rows = []
    for _, row in df.iterrows():
        rows.append({
            'level': row['level'],
            'node_id': row['node_id'],
            'code': row['code'],
            'name': row['name'],
            'unit': row['unit'],
            'quantity': float(row['quantity']),
            'rate': amount_to_display(row['rate'], currency),
            'amount': amount_to_display(row['amount'], currency),
            'spent': amount_to_display(row['spent'], currency),
            'balance': amount_to_display(row['balance'], currency),
            'balance_positive': row['balance'] >= 0,
            'percent_spent': f"{row['percent_spent']:.1f}%",
            'status': row['status'],
            # Raw values for sorting
            'amount_raw': float(row['amount']),
            'spent_raw': float(row['spent']),
            'balance_raw': float(row['balance']),
        })
    return rows


def compute_summary(
    estimate: Estimate,
    currency: Optional[dict] = None,
    warning_percent: Optional[float] = None
) -> Dict:
    """
    Compute estimate-level metrics for the budget summary panel.

    Efficiency is the share of the total budget spent, in percent.
    """
    if currency is None:
        currency = get_config().currency_config

    df = flatten_estimate(estimate, warning_percent)
    status_counts = df['status'].value_counts() if not df.empty else pd.Series(dtype=int)

    efficiency = round(safe_divide(estimate.spent, estimate.total) * 100, 1)

    return {
        'estimate_id': estimate.estimate_id,
        'name': estimate.name,
        'total': amount_to_display(estimate.total, currency),
        'spent': amount_to_display(estimate.spent, currency),
        'balance': amount_to_display(estimate.balance, currency),
        'efficiency': efficiency,
        'group_count': len(estimate.groups),
        'node_count': len(df),
        'over_budget_count': int(status_counts.get('over-budget', 0)),
        'warning_count': int(status_counts.get('warning', 0)),
        # Raw values
        'total_raw': float(estimate.total),
        'spent_raw': float(estimate.spent),
        'balance_raw': float(estimate.balance),
    }

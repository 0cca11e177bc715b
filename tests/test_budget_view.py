"""
Tests for the budget view module.
Tests flattening to a DataFrame, display formatting and summary metrics.
"""
from decimal import Decimal

import pandas as pd

from studio_budget.modules.budget_view import (
    COLUMNS,
    compute_summary,
    flatten_estimate,
    format_for_display,
    safe_divide,
)

CURRENCY = {"symbol": "KES", "decimal_places": 2, "thousands_separator": ","}


class TestFlattenEstimate:
    """Tests for flatten_estimate."""

    def test_one_row_per_node_in_document_order(self, aggregated_estimate):
        df = flatten_estimate(aggregated_estimate, warning_percent=90)
        assert isinstance(df, pd.DataFrame)
        assert list(df.columns) == COLUMNS
        assert df['node_id'].tolist() == ["grp-1", "sec-1", "sub-1", "sub-2", "sec-2", "grp-2"]
        assert df['level'].tolist() == [
            "group", "section", "subsection", "subsection", "section", "group"
        ]

    def test_ancestry_columns(self, aggregated_estimate):
        df = flatten_estimate(aggregated_estimate, warning_percent=90)
        assert df['group_id'].tolist() == ["grp-1"] * 5 + ["grp-2"]
        assert df['section_id'].tolist() == ["", "sec-1", "sec-1", "sec-1", "sec-2", ""]

    def test_amounts_stay_decimal(self, aggregated_estimate):
        df = flatten_estimate(aggregated_estimate, warning_percent=90)
        row = df[df['node_id'] == "grp-1"].iloc[0]
        assert row['amount'] == Decimal("2300")
        assert row['balance'] == Decimal("2200")

    def test_budget_status(self, aggregated_estimate):
        """Test over-budget and warning thresholds."""
        df = flatten_estimate(aggregated_estimate, warning_percent=35)
        status = dict(zip(df['node_id'], df['status']))
        assert status["grp-2"] == "over-budget"
        assert status["sub-2"] == "warning"
        assert status["sub-1"] == "on-track"
        assert status["sec-2"] == "on-track"

    def test_empty_estimate(self, empty_estimate):
        df = flatten_estimate(empty_estimate, warning_percent=90)
        assert df.empty
        assert list(df.columns) == COLUMNS


class TestFormatForDisplay:
    """Tests for format_for_display."""

    def test_currency_strings_and_raw_values(self, aggregated_estimate):
        rows = format_for_display(flatten_estimate(aggregated_estimate, 90), CURRENCY)
        group = rows[0]

        assert group['amount'] == "KES 2,300.00"
        assert group['spent'] == "KES 100.00"
        assert group['amount_raw'] == 2300.0
        assert group['balance_positive'] is True

    def test_negative_balance(self, aggregated_estimate):
        rows = format_for_display(flatten_estimate(aggregated_estimate, 90), CURRENCY)
        over = rows[-1]
        assert over['balance'] == "-KES 50.00"
        assert over['balance_positive'] is False
        assert over['status'] == "over-budget"

    def test_percent_string(self, aggregated_estimate):
        rows = format_for_display(flatten_estimate(aggregated_estimate, 90), CURRENCY)
        sub_2 = next(row for row in rows if row['node_id'] == "sub-2")
        assert sub_2['percent_spent'] == "40.0%"


class TestComputeSummary:
    """Tests for compute_summary."""

    def test_totals_and_efficiency(self, aggregated_estimate):
        summary = compute_summary(aggregated_estimate, CURRENCY, warning_percent=90)

        assert summary['total'] == "KES 3,100.00"
        assert summary['spent'] == "KES 950.00"
        assert summary['balance'] == "KES 2,150.00"
        assert summary['efficiency'] == 30.6
        assert summary['node_count'] == 6
        assert summary['group_count'] == 2
        assert summary['over_budget_count'] == 1
        assert summary['warning_count'] == 0

    def test_empty_estimate(self, empty_estimate):
        summary = compute_summary(empty_estimate, CURRENCY, warning_percent=90)
        assert summary['efficiency'] == 0.0
        assert summary['node_count'] == 0
        assert summary['over_budget_count'] == 0

    def test_safe_divide(self):
        assert safe_divide(Decimal("1"), Decimal("0")) == 0.0
        assert safe_divide(Decimal("1"), Decimal("4")) == 0.25

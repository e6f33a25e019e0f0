"""Tests for result-to-DataFrame pandas adapters."""

import math
from datetime import datetime, timedelta
from decimal import Decimal

import pytest

from customer_analytics.analyses.clv_comparison import compare_clv
from customer_analytics.analyses.concentration import analyze_concentration
from customer_analytics.analyses.rfm_comparison import compare_rfm
from customer_analytics.foundation.customers import Customer, Transaction
from customer_analytics.foundation.rfm import CANONICAL_SEGMENTS, calculate_rfm
from customer_analytics.models.clv import calculate_clv
from customer_analytics.pandas import (
    clv_comparison_to_dataframe,
    clv_to_dataframe,
    concentration_to_dataframe,
    rfm_comparison_to_dataframes,
    rfm_to_dataframe,
)
from customer_analytics.pandas.rfm import RFM_COLUMNS

REFERENCE_DATE = datetime(2024, 6, 30)


def _customer(customer_id: str, amount: str, days_ago: int = 5) -> Customer:
    return Customer(
        customer_id,
        f"Customer {customer_id}",
        transactions=(
            Transaction(f"{customer_id}-T1", REFERENCE_DATE - timedelta(days=days_ago), Decimal(amount)),
        ),
    )


class TestRFMToDataFrame:
    """Test rfm_to_dataframe conversion."""

    def test_columns_and_values(self):
        """Records convert with Decimal monetary as float."""
        records = calculate_rfm([_customer("C1", "50.25"), _customer("C2", "10")], REFERENCE_DATE)
        df = rfm_to_dataframe(records)

        assert list(df.columns) == RFM_COLUMNS
        assert list(df["customer_id"]) == ["C1", "C2"]
        assert df.iloc[0]["monetary"] == 50.25
        assert df.iloc[0]["recency_days"] == 5
        assert df.iloc[0]["segment"] == records[0].segment.value

    def test_no_purchase_recency_is_nan(self):
        """Infinite recency becomes NaN."""
        records = calculate_rfm([_customer("C1", "10"), Customer("C2", "Nobody")], REFERENCE_DATE)
        df = rfm_to_dataframe(records)
        assert math.isnan(df.iloc[1]["recency_days"])

    def test_empty_input_returns_empty_dataframe(self):
        """Empty list returns an empty frame with the expected columns."""
        df = rfm_to_dataframe([])
        assert df.empty
        assert list(df.columns) == RFM_COLUMNS


class TestRFMComparisonToDataFrames:
    """Test rfm_comparison_to_dataframes conversion."""

    def test_frames(self):
        """Customer changes, segment changes and a 9x9 matrix are produced."""
        previous = calculate_rfm([_customer("A", "10"), _customer("B", "20")], REFERENCE_DATE)
        current = calculate_rfm([_customer("A", "30"), _customer("C", "40")], REFERENCE_DATE)
        dfs = rfm_comparison_to_dataframes(compare_rfm(current, previous))

        assert set(dfs) == {"customer_changes", "segment_changes", "migration_matrix"}
        changes = dfs["customer_changes"].set_index("customer_id")
        assert changes.loc["A", "status"] == "retained"
        assert changes.loc["C", "status"] == "new"
        assert changes.loc["B", "status"] == "lost"

        assert len(dfs["segment_changes"]) == len(CANONICAL_SEGMENTS)
        matrix = dfs["migration_matrix"]
        assert matrix.shape == (9, 9)
        assert matrix.index.name == "previous_segment"
        assert int(matrix.to_numpy().sum()) == 1

    def test_empty_comparison(self):
        """An empty comparison still yields a zero matrix."""
        dfs = rfm_comparison_to_dataframes(compare_rfm([], []))

        assert dfs["customer_changes"].empty
        assert int(dfs["migration_matrix"].to_numpy().sum()) == 0


class TestCLVAdapters:
    """Test CLV DataFrame adapters."""

    def test_sorted_by_value_descending(self):
        """Highest CLV customers come first."""
        records = calculate_clv(
            [_customer("LOW", "10"), _customer("HIGH", "500"), _customer("MID", "100")],
            REFERENCE_DATE,
        )
        df = clv_to_dataframe(records)

        assert list(df["customer_id"]) == ["HIGH", "MID", "LOW"]
        assert df.iloc[0]["transaction_count"] == 1

    def test_empty_clv(self):
        """Empty input gives an empty frame."""
        assert clv_to_dataframe([]).empty

    def test_comparison_frame(self):
        """Statuses and undefined percent changes are represented."""
        previous = calculate_clv([_customer("A", "10"), _customer("B", "20")], REFERENCE_DATE)
        current = calculate_clv([_customer("A", "30"), _customer("C", "40")], REFERENCE_DATE)
        df = clv_comparison_to_dataframe(compare_clv(current, previous)).set_index("customer_id")

        assert df.loc["A", "status"] == "retained"
        assert df.loc["A", "percent_change"] == pytest.approx(200.0)
        assert math.isnan(df.loc["C", "percent_change"])
        assert df.loc["B", "percent_change"] == -100.0


class TestConcentrationToDataFrame:
    """Test concentration_to_dataframe conversion."""

    def test_ranked_rows(self):
        """Rows follow revenue rank with cumulative shares."""
        result = analyze_concentration([_customer("A", "25"), _customer("B", "75")])
        df = concentration_to_dataframe(result)

        assert list(df["rank"]) == [1, 2]
        assert list(df["customer_id"]) == ["B", "A"]
        assert list(df["revenue_percentage"]) == [0.75, 1.0]
        assert list(df["customer_percentage"]) == [0.5, 1.0]

    def test_empty_result(self):
        """Empty results give an empty frame."""
        assert concentration_to_dataframe(analyze_concentration([])).empty

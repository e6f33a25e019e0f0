"""Pandas DataFrame adapters for CLV projections and CLV comparisons."""

from typing import Sequence

import pandas as pd  # type: ignore

from customer_analytics.analyses.clv_comparison import CLVComparison
from customer_analytics.models.clv import CLVRecord

CLV_COLUMNS = [
    "customer_id",
    "name",
    "value",
    "future_value",
    "avg_monthly_revenue",
    "purchase_frequency",
    "months_active",
    "total_revenue",
    "transaction_count",
    "avg_transaction_value",
]


def clv_to_dataframe(records: Sequence[CLVRecord]) -> pd.DataFrame:
    """Convert CLV records to a DataFrame, sorted by value descending.

    Args:
        records: Sequence of CLVRecord objects

    Returns:
        DataFrame with one row per customer and the columns in CLV_COLUMNS,
        highest value customers first.
    """
    if not records:
        return pd.DataFrame(columns=CLV_COLUMNS)

    df = pd.DataFrame(
        [
            {
                "customer_id": r.customer_id,
                "name": r.name,
                "value": r.value,
                "future_value": r.future_value,
                "avg_monthly_revenue": r.avg_monthly_revenue,
                "purchase_frequency": r.purchase_frequency,
                "months_active": r.months_active,
                "total_revenue": r.total_revenue,
                "transaction_count": r.transaction_count,
                "avg_transaction_value": r.avg_transaction_value,
            }
            for r in records
        ],
        columns=CLV_COLUMNS,
    )
    return df.sort_values("value", ascending=False, kind="stable").reset_index(drop=True)


def clv_comparison_to_dataframe(comparison: CLVComparison) -> pd.DataFrame:
    """Per-customer CLV changes as a DataFrame.

    Args:
        comparison: Result of compare_clv()

    Returns:
        DataFrame with columns: customer_id, name, status, current_clv,
        previous_clv, absolute_change, percent_change, revenue_change,
        frequency_change. ``percent_change`` is NaN where undefined.
    """
    columns = [
        "customer_id",
        "name",
        "status",
        "current_clv",
        "previous_clv",
        "absolute_change",
        "percent_change",
        "revenue_change",
        "frequency_change",
    ]
    rows = []
    for change in comparison.customer_changes:
        if change.is_new:
            status = "new"
        elif change.is_lost:
            status = "lost"
        else:
            status = "retained"
        rows.append(
            {
                "customer_id": change.customer_id,
                "name": change.name,
                "status": status,
                "current_clv": change.current_clv,
                "previous_clv": change.previous_clv,
                "absolute_change": change.absolute_change,
                "percent_change": change.percent_change,
                "revenue_change": change.revenue_change,
                "frequency_change": change.frequency_change,
            }
        )
    df = pd.DataFrame(rows, columns=columns)
    df["percent_change"] = pd.to_numeric(df["percent_change"])
    return df

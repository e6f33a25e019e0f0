"""Pandas DataFrame adapter for revenue concentration results."""

import pandas as pd  # type: ignore

from customer_analytics.analyses.concentration import ConcentrationResult
from ._utils import decimal_to_float


def concentration_to_dataframe(result: ConcentrationResult) -> pd.DataFrame:
    """Ranked customers joined with their cumulative curve point.

    Args:
        result: Result of analyze_concentration()

    Returns:
        DataFrame with columns: rank (1-based), customer_id, name, revenue,
        customer_percentage, revenue_percentage; highest revenue first.

    Example:
        >>> df = concentration_to_dataframe(analyze_concentration(customers))
        >>> df[df["revenue_percentage"] <= 0.8]
    """
    columns = [
        "rank",
        "customer_id",
        "name",
        "revenue",
        "customer_percentage",
        "revenue_percentage",
    ]
    rows = [
        {
            "rank": rank,
            "customer_id": customer.customer_id,
            "name": customer.name,
            "revenue": decimal_to_float(customer.revenue),
            "customer_percentage": point.customer_percentage,
            "revenue_percentage": point.revenue_percentage,
        }
        for rank, (customer, point) in enumerate(
            zip(result.ranked_revenues, result.curve), start=1
        )
    ]
    return pd.DataFrame(rows, columns=columns)

"""Pandas DataFrame adapters for RFM results and RFM comparisons."""

from typing import Dict, Sequence

import pandas as pd  # type: ignore

from customer_analytics.analyses.rfm_comparison import RFMComparison
from customer_analytics.foundation.rfm import CANONICAL_SEGMENTS, RFMRecord
from ._utils import decimal_to_float, recency_to_float

RFM_COLUMNS = [
    "customer_id",
    "name",
    "recency_days",
    "frequency",
    "monetary",
    "r_score",
    "f_score",
    "m_score",
    "rfm_score",
    "segment",
]


def rfm_to_dataframe(records: Sequence[RFMRecord]) -> pd.DataFrame:
    """Convert RFM records to a pandas DataFrame.

    Args:
        records: Sequence of RFMRecord objects

    Returns:
        DataFrame with columns: customer_id, name, recency_days, frequency,
        monetary, r_score, f_score, m_score, rfm_score, segment. Customers
        without purchases have NaN recency. Rows keep input order.

    Example:
        >>> records = calculate_rfm(customers, datetime(2024, 6, 30))
        >>> rfm_df = rfm_to_dataframe(records)
        >>> rfm_df.groupby("segment")["monetary"].sum()
    """
    if not records:
        return pd.DataFrame(columns=RFM_COLUMNS)

    rows = [
        {
            "customer_id": r.customer_id,
            "name": r.name,
            "recency_days": recency_to_float(r.recency_days),
            "frequency": r.frequency,
            "monetary": decimal_to_float(r.monetary),
            "r_score": r.r_score,
            "f_score": r.f_score,
            "m_score": r.m_score,
            "rfm_score": r.weighted_score,
            "segment": r.segment.value,
        }
        for r in records
    ]
    return pd.DataFrame(rows, columns=RFM_COLUMNS)


def rfm_comparison_to_dataframes(comparison: RFMComparison) -> Dict[str, pd.DataFrame]:
    """Convert an RFMComparison to multiple DataFrames.

    Args:
        comparison: Result of compare_rfm()

    Returns:
        Dictionary with keys:
        - 'customer_changes': One row per customer with status
          (new / lost / retained), segments and score deltas
        - 'segment_changes': One row per canonical segment
        - 'migration_matrix': 9×9 counts, previous segment as index and
          current segment as columns

    Example:
        >>> dfs = rfm_comparison_to_dataframes(compare_rfm(current, previous))
        >>> dfs['migration_matrix'].loc['At Risk', 'Champions']
    """
    change_rows = []
    for change in comparison.customer_changes:
        if change.is_new:
            status = "new"
        elif change.is_lost:
            status = "lost"
        else:
            status = "retained"
        change_rows.append(
            {
                "customer_id": change.customer_id,
                "name": change.name,
                "status": status,
                "previous_segment": change.previous_segment,
                "current_segment": change.current_segment,
                "r_change": change.r_change,
                "f_change": change.f_change,
                "m_change": change.m_change,
                "score_change": change.score_change,
            }
        )
    change_columns = [
        "customer_id",
        "name",
        "status",
        "previous_segment",
        "current_segment",
        "r_change",
        "f_change",
        "m_change",
        "score_change",
    ]
    customer_changes_df = pd.DataFrame(change_rows, columns=change_columns)

    segment_changes_df = pd.DataFrame(
        [
            {
                "segment": c.segment.value,
                "current": c.current,
                "previous": c.previous,
                "change": c.change,
                "percent_change": c.percent_change,
            }
            for c in comparison.segment_changes
        ],
        columns=["segment", "current", "previous", "change", "percent_change"],
    )

    labels = [s.value for s in CANONICAL_SEGMENTS]
    migration_df = pd.DataFrame(
        [
            [comparison.migration_matrix[source][target] for target in CANONICAL_SEGMENTS]
            for source in CANONICAL_SEGMENTS
        ],
        index=pd.Index(labels, name="previous_segment"),
        columns=pd.Index(labels, name="current_segment"),
    )

    return {
        "customer_changes": customer_changes_df,
        "segment_changes": segment_changes_df,
        "migration_matrix": migration_df,
    }

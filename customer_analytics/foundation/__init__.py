"""Foundational building blocks for the analytics engine.

This package exposes the customer and transaction records, aggregate
extraction, analysis periods, the JSON input contract and RFM scoring.
"""

from .customers import (
    Customer,
    CustomerAggregates,
    Transaction,
    customer_revenue,
    extract_aggregates,
    extract_all_aggregates,
)
from .importer import load_customers, parse_customers
from .periods import (
    AnalysisPeriod,
    PeriodPair,
    PeriodPreset,
    filter_to_period,
    resolve_preset,
)
from .rfm import (
    RFMRecord,
    RFMWeights,
    Segment,
    calculate_rfm,
    classify_segment,
    quintile_breakpoints,
    segment_counts,
)

__all__ = [
    "Customer",
    "CustomerAggregates",
    "Transaction",
    "customer_revenue",
    "extract_aggregates",
    "extract_all_aggregates",
    "load_customers",
    "parse_customers",
    "AnalysisPeriod",
    "PeriodPair",
    "PeriodPreset",
    "filter_to_period",
    "resolve_preset",
    "RFMRecord",
    "RFMWeights",
    "Segment",
    "calculate_rfm",
    "classify_segment",
    "quintile_breakpoints",
    "segment_counts",
]

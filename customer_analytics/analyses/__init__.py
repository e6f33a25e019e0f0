"""Single-period models and period-to-period comparisons.

1. Revenue concentration (Pareto ratio, Gini coefficient)
2. RFM comparison - segment migration between two periods
3. CLV comparison - per-customer and aggregate value change
4. Period analysis - runs everything for a current/previous pair
"""

from .clv_comparison import CLVComparison, CLVCustomerChange, compare_clv
from .concentration import (
    ConcentrationComparison,
    ConcentrationResult,
    analyze_concentration,
    compare_concentration,
    revenue_share_of_top,
)
from .period_analysis import (
    PeriodComparison,
    PeriodSnapshot,
    SegmentSummary,
    analyze_period,
    compare_periods,
    summarize_segments,
    top_customers_by_segment,
)
from .rfm_comparison import RFMComparison, RFMCustomerChange, compare_rfm

__all__ = [
    # Concentration
    "ConcentrationComparison",
    "ConcentrationResult",
    "analyze_concentration",
    "compare_concentration",
    "revenue_share_of_top",
    # RFM comparison
    "RFMComparison",
    "RFMCustomerChange",
    "compare_rfm",
    # CLV comparison
    "CLVComparison",
    "CLVCustomerChange",
    "compare_clv",
    # Period analysis
    "PeriodComparison",
    "PeriodSnapshot",
    "SegmentSummary",
    "analyze_period",
    "compare_periods",
    "summarize_segments",
    "top_customers_by_segment",
]

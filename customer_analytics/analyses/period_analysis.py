"""Current-versus-previous period analysis.

Runs the three single-period models (RFM, CLV, concentration) on each of two
windows and compares the results:

1. Customers are narrowed to each window (range filtering).
2. Each subset is scored, projected and ranked independently.
3. The RFM, CLV and concentration differs compare the two snapshots.

Also provides per-segment summaries of a single RFM run.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Any, Optional, Sequence

from customer_analytics.analyses.clv_comparison import CLVComparison, compare_clv
from customer_analytics.analyses.concentration import (
    ConcentrationComparison,
    ConcentrationResult,
    analyze_concentration,
    compare_concentration,
)
from customer_analytics.analyses.rfm_comparison import RFMComparison, compare_rfm
from customer_analytics.foundation.customers import Customer, customer_revenue
from customer_analytics.foundation.periods import (
    AnalysisPeriod,
    PeriodPair,
    filter_to_period,
)
from customer_analytics.foundation.rfm import (
    RFMRecord,
    RFMWeights,
    Segment,
    calculate_rfm,
)
from customer_analytics.models.clv import CLVConfig, CLVProjector, CLVRecord

logger = logging.getLogger(__name__)

DEFAULT_TOP_CUSTOMERS = 10


@dataclass(frozen=True)
class PeriodSnapshot:
    """All single-period results for one analysis window."""

    period: AnalysisPeriod
    customers: tuple[Customer, ...]
    rfm: tuple[RFMRecord, ...]
    clv: tuple[CLVRecord, ...]
    concentration: ConcentrationResult

    def as_dict(self) -> dict[str, Any]:
        return {
            "period": {
                "startDate": self.period.start_date.isoformat(),
                "endDate": self.period.end_date.isoformat(),
                "label": self.period.label,
            },
            "customerCount": len(self.customers),
            "rfm": [r.as_dict() for r in self.rfm],
            "clv": [c.as_dict() for c in self.clv],
            "pareto": self.concentration.as_dict(),
        }


@dataclass(frozen=True)
class PeriodComparison:
    """Snapshots of both windows and the three comparisons between them."""

    current: PeriodSnapshot
    previous: PeriodSnapshot
    rfm: RFMComparison
    clv: CLVComparison
    concentration: ConcentrationComparison

    def as_dict(self) -> dict[str, Any]:
        return {
            "currentPeriod": self.current.as_dict(),
            "previousPeriod": self.previous.as_dict(),
            "rfmComparison": self.rfm.as_dict(),
            "clvComparison": self.clv.as_dict(),
            "paretoComparison": self.concentration.as_dict(),
        }


def analyze_period(
    customers: Sequence[Customer],
    period: AnalysisPeriod,
    evaluation_instant: datetime,
    weights: Optional[RFMWeights] = None,
    clv_config: Optional[CLVConfig] = None,
    drop_inactive: bool = True,
) -> PeriodSnapshot:
    """Run RFM, CLV and concentration analysis on one window.

    Parameters
    ----------
    customers:
        Full customer set; it is filtered to ``period`` here.
    period:
        Analysis window. Its end date is the RFM reference date.
    evaluation_instant:
        Instant CLV tenure is measured to.
    weights:
        RFM composite weights (default: equal).
    clv_config:
        CLV parameters (default: :class:`CLVConfig` defaults).
    drop_inactive:
        Drop customers without transactions in the window (default: True).
    """
    in_period = filter_to_period(customers, period, drop_inactive=drop_inactive)

    rfm = calculate_rfm(in_period, period.end_date, weights=weights)
    clv = CLVProjector(clv_config).project(in_period, evaluation_instant)
    concentration = analyze_concentration(in_period)

    logger.info(
        f"Analyzed period {period.label}: {len(in_period)} customers, "
        f"pareto_ratio={concentration.pareto_ratio:.3f}"
    )

    return PeriodSnapshot(
        period=period,
        customers=tuple(in_period),
        rfm=tuple(rfm),
        clv=tuple(clv),
        concentration=concentration,
    )


def compare_periods(
    customers: Sequence[Customer],
    periods: PeriodPair,
    evaluation_instant: datetime,
    weights: Optional[RFMWeights] = None,
    clv_config: Optional[CLVConfig] = None,
    drop_inactive: bool = True,
) -> PeriodComparison:
    """Analyse both windows of ``periods`` and compare them.

    Both snapshots are fully computed before any comparison starts. The two
    runs share no state: each computes its own breakpoints and matrices.

    Examples
    --------
    >>> from customer_analytics.foundation.periods import PeriodPreset, resolve_preset
    >>> from customer_analytics.synthetic import generate_sample_customers
    >>> today = datetime(2024, 6, 30)
    >>> customers = generate_sample_customers(50, start=datetime(2023, 6, 30), end=today, seed=7)
    >>> result = compare_periods(customers, resolve_preset(PeriodPreset.LAST_90_DAYS, today), today)
    >>> sum(c.current for c in result.rfm.segment_changes) == len(result.current.rfm)
    True
    """
    current = analyze_period(
        customers, periods.current, evaluation_instant, weights, clv_config, drop_inactive
    )
    previous = analyze_period(
        customers, periods.previous, evaluation_instant, weights, clv_config, drop_inactive
    )

    rfm_comparison = compare_rfm(current.rfm, previous.rfm)
    logger.info(
        f"Compared {periods.current.label} against {periods.previous.label}: "
        f"{len(rfm_comparison.new_customers)} new, "
        f"{len(rfm_comparison.lost_customers)} lost, "
        f"{len(rfm_comparison.retained_customers)} retained"
    )

    return PeriodComparison(
        current=current,
        previous=previous,
        rfm=rfm_comparison,
        clv=compare_clv(current.clv, previous.clv),
        concentration=compare_concentration(current.concentration, previous.concentration),
    )


@dataclass(frozen=True)
class SegmentSummary:
    """Aggregate view of one segment in a single RFM run."""

    segment: Segment
    customer_count: int
    total_revenue: Decimal
    avg_revenue: Decimal
    avg_rfm_score: float

    def as_dict(self) -> dict[str, Any]:
        return {
            "segment": self.segment.value,
            "count": self.customer_count,
            "totalRevenue": float(self.total_revenue),
            "avgRevenue": float(self.avg_revenue),
            "avgRFMScore": self.avg_rfm_score,
        }


def summarize_segments(
    rfm: Sequence[RFMRecord],
    customers: Sequence[Customer],
) -> list[SegmentSummary]:
    """Summarise every populated segment, highest total revenue first.

    Revenue is taken from ``customers`` (matched by id); customers missing
    from ``customers`` contribute zero revenue.
    """
    revenue_by_id = {c.customer_id: customer_revenue(c) for c in customers}

    grouped: dict[Segment, list[RFMRecord]] = {}
    for record in rfm:
        grouped.setdefault(record.segment, []).append(record)

    summaries: list[SegmentSummary] = []
    for segment, records in grouped.items():
        total_revenue = sum(
            (revenue_by_id.get(r.customer_id, Decimal("0")) for r in records), Decimal("0")
        )
        summaries.append(
            SegmentSummary(
                segment=segment,
                customer_count=len(records),
                total_revenue=total_revenue,
                avg_revenue=total_revenue / len(records),
                avg_rfm_score=sum(r.weighted_score for r in records) / len(records),
            )
        )

    summaries.sort(key=lambda s: s.total_revenue, reverse=True)
    return summaries


def top_customers_by_segment(
    rfm: Sequence[RFMRecord],
    segment: Segment | str,
    limit: int = DEFAULT_TOP_CUSTOMERS,
) -> list[RFMRecord]:
    """The ``limit`` highest-scoring customers of ``segment``.

    Sorted by weighted score, descending; ties keep input order.
    """
    if limit < 0:
        raise ValueError(f"limit cannot be negative: {limit}")
    segment = Segment(segment)
    members = [r for r in rfm if r.segment is segment]
    members.sort(key=lambda r: r.weighted_score, reverse=True)
    return members[:limit]

"""Revenue concentration analysis (Pareto ratio and Gini coefficient).

Answers "how concentrated is revenue?" for a single period:
- Customers are ranked by revenue, highest first.
- A cumulative curve records, after each rank, the share of customers
  covered and the share of revenue they produce.
- The Pareto ratio is the share of customers needed to reach 80% of revenue.
- The Gini coefficient is ``1 − 2 × area under that curve``.

Note on orientation: the curve is built from customers sorted by
*descending* revenue, which is the reflection of the textbook (ascending)
Lorenz curve. The resulting coefficient is negative for unequal
distributions and 0 for perfect equality. It is kept in this orientation
because downstream consumers rely on its scale and sign.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Optional, Sequence

import numpy as np

from customer_analytics.foundation.customers import Customer, customer_revenue

#: Revenue share that defines the Pareto point (the "80" in 80/20).
PARETO_REVENUE_SHARE = 0.8

#: Pareto ratio reported when no curve point reaches the revenue share,
#: which only happens when total revenue is zero.
DEFAULT_PARETO_RATIO = 1.0

# Top-customer percentiles reported by revenue_share_of_top()
DEFAULT_TOP_PERCENTILES = (10, 20)

# Even for very small percentiles at least one customer is counted
MIN_CUSTOMERS_IN_SEGMENT = 1


@dataclass(frozen=True)
class CustomerRevenue:
    """A customer's revenue within the analysed period."""

    customer_id: str
    name: str
    revenue: Decimal


@dataclass(frozen=True)
class ParetoPoint:
    """One point of the cumulative concentration curve; both values in [0, 1]."""

    customer_percentage: float
    revenue_percentage: float


@dataclass(frozen=True)
class ConcentrationResult:
    """Revenue concentration of one period.

    Attributes
    ----------
    ranked_revenues:
        Customers sorted by revenue, descending; ties keep input order
    curve:
        Cumulative (customer share, revenue share) after each rank
    pareto_ratio:
        Customer share at the first point reaching 80% of revenue
    gini_coefficient:
        ``1 − 2 × trapezoidal area under curve`` (descending orientation)
    """

    ranked_revenues: tuple[CustomerRevenue, ...]
    curve: tuple[ParetoPoint, ...]
    pareto_ratio: float
    gini_coefficient: float

    def __post_init__(self) -> None:
        """Validate concentration result."""
        if len(self.ranked_revenues) != len(self.curve):
            raise ValueError(
                f"Curve must have one point per customer: "
                f"{len(self.curve)} points for {len(self.ranked_revenues)} customers"
            )
        if not 0 <= self.pareto_ratio <= 1:
            raise ValueError(f"Pareto ratio must be 0-1: {self.pareto_ratio}")

    @property
    def total_revenue(self) -> Decimal:
        return sum((c.revenue for c in self.ranked_revenues), Decimal("0"))

    def as_dict(self) -> dict[str, Any]:
        return {
            "customerRevenues": [
                {"id": c.customer_id, "name": c.name, "revenue": float(c.revenue)}
                for c in self.ranked_revenues
            ],
            "paretoPoints": [
                {
                    "customerPercentage": p.customer_percentage,
                    "revenuePercentage": p.revenue_percentage,
                }
                for p in self.curve
            ],
            "paretoRatio": self.pareto_ratio,
            "giniCoefficient": self.gini_coefficient,
        }


def rank_customer_revenues(customers: Sequence[Customer]) -> list[CustomerRevenue]:
    """Customers' revenues sorted descending; the sort is stable."""

    revenues = [
        CustomerRevenue(customer_id=c.customer_id, name=c.name, revenue=customer_revenue(c))
        for c in customers
    ]
    revenues.sort(key=lambda r: r.revenue, reverse=True)
    return revenues


def analyze_concentration(customers: Sequence[Customer]) -> ConcentrationResult:
    """Build the concentration curve, Pareto ratio and Gini coefficient.

    Parameters
    ----------
    customers:
        Customers of one period.

    Returns
    -------
    ConcentrationResult
        For an empty cohort: empty sequences, ratio 0 and Gini 0. When total
        revenue is zero every revenue share is 0 and the ratio defaults to 1.

    Examples
    --------
    >>> from datetime import datetime
    >>> from decimal import Decimal
    >>> from customer_analytics.foundation.customers import Transaction
    >>> def cust(cid, amount):
    ...     return Customer(cid, cid, transactions=(Transaction("T", datetime(2024, 1, 1), Decimal(amount)),))
    >>> result = analyze_concentration([cust("A", "100"), cust("B", "100"), cust("C", "0")])
    >>> [round(p.revenue_percentage, 2) for p in result.curve]
    [0.5, 1.0, 1.0]
    >>> round(result.pareto_ratio, 2)
    0.67
    """
    if not customers:
        return ConcentrationResult(
            ranked_revenues=(),
            curve=(),
            pareto_ratio=0.0,
            gini_coefficient=0.0,
        )

    ranked = rank_customer_revenues(customers)
    n = len(ranked)

    # Shares are exact Decimal ratios so that a share of exactly 80% meets the
    # Pareto threshold and the last share is exactly 1.
    total_revenue = sum((r.revenue for r in ranked), Decimal("0"))
    running_revenue = Decimal("0")
    shares: list[float] = []
    for r in ranked:
        running_revenue += r.revenue
        shares.append(float(running_revenue / total_revenue) if total_revenue > 0 else 0.0)

    customer_shares = np.arange(1, n + 1, dtype=float) / n
    revenue_shares = np.array(shares, dtype=float)

    curve = tuple(
        ParetoPoint(customer_percentage=float(c), revenue_percentage=float(r))
        for c, r in zip(customer_shares, revenue_shares)
    )

    pareto_ratio = DEFAULT_PARETO_RATIO
    for point in curve:
        if point.revenue_percentage >= PARETO_REVENUE_SHARE:
            pareto_ratio = point.customer_percentage
            break

    # Trapezoids of width 1/n between consecutive heights, starting at 0.
    heights = np.concatenate(([0.0], revenue_shares))
    area = float(np.sum((heights[1:] + heights[:-1]) / 2.0) / n)

    return ConcentrationResult(
        ranked_revenues=tuple(ranked),
        curve=curve,
        pareto_ratio=pareto_ratio,
        gini_coefficient=1 - 2 * area,
    )


def revenue_share_of_top(
    result: ConcentrationResult,
    percentiles: Sequence[int] = DEFAULT_TOP_PERCENTILES,
) -> dict[int, float]:
    """Share of revenue (0-1) produced by the top N% of customers.

    Parameters
    ----------
    result:
        A concentration result.
    percentiles:
        Top percentiles to report, e.g. ``(10, 20)``.

    Returns
    -------
    dict[int, float]
        Mapping of percentile to revenue share. All zeros for an empty
        cohort or zero revenue.
    """
    if not result.curve:
        return {p: 0.0 for p in percentiles}

    n = len(result.curve)
    shares: dict[int, float] = {}
    for percentile in percentiles:
        top_n_count = max(MIN_CUSTOMERS_IN_SEGMENT, int(n * percentile / 100))
        top_n_count = min(top_n_count, n)
        shares[percentile] = result.curve[top_n_count - 1].revenue_percentage
    return shares


@dataclass(frozen=True)
class ConcentrationComparison:
    """Change in concentration between two periods.

    All fields are None when either side has not been computed yet; see
    :attr:`is_empty`.
    """

    ratio_change: Optional[float] = None
    gini_change: Optional[float] = None
    current_ratio: Optional[float] = None
    previous_ratio: Optional[float] = None
    current_gini: Optional[float] = None
    previous_gini: Optional[float] = None

    @property
    def is_empty(self) -> bool:
        return self.ratio_change is None

    def as_dict(self) -> dict[str, Any]:
        if self.is_empty:
            return {}
        return {
            "ratioChange": self.ratio_change,
            "giniChange": self.gini_change,
            "currentRatio": self.current_ratio,
            "previousRatio": self.previous_ratio,
            "currentGini": self.current_gini,
            "previousGini": self.previous_gini,
        }


def compare_concentration(
    current: Optional[ConcentrationResult],
    previous: Optional[ConcentrationResult],
) -> ConcentrationComparison:
    """Difference current − previous of Pareto ratio and Gini coefficient.

    A missing input means "not computed yet" and yields an empty comparison
    rather than an error.
    """
    if current is None or previous is None:
        return ConcentrationComparison()

    return ConcentrationComparison(
        ratio_change=current.pareto_ratio - previous.pareto_ratio,
        gini_change=current.gini_coefficient - previous.gini_coefficient,
        current_ratio=current.pareto_ratio,
        previous_ratio=previous.pareto_ratio,
        current_gini=current.gini_coefficient,
        previous_gini=previous.gini_coefficient,
    )

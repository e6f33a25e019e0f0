"""RFM (Recency-Frequency-Monetary) scoring and segmentation.

RFM analysis segments customers based on three dimensions:
- Recency: How recently did the customer make a purchase?
- Frequency: How often do they purchase?
- Monetary: How much do they spend?

Each dimension is scored 1-5 against quintile breakpoints computed over the
whole cohort of a single analysis run, the three scores are combined into a
weighted composite, and the (R, F, M) triple is mapped onto one of nine
named segments.
"""

from __future__ import annotations

import math
import multiprocessing
import os
from collections import Counter
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Callable, Optional, Sequence

from customer_analytics.errors import ConfigurationError
from customer_analytics.foundation.customers import Customer, extract_aggregates

#: Recency assigned to customers without transactions. Compares greater than
#: any real number of days. Such customers score R=1 unless they fill the
#: fourth quintile breakpoint themselves, in which case they score at the
#: first infinite breakpoint.
NO_PURCHASE_RECENCY = math.inf

MIN_SCORE = 1
MAX_SCORE = 5


class Segment(str, Enum):
    """The nine canonical RFM segments."""

    CHAMPIONS = "Champions"
    LOYAL_CUSTOMERS = "Loyal Customers"
    POTENTIAL_LOYALISTS = "Potential Loyalists"
    NEW_CUSTOMERS = "New Customers"
    PROMISING = "Promising"
    AT_RISK = "At Risk"
    CANT_LOSE_THEM = "Can't Lose Them"
    HIBERNATING = "Hibernating"
    ABOUT_TO_SLEEP = "About to Sleep"


CANONICAL_SEGMENTS: tuple[Segment, ...] = tuple(Segment)

# Evaluated top-down; the first matching predicate decides the segment.
SEGMENT_RULES: tuple[tuple[Callable[[int, int, int], bool], Segment], ...] = (
    (lambda r, f, m: r >= 4 and f >= 4, Segment.CHAMPIONS),
    (lambda r, f, m: r >= 2 and f >= 4, Segment.LOYAL_CUSTOMERS),
    (lambda r, f, m: r >= 3 and f >= 3, Segment.POTENTIAL_LOYALISTS),
    (lambda r, f, m: r >= 4 and f <= 2, Segment.NEW_CUSTOMERS),
    (lambda r, f, m: r >= 3 and f <= 2, Segment.PROMISING),
    (lambda r, f, m: r <= 2 and f >= 3, Segment.AT_RISK),
    (lambda r, f, m: r <= 2 and f <= 2 and m >= 3, Segment.CANT_LOSE_THEM),
    (lambda r, f, m: r <= 2 and f <= 2, Segment.HIBERNATING),
)
FALLBACK_SEGMENT = Segment.ABOUT_TO_SLEEP


@dataclass(frozen=True)
class RFMWeights:
    """Relative weights of the R, F and M scores in the composite score.

    Weights must be non-negative and must not all be zero.
    """

    r: float = 1.0
    f: float = 1.0
    m: float = 1.0

    def __post_init__(self) -> None:
        """Validate weights."""
        for axis, weight in (("r", self.r), ("f", self.f), ("m", self.m)):
            if weight < 0:
                raise ConfigurationError(f"RFM weight '{axis}' cannot be negative: {weight}")
        if self.total == 0:
            raise ConfigurationError("RFM weights cannot all be zero")

    @property
    def total(self) -> float:
        return self.r + self.f + self.m


@dataclass(frozen=True)
class RawRFMValues:
    """Unscored recency, frequency and monetary values for one customer."""

    customer_id: str
    name: str
    recency_days: int | float
    frequency: int
    monetary: Decimal


@dataclass(frozen=True)
class QuintileBreakpoints:
    """Four ascending cut points (B1..B4) for one RFM dimension.

    Breakpoints belong to a single analysis run; they are computed from the
    full cohort once and applied to every customer of that run.
    """

    b1: Any
    b2: Any
    b3: Any
    b4: Any

    def as_tuple(self) -> tuple[Any, Any, Any, Any]:
        return (self.b1, self.b2, self.b3, self.b4)


@dataclass(frozen=True)
class RFMRecord:
    """RFM values, scores and segment for a single customer.

    Attributes
    ----------
    customer_id:
        Unique customer identifier
    name:
        Customer display name
    recency_days:
        Whole days between the last purchase and the reference date;
        :data:`NO_PURCHASE_RECENCY` when the customer has no purchases
    frequency:
        Number of transactions
    monetary:
        Total spend
    r_score, f_score, m_score:
        Quintile scores in [1, 5]; 5 is best on every axis
    weighted_score:
        Weighted mean of the three scores
    segment:
        Segment label derived from the scores
    """

    customer_id: str
    name: str
    recency_days: int | float
    frequency: int
    monetary: Decimal
    r_score: int
    f_score: int
    m_score: int
    weighted_score: float
    segment: Segment

    def __post_init__(self) -> None:
        """Validate RFM record."""
        for axis, score in (("r", self.r_score), ("f", self.f_score), ("m", self.m_score)):
            if not MIN_SCORE <= score <= MAX_SCORE:
                raise ValueError(
                    f"{axis}_score must be {MIN_SCORE}-{MAX_SCORE}: {score} (customer_id={self.customer_id})"
                )
        if self.frequency < 0:
            raise ValueError(
                f"Frequency cannot be negative: {self.frequency} (customer_id={self.customer_id})"
            )
        if self.monetary < 0:
            raise ValueError(
                f"Monetary value cannot be negative: {self.monetary} (customer_id={self.customer_id})"
            )

    @property
    def has_purchases(self) -> bool:
        return self.recency_days != NO_PURCHASE_RECENCY

    @property
    def score_code(self) -> str:
        """Concatenated scores, e.g. ``"543"``."""
        return f"{self.r_score}{self.f_score}{self.m_score}"

    def as_dict(self) -> dict[str, Any]:
        return {
            "id": self.customer_id,
            "name": self.name,
            "rfm": {
                "recency": self.recency_days if self.has_purchases else None,
                "frequency": self.frequency,
                "monetary": float(self.monetary),
                "r_score": self.r_score,
                "f_score": self.f_score,
                "m_score": self.m_score,
                "rfm_score": self.weighted_score,
                "segment": self.segment.value,
            },
        }


def classify_segment(r_score: int, f_score: int, m_score: int) -> Segment:
    """Map an (R, F, M) score triple to its segment.

    Depends on the scores only, never on the cohort or a prior segment.

    >>> classify_segment(5, 5, 1).value
    'Champions'
    >>> classify_segment(1, 2, 4).value
    "Can't Lose Them"
    """
    for predicate, segment in SEGMENT_RULES:
        if predicate(r_score, f_score, m_score):
            return segment
    return FALLBACK_SEGMENT


def quintile_breakpoints(values: Sequence[Any]) -> QuintileBreakpoints:
    """Compute quintile breakpoints of ``values``.

    Values are sorted ascending and the elements at positions
    ``floor(k * n / 5) - 1`` for k = 1..4 are taken. Positions below zero are
    clamped to 0, so cohorts of fewer than five customers get repeated (and
    for n = 1 identical) breakpoints. Scores from such small cohorts are
    therefore coarse; this is accepted rather than corrected.

    >>> quintile_breakpoints([1, 2, 3, 4, 5, 6, 7, 8, 9, 10]).as_tuple()
    (2, 4, 6, 8)
    >>> quintile_breakpoints([7]).as_tuple()
    (7, 7, 7, 7)
    """
    if not values:
        raise ValueError("Cannot compute breakpoints of an empty cohort")

    ordered = sorted(values)
    n = len(ordered)
    positions = [max(0, (k * n) // 5 - 1) for k in range(1, 5)]
    return QuintileBreakpoints(*(ordered[p] for p in positions))


def score_recency(value: int | float, breakpoints: QuintileBreakpoints) -> int:
    """Score a recency value; lower recency is better.

    Ties at a breakpoint go to the higher-scoring bucket.
    """
    for score, cut in zip((5, 4, 3, 2), breakpoints.as_tuple()):
        if value <= cut:
            return score
    return MIN_SCORE


def score_higher_is_better(value: Any, breakpoints: QuintileBreakpoints) -> int:
    """Score a frequency or monetary value; higher is better.

    Ties at a breakpoint go to the higher-scoring bucket.
    """
    for score, cut in zip((5, 4, 3, 2), reversed(breakpoints.as_tuple())):
        if value >= cut:
            return score
    return MIN_SCORE


def _raw_metrics_for_customers(
    customers_chunk: Sequence[Customer], reference_date: datetime
) -> list[RawRFMValues]:
    """Compute raw RFM values for a chunk of customers.

    Called directly for serial runs and by multiprocessing workers for
    parallel runs. Returns values in chunk order.
    """
    raw: list[RawRFMValues] = []
    for customer in customers_chunk:
        aggregates = extract_aggregates(customer)
        if aggregates.last_transaction_at is None:
            recency_days: int | float = NO_PURCHASE_RECENCY
        else:
            # timedelta.days floors, matching whole elapsed days
            recency_days = (reference_date - aggregates.last_transaction_at).days

        raw.append(
            RawRFMValues(
                customer_id=customer.customer_id,
                name=customer.name,
                recency_days=recency_days,
                frequency=aggregates.transaction_count,
                monetary=aggregates.total_revenue,
            )
        )
    return raw


def calculate_raw_rfm(
    customers: Sequence[Customer],
    reference_date: datetime,
    parallel: bool = True,
    parallel_threshold: int = 10_000_000,
    n_workers: Optional[int] = None,
) -> list[RawRFMValues]:
    """Compute raw recency/frequency/monetary values for every customer.

    For cohorts of at least ``parallel_threshold`` customers (and
    ``parallel=True``) the work is split into chunks processed by a
    multiprocessing pool. Results keep input order either way.
    """
    num_customers = len(customers)
    use_parallel = parallel and num_customers >= parallel_threshold

    if not use_parallel:
        return _raw_metrics_for_customers(customers, reference_date)

    if n_workers is None:
        workers = os.cpu_count() or 1
    else:
        workers = max(1, n_workers)

    chunk_size = max(1, num_customers // workers)
    chunks = [
        (list(customers[i : i + chunk_size]), reference_date)
        for i in range(0, num_customers, chunk_size)
    ]

    with multiprocessing.Pool(processes=workers) as pool:
        chunk_results = pool.starmap(_raw_metrics_for_customers, chunks)

    raw: list[RawRFMValues] = []
    for chunk_result in chunk_results:
        raw.extend(chunk_result)
    return raw


def calculate_rfm(
    customers: Sequence[Customer],
    reference_date: datetime,
    weights: RFMWeights | None = None,
    parallel: bool = True,
    parallel_threshold: int = 10_000_000,
    n_workers: Optional[int] = None,
) -> list[RFMRecord]:
    """Score and segment every customer of a cohort.

    Parameters
    ----------
    customers:
        Customers to score. Customer ids must be unique. Customers without
        transactions get :data:`NO_PURCHASE_RECENCY`, which sorts last.
    reference_date:
        Analysis date recency is measured against (usually the end of the
        analysis period). Must share the timezone convention of the
        transaction dates.
    weights:
        Composite score weights; defaults to equal weights.
    parallel, parallel_threshold, n_workers:
        Control the multiprocessing map phase, see :func:`calculate_raw_rfm`.

    Returns
    -------
    list[RFMRecord]
        One record per customer, in input order. Empty for an empty cohort.

    Raises
    ------
    ValueError
        If customer ids are duplicated.

    Examples
    --------
    >>> from datetime import datetime
    >>> from decimal import Decimal
    >>> from customer_analytics.foundation.customers import Transaction
    >>> now = datetime(2024, 6, 30)
    >>> c = Customer("C1", "Ann", transactions=(Transaction("T1", now, Decimal("100")),))
    >>> record = calculate_rfm([c], now)[0]
    >>> (record.recency_days, record.r_score, record.segment.value)
    (0, 5, 'Champions')
    """
    if not customers:
        return []

    counts = Counter(c.customer_id for c in customers)
    duplicates = [cid for cid, count in counts.items() if count > 1]
    if duplicates:
        raise ValueError(f"Duplicate customer IDs found in customers: {duplicates}")

    weights = weights if weights is not None else RFMWeights()

    raw_values = calculate_raw_rfm(
        customers,
        reference_date,
        parallel=parallel,
        parallel_threshold=parallel_threshold,
        n_workers=n_workers,
    )

    # Breakpoints need every raw value, so they come after the map phase.
    recency_breakpoints = quintile_breakpoints([v.recency_days for v in raw_values])
    frequency_breakpoints = quintile_breakpoints([v.frequency for v in raw_values])
    monetary_breakpoints = quintile_breakpoints([v.monetary for v in raw_values])

    records: list[RFMRecord] = []
    for values in raw_values:
        r_score = score_recency(values.recency_days, recency_breakpoints)
        f_score = score_higher_is_better(values.frequency, frequency_breakpoints)
        m_score = score_higher_is_better(values.monetary, monetary_breakpoints)

        weighted_score = (
            r_score * weights.r + f_score * weights.f + m_score * weights.m
        ) / weights.total

        records.append(
            RFMRecord(
                customer_id=values.customer_id,
                name=values.name,
                recency_days=values.recency_days,
                frequency=values.frequency,
                monetary=values.monetary,
                r_score=r_score,
                f_score=f_score,
                m_score=m_score,
                weighted_score=weighted_score,
                segment=classify_segment(r_score, f_score, m_score),
            )
        )

    return records


def segment_counts(records: Sequence[RFMRecord]) -> dict[Segment, int]:
    """Count records per canonical segment (every segment present, zero-filled)."""

    counts = {segment: 0 for segment in CANONICAL_SEGMENTS}
    for record in records:
        counts[record.segment] += 1
    return counts

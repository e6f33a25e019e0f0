"""Period-to-period comparison of RFM results.

Matches the customers of two RFM runs by id and answers:
- Which customers are new, retained or lost?
- How did each retained customer's scores and raw values move?
- How many customers moved from each segment to each other segment?
- How did the size of every segment change?

Note: "New" and "Lost" describe presence in the two inputs only. They are
tracked on the per-customer changes and never appear in the migration
matrix, which is a fixed table over the nine canonical segments.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Optional, Sequence

from customer_analytics.foundation.rfm import (
    CANONICAL_SEGMENTS,
    RFMRecord,
    Segment,
    segment_counts,
)

NEW_SEGMENT_LABEL = "New"
LOST_SEGMENT_LABEL = "Lost"


@dataclass(frozen=True)
class RawRFMChange:
    """Movement of raw RFM values for a retained customer.

    Attributes
    ----------
    recency:
        Improvement in recency (previous − current days); positive means the
        customer bought more recently. None when either side has no purchases.
    frequency:
        Current − previous transaction count
    monetary:
        Current − previous spend
    """

    recency: Optional[int]
    frequency: int
    monetary: Decimal


@dataclass(frozen=True)
class RFMCustomerChange:
    """How one customer's RFM standing changed between the two periods.

    New customers carry ``None`` deltas ("no baseline"), which is distinct
    from a zero change. Lost customers carry the negated previous scores.
    """

    customer_id: str
    name: str
    current_segment: str
    previous_segment: str
    is_new: bool = False
    is_lost: bool = False
    r_change: Optional[int] = None
    f_change: Optional[int] = None
    m_change: Optional[int] = None
    score_change: Optional[float] = None
    raw_changes: Optional[RawRFMChange] = None

    def __post_init__(self) -> None:
        """Validate change flags."""
        if self.is_new and self.is_lost:
            raise ValueError(
                f"Customer cannot be both new and lost (customer_id={self.customer_id})"
            )
        if self.is_new and self.score_change is not None:
            raise ValueError(
                f"New customers have no baseline to change from (customer_id={self.customer_id})"
            )

    def as_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "id": self.customer_id,
            "name": self.name,
            "currentSegment": self.current_segment,
            "previousSegment": self.previous_segment,
            "isNew": self.is_new,
            "isLost": self.is_lost,
            "rChange": self.r_change,
            "fChange": self.f_change,
            "mChange": self.m_change,
            "scoreChange": self.score_change,
        }
        if self.raw_changes is not None:
            payload["rawChanges"] = {
                "recency": self.raw_changes.recency,
                "frequency": self.raw_changes.frequency,
                "monetary": float(self.raw_changes.monetary),
            }
        return payload


@dataclass(frozen=True)
class SegmentChange:
    """Size of one segment in both periods."""

    segment: Segment
    current: int
    previous: int
    change: int
    percent_change: Optional[float]

    def as_dict(self) -> dict[str, Any]:
        return {
            "segment": self.segment.value,
            "current": self.current,
            "previous": self.previous,
            "change": self.change,
            "percentChange": self.percent_change,
        }


@dataclass(frozen=True)
class RFMComparison:
    """RFM period-to-period comparison results.

    Attributes
    ----------
    customer_changes:
        One entry per current customer (input order) followed by one entry
        per lost customer (previous-period order)
    migration_matrix:
        ``migration_matrix[from_segment][to_segment]`` counts retained
        customers; 9×9 over canonical segments
    current_segment_counts, previous_segment_counts:
        Customers per canonical segment in each period
    segment_changes:
        Per-segment size change, in canonical segment order
    """

    customer_changes: tuple[RFMCustomerChange, ...]
    migration_matrix: dict[Segment, dict[Segment, int]]
    current_segment_counts: dict[Segment, int]
    previous_segment_counts: dict[Segment, int]
    segment_changes: tuple[SegmentChange, ...]

    @property
    def new_customers(self) -> list[RFMCustomerChange]:
        return [c for c in self.customer_changes if c.is_new]

    @property
    def lost_customers(self) -> list[RFMCustomerChange]:
        return [c for c in self.customer_changes if c.is_lost]

    @property
    def retained_customers(self) -> list[RFMCustomerChange]:
        return [c for c in self.customer_changes if not c.is_new and not c.is_lost]

    def as_dict(self) -> dict[str, Any]:
        return {
            "segmentMigration": {
                source.value: {target.value: count for target, count in row.items()}
                for source, row in self.migration_matrix.items()
            },
            "customerChanges": [c.as_dict() for c in self.customer_changes],
            "currentSegmentCounts": {s.value: n for s, n in self.current_segment_counts.items()},
            "previousSegmentCounts": {s.value: n for s, n in self.previous_segment_counts.items()},
            "segmentChanges": [c.as_dict() for c in self.segment_changes],
        }


def empty_migration_matrix() -> dict[Segment, dict[Segment, int]]:
    """A fresh zero-filled 9×9 segment migration matrix."""

    return {
        source: {target: 0 for target in CANONICAL_SEGMENTS}
        for source in CANONICAL_SEGMENTS
    }


def _index_by_customer_id(records: Sequence[RFMRecord], label: str) -> dict[str, RFMRecord]:
    counts = Counter(r.customer_id for r in records)
    duplicates = [cid for cid, count in counts.items() if count > 1]
    if duplicates:
        raise ValueError(f"Duplicate customer IDs found in {label}: {duplicates}")
    return {r.customer_id: r for r in records}


def _raw_change(current: RFMRecord, previous: RFMRecord) -> RawRFMChange:
    if current.has_purchases and previous.has_purchases:
        recency: Optional[int] = int(previous.recency_days - current.recency_days)
    else:
        recency = None
    return RawRFMChange(
        recency=recency,
        frequency=current.frequency - previous.frequency,
        monetary=current.monetary - previous.monetary,
    )


def compare_rfm(
    current: Sequence[RFMRecord],
    previous: Sequence[RFMRecord],
) -> RFMComparison:
    """Compare the RFM results of two periods.

    Parameters
    ----------
    current:
        RFM records for the current period. Customer ids must be unique.
    previous:
        RFM records for the previous period. Customer ids must be unique.

    Returns
    -------
    RFMComparison
        Per-customer changes, migration matrix and segment size changes.

    Raises
    ------
    ValueError
        If either input contains duplicate customer ids.

    Examples
    --------
    >>> from decimal import Decimal
    >>> from customer_analytics.foundation.rfm import Segment
    >>> def rec(cid, r, f, m, seg):
    ...     return RFMRecord(cid, cid, 5, 2, Decimal("10"), r, f, m, (r + f + m) / 3, seg)
    >>> previous = [rec("C1", 2, 2, 2, Segment.HIBERNATING), rec("C2", 5, 5, 5, Segment.CHAMPIONS)]
    >>> current = [rec("C1", 5, 5, 5, Segment.CHAMPIONS), rec("C3", 4, 1, 1, Segment.NEW_CUSTOMERS)]
    >>> comparison = compare_rfm(current, previous)
    >>> comparison.migration_matrix[Segment.HIBERNATING][Segment.CHAMPIONS]
    1
    >>> [c.customer_id for c in comparison.new_customers], [c.customer_id for c in comparison.lost_customers]
    (['C3'], ['C2'])
    """
    current_by_id = _index_by_customer_id(current, "current")
    previous_by_id = _index_by_customer_id(previous, "previous")

    migration_matrix = empty_migration_matrix()
    changes: list[RFMCustomerChange] = []

    for record in current:
        prior = previous_by_id.get(record.customer_id)
        if prior is None:
            changes.append(
                RFMCustomerChange(
                    customer_id=record.customer_id,
                    name=record.name,
                    current_segment=record.segment.value,
                    previous_segment=NEW_SEGMENT_LABEL,
                    is_new=True,
                )
            )
            continue

        migration_matrix[prior.segment][record.segment] += 1
        changes.append(
            RFMCustomerChange(
                customer_id=record.customer_id,
                name=record.name,
                current_segment=record.segment.value,
                previous_segment=prior.segment.value,
                r_change=record.r_score - prior.r_score,
                f_change=record.f_score - prior.f_score,
                m_change=record.m_score - prior.m_score,
                score_change=record.weighted_score - prior.weighted_score,
                raw_changes=_raw_change(record, prior),
            )
        )

    for prior in previous:
        if prior.customer_id in current_by_id:
            continue
        changes.append(
            RFMCustomerChange(
                customer_id=prior.customer_id,
                name=prior.name,
                current_segment=LOST_SEGMENT_LABEL,
                previous_segment=prior.segment.value,
                is_lost=True,
                r_change=-prior.r_score,
                f_change=-prior.f_score,
                m_change=-prior.m_score,
                score_change=-prior.weighted_score,
            )
        )

    current_counts = segment_counts(current)
    previous_counts = segment_counts(previous)

    segment_changes = []
    for segment in CANONICAL_SEGMENTS:
        now, before = current_counts[segment], previous_counts[segment]
        segment_changes.append(
            SegmentChange(
                segment=segment,
                current=now,
                previous=before,
                change=now - before,
                percent_change=(now - before) / before * 100 if before > 0 else None,
            )
        )

    return RFMComparison(
        customer_changes=tuple(changes),
        migration_matrix=migration_matrix,
        current_segment_counts=current_counts,
        previous_segment_counts=previous_counts,
        segment_changes=tuple(segment_changes),
    )

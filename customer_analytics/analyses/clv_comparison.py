"""Period-to-period comparison of CLV projections."""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass
from typing import Any, Optional, Sequence

from customer_analytics.models.clv import CLVRecord

#: Percent change reported for every lost customer: the whole value is gone.
LOST_PERCENT_CHANGE = -100.0


def percent_change(current: float, previous: float) -> Optional[float]:
    """Relative change in percent; None when there is no non-zero baseline."""

    if previous == 0:
        return None
    return (current - previous) / previous * 100


@dataclass(frozen=True)
class RawCLVChange:
    """Movement of the raw aggregates behind a retained customer's CLV."""

    total_revenue: float
    transaction_count: int
    avg_transaction_value: float


@dataclass(frozen=True)
class CLVCustomerChange:
    """Change in one customer's CLV between the two periods.

    Attributes
    ----------
    current_clv, previous_clv:
        Closed-form values; 0 on the side where the customer is absent
    absolute_change:
        current_clv − previous_clv
    percent_change:
        None for new customers and zero baselines, exactly −100 for lost ones
    revenue_change, frequency_change:
        Change in average monthly revenue and monthly purchase frequency
    raw_changes:
        Raw aggregate deltas, retained customers only
    """

    customer_id: str
    name: str
    current_clv: float
    previous_clv: float
    absolute_change: float
    percent_change: Optional[float]
    revenue_change: float
    frequency_change: float
    is_new: bool = False
    is_lost: bool = False
    raw_changes: Optional[RawCLVChange] = None

    def __post_init__(self) -> None:
        """Validate change flags."""
        if self.is_new and self.is_lost:
            raise ValueError(
                f"Customer cannot be both new and lost (customer_id={self.customer_id})"
            )

    def as_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "id": self.customer_id,
            "name": self.name,
            "currentCLV": self.current_clv,
            "previousCLV": self.previous_clv,
            "isNew": self.is_new,
            "isLost": self.is_lost,
            "absoluteChange": self.absolute_change,
            "percentChange": self.percent_change,
            "revenueChange": self.revenue_change,
            "frequencyChange": self.frequency_change,
        }
        if self.raw_changes is not None:
            payload["rawChanges"] = {
                "totalRevenue": self.raw_changes.total_revenue,
                "transactionCount": self.raw_changes.transaction_count,
                "avgTransactionValue": self.raw_changes.avg_transaction_value,
            }
        return payload


@dataclass(frozen=True)
class MetricChange:
    """An aggregate metric in both periods."""

    current: float
    previous: float
    absolute_change: float
    percent_change: Optional[float]

    @classmethod
    def between(cls, current: float, previous: float) -> MetricChange:
        return cls(
            current=current,
            previous=previous,
            absolute_change=current - previous,
            percent_change=percent_change(current, previous),
        )

    def as_dict(self) -> dict[str, Any]:
        return {
            "current": self.current,
            "previous": self.previous,
            "absoluteChange": self.absolute_change,
            "percentChange": self.percent_change,
        }


@dataclass(frozen=True)
class CountChange:
    """Customer count in both periods."""

    current: int
    previous: int
    change: int

    def as_dict(self) -> dict[str, Any]:
        return {"current": self.current, "previous": self.previous, "change": self.change}


@dataclass(frozen=True)
class CLVComparison:
    """CLV period-to-period comparison results."""

    customer_changes: tuple[CLVCustomerChange, ...]
    total_clv: MetricChange
    average_clv: MetricChange
    customer_count: CountChange

    def as_dict(self) -> dict[str, Any]:
        return {
            "customerChanges": [c.as_dict() for c in self.customer_changes],
            "overallChanges": {
                "totalCLV": self.total_clv.as_dict(),
                "averageCLV": self.average_clv.as_dict(),
                "customerCount": self.customer_count.as_dict(),
            },
        }


def _index_by_customer_id(records: Sequence[CLVRecord], label: str) -> dict[str, CLVRecord]:
    counts = Counter(r.customer_id for r in records)
    duplicates = [cid for cid, count in counts.items() if count > 1]
    if duplicates:
        raise ValueError(f"Duplicate customer IDs found in {label}: {duplicates}")
    return {r.customer_id: r for r in records}


def _mean_value(records: Sequence[CLVRecord], total: float) -> float:
    return total / len(records) if records else 0.0


def compare_clv(
    current: Sequence[CLVRecord],
    previous: Sequence[CLVRecord],
) -> CLVComparison:
    """Compare the CLV projections of two periods.

    Parameters
    ----------
    current:
        CLV records for the current period. Customer ids must be unique.
    previous:
        CLV records for the previous period. Customer ids must be unique.

    Returns
    -------
    CLVComparison
        Per-customer changes (current customers in input order, then lost
        customers) plus total, average and count aggregates.

    Raises
    ------
    ValueError
        If either input contains duplicate customer ids.
    """
    current_by_id = _index_by_customer_id(current, "current")
    previous_by_id = _index_by_customer_id(previous, "previous")

    changes: list[CLVCustomerChange] = []
    for record in current:
        prior = previous_by_id.get(record.customer_id)
        if prior is None:
            changes.append(
                CLVCustomerChange(
                    customer_id=record.customer_id,
                    name=record.name,
                    current_clv=record.value,
                    previous_clv=0.0,
                    absolute_change=record.value,
                    percent_change=None,
                    revenue_change=record.avg_monthly_revenue,
                    frequency_change=record.purchase_frequency,
                    is_new=True,
                )
            )
            continue

        changes.append(
            CLVCustomerChange(
                customer_id=record.customer_id,
                name=record.name,
                current_clv=record.value,
                previous_clv=prior.value,
                absolute_change=record.value - prior.value,
                percent_change=percent_change(record.value, prior.value),
                revenue_change=record.avg_monthly_revenue - prior.avg_monthly_revenue,
                frequency_change=record.purchase_frequency - prior.purchase_frequency,
                raw_changes=RawCLVChange(
                    total_revenue=record.total_revenue - prior.total_revenue,
                    transaction_count=record.transaction_count - prior.transaction_count,
                    avg_transaction_value=record.avg_transaction_value
                    - prior.avg_transaction_value,
                ),
            )
        )

    for prior in previous:
        if prior.customer_id in current_by_id:
            continue
        changes.append(
            CLVCustomerChange(
                customer_id=prior.customer_id,
                name=prior.name,
                current_clv=0.0,
                previous_clv=prior.value,
                absolute_change=-prior.value,
                percent_change=LOST_PERCENT_CHANGE,
                revenue_change=-prior.avg_monthly_revenue,
                frequency_change=-prior.purchase_frequency,
                is_lost=True,
            )
        )

    current_total = sum(r.value for r in current)
    previous_total = sum(r.value for r in previous)

    return CLVComparison(
        customer_changes=tuple(changes),
        total_clv=MetricChange.between(float(current_total), float(previous_total)),
        average_clv=MetricChange.between(
            _mean_value(current, current_total), _mean_value(previous, previous_total)
        ),
        customer_count=CountChange(
            current=len(current),
            previous=len(previous),
            change=len(current) - len(previous),
        ),
    )

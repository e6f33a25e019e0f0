"""Customer Lifetime Value projection.

Each customer's history is reduced to an average monthly revenue, which is
then projected forward two ways:

Closed-form value (discounted perpetuity with geometric retention):
    CLV = Gross Margin × Avg Monthly Revenue × r / (1 + d − r)

Iterative forecast over ``prediction_months`` months:
    Future Value = Σ_{i=1..N} Avg Monthly Revenue × Gross Margin × r^i × (1 + d)^−i

Where:
    - r: Monthly retention rate (1 − churn rate)
    - d: Monthly discount rate
    - Gross Margin: Share of revenue retained as profit (e.g., 0.5 = 50%)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Optional, Sequence

from customer_analytics.errors import ConfigurationError
from customer_analytics.foundation.customers import Customer, extract_aggregates

logger = logging.getLogger(__name__)

# Month length used to turn customer tenure into months.
DAYS_PER_MONTH = 30
SECONDS_PER_DAY = 86_400

#: Tenure floor; avoids dividing by a fraction of a month for new customers.
MIN_MONTHS_ACTIVE = 1.0


@dataclass(frozen=True)
class CLVConfig:
    """Business parameters of the CLV projection.

    Attributes
    ----------
    churn_rate:
        Monthly probability that a customer stops buying, in [0, 1]
        (default: 0.05 = 5%).
    discount_rate:
        Monthly discount rate for present value, >= 0 (default: 0.01 = 1%).
    prediction_months:
        Number of months in the iterative forecast (default: 24).
    gross_margin:
        Share of revenue kept as profit, in [0, 1] (default: 0.5 = 50%).
    include_acquisition_cost:
        When True, ``acquisition_cost`` is subtracted once from both the
        closed-form value and the forecast.
    acquisition_cost:
        One-off cost of acquiring a customer, >= 0.
    """

    churn_rate: float = 0.05
    discount_rate: float = 0.01
    prediction_months: int = 24
    gross_margin: float = 0.5
    include_acquisition_cost: bool = False
    acquisition_cost: float = 0.0

    def __post_init__(self) -> None:
        """Validate parameters."""
        if not 0 <= self.churn_rate <= 1:
            raise ConfigurationError(f"churn_rate must be between 0 and 1, got {self.churn_rate}")
        if self.discount_rate < 0:
            raise ConfigurationError(f"discount_rate cannot be negative, got {self.discount_rate}")
        if self.prediction_months < 0:
            raise ConfigurationError(
                f"prediction_months cannot be negative, got {self.prediction_months}"
            )
        if not 0 <= self.gross_margin <= 1:
            raise ConfigurationError(
                f"gross_margin must be between 0 and 1, got {self.gross_margin}"
            )
        if self.acquisition_cost < 0:
            raise ConfigurationError(
                f"acquisition_cost cannot be negative, got {self.acquisition_cost}"
            )
        if self.perpetuity_denominator == 0:
            raise ConfigurationError(
                "1 + discount_rate - retention_rate must be non-zero "
                f"(churn_rate={self.churn_rate}, discount_rate={self.discount_rate})"
            )

    @property
    def retention_rate(self) -> float:
        return 1 - self.churn_rate

    @property
    def perpetuity_denominator(self) -> float:
        return 1 + self.discount_rate - self.retention_rate


@dataclass(frozen=True)
class CLVRecord:
    """CLV projection for a single customer.

    Attributes
    ----------
    customer_id:
        Unique customer identifier
    name:
        Customer display name
    value:
        Closed-form lifetime value (net of acquisition cost when configured)
    future_value:
        Sum of the discounted monthly forecast (net of acquisition cost when
        configured)
    avg_monthly_revenue:
        Total revenue divided by months active
    purchase_frequency:
        Transactions per month active
    months_active:
        Months between the first transaction and the evaluation instant,
        never below 1
    total_revenue:
        Sum of transaction amounts
    transaction_count:
        Number of transactions
    avg_transaction_value:
        Total revenue per transaction (0 without transactions)
    """

    customer_id: str
    name: str
    value: float
    future_value: float
    avg_monthly_revenue: float
    purchase_frequency: float
    months_active: float
    total_revenue: float
    transaction_count: int
    avg_transaction_value: float

    def __post_init__(self) -> None:
        """Validate CLV record values."""
        if self.months_active < MIN_MONTHS_ACTIVE:
            raise ValueError(
                f"months_active must be at least {MIN_MONTHS_ACTIVE}: {self.months_active} "
                f"(customer_id={self.customer_id})"
            )
        if self.total_revenue < 0:
            raise ValueError(
                f"total_revenue cannot be negative: {self.total_revenue} "
                f"(customer_id={self.customer_id})"
            )
        if self.transaction_count < 0:
            raise ValueError(
                f"transaction_count cannot be negative: {self.transaction_count} "
                f"(customer_id={self.customer_id})"
            )

    def as_dict(self) -> dict[str, Any]:
        return {
            "id": self.customer_id,
            "name": self.name,
            "clv": {
                "value": self.value,
                "futureValue": self.future_value,
                "avgMonthlyRevenue": self.avg_monthly_revenue,
                "purchaseFrequency": self.purchase_frequency,
                "monthsActive": self.months_active,
                "raw": {
                    "totalRevenue": self.total_revenue,
                    "transactionCount": self.transaction_count,
                    "avgTransactionValue": self.avg_transaction_value,
                },
            },
        }


def months_between(start: datetime, end: datetime) -> float:
    """Fractional 30-day months from ``start`` to ``end``, floored at 1."""

    days = (end - start).total_seconds() / SECONDS_PER_DAY
    return max(MIN_MONTHS_ACTIVE, days / DAYS_PER_MONTH)


def closed_form_value(avg_monthly_revenue: float, config: CLVConfig) -> float:
    """Discounted perpetuity value of ``avg_monthly_revenue`` (before acquisition cost)."""

    return (
        config.gross_margin
        * avg_monthly_revenue
        * config.retention_rate
        / config.perpetuity_denominator
    )


def forecast_future_value(avg_monthly_revenue: float, config: CLVConfig) -> float:
    """Accumulate discounted, retention-weighted margin month by month.

    Every month adds a non-negative term for non-negative revenue, so the
    forecast never shrinks as ``prediction_months`` grows.
    """
    future_value = 0.0
    cumulative_retention = 1.0
    cumulative_discount = 1.0
    for _ in range(config.prediction_months):
        cumulative_retention *= config.retention_rate
        cumulative_discount *= 1 / (1 + config.discount_rate)
        future_value += (
            avg_monthly_revenue
            * config.gross_margin
            * cumulative_retention
            * cumulative_discount
        )
    return future_value


class CLVProjector:
    """Project customer lifetime value from transaction histories.

    Examples
    --------
    >>> from datetime import datetime
    >>> from decimal import Decimal
    >>> from customer_analytics.foundation.customers import Customer, Transaction
    >>> customer = Customer("C1", "Ann", transactions=(
    ...     Transaction("T1", datetime(2024, 1, 1), Decimal("300")),
    ... ))
    >>> projector = CLVProjector(CLVConfig(churn_rate=0.0, discount_rate=0.01))
    >>> record = projector.project([customer], datetime(2024, 1, 16))[0]
    >>> record.months_active
    1.0
    >>> round(record.value, 2)
    15000.0
    """

    def __init__(self, config: Optional[CLVConfig] = None) -> None:
        self.config = config if config is not None else CLVConfig()

    def project_customer(self, customer: Customer, evaluation_instant: datetime) -> CLVRecord:
        """Project a single customer.

        Customers without transactions get a zero value and forecast (no
        acquisition cost is charged against them).
        """
        aggregates = extract_aggregates(customer)
        total_revenue = float(aggregates.total_revenue)

        if aggregates.first_transaction_at is None:
            return CLVRecord(
                customer_id=customer.customer_id,
                name=customer.name,
                value=0.0,
                future_value=0.0,
                avg_monthly_revenue=0.0,
                purchase_frequency=0.0,
                months_active=MIN_MONTHS_ACTIVE,
                total_revenue=total_revenue,
                transaction_count=0,
                avg_transaction_value=0.0,
            )

        months_active = months_between(aggregates.first_transaction_at, evaluation_instant)
        avg_monthly_revenue = total_revenue / months_active
        purchase_frequency = aggregates.transaction_count / months_active

        value = closed_form_value(avg_monthly_revenue, self.config)
        future_value = forecast_future_value(avg_monthly_revenue, self.config)

        if self.config.include_acquisition_cost:
            value -= self.config.acquisition_cost
            future_value -= self.config.acquisition_cost

        return CLVRecord(
            customer_id=customer.customer_id,
            name=customer.name,
            value=value,
            future_value=future_value,
            avg_monthly_revenue=avg_monthly_revenue,
            purchase_frequency=purchase_frequency,
            months_active=months_active,
            total_revenue=total_revenue,
            transaction_count=aggregates.transaction_count,
            avg_transaction_value=total_revenue / aggregates.transaction_count,
        )

    def project(
        self, customers: Sequence[Customer], evaluation_instant: datetime
    ) -> list[CLVRecord]:
        """Project every customer, in input order.

        Parameters
        ----------
        customers:
            Customers to project.
        evaluation_instant:
            The "now" tenure is measured to. Passed explicitly so results are
            reproducible; must share the timezone convention of the
            transaction dates.

        Returns
        -------
        list[CLVRecord]
            One record per customer; empty for an empty cohort.
        """
        if not customers:
            return []

        records = [self.project_customer(c, evaluation_instant) for c in customers]
        logger.debug(
            f"Projected CLV for {len(records)} customers "
            f"(churn_rate={self.config.churn_rate}, discount_rate={self.config.discount_rate}, "
            f"prediction_months={self.config.prediction_months})"
        )
        return records


def calculate_clv(
    customers: Sequence[Customer],
    evaluation_instant: datetime,
    config: Optional[CLVConfig] = None,
) -> list[CLVRecord]:
    """Convenience wrapper around :meth:`CLVProjector.project`."""

    return CLVProjector(config).project(customers, evaluation_instant)

"""Customer and transaction records plus per-customer aggregate extraction.

The customer record is the single input shape every analysis consumes:
an identity (``customer_id``), display fields, and an unordered history of
transactions. Components that care about ordering sort internally.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Any, Iterable, Sequence


@dataclass(frozen=True)
class Transaction:
    """A single purchase.

    Attributes
    ----------
    transaction_id:
        Identifier of the transaction within the source system.
    date:
        Timestamp of the purchase. All transactions in an analysis must share
        the same timezone convention (all aware or all naive).
    amount:
        Purchase value, never negative.
    items:
        Number of items in the purchase, at least 1.
    """

    transaction_id: str
    date: datetime
    amount: Decimal
    items: int = 1

    def __post_init__(self) -> None:
        """Validate transaction values."""
        if not isinstance(self.date, datetime):
            raise TypeError(
                f"date must be a datetime instance, got {type(self.date).__name__} "
                f"(transaction_id={self.transaction_id})"
            )
        if self.amount < 0:
            raise ValueError(
                f"Amount cannot be negative: {self.amount} (transaction_id={self.transaction_id})"
            )
        if self.items < 1:
            raise ValueError(
                f"Items must be at least 1: {self.items} (transaction_id={self.transaction_id})"
            )


@dataclass(frozen=True)
class Customer:
    """A customer with their transaction history.

    ``customer_id`` is the stable identity key used to match customers
    between analysis runs.
    """

    customer_id: str
    name: str
    email: str = ""
    transactions: tuple[Transaction, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        if not self.customer_id:
            raise ValueError("customer_id must be a non-empty string")
        # Accept any sequence but store an immutable tuple.
        if not isinstance(self.transactions, tuple):
            object.__setattr__(self, "transactions", tuple(self.transactions))

    def with_transactions(self, transactions: Iterable[Transaction]) -> Customer:
        """Return a copy of this customer holding ``transactions`` instead."""

        return Customer(
            customer_id=self.customer_id,
            name=self.name,
            email=self.email,
            transactions=tuple(transactions),
        )

    def as_dict(self) -> dict[str, Any]:
        """Serialise to the JSON input contract."""

        return {
            "id": self.customer_id,
            "name": self.name,
            "email": self.email,
            "transactions": [
                {
                    "id": t.transaction_id,
                    "date": t.date.isoformat(),
                    "amount": float(t.amount),
                    "items": t.items,
                }
                for t in self.transactions
            ],
        }


@dataclass(frozen=True)
class CustomerAggregates:
    """Scalar aggregates derived from one customer's transactions.

    Attributes
    ----------
    customer_id:
        Customer the aggregates belong to
    total_revenue:
        Sum of all transaction amounts
    transaction_count:
        Number of transactions
    first_transaction_at:
        Earliest transaction timestamp, None when there are no transactions
    last_transaction_at:
        Latest transaction timestamp, None when there are no transactions
    """

    customer_id: str
    total_revenue: Decimal
    transaction_count: int
    first_transaction_at: datetime | None
    last_transaction_at: datetime | None

    def __post_init__(self) -> None:
        """Validate aggregate consistency."""
        if self.total_revenue < 0:
            raise ValueError(
                f"Total revenue cannot be negative: {self.total_revenue} (customer_id={self.customer_id})"
            )
        if self.transaction_count < 0:
            raise ValueError(
                f"Transaction count cannot be negative: {self.transaction_count} "
                f"(customer_id={self.customer_id})"
            )
        has_dates = self.first_transaction_at is not None
        if has_dates != (self.transaction_count > 0):
            raise ValueError(
                f"Transaction dates must be present exactly when transaction_count > 0 "
                f"(customer_id={self.customer_id})"
            )

    @property
    def has_transactions(self) -> bool:
        return self.transaction_count > 0


def extract_aggregates(customer: Customer) -> CustomerAggregates:
    """Compute revenue, count and date bounds for a single customer.

    Examples
    --------
    >>> from datetime import datetime
    >>> from decimal import Decimal
    >>> c = Customer("C1", "Ann", transactions=(
    ...     Transaction("T1", datetime(2024, 1, 5), Decimal("20")),
    ...     Transaction("T2", datetime(2024, 1, 1), Decimal("30")),
    ... ))
    >>> agg = extract_aggregates(c)
    >>> agg.total_revenue, agg.transaction_count
    (Decimal('50'), 2)
    >>> agg.first_transaction_at
    datetime.datetime(2024, 1, 1, 0, 0)
    """
    transactions = customer.transactions
    if not transactions:
        return CustomerAggregates(
            customer_id=customer.customer_id,
            total_revenue=Decimal("0"),
            transaction_count=0,
            first_transaction_at=None,
            last_transaction_at=None,
        )

    dates = [t.date for t in transactions]
    return CustomerAggregates(
        customer_id=customer.customer_id,
        total_revenue=sum((t.amount for t in transactions), Decimal("0")),
        transaction_count=len(transactions),
        first_transaction_at=min(dates),
        last_transaction_at=max(dates),
    )


def extract_all_aggregates(customers: Sequence[Customer]) -> list[CustomerAggregates]:
    """Aggregate every customer in ``customers``, preserving input order."""

    return [extract_aggregates(customer) for customer in customers]


def customer_revenue(customer: Customer) -> Decimal:
    """Total revenue of a customer (sum of transaction amounts)."""

    return sum((t.amount for t in customer.transactions), Decimal("0"))

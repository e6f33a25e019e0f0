"""Sample customer data for demos and tests.

Produces customers with uniformly distributed purchase dates and amounts so
that every analysis can be exercised without production data. Pass ``seed``
for reproducible output.
"""

from __future__ import annotations

import random
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import List, Optional

from customer_analytics.foundation.customers import Customer, Transaction

MIN_AMOUNT = 10.0
MAX_AMOUNT = 500.0
MAX_ITEMS = 10
DEFAULT_HISTORY_DAYS = 365


def generate_sample_customers(
    customer_count: int = 100,
    max_transactions_per_customer: int = 20,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
    *,
    seed: Optional[int] = None,
) -> List[Customer]:
    """Generate ``customer_count`` customers with random purchase histories.

    Parameters
    ----------
    customer_count:
        Number of customers; ids run ``cust001``, ``cust002``, ...
    max_transactions_per_customer:
        Each customer gets between 1 and this many transactions.
    start, end:
        Window purchase dates are drawn from. ``end`` defaults to the current
        UTC time and ``start`` to one year before ``end``.
    seed:
        Optional RNG seed for reproducibility.

    Returns
    -------
    List[Customer]
        Customers whose transactions are sorted oldest first.
    """
    if customer_count <= 0:
        return []
    if max_transactions_per_customer < 1:
        raise ValueError(
            f"max_transactions_per_customer must be at least 1, got {max_transactions_per_customer}"
        )

    end = end if end is not None else datetime.now(timezone.utc)
    start = start if start is not None else end - timedelta(days=DEFAULT_HISTORY_DAYS)
    if start > end:
        raise ValueError("start date must be <= end date")

    rng = random.Random(seed)
    span_seconds = (end - start).total_seconds()

    customers: List[Customer] = []
    for i in range(1, customer_count + 1):
        transaction_count = rng.randint(1, max_transactions_per_customer)
        transactions = []
        for j in range(1, transaction_count + 1):
            date = start + timedelta(seconds=rng.random() * span_seconds)
            amount = Decimal(str(round(MIN_AMOUNT + rng.random() * (MAX_AMOUNT - MIN_AMOUNT), 2)))
            transactions.append(
                Transaction(
                    transaction_id=f"t{i}_{j}",
                    date=date,
                    amount=amount,
                    items=rng.randint(1, MAX_ITEMS),
                )
            )
        transactions.sort(key=lambda t: t.date)

        customers.append(
            Customer(
                customer_id=f"cust{i:03d}",
                name=f"Customer {i}",
                email=f"customer{i}@example.com",
                transactions=tuple(transactions),
            )
        )
    return customers

"""Validation and loading of the customer JSON input contract.

The expected payload is a list of customers::

    [
        {
            "id": "cust001",
            "name": "John Smith",
            "email": "john@example.com",
            "transactions": [
                {"id": "t001", "date": "2025-01-15T10:30:00Z", "amount": 125.50, "items": 3}
            ]
        }
    ]

``id``, ``name`` and ``transactions`` are mandatory. Timestamps without an
explicit offset are taken as UTC. ``email`` defaults to
``"<id>@example.com"`` and ``items`` defaults to 1.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from decimal import Decimal
from pathlib import Path
from typing import Any, Iterable, Optional

from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator

from customer_analytics.foundation.customers import Customer, Transaction

logger = logging.getLogger(__name__)

MAX_INPUT_BYTES = 25 * 1024 * 1024  # 25 MiB cap to avoid accidental OOM


class TransactionRecord(BaseModel):
    """A transaction as found in the input file."""

    id: str = Field(min_length=1, description="Transaction identifier")
    date: datetime = Field(description="ISO-8601 transaction timestamp")
    amount: Decimal = Field(ge=0, description="Transaction value")
    items: int = Field(default=1, ge=1, description="Number of items")

    @field_validator("date")
    @classmethod
    def _assume_utc(cls, value: datetime) -> datetime:
        # Timestamps without an offset are read as UTC.
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value

    def to_transaction(self) -> Transaction:
        return Transaction(
            transaction_id=self.id,
            date=self.date,
            amount=self.amount,
            items=self.items,
        )


class CustomerRecord(BaseModel):
    """A customer as found in the input file."""

    id: str = Field(min_length=1, description="Stable customer identifier")
    name: str = Field(min_length=1, description="Customer display name")
    email: Optional[str] = Field(default=None, description="Contact email")
    transactions: list[TransactionRecord]

    @model_validator(mode="after")
    def _default_email(self) -> CustomerRecord:
        if not self.email:
            self.email = f"{self.id}@example.com"
        return self

    def to_customer(self) -> Customer:
        return Customer(
            customer_id=self.id,
            name=self.name,
            email=self.email or "",
            transactions=tuple(t.to_transaction() for t in self.transactions),
        )


def parse_customers(payload: Any) -> list[Customer]:
    """Validate a decoded JSON payload and convert it into customers.

    Parameters
    ----------
    payload:
        Decoded JSON; must be a non-empty list of customer objects.

    Returns
    -------
    list[Customer]
        Customers in payload order.

    Raises
    ------
    ValueError
        If the root is not a list, the list is empty, a record fails
        validation, or a customer id is repeated.
    """
    if not isinstance(payload, list):
        raise ValueError("Invalid data format: root element must be an array")
    if not payload:
        raise ValueError("Data file contains no customer records")

    customers: list[Customer] = []
    seen_ids: set[str] = set()
    for idx, item in enumerate(payload):
        try:
            record = CustomerRecord.model_validate(item)
        except ValidationError as exc:
            raise ValueError(f"Invalid customer record at index {idx}: {exc}") from exc

        if record.id in seen_ids:
            raise ValueError(f"Duplicate customer id at index {idx}: {record.id}")
        seen_ids.add(record.id)
        customers.append(record.to_customer())

    logger.info(
        f"Parsed {len(customers)} customers with "
        f"{sum(len(c.transactions) for c in customers)} transactions"
    )
    return customers


def load_customers(path: Path) -> list[Customer]:
    """Read and validate a customer JSON file."""

    resolved = path.resolve()
    size = resolved.stat().st_size
    if size > MAX_INPUT_BYTES:
        raise ValueError(
            f"Input file {resolved} is {size} bytes; exceeds limit of {MAX_INPUT_BYTES} bytes"
        )
    with resolved.open("r", encoding="utf-8") as fh:
        try:
            payload = json.load(fh)
        except json.JSONDecodeError as exc:
            raise ValueError(f"Error parsing JSON in {resolved}: {exc}") from exc
    return parse_customers(payload)


def customers_to_payload(customers: Iterable[Customer]) -> list[dict[str, Any]]:
    """Serialise customers back into the input contract."""

    return [customer.as_dict() for customer in customers]

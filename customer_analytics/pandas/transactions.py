"""Build customers from flat transaction tables (DataFrames and CSV files).

A transaction table has one row per purchase and repeats the customer's
identity on each row, e.g. an export from a point-of-sale system::

    customer_id,name,email,transaction_id,date,amount,items
    C1,Jane Doe,jane@example.com,T1,2024-01-15,120.00,2
    C1,Jane Doe,jane@example.com,T2,01/20/2024,35.50,1

Column names can be remapped with ``column_mapping`` (logical name → column).
"""

import logging
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Union

import pandas as pd  # type: ignore

from customer_analytics.foundation.customers import Customer, Transaction
from ._utils import float_to_decimal

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ("customer_id", "name", "transaction_id", "date", "amount")
OPTIONAL_FIELDS = ("email", "items")
DEFAULT_COLUMN_MAPPING: Dict[str, str] = {
    name: name for name in REQUIRED_FIELDS + OPTIONAL_FIELDS
}


def _resolve_mapping(column_mapping: Optional[Mapping[str, str]]) -> Dict[str, str]:
    mapping = dict(DEFAULT_COLUMN_MAPPING)
    if column_mapping:
        unknown = set(column_mapping) - set(mapping)
        if unknown:
            raise ValueError(f"Unknown fields in column mapping: {sorted(unknown)}")
        mapping.update(column_mapping)
    return mapping


def customers_from_dataframe(
    df: pd.DataFrame,
    column_mapping: Optional[Mapping[str, str]] = None,
) -> List[Customer]:
    """Group a transaction table into customers.

    Args:
        df: One row per transaction
        column_mapping: Overrides for the default column names. Keys are
            the logical fields customer_id, name, email, transaction_id,
            date, amount and items.

    Returns:
        Customers in order of first appearance, each with its transactions
        in row order. Customers whose every row was skipped are omitted.

    Raises:
        ValueError: If a required column is missing or the mapping names an
            unknown field

    Note:
        Rows with a missing required value, an unparseable date or a
        non-positive amount are skipped with a warning. Dates are parsed as
        UTC; both ISO-8601 and MM/DD/YYYY are accepted. Missing emails
        default to ``<customer_id>@example.com`` and missing item counts to 1.

    Example:
        >>> df = pd.read_csv("transactions.csv")
        >>> customers = customers_from_dataframe(df, {"customer_id": "client"})
    """
    mapping = _resolve_mapping(column_mapping)

    required_cols = [mapping[f] for f in REQUIRED_FIELDS]
    missing_cols = set(required_cols) - set(df.columns)
    if missing_cols:
        raise ValueError(f"DataFrame missing required columns: {missing_cols}")

    if df.empty:
        return []

    dates = pd.to_datetime(df[mapping["date"]], errors="coerce", utc=True, format="mixed")
    amounts = pd.to_numeric(df[mapping["amount"]], errors="coerce")
    has_email = mapping["email"] in df.columns
    has_items = mapping["items"] in df.columns

    grouped: Dict[str, Dict[str, Any]] = {}
    skipped = 0
    for position, (_, row) in enumerate(df.iterrows()):
        date = dates.iloc[position]
        amount = amounts.iloc[position]
        if (
            row[required_cols].isnull().any()
            or pd.isna(date)
            or pd.isna(amount)
            or amount <= 0
        ):
            skipped += 1
            continue

        customer_id = str(row[mapping["customer_id"]]).strip()
        entry = grouped.get(customer_id)
        if entry is None:
            email = row[mapping["email"]] if has_email else None
            entry = {
                "name": str(row[mapping["name"]]).strip(),
                "email": str(email).strip() if not pd.isna(email) else "",
                "transactions": [],
            }
            grouped[customer_id] = entry

        items = row[mapping["items"]] if has_items else None
        entry["transactions"].append(
            Transaction(
                transaction_id=str(row[mapping["transaction_id"]]).strip(),
                date=date.to_pydatetime(),
                amount=float_to_decimal(float(amount)),
                items=int(float(items)) if items is not None and not pd.isna(items) else 1,
            )
        )

    if skipped:
        logger.warning(
            f"Skipped {skipped} of {len(df)} rows with missing values, "
            f"invalid dates or non-positive amounts"
        )

    customers = [
        Customer(
            customer_id=customer_id,
            name=entry["name"],
            email=entry["email"] or f"{customer_id}@example.com",
            transactions=tuple(entry["transactions"]),
        )
        for customer_id, entry in grouped.items()
    ]
    logger.info(f"Built {len(customers)} customers from {len(df) - skipped} transactions")
    return customers


def read_transactions_csv(
    path: Union[str, Path],
    column_mapping: Optional[Mapping[str, str]] = None,
) -> List[Customer]:
    """Read a transaction CSV and group it into customers.

    All columns are read as strings so identifiers like ``007`` survive;
    dates and amounts are parsed by :func:`customers_from_dataframe`.
    """
    df = pd.read_csv(path, dtype=str, skipinitialspace=True)
    return customers_from_dataframe(df, column_mapping)

"""Pandas DataFrame adapters for customer analytics components."""

from .rfm import (
    rfm_to_dataframe,
    rfm_comparison_to_dataframes,
)
from .clv import (
    clv_to_dataframe,
    clv_comparison_to_dataframe,
)
from .concentration import concentration_to_dataframe
from .transactions import (
    customers_from_dataframe,
    read_transactions_csv,
)

__all__ = [
    # RFM adapters
    "rfm_to_dataframe",
    "rfm_comparison_to_dataframes",
    # CLV adapters
    "clv_to_dataframe",
    "clv_comparison_to_dataframe",
    # Concentration adapters
    "concentration_to_dataframe",
    # Input adapters
    "customers_from_dataframe",
    "read_transactions_csv",
]

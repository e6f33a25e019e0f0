"""Synthetic data generation utilities.

This package helps produce realistic-but-fake customer histories to
exercise the analytics pipeline without accessing production data.
"""

from .generator import generate_sample_customers

__all__ = ["generate_sample_customers"]

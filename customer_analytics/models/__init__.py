"""CLV projection models."""

from customer_analytics.models.clv import (
    CLVConfig,
    CLVProjector,
    CLVRecord,
    calculate_clv,
    forecast_future_value,
)

__all__ = [
    "CLVConfig",
    "CLVProjector",
    "CLVRecord",
    "calculate_clv",
    "forecast_future_value",
]

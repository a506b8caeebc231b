"""
Domain types for the fxconv application.

Plain dataclasses; the currency store converts them to and from record store
rows.
"""

from fxconv.models.api_usage import ApiStats, ApiUsageRecord
from fxconv.models.conversion import ConversionRecord, ConversionResult
from fxconv.models.currency import CurrencyMetadata
from fxconv.models.rate_snapshot import RatesResponse, RateSnapshot

__all__ = [
    "ApiStats",
    "ApiUsageRecord",
    "ConversionRecord",
    "ConversionResult",
    "CurrencyMetadata",
    "RateSnapshot",
    "RatesResponse",
]

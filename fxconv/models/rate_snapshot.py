"""
Exchange rate snapshot models.
"""

from dataclasses import dataclass, field, replace
from typing import Any

from fxconv.lib.config import BASE_CURRENCY, RATES_SOURCE


@dataclass(frozen=True)
class RateSnapshot:
    """
    One fetched mapping of currency code -> rate relative to the base currency.

    Snapshots are never mutated; a newer fetch supersedes them.
    """

    base_currency: str
    rates: dict[str, float]
    timestamp: float  # epoch seconds
    source: str = RATES_SOURCE

    def to_record(self) -> dict[str, Any]:
        """Row for the exchange_rates table."""
        return {
            "base_currency": self.base_currency,
            "rates": dict(self.rates),
            "timestamp": self.timestamp,
            "source": self.source,
        }

    @classmethod
    def from_record(cls, data: dict[str, Any]) -> "RateSnapshot":
        """Build from an exchange_rates row."""
        return cls(
            base_currency=data["base_currency"],
            rates=dict(data["rates"]),
            timestamp=data["timestamp"],
            source=data.get("source", RATES_SOURCE),
        )

    def __repr__(self) -> str:
        return (
            f"RateSnapshot({self.base_currency}, {len(self.rates)} rates "
            f"@ {self.timestamp:.0f} from {self.source})"
        )


@dataclass
class RatesResponse:
    """Rates handed to callers of the conversion engine."""

    rates: dict[str, float]
    timestamp: float  # epoch seconds
    base_currency: str = BASE_CURRENCY
    stale: bool = field(default=False, compare=False)

    def quotes(self, currency: str) -> bool:
        """Whether the snapshot can price ``currency``."""
        return currency == self.base_currency or currency in self.rates

    def copy(self, **changes: Any) -> "RatesResponse":
        """Independent copy, so callers cannot mutate a cached response."""
        return replace(self, rates=dict(self.rates), **changes)

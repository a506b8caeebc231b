"""
Conversion models.
"""

from dataclasses import asdict, dataclass
from typing import Any


@dataclass
class ConversionResult:
    """Outcome of a single conversion."""

    original_amount: float
    from_currency: str
    to_currency: str
    converted_amount: float
    rate_used: float
    timestamp: float  # timestamp of the rates snapshot used
    base_currency: str

    def to_dict(self) -> dict[str, Any]:
        """Plain dict for JSON output."""
        return asdict(self)


@dataclass(frozen=True)
class ConversionRecord:
    """Conversion history entry. Observability only, never used for pricing."""

    from_currency: str
    to_currency: str
    amount: float
    converted_amount: float
    rate: float
    timestamp: float
    client_id: str = "unknown"

    def to_record(self) -> dict[str, Any]:
        """Row for the conversion_history table."""
        return asdict(self)

    @classmethod
    def from_record(cls, data: dict[str, Any]) -> "ConversionRecord":
        """Build from a conversion_history row."""
        return cls(
            from_currency=data["from_currency"],
            to_currency=data["to_currency"],
            amount=data["amount"],
            converted_amount=data["converted_amount"],
            rate=data["rate"],
            timestamp=data["timestamp"],
            client_id=data.get("client_id", "unknown"),
        )

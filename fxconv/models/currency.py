"""
Currency metadata model.
"""

from dataclasses import asdict, dataclass
from typing import Any


@dataclass
class CurrencyMetadata:
    """Display information for a currency. Not used for conversion math."""

    code: str
    name: str
    symbol: str = ""
    country: str = ""
    is_active: bool = True

    def to_record(self) -> dict[str, Any]:
        """Row for the currency_metadata table."""
        return asdict(self)

    @classmethod
    def from_record(cls, data: dict[str, Any]) -> "CurrencyMetadata":
        """Build from a currency_metadata row."""
        return cls(
            code=data["code"],
            name=data["name"],
            symbol=data.get("symbol") or "",
            country=data.get("country") or "",
            is_active=data.get("is_active", True),
        )

    def __repr__(self) -> str:
        return f"CurrencyMetadata({self.code}: {self.name})"

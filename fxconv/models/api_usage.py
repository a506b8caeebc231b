"""
API usage telemetry models.
"""

from dataclasses import asdict, dataclass, field
from typing import Any


@dataclass(frozen=True)
class ApiUsageRecord:
    """One handled request."""

    endpoint: str
    method: str
    response_time: float  # milliseconds
    status_code: int
    timestamp: float
    client_id: str = "unknown"

    def to_record(self) -> dict[str, Any]:
        """Row for the api_usage table."""
        return asdict(self)

    @classmethod
    def from_record(cls, data: dict[str, Any]) -> "ApiUsageRecord":
        """Build from an api_usage row."""
        return cls(
            endpoint=data["endpoint"],
            method=data["method"],
            response_time=data["response_time"],
            status_code=data["status_code"],
            timestamp=data["timestamp"],
            client_id=data.get("client_id", "unknown"),
        )


@dataclass
class ApiStats:
    """Usage aggregated over a trailing time window."""

    total_requests: int = 0
    average_response_time: float = 0.0
    status_codes: dict[int, int] = field(default_factory=dict)
    endpoints: dict[str, int] = field(default_factory=dict)
    hourly_breakdown: dict[int, int] = field(default_factory=dict)  # local hour -> count
    period_hours: float = 24.0

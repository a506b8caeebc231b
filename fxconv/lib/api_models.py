"""Pydantic models for Open Exchange Rates responses."""

from typing import Any, Optional

from pydantic import BaseModel, Field, RootModel, ValidationError, field_validator

from fxconv.lib.errors import MalformedResponseError


class OERLatestResponse(BaseModel):
    """/latest.json and /historical/*.json response."""

    disclaimer: Optional[str] = None
    license: Optional[str] = None
    timestamp: int
    base: str
    rates: dict[str, float]

    @field_validator("rates")
    @classmethod
    def validate_rates(cls, v: dict[str, float]) -> dict[str, float]:
        """Ensure the mapping is non-empty and every rate is positive."""
        if not v:
            raise ValueError("rates cannot be empty")
        for code, rate in v.items():
            if rate <= 0:
                raise ValueError(f"Rate for {code} must be positive, got {rate}")
        return v


class OERCurrenciesResponse(RootModel[dict[str, str]]):
    """/currencies.json response: currency code -> display name."""


class OERPlanFeatures(BaseModel):
    """Feature flags of the current plan."""

    base: bool = False
    symbols: bool = False
    experimental: bool = False
    time_series: bool = False
    convert: bool = False


class OERPlan(BaseModel):
    """Plan description."""

    name: str
    quota: str
    update_frequency: str
    features: OERPlanFeatures = Field(default_factory=OERPlanFeatures)


class OERUsage(BaseModel):
    """Request counters for the current billing period."""

    requests: int
    requests_quota: int
    requests_remaining: int
    days_elapsed: int
    days_remaining: int
    daily_average: float


class OERUsageData(BaseModel):
    """Payload of /usage.json."""

    app_id: str
    status: str
    plan: OERPlan
    usage: OERUsage


class OERUsageResponse(BaseModel):
    """/usage.json response."""

    status: int
    data: OERUsageData


class OERErrorResponse(BaseModel):
    """Error body returned with non-2xx statuses."""

    error: bool = True
    status: int
    message: str
    description: Optional[str] = None


def parse_latest_response(data: dict[str, Any], api_name: str) -> OERLatestResponse:
    """
    Validate a rates payload.

    Raises:
        MalformedResponseError: If rates are missing or invalid
    """
    try:
        return OERLatestResponse.model_validate(data)
    except ValidationError as e:
        raise MalformedResponseError(api_name, f"{e.error_count()} validation errors") from e


def parse_currencies_response(data: dict[str, Any], api_name: str) -> dict[str, str]:
    """
    Validate a currencies payload.

    Raises:
        MalformedResponseError: If the payload is not a code -> name mapping
    """
    try:
        return OERCurrenciesResponse.model_validate(data).root
    except ValidationError as e:
        raise MalformedResponseError(api_name, "currencies must map codes to names") from e


def parse_usage_response(data: dict[str, Any], api_name: str) -> OERUsageData:
    """
    Validate a usage payload.

    Raises:
        MalformedResponseError: If the payload does not match the usage schema
    """
    try:
        return OERUsageResponse.model_validate(data).data
    except ValidationError as e:
        raise MalformedResponseError(api_name, "unexpected usage payload") from e

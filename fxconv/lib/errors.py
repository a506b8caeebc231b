"""Custom exception classes for fxconv."""

from typing import Any, Optional


class FxConvError(Exception):
    """Base exception for all fxconv errors."""

    def __init__(self, message: str):
        """Initialize with error message."""
        self.message = message
        super().__init__(message)


class DataError(FxConvError):
    """Data validation or processing errors."""

    pass


class ValidationError(DataError):
    """Input validation errors."""

    pass


class InvalidInputError(ValidationError):
    """Conversion request with a missing code or a non-positive amount."""

    def __init__(self, reason: str = ""):
        """
        Initialize invalid input error.

        Args:
            reason: What was wrong with the input
        """
        message = "Invalid input parameters for currency conversion"
        if reason:
            message += f": {reason}"
        super().__init__(message)


class InvalidCurrencyError(ValidationError):
    """Malformed currency code."""

    def __init__(self, currency: str, custom_message: str = ""):
        """
        Initialize with invalid currency.

        Args:
            currency: The invalid currency code
            custom_message: Optional custom error message
        """
        if custom_message:
            message = f"Invalid currency code: '{currency}'. {custom_message}"
        else:
            message = (
                f"Invalid currency code: '{currency}'. "
                f"Must be a 3-letter ISO 4217 code (e.g., USD, EUR, GBP)."
            )
        super().__init__(message)


class UnsupportedCurrencyError(DataError):
    """Well-formed currency code that the current rates snapshot does not quote."""

    def __init__(self, currency: str):
        """
        Initialize with the missing currency.

        Args:
            currency: Currency code absent from the rates snapshot
        """
        self.currency = currency
        super().__init__(f"Currency '{currency}' is not supported or available")


class UpstreamError(FxConvError):
    """Rate provider request failed."""

    def __init__(self, message: str, status: Optional[int] = None):
        """
        Initialize upstream error.

        Args:
            message: Error description
            status: HTTP status returned by the provider, if any
        """
        self.status = status
        super().__init__(message)


class UpstreamUnauthorizedError(UpstreamError):
    """Provider rejected the configured credentials."""

    def __init__(self, api_name: str, status: int = 401):
        """
        Initialize unauthorized error.

        Args:
            api_name: Name of the provider
            status: HTTP status (401 or 403)
        """
        super().__init__(
            f"Invalid API key or unauthorized access to {api_name}", status=status
        )


class UpstreamRateLimitedError(UpstreamError):
    """Provider is throttling requests."""

    def __init__(self, api_name: str, retry_after: str = "later"):
        """
        Initialize rate limit error.

        Args:
            api_name: Name of the provider that hit rate limit
            retry_after: When to retry (e.g., "in 15 minutes", "later")
        """
        super().__init__(
            f"{api_name} API rate limit exceeded. Try again {retry_after}.", status=429
        )


class UpstreamUnavailableError(UpstreamError):
    """Provider unreachable, timed out, or answering with a server error."""

    def __init__(self, api_name: str, details: str = "", status: Optional[int] = None):
        """
        Initialize unavailable error.

        Args:
            api_name: Name of the provider
            details: Additional error details
            status: HTTP status for 5xx responses, None for network failures
        """
        message = f"{api_name} service is temporarily unavailable"
        if details:
            message += f": {details}"
        super().__init__(message, status=status)


class MalformedResponseError(UpstreamError):
    """Provider answered with a body we cannot use."""

    def __init__(self, api_name: str, details: str = ""):
        """
        Initialize malformed response error.

        Args:
            api_name: Name of the provider
            details: What was wrong with the payload
        """
        message = f"Invalid response format from {api_name}"
        if details:
            message += f": {details}"
        super().__init__(message)


class StoreError(FxConvError):
    """Record store misuse. Indicates a bug in the calling code."""

    pass


class SchemaViolationError(StoreError):
    """Field value does not match the table schema."""

    def __init__(self, field: str, expected: str, actual: str):
        """
        Initialize with field details.

        Args:
            field: Offending field name
            expected: Type declared in the schema
            actual: Type of the supplied value
        """
        self.field = field
        self.expected = expected
        self.actual = actual
        super().__init__(f"Field '{field}' expected {expected}, got {actual}")


class DuplicateTableError(StoreError):
    """Table already exists."""

    def __init__(self, table_name: str):
        """
        Initialize with table name.

        Args:
            table_name: The table that already exists
        """
        super().__init__(f"Table '{table_name}' already exists")


class UnknownTableError(StoreError):
    """Table does not exist."""

    def __init__(self, table_name: str):
        """
        Initialize with table name.

        Args:
            table_name: The missing table
        """
        super().__init__(f"Table '{table_name}' does not exist")


class ConfigurationError(FxConvError):
    """Configuration errors."""

    pass


class MissingAPIKeyError(ConfigurationError):
    """Required API key not configured."""

    def __init__(self, api_name: str, env_var: str):
        """
        Initialize with API details.

        Args:
            api_name: Name of the API
            env_var: Environment variable name
        """
        message = (
            f"{api_name} API key not configured. "
            f"Set environment variable: export {env_var}=your-key-here"
        )
        super().__init__(message)


# Error message helpers


def format_error_message(error: BaseException) -> str:
    """
    Format exception into user-friendly error message.

    Args:
        error: The exception to format

    Returns:
        Formatted error message
    """
    if isinstance(error, FxConvError):
        return error.message

    # Generic errors
    error_type = type(error).__name__
    return f"{error_type}: {str(error)}"


def get_error_color(error: BaseException) -> str:
    """
    Get Rich color for error type.

    Args:
        error: The exception

    Returns:
        Rich color name
    """
    if isinstance(error, (UpstreamRateLimitedError, UpstreamUnavailableError)):
        return "yellow"
    elif isinstance(error, (UpstreamUnauthorizedError, ConfigurationError)):
        return "orange1"
    elif isinstance(error, StoreError):
        return "magenta"
    else:
        return "red"


def is_retry_later(error: Any) -> bool:
    """Whether the caller should be told to try again later."""
    return isinstance(error, (UpstreamRateLimitedError, UpstreamUnavailableError))

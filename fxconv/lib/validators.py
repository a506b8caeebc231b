"""
Input validation utilities.

Provides validation for conversion requests: currency codes and amounts.
"""

import math
import re
from decimal import Decimal
from numbers import Real
from typing import Any

from fxconv.lib.errors import InvalidCurrencyError, InvalidInputError

CURRENCY_CODE_PATTERN = re.compile(r"^[A-Z]{3}$")


def is_valid_currency_code(code: Any) -> bool:
    """
    Check currency code format (exactly three uppercase ASCII letters).

    This is a format check only; it says nothing about whether the provider
    currently quotes the currency.

    Examples:
        >>> is_valid_currency_code("USD")
        True
        >>> is_valid_currency_code("usd")
        False
        >>> is_valid_currency_code("EURO")
        False
    """
    return isinstance(code, str) and CURRENCY_CODE_PATTERN.fullmatch(code) is not None


def normalize_currency(code: Any) -> str:
    """
    Normalize a currency code for lookup.

    Args:
        code: Currency code as supplied by the caller

    Returns:
        Upper-cased, stripped code

    Raises:
        InvalidInputError: If the code is missing or blank
    """
    if not isinstance(code, str) or not code.strip():
        raise InvalidInputError("currency code must be a non-empty string")
    return code.strip().upper()


def validate_currency(code: str) -> str:
    """
    Normalize a currency code and check its format.

    Raises:
        InvalidInputError: If the code is blank
        InvalidCurrencyError: If the code is not three letters
    """
    normalized = normalize_currency(code)
    if not is_valid_currency_code(normalized):
        raise InvalidCurrencyError(code)
    return normalized


def validate_amount(amount: Any) -> float:
    """
    Validate a conversion amount.

    Args:
        amount: Amount to convert

    Returns:
        The amount as float

    Raises:
        InvalidInputError: If amount is not a finite number greater than zero

    Examples:
        >>> validate_amount(100)
        100.0
        >>> validate_amount(0)
        Traceback (most recent call last):
        ...
        fxconv.lib.errors.InvalidInputError: Invalid input parameters for currency conversion: amount must be positive
    """
    # bool is an int subclass; True is not an amount
    if isinstance(amount, bool) or not isinstance(amount, (Real, Decimal)):
        raise InvalidInputError("amount must be a number")

    value = float(amount)
    if not math.isfinite(value):
        raise InvalidInputError("amount must be finite")
    if value <= 0:
        raise InvalidInputError("amount must be positive")

    return value

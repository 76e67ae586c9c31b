"""
Request body validation.

Each operation checks field presence and numeric ranges here, before any
store is touched. Failures raise InvalidInput naming the field.
"""
from decimal import Decimal, InvalidOperation
from typing import Any

from .errors import InvalidInput

# Largest accepted amount or count. Products of two such values stay within
# the 38 significant digits a DynamoDB number holds.
MAX_AMOUNT = 10 ** 12


def require_str(body: dict, field: str, max_length: int = 2000) -> str:
    """Non-empty string field, stripped."""
    value = body.get(field)
    if value is None or (isinstance(value, str) and not value.strip()):
        raise InvalidInput(f'Missing {field}', {'field': field})
    if not isinstance(value, str):
        raise InvalidInput(f'{field} must be a string', {'field': field})
    value = value.strip()
    if len(value) > max_length:
        raise InvalidInput(f'{field} is too long', {'field': field})
    return value


def optional_str(body: dict, field: str, max_length: int = 2000) -> str:
    if body.get(field) in (None, ''):
        return ''
    return require_str(body, field, max_length)


def to_decimal(value: Any, field: str) -> Decimal:
    """Parse a JSON number or numeric string. Booleans are rejected."""
    if value is None or value == '':
        raise InvalidInput(f'Missing {field}', {'field': field})
    if isinstance(value, bool):
        raise InvalidInput(f'{field} must be a number', {'field': field})
    try:
        number = Decimal(str(value).strip())
    except InvalidOperation:
        raise InvalidInput(f'{field} must be a number', {'field': field})
    if not number.is_finite():
        raise InvalidInput(f'{field} must be a number', {'field': field})
    if abs(number) > MAX_AMOUNT:
        raise InvalidInput(f'{field} is too large', {'field': field, 'maximum': MAX_AMOUNT})
    return number


def positive_int(value: Any, field: str) -> int:
    """Whole number > 0. Accepts 5, 5.0 and "5"; rejects 5.5."""
    number = to_decimal(value, field)
    if number != number.to_integral_value():
        raise InvalidInput(f'{field} must be a whole number', {'field': field})
    if number <= 0:
        raise InvalidInput(f'{field} must be positive', {'field': field})
    return int(number)


def positive_decimal(value: Any, field: str) -> Decimal:
    number = to_decimal(value, field)
    if number <= 0:
        raise InvalidInput(f'{field} must be positive', {'field': field})
    return number


def require_one_of(value: Any, field: str, allowed) -> str:
    if value not in allowed:
        raise InvalidInput(
            f"{field} must be one of: {', '.join(allowed)}",
            {'field': field, 'allowed': list(allowed)}
        )
    return value

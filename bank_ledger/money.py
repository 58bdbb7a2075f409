"""
Monetary Amount Helpers

Parsing and rounding of Decimal amounts. NEVER uses float arithmetic for
monetary values: floats are routed through ``str`` before conversion.
"""

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP, getcontext
from typing import Union
import re

from .errors import InvalidAmount

# High precision for intermediate calculations
getcontext().prec = 28

AmountLike = Union[Decimal, int, float, str]

# Optional sign and currency symbol around a body of digits and separators
_AMOUNT_PATTERN = re.compile(r'^([+-]?)\s*[$€£¥]?\s*([\d.,]+)\s*[$€£¥]?$')
_GROUPED_PATTERN = re.compile(r'^\d{1,3}(,\d{3})+(\.\d+)?$')
_PLAIN_PATTERN = re.compile(r'^(\d+(\.\d*)?|\.\d+)$')


def _parse_amount_string(value: str) -> Decimal:
    """
    Read "1,250.00", "$20", "-3.75" or "12,5" (decimal comma)

    Anything besides digits, one sign, one currency symbol, whitespace at
    the edges and well-formed separators is rejected.
    """
    match = _AMOUNT_PATTERN.match(value.strip())
    if not match:
        raise InvalidAmount(f"Cannot convert '{value}' to an amount", value)
    sign, body = match.groups()

    if ',' in body:
        if _GROUPED_PATTERN.match(body):
            body = body.replace(',', '')
        elif body.count(',') == 1 and '.' not in body and len(body.split(',')[1]) in (1, 2):
            body = body.replace(',', '.')
        else:
            raise InvalidAmount(f"Cannot convert '{value}' to an amount", value)

    if not _PLAIN_PATTERN.match(body):
        raise InvalidAmount(f"Cannot convert '{value}' to an amount", value)

    return Decimal(sign + body)


def to_decimal(value: AmountLike) -> Decimal:
    """
    Convert a user-supplied amount to Decimal

    Args:
        value: Decimal, int, float or string such as "1,250.00" or "$20"

    Returns:
        Decimal value

    Raises:
        InvalidAmount: If the value cannot be read as a finite number
    """
    if isinstance(value, bool):
        raise InvalidAmount(f"Cannot convert '{value}' to an amount", value)

    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, (int, float)):
        result = Decimal(str(value))
    elif isinstance(value, str):
        result = _parse_amount_string(value)
    else:
        raise InvalidAmount(f"Cannot convert '{value}' to an amount", value)

    if not result.is_finite():
        raise InvalidAmount(f"Amount must be finite, got '{value}'", value)

    return result


def quantize_amount(value: Decimal, precision: int = 2) -> Decimal:
    """Round to the given number of decimal places (ROUND_HALF_UP)"""
    try:
        return value.quantize(Decimal('0.1') ** precision, rounding=ROUND_HALF_UP)
    except InvalidOperation:
        raise InvalidAmount(f"Amount {value} is too large", value) from None


def format_amount(value: Decimal, precision: int = 2) -> str:
    """Format for display with thousands separators"""
    return f"{quantize_amount(value, precision):,.{precision}f}"

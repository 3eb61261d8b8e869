"""
Money Utilities - Decimal operations for cart amounts.

Prices and shipping costs travel through the cart as Decimal; floats only
appear at serialization boundaries (summaries for the checkout collaborator).
"""
from decimal import Decimal, ROUND_HALF_UP, InvalidOperation
from typing import Iterable, Union

Number = Union[str, int, float, Decimal]

# Cents precision for display
MONEY_PRECISION = Decimal("0.01")

CURRENCY_SYMBOLS = {
    "EUR": "€",
    "USD": "$",
    "GBP": "£",
}


def to_decimal(value: Union[Number, None]) -> Decimal:
    """
    Convert any value to Decimal.

    Floats go through their string form so that 0.1 stays 0.1.

    Raises:
        ValueError: if the value is not a finite number
    """
    if value is None:
        raise ValueError("amount is required")
    if isinstance(value, bool):
        raise ValueError(f"invalid amount: {value!r}")
    if isinstance(value, Decimal):
        result = value
    else:
        try:
            result = Decimal(str(value)) if isinstance(value, float) else Decimal(value)
        except (InvalidOperation, ValueError, TypeError):
            raise ValueError(f"invalid amount: {value!r}")
    if not result.is_finite():
        raise ValueError(f"invalid amount: {value!r}")
    return result


def round_money(value: Number) -> Decimal:
    """Round to cents. Only for display; totals are never rounded internally."""
    return to_decimal(value).quantize(MONEY_PRECISION, rounding=ROUND_HALF_UP)


def format_money(value: Number, currency: str = "EUR") -> str:
    """
    Format an amount the way the storefront shows it, e.g. "€170.00".
    """
    symbol = CURRENCY_SYMBOLS.get(currency, currency)
    formatted = f"{round_money(value):,.2f}"
    if currency in CURRENCY_SYMBOLS:
        return f"{symbol}{formatted}"
    return f"{formatted} {symbol}"


def to_float(value: Number) -> float:
    """
    Convert to float for JSON serialization.

    Use only at API boundaries, not for internal calculations.
    """
    return float(to_decimal(value))


def multiply(value: Number, factor: Number) -> Decimal:
    """Multiplication of a monetary value by a factor."""
    return to_decimal(value) * to_decimal(factor)


def total(values: Iterable[Number]) -> Decimal:
    """Sum monetary values; an empty iterable sums to Decimal("0")."""
    result = Decimal("0")
    for value in values:
        result += to_decimal(value)
    return result

"""
Decimal helpers for spent/won/net amounts.

Amounts are kept as ``Decimal`` end to end; rounding to two places happens only
in the ``format_*`` helpers used when building responses.
"""
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Iterable, Union

MoneyLike = Union[str, int, float, Decimal]

ZERO = Decimal("0")
CENTS = Decimal("0.01")
# numeric(12, 2): ten integer digits
MAX_AMOUNT = Decimal("9999999999.99")


def to_decimal(value: MoneyLike) -> Decimal:
    """Convert a store or request value to ``Decimal``.

    Floats go through ``str`` so that values PostgREST returns as JSON numbers
    (``150.5``) keep their shortest representation instead of binary noise.
    """
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        return Decimal(str(value))
    if value is None:
        raise ValueError("Amount is required")
    try:
        return Decimal(value)
    except InvalidOperation as e:
        raise ValueError(f"Invalid amount: {value!r}") from e


def format_money(value: MoneyLike) -> str:
    return str(to_decimal(value).quantize(CENTS, rounding=ROUND_HALF_UP))


def sum_decimals(values: Iterable[MoneyLike]) -> Decimal:
    total = ZERO
    for value in values:
        total += to_decimal(value)
    return total


def calculate_net(won: MoneyLike, spent: MoneyLike) -> Decimal:
    return to_decimal(won) - to_decimal(spent)


def is_valid_money(value: MoneyLike) -> bool:
    """Non-negative, finite, at most MAX_AMOUNT and representable with two decimal places."""
    try:
        amount = to_decimal(value)
    except ValueError:
        return False
    if not amount.is_finite() or amount < 0 or amount > MAX_AMOUNT:
        return False
    return amount == amount.quantize(CENTS)


def to_storage(value: MoneyLike) -> str:
    """Fixed two-place string for numeric(12, 2) columns."""
    return str(to_decimal(value).quantize(CENTS))

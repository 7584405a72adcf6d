"""
Currency Support Module

Currency codes with display precision and symbol, an immutable Money value
used at the presentation boundary, and the currency formatting contract
(two decimals, symbol prefixed, thousands separators).

Schedule math keeps full Decimal precision; rounding to the currency's
precision only happens when a value is wrapped in Money or formatted.
"""

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP, getcontext
from dataclasses import dataclass
from enum import Enum
from typing import Union

# High precision for amortization math
getcontext().prec = 28


class Currency(Enum):
    """ISO 4217 currency codes with precision and display symbol"""
    MXN = ("MXN", 2, "$")   # Mexican Peso
    USD = ("USD", 2, "$")   # US Dollar
    EUR = ("EUR", 2, "€")   # Euro
    COP = ("COP", 2, "$")   # Colombian Peso
    PEN = ("PEN", 2, "S/")  # Peruvian Sol

    def __init__(self, code: str, precision: int, symbol: str):
        self.code = code
        self.precision = precision
        self.symbol = symbol


def to_decimal(value: Union[Decimal, int, float, str]) -> Decimal:
    """
    Convert a numeric input to Decimal without going through binary float

    Raises:
        ValueError: If value cannot be interpreted as a finite number
    """
    if isinstance(value, bool):
        raise ValueError(f"Cannot convert {value!r} to Decimal")
    if isinstance(value, Decimal):
        result = value
    else:
        try:
            result = Decimal(str(value).strip())
        except InvalidOperation:
            raise ValueError(f"Cannot convert {value!r} to Decimal")
    if not result.is_finite():
        raise ValueError(f"Cannot convert {value!r} to a finite Decimal")
    return result


def quantize(value: Decimal, currency: Currency = Currency.MXN) -> Decimal:
    """Round a Decimal to the currency's precision (half up)"""
    return value.quantize(Decimal('0.1') ** currency.precision, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class Money:
    """
    Immutable money representation rounded to its currency's precision.
    """
    amount: Decimal
    currency: Currency = Currency.MXN

    def __post_init__(self):
        if not isinstance(self.amount, Decimal):
            object.__setattr__(self, 'amount', to_decimal(self.amount))
        object.__setattr__(self, 'amount', quantize(self.amount, self.currency))

    def __add__(self, other: 'Money') -> 'Money':
        if self.currency != other.currency:
            raise ValueError(f"Cannot add {self.currency.code} and {other.currency.code}")
        return Money(self.amount + other.amount, self.currency)

    def __sub__(self, other: 'Money') -> 'Money':
        if self.currency != other.currency:
            raise ValueError(f"Cannot subtract {other.currency.code} from {self.currency.code}")
        return Money(self.amount - other.amount, self.currency)

    def __lt__(self, other: 'Money') -> bool:
        if self.currency != other.currency:
            raise ValueError(f"Cannot compare {self.currency.code} and {other.currency.code}")
        return self.amount < other.amount

    def is_zero(self) -> bool:
        """Check if amount is exactly zero"""
        return self.amount == Decimal('0')

    def to_string(self) -> str:
        """Format for display, e.g. ``$1,234.50``"""
        return format_currency(self.amount, self.currency)


def format_currency(amount: Union[Decimal, int, float, str], currency: Currency = Currency.MXN) -> str:
    """
    Render an amount with the currency symbol prefixed and two decimals

    Args:
        amount: Amount to render (any precision)
        currency: Currency supplying symbol and precision

    Returns:
        Formatted string, e.g. ``$1,234.50`` or ``-$12.00``
    """
    value = quantize(to_decimal(amount), currency)
    sign = "-" if value < 0 else ""
    return f"{sign}{currency.symbol}{abs(value):,.{currency.precision}f}"


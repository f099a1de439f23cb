"""
Currency collaborator.

Rounding and display formatting for monetary amounts. The fare calculator
never rounds on its own; every rounding step goes through a Currency.
"""

from decimal import Decimal, ROUND_HALF_UP, ROUND_HALF_EVEN, ROUND_UP, ROUND_DOWN, ROUND_CEILING, ROUND_FLOOR
from typing import Protocol

from ride_pricing.app.core.config import settings

ROUNDING_MODES = {
    "half_up": ROUND_HALF_UP,
    "half_even": ROUND_HALF_EVEN,
    "up": ROUND_UP,
    "down": ROUND_DOWN,
    "ceiling": ROUND_CEILING,
    "floor": ROUND_FLOOR,
}

CURRENCY_SYMBOLS = {
    "USD": "$",
    "EUR": "€",
    "GBP": "£",
}


class Currency(Protocol):
    code: str
    decimal_places: int
    rounding_mode: str

    def round(self, amount: float, mode: str = None, decimal_places: int = None) -> float:
        ...

    def format_amount(self, amount: float) -> str:
        ...


class DecimalCurrency:
    """Decimal-backed rounding for a single currency."""

    def __init__(self, code: str = None, decimal_places: int = None, rounding_mode: str = None):
        self.code = code or settings.default_currency
        self.decimal_places = settings.currency_decimal_places if decimal_places is None else decimal_places
        self.rounding_mode = rounding_mode or settings.currency_rounding_mode
        if self.rounding_mode not in ROUNDING_MODES:
            raise ValueError(f"Unknown rounding mode: {self.rounding_mode}")

    def round(self, amount: float, mode: str = None, decimal_places: int = None) -> float:
        places = self.decimal_places if decimal_places is None else decimal_places
        quantum = Decimal(1).scaleb(-places)
        # str() keeps the shortest repr so 2.675 rounds as written
        rounded = Decimal(str(amount)).quantize(quantum, rounding=ROUNDING_MODES[mode or self.rounding_mode])
        return float(rounded)

    def format_amount(self, amount: float) -> str:
        value = f"{self.round(amount):,.{self.decimal_places}f}"
        symbol = CURRENCY_SYMBOLS.get(self.code)
        if symbol:
            return f"{symbol}{value}"
        return f"{value} {self.code}"


def get_currency() -> Currency:
    """FastAPI dependency returning the default currency."""
    return DecimalCurrency()

"""Currency conversion against a static USD-based rate table."""

from __future__ import annotations

import logging
from decimal import ROUND_HALF_UP, Decimal
from typing import Protocol, runtime_checkable

from expense_approvals.config import get_settings

logger = logging.getLogger(__name__)

_CENT = Decimal("0.01")

# Units of each currency per 1 USD.
DEFAULT_RATES: dict[str, Decimal] = {
    "USD": Decimal("1.0"),
    "EUR": Decimal("0.85"),
    "GBP": Decimal("0.73"),
    "INR": Decimal("83.0"),
    "JPY": Decimal("110.0"),
    "CAD": Decimal("1.25"),
    "AUD": Decimal("1.35"),
    "CHF": Decimal("0.92"),
    "CNY": Decimal("6.45"),
    "MXN": Decimal("20.0"),
    "BRL": Decimal("5.2"),
    "KRW": Decimal("1200.0"),
    "SGD": Decimal("1.35"),
    "HKD": Decimal("7.8"),
    "NZD": Decimal("1.45"),
    "NOK": Decimal("8.5"),
    "SEK": Decimal("8.8"),
    "DKK": Decimal("6.3"),
    "PLN": Decimal("4.0"),
    "AED": Decimal("3.67"),
    "SAR": Decimal("3.75"),
    "ZAR": Decimal("15.0"),
}


@runtime_checkable
class CurrencyConverter(Protocol):
    """Interface for the currency conversion service."""

    def convert(self, amount: Decimal, from_code: str, to_code: str) -> Decimal:
        """Convert ``amount`` between ISO currency codes."""
        ...


class StaticRateConverter:
    """Converts through USD using a fixed rate table.

    Unknown codes leave the amount unconverted and log a warning.
    """

    def __init__(self, rates: dict[str, Decimal] | None = None) -> None:
        self._rates = dict(rates if rates is not None else DEFAULT_RATES)

    def rate(self, from_code: str, to_code: str) -> Decimal | None:
        """Return the multiplier from one currency to another, or None if unknown."""
        if from_code == to_code:
            return Decimal(1)
        from_rate = self._rates.get(from_code)
        to_rate = self._rates.get(to_code)
        if from_rate is None or to_rate is None:
            return None
        return to_rate / from_rate

    def convert(self, amount: Decimal, from_code: str, to_code: str) -> Decimal:
        """Convert ``amount`` between ISO currency codes, rounded to cents."""
        if from_code == to_code:
            return amount
        rate = self.rate(from_code, to_code)
        if rate is None:
            logger.warning("Exchange rate not found for %s or %s", from_code, to_code)
            return amount
        return (amount * rate).quantize(_CENT, rounding=ROUND_HALF_UP)


_converter: CurrencyConverter | None = None


def get_currency_converter() -> CurrencyConverter:
    """FastAPI dependency for the currency converter.

    The default converter uses the built-in table with any configured overrides applied.
    """
    global _converter
    if _converter is None:
        overrides = {code.upper(): rate for code, rate in get_settings().currency_rates.items()}
        _converter = StaticRateConverter({**DEFAULT_RATES, **overrides})
    return _converter


def set_currency_converter(converter: CurrencyConverter | None) -> None:
    """Override the converter (for testing or production wiring)."""
    global _converter
    _converter = converter

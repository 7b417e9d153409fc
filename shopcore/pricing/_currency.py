"""
Currency conversion and display formatting.
"""

from __future__ import annotations

from collections.abc import Mapping
from decimal import Decimal

from kungfu import Result, Ok, Error

from shopcore._types import money, to_decimal
from shopcore.errors import Errors, ShopError

DEFAULT_RATES: Mapping[str, Mapping[str, Decimal]] = {
    "USD": {"EUR": Decimal("0.85"), "GBP": Decimal("0.73"), "CAD": Decimal("1.25")},
    "EUR": {"USD": Decimal("1.18"), "GBP": Decimal("0.86"), "CAD": Decimal("1.47")},
    "GBP": {"USD": Decimal("1.37"), "EUR": Decimal("1.16"), "CAD": Decimal("1.71")},
    "CAD": {"USD": Decimal("0.80"), "EUR": Decimal("0.68"), "GBP": Decimal("0.58")},
}

# symbol, thousands separator, decimal separator, symbol after amount
_FORMATS: Mapping[str, tuple[str, str, str, bool]] = {
    "USD": ("$", ",", ".", False),
    "EUR": ("€", ".", ",", True),
    "GBP": ("£", ",", ".", False),
    "CAD": ("$", ",", ".", False),
}


class CurrencyConverter:
    """Rate-table lookup; identity for equal codes."""

    def __init__(self, rates: Mapping[str, Mapping[str, Decimal]] | None = None) -> None:
        self._rates = {
            src.upper(): {dst.upper(): to_decimal(r) for dst, r in table.items()}
            for src, table in (rates or DEFAULT_RATES).items()
        }

    def supports(self, source: str, target: str) -> bool:
        source, target = source.upper(), target.upper()
        return source == target or target in self._rates.get(source, {})

    def convert(
        self, amount: Decimal | int | str, source: str, target: str
    ) -> Result[Decimal, ShopError]:
        amount = to_decimal(amount)
        if amount < 0:
            return Error(Errors.invalid_input("Amount cannot be negative", amount=str(amount)))

        source, target = source.upper(), target.upper()
        if source == target:
            return Ok(money(amount))

        rate = self._rates.get(source, {}).get(target)
        if rate is None:
            return Error(Errors.unsupported_currency(source, target))
        return Ok(money(amount * rate))


def format_price(amount: Decimal | int | str, currency: str = "USD") -> str:
    """
    Render an amount the way the currency's home locale does.

    Example:
        format_price(Decimal("1234.5"), "EUR")   # "1.234,50 €"
        format_price(Decimal("3"), "JPY")        # "JPY 3.00"
    """
    value = money(amount)
    currency = currency.upper()
    layout = _FORMATS.get(currency)
    if layout is None:
        return f"{currency} {value:.2f}"

    symbol, thousands, decimal_sep, suffix = layout
    sign = "-" if value < 0 else ""
    whole, _, cents = f"{abs(value):,.2f}".partition(".")
    number = whole.replace(",", thousands) + decimal_sep + cents

    if suffix:
        return f"{sign}{number} {symbol}"
    return f"{sign}{symbol}{number}"


__all__ = ("CurrencyConverter", "format_price", "DEFAULT_RATES")

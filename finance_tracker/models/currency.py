"""Supported display currencies."""

from typing import NamedTuple


class Currency(NamedTuple):
    code: str
    symbol: str
    name: str


SUPPORTED_CURRENCIES: dict[str, Currency] = {
    currency.code: currency
    for currency in (
        Currency("USD", "$", "US Dollar"),
        Currency("EUR", "€", "Euro"),
        Currency("MDL", "L", "Moldovan Leu"),
        Currency("GBP", "£", "British Pound"),
        Currency("JPY", "¥", "Japanese Yen"),
        Currency("CAD", "$", "Canadian Dollar"),
        Currency("AUD", "$", "Australian Dollar"),
        Currency("CHF", "Fr", "Swiss Franc"),
        Currency("CNY", "¥", "Chinese Yuan"),
        Currency("INR", "₹", "Indian Rupee"),
        Currency("RUB", "₽", "Russian Ruble"),
    )
}

DEFAULT_CURRENCY_CODE = "EUR"

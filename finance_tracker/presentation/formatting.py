"""
Currency Formatting

DESIGN DECISION: The currency is an explicit constructor argument.
Nothing here looks up a global "current currency"; the application layer
builds a formatter from DisplaySettings (or a wallet's currency) and hands
it to whatever renders amounts.
"""

from finance_tracker.models.currency import (
    DEFAULT_CURRENCY_CODE,
    SUPPORTED_CURRENCIES,
)


class CurrencyFormatter:
    """
    Formats amounts as "<symbol><amount>" with thousands separators.

    Negative amounts keep the sign in front of the symbol: "-€5.00".
    """

    def __init__(self, currency_code: str = DEFAULT_CURRENCY_CODE, decimals: int = 2):
        code = currency_code.strip().upper()
        currency = SUPPORTED_CURRENCIES.get(code)
        self.currency_code = code
        # Unknown codes still format, using the code itself as the symbol
        self.symbol = currency.symbol if currency else f"{code} "
        self.decimals = decimals

    @classmethod
    def from_settings(cls, display_settings) -> "CurrencyFormatter":
        """Build a formatter from a DisplaySettings instance."""
        return cls(display_settings.currency_code)

    def format(self, amount: float) -> str:
        sign = "-" if amount < 0 else ""
        return f"{sign}{self.symbol}{abs(amount):,.{self.decimals}f}"

    def __repr__(self) -> str:
        return f"CurrencyFormatter({self.currency_code!r})"

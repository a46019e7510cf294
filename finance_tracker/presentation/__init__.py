"""Presentation helpers (formatting only, no layout)."""

from finance_tracker.presentation.formatting import CurrencyFormatter

__all__ = ["CurrencyFormatter"]

"""
Data Models Package

This package contains all Pydantic models used in Finance Tracker.
All data flowing through the system must conform to these schemas.
"""

from finance_tracker.models.expense import (
    FALLBACK_CATEGORY,
    Category,
    CustomCategory,
    Expense,
    SystemCategory,
    SystemCategoryRef,
    Wallet,
    WalletKind,
    category_from_key,
    category_key,
    system_category,
)
from finance_tracker.models.analytics import (
    AnalyticsSnapshot,
    CategorySpending,
    CategoryTrend,
    DailySpending,
    InsightKind,
    MonthlyTrend,
    SpendingInsight,
)
from finance_tracker.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)
from finance_tracker.models.currency import (
    DEFAULT_CURRENCY_CODE,
    SUPPORTED_CURRENCIES,
    Currency,
)

__all__ = [
    # Expense models
    "FALLBACK_CATEGORY",
    "Category",
    "CustomCategory",
    "Expense",
    "SystemCategory",
    "SystemCategoryRef",
    "Wallet",
    "WalletKind",
    "category_from_key",
    "category_key",
    "system_category",
    # Analytics models
    "AnalyticsSnapshot",
    "CategorySpending",
    "CategoryTrend",
    "DailySpending",
    "InsightKind",
    "MonthlyTrend",
    "SpendingInsight",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
    # Currencies
    "DEFAULT_CURRENCY_CODE",
    "SUPPORTED_CURRENCIES",
    "Currency",
]

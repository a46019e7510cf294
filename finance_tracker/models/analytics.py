"""
Analytics Models for Finance Tracker

Everything in this module is DERIVED data. None of it is persisted:
an AnalyticsSnapshot is rebuilt from the stores every time they change.

DESIGN DECISION: Ratios such as percent_change are computed fields rather
than stored values, so a trend can never disagree with its own amounts.
"""

import calendar
import datetime
from enum import Enum
from typing import Optional, Union

from pydantic import BaseModel, ConfigDict, Field, computed_field

from finance_tracker.models.expense import Category, CustomCategory, SystemCategoryRef


class InsightKind(str, Enum):
    """Tone of an insight, used by the UI to pick colour and icon."""
    POSITIVE = "positive"
    NEUTRAL = "neutral"
    NEGATIVE = "negative"


class CategorySpending(BaseModel):
    """Summed spend of one category in the selected month."""

    model_config = ConfigDict(frozen=True)

    category: Category
    amount: float
    percentage: float = Field(
        default=0.0,
        description="Share of the month's total spend (0-100)"
    )


class DailySpending(BaseModel):
    """Spend on a single calendar day."""

    model_config = ConfigDict(frozen=True)

    date: datetime.date
    day_of_month: int = Field(ge=1, le=31)
    amount: float

    @property
    def weekday(self) -> str:
        """Abbreviated weekday name, e.g. 'Mon'."""
        return calendar.day_abbr[self.date.weekday()]


class MonthlyTrend(BaseModel):
    """Total spend of one calendar month."""

    model_config = ConfigDict(frozen=True)

    month: int = Field(ge=1, le=12)
    year: int
    amount: float

    @property
    def month_name(self) -> str:
        """Abbreviated month name, e.g. 'Jan'."""
        return calendar.month_abbr[self.month]


class CategoryTrend(BaseModel):
    """
    Month-over-month movement of one category.

    A category that had no spend last month counts as a 100% increase
    when it has spend now, and as unchanged otherwise.
    """

    model_config = ConfigDict(frozen=True)

    category: Category
    previous_amount: float
    current_amount: float

    @computed_field
    @property
    def percent_change(self) -> float:
        if self.previous_amount <= 0:
            return 100.0 if self.current_amount > 0 else 0.0
        return (self.current_amount - self.previous_amount) / self.previous_amount * 100

    @computed_field
    @property
    def is_increasing(self) -> bool:
        return self.current_amount > self.previous_amount


class SpendingInsight(BaseModel):
    """A short, user-facing observation about the selected month."""

    model_config = ConfigDict(frozen=True)

    kind: InsightKind
    title: str
    description: str
    related_category: Optional[Category] = None
    amount: Optional[float] = Field(
        default=None,
        description="Amount the insight is about, if any (e.g. projected overage)"
    )


class AnalyticsSnapshot(BaseModel):
    """
    The complete analytics output for one selected month.

    Built by compute_analytics(); identical inputs always produce an
    identical snapshot.
    """

    model_config = ConfigDict(frozen=True)

    selected_month: int = Field(ge=1, le=12)
    selected_year: int

    # Headline numbers for the selected month
    total_spent: float = 0.0
    spending_by_category: list[CategorySpending] = Field(
        default_factory=list,
        description="Per-category totals, largest first"
    )
    biggest_expense_category: Optional[CategorySpending] = None
    daily_spending: list[DailySpending] = Field(default_factory=list)
    average_daily_spend: float = 0.0
    projected_monthly_spend: float = 0.0

    # Trends
    monthly_trends: list[MonthlyTrend] = Field(
        default_factory=list,
        description="Six months ending at today, oldest first"
    )
    category_trends: list[CategoryTrend] = Field(default_factory=list)
    fastest_growing_category: Optional[CategoryTrend] = None

    # Insights, in display order
    insights: list[SpendingInsight] = Field(default_factory=list)

    # Budget
    current_budget: float = 0.0
    budget_used_percent: float = 0.0
    days_remaining_in_month: int = 0
    budget_remaining_per_day: float = 0.0

    def category_totals(self) -> dict[Union[SystemCategoryRef, CustomCategory], float]:
        """Spending by category as a mapping."""
        return {item.category: item.amount for item in self.spending_by_category}

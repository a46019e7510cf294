"""
Analytics Computation Engine

DESIGN DECISION: The engine is a PURE function of its inputs.
It is given one consistent snapshot of expenses and budgets, plus "today",
and returns an AnalyticsSnapshot. It never reads stores, settings or the
system clock on its own, never caches and never mutates its inputs, so it
can be called again after every change without carrying state over.

Two different month anchors are used on purpose:
- headline totals, categories and category trends follow the SELECTED month
- monthly_trends always covers the six months ending at TODAY, so the
  history chart doesn't move while the user browses past months
"""

from collections import defaultdict
from dataclasses import dataclass
from datetime import date, datetime
from typing import Iterable, Optional, Sequence, Union

from finance_tracker.analytics.insights import InsightInputs, generate_insights
from finance_tracker.analytics.periods import (
    budget_key,
    days_in_month,
    end_of_month,
    iter_month_days,
    months_before,
    shift_month,
    start_of_month,
)
from finance_tracker.models.analytics import (
    AnalyticsSnapshot,
    CategorySpending,
    CategoryTrend,
    DailySpending,
    MonthlyTrend,
)
from finance_tracker.models.expense import CustomCategory, Expense, SystemCategoryRef
from finance_tracker.presentation.formatting import CurrencyFormatter


TREND_MONTHS = 6

_CategoryT = Union[SystemCategoryRef, CustomCategory]


@dataclass(frozen=True)
class MonthAggregate:
    """Aggregation of one month's expenses."""

    total_spent: float
    spending_by_category: list[CategorySpending]
    daily_spending: list[DailySpending]
    average_daily_spend: float
    projected_monthly_spend: float


@dataclass(frozen=True)
class BudgetRunway:
    """Budget position of the selected month relative to today."""

    days_remaining_in_month: int
    budget_remaining_per_day: float


# =============================================================================
# AGGREGATION & DAILY SERIES
# =============================================================================

def expenses_in_month(
    expenses: Iterable[Expense],
    month: int,
    year: int,
) -> list[Expense]:
    """Expenses whose date falls in the given calendar month."""
    return [
        expense for expense in expenses
        if expense.occurred_at.month == month and expense.occurred_at.year == year
    ]


def category_totals(expenses: Iterable[Expense]) -> dict[_CategoryT, float]:
    """Summed amount per category, in order of first appearance."""
    totals: dict[_CategoryT, float] = defaultdict(float)
    for expense in expenses:
        totals[expense.category] += expense.amount
    return dict(totals)


def aggregate_month(
    expenses: Sequence[Expense],
    month: int,
    year: int,
) -> MonthAggregate:
    """
    Totals, category breakdown and daily series for one month.

    The daily series has one entry per calendar day, zero-spend days
    included. The average only counts days whose total is above zero,
    and the projection extrapolates that average over the whole month.
    """
    month_expenses = expenses_in_month(expenses, month, year)
    total_spent = sum((expense.amount for expense in month_expenses), 0.0)

    totals = category_totals(month_expenses)
    ranked = sorted(totals.items(), key=lambda item: item[1], reverse=True)
    spending_by_category = [
        CategorySpending(
            category=category,
            amount=amount,
            percentage=amount / total_spent * 100 if total_spent > 0 else 0.0,
        )
        for category, amount in ranked
    ]

    by_day: dict[date, float] = defaultdict(float)
    for expense in month_expenses:
        by_day[expense.occurred_at] += expense.amount

    daily_spending = [
        DailySpending(date=day, day_of_month=day.day, amount=by_day.get(day, 0.0))
        for day in iter_month_days(month, year)
    ]

    spending_days = [day.amount for day in daily_spending if day.amount > 0]
    average_daily_spend = sum(spending_days) / len(spending_days) if spending_days else 0.0

    if average_daily_spend > 0:
        projected_monthly_spend = average_daily_spend * len(daily_spending)
    else:
        projected_monthly_spend = total_spent

    return MonthAggregate(
        total_spent=total_spent,
        spending_by_category=spending_by_category,
        daily_spending=daily_spending,
        average_daily_spend=average_daily_spend,
        projected_monthly_spend=projected_monthly_spend,
    )


# =============================================================================
# MONTHLY & CATEGORY TRENDS
# =============================================================================

def monthly_trends(
    expenses: Sequence[Expense],
    now: date,
    months: int = TREND_MONTHS,
) -> list[MonthlyTrend]:
    """Total spend of each of the last `months` months ending at now, oldest first."""
    trends = []
    for offset in range(months):
        day = months_before(now, offset)
        amount = sum(
            (expense.amount for expense in expenses_in_month(expenses, day.month, day.year)),
            0.0,
        )
        trends.append(MonthlyTrend(month=day.month, year=day.year, amount=amount))

    return sorted(trends, key=lambda trend: (trend.year, trend.month))


def category_trends(
    expenses: Sequence[Expense],
    month: int,
    year: int,
) -> list[CategoryTrend]:
    """
    Compare each category's spend in (month, year) with the month before.

    Categories without positive spend in either month are left out.
    """
    previous_month, previous_year = shift_month(month, year, -1)
    current = category_totals(expenses_in_month(expenses, month, year))
    previous = category_totals(expenses_in_month(expenses, previous_month, previous_year))

    categories = list(current)
    categories.extend(category for category in previous if category not in current)

    trends = []
    for category in categories:
        current_amount = current.get(category, 0.0)
        previous_amount = previous.get(category, 0.0)
        if current_amount > 0 or previous_amount > 0:
            trends.append(CategoryTrend(
                category=category,
                previous_amount=previous_amount,
                current_amount=current_amount,
            ))
    return trends


def fastest_growing_category(trends: Iterable[CategoryTrend]) -> Optional[CategoryTrend]:
    """Largest percent increase among categories that already had spend last month."""
    growing = [
        trend for trend in trends
        if trend.previous_amount > 0 and trend.current_amount > trend.previous_amount
    ]
    if not growing:
        return None
    return max(growing, key=lambda trend: trend.percent_change)


# =============================================================================
# BUDGET / DAYS REMAINING
# =============================================================================

def budget_runway(
    month: int,
    year: int,
    today: date,
    current_budget: float,
    total_spent: float,
) -> BudgetRunway:
    """
    Days left in the selected month and the budget available per day.

    - past month: nothing left
    - future month: the whole month and the whole budget
    - current month: days after today through month end, and what is
      left of the budget spread over them
    """
    first_day = start_of_month(month, year)
    last_day = end_of_month(month, year)

    if last_day < today:
        return BudgetRunway(days_remaining_in_month=0, budget_remaining_per_day=0.0)

    if first_day > today:
        days = days_in_month(month, year)
        return BudgetRunway(
            days_remaining_in_month=days,
            budget_remaining_per_day=current_budget / days if days > 0 else 0.0,
        )

    days = (last_day - today).days
    remaining_budget = max(0.0, current_budget - total_spent)
    return BudgetRunway(
        days_remaining_in_month=days,
        budget_remaining_per_day=remaining_budget / days if days > 0 else 0.0,
    )


# =============================================================================
# ENTRY POINT
# =============================================================================

def compute_analytics(
    expenses: Sequence[Expense],
    budgets: dict[str, float],
    selected_month: Optional[int] = None,
    selected_year: Optional[int] = None,
    now: Optional[Union[date, datetime]] = None,
    formatter: Optional[CurrencyFormatter] = None,
) -> AnalyticsSnapshot:
    """
    Compute the full analytics snapshot for the selected month.

    Args:
        expenses: Every expense of the wallet (any month)
        budgets: Monthly budgets keyed by "MM-YYYY"
        selected_month: Month to analyse (1-12), defaults to now's month
        selected_year: Year to analyse, defaults to now's year
        now: Today's date; defaults to date.today()
        formatter: Formats amounts inside insight texts (defaults to EUR)

    Returns:
        AnalyticsSnapshot for the selected month

    Raises:
        ValueError: If selected_month is outside 1-12
    """
    if now is None:
        now = date.today()
    elif isinstance(now, datetime):
        now = now.date()

    month = now.month if selected_month is None else selected_month
    year = now.year if selected_year is None else selected_year
    if not 1 <= month <= 12:
        raise ValueError(f"selected_month must be between 1 and 12, got {month}")

    expenses = list(expenses)

    aggregate = aggregate_month(expenses, month, year)
    trends = category_trends(expenses, month, year)
    fastest = fastest_growing_category(trends)

    current_budget = float(budgets.get(budget_key(month, year), 0.0))
    runway = budget_runway(month, year, now, current_budget, aggregate.total_spent)

    insights = generate_insights(
        InsightInputs(
            total_spent=aggregate.total_spent,
            current_budget=current_budget,
            days_remaining_in_month=runway.days_remaining_in_month,
            projected_monthly_spend=aggregate.projected_monthly_spend,
            category_trends=trends,
            fastest_growing_category=fastest,
        ),
        formatter,
    )

    return AnalyticsSnapshot(
        selected_month=month,
        selected_year=year,
        total_spent=aggregate.total_spent,
        spending_by_category=aggregate.spending_by_category,
        biggest_expense_category=(
            aggregate.spending_by_category[0] if aggregate.spending_by_category else None
        ),
        daily_spending=aggregate.daily_spending,
        average_daily_spend=aggregate.average_daily_spend,
        projected_monthly_spend=aggregate.projected_monthly_spend,
        monthly_trends=monthly_trends(expenses, now),
        category_trends=trends,
        fastest_growing_category=fastest,
        insights=insights,
        current_budget=current_budget,
        budget_used_percent=(
            aggregate.total_spent / current_budget * 100 if current_budget > 0 else 0.0
        ),
        days_remaining_in_month=runway.days_remaining_in_month,
        budget_remaining_per_day=runway.budget_remaining_per_day,
    )

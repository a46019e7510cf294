"""
Insight Rule Chain

Turns already-computed analytics numbers into short user-facing insights.

DESIGN DECISION: Rules are plain functions evaluated in a fixed order.
Each rule looks only at InsightInputs and either returns one insight or
None; no rule depends on whether another one fired. The order of
INSIGHT_RULES is the display order.
"""

from dataclasses import dataclass
from typing import Callable, Optional, Sequence

from finance_tracker.models.analytics import (
    CategoryTrend,
    InsightKind,
    SpendingInsight,
)
from finance_tracker.presentation.formatting import CurrencyFormatter


# Thresholds, in percent
BUDGET_ALERT_PERCENT = 90
BUDGET_NOTICE_PERCENT = 75
UNDER_BUDGET_PERCENT = 60
UNDER_BUDGET_MAX_DAYS_LEFT = 7
SPENDING_INCREASE_PERCENT = 30
SPENDING_DECREASE_PERCENT = 20


@dataclass(frozen=True)
class InsightInputs:
    """The subset of a snapshot the rules are allowed to look at."""

    total_spent: float
    current_budget: float
    days_remaining_in_month: int
    projected_monthly_spend: float
    category_trends: Sequence[CategoryTrend]
    fastest_growing_category: Optional[CategoryTrend]


InsightRule = Callable[[InsightInputs, CurrencyFormatter], Optional[SpendingInsight]]


def budget_insight(
    inputs: InsightInputs,
    formatter: CurrencyFormatter,
) -> Optional[SpendingInsight]:
    """How much of the monthly budget has been used."""
    if not inputs.current_budget > 0:
        return None

    used_percent = inputs.total_spent / inputs.current_budget * 100

    if used_percent >= BUDGET_ALERT_PERCENT:
        return SpendingInsight(
            kind=InsightKind.NEGATIVE,
            title="Budget Alert",
            description=f"You've used {int(used_percent)}% of your monthly budget.",
        )
    if used_percent >= BUDGET_NOTICE_PERCENT:
        return SpendingInsight(
            kind=InsightKind.NEUTRAL,
            title="Budget Notice",
            description=f"You've used {int(used_percent)}% of your monthly budget.",
        )
    if (
        inputs.days_remaining_in_month < UNDER_BUDGET_MAX_DAYS_LEFT
        and used_percent < UNDER_BUDGET_PERCENT
    ):
        return SpendingInsight(
            kind=InsightKind.POSITIVE,
            title="Under Budget",
            description="Great job! You're under budget this month.",
        )
    return None


def spending_increase_insight(
    inputs: InsightInputs,
    formatter: CurrencyFormatter,
) -> Optional[SpendingInsight]:
    """The fastest growing category, if it grew by more than 30%."""
    trend = inputs.fastest_growing_category
    if trend is None or not trend.percent_change > SPENDING_INCREASE_PERCENT:
        return None

    return SpendingInsight(
        kind=InsightKind.NEGATIVE,
        title="Spending Increase",
        description=(
            f"{trend.category.display_name} spending increased by "
            f"{int(trend.percent_change)}% from last month."
        ),
        related_category=trend.category,
    )


def spending_decrease_insight(
    inputs: InsightInputs,
    formatter: CurrencyFormatter,
) -> Optional[SpendingInsight]:
    """The biggest relative reduction, if it is more than 20%."""
    reduced = [
        trend for trend in inputs.category_trends
        if trend.previous_amount > 0
        and trend.current_amount < trend.previous_amount
        and abs(trend.percent_change) > SPENDING_DECREASE_PERCENT
    ]
    if not reduced:
        return None

    best = min(reduced, key=lambda trend: trend.percent_change)
    return SpendingInsight(
        kind=InsightKind.POSITIVE,
        title="Spending Decrease",
        description=(
            f"You reduced {best.category.display_name} spending by "
            f"{int(abs(best.percent_change))}%."
        ),
        related_category=best.category,
    )


def projected_overspending_insight(
    inputs: InsightInputs,
    formatter: CurrencyFormatter,
) -> Optional[SpendingInsight]:
    """Linear projection of the month ends above the budget."""
    if not (
        inputs.projected_monthly_spend > inputs.current_budget
        and inputs.current_budget > 0
    ):
        return None

    overage = inputs.projected_monthly_spend - inputs.current_budget
    return SpendingInsight(
        kind=InsightKind.NEGATIVE,
        title="Projected Overspending",
        description=(
            f"At this rate, you might exceed your budget by {formatter.format(overage)}."
        ),
        amount=overage,
    )


INSIGHT_RULES: tuple[InsightRule, ...] = (
    budget_insight,
    spending_increase_insight,
    spending_decrease_insight,
    projected_overspending_insight,
)


def generate_insights(
    inputs: InsightInputs,
    formatter: Optional[CurrencyFormatter] = None,
    rules: Sequence[InsightRule] = INSIGHT_RULES,
) -> list[SpendingInsight]:
    """
    Run every rule in order and collect the insights that fired.

    Args:
        inputs: Numbers computed for the selected month
        formatter: Used for amounts inside descriptions (defaults to EUR)
        rules: Rule chain, in display order

    Returns:
        Zero to len(rules) insights, in rule order
    """
    formatter = formatter or CurrencyFormatter()
    insights = []
    for rule in rules:
        insight = rule(inputs, formatter)
        if insight is not None:
            insights.append(insight)
    return insights

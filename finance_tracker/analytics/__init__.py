"""Analytics engine package."""

from finance_tracker.analytics.engine import (
    aggregate_month,
    budget_runway,
    category_trends,
    compute_analytics,
    fastest_growing_category,
    monthly_trends,
)
from finance_tracker.analytics.insights import (
    INSIGHT_RULES,
    InsightInputs,
    generate_insights,
)
from finance_tracker.analytics.periods import (
    budget_key,
    days_in_month,
    end_of_month,
    months_before,
    parse_budget_key,
    shift_month,
    start_of_month,
)

__all__ = [
    # Engine
    "aggregate_month",
    "budget_runway",
    "category_trends",
    "compute_analytics",
    "fastest_growing_category",
    "monthly_trends",
    # Insights
    "INSIGHT_RULES",
    "InsightInputs",
    "generate_insights",
    # Calendar
    "budget_key",
    "days_in_month",
    "end_of_month",
    "months_before",
    "parse_budget_key",
    "shift_month",
    "start_of_month",
]

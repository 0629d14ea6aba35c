"""Aggregation engine package."""

from finai.aggregation.engine import (
    budget_percentage,
    budget_progress,
    category_spend,
    day_key,
    month_label,
    summarize,
    transactions_on_day,
)

__all__ = [
    "budget_percentage",
    "budget_progress",
    "category_spend",
    "day_key",
    "month_label",
    "summarize",
    "transactions_on_day",
]

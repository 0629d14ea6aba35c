"""
Aggregation Engine

DESIGN DECISION: The summary is DERIVED, never stored.
Every mutation of the transaction collection is followed by a full
recomputation over the whole record set. There is no incremental update
path, so a summary can never drift from the records it describes.

Everything in this module is pure: no I/O, no clock, no randomness.
"""

from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, Optional

from finai.models.finance import (
    Budget,
    BudgetProgress,
    CategoryExpense,
    DailyExpense,
    FinancialSummary,
    MonthlyCashflow,
    Transaction,
    TransactionType,
)


# Abbreviated pt-BR month labels, fixed so output never depends on the host locale
MONTH_LABELS = [
    "jan", "fev", "mar", "abr", "mai", "jun",
    "jul", "ago", "set", "out", "nov", "dez",
]

ZERO = Decimal("0")


def _local_day(moment: datetime) -> datetime:
    """Convert an aware timestamp to local time; naive ones are already local."""
    if moment.tzinfo is not None:
        return moment.astimezone()
    return moment


def day_key(moment: datetime) -> str:
    """Sortable calendar-day key (YYYY-MM-DD) in local time."""
    return _local_day(moment).strftime("%Y-%m-%d")


def day_label(key: str) -> str:
    """Display label (DD/MM) for a day key."""
    _, month, day = key.split("-")
    return f"{day}/{month}"


def month_label(moment: datetime) -> str:
    """
    Month bucket label.

    Month name only, not year-qualified: records from the same month of
    different years share a bucket.
    """
    return MONTH_LABELS[_local_day(moment).month - 1]


def summarize(transactions: Iterable[Transaction]) -> FinancialSummary:
    """
    Build the financial summary for a transaction collection.

    Input order is irrelevant except for the order in which categories and
    months first appear. Empty input yields an all-zero summary.
    """
    total_income = ZERO
    total_expense = ZERO
    by_category: dict[str, Decimal] = {}
    by_day: dict[str, Decimal] = {}
    by_month: dict[str, MonthlyCashflow] = {}

    for tx in transactions:
        month = month_label(tx.date)
        if month not in by_month:
            by_month[month] = MonthlyCashflow(name=month)
        bucket = by_month[month]

        if tx.type == TransactionType.INCOME:
            total_income += tx.amount
            bucket.income += tx.amount
        else:
            total_expense += tx.amount
            bucket.expense += tx.amount
            by_category[tx.category] = by_category.get(tx.category, ZERO) + tx.amount

            key = day_key(tx.date)
            by_day[key] = by_day.get(key, ZERO) + tx.amount

    return FinancialSummary(
        total_income=total_income,
        total_expense=total_expense,
        balance=total_income - total_expense,
        expenses_by_category=[
            CategoryExpense(name=name, value=value)
            for name, value in by_category.items()
        ],
        daily_expenses=[
            DailyExpense(day_key=key, label=day_label(key), amount=by_day[key])
            for key in sorted(by_day)
        ],
        monthly_cashflow=list(by_month.values()),
    )


def category_spend(summary: FinancialSummary, category: str) -> Decimal:
    """Expense total for an exact category name (zero when absent)."""
    for entry in summary.expenses_by_category:
        if entry.name == category:
            return entry.value
    return ZERO


def budget_percentage(spent: Decimal, limit: Decimal) -> Optional[int]:
    """
    Budget utilization as a whole percentage.

    Returns None for a non-positive limit: the percentage is undefined and
    callers must report the budget as blown.
    """
    if limit <= 0:
        return None
    return int((spent / limit * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def budget_progress(
    budgets: Iterable[Budget],
    summary: FinancialSummary,
) -> list[BudgetProgress]:
    """Spend against each budget, matching categories case-insensitively."""
    spend_by_key: dict[str, Decimal] = {}
    for entry in summary.expenses_by_category:
        key = entry.name.casefold()
        spend_by_key[key] = spend_by_key.get(key, ZERO) + entry.value

    progress = []
    for budget in budgets:
        spent = spend_by_key.get(budget.category.casefold(), ZERO)
        progress.append(
            BudgetProgress(
                budget=budget,
                spent=spent,
                percentage=budget_percentage(spent, budget.limit),
            )
        )
    return progress


def transactions_on_day(
    transactions: Iterable[Transaction],
    key: str,
) -> list[Transaction]:
    """All transactions (income and expense) on one local calendar day."""
    return [tx for tx in transactions if day_key(tx.date) == key]

"""
Derived aggregates over a user's transactions.

Every function here is pure and works on any record exposing ``type``,
``amount``, ``occurred_at`` and ``category_name``, so the API routes and the
client view models share them. Nothing is cached; callers recompute on every
request.
"""

import calendar
from collections import defaultdict
from typing import Dict, Iterable, List, Optional

from .categories import EXPENSE, INCOME


def validate_month(year: int, month: int) -> None:
    if not 1 <= month <= 12:
        raise ValueError(f"Invalid month: {month}")
    if not 1 <= year <= 9999:
        raise ValueError(f"Invalid year: {year}")


def in_month(t, year: int, month: int) -> bool:
    return t.occurred_at.year == year and t.occurred_at.month == month


def monthly_expenses(transactions: Iterable, year: int, month: int) -> List:
    validate_month(year, month)
    return [t for t in transactions if t.type == EXPENSE and in_month(t, year, month)]


def to_cents(amount) -> int:
    return int(round(float(amount) * 100))


def from_cents(cents: int) -> float:
    return cents / 100


def balance_summary(
    transactions: Iterable, year: Optional[int] = None, month: Optional[int] = None
) -> Dict[str, float]:
    """
    Income total, expense total and net balance in a single pass.
    With ``year`` and ``month`` only that month is counted.

    Sums are kept in whole cents so that ``balance == income - expense``
    holds exactly for the returned figures.
    """
    if (year is None) != (month is None):
        raise ValueError("year and month must be given together")
    if year is not None:
        validate_month(year, month)

    income = 0
    expense = 0
    for t in transactions:
        if year is not None and not in_month(t, year, month):
            continue
        if t.type == INCOME:
            income += to_cents(t.amount)
        elif t.type == EXPENSE:
            expense += to_cents(t.amount)

    income_total = from_cents(income)
    expense_total = from_cents(expense)
    return {
        "income": income_total,
        "expense": expense_total,
        "balance": income_total - expense_total,
    }


def category_breakdown(transactions: Iterable, year: int, month: int) -> List[Dict]:
    """
    Expense totals per category name for one month, largest first.
    ``percentage`` is for display only.
    """
    totals: Dict[str, int] = defaultdict(int)
    for t in monthly_expenses(transactions, year, month):
        totals[t.category_name] += to_cents(t.amount)

    total_expense = sum(totals.values())
    rows = sorted(totals.items(), key=lambda item: item[1], reverse=True)
    return [
        {
            "category": name,
            "amount": from_cents(cents),
            "percentage": round(cents / total_expense * 100) if total_expense > 0 else 0,
        }
        for name, cents in rows
    ]


def daily_series(transactions: Iterable, year: int, month: int) -> List[Dict]:
    """One expense bucket per calendar day of the month, zero-filled."""
    validate_month(year, month)
    days_in_month = calendar.monthrange(year, month)[1]
    buckets = {day: 0 for day in range(1, days_in_month + 1)}

    for t in monthly_expenses(transactions, year, month):
        buckets[t.occurred_at.day] += to_cents(t.amount)

    return [{"day": day, "amount": from_cents(cents)} for day, cents in buckets.items()]

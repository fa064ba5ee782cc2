"""
Category catalogue and type inference.

Predefined categories are shared by every user and never stored. User-defined
categories live in the ``categories`` table; their type is not stored either
but inferred from the transactions that use them.
"""

from dataclasses import dataclass
from typing import Iterable, List, Optional, Union

INCOME = "income"
EXPENSE = "expense"
BOTH = "both"
UNCATEGORIZED = "Uncategorized"
TRANSACTION_TYPES = (INCOME, EXPENSE)


@dataclass(frozen=True)
class StaticCategory:
    name: str
    icon: str
    type: str
    id: Optional[int] = None
    color: Optional[str] = None
    kind: str = "static"


@dataclass(frozen=True)
class UserCategory:
    id: int
    name: str
    icon: str
    type: str
    color: Optional[str] = None
    kind: str = "user"


ResolvedCategory = Union[StaticCategory, UserCategory]


STATIC_CATEGORIES = (
    StaticCategory("Salary", "dollarsign.circle.fill", INCOME),
    StaticCategory("Income", "dollarsign.circle.fill", INCOME),
    StaticCategory("Food", "fork.knife", EXPENSE),
    StaticCategory("Shopping", "bag.fill", EXPENSE),
    StaticCategory("Transport", "car.fill", EXPENSE),
    StaticCategory("Entertainment", "gamecontroller.fill", EXPENSE),
    StaticCategory("Utilities", "bolt.fill", EXPENSE),
    StaticCategory("Health", "heart.fill", EXPENSE),
    StaticCategory("Education", "book.fill", EXPENSE),
    StaticCategory("Investment", "chart.pie.fill", INCOME),
    StaticCategory("Rent", "house.fill", EXPENSE),
    StaticCategory("Groceries", "cart.fill", EXPENSE),
    StaticCategory("Dining Out", "wineglass.fill", EXPENSE),
    StaticCategory("Others", "circle.grid.2x2.fill", EXPENSE),
)

_STATIC_BY_NAME = {c.name.casefold(): c for c in STATIC_CATEGORIES}


def get_static_category(name: Optional[str]) -> Optional[StaticCategory]:
    if not name:
        return None
    return _STATIC_BY_NAME.get(name.casefold())


def infer_category_type(name: str, transactions: Iterable, default: str = EXPENSE) -> str:
    """
    Infer "income", "expense" or "both" for a category name from the
    transactions recorded against it. Unused categories get ``default``,
    the type the caller is currently browsing.
    """
    seen = set()
    for t in transactions:
        if t.category_name == name and t.type in TRANSACTION_TYPES:
            seen.add(t.type)
            if len(seen) == 2:
                return BOTH
    if seen:
        return seen.pop()
    return default


def resolve_categories(
    user_categories: Iterable,
    transactions: Iterable,
    active_type: str = EXPENSE,
    include_static: bool = False,
) -> List[ResolvedCategory]:
    transactions = list(transactions)
    resolved: List[ResolvedCategory] = list(STATIC_CATEGORIES) if include_static else []
    for c in user_categories:
        resolved.append(
            UserCategory(
                id=c.id,
                name=c.name,
                icon=c.icon,
                color=c.color,
                type=infer_category_type(c.name, transactions, default=active_type),
            )
        )
    return resolved

from datetime import datetime
from types import SimpleNamespace

import pytest

from budget_api import summary
from budget_api.categories import infer_category_type


def tx(type, amount, when, category="Food"):
    return SimpleNamespace(type=type, amount=amount, occurred_at=datetime.fromisoformat(when), category_name=category)


TRANSACTIONS = [
    tx("income", 1000.00, "2024-03-01T09:00:00", "Salary"),
    tx("expense", 50.00, "2024-03-05T12:00:00", "Food"),
    tx("expense", 20.25, "2024-03-05T19:00:00", "Transport"),
    tx("expense", 30.00, "2024-03-31T08:00:00", "Food"),
    tx("expense", 99.99, "2024-04-01T00:00:00", "Rent"),
    tx("income", 15.00, "2024-02-29T00:00:00", "Freelance"),
]


def test_balance_over_everything():
    result = summary.balance_summary(TRANSACTIONS)
    assert result["income"] == pytest.approx(1015.00)
    assert result["expense"] == pytest.approx(200.24)
    assert result["balance"] == pytest.approx(result["income"] - result["expense"])


def test_balance_for_one_month():
    assert summary.balance_summary(TRANSACTIONS, year=2024, month=3) == {
        "income": 1000.0,
        "expense": 100.25,
        "balance": 899.75,
    }


def test_balance_of_nothing():
    assert summary.balance_summary([]) == {"income": 0.0, "expense": 0.0, "balance": 0.0}


def test_balance_requires_year_and_month_together():
    with pytest.raises(ValueError):
        summary.balance_summary(TRANSACTIONS, year=2024)


def test_category_breakdown_sorted_with_percentages():
    rows = summary.category_breakdown(TRANSACTIONS, 2024, 3)
    assert rows == [
        {"category": "Food", "amount": 80.0, "percentage": 80},
        {"category": "Transport", "amount": 20.25, "percentage": 20},
    ]


def test_category_breakdown_empty_month():
    assert summary.category_breakdown(TRANSACTIONS, 2023, 1) == []


@pytest.mark.parametrize("year, month, days", [(2024, 2, 29), (2023, 2, 28), (2024, 3, 31), (2024, 4, 30)])
def test_daily_series_is_dense(year, month, days):
    series = summary.daily_series(TRANSACTIONS, year, month)
    assert [bucket["day"] for bucket in series] == list(range(1, days + 1))
    assert all(bucket["amount"] >= 0 for bucket in series)
    expected = summary.balance_summary(TRANSACTIONS, year=year, month=month)["expense"]
    assert sum(bucket["amount"] for bucket in series) == pytest.approx(expected)


def test_daily_series_buckets():
    series = summary.daily_series(TRANSACTIONS, 2024, 3)
    assert series[4] == {"day": 5, "amount": 70.25}
    assert series[30] == {"day": 31, "amount": 30.0}
    # income on the 1st is not spending
    assert series[0] == {"day": 1, "amount": 0.0}


def test_invalid_month():
    with pytest.raises(ValueError):
        summary.daily_series(TRANSACTIONS, 2024, 13)


def test_infer_category_type():
    assert infer_category_type("Food", TRANSACTIONS) == "expense"
    assert infer_category_type("Salary", TRANSACTIONS) == "income"
    assert infer_category_type("Unused", TRANSACTIONS, default="income") == "income"
    mixed = TRANSACTIONS + [tx("expense", 5, "2024-03-02T00:00:00", "Freelance")]
    assert infer_category_type("Freelance", mixed) == "both"


def test_summary_endpoints(client, auth, account):
    for amount, day, category in ((40, "2024-02-03", "Food"), (10, "2024-02-03", "Health"), (25, "2024-02-29", "Food")):
        client.post(
            "/transactions",
            json={"accountId": account["id"], "amount": amount, "type": "expense", "category": category, "occurredAt": day},
            headers=auth(),
        )

    daily = client.get("/summary/daily", params={"year": 2024, "month": 2}, headers=auth()).json()
    assert len(daily) == 29
    assert daily[2] == {"day": 3, "amount": 50.0}
    assert daily[28] == {"day": 29, "amount": 25.0}

    categories = client.get("/summary/categories", params={"year": 2024, "month": 2}, headers=auth()).json()
    assert categories == [
        {"category": "Food", "amount": 65.0, "percentage": 87},
        {"category": "Health", "amount": 10.0, "percentage": 13},
    ]

    balance = client.get("/summary/balance", headers=auth()).json()
    assert balance == {"income": 0.0, "expense": 75.0, "balance": -75.0}


def test_summary_endpoint_validation(client, auth):
    assert client.get("/summary/daily", params={"year": 2024, "month": 13}, headers=auth()).status_code == 400
    assert client.get("/summary/categories", params={"year": 2024}, headers=auth()).status_code == 400
    assert client.get("/summary/balance", params={"year": 2024}, headers=auth()).status_code == 400


def test_sub_cent_amounts_keep_balance_consistent():
    records = [
        tx("income", 0.006, "2024-03-01T00:00:00", "Salary"),
        tx("expense", 0.004, "2024-03-01T00:00:00"),
    ]
    result = summary.balance_summary(records)
    assert result["balance"] == result["income"] - result["expense"]


def test_sub_cent_amounts_keep_daily_series_consistent():
    records = [tx("expense", 0.004, f"2024-03-0{day}T00:00:00") for day in (1, 2, 3)]
    series = summary.daily_series(records, 2024, 3)
    expense = summary.balance_summary(records, year=2024, month=3)["expense"]
    assert sum(bucket["amount"] for bucket in series) == expense


def test_cent_sums_are_exact():
    records = [tx("expense", 0.1, "2024-03-01T00:00:00"), tx("expense", 0.2, "2024-03-01T12:00:00")]
    assert summary.balance_summary(records)["expense"] == 0.3
    assert summary.daily_series(records, 2024, 3)[0] == {"day": 1, "amount": 0.3}

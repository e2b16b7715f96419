from datetime import date, datetime
from types import SimpleNamespace

import pytest

from garment_erp.services import cashbook


def entry(id, day, type, amount, category="Misc", created=None):
    return SimpleNamespace(
        id=id, date=day, type=type, amount=amount, category=category, description=None,
        created_at=created or datetime(2024, 1, 1),
    )


def test_running_balance_follows_chronological_order():
    entries = [
        entry(3, date(2024, 5, 3), "DEBIT", 300),
        entry(1, date(2024, 5, 1), "CREDIT", 1000),
        entry(2, date(2024, 5, 2), "DEBIT", 250.5),
    ]
    result = cashbook.apply_running_balance(entries)
    assert [e.id for e, _ in result] == [1, 2, 3]
    assert [b for _, b in result] == [1000.0, 749.5, 449.5]


def test_last_balance_equals_totals():
    entries = [
        entry(1, date(2024, 5, 1), "CREDIT", 500),
        entry(2, date(2024, 5, 1), "DEBIT", 120),
        entry(3, date(2024, 5, 2), "CREDIT", 80),
    ]
    summary = cashbook.totals(entries)
    assert summary == {"total_credit": 580.0, "total_debit": 120.0, "closing_balance": 460.0}
    assert cashbook.apply_running_balance(entries)[-1][1] == summary["closing_balance"]


def test_same_day_ordered_by_creation_time():
    entries = [
        entry(1, date(2024, 5, 1), "DEBIT", 100, created=datetime(2024, 5, 1, 12)),
        entry(2, date(2024, 5, 1), "CREDIT", 100, created=datetime(2024, 5, 1, 9)),
    ]
    result = cashbook.apply_running_balance(entries)
    assert [e.id for e, _ in result] == [2, 1]
    assert [b for _, b in result] == [100.0, 0.0]


def test_period_range():
    today = date(2024, 3, 15)
    assert cashbook.period_range("today", today)[:2] == (today, today)
    assert cashbook.period_range("current_month", today)[:2] == (date(2024, 3, 1), date(2024, 3, 31))
    assert cashbook.period_range("last_month", today)[:2] == (date(2024, 2, 1), date(2024, 2, 29))
    with pytest.raises(ValueError):
        cashbook.period_range("next_year", today)


def test_month_range():
    assert cashbook.month_range("2023-02") == (date(2023, 2, 1), date(2023, 2, 28))
    with pytest.raises(ValueError):
        cashbook.month_range("2023/02")

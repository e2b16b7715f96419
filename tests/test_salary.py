from datetime import date
from decimal import Decimal
from types import SimpleNamespace

from garment_erp.services.salary import current_rates, salary_amounts, section_sort_key
from conftest import API


def rate(id, section, rate_type, amount, effective, active=True):
    return SimpleNamespace(id=id, section=section, rate_type=rate_type, amount=amount,
                           effective_date=effective, is_active=active)


def test_current_rates_picks_latest_active():
    rates = [
        rate(1, "Operator", "REGULAR", 500, date(2024, 1, 1)),
        rate(2, "Operator", "REGULAR", 550, date(2024, 3, 1)),
        rate(3, "Operator", "OVERTIME", 60, date(2024, 1, 1)),
        rate(4, "Staff", "REGULAR", 900, date(2024, 5, 1), active=False),
        rate(5, "Zipper", "REGULAR", 400, date(2024, 1, 1)),
        rate(6, "Helper", "REGULAR", 350, date(2024, 1, 1)),
    ]
    result = current_rates(rates)
    assert result["Operator"] == {"regular": 550.0, "overtime": 60.0}
    assert "Staff" not in result
    assert list(result.keys()) == ["Operator", "Helper", "Zipper"]


def test_section_sort_key():
    sections = ["Security", "Zipper", "Staff", "Alpha"]
    assert sorted(sections, key=section_sort_key) == ["Staff", "Security", "Alpha", "Zipper"]


def test_salary_amounts():
    amounts = salary_amounts(10, 500, 4.5, 62.5)
    assert amounts["regular_amount"] == Decimal("5000.00")
    assert amounts["overtime_amount"] == Decimal("281.25")
    assert amounts["total_amount"] == Decimal("5281.25")


async def test_bulk_rate_update_keeps_history(client):
    response = await client.put(f"{API}/admin/salary-rates/", json={
        "rates": [{"section": "Operator", "regular": 500, "overtime": 60}],
        "effective_date": "2024-01-01",
    })
    assert response.status_code == 200, response.text
    response = await client.put(f"{API}/admin/salary-rates/", json={
        "rates": [{"section": "Operator", "regular": 550}],
        "effective_date": "2024-03-01",
    })
    assert response.status_code == 200, response.text

    current = (await client.get(f"{API}/admin/salary-rates/")).json()
    assert current["current_rates"]["Operator"] == {"regular": 550.0, "overtime": 60.0}

    history = (await client.get(f"{API}/admin/salary-rates/", params={"include_inactive": "true"})).json()
    regular = [r for r in history["data"] if r["rate_type"] == "REGULAR"]
    assert len(regular) == 2
    assert sum(1 for r in regular if r["is_active"]) == 1


async def test_daily_salary_uses_current_rates(client):
    await client.post(f"{API}/admin/salary-rates/", json={
        "section": "Helper", "rate_type": "REGULAR", "amount": 400, "effective_date": "2024-01-01",
    })
    response = await client.post(f"{API}/salary/daily", json={
        "date": "2024-05-01",
        "records": [{"section": "Helper", "worker_count": 3, "overtime_hours": 2, "overtime_rate": 50}],
    })
    assert response.status_code == 200, response.text
    record = response.json()["records"][0]
    assert record["regular_rate"] == 400
    assert record["total_amount"] == 1300

    # 再次保存覆盖当天记录
    await client.post(f"{API}/salary/daily", json={
        "date": "2024-05-01", "records": [{"section": "Helper", "worker_count": 1}],
    })
    data = (await client.get(f"{API}/salary/daily", params={"date": "2024-05-01"})).json()
    assert len(data["records"]) == 1
    assert data["summary"]["total_amount"] == 400

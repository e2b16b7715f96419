from datetime import date
from types import SimpleNamespace

from garment_erp.services.profit_loss import build_profit_loss
from conftest import API


def test_build_profit_loss_daily_and_line_breakdown():
    production = [
        SimpleNamespace(date=date(2024, 5, 1), line_no="L-01", net_amount=1000),
        SimpleNamespace(date=date(2024, 5, 1), line_no="L-02", net_amount=500),
        SimpleNamespace(date=date(2024, 5, 2), line_no="L-01", net_amount=800),
    ]
    cash_expenses = [(date(2024, 5, 1), 100.0), (date(2024, 5, 2), 50.0)]
    salaries = [SimpleNamespace(date=date(2024, 5, 2), total_amount=200)]
    monthly = {(2024, 5): 3000.0}

    result = build_profit_loss(production, cash_expenses, salaries, monthly, divisor=30)

    days = {d["date"]: d for d in result["daily_breakdown"]}
    assert days["2024-05-01"]["monthly_expenses"] == 100.0
    assert days["2024-05-01"]["net_profit"] == 1500 - 100 - 100
    assert days["2024-05-02"]["net_profit"] == 800 - 100 - 50 - 200

    summary = result["summary"]
    assert summary["total_earnings"] == 2300
    assert summary["total_expenses"] == 200 + 150 + 200
    assert summary["net_profit"] == 1750
    assert summary["breakdown"]["monthly_expenses"] == 3000

    lines = {l["line_no"]: l for l in result["line_breakdown"]}
    assert lines["L-01"]["monthly_expenses"] == 200.0
    assert lines["L-01"]["net_profit"] == 1600.0
    assert result["top_performing_lines"][0]["line_no"] == "L-01"


def test_build_profit_loss_empty():
    result = build_profit_loss([], [], [], {(2024, 5): 0.0})
    assert result["daily_breakdown"] == []
    assert result["summary"]["net_profit"] == 0
    assert result["summary"]["profit_margin"] == 0


async def test_profit_loss_endpoint(client, style):
    await client.post(f"{API}/daily-production-report/", json={
        "date": "2024-05-01", "style_id": style["id"], "line_no": "L-01",
        "target_qty": 100, "production_qty": 100,
    })
    await client.post(f"{API}/expenses/monthly", json={
        "month": 5, "year": 2024, "category": "Rent", "amount": 3000,
    })
    await client.post(f"{API}/cashbook/daily-expense", json={"date": "2024-05-01", "amount": 100})

    response = await client.get(f"{API}/profit-loss/", params={"month": "2024-05"})
    assert response.status_code == 200
    data = response.json()
    # 100 件 × 2.5 美元 × 20% × 120 汇率
    assert data["summary"]["total_earnings"] == 6000
    day = data["daily_breakdown"][0]
    assert day["monthly_expenses"] == 100
    assert day["daily_cash_expenses"] == 100
    assert day["net_profit"] == 5800
    assert data["period"]["start_date"] == "2024-05-01"


async def test_profit_loss_rejects_half_open_range(client):
    response = await client.get(f"{API}/profit-loss/", params={"start_date": "2024-05-01"})
    assert response.status_code == 400


async def test_profit_loss_export_csv(client):
    response = await client.get(f"{API}/profit-loss/export", params={"month": "2024-05", "format": "csv"})
    assert response.status_code == 200
    assert "attachment" in response.headers["content-disposition"]
    assert response.content.decode("utf-8-sig").splitlines()[0].startswith("date,earnings")

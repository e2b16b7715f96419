from decimal import Decimal
from types import SimpleNamespace

from garment_erp.services import dashboard
from conftest import API


def _entry(stage, line_id, style_id, input_qty=0, output_qty=0, defect_qty=0):
    return SimpleNamespace(
        stage=stage, line_id=line_id, style_id=style_id,
        line=SimpleNamespace(code=f"L-0{line_id}", name=f"Line {line_id}"),
        style=SimpleNamespace(style_number=f"ST-{style_id}", buyer="H&M"),
        input_qty=input_qty, output_qty=output_qty, defect_qty=defect_qty,
    )


def test_production_summary_by_stage_and_line():
    summary = dashboard.production_summary([
        _entry("CUTTING", 1, 1, input_qty=100, output_qty=90, defect_qty=2),
        _entry("SEWING", 1, 1, input_qty=90, output_qty=60),
        _entry("SEWING", 2, 2, input_qty=50, output_qty=50),
    ])
    assert summary["by_stage"]["cutting"] == {"input": 100, "output": 90, "wip": 10}
    assert summary["by_stage"]["sewing"]["wip"] == 30
    assert summary["by_stage"]["quality"]["output"] == 0
    assert summary["total_defects"] == 2
    assert [l["line_code"] for l in summary["by_line"]] == ["L-02", "L-01"]
    assert summary["top_styles"][0]["style_number"] == "ST-2"


def test_cashbook_summary_monthly_trend():
    current = [
        SimpleNamespace(type="CREDIT", amount=Decimal("1000"), category="Cash Received", line_id=None, line=None),
        SimpleNamespace(type="DEBIT", amount=Decimal("200"), category="Misc", line_id=1,
                        line=SimpleNamespace(code="L-01")),
    ]
    previous = [SimpleNamespace(type="CREDIT", amount=Decimal("500"), category="Cash Received",
                                line_id=None, line=None)]
    summary = dashboard.cashbook_summary(current, previous)
    assert summary["net_cash_flow"] == 800
    assert summary["monthly_trend"]["change"] == 300
    assert summary["monthly_trend"]["change_percent"] == 60.0
    assert summary["by_category"][0]["category"] == "Cash Received"
    assert summary["by_line"] == [{
        "line_id": 1, "line_code": "L-01", "total_credit": 0.0, "total_debit": 200.0, "net_amount": -200.0,
    }]
    assert dashboard.cashbook_summary([], [])["monthly_trend"]["change_percent"] == 0


async def test_target_summary_endpoint(client):
    for line_no, target, actual in (("L-01", 100, 80), ("L-02", 50, 50)):
        await client.post(f"{API}/target/", json={
            "date": "2024-05-02", "line_no": line_no, "style_no": "ST-1",
            "line_target": target, "hourly_production": actual,
        })

    summary = (await client.get(f"{API}/dashboard/target-summary", params={"date": "2024-05-02"})).json()
    assert summary["total_line_target"] == 150
    assert summary["average_efficiency"] == 87
    assert [l["line_no"] for l in summary["by_line"]] == ["L-02", "L-01"]
    assert summary["target_vs_actual"]["variance"] == -20
    assert summary["target_vs_actual"]["variance_percent"] == -13.3


async def test_dashboard_summary(client, line, style):
    await client.post(f"{API}/cashbook/cash-received", json={"date": "2024-04-20", "amount": 500})
    await client.post(f"{API}/cashbook/cash-received", json={"date": "2024-05-01", "amount": 1000})
    await client.post(f"{API}/cashbook/daily-expense", json={"date": "2024-05-02", "amount": 150})
    await client.post(f"{API}/cutting/daily-input", json={
        "date": "2024-05-02", "line_id": line["id"], "style_id": style["id"], "input_qty": 100, "hour_index": 8,
    })
    await client.post(f"{API}/cutting/daily-output", json={
        "date": "2024-05-02", "line_id": line["id"], "style_id": style["id"], "output_qty": 80, "hour_index": 9,
    })
    await client.post(f"{API}/production/entries", json={
        "date": "2024-05-02", "hour_index": 10, "line_id": line["id"], "style_id": style["id"],
        "stage": "SEWING", "input_qty": 80, "output_qty": 60,
    })
    await client.post(f"{API}/target/", json={
        "date": "2024-05-02", "line_no": "L-01", "style_no": "ST-1001", "line_target": 100,
    })

    result = (await client.get(f"{API}/dashboard/summary", params={"date": "2024-05-02"})).json()
    overview = result["overview"]
    assert overview["total_production"] == 140
    assert overview["sewing_output"] == 60
    assert overview["target_achievement"] == 60
    assert overview["net_cash_flow"] == 850
    assert overview["cutting_efficiency"] == 80
    assert result["cashbook"]["month"] == "2024-05"
    assert result["cashbook"]["monthly_trend"]["previous_month"] == 500
    assert result["production"]["by_stage"]["sewing"]["wip"] == 20

    cutting = (await client.get(f"{API}/dashboard/cutting-summary", params={"date": "2024-05-02"})).json()
    assert cutting["total_input"] == 100
    production = (await client.get(f"{API}/dashboard/daily-production-summary",
                                   params={"date": "2024-05-02"})).json()
    assert production["total_production"] == 140
